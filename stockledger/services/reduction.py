"""Reduction Transactor - denetlenen stok düşümleri.

- Tekli düşüm: doğrula, atomik koşullu düşüm, audit kaydı
- Toplu düşüm: satır bazında bağımsız deneme, kısmi başarı normal sonuçtur
- Audit kaydı yalnızca başarılı düşümde oluşur
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Optional

from stockledger.models.inventory import (
    BulkLineFailure,
    BulkReductionLine,
    BulkReductionResult,
    InventoryItem,
    ReasonCode,
    ReductionRecord,
    StockStatus,
)
from stockledger.services.classifier import classify
from stockledger.services.exceptions import StockLedgerError, ValidationError
from stockledger.services.stock_validator import (
    parse_bulk_line,
    parse_optional_text,
    parse_reason_code,
    parse_reduction_quantity,
)
from stockledger.stores.base import ItemStore

logger = logging.getLogger(__name__)


class ReductionTransactor:
    """Item Store üzerindeki tek miktar yazıcısı ve audit kaydı üreticisi."""

    def __init__(self, store: ItemStore):
        self.store = store

    # --- Tekli düşüm ---

    def reduce_single(
        self,
        item_id: str,
        quantity: Any,
        reason_code: Any,
        actor: str,
        job_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReductionRecord:
        """Bir kalemin stokunu düşer ve audit kaydını döndürür.

        Hatalar: ValidationError, ItemNotFoundError, InsufficientStockError,
        ConcurrencyConflictError.
        """
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError("item_id zorunlu")
        if not isinstance(actor, str) or not actor.strip():
            raise ValidationError("actor zorunlu")
        qty = parse_reduction_quantity(quantity)
        reason = parse_reason_code(reason_code)
        job_reference = parse_optional_text(job_reference, "job_reference", max_length=100)
        notes = parse_optional_text(notes, "notes")

        return self._commit(item_id.strip(), qty, reason, actor.strip(), job_reference, notes)

    def _commit(
        self,
        item_id: str,
        quantity: int,
        reason: ReasonCode,
        actor: str,
        job_reference: Optional[str],
        notes: Optional[str],
    ) -> ReductionRecord:
        snapshot: dict[str, InventoryItem] = {}

        def make_record(before: InventoryItem, resulting: int) -> ReductionRecord:
            snapshot["before"] = before
            return ReductionRecord(
                record_id=str(uuid.uuid4()),
                item_id=before.item_id,
                item_name=before.name,
                quantity_reduced=quantity,
                reason_code=reason,
                actor=actor,
                previous_quantity=before.quantity,
                resulting_quantity=resulting,
                job_reference=job_reference,
                notes=notes,
                timestamp=datetime.utcnow().isoformat(),
            )

        try:
            record = self.store.conditional_decrement(item_id, quantity, make_record)
        except StockLedgerError as e:
            logger.info("Stok düşümü reddedildi [%s] %s: %s", e.code, item_id, e)
            raise

        logger.info(
            "Stok düşüldü: %s (%s) -%d [%s] %d -> %d, işlemi yapan=%s",
            record.item_name, record.item_id, record.quantity_reduced,
            record.reason_code.value, record.previous_quantity,
            record.resulting_quantity, record.actor,
        )
        before, after = status_transition(record, snapshot["before"].min_threshold)
        if after != before and after in (StockStatus.LOW, StockStatus.OUT):
            logger.warning(
                "Stok durumu değişti: %s %s -> %s (miktar=%d, eşik=%d)",
                record.item_name, before.value, after.value,
                record.resulting_quantity, snapshot["before"].min_threshold,
            )
        return record

    # --- Toplu düşüm ---

    def reduce_bulk(
        self,
        lines: list[Any],
        actor: str,
        default_reason_code: Any = ReasonCode.ADJUSTMENT,
        default_notes: Optional[str] = None,
        job_reference: Optional[str] = None,
        max_workers: Optional[int] = None,
    ) -> BulkReductionResult:
        """Her satırı bağımsız olarak düşer. Satırlar arası transaction yoktur.

        Hatalı satırlar hiç denenmeden `failed` listesine düşer. Sonuç
        listeleri girdi sırasını korur.
        """
        if not isinstance(lines, list) or not lines:
            raise ValidationError("items listesi boş olamaz")
        if not isinstance(actor, str) or not actor.strip():
            raise ValidationError("actor zorunlu")
        default_reason = parse_reason_code(default_reason_code)
        default_notes = parse_optional_text(default_notes, "notes")
        job_reference = parse_optional_text(job_reference, "job_reference", max_length=100)
        actor = actor.strip()

        # Önce tüm satırlar doğrulanır; hiçbir deneme yapılmadan önce
        parsed: list[tuple[int, BulkReductionLine]] = []
        outcomes: dict[int, Any] = {}
        for index, raw in enumerate(lines):
            try:
                parsed.append((index, parse_bulk_line(raw)))
            except ValidationError as e:
                outcomes[index] = BulkLineFailure(
                    item_id=_raw_item_id(raw), error=e.code, message=str(e), line_index=index,
                )

        def attempt(line: BulkReductionLine) -> Any:
            try:
                return self._commit(
                    line.item_id,
                    line.quantity,
                    line.reason_code or default_reason,
                    actor,
                    job_reference,
                    line.notes or default_notes,
                )
            except StockLedgerError as e:
                return e
            except Exception as e:
                logger.exception("Satır düşümünde beklenmeyen hata: %s", line.item_id)
                return e

        if max_workers and max_workers > 1 and len(parsed) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = list(executor.map(lambda p: attempt(p[1]), parsed))
        else:
            results = [attempt(line) for _, line in parsed]

        for (index, line), result in zip(parsed, results):
            if isinstance(result, Exception):
                outcomes[index] = BulkLineFailure(
                    item_id=line.item_id,
                    error=getattr(result, "code", "store_error"),
                    message=str(result),
                    line_index=index,
                )
            else:
                outcomes[index] = result

        bulk = BulkReductionResult()
        for index in sorted(outcomes):
            outcome = outcomes[index]
            if isinstance(outcome, BulkLineFailure):
                bulk.failed.append(outcome)
            else:
                bulk.succeeded.append(outcome)

        logger.info(
            "Toplu düşüm tamamlandı: %d başarılı, %d hatalı (işlemi yapan=%s)",
            len(bulk.succeeded), len(bulk.failed), actor,
        )
        return bulk


def _raw_item_id(raw: Any) -> Optional[str]:
    if isinstance(raw, BulkReductionLine):
        return raw.item_id
    if isinstance(raw, dict) and isinstance(raw.get("item_id"), str):
        return raw["item_id"]
    return None


def status_transition(record: ReductionRecord, min_threshold: int) -> tuple[StockStatus, StockStatus]:
    """Düşüm öncesi ve sonrası durum çifti."""
    return (
        classify(record.previous_quantity, min_threshold),
        classify(record.resulting_quantity, min_threshold),
    )
