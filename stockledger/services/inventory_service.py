"""Stok defteri servis katmanı - dış bileşenlere açılan işlemler.

- Kalem sorgulama (durum / kategori filtresi)
- Analitik ve yeniden sipariş önerileri
- Tekli ve toplu stok düşümü
- Uyarı içeriği oluşturma ve gönderim

Bildirim oluşturma ve gönderim her zaman store yazması tamamlandıktan sonra
yapılır; gönderim hatası stok düşümünü geri almaz.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from stockledger.models.inventory import (
    AnalyticsSnapshot,
    BulkReductionResult,
    InventoryItem,
    NotificationPayload,
    ReductionRecord,
    ReorderSuggestion,
    StockStatus,
)
from stockledger.services import analytics, reorder
from stockledger.services.alerts import AlertComposer
from stockledger.services.classifier import classify, classify_item, partition_by_status
from stockledger.services.exceptions import NotificationDeliveryError, StockLedgerError, ValidationError
from stockledger.services.notifier import SesNotifier
from stockledger.services.reduction import ReductionTransactor, status_transition
from stockledger.services.stock_validator import (
    ValidationResult,
    check_no_negative_stock,
    parse_int,
    validate_item_fields,
    validate_item_update,
    verify_stock_conservation,
)
from stockledger.settings import Settings
from stockledger.stores.base import ItemStore

logger = logging.getLogger(__name__)


class InventoryService:
    """Item Store etrafındaki işlemler; store her çağrıda açıkça kullanılır."""

    def __init__(
        self,
        store: ItemStore,
        notifier: Optional[SesNotifier] = None,
        settings: Optional[Settings] = None,
        composer: Optional[AlertComposer] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.settings = settings or Settings()
        self.composer = composer or AlertComposer()
        self.transactor = ReductionTransactor(store)

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryService":
        """DynamoDB store ve (gönderici tanımlıysa) SES notifier ile kurar."""
        from stockledger.stores.dynamodb import DynamoItemStore

        store = DynamoItemStore(
            region_name=settings.region,
            items_table=settings.items_table,
            reductions_table=settings.reductions_table,
            max_write_attempts=settings.max_write_attempts,
        )
        notifier = None
        if settings.alert_sender:
            notifier = SesNotifier(settings.alert_sender, region_name=settings.region)
        return cls(store, notifier=notifier, settings=settings)

    # --- Sorgular ---

    def list_items(
        self,
        status: Optional[Any] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[InventoryItem]:
        if status is not None and not isinstance(status, StockStatus):
            try:
                status = StockStatus(str(status).lower())
            except ValueError:
                raise ValidationError(f"Geçersiz stok durumu: {status!r}")

        items = self.store.list_items()
        if status is not None:
            items = [i for i in items if classify_item(i) == status]
        if category:
            items = [i for i in items if i.category.lower() == category.strip().lower()]
        if search:
            needle = search.strip().lower()
            items = [i for i in items if needle in i.name.lower()]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return items

    def get_item(self, item_id: str) -> InventoryItem:
        return self.store.get_item(item_id)

    def item_status(self, item_id: str) -> StockStatus:
        item = self.store.get_item(item_id)
        return classify(item.quantity, item.min_threshold)

    def low_stock_items(self, critical_only: bool = False, limit: int = 50) -> list[InventoryItem]:
        """Eşikte veya altındaki kalemler, en düşük miktar önce."""
        groups = partition_by_status(self.store.list_items())
        items = list(groups[StockStatus.OUT])
        if not critical_only:
            items.extend(groups[StockStatus.LOW])
            items.sort(key=lambda i: (i.quantity, i.name.lower()))
        return items[:limit]

    def analytics(self) -> AnalyticsSnapshot:
        return analytics.snapshot(self.store.list_items(), self.settings.top_suppliers)

    def reorder_suggestions(
        self, min_value: Any = 0, max_items: Optional[int] = 20
    ) -> tuple[list[ReorderSuggestion], dict]:
        suggestions = reorder.suggest_all(
            self.store.list_items(), min_value=Decimal(str(min_value)), max_items=max_items
        )
        return suggestions, reorder.summarize(suggestions)

    def reduction_history(self, item_id: str) -> list[ReductionRecord]:
        """Silinmiş kalemler dahil düşüm geçmişi, en yeni önce."""
        self.store.get_item(item_id, include_deleted=True)
        return self.store.list_reductions(item_id)

    # --- Kalem yaşam döngüsü ---

    def create_item(self, raw: dict) -> InventoryItem:
        draft = validate_item_fields(raw)
        return self.store.create_item(draft)

    def restock(self, item_id: str, quantity: Any, actor: str) -> InventoryItem:
        qty = parse_int(quantity, "quantity", minimum=1)
        item = self.store.restock(item_id, qty)
        logger.info("Stok eklendi: %s (%s) +%d -> %d, işlemi yapan=%s",
                    item.name, item.item_id, qty, item.quantity, actor)
        return item

    def update_item(self, item_id: str, raw: dict) -> InventoryItem:
        """Kısmi düzeltme (isim, kategori, tedarikçi, fiyat, eşik, miktar)."""
        changes = validate_item_update(raw)
        item = self.store.update_item(item_id, changes)
        logger.info("Kalem güncellendi: %s (%s) alanlar=%s",
                    item.name, item.item_id, ", ".join(sorted(changes)))
        return item

    def delete_item(self, item_id: str) -> InventoryItem:
        item = self.store.soft_delete(item_id)
        logger.info("Kalem pasiflendi: %s (%s)", item.name, item.item_id)
        return item

    # --- Stok düşümü ---

    def reduce_stock(
        self,
        item_id: str,
        quantity: Any,
        reason_code: Any,
        actor: str,
        job_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReductionRecord:
        record = self.transactor.reduce_single(
            item_id, quantity, reason_code, actor, job_reference=job_reference, notes=notes
        )
        self._alert_after_reduction([record])
        return record

    def bulk_reduce_stock(
        self,
        lines: list[Any],
        actor: str,
        default_reason_code: Any = "adjustment",
        default_notes: Optional[str] = None,
        job_reference: Optional[str] = None,
        max_workers: Optional[int] = None,
    ) -> BulkReductionResult:
        result = self.transactor.reduce_bulk(
            lines,
            actor,
            default_reason_code=default_reason_code,
            default_notes=default_notes,
            job_reference=job_reference,
            max_workers=max_workers,
        )
        self._alert_after_reduction(result.succeeded)
        return result

    def _alert_after_reduction(self, records: list[ReductionRecord]) -> None:
        """Düşüm sonrası otomatik uyarı; yalnızca ayar açıksa ve alıcı varsa."""
        if not records or not self.settings.alert_on_reduction:
            return
        if not self.notifier or not self.settings.alert_recipient:
            return

        # Yalnızca LOW veya OUT durumuna yeni geçen kalemler; zaten düşük olanlar tekrar bildirilmez
        affected: dict[str, InventoryItem] = {}
        for record in records:
            if record.item_id in affected:
                continue
            try:
                item = self.store.get_item(record.item_id)
            except StockLedgerError as e:
                logger.warning("Uyarı için kalem okunamadı: %s (%s)", record.item_id, e)
                continue
            before, after = status_transition(record, item.min_threshold)
            if after != before and after in (StockStatus.LOW, StockStatus.OUT):
                affected[item.item_id] = item
        if not affected:
            return

        groups = partition_by_status(list(affected.values()))
        payload = self.composer.compose_stock_alert(groups[StockStatus.LOW], groups[StockStatus.OUT])
        try:
            self.notifier.deliver(payload, self.settings.alert_recipient)
        except NotificationDeliveryError as e:
            logger.error("Düşüm sonrası uyarı gönderilemedi: %s", e)

    # --- Uyarılar ---

    def compose_alerts(self) -> dict[str, Optional[NotificationPayload]]:
        items = self.store.list_items()
        groups = partition_by_status(items)
        suggestions = reorder.suggest_all(items)
        return {
            "stock_alert": self.composer.compose_stock_alert(
                groups[StockStatus.LOW], groups[StockStatus.OUT]
            ),
            "reorder_suggestion": self.composer.compose_reorder_suggestion(suggestions),
        }

    def send_alerts(self, recipient: Optional[str] = None) -> dict[str, str]:
        """Güncel durum için uyarıları oluşturur ve gönderir; tür -> MessageId."""
        recipient = recipient or self.settings.alert_recipient
        if not recipient:
            raise ValidationError("Bildirim alıcısı tanımlı değil")
        if not self.notifier:
            raise NotificationDeliveryError(recipient, "Notifier yapılandırılmamış")

        sent = {}
        for kind, payload in self.compose_alerts().items():
            if payload is None:
                continue
            sent[kind] = self.notifier.deliver(payload, recipient)
        if not sent:
            logger.info("Gönderilecek stok uyarısı yok")
        return sent

    # --- Defter bütünlüğü ---

    def check_integrity(self) -> ValidationResult:
        return check_no_negative_stock(self.store.list_items(include_deleted=True))

    def verify_ledger(self, item_id: str, opening_quantity: int) -> ValidationResult:
        item = self.store.get_item(item_id, include_deleted=True)
        return verify_stock_conservation(opening_quantity, item, self.store.list_reductions(item_id))
