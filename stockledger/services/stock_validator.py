"""Stok girdi validasyonu ve defter bütünlüğü kontrolleri.

- Ham (string tipli olabilen) form verisini tipli değerlere çevirir
- Hatalı girdiyi store'a erişmeden reddeder, sessizce dönüştürmez
- Negatif stok ve stok korunumu kontrolleri
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from stockledger.models.inventory import BulkReductionLine, InventoryItem, ReasonCode, ReductionRecord
from stockledger.services.exceptions import ValidationError


NAME_LENGTH = (2, 100)
CATEGORY_LENGTH = (2, 50)
SUPPLIER_LENGTH = (2, 100)
MAX_PRICE = Decimal("999999")
MAX_THRESHOLD = 999999


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ItemDraft:
    """Intake için doğrulanmış kalem alanları."""

    name: str
    category: str
    supplier: str
    quantity: int
    price: Decimal
    min_threshold: int


# --- Skaler dönüşümler ---

def parse_int(value: Any, field_name: str, minimum: int = 0, maximum: Optional[int] = None) -> int:
    """Tam sayı alanını çevirir. Kesirli veya sayısal olmayan değerleri reddeder."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} tam sayı olmalı: {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field_name} tam sayı olmalı: {value!r}")
        parsed = int(value)
    elif isinstance(value, (str, Decimal)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field_name} sayısal olmalı: {value!r}")
        if not number.is_finite() or number != number.to_integral_value():
            raise ValidationError(f"{field_name} tam sayı olmalı: {value!r}")
        parsed = int(number)
    else:
        raise ValidationError(f"{field_name} tam sayı olmalı: {value!r}")

    if parsed < minimum:
        raise ValidationError(f"{field_name} en az {minimum} olmalı: {parsed}")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{field_name} en fazla {maximum} olabilir: {parsed}")
    return parsed


def parse_price(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"price sayısal olmalı: {value!r}")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"price sayısal olmalı: {value!r}")
    if not price.is_finite():
        raise ValidationError(f"price sayısal olmalı: {value!r}")
    if price < 0:
        raise ValidationError(f"price negatif olamaz: {price}")
    if price > MAX_PRICE:
        raise ValidationError(f"price en fazla {MAX_PRICE} olabilir: {price}")
    if price.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"price en fazla 2 ondalık basamak içerebilir: {price}")
    return price.quantize(Decimal("0.01"))


def parse_text(value: Any, field_name: str, bounds: tuple[int, int]) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} metin olmalı: {value!r}")
    text = value.strip()
    low, high = bounds
    if not low <= len(text) <= high:
        raise ValidationError(f"{field_name} {low}-{high} karakter olmalı: {text!r}")
    return text


def parse_reduction_quantity(value: Any) -> int:
    """Düşüm miktarı: pozitif tam sayı."""
    return parse_int(value, "quantity", minimum=1)


def parse_reason_code(value: Any, default: ReasonCode = ReasonCode.ADJUSTMENT) -> ReasonCode:
    if value is None or value == "":
        return default
    if isinstance(value, ReasonCode):
        return value
    try:
        return ReasonCode(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(r.value for r in ReasonCode)
        raise ValidationError(f"Geçersiz sebep kodu: {value!r} (izin verilen: {allowed})")


def parse_optional_text(value: Any, field_name: str, max_length: int = 500) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} metin olmalı: {value!r}")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field_name} en fazla {max_length} karakter olabilir")
    return text or None


# --- Kayıt seviyesinde validasyon ---

_FIELD_PARSERS = {
    "name": lambda v: parse_text(v, "name", NAME_LENGTH),
    "category": lambda v: parse_text(v, "category", CATEGORY_LENGTH),
    "supplier": lambda v: parse_text(v, "supplier", SUPPLIER_LENGTH),
    "quantity": lambda v: parse_int(v, "quantity", minimum=0),
    "price": parse_price,
    "min_threshold": lambda v: parse_int(v, "min_threshold", minimum=0, maximum=MAX_THRESHOLD),
}


def validate_item_fields(raw: dict) -> ItemDraft:
    """Intake formunu doğrular; tüm alan hatalarını tek seferde toplar."""
    errors: list[str] = []
    parsed: dict[str, Any] = {}

    for field_name, parser in _FIELD_PARSERS.items():
        if field_name not in raw:
            errors.append(f"{field_name} zorunlu")
            continue
        try:
            parsed[field_name] = parser(raw[field_name])
        except ValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise ValidationError("; ".join(errors), errors)
    return ItemDraft(**parsed)


def validate_item_update(raw: Any) -> dict[str, Any]:
    """Kısmi güncelleme: yalnızca gönderilen alanlar doğrulanır.

    Bilinmeyen alanlar reddedilir; quantity verilirse negatif olamaz.
    """
    if not isinstance(raw, dict) or not raw:
        raise ValidationError("Güncellenecek alan yok")
    errors: list[str] = []
    parsed: dict[str, Any] = {}
    for field_name, value in raw.items():
        parser = _FIELD_PARSERS.get(field_name)
        if parser is None:
            errors.append(f"Güncellenemeyen alan: {field_name}")
            continue
        try:
            parsed[field_name] = parser(value)
        except ValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise ValidationError("; ".join(errors), errors)
    return parsed


def parse_bulk_line(raw: Any) -> BulkReductionLine:
    if isinstance(raw, BulkReductionLine):
        raw = {
            "item_id": raw.item_id,
            "quantity": raw.quantity,
            "reason_code": raw.reason_code,
            "notes": raw.notes,
        }
    if not isinstance(raw, dict):
        raise ValidationError(f"Satır bir nesne olmalı: {raw!r}")
    item_id = raw.get("item_id")
    if not isinstance(item_id, str) or not item_id.strip():
        raise ValidationError("item_id zorunlu")
    if "quantity" not in raw:
        raise ValidationError("quantity zorunlu")
    reason = raw.get("reason_code")
    return BulkReductionLine(
        item_id=item_id.strip(),
        quantity=parse_reduction_quantity(raw["quantity"]),
        reason_code=parse_reason_code(reason) if reason not in (None, "") else None,
        notes=parse_optional_text(raw.get("notes"), "notes"),
    )


# --- Defter bütünlüğü ---

def check_no_negative_stock(items: list[InventoryItem]) -> ValidationResult:
    """Hiçbir kalemin negatif stokta olmadığını doğrular."""
    errors = [
        f"Negatif stok tespit edildi: {item.name} ({item.item_id}) = {item.quantity}"
        for item in items
        if item.quantity < 0
    ]
    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def verify_stock_conservation(
    opening_quantity: int,
    item: InventoryItem,
    records: list[ReductionRecord],
) -> ValidationResult:
    """Açılış miktarı = güncel miktar + tüm düşümler olmalı (restock yoksa)."""
    reduced = sum(r.quantity_reduced for r in records if r.item_id == item.item_id)
    errors = []
    if item.quantity + reduced != opening_quantity:
        errors.append(
            f"Stok korunumu ihlali: {item.item_id} açılış={opening_quantity}, "
            f"güncel={item.quantity}, düşülen={reduced}"
        )
    warnings = []
    chain = sorted(
        (r for r in records if r.item_id == item.item_id),
        key=lambda r: r.previous_quantity,
        reverse=True,
    )
    for earlier, later in zip(chain, chain[1:]):
        if earlier.resulting_quantity != later.previous_quantity:
            warnings.append(
                f"Kayıt zinciri kopuk: {earlier.record_id} -> {later.record_id}"
            )
    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)
