"""Stok defteri hata sınıfları."""

from __future__ import annotations

from typing import Optional


class StockLedgerError(Exception):
    """Tüm stok defteri hatalarının temel sınıfı."""

    code = "stock_ledger_error"


class ValidationError(StockLedgerError):
    """Hatalı girdi. Store'a erişilmeden reddedilir."""

    code = "validation_error"

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class InsufficientStockError(StockLedgerError):
    """Commit anında istenen miktar mevcut stoktan fazla."""

    code = "insufficient_stock"

    def __init__(self, item_id: str, item_name: str, requested: int, available: int):
        super().__init__(
            f"Yetersiz stok: {item_name} ({item_id}) "
            f"mevcut={available}, istenen={requested}"
        )
        self.item_id = item_id
        self.item_name = item_name
        self.requested = requested
        self.available = available


class ItemNotFoundError(StockLedgerError):
    code = "item_not_found"

    def __init__(self, item_id: str):
        super().__init__(f"Stok kalemi bulunamadı: {item_id}")
        self.item_id = item_id


class ConcurrencyConflictError(StockLedgerError):
    """Koşullu yazma, deneme limiti içinde tamamlanamadı."""

    code = "concurrency_conflict"

    def __init__(self, item_id: str, attempts: int):
        super().__init__(
            f"Eşzamanlı güncelleme çakışması: {item_id} ({attempts} deneme sonrası)"
        )
        self.item_id = item_id
        self.attempts = attempts


class NotificationDeliveryError(StockLedgerError):
    code = "notification_delivery_failed"

    def __init__(self, recipient: str, reason: str):
        super().__init__(f"Bildirim gönderilemedi ({recipient}): {reason}")
        self.recipient = recipient
        self.reason = reason
