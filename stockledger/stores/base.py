"""Item Store arayüzü.

Stok miktarı için tek doğruluk kaynağı. Düşüm yalnızca
`conditional_decrement` ile yapılır: kontrol + düşüm + audit kaydı tek atomik
adımdır, okuma-sonra-yazma penceresi yoktur.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

from stockledger.models.inventory import InventoryItem, ReductionRecord

if TYPE_CHECKING:
    from stockledger.services.stock_validator import ItemDraft

# (düşüm öncesi kalem, sonuç miktarı) -> audit kaydı
RecordFactory = Callable[[InventoryItem, int], ReductionRecord]


class ItemStore(ABC):
    """Stok kalemleri ve düşüm kayıtları için kalıcı depo."""

    @abstractmethod
    def get_item(self, item_id: str, include_deleted: bool = False) -> InventoryItem:
        """Kalemi döndürür; yoksa ItemNotFoundError."""
        ...

    @abstractmethod
    def list_items(self, include_deleted: bool = False) -> list[InventoryItem]:
        ...

    @abstractmethod
    def create_item(self, draft: ItemDraft) -> InventoryItem:
        """Yeni kalem ekler. Aktif kalemler arasında isim tekrarı ValidationError."""
        ...

    @abstractmethod
    def restock(self, item_id: str, quantity: int) -> InventoryItem:
        """Stok artırır."""
        ...

    @abstractmethod
    def update_item(self, item_id: str, changes: dict) -> InventoryItem:
        """Doğrulanmış alanları kısmen günceller. Aktif isim tekrarı ValidationError."""
        ...

    @abstractmethod
    def soft_delete(self, item_id: str) -> InventoryItem:
        """Kalemi pasifler; düşüm kayıtları korunur."""
        ...

    @abstractmethod
    def conditional_decrement(
        self, item_id: str, quantity: int, make_record: RecordFactory
    ) -> ReductionRecord:
        """quantity >= N ise N düşer ve audit kaydını ekler, atomik olarak.

        Hatalar: ItemNotFoundError, InsufficientStockError. Koşullu düşümü
        yerel olarak ifade edemeyen store'lar ConcurrencyConflictError da verebilir.
        """
        ...

    @abstractmethod
    def list_reductions(self, item_id: Optional[str] = None) -> list[ReductionRecord]:
        """Düşüm kayıtlarını en yeniden eskiye döndürür."""
        ...
