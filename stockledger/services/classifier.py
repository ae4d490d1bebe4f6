"""Stok sağlığı sınıflandırması.

Durum hiçbir zaman saklanmaz; her okumada güncel quantity / min_threshold
değerlerinden yeniden hesaplanır.
"""

from __future__ import annotations

from stockledger.models.inventory import InventoryItem, StockStatus

# Düşük rank = yüksek öncelik
_STATUS_RANK = {
    StockStatus.OUT: 0,
    StockStatus.LOW: 1,
    StockStatus.GOOD: 2,
}


def classify(quantity: int, min_threshold: int) -> StockStatus:
    """Miktar ve eşikten stok durumunu türetir."""
    if quantity == 0:
        return StockStatus.OUT
    if quantity <= min_threshold:
        return StockStatus.LOW
    return StockStatus.GOOD


def classify_item(item: InventoryItem) -> StockStatus:
    return classify(item.quantity, item.min_threshold)


def status_rank(status: StockStatus) -> int:
    return _STATUS_RANK[status]


def needs_reorder(status: StockStatus) -> bool:
    return status in (StockStatus.OUT, StockStatus.LOW)


def partition_by_status(items: list[InventoryItem]) -> dict[StockStatus, list[InventoryItem]]:
    """Kalemleri duruma göre gruplar (her grup miktar, sonra isim sırasıyla)."""
    groups: dict[StockStatus, list[InventoryItem]] = {status: [] for status in StockStatus}
    for item in items:
        groups[classify_item(item)].append(item)
    for group in groups.values():
        group.sort(key=lambda i: (i.quantity, i.name.lower()))
    return groups
