"""Analytics Aggregator - stok özetleri.

Her çağrı verilen anlık görüntüden baştan hesaplanır; artımlı tutulan bir
sayaç yoktur.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from stockledger.models.inventory import (
    AnalyticsSnapshot,
    CategoryStats,
    InventoryItem,
    InventoryOverview,
    StockStatus,
    SupplierStats,
)
from stockledger.services.classifier import classify_item, partition_by_status

_ZERO = Decimal("0.00")


def overview(items: list[InventoryItem]) -> InventoryOverview:
    groups = partition_by_status(items)
    return InventoryOverview(
        total_items=len(items),
        out_of_stock=len(groups[StockStatus.OUT]),
        low_stock=len(groups[StockStatus.LOW]),
        in_stock=len(groups[StockStatus.GOOD]),
        total_value=sum((i.stock_value for i in items), _ZERO),
        low_stock_value=sum((i.stock_value for i in groups[StockStatus.LOW]), _ZERO),
        # Tükenen kalemi eşiğe kadar doldurmanın maliyeti
        out_of_stock_value=sum(
            (i.price * i.min_threshold for i in groups[StockStatus.OUT]), _ZERO
        ),
    )


def category_breakdown(items: list[InventoryItem]) -> dict[str, CategoryStats]:
    breakdown: dict[str, CategoryStats] = {}
    for item in items:
        stats = breakdown.setdefault(item.category, CategoryStats(value=_ZERO))
        stats.total += 1
        status = classify_item(item)
        if status == StockStatus.OUT:
            stats.out_of_stock += 1
        elif status == StockStatus.LOW:
            stats.low_stock += 1
        stats.value += item.stock_value
    return breakdown


def top_suppliers(items: list[InventoryItem], limit: Optional[int] = 5) -> list[SupplierStats]:
    """Tedarikçileri toplam stok değerine göre azalan sırada döndürür.

    low_stock_items eşikte veya altındaki (tükenenler dahil) kalemleri sayar.
    """
    by_supplier: dict[str, SupplierStats] = {}
    for item in items:
        stats = by_supplier.setdefault(
            item.supplier, SupplierStats(supplier=item.supplier, total_value=_ZERO)
        )
        stats.total_items += 1
        stats.total_value += item.stock_value
        if classify_item(item) != StockStatus.GOOD:
            stats.low_stock_items += 1

    ranked = sorted(by_supplier.values(), key=lambda s: (-s.total_value, s.supplier.lower()))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def snapshot(items: list[InventoryItem], supplier_limit: Optional[int] = 5) -> AnalyticsSnapshot:
    groups = partition_by_status(items)
    return AnalyticsSnapshot(
        overview=overview(items),
        category_breakdown=category_breakdown(items),
        top_suppliers=top_suppliers(items, supplier_limit),
        out_of_stock_items=groups[StockStatus.OUT],
        low_stock_items=groups[StockStatus.LOW],
    )
