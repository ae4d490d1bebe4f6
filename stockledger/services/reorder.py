"""Reorder Advisor - yeniden sipariş önerileri.

Önerilen miktar sabit bir kuraldır: eşiğin iki katı, en az 10 adet.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from stockledger.models.inventory import InventoryItem, ReorderPriority, ReorderSuggestion, StockStatus
from stockledger.services.classifier import classify_item, needs_reorder

MIN_REORDER_QTY = 10
THRESHOLD_MULTIPLIER = 2

_CENT = Decimal("0.01")


def suggested_quantity(min_threshold: int) -> int:
    return max(min_threshold * THRESHOLD_MULTIPLIER, MIN_REORDER_QTY)


def suggest(item: InventoryItem) -> Optional[ReorderSuggestion]:
    """LOW veya OUT kalem için öneri üretir; GOOD kalemde None."""
    status = classify_item(item)
    if not needs_reorder(status):
        return None

    qty = suggested_quantity(item.min_threshold)
    price = Decimal(item.price)
    return ReorderSuggestion(
        item_id=item.item_id,
        name=item.name,
        category=item.category,
        supplier=item.supplier,
        current_quantity=item.quantity,
        min_threshold=item.min_threshold,
        stock_status=status,
        suggested_qty=qty,
        unit_price=price,
        estimated_cost=(price * qty).quantize(_CENT, rounding=ROUND_HALF_UP),
        priority=ReorderPriority.CRITICAL if status == StockStatus.OUT else ReorderPriority.HIGH,
    )


def suggest_all(
    items: list[InventoryItem],
    min_value: Decimal = Decimal("0"),
    max_items: Optional[int] = None,
) -> list[ReorderSuggestion]:
    """Tüm önerileri önceliğe (critical önce), sonra azalan maliyete göre sıralar."""
    suggestions = [s for s in (suggest(item) for item in items) if s is not None]
    suggestions = [s for s in suggestions if s.estimated_cost >= Decimal(min_value)]
    suggestions.sort(key=lambda s: (
        0 if s.priority == ReorderPriority.CRITICAL else 1,
        -s.estimated_cost,
        s.name.lower(),
    ))
    if max_items is not None:
        suggestions = suggestions[:max_items]
    return suggestions


def summarize(suggestions: list[ReorderSuggestion]) -> dict:
    return {
        "total_items": len(suggestions),
        "total_estimated_cost": sum((s.estimated_cost for s in suggestions), Decimal("0.00")),
        "critical_items": sum(1 for s in suggestions if s.priority == ReorderPriority.CRITICAL),
        "low_stock_items": sum(1 for s in suggestions if s.priority == ReorderPriority.HIGH),
    }
