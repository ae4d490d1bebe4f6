"""Analytics Aggregator unit testleri."""

from decimal import Decimal

from stockledger.models.inventory import InventoryItem
from stockledger.services import analytics


def _items() -> list:
    return [
        InventoryItem("P1", "Brake Pad", "Brake", "ACME", 10, Decimal("2.00"), 5),
        InventoryItem("P2", "Rotor", "Brake", "ACME", 0, Decimal("40.00"), 3),
        InventoryItem("P3", "Oil Filter", "Engine", "Bosch", 4, Decimal("5.00"), 5),
        InventoryItem("P4", "Spark Plug", "Engine", "NGK", 50, Decimal("3.00"), 10),
    ]


class TestOverview:
    def test_counts_and_values(self):
        result = analytics.overview(_items())
        assert result.total_items == 4
        assert result.out_of_stock == 1
        assert result.low_stock == 1
        assert result.in_stock == 2
        assert result.total_value == Decimal("190.00")
        assert result.low_stock_value == Decimal("20.00")
        assert result.out_of_stock_value == Decimal("120.00")

    def test_empty(self):
        result = analytics.overview([])
        assert result.total_items == 0
        assert result.total_value == Decimal("0.00")


class TestCategoryBreakdown:
    def test_brake_category(self):
        breakdown = analytics.category_breakdown(_items())
        brake = breakdown["Brake"]
        assert (brake.total, brake.low_stock, brake.out_of_stock) == (2, 0, 1)
        assert brake.value == Decimal("20.00")
        engine = breakdown["Engine"]
        assert (engine.total, engine.low_stock, engine.out_of_stock) == (2, 1, 0)


class TestTopSuppliers:
    def test_ranked_by_value(self):
        suppliers = analytics.top_suppliers(_items())
        assert [s.supplier for s in suppliers] == ["NGK", "ACME", "Bosch"]
        acme = suppliers[1]
        assert acme.total_items == 2
        assert acme.low_stock_items == 1

    def test_limit(self):
        assert len(analytics.top_suppliers(_items(), limit=1)) == 1


class TestSnapshot:
    def test_repeated_reads_are_identical(self):
        items = _items()
        first = analytics.snapshot(items)
        second = analytics.snapshot(items)
        assert first.overview == second.overview
        assert first.category_breakdown == second.category_breakdown
        assert first.top_suppliers == second.top_suppliers

    def test_item_lists(self):
        snap = analytics.snapshot(_items())
        assert [i.item_id for i in snap.out_of_stock_items] == ["P2"]
        assert [i.item_id for i in snap.low_stock_items] == ["P3"]
