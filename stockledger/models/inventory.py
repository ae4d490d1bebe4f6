"""Yedek parça stok defteri veri modelleri."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class StockStatus(str, Enum):
    OUT = "out"
    LOW = "low"
    GOOD = "good"


class ReasonCode(str, Enum):
    REPAIR = "repair"
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    DAMAGE = "damage"
    OTHER = "other"


class ReorderPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"


class NotificationKind(str, Enum):
    STOCK_ALERT = "stock_alert"
    REORDER_SUGGESTION = "reorder_suggestion"


@dataclass
class InventoryItem:
    item_id: str
    name: str
    category: str
    supplier: str
    quantity: int
    price: Decimal
    min_threshold: int
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    is_deleted: bool = False
    deleted_at: Optional[str] = None

    @property
    def stock_value(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class ReductionRecord:
    """Başarılı bir stok düşümünün değiştirilemez audit kaydı."""

    record_id: str
    item_id: str
    item_name: str
    quantity_reduced: int
    reason_code: ReasonCode
    actor: str
    previous_quantity: int
    resulting_quantity: int
    job_reference: Optional[str] = None
    notes: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity_reduced": self.quantity_reduced,
            "reason_code": self.reason_code.value,
            "actor": self.actor,
            "previous_quantity": self.previous_quantity,
            "resulting_quantity": self.resulting_quantity,
            "job_reference": self.job_reference,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }


@dataclass
class ReorderSuggestion:
    item_id: str
    name: str
    category: str
    supplier: str
    current_quantity: int
    min_threshold: int
    stock_status: StockStatus
    suggested_qty: int
    unit_price: Decimal
    estimated_cost: Decimal
    priority: ReorderPriority


@dataclass
class BulkReductionLine:
    item_id: str
    quantity: int
    reason_code: Optional[ReasonCode] = None
    notes: Optional[str] = None


@dataclass
class BulkLineFailure:
    item_id: Optional[str]
    error: str
    message: str
    line_index: int


@dataclass
class BulkReductionResult:
    succeeded: list[ReductionRecord] = field(default_factory=list)
    failed: list[BulkLineFailure] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


@dataclass
class InventoryOverview:
    total_items: int
    out_of_stock: int
    low_stock: int
    in_stock: int
    total_value: Decimal
    low_stock_value: Decimal
    out_of_stock_value: Decimal


@dataclass
class CategoryStats:
    total: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    value: Decimal = Decimal("0")


@dataclass
class SupplierStats:
    supplier: str
    total_items: int = 0
    total_value: Decimal = Decimal("0")
    low_stock_items: int = 0


@dataclass
class AnalyticsSnapshot:
    overview: InventoryOverview
    category_breakdown: dict[str, CategoryStats]
    top_suppliers: list[SupplierStats]
    out_of_stock_items: list[InventoryItem]
    low_stock_items: list[InventoryItem]
    generated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())


@dataclass
class NotificationPayload:
    kind: NotificationKind
    subject: str
    html_body: str
    text_body: str
    sections: dict[str, list[dict]]
    total_count: int
    total_cost: Optional[Decimal] = None
