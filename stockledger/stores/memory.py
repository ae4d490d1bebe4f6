"""Bellek içi Item Store - tek süreç, kalem bazında kilitli."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional

from stockledger.models.inventory import InventoryItem, ReductionRecord
from stockledger.services.exceptions import InsufficientStockError, ItemNotFoundError, ValidationError
from stockledger.services.stock_validator import ItemDraft
from stockledger.stores.base import ItemStore, RecordFactory

logger = logging.getLogger(__name__)


class InMemoryItemStore(ItemStore):
    """Aynı kalemdeki yazmaları kalem kilidiyle sıralar; okumalar kopya döner."""

    def __init__(self) -> None:
        self._items: dict[str, InventoryItem] = {}
        self._records: list[ReductionRecord] = []
        self._locks: dict[str, threading.Lock] = {}
        self._master_lock = threading.Lock()

    def _lock_for(self, item_id: str) -> threading.Lock:
        # kilit yalnızca var olan kalemler için; create_item oluşturur
        with self._master_lock:
            lock = self._locks.get(item_id)
        if lock is None:
            raise ItemNotFoundError(item_id)
        return lock

    def _check_name_free(self, name: str, exclude_id: Optional[str] = None) -> None:
        lowered = name.lower()
        for existing in self._items.values():
            if existing.item_id == exclude_id or existing.is_deleted:
                continue
            if existing.name.lower() == lowered:
                raise ValidationError(f"Bu isimde aktif bir kalem zaten var: {name}")

    def _require(self, item_id: str, include_deleted: bool = False) -> InventoryItem:
        item = self._items.get(item_id)
        if item is None or (item.is_deleted and not include_deleted):
            raise ItemNotFoundError(item_id)
        return item

    # --- Okuma ---

    def get_item(self, item_id: str, include_deleted: bool = False) -> InventoryItem:
        with self._lock_for(item_id):
            return replace(self._require(item_id, include_deleted))

    def list_items(self, include_deleted: bool = False) -> list[InventoryItem]:
        with self._master_lock:
            items = list(self._items.values())
        return [replace(i) for i in items if include_deleted or not i.is_deleted]

    def list_reductions(self, item_id: Optional[str] = None) -> list[ReductionRecord]:
        with self._master_lock:
            records = list(self._records)
        if item_id:
            records = [r for r in records if r.item_id == item_id]
        return list(reversed(records))

    # --- Yazma ---

    def create_item(self, draft: ItemDraft) -> InventoryItem:
        with self._master_lock:
            self._check_name_free(draft.name)
            item = InventoryItem(
                item_id=str(uuid.uuid4()),
                name=draft.name,
                category=draft.category,
                supplier=draft.supplier,
                quantity=draft.quantity,
                price=draft.price,
                min_threshold=draft.min_threshold,
            )
            self._items[item.item_id] = item
            self._locks[item.item_id] = threading.Lock()
        logger.info("Kalem eklendi: %s (%s) miktar=%d", item.name, item.item_id, item.quantity)
        return replace(item)

    def restock(self, item_id: str, quantity: int) -> InventoryItem:
        with self._lock_for(item_id):
            item = self._require(item_id)
            item.quantity += quantity
            item.updated_at = datetime.utcnow().isoformat()
            return replace(item)

    def update_item(self, item_id: str, changes: dict) -> InventoryItem:
        with self._lock_for(item_id):
            item = self._require(item_id)
            with self._master_lock:
                if "name" in changes:
                    self._check_name_free(changes["name"], exclude_id=item_id)
                for field_name, value in changes.items():
                    setattr(item, field_name, value)
                item.updated_at = datetime.utcnow().isoformat()
            return replace(item)

    def soft_delete(self, item_id: str) -> InventoryItem:
        with self._lock_for(item_id):
            item = self._require(item_id)
            now = datetime.utcnow().isoformat()
            item.is_deleted = True
            item.deleted_at = now
            item.updated_at = now
            return replace(item)

    def conditional_decrement(
        self, item_id: str, quantity: int, make_record: RecordFactory
    ) -> ReductionRecord:
        with self._lock_for(item_id):
            item = self._require(item_id)
            if item.quantity < quantity:
                raise InsufficientStockError(item_id, item.name, quantity, item.quantity)

            before = replace(item)
            resulting = item.quantity - quantity
            record = make_record(before, resulting)
            item.quantity = resulting
            item.updated_at = record.timestamp
            with self._master_lock:
                self._records.append(record)
            return record
