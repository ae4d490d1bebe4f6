"""DynamoDB tabanlı Item Store.

Düşüm tek bir koşullu UpdateItem'dır: `quantity = quantity - :qty`, koşul
`quantity >= :qty`. Okuma-sonra-yazma yoktur; eşzamanlı yazmalar sunucu
tarafında sıralanır. Audit kaydı düşüm commit edildikten sonra, idempotent
(`attribute_not_exists(record_id)`) bir Put ile yazılır ve hata halinde
tekrar denenir.

Aktif kalem isimleri, aynı tabloda `NAME#<küçük harf isim>` anahtarlı koruma
kayıtlarıyla tekilleştirilir; kalem ve koruma kaydı tek transaction'da yazılır.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from stockledger.models.inventory import InventoryItem, ReasonCode, ReductionRecord
from stockledger.services.exceptions import (
    InsufficientStockError,
    ItemNotFoundError,
    ValidationError,
)
from stockledger.services.stock_validator import ItemDraft
from stockledger.settings import DEFAULT_ITEMS_TABLE, DEFAULT_REDUCTIONS_TABLE
from stockledger.stores.base import ItemStore, RecordFactory

logger = logging.getLogger(__name__)

NAME_GUARD_PREFIX = "NAME#"

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _cancellation_codes(error: ClientError) -> list[str]:
    return [r.get("Code", "") for r in error.response.get("CancellationReasons", [])]


def _to_attributes(data: dict) -> dict:
    return {k: _serializer.serialize(v) for k, v in data.items() if v is not None}


def _from_attributes(attributes: dict) -> dict:
    return {k: _deserializer.deserialize(v) for k, v in attributes.items()}


def name_guard_key(name: str) -> dict:
    return {"item_id": {"S": f"{NAME_GUARD_PREFIX}{name.strip().lower()}"}}


def item_to_dynamo(item: InventoryItem) -> dict:
    return _to_attributes({
        "item_id": item.item_id,
        "name": item.name,
        "name_lower": item.name.lower(),
        "category": item.category,
        "supplier": item.supplier,
        "quantity": item.quantity,
        "price": item.price,
        "min_threshold": item.min_threshold,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
        "is_deleted": item.is_deleted,
        "deleted_at": item.deleted_at,
    })


def item_from_dynamo(attributes: dict) -> InventoryItem:
    data = _from_attributes(attributes)
    return InventoryItem(
        item_id=data["item_id"],
        name=data["name"],
        category=data.get("category", ""),
        supplier=data.get("supplier", ""),
        quantity=int(data.get("quantity", 0)),
        price=Decimal(data.get("price", 0)).quantize(Decimal("0.01")),
        min_threshold=int(data.get("min_threshold", 0)),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
        is_deleted=bool(data.get("is_deleted", False)),
        deleted_at=data.get("deleted_at"),
    )


def record_to_dynamo(record: ReductionRecord) -> dict:
    data = record.to_dict()
    data["recorded_at"] = f"{record.timestamp}#{record.record_id}"
    return _to_attributes(data)


def record_from_dynamo(attributes: dict) -> ReductionRecord:
    data = _from_attributes(attributes)
    return ReductionRecord(
        record_id=data["record_id"],
        item_id=data["item_id"],
        item_name=data.get("item_name", ""),
        quantity_reduced=int(data["quantity_reduced"]),
        reason_code=ReasonCode(data["reason_code"]),
        actor=data["actor"],
        previous_quantity=int(data["previous_quantity"]),
        resulting_quantity=int(data["resulting_quantity"]),
        job_reference=data.get("job_reference"),
        notes=data.get("notes"),
        timestamp=data["timestamp"],
    )


class DynamoItemStore(ItemStore):
    """InventoryItems ve ReductionRecords tablolarını kullanan store."""

    def __init__(
        self,
        dynamodb_client: Optional[Any] = None,
        region_name: str = "us-west-2",
        items_table: str = DEFAULT_ITEMS_TABLE,
        reductions_table: str = DEFAULT_REDUCTIONS_TABLE,
        max_write_attempts: int = 5,
    ):
        if max_write_attempts < 1:
            raise ValueError("max_write_attempts en az 1 olmalı")
        # dependency injection destekli
        self.client = dynamodb_client or boto3.client("dynamodb", region_name=region_name)
        self.items_table = items_table
        self.reductions_table = reductions_table
        # audit kaydı Put denemesi
        self.max_write_attempts = max_write_attempts

    # --- Okuma ---

    def get_item(self, item_id: str, include_deleted: bool = False) -> InventoryItem:
        if item_id.startswith(NAME_GUARD_PREFIX):
            raise ItemNotFoundError(item_id)
        resp = self.client.get_item(
            TableName=self.items_table,
            Key={"item_id": {"S": item_id}},
            ConsistentRead=True,
        )
        if "Item" not in resp:
            raise ItemNotFoundError(item_id)
        item = item_from_dynamo(resp["Item"])
        if item.is_deleted and not include_deleted:
            raise ItemNotFoundError(item_id)
        return item

    def list_items(self, include_deleted: bool = False) -> list[InventoryItem]:
        paginator = self.client.get_paginator("scan")
        items = []
        for page in paginator.paginate(TableName=self.items_table, ConsistentRead=True):
            for raw in page.get("Items", []):
                if raw["item_id"]["S"].startswith(NAME_GUARD_PREFIX):
                    continue
                item = item_from_dynamo(raw)
                if include_deleted or not item.is_deleted:
                    items.append(item)
        return items

    def list_reductions(self, item_id: Optional[str] = None) -> list[ReductionRecord]:
        if item_id:
            paginator = self.client.get_paginator("query")
            pages = paginator.paginate(
                TableName=self.reductions_table,
                KeyConditionExpression="item_id = :item_id",
                ExpressionAttributeValues={":item_id": {"S": item_id}},
                ScanIndexForward=False,
            )
        else:
            paginator = self.client.get_paginator("scan")
            pages = paginator.paginate(TableName=self.reductions_table)

        records = [record_from_dynamo(raw) for page in pages for raw in page.get("Items", [])]
        records.sort(key=lambda r: (r.timestamp, r.record_id), reverse=True)
        return records

    # --- Yazma ---

    def _guard_put(self, name: str, item_id: str) -> dict:
        return {"Put": {
            "TableName": self.items_table,
            "Item": {**name_guard_key(name), "owner_id": {"S": item_id}},
            "ConditionExpression": "attribute_not_exists(item_id)",
        }}

    def _guard_delete(self, name: str) -> dict:
        return {"Delete": {"TableName": self.items_table, "Key": name_guard_key(name)}}

    def create_item(self, draft: ItemDraft) -> InventoryItem:
        item = InventoryItem(
            item_id=str(uuid.uuid4()),
            name=draft.name,
            category=draft.category,
            supplier=draft.supplier,
            quantity=draft.quantity,
            price=draft.price,
            min_threshold=draft.min_threshold,
        )
        try:
            self.client.transact_write_items(TransactItems=[
                self._guard_put(item.name, item.item_id),
                {"Put": {
                    "TableName": self.items_table,
                    "Item": item_to_dynamo(item),
                    "ConditionExpression": "attribute_not_exists(item_id)",
                }},
            ])
        except ClientError as e:
            if _error_code(e) == "TransactionCanceledException":
                raise ValidationError(f"Bu isimde aktif bir kalem zaten var: {draft.name}")
            logger.error("DynamoDB kalem ekleme hatası [%s]: %s", item.name, e)
            raise
        logger.info("Kalem eklendi: %s (%s) miktar=%d", item.name, item.item_id, item.quantity)
        return item

    def _update_active(self, item_id: str, update_expression: str, values: dict) -> InventoryItem:
        values = dict(values)
        values[":false"] = {"BOOL": False}
        try:
            resp = self.client.update_item(
                TableName=self.items_table,
                Key={"item_id": {"S": item_id}},
                UpdateExpression=update_expression,
                ConditionExpression="attribute_exists(item_id) AND is_deleted = :false",
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise ItemNotFoundError(item_id)
            logger.error("DynamoDB güncelleme hatası [%s]: %s", item_id, e)
            raise
        return item_from_dynamo(resp["Attributes"])

    def restock(self, item_id: str, quantity: int) -> InventoryItem:
        return self._update_active(
            item_id,
            "SET quantity = quantity + :qty, updated_at = :ts",
            {
                ":qty": {"N": str(quantity)},
                ":ts": {"S": datetime.utcnow().isoformat()},
            },
        )

    def update_item(self, item_id: str, changes: dict) -> InventoryItem:
        current = self.get_item(item_id)
        now = datetime.utcnow().isoformat()
        fields = dict(changes)
        if "name" in fields:
            fields["name_lower"] = fields["name"].lower()
        fields["updated_at"] = now

        names = {f"#{k}": k for k in fields}
        values = {f":{k}": _serializer.serialize(v) for k, v in fields.items()}
        expression = "SET " + ", ".join(f"#{k} = :{k}" for k in fields)

        renamed = "name" in changes and changes["name"].lower() != current.name.lower()
        if not renamed:
            values = {**values, ":false": {"BOOL": False}}
            try:
                resp = self.client.update_item(
                    TableName=self.items_table,
                    Key={"item_id": {"S": item_id}},
                    UpdateExpression=expression,
                    ConditionExpression="attribute_exists(item_id) AND is_deleted = :false",
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ReturnValues="ALL_NEW",
                )
            except ClientError as e:
                if _error_code(e) == "ConditionalCheckFailedException":
                    raise ItemNotFoundError(item_id)
                logger.error("DynamoDB güncelleme hatası [%s]: %s", item_id, e)
                raise
            return item_from_dynamo(resp["Attributes"])

        try:
            self.client.transact_write_items(TransactItems=[
                {"Update": {
                    "TableName": self.items_table,
                    "Key": {"item_id": {"S": item_id}},
                    "UpdateExpression": expression,
                    "ConditionExpression": "attribute_exists(item_id) AND is_deleted = :false",
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": {**values, ":false": {"BOOL": False}},
                }},
                self._guard_delete(current.name),
                self._guard_put(changes["name"], item_id),
            ])
        except ClientError as e:
            if _error_code(e) != "TransactionCanceledException":
                logger.error("DynamoDB güncelleme hatası [%s]: %s", item_id, e)
                raise
            codes = _cancellation_codes(e)
            if codes and codes[0] == "ConditionalCheckFailed":
                raise ItemNotFoundError(item_id)
            raise ValidationError(f"Bu isimde aktif bir kalem zaten var: {changes['name']}")
        return self.get_item(item_id)

    def soft_delete(self, item_id: str) -> InventoryItem:
        current = self.get_item(item_id)
        now = datetime.utcnow().isoformat()
        try:
            self.client.transact_write_items(TransactItems=[
                {"Update": {
                    "TableName": self.items_table,
                    "Key": {"item_id": {"S": item_id}},
                    "UpdateExpression": "SET is_deleted = :true, deleted_at = :ts, updated_at = :ts",
                    "ConditionExpression": "attribute_exists(item_id) AND is_deleted = :false",
                    "ExpressionAttributeValues": {
                        ":true": {"BOOL": True},
                        ":false": {"BOOL": False},
                        ":ts": {"S": now},
                    },
                }},
                self._guard_delete(current.name),
            ])
        except ClientError as e:
            if _error_code(e) == "TransactionCanceledException":
                raise ItemNotFoundError(item_id)
            logger.error("DynamoDB silme hatası [%s]: %s", item_id, e)
            raise
        return replace(current, is_deleted=True, deleted_at=now, updated_at=now)

    def conditional_decrement(
        self, item_id: str, quantity: int, make_record: RecordFactory
    ) -> ReductionRecord:
        try:
            resp = self.client.update_item(
                TableName=self.items_table,
                Key={"item_id": {"S": item_id}},
                UpdateExpression="SET quantity = quantity - :qty, updated_at = :ts",
                ConditionExpression="quantity >= :qty AND is_deleted = :false",
                ExpressionAttributeValues={
                    ":qty": {"N": str(quantity)},
                    ":false": {"BOOL": False},
                    ":ts": {"S": datetime.utcnow().isoformat()},
                },
                ReturnValues="ALL_NEW",
                ReturnValuesOnConditionCheckFailure="ALL_OLD",
            )
        except ClientError as e:
            if _error_code(e) != "ConditionalCheckFailedException":
                logger.error("DynamoDB düşüm hatası [%s]: %s", item_id, e)
                raise
            old = e.response.get("Item")
            if not old or item_id.startswith(NAME_GUARD_PREFIX):
                raise ItemNotFoundError(item_id)
            item = item_from_dynamo(old)
            if item.is_deleted:
                raise ItemNotFoundError(item_id)
            raise InsufficientStockError(item_id, item.name, quantity, item.quantity)

        after = item_from_dynamo(resp["Attributes"])
        before = replace(after, quantity=after.quantity + quantity)
        record = make_record(before, after.quantity)
        self._put_record(record)
        return record

    def _put_record(self, record: ReductionRecord) -> None:
        """Düşüm commit edildi; kayıt yazılana kadar tekrar denenir."""
        for attempt in range(1, self.max_write_attempts + 1):
            try:
                self.client.put_item(
                    TableName=self.reductions_table,
                    Item=record_to_dynamo(record),
                    ConditionExpression="attribute_not_exists(record_id)",
                )
                return
            except ClientError as e:
                if _error_code(e) == "ConditionalCheckFailedException":
                    # önceki deneme yazmış
                    return
                error = e
            except BotoCoreError as e:
                error = e
            logger.warning(
                "Audit kaydı yazılamadı, tekrar deneniyor: %s (deneme %d/%d): %s",
                record.record_id, attempt, self.max_write_attempts, error,
            )
        logger.error(
            "Audit kaydı yazılamadı, düşüm commit edildi: %s %s -%d",
            record.item_id, record.record_id, record.quantity_reduced,
        )
        raise error
