"""DynamoDB Item Store unit testleri (mock client ile)."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from stockledger.models.inventory import InventoryItem, ReasonCode, ReductionRecord
from stockledger.services.exceptions import (
    InsufficientStockError,
    ItemNotFoundError,
    ValidationError,
)
from stockledger.services.stock_validator import ItemDraft
from stockledger.stores.dynamodb import (
    DynamoItemStore,
    item_from_dynamo,
    item_to_dynamo,
    name_guard_key,
    record_from_dynamo,
    record_to_dynamo,
)


def _client_error(code: str, operation: str = "TransactWriteItems") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _item(quantity: int = 10, is_deleted: bool = False) -> InventoryItem:
    return InventoryItem(
        item_id="P1", name="Brake Pad", category="Brake", supplier="ACME",
        quantity=quantity, price=Decimal("2.00"), min_threshold=5,
        created_at="2024-03-01T09:00:00", updated_at="2024-03-01T09:00:00",
        is_deleted=is_deleted,
    )


def _make_record(before: InventoryItem, resulting: int) -> ReductionRecord:
    return ReductionRecord(
        record_id="r1", item_id=before.item_id, item_name=before.name,
        quantity_reduced=before.quantity - resulting, reason_code=ReasonCode.REPAIR,
        actor="mehmet", previous_quantity=before.quantity, resulting_quantity=resulting,
        timestamp="2024-03-01T10:00:00",
    )


def _store(client: MagicMock, attempts: int = 3) -> DynamoItemStore:
    return DynamoItemStore(dynamodb_client=client, max_write_attempts=attempts)


class TestSerialization:
    def test_item_survives_serialization(self):
        item = _item()
        raw = item_to_dynamo(item)
        assert raw["quantity"] == {"N": "10"}
        assert raw["name_lower"] == {"S": "brake pad"}
        assert "deleted_at" not in raw
        assert item_from_dynamo(raw) == item

    def test_record_sort_key(self):
        record = _make_record(_item(), 6)
        raw = record_to_dynamo(record)
        assert raw["recorded_at"] == {"S": "2024-03-01T10:00:00#r1"}
        assert raw["reason_code"] == {"S": "repair"}
        assert record_from_dynamo(raw) == record


class TestReads:
    def test_get_missing_item(self):
        client = MagicMock()
        client.get_item.return_value = {}
        with pytest.raises(ItemNotFoundError):
            _store(client).get_item("P1")

    def test_deleted_item_hidden_by_default(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item(is_deleted=True))}
        store = _store(client)
        with pytest.raises(ItemNotFoundError):
            store.get_item("P1")
        assert store.get_item("P1", include_deleted=True).is_deleted is True

    def test_list_items_skips_deleted(self):
        client = MagicMock()
        active = _item()
        deleted = _item(is_deleted=True)
        deleted.item_id = "P2"
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [item_to_dynamo(active)]},
            {"Items": [item_to_dynamo(deleted)]},
        ]
        items = _store(client).list_items()
        assert [i.item_id for i in items] == ["P1"]
        client.get_paginator.assert_called_with("scan")

    def test_list_reductions_for_item_newest_first(self):
        client = MagicMock()
        older = _make_record(_item(), 8)
        newer = ReductionRecord(**{**older.to_dict(), "record_id": "r2",
                                   "reason_code": ReasonCode.SALE,
                                   "timestamp": "2024-03-02T10:00:00"})
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [record_to_dynamo(older), record_to_dynamo(newer)]},
        ]
        records = _store(client).list_reductions("P1")
        assert [r.record_id for r in records] == ["r2", "r1"]
        client.get_paginator.assert_called_with("query")


class TestWrites:
    def test_create_item_writes_name_guard_in_same_transaction(self):
        client = MagicMock()
        item = _store(client).create_item(ItemDraft("Brake Pad", "Brake", "ACME", 10, Decimal("2.00"), 5))
        assert item.quantity == 10
        guard, put = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert guard["Put"]["Item"]["item_id"] == {"S": "NAME#brake pad"}
        assert guard["Put"]["ConditionExpression"] == "attribute_not_exists(item_id)"
        assert put["Put"]["Item"]["item_id"] == {"S": item.item_id}

    def test_create_duplicate_name_rejected(self):
        client = MagicMock()
        client.transact_write_items.side_effect = _client_error("TransactionCanceledException")
        with pytest.raises(ValidationError):
            _store(client).create_item(ItemDraft("brake pad", "Brake", "ACME", 1, Decimal("2.00"), 5))

    def test_list_items_skips_name_guards(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [item_to_dynamo(_item()), {**name_guard_key("Brake Pad"), "owner_id": {"S": "P1"}}]},
        ]
        assert [i.item_id for i in _store(client).list_items()] == ["P1"]

    def test_restock_missing_item(self):
        client = MagicMock()
        client.update_item.side_effect = _client_error("ConditionalCheckFailedException", "UpdateItem")
        with pytest.raises(ItemNotFoundError):
            _store(client).restock("P1", 5)

    def test_restock_returns_new_state(self):
        client = MagicMock()
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item(quantity=15))}
        assert _store(client).restock("P1", 5).quantity == 15

    def test_soft_delete_releases_name(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item())}
        deleted = _store(client).soft_delete("P1")
        assert deleted.is_deleted is True
        update, release = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert release["Delete"]["Key"] == {"item_id": {"S": "NAME#brake pad"}}


class TestUpdateItem:
    def test_price_and_threshold_update(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item())}
        client.update_item.return_value = {"Attributes": item_to_dynamo(
            InventoryItem("P1", "Brake Pad", "Brake", "ACME", 10, Decimal("2.50"), 8))}
        item = _store(client).update_item("P1", {"price": Decimal("2.50"), "min_threshold": 8})
        assert item.price == Decimal("2.50")
        kwargs = client.update_item.call_args.kwargs
        assert kwargs["ExpressionAttributeValues"][":price"] == {"N": "2.50"}
        assert "#min_threshold = :min_threshold" in kwargs["UpdateExpression"]
        client.transact_write_items.assert_not_called()

    def test_rename_moves_name_guard(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item())}
        _store(client).update_item("P1", {"name": "Front Brake Pad"})
        update, release, claim = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert update["Update"]["ExpressionAttributeValues"][":name_lower"] == {"S": "front brake pad"}
        assert release["Delete"]["Key"] == {"item_id": {"S": "NAME#brake pad"}}
        assert claim["Put"]["Item"]["item_id"] == {"S": "NAME#front brake pad"}

    def test_rename_to_taken_name(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item())}
        error = _client_error("TransactionCanceledException")
        error.response["CancellationReasons"] = [
            {"Code": "None"}, {"Code": "None"}, {"Code": "ConditionalCheckFailed"},
        ]
        client.transact_write_items.side_effect = error
        with pytest.raises(ValidationError):
            _store(client).update_item("P1", {"name": "Rotor"})

    def test_case_only_rename_keeps_guard(self):
        client = MagicMock()
        client.get_item.return_value = {"Item": item_to_dynamo(_item())}
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item())}
        _store(client).update_item("P1", {"name": "BRAKE PAD"})
        client.transact_write_items.assert_not_called()


class _ContendedClient:
    """Koşullu düşümü sunucu gibi uygular; her çağrıdan önce başka bir yazar 1 adet düşer."""

    def __init__(self, quantity: int):
        self.item = item_to_dynamo(_item(quantity=quantity))
        self.records = []

    @property
    def quantity(self) -> int:
        return int(self.item["quantity"]["N"])

    def _apply(self, qty: int) -> bool:
        if self.quantity < qty:
            return False
        self.item = {**self.item, "quantity": {"N": str(self.quantity - qty)}}
        return True

    def update_item(self, **kwargs):
        self._apply(1)  # araya giren yazar
        qty = int(kwargs["ExpressionAttributeValues"][":qty"]["N"])
        if not self._apply(qty):
            error = _client_error("ConditionalCheckFailedException", "UpdateItem")
            error.response["Item"] = self.item
            raise error
        return {"Attributes": self.item}

    def put_item(self, **kwargs):
        self.records.append(kwargs["Item"])


class TestConditionalDecrement:
    def test_single_conditional_update(self):
        client = MagicMock()
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item(quantity=6))}
        record = _store(client).conditional_decrement("P1", 4, _make_record)

        assert (record.previous_quantity, record.resulting_quantity) == (10, 6)
        kwargs = client.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"].startswith("SET quantity = quantity - :qty")
        assert kwargs["ConditionExpression"] == "quantity >= :qty AND is_deleted = :false"
        assert kwargs["ExpressionAttributeValues"][":qty"] == {"N": "4"}
        assert kwargs["ReturnValuesOnConditionCheckFailure"] == "ALL_OLD"
        client.get_item.assert_not_called()
        put = client.put_item.call_args.kwargs
        assert put["Item"]["record_id"] == {"S": "r1"}
        assert put["ConditionExpression"] == "attribute_not_exists(record_id)"

    def test_concurrent_writer_does_not_fail_reduction(self):
        client = _ContendedClient(quantity=1000)
        store = _store(client)
        for _ in range(20):
            record = store.conditional_decrement("P1", 1, _make_record)
            assert record.resulting_quantity == client.quantity
        assert client.quantity == 960
        assert len(client.records) == 20

    def test_concurrent_writer_then_insufficient(self):
        client = _ContendedClient(quantity=4)
        with pytest.raises(InsufficientStockError) as exc:
            _store(client).conditional_decrement("P1", 4, _make_record)
        assert exc.value.available == 3
        assert client.records == []

    def test_insufficient_stock_reports_available(self):
        client = MagicMock()
        error = _client_error("ConditionalCheckFailedException", "UpdateItem")
        error.response["Item"] = item_to_dynamo(_item(quantity=3))
        client.update_item.side_effect = error
        with pytest.raises(InsufficientStockError) as exc:
            _store(client).conditional_decrement("P1", 5, _make_record)
        assert (exc.value.requested, exc.value.available) == (5, 3)
        client.put_item.assert_not_called()

    def test_missing_item(self):
        client = MagicMock()
        client.update_item.side_effect = _client_error("ConditionalCheckFailedException", "UpdateItem")
        with pytest.raises(ItemNotFoundError):
            _store(client).conditional_decrement("P1", 1, _make_record)

    def test_deleted_item(self):
        client = MagicMock()
        error = _client_error("ConditionalCheckFailedException", "UpdateItem")
        error.response["Item"] = item_to_dynamo(_item(is_deleted=True))
        client.update_item.side_effect = error
        with pytest.raises(ItemNotFoundError):
            _store(client).conditional_decrement("P1", 1, _make_record)

    def test_record_put_retried_after_commit(self):
        client = MagicMock()
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item(quantity=9))}
        client.put_item.side_effect = [_client_error("ProvisionedThroughputExceededException", "PutItem"), {}]
        record = _store(client).conditional_decrement("P1", 1, _make_record)
        assert record.resulting_quantity == 9
        assert client.put_item.call_count == 2

    def test_record_put_already_written(self):
        client = MagicMock()
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item(quantity=9))}
        client.put_item.side_effect = _client_error("ConditionalCheckFailedException", "PutItem")
        _store(client).conditional_decrement("P1", 1, _make_record)
        assert client.put_item.call_count == 1

    def test_record_put_gives_up(self):
        client = MagicMock()
        client.update_item.return_value = {"Attributes": item_to_dynamo(_item(quantity=9))}
        client.put_item.side_effect = _client_error("InternalServerError", "PutItem")
        with pytest.raises(ClientError):
            _store(client, attempts=3).conditional_decrement("P1", 1, _make_record)
        assert client.put_item.call_count == 3

    def test_other_client_errors_propagate(self):
        client = MagicMock()
        client.update_item.side_effect = _client_error("ProvisionedThroughputExceededException", "UpdateItem")
        with pytest.raises(ClientError):
            _store(client).conditional_decrement("P1", 1, _make_record)

    def test_invalid_attempt_limit(self):
        with pytest.raises(ValueError):
            DynamoItemStore(dynamodb_client=MagicMock(), max_write_attempts=0)
