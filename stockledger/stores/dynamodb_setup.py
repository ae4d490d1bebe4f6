"""DynamoDB tablo oluşturma.

2 tablo: InventoryItems, ReductionRecords
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from stockledger.settings import DEFAULT_ITEMS_TABLE, DEFAULT_REDUCTIONS_TABLE

logger = logging.getLogger(__name__)


def table_definitions(
    items_table: str = DEFAULT_ITEMS_TABLE,
    reductions_table: str = DEFAULT_REDUCTIONS_TABLE,
) -> list[dict]:
    return [
        {
            "TableName": items_table,
            "KeySchema": [
                {"AttributeName": "item_id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "item_id", "AttributeType": "S"},
                {"AttributeName": "category", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "CategoryIndex",
                    "KeySchema": [
                        {"AttributeName": "category", "KeyType": "HASH"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            # Audit kayıtları: kalem silinse de sorgulanabilir kalır
            "TableName": reductions_table,
            "KeySchema": [
                {"AttributeName": "item_id", "KeyType": "HASH"},
                {"AttributeName": "recorded_at", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "item_id", "AttributeType": "S"},
                {"AttributeName": "recorded_at", "AttributeType": "S"},
                {"AttributeName": "actor", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "ActorTimeIndex",
                    "KeySchema": [
                        {"AttributeName": "actor", "KeyType": "HASH"},
                        {"AttributeName": "recorded_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]


def create_tables(
    dynamodb_client: Optional[Any] = None,
    region: str = "us-west-2",
    items_table: str = DEFAULT_ITEMS_TABLE,
    reductions_table: str = DEFAULT_REDUCTIONS_TABLE,
) -> list[str]:
    """Eksik tabloları oluşturur, oluşturulanların adlarını döndürür."""
    dynamodb = dynamodb_client or boto3.client("dynamodb", region_name=region)
    created = []

    for table_def in table_definitions(items_table, reductions_table):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            logger.info("%s zaten mevcut, atlanıyor", table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
            logger.info("%s oluşturuluyor...", table_name)
            dynamodb.create_table(**table_def)
            # Tablonun aktif olmasını bekle
            waiter = dynamodb.get_waiter("table_exists")
            waiter.wait(TableName=table_name)
            created.append(table_name)
    return created


def delete_tables(
    dynamodb_client: Optional[Any] = None,
    region: str = "us-west-2",
    items_table: str = DEFAULT_ITEMS_TABLE,
    reductions_table: str = DEFAULT_REDUCTIONS_TABLE,
) -> None:
    """Tüm tabloları siler (dikkatli kullan, audit kayıtları da gider)."""
    dynamodb = dynamodb_client or boto3.client("dynamodb", region_name=region)
    for table_def in table_definitions(items_table, reductions_table):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            logger.info("%s silindi", table_name)
        except ClientError:
            logger.info("%s bulunamadı, atlanıyor", table_name)


if __name__ == "__main__":
    import sys

    import env_loader  # noqa: F401
    from stockledger.settings import Settings

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    if len(sys.argv) > 1 and sys.argv[1] == "--delete":
        delete_tables(region=settings.region, items_table=settings.items_table,
                      reductions_table=settings.reductions_table)
    else:
        create_tables(region=settings.region, items_table=settings.items_table,
                      reductions_table=settings.reductions_table)
