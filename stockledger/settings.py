"""Ortam değişkenlerinden okunan ayarlar."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_ITEMS_TABLE = "InventoryItems"
DEFAULT_REDUCTIONS_TABLE = "ReductionRecords"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    region: str = "us-west-2"
    items_table: str = DEFAULT_ITEMS_TABLE
    reductions_table: str = DEFAULT_REDUCTIONS_TABLE
    max_write_attempts: int = 5
    alert_sender: Optional[str] = None
    alert_recipient: Optional[str] = None
    alert_on_reduction: bool = False
    top_suppliers: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            region=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            items_table=os.environ.get("STOCKLEDGER_ITEMS_TABLE", DEFAULT_ITEMS_TABLE),
            reductions_table=os.environ.get("STOCKLEDGER_REDUCTIONS_TABLE", DEFAULT_REDUCTIONS_TABLE),
            max_write_attempts=int(os.environ.get("STOCKLEDGER_MAX_WRITE_ATTEMPTS", "5")),
            alert_sender=os.environ.get("STOCKLEDGER_ALERT_SENDER") or None,
            alert_recipient=os.environ.get("STOCKLEDGER_ALERT_RECIPIENT") or None,
            alert_on_reduction=_env_bool("STOCKLEDGER_ALERT_ON_REDUCTION", False),
            top_suppliers=int(os.environ.get("STOCKLEDGER_TOP_SUPPLIERS", "5")),
            log_level=os.environ.get("STOCKLEDGER_LOG_LEVEL", "INFO").upper(),
        )
