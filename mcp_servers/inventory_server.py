"""
Inventory Stock Ledger MCP Server

Provides tools for querying spare-part stock, analytics and reorder suggestions,
submitting audited stock reductions and composing stock alerts.

Tables used: InventoryItems (PK: item_id), ReductionRecords (PK: item_id, SK: recorded_at)
"""

import dataclasses
import json
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
import env_loader  # noqa: F401

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from botocore.exceptions import ClientError
from mcp.server import Server
from mcp.types import TextContent, Tool

from stockledger.services.classifier import classify_item
from stockledger.services.exceptions import InsufficientStockError, StockLedgerError
from stockledger.services.inventory_service import InventoryService
from stockledger.settings import Settings

logger = logging.getLogger("inventory_server")

app = Server("inventory-ledger")

# ilk çağrıda lazy init edilir
_service: Optional[InventoryService] = None


def get_service() -> InventoryService:
    global _service
    if _service is None:
        _service = InventoryService.from_settings(Settings.from_env())
    return _service


def set_service(service: Optional[InventoryService]) -> None:
    global _service
    _service = service


def _to_json(obj):
    """Decimal, Enum ve dataclass tiplerini JSON serializable yapar."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _to_json(dataclasses.asdict(obj))
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_json(i) for i in obj]
    return obj


def _result(data):
    return [TextContent(type="text", text=json.dumps(_to_json(data), indent=2, ensure_ascii=False))]


def _error(e: Exception) -> Dict:
    body = {"success": False, "error": getattr(e, "code", "store_error"), "message": str(e)}
    if isinstance(e, InsufficientStockError):
        body["available"] = e.available
        body["requested"] = e.requested
        body["item_name"] = e.item_name
    return body


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="list_items", description="List active inventory items, optionally filtered by stock status (out/low/good) or category",
             inputSchema={"type": "object", "properties": {
                 "status": {"type": "string", "enum": ["out", "low", "good"]},
                 "category": {"type": "string"}, "search": {"type": "string"}
             }}),
        Tool(name="get_analytics", description="Get inventory overview, category breakdown and top suppliers",
             inputSchema={"type": "object", "properties": {}}),
        Tool(name="get_reorder_suggestions", description="Get reorder suggestions for low and out-of-stock items",
             inputSchema={"type": "object", "properties": {
                 "min_value": {"type": "number", "default": 0},
                 "max_items": {"type": "integer", "default": 20}
             }}),
        Tool(name="reduce_stock", description="Reduce stock of a single item with an audit record",
             inputSchema={"type": "object", "properties": {
                 "item_id": {"type": "string"}, "quantity": {"type": "integer", "minimum": 1},
                 "reason_code": {"type": "string", "enum": ["repair", "sale", "adjustment", "damage", "other"]},
                 "actor": {"type": "string"}, "job_reference": {"type": "string"}, "notes": {"type": "string"}
             }, "required": ["item_id", "quantity", "actor"]}),
        Tool(name="bulk_reduce_stock", description="Reduce stock of several items; each line succeeds or fails independently",
             inputSchema={"type": "object", "properties": {
                 "items": {"type": "array", "minItems": 1, "items": {"type": "object", "properties": {
                     "item_id": {"type": "string"}, "quantity": {"type": "integer", "minimum": 1},
                     "reason_code": {"type": "string"}, "notes": {"type": "string"}
                 }, "required": ["item_id", "quantity"]}},
                 "actor": {"type": "string"}, "reason_code": {"type": "string"},
                 "notes": {"type": "string"}, "job_reference": {"type": "string"}
             }, "required": ["items", "actor"]}),
        Tool(name="get_reduction_history", description="Get the reduction audit trail of an item (newest first)",
             inputSchema={"type": "object", "properties": {"item_id": {"type": "string"}}, "required": ["item_id"]}),
        Tool(name="compose_alerts", description="Compose stock alert and reorder suggestion notifications for current stock",
             inputSchema={"type": "object", "properties": {}}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "list_items": lambda a: list_items(a.get("status"), a.get("category"), a.get("search")),
        "get_analytics": lambda a: get_analytics(),
        "get_reorder_suggestions": lambda a: get_reorder_suggestions(a.get("min_value", 0), a.get("max_items", 20)),
        "reduce_stock": lambda a: reduce_stock(
            a.get("item_id"), a.get("quantity"), a.get("reason_code"), a.get("actor"),
            a.get("job_reference"), a.get("notes")),
        "bulk_reduce_stock": lambda a: bulk_reduce_stock(
            a.get("items"), a.get("actor"), a.get("reason_code"), a.get("notes"), a.get("job_reference")),
        "get_reduction_history": lambda a: get_reduction_history(a.get("item_id")),
        "compose_alerts": lambda a: compose_alerts(),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments or {}))


# --- Implementation ---

def list_items(status: Optional[str] = None, category: Optional[str] = None,
               search: Optional[str] = None) -> Dict:
    try:
        service = get_service()
        items = service.list_items(status=status, category=category, search=search)
        data = []
        for item in items:
            row = dataclasses.asdict(item)
            row["stock_status"] = classify_item(item).value
            data.append(row)
        return {"success": True, "count": len(data), "data": data}
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def get_analytics() -> Dict:
    try:
        return {"success": True, "data": get_service().analytics()}
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def get_reorder_suggestions(min_value=0, max_items: Optional[int] = 20) -> Dict:
    try:
        suggestions, summary = get_service().reorder_suggestions(min_value=min_value, max_items=max_items)
        return {"success": True, "data": suggestions, "summary": summary}
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def reduce_stock(item_id: str, quantity, reason_code: Optional[str], actor: str,
                 job_reference: Optional[str] = None, notes: Optional[str] = None) -> Dict:
    try:
        record = get_service().reduce_stock(
            item_id, quantity, reason_code, actor, job_reference=job_reference, notes=notes
        )
        return {
            "success": True,
            "data": record.to_dict(),
            "message": f"{record.item_name}: {record.quantity_reduced} adet düşüldü, yeni miktar {record.resulting_quantity}",
        }
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def bulk_reduce_stock(items: list, actor: str, reason_code: Optional[str] = None,
                      notes: Optional[str] = None, job_reference: Optional[str] = None) -> Dict:
    try:
        result = get_service().bulk_reduce_stock(
            items, actor, default_reason_code=reason_code or "adjustment",
            default_notes=notes, job_reference=job_reference,
        )
        return {
            "success": True,
            "data": {
                "processed": len(result.succeeded),
                "errors": len(result.failed),
                "succeeded": [r.to_dict() for r in result.succeeded],
                "failed": result.failed,
            },
            "message": f"{len(result.succeeded)} kalem düşüldü, {len(result.failed)} hata",
        }
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def get_reduction_history(item_id: str) -> Dict:
    try:
        records = get_service().reduction_history(item_id)
        return {"success": True, "count": len(records), "data": [r.to_dict() for r in records]}
    except (StockLedgerError, ClientError) as e:
        return _error(e)


def compose_alerts() -> Dict:
    try:
        payloads = get_service().compose_alerts()
        return {
            "success": True,
            "data": {
                kind: None if payload is None else {
                    "subject": payload.subject,
                    "text_body": payload.text_body,
                    "total_count": payload.total_count,
                    "total_cost": payload.total_cost,
                    "sections": payload.sections,
                }
                for kind, payload in payloads.items()
            },
        }
    except (StockLedgerError, ClientError) as e:
        return _error(e)


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
