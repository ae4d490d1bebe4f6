from stockledger.services.alerts import AlertComposer
from stockledger.services.inventory_service import InventoryService
from stockledger.services.notifier import SesNotifier
from stockledger.services.reduction import ReductionTransactor

__all__ = [
    "AlertComposer",
    "InventoryService",
    "ReductionTransactor",
    "SesNotifier",
]
