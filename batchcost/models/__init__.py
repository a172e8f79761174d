from batchcost.models.product import Product, Warehouse, Supplier
from batchcost.models.batch import Batch, BatchStatus
from batchcost.models.landed_cost import CostItemType, LandedCostItem
from batchcost.models.inventory import Inventory
from batchcost.models.number_sequence import NumberSequence
from batchcost.models.audit_log import AuditLog

__all__ = [
    "Product",
    "Warehouse",
    "Supplier",
    "Batch",
    "BatchStatus",
    "CostItemType",
    "LandedCostItem",
    "Inventory",
    "NumberSequence",
    "AuditLog",
]
