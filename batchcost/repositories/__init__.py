# Repository Layer — Data Access (Repository Pattern, GoF)
from batchcost.repositories.base import BaseRepository
from batchcost.repositories.batch_repository import (
    BatchRepository,
    LandedCostItemRepository,
    CostItemTypeRepository,
)
from batchcost.repositories.inventory_repository import InventoryRepository
from batchcost.repositories.reference_repository import (
    ProductRepository,
    WarehouseRepository,
    SupplierRepository,
)
from batchcost.repositories.number_sequence_repository import NumberSequenceRepository

__all__ = [
    "BaseRepository",
    "BatchRepository",
    "LandedCostItemRepository",
    "CostItemTypeRepository",
    "InventoryRepository",
    "ProductRepository",
    "WarehouseRepository",
    "SupplierRepository",
    "NumberSequenceRepository",
]
