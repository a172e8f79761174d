from batchcost.schemas.batch import (
    BatchCreate,
    BatchUpdate,
    BatchResponse,
    BatchListResponse,
    CostItemTypeCreate,
    CostItemTypeResponse,
    LandedCostItemCreate,
    LandedCostItemUpdate,
    LandedCostItemResponse,
)
from batchcost.schemas.inventory import (
    InventoryResponse,
    InventoryListResponse,
    InventorySummary,
    SpecificAllocationItem,
    AllocationRequest,
    AllocationLine,
    AllocationPreviewResponse,
    AllocationPlanRequest,
    AllocationPlanResponse,
    LotAvailability,
    AvailabilityResponse,
    ReceiptRequest,
    InventoryAdjustmentRequest,
)
