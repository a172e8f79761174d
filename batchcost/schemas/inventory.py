from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from batchcost.services.allocation_strategies import AllocationMethod


class InventoryResponse(BaseModel):
    id: int
    product_id: int
    batch_id: int
    warehouse_id: int
    quantity: Decimal
    reserved_quantity: Decimal
    available_quantity: Decimal
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InventoryListResponse(BaseModel):
    items: List[InventoryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class InventorySummary(BaseModel):
    product_id: int
    total_quantity: Decimal
    total_reserved: Decimal
    available_quantity: Decimal
    total_value: Decimal
    avg_cost_per_unit: Decimal
    is_low_stock: bool = False
    warehouse_count: int = 0
    batch_count: int = 0


class WarehouseValuation(BaseModel):
    warehouse_id: int
    code: str
    name: str
    product_count: int
    total_value: Decimal


class InventoryStats(BaseModel):
    total_products: int
    total_value: Decimal
    low_stock_count: int
    warehouses: List[WarehouseValuation] = []


class SpecificAllocationItem(BaseModel):
    batch_id: int
    quantity: Decimal = Field(..., gt=0)


class AllocationRequest(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0)
    method: Optional[AllocationMethod] = None
    warehouse_id: Optional[int] = None
    specific_allocations: Optional[List[SpecificAllocationItem]] = None


class AllocationLine(BaseModel):
    batch_id: int
    quantity: Decimal = Field(..., gt=0)
    cost_per_unit: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class AllocationPreviewResponse(BaseModel):
    success: bool
    method: AllocationMethod
    allocations: List[AllocationLine] = []
    total_quantity: Decimal
    total_cost: Decimal = Decimal("0")
    avg_cost_per_unit: Decimal = Decimal("0")
    error: Optional[str] = None
    shortfall: Optional[Decimal] = None


class AllocationPlanRequest(BaseModel):
    """A previously computed plan to reserve, release or deduct."""

    warehouse_id: int
    allocations: List[AllocationLine] = Field(..., min_length=1)


class AllocationPlanResponse(BaseModel):
    success: bool = True
    warehouse_id: int
    movement_type: str
    rows: List[InventoryResponse]


class LotAvailability(BaseModel):
    batch_id: int
    batch_number: str
    warehouse_id: int
    available_quantity: Decimal
    cost_per_unit: Decimal
    received_date: datetime


class AvailabilityResponse(BaseModel):
    product_id: int
    warehouse_id: Optional[int] = None
    is_available: bool
    available_quantity: Decimal
    requested_quantity: Decimal
    shortfall: Decimal
    batches: List[LotAvailability]


class ReceiptRequest(BaseModel):
    batch_id: int
    product_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)


class InventoryAdjustmentRequest(BaseModel):
    product_id: int
    batch_id: int
    warehouse_id: int
    quantity: Decimal
    reason: str = Field(..., min_length=1, max_length=500)
