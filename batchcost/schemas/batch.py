from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class BatchCreate(BaseModel):
    product_id: int
    supplier_id: Optional[int] = None
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_purchase_cost: Decimal = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    received_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class BatchUpdate(BaseModel):
    supplier_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    quantity: Optional[Decimal] = Field(None, gt=0)
    unit_purchase_cost: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    received_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class CostItemTypeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CostItemTypeResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class LandedCostItemCreate(BaseModel):
    cost_type_id: int
    amount: Decimal = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=100)


class LandedCostItemUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=100)


class LandedCostItemResponse(BaseModel):
    id: int
    batch_id: int
    cost_type_id: int
    amount: Decimal
    currency: str
    exchange_rate: Decimal
    amount_in_batch_currency: Decimal
    description: Optional[str] = None
    reference_number: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BatchResponse(BaseModel):
    id: int
    batch_number: str
    product_id: int
    supplier_id: Optional[int] = None
    warehouse_id: int
    quantity: Decimal
    unit_purchase_cost: Decimal
    currency: str
    total_purchase_cost: Decimal
    total_landed_cost: Decimal
    total_cost: Decimal
    cost_per_unit: Decimal
    received_date: datetime
    notes: Optional[str] = None
    status: str
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    landed_cost_items: List[LandedCostItemResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BatchListResponse(BaseModel):
    items: List[BatchResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class BatchStats(BaseModel):
    total: int
    draft: int
    confirmed: int
    cancelled: int
    total_confirmed_value: Decimal
