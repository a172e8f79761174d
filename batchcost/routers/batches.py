"""
Batch Router — Thin Controller (SRP / DIP)
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from batchcost.database import get_db
from batchcost.dependencies import get_actor_id, require_actor_id
from batchcost.models.batch import BatchStatus
from batchcost.schemas.batch import (
    BatchCreate,
    BatchListResponse,
    BatchResponse,
    BatchStats,
    BatchUpdate,
    LandedCostItemCreate,
    LandedCostItemResponse,
    LandedCostItemUpdate,
)
from batchcost.services.batch_service import BatchService
from batchcost.services.costing_service import BatchCostingService, LandedCostOptions

router = APIRouter(prefix="/batches", tags=["Batches"])


def get_batch_service(db: Session = Depends(get_db)) -> BatchService:
    return BatchService(db)


def get_costing_service(db: Session = Depends(get_db)) -> BatchCostingService:
    return BatchCostingService(db)


@router.get("", response_model=BatchListResponse)
def list_batches(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    product_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    status: Optional[BatchStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    service: BatchService = Depends(get_batch_service),
):
    return service.list_batches(
        page=page,
        page_size=page_size,
        product_id=product_id,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        status=status.value if status else None,
        search=search,
    )


@router.post("", response_model=BatchResponse, status_code=201)
def create_batch(
    data: BatchCreate,
    service: BatchService = Depends(get_batch_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return service.create_batch(data, actor_id=actor_id)


@router.post("/receipts", response_model=BatchResponse, status_code=201)
def receive_batch(
    data: BatchCreate,
    service: BatchService = Depends(get_batch_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    """Goods receipt: creates the batch and puts its quantity on hand."""
    return service.receive_batch(data, actor_id=actor_id)


@router.get("/stats", response_model=BatchStats)
def batch_stats(service: BatchService = Depends(get_batch_service)):
    return service.get_stats()


@router.get("/{batch_id}", response_model=BatchResponse)
def get_batch(batch_id: int, service: BatchService = Depends(get_batch_service)):
    return service.get_batch(batch_id)


@router.patch("/{batch_id}", response_model=BatchResponse)
def update_batch(
    batch_id: int,
    data: BatchUpdate,
    service: BatchService = Depends(get_batch_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return service.update_batch(batch_id, data, actor_id=actor_id)


@router.post("/{batch_id}/cancel", response_model=BatchResponse)
def cancel_batch(
    batch_id: int,
    service: BatchService = Depends(get_batch_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return service.cancel_batch(batch_id, actor_id=actor_id)


@router.post("/{batch_id}/confirm", response_model=BatchResponse)
def confirm_batch(
    batch_id: int,
    service: BatchCostingService = Depends(get_costing_service),
    actor_id: int = Depends(require_actor_id),
):
    return service.confirm_batch(batch_id, actor_id=actor_id)


@router.post("/{batch_id}/recalculate", response_model=BatchResponse)
def recalculate_batch_costs(
    batch_id: int,
    service: BatchCostingService = Depends(get_costing_service),
):
    return service.recalculate_batch_costs(batch_id)


# ── Landed cost items ─────────────────────────────────────────────────────────

@router.get("/{batch_id}/cost-items", response_model=List[LandedCostItemResponse])
def list_cost_items(batch_id: int, service: BatchCostingService = Depends(get_costing_service)):
    return service.get_batch(batch_id).landed_cost_items


@router.post("/{batch_id}/cost-items", response_model=BatchResponse, status_code=201)
def add_cost_item(
    batch_id: int,
    data: LandedCostItemCreate,
    service: BatchCostingService = Depends(get_costing_service),
):
    options = LandedCostOptions(
        currency=data.currency,
        description=data.description,
        reference_number=data.reference_number,
        exchange_rate=data.exchange_rate or Decimal("1"),
    )
    return service.add_landed_cost_item(batch_id, data.cost_type_id, data.amount, options)


@router.patch("/cost-items/{item_id}", response_model=BatchResponse)
def update_cost_item(
    item_id: int,
    data: LandedCostItemUpdate,
    service: BatchCostingService = Depends(get_costing_service),
):
    return service.update_landed_cost_item(item_id, data.model_dump(exclude_unset=True))


@router.delete("/cost-items/{item_id}", response_model=BatchResponse)
def remove_cost_item(item_id: int, service: BatchCostingService = Depends(get_costing_service)):
    return service.remove_landed_cost_item(item_id)
