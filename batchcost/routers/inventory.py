"""
Inventory Router — Thin Controller (SRP / DIP)

Planning endpoints (availability, allocation preview) are read-only; the
reservation, release and deduction endpoints apply a plan the caller
obtained from the preview.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from batchcost.database import get_db
from batchcost.dependencies import get_actor_id
from batchcost.schemas.inventory import (
    AllocationPlanRequest,
    AllocationPlanResponse,
    AllocationPreviewResponse,
    AllocationRequest,
    AvailabilityResponse,
    InventoryAdjustmentRequest,
    InventoryListResponse,
    InventoryResponse,
    InventoryStats,
    InventorySummary,
    ReceiptRequest,
)
from batchcost.services.allocation_service import AllocationService
from batchcost.services.allocation_strategies import SpecificAllocation, available_methods
from batchcost.services.ledger_service import DEDUCT, RELEASE, RESERVE, InventoryLedgerService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def get_ledger_service(db: Session = Depends(get_db)) -> InventoryLedgerService:
    return InventoryLedgerService(db)


def get_allocation_service(db: Session = Depends(get_db)) -> AllocationService:
    return AllocationService(db)


@router.get("", response_model=InventoryListResponse)
def list_inventory(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    product_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    low_stock: bool = False,
    service: InventoryLedgerService = Depends(get_ledger_service),
):
    return service.list_inventory(
        page=page, page_size=page_size,
        product_id=product_id, warehouse_id=warehouse_id, batch_id=batch_id,
        low_stock=low_stock,
    )


@router.get("/stats", response_model=InventoryStats)
def inventory_stats(service: InventoryLedgerService = Depends(get_ledger_service)):
    return service.get_stats()


@router.get("/summary/{product_id}", response_model=InventorySummary)
def inventory_summary(product_id: int, service: InventoryLedgerService = Depends(get_ledger_service)):
    return service.get_summary_by_product(product_id)


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    product_id: int,
    quantity: Decimal = Query(..., gt=0),
    warehouse_id: Optional[int] = None,
    service: AllocationService = Depends(get_allocation_service),
):
    return service.check_availability(product_id, quantity, warehouse_id)


@router.get("/weighted-average-cost")
def weighted_average_cost(
    product_id: int,
    warehouse_id: Optional[int] = None,
    service: AllocationService = Depends(get_allocation_service),
):
    return {
        "product_id": product_id,
        "warehouse_id": warehouse_id,
        "avg_cost_per_unit": str(service.calculate_weighted_average_cost(product_id, warehouse_id)),
    }


@router.get("/allocation-methods")
def allocation_methods():
    return available_methods()


@router.post("/allocations/preview", response_model=AllocationPreviewResponse)
def preview_allocation(
    body: AllocationRequest,
    service: AllocationService = Depends(get_allocation_service),
):
    specific = (
        [SpecificAllocation(batch_id=item.batch_id, quantity=item.quantity) for item in body.specific_allocations]
        if body.specific_allocations
        else None
    )
    return service.preview_allocation(
        body.product_id,
        body.quantity,
        method=body.method,
        warehouse_id=body.warehouse_id,
        specific_allocations=specific,
    )


# ── Ledger mutations ──────────────────────────────────────────────────────────

def _plan_response(rows, warehouse_id: int, movement_type: str) -> AllocationPlanResponse:
    return AllocationPlanResponse(
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        rows=[InventoryResponse.model_validate(row) for row in rows],
    )


@router.post("/reservations", response_model=AllocationPlanResponse)
def reserve_inventory(
    body: AllocationPlanRequest,
    service: InventoryLedgerService = Depends(get_ledger_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    rows = service.reserve(body.allocations, body.warehouse_id, actor_id=actor_id)
    return _plan_response(rows, body.warehouse_id, RESERVE)


@router.post("/releases", response_model=AllocationPlanResponse)
def release_reservation(
    body: AllocationPlanRequest,
    service: InventoryLedgerService = Depends(get_ledger_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    rows = service.release(body.allocations, body.warehouse_id, actor_id=actor_id)
    return _plan_response(rows, body.warehouse_id, RELEASE)


@router.post("/deductions", response_model=AllocationPlanResponse)
def deduct_inventory(
    body: AllocationPlanRequest,
    service: InventoryLedgerService = Depends(get_ledger_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    rows = service.deduct(body.allocations, body.warehouse_id, actor_id=actor_id)
    return _plan_response(rows, body.warehouse_id, DEDUCT)


@router.post("/receipts", response_model=InventoryResponse, status_code=201)
def receive_inventory(
    body: ReceiptRequest,
    service: InventoryLedgerService = Depends(get_ledger_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return service.receive(body.batch_id, body.product_id, body.warehouse_id, body.quantity, actor_id=actor_id)


@router.post("/adjustments", response_model=InventoryResponse)
def adjust_inventory(
    body: InventoryAdjustmentRequest,
    service: InventoryLedgerService = Depends(get_ledger_service),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return service.adjust(
        body.product_id, body.batch_id, body.warehouse_id, body.quantity, body.reason,
        actor_id=actor_id,
    )
