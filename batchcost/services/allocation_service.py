"""
Allocation Service — Service Layer (SRP / DIP)

Query-only planning step: loads the product's ledger lots, hands them to the
strategy for the requested cost-flow method, and returns the plan. Nothing
here writes to the ledger; InventoryLedgerService applies plans.
"""
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from batchcost.config import settings
from batchcost.core.exceptions import BusinessRuleViolationException, InsufficientInventoryException
from batchcost.repositories.inventory_repository import InventoryRepository
from batchcost.schemas.inventory import (
    AllocationLine,
    AllocationPreviewResponse,
    AvailabilityResponse,
    LotAvailability,
)
from batchcost.services.allocation_strategies import (
    AllocationMethod,
    AllocationResult,
    AvailableLot,
    SpecificAllocation,
    get_strategy,
    resolve_method,
    weighted_average_cost,
)
from batchcost.utils.money import ZERO, round_money, round_unit_cost, to_decimal


class AllocationService:

    def __init__(self, db: Session):
        self._repo = InventoryRepository(db)

    def _load_lots(self, product_id: int, warehouse_id: Optional[int] = None) -> List[AvailableLot]:
        return [
            AvailableLot(
                inventory_id=row.id,
                batch_id=row.batch_id,
                warehouse_id=row.warehouse_id,
                received_date=row.batch.received_date,
                cost_per_unit=to_decimal(row.batch.cost_per_unit),
                quantity=to_decimal(row.quantity),
                reserved_quantity=to_decimal(row.reserved_quantity),
                batch_number=row.batch.batch_number,
            )
            for row in self._repo.list_lots(product_id, warehouse_id)
        ]

    def get_available_lots(self, product_id: int, warehouse_id: Optional[int] = None) -> List[AvailableLot]:
        return [lot for lot in self._load_lots(product_id, warehouse_id) if lot.available_quantity > 0]

    def calculate_weighted_average_cost(self, product_id: int, warehouse_id: Optional[int] = None) -> Decimal:
        return weighted_average_cost(self._load_lots(product_id, warehouse_id))

    def allocate(
        self,
        product_id: int,
        quantity: Any,
        method: Optional[AllocationMethod] = None,
        warehouse_id: Optional[int] = None,
        specific_allocations: Optional[Sequence[SpecificAllocation]] = None,
    ) -> List[AllocationResult]:
        method = resolve_method(method or settings.DEFAULT_ALLOCATION_METHOD)
        quantity = to_decimal(quantity)
        if method != AllocationMethod.SPECIFIC and quantity <= 0:
            raise BusinessRuleViolationException("Allocation quantity must be positive")

        strategy = get_strategy(method)
        return strategy.allocate(
            self._load_lots(product_id, warehouse_id),
            quantity,
            specific_allocations=specific_allocations,
        )

    def preview_allocation(
        self,
        product_id: int,
        quantity: Any,
        method: Optional[AllocationMethod] = None,
        warehouse_id: Optional[int] = None,
        specific_allocations: Optional[Sequence[SpecificAllocation]] = None,
    ) -> AllocationPreviewResponse:
        """Dry-run of ``allocate``; business-rule failures are reported, not raised."""
        method = resolve_method(method or settings.DEFAULT_ALLOCATION_METHOD)
        quantity = to_decimal(quantity)
        try:
            plan = self.allocate(product_id, quantity, method, warehouse_id, specific_allocations)
        except BusinessRuleViolationException as exc:
            return AllocationPreviewResponse(
                success=False,
                method=method,
                total_quantity=quantity,
                error=exc.message,
                shortfall=exc.shortfall if isinstance(exc, InsufficientInventoryException) else None,
            )

        total_quantity = sum((line.quantity for line in plan), ZERO)
        total_cost = sum((line.total_cost for line in plan), ZERO)
        return AllocationPreviewResponse(
            success=True,
            method=method,
            allocations=[
                AllocationLine(
                    batch_id=line.batch_id,
                    quantity=line.quantity,
                    cost_per_unit=line.cost_per_unit,
                    total_cost=line.total_cost,
                )
                for line in plan
            ],
            total_quantity=total_quantity,
            total_cost=round_money(total_cost),
            avg_cost_per_unit=round_unit_cost(total_cost / total_quantity) if total_quantity > 0 else ZERO,
        )

    def check_availability(
        self,
        product_id: int,
        quantity: Any,
        warehouse_id: Optional[int] = None,
    ) -> AvailabilityResponse:
        requested = to_decimal(quantity)
        lots = self.get_available_lots(product_id, warehouse_id)
        total_available = sum((lot.available_quantity for lot in lots), ZERO)
        return AvailabilityResponse(
            product_id=product_id,
            warehouse_id=warehouse_id,
            is_available=total_available >= requested,
            available_quantity=total_available,
            requested_quantity=requested,
            shortfall=max(ZERO, requested - total_available),
            batches=[
                LotAvailability(
                    batch_id=lot.batch_id,
                    batch_number=lot.batch_number,
                    warehouse_id=lot.warehouse_id,
                    available_quantity=lot.available_quantity,
                    cost_per_unit=lot.cost_per_unit,
                    received_date=lot.received_date,
                )
                for lot in lots
            ],
        )
