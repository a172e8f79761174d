"""
Allocation Strategy Pattern — GoF Strategy Pattern

Each cost-flow assumption is an interchangeable strategy behind
``BaseAllocationStrategy.allocate``. Strategies are pure: they receive a
snapshot of ledger lots and return an allocation plan without touching the
database. ``get_strategy`` is the factory keyed by ``AllocationMethod``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientInventoryException,
    format_quantity,
)
from batchcost.utils.money import ZERO, round_money, round_unit_cost, to_decimal


class AllocationMethod(str, Enum):
    FIFO = "FIFO"
    LIFO = "LIFO"
    SPECIFIC = "SPECIFIC"
    WEIGHTED_AVG = "WEIGHTED_AVG"


@dataclass(frozen=True)
class AvailableLot:
    """One ledger row joined with the cost data of its batch."""

    inventory_id: int
    batch_id: int
    warehouse_id: int
    received_date: datetime
    cost_per_unit: Decimal
    quantity: Decimal
    reserved_quantity: Decimal
    batch_number: str = ""

    @property
    def available_quantity(self) -> Decimal:
        return self.quantity - self.reserved_quantity


@dataclass(frozen=True)
class SpecificAllocation:
    batch_id: int
    quantity: Decimal


@dataclass(frozen=True)
class AllocationResult:
    batch_id: int
    quantity: Decimal
    cost_per_unit: Decimal
    total_cost: Decimal

    @classmethod
    def at_cost(cls, batch_id: int, quantity: Decimal, cost_per_unit: Decimal) -> "AllocationResult":
        return cls(
            batch_id=batch_id,
            quantity=quantity,
            cost_per_unit=cost_per_unit,
            total_cost=round_money(quantity * cost_per_unit),
        )


# ── Shared algorithms ────────────────────────────────────────────────────────

def allocate_greedy(ordered_lots: Sequence[AvailableLot], quantity: Decimal) -> List[AllocationResult]:
    """Consume lots in the given order until ``quantity`` is covered.

    All-or-nothing: raises InsufficientInventoryException with the exact
    shortfall when the lots run out first.
    """
    results: List[AllocationResult] = []
    remaining = to_decimal(quantity)

    for lot in ordered_lots:
        if remaining <= 0:
            break
        available = lot.available_quantity
        if available <= 0:
            continue
        take = min(remaining, available)
        results.append(AllocationResult.at_cost(lot.batch_id, take, to_decimal(lot.cost_per_unit)))
        remaining -= take

    if remaining > 0:
        raise InsufficientInventoryException(
            f"Insufficient inventory. Short by {format_quantity(remaining)} units",
            shortfall=remaining,
        )
    return results


def weighted_average_cost(lots: Sequence[AvailableLot]) -> Decimal:
    """Quantity-weighted mean cost over available stock, 4 dp; zero without stock."""
    total_value = ZERO
    total_quantity = ZERO
    for lot in lots:
        available = lot.available_quantity
        if available <= 0:
            continue
        total_value += available * to_decimal(lot.cost_per_unit)
        total_quantity += available
    if total_quantity <= 0:
        return round_unit_cost(ZERO)
    return round_unit_cost(total_value / total_quantity)


def _fifo_key(lot: AvailableLot):
    return (lot.received_date, lot.batch_id, lot.inventory_id)


# ── Abstract Strategy ────────────────────────────────────────────────────────

class BaseAllocationStrategy(ABC):

    @property
    @abstractmethod
    def method(self) -> AllocationMethod:
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    @abstractmethod
    def allocate(
        self,
        lots: Sequence[AvailableLot],
        quantity: Decimal,
        specific_allocations: Optional[Sequence[SpecificAllocation]] = None,
    ) -> List[AllocationResult]:
        """
        Build an allocation plan.

        Args:
            lots: every ledger row of the product in scope, including rows
                with nothing available.
            quantity: total demand, already validated as positive.
            specific_allocations: caller-chosen (batch, quantity) pairs;
                only SPECIFIC uses them.
        """
        ...


# ── Concrete Strategies ──────────────────────────────────────────────────────

class FifoStrategy(BaseAllocationStrategy):
    """Oldest receipt consumed first."""

    @property
    def method(self) -> AllocationMethod:
        return AllocationMethod.FIFO

    @property
    def display_name(self) -> str:
        return "First In, First Out"

    def allocate(self, lots, quantity, specific_allocations=None):
        return allocate_greedy(sorted(lots, key=_fifo_key), quantity)


class LifoStrategy(BaseAllocationStrategy):
    """Newest receipt consumed first."""

    @property
    def method(self) -> AllocationMethod:
        return AllocationMethod.LIFO

    @property
    def display_name(self) -> str:
        return "Last In, First Out"

    def allocate(self, lots, quantity, specific_allocations=None):
        return allocate_greedy(sorted(lots, key=_fifo_key, reverse=True), quantity)


class WeightedAverageStrategy(BaseAllocationStrategy):
    """FIFO lot selection, every line costed at the pooled average."""

    @property
    def method(self) -> AllocationMethod:
        return AllocationMethod.WEIGHTED_AVG

    @property
    def display_name(self) -> str:
        return "Weighted Average"

    def allocate(self, lots, quantity, specific_allocations=None):
        average = weighted_average_cost(lots)
        drawn = allocate_greedy(sorted(lots, key=_fifo_key), quantity)
        return [AllocationResult.at_cost(r.batch_id, r.quantity, average) for r in drawn]


class SpecificLotStrategy(BaseAllocationStrategy):
    """The caller names the batches; only availability is checked."""

    @property
    def method(self) -> AllocationMethod:
        return AllocationMethod.SPECIFIC

    @property
    def display_name(self) -> str:
        return "Specific Lot"

    def allocate(self, lots, quantity, specific_allocations=None):
        if not specific_allocations:
            raise BusinessRuleViolationException("Specific allocations required for SPECIFIC method")

        by_batch: Dict[int, List[AvailableLot]] = {}
        for lot in lots:
            by_batch.setdefault(lot.batch_id, []).append(lot)

        already_requested: Dict[int, Decimal] = {}
        results: List[AllocationResult] = []
        for request in specific_allocations:
            requested = to_decimal(request.quantity)
            if requested <= 0:
                raise BusinessRuleViolationException(
                    f"Allocation quantity for batch {request.batch_id} must be positive"
                )

            batch_lots = by_batch.get(request.batch_id)
            if not batch_lots:
                raise EntityNotFoundException("Inventory batch", request.batch_id)

            available = sum((lot.available_quantity for lot in batch_lots), ZERO)
            available -= already_requested.get(request.batch_id, ZERO)
            available = max(available, ZERO)
            if available < requested:
                raise InsufficientInventoryException(
                    f"Insufficient quantity in batch {request.batch_id}. "
                    f"Available: {format_quantity(available)}, Requested: {format_quantity(requested)}",
                    shortfall=requested - available,
                    batch_id=request.batch_id,
                )

            already_requested[request.batch_id] = already_requested.get(request.batch_id, ZERO) + requested
            results.append(
                AllocationResult.at_cost(request.batch_id, requested, to_decimal(batch_lots[0].cost_per_unit))
            )
        return results


# ── Factory ──────────────────────────────────────────────────────────────────

_STRATEGIES: Dict[AllocationMethod, BaseAllocationStrategy] = {
    AllocationMethod.FIFO: FifoStrategy(),
    AllocationMethod.LIFO: LifoStrategy(),
    AllocationMethod.SPECIFIC: SpecificLotStrategy(),
    AllocationMethod.WEIGHTED_AVG: WeightedAverageStrategy(),
}


def resolve_method(method) -> AllocationMethod:
    try:
        return AllocationMethod(str(getattr(method, "value", method)).upper())
    except ValueError:
        raise BusinessRuleViolationException(
            f"Unknown allocation method '{method}'. "
            f"Expected one of: {', '.join(m.value for m in AllocationMethod)}"
        ) from None


def get_strategy(method: AllocationMethod) -> BaseAllocationStrategy:
    return _STRATEGIES[resolve_method(method)]


def available_methods() -> List[Dict[str, str]]:
    return [{"method": s.method.value, "display_name": s.display_name} for s in _STRATEGIES.values()]
