"""
Batch Costing Service — Service Layer (SRP / DIP)

Owns the cost fields of a batch: purchase cost plus itemized landed costs
gives total cost and cost per unit. Costs are editable only while the batch
is DRAFT; every cost-mutating call on a CONFIRMED or CANCELLED batch fails
with ForbiddenOperationException.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    ForbiddenOperationException,
)
from batchcost.models.batch import Batch, BatchStatus
from batchcost.models.landed_cost import LandedCostItem
from batchcost.repositories.batch_repository import (
    BatchRepository,
    CostItemTypeRepository,
    LandedCostItemRepository,
)
from batchcost.utils.clock import Clock, utc_now
from batchcost.utils.events import (
    EntityCreatedEvent,
    EntityUpdatedEvent,
    StatusChangedEvent,
    get_event_bus,
)
from batchcost.utils.money import ZERO, round_money, round_unit_cost, to_decimal


@dataclass(frozen=True)
class LandedCostOptions:
    """Optional attributes of a new landed-cost item.

    ``currency`` defaults to the batch currency and ``exchange_rate`` to 1
    (amount already expressed in the batch currency).
    """

    currency: Optional[str] = None
    exchange_rate: Decimal = Decimal("1")
    description: Optional[str] = None
    reference_number: Optional[str] = None


def convert_to_batch_currency(amount: Any, exchange_rate: Any) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(exchange_rate))


class BatchCostingService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self._db = db
        self._repo = BatchRepository(db)
        self._item_repo = LandedCostItemRepository(db)
        self._cost_type_repo = CostItemTypeRepository(db)
        self._clock = clock or utc_now
        self._bus = get_event_bus()

    # ── Lookups ──────────────────────────────────────────────────────────────

    def get_batch(self, batch_id: int) -> Batch:
        batch = self._repo.get_by_id(batch_id)
        if not batch:
            raise EntityNotFoundException("Batch", batch_id)
        return batch

    def _get_item(self, item_id: int) -> LandedCostItem:
        item = self._item_repo.get_by_id(item_id)
        if not item:
            raise EntityNotFoundException("LandedCostItem", item_id)
        return item

    @staticmethod
    def _ensure_mutable(batch: Batch, message: str) -> None:
        if batch.status != BatchStatus.DRAFT.value:
            raise ForbiddenOperationException(
                message, details={"batch_id": batch.id, "status": batch.status}
            )

    # ── Recalculation ────────────────────────────────────────────────────────

    def apply_totals(self, batch: Batch) -> Batch:
        """Recompute landed, total and unit cost in the session without committing."""
        self._ensure_mutable(batch, "Cannot modify costs of confirmed or cancelled batches")
        self._db.flush()
        self._db.refresh(batch, attribute_names=["landed_cost_items"])

        total_landed = sum(
            (to_decimal(item.amount_in_batch_currency) for item in batch.landed_cost_items),
            ZERO,
        )
        total_purchase = to_decimal(batch.total_purchase_cost)
        total_cost = total_purchase + total_landed
        quantity = to_decimal(batch.quantity)
        cost_per_unit = total_cost / quantity if quantity > 0 else ZERO

        batch.total_landed_cost = round_money(total_landed)
        batch.total_cost = round_money(total_cost)
        batch.cost_per_unit = round_unit_cost(cost_per_unit)
        return batch

    def recalculate_batch_costs(self, batch_id: int) -> Batch:
        batch = self.get_batch(batch_id)
        try:
            self.apply_totals(batch)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)
        return batch

    # ── Landed cost items ────────────────────────────────────────────────────

    def add_landed_cost_item(
        self,
        batch_id: int,
        cost_type_id: int,
        amount: Any,
        options: Optional[LandedCostOptions] = None,
    ) -> Batch:
        options = options or LandedCostOptions()
        batch = self.get_batch(batch_id)
        self._ensure_mutable(batch, "Cannot add costs to confirmed or cancelled batches")

        if not self._cost_type_repo.get_by_id(cost_type_id):
            raise EntityNotFoundException("CostItemType", cost_type_id)

        amount = to_decimal(amount)
        exchange_rate = to_decimal(options.exchange_rate if options.exchange_rate is not None else 1)
        self._validate_amounts(amount, exchange_rate)

        item = LandedCostItem(
            batch_id=batch.id,
            cost_type_id=cost_type_id,
            amount=amount,
            currency=options.currency or batch.currency,
            exchange_rate=exchange_rate,
            amount_in_batch_currency=convert_to_batch_currency(amount, exchange_rate),
            description=options.description,
            reference_number=options.reference_number,
        )
        try:
            self._db.add(item)
            self.apply_totals(batch)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityCreatedEvent(
            entity_type="landed_cost_item",
            entity_id=item.id,
            new_values={
                "batch_id": batch.id,
                "amount_in_batch_currency": str(item.amount_in_batch_currency),
                "total_cost": str(batch.total_cost),
                "cost_per_unit": str(batch.cost_per_unit),
            },
        ))
        return batch

    def update_landed_cost_item(self, item_id: int, changes: Dict[str, Any]) -> Batch:
        item = self._get_item(item_id)
        batch = self.get_batch(item.batch_id)
        self._ensure_mutable(batch, "Cannot modify costs of confirmed or cancelled batches")

        changes = {k: v for k, v in changes.items() if k in {
            "amount", "currency", "exchange_rate", "description", "reference_number",
        }}
        amount = to_decimal(changes["amount"]) if changes.get("amount") is not None else to_decimal(item.amount)
        exchange_rate = (
            to_decimal(changes["exchange_rate"])
            if changes.get("exchange_rate") is not None
            else to_decimal(item.exchange_rate)
        )
        self._validate_amounts(amount, exchange_rate)

        old_values = {
            "amount": str(item.amount),
            "exchange_rate": str(item.exchange_rate),
            "amount_in_batch_currency": str(item.amount_in_batch_currency),
        }
        try:
            item.amount = amount
            item.exchange_rate = exchange_rate
            item.amount_in_batch_currency = convert_to_batch_currency(amount, exchange_rate)
            if changes.get("currency"):
                item.currency = changes["currency"]
            if "description" in changes:
                item.description = changes["description"]
            if "reference_number" in changes:
                item.reference_number = changes["reference_number"]
            self.apply_totals(batch)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityUpdatedEvent(
            entity_type="landed_cost_item",
            entity_id=item_id,
            old_values=old_values,
            new_values={
                "amount": str(amount),
                "exchange_rate": str(exchange_rate),
                "amount_in_batch_currency": str(item.amount_in_batch_currency),
            },
        ))
        return batch

    def remove_landed_cost_item(self, item_id: int) -> Batch:
        item = self._get_item(item_id)
        batch = self.get_batch(item.batch_id)
        self._ensure_mutable(batch, "Cannot remove costs from confirmed or cancelled batches")

        try:
            self._db.delete(item)
            self.apply_totals(batch)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityUpdatedEvent(
            entity_type="batch",
            entity_id=batch.id,
            new_values={"removed_landed_cost_item_id": item_id, "total_cost": str(batch.total_cost)},
        ))
        return batch

    @staticmethod
    def _validate_amounts(amount: Decimal, exchange_rate: Decimal) -> None:
        if amount < 0:
            raise BusinessRuleViolationException("Landed cost amount must be non-negative")
        if exchange_rate <= 0:
            raise BusinessRuleViolationException("Exchange rate must be positive")

    # ── Confirmation ─────────────────────────────────────────────────────────

    def confirm_batch(self, batch_id: int, actor_id: int) -> Batch:
        batch = self._repo.get_for_update(batch_id)
        if not batch:
            raise EntityNotFoundException("Batch", batch_id)
        if batch.is_confirmed:
            raise BusinessRuleViolationException("Batch is already confirmed")
        if batch.is_cancelled:
            raise BusinessRuleViolationException("Cannot confirm a cancelled batch")

        old_status = batch.status
        try:
            self.apply_totals(batch)
            batch.status = BatchStatus.CONFIRMED.value
            batch.confirmed_at = self._clock()
            batch.confirmed_by = actor_id
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(StatusChangedEvent(
            entity_type="batch",
            entity_id=batch.id,
            user_id=actor_id,
            old_status=old_status,
            new_status=batch.status,
        ))
        return batch
