"""
Batch Service — Service Layer (SRP / DIP)

Lifecycle of batches outside costing: creation with a generated batch
number, DRAFT edits, cancellation, goods receipt, and the cost item type
catalogue that classifies landed costs.
"""
from math import ceil
from typing import Optional

from sqlalchemy.orm import Session

from batchcost.config import settings
from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    ForbiddenOperationException,
)
from batchcost.models.batch import Batch, BatchStatus
from batchcost.models.landed_cost import CostItemType
from batchcost.repositories.batch_repository import BatchRepository, CostItemTypeRepository
from batchcost.repositories.inventory_repository import InventoryRepository
from batchcost.repositories.reference_repository import (
    ProductRepository,
    SupplierRepository,
    WarehouseRepository,
)
from batchcost.schemas.batch import (
    BatchCreate,
    BatchListResponse,
    BatchStats,
    BatchUpdate,
    CostItemTypeCreate,
)
from batchcost.services.costing_service import BatchCostingService
from batchcost.services.ledger_service import InventoryLedgerService
from batchcost.services.numbering_service import NumberingService
from batchcost.utils.clock import Clock, utc_now
from batchcost.utils.events import (
    EntityCreatedEvent,
    EntityUpdatedEvent,
    InventoryMovementEvent,
    StatusChangedEvent,
    get_event_bus,
)
from batchcost.utils.money import ZERO, round_money, round_unit_cost, to_decimal


class BatchService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self._db = db
        self._clock = clock or utc_now
        self._repo = BatchRepository(db)
        self._cost_type_repo = CostItemTypeRepository(db)
        self._inventory_repo = InventoryRepository(db)
        self._product_repo = ProductRepository(db)
        self._warehouse_repo = WarehouseRepository(db)
        self._supplier_repo = SupplierRepository(db)
        self._numbering = NumberingService(db, clock=self._clock)
        self._costing = BatchCostingService(db, clock=self._clock)
        self._ledger = InventoryLedgerService(db)
        self._bus = get_event_bus()

    def get_batch(self, batch_id: int) -> Batch:
        return self._costing.get_batch(batch_id)

    def list_batches(
        self,
        page: int = 1,
        page_size: int = 20,
        product_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> BatchListResponse:
        items, total = self._repo.list_filtered(
            page=page,
            page_size=page_size,
            product_id=product_id,
            supplier_id=supplier_id,
            warehouse_id=warehouse_id,
            status=status,
            search=search,
        )
        return BatchListResponse(
            items=items, total=total, page=page, page_size=page_size,
            total_pages=ceil(total / page_size) if total else 0,
        )

    def get_stats(self) -> BatchStats:
        counts = self._repo.count_by_status()
        confirmed_value = sum(
            (to_decimal(cost) for cost in self._repo.list_total_costs(BatchStatus.CONFIRMED.value)),
            ZERO,
        )
        return BatchStats(
            total=sum(counts.values()),
            draft=counts.get(BatchStatus.DRAFT.value, 0),
            confirmed=counts.get(BatchStatus.CONFIRMED.value, 0),
            cancelled=counts.get(BatchStatus.CANCELLED.value, 0),
            total_confirmed_value=round_money(confirmed_value),
        )

    # ── Creation ─────────────────────────────────────────────────────────────

    def _validate_references(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
    ) -> None:
        if product_id is not None and not self._product_repo.get_by_id(product_id):
            raise EntityNotFoundException("Product", product_id)
        if warehouse_id is not None and not self._warehouse_repo.get_by_id(warehouse_id):
            raise EntityNotFoundException("Warehouse", warehouse_id)
        if supplier_id is not None and not self._supplier_repo.get_by_id(supplier_id):
            raise EntityNotFoundException("Supplier", supplier_id)

    def _new_batch(self, data: BatchCreate) -> Batch:
        self._validate_references(data.product_id, data.warehouse_id, data.supplier_id)
        quantity = to_decimal(data.quantity)
        unit_cost = to_decimal(data.unit_purchase_cost)
        if quantity <= 0:
            raise BusinessRuleViolationException("Batch quantity must be positive")
        if unit_cost < 0:
            raise BusinessRuleViolationException("Unit purchase cost must be non-negative")

        total_purchase = round_money(quantity * unit_cost)
        batch = Batch(
            batch_number=self._numbering.next_batch_number(),
            product_id=data.product_id,
            supplier_id=data.supplier_id,
            warehouse_id=data.warehouse_id,
            quantity=quantity,
            unit_purchase_cost=unit_cost,
            currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
            total_purchase_cost=total_purchase,
            total_landed_cost=ZERO,
            total_cost=total_purchase,
            cost_per_unit=round_unit_cost(total_purchase / quantity),
            received_date=data.received_date or self._clock(),
            notes=data.notes,
            status=BatchStatus.DRAFT.value,
        )
        self._db.add(batch)
        self._db.flush()
        return batch

    def create_batch(self, data: BatchCreate, actor_id: Optional[int] = None) -> Batch:
        try:
            batch = self._new_batch(data)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityCreatedEvent(
            entity_type="batch",
            entity_id=batch.id,
            user_id=actor_id,
            new_values={
                "batch_number": batch.batch_number,
                "product_id": batch.product_id,
                "quantity": str(batch.quantity),
                "total_purchase_cost": str(batch.total_purchase_cost),
            },
        ))
        return batch

    def receive_batch(self, data: BatchCreate, actor_id: Optional[int] = None) -> Batch:
        """Goods receipt: create the batch and put its quantity on hand atomically."""
        try:
            batch = self._new_batch(data)
            row = self._ledger.stage_receipt(batch, data.product_id, data.warehouse_id, data.quantity)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityCreatedEvent(
            entity_type="batch",
            entity_id=batch.id,
            user_id=actor_id,
            new_values={"batch_number": batch.batch_number, "quantity": str(batch.quantity)},
        ))
        self._bus.publish(InventoryMovementEvent(
            entity_type="inventory",
            entity_id=row.id,
            user_id=actor_id,
            movement_type="receive",
            warehouse_id=data.warehouse_id,
            lines=[{"batch_id": batch.id, "quantity": str(batch.quantity)}],
        ))
        return batch

    # ── Changes ──────────────────────────────────────────────────────────────

    def update_batch(self, batch_id: int, data: BatchUpdate, actor_id: Optional[int] = None) -> Batch:
        batch = self.get_batch(batch_id)
        if batch.status != BatchStatus.DRAFT.value:
            raise ForbiddenOperationException(
                "Cannot modify confirmed or cancelled batches", details={"batch_id": batch.id}
            )

        updates = data.model_dump(exclude_unset=True)
        self._validate_references(
            warehouse_id=updates.get("warehouse_id"),
            supplier_id=updates.get("supplier_id"),
        )
        moves_warehouse = (
            updates.get("warehouse_id") is not None and updates["warehouse_id"] != batch.warehouse_id
        )
        changes_quantity = (
            updates.get("quantity") is not None
            and to_decimal(updates["quantity"]) != to_decimal(batch.quantity)
        )
        if (moves_warehouse or changes_quantity) and self._inventory_repo.list_by_batch(batch.id):
            # received stock is the ledger's; corrections go through adjust()
            field = "warehouse" if moves_warehouse else "quantity"
            raise BusinessRuleViolationException(
                f"Cannot change the {field} of a batch that already has stock in the ledger",
                details={"batch_id": batch.id},
            )
        old_values = {k: str(getattr(batch, k)) for k in updates}

        try:
            for key, value in updates.items():
                if value is None and key in {"warehouse_id", "quantity", "unit_purchase_cost", "received_date"}:
                    continue
                if key == "currency" and value:
                    value = value.upper()
                setattr(batch, key, value)
            batch.total_purchase_cost = round_money(
                to_decimal(batch.quantity) * to_decimal(batch.unit_purchase_cost)
            )
            self._costing.apply_totals(batch)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(batch)

        self._bus.publish(EntityUpdatedEvent(
            entity_type="batch",
            entity_id=batch.id,
            user_id=actor_id,
            old_values=old_values,
            new_values={k: str(getattr(batch, k)) for k in updates},
        ))
        return batch

    def cancel_batch(self, batch_id: int, actor_id: Optional[int] = None) -> Batch:
        batch = self._repo.get_for_update(batch_id)
        if not batch:
            raise EntityNotFoundException("Batch", batch_id)
        if batch.is_cancelled:
            raise BusinessRuleViolationException("Batch is already cancelled")
        reserved = sum(
            (to_decimal(row.reserved_quantity) for row in self._inventory_repo.list_by_batch(batch.id)),
            ZERO,
        )
        if reserved > 0:
            raise BusinessRuleViolationException(
                "Cannot cancel a batch with reserved stock", details={"batch_id": batch.id}
            )

        old_status = batch.status
        try:
            batch.status = BatchStatus.CANCELLED.value
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

    # ── Cost item types ──────────────────────────────────────────────────────

    def create_cost_item_type(self, data: CostItemTypeCreate) -> CostItemType:
        code = data.code.strip().upper()
        if self._cost_type_repo.get_by_code(code):
            raise BusinessRuleViolationException(f"Cost item type '{code}' already exists")
        return self._cost_type_repo.create(
            CostItemType(code=code, name=data.name, description=data.description, is_active=True)
        )

    def list_cost_item_types(self, active_only: bool = False):
        return self._cost_type_repo.list_filtered(active_only=active_only)
