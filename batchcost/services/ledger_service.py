"""
Inventory Ledger Service — Service Layer (SRP / DIP)

The only writer of ``Inventory`` rows. Every public mutation is one
transaction: the rows touched by a plan are read under ``FOR UPDATE``, every
line is validated against the (quantity, reserved_quantity) invariants, and
either all lines are applied and committed or the session is rolled back.

Reservations re-validate availability under the row lock, so a plan computed
earlier by AllocationService cannot overcommit stock that a concurrent
request reserved in the meantime.
"""
from decimal import Decimal
from math import ceil
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientInventoryException,
    format_quantity,
)
from batchcost.models.batch import Batch
from batchcost.models.inventory import Inventory
from batchcost.repositories.batch_repository import BatchRepository
from batchcost.repositories.inventory_repository import InventoryRepository
from batchcost.repositories.reference_repository import ProductRepository, WarehouseRepository
from batchcost.schemas.inventory import (
    InventoryListResponse,
    InventoryStats,
    InventorySummary,
    WarehouseValuation,
)
from batchcost.utils.events import InventoryMovementEvent, get_event_bus
from batchcost.utils.money import ZERO, round_money, round_unit_cost, to_decimal

RESERVE = "reserve"
RELEASE = "release"
DEDUCT = "deduct"
RECEIVE = "receive"
ADJUST = "adjust"


class PlanLine(Protocol):
    batch_id: int
    quantity: Any


class InventoryLedgerService:

    def __init__(self, db: Session):
        self._db = db
        self._repo = InventoryRepository(db)
        self._batch_repo = BatchRepository(db)
        self._product_repo = ProductRepository(db)
        self._warehouse_repo = WarehouseRepository(db)
        self._bus = get_event_bus()

    # ── Plan application ─────────────────────────────────────────────────────

    def reserve(self, plan: Sequence[PlanLine], warehouse_id: int, actor_id: Optional[int] = None) -> List[Inventory]:
        return self._apply(plan, warehouse_id, RESERVE, actor_id)

    def release(self, plan: Sequence[PlanLine], warehouse_id: int, actor_id: Optional[int] = None) -> List[Inventory]:
        return self._apply(plan, warehouse_id, RELEASE, actor_id)

    def deduct(self, plan: Sequence[PlanLine], warehouse_id: int, actor_id: Optional[int] = None) -> List[Inventory]:
        return self._apply(plan, warehouse_id, DEDUCT, actor_id)

    def _apply(
        self,
        plan: Sequence[PlanLine],
        warehouse_id: int,
        movement_type: str,
        actor_id: Optional[int],
    ) -> List[Inventory]:
        if not plan:
            raise BusinessRuleViolationException("Allocation plan is empty")

        rows: Dict[int, Inventory] = {}
        lines: List[Dict[str, Any]] = []
        try:
            for line in plan:
                quantity = to_decimal(line.quantity)
                if quantity <= 0:
                    raise BusinessRuleViolationException(
                        f"Quantity for batch {line.batch_id} must be positive"
                    )
                row = rows.get(line.batch_id)
                if row is None:
                    row = self._repo.get_by_batch_and_warehouse_for_update(line.batch_id, warehouse_id)
                    if row is None:
                        raise EntityNotFoundException(
                            "Inventory", f"batch={line.batch_id}, warehouse={warehouse_id}"
                        )
                    rows[line.batch_id] = row

                on_hand = to_decimal(row.quantity)
                reserved = to_decimal(row.reserved_quantity)
                if movement_type == RESERVE:
                    if row.batch.is_cancelled:
                        raise BusinessRuleViolationException(
                            f"Cannot reserve stock of cancelled batch {line.batch_id}"
                        )
                    available = on_hand - reserved
                    if available < quantity:
                        raise InsufficientInventoryException(
                            f"Insufficient quantity in batch {line.batch_id}. "
                            f"Available: {format_quantity(available)}, Requested: {format_quantity(quantity)}",
                            shortfall=quantity - available,
                            batch_id=line.batch_id,
                        )
                    row.reserved_quantity = reserved + quantity
                elif movement_type == RELEASE:
                    if reserved < quantity:
                        raise BusinessRuleViolationException(
                            f"Cannot release {format_quantity(quantity)} units of batch {line.batch_id}; "
                            f"only {format_quantity(reserved)} reserved"
                        )
                    row.reserved_quantity = reserved - quantity
                else:
                    if reserved < quantity or on_hand < quantity:
                        raise BusinessRuleViolationException(
                            f"Cannot deduct {format_quantity(quantity)} units of batch {line.batch_id}; "
                            f"reserved {format_quantity(reserved)}, on hand {format_quantity(on_hand)}"
                        )
                    row.quantity = on_hand - quantity
                    row.reserved_quantity = reserved - quantity

                lines.append({"batch_id": line.batch_id, "quantity": str(quantity)})
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        for row in rows.values():
            self._db.refresh(row)
        self._bus.publish(InventoryMovementEvent(
            entity_type="inventory",
            user_id=actor_id,
            movement_type=movement_type,
            warehouse_id=warehouse_id,
            lines=lines,
        ))
        return list(rows.values())

    # ── Receipt & adjustment ─────────────────────────────────────────────────

    def receive(
        self,
        batch_id: int,
        product_id: int,
        warehouse_id: int,
        quantity: Any,
        actor_id: Optional[int] = None,
    ) -> Inventory:
        batch = self._batch_repo.get_by_id(batch_id)
        if not batch:
            raise EntityNotFoundException("Batch", batch_id)
        try:
            row = self.stage_receipt(batch, product_id, warehouse_id, quantity)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(row)

        self._bus.publish(InventoryMovementEvent(
            entity_type="inventory",
            entity_id=row.id,
            user_id=actor_id,
            movement_type=RECEIVE,
            warehouse_id=warehouse_id,
            lines=[{"batch_id": batch_id, "quantity": str(to_decimal(quantity))}],
        ))
        return row

    def stage_receipt(self, batch: Batch, product_id: int, warehouse_id: int, quantity: Any) -> Inventory:
        """Upsert the ledger row for a receipt inside the caller's transaction."""
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise BusinessRuleViolationException("Received quantity must be positive")
        if batch.product_id != product_id:
            raise BusinessRuleViolationException(
                f"Batch {batch.id} does not belong to product {product_id}"
            )
        if batch.is_cancelled:
            raise BusinessRuleViolationException(f"Cannot receive stock into cancelled batch {batch.id}")
        if not self._warehouse_repo.get_by_id(warehouse_id):
            raise EntityNotFoundException("Warehouse", warehouse_id)

        row = self._repo.get_row(product_id, batch.id, warehouse_id, lock=True)
        if row is None:
            row = Inventory(
                product_id=product_id,
                batch_id=batch.id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                reserved_quantity=ZERO,
            )
            self._db.add(row)
        else:
            row.quantity = to_decimal(row.quantity) + quantity
        self._db.flush()
        return row

    def adjust(
        self,
        product_id: int,
        batch_id: int,
        warehouse_id: int,
        delta: Any,
        reason: str,
        actor_id: Optional[int] = None,
    ) -> Inventory:
        """Signed on-hand correction (stock count, damage, write-off)."""
        delta = to_decimal(delta)
        if delta == 0:
            raise BusinessRuleViolationException("Adjustment quantity must not be zero")

        try:
            row = self._repo.get_row(product_id, batch_id, warehouse_id, lock=True)
            if row is None:
                raise EntityNotFoundException(
                    "Inventory", f"product={product_id}, batch={batch_id}, warehouse={warehouse_id}"
                )
            old_quantity = to_decimal(row.quantity)
            new_quantity = old_quantity + delta
            reserved = to_decimal(row.reserved_quantity)
            if new_quantity < reserved:
                raise BusinessRuleViolationException(
                    f"Adjustment would leave {format_quantity(new_quantity)} on hand "
                    f"with {format_quantity(reserved)} reserved"
                )
            row.quantity = new_quantity
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(row)

        self._bus.publish(InventoryMovementEvent(
            entity_type="inventory",
            entity_id=row.id,
            user_id=actor_id,
            movement_type=ADJUST,
            warehouse_id=warehouse_id,
            lines=[{
                "batch_id": batch_id,
                "quantity": str(delta),
                "old_quantity": str(old_quantity),
                "reason": reason,
            }],
        ))
        return row

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_summary_by_product(self, product_id: int) -> InventorySummary:
        product = self._product_repo.get_by_id(product_id)
        if not product:
            raise EntityNotFoundException("Product", product_id)

        total_quantity = ZERO
        total_reserved = ZERO
        total_value = ZERO
        warehouses = set()
        batches = set()
        for row in self._repo.list_by_product(product_id):
            quantity = to_decimal(row.quantity)
            total_quantity += quantity
            total_reserved += to_decimal(row.reserved_quantity)
            total_value += quantity * to_decimal(row.batch.cost_per_unit)
            if quantity > 0:
                warehouses.add(row.warehouse_id)
                batches.add(row.batch_id)

        available = total_quantity - total_reserved
        return InventorySummary(
            product_id=product_id,
            total_quantity=total_quantity,
            total_reserved=total_reserved,
            available_quantity=available,
            total_value=round_money(total_value),
            avg_cost_per_unit=round_unit_cost(total_value / total_quantity) if total_quantity > 0 else ZERO,
            is_low_stock=available <= to_decimal(product.min_stock_level),
            warehouse_count=len(warehouses),
            batch_count=len(batches),
        )

    def list_inventory(
        self,
        page: int = 1,
        page_size: int = 20,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        low_stock: bool = False,
    ) -> InventoryListResponse:
        items, total = self._repo.list_filtered(
            page=page,
            page_size=page_size,
            product_id=product_id,
            warehouse_id=warehouse_id,
            batch_id=batch_id,
            low_stock=low_stock,
        )
        return InventoryListResponse(
            items=items, total=total, page=page, page_size=page_size,
            total_pages=ceil(total / page_size) if total else 0,
        )

    def get_stats(self) -> InventoryStats:
        """Valuation of the whole ledger at each batch's cost per unit.

        ``low_stock_count`` covers active products only; a product without
        any ledger rows has nothing available and counts as low.
        """
        rows = self._repo.list_with_batch()

        total_value = ZERO
        product_ids = set()
        available_by_product: Dict[int, Decimal] = {}
        value_by_warehouse: Dict[int, Decimal] = {}
        products_by_warehouse: Dict[int, set] = {}
        for row in rows:
            quantity = to_decimal(row.quantity)
            value = quantity * to_decimal(row.batch.cost_per_unit)
            total_value += value
            product_ids.add(row.product_id)
            available_by_product[row.product_id] = (
                available_by_product.get(row.product_id, ZERO) + quantity - to_decimal(row.reserved_quantity)
            )
            value_by_warehouse[row.warehouse_id] = value_by_warehouse.get(row.warehouse_id, ZERO) + value
            products_by_warehouse.setdefault(row.warehouse_id, set()).add(row.product_id)

        low_stock_count = sum(
            1
            for product in self._product_repo.list_active()
            if available_by_product.get(product.id, ZERO) <= to_decimal(product.min_stock_level)
        )
        return InventoryStats(
            total_products=len(product_ids),
            total_value=round_money(total_value),
            low_stock_count=low_stock_count,
            warehouses=[
                WarehouseValuation(
                    warehouse_id=warehouse.id,
                    code=warehouse.code,
                    name=warehouse.name,
                    product_count=len(products_by_warehouse.get(warehouse.id, ())),
                    total_value=round_money(value_by_warehouse.get(warehouse.id, ZERO)),
                )
                for warehouse in self._warehouse_repo.list_active()
            ],
        )
