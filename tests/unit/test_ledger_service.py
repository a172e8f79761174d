from decimal import Decimal

import pytest

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientInventoryException,
)
from batchcost.models.inventory import Inventory
from batchcost.models.product import Product
from batchcost.services.allocation_service import AllocationService
from batchcost.services.allocation_strategies import AllocationMethod, AllocationResult
from batchcost.services.ledger_service import InventoryLedgerService


def _row(db, batch_id, warehouse_id):
    db.expire_all()
    return db.query(Inventory).filter_by(batch_id=batch_id, warehouse_id=warehouse_id).one()


def _line(batch_id, quantity):
    return AllocationResult.at_cost(batch_id, Decimal(quantity), Decimal("0"))


def test_reserve_then_release_restores_reservation(db, two_batches, product, warehouse):
    batch_a, batch_b = two_batches
    plan = AllocationService(db).allocate(product.id, Decimal("12"), AllocationMethod.FIFO, warehouse.id)
    ledger = InventoryLedgerService(db)

    ledger.reserve(plan, warehouse.id)
    assert _row(db, batch_a.id, warehouse.id).reserved_quantity == Decimal("10")
    assert _row(db, batch_b.id, warehouse.id).reserved_quantity == Decimal("2")
    assert _row(db, batch_b.id, warehouse.id).available_quantity == Decimal("3")

    ledger.release(plan, warehouse.id)
    assert _row(db, batch_a.id, warehouse.id).reserved_quantity == Decimal("0")
    assert _row(db, batch_b.id, warehouse.id).reserved_quantity == Decimal("0")


def test_deduct_reduces_on_hand_and_reserved(db, two_batches, product, warehouse, events):
    batch_a, batch_b = two_batches
    plan = AllocationService(db).allocate(product.id, Decimal("12"), AllocationMethod.FIFO, warehouse.id)
    ledger = InventoryLedgerService(db)
    ledger.reserve(plan, warehouse.id)

    ledger.deduct(plan, warehouse.id, actor_id=3)

    row_a = _row(db, batch_a.id, warehouse.id)
    row_b = _row(db, batch_b.id, warehouse.id)
    assert (row_a.quantity, row_a.reserved_quantity) == (Decimal("0"), Decimal("0"))
    assert (row_b.quantity, row_b.reserved_quantity) == (Decimal("3"), Decimal("0"))
    assert [e.action for e in events][-1] == "inventory_deduct"
    assert events[-1].user_id == 3


def test_deduct_more_than_reserved_fails_atomically(db, two_batches, warehouse):
    batch_a, batch_b = two_batches
    ledger = InventoryLedgerService(db)
    ledger.reserve([_line(batch_a.id, "4"), _line(batch_b.id, "1")], warehouse.id)

    with pytest.raises(BusinessRuleViolationException):
        ledger.deduct([_line(batch_a.id, "4"), _line(batch_b.id, "2")], warehouse.id)

    row_a = _row(db, batch_a.id, warehouse.id)
    row_b = _row(db, batch_b.id, warehouse.id)
    assert (row_a.quantity, row_a.reserved_quantity) == (Decimal("10"), Decimal("4"))
    assert (row_b.quantity, row_b.reserved_quantity) == (Decimal("5"), Decimal("1"))


def test_reserve_revalidates_availability_under_lock(db, two_batches, product, warehouse):
    batch_a, _ = two_batches
    plan = AllocationService(db).allocate(product.id, Decimal("8"), AllocationMethod.FIFO, warehouse.id)
    ledger = InventoryLedgerService(db)
    ledger.reserve([_line(batch_a.id, "5")], warehouse.id)

    with pytest.raises(InsufficientInventoryException) as exc_info:
        ledger.reserve(plan, warehouse.id)

    assert exc_info.value.shortfall == Decimal("3")
    assert exc_info.value.batch_id == batch_a.id
    assert _row(db, batch_a.id, warehouse.id).reserved_quantity == Decimal("5")


def test_repeated_plan_lines_accumulate(db, two_batches, warehouse):
    batch_a, _ = two_batches
    ledger = InventoryLedgerService(db)

    with pytest.raises(InsufficientInventoryException):
        ledger.reserve([_line(batch_a.id, "6"), _line(batch_a.id, "6")], warehouse.id)
    assert _row(db, batch_a.id, warehouse.id).reserved_quantity == Decimal("0")

    rows = ledger.reserve([_line(batch_a.id, "3"), _line(batch_a.id, "4")], warehouse.id)
    assert len(rows) == 1
    assert _row(db, batch_a.id, warehouse.id).reserved_quantity == Decimal("7")


def test_release_more_than_reserved_is_rejected(db, two_batches, warehouse):
    batch_a, _ = two_batches
    with pytest.raises(BusinessRuleViolationException):
        InventoryLedgerService(db).release([_line(batch_a.id, "1")], warehouse.id)


def test_plan_line_for_missing_row_is_not_found(db, two_batches, warehouse, other_warehouse):
    batch_a, _ = two_batches
    ledger = InventoryLedgerService(db)
    with pytest.raises(EntityNotFoundException):
        ledger.reserve([_line(batch_a.id, "1")], other_warehouse.id)
    with pytest.raises(BusinessRuleViolationException):
        ledger.reserve([], warehouse.id)


def test_receive_creates_then_increments_row(db, draft_batch, product, warehouse):
    ledger = InventoryLedgerService(db)

    created = ledger.receive(draft_batch.id, product.id, warehouse.id, Decimal("40"))
    assert (created.quantity, created.reserved_quantity) == (Decimal("40"), Decimal("0"))

    ledger.reserve([_line(draft_batch.id, "15")], warehouse.id)
    updated = ledger.receive(draft_batch.id, product.id, warehouse.id, Decimal("10"))
    assert updated.id == created.id
    assert (updated.quantity, updated.reserved_quantity) == (Decimal("50"), Decimal("15"))


def test_receive_validations(db, batch_service, draft_batch, product, warehouse):
    ledger = InventoryLedgerService(db)
    with pytest.raises(EntityNotFoundException):
        ledger.receive(9999, product.id, warehouse.id, Decimal("1"))
    with pytest.raises(BusinessRuleViolationException, match="does not belong"):
        ledger.receive(draft_batch.id, product.id + 1, warehouse.id, Decimal("1"))
    with pytest.raises(BusinessRuleViolationException, match="positive"):
        ledger.receive(draft_batch.id, product.id, warehouse.id, Decimal("0"))

    with pytest.raises(EntityNotFoundException, match="Warehouse"):
        ledger.receive(draft_batch.id, product.id, 9999, Decimal("1"))
    assert db.query(Inventory).count() == 0

    batch_service.cancel_batch(draft_batch.id)
    with pytest.raises(BusinessRuleViolationException, match="cancelled"):
        ledger.receive(draft_batch.id, product.id, warehouse.id, Decimal("1"))


def test_adjust_respects_reservations(db, two_batches, product, warehouse):
    batch_a, _ = two_batches
    ledger = InventoryLedgerService(db)
    ledger.reserve([_line(batch_a.id, "6")], warehouse.id)

    row = ledger.adjust(product.id, batch_a.id, warehouse.id, Decimal("-3"), "cycle count")
    assert row.quantity == Decimal("7")

    with pytest.raises(BusinessRuleViolationException):
        ledger.adjust(product.id, batch_a.id, warehouse.id, Decimal("-2"), "damaged")
    with pytest.raises(BusinessRuleViolationException):
        ledger.adjust(product.id, batch_a.id, warehouse.id, Decimal("0"), "noop")
    assert _row(db, batch_a.id, warehouse.id).quantity == Decimal("7")


def test_summary_by_product(db, two_batches, product, warehouse):
    batch_a, _ = two_batches
    ledger = InventoryLedgerService(db)
    ledger.reserve([_line(batch_a.id, "4")], warehouse.id)

    summary = ledger.get_summary_by_product(product.id)

    assert summary.total_quantity == Decimal("15")
    assert summary.total_reserved == Decimal("4")
    assert summary.available_quantity == Decimal("11")
    assert summary.total_value == Decimal("35.00")
    assert summary.avg_cost_per_unit == Decimal("2.3333")
    assert summary.is_low_stock is False
    assert summary.warehouse_count == 1
    assert summary.batch_count == 2


def test_summary_without_stock(db, product):
    summary = InventoryLedgerService(db).get_summary_by_product(product.id)
    assert summary.total_quantity == Decimal("0")
    assert summary.avg_cost_per_unit == Decimal("0")
    assert summary.is_low_stock is True

    with pytest.raises(EntityNotFoundException):
        InventoryLedgerService(db).get_summary_by_product(9999)


def test_list_inventory_low_stock_filter(db, two_batches, product, warehouse):
    batch_a, batch_b = two_batches
    ledger = InventoryLedgerService(db)
    ledger.reserve([_line(batch_b.id, "3")], warehouse.id)

    everything = ledger.list_inventory(product_id=product.id)
    low = ledger.list_inventory(product_id=product.id, low_stock=True)

    assert everything.total == 2
    assert [item.batch_id for item in low.items] == [batch_b.id]
    assert low.total == 1


def test_stats_values_ledger_per_warehouse(db, two_batches, product, warehouse, other_warehouse):
    batch_a, _ = two_batches
    ledger = InventoryLedgerService(db)
    ledger.receive(batch_a.id, product.id, other_warehouse.id, Decimal("4"))

    stats = ledger.get_stats()

    assert stats.total_products == 1
    assert stats.total_value == Decimal("43.00")
    assert stats.low_stock_count == 0
    by_code = {w.code: w for w in stats.warehouses}
    assert [w.code for w in stats.warehouses] == ["WH-EAST", "WH-MAIN"]
    assert (by_code["WH-MAIN"].product_count, by_code["WH-MAIN"].total_value) == (1, Decimal("35.00"))
    assert (by_code["WH-EAST"].product_count, by_code["WH-EAST"].total_value) == (1, Decimal("8.00"))


def test_stats_low_stock_counts_active_products_only(db, two_batches, product, warehouse):
    batch_a, batch_b = two_batches
    db.add_all([
        Product(sku="SKU-200", name="Washer M8", min_stock_level=Decimal("1"), status="active"),
        Product(sku="SKU-300", name="Retired Nut", min_stock_level=Decimal("1"), status="inactive"),
    ])
    db.commit()
    ledger = InventoryLedgerService(db)

    assert ledger.get_stats().low_stock_count == 1

    ledger.reserve([_line(batch_a.id, "10"), _line(batch_b.id, "3")], warehouse.id)
    stats = ledger.get_stats()
    assert stats.low_stock_count == 2
    assert stats.total_value == Decimal("35.00")


def test_stats_on_empty_ledger(db):
    stats = InventoryLedgerService(db).get_stats()
    assert stats.total_products == 0
    assert stats.total_value == Decimal("0")
    assert stats.low_stock_count == 0
    assert stats.warehouses == []
