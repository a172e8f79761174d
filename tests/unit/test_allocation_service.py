from decimal import Decimal

import pytest

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientInventoryException,
)
from batchcost.schemas.batch import BatchCreate
from batchcost.services.allocation_service import AllocationService
from batchcost.services.allocation_strategies import AllocationMethod, SpecificAllocation
from tests.conftest import DAY_1


def test_fifo_worked_example(db, two_batches, product, warehouse):
    batch_a, batch_b = two_batches
    plan = AllocationService(db).allocate(product.id, Decimal("12"), AllocationMethod.FIFO, warehouse.id)

    assert [(r.batch_id, r.quantity, r.cost_per_unit, r.total_cost) for r in plan] == [
        (batch_a.id, Decimal("10"), Decimal("2.0000"), Decimal("20.00")),
        (batch_b.id, Decimal("2"), Decimal("3.0000"), Decimal("6.00")),
    ]


def test_fifo_shortfall(db, two_batches, product, warehouse):
    with pytest.raises(InsufficientInventoryException) as exc_info:
        AllocationService(db).allocate(product.id, Decimal("20"), AllocationMethod.FIFO, warehouse.id)
    assert exc_info.value.shortfall == Decimal("5")


def test_allocation_does_not_touch_the_ledger(db, two_batches, product, warehouse):
    service = AllocationService(db)
    service.allocate(product.id, Decimal("12"), "FIFO", warehouse.id)

    lots = service.get_available_lots(product.id, warehouse.id)
    assert sum(lot.available_quantity for lot in lots) == Decimal("15")


def test_default_method_is_fifo(db, two_batches, product):
    batch_a, _ = two_batches
    plan = AllocationService(db).allocate(product.id, Decimal("3"))
    assert [r.batch_id for r in plan] == [batch_a.id]


def test_weighted_average_worked_example(db, two_batches, product, warehouse):
    service = AllocationService(db)
    plan = service.allocate(product.id, Decimal("12"), AllocationMethod.WEIGHTED_AVG, warehouse.id)

    assert service.calculate_weighted_average_cost(product.id, warehouse.id) == Decimal("2.3333")
    assert [r.cost_per_unit for r in plan] == [Decimal("2.3333"), Decimal("2.3333")]
    assert [r.quantity for r in plan] == [Decimal("10"), Decimal("2")]


def test_non_positive_quantity_is_rejected(db, two_batches, product):
    with pytest.raises(BusinessRuleViolationException, match="must be positive"):
        AllocationService(db).allocate(product.id, Decimal("0"), AllocationMethod.FIFO)


def test_specific_allocation_against_ledger(db, two_batches, product, warehouse):
    batch_a, batch_b = two_batches
    service = AllocationService(db)

    plan = service.allocate(
        product.id, 0, AllocationMethod.SPECIFIC, warehouse.id,
        specific_allocations=[SpecificAllocation(batch_b.id, Decimal("5"))],
    )
    assert [(r.batch_id, r.total_cost) for r in plan] == [(batch_b.id, Decimal("15.00"))]

    with pytest.raises(EntityNotFoundException):
        service.allocate(
            product.id, 0, AllocationMethod.SPECIFIC, warehouse.id,
            specific_allocations=[SpecificAllocation(batch_a.id + batch_b.id + 100, Decimal("1"))],
        )


def test_cancelled_batches_are_never_allocated(db, batch_service, product, warehouse):
    kept = batch_service.receive_batch(BatchCreate(
        product_id=product.id, warehouse_id=warehouse.id,
        quantity=Decimal("4"), unit_purchase_cost=Decimal("1"), received_date=DAY_1,
    ))
    cancelled = batch_service.receive_batch(BatchCreate(
        product_id=product.id, warehouse_id=warehouse.id,
        quantity=Decimal("6"), unit_purchase_cost=Decimal("1"), received_date=DAY_1,
    ))
    batch_service.cancel_batch(cancelled.id)

    service = AllocationService(db)
    assert [lot.batch_id for lot in service.get_available_lots(product.id)] == [kept.id]
    with pytest.raises(InsufficientInventoryException):
        service.allocate(product.id, Decimal("5"), AllocationMethod.FIFO)


def test_preview_reports_failure_instead_of_raising(db, two_batches, product, warehouse):
    preview = AllocationService(db).preview_allocation(product.id, Decimal("20"), "FIFO", warehouse.id)

    assert preview.success is False
    assert preview.shortfall == Decimal("5")
    assert preview.allocations == []
    assert "Short by 5" in preview.error


def test_preview_success_totals(db, two_batches, product, warehouse):
    preview = AllocationService(db).preview_allocation(product.id, Decimal("12"), "FIFO", warehouse.id)

    assert preview.success is True
    assert preview.total_quantity == Decimal("12")
    assert preview.total_cost == Decimal("26.00")
    assert preview.avg_cost_per_unit == Decimal("2.1667")


def test_check_availability(db, two_batches, product, warehouse, other_warehouse):
    service = AllocationService(db)

    ok = service.check_availability(product.id, Decimal("15"), warehouse.id)
    assert ok.is_available is True
    assert ok.shortfall == Decimal("0")
    assert len(ok.batches) == 2

    short = service.check_availability(product.id, Decimal("18"))
    assert short.is_available is False
    assert short.shortfall == Decimal("3")

    elsewhere = service.check_availability(product.id, Decimal("1"), other_warehouse.id)
    assert elsewhere.is_available is False
    assert elsewhere.batches == []
