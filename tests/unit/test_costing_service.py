from decimal import Decimal

import pytest

from batchcost.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    ForbiddenOperationException,
)
from batchcost.models.batch import BatchStatus
from batchcost.schemas.batch import BatchCreate
from batchcost.services.costing_service import LandedCostOptions, convert_to_batch_currency
from tests.conftest import ACTOR_ID, NOW


def _assert_cost_invariants(batch):
    total = Decimal(str(batch.total_purchase_cost)) + Decimal(str(batch.total_landed_cost))
    assert Decimal(str(batch.total_cost)) == total
    expected_unit = (total / Decimal(str(batch.quantity))).quantize(Decimal("0.0001"))
    assert Decimal(str(batch.cost_per_unit)) == expected_unit


def test_new_batch_costs_start_from_purchase_cost(draft_batch):
    assert draft_batch.status == BatchStatus.DRAFT.value
    assert Decimal(str(draft_batch.total_purchase_cost)) == Decimal("150.00")
    assert Decimal(str(draft_batch.total_landed_cost)) == Decimal("0")
    assert Decimal(str(draft_batch.cost_per_unit)) == Decimal("1.5000")
    _assert_cost_invariants(draft_batch)


def test_add_landed_cost_item_recalculates_totals(costing_service, draft_batch, cost_type):
    batch = costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("25.00"))

    assert len(batch.landed_cost_items) == 1
    item = batch.landed_cost_items[0]
    assert item.currency == "USD"
    assert Decimal(str(item.exchange_rate)) == Decimal("1")
    assert Decimal(str(batch.total_landed_cost)) == Decimal("25.00")
    assert Decimal(str(batch.total_cost)) == Decimal("175.00")
    assert Decimal(str(batch.cost_per_unit)) == Decimal("1.7500")
    _assert_cost_invariants(batch)


def test_add_landed_cost_item_converts_foreign_currency(costing_service, draft_batch, cost_type):
    options = LandedCostOptions(currency="EUR", exchange_rate=Decimal("1.0850"), reference_number="INV-77")
    batch = costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("40.00"), options)

    item = batch.landed_cost_items[0]
    assert item.currency == "EUR"
    assert item.reference_number == "INV-77"
    assert Decimal(str(item.amount_in_batch_currency)) == Decimal("43.40")
    assert Decimal(str(batch.total_cost)) == Decimal("193.40")
    _assert_cost_invariants(batch)


def test_convert_to_batch_currency_rounds_half_up():
    assert convert_to_batch_currency(Decimal("10.005"), Decimal("1")) == Decimal("10.01")
    assert convert_to_batch_currency("33.33", "0.5") == Decimal("16.67")


def test_unit_cost_uses_unrounded_total(costing_service, batch_service, product, warehouse, cost_type):
    batch = batch_service.create_batch(
        BatchCreate(product_id=product.id, warehouse_id=warehouse.id, quantity=Decimal("3"), unit_purchase_cost=Decimal("1"))
    )
    batch = costing_service.add_landed_cost_item(batch.id, cost_type.id, Decimal("1.00"))

    assert Decimal(str(batch.total_cost)) == Decimal("4.00")
    assert Decimal(str(batch.cost_per_unit)) == Decimal("1.3333")


def test_add_landed_cost_item_rejects_negative_amount(costing_service, draft_batch, cost_type):
    with pytest.raises(BusinessRuleViolationException):
        costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("-1"))


def test_add_landed_cost_item_rejects_non_positive_rate(costing_service, draft_batch, cost_type):
    with pytest.raises(BusinessRuleViolationException):
        costing_service.add_landed_cost_item(
            draft_batch.id, cost_type.id, Decimal("5"), LandedCostOptions(exchange_rate=Decimal("0"))
        )


def test_add_landed_cost_item_unknown_batch_or_cost_type(costing_service, draft_batch, cost_type):
    with pytest.raises(EntityNotFoundException):
        costing_service.add_landed_cost_item(9999, cost_type.id, Decimal("5"))
    with pytest.raises(EntityNotFoundException):
        costing_service.add_landed_cost_item(draft_batch.id, 9999, Decimal("5"))


def test_update_landed_cost_item_recomputes_converted_amount(costing_service, draft_batch, cost_type):
    batch = costing_service.add_landed_cost_item(
        draft_batch.id, cost_type.id, Decimal("10.00"), LandedCostOptions(currency="EUR", exchange_rate=Decimal("2"))
    )
    item_id = batch.landed_cost_items[0].id

    batch = costing_service.update_landed_cost_item(item_id, {"amount": Decimal("12.50")})

    item = batch.landed_cost_items[0]
    assert Decimal(str(item.amount_in_batch_currency)) == Decimal("25.00")
    assert Decimal(str(batch.total_landed_cost)) == Decimal("25.00")
    _assert_cost_invariants(batch)


def test_remove_landed_cost_item(costing_service, draft_batch, cost_type):
    batch = costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("10.00"))
    batch = costing_service.add_landed_cost_item(batch.id, cost_type.id, Decimal("5.00"))
    first_id = batch.landed_cost_items[0].id

    batch = costing_service.remove_landed_cost_item(first_id)

    assert len(batch.landed_cost_items) == 1
    assert Decimal(str(batch.total_landed_cost)) == Decimal("5.00")
    _assert_cost_invariants(batch)


def test_update_or_remove_unknown_item(costing_service):
    with pytest.raises(EntityNotFoundException):
        costing_service.update_landed_cost_item(4242, {"amount": 1})
    with pytest.raises(EntityNotFoundException):
        costing_service.remove_landed_cost_item(4242)


def test_recalculate_is_idempotent(costing_service, draft_batch, cost_type):
    costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("7.77"))

    first = costing_service.recalculate_batch_costs(draft_batch.id)
    snapshot = (first.total_landed_cost, first.total_cost, first.cost_per_unit)
    second = costing_service.recalculate_batch_costs(draft_batch.id)

    assert (second.total_landed_cost, second.total_cost, second.cost_per_unit) == snapshot


def test_confirm_batch_sets_status_timestamp_and_actor(costing_service, draft_batch, events):
    batch = costing_service.confirm_batch(draft_batch.id, actor_id=ACTOR_ID)

    assert batch.status == BatchStatus.CONFIRMED.value
    assert batch.confirmed_at == NOW
    assert batch.confirmed_by == ACTOR_ID
    assert any(e.action == "status_changed" and e.new_status == "CONFIRMED" for e in events)


def test_confirm_batch_twice_is_rejected(costing_service, draft_batch):
    costing_service.confirm_batch(draft_batch.id, actor_id=ACTOR_ID)
    with pytest.raises(BusinessRuleViolationException, match="already confirmed"):
        costing_service.confirm_batch(draft_batch.id, actor_id=ACTOR_ID)


def test_confirm_cancelled_batch_is_rejected(costing_service, batch_service, draft_batch):
    batch_service.cancel_batch(draft_batch.id)
    with pytest.raises(BusinessRuleViolationException, match="cancelled"):
        costing_service.confirm_batch(draft_batch.id, actor_id=ACTOR_ID)


def test_confirm_unknown_batch(costing_service):
    with pytest.raises(EntityNotFoundException):
        costing_service.confirm_batch(9999, actor_id=ACTOR_ID)


def test_confirmed_batch_costs_are_immutable(costing_service, draft_batch, cost_type):
    batch = costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("10.00"))
    item_id = batch.landed_cost_items[0].id
    costing_service.confirm_batch(draft_batch.id, actor_id=ACTOR_ID)

    with pytest.raises(ForbiddenOperationException):
        costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("1"))
    with pytest.raises(ForbiddenOperationException):
        costing_service.update_landed_cost_item(item_id, {"amount": Decimal("1")})
    with pytest.raises(ForbiddenOperationException):
        costing_service.remove_landed_cost_item(item_id)
    with pytest.raises(ForbiddenOperationException):
        costing_service.recalculate_batch_costs(draft_batch.id)

    batch = costing_service.get_batch(draft_batch.id)
    assert Decimal(str(batch.total_cost)) == Decimal("160.00")
    assert len(batch.landed_cost_items) == 1


def test_cancelled_batch_costs_are_immutable(costing_service, batch_service, draft_batch, cost_type):
    batch = costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("10.00"))
    item_id = batch.landed_cost_items[0].id
    batch_service.cancel_batch(draft_batch.id)

    with pytest.raises(ForbiddenOperationException, match="cancelled"):
        costing_service.add_landed_cost_item(draft_batch.id, cost_type.id, Decimal("50"))
    with pytest.raises(ForbiddenOperationException):
        costing_service.update_landed_cost_item(item_id, {"amount": Decimal("1")})
    with pytest.raises(ForbiddenOperationException):
        costing_service.remove_landed_cost_item(item_id)
    with pytest.raises(ForbiddenOperationException):
        costing_service.recalculate_batch_costs(draft_batch.id)

    batch = costing_service.get_batch(draft_batch.id)
    assert batch.status == BatchStatus.CANCELLED.value
    assert Decimal(str(batch.total_cost)) == Decimal("160.00")
    assert len(batch.landed_cost_items) == 1
