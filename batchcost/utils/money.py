"""
Decimal helpers shared by costing and allocation.

Monetary sums are kept at 2 decimal places and unit costs at 4, both rounded
half-up. Binary floats never enter these calculations.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

MONEY_PLACES = Decimal("0.01")
UNIT_COST_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_unit_cost(value: Any) -> Decimal:
    return to_decimal(value).quantize(UNIT_COST_PLACES, rounding=ROUND_HALF_UP)
