"""
Order total calculation.

Every code path that changes order lines stores the result of
:func:`recompute_total`, so ``orders.total_amount`` always equals the sum of
``price * quantity`` over the order's current lines.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

CENT = Decimal("0.01")


class PricedLine(Protocol):
    price: Decimal
    quantity: int


def quantize(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, ROUND_HALF_UP)


def line_total(price: Decimal | float | int, quantity: int) -> Decimal:
    return quantize(Decimal(str(price)) * quantity)


def recompute_total(lines: Iterable[PricedLine]) -> Decimal:
    """Sum of ``price * quantity`` over the given order lines."""
    return quantize(sum((line_total(line.price, line.quantity) for line in lines), Decimal("0")))
