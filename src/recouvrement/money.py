"""Decimal helpers for currency amounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a NUMERIC(14, 2) column holds.
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value: object) -> Decimal:
    """Coerce *value* to a Decimal rounded half-up to cents.

    Floats are routed through ``str`` so ``0.1`` becomes ``0.10`` rather than
    its binary expansion. ``None`` is treated as zero. Anything that is not a
    finite number, or too large to carry cents, raises ``ValueError``.
    """

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"not a monetary amount: {value!r}")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"monetary amount out of range: {value!r}") from exc


def fits_column(amount: Decimal) -> bool:
    """Whether *amount* can be stored in a ``NUMERIC(14, 2)`` column."""

    return -MAX_AMOUNT <= amount <= MAX_AMOUNT


def total(amounts: Iterable[object]) -> Decimal:
    return sum((to_money(amount) for amount in amounts), ZERO)


def recovery_rate(paid: Decimal, owed: Decimal) -> Decimal:
    """Percentage of *owed* already recovered, two decimals."""

    if owed <= 0:
        return ZERO
    return (paid / owed * 100).quantize(CENT, rounding=ROUND_HALF_UP)
