"""
Module: budget_engines.locked_field
Responsibility:
    Derive the non-authoritative half of an (amount, percentage) pair from
    the half the user locked.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The derived field is always a pure function of the locked value and
      the total, so editing one field never leaves the other stale.
    - A zero total yields a zero percentage instead of a division error.
    - Derived amounts are rounded ROUND_HALF_UP to the currency precision;
      derived percentages keep full precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from budget_kernel.domain.models import LockedField
from budget_kernel.domain.values import (
    DEFAULT_DECIMAL_PLACES,
    HUNDRED,
    percentage_of,
    round_amount,
    to_decimal,
)


@dataclass(frozen=True)
class ResolvedShare:
    """Amount and percentage with the authoritative field recorded."""

    amount: Decimal
    percentage: Decimal
    locked_field: LockedField


def resolve(
    total: Decimal,
    field: LockedField | str,
    value: Decimal,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> ResolvedShare:
    """
    Resolve an (amount, percentage) pair against ``total``.

    Args:
        total: The budget both fields are relative to.
        field: Which field ``value`` sets.
        value: The user-entered amount or percentage.

    Raises:
        ValueError: If ``field`` is not a LockedField value or ``value`` is
            not a number.
    """
    field = LockedField(field)
    total = to_decimal(total)
    value = to_decimal(value)

    match field:
        case LockedField.AMOUNT:
            return ResolvedShare(
                amount=value,
                percentage=percentage_of(value, total),
                locked_field=field,
            )
        case LockedField.PERCENTAGE:
            return ResolvedShare(
                amount=round_amount(total * value / HUNDRED, decimal_places, ROUND_HALF_UP),
                percentage=value,
                locked_field=field,
            )
