"""
Values -- Decimal helpers shared by every budget calculation.

Responsibility:
    Normalizes incoming numbers to ``Decimal`` and derives rounding quanta
    from the configured number of currency decimal places. Every engine
    goes through these helpers instead of calling ``Decimal.quantize``
    with hand-written exponents.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by domain records and engines. No outward dependencies.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str`` so the
      printed representation is preserved, never the binary one.
    - The rounding quantum is always derived from ``decimal_places``,
      never hardcoded at call sites.

Failure modes:
    - ValueError when a value cannot be interpreted as a number.
    - ValueError on negative ``decimal_places``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_DECIMAL_PLACES = 2


def to_decimal(value: Decimal | str | int | float) -> Decimal:
    """
    Convert a value to ``Decimal``.

    Preconditions:
        - value is a Decimal, int, str or float.
    Postconditions:
        - Returns a finite Decimal.
    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def quantum_for(decimal_places: int) -> Decimal:
    """Smallest currency unit for ``decimal_places`` (2 -> Decimal('0.01'))."""
    if decimal_places < 0:
        raise ValueError(f"decimal_places cannot be negative: {decimal_places}")
    return Decimal(10) ** -decimal_places


def round_amount(
    amount: Decimal,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """Round an amount to the currency precision."""
    return amount.quantize(quantum_for(decimal_places), rounding=rounding)


def percentage_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100``; zero when ``whole`` is zero."""
    if whole == ZERO:
        return ZERO
    return part / whole * HUNDRED
