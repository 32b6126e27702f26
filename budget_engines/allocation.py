"""
Module: budget_engines.allocation
Responsibility:
    Split a monetary total across keyed weights with deterministic rounding
    and an exact sum.  This is the single weighted-split primitive reused
    by brand suggestion, client/article distribution, client transfers and
    vendor redistribution.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import budget_kernel.domain and sibling engine modules.

Invariants enforced:
    - Exactness: ``sum(line.amount) == total`` to the last digit.  Every
      line but the last is quantized toward zero; the last line receives
      ``total - sum(previous)``.
    - Non-negativity: with ``total >= 0`` and all weights ``>= 0`` no line
      is negative (truncation never overshoots, so the residual is >= 0).
    - Order: output lines follow input order.
    - Zero-weight fallback: a non-empty input whose weights sum to zero is
      split equally.

Failure modes:
    - ValueError on a negative weight (``allocate``).
    - ValueError on a zero weight sum (``split_by_ratio``).

Usage:
    from budget_engines.allocation import ProportionalAllocator

    allocator = ProportionalAllocator(decimal_places=2)
    result = allocator.allocate(
        total=Decimal("100"),
        weights={"A": Decimal("1"), "B": Decimal("1"), "C": Decimal("1")},
    )
    result.as_dict()  # {"A": Decimal("33.33"), "B": Decimal("33.33"), "C": Decimal("33.34")}
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from enum import Enum

from budget_engines.tracer import traced_engine
from budget_kernel.domain.values import (
    DEFAULT_DECIMAL_PLACES,
    HUNDRED,
    ZERO,
    quantum_for,
    to_decimal,
)
from budget_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")

WeightInput = Mapping[Hashable, Decimal] | Iterable[tuple[Hashable, Decimal]]


class AllocationMethod(str, Enum):
    """Method used to produce an allocation."""

    WEIGHTED = "weighted"  # By weight / sum(weights)
    EQUAL = "equal"  # Split evenly (zero-weight fallback)


@dataclass(frozen=True)
class AllocationLine:
    """
    Result of allocation to a single key.

    Guarantees:
        - ``ratio`` is the unrounded share of the total.
        - ``amount`` is quantized to the currency precision.
    """

    key: Hashable
    weight: Decimal
    ratio: Decimal
    amount: Decimal

    @property
    def percentage(self) -> Decimal:
        return self.ratio * HUNDRED


@dataclass(frozen=True)
class AllocationResult:
    """
    Complete allocation result.

    Guarantees:
        - ``total_allocated == total`` whenever ``lines`` is non-empty.
        - ``rounding_adjustment`` is what the residual line received on
          top of its exact share.
    """

    total: Decimal
    method: AllocationMethod
    lines: tuple[AllocationLine, ...]
    rounding_adjustment: Decimal = ZERO

    @property
    def total_allocated(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def as_dict(self) -> dict[Hashable, Decimal]:
        """Key -> amount, in input order."""
        return {line.key: line.amount for line in self.lines}

    def amount_for(self, key: Hashable) -> Decimal:
        for line in self.lines:
            if line.key == key:
                return line.amount
        raise KeyError(key)


def _normalize_weights(weights: WeightInput) -> list[tuple[Hashable, Decimal]]:
    items = weights.items() if isinstance(weights, Mapping) else weights
    return [(key, to_decimal(weight)) for key, weight in items]


def _allocate_by_ratio(
    total: Decimal,
    pairs: list[tuple[Hashable, Decimal]],
    weight_of: Callable[[Decimal], Decimal],
    weight_sum: Decimal,
    method: AllocationMethod,
    decimal_places: int,
) -> AllocationResult:
    """Common logic for ratio-based allocations.

    Preconditions:
        - ``pairs`` is non-empty.
        - ``weight_sum`` is the non-zero sum of ``weight_of`` over ``pairs``.
    Postconditions:
        - Sum of all line amounts == ``total`` (the last line absorbs the
          truncation residual).
    """
    quantum = quantum_for(decimal_places)
    lines: list[AllocationLine] = []
    allocated_so_far = ZERO
    last_index = len(pairs) - 1
    rounding_adjustment = ZERO

    for i, (key, weight) in enumerate(pairs):
        ratio = weight_of(weight) / weight_sum
        share = total * weight_of(weight) / weight_sum
        if i == last_index:
            amount = total - allocated_so_far
            rounding_adjustment = amount - share
        else:
            amount = share.quantize(quantum, rounding=ROUND_DOWN)
            allocated_so_far += amount
        lines.append(AllocationLine(key=key, weight=weight, ratio=ratio, amount=amount))

    return AllocationResult(
        total=total,
        method=method,
        lines=tuple(lines),
        rounding_adjustment=rounding_adjustment,
    )


def split_by_ratio(
    total: Decimal,
    weights: WeightInput,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> AllocationResult:
    """
    Split ``total`` by ``weight / sum(weights)`` with exact residual absorption.

    Unlike ``ProportionalAllocator.allocate`` the weights may carry either
    sign (net historical sales can be negative for a single article), as
    long as they do not sum to zero.

    Raises:
        ValueError: If the weights sum to zero.
    """
    total = to_decimal(total)
    pairs = _normalize_weights(weights)
    if not pairs:
        return AllocationResult(total=total, method=AllocationMethod.WEIGHTED, lines=())
    weight_sum = sum((w for _, w in pairs), ZERO)
    if weight_sum == ZERO:
        raise ValueError("Cannot split by ratio: weights sum to zero")
    return _allocate_by_ratio(
        total,
        pairs,
        weight_of=lambda w: w,
        weight_sum=weight_sum,
        method=AllocationMethod.WEIGHTED,
        decimal_places=decimal_places,
    )


class ProportionalAllocator:
    """
    Weighted proportional split with exact sums.

    Contract:
        Pure function of (total, weights) with deterministic rounding.
        No I/O, no database access.
    Guarantees:
        - Rounding Strategy:
            * Shares are computed as total * weight / sum(weights) at full
              precision.
            * Non-residual lines are truncated toward zero to
              ``decimal_places``.
            * The last line absorbs the residual, so the lines sum to
              ``total`` exactly.
        - Weights summing to zero fall back to an equal split.
        - Empty weights produce an empty result; callers that needed to
          place a non-zero total raise ``NoDistributionTargetsError``.
    """

    def __init__(self, decimal_places: int = DEFAULT_DECIMAL_PLACES):
        quantum_for(decimal_places)
        self.decimal_places = decimal_places

    @traced_engine("allocation", "1.0", fingerprint_fields=("total", "weights"))
    def allocate(self, total: Decimal, weights: WeightInput) -> AllocationResult:
        """
        Allocate ``total`` across ``weights``.

        Args:
            total: Amount to split.
            weights: Mapping (or ordered pairs) of key -> non-negative weight.

        Returns:
            AllocationResult with one line per key, in input order.

        Raises:
            ValueError: If any weight is negative.
        """
        total = to_decimal(total)
        pairs = _normalize_weights(weights)

        logger.debug("allocation_started", extra={
            "total": str(total),
            "key_count": len(pairs),
        })

        for key, weight in pairs:
            if weight < ZERO:
                logger.error("allocation_negative_weight", extra={
                    "key": str(key),
                    "weight": str(weight),
                })
                raise ValueError(f"Weight cannot be negative for {key!r}: {weight}")

        if not pairs:
            logger.debug("allocation_no_targets", extra={"total": str(total)})
            return AllocationResult(total=total, method=AllocationMethod.WEIGHTED, lines=())

        weight_sum = sum((w for _, w in pairs), ZERO)
        if weight_sum == ZERO:
            count = Decimal(len(pairs))
            result = _allocate_by_ratio(
                total,
                pairs,
                weight_of=lambda w: Decimal("1"),
                weight_sum=count,
                method=AllocationMethod.EQUAL,
                decimal_places=self.decimal_places,
            )
        else:
            result = _allocate_by_ratio(
                total,
                pairs,
                weight_of=lambda w: w,
                weight_sum=weight_sum,
                method=AllocationMethod.WEIGHTED,
                decimal_places=self.decimal_places,
            )

        logger.debug("allocation_completed", extra={
            "method": result.method.value,
            "total": str(total),
            "total_allocated": str(result.total_allocated),
            "rounding_adjustment": str(result.rounding_adjustment),
            "line_count": len(result.lines),
        })
        return result

    def allocate_equal(self, total: Decimal, keys: Iterable[Hashable]) -> AllocationResult:
        """Convenience method for an equal split across ``keys``."""
        return self.allocate(total=total, weights=[(key, ZERO) for key in keys])
