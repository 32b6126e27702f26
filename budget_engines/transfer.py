"""
Module: budget_engines.transfer
Responsibility:
    Move budget between two clients of a brand result (TRANSFER), or top
    up one client without taking it from another (ADD).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Operates on a BrandDistributionResult and returns a new one; the
    input is never mutated.

Invariants enforced:
    - TRANSFER keeps the brand total unchanged.
    - ADD grows the brand total by ``amount`` and recomputes the
      adjustment factor and percent change against the unchanged
      historical average.
    - A delta is spread over the client's articles in proportion to their
      current adjusted amounts (negative amounts carry no weight), with
      exact sums.

Failure modes:
    - InvalidTransferError on a non-positive amount, identical source and
      target, a client missing from the result, or an amount larger than
      the source client's subtotal.  The cap applies in ADD mode too,
      although ADD leaves the source untouched.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from enum import Enum

from budget_engines.allocation import ProportionalAllocator
from budget_kernel.domain.models import (
    BrandDistributionResult,
    ClientDistribution,
)
from budget_kernel.domain.values import DEFAULT_DECIMAL_PLACES, HUNDRED, ZERO, to_decimal
from budget_kernel.exceptions import InvalidTransferError
from budget_kernel.logging_config import get_logger

logger = get_logger("engines.transfer")


class TransferMode(str, Enum):
    """How a client budget change affects the source client."""

    TRANSFER = "transfer"  # Subtract from source, add to target
    ADD = "add"  # Add to target only


def _shift(
    client: ClientDistribution,
    delta: Decimal,
    allocator: ProportionalAllocator,
) -> ClientDistribution:
    """Spread ``delta`` (either sign) over the client's articles."""
    weights = [(i, max(a.adjusted_amount, ZERO)) for i, a in enumerate(client.articles)]
    shares = allocator.allocate(total=abs(delta), weights=weights).as_dict()
    sign = 1 if delta >= ZERO else -1
    articles = tuple(
        replace(article, adjusted_amount=article.adjusted_amount + sign * shares[i])
        for i, article in enumerate(client.articles)
    )
    return replace(client, articles=articles)


def transfer_budget(
    result: BrandDistributionResult,
    source: str,
    target: str,
    amount: Decimal,
    mode: TransferMode | str = TransferMode.TRANSFER,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> BrandDistributionResult:
    """
    Move or add ``amount`` of budget from ``source`` to ``target``.

    Returns:
        A new BrandDistributionResult with both clients updated.

    Raises:
        InvalidTransferError: If the request fails validation.
    """
    mode = TransferMode(mode)
    amount = to_decimal(amount)

    def reject(reason: str) -> InvalidTransferError:
        logger.warning("client_transfer_rejected", extra={
            "brand": result.brand,
            "source": source,
            "target": target,
            "amount": str(amount),
            "mode": mode.value,
            "reason": reason,
        })
        return InvalidTransferError(result.brand, source, target, reason)

    if amount <= ZERO:
        raise reject("amount must be positive")
    if source == target:
        raise reject("source and target clients must differ")
    source_client = result.client(source)
    target_client = result.client(target)
    if source_client is None:
        raise reject(f"client {source!r} not in result")
    if target_client is None:
        raise reject(f"client {target!r} not in result")
    if amount > source_client.subtotal:
        raise reject(f"amount exceeds source budget {source_client.subtotal}")

    allocator = ProportionalAllocator(decimal_places)
    updated = {target: _shift(target_client, amount, allocator)}
    if mode == TransferMode.TRANSFER:
        updated[source] = _shift(source_client, -amount, allocator)

    clients = tuple(updated.get(c.client, c) for c in result.clients)
    new_result = replace(result, clients=clients)

    if mode == TransferMode.ADD:
        target_amount = result.target_amount + amount
        factor = target_amount / result.historical_average
        new_result = replace(
            new_result,
            target_amount=target_amount,
            adjustment_factor=factor,
            percent_change=(factor - 1) * HUNDRED,
        )

    logger.info("client_transfer_applied", extra={
        "brand": result.brand,
        "source": source,
        "target": target,
        "amount": str(amount),
        "mode": mode.value,
        "target_amount": str(new_result.target_amount),
    })
    return new_result

