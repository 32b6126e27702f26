"""
Module: budget_engines.aggregation
Responsibility:
    Group historical sales by composite keys and normalize sums into
    per-period averages.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``sum_by_key`` preserves first-encounter order of keys.
    - Period dilution: averages divide by the number of *requested*
      reference periods, not by the number of periods that had sales.
    - Brand and company matching is case- and whitespace-insensitive.

Failure modes:
    - ValueError when ``period_count`` is below 1.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from decimal import Decimal

from budget_kernel.domain.models import SalesRecord, normalize_name
from budget_kernel.domain.values import ZERO

KeyFn = Callable[[SalesRecord], Hashable]


def sum_by_key(records: Iterable[SalesRecord], key_fn: KeyFn) -> dict[Hashable, Decimal]:
    """Sum ``amount`` per ``key_fn(record)``; keys keep first-encounter order."""
    totals: dict[Hashable, Decimal] = {}
    for record in records:
        key = key_fn(record)
        totals[key] = totals.get(key, ZERO) + record.amount
    return totals


def period_average(total: Decimal, period_count: int) -> Decimal:
    """``total / period_count`` over the requested reference window."""
    if period_count < 1:
        raise ValueError(f"period_count must be at least 1, got {period_count}")
    return total / Decimal(period_count)


def filter_records(
    records: Iterable[SalesRecord],
    brand: str,
    company: str,
    periods: Iterable[str],
) -> list[SalesRecord]:
    """Records for one brand and company inside the reference window."""
    brand_key = normalize_name(brand)
    company_key = normalize_name(company)
    period_keys = frozenset(periods)
    return [
        r for r in records
        if r.period in period_keys
        and normalize_name(r.brand) == brand_key
        and normalize_name(r.company) == company_key
    ]


# Key helper

def by_client_article(record: SalesRecord) -> tuple[str, str]:
    return (record.client, record.article)
