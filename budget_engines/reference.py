"""
Module: budget_engines.reference
Responsibility:
    Expand a requested month range, or an explicit checklist of months,
    into the ordered ``ReferencePeriodSet`` that every average in a
    calculation run is divided by.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Does not decide *which* months count as reference; callers supply the
    selection, this module only validates it against the period catalog.

Invariants enforced:
    - Output follows catalog order (newest first), has no duplicates and
      holds at least one period.
    - A range is inclusive and insensitive to which endpoint the caller
      called "start".

Failure modes:
    - InvalidPeriodError when an endpoint or a selected period is not in
      the catalog, or when nothing was requested at all.
    - ValueError when the catalog itself contains duplicates.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from budget_kernel.domain.models import ReferencePeriodSet
from budget_kernel.exceptions import InvalidPeriodError
from budget_kernel.logging_config import get_logger

logger = get_logger("engines.reference")


def _catalog_index(catalog: Sequence[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for i, period in enumerate(catalog):
        if period in index:
            raise ValueError(f"Period catalog has duplicate entry: {period!r}")
        index[period] = i
    return index


def resolve_range(
    catalog: Sequence[str],
    start: str | None = None,
    end: str | None = None,
) -> ReferencePeriodSet:
    """
    Resolve an inclusive range of periods from a newest-first catalog.

    If only one endpoint is given the other defaults to it.  Endpoints may
    be passed in either order.

    Raises:
        InvalidPeriodError: If neither endpoint is given or an endpoint is
            missing from the catalog.
    """
    if start is None and end is None:
        raise InvalidPeriodError(None, reason="no reference period requested")
    if start is None:
        start = end
    if end is None:
        end = start

    index = _catalog_index(catalog)
    for endpoint in (start, end):
        if endpoint not in index:
            logger.warning("reference_period_not_in_catalog", extra={
                "period": endpoint,
                "catalog_size": len(catalog),
            })
            raise InvalidPeriodError(endpoint)

    lo, hi = sorted((index[start], index[end]))
    periods = ReferencePeriodSet(tuple(catalog[lo:hi + 1]))
    logger.debug("reference_range_resolved", extra={
        "start": start,
        "end": end,
        "period_count": len(periods),
    })
    return periods


def resolve_selection(
    catalog: Sequence[str],
    selected: Iterable[str],
) -> ReferencePeriodSet:
    """
    Resolve an explicit checklist of periods.

    Duplicates in ``selected`` are dropped and the result follows catalog
    order, not selection order.

    Raises:
        InvalidPeriodError: If the selection is empty or names a period
            that is not in the catalog.
    """
    index = _catalog_index(catalog)
    chosen = set()
    for period in selected:
        if period not in index:
            logger.warning("reference_period_not_in_catalog", extra={
                "period": period,
                "catalog_size": len(catalog),
            })
            raise InvalidPeriodError(period)
        chosen.add(period)

    if not chosen:
        raise InvalidPeriodError(None, reason="no reference period selected")

    return ReferencePeriodSet(tuple(p for p in catalog if p in chosen))
