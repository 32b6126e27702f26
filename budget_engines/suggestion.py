"""
Module: budget_engines.suggestion
Responsibility:
    Suggest how a company-wide total budget should be split across brands,
    using previously recorded brand budgets as weights.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  One call into the
    ProportionalAllocator.

Invariants enforced:
    - Suggestions are ordered by historical weight, largest first; ties
      keep first-encounter order.  The smallest brand absorbs the
      rounding residual.
    - ``sum(amount) == total`` exactly.
    - No history, or history that nets to zero, falls back to an equal
      split over the brand master list.

Failure modes:
    - ValueError when ``total`` is not positive.
    - NoDistributionTargetsError when there is neither history nor a
      brand master list to split over.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from budget_engines.allocation import AllocationResult, ProportionalAllocator
from budget_engines.tracer import traced_engine
from budget_kernel.domain.models import BrandSuggestion, HistoricalBudget, normalize_name
from budget_kernel.domain.values import DEFAULT_DECIMAL_PLACES, ZERO, to_decimal
from budget_kernel.exceptions import NoDistributionTargetsError
from budget_kernel.logging_config import get_logger

logger = get_logger("engines.suggestion")


@traced_engine("suggestion", "1.0", fingerprint_fields=("total", "company"))
def suggest_brand_distribution(
    total: Decimal,
    company: str,
    historical_budgets: Iterable[HistoricalBudget],
    brands: Iterable[str] = (),
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> list[BrandSuggestion]:
    """
    Split ``total`` across brands by their historical budget share.

    Args:
        total: Company-wide budget to split; must be positive.
        company: Company whose history is used (case-insensitive).
        historical_budgets: Previously recorded brand budgets.
        brands: Brand master list, used for the equal-split fallback.

    Returns:
        One BrandSuggestion per brand, largest share first.
    """
    total = to_decimal(total)
    if total <= ZERO:
        raise ValueError(f"Suggested budget total must be positive, got {total}")

    company_key = normalize_name(company)
    weights: dict[str, Decimal] = {}
    display: dict[str, str] = {}
    record_count = 0
    for budget in historical_budgets:
        if normalize_name(budget.company) != company_key:
            continue
        key = normalize_name(budget.brand)
        display.setdefault(key, budget.brand)
        weights[key] = weights.get(key, ZERO) + budget.amount
        record_count += 1

    allocator = ProportionalAllocator(decimal_places)
    history_total = sum(weights.values(), ZERO)

    if weights and history_total != ZERO:
        ordered = sorted(weights.items(), key=lambda kv: kv[1], reverse=True)
        result = allocator.allocate(
            total=total,
            weights=[(display[key], weight) for key, weight in ordered],
        )
        logger.info("brand_suggestion_from_history", extra={
            "company": company,
            "record_count": record_count,
            "brand_count": len(ordered),
        })
    else:
        master = list(dict.fromkeys(brands))
        if not master:
            raise NoDistributionTargetsError(total, f"no brands to suggest for {company!r}")
        logger.warning("brand_suggestion_equal_split", extra={
            "company": company,
            "record_count": record_count,
            "brand_count": len(master),
        })
        result = allocator.allocate_equal(total, master)

    return _to_suggestions(result, company)


def _to_suggestions(result: AllocationResult, company: str) -> list[BrandSuggestion]:
    return [
        BrandSuggestion(
            brand=line.key,
            company=company,
            percentage=line.percentage,
            amount=line.amount,
        )
        for line in result.lines
    ]
