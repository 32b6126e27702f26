"""
Module: budget_engines.summary
Responsibility:
    Headline figures over a set of brand distribution results: total
    budget, brand count, largest brand, unique clients, average per client
    and, optionally, one vendor's share of the overall budget.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from budget_kernel.domain.models import BrandDistributionResult, BudgetSummary
from budget_kernel.domain.values import ZERO, percentage_of


def summarize(
    results: Iterable[BrandDistributionResult],
    vendor: str | None = None,
    overall_total: Decimal | None = None,
) -> BudgetSummary:
    """
    Summarize ``results``.

    ``top_brand`` is the result with the largest target amount; the first
    one wins a tie.  ``overall_total`` is the denominator of the vendor
    share and defaults to the summed target amounts.
    """
    results = tuple(results)
    total = sum((r.target_amount for r in results), ZERO)

    top: BrandDistributionResult | None = None
    for result in results:
        if top is None or result.target_amount > top.target_amount:
            top = result

    clients = {c.client for r in results for c in r.clients}
    average = total / len(clients) if clients else ZERO

    summary = BudgetSummary(
        total=total,
        brand_count=len(results),
        top_brand=top.brand if top else None,
        unique_clients=len(clients),
        average_per_client=average,
    )
    if vendor is None:
        return summary

    vendor_total = sum(
        (c.subtotal for r in results for c in r.clients if c.vendor == vendor),
        ZERO,
    )
    denominator = total if overall_total is None else overall_total
    return BudgetSummary(
        total=summary.total,
        brand_count=summary.brand_count,
        top_brand=summary.top_brand,
        unique_clients=summary.unique_clients,
        average_per_client=summary.average_per_client,
        vendor=vendor,
        vendor_total=vendor_total,
        vendor_share_percent=percentage_of(vendor_total, denominator),
    )
