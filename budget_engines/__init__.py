"""
Module: budget_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ``budget_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import budget_kernel (domain, exceptions, logging) and
    sibling engine modules.  MUST NOT import budget_services.

Invariants enforced:
    - Purity: engines never read the clock or touch storage.  Target
      dates and master lists are passed in by the caller.
    - Decimal-only arithmetic: floats are forbidden for money.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entrypoints are traced via ``@traced_engine`` (see
    ``budget_engines.tracer``), emitting BUDGET_ENGINE_TRACE log records
    with engine name, version, input fingerprint and duration.

Usage:
    from budget_engines.reference import resolve_range
    from budget_engines.distribution import BudgetDistributionCalculator
    from budget_engines.reconciliation import VendorRedistributionSession
    from budget_engines.suggestion import suggest_brand_distribution
"""

from budget_engines.aggregation import (
    by_client_article,
    filter_records,
    period_average,
    sum_by_key,
)
from budget_engines.allocation import (
    AllocationLine,
    AllocationMethod,
    AllocationResult,
    ProportionalAllocator,
    split_by_ratio,
)
from budget_engines.distribution import BudgetDistributionCalculator
from budget_engines.locked_field import ResolvedShare, resolve
from budget_engines.reconciliation import (
    ReconciliationOutcome,
    VendorRedistributionSession,
    vendor_snapshot,
)
from budget_engines.reference import resolve_range, resolve_selection
from budget_engines.suggestion import suggest_brand_distribution
from budget_engines.summary import summarize
from budget_engines.tracer import traced_engine
from budget_engines.transfer import TransferMode, transfer_budget

__all__ = [
    # Aggregation
    "by_client_article",
    "filter_records",
    "period_average",
    "sum_by_key",
    # Allocation
    "AllocationLine",
    "AllocationMethod",
    "AllocationResult",
    "ProportionalAllocator",
    "split_by_ratio",
    # Distribution
    "BudgetDistributionCalculator",
    # Locked field
    "ResolvedShare",
    "resolve",
    # Reconciliation
    "ReconciliationOutcome",
    "VendorRedistributionSession",
    "vendor_snapshot",
    # Reference periods
    "resolve_range",
    "resolve_selection",
    # Suggestion, summary, transfer
    "suggest_brand_distribution",
    "summarize",
    "TransferMode",
    "transfer_budget",
    # Tracing
    "traced_engine",
]
