"""
Pure domain layer.

Immutable budget records and Decimal helpers with NO dependencies on
SQLAlchemy, the database, the clock or any I/O.
"""

from budget_kernel.domain.models import (
    AllocationError,
    ArticleDistribution,
    BrandBudgetRequest,
    BrandDistributionResult,
    BrandSuggestion,
    BudgetSummary,
    ClientDistribution,
    DistributionBatch,
    ErrorKind,
    HistoricalBudget,
    LockedField,
    ReferencePeriodSet,
    SalesRecord,
    VendorAdjustment,
    VendorShare,
    normalize_name,
)
from budget_kernel.domain.values import (
    HUNDRED,
    ZERO,
    percentage_of,
    quantum_for,
    round_amount,
    to_decimal,
)

__all__ = [
    "AllocationError",
    "ArticleDistribution",
    "BrandBudgetRequest",
    "BrandDistributionResult",
    "BrandSuggestion",
    "BudgetSummary",
    "ClientDistribution",
    "DistributionBatch",
    "ErrorKind",
    "HistoricalBudget",
    "LockedField",
    "ReferencePeriodSet",
    "SalesRecord",
    "VendorAdjustment",
    "VendorShare",
    "normalize_name",
    "HUNDRED",
    "ZERO",
    "percentage_of",
    "quantum_for",
    "round_amount",
    "to_decimal",
]
