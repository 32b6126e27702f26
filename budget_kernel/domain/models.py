"""
Budget Domain Models (``budget_kernel.domain.models``).

Responsibility
--------------
Dataclass records representing the nouns of brand budget allocation:
budget requests, historical sales, reference windows, per-client and
per-article distributions, collected allocation errors, and the vendor
adjustment working state used during manual redistribution.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Consumed by
every engine in ``budget_engines`` and by ``budget_services``.

Invariants enforced
-------------------
* Every record except ``VendorAdjustment`` is ``frozen=True``.
* All monetary fields are ``Decimal`` -- NEVER ``float``.
* ``ClientDistribution.subtotal`` is derived from its articles, so it can
  never drift from ``sum(adjusted_amount)``.
* ``ReferencePeriodSet`` is non-empty and duplicate-free.
* ``VendorAdjustment.locked_field`` is a ``LockedField`` or ``None``;
  exactly one of amount/percentage is authoritative when it is set.

Failure modes
-------------
* Construction with a negative target amount, an empty or duplicated
  reference window, or a non-numeric amount raises ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from budget_kernel.domain.values import ZERO, to_decimal


def normalize_name(value: str) -> str:
    """Case- and whitespace-insensitive key for master-data matching."""
    return " ".join(value.split()).casefold()


class ErrorKind(str, Enum):
    """Failure categories shared by every allocation path."""

    INVALID_PERIOD = "invalid_period"
    UNKNOWN_BRAND = "unknown_brand"
    UNKNOWN_COMPANY = "unknown_company"
    NO_HISTORICAL_SALES = "no_historical_sales"
    ZERO_AVERAGE = "zero_average"
    NO_DISTRIBUTION_TARGETS = "no_distribution_targets"
    RECONCILIATION_MISMATCH = "reconciliation_mismatch"


class LockedField(str, Enum):
    """Which of amount/percentage the user is editing."""

    AMOUNT = "amount"
    PERCENTAGE = "percentage"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrandBudgetRequest:
    """A target budget for one (brand, company, target date)."""

    brand: str
    company: str
    target_date: date
    target_amount: Decimal

    def __post_init__(self) -> None:
        amount = to_decimal(self.target_amount)
        if amount < ZERO:
            raise ValueError(
                f"Target amount cannot be negative for brand {self.brand!r}: {amount}"
            )
        object.__setattr__(self, "target_amount", amount)


@dataclass(frozen=True)
class SalesRecord:
    """One historical sales fact. Never mutated by the engine."""

    period: str
    brand: str
    client: str
    article: str
    vendor: str
    company: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(frozen=True)
class ReferencePeriodSet:
    """
    Ordered, duplicate-free set of reference period keys.

    Guarantees:
        - At least one period.
        - Order is the catalog order the resolver produced.
    """

    periods: tuple[str, ...]

    def __post_init__(self) -> None:
        periods = tuple(self.periods)
        if not periods:
            raise ValueError("Reference period set cannot be empty")
        if len(set(periods)) != len(periods):
            raise ValueError(f"Reference period set has duplicates: {periods}")
        object.__setattr__(self, "periods", periods)

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self) -> Iterator[str]:
        return iter(self.periods)

    def __contains__(self, period: object) -> bool:
        return period in self.periods


@dataclass(frozen=True)
class HistoricalBudget:
    """A previously recorded brand budget, used as a suggestion weight."""

    brand: str
    company: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


# ---------------------------------------------------------------------------
# Distribution results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArticleDistribution:
    """Adjusted budget for one (client, article)."""

    article: str
    historical_average: Decimal
    adjusted_amount: Decimal

    @property
    def variance(self) -> Decimal:
        return self.adjusted_amount - self.historical_average


@dataclass(frozen=True)
class ClientDistribution:
    """All article distributions for one client of a brand."""

    client: str
    vendor: str
    company: str
    articles: tuple[ArticleDistribution, ...]

    @property
    def subtotal(self) -> Decimal:
        return sum((a.adjusted_amount for a in self.articles), ZERO)

    @property
    def historical_average(self) -> Decimal:
        return sum((a.historical_average for a in self.articles), ZERO)


@dataclass(frozen=True)
class BrandDistributionResult:
    """
    Full client/article breakdown of one brand budget.

    Guarantees:
        - ``adjustment_factor == target_amount / historical_average``.
        - ``percent_change == (adjustment_factor - 1) * 100``.
        - ``distributed_total`` equals ``target_amount`` (exact residual
          absorption by the calculator).
    """

    brand: str
    company: str
    target_date: date
    target_amount: Decimal
    historical_average: Decimal
    adjustment_factor: Decimal
    percent_change: Decimal
    clients: tuple[ClientDistribution, ...]

    @property
    def distributed_total(self) -> Decimal:
        return sum((c.subtotal for c in self.clients), ZERO)

    @property
    def vendors(self) -> tuple[str, ...]:
        """Vendors in first-encounter order."""
        return tuple(dict.fromkeys(c.vendor for c in self.clients))

    def client(self, name: str) -> ClientDistribution | None:
        for c in self.clients:
            if c.client == name:
                return c
        return None


@dataclass(frozen=True)
class AllocationError:
    """A non-fatal failure attached to one budget request."""

    kind: ErrorKind
    brand: str
    company: str
    target_date: date | None
    message: str

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        request: BrandBudgetRequest | None = None,
    ) -> AllocationError:
        """Build a record from a kernel exception carrying ``kind``."""
        return cls(
            kind=getattr(exc, "kind"),
            brand=request.brand if request else getattr(exc, "brand", ""),
            company=request.company if request else getattr(exc, "company", ""),
            target_date=request.target_date if request else None,
            message=str(exc),
        )


@dataclass(frozen=True)
class DistributionBatch:
    """Results and collected errors of one calculation run."""

    results: tuple[BrandDistributionResult, ...]
    errors: tuple[AllocationError, ...]
    reference_periods: ReferencePeriodSet | None = None
    run_id: UUID | None = None

    @property
    def overall_total(self) -> Decimal:
        """Sum of target amounts that received a distribution."""
        return sum((r.target_amount for r in self.results), ZERO)

    def errors_of(self, kind: ErrorKind) -> tuple[AllocationError, ...]:
        return tuple(e for e in self.errors if e.kind == kind)


# ---------------------------------------------------------------------------
# Vendor redistribution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VendorShare:
    """Pre-adjustment amount and share of one vendor."""

    vendor: str
    amount: Decimal
    percentage: Decimal


@dataclass
class VendorAdjustment:
    """
    Session-scoped editable vendor record.

    ``locked_field`` marks the user-authoritative value; the other one is
    always derived by the locked-field resolver.
    """

    vendor: str
    amount: Decimal
    percentage: Decimal
    locked_field: LockedField | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount),
            "percentage": str(self.percentage),
            "locked_field": self.locked_field.value if self.locked_field else None,
        }

    @classmethod
    def from_dict(cls, vendor: str, data: Mapping[str, Any]) -> VendorAdjustment:
        locked = data.get("locked_field")
        return cls(
            vendor=vendor,
            amount=to_decimal(data["amount"]),
            percentage=to_decimal(data["percentage"]),
            locked_field=LockedField(locked) if locked else None,
        )


@dataclass(frozen=True)
class BrandSuggestion:
    """Suggested share of a total budget for one brand."""

    brand: str
    company: str
    percentage: Decimal
    amount: Decimal


@dataclass(frozen=True)
class BudgetSummary:
    """Headline figures over a set of brand results."""

    total: Decimal
    brand_count: int
    top_brand: str | None
    unique_clients: int
    average_per_client: Decimal
    vendor: str | None = None
    vendor_total: Decimal | None = None
    vendor_share_percent: Decimal | None = None
