"""
Typed Exception Hierarchy for the Budget Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Budget runs process many brand requests at once. A failure in one request
must be reported with enough structure for the user to fix the source data
(brand, company, target date, kind) and must never be recovered by parsing
a message string.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes
  4. When it maps onto a batch-level failure category, carries ``kind``
     (an ``ErrorKind``) so the batch seam can turn it into an
     ``AllocationError`` record.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetKernelError (base)
    |
    +-- PeriodError
    |   +-- InvalidPeriodError
    |
    +-- MasterDataError
    |   +-- UnknownBrandError
    |   +-- UnknownCompanyError
    |
    +-- DistributionError
    |   +-- NoHistoricalSalesError
    |   +-- ZeroAverageError
    |   +-- NoDistributionTargetsError
    |
    +-- ReconciliationError
    |   +-- ReconciliationMismatchError
    |   +-- VendorNotFoundError
    |
    +-- TransferError
    |   +-- InvalidTransferError
    |
    +-- PersistenceError
        +-- BudgetRecordNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Period          | INVALID_PERIOD              | Reference period not in catalog
----------------|-----------------------------|-----------------------------------------
Master data     | UNKNOWN_BRAND               | Brand not in brand master list
                | UNKNOWN_COMPANY             | Company not in company master list
----------------|-----------------------------|-----------------------------------------
Distribution    | NO_HISTORICAL_SALES         | No sales for brand+company+window
                | ZERO_AVERAGE                | Historical average is exactly zero
                | NO_DISTRIBUTION_TARGETS     | Non-zero total, nothing to place it on
----------------|-----------------------------|-----------------------------------------
Reconciliation  | RECONCILIATION_MISMATCH     | Vendor sum off target beyond tolerance
                | VENDOR_NOT_FOUND            | Vendor not part of the session
----------------|-----------------------------|-----------------------------------------
Transfer        | INVALID_TRANSFER            | Client transfer rejected
----------------|-----------------------------|-----------------------------------------
Persistence     | BUDGET_RECORD_NOT_FOUND     | Stored budget id does not exist

===============================================================================
HANDLING PATTERNS
===============================================================================

1. BATCH SEAM (errors never escape a run):

    try:
        result = self._calculate_request(request, ...)
    except DistributionError as e:
        errors.append(AllocationError.from_exception(e, request))

2. APPLY IS ALL-OR-NOTHING:

    try:
        outcome = session.apply()
    except ReconciliationMismatchError as e:
        show(e.expected, e.actual)  # session state unchanged, user retries

===============================================================================
"""

from decimal import Decimal

from budget_kernel.domain.models import ErrorKind


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BUDGET_KERNEL_ERROR"
    kind: ErrorKind | None = None


# Period-related exceptions


class PeriodError(BudgetKernelError):
    """Base exception for reference-period errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodError(PeriodError):
    """Requested reference period is not in the period catalog."""

    code: str = "INVALID_PERIOD"
    kind = ErrorKind.INVALID_PERIOD

    def __init__(self, period: str | None, reason: str = "not found in catalog"):
        self.period = period
        self.reason = reason
        super().__init__(f"Invalid reference period {period!r}: {reason}")


# Master-data exceptions


class MasterDataError(BudgetKernelError):
    """Base exception for master-list lookup failures."""

    code: str = "MASTER_DATA_ERROR"


class UnknownBrandError(MasterDataError):
    """Brand is not in the brand master list."""

    code: str = "UNKNOWN_BRAND"
    kind = ErrorKind.UNKNOWN_BRAND

    def __init__(self, brand: str):
        self.brand = brand
        super().__init__(f"Brand does not exist in master list: {brand!r}")


class UnknownCompanyError(MasterDataError):
    """Company is not in the company master list."""

    code: str = "UNKNOWN_COMPANY"
    kind = ErrorKind.UNKNOWN_COMPANY

    def __init__(self, company: str):
        self.company = company
        super().__init__(f"Company does not exist in master list: {company!r}")


# Distribution exceptions


class DistributionError(BudgetKernelError):
    """Base exception for brand budget distribution failures."""

    code: str = "DISTRIBUTION_ERROR"


class NoHistoricalSalesError(DistributionError):
    """
    No sales match brand + company + reference periods.

    Distinct from UnknownBrandError: the raw budget amount can still be
    recorded without a computed distribution.
    """

    code: str = "NO_HISTORICAL_SALES"
    kind = ErrorKind.NO_HISTORICAL_SALES

    def __init__(self, brand: str, company: str, periods: tuple[str, ...]):
        self.brand = brand
        self.company = company
        self.periods = periods
        super().__init__(
            f"No historical sales for brand {brand!r} in company {company!r} "
            f"over {len(periods)} reference period(s)"
        )


class ZeroAverageError(DistributionError):
    """Historical average is exactly zero, so there is nothing to scale."""

    code: str = "ZERO_AVERAGE"
    kind = ErrorKind.ZERO_AVERAGE

    def __init__(self, brand: str, company: str, record_count: int):
        self.brand = brand
        self.company = company
        self.record_count = record_count
        super().__init__(
            f"Historical sales for brand {brand!r} in company {company!r} "
            f"net to zero across {record_count} record(s)"
        )


class NoDistributionTargetsError(DistributionError):
    """A non-zero total had no weights to be placed on."""

    code: str = "NO_DISTRIBUTION_TARGETS"
    kind = ErrorKind.NO_DISTRIBUTION_TARGETS

    def __init__(self, total: Decimal, context: str):
        self.total = total
        self.context = context
        super().__init__(f"No distribution targets for {total} ({context})")


# Reconciliation exceptions


class ReconciliationError(BudgetKernelError):
    """Base exception for vendor redistribution errors."""

    code: str = "RECONCILIATION_ERROR"


class ReconciliationMismatchError(ReconciliationError):
    """Reconciled vendor amounts do not add up to the budget total."""

    code: str = "RECONCILIATION_MISMATCH"
    kind = ErrorKind.RECONCILIATION_MISMATCH

    def __init__(self, expected: Decimal, actual: Decimal, tolerance: Decimal):
        self.expected = expected
        self.actual = actual
        self.tolerance = tolerance
        super().__init__(
            f"Vendor total {actual} does not reconcile to {expected} "
            f"(difference {actual - expected}, tolerance {tolerance})"
        )


class VendorNotFoundError(ReconciliationError):
    """Vendor is not part of the redistribution session."""

    code: str = "VENDOR_NOT_FOUND"

    def __init__(self, vendor: str):
        self.vendor = vendor
        super().__init__(f"Vendor not found in session: {vendor!r}")


# Client transfer exceptions


class TransferError(BudgetKernelError):
    """Base exception for client budget transfers."""

    code: str = "TRANSFER_ERROR"


class InvalidTransferError(TransferError):
    """Client transfer request was rejected."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, brand: str, source: str, target: str, reason: str):
        self.brand = brand
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(
            f"Cannot move budget from {source!r} to {target!r} "
            f"in brand {brand!r}: {reason}"
        )


# Persistence exceptions


class PersistenceError(BudgetKernelError):
    """Base exception for the budget store."""

    code: str = "PERSISTENCE_ERROR"


class BudgetRecordNotFoundError(PersistenceError):
    """Stored budget record does not exist."""

    code: str = "BUDGET_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Budget record not found: {record_id}")
