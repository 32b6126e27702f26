"""
Tests for kernel exceptions and domain record validation.

Covers:
- Machine-readable codes and batch error kinds
- AllocationError built from exceptions
- Construction guards on domain records
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_kernel.domain.models import (
    AllocationError,
    BrandBudgetRequest,
    ErrorKind,
    LockedField,
    ReferencePeriodSet,
    SalesRecord,
    VendorAdjustment,
    normalize_name,
)
from budget_kernel.domain.values import percentage_of, quantum_for, round_amount, to_decimal
from budget_kernel.exceptions import (
    BudgetKernelError,
    DistributionError,
    InvalidPeriodError,
    NoHistoricalSalesError,
    ReconciliationMismatchError,
    UnknownBrandError,
    UnknownCompanyError,
    VendorNotFoundError,
    ZeroAverageError,
)


class TestExceptionCodes:
    """Tests for codes, kinds and structured attributes."""

    @pytest.mark.parametrize("exc, code, kind", [
        (InvalidPeriodError("2030-01"), "INVALID_PERIOD", ErrorKind.INVALID_PERIOD),
        (UnknownBrandError("Reebok"), "UNKNOWN_BRAND", ErrorKind.UNKNOWN_BRAND),
        (UnknownCompanyError("Gamma"), "UNKNOWN_COMPANY", ErrorKind.UNKNOWN_COMPANY),
        (
            NoHistoricalSalesError("Nike", "Alpha", ("2025-01",)),
            "NO_HISTORICAL_SALES",
            ErrorKind.NO_HISTORICAL_SALES,
        ),
        (ZeroAverageError("Nike", "Alpha", 2), "ZERO_AVERAGE", ErrorKind.ZERO_AVERAGE),
        (VendorNotFoundError("V9"), "VENDOR_NOT_FOUND", None),
    ])
    def test_code_and_kind(self, exc, code, kind):
        assert isinstance(exc, BudgetKernelError)
        assert exc.code == code
        assert exc.kind == kind

    def test_distribution_errors_share_base(self):
        assert issubclass(NoHistoricalSalesError, DistributionError)
        assert issubclass(ZeroAverageError, DistributionError)

    def test_mismatch_carries_figures(self):
        exc = ReconciliationMismatchError(Decimal("1000"), Decimal("200"), Decimal("1"))

        assert exc.expected == Decimal("1000")
        assert exc.actual == Decimal("200")
        assert "-800" in str(exc)


class TestAllocationErrorRecord:
    """Tests for AllocationError.from_exception."""

    def test_from_exception_with_request(self):
        request = BrandBudgetRequest("Nike", "Alpha", date(2025, 6, 1), Decimal("10"))

        error = AllocationError.from_exception(InvalidPeriodError("2030-01"), request)

        assert error.kind == ErrorKind.INVALID_PERIOD
        assert (error.brand, error.company) == ("Nike", "Alpha")
        assert error.target_date == date(2025, 6, 1)
        assert "2030-01" in error.message

    def test_from_exception_without_request(self):
        error = AllocationError.from_exception(
            NoHistoricalSalesError("Nike", "Alpha", ("2025-01",)),
        )

        assert (error.brand, error.company) == ("Nike", "Alpha")
        assert error.target_date is None


class TestDomainRecords:
    """Tests for record construction guards."""

    def test_negative_target_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            BrandBudgetRequest("Nike", "Alpha", date(2025, 6, 1), Decimal("-1"))

    def test_amounts_coerced_to_decimal(self):
        request = BrandBudgetRequest("Nike", "Alpha", date(2025, 6, 1), "1500.50")
        sale = SalesRecord("2025-01", "Nike", "A", "X", "V1", "Alpha", 0.1)

        assert request.target_amount == Decimal("1500.50")
        assert sale.amount == Decimal("0.1")

    def test_non_numeric_amount_rejected(self):
        with pytest.raises(ValueError, match="Invalid amount"):
            SalesRecord("2025-01", "Nike", "A", "X", "V1", "Alpha", "n/a")

    @pytest.mark.parametrize("periods", [(), ("2025-01", "2025-01")])
    def test_reference_period_set_guards(self, periods):
        with pytest.raises(ValueError):
            ReferencePeriodSet(periods)

    def test_vendor_adjustment_dict_round_trip(self):
        adjustment = VendorAdjustment("V1", Decimal("100"), Decimal("10"), LockedField.AMOUNT)

        restored = VendorAdjustment.from_dict("V1", adjustment.to_dict())

        assert restored == adjustment

    def test_normalize_name(self):
        assert normalize_name("  Nike   Europe ") == normalize_name("nike europe")


class TestValues:
    """Tests for Decimal helpers."""

    def test_to_decimal_rejects_infinity(self):
        with pytest.raises(ValueError):
            to_decimal("Infinity")

    def test_quantum(self):
        assert quantum_for(2) == Decimal("0.01")
        assert quantum_for(0) == Decimal("1")
        with pytest.raises(ValueError):
            quantum_for(-1)

    def test_round_half_up(self):
        assert round_amount(Decimal("2.345")) == Decimal("2.35")

    def test_percentage_of_zero_whole(self):
        assert percentage_of(Decimal("5"), Decimal("0")) == Decimal("0")
