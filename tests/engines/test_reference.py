"""
Tests for the Reference Resolver.

Covers:
- Inclusive ranges over a newest-first catalog
- Reversed endpoints
- Single-endpoint defaulting
- Explicit checklists
- Invalid periods
"""

import pytest

from budget_engines.reference import resolve_range, resolve_selection
from budget_kernel.domain.models import ErrorKind, ReferencePeriodSet
from budget_kernel.exceptions import InvalidPeriodError

CATALOG = ["2025-03", "2025-02", "2025-01", "2024-12"]


class TestResolveRange:
    """Tests for start/end range resolution."""

    def test_inclusive_range(self):
        periods = resolve_range(CATALOG, start="2025-01", end="2025-03")

        assert isinstance(periods, ReferencePeriodSet)
        assert periods.periods == ("2025-03", "2025-02", "2025-01")

    def test_reversed_endpoints_yield_same_set(self):
        forward = resolve_range(["Mar", "Feb", "Jan"], start="Jan", end="Mar")
        reverse = resolve_range(["Mar", "Feb", "Jan"], start="Mar", end="Jan")

        assert reverse.periods == ("Mar", "Feb", "Jan")
        assert forward == reverse

    def test_only_start_given(self):
        assert resolve_range(CATALOG, start="2025-02").periods == ("2025-02",)

    def test_only_end_given(self):
        assert resolve_range(CATALOG, end="2024-12").periods == ("2024-12",)

    def test_neither_endpoint_raises(self):
        with pytest.raises(InvalidPeriodError):
            resolve_range(CATALOG)

    def test_unknown_endpoint_raises(self):
        with pytest.raises(InvalidPeriodError) as exc_info:
            resolve_range(CATALOG, start="2023-01", end="2025-01")

        assert exc_info.value.period == "2023-01"
        assert exc_info.value.kind == ErrorKind.INVALID_PERIOD
        assert exc_info.value.code == "INVALID_PERIOD"

    def test_duplicate_catalog_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            resolve_range(["2025-01", "2025-01"], start="2025-01")


class TestResolveSelection:
    """Tests for explicit checklist resolution."""

    def test_follows_catalog_order(self):
        periods = resolve_selection(CATALOG, ["2024-12", "2025-03"])

        assert periods.periods == ("2025-03", "2024-12")

    def test_duplicates_removed(self):
        periods = resolve_selection(CATALOG, ["2025-02", "2025-02"])

        assert len(periods) == 1

    def test_empty_selection_raises(self):
        with pytest.raises(InvalidPeriodError):
            resolve_selection(CATALOG, [])

    def test_unknown_selection_raises(self):
        with pytest.raises(InvalidPeriodError, match="2030-01"):
            resolve_selection(CATALOG, ["2025-01", "2030-01"])
