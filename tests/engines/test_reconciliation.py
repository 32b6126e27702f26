"""
Tests for the Vendor Redistribution Reconciler.

Covers:
- Snapshot of vendor totals and shares
- Select / lock / deselect
- Redistribution of the remainder on apply()
- All-or-nothing mismatch handling
- Persisted vendor maps
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_engines.reconciliation import (
    ReconciliationOutcome,
    VendorRedistributionSession,
    vendor_snapshot,
)
from budget_kernel.domain.models import (
    ArticleDistribution,
    BrandDistributionResult,
    ClientDistribution,
    LockedField,
    VendorShare,
)
from budget_kernel.exceptions import ReconciliationMismatchError, VendorNotFoundError


def _result(brand, clients, target=None):
    """Build a result from (client, vendor, amount) tuples."""
    client_rows = tuple(
        ClientDistribution(
            client=name,
            vendor=vendor,
            company="Alpha",
            articles=(ArticleDistribution("X", Decimal(amount), Decimal(amount)),),
        )
        for name, vendor, amount in clients
    )
    total = sum(Decimal(a) for _, _, a in clients)
    return BrandDistributionResult(
        brand=brand,
        company="Alpha",
        target_date=date(2025, 6, 1),
        target_amount=Decimal(target) if target else total,
        historical_average=total,
        adjustment_factor=Decimal("1"),
        percent_change=Decimal("0"),
        clients=client_rows,
    )


def _two_vendor_session():
    results = [_result("Nike", [("A", "V1", "400"), ("B", "V2", "600")])]
    return VendorRedistributionSession.from_results(results)


class TestSnapshot:
    """Tests for the pre-adjustment snapshot."""

    def test_vendor_totals_across_brands(self):
        results = [
            _result("Nike", [("A", "V1", "300"), ("B", "V2", "200")]),
            _result("Puma", [("C", "V1", "100"), ("D", "V3", "400")]),
        ]

        shares, total = vendor_snapshot(results)

        assert total == Decimal("1000")
        assert shares == (
            VendorShare("V1", Decimal("400"), Decimal("40")),
            VendorShare("V2", Decimal("200"), Decimal("20")),
            VendorShare("V3", Decimal("400"), Decimal("40")),
        )

    def test_explicit_total(self):
        session = VendorRedistributionSession.from_results(
            [_result("Nike", [("A", "V1", "500")])], total=Decimal("2000"),
        )

        assert session.total == Decimal("2000")
        assert session.snapshot[0].percentage == Decimal("25")

    def test_empty_results(self):
        shares, total = vendor_snapshot([])

        assert shares == ()
        assert total == Decimal("0")


class TestEditing:
    """Tests for select / lock / deselect."""

    def setup_method(self):
        self.session = _two_vendor_session()

    def test_select_seeds_snapshot_values(self):
        adjustment = self.session.select_vendor("V1")

        assert adjustment.amount == Decimal("400")
        assert adjustment.percentage == Decimal("40")
        assert adjustment.locked_field is None
        assert self.session.selected == ("V1",)

    def test_set_amount_auto_selects(self):
        adjustment = self.session.set_amount("V2", Decimal("300"))

        assert "V2" in self.session.selected
        assert adjustment.locked_field == LockedField.AMOUNT
        assert adjustment.percentage == Decimal("30")

    def test_set_percentage_relocks(self):
        self.session.set_amount("V1", Decimal("100"))
        adjustment = self.session.set_percentage("V1", Decimal("20"))

        assert adjustment.locked_field == LockedField.PERCENTAGE
        assert adjustment.amount == Decimal("200.00")

    def test_deselect(self):
        self.session.set_amount("V1", Decimal("100"))
        self.session.deselect_vendor("V1")

        assert self.session.selected == ()
        assert self.session.adjustment("V1") is None

    def test_returned_adjustment_is_a_copy(self):
        adjustment = self.session.set_amount("V1", Decimal("100"))
        adjustment.amount = Decimal("999")

        assert self.session.adjustment("V1").amount == Decimal("100")

    def test_unknown_vendor_raises(self):
        with pytest.raises(VendorNotFoundError) as exc_info:
            self.session.set_amount("V9", Decimal("1"))

        assert exc_info.value.vendor == "V9"
        for op in (self.session.select_vendor, self.session.deselect_vendor):
            with pytest.raises(VendorNotFoundError):
                op("V9")


class TestApply:
    """Tests for apply()."""

    def test_locked_vendor_remainder_to_other(self):
        """total=1000, V1 locked to 100, V2 absorbs the remaining 900."""
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("100"))

        outcome = session.apply()

        assert isinstance(outcome, ReconciliationOutcome)
        assert outcome.adjustments["V1"].amount == Decimal("100")
        assert outcome.adjustments["V1"].locked_field == LockedField.AMOUNT
        assert outcome.adjustments["V2"].amount == Decimal("900")
        assert outcome.adjustments["V2"].percentage == Decimal("90")
        assert outcome.adjustments["V2"].locked_field is None
        assert outcome.final_total == Decimal("1000")
        assert outcome.discrepancy == Decimal("0")

    def test_remainder_split_by_snapshot_weight(self):
        results = [_result("Nike", [("A", "V1", "500"), ("B", "V2", "200"), ("C", "V3", "300")])]
        session = VendorRedistributionSession.from_results(results)
        session.set_percentage("V1", Decimal("30"))

        outcome = session.apply()

        # 700 left, split 200:300
        assert outcome.adjustments["V2"].amount == Decimal("280.00")
        assert outcome.adjustments["V3"].amount == Decimal("420.00")
        assert outcome.final_total == Decimal("1000")

    def test_no_edits_reproduces_snapshot(self):
        session = _two_vendor_session()

        outcome = session.apply()

        assert outcome.adjustments["V1"].amount == Decimal("400")
        assert outcome.adjustments["V2"].amount == Decimal("600")

    def test_mismatch_when_everything_locked(self, captured_logs):
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("100"))
        session.set_amount("V2", Decimal("100"))

        with pytest.raises(ReconciliationMismatchError) as exc_info:
            session.apply()

        assert exc_info.value.expected == Decimal("1000")
        assert exc_info.value.actual == Decimal("200")
        assert session.last_outcome is None
        assert session.adjustment("V2").amount == Decimal("100")
        assert any(
            r["message"] == "vendor_reconciliation_mismatch" for r in captured_logs()
        )

    def test_locked_above_total_is_refused(self):
        """V1 locked to 1500 of 1000: V2 floors at 0 and apply() refuses."""
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("1500"))

        preview = session.preview()
        assert preview.adjustments["V2"].amount == Decimal("0")
        assert preview.discrepancy == Decimal("500")

        with pytest.raises(ReconciliationMismatchError) as exc_info:
            session.apply()

        assert exc_info.value.actual == Decimal("1500")
        assert session.last_outcome is None
        assert session.selected == ("V1",)

    def test_locked_above_total_within_tolerance(self):
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("1000.50"))

        outcome = session.apply()

        assert outcome.adjustments["V2"].amount == Decimal("0")
        assert outcome.discrepancy == Decimal("0.50")

    def test_within_tolerance_is_accepted(self):
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("400.50"))
        session.set_amount("V2", Decimal("600"))

        outcome = session.apply()

        assert outcome.discrepancy == Decimal("0.50")

    def test_failed_apply_keeps_previous_outcome(self):
        session = _two_vendor_session()
        session.set_amount("V1", Decimal("100"))
        first = session.apply()
        session.set_amount("V2", Decimal("5"))

        with pytest.raises(ReconciliationMismatchError):
            session.apply()

        assert session.last_outcome is first


class TestPersistence:
    """Tests for to_persisted / from_persisted."""

    def test_round_trip(self):
        results = [_result("Nike", [("A", "V1", "400"), ("B", "V2", "600")])]
        session = VendorRedistributionSession.from_results(results)
        session.set_amount("V1", Decimal("100"))
        session.apply()

        payload = session.to_persisted()

        assert payload["V1"]["locked_field"] == "amount"
        assert Decimal(payload["V1"]["amount"]) == Decimal("100")
        assert Decimal(payload["V1"]["percentage"]) == Decimal("10")
        assert payload["V2"]["locked_field"] is None

        restored = VendorRedistributionSession.from_persisted(results, payload)
        assert restored.selected == ("V1",)
        assert restored.apply().adjustments["V2"].amount == Decimal("900")

    def test_unapplied_session_persists_working_edits(self):
        session = _two_vendor_session()
        session.set_percentage("V2", Decimal("50"))

        assert session.to_persisted() == {
            "V2": {"amount": "500.00", "percentage": "50", "locked_field": "percentage"},
        }

    def test_vendor_missing_from_run_skipped(self):
        results = [_result("Nike", [("A", "V1", "400"), ("B", "V2", "600")])]
        payload = {"V7": {"amount": "10", "percentage": "1", "locked_field": "amount"}}

        restored = VendorRedistributionSession.from_persisted(results, payload)

        assert restored.selected == ()
