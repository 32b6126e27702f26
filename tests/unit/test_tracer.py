"""Tests for engine input fingerprints."""

from datetime import date
from decimal import Decimal

from budget_engines.tracer import compute_input_fingerprint, traced_engine


class TestFingerprint:

    def test_decimal_scale_ignored(self):
        a = compute_input_fingerprint(("total",), {"total": Decimal("1.50")})
        b = compute_input_fingerprint(("total",), {"total": Decimal("1.5")})

        assert a == b
        assert len(a) == 16

    def test_mapping_order_ignored(self):
        a = compute_input_fingerprint(("weights",), {"weights": {"x": 1, "y": 2}})
        b = compute_input_fingerprint(("weights",), {"weights": {"y": 2, "x": 1}})

        assert a == b

    def test_missing_field_recorded_as_null(self):
        assert compute_input_fingerprint(("total",), {}) == compute_input_fingerprint(
            ("total",), {"total": None},
        )

    def test_values_change_fingerprint(self):
        a = compute_input_fingerprint(("d",), {"d": date(2025, 1, 1)})
        b = compute_input_fingerprint(("d",), {"d": date(2025, 1, 2)})

        assert a != b


class TestTracedEngine:

    def test_trace_emitted(self, captured_logs):
        @traced_engine("probe", "2.1", fingerprint_fields=("value",))
        def probe(value):
            return value * 2

        assert probe(value=Decimal("2")) == Decimal("4")

        traces = [r for r in captured_logs() if r["message"] == "BUDGET_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "probe"
        assert traces[-1]["engine_version"] == "2.1"
        assert traces[-1]["input_fingerprint"] == compute_input_fingerprint(
            ("value",), {"value": Decimal("2")},
        )
