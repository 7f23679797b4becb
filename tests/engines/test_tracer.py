"""
Tests for the engine tracer decorator and input fingerprinting.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_config import BaseId
from payroll_engines.tracer import compute_input_fingerprint, traced_engine


@dataclass(frozen=True)
class Sample:
    amount: Decimal
    when: date
    bases: frozenset


@traced_engine("sample", "2.1", fingerprint_fields=("sample", "factor"))
def double(sample, factor=Decimal("2")):
    return sample.amount * factor


class TestFingerprint:
    """Fingerprints are stable and sensitive to the selected fields."""

    def test_stable_across_set_order(self):
        when = date(2024, 3, 1)
        first = Sample(Decimal("1"), when, frozenset({BaseId.TOTAL_GROSS, BaseId.TAXABLE_GROSS}))
        second = Sample(Decimal("1"), when, frozenset({BaseId.TAXABLE_GROSS, BaseId.TOTAL_GROSS}))
        assert compute_input_fingerprint(("s",), {"s": first}) == compute_input_fingerprint(
            ("s",), {"s": second}
        )

    def test_changes_with_value(self):
        first = compute_input_fingerprint(("x",), {"x": {"a": Decimal("1")}})
        second = compute_input_fingerprint(("x",), {"x": {"a": Decimal("2")}})
        assert first != second
        assert len(first) == 16

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None}
        )


class TestTracedEngine:
    """The decorator logs a trace and returns the wrapped result."""

    def test_returns_result(self):
        sample = Sample(Decimal("21"), date(2024, 3, 1), frozenset())
        assert double(sample) == Decimal("42")
        assert double.__name__ == "double"

    def test_emits_trace(self, json_logs):
        sample = Sample(Decimal("21"), date(2024, 3, 1), frozenset())
        double(sample)
        double(sample=sample)
        double(sample, Decimal("3"))
        traces = [r for r in json_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert [t["engine_version"] for t in traces] == ["2.1", "2.1", "2.1"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
        assert traces[0]["input_fingerprint"] != traces[2]["input_fingerprint"]
        assert traces[0]["function"] == "double"
