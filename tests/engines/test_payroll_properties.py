"""
Property-based tests for the payroll engine.

Properties:
- Determinism: identical arguments give identical results
- Conservation: employer cost and net pay decompose exactly
- Tax monotonicity: more taxable income never lowers income tax
- Bracket continuity: no jump at a bracket boundary
- Proration: half of a 30-day month is exactly half; fixed amounts never move
- Idempotent rounding
"""

from datetime import date
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from payroll_config import TaxBase
from payroll_engines import (
    IncomeTaxCalculator,
    PayrollInput,
    SalaryComponentInstance,
    compute,
    get_rounding_policy,
    marginal_tax,
)

FISCAL_PARTS = ["1", "1.5", "2", "2.5", "3", "4.5", "5"]


@composite
def ci_inputs(draw):
    """Committed monthly CI payslips above the minimum wage."""
    base = draw(st.integers(min_value=75000, max_value=20_000_000))
    transport = draw(st.integers(min_value=0, max_value=100_000))
    housing = draw(st.integers(min_value=0, max_value=500_000))
    hire_day = draw(st.integers(min_value=1, max_value=31))
    return PayrollInput(
        employee_id="EMP-PROP",
        country_code="CI",
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        hire_date=date(2024, 3, hire_day),
        components=[
            SalaryComponentInstance("base_salary", "Base", Decimal(base)),
            SalaryComponentInstance("transport_allowance", "Transport", Decimal(transport)),
            SalaryComponentInstance("housing_allowance", "Housing", Decimal(housing)),
        ],
        fiscal_parts=Decimal(draw(st.sampled_from(FISCAL_PARTS))),
        has_family=draw(st.booleans()),
        sector_code=draw(st.sampled_from([None, "industry", "construction"])),
    )


class TestPayslipProperties:
    """Properties of complete payslips."""

    @given(payroll_input=ci_inputs())
    @settings(max_examples=50, deadline=None)
    def test_deterministic(self, ci_config, payroll_input):
        assert compute(payroll_input, ci_config) == compute(payroll_input, ci_config)

    @given(payroll_input=ci_inputs())
    @settings(max_examples=100, deadline=None)
    def test_conservation(self, ci_config, payroll_input):
        result = compute(payroll_input, ci_config)
        assert result.employer_cost == (
            result.gross_salary
            + result.employer_contributions_total
            + result.cmu_employer
            + result.other_taxes_employer_total
        )
        unrounded = result.gross_salary - result.total_employee_deductions
        assert result.net_salary - unrounded == result.rounding_adjustment
        assert abs(result.rounding_adjustment) <= Decimal("0.5")
        assert result.net_salary >= 0

    @given(payroll_input=ci_inputs())
    @settings(max_examples=50, deadline=None)
    def test_fixed_component_never_prorated(self, ci_config, payroll_input):
        result = compute(payroll_input, ci_config)
        transport = next(
            line for line in result.component_breakdown if line.code == "transport_allowance"
        )
        assert transport.prorated_amount == transport.configured_amount

    @given(amount=st.integers(min_value=75000, max_value=10_000_000))
    @settings(max_examples=50, deadline=None)
    def test_half_of_thirty_day_month(self, ci_config, amount):
        payroll_input = PayrollInput(
            employee_id="EMP-PROP",
            country_code="CI",
            period_start=date(2024, 4, 1),
            period_end=date(2024, 4, 30),
            hire_date=date(2024, 4, 16),
            components=[SalaryComponentInstance("base_salary", "Base", Decimal(amount))],
        )
        result = compute(payroll_input, ci_config)
        assert result.gross_salary == Decimal(amount) / 2


class TestIncomeTaxProperties:
    """Properties of the progressive scale."""

    def setup_method(self):
        self.calculator = IncomeTaxCalculator()

    def tax(self, config, amount, parts):
        return self.calculator.calculate(
            config.brackets_for("CI"),
            config.deduction_rules_for("CI"),
            taxable_gross=amount,
            employee_contributions=Decimal("0"),
            fiscal_parts=parts,
            tax_base=TaxBase.GROSS_BEFORE_SS,
        ).income_tax

    @given(
        low=st.decimals(min_value=0, max_value=50_000_000, places=2),
        delta=st.decimals(min_value=0, max_value=5_000_000, places=2),
        parts=st.sampled_from(FISCAL_PARTS),
    )
    @settings(max_examples=200, deadline=None)
    def test_monotonic(self, ci_config, low, delta, parts):
        parts = Decimal(parts)
        assert self.tax(ci_config, low, parts) <= self.tax(ci_config, low + delta, parts)

    @given(
        amount=st.decimals(min_value=0, max_value=50_000_000, places=2),
        parts=st.sampled_from(FISCAL_PARTS),
    )
    @settings(max_examples=100, deadline=None)
    def test_more_parts_never_more_tax(self, ci_config, amount, parts):
        assert self.tax(ci_config, amount, Decimal(parts)) <= self.tax(
            ci_config, amount, Decimal("1")
        )

    @given(delta=st.decimals(min_value=0, max_value=1000, places=2))
    @settings(max_examples=50, deadline=None)
    def test_bracket_continuity(self, ci_config, delta):
        brackets = ci_config.brackets_for("CI")
        for lower, upper in zip(brackets, brackets[1:]):
            boundary = lower.upper_bound
            at_boundary, _ = marginal_tax(boundary, brackets)
            above, _ = marginal_tax(boundary + delta, brackets)
            assert above - at_boundary == delta * upper.rate


class TestRoundingProperties:
    """Rounding an already-rounded amount is a no-op."""

    @given(amount=st.integers(min_value=0, max_value=10**9))
    def test_nearest_unit_idempotent(self, amount):
        policy = get_rounding_policy("nearest_unit")
        assert policy.round(Decimal(amount), "XOF") == Decimal(amount)

    @given(hundreds=st.integers(min_value=0, max_value=10**7))
    def test_nearest_hundred_idempotent(self, hundreds):
        policy = get_rounding_policy("nearest_hundred_plus_18")
        amount = Decimal(hundreds) * 100
        assert policy.round(amount, "XOF") == amount

    @given(amount=st.decimals(min_value=0, max_value=10**9, places=2))
    def test_round_twice(self, amount):
        for name in ("nearest_unit", "nearest_hundred_plus_18"):
            policy = get_rounding_policy(name)
            once = policy.round(amount, "XOF")
            assert policy.round(once, "XOF") == once
