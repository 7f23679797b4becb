"""
Tests for the IncomeTaxCalculator.

Covers:
- Marginal bracket application on monthly and annual tables
- Tax base modes (before / after social contributions)
- Family deduction step function and fiscal parts
- Scaling for non-monthly pay periods
- Bracket domain checks
"""

from decimal import Decimal

import pytest

from payroll_config import BracketPeriod, FamilyDeductionRule, TaxBase, TaxBracket
from payroll_engines import (
    IncomeTaxCalculator,
    compute_fiscal_parts,
    family_deduction_for,
    has_family,
    marginal_tax,
)
from payroll_engines.income_tax import check_bracket_domain
from payroll_kernel.exceptions import ComputationError


def brackets(*rows):
    return tuple(
        TaxBracket(
            "TL",
            Decimal(lower),
            None if upper is None else Decimal(upper),
            Decimal(rate),
        )
        for lower, upper, rate in rows
    )


SIMPLE = brackets(("0", "75000", "0"), ("75000", "240000", "0.16"), ("240000", None, "0.21"))


class TestFiscalParts:
    """Fiscal parts from family situation."""

    def test_single(self):
        assert compute_fiscal_parts(False, 0) == Decimal("1")

    def test_married_one_dependent(self):
        assert compute_fiscal_parts(True, 1) == Decimal("2.5")

    def test_dependents_capped(self):
        assert compute_fiscal_parts(True, 10, max_dependents=6) == Decimal("5")

    def test_negative_dependents(self):
        with pytest.raises(ValueError):
            compute_fiscal_parts(False, -1)

    def test_has_family(self):
        assert has_family(True, 0)
        assert has_family(False, 2)
        assert not has_family(False, 0)


class TestMarginalTax:
    """Each bracket taxes only its own slice."""

    def test_within_first_bracket(self):
        total, _ = marginal_tax(Decimal("50000"), SIMPLE)
        assert total == Decimal("0")

    def test_spans_brackets(self):
        total, lines = marginal_tax(Decimal("281100"), SIMPLE)
        assert total == Decimal("35031")
        assert [line.taxable_amount for line in lines] == [
            Decimal("75000"),
            Decimal("165000"),
            Decimal("41100"),
        ]
        assert sum(line.tax for line in lines) == total

    def test_at_boundary(self):
        total, _ = marginal_tax(Decimal("240000"), SIMPLE)
        assert total == Decimal("26400")

    def test_domain_gap(self):
        with pytest.raises(ComputationError) as exc_info:
            check_bracket_domain(brackets(("0", "100", "0"), ("200", None, "0.1")))
        assert exc_info.value.invariant == "bracket_domain"

    def test_domain_bounded_top(self):
        with pytest.raises(ComputationError):
            check_bracket_domain(brackets(("0", "100", "0")))

    def test_domain_empty(self):
        with pytest.raises(ComputationError):
            check_bracket_domain(())


class TestFamilyDeduction:
    """Step function keyed by fiscal parts."""

    RULES = (
        FamilyDeductionRule("TL", Decimal("1"), Decimal("0")),
        FamilyDeductionRule("TL", Decimal("2"), Decimal("11000")),
        FamilyDeductionRule("TL", Decimal("1.5"), Decimal("5500")),
    )

    @pytest.mark.parametrize(
        "parts, expected",
        [("1", "0"), ("1.5", "5500"), ("1.75", "5500"), ("2", "11000"), ("4", "11000")],
    )
    def test_largest_threshold_not_above_parts(self, parts, expected):
        assert family_deduction_for(self.RULES, Decimal(parts)) == Decimal(expected)

    def test_below_first_threshold(self):
        rules = (FamilyDeductionRule("TL", Decimal("2"), Decimal("100")),)
        assert family_deduction_for(rules, Decimal("1")) == Decimal("0")


class TestIncomeTaxCalculator:
    """End-to-end tax on the shipped country tables."""

    def setup_method(self):
        self.calculator = IncomeTaxCalculator()

    def test_ci_single(self, ci_config):
        result = self.calculator.calculate(
            ci_config.brackets_for("CI"),
            ci_config.deduction_rules_for("CI"),
            taxable_gross=Decimal("300000"),
            employee_contributions=Decimal("18900"),
            fiscal_parts=Decimal("1"),
        )
        assert result.tax_base == Decimal("281100")
        assert result.income_tax == Decimal("35031.00")
        assert result.family_deduction == Decimal("0")
        assert result.effective_rate == Decimal("0.1246")

    def test_ci_family_deduction(self, ci_config):
        result = self.calculator.calculate(
            ci_config.brackets_for("CI"),
            ci_config.deduction_rules_for("CI"),
            taxable_gross=Decimal("300000"),
            employee_contributions=Decimal("18900"),
            fiscal_parts=Decimal("2.5"),
        )
        assert result.family_deduction == Decimal("16500.00")
        assert result.income_tax == Decimal("18531.00")

    def test_deduction_floors_at_zero(self, ci_config):
        result = self.calculator.calculate(
            ci_config.brackets_for("CI"),
            ci_config.deduction_rules_for("CI"),
            taxable_gross=Decimal("100000"),
            employee_contributions=Decimal("6300"),
            fiscal_parts=Decimal("5"),
        )
        assert result.gross_tax == Decimal("2992.00")
        assert result.income_tax == Decimal("0")

    def test_gross_before_ss(self, ci_config):
        result = self.calculator.calculate(
            ci_config.brackets_for("CI"),
            ci_config.deduction_rules_for("CI"),
            taxable_gross=Decimal("300000"),
            employee_contributions=Decimal("18900"),
            fiscal_parts=Decimal("1"),
            tax_base=TaxBase.GROSS_BEFORE_SS,
        )
        assert result.tax_base == Decimal("300000")
        assert result.income_tax == Decimal("39000.00")

    def test_sn_annual_tables(self, sn_config):
        result = self.calculator.calculate(
            sn_config.brackets_for("SN"),
            sn_config.deduction_rules_for("SN"),
            taxable_gross=Decimal("500000"),
            employee_contributions=Decimal("20160"),
            fiscal_parts=Decimal("1"),
            bracket_period=BracketPeriod.ANNUAL,
        )
        assert result.scaled_base == Decimal("5758080")
        assert result.income_tax == Decimal("128277.33")

    def test_sn_annual_deduction(self, sn_config):
        result = self.calculator.calculate(
            sn_config.brackets_for("SN"),
            sn_config.deduction_rules_for("SN"),
            taxable_gross=Decimal("500000"),
            employee_contributions=Decimal("20160"),
            fiscal_parts=Decimal("2"),
            bracket_period=BracketPeriod.ANNUAL,
        )
        assert result.income_tax == Decimal("119944.00")

    def test_weekly_period_scales_to_monthly_tables(self):
        result = self.calculator.calculate(
            SIMPLE,
            (),
            taxable_gross=Decimal("50000"),
            employee_contributions=Decimal("0"),
            fiscal_parts=Decimal("1"),
            tax_base=TaxBase.GROSS_BEFORE_SS,
            period_fraction=Decimal("0.25"),
        )
        assert result.scaled_base == Decimal("200000")
        assert result.income_tax == Decimal("5000.00")

    def test_contributions_above_gross(self):
        result = self.calculator.calculate(
            SIMPLE,
            (),
            taxable_gross=Decimal("1000"),
            employee_contributions=Decimal("5000"),
            fiscal_parts=Decimal("1"),
        )
        assert result.tax_base == Decimal("0")
        assert result.income_tax == Decimal("0")

    def test_unsorted_brackets_accepted(self):
        result = self.calculator.calculate(
            tuple(reversed(SIMPLE)),
            (),
            taxable_gross=Decimal("281100"),
            employee_contributions=Decimal("0"),
            fiscal_parts=Decimal("1"),
        )
        assert result.income_tax == Decimal("35031.00")

    def test_incomplete_table(self):
        with pytest.raises(ComputationError):
            self.calculator.calculate(
                brackets(("0", "75000", "0")),
                (),
                taxable_gross=Decimal("300000"),
                employee_contributions=Decimal("0"),
                fiscal_parts=Decimal("1"),
            )
