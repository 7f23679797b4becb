"""
Tax Calculator -- progressive income tax with family deductions.

Responsibility:
    Computes withholding income tax on a configurable base using ordered
    marginal brackets and a family deduction step function keyed by
    fiscal parts.

Algorithm:
    1. Tax base: taxable gross (``gross_before_ss``) or taxable gross less
       the employee contributions already computed (``gross_after_ss``).
    2. Scale the base into the tables' terms.  Monthly tables applied to
       a monthly pay period use the base as-is; annual tables annualize
       it; daily and weekly pay periods scale up by their share of a
       month.
    3. Marginal brackets: each bracket taxes only the slice of the base
       that falls inside it, so no slice is skipped or counted twice.
    4. Family deduction: the step whose threshold is the largest one not
       above the employee's fiscal parts.
    5. income_tax = max(gross_tax - family_deduction, 0), scaled back to
       the pay period.

Fiscal parts:
    1.0 for the employee, plus 1.0 if married, plus 0.5 per dependent up
    to the country's maximum number of counted dependents.

Failure modes:
    - ``ComputationError`` when the bracket table does not partition
      [0, inf).  Missing tables are detected upstream by the configuration
      accessors (``ConfigurationMissingError``).

Usage:
    from payroll_engines.income_tax import IncomeTaxCalculator

    result = IncomeTaxCalculator().calculate(
        config.brackets_for("CI"),
        config.deduction_rules_for("CI"),
        taxable_gross=Decimal("300000"),
        employee_contributions=Decimal("18900"),
        fiscal_parts=Decimal("2.5"),
        tax_base=TaxBase.GROSS_AFTER_SS,
    )
    result.income_tax
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from payroll_config.schema import BracketPeriod, FamilyDeductionRule, TaxBase, TaxBracket
from payroll_kernel.exceptions import ComputationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.income_tax")

_RATE_QUANTUM = Decimal("0.0001")


@dataclass(frozen=True)
class BracketLine:
    """Tax attributable to one bracket, in the tables' terms."""

    lower_bound: Decimal
    upper_bound: Decimal | None
    rate: Decimal
    taxable_amount: Decimal
    tax: Decimal


@dataclass(frozen=True)
class IncomeTaxResult:
    """Income tax for the pay period with its bracket detail."""

    tax_base_mode: TaxBase
    tax_base: Decimal
    scaled_base: Decimal
    fiscal_parts: Decimal
    gross_tax: Decimal
    family_deduction: Decimal
    income_tax: Decimal
    bracket_lines: tuple[BracketLine, ...]

    @property
    def effective_rate(self) -> Decimal:
        if self.tax_base <= 0:
            return Decimal("0")
        return (self.income_tax / self.tax_base).quantize(_RATE_QUANTUM, rounding=ROUND_HALF_UP)


def compute_fiscal_parts(
    is_married: bool,
    dependents: int,
    max_dependents: int = 6,
) -> Decimal:
    """
    Fiscal parts for an employee's family situation.

    Preconditions:
        dependents >= 0, max_dependents >= 0.
    Postconditions:
        Returns 1.0 + 1.0 (married) + 0.5 per counted dependent.
    """
    if dependents < 0:
        raise ValueError(f"Dependents cannot be negative: {dependents}")
    counted = min(dependents, max_dependents)
    parts = Decimal("1") + Decimal("0.5") * counted
    if is_married:
        parts += Decimal("1")
    return parts


def has_family(is_married: bool, dependents: int) -> bool:
    """Spouse or at least one dependent."""
    return is_married or dependents > 0


def check_bracket_domain(brackets: Sequence[TaxBracket]) -> None:
    """
    Verify that sorted brackets partition [0, inf).

    Raises:
        ComputationError: If the table has a gap, an overlap, does not
            start at zero or is not unbounded at the top.
    """
    if not brackets:
        raise ComputationError("Empty tax bracket table", invariant="bracket_domain")
    if brackets[0].lower_bound != 0:
        raise ComputationError(
            f"Tax brackets start at {brackets[0].lower_bound}, not 0",
            invariant="bracket_domain",
        )
    for current, following in zip(brackets, brackets[1:]):
        if current.upper_bound != following.lower_bound:
            raise ComputationError(
                f"Tax brackets not contiguous at {current.upper_bound} / "
                f"{following.lower_bound}",
                invariant="bracket_domain",
            )
    if brackets[-1].upper_bound is not None:
        raise ComputationError(
            f"Tax brackets end at {brackets[-1].upper_bound} instead of being unbounded",
            invariant="bracket_domain",
        )


def marginal_tax(
    amount: Decimal,
    brackets: Sequence[TaxBracket],
) -> tuple[Decimal, tuple[BracketLine, ...]]:
    """Apply brackets marginally. Brackets must be sorted ascending."""
    total = Decimal("0")
    lines: list[BracketLine] = []
    for bracket in brackets:
        upper = amount if bracket.upper_bound is None else min(amount, bracket.upper_bound)
        taxable = max(upper - bracket.lower_bound, Decimal("0"))
        tax = taxable * bracket.rate
        total += tax
        lines.append(
            BracketLine(
                lower_bound=bracket.lower_bound,
                upper_bound=bracket.upper_bound,
                rate=bracket.rate,
                taxable_amount=taxable,
                tax=tax,
            )
        )
    return total, tuple(lines)


def family_deduction_for(
    rules: Sequence[FamilyDeductionRule],
    fiscal_parts: Decimal,
) -> Decimal:
    """Deduction of the highest step not above ``fiscal_parts``."""
    deduction = Decimal("0")
    for rule in sorted(rules, key=lambda r: r.fiscal_parts_threshold):
        if rule.fiscal_parts_threshold > fiscal_parts:
            break
        deduction = rule.deduction_amount
    return deduction


class IncomeTaxCalculator:
    """Progressive income tax calculator. Holds no state."""

    def calculate(
        self,
        brackets: Sequence[TaxBracket],
        deduction_rules: Sequence[FamilyDeductionRule],
        *,
        taxable_gross: Decimal,
        employee_contributions: Decimal,
        fiscal_parts: Decimal,
        tax_base: TaxBase = TaxBase.GROSS_AFTER_SS,
        bracket_period: BracketPeriod = BracketPeriod.MONTHLY,
        period_fraction: Decimal = Decimal("1"),
        precision: Decimal = Decimal("0.01"),
    ) -> IncomeTaxResult:
        """
        Compute income tax for one pay period.

        Args:
            brackets: The country's brackets.
            deduction_rules: The country's family deduction table.
            taxable_gross: Taxable gross for the period.
            employee_contributions: Employee social contributions for the
                period, deducted under ``gross_after_ss``.
            fiscal_parts: Employee's fiscal parts.
            tax_base: Which amount the brackets apply to.
            bracket_period: Period the tables are expressed in.
            period_fraction: Share of a month the pay period represents.
            precision: Quantum for reported amounts.

        Raises:
            ComputationError: If the brackets do not partition [0, inf).
        """
        ordered = sorted(brackets, key=lambda b: b.lower_bound)
        check_bracket_domain(ordered)

        if period_fraction <= 0:
            raise ComputationError(
                f"Period fraction must be positive: {period_fraction}",
                invariant="period_fraction",
            )

        base = taxable_gross
        if tax_base is TaxBase.GROSS_AFTER_SS:
            base = taxable_gross - employee_contributions
        base = max(base, Decimal("0"))

        scale = Decimal(bracket_period.months) / period_fraction
        scaled_base = base * scale
        gross_scaled, lines = marginal_tax(scaled_base, ordered)
        deduction_scaled = family_deduction_for(deduction_rules, fiscal_parts)
        net_scaled = max(gross_scaled - deduction_scaled, Decimal("0"))

        result = IncomeTaxResult(
            tax_base_mode=tax_base,
            tax_base=base,
            scaled_base=scaled_base,
            fiscal_parts=fiscal_parts,
            gross_tax=(gross_scaled / scale).quantize(precision, rounding=ROUND_HALF_UP),
            family_deduction=(deduction_scaled / scale).quantize(
                precision, rounding=ROUND_HALF_UP
            ),
            income_tax=(net_scaled / scale).quantize(precision, rounding=ROUND_HALF_UP),
            bracket_lines=lines,
        )

        logger.debug(
            "income_tax_calculated",
            extra={
                "tax_base_mode": tax_base.value,
                "tax_base": str(base),
                "bracket_period": bracket_period.value,
                "fiscal_parts": str(fiscal_parts),
                "gross_tax": str(result.gross_tax),
                "family_deduction": str(result.family_deduction),
                "income_tax": str(result.income_tax),
            },
        )
        return result
