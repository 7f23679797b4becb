"""
Payroll Calculator -- the single pure entry point of the engine.

Responsibility:
    ``compute(payroll_input, config)`` turns salary components, a contract
    profile and a country configuration snapshot into a fully itemized
    ``PayrollResult``: gross, taxable gross, contributions, health
    coverage, income tax, levies, net pay and employer cost.

Data flow:
    ComponentResolver -> GrossAssembler -> {ContributionCalculator,
    HealthCoverageCalculator, IncomeTaxCalculator, OtherTaxesCalculator}
    -> NetAssembler

Invariants verified on every result:
    - gross_salary == sum of prorated component amounts
    - taxable_gross == sum of prorated taxable component amounts
    - employer_cost == gross_salary + employer contributions
      + cmu_employer + employer-paid levies

Failure modes:
    - ``ValidationError`` -- malformed input.
    - ``BelowMinimumWageError`` -- pay below the statutory floor.
    - ``ConfigurationMissingError`` -- a required table is missing for
      the country; the engine fails closed.
    - ``ConfigurationError`` -- unknown rounding policy.
    - ``ComputationError`` -- an internal invariant was violated.

All errors are raised synchronously; there is nothing to retry.  The
engine holds no state, performs no I/O and never reads the clock for
business logic, so identical arguments always give identical results.

Usage:
    from payroll_config import get_country_config
    from payroll_engines import compute

    config = get_country_config("CI", date(2024, 3, 1))
    result = compute(payroll_input, config)
    result.net_salary, result.employer_cost
"""

from __future__ import annotations

import dataclasses
import time
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_config.schema import CountryPayrollConfig
from payroll_engines.components import ComponentResolver
from payroll_engines.contributions import ContributionCalculator, ContributionLine
from payroll_engines.gross import ComponentLine, GrossAssembler, ProrationContext
from payroll_engines.health_coverage import HealthCoverageCalculator
from payroll_engines.income_tax import (
    IncomeTaxCalculator,
    IncomeTaxResult,
    compute_fiscal_parts,
)
from payroll_engines.models import PayrollInput
from payroll_engines.net import NetAssembler
from payroll_engines.other_taxes import OtherTaxesCalculator, OtherTaxLine
from payroll_engines.rounding import RoundingPolicy, get_rounding_policy
from payroll_engines.tracer import traced_engine
from payroll_kernel.exceptions import (
    ComputationError,
    ConfigurationError,
    PayrollError,
    ValidationError,
)
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.payroll")

ENGINE_VERSION = "1.0"


@dataclasses.dataclass(frozen=True)
class PayrollResult:
    """Fully itemized payslip for one employee and period."""

    employee_id: str
    country_code: str
    currency: str
    period_start: date
    period_end: date
    is_preview: bool
    gross_salary: Decimal
    taxable_gross: Decimal
    component_breakdown: tuple[ComponentLine, ...]
    contribution_details: tuple[ContributionLine, ...]
    employee_contributions_total: Decimal
    employer_contributions_total: Decimal
    cmu_employee: Decimal
    cmu_employer: Decimal
    income_tax: Decimal
    income_tax_details: IncomeTaxResult
    other_taxes_details: tuple[OtherTaxLine, ...]
    other_taxes_employer_total: Decimal
    other_taxes_employee_total: Decimal
    net_salary: Decimal
    rounding_adjustment: Decimal
    rounding_policy: str
    employer_cost: Decimal
    proration: ProrationContext
    warnings: tuple[str, ...] = ()
    config_checksum: str = ""
    payroll_run_id: str | None = None

    @property
    def other_taxes_total(self) -> Decimal:
        return self.other_taxes_employer_total + self.other_taxes_employee_total

    @property
    def total_employee_deductions(self) -> Decimal:
        return (
            self.employee_contributions_total
            + self.cmu_employee
            + self.income_tax
            + self.other_taxes_employee_total
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-ready representation (Decimals as strings)."""
        return _to_plain(dataclasses.asdict(self))


def _to_plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else str(k)): _to_plain(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_to_plain(v) for v in value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class PayrollCalculator:
    """
    Orchestrates the payroll engines for one invocation at a time.

    Holds only stateless collaborators and an optional rounding policy
    override, so one instance may serve concurrent calls.
    """

    def __init__(self, rounding_policy: str | RoundingPolicy | None = None):
        self._rounding_override = rounding_policy
        self._resolver = ComponentResolver()
        self._gross = GrossAssembler()
        self._contributions = ContributionCalculator()
        self._health = HealthCoverageCalculator()
        self._income_tax = IncomeTaxCalculator()
        self._other_taxes = OtherTaxesCalculator()

    def compute(
        self,
        payroll_input: PayrollInput,
        config: CountryPayrollConfig,
    ) -> PayrollResult:
        """
        Compute a payslip.

        Raises:
            ValidationError, BelowMinimumWageError,
            ConfigurationMissingError, ConfigurationError,
            ComputationError.
        """
        t0 = time.monotonic()

        with LogContext.bind(
            payroll_run_id=payroll_input.payroll_run_id,
            employee_id=payroll_input.employee_id,
            country_code=payroll_input.country_code,
        ):
            logger.info(
                "payroll_calculation_started",
                extra={
                    "period_start": payroll_input.period_start.isoformat(),
                    "period_end": payroll_input.period_end.isoformat(),
                    "rate_type": payroll_input.rate_type.value,
                    "payment_frequency": payroll_input.payment_frequency.value,
                    "is_preview": payroll_input.is_preview,
                    "component_count": len(payroll_input.components),
                },
            )
            try:
                result = self._compute(payroll_input, config)
            except PayrollError as exc:
                logger.warning(
                    "payroll_calculation_failed",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "payroll_calculation_completed",
                extra={
                    "gross_salary": str(result.gross_salary),
                    "income_tax": str(result.income_tax),
                    "net_salary": str(result.net_salary),
                    "employer_cost": str(result.employer_cost),
                    "warning_count": len(result.warnings),
                    "duration_ms": duration_ms,
                },
            )
        return result

    def _compute(
        self,
        payroll_input: PayrollInput,
        config: CountryPayrollConfig,
    ) -> PayrollResult:
        country = payroll_input.country_code

        # Every table is fetched up front so a missing one fails before
        # any computation.
        rules = config.rules_for(country)
        brackets = config.brackets_for(country)
        deduction_rules = config.deduction_rules_for(country)
        contribution_types = config.contribution_types_for(country)
        minimum_wage = config.minimum_wage_for(country)
        levies = config.other_taxes_for(country)
        health_amounts = config.health_coverage_for(country)
        precision = rules.calculation_precision

        max_parts = compute_fiscal_parts(True, rules.max_dependents)
        if payroll_input.fiscal_parts > max_parts:
            raise ValidationError(
                f"Fiscal parts {payroll_input.fiscal_parts} exceed the {country} maximum "
                f"of {max_parts}",
                field="fiscal_parts",
            )

        try:
            policy = get_rounding_policy(self._rounding_override or rules.net_rounding)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        resolution = self._resolver.resolve(
            payroll_input.components,
            rules.component_catalog,
            categorial_codes=rules.categorial_component_codes,
            base_salary_codes=rules.base_salary_codes,
            is_preview=payroll_input.is_preview,
        )
        breakdown = self._gross.assemble(
            resolution.components,
            payroll_input,
            default_weekly_hours=rules.default_weekly_hours,
            overtime=rules.overtime,
            precision=precision,
        )
        self._gross.check_minimum_wage(breakdown, minimum_wage, country)

        contributions = self._contributions.calculate(
            contribution_types,
            breakdown,
            sector_code=payroll_input.sector_code,
            default_bases=rules.default_bases,
            rate_overrides=payroll_input.contribution_rate_overrides,
            precision=precision,
        )
        health = self._health.calculate(
            health_amounts, payroll_input.has_family, has_paid_work=breakdown.has_paid_work
        )
        tax = self._income_tax.calculate(
            brackets,
            deduction_rules,
            taxable_gross=breakdown.taxable_gross,
            employee_contributions=contributions.employee_total,
            fiscal_parts=payroll_input.fiscal_parts,
            tax_base=rules.tax_base,
            bracket_period=rules.bracket_period,
            period_fraction=breakdown.proration.period_fraction,
            precision=precision,
        )
        other_taxes = self._other_taxes.calculate(
            levies,
            breakdown,
            default_bases=rules.default_bases,
            precision=precision,
        )
        net = NetAssembler(policy).assemble(
            gross_salary=breakdown.total_gross,
            employee_contributions=contributions.employee_total,
            cmu_employee=health.employee_amount,
            income_tax=tax.income_tax,
            employer_contributions=contributions.employer_total,
            cmu_employer=health.employer_amount,
            other_taxes_employer=other_taxes.employer_total,
            other_taxes_employee=other_taxes.employee_total,
            currency=rules.currency,
        )

        result = PayrollResult(
            employee_id=payroll_input.employee_id,
            country_code=country,
            currency=rules.currency,
            period_start=payroll_input.period_start,
            period_end=payroll_input.period_end,
            is_preview=payroll_input.is_preview,
            gross_salary=breakdown.total_gross,
            taxable_gross=breakdown.taxable_gross,
            component_breakdown=breakdown.lines,
            contribution_details=contributions.lines,
            employee_contributions_total=contributions.employee_total,
            employer_contributions_total=contributions.employer_total,
            cmu_employee=health.employee_amount,
            cmu_employer=health.employer_amount,
            income_tax=tax.income_tax,
            income_tax_details=tax,
            other_taxes_details=other_taxes.lines,
            other_taxes_employer_total=other_taxes.employer_total,
            other_taxes_employee_total=other_taxes.employee_total,
            net_salary=net.net_salary,
            rounding_adjustment=net.rounding_adjustment,
            rounding_policy=net.rounding_policy,
            employer_cost=net.employer_cost,
            proration=breakdown.proration,
            warnings=resolution.warnings + breakdown.warnings,
            config_checksum=config.checksum,
            payroll_run_id=payroll_input.payroll_run_id,
        )
        _verify_invariants(result)
        return result


def _verify_invariants(result: PayrollResult) -> None:
    """Re-check the sums that define a valid payslip."""
    lines = result.component_breakdown
    if result.gross_salary != sum((line.prorated_amount for line in lines), Decimal("0")):
        raise ComputationError("Gross does not equal the sum of components", invariant="gross_sum")
    if result.taxable_gross != sum(
        (line.prorated_amount for line in lines if line.taxable), Decimal("0")
    ):
        raise ComputationError(
            "Taxable gross does not equal the sum of taxable components",
            invariant="taxable_gross_sum",
        )
    expected_cost = (
        result.gross_salary
        + result.employer_contributions_total
        + result.cmu_employer
        + result.other_taxes_employer_total
    )
    if result.employer_cost != expected_cost:
        raise ComputationError(
            f"Employer cost {result.employer_cost} != {expected_cost}",
            invariant="employer_cost_conservation",
        )


@traced_engine("payroll", ENGINE_VERSION, fingerprint_fields=("payroll_input", "config"))
def compute(
    payroll_input: PayrollInput,
    config: CountryPayrollConfig,
    rounding_policy: str | RoundingPolicy | None = None,
) -> PayrollResult:
    """Compute a payslip. See ``PayrollCalculator.compute``."""
    return PayrollCalculator(rounding_policy).compute(payroll_input, config)
