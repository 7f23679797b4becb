"""
Gross Assembler -- prorates components and assembles gross salary.

Responsibility:
    Turns resolved salary components into prorated amounts and sums them
    into total gross, taxable gross and one subtotal per calculation base.
    Enforces the statutory minimum-wage floor.

Proration, for components not marked fixed:
    MONTHLY  amount as-is for a full calendar month, otherwise scaled by
             days worked / days in month (mid-month hire or departure).
    DAILY    amount is a per-day rate, multiplied by days worked.
    HOURLY   amount is a per-hour rate, multiplied by hours worked.

    Fixed-amount components are paid in full regardless of rate type.

Premium hours (HOURLY, countries with overtime rules):
    Weekday hours = hours worked - Saturday, Sunday/holiday and night hours.
    Weekday hours up to the period's regime hours are regular; beyond
    that, the first tier (first_tier_hours per week) is paid at the first
    multiplier and the rest at the second.  Premium hours are paid at
    their own multipliers.  Every non-fixed hourly component is paid on
    the weighted hours (paid_units) instead of the raw hours.

Work schedule:
    hours_per_day = weekly_hours / 5
    monthly_hours = weekly_hours * 52 / 12
    Payment frequency selects hours_per_day, weekly_hours, 2 x weekly_hours
    or monthly_hours (DAILY, WEEKLY, BIWEEKLY, MONTHLY) as the full-period
    unit count.

Invariants:
    - total_gross == sum of prorated line amounts.
    - taxable_gross == sum of prorated amounts of taxable lines.
    - Line amounts are quantized to the calculation precision before
      summing, so both sums are exact.

Usage:
    from payroll_engines.gross import GrossAssembler

    assembler = GrossAssembler()
    breakdown = assembler.assemble(resolution.components, payroll_input)
    assembler.check_minimum_wage(breakdown, Decimal("75000"), "CI")
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from payroll_config.schema import BaseId, OvertimeRules
from payroll_engines.components import MetadataSource, ResolvedComponent
from payroll_engines.models import PaymentFrequency, PayrollInput, PremiumHours, RateType
from payroll_kernel.exceptions import BelowMinimumWageError, ValidationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.gross")

# Statutory conversion of a monthly minimum wage to daily and hourly rates.
DAYS_PER_MONTH = Decimal("30")
HOURS_PER_DAY = Decimal("8")


@dataclass(frozen=True)
class WorkSchedule:
    """Weekly-hours regime used to derive full-period unit counts."""

    weekly_hours: Decimal = Decimal("40")

    def __post_init__(self) -> None:
        if self.weekly_hours <= 0:
            raise ValueError(f"Weekly hours must be positive: {self.weekly_hours}")

    @property
    def hours_per_day(self) -> Decimal:
        return self.weekly_hours / 5

    @property
    def monthly_hours(self) -> Decimal:
        return self.weekly_hours * 52 / 12

    def hours_per_period(self, frequency: PaymentFrequency) -> Decimal:
        if frequency is PaymentFrequency.DAILY:
            return self.hours_per_day
        if frequency is PaymentFrequency.WEEKLY:
            return self.weekly_hours
        if frequency is PaymentFrequency.BIWEEKLY:
            return self.weekly_hours * 2
        return self.monthly_hours

    def weeks_per_period(self, frequency: PaymentFrequency) -> Decimal:
        return self.hours_per_period(frequency) / self.weekly_hours

    def units_per_period(self, rate_type: RateType, frequency: PaymentFrequency) -> Decimal:
        """Full-period units: hours for HOURLY, days for DAILY."""
        hours = self.hours_per_period(frequency)
        if rate_type is RateType.HOURLY:
            return hours
        return hours / self.hours_per_day

    def period_fraction(self, frequency: PaymentFrequency) -> Decimal:
        """Share of a month one pay period represents."""
        if frequency is PaymentFrequency.MONTHLY:
            return Decimal("1")
        return self.hours_per_period(frequency) / self.monthly_hours


@dataclass(frozen=True)
class HourClassification:
    """Hours of an hourly period by pay multiplier."""

    regular: Decimal
    overtime_first_tier: Decimal
    overtime_second_tier: Decimal
    saturday: Decimal
    sunday_holiday: Decimal
    night: Decimal

    @property
    def overtime(self) -> Decimal:
        return self.overtime_first_tier + self.overtime_second_tier

    def paid_units(self, rules: OvertimeRules) -> Decimal:
        """Hours weighted by their multipliers."""
        return (
            self.regular
            + self.overtime_first_tier * rules.first_tier_multiplier
            + self.overtime_second_tier * rules.second_tier_multiplier
            + self.saturday * rules.saturday_multiplier
            + self.sunday_holiday * rules.sunday_holiday_multiplier
            + self.night * rules.night_multiplier
        )


def classify_hours(
    hours_worked: Decimal,
    premium: PremiumHours | None,
    regime_hours: Decimal,
    first_tier_hours: Decimal,
) -> HourClassification:
    """Split hours worked into regular, overtime and premium hours.

    ``regime_hours`` and ``first_tier_hours`` are for the whole period
    (40 and 8 for one week of a 40-hour regime).
    """
    premium = premium or PremiumHours()
    weekday = hours_worked - premium.total
    overtime = max(weekday - regime_hours, Decimal("0"))
    first_tier = min(overtime, first_tier_hours)
    return HourClassification(
        regular=weekday - overtime,
        overtime_first_tier=first_tier,
        overtime_second_tier=overtime - first_tier,
        saturday=premium.saturday,
        sunday_holiday=premium.sunday_holiday,
        night=premium.night,
    )


@dataclass(frozen=True)
class ProrationContext:
    """How component amounts were scaled for this period.

    ``paid_units`` equals ``units_worked`` unless hourly premiums apply.
    """

    rate_type: RateType
    payment_frequency: PaymentFrequency
    weekly_hours: Decimal
    units_worked: Decimal
    units_defaulted: bool
    days_in_month: int
    monthly_factor: Decimal
    period_fraction: Decimal
    paid_units: Decimal
    hours: HourClassification | None = None

    @property
    def equivalent_days(self) -> Decimal:
        """Days worked; hourly periods count one day per 8 hours."""
        if self.rate_type is RateType.HOURLY:
            return self.units_worked / HOURS_PER_DAY
        return self.units_worked

    def prorate(self, amount: Decimal, is_fixed_amount: bool) -> Decimal:
        if is_fixed_amount:
            return amount
        if self.rate_type is RateType.MONTHLY:
            return amount * self.monthly_factor
        return amount * self.paid_units


@dataclass(frozen=True)
class ComponentLine:
    """One component on the payslip, before and after proration."""

    code: str
    name: str
    configured_amount: Decimal
    prorated_amount: Decimal
    taxable: bool
    is_fixed_amount: bool
    bases: frozenset[BaseId]
    metadata_source: MetadataSource


@dataclass(frozen=True)
class GrossBreakdown:
    """Assembled gross salary with per-base subtotals."""

    lines: tuple[ComponentLine, ...]
    total_gross: Decimal
    taxable_gross: Decimal
    base_totals: dict[BaseId, Decimal]
    proration: ProrationContext
    warnings: tuple[str, ...] = field(default=())

    def base_total(self, base_id: BaseId) -> Decimal | None:
        """Subtotal for a base, or None when no component declares it."""
        return self.base_totals.get(base_id)

    @property
    def has_paid_work(self) -> bool:
        """False when nothing was worked and no fixed amount is paid.

        Per-period charges (health coverage, fixed contributions) are only
        due when this holds.
        """
        if self.proration.units_worked > 0:
            return True
        return any(line.is_fixed_amount and line.prorated_amount > 0 for line in self.lines)


def _days_employed(payroll_input: PayrollInput) -> int:
    start = max(payroll_input.period_start, payroll_input.hire_date)
    end = payroll_input.period_end
    if payroll_input.termination_date is not None:
        end = min(end, payroll_input.termination_date)
    return (end - start).days + 1


def _is_calendar_month(start: date, end: date) -> bool:
    last_day = calendar.monthrange(start.year, start.month)[1]
    return start.day == 1 and end == start.replace(day=last_day)


class GrossAssembler:
    """Prorates components and assembles gross and taxable gross."""

    def build_proration(
        self,
        payroll_input: PayrollInput,
        default_weekly_hours: Decimal = Decimal("40"),
        overtime: OvertimeRules | None = None,
    ) -> tuple[ProrationContext, tuple[str, ...]]:
        """
        Derive the proration context for a payroll input.

        Hourly periods are classified into regular, overtime and premium
        hours when ``overtime`` rules are given.

        Raises:
            ValidationError: If units are missing in a committed DAILY or
                HOURLY run, a MONTHLY period spans several months, or
                premium hours are given without overtime rules.
        """
        schedule = WorkSchedule(payroll_input.weekly_hours or default_weekly_hours)
        start, end = payroll_input.period_start, payroll_input.period_end
        days_in_month = calendar.monthrange(start.year, start.month)[1]
        warnings: list[str] = []
        units = payroll_input.units_worked_this_period
        defaulted = False

        if payroll_input.rate_type is RateType.MONTHLY:
            if (end.year, end.month) != (start.year, start.month):
                raise ValidationError(
                    "A MONTHLY pay period must fall within one calendar month",
                    field="period_end",
                )
            if units is None:
                days = _days_employed(payroll_input)
                full = _is_calendar_month(start, end) and days == days_in_month
                units = Decimal(days)
                factor = Decimal("1") if full else units / days_in_month
            else:
                if units > days_in_month:
                    raise ValidationError(
                        f"Days worked {units} exceed the {days_in_month} days in the month",
                        field="units_worked_this_period",
                    )
                factor = units / days_in_month
        else:
            if units is None:
                if not payroll_input.is_preview:
                    raise ValidationError(
                        f"{payroll_input.rate_type.value} rate requires units worked",
                        field="units_worked_this_period",
                    )
                units = schedule.units_per_period(
                    payroll_input.rate_type, payroll_input.payment_frequency
                )
                defaulted = True
                warnings.append(
                    f"Units worked defaulted to a full {payroll_input.payment_frequency.value} "
                    f"period ({units.quantize(Decimal('0.01'))})"
                )
            factor = Decimal("1")

        hours = None
        paid_units = units
        if payroll_input.rate_type is RateType.HOURLY and overtime is not None:
            frequency = payroll_input.payment_frequency
            hours = classify_hours(
                units,
                payroll_input.premium_hours,
                regime_hours=schedule.hours_per_period(frequency),
                first_tier_hours=overtime.first_tier_hours * schedule.weeks_per_period(frequency),
            )
            paid_units = hours.paid_units(overtime)
        elif payroll_input.premium_hours is not None:
            raise ValidationError(
                f"No premium hour rates configured for {payroll_input.country_code}",
                field="premium_hours",
            )

        context = ProrationContext(
            rate_type=payroll_input.rate_type,
            payment_frequency=payroll_input.payment_frequency,
            weekly_hours=schedule.weekly_hours,
            units_worked=units,
            units_defaulted=defaulted,
            days_in_month=days_in_month,
            monthly_factor=factor,
            period_fraction=schedule.period_fraction(payroll_input.payment_frequency),
            paid_units=paid_units,
            hours=hours,
        )
        return context, tuple(warnings)

    def assemble(
        self,
        components: Iterable[ResolvedComponent],
        payroll_input: PayrollInput,
        *,
        default_weekly_hours: Decimal = Decimal("40"),
        overtime: OvertimeRules | None = None,
        precision: Decimal = Decimal("0.01"),
    ) -> GrossBreakdown:
        """Prorate each component and build the gross breakdown."""
        proration, warnings = self.build_proration(
            payroll_input, default_weekly_hours, overtime
        )

        lines: list[ComponentLine] = []
        base_totals: dict[BaseId, Decimal] = {
            BaseId.TOTAL_GROSS: Decimal("0"),
            BaseId.TAXABLE_GROSS: Decimal("0"),
        }
        for component in components:
            prorated = proration.prorate(
                component.amount, component.is_fixed_amount
            ).quantize(precision, rounding=ROUND_HALF_UP)
            lines.append(
                ComponentLine(
                    code=component.code,
                    name=component.name,
                    configured_amount=component.amount,
                    prorated_amount=prorated,
                    taxable=component.taxable,
                    is_fixed_amount=component.is_fixed_amount,
                    bases=component.bases,
                    metadata_source=component.metadata_source,
                )
            )
            for base_id in component.bases:
                base_totals[base_id] = base_totals.get(base_id, Decimal("0")) + prorated

        breakdown = GrossBreakdown(
            lines=tuple(lines),
            total_gross=base_totals[BaseId.TOTAL_GROSS],
            taxable_gross=base_totals[BaseId.TAXABLE_GROSS],
            base_totals=base_totals,
            proration=proration,
            warnings=warnings,
        )

        logger.debug(
            "gross_assembled",
            extra={
                "rate_type": proration.rate_type.value,
                "units_worked": str(proration.units_worked),
                "paid_units": str(proration.paid_units),
                "equivalent_days": str(proration.equivalent_days),
                "monthly_factor": str(proration.monthly_factor),
                "total_gross": str(breakdown.total_gross),
                "taxable_gross": str(breakdown.taxable_gross),
                "line_count": len(lines),
            },
        )
        return breakdown

    def rate_granular_amount(self, breakdown: GrossBreakdown) -> Decimal:
        """Taxable pay expressed in the unit of the rate type.

        MONTHLY: declared monthly amounts of taxable components.
        DAILY / HOURLY: declared per-unit rates of taxable, non-fixed
        components.
        """
        if breakdown.proration.rate_type is RateType.MONTHLY:
            return sum(
                (line.configured_amount for line in breakdown.lines if line.taxable),
                Decimal("0"),
            )
        return sum(
            (
                line.configured_amount
                for line in breakdown.lines
                if line.taxable and not line.is_fixed_amount
            ),
            Decimal("0"),
        )

    def check_minimum_wage(
        self,
        breakdown: GrossBreakdown,
        monthly_minimum: Decimal,
        country_code: str,
    ) -> None:
        """
        Enforce the minimum-wage floor at the rate type's granularity.

        Raises:
            BelowMinimumWageError: If pay is below the converted minimum.
        """
        rate_type = breakdown.proration.rate_type
        minimum = minimum_wage_for_rate(monthly_minimum, rate_type)
        amount = self.rate_granular_amount(breakdown)
        if amount < minimum:
            logger.warning(
                "below_minimum_wage",
                extra={
                    "country_code": country_code,
                    "rate_type": rate_type.value,
                    "amount": str(amount),
                    "minimum": str(minimum),
                },
            )
            raise BelowMinimumWageError(
                country_code=country_code,
                rate_type=rate_type.value,
                amount=amount,
                minimum=minimum,
            )


def minimum_wage_for_rate(monthly_minimum: Decimal, rate_type: RateType) -> Decimal:
    """Convert a monthly minimum wage to the rate type's unit."""
    if rate_type is RateType.DAILY:
        return monthly_minimum / DAYS_PER_MONTH
    if rate_type is RateType.HOURLY:
        return monthly_minimum / (DAYS_PER_MONTH * HOURS_PER_DAY)
    return monthly_minimum
