"""
Payroll input models.

Responsibility
--------------
Frozen value objects describing one payroll invocation: the salary
components, the contract profile and the pay period.  Constructed fresh
per call and never persisted by the engine.

Invariants enforced
-------------------
* Period bounds are ordered and the employee is employed at some point
  within the period.
* Component codes are unique and amounts are non-negative.
* Fiscal parts are at least one; worked units are non-negative.
* MONTHLY rate components are only paid with a MONTHLY frequency.
* A pay period fits its payment frequency (one day for DAILY, seven for
  WEEKLY, ...) and worked units fit the period's calendar days.
* Premium hours belong to HOURLY periods and are part of the hours worked.

Failure modes
-------------
* ``ValidationError`` from ``__post_init__`` for any violation above.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_config.schema import ComponentMetadata
from payroll_kernel.exceptions import ValidationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.models")


class RateType(str, Enum):
    """Unit a component amount is expressed in before proration."""

    MONTHLY = "monthly"
    DAILY = "daily"
    HOURLY = "hourly"


class PaymentFrequency(str, Enum):
    """How often the employee is paid."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    DAILY = "daily"

    @property
    def max_period_days(self) -> int:
        """Longest calendar span one pay period of this frequency may cover."""
        if self is PaymentFrequency.DAILY:
            return 1
        if self is PaymentFrequency.WEEKLY:
            return 7
        if self is PaymentFrequency.BIWEEKLY:
            return 14
        return 31


class SourceType(str, Enum):
    """Where a component instance came from."""

    STANDARD = "standard"
    TEMPLATE = "template"
    CUSTOM = "custom"


@dataclass(frozen=True)
class SalaryComponentInstance:
    """One salary component on a payslip, before proration."""

    code: str
    name: str
    amount: Decimal
    source_type: SourceType = SourceType.STANDARD
    metadata: ComponentMetadata | None = None

    def __post_init__(self) -> None:
        if not self.code:
            raise ValidationError("Component code is required", field="code")
        if self.amount < 0:
            logger.warning(
                "component_negative_amount",
                extra={"component_code": self.code, "amount": str(self.amount)},
            )
            raise ValidationError(
                f"Component {self.code} amount cannot be negative: {self.amount}",
                field="amount",
            )


@dataclass(frozen=True)
class PremiumHours:
    """Hours of an hourly period paid at a premium.

    Counted inside ``units_worked_this_period``; the remainder are weekday
    day hours, split into regular and overtime hours by the weekly regime.
    """

    saturday: Decimal = Decimal("0")
    sunday_holiday: Decimal = Decimal("0")
    night: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for label in ("saturday", "sunday_holiday", "night"):
            if getattr(self, label) < 0:
                raise ValidationError(
                    f"Premium {label} hours cannot be negative", field="premium_hours"
                )

    @property
    def total(self) -> Decimal:
        return self.saturday + self.sunday_holiday + self.night


@dataclass(frozen=True)
class PayrollInput:
    """Everything ``compute`` needs to know about one employee and period."""

    employee_id: str
    country_code: str
    period_start: date
    period_end: date
    hire_date: date
    components: tuple[SalaryComponentInstance, ...]
    fiscal_parts: Decimal = Decimal("1")
    has_family: bool = False
    sector_code: str | None = None
    rate_type: RateType = RateType.MONTHLY
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    units_worked_this_period: Decimal | None = None
    is_preview: bool = False
    termination_date: date | None = None
    weekly_hours: Decimal | None = None
    premium_hours: PremiumHours | None = None
    contribution_rate_overrides: Mapping[str, Decimal] = field(default_factory=dict)
    payroll_run_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))
        object.__setattr__(self, "country_code", self.country_code.upper())

        if self.period_end < self.period_start:
            raise ValidationError(
                f"Period end {self.period_end} is before period start {self.period_start}",
                field="period_end",
            )
        if self.hire_date > self.period_end:
            raise ValidationError(
                f"Hire date {self.hire_date} is after the period end {self.period_end}",
                field="hire_date",
            )
        if self.termination_date is not None:
            if self.termination_date < self.period_start:
                raise ValidationError(
                    f"Termination date {self.termination_date} is before the period",
                    field="termination_date",
                )
            if self.termination_date < self.hire_date:
                raise ValidationError(
                    "Termination date is before hire date", field="termination_date"
                )
        if not self.components:
            raise ValidationError("At least one salary component is required", field="components")

        seen: set[str] = set()
        for component in self.components:
            if component.code in seen:
                raise ValidationError(
                    f"Duplicate salary component code: {component.code}",
                    field="components",
                )
            seen.add(component.code)

        if self.fiscal_parts < 1:
            raise ValidationError(
                f"Fiscal parts must be at least 1: {self.fiscal_parts}",
                field="fiscal_parts",
            )
        if self.units_worked_this_period is not None and self.units_worked_this_period < 0:
            raise ValidationError(
                "Units worked cannot be negative", field="units_worked_this_period"
            )
        if self.weekly_hours is not None and self.weekly_hours <= 0:
            raise ValidationError("Weekly hours must be positive", field="weekly_hours")
        if (
            self.rate_type is RateType.MONTHLY
            and self.payment_frequency is not PaymentFrequency.MONTHLY
        ):
            raise ValidationError(
                f"MONTHLY rate cannot be paid {self.payment_frequency.value}",
                field="payment_frequency",
            )
        self._check_period_units()
        for code, rate in self.contribution_rate_overrides.items():
            if not Decimal("0") <= rate <= Decimal("1"):
                raise ValidationError(
                    f"Rate override for {code} must be between 0 and 1: {rate}",
                    field="contribution_rate_overrides",
                )

    @property
    def period_days(self) -> int:
        return (self.period_end - self.period_start).days + 1

    def _check_period_units(self) -> None:
        """Worked units and premium hours must fit the pay period."""
        frequency = self.payment_frequency
        if self.period_days > frequency.max_period_days:
            raise ValidationError(
                f"A {frequency.value} pay period spans at most "
                f"{frequency.max_period_days} day(s), got {self.period_days}",
                field="period_end",
            )

        units = self.units_worked_this_period
        if units is not None:
            if self.rate_type is RateType.DAILY and units > self.period_days:
                raise ValidationError(
                    f"Days worked {units} exceed the {self.period_days} day(s) of the period",
                    field="units_worked_this_period",
                )
            if self.rate_type is RateType.HOURLY and units > 24 * self.period_days:
                raise ValidationError(
                    f"Hours worked {units} exceed the {24 * self.period_days} hours "
                    f"of the period",
                    field="units_worked_this_period",
                )

        if self.premium_hours is not None:
            if self.rate_type is not RateType.HOURLY:
                raise ValidationError(
                    "Premium hours apply to HOURLY rates only", field="premium_hours"
                )
            if units is None:
                raise ValidationError(
                    "Premium hours require the hours worked", field="units_worked_this_period"
                )
            if self.premium_hours.total > units:
                raise ValidationError(
                    f"Premium hours {self.premium_hours.total} exceed hours worked {units}",
                    field="premium_hours",
                )
