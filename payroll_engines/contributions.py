"""
Contribution Calculator -- social-security contributions.

Responsibility:
    Computes each configured contribution type (retirement, work
    accident, family benefits, ...) and splits it into employee and
    employer lines.

Per contribution type:
    1. Resolve the calculation base (see ``payroll_engines.bases``).
    2. Apply the ceiling: base = min(base, ceiling), with the ceiling
       brought to the pay period (monthly, quarterly or annual ceiling
       divided into months, times the period's share of a month).
    3. Resolve the effective rates: the type's default, replaced by the
       sector override for the employee's sector, replaced by an
       employer-specific rate override.
    4. Employee share when payer is employee or both, employer share when
       payer is employer or both: base x rate, or the fixed amount for
       fixed-amount types.

Contributions are never prorated beyond what proration already did to
the base; fixed amounts are charged in full, and not at all for a period
with no paid work.

Usage:
    from payroll_engines.contributions import ContributionCalculator

    result = ContributionCalculator().calculate(
        config.contribution_types_for("CI"),
        breakdown,
        sector_code="construction",
    )
    result.employee_total, result.employer_total
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from payroll_config.schema import BaseId, ContributionTypeDefinition, Payer
from payroll_engines.bases import BaseSource, resolve_base
from payroll_engines.gross import GrossBreakdown
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.contributions")


class RateSource(str, Enum):
    DEFAULT = "default"
    SECTOR = "sector"
    EMPLOYER_OVERRIDE = "employer_override"
    FIXED = "fixed"


@dataclass(frozen=True)
class ContributionLine:
    """One contribution share (employee or employer) for one type."""

    code: str
    name: str
    payer: Payer
    base_id: BaseId
    base_source: BaseSource
    uncapped_base: Decimal
    base: Decimal
    rate: Decimal | None
    rate_source: RateSource
    amount: Decimal

    @property
    def ceiling_applied(self) -> bool:
        return self.base < self.uncapped_base


@dataclass(frozen=True)
class ContributionResult:
    """Itemized contributions with employee and employer totals."""

    lines: tuple[ContributionLine, ...]

    @property
    def employee_lines(self) -> tuple[ContributionLine, ...]:
        return tuple(line for line in self.lines if line.payer is Payer.EMPLOYEE)

    @property
    def employer_lines(self) -> tuple[ContributionLine, ...]:
        return tuple(line for line in self.lines if line.payer is Payer.EMPLOYER)

    @property
    def employee_total(self) -> Decimal:
        return sum((line.amount for line in self.employee_lines), Decimal("0"))

    @property
    def employer_total(self) -> Decimal:
        return sum((line.amount for line in self.employer_lines), Decimal("0"))

    def amount_for(self, code: str, payer: Payer) -> Decimal:
        """Amount of one share, zero when the type does not charge it."""
        return sum(
            (line.amount for line in self.lines if line.code == code and line.payer is payer),
            Decimal("0"),
        )


class ContributionCalculator:
    """Computes social-security contributions."""

    def calculate(
        self,
        contribution_types: Iterable[ContributionTypeDefinition],
        breakdown: GrossBreakdown,
        *,
        sector_code: str | None = None,
        default_bases: Mapping[BaseId, BaseId] | None = None,
        rate_overrides: Mapping[str, Decimal] | None = None,
        precision: Decimal = Decimal("0.01"),
    ) -> ContributionResult:
        """
        Compute every contribution type.

        Args:
            contribution_types: The country's contribution definitions.
            breakdown: Assembled gross with per-base subtotals.
            sector_code: Employer's sector for sector rate overrides.
            default_bases: Country fallback mapping between bases.
            rate_overrides: Employer-specific employer rates by type code.
            precision: Quantum for line amounts.
        """
        default_bases = default_bases or {}
        period_fraction = breakdown.proration.period_fraction
        rate_overrides = rate_overrides or {}
        lines: list[ContributionLine] = []

        for definition in contribution_types:
            resolved = resolve_base(definition.calculation_base, breakdown, default_bases)
            base = resolved.amount
            ceiling = definition.ceiling_for_period(period_fraction)
            if ceiling is not None:
                base = min(base, ceiling.quantize(precision, rounding=ROUND_HALF_UP))
            if definition.is_fixed and not breakdown.has_paid_work:
                continue

            employee_rate, employer_rate, rate_source = self._effective_rates(
                definition, sector_code, rate_overrides
            )

            shares = (
                (Payer.EMPLOYEE, definition.payer.employee_pays, employee_rate),
                (Payer.EMPLOYER, definition.payer.employer_pays, employer_rate),
            )
            for payer, pays, rate in shares:
                if not pays:
                    continue
                if definition.is_fixed:
                    amount = definition.fixed_amount
                    line_rate = None
                else:
                    amount = (base * rate).quantize(precision, rounding=ROUND_HALF_UP)
                    line_rate = rate
                lines.append(
                    ContributionLine(
                        code=definition.code,
                        name=definition.name,
                        payer=payer,
                        base_id=resolved.resolved,
                        base_source=resolved.source,
                        uncapped_base=resolved.amount,
                        base=base,
                        rate=line_rate,
                        rate_source=rate_source,
                        amount=amount,
                    )
                )

        result = ContributionResult(lines=tuple(lines))
        logger.debug(
            "contributions_calculated",
            extra={
                "line_count": len(lines),
                "sector_code": sector_code,
                "employee_total": str(result.employee_total),
                "employer_total": str(result.employer_total),
            },
        )
        return result

    def _effective_rates(
        self,
        definition: ContributionTypeDefinition,
        sector_code: str | None,
        rate_overrides: Mapping[str, Decimal],
    ) -> tuple[Decimal, Decimal, RateSource]:
        if definition.is_fixed:
            return Decimal("0"), Decimal("0"), RateSource.FIXED

        employee_rate = definition.employee_rate
        employer_rate = definition.employer_rate
        source = RateSource.DEFAULT

        override = definition.sector_overrides.get(sector_code) if sector_code else None
        if override is not None:
            if override.employer_rate is not None:
                employer_rate = override.employer_rate
            if override.employee_rate is not None:
                employee_rate = override.employee_rate
            source = RateSource.SECTOR

        if definition.code in rate_overrides:
            employer_rate = rate_overrides[definition.code]
            source = RateSource.EMPLOYER_OVERRIDE

        return employee_rate, employer_rate, source
