"""
Other-Taxes Calculator -- flat-rate levies on a calculation base.

Responsibility:
    Computes levies such as training-fund taxes: resolve the levy's base
    with the same precedence as contributions, multiply by the rate.

The payer is honored generically.  Employer-paid levies enter employer
cost; employee-paid levies (none in the shipped country packs) are
withheld from net pay.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from payroll_config.schema import BaseId, OtherTaxDefinition, Payer
from payroll_engines.bases import BaseSource, resolve_base
from payroll_engines.gross import GrossBreakdown
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.other_taxes")


@dataclass(frozen=True)
class OtherTaxLine:
    code: str
    name: str
    payer: Payer
    base_id: BaseId
    base_source: BaseSource
    base: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class OtherTaxesResult:
    lines: tuple[OtherTaxLine, ...]

    @property
    def employer_total(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.payer is Payer.EMPLOYER),
            Decimal("0"),
        )

    @property
    def employee_total(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.payer is Payer.EMPLOYEE),
            Decimal("0"),
        )

    @property
    def total(self) -> Decimal:
        return self.employer_total + self.employee_total


class OtherTaxesCalculator:
    """Computes flat-rate levies."""

    def calculate(
        self,
        definitions: Iterable[OtherTaxDefinition],
        breakdown: GrossBreakdown,
        *,
        default_bases: Mapping[BaseId, BaseId] | None = None,
        precision: Decimal = Decimal("0.01"),
    ) -> OtherTaxesResult:
        default_bases = default_bases or {}
        lines = []
        for definition in definitions:
            resolved = resolve_base(definition.calculation_base, breakdown, default_bases)
            lines.append(
                OtherTaxLine(
                    code=definition.code,
                    name=definition.name,
                    payer=definition.payer,
                    base_id=resolved.resolved,
                    base_source=resolved.source,
                    base=resolved.amount,
                    rate=definition.rate,
                    amount=(resolved.amount * definition.rate).quantize(
                        precision, rounding=ROUND_HALF_UP
                    ),
                )
            )

        result = OtherTaxesResult(lines=tuple(lines))
        logger.debug(
            "other_taxes_calculated",
            extra={
                "line_count": len(lines),
                "employer_total": str(result.employer_total),
                "employee_total": str(result.employee_total),
            },
        )
        return result
