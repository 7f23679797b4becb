"""
Health-Coverage Calculator -- fixed universal-health-coverage charges.

The employee charge is a fixed amount.  The employer charge is one of two
fixed amounts selected by family status: the "with family" amount when
the employee has a spouse or at least one dependent, otherwise the base
amount.  No percentage math and no proration: the charges are paid in
full whatever the rate type, as long as the period has paid work.  An
hourly or daily period with no units worked and no fixed pay is charged
nothing.

A country without configured amounts charges nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_config.schema import HealthCoverageAmounts
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.health_coverage")


@dataclass(frozen=True)
class HealthCoverageResult:
    employee_amount: Decimal
    employer_amount: Decimal
    has_family: bool
    configured: bool
    charged: bool


class HealthCoverageCalculator:
    """Selects the fixed health-coverage charges for one employee."""

    def calculate(
        self,
        amounts: HealthCoverageAmounts | None,
        has_family: bool,
        *,
        has_paid_work: bool = True,
    ) -> HealthCoverageResult:
        if amounts is None or not has_paid_work:
            if amounts is not None:
                logger.info("health_coverage_skipped", extra={"reason": "no_paid_work"})
            return HealthCoverageResult(
                employee_amount=Decimal("0"),
                employer_amount=Decimal("0"),
                has_family=has_family,
                configured=amounts is not None,
                charged=False,
            )

        result = HealthCoverageResult(
            employee_amount=amounts.employee_amount,
            employer_amount=amounts.employer_amount(has_family),
            has_family=has_family,
            configured=True,
            charged=True,
        )
        logger.debug(
            "health_coverage_calculated",
            extra={
                "has_family": has_family,
                "employee_amount": str(result.employee_amount),
                "employer_amount": str(result.employer_amount),
            },
        )
        return result
