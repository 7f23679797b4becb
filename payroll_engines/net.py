"""
Net Assembler -- net pay and total employer cost.

    net_salary    = round(gross - employee contributions - cmu employee
                          - income tax - employee-paid levies)
    employer_cost = gross + employer contributions + cmu employer
                    + employer-paid levies

Only net pay is rounded, by the selected ``RoundingPolicy``.  Employer
cost is an exact sum of already-quantized amounts.

Failure modes:
    - ``ComputationError`` if deductions exceed gross (negative net pay).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_engines.rounding import RoundingPolicy
from payroll_kernel.exceptions import ComputationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.net")


@dataclass(frozen=True)
class NetResult:
    unrounded_net: Decimal
    net_salary: Decimal
    rounding_adjustment: Decimal
    employer_cost: Decimal
    rounding_policy: str


class NetAssembler:
    """Combines gross and deductions into net pay and employer cost."""

    def __init__(self, rounding_policy: RoundingPolicy):
        self.rounding_policy = rounding_policy

    def assemble(
        self,
        *,
        gross_salary: Decimal,
        employee_contributions: Decimal,
        cmu_employee: Decimal,
        income_tax: Decimal,
        employer_contributions: Decimal,
        cmu_employer: Decimal,
        other_taxes_employer: Decimal,
        other_taxes_employee: Decimal = Decimal("0"),
        currency: str,
    ) -> NetResult:
        """
        Raises:
            ComputationError: If net pay would be negative.
        """
        unrounded = (
            gross_salary
            - employee_contributions
            - cmu_employee
            - income_tax
            - other_taxes_employee
        )
        if unrounded < 0:
            logger.error(
                "negative_net_pay",
                extra={
                    "gross_salary": str(gross_salary),
                    "unrounded_net": str(unrounded),
                },
            )
            raise ComputationError(
                f"Deductions exceed gross salary: net pay would be {unrounded}",
                invariant="non_negative_net",
            )

        net_salary = self.rounding_policy.round(unrounded, currency)
        employer_cost = (
            gross_salary + employer_contributions + cmu_employer + other_taxes_employer
        )
        return NetResult(
            unrounded_net=unrounded,
            net_salary=net_salary,
            rounding_adjustment=net_salary - unrounded,
            employer_cost=employer_cost,
            rounding_policy=self.rounding_policy.name,
        )
