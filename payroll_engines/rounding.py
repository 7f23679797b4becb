"""
Net-pay rounding policies.

Two legal readings of net-pay rounding are in circulation, so the policy
is a named, swappable strategy selected by country configuration or per
call:

    nearest_unit              nearest whole currency unit (default)
    nearest_hundred_plus_18   round((net + 18) / 100) x 100

Both round half up and are idempotent: rounding an amount already at the
policy's granularity returns it unchanged.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from payroll_kernel.domain.currency import CurrencyRegistry

DEFAULT_ROUNDING_POLICY = "nearest_unit"


class RoundingPolicy:
    """Base class for net-pay rounding strategies."""

    name: ClassVar[str] = ""

    def round(self, amount: Decimal, currency: str) -> Decimal:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NearestUnitRounding(RoundingPolicy):
    """Round to the currency's smallest unit (1 for XOF)."""

    name: ClassVar[str] = "nearest_unit"

    def round(self, amount: Decimal, currency: str) -> Decimal:
        return amount.quantize(
            CurrencyRegistry.get_smallest_unit(currency), rounding=ROUND_HALF_UP
        )


class NearestHundredPlusEighteenRounding(RoundingPolicy):
    """Add 18, then round to the nearest 100 currency units."""

    name: ClassVar[str] = "nearest_hundred_plus_18"

    OFFSET: ClassVar[Decimal] = Decimal("18")
    STEP: ClassVar[Decimal] = Decimal("100")

    def round(self, amount: Decimal, currency: str) -> Decimal:
        hundreds = ((amount + self.OFFSET) / self.STEP).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return hundreds * self.STEP


ROUNDING_POLICIES: dict[str, RoundingPolicy] = {
    policy.name: policy
    for policy in (NearestUnitRounding(), NearestHundredPlusEighteenRounding())
}


def get_rounding_policy(policy: str | RoundingPolicy | None = None) -> RoundingPolicy:
    """
    Resolve a rounding policy by name.

    Raises:
        ValueError: If the name is not registered.
    """
    if isinstance(policy, RoundingPolicy):
        return policy
    name = policy or DEFAULT_ROUNDING_POLICY
    try:
        return ROUNDING_POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown rounding policy {name!r}; expected one of "
            + ", ".join(sorted(ROUNDING_POLICIES))
        ) from None
