"""
Calculation-base resolution shared by contributions and levies.

Every requested base resolves to exactly one amount, in order:

    1. component   -- at least one salary component declares the base
    2. default     -- the country maps the base to another declared base
    3. fallback    -- total gross

The country default is followed one hop only, so resolution can never
cycle.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from payroll_config.schema import BaseId
from payroll_engines.gross import GrossBreakdown


class BaseSource(str, Enum):
    COMPONENT = "component"
    COUNTRY_DEFAULT = "country_default"
    TOTAL_GROSS_FALLBACK = "total_gross_fallback"


@dataclass(frozen=True)
class ResolvedBase:
    requested: BaseId
    resolved: BaseId
    amount: Decimal
    source: BaseSource


def resolve_base(
    requested: BaseId,
    breakdown: GrossBreakdown,
    default_bases: Mapping[BaseId, BaseId],
) -> ResolvedBase:
    amount = breakdown.base_total(requested)
    if amount is not None:
        return ResolvedBase(requested, requested, amount, BaseSource.COMPONENT)

    default = default_bases.get(requested)
    if default is not None:
        amount = breakdown.base_total(default)
        if amount is not None:
            return ResolvedBase(requested, default, amount, BaseSource.COUNTRY_DEFAULT)

    return ResolvedBase(
        requested,
        BaseId.TOTAL_GROSS,
        breakdown.total_gross,
        BaseSource.TOTAL_GROSS_FALLBACK,
    )
