"""
payroll_engines -- pure payroll calculation engines.

Responsibility:
    Stateless calculators that turn a ``PayrollInput`` and a
    ``CountryPayrollConfig`` into a ``PayrollResult``.  The single public
    operation is ``compute``; the individual calculators are exported for
    callers that need one step on its own (previews, simulations).

Architecture:
    Engines depend on ``payroll_kernel`` (logging, exceptions, currency)
    and on ``payroll_config.schema`` types only.  They never load
    configuration, perform I/O or keep state between calls.

Invariants:
    - Decimal arithmetic throughout; no floats.
    - Identical inputs always yield identical results.
"""

from payroll_engines.bases import BaseSource, ResolvedBase, resolve_base
from payroll_engines.components import (
    ComponentResolver,
    MetadataSource,
    ResolutionResult,
    ResolvedComponent,
)
from payroll_engines.contributions import (
    ContributionCalculator,
    ContributionLine,
    ContributionResult,
    RateSource,
)
from payroll_engines.gross import (
    ComponentLine,
    GrossAssembler,
    GrossBreakdown,
    HourClassification,
    ProrationContext,
    WorkSchedule,
    classify_hours,
    minimum_wage_for_rate,
)
from payroll_engines.health_coverage import HealthCoverageCalculator, HealthCoverageResult
from payroll_engines.income_tax import (
    BracketLine,
    IncomeTaxCalculator,
    IncomeTaxResult,
    compute_fiscal_parts,
    family_deduction_for,
    has_family,
    marginal_tax,
)
from payroll_engines.models import (
    PaymentFrequency,
    PayrollInput,
    PremiumHours,
    RateType,
    SalaryComponentInstance,
    SourceType,
)
from payroll_engines.net import NetAssembler, NetResult
from payroll_engines.other_taxes import OtherTaxesCalculator, OtherTaxesResult, OtherTaxLine
from payroll_engines.payroll import PayrollCalculator, PayrollResult, compute
from payroll_engines.rounding import (
    ROUNDING_POLICIES,
    NearestHundredPlusEighteenRounding,
    NearestUnitRounding,
    RoundingPolicy,
    get_rounding_policy,
)
from payroll_engines.tracer import traced_engine

__all__ = [
    # Entry point
    "compute",
    "PayrollCalculator",
    "PayrollResult",
    # Inputs
    "PayrollInput",
    "PremiumHours",
    "SalaryComponentInstance",
    "RateType",
    "PaymentFrequency",
    "SourceType",
    # Component resolution
    "ComponentResolver",
    "MetadataSource",
    "ResolutionResult",
    "ResolvedComponent",
    # Gross
    "GrossAssembler",
    "GrossBreakdown",
    "ComponentLine",
    "ProrationContext",
    "HourClassification",
    "WorkSchedule",
    "classify_hours",
    "minimum_wage_for_rate",
    # Bases
    "BaseSource",
    "ResolvedBase",
    "resolve_base",
    # Contributions
    "ContributionCalculator",
    "ContributionLine",
    "ContributionResult",
    "RateSource",
    # Health coverage
    "HealthCoverageCalculator",
    "HealthCoverageResult",
    # Income tax
    "IncomeTaxCalculator",
    "IncomeTaxResult",
    "BracketLine",
    "compute_fiscal_parts",
    "family_deduction_for",
    "has_family",
    "marginal_tax",
    # Other taxes
    "OtherTaxesCalculator",
    "OtherTaxesResult",
    "OtherTaxLine",
    # Net
    "NetAssembler",
    "NetResult",
    "RoundingPolicy",
    "NearestUnitRounding",
    "NearestHundredPlusEighteenRounding",
    "ROUNDING_POLICIES",
    "get_rounding_policy",
    # Tracing
    "traced_engine",
]
