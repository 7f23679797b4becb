"""
CountryPayrollConfig schema.

Defines the typed configuration consumed by the payroll engines. YAML
country packs are parsed into these types by the loader and composed by
the assembler into one ``CountryPayrollConfig`` aggregate.

Calculation-base identifiers are a closed enumeration (``BaseId``) resolved
once at load time; engines never see raw base strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_kernel.exceptions import ConfigurationMissingError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class BaseId(str, Enum):
    """Calculation bases a contribution or levy may be assessed on."""

    TOTAL_GROSS = "total_gross"
    TAXABLE_GROSS = "taxable_gross"
    CATEGORIAL_SALARY = "categorial_salary"
    SOCIAL_SECURITY_BASE = "social_security_base"

    @classmethod
    def parse(cls, value: str | BaseId) -> BaseId:
        """Parse a canonical or legacy base identifier.

        Raises:
            ValueError: If the identifier is unknown.
        """
        if isinstance(value, BaseId):
            return value
        key = str(value).strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass
        if key in _BASE_ID_ALIASES:
            return _BASE_ID_ALIASES[key]
        raise ValueError(f"Unknown calculation base: {value!r}")


# Identifiers used by legacy configuration stores.
_BASE_ID_ALIASES: dict[str, BaseId] = {
    "brut_imposable": BaseId.TAXABLE_GROSS,
    "brut_fiscal": BaseId.TAXABLE_GROSS,
    "gross_salary": BaseId.TOTAL_GROSS,
    "salaire_brut": BaseId.TOTAL_GROSS,
    "brut": BaseId.TOTAL_GROSS,
    "salaire_categoriel": BaseId.CATEGORIAL_SALARY,
    "base_cnps": BaseId.SOCIAL_SECURITY_BASE,
}


class Payer(str, Enum):
    """Who bears a contribution or levy."""

    EMPLOYEE = "employee"
    EMPLOYER = "employer"
    BOTH = "both"

    @property
    def employee_pays(self) -> bool:
        return self in (Payer.EMPLOYEE, Payer.BOTH)

    @property
    def employer_pays(self) -> bool:
        return self in (Payer.EMPLOYER, Payer.BOTH)


class TaxBase(str, Enum):
    """Which amount the income tax brackets are applied to."""

    GROSS_BEFORE_SS = "gross_before_ss"  # taxable gross
    GROSS_AFTER_SS = "gross_after_ss"  # taxable gross - employee contributions


class BracketPeriod(str, Enum):
    """Period the bracket and deduction tables are expressed in."""

    MONTHLY = "monthly"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        return 12 if self is BracketPeriod.ANNUAL else 1


class CeilingPeriod(str, Enum):
    """Period a contribution ceiling is expressed in."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        if self is CeilingPeriod.ANNUAL:
            return 12
        if self is CeilingPeriod.QUARTERLY:
            return 3
        return 1


# ---------------------------------------------------------------------------
# Salary components
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentMetadata:
    """Classification of a salary component.

    The defaults are the conservative classification applied to components
    without metadata: taxable, counted toward total gross only, prorated.
    ``TOTAL_GROSS`` membership is always implied; ``TAXABLE_GROSS``
    membership follows ``taxable``.
    """

    taxable: bool = True
    included_in_bases: frozenset[BaseId] = frozenset({BaseId.TOTAL_GROSS})
    is_fixed_amount: bool = False

    def __post_init__(self) -> None:
        bases = frozenset(BaseId.parse(b) for b in self.included_in_bases)
        bases = (bases - {BaseId.TAXABLE_GROSS}) | {BaseId.TOTAL_GROSS}
        if self.taxable:
            bases |= {BaseId.TAXABLE_GROSS}
        object.__setattr__(self, "included_in_bases", bases)

    def with_bases(self, *base_ids: BaseId) -> ComponentMetadata:
        """Return a copy with additional base memberships."""
        return ComponentMetadata(
            taxable=self.taxable,
            included_in_bases=self.included_in_bases | frozenset(base_ids),
            is_fixed_amount=self.is_fixed_amount,
        )


CONSERVATIVE_METADATA = ComponentMetadata()


@dataclass(frozen=True)
class ComponentDefinition:
    """Catalog entry for a salary component code."""

    code: str
    name: str
    metadata: ComponentMetadata = CONSERVATIVE_METADATA
    activated: bool = True


# ---------------------------------------------------------------------------
# Income tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxBracket:
    """One marginal income-tax bracket. ``upper_bound`` is exclusive."""

    country_code: str
    lower_bound: Decimal
    upper_bound: Decimal | None
    rate: Decimal

    def __post_init__(self) -> None:
        if self.lower_bound < 0:
            raise ValueError(
                f"Bracket lower bound cannot be negative: {self.lower_bound}"
            )
        if self.upper_bound is not None and self.upper_bound <= self.lower_bound:
            raise ValueError(
                f"Bracket upper bound {self.upper_bound} must exceed "
                f"lower bound {self.lower_bound}"
            )
        if not Decimal("0") <= self.rate <= Decimal("1"):
            raise ValueError(f"Bracket rate must be between 0 and 1: {self.rate}")

    @property
    def is_unbounded(self) -> bool:
        return self.upper_bound is None


@dataclass(frozen=True)
class FamilyDeductionRule:
    """Step in the family deduction table: applies from ``fiscal_parts_threshold``."""

    country_code: str
    fiscal_parts_threshold: Decimal
    deduction_amount: Decimal

    def __post_init__(self) -> None:
        if self.fiscal_parts_threshold < 1:
            raise ValueError(
                f"Fiscal parts threshold must be at least 1: "
                f"{self.fiscal_parts_threshold}"
            )
        if self.deduction_amount < 0:
            raise ValueError(
                f"Deduction amount cannot be negative: {self.deduction_amount}"
            )


# ---------------------------------------------------------------------------
# Social contributions and levies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SectorRateOverride:
    """Sector-specific rates. ``None`` keeps the type's default rate."""

    employer_rate: Decimal | None = None
    employee_rate: Decimal | None = None


@dataclass(frozen=True)
class ContributionTypeDefinition:
    """A social-security contribution type (retirement, work accident, ...)."""

    code: str
    name: str
    country_code: str
    payer: Payer
    employee_rate: Decimal = Decimal("0")
    employer_rate: Decimal = Decimal("0")
    fixed_amount: Decimal | None = None
    calculation_base: BaseId = BaseId.TOTAL_GROSS
    ceiling_amount: Decimal | None = None
    ceiling_period: CeilingPeriod = CeilingPeriod.MONTHLY
    sector_overrides: dict[str, SectorRateOverride] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for label, rate in (
            ("employee_rate", self.employee_rate),
            ("employer_rate", self.employer_rate),
        ):
            if not Decimal("0") <= rate <= Decimal("1"):
                raise ValueError(
                    f"Contribution {self.code} {label} must be between 0 and 1: {rate}"
                )
        if self.fixed_amount is not None and self.fixed_amount < 0:
            raise ValueError(
                f"Contribution {self.code} fixed amount cannot be negative"
            )
        if self.ceiling_amount is not None and self.ceiling_amount <= 0:
            raise ValueError(
                f"Contribution {self.code} ceiling must be positive"
            )

    @property
    def is_fixed(self) -> bool:
        return self.fixed_amount is not None

    def ceiling_for_period(self, period_fraction: Decimal) -> Decimal | None:
        """Ceiling for a pay period covering ``period_fraction`` of a month."""
        if self.ceiling_amount is None:
            return None
        return self.ceiling_amount / self.ceiling_period.months * period_fraction


@dataclass(frozen=True)
class OtherTaxDefinition:
    """Flat-rate levy on a calculation base (training fund taxes, ...)."""

    code: str
    name: str
    country_code: str
    rate: Decimal
    calculation_base: BaseId = BaseId.TAXABLE_GROSS
    payer: Payer = Payer.EMPLOYER

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.rate <= Decimal("1"):
            raise ValueError(f"Levy {self.code} rate must be between 0 and 1")
        if self.payer is Payer.BOTH:
            raise ValueError(
                f"Levy {self.code} must be paid by exactly one party"
            )


@dataclass(frozen=True)
class HealthCoverageAmounts:
    """Fixed universal-health-coverage charges."""

    employee_amount: Decimal
    employer_base_amount: Decimal
    employer_with_family_amount: Decimal

    def employer_amount(self, has_family: bool) -> Decimal:
        return (
            self.employer_with_family_amount
            if has_family
            else self.employer_base_amount
        )


# ---------------------------------------------------------------------------
# Country rules and the aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OvertimeRules:
    """Premium pay for hourly workers.

    Weekday hours beyond the weekly regime are overtime: the first
    ``first_tier_hours`` per week at ``first_tier_multiplier``, the rest at
    ``second_tier_multiplier``.  Saturday, Sunday or holiday and night hours
    are paid at their own multipliers whatever the weekly total.
    """

    first_tier_hours: Decimal = Decimal("8")
    first_tier_multiplier: Decimal = Decimal("1.15")
    second_tier_multiplier: Decimal = Decimal("1.50")
    saturday_multiplier: Decimal = Decimal("1.40")
    sunday_holiday_multiplier: Decimal = Decimal("1.40")
    night_multiplier: Decimal = Decimal("1.75")

    def __post_init__(self) -> None:
        if self.first_tier_hours < 0:
            raise ValueError(
                f"Overtime first tier hours cannot be negative: {self.first_tier_hours}"
            )
        for label in (
            "first_tier_multiplier",
            "second_tier_multiplier",
            "saturday_multiplier",
            "sunday_holiday_multiplier",
            "night_multiplier",
        ):
            if getattr(self, label) < 1:
                raise ValueError(f"Overtime {label} must be at least 1")


@dataclass(frozen=True)
class CountryRules:
    """Per-country settings that are not tables."""

    country_code: str
    name: str
    currency: str
    effective_from: date
    effective_to: date | None = None
    tax_base: TaxBase = TaxBase.GROSS_AFTER_SS
    bracket_period: BracketPeriod = BracketPeriod.MONTHLY
    max_dependents: int = 6
    default_weekly_hours: Decimal = Decimal("40")
    overtime: OvertimeRules | None = None
    base_salary_codes: frozenset[str] = frozenset()
    categorial_component_codes: frozenset[str] = frozenset()
    default_bases: dict[BaseId, BaseId] = field(default_factory=dict)
    component_catalog: dict[str, ComponentDefinition] = field(default_factory=dict)
    net_rounding: str = "nearest_unit"
    calculation_precision: Decimal = Decimal("0.01")

    def is_effective(self, as_of: date) -> bool:
        return self.effective_from <= as_of and (
            self.effective_to is None or as_of <= self.effective_to
        )


@dataclass(frozen=True)
class CountryPayrollConfig:
    """Configuration snapshot consumed by ``compute``.

    May hold several countries; the accessors select one and fail closed
    when a required table is absent.
    """

    tax_brackets: tuple[TaxBracket, ...] = ()
    family_deduction_rules: tuple[FamilyDeductionRule, ...] = ()
    contribution_types: tuple[ContributionTypeDefinition, ...] = ()
    other_taxes: tuple[OtherTaxDefinition, ...] = ()
    minimum_wage_by_country: dict[str, Decimal] = field(default_factory=dict)
    cmu_amounts: dict[str, HealthCoverageAmounts] = field(default_factory=dict)
    country_rules: dict[str, CountryRules] = field(default_factory=dict)
    config_id: str = ""
    checksum: str = ""

    def rules_for(self, country_code: str) -> CountryRules:
        try:
            return self.country_rules[country_code]
        except KeyError:
            raise ConfigurationMissingError(country_code, "country rules") from None

    def brackets_for(self, country_code: str) -> tuple[TaxBracket, ...]:
        brackets = tuple(
            sorted(
                (b for b in self.tax_brackets if b.country_code == country_code),
                key=lambda b: b.lower_bound,
            )
        )
        if not brackets:
            raise ConfigurationMissingError(country_code, "tax bracket table")
        return brackets

    def deduction_rules_for(self, country_code: str) -> tuple[FamilyDeductionRule, ...]:
        rules = tuple(
            sorted(
                (
                    r
                    for r in self.family_deduction_rules
                    if r.country_code == country_code
                ),
                key=lambda r: r.fiscal_parts_threshold,
            )
        )
        if not rules:
            raise ConfigurationMissingError(country_code, "family deduction table")
        return rules

    def contribution_types_for(
        self, country_code: str
    ) -> tuple[ContributionTypeDefinition, ...]:
        types = tuple(
            c for c in self.contribution_types if c.country_code == country_code
        )
        if not types:
            raise ConfigurationMissingError(country_code, "contribution type set")
        return types

    def other_taxes_for(self, country_code: str) -> tuple[OtherTaxDefinition, ...]:
        # Levies are optional: a country may have none.
        return tuple(t for t in self.other_taxes if t.country_code == country_code)

    def minimum_wage_for(self, country_code: str) -> Decimal:
        try:
            return self.minimum_wage_by_country[country_code]
        except KeyError:
            raise ConfigurationMissingError(country_code, "minimum wage") from None

    def health_coverage_for(self, country_code: str) -> HealthCoverageAmounts | None:
        return self.cmu_amounts.get(country_code)

    @property
    def countries(self) -> tuple[str, ...]:
        return tuple(sorted(self.country_rules))
