"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into typed
``payroll_config.schema`` dataclass instances.  This is build/test
tooling; the single public entry point for runtime config is
``payroll_config.get_country_config()``.

Invariants enforced
-------------------
* Calculation-base identifiers are parsed into ``BaseId`` here, once.
  An unknown identifier is a load error, never a silent default.
* Monetary amounts and rates are parsed through ``str`` into ``Decimal``
  so YAML floats never leak binary rounding into the engines.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` from parsing or schema validation.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    BaseId,
    BracketPeriod,
    CeilingPeriod,
    ComponentDefinition,
    ComponentMetadata,
    ContributionTypeDefinition,
    CountryRules,
    FamilyDeductionRule,
    HealthCoverageAmounts,
    OtherTaxDefinition,
    OvertimeRules,
    Payer,
    SectorRateOverride,
    TaxBase,
    TaxBracket,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if data is not None else {}


def parse_date(value: Any) -> date:
    """Parse a date from string or date object."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_decimal(value: Any, *, field_name: str = "value") -> Decimal:
    """Parse a YAML scalar into a Decimal via its string form."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from None


def _optional_decimal(value: Any, field_name: str) -> Decimal | None:
    if value is None:
        return None
    return parse_decimal(value, field_name=field_name)


# ---------------------------------------------------------------------------
# Component catalog
# ---------------------------------------------------------------------------


def parse_component_metadata(data: dict[str, Any]) -> ComponentMetadata:
    """Parse a metadata block; absent keys take the conservative defaults."""
    bases = frozenset(BaseId.parse(b) for b in data.get("included_in_bases", ()))
    return ComponentMetadata(
        taxable=bool(data.get("taxable", True)),
        included_in_bases=bases,
        is_fixed_amount=bool(data.get("is_fixed_amount", False)),
    )


def parse_component_definition(data: dict[str, Any]) -> ComponentDefinition:
    return ComponentDefinition(
        code=str(data["code"]),
        name=data.get("name", str(data["code"])),
        metadata=parse_component_metadata(data.get("metadata", {})),
        activated=bool(data.get("activated", True)),
    )


# ---------------------------------------------------------------------------
# Income tax
# ---------------------------------------------------------------------------


def parse_tax_bracket(country_code: str, data: dict[str, Any]) -> TaxBracket:
    return TaxBracket(
        country_code=country_code,
        lower_bound=parse_decimal(data["min"], field_name="min"),
        upper_bound=_optional_decimal(data.get("max"), "max"),
        rate=parse_decimal(data["rate"], field_name="rate"),
    )


def parse_family_deduction(country_code: str, data: dict[str, Any]) -> FamilyDeductionRule:
    return FamilyDeductionRule(
        country_code=country_code,
        fiscal_parts_threshold=parse_decimal(
            data["fiscal_parts"], field_name="fiscal_parts"
        ),
        deduction_amount=parse_decimal(data["amount"], field_name="amount"),
    )


# ---------------------------------------------------------------------------
# Contributions and levies
# ---------------------------------------------------------------------------


def parse_sector_override(value: Any) -> SectorRateOverride:
    """A bare number overrides the employer rate; a mapping may set both."""
    if isinstance(value, dict):
        return SectorRateOverride(
            employer_rate=_optional_decimal(value.get("employer_rate"), "employer_rate"),
            employee_rate=_optional_decimal(value.get("employee_rate"), "employee_rate"),
        )
    return SectorRateOverride(employer_rate=parse_decimal(value, field_name="sector rate"))


def parse_contribution_type(
    country_code: str, data: dict[str, Any]
) -> ContributionTypeDefinition:
    """Parse a contribution type.

    ``rate`` is shorthand that fills the rate of each paying side.
    """
    payer = Payer(data.get("payer", "both"))
    shared = _optional_decimal(data.get("rate"), "rate")
    employee_rate = _optional_decimal(data.get("employee_rate"), "employee_rate")
    employer_rate = _optional_decimal(data.get("employer_rate"), "employer_rate")
    if shared is not None:
        if employee_rate is None and payer.employee_pays:
            employee_rate = shared
        if employer_rate is None and payer.employer_pays:
            employer_rate = shared

    return ContributionTypeDefinition(
        code=str(data["code"]),
        name=data.get("name", str(data["code"])),
        country_code=country_code,
        payer=payer,
        employee_rate=employee_rate or Decimal("0"),
        employer_rate=employer_rate or Decimal("0"),
        fixed_amount=_optional_decimal(data.get("fixed_amount"), "fixed_amount"),
        calculation_base=BaseId.parse(data.get("calculation_base", "total_gross")),
        ceiling_amount=_optional_decimal(data.get("ceiling"), "ceiling"),
        ceiling_period=CeilingPeriod(data.get("ceiling_period", CeilingPeriod.MONTHLY.value)),
        sector_overrides={
            str(sector): parse_sector_override(value)
            for sector, value in (data.get("sector_overrides") or {}).items()
        },
    )


def parse_other_tax(country_code: str, data: dict[str, Any]) -> OtherTaxDefinition:
    return OtherTaxDefinition(
        code=str(data["code"]),
        name=data.get("name", str(data["code"])),
        country_code=country_code,
        rate=parse_decimal(data["rate"], field_name="rate"),
        calculation_base=BaseId.parse(data.get("calculation_base", "taxable_gross")),
        payer=Payer(data.get("payer", "employer")),
    )


def parse_health_coverage(data: dict[str, Any]) -> HealthCoverageAmounts:
    employer = data["employer"]
    return HealthCoverageAmounts(
        employee_amount=parse_decimal(data["employee"], field_name="employee"),
        employer_base_amount=parse_decimal(employer["base"], field_name="employer.base"),
        employer_with_family_amount=parse_decimal(
            employer["with_family"], field_name="employer.with_family"
        ),
    )


# ---------------------------------------------------------------------------
# Country rules
# ---------------------------------------------------------------------------


_OVERTIME_KEYS = (
    "first_tier_hours",
    "first_tier_multiplier",
    "second_tier_multiplier",
    "saturday_multiplier",
    "sunday_holiday_multiplier",
    "night_multiplier",
)


def parse_overtime_rules(data: dict[str, Any]) -> OvertimeRules:
    """Parse the ``work_schedule.overtime`` block; omitted keys keep their defaults."""
    unknown = set(data) - set(_OVERTIME_KEYS)
    if unknown:
        raise ValueError(f"Unknown overtime setting(s): {', '.join(sorted(unknown))}")
    return OvertimeRules(
        **{key: parse_decimal(data[key], field_name=key) for key in _OVERTIME_KEYS if key in data}
    )


def parse_country_rules(
    root: dict[str, Any],
    catalog: dict[str, ComponentDefinition],
    tax_settings: dict[str, Any],
) -> CountryRules:
    """Build ``CountryRules`` from ``root.yaml`` plus the tax settings block."""
    country = root["country"]
    schedule = root.get("work_schedule", {})
    components = root.get("components", {})
    return CountryRules(
        country_code=str(country["code"]).upper(),
        name=country.get("name", country["code"]),
        currency=str(country["currency"]).upper(),
        effective_from=parse_date(root["effective_from"]),
        effective_to=parse_date(root["effective_to"]) if root.get("effective_to") else None,
        tax_base=TaxBase(tax_settings.get("base", TaxBase.GROSS_AFTER_SS.value)),
        bracket_period=BracketPeriod(
            tax_settings.get("bracket_period", BracketPeriod.MONTHLY.value)
        ),
        max_dependents=int(tax_settings.get("max_dependents", 6)),
        default_weekly_hours=parse_decimal(
            schedule.get("weekly_hours", 40), field_name="weekly_hours"
        ),
        overtime=(
            parse_overtime_rules(schedule["overtime"]) if schedule.get("overtime") else None
        ),
        base_salary_codes=frozenset(str(c) for c in components.get("base_salary", ())),
        categorial_component_codes=frozenset(
            str(c) for c in components.get("categorial_salary", ())
        ),
        default_bases={
            BaseId.parse(k): BaseId.parse(v)
            for k, v in (root.get("default_bases") or {}).items()
        },
        component_catalog=catalog,
        net_rounding=root.get("net_rounding", "nearest_unit"),
        calculation_precision=parse_decimal(
            root.get("calculation_precision", "0.01"),
            field_name="calculation_precision",
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
