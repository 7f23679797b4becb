"""
Configuration Validator (``payroll_config.validator``).

Responsibility
--------------
Validates a ``CountryPayrollConfig`` at load time, ensuring structural
integrity before any payroll is computed against it.

Invariants enforced
-------------------
* Bracket tables are contiguous, non-overlapping and ascending, start at
  zero and end with an unbounded bracket.
* Family deduction tables are non-decreasing step functions starting at
  one fiscal part, with unique thresholds.
* Contribution rates agree with the declared payer.
* Every referenced currency is registered.
* Contribution and levy codes are unique per country.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``) -> configuration
  MUST NOT be used.
* Validation warnings (``ConfigValidationResult.warnings``) ->
  configuration may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import CountryPayrollConfig
from payroll_kernel.domain.currency import CurrencyRegistry


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: CountryPayrollConfig) -> ConfigValidationResult:
    """
    Validate a configuration aggregate.

    Postconditions:
        - Returns a ``ConfigValidationResult`` with errors and warnings.
        - A configuration with errors MUST NOT be used for payroll.
    """
    result = ConfigValidationResult()

    for country in config.countries:
        _validate_currency(config, country, result)
        _validate_brackets(config, country, result)
        _validate_deductions(config, country, result)
        _validate_contributions(config, country, result)
        _validate_other_taxes(config, country, result)
        _validate_components(config, country, result)

    return result


def _validate_currency(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    currency = config.country_rules[country].currency
    if not CurrencyRegistry.is_valid(currency):
        result.add_error(f"{country}: unsupported currency {currency!r}")


def _validate_brackets(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    """Brackets must partition [0, inf)."""
    brackets = sorted(
        (b for b in config.tax_brackets if b.country_code == country),
        key=lambda b: b.lower_bound,
    )
    if not brackets:
        result.add_warning(f"{country}: no tax brackets configured")
        return

    if brackets[0].lower_bound != Decimal("0"):
        result.add_error(
            f"{country}: first tax bracket starts at {brackets[0].lower_bound}, not 0"
        )
    for current, following in zip(brackets, brackets[1:]):
        if current.upper_bound is None:
            result.add_error(
                f"{country}: unbounded bracket at {current.lower_bound} "
                f"is followed by another bracket"
            )
        elif current.upper_bound != following.lower_bound:
            result.add_error(
                f"{country}: tax brackets not contiguous between "
                f"{current.upper_bound} and {following.lower_bound}"
            )
    if brackets[-1].upper_bound is not None:
        result.add_error(
            f"{country}: last tax bracket must be unbounded "
            f"(ends at {brackets[-1].upper_bound})"
        )


def _validate_deductions(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    rules = sorted(
        (r for r in config.family_deduction_rules if r.country_code == country),
        key=lambda r: r.fiscal_parts_threshold,
    )
    if not rules:
        result.add_warning(f"{country}: no family deduction table configured")
        return

    if rules[0].fiscal_parts_threshold != Decimal("1"):
        result.add_error(
            f"{country}: family deduction table must start at 1 fiscal part"
        )
    for previous, current in zip(rules, rules[1:]):
        if previous.fiscal_parts_threshold == current.fiscal_parts_threshold:
            result.add_error(
                f"{country}: duplicate family deduction threshold "
                f"{current.fiscal_parts_threshold}"
            )
        if current.deduction_amount < previous.deduction_amount:
            result.add_error(
                f"{country}: family deduction decreases at "
                f"{current.fiscal_parts_threshold} fiscal parts"
            )


def _validate_contributions(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    contributions = [c for c in config.contribution_types if c.country_code == country]
    if not contributions:
        result.add_warning(f"{country}: no contribution types configured")

    seen: set[str] = set()
    for contribution in contributions:
        if contribution.code in seen:
            result.add_error(f"{country}: duplicate contribution code {contribution.code}")
        seen.add(contribution.code)

        if contribution.is_fixed:
            continue
        if not contribution.payer.employee_pays and contribution.employee_rate:
            result.add_error(
                f"{country}: {contribution.code} has an employee rate but is "
                f"paid by {contribution.payer.value}"
            )
        if not contribution.payer.employer_pays and contribution.employer_rate:
            result.add_error(
                f"{country}: {contribution.code} has an employer rate but is "
                f"paid by {contribution.payer.value}"
            )
        if not contribution.employee_rate and not contribution.employer_rate:
            result.add_warning(f"{country}: {contribution.code} has zero rates")
        for sector, override in contribution.sector_overrides.items():
            for label, rate in (
                ("employer", override.employer_rate),
                ("employee", override.employee_rate),
            ):
                if rate is not None and not Decimal("0") <= rate <= Decimal("1"):
                    result.add_error(
                        f"{country}: {contribution.code} {label} override for "
                        f"sector {sector} out of range: {rate}"
                    )


def _validate_other_taxes(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    seen: set[str] = set()
    for levy in config.other_taxes:
        if levy.country_code != country:
            continue
        if levy.code in seen:
            result.add_error(f"{country}: duplicate levy code {levy.code}")
        seen.add(levy.code)


def _validate_components(
    config: CountryPayrollConfig, country: str, result: ConfigValidationResult
) -> None:
    rules = config.country_rules[country]
    if not rules.base_salary_codes:
        result.add_warning(f"{country}: no base salary component codes declared")
    for code in sorted(rules.base_salary_codes):
        definition = rules.component_catalog.get(code)
        if definition is not None and definition.metadata.is_fixed_amount:
            result.add_error(
                f"{country}: base salary component {code} cannot be a fixed amount"
            )
    for source, target in rules.default_bases.items():
        if source == target:
            result.add_warning(
                f"{country}: default base for {source.value} points to itself"
            )
