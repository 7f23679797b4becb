"""
payroll_config -- single public entrypoint for payroll configuration.

Responsibility:
    Provides the only way to obtain a ``CountryPayrollConfig`` at runtime
    through ``get_country_config()`` (one country) or
    ``load_configuration()`` (every country effective at a date).  YAML
    loading is internal tooling and never exposed to the engines, which
    only consume the frozen result.

Invariants enforced:
    - Load-time validation: a configuration with validation errors is
      never returned.
    - Deterministic assembly: the same YAML fragments always produce the
      same checksum.

Failure modes:
    - ``ConfigurationMissingError`` -- no fragment set for the requested
      country and date.
    - ``ConfigurationError`` -- assembly or validation failures.

Audit relevance:
    Every successful call emits a ``PAYROLL_CONFIG_TRACE`` log entry with
    the config id, checksum and countries, tying every payslip back to
    the configuration version that produced it.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from payroll_config.assembler import (
    AssemblyError,
    assemble_from_directory,
    merge_configurations,
)
from payroll_config.schema import (
    BaseId,
    BracketPeriod,
    CeilingPeriod,
    ComponentDefinition,
    ComponentMetadata,
    ContributionTypeDefinition,
    CountryPayrollConfig,
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
from payroll_config.validator import ConfigValidationResult, validate_configuration
from payroll_kernel.exceptions import ConfigurationError, ConfigurationMissingError
from payroll_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "AssemblyError",
    "BaseId",
    "BracketPeriod",
    "CeilingPeriod",
    "ComponentDefinition",
    "ComponentMetadata",
    "ConfigValidationResult",
    "ContributionTypeDefinition",
    "CountryPayrollConfig",
    "CountryRules",
    "FamilyDeductionRule",
    "HealthCoverageAmounts",
    "OtherTaxDefinition",
    "OvertimeRules",
    "Payer",
    "SectorRateOverride",
    "TaxBase",
    "TaxBracket",
    "get_country_config",
    "load_configuration",
    "validate_configuration",
]


def get_country_config(
    country_code: str,
    as_of_date: date,
    sets_dir: Path | None = None,
) -> CountryPayrollConfig:
    """Load the validated configuration for one country.

    Args:
        country_code: ISO country code, e.g. ``"CI"``.
        as_of_date: Date for effective date filtering.
        sets_dir: Override path to configuration sets directory.
            Defaults to payroll_config/sets/.

    Raises:
        ConfigurationMissingError: If no set covers the country and date.
        ConfigurationError: If the matching set fails validation.
    """
    country_code = country_code.upper()
    matches = [
        c
        for c in _assemble_all(sets_dir or _DEFAULT_CONFIG_DIR, as_of_date)
        if country_code in c.country_rules
    ]
    if not matches:
        raise ConfigurationMissingError(country_code, f"configuration set as of {as_of_date}")
    if len(matches) > 1:
        raise ConfigurationError(
            f"Several configuration sets cover {country_code} on {as_of_date}: "
            + ", ".join(c.config_id for c in matches)
        )
    return _validated(matches[0])


def load_configuration(
    as_of_date: date,
    sets_dir: Path | None = None,
) -> CountryPayrollConfig:
    """Load every country effective at ``as_of_date`` as one aggregate."""
    configs = _assemble_all(sets_dir or _DEFAULT_CONFIG_DIR, as_of_date)
    if not configs:
        raise ConfigurationMissingError("*", f"configuration set as of {as_of_date}")
    return _validated(merge_configurations(configs))


def _assemble_all(sets_dir: Path, as_of_date: date) -> list[CountryPayrollConfig]:
    """Assemble every fragment set effective at ``as_of_date``."""
    if not sets_dir.is_dir():
        raise ConfigurationError(f"Configuration sets directory not found: {sets_dir}")

    effective: list[CountryPayrollConfig] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not (subdir.is_dir() and (subdir / "root.yaml").exists()):
            continue
        config = assemble_from_directory(subdir)
        if all(r.is_effective(as_of_date) for r in config.country_rules.values()):
            effective.append(config)
    return effective


def _validated(config: CountryPayrollConfig) -> CountryPayrollConfig:
    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"config_id": config.config_id, "warning": warning},
        )
    if not validation.is_valid:
        raise ConfigurationError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors),
            errors=validation.errors,
        )

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_id": config.config_id,
            "checksum": config.checksum,
            "countries": list(config.countries),
            "contribution_type_count": len(config.contribution_types),
            "tax_bracket_count": len(config.tax_brackets),
        },
    )
    return config
