"""
payroll_config.assembler -- composes YAML fragments into one configuration.

Responsibility:
    Humans edit small, well-owned YAML fragments, one directory per
    country and effective period.  This module composes them into a
    ``CountryPayrollConfig`` and merges several countries into one
    aggregate.

Fragment structure::

    sets/CI-2024/
    +-- root.yaml          # Country identity, currency, minimum wage, rules
    +-- tax.yaml           # Brackets, family deductions, tax settings
    +-- social.yaml        # Contribution types, health coverage amounts
    +-- other_taxes.yaml   # Employer levies (optional)
    +-- components.yaml    # Salary component catalog (optional)

Invariants enforced:
    - ``root.yaml`` must exist in every fragment directory.
    - A deterministic SHA-256 checksum is computed over all assembled data.
    - All parsed structures are frozen dataclasses.

Failure modes:
    - ``AssemblyError`` -- required fragments missing or malformed.
    - ``yaml.YAMLError`` (propagated from loader) -- invalid YAML syntax.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from payroll_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_component_definition,
    parse_contribution_type,
    parse_country_rules,
    parse_decimal,
    parse_family_deduction,
    parse_health_coverage,
    parse_other_tax,
    parse_tax_bracket,
)
from payroll_config.schema import CountryPayrollConfig
from payroll_kernel.exceptions import ConfigurationError


class AssemblyError(ConfigurationError):
    """Error during fragment assembly.

    Raised when a fragment directory is missing, ``root.yaml`` is absent,
    or a required field within fragments cannot be parsed.  The first
    fatal issue aborts assembly.
    """

    code: str = "ASSEMBLY_FAILED"


def _optional_fragment(fragment_dir: Path, name: str) -> dict[str, Any]:
    path = fragment_dir / name
    return load_yaml_file(path) if path.exists() else {}


def assemble_from_directory(fragment_dir: Path) -> CountryPayrollConfig:
    """Compose one country's fragments into a ``CountryPayrollConfig``.

    Args:
        fragment_dir: Path to the fragment directory (e.g.,
            ``payroll_config/sets/CI-2024/``).

    Returns:
        Single-country configuration with a deterministic ``checksum``.

    Raises:
        AssemblyError: If required fragments are missing or malformed.
    """
    if not fragment_dir.is_dir():
        raise AssemblyError(f"Fragment directory not found: {fragment_dir}")

    root_path = fragment_dir / "root.yaml"
    if not root_path.exists():
        raise AssemblyError(f"root.yaml not found in {fragment_dir}")
    root_data = load_yaml_file(root_path)

    tax_data = _optional_fragment(fragment_dir, "tax.yaml")
    social_data = _optional_fragment(fragment_dir, "social.yaml")
    levy_data = _optional_fragment(fragment_dir, "other_taxes.yaml")
    component_data = _optional_fragment(fragment_dir, "components.yaml")

    try:
        country_code = str(root_data["country"]["code"]).upper()
        catalog = {
            d.code: d
            for d in (
                parse_component_definition(c)
                for c in component_data.get("components", [])
            )
        }
        rules = parse_country_rules(root_data, catalog, tax_data.get("settings", {}))
        brackets = tuple(
            parse_tax_bracket(country_code, b) for b in tax_data.get("brackets", [])
        )
        deductions = tuple(
            parse_family_deduction(country_code, d)
            for d in tax_data.get("family_deductions", [])
        )
        contributions = tuple(
            parse_contribution_type(country_code, c)
            for c in social_data.get("contributions", [])
        )
        levies = tuple(
            parse_other_tax(country_code, t) for t in levy_data.get("other_taxes", [])
        )
        minimum_wage = parse_decimal(
            root_data["country"]["minimum_wage"], field_name="minimum_wage"
        )
        health = social_data.get("health_coverage")
        cmu_amounts = {country_code: parse_health_coverage(health)} if health else {}
    except (KeyError, TypeError, ValueError) as exc:
        raise AssemblyError(
            f"Malformed configuration in {fragment_dir}: {exc}"
        ) from exc

    checksum = compute_checksum(
        {
            "root": root_data,
            "tax": tax_data,
            "social": social_data,
            "other_taxes": levy_data,
            "components": component_data,
        }
    )

    # INVARIANT: checksum must be a non-empty SHA-256 hex digest.
    assert checksum and len(checksum) == 64, (
        f"Checksum must be a 64-char SHA-256 hex digest, got {checksum!r}"
    )

    return CountryPayrollConfig(
        tax_brackets=brackets,
        family_deduction_rules=deductions,
        contribution_types=contributions,
        other_taxes=levies,
        minimum_wage_by_country={country_code: minimum_wage},
        cmu_amounts=cmu_amounts,
        country_rules={country_code: rules},
        config_id=root_data.get("config_id", fragment_dir.name),
        checksum=checksum,
    )


def merge_configurations(configs: Iterable[CountryPayrollConfig]) -> CountryPayrollConfig:
    """Merge single-country configurations into one aggregate.

    Raises:
        AssemblyError: If the same country appears twice.
    """
    configs = list(configs)
    seen: set[str] = set()
    for config in configs:
        overlap = seen & set(config.country_rules)
        if overlap:
            raise AssemblyError(
                f"Country configured more than once: {', '.join(sorted(overlap))}"
            )
        seen |= set(config.country_rules)

    minimum_wages: dict[str, Any] = {}
    cmu_amounts: dict[str, Any] = {}
    rules: dict[str, Any] = {}
    for config in configs:
        minimum_wages.update(config.minimum_wage_by_country)
        cmu_amounts.update(config.cmu_amounts)
        rules.update(config.country_rules)

    return CountryPayrollConfig(
        tax_brackets=tuple(b for c in configs for b in c.tax_brackets),
        family_deduction_rules=tuple(
            r for c in configs for r in c.family_deduction_rules
        ),
        contribution_types=tuple(t for c in configs for t in c.contribution_types),
        other_taxes=tuple(t for c in configs for t in c.other_taxes),
        minimum_wage_by_country=minimum_wages,
        cmu_amounts=cmu_amounts,
        country_rules=rules,
        config_id="+".join(c.config_id for c in configs),
        checksum=compute_checksum({c.config_id: c.checksum for c in configs}),
    )
