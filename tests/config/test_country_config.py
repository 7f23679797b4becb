"""
Tests for configuration assembly and the public entrypoints.

Covers:
- The shipped CI and SN packs load, validate and carry expected values
- Fail-closed accessors on the aggregate
- Effective-date selection and assembly errors from fragment directories
- Deterministic checksums and the PAYROLL_CONFIG_TRACE log entry
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from payroll_config import (
    AssemblyError,
    BaseId,
    BracketPeriod,
    CountryPayrollConfig,
    OvertimeRules,
    Payer,
    TaxBase,
    get_country_config,
    load_configuration,
)
from payroll_config.assembler import assemble_from_directory, merge_configurations
from payroll_kernel.exceptions import ConfigurationError, ConfigurationMissingError

ROOT_YAML = """\
config_id: {config_id}
effective_from: {effective_from}
country:
  code: {code}
  name: Testland
  currency: XOF
  minimum_wage: 50000
components:
  base_salary: [base_salary]
"""

TAX_YAML = """\
brackets:
  - {min: 0, max: 100000, rate: 0}
  - {min: 100000, max: null, rate: 0.1}
family_deductions:
  - {fiscal_parts: 1, amount: 0}
"""

SOCIAL_YAML = """\
contributions:
  - {code: PENSION, payer: both, employee_rate: 0.05, employer_rate: 0.07}
"""


def write_set(
    base: Path,
    name: str,
    code: str = "TL",
    effective_from: str = "2024-01-01",
    tax: str | None = TAX_YAML,
    social: str | None = SOCIAL_YAML,
) -> Path:
    directory = base / name
    directory.mkdir()
    (directory / "root.yaml").write_text(
        ROOT_YAML.format(config_id=name, effective_from=effective_from, code=code)
    )
    if tax is not None:
        (directory / "tax.yaml").write_text(tax)
    if social is not None:
        (directory / "social.yaml").write_text(social)
    return directory


class TestShippedPacks:
    """The packaged country sets load and carry the published values."""

    def test_ci_rules(self, ci_config):
        rules = ci_config.rules_for("CI")
        assert rules.currency == "XOF"
        assert rules.tax_base is TaxBase.GROSS_AFTER_SS
        assert rules.bracket_period is BracketPeriod.MONTHLY
        assert rules.base_salary_codes == frozenset({"base_salary"})
        assert rules.default_bases[BaseId.CATEGORIAL_SALARY] is BaseId.TAXABLE_GROSS
        assert ci_config.minimum_wage_for("CI") == Decimal("75000")

    def test_ci_brackets_sorted_and_unbounded(self, ci_config):
        brackets = ci_config.brackets_for("CI")
        assert brackets[0].lower_bound == Decimal("0")
        assert brackets[-1].is_unbounded
        assert [b.lower_bound for b in brackets] == sorted(b.lower_bound for b in brackets)

    def test_ci_contributions(self, ci_config):
        by_code = {c.code: c for c in ci_config.contribution_types_for("CI")}
        retirement = by_code["RETIREMENT"]
        assert retirement.payer is Payer.BOTH
        assert retirement.employee_rate == Decimal("0.063")
        assert retirement.employer_rate == Decimal("0.077")
        assert retirement.calculation_base is BaseId.TAXABLE_GROSS
        assert by_code["WORK_ACCIDENT"].sector_overrides["construction"].employer_rate == Decimal(
            "0.05"
        )

    def test_ci_health_coverage(self, ci_config):
        amounts = ci_config.health_coverage_for("CI")
        assert amounts.employee_amount == Decimal("500")
        assert amounts.employer_amount(has_family=True) == Decimal("1000")

    def test_ci_catalog(self, ci_config):
        catalog = ci_config.rules_for("CI").component_catalog
        assert catalog["transport_allowance"].metadata.is_fixed_amount
        assert not catalog["transport_allowance"].metadata.taxable
        assert not catalog["performance_bonus"].activated

    def test_ci_overtime(self, ci_config):
        assert ci_config.rules_for("CI").overtime == OvertimeRules()

    def test_sn_uses_annual_tables(self, sn_config):
        rules = sn_config.rules_for("SN")
        assert rules.bracket_period is BracketPeriod.ANNUAL
        assert sn_config.health_coverage_for("SN") is None
        assert rules.overtime is None
        assert [t.code for t in sn_config.other_taxes_for("SN")] == ["CFCE"]

    def test_merged_aggregate(self, all_config):
        assert all_config.countries == ("CI", "SN")
        assert all_config.minimum_wage_for("SN") == Decimal("64223")

    def test_lowercase_country_code(self):
        config = get_country_config("ci", date(2024, 6, 1))
        assert "CI" in config.country_rules


class TestFailClosedAccessors:
    """Required tables raise ConfigurationMissingError when absent."""

    def setup_method(self):
        self.empty = CountryPayrollConfig()

    @pytest.mark.parametrize(
        "accessor",
        [
            "rules_for",
            "brackets_for",
            "deduction_rules_for",
            "contribution_types_for",
            "minimum_wage_for",
        ],
    )
    def test_missing_table(self, accessor):
        with pytest.raises(ConfigurationMissingError) as exc_info:
            getattr(self.empty, accessor)("GH")
        assert exc_info.value.country_code == "GH"

    def test_optional_tables(self):
        assert self.empty.other_taxes_for("GH") == ()
        assert self.empty.health_coverage_for("GH") is None

    def test_unknown_country_in_shipped_sets(self):
        with pytest.raises(ConfigurationMissingError):
            get_country_config("GH", date(2024, 3, 1))

    def test_date_before_any_set(self):
        with pytest.raises(ConfigurationMissingError):
            get_country_config("CI", date(2019, 1, 1))


class TestAssembly:
    """Tests for fragment assembly from a directory."""

    def test_assemble_minimal_set(self, tmp_path):
        config = assemble_from_directory(write_set(tmp_path, "TL-2024"))
        assert config.config_id == "TL-2024"
        assert config.countries == ("TL",)
        assert len(config.checksum) == 64
        assert config.other_taxes_for("TL") == ()

    def test_checksum_is_deterministic(self, tmp_path):
        first = assemble_from_directory(write_set(tmp_path, "A"))
        second = assemble_from_directory(write_set(tmp_path, "B"))
        third = assemble_from_directory(
            write_set(tmp_path, "C", social=SOCIAL_YAML.replace("0.07", "0.08"))
        )
        # config_id is part of root.yaml, so A and B differ too.
        assert first.checksum != second.checksum
        assert second.checksum != third.checksum
        assert assemble_from_directory(tmp_path / "A").checksum == first.checksum

    def test_missing_root(self, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(AssemblyError, match="root.yaml not found"):
            assemble_from_directory(tmp_path / "empty")

    def test_malformed_fragment(self, tmp_path):
        directory = write_set(
            tmp_path,
            "BAD",
            social="contributions:\n  - {code: X, payer: employer, rate: 0.01, "
            "calculation_base: brut_imposible}\n",
        )
        with pytest.raises(AssemblyError, match="Malformed configuration"):
            assemble_from_directory(directory)

    def test_merge_rejects_duplicate_country(self, tmp_path):
        config = assemble_from_directory(write_set(tmp_path, "TL-2024"))
        with pytest.raises(AssemblyError, match="more than once"):
            merge_configurations([config, config])

    def test_effective_date_selection(self, tmp_path):
        write_set(tmp_path, "TL-2023", effective_from="2023-01-01")
        (tmp_path / "TL-2023" / "root.yaml").write_text(
            ROOT_YAML.format(config_id="TL-2023", effective_from="2023-01-01", code="TL")
            + "effective_to: 2023-12-31\n"
        )
        write_set(tmp_path, "TL-2024", effective_from="2024-01-01")

        assert get_country_config("TL", date(2023, 6, 1), tmp_path).config_id == "TL-2023"
        assert get_country_config("TL", date(2024, 6, 1), tmp_path).config_id == "TL-2024"

    def test_overlapping_sets_are_ambiguous(self, tmp_path):
        write_set(tmp_path, "TL-A")
        write_set(tmp_path, "TL-B")
        with pytest.raises(ConfigurationError, match="Several configuration sets"):
            get_country_config("TL", date(2024, 6, 1), tmp_path)

    def test_invalid_set_is_never_returned(self, tmp_path):
        write_set(
            tmp_path,
            "TL-2024",
            tax="brackets:\n  - {min: 1000, max: null, rate: 0.1}\n"
            "family_deductions:\n  - {fiscal_parts: 1, amount: 0}\n",
        )
        with pytest.raises(ConfigurationError) as exc_info:
            get_country_config("TL", date(2024, 6, 1), tmp_path)
        assert any("not 0" in e for e in exc_info.value.errors)

    def test_missing_sets_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_configuration(date(2024, 6, 1), tmp_path / "nowhere")

    def test_config_trace_logged(self, tmp_path, json_logs):
        write_set(tmp_path, "TL-2024")
        config = get_country_config("TL", date(2024, 6, 1), tmp_path)
        traces = [r for r in json_logs() if r["message"] == "PAYROLL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["countries"] == ["TL"]
