"""
Tests for the configuration loader.

Covers:
- BaseId parsing with legacy aliases
- Contribution type parsing (rate shorthand, sector overrides, ceiling periods)
- Overtime rules
- Component metadata defaults
- Decimal parsing of YAML scalars
"""

from decimal import Decimal

import pytest

from payroll_config.loader import (
    parse_component_definition,
    parse_component_metadata,
    parse_contribution_type,
    parse_decimal,
    parse_family_deduction,
    parse_health_coverage,
    parse_other_tax,
    parse_overtime_rules,
    parse_tax_bracket,
)
from payroll_config.schema import BaseId, CeilingPeriod, ComponentMetadata, OvertimeRules, Payer


class TestBaseIdParsing:
    """Calculation bases are a closed enumeration."""

    def test_canonical_values(self):
        assert BaseId.parse("taxable_gross") is BaseId.TAXABLE_GROSS
        assert BaseId.parse("categorial_salary") is BaseId.CATEGORIAL_SALARY

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("brut_imposable", BaseId.TAXABLE_GROSS),
            ("gross_salary", BaseId.TOTAL_GROSS),
            ("salaire_categoriel", BaseId.CATEGORIAL_SALARY),
            ("base_cnps", BaseId.SOCIAL_SECURITY_BASE),
            ("  Brut_Imposable ", BaseId.TAXABLE_GROSS),
        ],
    )
    def test_legacy_aliases(self, alias, expected):
        assert BaseId.parse(alias) is expected

    def test_typo_is_rejected(self):
        """A misspelled base fails instead of silently falling back."""
        with pytest.raises(ValueError, match="Unknown calculation base"):
            BaseId.parse("brut_imposible")

    def test_enum_passes_through(self):
        assert BaseId.parse(BaseId.TOTAL_GROSS) is BaseId.TOTAL_GROSS


class TestParseContributionType:
    """Tests for contribution type parsing."""

    def test_separate_rates(self):
        contribution = parse_contribution_type(
            "CI",
            {
                "code": "RETIREMENT",
                "payer": "both",
                "employee_rate": 0.063,
                "employer_rate": 0.077,
                "calculation_base": "brut_imposable",
                "ceiling": 3375000,
            },
        )
        assert contribution.payer is Payer.BOTH
        assert contribution.employee_rate == Decimal("0.063")
        assert contribution.employer_rate == Decimal("0.077")
        assert contribution.calculation_base is BaseId.TAXABLE_GROSS
        assert contribution.ceiling_amount == Decimal("3375000")
        assert contribution.name == "RETIREMENT"
        assert contribution.ceiling_period is CeilingPeriod.MONTHLY

    def test_annual_ceiling(self):
        contribution = parse_contribution_type(
            "CI",
            {
                "code": "FAMILY_BENEFITS",
                "payer": "employer",
                "rate": 0.0575,
                "ceiling": 840000,
                "ceiling_period": "annual",
            },
        )
        assert contribution.ceiling_period is CeilingPeriod.ANNUAL
        assert contribution.ceiling_for_period(Decimal("1")) == Decimal("70000")

    def test_unknown_ceiling_period_rejected(self):
        with pytest.raises(ValueError):
            parse_contribution_type(
                "CI",
                {
                    "code": "X",
                    "payer": "employer",
                    "rate": 0.01,
                    "ceiling": 1000,
                    "ceiling_period": "weekly",
                },
            )

    def test_rate_shorthand_fills_paying_side_only(self):
        contribution = parse_contribution_type(
            "CI", {"code": "PF", "payer": "employer", "rate": 0.0575}
        )
        assert contribution.employer_rate == Decimal("0.0575")
        assert contribution.employee_rate == Decimal("0")

    def test_rate_shorthand_for_both(self):
        contribution = parse_contribution_type(
            "SN", {"code": "X", "payer": "both", "rate": "0.02"}
        )
        assert contribution.employee_rate == Decimal("0.02")
        assert contribution.employer_rate == Decimal("0.02")

    def test_default_base_is_total_gross(self):
        contribution = parse_contribution_type("CI", {"code": "X", "payer": "employer", "rate": 0.01})
        assert contribution.calculation_base is BaseId.TOTAL_GROSS

    def test_sector_overrides_scalar_and_mapping(self):
        contribution = parse_contribution_type(
            "CI",
            {
                "code": "AT",
                "payer": "employer",
                "rate": 0.02,
                "sector_overrides": {
                    "construction": 0.05,
                    "mining": {"employer_rate": 0.05, "employee_rate": 0.01},
                },
            },
        )
        assert contribution.sector_overrides["construction"].employer_rate == Decimal("0.05")
        assert contribution.sector_overrides["construction"].employee_rate is None
        assert contribution.sector_overrides["mining"].employee_rate == Decimal("0.01")

    def test_fixed_amount(self):
        contribution = parse_contribution_type(
            "CI", {"code": "FIXED", "payer": "employer", "fixed_amount": 1500}
        )
        assert contribution.is_fixed
        assert contribution.fixed_amount == Decimal("1500")

    def test_rate_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="between 0 and 1"):
            parse_contribution_type("CI", {"code": "X", "payer": "employer", "rate": 7.7})

    def test_unknown_base_rejected(self):
        with pytest.raises(ValueError, match="Unknown calculation base"):
            parse_contribution_type(
                "CI", {"code": "X", "payer": "employer", "rate": 0.01, "calculation_base": "nope"}
            )


class TestParseTablesAndAmounts:
    """Tests for brackets, deductions, levies and health coverage."""

    def test_unbounded_bracket(self):
        bracket = parse_tax_bracket("CI", {"min": 8000000, "max": None, "rate": 0.32})
        assert bracket.is_unbounded
        assert bracket.rate == Decimal("0.32")

    def test_inverted_bracket_rejected(self):
        with pytest.raises(ValueError, match="must exceed"):
            parse_tax_bracket("CI", {"min": 100, "max": 50, "rate": 0.1})

    def test_family_deduction(self):
        rule = parse_family_deduction("CI", {"fiscal_parts": 2.5, "amount": 16500})
        assert rule.fiscal_parts_threshold == Decimal("2.5")
        assert rule.deduction_amount == Decimal("16500")

    def test_other_tax_defaults(self):
        levy = parse_other_tax("CI", {"code": "TAP", "rate": 0.004})
        assert levy.payer is Payer.EMPLOYER
        assert levy.calculation_base is BaseId.TAXABLE_GROSS

    def test_other_tax_rejects_shared_payer(self):
        with pytest.raises(ValueError, match="exactly one party"):
            parse_other_tax("CI", {"code": "TAP", "rate": 0.004, "payer": "both"})

    def test_health_coverage(self):
        amounts = parse_health_coverage(
            {"employee": 500, "employer": {"base": 500, "with_family": 1000}}
        )
        assert amounts.employer_amount(has_family=True) == Decimal("1000")
        assert amounts.employer_amount(has_family=False) == Decimal("500")

    def test_parse_decimal_avoids_float_artifacts(self):
        assert parse_decimal(0.063) == Decimal("0.063")

    def test_parse_decimal_rejects_garbage(self):
        with pytest.raises(ValueError, match="must be numeric"):
            parse_decimal("abc", field_name="rate")
        with pytest.raises(ValueError, match="must be numeric"):
            parse_decimal(True, field_name="rate")


class TestOvertimeRules:
    """The work_schedule.overtime block."""

    def test_defaults(self):
        rules = parse_overtime_rules({})
        assert rules == OvertimeRules()
        assert rules.first_tier_hours == Decimal("8")
        assert rules.second_tier_multiplier == Decimal("1.50")

    def test_overrides(self):
        rules = parse_overtime_rules({"first_tier_hours": 6, "night_multiplier": 2})
        assert rules.first_tier_hours == Decimal("6")
        assert rules.night_multiplier == Decimal("2")
        assert rules.saturday_multiplier == Decimal("1.40")

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown overtime setting"):
            parse_overtime_rules({"holiday_multiplier": 2})

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            parse_overtime_rules({"first_tier_multiplier": 0.9})


class TestComponentMetadata:
    """Tests for typed component metadata."""

    def test_conservative_defaults(self):
        metadata = parse_component_metadata({})
        assert metadata == ComponentMetadata()
        assert metadata.taxable
        assert not metadata.is_fixed_amount
        assert metadata.included_in_bases == frozenset(
            {BaseId.TOTAL_GROSS, BaseId.TAXABLE_GROSS}
        )

    def test_taxable_gross_follows_taxable_flag(self):
        metadata = parse_component_metadata(
            {"taxable": False, "included_in_bases": ["taxable_gross"]}
        )
        assert BaseId.TAXABLE_GROSS not in metadata.included_in_bases
        assert BaseId.TOTAL_GROSS in metadata.included_in_bases

    def test_definition_activation(self):
        definition = parse_component_definition(
            {"code": "bonus", "activated": False, "metadata": {"is_fixed_amount": True}}
        )
        assert not definition.activated
        assert definition.metadata.is_fixed_amount
        assert definition.name == "bonus"
