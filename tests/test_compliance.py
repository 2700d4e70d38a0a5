"""
Unit tests for ghg_engine/compliance.py, ghg_engine/validators.py and
ghg_engine/config.py
"""
import pytest

from ghg_engine.compliance import ComplianceWeights, missing_items, score
from ghg_engine.config import ConfigError, get_config
from ghg_engine.legislation import instruments_for
from ghg_engine.schemas import OrganizationProfile, ReductionStrategy, ScopeEmissions
from ghg_engine.validators import (
    canonical_input_id,
    coerce_percentage,
    coerce_quantity,
    coerce_year,
    normalise_inputs,
)

NGER = instruments_for("Australia")[0]
CSRD = instruments_for("EU")[0]

FULL_ORG = OrganizationProfile(
    organization_type="company",
    employee_count=120,
    facility_count=3,
    annual_revenue=25_000_000,
    industry_type="manufacturing",
    reporting_year=2024,
    location="Australia",
)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Readiness score
# ─────────────────────────────────────────────────────────────────────────────

class TestComplianceScore:

    def test_complete_profile(self):
        result = score(NGER, FULL_ORG, ScopeEmissions.from_scopes(10, 5, 1))
        assert result.total_requirements == 14
        assert result.score == 14
        assert result.percentage == 100
        assert result.is_complete is True
        assert result.missing == []
        assert "not a legal determination" in result.notice

    def test_empty_profile_with_scope3_and_targets(self):
        result = score(CSRD, {}, None)
        assert result.total_requirements == 18
        assert result.score == 0
        assert result.percentage == 0
        assert "Scope 3 emissions" in result.missing
        assert "Reduction strategies" in result.missing

    def test_missing_emissions_count_against_total(self):
        result = score(NGER, FULL_ORG, None)
        # 8 of 14 → 57%
        assert result.score == 8
        assert result.percentage == 57

    def test_rounds_half_up(self):
        org = OrganizationProfile(location="Australia")
        assert score(NGER, org, None).percentage == 14

    def test_accepts_camel_case_mapping(self):
        result = score(NGER, {"employeeCount": 10, "annualRevenue": "1,000"}, None)
        assert "Employee count" not in result.missing
        assert "Annual revenue" not in result.missing

    def test_adding_data_never_lowers_score(self):
        strategies = [ReductionStrategy(name="Solar")]
        before = score(CSRD, FULL_ORG, ScopeEmissions.from_scopes(10, 5, 0))
        after = score(CSRD, FULL_ORG, ScopeEmissions.from_scopes(10, 5, 2), strategies)
        assert after.score >= before.score
        assert after.percentage == 100

    def test_custom_weights(self):
        weights = ComplianceWeights.from_mapping({"location": 5, "bogus": 9})
        result = score(NGER, FULL_ORG, None, weights=weights)
        assert result.total_requirements == 17
        assert weights.to_dict()["scope1"] == 3

    @pytest.mark.parametrize("bad", ["high", None, -3, 1.5, True])
    def test_invalid_weight_rejected(self, bad):
        with pytest.raises(ValueError):
            ComplianceWeights.from_mapping({"scope1": bad})

    def test_zero_weights_keep_score_monotonic(self):
        weights = ComplianceWeights.from_mapping({"scope1": 0})
        org = OrganizationProfile(location="Australia")
        without = score(NGER, org, ScopeEmissions.from_scopes(0, 0, 0), weights=weights)
        with_scope1 = score(NGER, org, ScopeEmissions.from_scopes(10, 0, 0), weights=weights)
        assert with_scope1.percentage >= without.percentage

    def test_missing_items(self):
        assert missing_items(NGER, FULL_ORG, ScopeEmissions.from_scopes(10, 0, 0)) == ["Scope 2 emissions"]


# ─────────────────────────────────────────────────────────────────────────────
# 2. Input coercion
# ─────────────────────────────────────────────────────────────────────────────

class TestValidators:

    @pytest.mark.parametrize("raw,expected", [
        (12, 12.0),
        ("1,250", 1250.0),
        ("$300", 300.0),
        ("-5", 0.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
    ])
    def test_coerce_quantity(self, raw, expected):
        assert coerce_quantity(raw) == expected

    def test_coerce_percentage_clamped(self):
        assert coerce_percentage(150) == 100.0
        assert coerce_percentage("-3") == 0.0

    def test_coerce_year(self):
        assert coerce_year("2024", 2000) == 2024
        assert coerce_year("soon", 2000) == 2000

    def test_canonical_input_id(self):
        assert canonical_input_id("naturalGas") == "natural_gas"
        assert canonical_input_id("diesel") == "diesel"

    def test_canonical_id_wins_over_alias(self):
        assert normalise_inputs({"naturalGas": 10, "natural_gas": 20}) == {"natural_gas": 20.0}
        assert normalise_inputs({"natural_gas": 20, "naturalGas": 10}) == {"natural_gas": 20.0}

    def test_empty_inputs(self):
        assert normalise_inputs(None) == {}


# ─────────────────────────────────────────────────────────────────────────────
# 3. Configuration
# ─────────────────────────────────────────────────────────────────────────────

class TestConfig:

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for name in ("DATABASE_URL", "DEFAULT_JURISDICTION", "TIMELINE_HORIZON",
                     "DEFAULT_REDUCTION_TARGET", "COMPLIANCE_WEIGHTS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        cfg = get_config()
        assert cfg.database_url is None
        assert cfg.default_jurisdiction == "Australia"
        assert cfg.timeline_horizon == 10
        assert cfg.default_reduction_target == 20
        assert cfg.compliance_weights == {}

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_HORIZON", "15")
        monkeypatch.setenv("COMPLIANCE_WEIGHTS", '{"location": 4}')
        monkeypatch.setenv("LOG_LEVEL", "debug")
        cfg = get_config()
        assert cfg.timeline_horizon == 15
        assert cfg.compliance_weights == {"location": 4}
        assert cfg.log_level == "DEBUG"

    def test_bad_integer_raises(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_HORIZON", "abc")
        with pytest.raises(EnvironmentError):
            get_config()

    def test_target_out_of_range_raises(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_REDUCTION_TARGET", "150")
        with pytest.raises(EnvironmentError):
            get_config()

    @pytest.mark.parametrize("raw", ['{"scope1": "high"}', '{"scope1": null}', '{"scope1": -3}'])
    def test_weight_values_validated(self, monkeypatch, raw):
        monkeypatch.setenv("COMPLIANCE_WEIGHTS", raw)
        with pytest.raises(ConfigError, match="scope1"):
            get_config()

    def test_weights_must_be_object(self, monkeypatch):
        monkeypatch.setenv("COMPLIANCE_WEIGHTS", "[1, 2]")
        with pytest.raises(EnvironmentError):
            get_config()
