"""
Unit tests for ghg_engine/legislation.py and ghg_engine/offsets.py
"""
import logging

import pytest

from ghg_engine.legislation import (
    applicable_legislation,
    instruments_for,
    normalize_jurisdiction,
    reporting_group,
    reporting_timeline,
    thresholds_for,
)
from ghg_engine.offsets import (
    allowed_credit_types,
    compute_offset_requirement,
    is_credit_eligible,
    voluntary_benchmarks,
)


def names(instruments):
    return [i.name for i in instruments]


# ─────────────────────────────────────────────────────────────────────────────
# 1. Jurisdiction names
# ─────────────────────────────────────────────────────────────────────────────

class TestNormalizeJurisdiction:

    @pytest.mark.parametrize("raw,expected", [
        ("AU", "Australia"),
        ("australia", "Australia"),
        ("united_kingdom", "United Kingdom"),
        ("USA", "United States"),
        ("korea", "South Korea"),
        ("eu", "European Union"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_jurisdiction(raw) == expected

    def test_unknown_title_cased(self):
        assert normalize_jurisdiction("mars") == "Mars"
        assert normalize_jurisdiction("new york") == "New York"

    def test_empty_uses_default(self):
        assert normalize_jurisdiction(None) == "Australia"
        assert normalize_jurisdiction("  ", default="Japan") == "Japan"


# ─────────────────────────────────────────────────────────────────────────────
# 2. Applicability
# ─────────────────────────────────────────────────────────────────────────────

class TestApplicableLegislation:

    def test_nger_above_threshold(self):
        result = applicable_legislation("Australia", emissions=60_000)
        assert names(result) == ["NGER"]
        assert result[0].reason == "Your organization meets the thresholds for NGER reporting."

    def test_nger_below_threshold(self):
        assert applicable_legislation("AU", emissions=49_999) == []

    def test_csrd_on_any_criterion(self):
        assert names(applicable_legislation("EU", employees=300)) == ["CSRD"]
        assert names(applicable_legislation("EU", revenue=60_000_000)) == ["CSRD"]

    def test_tcfd_needs_all_conditions(self):
        assert names(applicable_legislation("UK", employees=600)) == ["SECR"]
        assert names(applicable_legislation("UK", employees=600, revenue=600_000_000)) == ["SECR", "TCFD"]

    def test_us_secondary_instruments_in_listed_order(self):
        result = applicable_legislation("US", revenue=2_000_000_000, emissions=30_000)
        assert names(result) == ["EPA GHGRP", "SEC Climate Rules", "California SB 253"]
        assert result[2].reason == "Your organization exceeds $1 billion in annual revenue."

    def test_unknown_jurisdiction_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ghg_engine.legislation"):
            assert applicable_legislation("Mars", revenue=1e12, employees=1e6, emissions=1e9) == []
        assert "Mars" in caplog.text

    def test_garbage_metrics_treated_as_zero(self):
        assert applicable_legislation("Australia", emissions="lots") == []

    def test_instruments_for_lists_primary_first(self):
        instruments = instruments_for("Australia")
        assert instruments[0].tier == "primary"
        assert names(instruments) == ["NGER", "Safeguard Mechanism", "Climate Active"]

    def test_thresholds(self):
        thresholds = thresholds_for("EU")
        assert {(t.metric, t.threshold_value) for t in thresholds} == {
            ("employees", 250), ("revenue", 50_000_000),
        }
        assert all(t.mandatory and t.instrument == "CSRD" for t in thresholds)


class TestReportingGroup:

    def test_groups(self):
        assert reporting_group(revenue=600_000_000) == 1
        assert reporting_group(employees=300) == 2
        assert reporting_group(emissions=30_000) == 3

    def test_largest_group_wins(self):
        assert reporting_group(revenue=60_000_000, emissions=150_000) == 1

    def test_below_all_groups(self):
        assert reporting_group() is None


class TestReportingTimeline:

    def test_us_march_report(self):
        milestones = reporting_timeline("US", 2025)
        assert [m.date for m in milestones] == ["2025-03-31", "2025-06-30"]
        assert milestones[0].action == "Submit EPA GHGRP report"

    def test_australia_october_report(self):
        milestones = reporting_timeline("Australia", 2025)
        assert [m.date for m in milestones] == ["2025-10-31", "2025-06-30"]

    def test_korea_march_verification(self):
        assert [m.date for m in reporting_timeline("KR", 2026)] == ["2026-03-31", "2026-03-31"]

    def test_no_verification_entry(self):
        assert len(reporting_timeline("UK", 2025)) == 1

    def test_unknown_jurisdiction(self):
        assert reporting_timeline("Mars", 2025) == []


# ─────────────────────────────────────────────────────────────────────────────
# 3. Offsets
# ─────────────────────────────────────────────────────────────────────────────

class TestOffsetRequirement:

    def test_australia_mid_tier(self):
        req = compute_offset_requirement("Australia", 80_000)
        assert req.is_required is True
        assert req.offset_percentage == pytest.approx(15.0)
        assert req.offset_amount == pytest.approx(12_000.0)

    def test_australia_top_tier(self):
        assert compute_offset_requirement("AU", 150_000).offset_amount == pytest.approx(37_500.0)

    def test_australia_below_threshold(self):
        req = compute_offset_requirement("Australia", 20_000)
        assert req.is_required is False
        assert req.offset_amount == 0.0
        assert req.threshold_value == pytest.approx(25_000)

    def test_eu_sector_tier_has_no_amount(self):
        req = compute_offset_requirement("EU", 20_000)
        assert req.is_required is True
        assert req.tier_label == "varies by sector"
        assert req.offset_amount == 0.0

    def test_us_is_voluntary(self):
        req = compute_offset_requirement("US", 1_000_000)
        assert req.mandatory is False
        assert req.is_required is False

    def test_unknown_jurisdiction_uses_other_rule(self):
        req = compute_offset_requirement("Mars", 50_000)
        assert req.jurisdiction == "Mars"
        assert req.is_required is False
        assert req.allowed_credit_types == []
        assert req.voluntary_credit_types == ["VCS", "Gold_Standard", "Plan_Vivo", "CDM"]

    def test_benchmarks(self):
        bench = voluntary_benchmarks(1000)
        assert bench.carbon_neutral == pytest.approx(1000.0)
        assert bench.science_based_target == pytest.approx(575.0)
        assert bench.net_zero == pytest.approx(100.0)

    def test_negative_total_treated_as_zero(self):
        req = compute_offset_requirement("Australia", -5)
        assert req.total_emissions == 0.0
        assert req.voluntary_benchmarks.carbon_neutral == 0.0


class TestCreditEligibility:

    def test_compliance_list_is_domestic(self):
        assert allowed_credit_types("AU", "compliance") == ["ACCU"]

    def test_voluntary_list_deduplicated(self):
        assert allowed_credit_types("US", "voluntary") == [
            "CCA", "RGGI", "ACR_US", "CAR", "VCS", "Gold_Standard", "ACR", "CDM",
        ]

    def test_is_credit_eligible(self):
        assert is_credit_eligible("ACCU", "Australia", "compliance") is True
        assert is_credit_eligible("VCS", "Australia", "compliance") is False
        assert is_credit_eligible("VCS", "Australia") is True
        assert is_credit_eligible(None, "Australia") is False
