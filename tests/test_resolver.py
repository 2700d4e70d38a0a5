"""
Unit tests for ghg_engine/resolver.py and ghg_engine/aggregation.py

Factor catalogs are built in-memory; no provider or DB is touched except
through MagicMock stand-ins for load_catalog().
"""
import math

import pytest
from unittest.mock import MagicMock

from ghg_engine.aggregation import aggregate, scope_shares, source_breakdown
from ghg_engine.emission_factors import default_catalog, grid_factor_name
from ghg_engine.resolver import find_factor, grid_factor, load_catalog, resolve
from ghg_engine.schemas import EmissionFactor, ScopeEmissions


def factor(name, value, category=""):
    return EmissionFactor(name=name, category=category, value=value)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Catalog lookup
# ─────────────────────────────────────────────────────────────────────────────

class TestFindFactor:

    def test_case_insensitive_substring_match(self):
        catalog = [factor("Diesel Combustion", 2.68)]
        assert find_factor(catalog, "diesel").value == pytest.approx(2.68)

    def test_first_match_in_catalog_order_wins(self):
        catalog = [factor("Diesel Combustion", 2.68), factor("Diesel Combustion (bio blend)", 2.0)]
        assert find_factor(catalog, "Diesel Combustion").value == pytest.approx(2.68)

    def test_no_match_returns_none(self):
        assert find_factor([factor("Petrol Combustion", 2.31)], "Diesel") is None


class TestGridFactor:

    def test_region_specific_factor_overrides_generic(self):
        catalog = [factor("Grid Electricity", 0.5), factor(grid_factor_name("Japan"), 0.441)]
        assert grid_factor(catalog, "Japan") == pytest.approx(0.441)

    def test_falls_back_to_generic(self):
        catalog = [factor("Grid Electricity", 0.5)]
        assert grid_factor(catalog, "Japan") == pytest.approx(0.5)

    def test_absent_both_is_zero(self):
        assert grid_factor([factor("Diesel Combustion", 2.68)], "Japan") == 0.0

    def test_other_region_never_used_as_generic(self):
        catalog = [factor(grid_factor_name("Australia"), 0.79), factor("Grid Electricity", 0.5)]
        assert grid_factor(catalog, "Japan") == pytest.approx(0.5)

    def test_only_other_regions_is_zero(self):
        catalog = [factor(grid_factor_name("Australia"), 0.79)]
        assert grid_factor(catalog, "Japan") == 0.0
        assert grid_factor(catalog, None) == 0.0

    def test_generic_exact_name_preferred(self):
        catalog = [factor("Grid Electricity (market-based)", 0.2), factor("grid electricity", 0.5)]
        assert grid_factor(catalog, "Japan") == pytest.approx(0.5)

    def test_resolve_with_foreign_regional_entry_first(self):
        catalog = [factor(grid_factor_name("Australia"), 0.79), factor("Grid Electricity", 0.5)]
        resolved = resolve({"electricity": 1000}, catalog, "Japan")
        assert resolved.by_source["electricity"] == pytest.approx(500.0)


# ─────────────────────────────────────────────────────────────────────────────
# 2. resolve()
# ─────────────────────────────────────────────────────────────────────────────

class TestResolve:

    def test_grid_electricity_math(self):
        # 1000 kWh × 0.441 = 441 kg CO₂e
        resolved = resolve({"electricity": 1000}, default_catalog("Japan"), "Japan")
        assert resolved.by_input["electricity"] == pytest.approx(441.0)
        assert resolved.by_source["electricity"] == pytest.approx(441.0)

    def test_data_center_shares_grid_factor(self):
        resolved = resolve({"electricity": 1000, "data_center": 500}, default_catalog("Japan"), "Japan")
        assert resolved.by_source["electricity"] == pytest.approx(1500 * 0.441)

    def test_catalog_factor_math(self):
        resolved = resolve({"diesel": 100}, default_catalog(), None)
        assert resolved.by_source["mobile"] == pytest.approx(268.0)

    def test_fixed_intensity_sources_ignore_catalog(self):
        resolved = resolve({"steel_production": 2, "livestock_cattle": 1, "water_usage": 100}, [], None)
        assert resolved.by_source["process"] == pytest.approx(4200.0)
        assert resolved.by_source["livestock"] == pytest.approx(2300.0)
        assert resolved.by_source["water"] == pytest.approx(35.0)

    def test_purchased_goods_fallback_factor(self):
        resolved = resolve({"purchased_goods": 1000}, [], None)
        assert resolved.by_source["purchased_goods"] == pytest.approx(500.0)

    def test_missing_factor_contributes_zero(self):
        resolved = resolve({"diesel": 100, "electricity": 50}, [], "Japan")
        assert resolved.by_source["mobile"] == 0.0
        assert resolved.by_source["electricity"] == 0.0
        assert set(resolved.missing_factors) == {"diesel", "electricity"}

    def test_invalid_inputs_coerced_to_zero(self):
        resolved = resolve(
            {"diesel": "abc", "petrol": -10, "electricity": float("nan")},
            default_catalog("Japan"),
            "Japan",
        )
        assert resolved.total_kg == 0.0

    def test_numeric_strings_accepted(self):
        resolved = resolve({"diesel": "1,000"}, default_catalog(), None)
        assert resolved.by_source["mobile"] == pytest.approx(2680.0)

    def test_legacy_camel_case_ids(self):
        resolved = resolve({"naturalGas": 1000}, default_catalog(), None)
        assert resolved.by_source["stationary"] == pytest.approx(185.0)

    def test_unknown_ids_are_ignored(self):
        resolved = resolve({"unicorn_dust": 1000}, default_catalog(), None)
        assert resolved.total_kg == 0.0

    def test_every_source_present(self):
        resolved = resolve({}, default_catalog(), None)
        assert "water" in resolved.by_source
        assert all(v == 0.0 for v in resolved.by_source.values())


class TestLoadCatalog:

    def test_uses_provider_result(self):
        provider = MagicMock()
        provider.get.return_value = [factor("Grid Electricity", 0.3)]
        catalog = load_catalog(provider, "Japan", 2024)
        provider.get.assert_called_once_with("Japan", 2024)
        assert catalog[0].value == pytest.approx(0.3)

    def test_provider_failure_falls_back_to_defaults(self):
        provider = MagicMock()
        provider.get.side_effect = RuntimeError("connection refused")
        catalog = load_catalog(provider, "Japan", 2024)
        assert find_factor(catalog, grid_factor_name("Japan")).value == pytest.approx(0.441)

    def test_empty_provider_result_falls_back(self):
        provider = MagicMock()
        provider.get.return_value = []
        assert len(load_catalog(provider, "Japan", 2024)) == len(default_catalog("Japan"))

    def test_unknown_region_grid_default(self):
        catalog = default_catalog("Mars")
        assert find_factor(catalog, grid_factor_name("Mars")).value == pytest.approx(0.5)


# ─────────────────────────────────────────────────────────────────────────────
# 3. Scope aggregation
# ─────────────────────────────────────────────────────────────────────────────

class TestAggregate:

    def test_scope_classification_and_tonnes(self):
        em = aggregate({"stationary": 1000, "electricity": 2000, "waste": 3000})
        assert em.scope1 == pytest.approx(1.0)
        assert em.scope2 == pytest.approx(2.0)
        assert em.scope3 == pytest.approx(3.0)
        assert em.total == pytest.approx(6.0)

    def test_total_equals_sum_of_scopes(self):
        em = aggregate({"mobile": 123.456, "steam": 789.1, "water": 0.35, "land_use": 10})
        assert math.isclose(em.total, em.scope1 + em.scope2 + em.scope3, abs_tol=1e-6)

    def test_idempotent(self):
        contributions = {"mobile": 500, "heating": 250, "business_travel": 75}
        assert aggregate(contributions) == aggregate(contributions)

    def test_scope1_monotonic(self):
        base = aggregate({"stationary": 1000, "electricity": 500})
        more = aggregate({"stationary": 2000, "electricity": 500})
        assert more.scope1 >= base.scope1
        assert more.scope2 == base.scope2

    def test_unknown_source_ignored(self):
        assert aggregate({"teleportation": 1000}).total == 0.0

    def test_all_zero(self):
        em = aggregate({"stationary": 0, "electricity": 0})
        assert em == ScopeEmissions()


class TestBreakdown:

    def test_sorted_descending_with_shares(self):
        rows = source_breakdown({"stationary": 1000, "electricity": 3000, "waste": 0})
        assert [r.source for r in rows] == ["electricity", "stationary"]
        assert rows[0].share_pct == pytest.approx(75.0)
        assert rows[0].label == "Purchased Electricity"
        assert rows[0].scope == 2

    def test_all_zero_is_empty(self):
        assert source_breakdown({"stationary": 0, "electricity": 0}) == []

    def test_scope_shares_zero_total(self):
        assert scope_shares(ScopeEmissions()) == {1: 0.0, 2: 0.0, 3: 0.0}

    def test_scope_shares(self):
        shares = scope_shares(ScopeEmissions.from_scopes(1, 1, 2))
        assert shares[3] == pytest.approx(50.0)
