"""
Unit tests for ghg_engine/reduction.py

Covers realization schedules, the editing lock on confirmed strategies,
credit clamping, the projected timeline and the target gap.
"""
import pytest

from ghg_engine.reduction import (
    StrategyLockedError,
    clamp_credit_quantity,
    confirm_strategy,
    full_realization_year,
    new_strategy,
    project_timeline,
    reschedule,
    schedule,
    target_summary,
    total_credits,
    total_reduction,
    update_strategy,
)
from ghg_engine.schemas import CarbonCreditSelection, ReductionStrategy


def strategy(**overrides):
    fields = {
        "id": "s1",
        "name": "LED retrofit",
        "reduction_type": "percentage",
        "reduction_potential": 30,
        "timeframe": "medium",
        "implementation_year": 2025,
        "is_confirmed": True,
    }
    fields.update(overrides)
    return ReductionStrategy(**fields)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Realization schedules
# ─────────────────────────────────────────────────────────────────────────────

class TestSchedule:

    def test_medium_curve(self):
        # 30% of 1000 t = 300 t over 0.3 / 0.5 / 0.2
        result = schedule(strategy(), 1000)
        assert set(result) == {2025, 2026, 2027}
        assert result[2025] == pytest.approx(90.0)
        assert result[2026] == pytest.approx(150.0)
        assert result[2027] == pytest.approx(60.0)

    def test_short_curve_single_year(self):
        result = schedule(strategy(timeframe="short"), 1000)
        assert result == {2025: pytest.approx(300.0)}

    def test_long_curve_conserves_total(self):
        result = schedule(strategy(timeframe="long", reduction_potential=12.5), 800)
        assert len(result) == 5
        assert sum(result.values()) == pytest.approx(100.0)
        assert max(result) == 2029

    def test_absolute_reduction(self):
        s = strategy(reduction_type="absolute", reduction_tonnes=50, timeframe="short")
        assert total_reduction(s, 1000) == pytest.approx(50.0)
        assert schedule(s, 1000) == {2025: pytest.approx(50.0)}

    def test_unconfirmed_is_empty(self):
        assert schedule(strategy(is_confirmed=False), 1000) == {}

    def test_potential_clamped_to_100(self):
        assert total_reduction(strategy(reduction_potential=250), 1000) == pytest.approx(1000.0)

    def test_reschedule_tracks_new_baseline(self):
        out = reschedule([strategy(timeframe="short"), strategy(id="s2", is_confirmed=False)], 500)
        assert out[0].yearly_reductions == {2025: pytest.approx(150.0)}
        assert out[1].yearly_reductions == {}


# ─────────────────────────────────────────────────────────────────────────────
# 2. Strategy editing
# ─────────────────────────────────────────────────────────────────────────────

class TestStrategyEditing:

    def test_realization_year_offsets(self):
        assert full_realization_year(2025, "short") == 2025
        assert full_realization_year(2025, "medium") == 2027
        assert full_realization_year(2025, "long") == 2029

    def test_new_strategy_derives_realization_year(self):
        s = new_strategy(name="Heat pumps", timeframe="long", implementationYear=2026)
        assert s.full_realization_year == 2030
        assert s.is_confirmed is False

    def test_new_strategy_accepts_camel_case(self):
        s = new_strategy(reductionType="absolute", reductionTonnes="75", implementationYear=2025)
        assert s.reduction_type == "absolute"
        assert s.reduction_tonnes == pytest.approx(75.0)

    def test_draft_timeframe_change_rederives_year(self):
        s = update_strategy(new_strategy(timeframe="short", implementation_year=2025), timeframe="long")
        assert s.full_realization_year == 2029

    def test_confirmed_plan_fields_locked(self):
        with pytest.raises(StrategyLockedError):
            update_strategy(strategy(), reduction_potential=50)

    def test_confirmed_name_editable(self):
        s = update_strategy(strategy(), name="LED retrofit phase 2")
        assert s.name == "LED retrofit phase 2"
        assert s.reduction_potential == pytest.approx(30.0)

    def test_confirm_attaches_schedule(self):
        s = confirm_strategy(strategy(is_confirmed=False, timeframe="short"), 1000)
        assert s.is_confirmed is True
        assert s.yearly_reductions == {2025: pytest.approx(300.0)}

    def test_invalid_timeframe_rejected(self):
        with pytest.raises(ValueError):
            ReductionStrategy(timeframe="eventually")


# ─────────────────────────────────────────────────────────────────────────────
# 3. Credits
# ─────────────────────────────────────────────────────────────────────────────

class TestCredits:

    def test_clamp_lower_bound(self):
        assert clamp_credit_quantity(0, 10) == 1
        assert clamp_credit_quantity("abc", 10) == 1

    def test_clamp_upper_bound(self):
        assert clamp_credit_quantity(50, 10) == 10

    def test_no_upper_bound_when_unknown(self):
        assert clamp_credit_quantity(5000, None) == 5000

    def test_no_credits_available_is_not_selectable(self):
        with pytest.raises(ValueError):
            clamp_credit_quantity(3, 0)
        with pytest.raises(ValueError):
            CarbonCreditSelection(projectId="p", availableCredits=0, selectedQuantity=3)

    def test_selection_clamped_on_construction(self):
        sel = CarbonCreditSelection(projectId=123, availableCredits=10, selectedQuantity=50)
        assert sel.project_id == "123"
        assert sel.selected_quantity == 10

    def test_total_credits(self):
        selections = [
            CarbonCreditSelection(project_id="a", selected_quantity=20),
            CarbonCreditSelection(project_id="b", selected_quantity=30),
        ]
        assert total_credits(selections) == 50


# ─────────────────────────────────────────────────────────────────────────────
# 4. Timeline & target
# ─────────────────────────────────────────────────────────────────────────────

class TestTimeline:

    def test_inclusive_horizon(self):
        points = project_timeline(1000, [], horizon=10, start_year=2025)
        assert len(points) == 11
        assert points[0].year == 2025
        assert points[-1].year == 2035

    def test_no_strategies_flat(self):
        points = project_timeline(1000, [strategy(is_confirmed=False)], start_year=2025)
        assert all(p.emissions == pytest.approx(1000.0) for p in points)

    def test_cumulative_reductions_and_credits(self):
        points = project_timeline(1000, [strategy()], credit_total=50, target_percent=20, start_year=2025)
        # first year: 90 realized + 50 credits
        assert points[0].reduction == pytest.approx(140.0)
        assert points[0].emissions == pytest.approx(860.0)
        # credits counted once only
        assert points[1].emissions == pytest.approx(760.0)
        assert points[2].emissions == pytest.approx(700.0)
        assert points[-1].emissions == pytest.approx(700.0)
        assert all(p.target == pytest.approx(800.0) for p in points)

    def test_reductions_before_start_already_in_effect(self):
        points = project_timeline(1000, [strategy(implementation_year=2020)], start_year=2025)
        assert points[0].emissions == pytest.approx(700.0)

    def test_emissions_never_negative(self):
        points = project_timeline(100, [], credit_total=500, start_year=2025)
        assert points[0].emissions == 0.0
        assert points[1].emissions == pytest.approx(100.0)

    def test_zero_baseline(self):
        points = project_timeline(0, [strategy()], start_year=2025)
        assert all(p.emissions == 0.0 for p in points)


class TestTargetSummary:

    def test_required_reduction(self):
        summary = target_summary(1000, 20, [])
        assert summary.target_emissions == pytest.approx(800.0)
        assert summary.required_reduction == pytest.approx(200.0)
        assert summary.gap == pytest.approx(200.0)
        assert summary.on_track is False

    def test_on_track_when_planned_covers_target(self):
        summary = target_summary(1000, 20, [strategy()])
        assert summary.planned_reduction == pytest.approx(300.0)
        assert summary.gap == 0.0
        assert summary.on_track is True

    def test_drafts_not_counted(self):
        summary = target_summary(1000, 20, [strategy(is_confirmed=False)])
        assert summary.planned_reduction == 0.0
