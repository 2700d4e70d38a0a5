"""
reduction.py – Reduction strategy scheduling and the emissions trajectory.

A confirmed strategy's total reduction is spread over the years following
its implementation year according to the realization curve for its
timeframe:

 Timeframe  Curve (share per year)        Full realization
 ─────────────────────────────────────────────────────────
 short      1.0                           +0 years
 medium     0.3, 0.5, 0.2                 +2 years
 long       0.1, 0.2, 0.3, 0.25, 0.15     +4 years

Unconfirmed strategies are drafts and never reduce projected emissions.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from ghg_engine.constants import (
    DEFAULT_REALIZATION_OFFSET,
    DEFAULT_TIMELINE_HORIZON,
    REALIZATION_CURVES,
    REALIZATION_OFFSETS,
    REDUCTION_TYPE_ABSOLUTE,
    REDUCTION_TYPE_PERCENTAGE,
    STRATEGY_LOCKED_FIELDS,
)
from ghg_engine.schemas import (
    CarbonCreditSelection,
    ReductionStrategy,
    TargetSummary,
    TimelinePoint,
)
from ghg_engine.validators import coerce_percentage, coerce_quantity

logger = logging.getLogger(__name__)


class StrategyLockedError(ValueError):
    """Raised when a confirmed strategy's plan fields are edited."""


# ─────────────────────────────────────────────────────────────
# Strategy construction & editing
# ─────────────────────────────────────────────────────────────

def full_realization_year(implementation_year: int, timeframe: str) -> int:
    return implementation_year + REALIZATION_OFFSETS.get(timeframe, DEFAULT_REALIZATION_OFFSET)


def new_strategy(**fields: Any) -> ReductionStrategy:
    """
    Build a draft strategy with the usual defaults and a derived
    full_realization_year. Accepts snake_case or camelCase keys.
    """
    strategy = ReductionStrategy.model_validate(fields)
    year = strategy.implementation_year or date.today().year
    return strategy.model_copy(
        update={
            "implementation_year": year,
            "full_realization_year": full_realization_year(year, strategy.timeframe),
        }
    )


def update_strategy(strategy: ReductionStrategy, **changes: Any) -> ReductionStrategy:
    """
    Return a copy of *strategy* with *changes* applied.

    Plan fields of a confirmed strategy are locked; name and description
    stay editable. The realization year is re-derived whenever timeframe or
    implementation year changes.
    """
    if strategy.is_confirmed:
        locked = STRATEGY_LOCKED_FIELDS.intersection(changes)
        if locked:
            raise StrategyLockedError(
                f"Strategy {strategy.id or strategy.name!r} is confirmed; "
                f"cannot change {', '.join(sorted(locked))}"
            )
    merged = strategy.model_dump()
    merged.update(changes)
    updated = ReductionStrategy.model_validate(merged)
    if "timeframe" in changes or "implementation_year" in changes:
        year = updated.implementation_year or date.today().year
        updated = updated.model_copy(
            update={
                "implementation_year": year,
                "full_realization_year": full_realization_year(year, updated.timeframe),
            }
        )
    return updated


# ─────────────────────────────────────────────────────────────
# Scheduling
# ─────────────────────────────────────────────────────────────

def total_reduction(strategy: ReductionStrategy, baseline_total: float) -> float:
    """tCO2e the strategy removes once fully realized."""
    if strategy.reduction_type == REDUCTION_TYPE_PERCENTAGE:
        return coerce_quantity(baseline_total) * coerce_percentage(strategy.reduction_potential) / 100.0
    if strategy.reduction_type == REDUCTION_TYPE_ABSOLUTE:
        return coerce_quantity(strategy.reduction_tonnes)
    return 0.0


def schedule(strategy: ReductionStrategy, baseline_total: float) -> dict[int, float]:
    """
    Year -> tCO2e realized that year. Empty for unconfirmed strategies.

    The values always sum to total_reduction(strategy, baseline_total).
    """
    if not strategy.is_confirmed:
        return {}
    total = total_reduction(strategy, baseline_total)
    start = strategy.implementation_year or date.today().year
    curve = np.asarray(REALIZATION_CURVES.get(strategy.timeframe, (1.0,)), dtype=float)
    amounts = curve / curve.sum() * total
    return {start + offset: float(amount) for offset, amount in enumerate(amounts)}


def confirm_strategy(strategy: ReductionStrategy, baseline_total: float) -> ReductionStrategy:
    """Mark *strategy* confirmed and attach its yearly schedule."""
    year = strategy.implementation_year or date.today().year
    confirmed = strategy.model_copy(
        update={
            "is_confirmed": True,
            "implementation_year": year,
            "full_realization_year": full_realization_year(year, strategy.timeframe),
        }
    )
    return confirmed.model_copy(update={"yearly_reductions": schedule(confirmed, baseline_total)})


def reschedule(strategies: Iterable[ReductionStrategy], baseline_total: float) -> list[ReductionStrategy]:
    """Refresh yearly_reductions of confirmed strategies against a new baseline."""
    out = []
    for strategy in strategies:
        if strategy.is_confirmed:
            strategy = strategy.model_copy(update={"yearly_reductions": schedule(strategy, baseline_total)})
        out.append(strategy)
    return out


# ─────────────────────────────────────────────────────────────
# Credits
# ─────────────────────────────────────────────────────────────

def clamp_credit_quantity(quantity: Any, available: Optional[int]) -> int:
    """
    Clamp *quantity* into [1, available]; no upper bound when available is
    unknown. Raises ValueError when the project has no credits left.
    """
    if available is not None and available <= 0:
        raise ValueError("No credits available to select")
    value = max(1, int(coerce_quantity(quantity)))
    if available is not None:
        value = min(value, int(available))
    return value


def total_credits(selections: Iterable[CarbonCreditSelection]) -> int:
    return sum(selection.selected_quantity for selection in selections)


# ─────────────────────────────────────────────────────────────
# Timeline
# ─────────────────────────────────────────────────────────────

def _combined_reductions(strategies: Iterable[ReductionStrategy], baseline_total: float) -> dict[int, float]:
    combined: dict[int, float] = {}
    for strategy in strategies:
        if not strategy.is_confirmed:
            continue
        yearly = strategy.yearly_reductions or schedule(strategy, baseline_total)
        for year, amount in yearly.items():
            combined[int(year)] = combined.get(int(year), 0.0) + float(amount)
    return combined


def project_timeline(
    baseline_total: float,
    strategies: Sequence[ReductionStrategy],
    credit_total: float = 0.0,
    target_percent: float = 20,
    horizon: int = DEFAULT_TIMELINE_HORIZON,
    start_year: Optional[int] = None,
) -> list[TimelinePoint]:
    """
    Project emissions for start_year .. start_year + horizon (inclusive).

    Credits are counted once, in the first year. Reductions scheduled before
    start_year are already in effect at the first point.
    """
    baseline = coerce_quantity(baseline_total)
    credits = coerce_quantity(credit_total)
    start = start_year if start_year is not None else date.today().year
    years = np.arange(start, start + max(0, int(horizon)) + 1)

    combined = _combined_reductions(strategies, baseline)
    prior = sum(amount for year, amount in combined.items() if year < start)
    per_year = np.array([combined.get(int(year), 0.0) for year in years], dtype=float)
    cumulative = np.cumsum(per_year) + prior

    target = baseline * (1 - coerce_percentage(target_percent) / 100.0)
    points = []
    for i, year in enumerate(years):
        credits_this_year = credits if i == 0 else 0.0
        reduction = float(cumulative[i]) + credits_this_year
        points.append(
            TimelinePoint(
                year=int(year),
                baseline=baseline,
                emissions=max(0.0, baseline - reduction),
                reduction=reduction,
                target=target,
            )
        )
    return points


def target_summary(
    baseline_total: float,
    target_percent: float,
    strategies: Sequence[ReductionStrategy],
) -> TargetSummary:
    """Compare the target reduction with what confirmed strategies deliver."""
    baseline = coerce_quantity(baseline_total)
    percent = coerce_percentage(target_percent)
    required = baseline * percent / 100.0
    planned = sum(total_reduction(s, baseline) for s in strategies if s.is_confirmed)
    gap = max(0.0, required - planned)
    return TargetSummary(
        target_percent=percent,
        target_emissions=baseline - required,
        required_reduction=required,
        planned_reduction=planned,
        gap=gap,
        on_track=gap == 0.0,
    )
