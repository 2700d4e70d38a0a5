"""
aggregation.py – Group per-source kg CO2e into GHG Protocol scopes (tonnes).

All functions are pure; feeding the same contributions twice gives the same
ScopeEmissions.
"""
from __future__ import annotations

from typing import Mapping

from ghg_engine.constants import KG_PER_TONNE, SCOPE_CLASSIFICATION, SOURCE_LABELS
from ghg_engine.schemas import ScopeEmissions, SourceBreakdown


def aggregate(contributions: Mapping[str, float] | None) -> ScopeEmissions:
    """
    Sum kg CO2e per scope and convert to tonnes.

    Sources missing from SCOPE_CLASSIFICATION are ignored.
    """
    totals = {1: 0.0, 2: 0.0, 3: 0.0}
    for source, kg in (contributions or {}).items():
        scope = SCOPE_CLASSIFICATION.get(source)
        if scope is None:
            continue
        totals[scope] += max(0.0, float(kg or 0.0))
    return ScopeEmissions.from_scopes(
        totals[1] / KG_PER_TONNE,
        totals[2] / KG_PER_TONNE,
        totals[3] / KG_PER_TONNE,
    )


def source_breakdown(contributions: Mapping[str, float] | None) -> list[SourceBreakdown]:
    """Non-zero sources in tCO2e, largest first, with their share of the total."""
    rows = [
        (source, kg / KG_PER_TONNE)
        for source, kg in (contributions or {}).items()
        if source in SCOPE_CLASSIFICATION and kg and kg > 0
    ]
    total = sum(t for _, t in rows)
    breakdown = [
        SourceBreakdown(
            source=source,
            label=SOURCE_LABELS.get(source, source),
            scope=SCOPE_CLASSIFICATION[source],
            tco2e=tonnes,
            share_pct=(tonnes / total * 100.0) if total > 0 else 0.0,
        )
        for source, tonnes in rows
    ]
    breakdown.sort(key=lambda row: row.tco2e, reverse=True)
    return breakdown


def scope_shares(emissions: ScopeEmissions) -> dict[int, float]:
    """Percentage of the total per scope; all zeros for an empty inventory."""
    if emissions.total <= 0:
        return {1: 0.0, 2: 0.0, 3: 0.0}
    return {
        1: emissions.scope1 / emissions.total * 100.0,
        2: emissions.scope2 / emissions.total * 100.0,
        3: emissions.scope3 / emissions.total * 100.0,
    }
