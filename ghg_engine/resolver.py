"""
resolver.py – Turn raw activity quantities into kg CO2e contributions.

Formula per input
─────────────────
 Catalog factor     quantity × factor.value          (first name match wins)
 Grid electricity   kWh × "Grid Electricity - <region>", else "Grid Electricity"
 Fixed intensity    quantity × built-in kg/unit      (see emission_factors.ACTIVITY_SPECS)

A factor that cannot be found contributes 0 rather than raising, so a partial
catalog still yields a partial inventory. Unknown input ids are ignored.

Usage
──────
    from ghg_engine.resolver import load_catalog, resolve

    catalog = load_catalog(provider, "Japan", 2024)
    resolved = resolve({"electricity": 12000, "diesel": 300}, catalog, "Japan")
    resolved.by_source["electricity"]   # kg CO2e
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ghg_engine.emission_factors import (
    ACTIVITY_SPECS,
    GRID_ELECTRICITY,
    ActivitySpec,
    default_catalog,
    grid_factor_name,
)
from ghg_engine.schemas import EmissionFactor
from ghg_engine.validators import normalise_inputs

logger = logging.getLogger(__name__)


class FactorProvider(Protocol):
    """Anything that can fetch a factor catalog (database, remote service)."""

    def get(self, region: str, year: int) -> Sequence[EmissionFactor]: ...


# ─────────────────────────────────────────────────────────────
# Result dataclass
# ─────────────────────────────────────────────────────────────

@dataclass
class ResolvedEmissions:
    """Per-input and per-source contributions in kg CO2e."""
    by_input: dict[str, float] = field(default_factory=dict)
    by_source: dict[str, float] = field(default_factory=dict)
    factors_used: dict[str, float] = field(default_factory=dict)
    missing_factors: list[str] = field(default_factory=list)

    @property
    def total_kg(self) -> float:
        return sum(self.by_source.values())


# ─────────────────────────────────────────────────────────────
# Catalog lookup
# ─────────────────────────────────────────────────────────────

def find_factor(catalog: Iterable[EmissionFactor], query: str) -> Optional[EmissionFactor]:
    """
    Return the first factor whose name equals *query* or contains it
    (case-insensitive), or None.
    """
    needle = query.lower()
    for factor in catalog:
        if factor.name == query or needle in factor.name.lower():
            return factor
    return None


def factor_value(catalog: Iterable[EmissionFactor], query: str) -> float:
    factor = find_factor(catalog, query)
    return factor.value if factor is not None else 0.0


def grid_factor(catalog: Sequence[EmissionFactor], region: str | None) -> float:
    """
    Region-specific grid factor first, then the generic one, else 0.

    The generic step never matches another region's entry
    ("Grid Electricity - Australia" is not a fallback for Japan).
    """
    if region:
        regional = find_factor(catalog, grid_factor_name(region))
        if regional is not None:
            return regional.value
    regional_prefix = f"{GRID_ELECTRICITY} - ".lower()
    generic_only = [f for f in catalog if not f.name.lower().startswith(regional_prefix)]
    exact = next((f for f in generic_only if f.name.lower() == GRID_ELECTRICITY.lower()), None)
    generic = exact or find_factor(generic_only, GRID_ELECTRICITY)
    return generic.value if generic is not None else 0.0


def _factor_for(spec: ActivitySpec, catalog: Sequence[EmissionFactor], region: str | None) -> Optional[float]:
    """kg CO2e per unit for *spec*; None when the catalog has no usable entry."""
    if spec.fixed_kg is not None:
        return spec.fixed_kg
    if spec.factor_name == GRID_ELECTRICITY:
        value = grid_factor(catalog, region)
        return value if value > 0 else None
    factor = find_factor(catalog, spec.factor_name or "")
    if factor is not None:
        return factor.value
    if spec.fallback_kg > 0:
        return spec.fallback_kg
    return None


# ─────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────

def resolve(
    activity_inputs: Mapping[str, Any] | None,
    factor_catalog: Sequence[EmissionFactor] | None,
    region: str | None = None,
) -> ResolvedEmissions:
    """
    Apply factors to every known activity input.

    Inputs are coerced first (garbage, negatives and NaN become 0). Every
    source in the activity table gets an entry in ``by_source`` even when
    its inputs are absent, so downstream aggregation sees a full mapping.
    """
    catalog = list(factor_catalog or [])
    quantities = normalise_inputs(activity_inputs)
    result = ResolvedEmissions()

    for spec in ACTIVITY_SPECS.values():
        result.by_source.setdefault(spec.source, 0.0)

    for input_id, spec in ACTIVITY_SPECS.items():
        quantity = quantities.get(input_id, 0.0)
        if quantity == 0.0:
            continue
        factor = _factor_for(spec, catalog, region)
        if factor is None:
            logger.debug("No factor for %s (region=%s), contributing 0", input_id, region)
            result.missing_factors.append(input_id)
            factor = 0.0
        kg = quantity * factor
        result.by_input[input_id] = kg
        result.factors_used[input_id] = factor
        result.by_source[spec.source] += kg

    if result.missing_factors:
        logger.info("Missing factors for: %s", ", ".join(result.missing_factors))
    return result


def load_catalog(provider: FactorProvider | None, region: str, year: int) -> list[EmissionFactor]:
    """
    Fetch a catalog from *provider*; fall back to the built-in defaults when
    the provider is absent, fails, or returns nothing. Never raises.
    """
    if provider is None:
        return default_catalog(region)
    try:
        catalog = list(provider.get(region, year))
    except Exception as e:  # noqa: BLE001
        logger.warning("Factor provider failed for %s/%s: %s – using defaults", region, year, e)
        return default_catalog(region)
    if not catalog:
        logger.warning("Factor provider returned no factors for %s/%s – using defaults", region, year)
        return default_catalog(region)
    return catalog
