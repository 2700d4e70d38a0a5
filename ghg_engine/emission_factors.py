"""
emission_factors.py – Built-in emission factors (kg CO2e per unit) and the
activity table that ties each raw input to a factor and an emission source.

Catalog factors are looked up by name at runtime so that a live catalog
(database or remote provider) can replace any of them. Fixed-intensity
sources never consult the catalog.

Sources: DEFRA UK Government GHG Conversion Factors, US EPA Emission Factors
for Greenhouse Gas Inventories, IPCC AR5 GWP100 for refrigerants.
"""
from __future__ import annotations

from typing import NamedTuple, Optional

from ghg_engine.constants import (
    SOURCE_BUSINESS_TRAVEL,
    SOURCE_COOLING,
    SOURCE_ELECTRICITY,
    SOURCE_EMPLOYEE_COMMUTING,
    SOURCE_FERTILIZERS,
    SOURCE_HEATING,
    SOURCE_LAND_USE,
    SOURCE_LIVESTOCK,
    SOURCE_MOBILE,
    SOURCE_PROCESS,
    SOURCE_PURCHASED_GOODS,
    SOURCE_REFRIGERANTS,
    SOURCE_STATIONARY,
    SOURCE_STEAM,
    SOURCE_WASTE,
    SOURCE_WATER,
)
from ghg_engine.schemas import EmissionFactor

GRID_ELECTRICITY = "Grid Electricity"


class ActivitySpec(NamedTuple):
    """How one raw activity input turns into kg CO2e."""

    source: str
    unit: str
    factor_name: Optional[str] = None    # catalog lookup
    fixed_kg: Optional[float] = None     # built-in intensity, no lookup
    fallback_kg: float = 0.0             # used when the catalog has no match


# ─── Activity table ────────────────────────────────────────────────────────
# Electricity and data-centre inputs are resolved through the regional grid
# factor, see resolver.grid_factor().
ACTIVITY_SPECS: dict[str, ActivitySpec] = {
    # Scope 1
    "natural_gas":          ActivitySpec(SOURCE_STATIONARY, "kWh", "Natural Gas Combustion"),
    "diesel":               ActivitySpec(SOURCE_MOBILE, "liter", "Diesel Combustion"),
    "petrol":               ActivitySpec(SOURCE_MOBILE, "liter", "Petrol Combustion"),
    "refrigerant_r410a":    ActivitySpec(SOURCE_REFRIGERANTS, "kg", "R-410A Refrigerant"),
    "refrigerant_r134a":    ActivitySpec(SOURCE_REFRIGERANTS, "kg", "R-134a Refrigerant"),
    "refrigerant_r22":      ActivitySpec(SOURCE_REFRIGERANTS, "kg", "R-22 Refrigerant"),
    "steel_production":     ActivitySpec(SOURCE_PROCESS, "tonne", fixed_kg=2100.0),
    "cement_production":    ActivitySpec(SOURCE_PROCESS, "tonne", fixed_kg=820.0),
    "chemical_usage":       ActivitySpec(SOURCE_PROCESS, "tonne", fixed_kg=1500.0),
    "livestock_cattle":     ActivitySpec(SOURCE_LIVESTOCK, "head", fixed_kg=2300.0),
    "livestock_pigs":       ActivitySpec(SOURCE_LIVESTOCK, "head", fixed_kg=200.0),
    "livestock_sheep":      ActivitySpec(SOURCE_LIVESTOCK, "head", fixed_kg=150.0),
    "fertilizers_nitrogen": ActivitySpec(SOURCE_FERTILIZERS, "kg N", fixed_kg=4.42),
    "land_converted":       ActivitySpec(SOURCE_LAND_USE, "hectare", "Land Use Change"),
    # Scope 2
    "electricity":          ActivitySpec(SOURCE_ELECTRICITY, "kWh", GRID_ELECTRICITY),
    "data_center":          ActivitySpec(SOURCE_ELECTRICITY, "kWh", GRID_ELECTRICITY),
    "steam_purchased":      ActivitySpec(SOURCE_STEAM, "MMBtu", fixed_kg=65.0),
    "heating_purchased":    ActivitySpec(SOURCE_HEATING, "MMBtu", fixed_kg=65.0),
    "cooling_purchased":    ActivitySpec(SOURCE_COOLING, "MMBtu", fixed_kg=65.0),
    # Scope 3
    "purchased_goods":      ActivitySpec(SOURCE_PURCHASED_GOODS, "$", "Purchased Goods and Services", fallback_kg=0.5),
    "paper_consumption":    ActivitySpec(SOURCE_PURCHASED_GOODS, "ream", fixed_kg=183.0),
    "business_flights":     ActivitySpec(SOURCE_BUSINESS_TRAVEL, "passenger mile", "Business Air Travel"),
    "employee_commuting":   ActivitySpec(SOURCE_EMPLOYEE_COMMUTING, "passenger mile", "Employee Commuting"),
    "waste_generated":      ActivitySpec(SOURCE_WASTE, "tonne", "Waste to Landfill"),
    "water_usage":          ActivitySpec(SOURCE_WATER, "m3", fixed_kg=0.35),
}

# ─── Default catalog (used when the live catalog is unavailable) ─────────
BASE_FACTORS: list[tuple[str, str, float]] = [
    # (name, category, kg CO2e per unit)
    ("Natural Gas Combustion", "stationary", 0.185),
    ("Diesel Combustion", "mobile", 2.68),
    ("Petrol Combustion", "mobile", 2.31),
    ("R-410A Refrigerant", "refrigerants", 2088.0),
    ("R-134a Refrigerant", "refrigerants", 1430.0),
    ("R-22 Refrigerant", "refrigerants", 1810.0),
    ("Business Air Travel", "business_travel", 0.185),
    ("Employee Commuting", "employee_commuting", 0.155),
    ("Waste to Landfill", "waste", 467.0),
    ("Purchased Goods and Services", "purchased_goods", 0.5),
]

# Grid intensity (kg CO2e / kWh) by canonical jurisdiction.
GRID_KG_PER_KWH: dict[str, float] = {
    "Australia": 0.79,
    "United States": 0.417,
    "European Union": 0.295,
    "United Kingdom": 0.233,
    "China": 0.555,
    "India": 0.82,
    "Canada": 0.13,
    "Japan": 0.441,
    "Brazil": 0.075,
    "New Zealand": 0.126,
    "South Korea": 0.459,
    "Singapore": 0.408,
    "Switzerland": 0.128,
}
DEFAULT_GRID_KG_PER_KWH: float = 0.5


def grid_factor_name(region: str | None) -> str:
    """Catalog name of the region-specific grid factor, e.g. ``Grid Electricity - Japan``."""
    if not region:
        return GRID_ELECTRICITY
    return f"{GRID_ELECTRICITY} - {region}"


def default_catalog(region: str | None = None) -> list[EmissionFactor]:
    """
    Return the built-in factor set for *region*.

    The region-specific grid factor falls back to DEFAULT_GRID_KG_PER_KWH when
    the region has no entry in GRID_KG_PER_KWH.
    """
    catalog = [
        EmissionFactor(name=name, category=category, value=value)
        for name, category, value in BASE_FACTORS
    ]
    if region:
        catalog.append(
            EmissionFactor(
                name=grid_factor_name(region),
                category="electricity",
                region_code=region,
                value=GRID_KG_PER_KWH.get(region, DEFAULT_GRID_KG_PER_KWH),
            )
        )
    return catalog
