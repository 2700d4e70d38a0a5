"""
constants.py – Shared labels, scope tables, realization curves, and defaults.
"""

# ── Emission sources (keys of a contributions mapping) ────────
SOURCE_STATIONARY = "stationary"
SOURCE_MOBILE = "mobile"
SOURCE_REFRIGERANTS = "refrigerants"
SOURCE_PROCESS = "process"
SOURCE_LIVESTOCK = "livestock"
SOURCE_FERTILIZERS = "fertilizers"
SOURCE_LAND_USE = "land_use"
SOURCE_ELECTRICITY = "electricity"
SOURCE_STEAM = "steam"
SOURCE_HEATING = "heating"
SOURCE_COOLING = "cooling"
SOURCE_PURCHASED_GOODS = "purchased_goods"
SOURCE_BUSINESS_TRAVEL = "business_travel"
SOURCE_EMPLOYEE_COMMUTING = "employee_commuting"
SOURCE_WASTE = "waste"
SOURCE_WATER = "water"

# ── GHG Protocol scope classification ─────────────────────────
SCOPE_CLASSIFICATION: dict[str, int] = {
    SOURCE_STATIONARY: 1,
    SOURCE_MOBILE: 1,
    SOURCE_REFRIGERANTS: 1,
    SOURCE_PROCESS: 1,
    SOURCE_LIVESTOCK: 1,
    SOURCE_FERTILIZERS: 1,
    SOURCE_LAND_USE: 1,
    SOURCE_ELECTRICITY: 2,
    SOURCE_STEAM: 2,
    SOURCE_HEATING: 2,
    SOURCE_COOLING: 2,
    SOURCE_PURCHASED_GOODS: 3,
    SOURCE_BUSINESS_TRAVEL: 3,
    SOURCE_EMPLOYEE_COMMUTING: 3,
    SOURCE_WASTE: 3,
    SOURCE_WATER: 3,
}

ALL_SOURCES = list(SCOPE_CLASSIFICATION.keys())

SOURCE_LABELS: dict[str, str] = {
    SOURCE_STATIONARY: "Stationary Combustion",
    SOURCE_MOBILE: "Mobile Combustion",
    SOURCE_REFRIGERANTS: "Refrigerants",
    SOURCE_PROCESS: "Process Emissions",
    SOURCE_LIVESTOCK: "Livestock",
    SOURCE_FERTILIZERS: "Fertilizers",
    SOURCE_LAND_USE: "Land Use Change",
    SOURCE_ELECTRICITY: "Purchased Electricity",
    SOURCE_STEAM: "Purchased Steam",
    SOURCE_HEATING: "Purchased Heating",
    SOURCE_COOLING: "Purchased Cooling",
    SOURCE_PURCHASED_GOODS: "Purchased Goods",
    SOURCE_BUSINESS_TRAVEL: "Business Travel",
    SOURCE_EMPLOYEE_COMMUTING: "Employee Commuting",
    SOURCE_WASTE: "Waste Generated",
    SOURCE_WATER: "Water Usage",
}

SCOPE_LABELS: dict[int, str] = {
    1: "Scope 1 (Direct)",
    2: "Scope 2 (Electricity)",
    3: "Scope 3 (Value Chain)",
}

# ── Unit conversion ───────────────────────────────────────────
KG_PER_TONNE: float = 1000.0

# Allowed absolute difference when checking total == scope1 + scope2 + scope3
SCOPE_TOTAL_TOLERANCE = 1e-6

# ── Reduction strategies ──────────────────────────────────────
REDUCTION_TYPE_PERCENTAGE = "percentage"
REDUCTION_TYPE_ABSOLUTE = "absolute"
REDUCTION_TYPES = {REDUCTION_TYPE_PERCENTAGE, REDUCTION_TYPE_ABSOLUTE}

TIMEFRAME_SHORT = "short"
TIMEFRAME_MEDIUM = "medium"
TIMEFRAME_LONG = "long"

IMPLEMENTATION_COSTS = {"low", "medium", "high"}

# Share of a strategy's total reduction realized in each year after
# implementation starts (index 0 = implementation year).
REALIZATION_CURVES: dict[str, tuple[float, ...]] = {
    TIMEFRAME_SHORT: (1.0,),
    TIMEFRAME_MEDIUM: (0.3, 0.5, 0.2),
    TIMEFRAME_LONG: (0.1, 0.2, 0.3, 0.25, 0.15),
}

# Years from implementation start to full realization.
REALIZATION_OFFSETS: dict[str, int] = {
    TIMEFRAME_SHORT: 0,
    TIMEFRAME_MEDIUM: 2,
    TIMEFRAME_LONG: 4,
}
DEFAULT_REALIZATION_OFFSET = 1

# Fields a user may no longer change once a strategy is confirmed.
STRATEGY_LOCKED_FIELDS = {
    "category",
    "reduction_type",
    "reduction_potential",
    "reduction_tonnes",
    "implementation_cost",
    "timeframe",
    "implementation_year",
}

STRATEGY_CATEGORIES = [
    "energy-efficiency",
    "renewable-energy",
    "fleet-electrification",
    "process-optimization",
    "supply-chain",
    "waste-reduction",
    "behavioural",
    "other",
]

# ── Scenario defaults ─────────────────────────────────────────
DEFAULT_REDUCTION_TARGET = 20
DEFAULT_TIMELINE_HORIZON = 10
DEFAULT_JURISDICTION = "Australia"

# ── Voluntary offset benchmarks (share of emissions still to offset) ──
CARBON_NEUTRAL_SHARE = 1.0
SCIENCE_BASED_RETAINED_SHARE = 0.575   # after a 42.5% reduction
NET_ZERO_RETAINED_SHARE = 0.10         # after a 90% reduction

COMPLIANCE_TYPE_COMPLIANCE = "compliance"
COMPLIANCE_TYPE_VOLUNTARY = "voluntary"

# ── Snapshot schema ───────────────────────────────────────────
SNAPSHOT_VERSION = 2

DEFAULT_ACTIVE_SECTION: dict[str, bool] = {
    "location": False,
    "direct": True,
    "indirect": False,
    "value_chain": False,
    "results": False,
    "target": False,
    "strategies": False,
    "offsets": False,
    "summary": False,
}

ADVISORY_NOTICE = (
    "Compliance readiness is an advisory data-completeness indicator, "
    "not a legal determination. Confirm obligations with the regulator."
)

# ── Legacy camelCase activity ids found in older scenario payloads ──
ACTIVITY_ALIASES: dict[str, str] = {
    "naturalGas": "natural_gas",
    "refrigerantR410a": "refrigerant_r410a",
    "refrigerantR134a": "refrigerant_r134a",
    "refrigerantR22": "refrigerant_r22",
    "steelProduction": "steel_production",
    "cementProduction": "cement_production",
    "chemicalUsage": "chemical_usage",
    "livestockCattle": "livestock_cattle",
    "livestockPigs": "livestock_pigs",
    "livestockSheep": "livestock_sheep",
    "fertilizersNitrogen": "fertilizers_nitrogen",
    "landConverted": "land_converted",
    "dataCenter": "data_center",
    "steamPurchased": "steam_purchased",
    "heatingPurchased": "heating_purchased",
    "coolingPurchased": "cooling_purchased",
    "purchasedGoods": "purchased_goods",
    "paperConsumption": "paper_consumption",
    "businessFlights": "business_flights",
    "employeeCommuting": "employee_commuting",
    "wasteGenerated": "waste_generated",
    "waterUsage": "water_usage",
}
