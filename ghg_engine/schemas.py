"""
schemas.py – Pydantic models for the emissions engine.

All emission quantities are tonnes CO2e unless the field name says kg.
Persisted payloads use camelCase keys, so every model with a multi-word
field accepts both the snake_case name and its camelCase alias.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ghg_engine.constants import ADVISORY_NOTICE, SCOPE_TOTAL_TOLERANCE
from ghg_engine.validators import coerce_percentage, coerce_quantity


# ─────────────────────────────────────────────────────────────
# Activity data & factors
# ─────────────────────────────────────────────────────────────

class ActivityInput(BaseModel):
    """One raw activity quantity entered by the user."""

    id: str
    quantity: float = Field(0.0, description="Activity quantity in the input's native unit")

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        return coerce_quantity(value)


class EmissionFactor(BaseModel):
    """A catalog entry: kg CO2e per unit of activity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., alias="factorName")
    category: str = ""
    region_code: Optional[str] = Field(None, alias="regionCode")
    value: float = Field(0.0, alias="factorValue")

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value):
        return coerce_quantity(value)


class ScopeEmissions(BaseModel):
    """Scope totals in tonnes CO2e."""

    scope1: float = 0.0
    scope2: float = 0.0
    scope3: float = 0.0
    total: float = 0.0

    @model_validator(mode="after")
    def _check_total(self):
        expected = self.scope1 + self.scope2 + self.scope3
        if abs(self.total - expected) > SCOPE_TOTAL_TOLERANCE:
            self.total = expected
        return self

    @classmethod
    def from_scopes(cls, scope1: float, scope2: float, scope3: float) -> "ScopeEmissions":
        return cls(scope1=scope1, scope2=scope2, scope3=scope3, total=scope1 + scope2 + scope3)


# ─────────────────────────────────────────────────────────────
# Reduction planning
# ─────────────────────────────────────────────────────────────

class ReductionStrategy(BaseModel):
    """A planned intervention. Editable until confirmed."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    description: str = ""
    category: str = "energy-efficiency"
    reduction_type: Literal["percentage", "absolute"] = Field("percentage", alias="reductionType")
    reduction_potential: float = Field(0.0, alias="reductionPotential", description="Percent of baseline, 0-100")
    reduction_tonnes: float = Field(0.0, alias="reductionTonnes", description="Absolute tCO2e")
    implementation_cost: Literal["low", "medium", "high"] = Field("medium", alias="implementationCost")
    timeframe: Literal["short", "medium", "long"] = "medium"
    implementation_year: Optional[int] = Field(None, alias="implementationYear")
    full_realization_year: Optional[int] = Field(None, alias="fullRealizationYear")
    yearly_reductions: dict[int, float] = Field(default_factory=dict, alias="yearlyReductions")
    is_confirmed: bool = Field(False, alias="isConfirmed")

    @field_validator("reduction_potential", mode="before")
    @classmethod
    def _coerce_potential(cls, value):
        return coerce_percentage(value)

    @field_validator("reduction_tonnes", mode="before")
    @classmethod
    def _coerce_tonnes(cls, value):
        return coerce_quantity(value)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        return "" if value is None else str(value)


class CarbonCreditSelection(BaseModel):
    """Credits picked from a project listing to counterbalance emissions."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    name: Optional[str] = None
    credit_type: Optional[str] = Field(None, alias="creditType")
    available_credits: Optional[int] = Field(None, alias="availableCredits")
    selected_quantity: int = Field(1, alias="selectedQuantity")
    price_per_tonne: Optional[float] = Field(None, alias="pricePerTonne")

    @field_validator("project_id", mode="before")
    @classmethod
    def _project_id_to_str(cls, value):
        return str(value)

    @field_validator("selected_quantity", mode="before")
    @classmethod
    def _coerce_selected(cls, value):
        return int(coerce_quantity(value))

    @model_validator(mode="after")
    def _clamp_quantity(self):
        if self.available_credits is not None and self.available_credits <= 0:
            raise ValueError(f"Project {self.project_id} has no credits available")
        quantity = max(1, self.selected_quantity)
        if self.available_credits is not None:
            quantity = min(quantity, self.available_credits)
        self.selected_quantity = quantity
        return self


# ─────────────────────────────────────────────────────────────
# Regulation & compliance
# ─────────────────────────────────────────────────────────────

class LegislationThreshold(BaseModel):
    """A static reporting/offset threshold for one jurisdiction."""

    jurisdiction: str
    metric: Literal["emissions", "revenue", "employees"]
    threshold_value: float
    mandatory: bool = True
    instrument: Optional[str] = None


class Instrument(BaseModel):
    """A legislative instrument and, when applicable, why it applies."""

    name: str
    full_name: str = ""
    description: str = ""
    jurisdiction: str = ""
    tier: Literal["primary", "secondary"] = "primary"
    requires_scope3: bool = False
    requires_reduction_targets: bool = False
    reporting_requirements: list[str] = Field(default_factory=list)
    penalties: Optional[str] = None
    timeline: dict[str, str] = Field(default_factory=dict)
    link: Optional[str] = None
    reason: Optional[str] = None


class OrganizationProfile(BaseModel):
    """Organizational attributes used by the compliance scorer."""

    model_config = ConfigDict(populate_by_name=True)

    organization_type: Optional[str] = Field(None, alias="organizationType")
    employee_count: float = Field(0, alias="employeeCount")
    facility_count: float = Field(0, alias="facilityCount")
    annual_revenue: float = Field(0, alias="annualRevenue")
    industry_type: Optional[str] = Field(None, alias="industryType")
    reporting_year: Optional[int] = Field(None, alias="reportingYear")
    location: Optional[str] = None

    @field_validator("employee_count", "facility_count", "annual_revenue", mode="before")
    @classmethod
    def _coerce_counts(cls, value):
        return coerce_quantity(value)


class ReportingMilestone(BaseModel):
    """A dated step in the annual reporting cycle."""

    date: str
    milestone: str
    action: str


class ComplianceScore(BaseModel):
    """Weighted data-completeness score for one instrument."""

    score: int = 0
    total_requirements: int = 0
    percentage: int = 0
    is_complete: bool = False
    missing: list[str] = Field(default_factory=list)
    notice: str = ADVISORY_NOTICE


class VoluntaryBenchmarks(BaseModel):
    """tCO2e to offset under common voluntary commitments."""

    carbon_neutral: float = 0.0
    science_based_target: float = 0.0
    net_zero: float = 0.0


class OffsetRequirement(BaseModel):
    """Mandatory offset volume plus voluntary benchmarks for a jurisdiction."""

    jurisdiction: str
    total_emissions: float = 0.0
    mandatory: bool = False
    is_required: bool = False
    threshold_value: float = 0.0
    offset_percentage: float = 0.0
    tier_label: Optional[str] = None
    offset_amount: float = 0.0
    allowed_credit_types: list[str] = Field(default_factory=list)
    voluntary_credit_types: list[str] = Field(default_factory=list)
    voluntary_benchmarks: VoluntaryBenchmarks = Field(default_factory=VoluntaryBenchmarks)
    description: str = ""
    regulation: Optional[str] = None


# ─────────────────────────────────────────────────────────────
# Outputs for the presentation layer
# ─────────────────────────────────────────────────────────────

class SourceBreakdown(BaseModel):
    """One bar of the per-source chart."""

    source: str
    label: str
    scope: int
    tco2e: float
    share_pct: float = 0.0


class TimelinePoint(BaseModel):
    """One year of the projected emissions trajectory (tCO2e)."""

    year: int
    baseline: float
    emissions: float
    reduction: float
    target: float


class TargetSummary(BaseModel):
    """Distance between the planned reductions and the reduction target."""

    target_percent: float
    target_emissions: float
    required_reduction: float
    planned_reduction: float
    gap: float
    on_track: bool
