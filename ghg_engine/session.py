"""
session.py – Calculation session, full recalculation and scenario snapshots.

A CalculationSession is an immutable value. Every edit returns a new session
with ``version`` bumped and ``dirty`` set; recalculate() derives everything
else (scopes, schedules, timeline, offsets, legislation, compliance) from it
and hands back a clean session.

Snapshot layout (camelCase keys, as stored in carbon_footprint_scenarios.data)
──────────────────────────────────────────────────────────────────────────────
    {
      "schemaVersion": 2,
      "rawInputs": {"electricity": 12000, ...},
      "emissionValues": {"electricity": 9480.0, ...},     # kg CO2e per input
      "emissions": {"scope1": .., "scope2": .., "scope3": .., "total": ..},
      "reductionStrategies": [...],
      "reductionTarget": 20,
      "activeSection": {...},
      "region": "Japan",
      "reportingYear": 2024,
      "organization": {...},
      "creditSelections": [...],
      "savedAt": "2024-05-01T09:30:00+00:00"
    }

Older payloads nest the calculator state under ``emissionsData``; both shapes
load.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from dateutil import parser as date_parser
from pydantic import ValidationError

from ghg_engine.aggregation import aggregate, scope_shares, source_breakdown
from ghg_engine.compliance import DEFAULT_WEIGHTS, ComplianceWeights, score
from ghg_engine.constants import (
    DEFAULT_ACTIVE_SECTION,
    DEFAULT_REDUCTION_TARGET,
    DEFAULT_TIMELINE_HORIZON,
    SNAPSHOT_VERSION,
)
from ghg_engine.emission_factors import default_catalog
from ghg_engine.legislation import applicable_legislation, normalize_jurisdiction, reporting_group
from ghg_engine.offsets import compute_offset_requirement
from ghg_engine.reduction import project_timeline, reschedule, target_summary, total_credits
from ghg_engine.resolver import ResolvedEmissions, resolve
from ghg_engine.schemas import (
    CarbonCreditSelection,
    ComplianceScore,
    EmissionFactor,
    Instrument,
    OffsetRequirement,
    OrganizationProfile,
    ReductionStrategy,
    ScopeEmissions,
    SourceBreakdown,
    TargetSummary,
    TimelinePoint,
)
from ghg_engine.validators import canonical_input_id, coerce_percentage, coerce_quantity, coerce_year

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot payload cannot possibly describe a session."""


# ─────────────────────────────────────────────────────────────
# Session value
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CalculationSession:
    raw_inputs: dict[str, Any] = field(default_factory=dict)
    region: Optional[str] = None
    reporting_year: Optional[int] = None
    organization: OrganizationProfile = field(default_factory=OrganizationProfile)
    reduction_strategies: tuple[ReductionStrategy, ...] = ()
    credit_selections: tuple[CarbonCreditSelection, ...] = ()
    reduction_target: float = DEFAULT_REDUCTION_TARGET
    active_section: dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_ACTIVE_SECTION))
    factor_catalog: tuple[EmissionFactor, ...] = ()
    emissions: ScopeEmissions = field(default_factory=ScopeEmissions)
    saved_at: Optional[datetime] = None
    version: int = 0
    dirty: bool = False

    @property
    def jurisdiction(self) -> str:
        return normalize_jurisdiction(self.region)


def _edit(session: CalculationSession, **changes: Any) -> CalculationSession:
    return replace(session, version=session.version + 1, dirty=True, **changes)


def with_input(session: CalculationSession, input_id: str, value: Any) -> CalculationSession:
    """Set one raw activity input (last write wins)."""
    inputs = dict(session.raw_inputs)
    inputs[canonical_input_id(input_id)] = value
    return _edit(session, raw_inputs=inputs)


def with_inputs(session: CalculationSession, values: Mapping[str, Any]) -> CalculationSession:
    inputs = dict(session.raw_inputs)
    for input_id, value in values.items():
        inputs[canonical_input_id(input_id)] = value
    return _edit(session, raw_inputs=inputs)


def with_region(session: CalculationSession, region: Optional[str]) -> CalculationSession:
    return _edit(session, region=region)


def with_organization(session: CalculationSession, **fields: Any) -> CalculationSession:
    merged = session.organization.model_dump()
    merged.update(fields)
    return _edit(session, organization=OrganizationProfile.model_validate(merged))


def with_reduction_target(session: CalculationSession, target: Any) -> CalculationSession:
    return _edit(session, reduction_target=coerce_percentage(target))


def with_strategy(session: CalculationSession, strategy: ReductionStrategy) -> CalculationSession:
    """Add *strategy*, replacing any existing strategy with the same id."""
    kept = [s for s in session.reduction_strategies if not (strategy.id and s.id == strategy.id)]
    return _edit(session, reduction_strategies=tuple([*kept, strategy]))


def without_strategy(session: CalculationSession, strategy_id: str) -> CalculationSession:
    kept = tuple(s for s in session.reduction_strategies if s.id != strategy_id)
    return _edit(session, reduction_strategies=kept)


def with_credit(session: CalculationSession, selection: CarbonCreditSelection) -> CalculationSession:
    """Add or replace the credit selection for one project."""
    kept = [c for c in session.credit_selections if c.project_id != selection.project_id]
    return _edit(session, credit_selections=tuple([*kept, selection]))


def without_credit(session: CalculationSession, project_id: Any) -> CalculationSession:
    kept = tuple(c for c in session.credit_selections if c.project_id != str(project_id))
    return _edit(session, credit_selections=kept)


def with_catalog(session: CalculationSession, catalog: Sequence[EmissionFactor]) -> CalculationSession:
    return _edit(session, factor_catalog=tuple(catalog))


# ─────────────────────────────────────────────────────────────
# Recalculation
# ─────────────────────────────────────────────────────────────

@dataclass
class CalculationResult:
    """Everything derived from one session."""
    session: CalculationSession
    resolved: ResolvedEmissions
    emissions: ScopeEmissions
    breakdown: list[SourceBreakdown]
    shares: dict[int, float]
    timeline: list[TimelinePoint]
    target: TargetSummary
    offsets: OffsetRequirement
    legislation: list[Instrument]
    compliance: dict[str, ComplianceScore]
    reporting_group: Optional[int] = None


def recalculate(
    session: CalculationSession,
    *,
    horizon: int = DEFAULT_TIMELINE_HORIZON,
    weights: ComplianceWeights = DEFAULT_WEIGHTS,
    start_year: Optional[int] = None,
) -> CalculationResult:
    """
    Derive all outputs from *session*. Pure: the same session always yields
    the same result, and the returned session is clean.
    """
    jurisdiction = session.jurisdiction
    catalog = list(session.factor_catalog) or default_catalog(jurisdiction)

    resolved = resolve(session.raw_inputs, catalog, jurisdiction)
    emissions = aggregate(resolved.by_source)
    strategies = reschedule(session.reduction_strategies, emissions.total)
    credits = total_credits(session.credit_selections)
    first_year = start_year or session.reporting_year

    timeline = project_timeline(
        emissions.total,
        strategies,
        credit_total=credits,
        target_percent=session.reduction_target,
        horizon=horizon,
        start_year=first_year,
    )

    org = session.organization
    if not org.location and session.region:
        org = org.model_copy(update={"location": session.region})
    if not org.reporting_year and session.reporting_year:
        org = org.model_copy(update={"reporting_year": session.reporting_year})

    instruments = applicable_legislation(jurisdiction, org.annual_revenue, org.employee_count, emissions.total)
    compliance = {
        instrument.name: score(instrument, org, emissions, strategies, weights)
        for instrument in instruments
    }

    clean = replace(
        session,
        reduction_strategies=tuple(strategies),
        emissions=emissions,
        dirty=False,
    )
    logger.info(
        "Recalculated session v%d: %.2f tCO2e (S1 %.2f / S2 %.2f / S3 %.2f)",
        session.version, emissions.total, emissions.scope1, emissions.scope2, emissions.scope3,
    )
    return CalculationResult(
        session=clean,
        resolved=resolved,
        emissions=emissions,
        breakdown=source_breakdown(resolved.by_source),
        shares=scope_shares(emissions),
        timeline=timeline,
        target=target_summary(emissions.total, session.reduction_target, strategies),
        offsets=compute_offset_requirement(jurisdiction, emissions.total),
        legislation=instruments,
        compliance=compliance,
        reporting_group=reporting_group(org.annual_revenue, org.employee_count, emissions.total),
    )


# ─────────────────────────────────────────────────────────────
# Snapshots
# ─────────────────────────────────────────────────────────────

def serialize(
    session: CalculationSession,
    result: Optional[CalculationResult] = None,
    saved_at: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Snapshot *session* (and the derived values of *result*, when given).

    ``savedAt`` is *saved_at* when given, else the session's own timestamp;
    callers that persist a snapshot pass the save time explicitly.
    """
    source = result.session if result is not None else session
    emissions = result.emissions if result is not None else session.emissions
    stamp = saved_at or source.saved_at
    return {
        "schemaVersion": SNAPSHOT_VERSION,
        "rawInputs": dict(source.raw_inputs),
        "emissionValues": dict(result.resolved.by_input) if result is not None else {},
        "emissions": emissions.model_dump(),
        "reductionStrategies": [
            s.model_dump(by_alias=True, mode="json") for s in source.reduction_strategies
        ],
        "reductionTarget": source.reduction_target,
        "activeSection": dict(source.active_section),
        "region": source.region,
        "reportingYear": source.reporting_year,
        "organization": source.organization.model_dump(by_alias=True, mode="json"),
        "creditSelections": [c.model_dump(by_alias=True) for c in source.credit_selections],
        "savedAt": stamp.isoformat() if stamp is not None else None,
    }


def _load_models(items: Any, model: type, label: str) -> list:
    """Validate each entry of *items*; invalid entries are dropped with a warning."""
    if not isinstance(items, list):
        return []
    loaded = []
    for item in items:
        try:
            loaded.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid %s in snapshot: %s", label, e.errors()[0].get("msg"))
    return loaded


def _parse_saved_at(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        logger.warning("Unreadable savedAt %r in snapshot", value)
        return None


def deserialize(payload: Any) -> CalculationSession:
    """
    Build a session from a snapshot dict or JSON string.

    Missing keys fall back to defaults (empty inputs, 20% target, zero
    emissions). Only payloads that are not a mapping raise SnapshotError.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot is not valid JSON: {e}") from None
    if not isinstance(payload, Mapping):
        raise SnapshotError(f"Snapshot must be a mapping, got {type(payload).__name__}")

    data: dict[str, Any] = dict(payload)
    legacy = payload.get("emissionsData")
    if isinstance(legacy, Mapping):
        for key, value in legacy.items():
            data.setdefault(key, value)

    raw_inputs = data.get("rawInputs")
    if not isinstance(raw_inputs, Mapping):
        raw_inputs = {}

    stored = data.get("emissions") if isinstance(data.get("emissions"), Mapping) else {}
    emissions = ScopeEmissions.from_scopes(
        coerce_quantity(stored.get("scope1")),
        coerce_quantity(stored.get("scope2")),
        coerce_quantity(stored.get("scope3")),
    )

    target = data.get("reductionTarget")
    active = dict(DEFAULT_ACTIVE_SECTION)
    if isinstance(data.get("activeSection"), Mapping):
        active.update({str(k): bool(v) for k, v in data["activeSection"].items()})

    org_data = data.get("organization") if isinstance(data.get("organization"), Mapping) else {}
    try:
        organization = OrganizationProfile.model_validate(org_data)
    except ValidationError:
        logger.warning("Invalid organization block in snapshot, using defaults")
        organization = OrganizationProfile()

    return CalculationSession(
        raw_inputs=dict(raw_inputs),
        region=data.get("region") or data.get("location") or None,
        reporting_year=coerce_year(data.get("reportingYear"), 0) or None,
        organization=organization,
        reduction_strategies=tuple(_load_models(data.get("reductionStrategies"), ReductionStrategy, "strategy")),
        credit_selections=tuple(_load_models(data.get("creditSelections"), CarbonCreditSelection, "credit selection")),
        reduction_target=coerce_percentage(target, default=DEFAULT_REDUCTION_TARGET),
        active_section=active,
        emissions=emissions,
        saved_at=_parse_saved_at(data.get("savedAt")),
    )
