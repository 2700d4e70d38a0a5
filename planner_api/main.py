"""
main.py – FastAPI surface for the GHG reduction planner.

Start:
    cd /path/to/ghg-planner
    uvicorn planner_api.main:app --reload --port 8000

Calculation endpoints are stateless: the client posts a scenario snapshot
(the same camelCase payload stored in carbon_footprint_scenarios.data) and
receives every derived value back. Scenario endpoints need DATABASE_URL.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ghg_engine.compliance import ComplianceWeights, score
from ghg_engine.config import ConfigError, get_config
from ghg_engine.db import PersistenceResult, ScenarioStore
from ghg_engine.io_utils import result_payload
from ghg_engine.legislation import (
    applicable_legislation,
    instruments_for,
    normalize_jurisdiction,
    reporting_group,
    reporting_timeline,
    thresholds_for,
)
from ghg_engine.offsets import compute_offset_requirement
from ghg_engine.schemas import OrganizationProfile, ReductionStrategy, ScopeEmissions
from ghg_engine.session import SnapshotError, deserialize, recalculate, serialize

logger = logging.getLogger(__name__)

app = FastAPI(
    title="GHG Reduction Planner API",
    version="1.0.0",
    description="Scope emissions, reduction trajectories, offsets and compliance readiness.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": f"Configuration error: {exc}"})


# ─────────────────────────────────────────────────────────────
# Request bodies & dependencies
# ─────────────────────────────────────────────────────────────

class ScenarioBody(BaseModel):
    name: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class ComplianceBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    jurisdiction: Optional[str] = None
    instrument: Optional[str] = Field(None, description="Instrument name; all applicable ones when omitted")
    organization: OrganizationProfile = Field(default_factory=OrganizationProfile)
    emissions: Optional[ScopeEmissions] = None
    reduction_strategies: list[ReductionStrategy] = Field(default_factory=list, alias="reductionStrategies")


def get_store() -> ScenarioStore:
    cfg = get_config()
    if not cfg.database_url:
        raise HTTPException(status_code=503, detail="DATABASE_URL is not set; scenarios are unavailable.")
    return ScenarioStore(cfg.database_url)


def _load_session(body: dict[str, Any]):
    try:
        session = deserialize(body)
    except SnapshotError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if "reductionTarget" not in body and "emissionsData" not in body:
        session = replace(session, reduction_target=get_config().default_reduction_target)
    return session


def _unwrap(result: PersistenceResult):
    if result.success:
        return result.data
    if result.not_found:
        raise HTTPException(status_code=404, detail=result.error)
    raise HTTPException(status_code=500, detail=result.error or "Persistence failure")


# ─────────────────────────────────────────────────────────────
# Calculation
# ─────────────────────────────────────────────────────────────

@app.post("/api/calculate", summary="Full recalculation of a scenario snapshot")
def calculate(body: dict):
    """
    Body: a scenario snapshot ({rawInputs, region, organization,
    reductionStrategies, creditSelections, reductionTarget, ...}).
    Returns every derived value plus a refreshed snapshot.
    """
    session = _load_session(body)
    cfg = get_config()
    result = recalculate(
        session,
        horizon=cfg.timeline_horizon,
        weights=ComplianceWeights.from_mapping(cfg.compliance_weights),
    )
    payload = result_payload(result)
    payload["snapshot"] = serialize(result.session, result, saved_at=datetime.now(tz=timezone.utc))
    return payload


@app.post("/api/timeline", summary="Projected emissions trajectory")
def timeline(body: dict, horizon: Optional[int] = None, start_year: Optional[int] = None):
    session = _load_session(body)
    cfg = get_config()
    result = recalculate(session, horizon=horizon or cfg.timeline_horizon, start_year=start_year)
    return {
        "baseline": result.emissions.total,
        "timeline": [point.model_dump() for point in result.timeline],
        "target": result.target.model_dump(),
    }


@app.get("/api/offsets/{jurisdiction}", summary="Offset obligation and credit eligibility")
def offsets(jurisdiction: str, emissions: float = 0.0):
    return compute_offset_requirement(jurisdiction, emissions).model_dump()


@app.get("/api/legislation", summary="Applicable reporting instruments")
def legislation(
    jurisdiction: Optional[str] = None,
    revenue: float = 0.0,
    employees: float = 0.0,
    emissions: float = 0.0,
    year: Optional[int] = None,
):
    """
    Returns the applicable instruments (with reasons), the full instrument
    list, numeric thresholds, the reporting group and the annual timeline.
    """
    key = normalize_jurisdiction(jurisdiction, get_config().default_jurisdiction)
    return {
        "jurisdiction": key,
        "applicable": [i.model_dump() for i in applicable_legislation(key, revenue, employees, emissions)],
        "instruments": [i.model_dump() for i in instruments_for(key)],
        "thresholds": [t.model_dump() for t in thresholds_for(key)],
        "reporting_group": reporting_group(revenue, employees, emissions),
        "timeline": [m.model_dump() for m in reporting_timeline(key, year)],
    }


@app.post("/api/compliance", summary="Compliance readiness scores")
def compliance(body: ComplianceBody):
    key = normalize_jurisdiction(body.jurisdiction or body.organization.location, get_config().default_jurisdiction)
    total = body.emissions.total if body.emissions is not None else 0.0
    if body.instrument:
        candidates = [i for i in instruments_for(key) if i.name == body.instrument]
        if not candidates:
            raise HTTPException(status_code=404, detail=f"Unknown instrument {body.instrument!r} for {key}")
    else:
        org = body.organization
        candidates = applicable_legislation(key, org.annual_revenue, org.employee_count, total)

    weights = ComplianceWeights.from_mapping(get_config().compliance_weights)
    return {
        "jurisdiction": key,
        "scores": {
            i.name: score(i, body.organization, body.emissions, body.reduction_strategies, weights).model_dump()
            for i in candidates
        },
    }


# ─────────────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────────────

@app.get("/api/scenarios/{footprint_id}", summary="Saved scenarios of a footprint")
def list_scenarios(footprint_id: int, store: ScenarioStore = Depends(get_store)):
    return _unwrap(store.list_scenarios(footprint_id))


@app.post("/api/scenarios/{footprint_id}", status_code=201, summary="Save a scenario")
def create_scenario(footprint_id: int, body: ScenarioBody, store: ScenarioStore = Depends(get_store)):
    snapshot = body.data or {}
    try:
        deserialize(snapshot)
    except SnapshotError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _unwrap(store.save(footprint_id, body.name, snapshot))


@app.get("/api/scenarios/{footprint_id}/{scenario_id}", summary="Load a scenario")
def get_scenario(footprint_id: int, scenario_id: int, store: ScenarioStore = Depends(get_store)):
    return _unwrap(store.load(footprint_id, scenario_id))


@app.put("/api/scenarios/{footprint_id}/{scenario_id}", summary="Rename or replace a scenario")
def update_scenario(footprint_id: int, scenario_id: int, body: ScenarioBody,
                    store: ScenarioStore = Depends(get_store)):
    return _unwrap(store.update(footprint_id, scenario_id, body.name, body.data))


@app.delete("/api/scenarios/{footprint_id}/{scenario_id}", summary="Delete a scenario")
def delete_scenario(footprint_id: int, scenario_id: int, store: ScenarioStore = Depends(get_store)):
    deleted = _unwrap(store.delete(footprint_id, scenario_id))
    return {"message": "Scenario deleted successfully", **deleted}


@app.get("/health")
def health():
    return {"status": "ok"}
