"""
compliance.py – Data-completeness readiness score for a legislative instrument.

The score is an advisory heuristic: it measures whether the data a regulator
would ask for has been entered, not whether the organization complies.

Default weights
───────────────
 Organization type, employees, facilities, revenue, industry, year   1 each
 Location                                                             2
 Scope 1 > 0, Scope 2 > 0                                             3 each
 Scope 3 > 0          (only when the instrument requires Scope 3)     2
 Any strategy         (only when it requires reduction targets)       2
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping, Optional, Sequence

from ghg_engine.constants import ADVISORY_NOTICE
from ghg_engine.schemas import (
    ComplianceScore,
    Instrument,
    OrganizationProfile,
    ReductionStrategy,
    ScopeEmissions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplianceWeights:
    organization_type: int = 1
    employee_count: int = 1
    facility_count: int = 1
    annual_revenue: int = 1
    industry_type: int = 1
    reporting_year: int = 1
    location: int = 2
    scope1: int = 3
    scope2: int = 3
    scope3: int = 2
    reduction_strategies: int = 2

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]]) -> "ComplianceWeights":
        """
        Defaults with *overrides* applied; unknown keys are ignored.

        Raises ValueError for a weight that is not a non-negative integer,
        since a negative weight would lower the score as data is added.
        """
        if not overrides:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("Ignoring unknown compliance weight %r", key)
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Compliance weight {key!r} must be a non-negative integer, got {value!r}")
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


DEFAULT_WEIGHTS = ComplianceWeights()

_LABELS = {
    "organization_type": "Organization type",
    "employee_count": "Employee count",
    "facility_count": "Facility count",
    "annual_revenue": "Annual revenue",
    "industry_type": "Industry type",
    "reporting_year": "Reporting year",
    "location": "Location",
    "scope1": "Scope 1 emissions",
    "scope2": "Scope 2 emissions",
    "scope3": "Scope 3 emissions",
    "reduction_strategies": "Reduction strategies",
}


def _requirements(
    legislation: Optional[Instrument],
    org: OrganizationProfile,
    emissions: Optional[ScopeEmissions],
    reduction_strategies: Sequence[ReductionStrategy],
) -> list[tuple[str, bool]]:
    """(requirement key, met) for every requirement that counts."""
    reqs = [
        ("organization_type", bool(org.organization_type)),
        ("employee_count", org.employee_count > 0),
        ("facility_count", org.facility_count > 0),
        ("annual_revenue", org.annual_revenue > 0),
        ("industry_type", bool(org.industry_type)),
        ("reporting_year", bool(org.reporting_year)),
        ("location", bool(org.location)),
        ("scope1", emissions is not None and emissions.scope1 > 0),
        ("scope2", emissions is not None and emissions.scope2 > 0),
    ]
    if legislation is not None and legislation.requires_scope3:
        reqs.append(("scope3", emissions is not None and emissions.scope3 > 0))
    if legislation is not None and legislation.requires_reduction_targets:
        reqs.append(("reduction_strategies", len(reduction_strategies) > 0))
    return reqs


def score(
    legislation: Optional[Instrument],
    org: OrganizationProfile | Mapping[str, Any],
    emissions: Optional[ScopeEmissions],
    reduction_strategies: Sequence[ReductionStrategy] = (),
    weights: ComplianceWeights = DEFAULT_WEIGHTS,
) -> ComplianceScore:
    """Weighted completeness of the data *legislation* asks for."""
    if not isinstance(org, OrganizationProfile):
        org = OrganizationProfile.model_validate(org or {})
    weight_of = weights.to_dict()

    achieved = 0
    total = 0
    missing = []
    for key, met in _requirements(legislation, org, emissions, reduction_strategies):
        weight = weight_of[key]
        total += weight
        if met:
            achieved += weight
        else:
            missing.append(_LABELS[key])

    percentage = math.floor(100 * achieved / total + 0.5) if total > 0 else 0
    return ComplianceScore(
        score=achieved,
        total_requirements=total,
        percentage=percentage,
        is_complete=percentage == 100,
        missing=missing,
        notice=ADVISORY_NOTICE,
    )


def missing_items(
    legislation: Optional[Instrument],
    org: OrganizationProfile | Mapping[str, Any],
    emissions: Optional[ScopeEmissions],
    reduction_strategies: Sequence[ReductionStrategy] = (),
) -> list[str]:
    return score(legislation, org, emissions, reduction_strategies).missing
