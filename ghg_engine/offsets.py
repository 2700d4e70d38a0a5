"""
offsets.py – Mandatory offset obligations, voluntary benchmarks and credit eligibility.

Offset rules per jurisdiction
─────────────────────────────
 Jurisdiction     Mandatory  Threshold (tCO2e)  Offset share
 ────────────────────────────────────────────────────────────────────────
 Australia        yes        25,000             >100k: 25%  >50k: 15%  else 10%
 European Union   yes        10,000             varies by sector (no amount)
 United Kingdom   yes        10,000             market-based (no amount)
 United States    no         –                  voluntary
 other            no         –                  voluntary

Tier percentages and credit lists are illustrative defaults; edit the tables
below rather than the functions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from ghg_engine.constants import (
    CARBON_NEUTRAL_SHARE,
    COMPLIANCE_TYPE_COMPLIANCE,
    COMPLIANCE_TYPE_VOLUNTARY,
    NET_ZERO_RETAINED_SHARE,
    SCIENCE_BASED_RETAINED_SHARE,
)
from ghg_engine.legislation import normalize_jurisdiction
from ghg_engine.schemas import OffsetRequirement, VoluntaryBenchmarks
from ghg_engine.validators import coerce_quantity

logger = logging.getLogger(__name__)

Tier = Union[float, str]


def _australia_tier(total: float) -> Tier:
    if total > 100_000:
        return 25.0
    if total > 50_000:
        return 15.0
    return 10.0


@dataclass(frozen=True)
class OffsetRule:
    mandatory: bool
    threshold: float = 0.0
    tier: Callable[[float], Tier] = lambda total: 0.0
    description: str = ""
    regulation: Optional[str] = None
    schemes: tuple[str, ...] = field(default_factory=tuple)


OTHER = "other"

OFFSET_RULES: dict[str, OffsetRule] = {
    "Australia": OffsetRule(
        mandatory=True,
        threshold=25_000,
        tier=_australia_tier,
        description="Australian facilities exceeding 25,000 tCO2e must surrender Australian "
                    "Carbon Credit Units (ACCUs) or eligible international units.",
        regulation="Safeguard Mechanism Rules 2015",
        schemes=("Safeguard Mechanism", "Climate Active"),
    ),
    "United States": OffsetRule(
        mandatory=False,
        description="Federal requirements are limited; several states run cap-and-trade "
                    "programs. Voluntary offsetting is common.",
        schemes=("California Cap-and-Trade", "RGGI"),
    ),
    "European Union": OffsetRule(
        mandatory=True,
        threshold=10_000,
        tier=lambda total: "varies by sector",
        description="Installations covered by EU ETS must surrender allowances. CORSIA applies to aviation.",
        regulation="EU ETS Directive 2003/87/EC",
        schemes=("EU ETS",),
    ),
    "United Kingdom": OffsetRule(
        mandatory=True,
        threshold=10_000,
        tier=lambda total: "market-based",
        description="UK ETS covers energy-intensive industries. Voluntary schemes are "
                    "available for nature-based solutions.",
        regulation="The Greenhouse Gas Emissions Trading Scheme Order 2020",
        schemes=("UK ETS", "Woodland Carbon Code", "Peatland Code"),
    ),
    OTHER: OffsetRule(
        mandatory=False,
        description="Check local regulations. International voluntary standards are widely accepted.",
        schemes=("Various voluntary programs",),
    ),
}

# (compliance-market credits, voluntary-market credits)
CREDIT_TYPES: dict[str, tuple[list[str], list[str]]] = {
    "Australia": (["ACCU"], ["ACCU", "VCS", "Gold_Standard", "CDM", "Climate_Active_Eligible"]),
    "Japan": (["JCM", "J_Credit"], ["JCM", "J_Credit", "VCS", "Gold_Standard", "CDM"]),
    "United States": (["CCA", "RGGI", "ACR_US", "CAR"], ["VCS", "Gold_Standard", "ACR", "CAR", "CDM"]),
    "European Union": (["EUA"], ["VCS", "Gold_Standard", "Plan_Vivo", "CDM"]),
    "United Kingdom": (["UK_ETS"], ["VCS", "Gold_Standard", "Plan_Vivo", "Woodland_Carbon_Code"]),
    "Canada": (["Federal_Backstop", "Provincial_Allowances"], ["VCS", "Gold_Standard", "ACR"]),
    "New Zealand": (["NZU"], ["VCS", "Gold_Standard", "Plan_Vivo"]),
    "South Korea": (["KAU", "K_Credit"], ["VCS", "Gold_Standard", "K_Credit"]),
    "Singapore": (["Singapore_Eligible_International"], ["VCS", "Gold_Standard", "ACR"]),
    "Switzerland": (["Swiss_Domestic"], ["VCS", "Gold_Standard", "Plan_Vivo"]),
}
DEFAULT_VOLUNTARY_CREDITS = ["VCS", "Gold_Standard", "Plan_Vivo", "CDM"]


# ─────────────────────────────────────────────────────────────
# Credit eligibility
# ─────────────────────────────────────────────────────────────

def allowed_credit_types(jurisdiction: Optional[str], compliance_type: str = COMPLIANCE_TYPE_VOLUNTARY) -> list[str]:
    """
    Credit types usable in *jurisdiction*.

    Compliance use is limited to the domestic list. Voluntary use accepts the
    domestic list plus the voluntary standards, de-duplicated in order.
    """
    key = normalize_jurisdiction(jurisdiction)
    compliance, voluntary = CREDIT_TYPES.get(key, ([], DEFAULT_VOLUNTARY_CREDITS))
    if compliance_type == COMPLIANCE_TYPE_COMPLIANCE:
        return list(compliance)
    return list(dict.fromkeys([*compliance, *voluntary]))


def is_credit_eligible(credit_type: Optional[str], jurisdiction: Optional[str],
                       compliance_type: str = COMPLIANCE_TYPE_VOLUNTARY) -> bool:
    if not credit_type:
        return False
    return credit_type in allowed_credit_types(jurisdiction, compliance_type)


# ─────────────────────────────────────────────────────────────
# Requirement
# ─────────────────────────────────────────────────────────────

def voluntary_benchmarks(total_emissions: float) -> VoluntaryBenchmarks:
    total = coerce_quantity(total_emissions)
    return VoluntaryBenchmarks(
        carbon_neutral=total * CARBON_NEUTRAL_SHARE,
        science_based_target=total * SCIENCE_BASED_RETAINED_SHARE,
        net_zero=total * NET_ZERO_RETAINED_SHARE,
    )


def compute_offset_requirement(jurisdiction: Optional[str], total_emissions: float) -> OffsetRequirement:
    """
    Mandatory offset volume for *jurisdiction* at *total_emissions* tCO2e.

    The obligation applies only when the regime is mandatory and emissions
    exceed its threshold. A non-numeric tier (sector or market based) leaves
    offset_amount at 0 and is reported through tier_label.
    """
    key = normalize_jurisdiction(jurisdiction)
    rule = OFFSET_RULES.get(key, OFFSET_RULES[OTHER])
    total = coerce_quantity(total_emissions)
    is_required = rule.mandatory and total > rule.threshold

    percentage = 0.0
    tier_label = None
    amount = 0.0
    if is_required:
        tier = rule.tier(total)
        if isinstance(tier, str):
            tier_label = tier
        else:
            percentage = float(tier)
            amount = total * percentage / 100.0

    logger.debug("Offset requirement %s: required=%s amount=%.2f", key, is_required, amount)
    return OffsetRequirement(
        jurisdiction=key,
        total_emissions=total,
        mandatory=rule.mandatory,
        is_required=is_required,
        threshold_value=rule.threshold,
        offset_percentage=percentage,
        tier_label=tier_label,
        offset_amount=amount,
        allowed_credit_types=allowed_credit_types(key, COMPLIANCE_TYPE_COMPLIANCE),
        voluntary_credit_types=allowed_credit_types(key, COMPLIANCE_TYPE_VOLUNTARY),
        voluntary_benchmarks=voluntary_benchmarks(total),
        description=rule.description,
        regulation=rule.regulation,
    )
