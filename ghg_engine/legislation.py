"""
legislation.py – Which reporting regimes apply to an organization.

Each jurisdiction has one primary instrument and a few secondary ones.
Applicability is decided by APPLICABILITY_RULES: every rule is a set of
``metric >= threshold`` conditions combined with any/all, plus the reason
shown to the user. Instruments without a rule never apply automatically
(voluntary schemes, sector-specific trading systems).

Jurisdiction names arrive in many shapes ("AU", "united_kingdom", "usa");
normalize_jurisdiction() maps them onto the canonical keys used here.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, NamedTuple, Optional

from ghg_engine.constants import DEFAULT_JURISDICTION
from ghg_engine.schemas import Instrument, LegislationThreshold, ReportingMilestone
from ghg_engine.validators import coerce_quantity

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Jurisdiction names
# ─────────────────────────────────────────────────────────────

JURISDICTION_ALIASES: dict[str, str] = {
    "australia": "Australia", "au": "Australia", "aus": "Australia",
    "united states": "United States", "usa": "United States", "us": "United States",
    "united kingdom": "United Kingdom", "uk": "United Kingdom", "gb": "United Kingdom",
    "great britain": "United Kingdom",
    "european union": "European Union", "eu": "European Union", "europe": "European Union",
    "canada": "Canada", "ca": "Canada", "can": "Canada",
    "new zealand": "New Zealand", "nz": "New Zealand", "newzealand": "New Zealand",
    "japan": "Japan", "jp": "Japan", "jpn": "Japan",
    "south korea": "South Korea", "korea": "South Korea", "kr": "South Korea", "kor": "South Korea",
    "singapore": "Singapore", "sg": "Singapore", "sgp": "Singapore",
    "switzerland": "Switzerland", "ch": "Switzerland", "che": "Switzerland",
}


def normalize_jurisdiction(raw: Optional[str], default: str = DEFAULT_JURISDICTION) -> str:
    """
    Canonical jurisdiction name for *raw*.

    Known aliases map to their canonical name; anything else is returned
    title-cased word by word ("mars" -> "Mars"). Empty input gives *default*.
    """
    if not raw or not str(raw).strip():
        return default
    text = str(raw).replace("_", " ").strip()
    canonical = JURISDICTION_ALIASES.get(text.lower())
    if canonical:
        return canonical
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


# ─────────────────────────────────────────────────────────────
# Instrument data
# ─────────────────────────────────────────────────────────────

def _instrument(jurisdiction: str, tier: str, name: str, full_name: str, description: str,
                requirements: list[str], **extra: Any) -> Instrument:
    return Instrument(
        jurisdiction=jurisdiction,
        tier=tier,
        name=name,
        full_name=full_name,
        description=description,
        reporting_requirements=requirements,
        **extra,
    )


LEGISLATION: dict[str, dict[str, Any]] = {
    "Australia": {
        "primary": _instrument(
            "Australia", "primary", "NGER",
            "National Greenhouse and Energy Reporting Act 2007",
            "National framework for reporting company greenhouse gas emissions, "
            "energy production and energy consumption.",
            [
                "Annual reporting of Scope 1 and Scope 2 emissions",
                "Energy production and consumption data",
                "Methods used for measurement and estimation",
                "Uncertainty assessments",
                "Registered corporation details",
            ],
            penalties="Civil penalties up to $444,000 for corporations failing to register or report.",
            timeline={
                "registration": "By 31 August if thresholds exceeded",
                "reporting": "By 31 October each year",
                "verification": "External audit required for facilities over 125,000 tCO2e",
            },
            link="https://cer.gov.au/schemes/national-greenhouse-and-energy-reporting-scheme",
        ),
        "secondary": [
            _instrument(
                "Australia", "secondary", "Safeguard Mechanism",
                "Safeguard Mechanism under the NGER Act",
                "Keeps the net emissions of the largest emitters below a facility baseline.",
                [
                    "Annual emissions reporting under NGER",
                    "Compliance with baseline emissions limits",
                    "Purchase of ACCUs if the baseline is exceeded",
                ],
                requires_reduction_targets=True,
            ),
            _instrument(
                "Australia", "secondary", "Climate Active",
                "Climate Active Carbon Neutral Standard",
                "Voluntary certification for organizations achieving carbon neutrality.",
                [
                    "Complete emissions inventory (Scopes 1, 2, and 3)",
                    "Emissions reduction strategy",
                    "Carbon offset purchasing",
                    "Independent validation",
                ],
                requires_scope3=True,
            ),
        ],
    },
    "United States": {
        "primary": _instrument(
            "United States", "primary", "EPA GHGRP",
            "EPA Greenhouse Gas Reporting Program",
            "Reporting of greenhouse gas data from large emission sources, fuel and "
            "industrial gas suppliers, and CO2 injection sites.",
            [
                "Annual GHG emissions data by source category",
                "Calculation methodologies used",
                "Activity data and emission factors",
                "Quality assurance and control procedures",
                "Certification by designated representative",
            ],
            penalties="Up to $51,796 per day per violation.",
            timeline={
                "reporting": "Normally March 31 for the prior year",
                "verification": "EPA verification of reported data",
            },
            link="https://www.epa.gov/ghgreporting",
        ),
        "secondary": [
            _instrument(
                "United States", "secondary", "SEC Climate Rules",
                "SEC Climate-Related Disclosure Rules",
                "Climate-related risk and emissions disclosure for public companies.",
                [
                    "Climate-related risks and impacts on business",
                    "Scope 1 and 2 emissions (Scope 3 if material)",
                    "Climate-related targets and transition plans",
                    "Board oversight and governance",
                ],
                requires_scope3=True,
            ),
            _instrument(
                "United States", "secondary", "California SB 253",
                "Climate Corporate Data Accountability Act",
                "Emissions reporting for large companies doing business in California.",
                [
                    "Scope 1, 2, and 3 emissions annually",
                    "Third-party verification required",
                    "Public disclosure of emissions data",
                ],
                requires_scope3=True,
                requires_reduction_targets=True,
            ),
        ],
    },
    "European Union": {
        "primary": _instrument(
            "European Union", "primary", "CSRD",
            "Corporate Sustainability Reporting Directive",
            "Sustainability disclosures, including climate, for large companies and listed SMEs.",
            [
                "Double materiality assessment",
                "Climate targets and transition plans",
                "Scope 1, 2, and 3 GHG emissions",
                "Climate risks and opportunities",
                "Alignment with EU Taxonomy",
            ],
            penalties="Member state dependent, typically a share of annual turnover.",
            timeline={
                "group1": "FY 2024 (reports in 2025) - Large public interest entities",
                "group2": "FY 2025 (reports in 2026) - Other large companies",
                "group3": "FY 2026 (reports in 2027) - Listed SMEs",
            },
            link="https://finance.ec.europa.eu/capital-markets-union-and-financial-markets/"
                 "company-reporting-and-auditing/company-reporting/corporate-sustainability-reporting_en",
            requires_scope3=True,
            requires_reduction_targets=True,
        ),
        "secondary": [
            _instrument(
                "European Union", "secondary", "EU Taxonomy", "EU Taxonomy Regulation",
                "Classification of environmentally sustainable economic activities.",
                [
                    "Proportion of taxonomy-aligned activities",
                    "CapEx and OpEx alignment",
                    "Technical screening criteria compliance",
                ],
            ),
            _instrument(
                "European Union", "secondary", "EU ETS", "EU Emissions Trading System",
                "Cap-and-trade system covering power stations, manufacturing plants, and airlines.",
                [
                    "Annual verified emissions reports",
                    "Surrender of allowances equal to emissions",
                    "Monitoring plan approval",
                ],
            ),
        ],
    },
    "United Kingdom": {
        "primary": _instrument(
            "United Kingdom", "primary", "SECR",
            "Streamlined Energy and Carbon Reporting",
            "Energy use and carbon emissions reported within the annual report.",
            [
                "UK energy use and Scope 1 & 2 emissions",
                "Intensity metrics",
                "Energy efficiency actions taken",
                "Methodology used",
                "Prior year comparisons",
            ],
            penalties="Unlimited fines for non-compliance or false statements.",
            timeline={
                "reporting": "Within annual financial reports",
                "filing": "Within 9 months of financial year end",
            },
            link="https://www.gov.uk/government/publications/environmental-reporting-guidelines-"
                 "including-mandatory-greenhouse-gas-emissions-reporting-guidance",
        ),
        "secondary": [
            _instrument(
                "United Kingdom", "secondary", "TCFD",
                "Task Force on Climate-related Financial Disclosures",
                "Mandatory climate-related financial disclosures for large companies.",
                [
                    "Governance of climate risks",
                    "Climate strategy and scenarios",
                    "Risk management processes",
                    "Metrics and targets",
                ],
                requires_reduction_targets=True,
            ),
            _instrument(
                "United Kingdom", "secondary", "UK ETS", "UK Emissions Trading Scheme",
                "Cap-and-trade system for energy intensive industries, power generation, and aviation.",
                [
                    "Annual emissions monitoring and reporting",
                    "Third-party verification",
                    "Surrender of UK allowances",
                ],
            ),
        ],
    },
    "Canada": {
        "primary": _instrument(
            "Canada", "primary", "GHGRP", "Greenhouse Gas Reporting Program",
            "Federal program requiring facilities to report greenhouse gas emissions.",
            [
                "Annual facility-level GHG emissions",
                "Production data",
                "Calculation methodologies",
                "Third-party verification for certain sectors",
            ],
            penalties="Up to $1 million CAD per day for non-compliance.",
            timeline={
                "reporting": "By June 2 each year for the prior year",
                "verification": "By June 2 for facilities requiring verification",
            },
            link="https://www.canada.ca/en/environment-climate-change/services/climate-change/"
                 "greenhouse-gas-emissions/facility-reporting.html",
        ),
        "secondary": [
            _instrument(
                "Canada", "secondary", "Federal Carbon Pricing",
                "Greenhouse Gas Pollution Pricing Act",
                "Carbon pricing backstop for provinces without their own systems.",
                [
                    "Registration in OBPS if applicable",
                    "Annual compliance reports",
                    "Payment of excess emissions charges",
                ],
            ),
            _instrument(
                "Canada", "secondary", "TCFD (voluntary)",
                "Task Force on Climate-related Financial Disclosures",
                "Voluntary but increasingly expected for large Canadian companies.",
                ["Climate governance", "Risk assessment", "Scenario analysis", "Metrics and targets"],
                requires_reduction_targets=True,
            ),
        ],
    },
    "New Zealand": {
        "primary": _instrument(
            "New Zealand", "primary", "ETS", "New Zealand Emissions Trading Scheme",
            "Emissions trading covering forestry, energy, industry, and waste sectors.",
            [
                "Annual emissions returns",
                "Surrender of New Zealand Units (NZUs)",
                "Record keeping for 7 years",
                "Third-party verification for some participants",
            ],
            penalties="Up to $50,000 NZD plus 1.5x units not surrendered.",
            timeline={
                "reporting": "Annual returns by March 31",
                "surrender": "Units due by May 31",
            },
            link="https://www.epa.govt.nz/industry-areas/emissions-trading-scheme/",
        ),
        "secondary": [
            _instrument(
                "New Zealand", "secondary", "Climate-related Disclosures",
                "Financial Sector (Climate-related Disclosures) Amendment Act",
                "Mandatory climate reporting for large financial entities.",
                [
                    "Governance arrangements",
                    "Climate-related risks and opportunities",
                    "Scenario analysis",
                    "GHG emissions metrics",
                    "Transition plans",
                ],
                requires_scope3=True,
                requires_reduction_targets=True,
            ),
            _instrument(
                "New Zealand", "secondary", "Carbon Neutral Government Programme",
                "Carbon Neutral Government Programme",
                "Public sector organizations measure, reduce, and offset emissions.",
                [
                    "Annual emissions inventory",
                    "Reduction plans",
                    "Offset purchasing for residual emissions",
                ],
                requires_scope3=True,
            ),
        ],
    },
    "Japan": {
        "primary": _instrument(
            "Japan", "primary", "GHG Reporting",
            "Mandatory GHG Accounting and Reporting System",
            "Reporting under the Act on Promotion of Global Warming Countermeasures.",
            [
                "Annual GHG emissions reports",
                "Energy consumption data",
                "Emission reduction plans",
                "Progress reports on reduction measures",
            ],
            penalties="Up to ¥200,000 for non-compliance.",
            timeline={
                "reporting": "By July 31 each year",
                "planning": "Submit reduction plans with reports",
            },
            link="https://www.env.go.jp/en/press/press_04099.html",
        ),
        "secondary": [
            _instrument(
                "Japan", "secondary", "Tokyo Cap-and-Trade",
                "Tokyo Metropolitan Environmental Security Ordinance",
                "Mandatory emissions reductions for large facilities in Tokyo.",
                [
                    "Annual emissions reports",
                    "Third-party verification",
                    "Compliance with reduction targets",
                    "Trading or offset purchasing if needed",
                ],
                requires_reduction_targets=True,
            ),
            _instrument(
                "Japan", "secondary", "TCFD Disclosure", "TCFD-aligned Climate Disclosures",
                "Required for companies listed on the Prime Market of the Tokyo Stock Exchange.",
                ["Climate governance", "Risk and opportunity assessment", "Scenario analysis", "Metrics and targets"],
                requires_scope3=True,
                requires_reduction_targets=True,
            ),
        ],
    },
    "South Korea": {
        "primary": _instrument(
            "South Korea", "primary", "K-ETS", "Korean Emissions Trading Scheme",
            "Mandatory cap-and-trade system covering major emitters.",
            ["Annual emissions reports", "Third-party verification", "Monitoring plans", "Allowance surrender"],
            penalties="Up to 3x market price for non-surrendered allowances.",
            timeline={
                "reporting": "By March 31 for previous year",
                "verification": "Complete by March 31",
                "surrender": "By June 30",
            },
            link="https://icapcarbonaction.com/en/ets/korea-emissions-trading-system-k-ets",
        ),
        "secondary": [
            _instrument(
                "South Korea", "secondary", "Target Management System",
                "GHG and Energy Target Management System",
                "For large emitters not covered by K-ETS.",
                [
                    "Annual emissions reporting",
                    "Achievement of government-set targets",
                    "Improvement plans if targets missed",
                ],
                requires_reduction_targets=True,
            ),
            _instrument(
                "South Korea", "secondary", "Green New Deal Reporting", "ESG Disclosure Requirements",
                "Sustainability reporting for listed companies.",
                [
                    "Environmental metrics including GHG emissions",
                    "Climate risk assessment",
                    "Green investment disclosures",
                ],
                requires_scope3=True,
            ),
        ],
    },
    "Singapore": {
        "primary": _instrument(
            "Singapore", "primary", "Carbon Tax", "Carbon Pricing Act",
            "Carbon tax on facilities emitting significant greenhouse gases.",
            ["Annual emissions reports", "Monitoring plans", "Third-party verification", "Payment of carbon tax"],
            penalties="Up to $200,000 SGD and/or 2 years imprisonment.",
            timeline={
                "reporting": "By March 31 for previous year",
                "payment": "Carbon tax payment by September 30",
            },
            link="https://www.nea.gov.sg/our-services/climate-change-energy-efficiency/climate-change/carbon-tax",
        ),
        "secondary": [
            _instrument(
                "Singapore", "secondary", "SGX Climate Reporting", "SGX Sustainability Reporting",
                "Climate-related disclosures for listed companies.",
                [
                    "Climate-related risks and opportunities",
                    "GHG emissions (Scope 1 & 2 mandatory, Scope 3 encouraged)",
                    "Board oversight of climate issues",
                    "Targets and transition plans",
                ],
                requires_scope3=True,
                requires_reduction_targets=True,
            ),
            _instrument(
                "Singapore", "secondary", "Green Plan 2030", "Singapore Green Plan 2030",
                "National sustainability targets affecting large businesses.",
                [
                    "Sector-specific targets",
                    "Progress reporting for participating companies",
                    "Green finance disclosures",
                ],
            ),
        ],
    },
    "Switzerland": {
        "primary": _instrument(
            "Switzerland", "primary", "CO2 Act", "Federal Act on the Reduction of CO2 Emissions",
            "Climate legislation with several compliance mechanisms.",
            [
                "Annual emissions monitoring",
                "Target achievement reports",
                "Energy efficiency measures",
                "Compliance with sector agreements",
            ],
            penalties="CO2 levy of CHF 120 per tonne if not exempt.",
            timeline={
                "reporting": "Annual reporting deadlines vary by program",
                "verification": "Third-party audits required",
            },
            link="https://www.bafu.admin.ch/bafu/en/home/topics/climate/info-specialists/"
                 "reduction-measures/co2-levy.html",
        ),
        "secondary": [
            _instrument(
                "Switzerland", "secondary", "Swiss Climate Scores", "Swiss Climate Scores",
                "Voluntary best practice for climate transparency in the financial sector.",
                [
                    "Portfolio GHG emissions",
                    "Climate alignment metrics",
                    "Net zero commitments",
                    "Climate stewardship activities",
                ],
                requires_scope3=True,
                requires_reduction_targets=True,
            ),
            _instrument(
                "Switzerland", "secondary", "SIX Exchange Reporting",
                "SIX Swiss Exchange Sustainability Reporting",
                "Sustainability reporting requirements for listed companies.",
                ["Climate risks and opportunities", "GHG emissions data", "Climate targets", "TCFD-aligned disclosures"],
                requires_scope3=True,
            ),
        ],
    },
}


# ─────────────────────────────────────────────────────────────
# Applicability rules
# ─────────────────────────────────────────────────────────────

class ApplicabilityRule(NamedTuple):
    conditions: tuple[tuple[str, float], ...]   # (metric, threshold), metric >= threshold
    match: str = "any"                          # "any" | "all"
    reason: Optional[str] = None                # None -> primary reason template

    def applies(self, metrics: dict[str, float]) -> bool:
        checks = (metrics.get(metric, 0.0) >= threshold for metric, threshold in self.conditions)
        return all(checks) if self.match == "all" else any(checks)


PRIMARY_REASON = "Your organization meets the thresholds for {name} reporting."

APPLICABILITY_RULES: dict[tuple[str, str], ApplicabilityRule] = {
    ("Australia", "NGER"): ApplicabilityRule((("emissions", 50_000),)),
    ("United States", "EPA GHGRP"): ApplicabilityRule((("emissions", 25_000),)),
    ("European Union", "CSRD"): ApplicabilityRule((("employees", 250), ("revenue", 50_000_000))),
    ("United Kingdom", "SECR"): ApplicabilityRule((("employees", 250), ("revenue", 36_000_000))),
    ("Canada", "GHGRP"): ApplicabilityRule((("emissions", 10_000),)),
    ("New Zealand", "ETS"): ApplicabilityRule((("emissions", 25_000),)),
    ("Japan", "GHG Reporting"): ApplicabilityRule((("emissions", 3_000),)),
    ("South Korea", "K-ETS"): ApplicabilityRule((("emissions", 125_000),)),
    ("Singapore", "Carbon Tax"): ApplicabilityRule((("emissions", 25_000),)),
    ("Switzerland", "CO2 Act"): ApplicabilityRule((("emissions", 10_000),)),
    ("United States", "California SB 253"): ApplicabilityRule(
        (("revenue", 1_000_000_000),),
        reason="Your organization exceeds $1 billion in annual revenue.",
    ),
    ("United States", "SEC Climate Rules"): ApplicabilityRule(
        (("revenue", 100_000_000),),
        reason="Applies to SEC registrants (public companies).",
    ),
    ("United Kingdom", "TCFD"): ApplicabilityRule(
        (("employees", 500), ("revenue", 500_000_000)),
        match="all",
        reason="Your organization meets TCFD mandatory disclosure thresholds.",
    ),
    ("New Zealand", "Climate-related Disclosures"): ApplicabilityRule(
        (("revenue", 1_000_000_000),),
        reason="Large financial entities must provide climate disclosures.",
    ),
    ("Japan", "Tokyo Cap-and-Trade"): ApplicabilityRule(
        (("emissions", 3_000),),
        reason="Facilities in Tokyo exceeding energy thresholds.",
    ),
    ("Singapore", "SGX Climate Reporting"): ApplicabilityRule(
        (("revenue", 100_000_000),),
        reason="SGX-listed companies must provide climate disclosures.",
    ),
}


def instruments_for(jurisdiction: Optional[str]) -> list[Instrument]:
    """Every instrument (primary first) for *jurisdiction*, applicable or not."""
    data = LEGISLATION.get(normalize_jurisdiction(jurisdiction))
    if not data:
        return []
    return [data["primary"], *data["secondary"]]


def applicable_legislation(
    jurisdiction: Optional[str],
    revenue: Any = 0,
    employees: Any = 0,
    emissions: Any = 0,
) -> list[Instrument]:
    """
    Instruments whose thresholds the organization meets, each with a reason.

    An unknown jurisdiction yields an empty list and a logged warning.
    """
    key = normalize_jurisdiction(jurisdiction)
    if key not in LEGISLATION:
        logger.warning("No legislation data for jurisdiction %r (mapped to %r)", jurisdiction, key)
        return []

    metrics = {
        "revenue": coerce_quantity(revenue),
        "employees": coerce_quantity(employees),
        "emissions": coerce_quantity(emissions),
    }
    applicable = []
    for instrument in instruments_for(key):
        rule = APPLICABILITY_RULES.get((key, instrument.name))
        if rule is None or not rule.applies(metrics):
            continue
        reason = rule.reason or PRIMARY_REASON.format(name=instrument.name)
        applicable.append(instrument.model_copy(update={"reason": reason}))
    logger.debug("%d instrument(s) apply in %s", len(applicable), key)
    return applicable


def thresholds_for(jurisdiction: Optional[str]) -> list[LegislationThreshold]:
    """The numeric thresholds behind every rule of *jurisdiction*."""
    key = normalize_jurisdiction(jurisdiction)
    thresholds = []
    for instrument in instruments_for(key):
        rule = APPLICABILITY_RULES.get((key, instrument.name))
        if rule is None:
            continue
        for metric, value in rule.conditions:
            thresholds.append(
                LegislationThreshold(
                    jurisdiction=key,
                    metric=metric,
                    threshold_value=value,
                    mandatory=instrument.tier == "primary",
                    instrument=instrument.name,
                )
            )
    return thresholds


# ─────────────────────────────────────────────────────────────
# Reporting groups & timeline
# ─────────────────────────────────────────────────────────────

REPORTING_GROUPS: dict[int, dict[str, Any]] = {
    1: {
        "name": "Group 1 - Large Emitters",
        "criteria": {"revenue": 500_000_000, "employees": 500, "emissions": 100_000},
        "timeline": "Mandatory reporting from January 1, 2025",
    },
    2: {
        "name": "Group 2 - Medium Enterprises",
        "criteria": {"revenue": 200_000_000, "employees": 250, "emissions": 50_000},
        "timeline": "Mandatory reporting from July 1, 2026",
    },
    3: {
        "name": "Group 3 - Small-Medium Enterprises",
        "criteria": {"revenue": 50_000_000, "employees": 100, "emissions": 25_000},
        "timeline": "Mandatory reporting from July 1, 2027",
    },
}


def reporting_group(revenue: Any = 0, employees: Any = 0, emissions: Any = 0) -> Optional[int]:
    """
    Largest reporting group whose criteria the organization meets on any
    one metric, or None below group 3.
    """
    metrics = {
        "revenue": coerce_quantity(revenue),
        "employees": coerce_quantity(employees),
        "emissions": coerce_quantity(emissions),
    }
    for group in sorted(REPORTING_GROUPS):
        criteria = REPORTING_GROUPS[group]["criteria"]
        if any(metrics[metric] >= threshold for metric, threshold in criteria.items()):
            return group
    return None


def reporting_timeline(jurisdiction: Optional[str], year: Optional[int] = None) -> list[ReportingMilestone]:
    """Annual report and verification milestones of the primary instrument."""
    key = normalize_jurisdiction(jurisdiction)
    data = LEGISLATION.get(key)
    if not data:
        return []
    primary: Instrument = data["primary"]
    year = year or date.today().year
    milestones = []
    reporting = primary.timeline.get("reporting")
    if reporting:
        milestones.append(
            ReportingMilestone(
                date=f"{year}-{'03-31' if 'March' in reporting else '10-31'}",
                milestone="Annual report due",
                action=f"Submit {primary.name} report",
            )
        )
    verification = primary.timeline.get("verification")
    if verification:
        milestones.append(
            ReportingMilestone(
                date=f"{year}-{'03-31' if 'March' in verification else '06-30'}",
                milestone="Verification deadline",
                action="Complete third-party verification",
            )
        )
    return milestones
