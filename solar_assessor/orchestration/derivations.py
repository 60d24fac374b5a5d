"""Deterministic financial and environmental figures derived from resolved data."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.assessment import (
    AssessmentRequest,
    CompositeAssessment,
    EnvironmentalImpact,
    FinancialSummary,
    NextStep,
    Proposal,
    UtilityInfo,
)
from ..models.location import Location
from ..models.solar import SolarEstimate
from ..normalization.address import parse_address_components
from ..utils.config import FinancialConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UtilityRecord:
    name: str
    rate_per_kwh: float
    net_metering: bool
    time_of_use: bool
    # lat_min, lat_max, lng_min, lng_max
    bounds: Tuple[float, float, float, float]

    def covers(self, latitude: float, longitude: float) -> bool:
        lat_min, lat_max, lng_min, lng_max = self.bounds
        return lat_min <= latitude <= lat_max and lng_min <= longitude <= lng_max

    def info(self) -> UtilityInfo:
        return UtilityInfo(self.name, self.rate_per_kwh, self.net_metering, self.time_of_use)


UTILITIES: Dict[str, List[UtilityRecord]] = {
    "CA": [
        UtilityRecord("Pacific Gas & Electric (PG&E)", 0.31, True, True, (35.0, 42.0, -124.0, -118.0)),
        UtilityRecord("Southern California Edison (SCE)", 0.28, True, True, (32.5, 36.0, -121.0, -114.0)),
    ],
    "NY": [
        UtilityRecord("Con Edison", 0.26, True, True, (40.5, 41.2, -74.3, -73.7)),
    ],
}

DEFAULT_UTILITY_NAME = "Local Utility"


def state_of(request: AssessmentRequest, location: Location) -> Optional[str]:
    return (
        parse_address_components(request.address).state
        or parse_address_components(location.formatted_address).state
    )


def lookup_utility(
    location: Location,
    state: Optional[str],
    utility_hint: Optional[str],
    financial: FinancialConfig
) -> UtilityInfo:
    """
    Find the utility serving a location.

    A caller-supplied name wins when it matches a known utility; otherwise
    the first utility in the state whose service area covers the point.
    Falls back to a generic utility at the configured default rate.
    """
    if utility_hint:
        hint = utility_hint.strip().lower()
        for records in UTILITIES.values():
            for record in records:
                if hint and hint in record.name.lower():
                    return record.info()

    for record in UTILITIES.get(state or "", []):
        if record.covers(location.latitude, location.longitude):
            return record.info()

    return UtilityInfo(
        name=utility_hint or DEFAULT_UTILITY_NAME,
        rate_per_kwh=financial.default_utility_rate,
        net_metering=True,
        time_of_use=False,
    )


def calculate_incentives(
    state: Optional[str],
    system_capacity_kw: float,
    system_cost: float,
    financial: FinancialConfig
) -> Dict[str, float]:
    """Federal credit plus simplified state and utility programs, by source."""
    breakdown = {"federal_tax_credit": system_cost * financial.federal_credit_rate}
    if state == "CA":
        breakdown["utility_rebate"] = system_capacity_kw * 100
        breakdown["other"] = 500.0
    elif state == "NY":
        breakdown["state_tax_credit"] = min(system_cost * 0.25, 5000.0)
        breakdown["utility_rebate"] = system_capacity_kw * 350
    else:
        breakdown["utility_rebate"] = system_capacity_kw * 50
    return {key: round(value, 2) for key, value in breakdown.items()}


def financial_summary(
    request: AssessmentRequest,
    location: Location,
    solar: SolarEstimate,
    financial: FinancialConfig
) -> FinancialSummary:
    """
    Cost, savings and return for the resolved system.

    Savings are capped at the caller's yearly bill when one is given.
    Confidence is the lower of the location and production confidences.
    """
    state = state_of(request, location)
    utility = lookup_utility(location, state, request.utility_provider, financial)

    system_cost = round(solar.system_capacity_kw * 1000 * financial.cost_per_watt, 2)
    breakdown = calculate_incentives(state, solar.system_capacity_kw, system_cost, financial)
    incentives = round(min(sum(breakdown.values()), system_cost), 2)
    net_cost = round(system_cost - incentives, 2)

    annual_savings = solar.annual_production_kwh * utility.rate_per_kwh
    if request.monthly_bill_usd is not None:
        annual_savings = min(annual_savings, request.monthly_bill_usd * 12)
    annual_savings = round(annual_savings, 2)

    payback = round(net_cost / annual_savings, 1) if annual_savings > 0 else None
    lifetime = annual_savings * financial.system_lifespan_years
    roi = round((lifetime - net_cost) / net_cost * 100, 1) if net_cost > 0 else 0.0

    return FinancialSummary(
        system_cost_usd=system_cost,
        incentives_usd=incentives,
        net_cost_usd=net_cost,
        annual_savings_usd=annual_savings,
        payback_years=payback,
        roi_percent=roi,
        monthly_loan_payment_usd=round(net_cost * financial.loan_payment_factor, 2),
        utility=utility,
        incentive_breakdown=breakdown,
        confidence=min(location.confidence, solar.confidence),
    )


def environmental_impact(
    location: Location,
    solar: SolarEstimate,
    financial: FinancialConfig
) -> EnvironmentalImpact:
    co2 = solar.annual_production_kwh * financial.co2_kg_per_kwh
    return EnvironmentalImpact(
        co2_reduction_kg=round(co2, 1),
        trees_equivalent=int(round(co2 / financial.co2_kg_per_tree)),
        cars_equivalent=round(co2 / financial.co2_kg_per_car, 2),
        confidence=min(location.confidence, solar.confidence),
    )


def next_steps(
    assessment: CompositeAssessment,
    financial: FinancialConfig,
    low_confidence_threshold: float
) -> List[NextStep]:
    """Follow-up actions suited to the homeowner and the quality of the data."""
    steps: List[NextStep] = []
    request = assessment.request

    if request.homeowner_type == "renter":
        steps.append(NextStep(
            "Explore Community Solar",
            "Subscribe to a shared solar farm and receive bill credits without rooftop panels.",
            "community-solar",
        ))
    else:
        steps.append(NextStep(
            "Generate Custom Proposal",
            "Create a detailed proposal with system design and financing options.",
            "solar-proposal",
        ))
        steps.append(NextStep(
            "Find Local Installers",
            "Connect with certified installers in your area.",
            "solar-installer",
        ))
        payback = assessment.financial.payback_years
        if payback is not None and payback < financial.financing_payback_years:
            steps.append(NextStep(
                "Explore Financing Options",
                f"A {payback:.1f}-year payback makes a solar loan or lease worth comparing.",
                "solar-financing",
            ))

    if assessment.overall_confidence < low_confidence_threshold:
        steps.append(NextStep(
            "Schedule a Professional Site Survey",
            "Some figures were approximated; an on-site survey will confirm them.",
            "site-survey",
        ))

    if request.roof_age_years is not None and request.roof_age_years >= 15:
        steps.append(NextStep(
            "Inspect Roof Condition",
            f"A {request.roof_age_years:.0f}-year-old roof may need work before panels go on.",
            "roof-inspection",
        ))

    return steps


def build_proposal(
    assessment: CompositeAssessment,
    customizations: Optional[Mapping[str, Any]],
    financial: FinancialConfig
) -> Proposal:
    """
    Proposal for a cached assessment.

    Recognized customizations: ``include_battery``, ``include_financing``,
    ``panel_type`` and ``inverter_type``.
    """
    options = dict(customizations or {})
    include_battery = bool(options.get("include_battery", False))
    include_financing = bool(options.get("include_financing", False))

    panel_type = options.get("panel_type")
    if not panel_type and assessment.recommendations is not None:
        panel_type = f"Premium {assessment.recommendations.panel_material.value}"
    panel_type = panel_type or "Premium Monocrystalline"
    inverter_type = options.get("inverter_type") or "String Inverter with Optimizers"

    summary = assessment.financial
    total_cost = summary.system_cost_usd
    net_cost = summary.net_cost_usd
    if include_battery:
        total_cost += financial.battery_cost
        net_cost += financial.battery_net_cost

    savings = summary.annual_savings_usd
    payback = round(net_cost / savings, 1) if savings > 0 else None
    monthly = None
    if include_financing:
        monthly = round(net_cost / 12 / financial.financing_term_years, 2)

    return Proposal(
        proposal_id=f"proposal-{uuid.uuid4().hex[:12]}",
        system_capacity_kw=assessment.solar.system_capacity_kw,
        panel_count=assessment.solar.panel_count,
        panel_type=panel_type,
        inverter_type=inverter_type,
        include_battery=include_battery,
        estimated_annual_production_kwh=assessment.solar.annual_production_kwh,
        total_cost_usd=round(total_cost, 2),
        net_cost_usd=round(net_cost, 2),
        payback_years=payback,
        lifetime_savings_usd=round(savings * financial.system_lifespan_years, 2),
        monthly_financing_usd=monthly,
    )
