"""Assessment request, derived metrics and the composite record."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .location import Location
from .solar import SolarEstimate, RoofAnalysis, Recommendations
from ..utils.errors import InvalidRequest

HOMEOWNER_TYPES = ("owner", "renter")


@dataclass(frozen=True)
class AssessmentRequest:
    """
    Input to one assessment.

    Attributes:
        address: Free-form street address
        monthly_bill_usd: Average electricity bill, if known
        roof_age_years: Age of the roof, if known
        utility_provider: Utility name hint, if known
        homeowner_type: "owner" or "renter"
    """
    address: str
    monthly_bill_usd: Optional[float] = None
    roof_age_years: Optional[float] = None
    utility_provider: Optional[str] = None
    homeowner_type: str = "owner"

    def validate(self) -> "AssessmentRequest":
        """
        Check the request and return it with the address trimmed.

        Raises:
            InvalidRequest: On the first invalid field
        """
        if not isinstance(self.address, str) or not self.address.strip():
            raise InvalidRequest.for_field("address", "must be a non-empty string")
        for name in ("monthly_bill_usd", "roof_age_years"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise InvalidRequest.for_field(name, "must be a number")
            if value < 0:
                raise InvalidRequest.for_field(name, "must not be negative")
        if self.homeowner_type not in HOMEOWNER_TYPES:
            raise InvalidRequest.for_field(
                "homeowner_type", f"must be one of {', '.join(HOMEOWNER_TYPES)}"
            )
        address = self.address.strip()
        if address == self.address:
            return self
        return AssessmentRequest(
            address=address,
            monthly_bill_usd=self.monthly_bill_usd,
            roof_age_years=self.roof_age_years,
            utility_provider=self.utility_provider,
            homeowner_type=self.homeowner_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "monthly_bill_usd": self.monthly_bill_usd,
            "roof_age_years": self.roof_age_years,
            "utility_provider": self.utility_provider,
            "homeowner_type": self.homeowner_type,
        }


@dataclass(frozen=True)
class UtilityInfo:
    """Utility serving the address and its retail rate."""
    name: str
    rate_per_kwh: float
    net_metering: bool = True
    time_of_use: bool = False


@dataclass(frozen=True)
class FinancialSummary:
    """
    Cost and return figures derived from location and production.

    ``payback_years`` is None when the system saves nothing.
    """
    system_cost_usd: float
    incentives_usd: float
    net_cost_usd: float
    annual_savings_usd: float
    payback_years: Optional[float]
    roi_percent: float
    monthly_loan_payment_usd: float
    utility: UtilityInfo
    incentive_breakdown: Dict[str, float] = field(default_factory=dict)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system_cost_usd": self.system_cost_usd,
            "incentives_usd": self.incentives_usd,
            "net_cost_usd": self.net_cost_usd,
            "annual_savings_usd": self.annual_savings_usd,
            "payback_years": self.payback_years,
            "roi_percent": self.roi_percent,
            "monthly_loan_payment_usd": self.monthly_loan_payment_usd,
            "utility": {
                "name": self.utility.name,
                "rate_per_kwh": self.utility.rate_per_kwh,
                "net_metering": self.utility.net_metering,
                "time_of_use": self.utility.time_of_use,
            },
            "incentive_breakdown": dict(self.incentive_breakdown),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class EnvironmentalImpact:
    """Yearly emissions avoided and their everyday equivalents."""
    co2_reduction_kg: float
    trees_equivalent: int
    cars_equivalent: float
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "co2_reduction_kg": self.co2_reduction_kg,
            "trees_equivalent": self.trees_equivalent,
            "cars_equivalent": self.cars_equivalent,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class NextStep:
    """A follow-up action offered to the caller."""
    action: str
    description: str
    tool_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "description": self.description, "tool_id": self.tool_id}


@dataclass(frozen=True)
class Proposal:
    """
    Customized system proposal generated from a cached assessment.

    Attributes:
        proposal_id: Opaque id of this proposal
        system_capacity_kw: Proposed DC capacity
        panel_count: Number of panels
        panel_type: Panel technology
        inverter_type: Inverter technology
        include_battery: Whether battery storage is included
        estimated_annual_production_kwh: Expected production
        total_cost_usd: Gross cost including options
        net_cost_usd: Cost after incentives
        payback_years: Net cost over annual savings, None without savings
        lifetime_savings_usd: Savings over the system lifespan
        monthly_financing_usd: Monthly payment when financing was requested
        created_at: When the proposal was generated
    """
    proposal_id: str
    system_capacity_kw: float
    panel_count: int
    panel_type: str
    inverter_type: str
    include_battery: bool
    estimated_annual_production_kwh: float
    total_cost_usd: float
    net_cost_usd: float
    payback_years: Optional[float]
    lifetime_savings_usd: float
    monthly_financing_usd: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "system_capacity_kw": self.system_capacity_kw,
            "panel_count": self.panel_count,
            "panel_type": self.panel_type,
            "inverter_type": self.inverter_type,
            "include_battery": self.include_battery,
            "estimated_annual_production_kwh": self.estimated_annual_production_kwh,
            "total_cost_usd": self.total_cost_usd,
            "net_cost_usd": self.net_cost_usd,
            "payback_years": self.payback_years,
            "lifetime_savings_usd": self.lifetime_savings_usd,
            "monthly_financing_usd": self.monthly_financing_usd,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class CompositeAssessment:
    """
    The merged record for one address.

    Read-only after creation; ``proposal`` is attached by replacing the
    cached record. ``attempts`` lists, per stage, the provider calls that
    completed before the stage resolved or its deadline passed.
    """
    assessment_id: str
    request: AssessmentRequest
    location: Location
    solar: SolarEstimate
    roof: RoofAnalysis
    financial: FinancialSummary
    environmental: EnvironmentalImpact
    overall_confidence: float
    provenance: Dict[str, str]
    recommendations: Optional[Recommendations] = None
    proposal: Optional[Proposal] = None
    notes: List[str] = field(default_factory=list)
    degraded: bool = False
    timed_out: bool = False
    attempts: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "request": self.request.to_dict(),
            "location": self.location.to_dict(),
            "solar": self.solar.to_dict(),
            "roof": self.roof.to_dict(),
            "financial": self.financial.to_dict(),
            "environmental": self.environmental.to_dict(),
            "recommendations": self.recommendations.to_dict() if self.recommendations else None,
            "proposal": self.proposal.to_dict() if self.proposal else None,
            "overall_confidence": self.overall_confidence,
            "provenance": dict(self.provenance),
            "notes": list(self.notes),
            "degraded": self.degraded,
            "timed_out": self.timed_out,
            "attempts": {stage: list(calls) for stage, calls in self.attempts.items()},
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AssessmentResponse:
    """What run_assessment hands back: the record plus suggested follow-ups."""
    assessment: CompositeAssessment
    next_steps: List[NextStep] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessment": self.assessment.to_dict(),
            "next_steps": [step.to_dict() for step in self.next_steps],
        }
