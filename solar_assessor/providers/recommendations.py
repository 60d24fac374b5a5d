"""Installation recommendations from a Bedrock text model."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .base import ProviderAdapter
from ..models.location import Location
from ..models.solar import Recommendations, RoofAnalysis, SolarEstimate
from ..normalization.text_extraction import RECOMMENDATION_RULES, extract_fields
from ..utils.bedrock_client import BedrockClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationQuery:
    """Context handed to the recommendation model."""
    location: Location
    solar: SolarEstimate
    roof: RoofAnalysis
    monthly_bill_usd: Optional[float] = None


RECOMMENDATION_PROMPT = """A homeowner at {address} (latitude {latitude:.4f}) is considering rooftop solar.

Known figures:
- Expected annual production: {annual:.0f} kWh from a {capacity:.1f} kW system of {panels} panels
- Usable roof area: {area:.0f} m², about {shading:.0f}% shaded, roof type {roof_type}
- Current roof plane: tilt {tilt:.0f} degrees, azimuth {azimuth:.0f} degrees
{bill_line}
In a few short paragraphs, recommend a panel technology, the orientation and tilt angle
the panels should face, an approximate installed cost in dollars, the expected return on
investment as a percentage, and anything the homeowner should keep in mind."""


class BedrockRecommendationProvider(ProviderAdapter[Recommendations]):
    """Asks for prose advice and extracts each field with a confidence tier."""

    name = "bedrock_recommendations"

    def __init__(self, bedrock: BedrockClient, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.bedrock = bedrock

    async def _fetch(self, query: RecommendationQuery) -> Recommendations:
        bill_line = (
            f"- Average monthly electricity bill: ${query.monthly_bill_usd:.0f}\n"
            if query.monthly_bill_usd is not None else ""
        )
        prompt = RECOMMENDATION_PROMPT.format(
            address=query.location.formatted_address,
            latitude=query.location.latitude,
            annual=query.solar.annual_production_kwh,
            capacity=query.solar.system_capacity_kw,
            panels=query.solar.panel_count,
            area=query.roof.usable_area_m2,
            shading=query.roof.shading_pct,
            roof_type=query.roof.roof_type,
            tilt=query.solar.roof_tilt_deg,
            azimuth=query.solar.roof_azimuth_deg,
            bill_line=bill_line,
        )

        response = await self.bedrock.converse(prompt, temperature=0.2, max_tokens=800)
        text = (response.get("text") or "").strip()
        if not text:
            raise ValueError("model returned an empty answer")

        fields = extract_fields(text, RECOMMENDATION_RULES)
        logger.info(
            "Extracted recommendation tiers: "
            + ", ".join(f"{name}={value.tier.value}" for name, value in fields.items())
        )
        return Recommendations(raw_text=text, **fields)
