"""Roof analysis providers: Bedrock vision and Google Solar roof statistics."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import HttpProvider, MissingAPIKey
from .solar_potential import GOOGLE_SOLAR_URL, fetch_solar_potential
from ..models.location import Location
from ..models.solar import RoofAnalysis
from ..normalization.schema import ROOF_ANALYSIS_SCHEMA, ResponseSchema
from ..utils.bedrock_client import BedrockClient
from ..utils.response_formatter import extract_json

logger = logging.getLogger(__name__)

STATIC_MAPS_URL = "https://maps.googleapis.com/maps/api/staticmap"

# Peak sunshine hours per year that count as full exposure
FULL_SUN_HOURS = 2200.0


@dataclass(frozen=True)
class RoofQuery:
    """Input for roof providers: where, and optionally a roof image."""
    location: Location
    imagery: Optional[bytes] = None


def detect_image_format(image_bytes: bytes) -> str:
    """
    Detect image format from magic bytes.

    Returns:
        Format string ("jpeg", "png", "gif", "webp")
    """
    if image_bytes.startswith(b'\xff\xd8\xff'):
        return "jpeg"
    if image_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
        return "png"
    if image_bytes.startswith(b'GIF87a') or image_bytes.startswith(b'GIF89a'):
        return "gif"
    if image_bytes.startswith(b'RIFF') and b'WEBP' in image_bytes[:12]:
        return "webp"
    logger.warning("Unknown image format, defaulting to JPEG")
    return "jpeg"


def suitability_score(usable_area_m2: float, sun_exposure: float, shading_pct: float) -> int:
    """
    Weighted 0-100 score from roof size, sun exposure (0-10) and shading.

    Area saturates at 100 m²; the weights are 30 for area, 50 for exposure
    and 20 for the unshaded share.
    """
    area_term = min(max(usable_area_m2, 0.0) / 100.0, 1.0) * 30
    sun_term = min(max(sun_exposure, 0.0) / 10.0, 1.0) * 50
    shade_term = (1 - min(max(shading_pct, 0.0), 100.0) / 100.0) * 20
    return int(min(max(round(area_term + sun_term + shade_term), 0), 100))


ROOF_PROMPT = """You are looking at a top-down satellite image of a residential roof.
The building is at latitude {latitude:.5f}, longitude {longitude:.5f} ({address}).

Estimate the roof's suitability for rooftop solar panels and answer with a JSON object:
{{
    "usableAreaM2": <area in square meters free of vents, skylights and edges>,
    "shadingPct": <percent of the usable area shaded during the day, 0-100>,
    "roofType": "<material or shape, e.g. asphalt shingle, tile, metal, flat membrane>",
    "suitabilityScore": <integer 0-100>,
    "roofCondition": "<good, fair or poor>",
    "optimalDirection": "<compass direction the best roof plane faces>"
}}

Return ONLY the JSON object, no additional text."""


class BedrockRoofAnalyzer(HttpProvider[RoofAnalysis]):
    """
    Roof interpretation by a Bedrock vision model.

    Uses caller-supplied imagery when present, otherwise fetches a satellite
    tile from Google Static Maps (``api_key`` is the Maps key). The model's
    answer is unwrapped from prose and coerced by the roof schema.
    """

    name = "bedrock_vision"

    def __init__(
        self,
        bedrock: BedrockClient,
        *args: Any,
        schema: ResponseSchema = ROOF_ANALYSIS_SCHEMA,
        **kwargs: Any
    ):
        super().__init__(*args, **kwargs)
        self.bedrock = bedrock
        self.schema = schema

    async def _fetch(self, query: RoofQuery) -> RoofAnalysis:
        image = query.imagery
        if not image:
            image = await self._satellite_tile(query.location)

        image_format = detect_image_format(image)
        prompt = ROOF_PROMPT.format(
            latitude=query.location.latitude,
            longitude=query.location.longitude,
            address=query.location.formatted_address,
        )
        logger.debug(f"Roof analysis: image {len(image)} bytes ({image_format})")

        response = await self.bedrock.converse(prompt, image_bytes=image, image_format=image_format)
        payload = extract_json(response["text"])
        coerced = self.schema.coerce(payload)
        if len(coerced.defaulted) == len(self.schema.fields):
            raise ValueError("model answer contained none of the roof fields")
        if coerced.defaulted:
            logger.info(f"Roof analysis defaulted fields: {list(coerced.defaulted)}")

        return RoofAnalysis(
            usable_area_m2=coerced["usableAreaM2"],
            shading_pct=coerced["shadingPct"],
            roof_type=coerced["roofType"],
            suitability_score=coerced["suitabilityScore"],
            roof_condition=coerced["roofCondition"],
            optimal_direction=coerced["optimalDirection"],
        )

    async def _satellite_tile(self, location: Location) -> bytes:
        if not self.api_key:
            raise MissingAPIKey("no roof imagery supplied and no Google Maps key configured")
        return await self.get_bytes(STATIC_MAPS_URL, params={
            "center": f"{location.latitude},{location.longitude}",
            "zoom": 20,
            "size": "640x640",
            "maptype": "satellite",
            "key": self.api_key,
        })


class GoogleSolarRoofProvider(HttpProvider[RoofAnalysis]):
    """
    Roof figures from Google Solar building insights.

    Usable area is the maximum array area. Shading is how far the median
    sunshine quantile falls below the best one.
    """

    name = "google_solar_roof"

    async def _fetch(self, query: RoofQuery) -> RoofAnalysis:
        key = self.require_key()
        location = query.location
        data = await self.get_json(GOOGLE_SOLAR_URL, params={
            "location.latitude": location.latitude,
            "location.longitude": location.longitude,
            "requiredQuality": "HIGH",
            "key": key,
        })
        potential = fetch_solar_potential(data)
        return roof_from_potential(potential)


def roof_from_potential(potential: Dict[str, Any]) -> RoofAnalysis:
    area = potential["maxArrayAreaMeters2"]
    if isinstance(area, bool) or not isinstance(area, (int, float)):
        raise TypeError("maxArrayAreaMeters2 is not a number")

    quantiles = (potential.get("wholeRoofStats") or {}).get("sunshineQuantiles") or []
    quantiles = [q for q in quantiles if isinstance(q, (int, float)) and not isinstance(q, bool)]
    if quantiles and max(quantiles) > 0:
        best = max(quantiles)
        median = sorted(quantiles)[len(quantiles) // 2]
        shading = (1 - median / best) * 100
    else:
        shading = ROOF_ANALYSIS_SCHEMA.defaults()["shadingPct"]
    shading = round(min(max(shading, 0.0), 100.0), 1)

    sunshine = potential.get("maxSunshineHoursPerYear")
    exposure = 10 * sunshine / FULL_SUN_HOURS if isinstance(sunshine, (int, float)) else 5.0

    segments = potential.get("roofSegmentStats") or []
    direction = "South"
    if segments:
        main = max(segments, key=lambda s: (s.get("stats") or {}).get("areaMeters2") or 0)
        azimuth = main.get("azimuthDegrees")
        if isinstance(azimuth, (int, float)):
            direction = compass_direction(azimuth)

    return RoofAnalysis(
        usable_area_m2=round(float(area), 1),
        shading_pct=shading,
        roof_type="unknown",
        suitability_score=suitability_score(float(area), exposure, shading),
        roof_condition="unknown",
        optimal_direction=direction,
    )


_COMPASS = ("North", "Northeast", "East", "Southeast", "South", "Southwest", "West", "Northwest")


def compass_direction(azimuth: float) -> str:
    return _COMPASS[int(((azimuth % 360) + 22.5) // 45) % 8]
