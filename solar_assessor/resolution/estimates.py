"""Synthetic estimates used when every provider for a capability is unavailable."""

import math
from typing import Dict, Tuple

from ..models.location import Location
from ..models.result import ConfidenceTier, ExtractedValue
from ..models.solar import Recommendations, RoofAnalysis, SolarEstimate
from ..normalization.address import parse_address_components
from ..normalization.schema import ROOF_ANALYSIS_SCHEMA
from ..normalization.seasonal import seasonal_distribution
from ..normalization.text_extraction import RECOMMENDATION_RULES
from ..providers.recommendations import RecommendationQuery
from ..providers.roof_analysis import RoofQuery
from ..providers.solar_potential import default_azimuth, default_tilt

US_CENTROID = (39.8283, -98.5795)

# Approximate geographic centers, used only when no geocoder answers
STATE_CENTROIDS: Dict[str, Tuple[float, float]] = {
    "AL": (32.806, -86.791), "AK": (61.370, -152.404), "AZ": (33.729, -111.431),
    "AR": (34.970, -92.373), "CA": (36.116, -119.682), "CO": (39.060, -105.311),
    "CT": (41.598, -72.755), "DE": (39.319, -75.507), "DC": (38.897, -77.026),
    "FL": (27.766, -81.687), "GA": (33.040, -83.643), "HI": (21.094, -157.498),
    "ID": (44.240, -114.479), "IL": (40.349, -88.986), "IN": (39.849, -86.258),
    "IA": (42.011, -93.210), "KS": (38.527, -96.726), "KY": (37.668, -84.670),
    "LA": (31.170, -91.868), "ME": (44.694, -69.382), "MD": (39.064, -76.802),
    "MA": (42.230, -71.530), "MI": (43.327, -84.536), "MN": (45.694, -93.900),
    "MS": (32.742, -89.679), "MO": (38.456, -92.288), "MT": (46.922, -110.454),
    "NE": (41.125, -98.268), "NV": (38.314, -117.055), "NH": (43.452, -71.564),
    "NJ": (40.299, -74.521), "NM": (34.841, -106.249), "NY": (42.166, -74.948),
    "NC": (35.630, -79.806), "ND": (47.529, -99.784), "OH": (40.389, -82.765),
    "OK": (35.565, -96.929), "OR": (44.572, -122.071), "PA": (40.591, -77.210),
    "RI": (41.681, -71.512), "SC": (33.857, -80.945), "SD": (44.300, -99.439),
    "TN": (35.748, -86.692), "TX": (31.054, -97.563), "UT": (40.150, -111.862),
    "VT": (44.046, -72.711), "VA": (37.769, -78.170), "WA": (47.401, -121.491),
    "WV": (38.491, -80.954), "WI": (44.269, -89.617), "WY": (42.756, -107.302),
}

ESTIMATED_SYSTEM_KW = 5.0
ESTIMATED_PANEL_WATTS = 350.0


def estimated_location(address: str) -> Location:
    """
    Offline gazetteer lookup.

    Uses the centroid of the state named in the address, otherwise the
    center of the contiguous United States. Never verified.
    """
    state = parse_address_components(address).state
    latitude, longitude = STATE_CENTROIDS.get(state or "", US_CENTROID)
    return Location(
        formatted_address=address,
        latitude=latitude,
        longitude=longitude,
        verified=False,
    )


def production_per_kw(latitude: float) -> float:
    """Yearly kWh per installed kW; lower latitudes get more sun."""
    return 1400 + max(0.0, 50 - abs(latitude)) * 30


def estimated_solar(location: Location) -> SolarEstimate:
    annual = round(production_per_kw(location.latitude) * ESTIMATED_SYSTEM_KW, 1)
    return SolarEstimate(
        annual_production_kwh=annual,
        monthly_series=seasonal_distribution(annual, location.latitude),
        roof_azimuth_deg=default_azimuth(location.latitude),
        roof_tilt_deg=default_tilt(location.latitude),
        system_capacity_kw=ESTIMATED_SYSTEM_KW,
        panel_count=math.ceil(ESTIMATED_SYSTEM_KW * 1000 / ESTIMATED_PANEL_WATTS),
    )


def estimated_roof(query: RoofQuery) -> RoofAnalysis:
    defaults = ROOF_ANALYSIS_SCHEMA.defaults()
    return RoofAnalysis(
        usable_area_m2=defaults["usableAreaM2"],
        shading_pct=defaults["shadingPct"],
        roof_type=defaults["roofType"],
        suitability_score=defaults["suitabilityScore"],
        roof_condition=defaults["roofCondition"],
        optimal_direction=defaults["optimalDirection"],
    )


def default_recommendations(query: RecommendationQuery) -> Recommendations:
    fields = {}
    for rule in RECOMMENDATION_RULES:
        value = list(rule.default) if rule.collect else rule.default
        fields[rule.name] = ExtractedValue(value, ConfidenceTier.LOW)
    return Recommendations(**fields)
