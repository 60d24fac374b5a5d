"""Solar production, roof and recommendation models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .result import ExtractedValue


@dataclass(frozen=True)
class SolarEstimate:
    """
    Expected production of a rooftop system.

    Attributes:
        annual_production_kwh: Expected AC production per year
        monthly_series: Twelve monthly values, January first
        roof_azimuth_deg: Array azimuth (180 = due south)
        roof_tilt_deg: Array tilt from horizontal
        system_capacity_kw: DC nameplate capacity
        panel_count: Number of panels
        confidence: Trust score in [0, 1]
        source_provider: Provider name, or "estimated"
    """
    annual_production_kwh: float
    monthly_series: Tuple[float, ...]
    roof_azimuth_deg: float
    roof_tilt_deg: float
    system_capacity_kw: float
    panel_count: int
    confidence: float = 0.0
    source_provider: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annual_production_kwh": self.annual_production_kwh,
            "monthly_series": list(self.monthly_series),
            "roof_azimuth_deg": self.roof_azimuth_deg,
            "roof_tilt_deg": self.roof_tilt_deg,
            "system_capacity_kw": self.system_capacity_kw,
            "panel_count": self.panel_count,
            "confidence": self.confidence,
            "source_provider": self.source_provider,
        }


@dataclass(frozen=True)
class RoofAnalysis:
    """
    Interpreted roof characteristics.

    Attributes:
        usable_area_m2: Area suitable for panels
        shading_pct: Share of the roof in shade, 0-100
        roof_type: Material or shape as reported (e.g. "asphalt shingle")
        suitability_score: Overall suitability, 0-100
        roof_condition: Reported condition
        optimal_direction: Best facing for panels
        confidence: Trust score in [0, 1]
        source_provider: Provider name, or "estimated"
    """
    usable_area_m2: float
    shading_pct: float
    roof_type: str
    suitability_score: int = 70
    roof_condition: str = "unknown"
    optimal_direction: str = "South"
    confidence: float = 0.0
    source_provider: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "usable_area_m2": self.usable_area_m2,
            "shading_pct": self.shading_pct,
            "roof_type": self.roof_type,
            "suitability_score": self.suitability_score,
            "roof_condition": self.roof_condition,
            "optimal_direction": self.optimal_direction,
            "confidence": self.confidence,
            "source_provider": self.source_provider,
        }


@dataclass(frozen=True)
class Recommendations:
    """
    Installation recommendations extracted from a prose answer.

    Each field carries the tier it was extracted at; ``confidence`` is the
    provider's weight, capped by the records the advice was built from.
    """
    panel_material: ExtractedValue
    orientation: ExtractedValue
    tilt_angle_deg: ExtractedValue
    cost_estimate_usd: ExtractedValue
    roi_percent: ExtractedValue
    special_considerations: ExtractedValue
    confidence: float = 0.0
    source_provider: str = ""
    raw_text: str = field(default="", repr=False)

    def field_confidence(self, name: str) -> float:
        extracted: ExtractedValue = getattr(self, name)
        return extracted.effective_confidence(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        names = (
            "panel_material", "orientation", "tilt_angle_deg",
            "cost_estimate_usd", "roi_percent", "special_considerations",
        )
        data: Dict[str, Any] = {
            name: {
                **getattr(self, name).to_dict(),
                "confidence": self.field_confidence(name),
            }
            for name in names
        }
        data["confidence"] = self.confidence
        data["source_provider"] = self.source_provider
        return data
