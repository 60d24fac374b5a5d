"""Shared fakes for the solar assessor tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from solar_assessor.models.location import Location
from solar_assessor.models.solar import RoofAnalysis, SolarEstimate
from solar_assessor.providers.base import ProviderAdapter
from solar_assessor.resolution.estimates import (
    default_recommendations,
    estimated_location,
    estimated_roof,
    estimated_solar,
)
from solar_assessor.resolution.resolver import FallbackResolver
from solar_assessor.orchestration.pipeline import AssessmentOrchestrator
from solar_assessor.storage.result_cache import ResultCache


class FakeAdapter(ProviderAdapter):
    """Scripted adapter: returns ``result`` or raises ``error`` after ``delay`` seconds."""

    def __init__(
        self,
        name: str,
        result: Any = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        timeout: float = 8.0
    ):
        super().__init__(timeout=timeout, name=name)
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: List[Any] = []
        self.cancelled = False

    async def _fetch(self, request: Any) -> Any:
        self.calls.append(request)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.result


class StubBedrock:
    """Stands in for BedrockClient; answers every converse call with ``text``."""

    def __init__(self, text: str = "", error: Optional[BaseException] = None):
        self.text = text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def converse(self, prompt: str, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append({"prompt": prompt, **kwargs})
        if self.error is not None:
            raise self.error
        return {"text": self.text, "stop_reason": "end_turn", "usage": {}}


def make_location(**overrides: Any) -> Location:
    values = dict(
        formatted_address="1600 Amphitheatre Pkwy, Mountain View CA 94043",
        latitude=37.4220,
        longitude=-122.0841,
        verified=True,
    )
    values.update(overrides)
    return Location(**values)


def make_solar(**overrides: Any) -> SolarEstimate:
    values = dict(
        annual_production_kwh=9000.0,
        monthly_series=(450.0, 540.0, 720.0, 900.0, 990.0, 1080.0,
                        1080.0, 990.0, 810.0, 720.0, 450.0, 270.0),
        roof_azimuth_deg=180.0,
        roof_tilt_deg=25.0,
        system_capacity_kw=6.0,
        panel_count=15,
    )
    values.update(overrides)
    return SolarEstimate(**values)


def make_roof(**overrides: Any) -> RoofAnalysis:
    values = dict(
        usable_area_m2=55.0,
        shading_pct=10.0,
        roof_type="asphalt shingle",
        suitability_score=82,
        roof_condition="good",
        optimal_direction="South",
    )
    values.update(overrides)
    return RoofAnalysis(**values)


def make_orchestrator(
    geocoders=None,
    solar_providers=None,
    roof_providers=None,
    recommendation_providers=None,
    cache: Optional[ResultCache] = None,
    deadline_seconds: float = 5.0
) -> AssessmentOrchestrator:
    """
    Orchestrator over fake adapters.

    Each ``*_providers`` argument is a list of (adapter, confidence) pairs;
    None gives a single healthy provider for that capability.
    """
    if geocoders is None:
        geocoders = [(FakeAdapter("melissa", make_location()), 0.95)]
    if solar_providers is None:
        solar_providers = [(FakeAdapter("google_solar", make_solar()), 0.95)]
    if roof_providers is None:
        roof_providers = [(FakeAdapter("bedrock_vision", make_roof()), 0.9)]

    recommendations = None
    if recommendation_providers is not None:
        recommendations = FallbackResolver(
            "recommendations", recommendation_providers, default_recommendations, 0.5
        )

    return AssessmentOrchestrator(
        geocoding=FallbackResolver("geocoding", geocoders, estimated_location, 0.5),
        solar=FallbackResolver("solar", solar_providers, estimated_solar, 0.6),
        roof=FallbackResolver("roof", roof_providers, estimated_roof, 0.55),
        recommendations=recommendations,
        cache=cache if cache is not None else ResultCache(default_ttl=3600.0),
        deadline_seconds=deadline_seconds,
    )


@pytest.fixture
def location() -> Location:
    return make_location()


@pytest.fixture
def solar() -> SolarEstimate:
    return make_solar()


@pytest.fixture
def roof() -> RoofAnalysis:
    return make_roof()
