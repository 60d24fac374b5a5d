"""End-to-end orchestrator tests over fake providers."""

import asyncio

import pytest

from conftest import FakeAdapter, StubBedrock, make_location, make_orchestrator, make_roof, make_solar
from solar_assessor.models.assessment import AssessmentRequest
from solar_assessor.models.result import ESTIMATED
from solar_assessor.providers.base import MissingAPIKey, NoResult
from solar_assessor.providers.recommendations import BedrockRecommendationProvider
from solar_assessor.providers.roof_analysis import BedrockRoofAnalyzer
from solar_assessor.storage.result_cache import ResultCache
from solar_assessor.utils.errors import AssessmentNotFound, InvalidRequest

ADDRESS = "1600 Amphitheatre Pkwy, Mountain View, CA 94043"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_all_providers_healthy():
    orchestrator = make_orchestrator()
    response = await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS, monthly_bill_usd=200))
    assessment = response.assessment

    assert assessment.location.source_provider == "melissa"
    assert assessment.location.verified is True
    assert assessment.location.confidence >= 0.9
    assert assessment.provenance == {"location": "melissa", "solar": "google_solar", "roof": "bedrock_vision"}
    assert assessment.degraded is False
    assert assessment.timed_out is False
    assert "solar-proposal" in [step.tool_id for step in response.next_steps]


@pytest.mark.asyncio
async def test_overall_confidence_is_minimum_of_stages():
    orchestrator = make_orchestrator()
    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    expected = min(
        assessment.location.confidence,
        assessment.solar.confidence,
        assessment.roof.confidence,
    )
    assert assessment.overall_confidence == expected == 0.9


@pytest.mark.asyncio
async def test_primary_outages_degrade_to_estimate():
    orchestrator = make_orchestrator(
        geocoders=[
            (FakeAdapter("melissa", error=NoResult("down")), 0.95),
            (FakeAdapter("nominatim", make_location(verified=False)), 0.7),
        ],
        solar_providers=[
            (FakeAdapter("google_solar", error=NoResult("no building")), 0.95),
            (FakeAdapter("pvwatts", error=MissingAPIKey("no NREL key")), 0.85),
        ],
    )
    response = await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))
    assessment = response.assessment

    assert assessment.location.source_provider == "nominatim"
    assert assessment.solar.source_provider == ESTIMATED
    assert 0.5 <= assessment.solar.confidence <= 0.7
    assert assessment.degraded is True
    assert assessment.overall_confidence == pytest.approx(0.6)
    assert any("approximate" in note for note in assessment.notes)
    assert "site-survey" in [step.tool_id for step in response.next_steps]


@pytest.mark.asyncio
async def test_estimated_location_caps_downstream_confidence():
    answer = "I recommend monocrystalline panels. Use a 30 degree tilt."
    orchestrator = make_orchestrator(
        geocoders=[(FakeAdapter("melissa", error=NoResult("down")), 0.95)],
        recommendation_providers=[(BedrockRecommendationProvider(StubBedrock(answer)), 0.8)],
    )

    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    assert assessment.location.source_provider == ESTIMATED
    assert assessment.location.confidence == 0.5
    assert assessment.solar.source_provider == "google_solar"
    assert assessment.solar.confidence == 0.5
    assert assessment.roof.source_provider == "bedrock_vision"
    assert assessment.roof.confidence == 0.5
    assert assessment.financial.confidence == 0.5
    assert assessment.environmental.confidence == 0.5
    assert assessment.recommendations.confidence == 0.5
    assert assessment.recommendations.field_confidence("tilt_angle_deg") == 0.5
    assert assessment.overall_confidence == 0.5
    assert assessment.provenance["solar"] == "google_solar"


@pytest.mark.asyncio
async def test_recommendations_capped_by_roof_confidence():
    provider = BedrockRecommendationProvider(StubBedrock("Use a 30 degree tilt."))
    orchestrator = make_orchestrator(
        roof_providers=[(FakeAdapter("bedrock_vision", make_roof()), 0.75)],
        recommendation_providers=[(provider, 0.8)],
    )

    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    assert assessment.solar.confidence == 0.95
    assert assessment.roof.confidence == 0.75
    assert assessment.recommendations.confidence == 0.75

@pytest.mark.asyncio
async def test_ai_roof_answer_with_wrapped_score():
    analyzer = BedrockRoofAnalyzer(StubBedrock('```json\n{"suitabilityScore": [85]}\n```'))
    orchestrator = make_orchestrator(roof_providers=[(analyzer, 0.9)])

    response = await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS), imagery=PNG_BYTES)

    assert response.assessment.roof.suitability_score == 85
    assert isinstance(response.assessment.roof.suitability_score, int)
    assert response.assessment.roof.source_provider == "bedrock_vision"


@pytest.mark.asyncio
@pytest.mark.parametrize("request_kwargs", [
    {"address": ""},
    {"address": "   "},
    {"address": ADDRESS, "monthly_bill_usd": -10},
    {"address": ADDRESS, "homeowner_type": "landlord"},
])
async def test_invalid_request_calls_no_provider(request_kwargs):
    melissa = FakeAdapter("melissa", make_location())
    orchestrator = make_orchestrator(geocoders=[(melissa, 0.95)])

    with pytest.raises(InvalidRequest):
        await orchestrator.run_assessment(AssessmentRequest(**request_kwargs))
    assert melissa.calls == []


@pytest.mark.asyncio
async def test_deadline_substitutes_estimates():
    slow = FakeAdapter("melissa", make_location(), delay=2.0)
    solar = FakeAdapter("google_solar", make_solar())
    orchestrator = make_orchestrator(
        geocoders=[(slow, 0.95)],
        solar_providers=[(solar, 0.95)],
        deadline_seconds=0.1,
    )

    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    assert assessment.timed_out is True
    assert assessment.location.source_provider == ESTIMATED
    assert assessment.solar.source_provider == ESTIMATED
    assert solar.calls == []


@pytest.mark.asyncio
async def test_deadline_keeps_completed_attempts():
    orchestrator = make_orchestrator(
        geocoders=[
            (FakeAdapter("melissa", error=NoResult("no record")), 0.95),
            (FakeAdapter("nominatim", make_location(verified=False), delay=2.0), 0.7),
        ],
        deadline_seconds=0.2,
    )

    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    assert assessment.timed_out is True
    assert assessment.provenance["location"] == ESTIMATED
    assert assessment.attempts["location"] == [
        {"provider": "melissa", "outcome": "not_found", "detail": "no record"},
    ]


@pytest.mark.asyncio
async def test_cancelling_the_caller_cancels_provider_calls():
    slow = FakeAdapter("melissa", make_location(), delay=5.0)
    cache = ResultCache(default_ttl=3600.0)
    orchestrator = make_orchestrator(geocoders=[(slow, 0.95)], cache=cache, deadline_seconds=30.0)

    task = asyncio.create_task(orchestrator.run_assessment(AssessmentRequest(address=ADDRESS)))
    while not slow.calls:
        await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert slow.cancelled is True
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_recommendations_stage():
    answer = "I recommend monocrystalline panels. Use a 30 degree tilt."
    provider = BedrockRecommendationProvider(StubBedrock(answer))
    orchestrator = make_orchestrator(recommendation_providers=[(provider, 0.8)])

    assessment = (await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS))).assessment

    assert assessment.recommendations.source_provider == "bedrock_recommendations"
    assert assessment.recommendations.panel_material.value == "Monocrystalline"
    assert assessment.provenance["recommendations"] == "bedrock_recommendations"
    assert assessment.overall_confidence == 0.9


@pytest.mark.asyncio
async def test_cached_assessment_and_proposal():
    cache = ResultCache(default_ttl=3600.0)
    orchestrator = make_orchestrator(cache=cache)
    response = await orchestrator.run_assessment(AssessmentRequest(address=ADDRESS, monthly_bill_usd=250))
    assessment_id = response.assessment.assessment_id

    assert orchestrator.get_assessment(assessment_id) == response.assessment

    proposal = orchestrator.generate_proposal(
        assessment_id, {"include_battery": True, "include_financing": True}
    )
    financial = response.assessment.financial
    assert proposal.include_battery is True
    assert proposal.total_cost_usd == pytest.approx(financial.system_cost_usd + 10000)
    assert proposal.net_cost_usd == pytest.approx(financial.net_cost_usd + 7500)
    assert proposal.monthly_financing_usd == pytest.approx(proposal.net_cost_usd / 12 / 20, abs=0.01)
    assert orchestrator.get_assessment(assessment_id).proposal == proposal


@pytest.mark.asyncio
async def test_unknown_assessment_id():
    orchestrator = make_orchestrator()
    with pytest.raises(AssessmentNotFound):
        orchestrator.get_assessment("does-not-exist")
    with pytest.raises(AssessmentNotFound):
        orchestrator.generate_proposal("does-not-exist")


@pytest.mark.asyncio
async def test_renter_is_offered_community_solar():
    orchestrator = make_orchestrator()
    response = await orchestrator.run_assessment(
        AssessmentRequest(address=ADDRESS, homeowner_type="renter", roof_age_years=20)
    )
    tool_ids = [step.tool_id for step in response.next_steps]
    assert tool_ids[0] == "community-solar"
    assert "solar-proposal" not in tool_ids
    assert "roof-inspection" in tool_ids
