"""Assessment orchestrator: sequences the resolvers for one address."""

import asyncio
import dataclasses
import logging
import time
import uuid
from typing import Any, Dict, List, Mapping, Optional

from ..models.assessment import (
    AssessmentRequest,
    AssessmentResponse,
    CompositeAssessment,
    Proposal,
)
from ..models.location import Location
from ..models.result import Attempt, Resolution
from ..models.solar import Recommendations, RoofAnalysis, SolarEstimate
from ..providers.recommendations import RecommendationQuery
from ..providers.roof_analysis import RoofQuery
from ..resolution.resolver import FallbackResolver
from ..storage.result_cache import ResultCache
from ..utils.config import FinancialConfig
from ..utils.errors import AssessmentNotFound
from ..utils.logging import log_context, with_context
from .derivations import build_proposal, environmental_impact, financial_summary, next_steps

logger = logging.getLogger(__name__)

ESTIMATE_NOTES = {
    "location": "Location approximated from an offline gazetteer; figures are approximate.",
    "solar": "Solar production estimated from latitude alone; figures are approximate.",
    "roof": "Roof characteristics use typical defaults; figures are approximate.",
    "recommendations": "Installation recommendations are generic defaults.",
}


class AssessmentOrchestrator:
    """
    Runs one end-to-end solar assessment.

    Stages: geocode, then solar production and roof analysis concurrently,
    then the derived financial and environmental figures, then optional
    recommendations. A stage whose providers all fail contributes its
    synthetic estimate; nothing short of an invalid request aborts the run.
    An overall deadline bounds the run; stages that would start (or are
    still running) past it use their estimates and the record is marked
    ``timed_out``.

    Attributes:
        geocoding: Resolver for address -> Location
        solar: Resolver for Location -> SolarEstimate
        roof: Resolver for RoofQuery -> RoofAnalysis
        recommendations: Optional resolver for RecommendationQuery
        cache: Store the composite records are kept in
        financial: Constants for the derivation stage
        deadline_seconds: Overall time limit for one run
    """

    def __init__(
        self,
        geocoding: FallbackResolver,
        solar: FallbackResolver,
        roof: FallbackResolver,
        cache: ResultCache,
        financial: Optional[FinancialConfig] = None,
        recommendations: Optional[FallbackResolver] = None,
        deadline_seconds: float = 30.0,
        cache_ttl_seconds: Optional[float] = None,
        low_confidence_threshold: float = 0.7
    ):
        self.geocoding = geocoding
        self.solar = solar
        self.roof = roof
        self.recommendations = recommendations
        self.cache = cache
        self.financial = financial or FinancialConfig()
        self.deadline_seconds = deadline_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.low_confidence_threshold = low_confidence_threshold

        logger.info(
            f"Initialized AssessmentOrchestrator: deadline={deadline_seconds}s, "
            f"geocoding={geocoding.provider_names}, solar={solar.provider_names}, "
            f"roof={roof.provider_names}, "
            f"recommendations={recommendations.provider_names if recommendations else 'off'}"
        )

    @with_context(component="orchestrator")
    async def run_assessment(
        self,
        request: AssessmentRequest,
        imagery: Optional[bytes] = None
    ) -> AssessmentResponse:
        """
        Assess one address.

        Args:
            request: Address and optional hints
            imagery: Optional roof image passed to the roof providers

        Returns:
            AssessmentResponse with the cached composite record and next steps

        Raises:
            InvalidRequest: Before any provider is called, if the request is invalid
        """
        request = request.validate()
        assessment_id = uuid.uuid4().hex

        with log_context(assessment_id=assessment_id):
            started = time.monotonic()
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.deadline_seconds
            logger.info(f"Starting assessment for '{request.address}'")

            location_res = await self._run_stage("location", self.geocoding, request.address, deadline)
            location: Location = location_res.value

            solar_res, roof_res = await asyncio.gather(
                self._run_stage("solar", self.solar, location, deadline),
                self._run_stage("roof", self.roof, RoofQuery(location, imagery), deadline),
            )
            solar_res = _capped(solar_res, location.confidence)
            roof_res = _capped(roof_res, location.confidence)
            solar: SolarEstimate = solar_res.value
            roof: RoofAnalysis = roof_res.value

            financial = financial_summary(request, location, solar, self.financial)
            environmental = environmental_impact(location, solar, self.financial)

            resolutions: Dict[str, Resolution] = {
                "location": location_res,
                "solar": solar_res,
                "roof": roof_res,
            }
            recommendations: Optional[Recommendations] = None
            if self.recommendations is not None:
                query = RecommendationQuery(location, solar, roof, request.monthly_bill_usd)
                rec_res = await self._run_stage("recommendations", self.recommendations, query, deadline)
                rec_res = _capped(rec_res, min(location.confidence, solar.confidence, roof.confidence))
                recommendations = rec_res.value
                resolutions["recommendations"] = rec_res

            assessment = self._assemble(
                assessment_id, request, resolutions, financial, environmental, recommendations
            )
            self.cache.put(assessment_id, assessment, ttl=self.cache_ttl_seconds)

            logger.info(
                f"Assessment complete in {time.monotonic() - started:.2f}s: "
                f"overall_confidence={assessment.overall_confidence}, "
                f"degraded={assessment.degraded}, timed_out={assessment.timed_out}"
            )
            steps = next_steps(assessment, self.financial, self.low_confidence_threshold)
            return AssessmentResponse(assessment=assessment, next_steps=steps)

    async def _run_stage(
        self,
        stage: str,
        resolver: FallbackResolver,
        request: Any,
        deadline: float
    ) -> Resolution:
        loop = asyncio.get_running_loop()
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.warning(f"Deadline reached before {stage} stage, using estimate")
            return resolver.estimate(request, timed_out=True)

        stage_started = loop.time()
        attempts: List[Attempt] = []
        with log_context(stage=stage):
            try:
                resolution = await asyncio.wait_for(
                    resolver.resolve(request, attempts=attempts), timeout=remaining
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Deadline reached during {stage} stage after {len(attempts)} "
                    f"completed attempt(s), using estimate"
                )
                return resolver.estimate(request, attempts=tuple(attempts), timed_out=True)

            logger.info(
                f"Stage {stage} resolved by {resolution.provider} "
                f"in {loop.time() - stage_started:.2f}s"
            )
        return resolution

    def _assemble(
        self,
        assessment_id: str,
        request: AssessmentRequest,
        resolutions: Dict[str, Resolution],
        financial,
        environmental,
        recommendations: Optional[Recommendations]
    ) -> CompositeAssessment:
        location = resolutions["location"].value
        solar = resolutions["solar"].value
        roof = resolutions["roof"].value

        overall = min(location.confidence, solar.confidence, roof.confidence)
        provenance = {stage: res.provider for stage, res in resolutions.items()}
        attempts = {
            stage: [dataclasses.asdict(attempt) for attempt in res.attempts]
            for stage, res in resolutions.items()
        }
        timed_out = any(res.timed_out for res in resolutions.values())
        degraded = any(res.estimated for res in resolutions.values())

        notes: List[str] = []
        for stage, res in resolutions.items():
            if res.estimated:
                notes.append(ESTIMATE_NOTES[stage])
        if not location.verified and not resolutions["location"].estimated:
            notes.append(
                f"Address could not be verified; coordinates come from {location.source_provider}."
            )
        if timed_out:
            notes.append("The assessment deadline was reached; remaining stages used estimates.")
        if overall < self.low_confidence_threshold:
            notes.append(f"Overall confidence {overall:.2f} is low; treat figures as preliminary.")

        return CompositeAssessment(
            assessment_id=assessment_id,
            request=request,
            location=location,
            solar=solar,
            roof=roof,
            financial=financial,
            environmental=environmental,
            recommendations=recommendations,
            overall_confidence=overall,
            provenance=provenance,
            notes=notes,
            degraded=degraded,
            timed_out=timed_out,
            attempts=attempts,
        )

    def get_assessment(self, assessment_id: str) -> CompositeAssessment:
        """
        Fetch a cached assessment.

        Raises:
            AssessmentNotFound: If the id is unknown or the record expired
        """
        assessment = self.cache.get(assessment_id)
        if assessment is None:
            raise AssessmentNotFound.for_id(assessment_id)
        return assessment

    @with_context(component="orchestrator")
    def generate_proposal(
        self,
        assessment_id: str,
        customizations: Optional[Mapping[str, Any]] = None
    ) -> Proposal:
        """
        Attach a customized proposal to a cached assessment.

        The cached record is replaced atomically with one carrying the proposal.

        Raises:
            AssessmentNotFound: If the id is unknown or the record expired
        """
        with log_context(assessment_id=assessment_id):
            updated = self.cache.update(
                assessment_id,
                lambda assessment: dataclasses.replace(
                    assessment,
                    proposal=build_proposal(assessment, customizations, self.financial),
                ),
            )
            if updated is None:
                raise AssessmentNotFound.for_id(assessment_id)
            logger.info(f"Generated proposal {updated.proposal.proposal_id}")
            return updated.proposal

    async def start(self) -> None:
        self.cache.start_sweeper()

    async def close(self) -> None:
        await self.cache.stop_sweeper()


def _capped(resolution: Resolution, ceiling: float) -> Resolution:
    """Lower the resolved record's confidence to ``ceiling`` when its inputs are less certain."""
    value = resolution.value
    if value.confidence <= ceiling:
        return resolution
    return dataclasses.replace(
        resolution, value=dataclasses.replace(value, confidence=ceiling)
    )
