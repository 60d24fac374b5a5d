"""
Main entry point for solar assessments.

Builds the provider chains from configuration, wires them into an
AssessmentOrchestrator and exposes synchronous helpers for scripts.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
from dotenv import load_dotenv

from .models.assessment import AssessmentRequest, CompositeAssessment, Proposal
from .orchestration.pipeline import AssessmentOrchestrator
from .providers.base import ProviderAdapter
from .providers.geocoding import MelissaGeocoder, NominatimGeocoder
from .providers.recommendations import BedrockRecommendationProvider
from .providers.roof_analysis import BedrockRoofAnalyzer, GoogleSolarRoofProvider
from .providers.solar_potential import GoogleSolarProvider, PVWattsProvider
from .resolution.estimates import (
    default_recommendations,
    estimated_location,
    estimated_roof,
    estimated_solar,
)
from .resolution.resolver import FallbackResolver
from .storage.result_cache import ResultCache
from .utils.bedrock_client import BedrockClient
from .utils.config import Config, ProviderConfig
from .utils.errors import AssessmentError, ConfigurationError, ErrorContext, ErrorType
from .utils.logging import DEFAULT_FORMAT, setup_logging

load_dotenv()

logger = logging.getLogger(__name__)

ProviderFactory = Callable[
    [ProviderConfig, Optional[BedrockClient], Optional[httpx.AsyncBaseTransport]],
    ProviderAdapter,
]


def _http(cls) -> ProviderFactory:
    def factory(provider: ProviderConfig, bedrock, transport) -> ProviderAdapter:
        return cls(api_key=provider.api_key(), timeout=provider.timeout, transport=transport)
    return factory


def _bedrock_roof(provider: ProviderConfig, bedrock, transport) -> ProviderAdapter:
    return BedrockRoofAnalyzer(
        bedrock, api_key=provider.api_key(), timeout=provider.timeout, transport=transport
    )


def _bedrock_recommendations(provider: ProviderConfig, bedrock, transport) -> ProviderAdapter:
    return BedrockRecommendationProvider(bedrock, timeout=provider.timeout)


PROVIDER_REGISTRY: Dict[str, ProviderFactory] = {
    "melissa": _http(MelissaGeocoder),
    "nominatim": _http(NominatimGeocoder),
    "google_solar": _http(GoogleSolarProvider),
    "pvwatts": _http(PVWattsProvider),
    "bedrock_vision": _bedrock_roof,
    "google_solar_roof": _http(GoogleSolarRoofProvider),
    "bedrock_recommendations": _bedrock_recommendations,
}

BEDROCK_PROVIDERS = {"bedrock_vision", "bedrock_recommendations"}

SYNTHESIZERS: Dict[str, Callable[[Any], Any]] = {
    "geocoding": estimated_location,
    "solar": estimated_solar,
    "roof": estimated_roof,
    "recommendations": default_recommendations,
}


def build_resolver(
    capability: str,
    config: Config,
    bedrock: Optional[BedrockClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FallbackResolver:
    """
    Build the fallback chain for one capability from configuration.

    Raises:
        ConfigurationError: For unknown providers or a misordered chain
    """
    capability_config = config.capability(capability)
    tiers = []
    for provider in capability_config.enabled_providers:
        factory = PROVIDER_REGISTRY.get(provider.name)
        if factory is None:
            raise ConfigurationError.invalid(
                f"Unknown provider '{provider.name}' for '{capability}'",
                provider=provider.name,
            )
        if provider.name in BEDROCK_PROVIDERS and bedrock is None:
            raise ConfigurationError.missing(f"bedrock client for '{provider.name}'")
        tiers.append((factory(provider, bedrock, transport), provider.confidence))

    return FallbackResolver(
        capability=capability,
        tiers=tiers,
        synthesize=SYNTHESIZERS[capability],
        estimate_confidence=capability_config.estimate_confidence,
    )


def build_orchestrator(
    config: Config,
    cache: Optional[ResultCache] = None,
    bedrock: Optional[BedrockClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> AssessmentOrchestrator:
    """
    Wire an orchestrator from configuration.

    Args:
        config: Loaded configuration
        cache: Result cache to use; a new one per configuration when omitted
        bedrock: Bedrock client; created from configuration when a Bedrock
            provider is enabled and none is given
        transport: Optional httpx transport shared by HTTP providers
    """
    enabled = {
        provider.name
        for name, capability in config.capabilities.items()
        if name != "recommendations" or config.pipeline.recommendations_enabled
        for provider in capability.enabled_providers
    }
    if bedrock is None and enabled & BEDROCK_PROVIDERS:
        bedrock = BedrockClient(
            region=config.bedrock.region,
            model_id=config.bedrock.model_id,
            timeout=config.bedrock.timeout,
        )

    if cache is None:
        cache = ResultCache(
            default_ttl=config.pipeline.cache_ttl_seconds,
            sweep_interval=config.pipeline.sweep_interval_seconds,
        )

    recommendations = None
    if config.pipeline.recommendations_enabled:
        recommendations = build_resolver("recommendations", config, bedrock, transport)

    return AssessmentOrchestrator(
        geocoding=build_resolver("geocoding", config, bedrock, transport),
        solar=build_resolver("solar", config, bedrock, transport),
        roof=build_resolver("roof", config, bedrock, transport),
        recommendations=recommendations,
        cache=cache,
        financial=config.financial,
        deadline_seconds=config.effective_deadline(),
        cache_ttl_seconds=config.pipeline.cache_ttl_seconds,
        low_confidence_threshold=config.pipeline.low_confidence_threshold,
    )


# Global instances (initialized on first use)
_config: Optional[Config] = None
_orchestrator: Optional[AssessmentOrchestrator] = None


def _initialize_system(config_path: str = "config.yaml") -> AssessmentOrchestrator:
    """
    Load configuration and build the shared orchestrator.

    Called lazily so importing the module stays cheap.
    """
    global _config, _orchestrator

    if _orchestrator is not None:
        return _orchestrator

    try:
        logger.info("Initializing solar assessor")
        _config = Config.load(config_path)
        setup_logging(
            level=_config.logging.level,
            log_format=_config.logging.format or DEFAULT_FORMAT,
            log_file=_config.logging.file,
        )
        _orchestrator = build_orchestrator(_config)
        logger.info("System initialization complete")
        return _orchestrator

    except AssessmentError:
        raise
    except Exception as e:
        logger.error(f"System initialization failed: {str(e)}", exc_info=True)
        raise AssessmentError(
            ErrorContext(
                error_type=ErrorType.INITIALIZATION_FAILED,
                message=f"Failed to initialize solar assessor: {str(e)}",
                recoverable=False,
                original_exception=e,
            )
        )


def get_orchestrator() -> AssessmentOrchestrator:
    return _initialize_system()


def run_assessment(
    address: str,
    monthly_bill_usd: Optional[float] = None,
    roof_age_years: Optional[float] = None,
    utility_provider: Optional[str] = None,
    homeowner_type: str = "owner",
    imagery: Optional[bytes] = None
) -> Dict[str, Any]:
    """
    Assess an address from synchronous code.

    Returns:
        Dictionary with 'assessment' and 'next_steps'

    Raises:
        InvalidRequest: If the request is invalid
    """
    orchestrator = _initialize_system()
    request = AssessmentRequest(
        address=address,
        monthly_bill_usd=monthly_bill_usd,
        roof_age_years=roof_age_years,
        utility_provider=utility_provider,
        homeowner_type=homeowner_type,
    )
    response = asyncio.run(orchestrator.run_assessment(request, imagery=imagery))
    return response.to_dict()


def get_assessment(assessment_id: str) -> CompositeAssessment:
    return _initialize_system().get_assessment(assessment_id)


def generate_proposal(
    assessment_id: str,
    customizations: Optional[Mapping[str, Any]] = None
) -> Proposal:
    return _initialize_system().generate_proposal(assessment_id, customizations)
