"""Configuration management for the solar assessor."""

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError


# Provider chains used when config.yaml leaves a capability out
DEFAULT_CAPABILITIES: Dict[str, Dict[str, Any]] = {
    "geocoding": {
        "estimate_confidence": 0.5,
        "providers": [
            {"name": "melissa", "confidence": 0.95, "api_key_env": "MELISSA_KEY"},
            {"name": "nominatim", "confidence": 0.7},
        ],
    },
    "solar": {
        "estimate_confidence": 0.6,
        "providers": [
            {"name": "google_solar", "confidence": 0.95, "api_key_env": "GOOGLE_SOLAR_KEY"},
            {"name": "pvwatts", "confidence": 0.85, "api_key_env": "NREL_KEY"},
        ],
    },
    "roof": {
        "estimate_confidence": 0.55,
        "providers": [
            {"name": "bedrock_vision", "confidence": 0.9, "timeout": 10.0,
             "api_key_env": "GOOGLE_MAPS_KEY"},
            {"name": "google_solar_roof", "confidence": 0.8, "api_key_env": "GOOGLE_SOLAR_KEY"},
        ],
    },
    "recommendations": {
        "estimate_confidence": 0.5,
        "providers": [
            {"name": "bedrock_recommendations", "confidence": 0.8, "timeout": 10.0},
        ],
    },
}


@dataclass
class ProviderConfig:
    """One entry of a capability's fallback chain."""
    name: str
    confidence: float
    timeout: float = 8.0
    enabled: bool = True
    api_key_env: Optional[str] = None

    def api_key(self) -> Optional[str]:
        if not self.api_key_env:
            return None
        value = os.getenv(self.api_key_env, "").strip()
        return value or None


@dataclass
class CapabilityConfig:
    """Ordered providers plus the confidence of the synthetic estimate."""
    providers: List[ProviderConfig]
    estimate_confidence: float

    @property
    def enabled_providers(self) -> List[ProviderConfig]:
        return [p for p in self.providers if p.enabled]

    @property
    def worst_case_seconds(self) -> float:
        return sum(p.timeout for p in self.enabled_providers)


@dataclass
class BedrockConfig:
    """AWS Bedrock configuration."""
    region: str = "us-east-1"
    model_id: str = "amazon.nova-pro-v1:0"
    timeout: int = 10


@dataclass
class PipelineConfig:
    """Orchestrator settings."""
    deadline_seconds: Optional[float] = None
    deadline_margin_seconds: float = 2.0
    recommendations_enabled: bool = True
    cache_ttl_seconds: float = 3600.0
    sweep_interval_seconds: float = 60.0
    low_confidence_threshold: float = 0.7


@dataclass
class FinancialConfig:
    """Constants used by the derivation stage."""
    cost_per_watt: float = 2.95
    federal_credit_rate: float = 0.30
    system_lifespan_years: int = 25
    loan_payment_factor: float = 0.0069
    default_utility_rate: float = 0.16
    co2_kg_per_kwh: float = 0.7
    co2_kg_per_tree: float = 21.7
    co2_kg_per_car: float = 4600.0
    financing_payback_years: float = 8.0
    battery_cost: float = 10000.0
    battery_net_cost: float = 7500.0
    financing_term_years: int = 20


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: Optional[str] = None
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    bedrock: BedrockConfig
    capabilities: Dict[str, CapabilityConfig]
    pipeline: PipelineConfig
    financial: FinancialConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - ASSESSMENT_DEADLINE_SECONDS
        - CACHE_TTL_SECONDS
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings
        """
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "Config":
        """Build a Config from an already parsed mapping, applying env overrides."""
        aws = config_data.get("aws", {}) or {}
        bedrock_data = aws.get("bedrock", {}) or {}
        bedrock_config = BedrockConfig(
            region=os.getenv("AWS_REGION", aws.get("region", BedrockConfig.region)),
            model_id=os.getenv("BEDROCK_MODEL_ID", bedrock_data.get("model_id", BedrockConfig.model_id)),
            timeout=int(bedrock_data.get("timeout", BedrockConfig.timeout)),
        )

        providers_data = config_data.get("providers", {}) or {}
        capabilities = {}
        for capability, defaults in DEFAULT_CAPABILITIES.items():
            capabilities[capability] = _load_capability(
                capability, providers_data.get(capability) or defaults
            )
        for capability, data in providers_data.items():
            if capability not in capabilities:
                capabilities[capability] = _load_capability(capability, data)

        pipeline_data = config_data.get("pipeline", {}) or {}
        deadline = os.getenv("ASSESSMENT_DEADLINE_SECONDS", pipeline_data.get("deadline_seconds"))
        pipeline_config = PipelineConfig(
            deadline_seconds=float(deadline) if deadline not in (None, "") else None,
            deadline_margin_seconds=float(pipeline_data.get("deadline_margin_seconds", 2.0)),
            recommendations_enabled=bool(pipeline_data.get("recommendations_enabled", True)),
            cache_ttl_seconds=float(os.getenv(
                "CACHE_TTL_SECONDS", pipeline_data.get("cache_ttl_seconds", 3600.0)
            )),
            sweep_interval_seconds=float(pipeline_data.get("sweep_interval_seconds", 60.0)),
            low_confidence_threshold=float(pipeline_data.get("low_confidence_threshold", 0.7)),
        )

        financial_data = config_data.get("financial", {}) or {}
        known = FinancialConfig.__dataclass_fields__
        unknown = set(financial_data) - set(known)
        if unknown:
            raise ConfigurationError.invalid(
                f"Unknown financial settings: {sorted(unknown)}", keys=sorted(unknown)
            )
        financial_config = FinancialConfig(**financial_data)

        logging_data = config_data.get("logging", {}) or {}
        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", logging_data.get("level", "INFO")),
            format=logging_data.get("format"),
            file=logging_data.get("file"),
        )

        return cls(
            bedrock=bedrock_config,
            capabilities=capabilities,
            pipeline=pipeline_config,
            financial=financial_config,
            logging=logging_config,
        )

    def capability(self, name: str) -> CapabilityConfig:
        try:
            return self.capabilities[name]
        except KeyError:
            raise ConfigurationError.missing(f"providers.{name}") from None

    def effective_deadline(self) -> float:
        """
        Overall request deadline in seconds.

        Uses the configured value when present, otherwise the worst case of
        the sequential stages plus a margin. Solar and roof run concurrently,
        so only the slower of the two counts.
        """
        if self.pipeline.deadline_seconds is not None:
            return self.pipeline.deadline_seconds

        def worst(name: str) -> float:
            cap = self.capabilities.get(name)
            return cap.worst_case_seconds if cap else 0.0

        total = worst("geocoding") + max(worst("solar"), worst("roof"))
        if self.pipeline.recommendations_enabled:
            total += worst("recommendations")
        return total + self.pipeline.deadline_margin_seconds


def _load_capability(capability: str, data: Dict[str, Any]) -> CapabilityConfig:
    entries = data.get("providers")
    if not isinstance(entries, list):
        raise ConfigurationError.invalid(
            f"providers.{capability}.providers must be a list", capability=capability
        )
    providers = []
    for entry in entries:
        if "name" not in entry or "confidence" not in entry:
            raise ConfigurationError.invalid(
                f"Each provider under '{capability}' needs a name and a confidence",
                capability=capability,
            )
        providers.append(ProviderConfig(
            name=entry["name"],
            confidence=float(entry["confidence"]),
            timeout=float(entry.get("timeout", 8.0)),
            enabled=bool(entry.get("enabled", True)),
            api_key_env=entry.get("api_key_env"),
        ))
    if "estimate_confidence" not in data:
        raise ConfigurationError.missing(f"providers.{capability}.estimate_confidence")
    return CapabilityConfig(
        providers=providers,
        estimate_confidence=float(data["estimate_confidence"]),
    )
