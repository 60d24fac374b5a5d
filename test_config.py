"""Tests for configuration loading and orchestrator wiring."""

from pathlib import Path

import pytest

from conftest import StubBedrock
from solar_assessor.assessor import build_orchestrator, build_resolver
from solar_assessor.utils.config import Config
from solar_assessor.utils.errors import ConfigurationError, ErrorType

CONFIG_PATH = Path(__file__).parent / "config.yaml"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ASSESSMENT_DEADLINE_SECONDS", "CACHE_TTL_SECONDS", "LOG_LEVEL",
                 "MELISSA_KEY", "GOOGLE_SOLAR_KEY", "NREL_KEY", "GOOGLE_MAPS_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_empty_mapping():
    config = Config.from_dict({})
    names = [p.name for p in config.capability("geocoding").providers]
    assert names == ["melissa", "nominatim"]
    assert config.capability("solar").estimate_confidence == 0.6
    assert config.financial.cost_per_watt == 2.95


def test_effective_deadline_from_timeouts():
    config = Config.from_dict({})
    # geocoding 16 + max(solar 16, roof 18) + recommendations 10 + margin 2
    assert config.effective_deadline() == pytest.approx(46.0)

    config.pipeline.recommendations_enabled = False
    assert config.effective_deadline() == pytest.approx(36.0)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ASSESSMENT_DEADLINE_SECONDS", "12")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    config = Config.from_dict({})
    assert config.effective_deadline() == 12.0
    assert config.pipeline.cache_ttl_seconds == 60.0
    assert config.logging.level == "DEBUG"


def test_api_keys_come_from_environment(monkeypatch):
    monkeypatch.setenv("MELISSA_KEY", " abc ")
    provider = Config.from_dict({}).capability("geocoding").providers[0]
    assert provider.api_key() == "abc"


def test_unknown_financial_setting_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        Config.from_dict({"financial": {"cost_per_wat": 3.1}})
    assert exc_info.value.context.error_type == ErrorType.CONFIG_INVALID


def test_missing_estimate_confidence_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        Config.from_dict({"providers": {"solar": {"providers": [{"name": "pvwatts", "confidence": 0.8}]}}})
    assert exc_info.value.context.error_type == ErrorType.CONFIG_MISSING


def test_repository_config_loads():
    config = Config.load(str(CONFIG_PATH))
    assert [p.name for p in config.capability("roof").providers] == ["bedrock_vision", "google_solar_roof"]
    assert config.pipeline.deadline_seconds is None


def test_build_orchestrator_from_config():
    config = Config.from_dict({})
    orchestrator = build_orchestrator(config, bedrock=StubBedrock())

    assert orchestrator.geocoding.provider_names == ["melissa", "nominatim"]
    assert orchestrator.solar.provider_names == ["google_solar", "pvwatts"]
    assert orchestrator.roof.provider_names == ["bedrock_vision", "google_solar_roof"]
    assert orchestrator.recommendations.provider_names == ["bedrock_recommendations"]
    assert orchestrator.deadline_seconds == pytest.approx(46.0)


def test_disabled_providers_are_skipped():
    config = Config.from_dict({
        "pipeline": {"recommendations_enabled": False},
        "providers": {"roof": {"estimate_confidence": 0.55, "providers": [
            {"name": "bedrock_vision", "confidence": 0.9, "enabled": False},
            {"name": "google_solar_roof", "confidence": 0.8},
        ]}},
    })
    orchestrator = build_orchestrator(config)
    assert orchestrator.roof.provider_names == ["google_solar_roof"]
    assert orchestrator.recommendations is None


def test_unknown_provider_is_rejected():
    config = Config.from_dict({"providers": {"geocoding": {"estimate_confidence": 0.5, "providers": [
        {"name": "carrier_pigeon", "confidence": 0.9},
    ]}}})
    with pytest.raises(ConfigurationError):
        build_resolver("geocoding", config)


def test_misordered_chain_is_rejected():
    config = Config.from_dict({"providers": {"geocoding": {"estimate_confidence": 0.5, "providers": [
        {"name": "nominatim", "confidence": 0.7},
        {"name": "melissa", "confidence": 0.95},
    ]}}})
    with pytest.raises(ConfigurationError):
        build_resolver("geocoding", config)
