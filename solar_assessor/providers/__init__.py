"""Adapters for the external services behind each capability."""

from .base import HttpProvider, MissingAPIKey, NoResult, ProviderAdapter
from .geocoding import MelissaGeocoder, NominatimGeocoder
from .solar_potential import GoogleSolarProvider, PVWattsProvider
from .roof_analysis import BedrockRoofAnalyzer, GoogleSolarRoofProvider, RoofQuery
from .recommendations import BedrockRecommendationProvider, RecommendationQuery

__all__ = [
    'HttpProvider',
    'MissingAPIKey',
    'NoResult',
    'ProviderAdapter',
    'MelissaGeocoder',
    'NominatimGeocoder',
    'GoogleSolarProvider',
    'PVWattsProvider',
    'BedrockRoofAnalyzer',
    'GoogleSolarRoofProvider',
    'RoofQuery',
    'BedrockRecommendationProvider',
    'RecommendationQuery',
]
