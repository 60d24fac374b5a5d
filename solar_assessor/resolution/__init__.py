"""Fallback resolution and synthetic estimates."""

from .resolver import FallbackResolver
from .estimates import (
    default_recommendations,
    estimated_location,
    estimated_roof,
    estimated_solar,
)

__all__ = [
    'FallbackResolver',
    'default_recommendations',
    'estimated_location',
    'estimated_roof',
    'estimated_solar',
]
