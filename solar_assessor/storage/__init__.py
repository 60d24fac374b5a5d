"""Storage module for cached assessment records."""

from .result_cache import ResultCache

__all__ = ['ResultCache']
