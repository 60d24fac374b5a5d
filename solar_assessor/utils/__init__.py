"""Utility modules for configuration, logging, and AWS integration."""

from .response_formatter import ResponseFormatter, extract_json

__all__ = [
    'ResponseFormatter',
    'extract_json',
]
