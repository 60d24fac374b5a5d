"""Normalization of heterogeneous provider answers."""

from .schema import CoercionResult, FieldSpec, ResponseSchema, ROOF_ANALYSIS_SCHEMA
from .text_extraction import (
    RECOMMENDATION_RULES,
    ExtractionRule,
    extract_field,
    extract_fields,
)

__all__ = [
    'CoercionResult',
    'FieldSpec',
    'ResponseSchema',
    'ROOF_ANALYSIS_SCHEMA',
    'RECOMMENDATION_RULES',
    'ExtractionRule',
    'extract_field',
    'extract_fields',
]
