"""Data models for the solar assessment pipeline."""

from .result import (
    ESTIMATED,
    Attempt,
    ConfidenceTier,
    ExtractedValue,
    Resolution,
    Unavailable,
    UnavailableReason,
)
from .location import Location
from .solar import SolarEstimate, RoofAnalysis, Recommendations
from .assessment import (
    AssessmentRequest,
    AssessmentResponse,
    CompositeAssessment,
    EnvironmentalImpact,
    FinancialSummary,
    NextStep,
    Proposal,
    UtilityInfo,
)

__all__ = [
    'ESTIMATED',
    'Attempt',
    'ConfidenceTier',
    'ExtractedValue',
    'Resolution',
    'Unavailable',
    'UnavailableReason',
    'Location',
    'SolarEstimate',
    'RoofAnalysis',
    'Recommendations',
    'AssessmentRequest',
    'AssessmentResponse',
    'CompositeAssessment',
    'EnvironmentalImpact',
    'FinancialSummary',
    'NextStep',
    'Proposal',
    'UtilityInfo',
]
