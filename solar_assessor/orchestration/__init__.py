"""Orchestration of the assessment stages."""

from .pipeline import AssessmentOrchestrator

__all__ = ['AssessmentOrchestrator']
