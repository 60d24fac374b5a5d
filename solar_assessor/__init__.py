"""Solar assessment pipeline with per-capability provider fallback."""

from .assessor import build_orchestrator, build_resolver, run_assessment, get_assessment, generate_proposal

__all__ = [
    'build_orchestrator',
    'build_resolver',
    'run_assessment',
    'get_assessment',
    'generate_proposal',
]
