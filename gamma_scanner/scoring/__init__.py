"""Composite scoring for gap-and-consolidate candidates."""

from .base import CandidateScorer, ScoreContext
from .config import DEFAULT_SCORER_CONFIG, merge_config
from .engine import SCORER_REGISTRY, CompositeScoringEngine

__all__ = [
    "CandidateScorer",
    "CompositeScoringEngine",
    "DEFAULT_SCORER_CONFIG",
    "SCORER_REGISTRY",
    "ScoreContext",
    "merge_config",
]
