"""Candidate screening: universe, indicators, reference data, filters and options.

The orchestrator lives in :mod:`gamma_scanner.scanner.pipeline` and is not
imported here because it depends on the configuration package.
"""

from .features import InsufficientHistory, TrendScorePolicy, compute_indicators
from .filters import CascadeOutcome, CascadeResult, FilterCascade, ScreenedSymbol, StageCounter
from .options import OptionsEstimator, round_half_up
from .reference import ReferenceDataSource, StaticReferenceTable, load_reference_table
from .universe import UniverseRegistry

__all__ = [
    "CascadeOutcome",
    "CascadeResult",
    "FilterCascade",
    "InsufficientHistory",
    "OptionsEstimator",
    "ReferenceDataSource",
    "ScreenedSymbol",
    "StageCounter",
    "StaticReferenceTable",
    "TrendScorePolicy",
    "UniverseRegistry",
    "compute_indicators",
    "load_reference_table",
    "round_half_up",
]
