from .candidate import (
    Candidate,
    IndicatorSet,
    OptionPlay,
    ReferenceData,
    ScoreBreakdown,
    ScoredCandidate,
)
from .market import PriceBar, Quote

__all__ = [
    "Candidate",
    "IndicatorSet",
    "OptionPlay",
    "PriceBar",
    "Quote",
    "ReferenceData",
    "ScoreBreakdown",
    "ScoredCandidate",
]
