from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from gamma_scanner.models import Candidate

Tier = Tuple[float, float]
Band = Tuple[float, float, float]


@dataclass(frozen=True)
class ScoreContext:
    """Information passed to each scorer."""

    candidate: Candidate
    config: Dict[str, object]

    def get_weight(self, scorer_key: str, default: float) -> float:
        return float(self.config.get("weights", {}).get(scorer_key, default))

    def get_tiers(self, scorer_key: str, default: Sequence[Sequence[float]]) -> List[Tuple[float, ...]]:
        """Tier table for ``scorer_key``; ``config["tiers"]`` entries replace the default."""

        override = (self.config.get("tiers") or {}).get(scorer_key)
        rows = override if override else default
        return [tuple(float(item) for item in row) for row in rows]


class CandidateScorer(Protocol):
    """Protocol each scoring component must implement."""

    key: str
    default_weight: float

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        """Return raw points, reasoning strings, and tags."""


def tier_at_most(value: float, tiers: Iterable[Tuple[float, ...]], default: float = 0.0) -> float:
    """Points for the first tier whose threshold is >= value."""

    for threshold, points in tiers:
        if value <= threshold:
            return points
    return default


def tier_below(value: float, tiers: Iterable[Tuple[float, ...]], default: float = 0.0) -> float:
    for threshold, points in tiers:
        if value < threshold:
            return points
    return default


def tier_at_least(value: float, tiers: Iterable[Tuple[float, ...]], default: float = 0.0) -> float:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return default


def tier_above(value: float, tiers: Iterable[Tuple[float, ...]], default: float = 0.0) -> float:
    for threshold, points in tiers:
        if value > threshold:
            return points
    return default


def band_points(value: float, bands: Iterable[Tuple[float, ...]], default: float = 0.0) -> float:
    """Points for the first inclusive ``(low, high)`` band containing value."""

    for low, high, points in bands:
        if low <= value <= high:
            return points
    return default


__all__ = [
    "Band",
    "CandidateScorer",
    "ScoreContext",
    "Tier",
    "band_points",
    "tier_above",
    "tier_at_least",
    "tier_at_most",
    "tier_below",
]
