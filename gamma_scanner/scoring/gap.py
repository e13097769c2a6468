"""Scorers for the gap itself: size, recovery and recency."""

from __future__ import annotations

from typing import List, Tuple

from .base import Band, ScoreContext, Tier, band_points, tier_at_most


class GapSizeScorer:
    key = "gap_size"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Band, ...] = ((5.0, 10.0, 15.0), (3.0, 15.0, 10.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        gap = context.candidate.indicators.gap_percent
        points = band_points(abs(gap), context.get_tiers(self.key, self.DEFAULT_TIERS))
        return points, [f"Gap down {gap:.1f}%"], ["gap-down"] if gap < 0 else []


class GapFillScorer:
    """Partial recovery of the gap scores best; a full fill leaves less upside."""

    key = "gap_fill"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Band, ...] = (
        (50.0, 80.0, 25.0),
        (30.0, 90.0, 20.0),
        (20.0, 95.0, 15.0),
        (10.0, 100.0, 10.0),
    )

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        fill = context.candidate.indicators.gap_fill_percent
        bands = context.get_tiers(self.key, self.DEFAULT_TIERS)
        points = band_points(fill, bands)
        tags = ["gap-fill-sweet-spot"] if bands and points == bands[0][-1] else []
        return points, [f"Gap {fill:.0f}% filled"], tags


class GapRecencyScorer:
    key = "gap_recency"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((3.0, 5.0), (7.0, 3.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        days = context.candidate.indicators.days_since_gap
        points = tier_at_most(days, context.get_tiers(self.key, self.DEFAULT_TIERS))
        return points, [f"Gap {days} day(s) ago"], ["fresh-gap"] if points else []


__all__ = ["GapFillScorer", "GapRecencyScorer", "GapSizeScorer"]
