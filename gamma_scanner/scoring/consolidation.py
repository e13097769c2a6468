"""Consolidation tightness scorer."""

from __future__ import annotations

from typing import List, Tuple

from .base import ScoreContext, Tier, tier_below


class ConsolidationScorer:
    """Tighter post-gap ranges earn more points."""

    key = "consolidation"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((5.0, 10.0), (10.0, 7.0), (15.0, 4.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        width = context.candidate.indicators.consolidation_percent
        points = tier_below(width, context.get_tiers(self.key, self.DEFAULT_TIERS))
        tags = ["tight-range"] if width < 5 else []
        return points, [f"{width:.1f}% consolidation range"], tags


__all__ = ["ConsolidationScorer"]
