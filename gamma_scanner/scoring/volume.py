"""Volume participation scorers."""

from __future__ import annotations

from typing import List, Tuple

from .base import ScoreContext, Tier, tier_above, tier_at_least


class VolumeSpikeScorer:
    """Latest session volume against its trailing average."""

    key = "volume_spike"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((2.0, 10.0), (1.5, 7.0), (1.2, 4.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        ratio = context.candidate.indicators.volume_spike_ratio
        points = tier_at_least(ratio, context.get_tiers(self.key, self.DEFAULT_TIERS))
        tags = ["volume-surge"] if ratio >= 2.0 else []
        return points, [f"Volume {ratio:.1f}x average"], tags


class VolumeTrendScorer:
    """Recent average volume against the preceding window. Disabled by default."""

    key = "volume_trend"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((50.0, 15.0), (20.0, 12.0), (0.0, 8.0), (-10.0, 5.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        change = context.candidate.indicators.volume_trend_percent
        points = tier_above(change, context.get_tiers(self.key, self.DEFAULT_TIERS))
        tags = ["volume-building"] if change > 20 else []
        return points, [f"Volume trend {change:+.0f}%"], tags


__all__ = ["VolumeSpikeScorer", "VolumeTrendScorer"]
