"""Oscillator, moving-average and trend scorers."""

from __future__ import annotations

from typing import List, Tuple

from .base import ScoreContext, Tier, tier_at_least, tier_at_most


class RSIScorer:
    """Reward oversold readings; the lower the RSI the more points."""

    key = "rsi"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((30.0, 20.0), (40.0, 15.0), (50.0, 10.0), (60.0, 5.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        rsi = context.candidate.indicators.rsi
        points = tier_at_most(rsi, context.get_tiers(self.key, self.DEFAULT_TIERS))
        reasons = [f"RSI {rsi:.1f}"]
        tags: List[str] = []
        if rsi <= 30:
            tags.append("oversold")
        return points, reasons, tags


class MovingAverageScorer:
    """Points for the current price holding above each moving average."""

    key = "moving_average"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((20.0, 5.0), (50.0, 5.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        candidate = context.candidate
        price = candidate.price
        averages = {20.0: candidate.indicators.ma20, 50.0: candidate.indicators.ma50}
        points = 0.0
        reasons: List[str] = []
        for window, award in context.get_tiers(self.key, self.DEFAULT_TIERS):
            average = averages.get(window)
            if average is not None and price > average:
                points += award
                reasons.append(f"Price above MA{int(window)} (${average:.2f})")
        tags = ["above-ma"] if points else []
        return points, reasons, tags


class TrendScorer:
    """Tiered trend score; deep downtrends are penalised."""

    key = "trend"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((70.0, 15.0), (60.0, 12.0), (50.0, 10.0), (40.0, 5.0), (30.0, 0.0))
    DOWNTREND_PENALTY = -15.0

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        trend = context.candidate.indicators.trend_score
        points = tier_at_least(
            trend,
            context.get_tiers(self.key, self.DEFAULT_TIERS),
            default=self.DOWNTREND_PENALTY,
        )
        tags: List[str] = []
        if trend >= 60:
            tags.append("uptrend")
        elif points < 0:
            tags.append("downtrend")
        return points, [f"Trend score {trend:.0f}/100"], tags


__all__ = ["MovingAverageScorer", "RSIScorer", "TrendScorer"]
