"""Squeeze fuel: short interest and float size."""

from __future__ import annotations

from typing import List, Tuple

from .base import ScoreContext, Tier, tier_at_least, tier_below


class ShortInterestScorer:
    key = "short_interest"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = ((25.0, 15.0), (15.0, 12.0), (10.0, 8.0), (5.0, 4.0))

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        reference = context.candidate.reference
        short_interest = reference.short_interest_percent
        points = tier_at_least(short_interest, context.get_tiers(self.key, self.DEFAULT_TIERS))
        reasons = [f"Short interest {short_interest:.1f}%"]
        if reference.is_default:
            reasons.append("Short interest unknown; default applied")
        tags = ["high-short-interest"] if short_interest >= 15 else []
        return points, reasons, tags


class FloatScorer:
    """Smaller floats squeeze harder. Disabled by default."""

    key = "float"
    default_weight = 1.0

    DEFAULT_TIERS: Tuple[Tier, ...] = (
        (10_000_000.0, 25.0),
        (25_000_000.0, 20.0),
        (50_000_000.0, 15.0),
        (100_000_000.0, 10.0),
        (200_000_000.0, 5.0),
    )

    def score(self, context: ScoreContext) -> Tuple[float, List[str], List[str]]:
        float_shares = context.candidate.reference.float_shares
        points = tier_below(float_shares, context.get_tiers(self.key, self.DEFAULT_TIERS))
        tags = ["low-float"] if float_shares < 50_000_000 else []
        return points, [f"Float {float_shares / 1_000_000:.0f}M shares"], tags


__all__ = ["FloatScorer", "ShortInterestScorer"]
