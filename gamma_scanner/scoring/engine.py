from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Type

from gamma_scanner.models import Candidate, ScoreBreakdown, ScoredCandidate

from .base import ScoreContext
from .config import merge_config
from .consolidation import ConsolidationScorer
from .gap import GapFillScorer, GapRecencyScorer, GapSizeScorer
from .momentum import MovingAverageScorer, RSIScorer, TrendScorer
from .short_interest import FloatScorer, ShortInterestScorer
from .volume import VolumeSpikeScorer, VolumeTrendScorer

SCORER_REGISTRY = {
    RSIScorer.key: RSIScorer,
    GapSizeScorer.key: GapSizeScorer,
    GapFillScorer.key: GapFillScorer,
    ConsolidationScorer.key: ConsolidationScorer,
    VolumeSpikeScorer.key: VolumeSpikeScorer,
    ShortInterestScorer.key: ShortInterestScorer,
    MovingAverageScorer.key: MovingAverageScorer,
    GapRecencyScorer.key: GapRecencyScorer,
    TrendScorer.key: TrendScorer,
    VolumeTrendScorer.key: VolumeTrendScorer,
    FloatScorer.key: FloatScorer,
}


def validate_scoring_config(config: Dict[str, object]) -> None:
    """Reject unknown scorer names and tier rows that do not match the scorer's table shape."""

    unknown = [key for key in config.get("enabled", []) if key not in SCORER_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown scorers: {', '.join(unknown)}")

    tiers = config.get("tiers") or {}
    if not isinstance(tiers, Mapping):
        raise ValueError("Tier overrides must map scorer names to rows")
    for key, rows in tiers.items():
        if key not in SCORER_REGISTRY:
            raise ValueError(f"Tier table given for unknown scorer '{key}'")
        if not isinstance(rows, (list, tuple)):
            raise ValueError(f"Tier table for '{key}' must be a list of rows")
        width = len(SCORER_REGISTRY[key].DEFAULT_TIERS[0])
        for row in rows:
            if isinstance(row, (str, bytes)) or not isinstance(row, Sequence) or len(row) != width:
                raise ValueError(f"Tier rows for '{key}' need {width} values, got {row!r}")
            for item in row:
                if isinstance(item, bool) or not isinstance(item, (int, float)):
                    raise ValueError(f"Tier rows for '{key}' must be numeric, got {row!r}")


class CompositeScoringEngine:
    """Sum the weighted points of the enabled scorers and clamp to the score bounds."""

    def __init__(self, config: Dict[str, object] | None = None):
        self.config = merge_config(config)
        validate_scoring_config(self.config)
        enabled = self.config.get("enabled", list(SCORER_REGISTRY))
        self._scorers = [self._instantiate(key) for key in enabled]

    def _instantiate(self, key: str):
        scorer_cls: Type = SCORER_REGISTRY[key]
        return scorer_cls()

    def score(self, candidate: Candidate) -> ScoredCandidate:
        context = ScoreContext(candidate=candidate, config=self.config)

        breakdowns: List[ScoreBreakdown] = []
        total = 0.0
        all_reasons: List[str] = []
        all_tags: List[str] = []

        for scorer in self._scorers:
            raw_score, reasons, tags = scorer.score(context)
            weight = context.get_weight(scorer.key, getattr(scorer, "default_weight", 1.0))
            weighted_score = raw_score * weight
            total += weighted_score
            breakdowns.append(
                ScoreBreakdown(
                    scorer=scorer.key,
                    weight=weight,
                    raw_score=raw_score,
                    weighted_score=weighted_score,
                    reasons=reasons,
                    tags=tags,
                )
            )
            all_reasons.extend(reasons)
            all_tags.extend(tags)

        bounds = self.config.get("score_bounds", {})
        min_score = max(0.0, float(bounds.get("min", 0.0)))
        max_score = min(100.0, float(bounds.get("max", 100.0)))
        total = max(min_score, min(max_score, total))

        return ScoredCandidate(
            candidate=candidate,
            score=round(total, 2),
            breakdowns=breakdowns,
            reasons=all_reasons,
            tags=sorted(set(all_tags)),
        )

    @property
    def enabled_scorers(self) -> List[str]:
        return [scorer.key for scorer in self._scorers]


__all__ = ["CompositeScoringEngine", "SCORER_REGISTRY", "validate_scoring_config"]
