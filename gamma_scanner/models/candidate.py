from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .market import Quote


@dataclass(frozen=True)
class IndicatorSet:
    """Container for the technical indicators derived from a price history."""

    rsi: float
    ma20: float
    ma50: float
    ma200: float
    gap_percent: float
    gap_index: Optional[int]
    days_since_gap: int
    gap_close: Optional[float]
    pre_gap_close: Optional[float]
    gap_fill_percent: float
    consolidation_percent: float
    volume_trend_percent: float
    volume_spike_ratio: float
    trend_score: float
    last_close: float
    bars: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReferenceData:
    """Short interest and float figures for a symbol."""

    short_interest_percent: float = 0.0
    float_shares: int = 500_000_000
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScoreBreakdown(BaseModel):
    scorer: str
    weight: float
    raw_score: float
    weighted_score: float
    reasons: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class Candidate(BaseModel):
    """A symbol that survived every stage of the filter cascade."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    quote: Quote
    indicators: IndicatorSet
    reference: ReferenceData

    @property
    def price(self) -> float:
        return self.quote.price


class OptionPlay(BaseModel):
    """Synthetic near-the-money option suggestion."""

    model_config = ConfigDict(frozen=True)

    option_type: Literal["call", "put"]
    strike: int
    premium: float
    otm_percent: float

    def describe(self) -> str:
        return f"{self.option_type.upper()} ${self.strike} @ ${self.premium:.2f} ({self.otm_percent:.0f}% OTM)"


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    score: float = Field(ge=0.0, le=100.0)
    breakdowns: List[ScoreBreakdown] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    plays: List[OptionPlay] = Field(default_factory=list, max_length=3)

    @property
    def symbol(self) -> str:
        return self.candidate.symbol

    def to_record(self) -> Dict[str, Any]:
        """Flatten into a JSON friendly mapping for report sinks."""

        quote = self.candidate.quote
        record: Dict[str, Any] = {
            "symbol": self.symbol,
            "score": self.score,
            "price": quote.price,
            "previous_close": quote.previous_close,
            "volume": quote.volume,
            "average_volume": quote.average_volume,
            "quote_source": quote.source,
        }
        record.update(self.candidate.indicators.to_dict())
        record["short_interest_percent"] = self.candidate.reference.short_interest_percent
        record["float_shares"] = self.candidate.reference.float_shares
        record["reference_default"] = self.candidate.reference.is_default
        record["components"] = {b.scorer: b.weighted_score for b in self.breakdowns}
        record["reasons"] = list(self.reasons)
        record["tags"] = list(self.tags)
        record["plays"] = [play.model_dump() for play in self.plays]
        return record


__all__ = [
    "Candidate",
    "IndicatorSet",
    "OptionPlay",
    "ReferenceData",
    "ScoreBreakdown",
    "ScoredCandidate",
]
