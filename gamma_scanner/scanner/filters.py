"""Ordered filter cascade narrowing the universe to gap-and-consolidate setups."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from gamma_scanner.models import Candidate, IndicatorSet, Quote, ReferenceData

from .reference import ReferenceDataSource

if TYPE_CHECKING:  # pragma: no cover
    from gamma_scanner.config.loader import FilterSettings

LOGGER = logging.getLogger("gamma_scanner.filters")


@dataclass(frozen=True)
class ScreenedSymbol:
    """A symbol moving through the cascade; reference data is attached late."""

    symbol: str
    quote: Quote
    indicators: IndicatorSet
    reference: Optional[ReferenceData] = None

    def to_candidate(self) -> Candidate:
        if self.reference is None:
            raise ValueError(f"{self.symbol} has no reference data attached")
        return Candidate(
            symbol=self.symbol,
            quote=self.quote,
            indicators=self.indicators,
            reference=self.reference,
        )


@dataclass(frozen=True)
class FilterStage:
    name: str
    predicate: Callable[[ScreenedSymbol], bool]
    describe: Callable[[ScreenedSymbol], str]
    needs_reference: bool = False


@dataclass(frozen=True)
class CascadeOutcome:
    record: ScreenedSymbol
    passed: Tuple[str, ...]
    failed: Optional[str] = None
    reason: Optional[str] = None

    @property
    def survived(self) -> bool:
        return self.failed is None


@dataclass
class CascadeResult:
    """Batch result with the survivors after every stage, in stage order."""

    stages: "OrderedDict[str, List[ScreenedSymbol]]"
    outcomes: List[CascadeOutcome] = field(default_factory=list)

    @property
    def survivors(self) -> List[ScreenedSymbol]:
        if not self.stages:
            return []
        return list(next(reversed(self.stages.values())))

    def counts(self) -> Dict[str, int]:
        return {name: len(records) for name, records in self.stages.items()}


class StageCounter:
    """Ordered tally of how many symbols reached each point of a run."""

    def __init__(self, names: Iterable[str]):
        self._counts: "OrderedDict[str, int]" = OrderedDict((name, 0) for name in names)

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self._counts:
            raise KeyError(f"Unknown stage '{name}'")
        self._counts[name] += amount

    def record(self, names: Iterable[str]) -> None:
        for name in names:
            self.increment(name)

    def __getitem__(self, name: str) -> int:
        return self._counts[name]

    def __iter__(self) -> Iterator[Tuple[str, int]]:
        return iter(self._counts.items())

    def as_dict(self) -> Dict[str, int]:
        return dict(self._counts)


def _stages(settings: "FilterSettings") -> List[FilterStage]:
    def short_interest_ok(record: ScreenedSymbol) -> bool:
        reference = record.reference
        return (
            reference is not None
            and reference.short_interest_percent >= settings.short_interest_min
            and reference.float_shares <= settings.float_max
        )

    return [
        FilterStage(
            "price",
            lambda r: 0 < r.quote.price <= settings.max_price,
            lambda r: f"price ${r.quote.price:.2f} outside (0, {settings.max_price}]",
        ),
        FilterStage(
            "gap",
            lambda r: settings.gap_min_percent <= r.indicators.gap_percent <= settings.gap_max_percent,
            lambda r: f"gap {r.indicators.gap_percent:.1f}% outside [{settings.gap_min_percent}, {settings.gap_max_percent}]",
        ),
        FilterStage(
            "consolidation",
            lambda r: settings.consolidation_min_percent
            <= r.indicators.consolidation_percent
            <= settings.consolidation_max_percent,
            lambda r: f"consolidation {r.indicators.consolidation_percent:.1f}% outside band",
        ),
        FilterStage(
            "rsi",
            lambda r: r.indicators.rsi <= settings.rsi_max,
            lambda r: f"RSI {r.indicators.rsi:.1f} above {settings.rsi_max}",
        ),
        FilterStage(
            "volume",
            lambda r: r.quote.volume >= settings.volume_min,
            lambda r: f"volume {r.quote.volume:,} below {settings.volume_min:,}",
        ),
        FilterStage(
            "trend",
            lambda r: r.indicators.trend_score >= settings.trend_min,
            lambda r: f"trend score {r.indicators.trend_score:.0f} below {settings.trend_min}",
        ),
        FilterStage(
            "short_interest",
            short_interest_ok,
            lambda r: (
                f"short interest {r.reference.short_interest_percent:.1f}% / float {r.reference.float_shares:,} "
                "outside limits"
            )
            if r.reference
            else "no reference data",
            needs_reference=True,
        ),
    ]


class FilterCascade:
    """Apply the fixed stage sequence; a failed symbol never re-enters."""

    def __init__(self, settings: "FilterSettings"):
        self.settings = settings
        self.stages: Tuple[FilterStage, ...] = tuple(_stages(settings))

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def _attach_reference(self, record: ScreenedSymbol, reference_source: ReferenceDataSource) -> ScreenedSymbol:
        if record.reference is not None:
            return record
        return replace(record, reference=reference_source.lookup(record.symbol))

    def evaluate(self, record: ScreenedSymbol, reference_source: ReferenceDataSource) -> CascadeOutcome:
        passed: List[str] = []
        for stage in self.stages:
            if stage.needs_reference:
                record = self._attach_reference(record, reference_source)
            if not stage.predicate(record):
                reason = stage.describe(record)
                LOGGER.debug("%s dropped at %s: %s", record.symbol, stage.name, reason)
                return CascadeOutcome(record=record, passed=tuple(passed), failed=stage.name, reason=reason)
            passed.append(stage.name)
        return CascadeOutcome(record=record, passed=tuple(passed))

    def apply(self, records: Sequence[ScreenedSymbol], reference_source: ReferenceDataSource) -> CascadeResult:
        """Run every record through the cascade, keeping per-stage survivor lists."""

        stages: "OrderedDict[str, List[ScreenedSymbol]]" = OrderedDict((name, []) for name in self.stage_names)
        outcomes = [self.evaluate(record, reference_source) for record in records]
        for outcome in outcomes:
            for name in outcome.passed:
                stages[name].append(outcome.record)
        return CascadeResult(stages=stages, outcomes=outcomes)


__all__ = [
    "CascadeOutcome",
    "CascadeResult",
    "FilterCascade",
    "FilterStage",
    "ScreenedSymbol",
    "StageCounter",
]
