"""Pipeline orchestration for the gamma scanner."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from gamma_scanner.adapters import AdapterError, ProviderChain
from gamma_scanner.config import AppSettings, ConfigurationError, build_provider_chain, build_reference_source
from gamma_scanner.models import IndicatorSet, PriceBar, ScoredCandidate
from gamma_scanner.scoring import CompositeScoringEngine
from gamma_scanner.storage import CandidateSnapshot, RunMetadata, Storage

from .features import InsufficientHistory, compute_indicators
from .filters import FilterCascade, ScreenedSymbol, StageCounter
from .options import OptionsEstimator
from .reference import ReferenceDataSource
from .universe import UniverseRegistry

LOGGER = logging.getLogger("gamma_scanner.pipeline")

PRE_FILTER_STAGES = ("universe", "fetched", "indicators")
SCORE_STAGE = "score"


@dataclass(frozen=True)
class SymbolFailure:
    symbol: str
    stage: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"symbol": self.symbol, "stage": self.stage, "error": self.error}


@dataclass
class ScanReport:
    """Outcome of one run. An empty ``candidates`` list is a valid result."""

    run_id: str
    environment: str
    watchlist: Optional[str]
    started_at: datetime
    finished_at: datetime
    universe_size: int
    fetched: int
    stage_counts: Dict[str, int]
    failures: List[SymbolFailure] = field(default_factory=list)
    candidates: List[ScoredCandidate] = field(default_factory=list)
    top: List[ScoredCandidate] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def summary_lines(self) -> List[str]:
        lines = [
            f"Gamma scan {self.run_id[:8]} [{self.environment}] "
            f"{self.universe_size} symbols, {self.fetched} fetched in {self.duration_seconds:.1f}s",
            "Stages: " + " -> ".join(f"{name} {count}" for name, count in self.stage_counts.items()),
        ]
        if not self.top:
            lines.append("No setups found.")
        for rank, scored in enumerate(self.top, start=1):
            candidate = scored.candidate
            indicators = candidate.indicators
            lines.append(
                f"{rank:>2}. {scored.symbol:<6} score {scored.score:5.1f}  ${candidate.price:.2f}  "
                f"gap {indicators.gap_percent:.1f}%  fill {indicators.gap_fill_percent:.0f}%  "
                f"RSI {indicators.rsi:.0f}  SI {candidate.reference.short_interest_percent:.1f}%"
            )
            if scored.plays:
                lines.append("      " + ", ".join(play.describe() for play in scored.plays))
        if self.failures:
            lines.append(f"{len(self.failures)} symbol(s) skipped: " + ", ".join(f.symbol for f in self.failures))
        return lines


class GammaScanner:
    """Run the universe through fetch, indicators, cascade, scoring and options."""

    def __init__(
        self,
        settings: AppSettings,
        provider: ProviderChain,
        reference_source: ReferenceDataSource,
        scoring_engine: Optional[CompositeScoringEngine] = None,
        estimator: Optional[OptionsEstimator] = None,
        sink: Optional[Storage] = None,
        sleep: Callable[[float], None] = time.sleep,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings
        self.provider = provider
        self.reference_source = reference_source
        self.scoring_engine = scoring_engine or CompositeScoringEngine(settings.scoring_dict())
        self.estimator = estimator or OptionsEstimator(settings.options)
        self.cascade = FilterCascade(settings.filters)
        self.sink = sink
        self._sleep = sleep
        self.logger = logger or LOGGER

    @classmethod
    def from_settings(cls, settings: AppSettings, sink: Optional[Storage] = None) -> "GammaScanner":
        """Wire the configured collaborators; raises ``ConfigurationError`` before any fetch."""

        try:
            scoring_engine = CompositeScoringEngine(settings.scoring_dict())
        except ValueError as exc:
            raise ConfigurationError(f"Invalid scoring configuration: {exc}") from exc
        return cls(
            settings,
            provider=build_provider_chain(settings),
            reference_source=build_reference_source(settings),
            scoring_engine=scoring_engine,
            sink=sink,
        )

    @property
    def stage_names(self) -> List[str]:
        return [*PRE_FILTER_STAGES, *self.cascade.stage_names, SCORE_STAGE]

    def _compute(self, bars: Sequence[PriceBar]) -> IndicatorSet:
        indicators = self.settings.indicators
        return compute_indicators(
            bars,
            min_bars=self.settings.scan.min_history_bars,
            rsi_period=indicators.rsi_period,
            consolidation_window=indicators.consolidation_window,
            volume_trend_window=indicators.volume_trend_window,
            volume_spike_window=indicators.volume_spike_window,
            policy=indicators.trend_policy(),
        )

    def _process(self, symbol: str, counter: StageCounter) -> Optional[ScoredCandidate]:
        snapshot = self.provider.fetch(symbol, self.settings.scan.lookback_days)
        counter.increment("fetched")

        indicators = self._compute(snapshot.bars)
        counter.increment("indicators")

        record = ScreenedSymbol(symbol=snapshot.symbol, quote=snapshot.quote, indicators=indicators)
        outcome = self.cascade.evaluate(record, self.reference_source)
        counter.record(outcome.passed)
        if not outcome.survived:
            self.logger.debug("%s filtered at %s: %s", symbol, outcome.failed, outcome.reason)
            return None

        scored = self.scoring_engine.score(outcome.record.to_candidate())
        if scored.score < self.settings.filters.score_min:
            self.logger.debug(
                "%s score %.1f below floor %.1f", symbol, scored.score, self.settings.filters.score_min
            )
            return None
        counter.increment(SCORE_STAGE)

        plays = self.estimator.estimate(scored.candidate.price)
        return scored.model_copy(update={"plays": plays})

    def run(
        self,
        symbols: Union[UniverseRegistry, Iterable[str], None] = None,
        *,
        watchlist: Optional[str] = "default",
    ) -> ScanReport:
        if symbols is None:
            registry = UniverseRegistry.from_settings(self.settings, watchlist or "default")
        elif isinstance(symbols, UniverseRegistry):
            registry = symbols
        else:
            registry = UniverseRegistry.from_symbols(symbols)
            watchlist = None

        run_id = uuid.uuid4().hex
        started_at = datetime.now(timezone.utc)
        counter = StageCounter(self.stage_names)
        counter.increment("universe", len(registry))
        delay = self.settings.scan.request_delay_seconds
        results: List[ScoredCandidate] = []
        failures: List[SymbolFailure] = []

        self.logger.info("Scanning %d symbols via %s", len(registry), " -> ".join(self.provider.names))
        for symbol in registry:
            try:
                scored = self._process(symbol, counter)
                if scored is not None:
                    results.append(scored)
                    self.logger.info("%s qualified with score %.1f", symbol, scored.score)
            except AdapterError as exc:
                self.logger.info("Skipping %s: %s", symbol, exc)
                failures.append(SymbolFailure(symbol, "fetch", str(exc)))
            except InsufficientHistory as exc:
                self.logger.info("Skipping %s: %s", symbol, exc)
                failures.append(SymbolFailure(symbol, "indicators", str(exc)))
            except Exception as exc:
                self.logger.exception("Unexpected failure while scanning %s", symbol)
                failures.append(SymbolFailure(symbol, "unexpected", f"{type(exc).__name__}: {exc}"))
            finally:
                if delay > 0:
                    self._sleep(delay)

        ranked = sorted(results, key=lambda item: item.score, reverse=True)
        report = ScanReport(
            run_id=run_id,
            environment=self.settings.env,
            watchlist=watchlist,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            universe_size=len(registry),
            fetched=counter["fetched"],
            stage_counts=counter.as_dict(),
            failures=failures,
            candidates=ranked,
            top=ranked[: self.settings.scan.top_n],
            parameters=self.settings.parameters(),
        )
        self.logger.info(
            "Scan %s finished: %d candidate(s), %d failure(s)", run_id[:8], len(ranked), len(failures)
        )
        if self.sink is not None:
            self._emit(report, registry)
        return report

    def _emit(self, report: ScanReport, registry: UniverseRegistry) -> None:
        metadata = RunMetadata(
            run_id=report.run_id,
            run_at=report.started_at,
            environment=report.environment,
            watchlist=report.watchlist,
            extra={
                "parameters": report.parameters,
                "stage_counts": report.stage_counts,
                "universe": list(registry.symbols),
                "failures": [failure.to_dict() for failure in report.failures],
                "top_n": self.settings.scan.top_n,
            },
        )
        snapshots = [
            CandidateSnapshot.from_record(rank, scored.to_record())
            for rank, scored in enumerate(report.candidates, start=1)
        ]
        self.sink.save_run(metadata, snapshots)


__all__ = ["GammaScanner", "ScanReport", "SymbolFailure"]
