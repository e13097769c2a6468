"""Ordered provider fallback for quotes and daily history."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

from gamma_scanner.models import PriceBar, Quote

from .base import MALFORMED_PAYLOAD_ERRORS, AdapterError, MarketDataAdapter, ProviderUnavailable

LOGGER = logging.getLogger("gamma_scanner.adapters.chain")

T = TypeVar("T")

_FAILED_ATTEMPT = (AdapterError,) + MALFORMED_PAYLOAD_ERRORS


@dataclass(frozen=True)
class MarketSnapshot:
    """Quote and normalized history for one symbol."""

    symbol: str
    quote: Quote
    bars: Tuple[PriceBar, ...]
    quote_source: str
    history_source: str


def normalize_history(bars: Sequence[PriceBar], lookback_days: int | None = None) -> List[PriceBar]:
    """Sort bars ascending, collapse duplicate timestamps and keep the trailing window."""

    by_timestamp: Dict[object, PriceBar] = {}
    for bar in bars:
        by_timestamp[bar.timestamp] = bar
    ordered = [by_timestamp[key] for key in sorted(by_timestamp)]
    if lookback_days is not None and lookback_days > 0:
        ordered = ordered[-lookback_days:]
    return ordered


class ProviderChain:
    """Try each adapter in order until one succeeds.

    Every adapter gets exactly one attempt per request; there is no retry
    or backoff beyond what the orchestrator applies between symbols.
    """

    def __init__(self, adapters: Sequence[MarketDataAdapter]):
        if not adapters:
            raise ValueError("ProviderChain requires at least one adapter")
        self._adapters = list(adapters)

    @property
    def names(self) -> List[str]:
        return [adapter.name for adapter in self._adapters]

    def _first_success(self, operation: Callable[[MarketDataAdapter], T], context: str) -> Tuple[T, str]:
        errors: List[str] = []
        for position, adapter in enumerate(self._adapters):
            try:
                return operation(adapter), adapter.name
            except _FAILED_ATTEMPT as exc:
                errors.append(f"{adapter.name}: {exc}")
                if position + 1 < len(self._adapters):
                    LOGGER.info("%s failed to %s (%s); falling back", adapter.name, context, exc)
                else:
                    LOGGER.info("%s failed to %s (%s)", adapter.name, context, exc)
        raise ProviderUnavailable(f"All providers failed to {context}: {'; '.join(errors)}")

    def get_quote(self, symbol: str) -> Quote:
        quote, _ = self._quote_with_source(symbol)
        return quote

    def get_history(self, symbol: str, lookback_days: int) -> List[PriceBar]:
        bars, _ = self._history_with_source(symbol, lookback_days)
        return bars

    def _quote_with_source(self, symbol: str) -> Tuple[Quote, str]:
        return self._first_success(lambda adapter: adapter.get_quote(symbol), context=f"fetch quote for {symbol}")

    def _history_with_source(self, symbol: str, lookback_days: int) -> Tuple[List[PriceBar], str]:
        def operation(adapter: MarketDataAdapter) -> List[PriceBar]:
            bars = normalize_history(adapter.get_history(symbol, lookback_days), lookback_days)
            if not bars:
                raise AdapterError(f"{adapter.name} returned an empty history")
            return bars

        return self._first_success(operation, context=f"fetch history for {symbol}")

    def fetch(self, symbol: str, lookback_days: int) -> MarketSnapshot:
        """Fetch quote and history concurrently; both must succeed."""

        normalized = symbol.upper().strip()
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix=f"fetch-{normalized}") as executor:
            quote_future = executor.submit(self._quote_with_source, normalized)
            history_future = executor.submit(self._history_with_source, normalized, lookback_days)
            quote, quote_source = quote_future.result()
            bars, history_source = history_future.result()
        return MarketSnapshot(
            symbol=normalized,
            quote=quote,
            bars=tuple(bars),
            quote_source=quote_source,
            history_source=history_source,
        )


__all__ = ["MarketSnapshot", "ProviderChain", "normalize_history"]
