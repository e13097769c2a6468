"""Adapter implementation backed by the public yfinance client."""

from __future__ import annotations

import logging
import math
import threading
from datetime import date, timedelta
from typing import Any, Callable, List, Optional

import pandas as pd
import yfinance as yf

from gamma_scanner.models import PriceBar, Quote

from .base import (
    MALFORMED_PAYLOAD_ERRORS,
    AdapterError,
    AdapterTimeout,
    DataNotAvailable,
    MarketDataAdapter,
    build_quote,
)

LOGGER = logging.getLogger("gamma_scanner.adapters.yfinance")


def run_with_timeout(func: Callable[[], Any], timeout_seconds: float) -> Any:
    """Call ``func`` on a daemon thread and give up after ``timeout_seconds``."""
    result_container: List[Any] = []
    exception_container: List[Exception] = []

    def wrapper():
        try:
            result_container.append(func())
        except Exception as e:
            exception_container.append(e)

    thread = threading.Thread(target=wrapper, daemon=True)
    thread.start()
    thread.join(timeout=timeout_seconds)

    if thread.is_alive():
        raise AdapterTimeout(f"Operation timed out after {timeout_seconds} seconds")

    if exception_container:
        raise exception_container[0]

    if result_container:
        return result_container[0]

    raise AdapterTimeout("Operation completed but returned no result")


def _lookup(container: Any, *keys: str) -> Any:
    for key in keys:
        try:
            value = container[key]
        except (KeyError, TypeError, AttributeError, IndexError):
            continue
        except Exception:  # pragma: no cover - fast_info computes lazily and may raise anything
            LOGGER.debug("Lookup of %s failed", key, exc_info=True)
            continue
        if value is None:
            continue
        if isinstance(value, float) and not math.isfinite(value):
            continue
        return value
    return None


class YFinanceMarketDataAdapter(MarketDataAdapter):
    """Fetch quotes and daily history from Yahoo Finance via yfinance."""

    def __init__(
        self,
        ticker_factory: Callable[[str], yf.Ticker] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._ticker_factory = ticker_factory or yf.Ticker
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "yfinance"

    def _call(self, operation: Callable[[], Any], context: str) -> Any:
        try:
            return run_with_timeout(operation, self._timeout)
        except AdapterError:
            raise
        except Exception as exc:  # yfinance raises generic errors
            raise AdapterError(f"Failed to {context}: {exc}") from exc

    def get_quote(self, symbol: str) -> Quote:
        normalized = symbol.upper().strip()
        ticker = self._ticker_factory(normalized)

        fast_info = self._call(lambda: getattr(ticker, "fast_info", {}), context=f"fetch fast info for {normalized}")
        price = _lookup(fast_info, "lastPrice", "last_price", "regularMarketPrice")
        previous_close = _lookup(fast_info, "previousClose", "previous_close", "regularMarketPreviousClose")
        volume = _lookup(fast_info, "lastVolume", "last_volume")
        average_volume = _lookup(fast_info, "tenDayAverageVolume", "threeMonthAverageVolume")

        if price is None or volume is None:
            info = self._call(lambda: ticker.info, context=f"fetch info for {normalized}")
            if isinstance(info, dict):
                price = price if price is not None else _lookup(info, "currentPrice", "regularMarketPrice")
                previous_close = previous_close if previous_close is not None else _lookup(info, "previousClose")
                volume = volume if volume is not None else _lookup(info, "volume", "regularMarketVolume")
                average_volume = (
                    average_volume if average_volume is not None else _lookup(info, "averageVolume", "averageDailyVolume10Day")
                )

        return build_quote(
            normalized,
            self.name,
            price,
            previous_close=previous_close,
            volume=volume,
            average_volume=average_volume if average_volume is not None else volume,
        )

    def get_history(self, symbol: str, lookback_days: int) -> List[PriceBar]:
        normalized = symbol.upper().strip()
        ticker = self._ticker_factory(normalized)
        # Trading days are roughly 5/7 of calendar days; pad for holidays.
        start = date.today() - timedelta(days=int(lookback_days * 1.6) + 10)
        history = self._call(
            lambda: ticker.history(start=start.isoformat(), interval="1d", auto_adjust=False),
            context=f"fetch price history for {normalized}",
        )
        if not isinstance(history, pd.DataFrame) or history.empty:
            raise DataNotAvailable(f"yfinance returned no history for {normalized}")

        try:
            frame = history.dropna(subset=["Close"]).tail(int(lookback_days))
            bars = [
                PriceBar(
                    timestamp=self._naive(timestamp),
                    open=self._optional(row.get("Open")),
                    high=row["High"],
                    low=row["Low"],
                    close=row["Close"],
                    volume=self._optional(row.get("Volume")) or 0,
                )
                for timestamp, row in frame.iterrows()
            ]
        except MALFORMED_PAYLOAD_ERRORS as exc:
            raise DataNotAvailable(f"yfinance returned malformed history for {normalized}: {exc}") from exc
        if not bars:
            raise DataNotAvailable(f"yfinance history for {normalized} had no valid bars")
        return bars

    @staticmethod
    def _naive(timestamp: Any) -> Any:
        if isinstance(timestamp, pd.Timestamp) and timestamp.tzinfo is not None:
            return timestamp.tz_localize(None).to_pydatetime()
        return timestamp

    @staticmethod
    def _optional(value: Any) -> Optional[float]:
        if value is None or pd.isna(value):
            return None
        return float(value)


__all__ = ["YFinanceMarketDataAdapter", "run_with_timeout"]
