"""Adapter backed by the Alpha Vantage REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from gamma_scanner.models import PriceBar, Quote

from .base import (
    MALFORMED_PAYLOAD_ERRORS,
    AdapterError,
    AdapterTimeout,
    DataNotAvailable,
    MarketDataAdapter,
    RateLimitError,
    build_quote,
    parse_float,
)

LOGGER = logging.getLogger("gamma_scanner.adapters.alpha_vantage")

DEFAULT_BASE_URL = "https://www.alphavantage.co/query"


class AlphaVantageAdapter(MarketDataAdapter):
    """Fetch quotes and daily history from Alpha Vantage.

    The free tier allows very few requests per minute, so this adapter is
    normally configured as the fallback source.

    Expected environment variables:
        * ``ALPHA_VANTAGE_API_KEY`` - API key used to authenticate requests.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "alpha_vantage"

    def _request(self, function: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {"function": function, "apikey": self._api_key}
        query.update(params)
        try:
            response = self._session.get(self._base_url, params=query, timeout=self._timeout)
        except requests.Timeout as exc:
            raise AdapterTimeout(f"Alpha Vantage {function} timed out after {self._timeout}s") from exc
        except requests.RequestException as exc:
            raise AdapterError(f"Alpha Vantage {function} request failed: {exc}") from exc

        if response.status_code != 200:
            raise AdapterError(f"Alpha Vantage {function} returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise AdapterError(f"Alpha Vantage {function} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise AdapterError(f"Alpha Vantage {function} returned an unexpected payload")

        if "Error Message" in payload:
            raise DataNotAvailable(str(payload["Error Message"]))
        for key in ("Note", "Information"):
            if key in payload:
                raise RateLimitError(str(payload[key]))
        return payload

    def get_quote(self, symbol: str) -> Quote:
        normalized = symbol.upper().strip()
        payload = self._request("GLOBAL_QUOTE", {"symbol": normalized})
        quote = payload.get("Global Quote") or {}
        if not isinstance(quote, dict) or not quote:
            raise DataNotAvailable(f"Alpha Vantage returned an empty quote for {normalized}")
        volume = parse_float(quote.get("06. volume"))
        # No average volume on this endpoint; the session volume stands in.
        return build_quote(
            normalized,
            self.name,
            quote.get("05. price"),
            previous_close=parse_float(quote.get("08. previous close")),
            volume=volume,
            average_volume=volume,
        )

    def get_history(self, symbol: str, lookback_days: int) -> List[PriceBar]:
        normalized = symbol.upper().strip()
        payload = self._request("TIME_SERIES_DAILY", {"symbol": normalized, "outputsize": "compact"})
        series = payload.get("Time Series (Daily)")
        if not isinstance(series, dict) or not series:
            raise DataNotAvailable(f"Alpha Vantage returned no history for {normalized}")

        bars: List[PriceBar] = []
        for day in sorted(series)[-int(lookback_days):]:
            row = series[day]
            try:
                bars.append(
                    PriceBar(
                        timestamp=day,
                        open=row.get("1. open"),
                        high=row["2. high"],
                        low=row["3. low"],
                        close=row["4. close"],
                        volume=row.get("5. volume", 0),
                    )
                )
            except MALFORMED_PAYLOAD_ERRORS:
                LOGGER.debug("Skipping malformed Alpha Vantage bar for %s on %s", normalized, day)
        if not bars:
            raise DataNotAvailable(f"Alpha Vantage history for {normalized} had no valid bars")
        return bars


__all__ = ["AlphaVantageAdapter"]
