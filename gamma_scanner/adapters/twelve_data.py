"""Adapter backed by the Twelve Data REST API."""

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

LOGGER = logging.getLogger("gamma_scanner.adapters.twelve_data")

DEFAULT_BASE_URL = "https://api.twelvedata.com"


class TwelveDataAdapter(MarketDataAdapter):
    """Fetch quotes and daily time series from Twelve Data.

    Expected environment variables:
        * ``TWELVE_DATA_API_KEY`` - API key used to authenticate requests.
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
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "twelve_data"

    def _request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = dict(params)
        query["apikey"] = self._api_key
        url = f"{self._base_url}/{endpoint}"
        try:
            response = self._session.get(url, params=query, timeout=self._timeout)
        except requests.Timeout as exc:
            raise AdapterTimeout(f"Twelve Data {endpoint} timed out after {self._timeout}s") from exc
        except requests.RequestException as exc:
            raise AdapterError(f"Twelve Data {endpoint} request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("Twelve Data rate limit exceeded")
        if response.status_code != 200:
            raise AdapterError(f"Twelve Data {endpoint} returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise AdapterError(f"Twelve Data {endpoint} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise AdapterError(f"Twelve Data {endpoint} returned an unexpected payload")

        code = payload.get("code")
        if code == 429:
            raise RateLimitError(str(payload.get("message", "Twelve Data rate limit exceeded")))
        if code in (400, 404) or payload.get("status") == "error":
            raise DataNotAvailable(str(payload.get("message", f"Twelve Data {endpoint} error")))
        return payload

    def get_quote(self, symbol: str) -> Quote:
        normalized = symbol.upper().strip()
        payload = self._request("quote", {"symbol": normalized})
        return build_quote(
            normalized,
            self.name,
            payload.get("close"),
            previous_close=parse_float(payload.get("previous_close")),
            volume=parse_float(payload.get("volume")),
            average_volume=parse_float(payload.get("average_volume")),
        )

    def get_history(self, symbol: str, lookback_days: int) -> List[PriceBar]:
        normalized = symbol.upper().strip()
        payload = self._request(
            "time_series",
            {"symbol": normalized, "interval": "1day", "outputsize": int(lookback_days)},
        )
        values = payload.get("values")
        if not isinstance(values, list) or not values:
            raise DataNotAvailable(f"Twelve Data returned no history for {normalized}")

        bars: List[PriceBar] = []
        for row in values:
            try:
                bars.append(
                    PriceBar(
                        timestamp=row["datetime"],
                        open=row.get("open"),
                        high=row["high"],
                        low=row["low"],
                        close=row["close"],
                        volume=row.get("volume", 0),
                    )
                )
            except MALFORMED_PAYLOAD_ERRORS:
                LOGGER.debug("Skipping malformed Twelve Data bar for %s: %s", normalized, row)
        if not bars:
            raise DataNotAvailable(f"Twelve Data history for {normalized} had no valid bars")
        return bars


__all__ = ["TwelveDataAdapter"]
