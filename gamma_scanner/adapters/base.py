"""Core abstractions for market data adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional

from gamma_scanner.models import PriceBar, Quote


class AdapterError(Exception):
    """Base exception raised for adapter related failures."""


class RateLimitError(AdapterError):
    """Raised when a provider reports rate limiting errors."""


class DataNotAvailable(AdapterError):
    """Raised when requested data is not available from a provider."""


class AdapterTimeout(AdapterError):
    """Raised when a provider call exceeds its time budget."""


class ProviderUnavailable(AdapterError):
    """Raised when every configured provider failed for a request."""


class MarketDataAdapter(ABC):
    """Abstract base class for fetching quotes and daily history from external providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable provider name."""

    @abstractmethod
    def get_quote(self, symbol: str) -> Quote:
        """Return the latest quote for a symbol."""

    @abstractmethod
    def get_history(self, symbol: str, lookback_days: int) -> List[PriceBar]:
        """Return up to ``lookback_days`` daily bars for a symbol."""


# Raised while turning a provider payload into models.
MALFORMED_PAYLOAD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


def parse_float(value: Any) -> Optional[float]:
    """Coerce provider payload values, treating blanks and junk as missing."""

    if value in (None, "", "None", "-"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_quote(symbol: str, source: str, price: Any, **fields: Any) -> Quote:
    """Validate a raw quote payload, rejecting missing or non-positive prices."""

    parsed_price = parse_float(price)
    if parsed_price is None or parsed_price <= 0:
        raise DataNotAvailable(f"{source} returned no usable price for {symbol}")
    payload: Mapping[str, Any] = {key: value for key, value in fields.items() if value is not None}
    try:
        return Quote(symbol=symbol, price=parsed_price, source=source, **payload)
    except ValueError as exc:
        raise DataNotAvailable(f"{source} returned a malformed quote for {symbol}: {exc}") from exc


__all__ = [
    "MALFORMED_PAYLOAD_ERRORS",
    "AdapterError",
    "AdapterTimeout",
    "DataNotAvailable",
    "MarketDataAdapter",
    "ProviderUnavailable",
    "RateLimitError",
    "build_quote",
    "parse_float",
]
