"""Adapter implementations for external market data providers."""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Type

from .base import (
    AdapterError,
    AdapterTimeout,
    DataNotAvailable,
    MarketDataAdapter,
    ProviderUnavailable,
    RateLimitError,
)
from .chain import MarketSnapshot, ProviderChain, normalize_history

_ADAPTER_REGISTRY: Dict[str, str] = {
    "twelve_data": "gamma_scanner.adapters.twelve_data:TwelveDataAdapter",
    "alpha_vantage": "gamma_scanner.adapters.alpha_vantage:AlphaVantageAdapter",
    "yfinance": "gamma_scanner.adapters.yfinance:YFinanceMarketDataAdapter",
}

ADAPTER_NAMES = tuple(_ADAPTER_REGISTRY)


def create_adapter(provider: str, **settings: Any) -> MarketDataAdapter:
    """Instantiate a market data adapter by name.

    Args:
        provider: The lowercase name of the provider to load.
        **settings: Keyword arguments forwarded to the adapter constructor.

    Returns:
        An instance of the requested adapter implementation.

    Raises:
        KeyError: If the provider name is unknown.
    """

    normalized = provider.lower()
    try:
        dotted_path = _ADAPTER_REGISTRY[normalized]
    except KeyError as exc:
        raise KeyError(f"Unknown market data provider: {provider}") from exc

    module_name, class_name = dotted_path.split(":", 1)
    module = import_module(module_name)
    adapter_cls: Type[MarketDataAdapter] = getattr(module, class_name)
    return adapter_cls(**settings)


__all__ = [
    "ADAPTER_NAMES",
    "AdapterError",
    "AdapterTimeout",
    "DataNotAvailable",
    "MarketDataAdapter",
    "MarketSnapshot",
    "ProviderChain",
    "ProviderUnavailable",
    "RateLimitError",
    "create_adapter",
    "normalize_history",
]
