from __future__ import annotations

import pytest

from gamma_scanner.config.loader import AppSettings, ConfigurationError
from gamma_scanner.scanner.universe import UniverseRegistry


def test_duplicate_symbol_yields_once():
    registry = UniverseRegistry.from_symbols(["GME", "AMC", "GME", "SOFI"])

    assert list(registry) == ["GME", "AMC", "SOFI"]
    assert len(registry) == 3


def test_symbols_are_normalized_and_blanks_dropped():
    registry = UniverseRegistry.from_symbols([" gme", "GME ", "", None, "amc"])

    assert registry.symbols == ("GME", "AMC")
    assert "gme" in registry
    assert "TSLA" not in registry


def test_from_settings_all_merges_watchlists_in_order():
    settings = AppSettings.from_mapping(
        {"watchlists": {"default": ["GME", "AMC"], "crypto": ["MARA", "RIOT", "AMC"]}}
    )

    registry = UniverseRegistry.from_settings(settings, "all")

    assert registry.symbols == ("GME", "AMC", "MARA", "RIOT")


def test_from_settings_unknown_watchlist():
    settings = AppSettings.from_mapping({})

    with pytest.raises(ConfigurationError):
        UniverseRegistry.from_settings(settings, "nope")
