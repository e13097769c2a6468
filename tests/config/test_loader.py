from __future__ import annotations

import pytest

from gamma_scanner.adapters import ProviderChain
from gamma_scanner.config import build_provider_chain, build_reference_source, get_settings, reset_settings_cache
from gamma_scanner.config.loader import (
    CONFIG_DIR_VARIABLE,
    ENVIRONMENT_VARIABLE,
    AppSettings,
    ConfigurationError,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_dev_settings_load(monkeypatch):
    monkeypatch.delenv(CONFIG_DIR_VARIABLE, raising=False)
    monkeypatch.setenv(ENVIRONMENT_VARIABLE, "dev")
    settings = get_settings()

    assert settings.env == "dev"
    assert "GME" in settings.get_watchlist()
    assert settings.providers.order == ["yfinance"]
    assert settings.scan.request_delay_seconds == 0.2
    assert settings.filters.max_price == 50.0
    assert settings.scoring.score_bounds["max"] == 100.0


def test_prod_settings_use_twelve_data_with_fallback(monkeypatch):
    monkeypatch.delenv(CONFIG_DIR_VARIABLE, raising=False)
    monkeypatch.setenv(ENVIRONMENT_VARIABLE, "prod")
    settings = get_settings()

    assert settings.providers.order == ["twelve_data", "alpha_vantage"]
    assert "TSLA" in settings.get_watchlist("tech")
    assert settings.storage.backend == "json"
    assert settings.storage.json_report.output_dir == "outputs/gamma_scanner"


def test_missing_environment_raises(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_DIR_VARIABLE, str(tmp_path))
    with pytest.raises(ConfigurationError):
        get_settings("unknown")


def test_settings_are_cached(monkeypatch, tmp_path):
    (tmp_path / "qa.yaml").write_text("scan:\n  top_n: 5\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_DIR_VARIABLE, str(tmp_path))

    first = get_settings("qa")
    second = get_settings("QA")

    assert first is second
    assert first.scan.top_n == 5
    assert first.scan.lookback_days == 60


def test_invalid_yaml_raises_configuration_error(monkeypatch, tmp_path):
    (tmp_path / "broken.yaml").write_text("filters: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_DIR_VARIABLE, str(tmp_path))

    with pytest.raises(ConfigurationError):
        get_settings("broken")


@pytest.mark.parametrize(
    "overrides",
    [
        {"filters": {"gap_min_percent": -3, "gap_max_percent": -15}},
        {"filters": {"gap_max_percent": 2}},
        {"filters": {"consolidation_min_percent": 20, "consolidation_max_percent": 15}},
        {"options": {"premium_min": 0.5, "premium_max": 0.1}},
        {"scan": {"request_delay_seconds": -1}},
        {"providers": {"order": ["bloomberg"]}},
        {"providers": {"order": []}},
        {"indicators": {"trend": {"not_a_policy_key": 1}}},
        {"filters": {"rsi_max": "sixty"}},
        {"scoring": {"enabled": ["rsi", "bogus"]}},
        {"scoring": {"tiers": {"rsi": [[30.0]]}}},
        {"scoring": {"tiers": {"gap_size": [[5, 15]]}}},
        {"scoring": {"tiers": {"rsi": [[30, "lots"]]}}},
        {"scoring": {"tiers": {"rsi": "30:20"}}},
        {"scoring": {"tiers": {"not_a_scorer": [[1, 2]]}}},
    ],
)
def test_invalid_thresholds_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        AppSettings.from_mapping(overrides)


def test_from_mapping_deep_merges_defaults():
    settings = AppSettings.from_mapping({"filters": {"rsi_max": 45}, "watchlists": {"extra": ["riot"]}})

    assert settings.filters.rsi_max == 45
    assert settings.filters.volume_min == 500_000
    assert settings.get_watchlist("extra") == ["riot"]
    assert settings.get_watchlist("all") == ["GME", "AMC", "SOFI", "PLTR", "riot"]


def test_unknown_watchlist_raises():
    settings = AppSettings.from_mapping({})
    with pytest.raises(ConfigurationError):
        settings.get_watchlist("missing")


def test_scoring_extras_reach_engine_config():
    settings = AppSettings.from_mapping({"scoring": {"tiers": {"rsi": [[25, 20]]}, "weights": {"trend": 2.0}}})

    config = settings.scoring_dict()

    assert config["tiers"] == {"rsi": [[25, 20]]}
    assert config["weights"]["trend"] == 2.0
    assert config["weights"]["rsi"] == 1.0


def test_parameters_dump_includes_thresholds():
    parameters = AppSettings.from_mapping({}).parameters()

    assert parameters["filters"]["score_min"] == 20.0
    assert parameters["options"]["premium_max"] == 0.10
    assert "json" in parameters["storage"]


def test_trend_policy_overrides():
    settings = AppSettings.from_mapping({"indicators": {"trend": {"start": 40}}})
    assert settings.indicators.trend_policy().start == 40


def test_build_provider_chain_requires_api_keys():
    settings = AppSettings.from_mapping({})

    with pytest.raises(ConfigurationError, match="TWELVE_DATA_API_KEY"):
        build_provider_chain(settings, environ={})


def test_build_provider_chain_uses_environment_keys():
    settings = AppSettings.from_mapping({})

    chain = build_provider_chain(
        settings,
        environ={"TWELVE_DATA_API_KEY": "td", "ALPHA_VANTAGE_API_KEY": "av"},
    )

    assert isinstance(chain, ProviderChain)
    assert chain.names == ["twelve_data", "alpha_vantage"]


def test_build_provider_chain_rejects_unknown_adapter_options():
    settings = AppSettings.from_mapping({"providers": {"order": ["yfinance"], "settings": {"yfinance": {"colour": "red"}}}})

    with pytest.raises(ConfigurationError):
        build_provider_chain(settings, environ={})


def test_build_reference_source_missing_file(tmp_path):
    settings = AppSettings.from_mapping({"reference": {"path": str(tmp_path / "missing.csv")}})

    with pytest.raises(ConfigurationError):
        build_reference_source(settings)


def test_band_tier_overrides_need_three_values():
    settings = AppSettings.from_mapping({"scoring": {"tiers": {"gap_size": [[4, 12, 15]], "rsi": [[35, 20]]}}})

    assert settings.scoring_dict()["tiers"]["gap_size"] == [[4, 12, 15]]
