"""Environment aware configuration loader for the gamma scanner."""

from __future__ import annotations

import copy
import dataclasses
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, MutableMapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from gamma_scanner.adapters import ADAPTER_NAMES
from gamma_scanner.scanner.features import TrendScorePolicy
from gamma_scanner.scoring.config import DEFAULT_SCORER_CONFIG
from gamma_scanner.scoring.engine import validate_scoring_config


class ConfigurationError(ValueError):
    """Raised when settings are missing or invalid. Fatal before any fetch."""


DEFAULT_SETTINGS: Dict[str, Any] = {
    "watchlists": {
        "default": ["GME", "AMC", "SOFI", "PLTR"],
    },
    "providers": {
        "order": ["twelve_data", "alpha_vantage"],
        "settings": {
            "twelve_data": {"api_key_env": "TWELVE_DATA_API_KEY", "timeout": 10.0},
            "alpha_vantage": {"api_key_env": "ALPHA_VANTAGE_API_KEY", "timeout": 10.0},
            "yfinance": {"timeout": 30.0},
        },
    },
    "scan": {
        "lookback_days": 60,
        "request_delay_seconds": 0.2,
        "top_n": 15,
        "min_history_bars": 15,
    },
    "filters": {},
    "options": {},
    "indicators": {},
    "scoring": copy.deepcopy(DEFAULT_SCORER_CONFIG),
    "reference": {},
    "storage": {
        "backend": "sqlite",
        "sqlite": {
            "path": "data/gamma_scanner.db",
            "pragmas": {},
        },
        "json": {
            "output_dir": "outputs/gamma_scanner",
        },
    },
}

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
CONFIG_DIR_VARIABLE = "GAMMA_SCANNER_CONFIG_DIR"
ENVIRONMENT_VARIABLE = "APP_ENV"


class ProviderSettings(BaseModel):
    """Ordered market data sources; the first is primary, the rest are fallbacks."""

    model_config = ConfigDict(frozen=True)

    order: List[str] = Field(default_factory=lambda: ["twelve_data", "alpha_vantage"])
    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("order", mode="before")
    @classmethod
    def _normalize_order(cls, value: Any) -> List[str]:
        return [str(name).strip().lower() for name in list(value or [])]

    @field_validator("order")
    @classmethod
    def _known_providers(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one provider must be configured")
        unknown = [name for name in value if name not in ADAPTER_NAMES]
        if unknown:
            raise ValueError(f"unknown providers: {', '.join(unknown)}")
        if len(set(value)) != len(value):
            raise ValueError("provider order contains duplicates")
        return value

    def options_for(self, name: str) -> Dict[str, Any]:
        return dict(self.settings.get(name, {}))


class ScanSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    lookback_days: int = Field(60, ge=15)
    request_delay_seconds: float = Field(0.2, ge=0.0)
    top_n: int = Field(15, ge=1)
    min_history_bars: int = Field(15, ge=6)

    @model_validator(mode="after")
    def _lookback_covers_minimum(self) -> "ScanSettings":
        if self.lookback_days < self.min_history_bars:
            raise ValueError("lookback_days must be >= min_history_bars")
        return self


class FilterSettings(BaseModel):
    """Thresholds for the filter cascade. Ranges are inclusive."""

    model_config = ConfigDict(frozen=True)

    max_price: float = Field(50.0, gt=0)
    gap_min_percent: float = -15.0
    gap_max_percent: float = -3.0
    consolidation_min_percent: float = Field(2.0, ge=0)
    consolidation_max_percent: float = Field(15.0, gt=0)
    rsi_max: float = Field(60.0, ge=0, le=100)
    volume_min: int = Field(500_000, ge=0)
    trend_min: float = Field(25.0, ge=0, le=100)
    short_interest_min: float = Field(5.0, ge=0)
    float_max: int = Field(1_000_000_000, gt=0)
    score_min: float = Field(20.0, ge=0, le=100)

    @model_validator(mode="after")
    def _ordered_ranges(self) -> "FilterSettings":
        if self.gap_max_percent > 0:
            raise ValueError("gap_max_percent must be negative (a gap down)")
        if self.gap_min_percent > self.gap_max_percent:
            raise ValueError("gap_min_percent must be <= gap_max_percent")
        if self.consolidation_min_percent > self.consolidation_max_percent:
            raise ValueError("consolidation_min_percent must be <= consolidation_max_percent")
        return self


class OptionsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    premium_min: float = Field(0.01, gt=0)
    premium_max: float = Field(0.10, gt=0)
    max_otm_percent: float = Field(15.0, ge=0)
    max_plays: int = Field(3, ge=1, le=3)
    strike_multipliers: List[float] = Field(default_factory=lambda: [1.0, 0.90, 0.95, 1.05, 1.10])
    max_strike: float = Field(100.0, gt=0)
    min_underlying_price: float = Field(1.0, ge=0)
    max_underlying_price: Optional[float] = None
    base_time_value: float = Field(0.03, ge=0)
    otm_time_value: float = Field(0.05, ge=0)

    @model_validator(mode="after")
    def _ordered_band(self) -> "OptionsSettings":
        if self.premium_min > self.premium_max:
            raise ValueError("premium_min must be <= premium_max")
        if not self.strike_multipliers or any(m <= 0 for m in self.strike_multipliers):
            raise ValueError("strike_multipliers must be positive")
        if self.max_underlying_price is not None and self.max_underlying_price < self.min_underlying_price:
            raise ValueError("max_underlying_price must be >= min_underlying_price")
        return self


class IndicatorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    rsi_period: int = Field(14, ge=2)
    consolidation_window: int = Field(5, ge=2)
    volume_trend_window: int = Field(5, ge=1)
    volume_spike_window: int = Field(20, ge=1)
    trend: Dict[str, float] = Field(default_factory=dict)

    @field_validator("trend")
    @classmethod
    def _known_trend_keys(cls, value: Dict[str, float]) -> Dict[str, float]:
        known = {field.name for field in dataclasses.fields(TrendScorePolicy)}
        unknown = sorted(set(value) - known)
        if unknown:
            raise ValueError(f"unknown trend policy keys: {', '.join(unknown)}")
        return value

    def trend_policy(self) -> TrendScorePolicy:
        return TrendScorePolicy(**self.trend)


class ScoringSettings(BaseModel):
    """Scoring configuration wrapper for the composite engine."""

    model_config = ConfigDict(frozen=True)

    enabled: List[str] = Field(default_factory=lambda: list(DEFAULT_SCORER_CONFIG.get("enabled", [])))
    weights: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_SCORER_CONFIG.get("weights", {})))
    score_bounds: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_SCORER_CONFIG.get("score_bounds", {})))
    extra: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _capture_extra(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        known_keys = {"enabled", "weights", "score_bounds", "extra"}
        extras = {key: values[key] for key in list(values.keys()) if key not in known_keys}
        merged_extra = dict(values.get("extra", {}))
        merged_extra.update(extras)
        for key in extras:
            values.pop(key, None)
        values["extra"] = merged_extra
        return values

    @field_validator("weights", mode="before")
    @classmethod
    def _coerce_weights(cls, value: Mapping[str, Any]) -> Dict[str, float]:
        return {key: float(val) for key, val in dict(value or {}).items()}

    @model_validator(mode="after")
    def _known_scorers_and_tiers(self) -> "ScoringSettings":
        validate_scoring_config(self.to_engine_config())
        return self

    def to_engine_config(self) -> Dict[str, Any]:
        config = {
            "enabled": list(self.enabled),
            "weights": dict(self.weights),
            "score_bounds": dict(self.score_bounds),
        }
        config.update(self.extra)
        return config


class ReferenceSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Optional[str] = None
    default_short_interest: float = Field(0.0, ge=0)
    default_float: int = Field(500_000_000, gt=0)


class SQLiteSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = "data/gamma_scanner.db"
    pragmas: Dict[str, Any] = Field(default_factory=dict)


class JSONReportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_dir: str = "outputs/gamma_scanner"


class StorageSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    backend: Literal["sqlite", "json"] = "sqlite"
    sqlite: SQLiteSettings = Field(default_factory=SQLiteSettings)
    json_report: JSONReportSettings = Field(default_factory=JSONReportSettings, alias="json")


class AppSettings(BaseModel):
    """Fully resolved application settings loaded from YAML."""

    model_config = ConfigDict(frozen=True)

    env: str
    watchlists: Dict[str, List[str]]
    providers: ProviderSettings
    scan: ScanSettings
    filters: FilterSettings
    options: OptionsSettings
    indicators: IndicatorSettings
    scoring: ScoringSettings
    reference: ReferenceSettings
    storage: StorageSettings

    @field_validator("env")
    @classmethod
    def _normalize_env(cls, value: str) -> str:
        return value.lower()

    @field_validator("watchlists", mode="before")
    @classmethod
    def _coerce_watchlists(cls, value: Mapping[str, Any]) -> Dict[str, List[str]]:
        return {key: [str(item) for item in (items or [])] for key, items in dict(value or {}).items()}

    def get_watchlist(self, name: str = "default") -> List[str]:
        if name == "all":
            merged: List[str] = []
            for items in self.watchlists.values():
                merged.extend(items)
            return merged
        if name not in self.watchlists:
            raise ConfigurationError(f"Unknown watchlist '{name}'")
        return list(self.watchlists[name])

    def scoring_dict(self) -> Dict[str, Any]:
        return self.scoring.to_engine_config()

    def parameters(self) -> Dict[str, Any]:
        """Every threshold used by a run, suitable for persisting alongside results."""

        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any] | None = None, env: str = "custom") -> "AppSettings":
        """Build settings from defaults plus in-memory overrides."""

        merged = _deep_merge(copy.deepcopy(DEFAULT_SETTINGS), dict(overrides or {}))
        merged["env"] = env
        return _validate(merged, source=f"overrides for '{env}'")


def _deep_merge(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            existing = base.get(key)
            if isinstance(existing, MutableMapping):
                base[key] = _deep_merge(copy.deepcopy(existing), value)
            else:
                base[key] = copy.deepcopy(value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle.read()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping at the root.")
        return data


def _validate(payload: Dict[str, Any], source: str) -> AppSettings:
    try:
        return AppSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {source}: {exc}") from exc


def _config_dir() -> Path:
    override = os.getenv(CONFIG_DIR_VARIABLE)
    return Path(override) if override else CONFIG_DIR


def _build_settings(env: str) -> AppSettings:
    config_path = _config_dir() / f"{env}.yaml"
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file for environment '{env}' not found at {config_path}")

    merged = copy.deepcopy(DEFAULT_SETTINGS)
    overrides = _load_yaml(config_path)
    merged = _deep_merge(merged, overrides)
    merged["env"] = env
    return _validate(merged, source=str(config_path))


@lru_cache(maxsize=None)
def _cached_settings(env: str) -> AppSettings:
    return _build_settings(env)


def get_settings(env: Optional[str] = None) -> AppSettings:
    """Load settings for the requested environment (default: APP_ENV or 'dev')."""

    resolved_env = (env or os.getenv(ENVIRONMENT_VARIABLE, "dev")).strip().lower()
    return _cached_settings(resolved_env)


def reset_settings_cache() -> None:
    """Clear the cached settings, primarily used during tests."""

    _cached_settings.cache_clear()


__all__ = [
    "AppSettings",
    "ConfigurationError",
    "FilterSettings",
    "IndicatorSettings",
    "JSONReportSettings",
    "OptionsSettings",
    "ProviderSettings",
    "ReferenceSettings",
    "SQLiteSettings",
    "ScanSettings",
    "ScoringSettings",
    "StorageSettings",
    "get_settings",
    "reset_settings_cache",
]
