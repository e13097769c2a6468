from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriceBar(BaseModel):
    """One daily OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: Optional[float] = None
    high: float
    low: float
    close: float
    volume: int = 0

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            text = value.strip()
            try:
                return datetime.strptime(text, "%Y-%m-%d")
            except ValueError:
                return datetime.fromisoformat(text)
        if hasattr(value, "to_pydatetime"):
            return value.to_pydatetime()
        raise ValueError("Unsupported timestamp format")

    @field_validator("open", mode="before")
    @classmethod
    def coerce_optional_float(cls, value: Any) -> Optional[float]:
        if value in (None, ""):
            return None
        return float(value)

    @field_validator("high", "low", "close", mode="before")
    @classmethod
    def coerce_float(cls, value: Any) -> float:
        return float(value)

    @field_validator("volume", mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> int:
        return int(float(value or 0))


class Quote(BaseModel):
    """Latest snapshot for a symbol as reported by a market data source."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    previous_close: Optional[float] = None
    volume: int = 0
    average_volume: int = 0
    source: str = "unknown"

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, value: Any) -> str:
        return str(value).strip().upper()

    @field_validator("previous_close", mode="before")
    @classmethod
    def coerce_optional_float(cls, value: Any) -> Optional[float]:
        if value in (None, ""):
            return None
        return float(value)

    @field_validator("volume", "average_volume", mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> int:
        return int(float(value or 0))


__all__ = ["PriceBar", "Quote"]
