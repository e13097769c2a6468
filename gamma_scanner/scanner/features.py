"""Technical indicators for the gap-down consolidation setup."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from gamma_scanner.models import IndicatorSet, PriceBar

NEUTRAL_RSI = 50.0


class InsufficientHistory(ValueError):
    """Raised when a series is too short for gap and consolidation detection."""


@dataclass(frozen=True)
class GapEvent:
    """The largest single-session drop found in a history window."""

    index: int
    percent: float
    close: float
    previous_close: float


@dataclass(frozen=True)
class TrendScorePolicy:
    """Point allocations for the trend score.

    These are empirically tuned policy constants, kept here so they can be
    overridden from settings rather than edited in the algorithm.
    """

    start: float = 50.0
    above_ma20: float = 15.0
    below_ma20: float = -10.0
    above_ma50: float = 15.0
    below_ma50: float = -10.0
    ma_bullish: float = 15.0
    ma_near_crossover: float = 5.0
    ma_bearish: float = -15.0
    near_crossover_ratio: float = 0.95
    momentum_strong_threshold: float = 5.0
    momentum_strong: float = 15.0
    momentum_positive: float = 10.0
    momentum_flat_threshold: float = -5.0
    momentum_flat: float = 5.0
    momentum_negative: float = -10.0
    higher_closes_strong_count: int = 12
    higher_closes_strong: float = 15.0
    higher_closes_moderate_count: int = 8
    higher_closes_moderate: float = 10.0
    higher_closes_weak_count: int = 5
    higher_closes_weak: float = 5.0
    higher_closes_none: float = -10.0
    above_ma200: float = 10.0
    below_ma200: float = -10.0


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """Build an ascending OHLCV frame from price bars."""

    if not bars:
        return pd.DataFrame(columns=["Open", "High", "Low", "Close", "Volume"], dtype=float)
    frame = pd.DataFrame(
        {
            "Open": [bar.open if bar.open is not None else np.nan for bar in bars],
            "High": [bar.high for bar in bars],
            "Low": [bar.low for bar in bars],
            "Close": [bar.close for bar in bars],
            "Volume": [float(bar.volume) for bar in bars],
        },
        index=pd.DatetimeIndex([bar.timestamp for bar in bars], name="Date"),
    )
    return frame.sort_index()


def rsi(history: pd.DataFrame, period: int = 14) -> float:
    """Simple-average RSI over the trailing ``period`` changes.

    Returns the neutral value 50 when fewer than ``period + 1`` bars exist
    or when the window is completely flat.
    """

    close = history["Close"]
    if len(close) < period + 1:
        return NEUTRAL_RSI
    changes = close.diff().tail(period)
    avg_gain = float(changes.clip(lower=0).sum()) / period
    avg_loss = float(-changes.clip(upper=0).sum()) / period
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else NEUTRAL_RSI
    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


def moving_average(history: pd.DataFrame, window: int) -> float:
    close = history["Close"]
    if close.empty:
        return float("nan")
    return float(close.tail(window).mean())


def detect_gap(history: pd.DataFrame) -> Optional[GapEvent]:
    """Find the most negative close-to-close change; earliest wins ties."""

    close = history["Close"]
    if len(close) < 2:
        return None
    changes = close.pct_change() * 100.0
    worst = changes.iloc[1:]
    if worst.empty or not (worst < 0).any():
        return None
    position = int(np.argmin(worst.to_numpy())) + 1
    return GapEvent(
        index=position,
        percent=float(changes.iloc[position]),
        close=float(close.iloc[position]),
        previous_close=float(close.iloc[position - 1]),
    )


def gap_fill_percent(gap: Optional[GapEvent], current_close: float) -> float:
    """Share of the gap's drop recovered since the gap day, clamped to [0, 100].

    Policy choice: recovery is measured against the size of the drop
    (pre-gap close minus gap close), not against the gap-day close alone,
    so 100 means the gap is fully closed.
    """

    if gap is None:
        return 0.0
    drop = gap.previous_close - gap.close
    if drop <= 0:
        return 0.0
    recovered = (current_close - gap.close) / drop * 100.0
    return float(max(0.0, min(100.0, recovered)))


def consolidation_percent(history: pd.DataFrame, window: int = 5) -> float:
    recent = history.tail(window)
    low = float(recent["Low"].min())
    high = float(recent["High"].max())
    if low <= 0 or not math.isfinite(low):
        return float("inf")
    return (high - low) / low * 100.0


def volume_trend_percent(history: pd.DataFrame, window: int = 5) -> float:
    """Percent change of the trailing volume mean against the window before it."""

    volume = history["Volume"]
    recent = volume.tail(window)
    prior = volume.iloc[-2 * window : -window] if len(volume) > window else volume.iloc[0:0]
    if recent.empty or prior.empty:
        return 0.0
    prior_mean = float(prior.mean())
    if prior_mean <= 0:
        return 0.0
    return (float(recent.mean()) - prior_mean) / prior_mean * 100.0


def volume_spike_ratio(history: pd.DataFrame, window: int = 20) -> float:
    volume = history["Volume"]
    if volume.empty:
        return 0.0
    baseline = float(volume.tail(window).mean())
    if baseline <= 0 or not math.isfinite(baseline):
        return 0.0
    return float(volume.iloc[-1]) / baseline


def trend_score(history: pd.DataFrame, policy: TrendScorePolicy = TrendScorePolicy()) -> float:
    """Bounded 0-100 trend score; higher is more bullish.

    The running total may leave the range while components are added; it
    is clamped once at the end.
    """

    close = history["Close"]
    if close.empty:
        return policy.start
    current = float(close.iloc[-1])
    bars = len(close)
    ma20 = moving_average(history, 20)
    ma50 = moving_average(history, 50) if bars >= 50 else ma20

    score = policy.start
    score += policy.above_ma20 if current > ma20 else policy.below_ma20
    score += policy.above_ma50 if current > ma50 else policy.below_ma50

    if ma20 > ma50:
        score += policy.ma_bullish
    elif ma20 > ma50 * policy.near_crossover_ratio:
        score += policy.ma_near_crossover
    else:
        score += policy.ma_bearish

    if bars >= 20:
        recent10 = float(close.iloc[-10:].mean())
        prev10 = float(close.iloc[-20:-10].mean())
        momentum = (recent10 - prev10) / prev10 * 100.0 if prev10 > 0 else 0.0
        if momentum > policy.momentum_strong_threshold:
            score += policy.momentum_strong
        elif momentum > 0:
            score += policy.momentum_positive
        elif momentum > policy.momentum_flat_threshold:
            score += policy.momentum_flat
        else:
            score += policy.momentum_negative

    window = close.tail(20)
    higher_closes = int((window.diff() > 0).sum())
    if higher_closes > policy.higher_closes_strong_count:
        score += policy.higher_closes_strong
    elif higher_closes > policy.higher_closes_moderate_count:
        score += policy.higher_closes_moderate
    elif higher_closes > policy.higher_closes_weak_count:
        score += policy.higher_closes_weak
    else:
        score += policy.higher_closes_none

    if bars >= 200:
        ma200 = moving_average(history, 200)
        score += policy.above_ma200 if current > ma200 else policy.below_ma200

    return float(max(0.0, min(100.0, score)))


def compute_indicators(
    bars: Sequence[PriceBar],
    *,
    min_bars: int = 15,
    rsi_period: int = 14,
    consolidation_window: int = 5,
    volume_trend_window: int = 5,
    volume_spike_window: int = 20,
    policy: TrendScorePolicy = TrendScorePolicy(),
) -> IndicatorSet:
    """Return the indicator set for one symbol's ascending price history."""

    if len(bars) < min_bars:
        raise InsufficientHistory(f"{len(bars)} bars available, {min_bars} required")

    history = bars_to_frame(bars)
    count = len(history)
    last_close = float(history["Close"].iloc[-1])

    ma20 = moving_average(history, 20)
    ma50 = moving_average(history, 50) if count >= 50 else ma20
    ma200 = moving_average(history, 200) if count >= 200 else ma50

    gap = detect_gap(history)
    return IndicatorSet(
        rsi=rsi(history, rsi_period),
        ma20=ma20,
        ma50=ma50,
        ma200=ma200,
        gap_percent=gap.percent if gap else 0.0,
        gap_index=gap.index if gap else None,
        days_since_gap=(count - 1 - gap.index) if gap else count - 1,
        gap_close=gap.close if gap else None,
        pre_gap_close=gap.previous_close if gap else None,
        gap_fill_percent=gap_fill_percent(gap, last_close),
        consolidation_percent=consolidation_percent(history, consolidation_window),
        volume_trend_percent=volume_trend_percent(history, volume_trend_window),
        volume_spike_ratio=volume_spike_ratio(history, volume_spike_window),
        trend_score=trend_score(history, policy),
        last_close=last_close,
        bars=count,
    )


__all__ = [
    "GapEvent",
    "InsufficientHistory",
    "NEUTRAL_RSI",
    "TrendScorePolicy",
    "bars_to_frame",
    "compute_indicators",
    "consolidation_percent",
    "detect_gap",
    "gap_fill_percent",
    "moving_average",
    "rsi",
    "trend_score",
    "volume_spike_ratio",
    "volume_trend_percent",
]
