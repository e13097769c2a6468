from __future__ import annotations

import pytest

from gamma_scanner.models import Candidate, IndicatorSet, Quote, ReferenceData
from gamma_scanner.scoring.base import ScoreContext, band_points, tier_at_most
from gamma_scanner.scoring.config import merge_config
from gamma_scanner.scoring.consolidation import ConsolidationScorer
from gamma_scanner.scoring.gap import GapFillScorer, GapRecencyScorer, GapSizeScorer
from gamma_scanner.scoring.momentum import MovingAverageScorer, RSIScorer, TrendScorer
from gamma_scanner.scoring.short_interest import FloatScorer, ShortInterestScorer
from gamma_scanner.scoring.volume import VolumeSpikeScorer, VolumeTrendScorer

BASE_INDICATORS = dict(
    rsi=50.0,
    ma20=10.0,
    ma50=10.0,
    ma200=10.0,
    gap_percent=-5.0,
    gap_index=20,
    days_since_gap=9,
    gap_close=9.5,
    pre_gap_close=10.0,
    gap_fill_percent=0.0,
    consolidation_percent=20.0,
    volume_trend_percent=-50.0,
    volume_spike_ratio=1.0,
    trend_score=50.0,
    last_close=10.0,
    bars=30,
)


def context(price: float = 10.0, reference: ReferenceData | None = None, **overrides) -> ScoreContext:
    values = dict(BASE_INDICATORS)
    values.update(overrides)
    candidate = Candidate(
        symbol="AMC",
        quote=Quote(symbol="AMC", price=price, volume=1_000_000),
        indicators=IndicatorSet(**values),
        reference=reference or ReferenceData(),
    )
    return ScoreContext(candidate=candidate, config=merge_config(None))


def points(scorer, **kwargs) -> float:
    return scorer.score(context(**kwargs))[0]


@pytest.mark.parametrize("rsi, expected", [(30.0, 20.0), (30.1, 15.0), (40.0, 15.0), (50.0, 10.0), (60.0, 5.0), (60.1, 0.0)])
def test_rsi_tiers(rsi, expected):
    assert points(RSIScorer(), rsi=rsi) == expected


@pytest.mark.parametrize("gap, expected", [(-5.0, 15.0), (-10.0, 15.0), (-3.0, 10.0), (-12.0, 10.0), (-15.0, 10.0), (-2.0, 0.0)])
def test_gap_size_bands(gap, expected):
    assert points(GapSizeScorer(), gap_percent=gap) == expected


@pytest.mark.parametrize(
    "fill, expected",
    [(50.0, 25.0), (80.0, 25.0), (85.0, 20.0), (25.0, 15.0), (95.0, 15.0), (10.0, 10.0), (100.0, 10.0), (5.0, 0.0)],
)
def test_gap_fill_sweet_spot(fill, expected):
    assert points(GapFillScorer(), gap_fill_percent=fill) == expected


def test_gap_fill_sweet_spot_is_tagged():
    _, _, tags = GapFillScorer().score(context(gap_fill_percent=60.0))
    assert tags == ["gap-fill-sweet-spot"]


@pytest.mark.parametrize("days, expected", [(0, 5.0), (3, 5.0), (4, 3.0), (7, 3.0), (8, 0.0)])
def test_gap_recency(days, expected):
    assert points(GapRecencyScorer(), days_since_gap=days) == expected


@pytest.mark.parametrize("width, expected", [(4.9, 10.0), (5.0, 7.0), (9.9, 7.0), (14.9, 4.0), (15.0, 0.0)])
def test_consolidation_tiers(width, expected):
    assert points(ConsolidationScorer(), consolidation_percent=width) == expected


@pytest.mark.parametrize("ratio, expected", [(2.0, 10.0), (1.5, 7.0), (1.2, 4.0), (1.19, 0.0)])
def test_volume_spike_tiers(ratio, expected):
    assert points(VolumeSpikeScorer(), volume_spike_ratio=ratio) == expected


@pytest.mark.parametrize("change, expected", [(51.0, 15.0), (50.0, 12.0), (1.0, 8.0), (0.0, 5.0), (-10.0, 0.0)])
def test_volume_trend_tiers(change, expected):
    assert points(VolumeTrendScorer(), volume_trend_percent=change) == expected


@pytest.mark.parametrize("short_interest, expected", [(25.0, 15.0), (15.0, 12.0), (10.0, 8.0), (5.0, 4.0), (4.9, 0.0)])
def test_short_interest_tiers(short_interest, expected):
    reference = ReferenceData(short_interest_percent=short_interest, float_shares=100_000_000)
    assert points(ShortInterestScorer(), reference=reference) == expected


def test_default_reference_is_called_out():
    _, reasons, _ = ShortInterestScorer().score(context(reference=ReferenceData(is_default=True)))
    assert any("default" in reason for reason in reasons)


@pytest.mark.parametrize(
    "float_shares, expected",
    [(9_999_999, 25.0), (10_000_000, 20.0), (30_000_000, 15.0), (99_000_000, 10.0), (150_000_000, 5.0), (200_000_000, 0.0)],
)
def test_float_tiers(float_shares, expected):
    assert points(FloatScorer(), reference=ReferenceData(float_shares=float_shares)) == expected


@pytest.mark.parametrize("price, expected", [(9.0, 0.0), (10.5, 10.0)])
def test_moving_average_position(price, expected):
    assert points(MovingAverageScorer(), price=price) == expected


def test_moving_average_partial_credit():
    assert points(MovingAverageScorer(), price=10.5, ma20=11.0, ma50=10.0) == 5.0


@pytest.mark.parametrize(
    "trend, expected",
    [(70.0, 15.0), (60.0, 12.0), (50.0, 10.0), (40.0, 5.0), (30.0, 0.0), (29.9, -15.0)],
)
def test_trend_tiers(trend, expected):
    assert points(TrendScorer(), trend_score=trend) == expected


def test_tier_helpers():
    assert tier_at_most(5, [(3, 1), (6, 2)]) == 2
    assert tier_at_most(7, [(3, 1), (6, 2)], default=-1) == -1
    assert band_points(4, [(5, 10, 3), (3, 15, 2)]) == 2


def test_merge_config_merges_mapping_sections():
    merged = merge_config({"weights": {"rsi": 0.5}, "score_bounds": {"max": 90}, "enabled": ["rsi"], "note": "x"})

    assert merged["weights"]["rsi"] == 0.5
    assert merged["weights"]["trend"] == 1.0
    assert merged["score_bounds"] == {"min": 0.0, "max": 90}
    assert merged["enabled"] == ["rsi"]
    assert merged["note"] == "x"
    assert merged["tiers"] == {}
