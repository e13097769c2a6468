from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from gamma_scanner.config.loader import FilterSettings
from gamma_scanner.models import IndicatorSet, Quote, ReferenceData
from gamma_scanner.scanner.filters import FilterCascade, ScreenedSymbol, StageCounter
from gamma_scanner.scanner.reference import StaticReferenceTable

STAGES = ["price", "gap", "consolidation", "rsi", "volume", "trend", "short_interest"]


def make_indicators(**overrides) -> IndicatorSet:
    values = dict(
        rsi=40.0,
        ma20=11.0,
        ma50=11.5,
        ma200=11.5,
        gap_percent=-8.0,
        gap_index=25,
        days_since_gap=4,
        gap_close=10.0,
        pre_gap_close=10.87,
        gap_fill_percent=60.0,
        consolidation_percent=6.0,
        volume_trend_percent=10.0,
        volume_spike_ratio=1.6,
        trend_score=55.0,
        last_close=10.5,
        bars=30,
    )
    values.update(overrides)
    return IndicatorSet(**values)


def make_record(symbol: str = "GME", price: float = 10.5, volume: int = 1_000_000, **indicator_overrides) -> ScreenedSymbol:
    return ScreenedSymbol(
        symbol=symbol,
        quote=Quote(symbol=symbol, price=price, volume=volume, source="test"),
        indicators=make_indicators(**indicator_overrides),
    )


@pytest.fixture
def reference_table() -> StaticReferenceTable:
    return StaticReferenceTable(
        {
            "GME": (15.2, 304_000_000),
            "BIGF": (20.0, 2_000_000_000),
        }
    )


@pytest.fixture
def cascade() -> FilterCascade:
    return FilterCascade(FilterSettings())


def test_stage_order_is_fixed(cascade):
    assert list(cascade.stage_names) == STAGES


def test_matching_record_passes_every_stage(cascade, reference_table):
    outcome = cascade.evaluate(make_record(), reference_table)

    assert outcome.survived
    assert list(outcome.passed) == STAGES
    assert outcome.record.reference == ReferenceData(15.2, 304_000_000, False)
    candidate = outcome.record.to_candidate()
    assert candidate.symbol == "GME"


def test_zero_short_interest_fails_only_at_short_interest_stage(cascade, reference_table):
    outcome = cascade.evaluate(make_record(symbol="UNKNOWN"), reference_table)

    assert not outcome.survived
    assert outcome.failed == "short_interest"
    assert list(outcome.passed) == STAGES[:-1]
    assert outcome.record.reference.is_default is True


def test_large_float_fails_short_interest_stage(cascade, reference_table):
    outcome = cascade.evaluate(make_record(symbol="BIGF"), reference_table)

    assert outcome.failed == "short_interest"


def test_reference_lookup_only_for_symbols_reaching_last_stage(cascade):
    source = MagicMock()

    outcome = cascade.evaluate(make_record(gap_percent=-1.0), source)

    assert outcome.failed == "gap"
    source.lookup.assert_not_called()


@pytest.mark.parametrize(
    "overrides, failed",
    [
        ({"price": 50.01}, "price"),
        ({"gap_percent": -15.5}, "gap"),
        ({"gap_percent": -2.9}, "gap"),
        ({"consolidation_percent": 1.9}, "consolidation"),
        ({"consolidation_percent": 15.1}, "consolidation"),
        ({"rsi": 60.5}, "rsi"),
        ({"volume": 499_999}, "volume"),
        ({"trend_score": 24.0}, "trend"),
    ],
)
def test_each_stage_rejects_out_of_range_values(cascade, reference_table, overrides, failed):
    outcome = cascade.evaluate(make_record(**overrides), reference_table)

    assert outcome.failed == failed
    assert list(outcome.passed) == STAGES[: STAGES.index(failed)]


@pytest.mark.parametrize(
    "overrides",
    [
        {"price": 50.0},
        {"gap_percent": -15.0},
        {"gap_percent": -3.0},
        {"consolidation_percent": 2.0},
        {"consolidation_percent": 15.0},
        {"rsi": 60.0},
        {"volume": 500_000},
        {"trend_score": 25.0},
    ],
)
def test_ranges_are_inclusive(cascade, reference_table, overrides):
    assert cascade.evaluate(make_record(**overrides), reference_table).survived


def test_thresholds_come_from_settings(reference_table):
    cascade = FilterCascade(FilterSettings(max_price=5.0))

    assert cascade.evaluate(make_record(price=10.5), reference_table).failed == "price"


def test_batch_apply_is_monotonic(cascade, reference_table):
    records = [
        make_record("GME"),
        make_record("AAA", price=75.0),
        make_record("BBB", gap_percent=-20.0),
        make_record("CCC", rsi=70.0),
        make_record("DDD", volume=10),
        make_record("UNKNOWN"),
        make_record("GME2", trend_score=10.0),
    ]

    result = cascade.apply(records, reference_table)
    sizes = list(result.counts().values())

    assert list(result.counts()) == STAGES
    assert sizes == sorted(sizes, reverse=True)
    assert [record.symbol for record in result.survivors] == ["GME"]
    names = list(result.stages)
    for position, name in enumerate(names[1:], start=1):
        previous = {record.symbol for record in result.stages[names[position - 1]]}
        current = {record.symbol for record in result.stages[name]}
        assert current <= previous


def test_to_candidate_requires_reference():
    record = make_record()
    with pytest.raises(ValueError):
        record.to_candidate()
    assert replace(record, reference=ReferenceData()).to_candidate().reference.float_shares == 500_000_000


def test_stage_counter_keeps_order_and_rejects_unknown():
    counter = StageCounter(["universe", "fetched"])
    counter.increment("universe", 3)
    counter.record(["fetched"])

    assert list(counter) == [("universe", 3), ("fetched", 1)]
    assert counter["fetched"] == 1
    with pytest.raises(KeyError):
        counter.increment("score")
