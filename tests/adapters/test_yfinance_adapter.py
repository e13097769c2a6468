from __future__ import annotations

from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from gamma_scanner.adapters.base import AdapterError, AdapterTimeout, DataNotAvailable
from gamma_scanner.adapters.yfinance import YFinanceMarketDataAdapter, run_with_timeout


@pytest.fixture
def ticker_mock():
    ticker = MagicMock()
    ticker.fast_info = {
        "lastPrice": 12.5,
        "previousClose": 13.0,
        "lastVolume": 800_000,
        "tenDayAverageVolume": 1_200_000,
    }
    ticker.info = {}
    return ticker


def make_history() -> pd.DataFrame:
    index = pd.date_range("2024-01-01", periods=5, freq="D", tz="America/New_York")
    return pd.DataFrame(
        {
            "Open": [10.0, 10.5, 11.0, None, 11.5],
            "High": [10.5, 11.0, 11.5, 11.6, 12.0],
            "Low": [9.5, 10.0, 10.5, 10.8, 11.0],
            "Close": [10.2, 10.8, 11.2, 11.4, 11.9],
            "Volume": [1000, 1100, 1200, 1300, 1400],
        },
        index=index,
    )


def test_get_quote_uses_fast_info(ticker_mock):
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    quote = adapter.get_quote("sofi")

    assert quote.symbol == "SOFI"
    assert quote.price == pytest.approx(12.5)
    assert quote.previous_close == pytest.approx(13.0)
    assert quote.volume == 800_000
    assert quote.average_volume == 1_200_000
    assert quote.source == "yfinance"


def test_get_quote_falls_back_to_info(ticker_mock):
    ticker_mock.fast_info = {}
    ticker_mock.info = {"currentPrice": 7.25, "previousClose": 7.5, "volume": 600_000, "averageVolume": 900_000}
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    quote = adapter.get_quote("NOK")

    assert quote.price == pytest.approx(7.25)
    assert quote.average_volume == 900_000


def test_get_quote_without_price_raises(ticker_mock):
    ticker_mock.fast_info = {}
    ticker_mock.info = {"volume": 10}
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    with pytest.raises(DataNotAvailable):
        adapter.get_quote("DEAD")


def test_get_history_returns_naive_ascending_bars(ticker_mock):
    ticker_mock.history.return_value = make_history()
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    bars = adapter.get_history("AMC", 3)

    assert [bar.close for bar in bars] == [11.2, 11.4, 11.9]
    assert bars[1].open is None
    assert all(bar.timestamp.tzinfo is None for bar in bars)
    _, kwargs = ticker_mock.history.call_args
    assert kwargs["interval"] == "1d"


def test_empty_history_raises(ticker_mock):
    ticker_mock.history.return_value = pd.DataFrame()
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    with pytest.raises(DataNotAvailable):
        adapter.get_history("AMC", 30)


def test_generic_errors_are_wrapped(ticker_mock):
    ticker_mock.history.side_effect = RuntimeError("yahoo is down")
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    with pytest.raises(AdapterError, match="yahoo is down"):
        adapter.get_history("AMC", 30)


def test_run_with_timeout_raises_when_thread_is_still_alive():
    with patch("gamma_scanner.adapters.yfinance.threading.Thread") as thread_cls:
        thread_cls.return_value.is_alive.return_value = True
        with pytest.raises(AdapterTimeout):
            run_with_timeout(lambda: 1, 0.01)


def test_run_with_timeout_returns_result():
    assert run_with_timeout(lambda: 42, 5) == 42


def test_history_missing_columns_raises_data_not_available(ticker_mock):
    ticker_mock.history.return_value = make_history().drop(columns=["High", "Low"])
    adapter = YFinanceMarketDataAdapter(ticker_factory=lambda _: ticker_mock)

    with pytest.raises(DataNotAvailable, match="malformed history"):
        adapter.get_history("AMC", 3)
