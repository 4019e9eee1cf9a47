"""
Tests for the S&P 500 benchmark resolver.
"""

from datetime import date

import pytest

from fakes import FakeMarketData, make_series
from kronos.scoring.benchmark import BenchmarkResolver, max_drawdown
from kronos.scoring.constants import HISTORICAL_ANALOGS, get_analog
from kronos.scoring.schemas import AnalogId, DateRange, HistoricalAnalog, ReturnSource

COVID = get_analog(AnalogId.COVID_CRASH)


class TestMaxDrawdown:
    """Tests for max_drawdown."""

    def test_running_peak_to_trough(self):
        """The trough is measured from the highest earlier close."""
        points = make_series(date(2020, 2, 3), [100.0, 120.0, 90.0, 110.0, 96.0])
        assert max_drawdown(points) == pytest.approx(0.25)

    def test_monotonic_rise_has_no_drawdown(self):
        points = make_series(date(2020, 2, 3), [100.0, 101.0, 105.0])
        assert max_drawdown(points) == 0.0

    def test_later_decline_from_first_close(self):
        points = make_series(date(2020, 2, 3), [100.0, 80.0, 70.0])
        assert max_drawdown(points) == pytest.approx(0.30)

    def test_too_few_points(self):
        assert max_drawdown(make_series(date(2020, 2, 3), [100.0])) == 0.0


class TestBenchmarkResolver:
    """Tests for BenchmarkResolver tiers."""

    @pytest.mark.asyncio
    async def test_index_preferred(self, test_settings):
        market = FakeMarketData(series={
            "^SP500TR": make_series(date(2020, 2, 3), [100.0, 70.0, 80.0]),
            "SPY": make_series(date(2020, 2, 3), [100.0, 50.0]),
        })
        resolver = BenchmarkResolver(market, test_settings)

        data = await resolver.resolve(COVID)

        assert data.return_value == pytest.approx(-0.20)
        assert data.drawdown == pytest.approx(0.30)
        assert data.source == ReturnSource.MARKET_DATA
        assert data.ticker == "^SP500TR"
        assert market.tickers_called == ["^SP500TR"]

    @pytest.mark.asyncio
    async def test_proxy_when_index_unavailable(self, test_settings):
        market = FakeMarketData(series={"SPY": make_series(date(2020, 2, 3), [100.0, 90.0])})
        resolver = BenchmarkResolver(market, test_settings)

        data = await resolver.resolve(COVID)

        assert data.ticker == "SPY"
        assert data.return_value == pytest.approx(-0.10)
        assert market.tickers_called == ["^SP500TR", "SPY"]

    @pytest.mark.asyncio
    async def test_static_table_when_offline(self, offline_market, test_settings):
        resolver = BenchmarkResolver(offline_market, test_settings)

        data = await resolver.resolve(COVID)

        assert data.return_value == pytest.approx(-0.339)
        assert data.drawdown == pytest.approx(0.339)
        assert data.source == ReturnSource.ESTIMATE
        assert data.ticker is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "analog_id,ret,dd",
        [
            (AnalogId.DOT_COM_BUST, -0.50, 0.50),
            (AnalogId.RATE_SHOCK, -0.18, 0.20),
            (AnalogId.STAGFLATION, -0.37, 0.48),
        ],
    )
    async def test_static_table_values(self, test_settings, analog_id, ret, dd):
        data = await BenchmarkResolver(None, test_settings).resolve(HISTORICAL_ANALOGS[analog_id])
        assert data.return_value == pytest.approx(ret)
        assert data.drawdown == pytest.approx(dd)

    @pytest.mark.asyncio
    async def test_configured_tickers(self, test_settings):
        settings = test_settings.model_copy(update={
            "benchmark_ticker": "^GSPC",
            "benchmark_proxy_ticker": "VOO",
        })
        market = FakeMarketData(series={"VOO": make_series(date(2020, 2, 3), [100.0, 95.0])})

        data = await BenchmarkResolver(market, settings).resolve(COVID)

        assert data.ticker == "VOO"
        assert market.tickers_called == ["^GSPC", "VOO"]

    @pytest.mark.asyncio
    async def test_unknown_period_uses_default(self, test_settings):
        """An analog with no table row gets the generic -20% / 20%."""
        analog = HistoricalAnalog.model_construct(
            id="GFC",
            name="GFC",
            date_range=DateRange(start=date(2008, 9, 1), end=date(2009, 3, 1)),
            description="",
        )
        resolver = BenchmarkResolver(None, test_settings)

        data = await resolver.from_table(analog)

        assert data.value.return_value == pytest.approx(-0.20)
        assert data.value.drawdown == pytest.approx(0.20)
