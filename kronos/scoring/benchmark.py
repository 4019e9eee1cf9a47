"""
S&P 500 benchmark return and max drawdown for an analog period.

Tiers: total-return index, SPY proxy, static table. The static table always
resolves, so the benchmark never fails a scoring call.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from kronos.core.config import Settings, get_settings
from kronos.core.exceptions import MarketDataError
from kronos.core.logging import get_logger
from kronos.scoring.asset_returns import period_return
from kronos.scoring.historical_data import get_benchmark_fallback
from kronos.scoring.schemas import BenchmarkData, HistoricalAnalog, PricePoint, ReturnSource
from kronos.scoring.tiers import Found, NotFound, TierChain, TierResult
from kronos.services.data_providers.yfinance_service import MarketDataProvider

logger = get_logger("scoring.benchmark")


def max_drawdown(points: Sequence[PricePoint]) -> float:
    """Largest peak-to-trough decline as a positive decimal."""
    if len(points) < 2:
        return 0.0
    closes = pd.Series([p.close for p in points], dtype="float64")
    running_peak = closes.cummax()
    drawdowns = (running_peak - closes) / running_peak
    return float(drawdowns.max())


class BenchmarkResolver:
    """Resolves BenchmarkData through an ordered tier chain."""

    def __init__(
        self,
        market_data: MarketDataProvider | None,
        settings: Settings | None = None,
    ):
        self._market_data = market_data
        self._settings = settings or get_settings()
        self._chain: TierChain[BenchmarkData] = TierChain(
            "benchmark",
            [self.from_index, self.from_proxy, self.from_table],
        )

    async def _from_ticker(self, ticker: str, analog: HistoricalAnalog) -> TierResult[BenchmarkData]:
        if self._market_data is None:
            return NotFound("no market data provider")
        try:
            points = await self._market_data.fetch_daily_series(
                ticker, analog.date_range.start, analog.date_range.end
            )
        except MarketDataError as e:
            return NotFound(e.message)

        value = period_return(points)
        if value is None:
            return NotFound(f"unusable series for {ticker} ({len(points)} points)")

        data = BenchmarkData(
            return_value=value,
            drawdown=max_drawdown(points),
            source=ReturnSource.MARKET_DATA,
            ticker=ticker,
        )
        return Found(data, ReturnSource.MARKET_DATA.value)

    async def from_index(self, analog: HistoricalAnalog) -> TierResult[BenchmarkData]:
        return await self._from_ticker(self._settings.benchmark_ticker, analog)

    async def from_proxy(self, analog: HistoricalAnalog) -> TierResult[BenchmarkData]:
        return await self._from_ticker(self._settings.benchmark_proxy_ticker, analog)

    async def from_table(self, analog: HistoricalAnalog) -> TierResult[BenchmarkData]:
        fallback = get_benchmark_fallback(analog.id)
        data = BenchmarkData(
            return_value=fallback.return_value,
            drawdown=fallback.drawdown,
            source=ReturnSource.ESTIMATE,
        )
        return Found(data, ReturnSource.ESTIMATE.value)

    async def resolve(self, analog: HistoricalAnalog) -> BenchmarkData:
        outcome = await self._chain.resolve(analog)
        # from_table always resolves
        data = outcome.result.value
        if outcome.misses:
            logger.info(f"Benchmark for {analog.id.value} from {data.source.value} after: {outcome.misses}")
        logger.debug(
            f"Benchmark {analog.id.value}: return {data.return_value:.2%}, drawdown {data.drawdown:.2%}"
        )
        return data
