"""
YFinance market data provider.

Single entry point for the daily close series the return and benchmark
resolvers need.

Architecture:
- Single ThreadPoolExecutor for all blocking yfinance calls
- Bounded timeout per attempt, tenacity-backed retries, circuit breaker
- Failures raise MarketDataError; an empty list means no data in range

Usage:
    from kronos.services.data_providers import get_yfinance_service

    service = get_yfinance_service()
    points = await service.fetch_daily_series("SPY", date(2020, 2, 1), date(2020, 3, 31))
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Optional, Protocol

import pandas as pd
import yfinance as yf
from yfinance.exceptions import YFPricesMissingError

from kronos.core.config import Settings, get_settings
from kronos.core.exceptions import MarketDataError
from kronos.core.logging import get_logger
from kronos.scoring.schemas import PricePoint
from kronos.services.data_providers.resilience import (
    DEFAULT_RETRY_EXCEPTIONS,
    CircuitBreaker,
    RetryExhaustedError,
    retry_async,
)

logger = get_logger("data_providers.yfinance")

# Single shared executor for ALL yfinance calls
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yfinance")


class MarketDataProvider(Protocol):
    """Daily close series source."""

    async def fetch_daily_series(
        self, ticker: str, start: date, end: date
    ) -> list[PricePoint]:
        """Ordered closes in [start, end]; raises MarketDataError on failure."""
        ...


def frame_to_points(df: pd.DataFrame | None, symbol: str) -> list[PricePoint]:
    """Convert a yfinance download frame into ordered close points."""
    if df is None or df.empty:
        return []

    # Handle MultiIndex columns (newer yfinance)
    if isinstance(df.columns, pd.MultiIndex):
        ticker_upper = symbol.upper()
        if ticker_upper in df.columns.get_level_values(1):
            df = df.xs(ticker_upper, axis=1, level=1)
        else:
            df.columns = df.columns.droplevel(1)

    if "Close" not in df.columns:
        raise MarketDataError(
            f"No close column in data for {symbol}",
            details={"ticker": symbol, "columns": [str(c) for c in df.columns]},
        )

    closes = df["Close"].dropna().sort_index()
    return [
        PricePoint(day=pd.Timestamp(idx).date(), close=float(value))
        for idx, value in closes.items()
    ]


class YFinanceService:
    """
    Yahoo Finance daily close provider.

    Features:
    - Blocking downloads run in a dedicated thread pool
    - Per-attempt timeout and capped exponential backoff
    - Circuit breaker shared by all fetches
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60.0,
            name="yfinance",
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    # =========================================================================
    # Blocking helpers (run in executor)
    # =========================================================================

    def _download_sync(self, symbol: str, start: date, end: date) -> pd.DataFrame | None:
        """
        Download daily bars from yfinance (blocking).

        ``yf.download`` swallows per-ticker errors into an empty frame, so the
        single-ticker history call is used with ``raise_errors`` instead.
        Missing prices for the range come back as None; anything else is a
        provider failure.
        """
        try:
            # yfinance treats end as exclusive
            return yf.Ticker(symbol).history(
                start=start.isoformat(),
                end=(end + timedelta(days=1)).isoformat(),
                interval="1d",
                auto_adjust=True,
                timeout=self._settings.market_data_timeout,
                raise_errors=True,
            )
        except YFPricesMissingError as e:
            logger.debug(f"No prices for {symbol} {start}..{end}: {e}")
            return None
        except Exception as e:
            raise ConnectionError(f"yfinance download failed for {symbol}: {e}") from e

    # =========================================================================
    # Public API
    # =========================================================================

    async def fetch_daily_series(
        self, ticker: str, start: date, end: date
    ) -> list[PricePoint]:
        """
        Fetch ordered daily closes for a ticker over [start, end].

        Returns:
            Close points in date order; empty if the range has no data.

        Raises:
            MarketDataError: provider failed after retries or circuit is open
        """
        symbol = ticker.strip().upper()
        if not self._breaker.allows_request():
            raise MarketDataError(
                f"Market data circuit open, skipping {symbol}",
                details={"ticker": symbol},
            )

        loop = asyncio.get_running_loop()

        async def _attempt() -> pd.DataFrame | None:
            return await asyncio.wait_for(
                loop.run_in_executor(_executor, self._download_sync, symbol, start, end),
                timeout=self._settings.market_data_timeout,
            )

        try:
            df = await retry_async(
                _attempt,
                max_attempts=self._settings.market_data_max_attempts,
                base_delay=self._settings.market_data_retry_delay,
                max_delay=self._settings.market_data_retry_max_delay,
                retry_on=DEFAULT_RETRY_EXCEPTIONS,
            )
        except RetryExhaustedError as e:
            self._breaker.record_failure(e.last_error)
            raise MarketDataError(
                f"Market data fetch failed for {symbol}: {e.last_error}",
                details={"ticker": symbol, "attempts": e.attempts},
            ) from e

        self._breaker.record_success()
        points = frame_to_points(df, symbol)
        logger.debug(f"Fetched {len(points)} closes for {symbol} {start}..{end}")
        return points

    async def fetch_latest_close(self, ticker: str, lookback_days: int = 10) -> Optional[float]:
        """Most recent close within the lookback window, if any."""
        end = date.today()
        points = await self.fetch_daily_series(ticker, end - timedelta(days=lookback_days), end)
        return points[-1].close if points else None


# Singleton instance
_instance: Optional[YFinanceService] = None


def get_yfinance_service() -> YFinanceService:
    """Get singleton YFinanceService instance."""
    global _instance
    if _instance is None:
        _instance = YFinanceService()
    return _instance
