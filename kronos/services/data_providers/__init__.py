"""Data providers - centralized external market data access."""

from .yfinance_service import (
    MarketDataProvider,
    YFinanceService,
    get_yfinance_service,
)


__all__ = [
    "MarketDataProvider",
    "YFinanceService",
    "get_yfinance_service",
]
