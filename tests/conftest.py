"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import date
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from fakes import FakeMarketData, FakeReturnsStore, FakeTickerStore
from kronos.core.config import Settings
from kronos.scoring.schemas import DateRange

# Configure asyncio
pytest_plugins = ["pytest_asyncio"]


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no batch pauses and generative tiers enabled."""
    return Settings(
        _env_file=None,
        fetch_batch_delay=0.0,
        generative_timeout=1.0,
        market_data_max_attempts=1,
        asset_returns_cache_version=1,
        ticker_cache_version=1,
    )


@pytest.fixture
def returns_store() -> FakeReturnsStore:
    return FakeReturnsStore()


@pytest.fixture
def ticker_store() -> FakeTickerStore:
    return FakeTickerStore()


@pytest.fixture
def offline_market() -> FakeMarketData:
    """Market data provider where every fetch fails."""
    return FakeMarketData()


@pytest.fixture
def covid_range() -> DateRange:
    return DateRange(start=date(2020, 2, 1), end=date(2020, 3, 31))


@pytest.fixture
def all_weather() -> list[dict[str, Any]]:
    """VTI 30%, TLT 40%, IEF 15%, GLD 7.5%, DBC 7.5%."""
    return [
        {"ticker": "VTI", "weight": 0.30},
        {"ticker": "TLT", "weight": 0.40},
        {"ticker": "IEF", "weight": 0.15},
        {"ticker": "GLD", "weight": 0.075},
        {"ticker": "DBC", "weight": 0.075},
    ]


@pytest_asyncio.fixture
async def sqlite_db() -> AsyncGenerator[None, None]:
    """Fresh in-memory SQLite database with the cache tables."""
    import kronos.database.connection as db_conn

    await db_conn.close_sqlalchemy_engine()
    await db_conn.init_sqlalchemy_engine("sqlite:///:memory:")
    await db_conn.create_tables()
    try:
        yield
    finally:
        await db_conn.close_sqlalchemy_engine()
