"""
Tests for the cache repositories and database-backed stores on SQLite.
"""

from datetime import UTC, date, datetime, timedelta

import pytest

from kronos.database.connection import get_async_database_url
from kronos.repositories import asset_returns_cache_orm as returns_cache_repo
from kronos.repositories import ticker_classification_orm as ticker_cache_repo
from kronos.scoring.asset_returns import AssetReturnsResolver
from kronos.scoring.cache_store import DatabaseAssetReturnsStore, DatabaseTickerClassificationStore
from kronos.scoring.constants import get_analog
from kronos.scoring.schemas import (
    AnalogId,
    AssetClass,
    ClassificationSource,
    ReturnSource,
    TickerClassification,
)

START, END = date(2020, 2, 1), date(2020, 3, 31)


class TestDatabaseUrl:
    """Tests for async URL conversion."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql://u:p@h:5432/db", "postgresql+asyncpg://u:p@h:5432/db"),
            ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("sqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
            ("postgresql+asyncpg://h/db", "postgresql+asyncpg://h/db"),
        ],
    )
    def test_conversion(self, url, expected):
        assert get_async_database_url(url) == expected


# =============================================================================
# Asset Returns Cache
# =============================================================================


class TestAssetReturnsRepository:
    """Tests for asset_returns_cache_orm."""

    @pytest.mark.asyncio
    async def test_save_and_read_back(self, sqlite_db):
        rows = [
            {"asset_class": "gold", "return_value": 0.03, "source": "estimate", "etf_ticker": "GLD"},
            {"asset_class": "us-large-cap", "return_value": -0.1927, "source": "verified"},
        ]

        written = await returns_cache_repo.save_returns("COVID_CRASH", START, END, rows, version=1)

        assert written == 2
        cached = await returns_cache_repo.get_cached_returns("COVID_CRASH", 1)
        assert {r["asset_class"]: r["return_value"] for r in cached} == {
            "gold": 0.03,
            "us-large-cap": -0.1927,
        }
        gold = await returns_cache_repo.get_cached_return("COVID_CRASH", "gold", 1)
        assert gold["etf_ticker"] == "GLD"
        assert gold["start_date"] == START

    @pytest.mark.asyncio
    async def test_upsert_overwrites(self, sqlite_db):
        await returns_cache_repo.save_returns(
            "COVID_CRASH", START, END, [{"asset_class": "gold", "return_value": 0.03, "source": "estimate"}], 1
        )
        await returns_cache_repo.save_returns(
            "COVID_CRASH", START, END, [{"asset_class": "gold", "return_value": 0.045, "source": "market_data"}], 1
        )

        cached = await returns_cache_repo.get_cached_returns("COVID_CRASH", 1)
        assert len(cached) == 1
        assert cached[0]["return_value"] == pytest.approx(0.045)
        assert cached[0]["source"] == "market_data"

    @pytest.mark.asyncio
    async def test_versions_are_separate(self, sqlite_db):
        row = [{"asset_class": "gold", "return_value": 0.03, "source": "estimate"}]
        await returns_cache_repo.save_returns("COVID_CRASH", START, END, row, 1)
        await returns_cache_repo.save_returns("COVID_CRASH", START, END, row, 2)

        assert len(await returns_cache_repo.get_cached_returns("COVID_CRASH", 1)) == 1
        assert await returns_cache_repo.get_cached_returns("COVID_CRASH", 3) == []

        assert await returns_cache_repo.delete_version(1) == 1
        assert await returns_cache_repo.get_cached_returns("COVID_CRASH", 1) == []
        assert len(await returns_cache_repo.get_cached_returns("COVID_CRASH", 2)) == 1

    @pytest.mark.asyncio
    async def test_stats_and_delete_analog(self, sqlite_db):
        row = [{"asset_class": "gold", "return_value": 0.03, "source": "estimate"}]
        await returns_cache_repo.save_returns("COVID_CRASH", START, END, row, 1)
        await returns_cache_repo.save_returns("RATE_SHOCK", date(2022, 1, 1), date(2022, 12, 31), row, 1)

        stats = await returns_cache_repo.get_stats(1)
        assert stats["total_entries"] == 2
        assert stats["analogs"] == {"COVID_CRASH": 1, "RATE_SHOCK": 1}
        assert stats["by_source"] == {"estimate": 2}

        assert await returns_cache_repo.delete_analog("COVID_CRASH") == 1
        assert (await returns_cache_repo.get_stats())["total_entries"] == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, sqlite_db):
        assert await returns_cache_repo.save_returns("COVID_CRASH", START, END, [], 1) == 0


class TestDatabaseAssetReturnsStore:
    """Resolver round trip through the database store."""

    @pytest.mark.asyncio
    async def test_resolver_caches_in_database(self, sqlite_db, offline_market, test_settings):
        store = DatabaseAssetReturnsStore()
        resolver = AssetReturnsResolver(store, offline_market, test_settings)
        covid = get_analog(AnalogId.COVID_CRASH)

        first = await resolver.resolve(covid.id, covid.date_range)
        offline_market.calls.clear()
        second = await resolver.resolve(covid.id, covid.date_range)

        assert offline_market.calls == []
        assert second.returns == first.returns
        assert second.sources[AssetClass.US_LARGE_CAP] == ReturnSource.VERIFIED

        stats = await resolver.get_cache_stats(1)
        assert stats["total_entries"] == len(AssetClass)
        assert stats["by_source"]["verified"] == 1

    @pytest.mark.asyncio
    async def test_unknown_rows_ignored(self, sqlite_db):
        await returns_cache_repo.save_returns(
            "COVID_CRASH", START, END, [{"asset_class": "crypto", "return_value": -0.5, "source": "estimate"}], 1
        )
        assert await DatabaseAssetReturnsStore().load(AnalogId.COVID_CRASH, 1) == {}


# =============================================================================
# Ticker Classification Cache
# =============================================================================


class TestTickerClassificationRepository:
    """Tests for ticker_classification_orm and its store."""

    @pytest.mark.asyncio
    async def test_save_get_delete(self, sqlite_db):
        await ticker_cache_repo.save_classification("arkk", "tech-sector", 0.8, "Innovation ETF", version=1)

        row = await ticker_cache_repo.get_classification("ARKK")
        assert row["asset_class"] == "tech-sector"
        assert row["updated_at"].tzinfo is not None

        assert await ticker_cache_repo.delete_classification("arkk") is True
        assert await ticker_cache_repo.get_classification("ARKK") is None
        assert await ticker_cache_repo.delete_classification("arkk") is False

    @pytest.mark.asyncio
    async def test_upsert_replaces_row(self, sqlite_db):
        await ticker_cache_repo.save_classification("NVDA", "us-growth", 0.6, "old", version=1)
        await ticker_cache_repo.save_classification("NVDA", "tech-sector", 0.9, "new", version=2)

        row = await ticker_cache_repo.get_classification("NVDA")
        assert row["asset_class"] == "tech-sector"
        assert row["version"] == 2

    @pytest.mark.asyncio
    async def test_store_round_trip_keeps_timestamp(self, sqlite_db):
        store = DatabaseTickerClassificationStore()
        stamp = datetime.now(UTC) - timedelta(days=40)
        await store.put(
            TickerClassification(
                ticker="NVDA",
                asset_class=AssetClass.TECH_SECTOR,
                confidence=0.9,
                reasoning="GPUs",
                source=ClassificationSource.GENERATIVE,
                updated_at=stamp,
            ),
            version=1,
        )

        cached = await store.get("NVDA")

        assert cached.version == 1
        assert cached.classification.asset_class == AssetClass.TECH_SECTOR
        assert cached.classification.source == ClassificationSource.CACHE
        assert abs(cached.updated_at - stamp) < timedelta(seconds=1)
        assert await store.delete("NVDA") is True
