"""
Persistent cache stores used by the return resolver and ticker classifier.

The resolvers depend on the two protocols below; the Database* classes back
them with the SQLAlchemy repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Protocol

from kronos.core.logging import get_logger
from kronos.repositories import asset_returns_cache_orm as returns_cache_repo
from kronos.repositories import ticker_classification_orm as ticker_cache_repo
from kronos.scoring.constants import ASSET_CLASS_ETFS
from kronos.scoring.schemas import (
    AnalogId,
    AssetClass,
    ClassificationSource,
    DateRange,
    ReturnSource,
    TickerClassification,
)

logger = get_logger("scoring.cache_store")


@dataclass(frozen=True)
class CachedReturn:
    """A cached return and the tier that originally produced it."""

    value: float
    source: ReturnSource


@dataclass(frozen=True)
class CachedClassification:
    """A cached ticker classification row."""

    classification: TickerClassification
    version: int

    @property
    def updated_at(self) -> datetime:
        return self.classification.updated_at


class AssetReturnsStore(Protocol):
    """Row store for resolved asset-class returns."""

    async def load(self, analog_id: AnalogId, version: int) -> dict[AssetClass, CachedReturn]:
        """All cached classes for (analog, version)."""
        ...

    async def save(
        self,
        analog_id: AnalogId,
        date_range: DateRange,
        returns: Mapping[AssetClass, float],
        sources: Mapping[AssetClass, ReturnSource],
        version: int,
    ) -> int:
        """Upsert the full set in one batch."""
        ...

    async def clear(self, analog_id: AnalogId, version: int | None = None) -> int:
        ...

    async def clear_version(self, version: int) -> int:
        ...

    async def stats(self, version: int | None = None) -> dict[str, Any]:
        ...


class TickerClassificationStore(Protocol):
    """Row store for generated ticker classifications."""

    async def get(self, ticker: str) -> CachedClassification | None:
        ...

    async def put(self, classification: TickerClassification, version: int) -> None:
        ...

    async def delete(self, ticker: str) -> bool:
        ...


# =============================================================================
# Database-backed implementations
# =============================================================================


class DatabaseAssetReturnsStore:
    """AssetReturnsStore over the asset_returns_cache table."""

    async def load(self, analog_id: AnalogId, version: int) -> dict[AssetClass, CachedReturn]:
        rows = await returns_cache_repo.get_cached_returns(analog_id.value, version)
        cached: dict[AssetClass, CachedReturn] = {}
        for row in rows:
            try:
                asset_class = AssetClass(row["asset_class"])
                source = ReturnSource(row["source"])
            except ValueError:
                logger.warning(
                    f"Ignoring cache row with unknown key {row['asset_class']}/{row['source']}"
                )
                continue
            cached[asset_class] = CachedReturn(value=row["return_value"], source=source)
        return cached

    async def save(
        self,
        analog_id: AnalogId,
        date_range: DateRange,
        returns: Mapping[AssetClass, float],
        sources: Mapping[AssetClass, ReturnSource],
        version: int,
    ) -> int:
        rows = [
            {
                "asset_class": asset_class.value,
                "return_value": value,
                "source": sources.get(asset_class, ReturnSource.ESTIMATE).value,
                "etf_ticker": ASSET_CLASS_ETFS.get(asset_class),
                "is_validated": sources.get(asset_class) in (ReturnSource.MARKET_DATA, ReturnSource.VERIFIED),
            }
            for asset_class, value in returns.items()
        ]
        return await returns_cache_repo.save_returns(
            analog_id.value, date_range.start, date_range.end, rows, version
        )

    async def clear(self, analog_id: AnalogId, version: int | None = None) -> int:
        return await returns_cache_repo.delete_analog(analog_id.value, version)

    async def clear_version(self, version: int) -> int:
        return await returns_cache_repo.delete_version(version)

    async def stats(self, version: int | None = None) -> dict[str, Any]:
        return await returns_cache_repo.get_stats(version)


class DatabaseTickerClassificationStore:
    """TickerClassificationStore over the ticker_classifications table."""

    async def get(self, ticker: str) -> CachedClassification | None:
        row = await ticker_cache_repo.get_classification(ticker)
        if row is None:
            return None
        try:
            classification = TickerClassification(
                ticker=row["ticker"],
                asset_class=AssetClass(row["asset_class"]),
                confidence=row["confidence"],
                reasoning=row["reasoning"],
                source=ClassificationSource.CACHE,
                updated_at=row["updated_at"],
            )
        except ValueError:
            logger.warning(f"Ignoring cached classification for {ticker}: {row['asset_class']}")
            return None
        return CachedClassification(classification=classification, version=row["version"])

    async def put(self, classification: TickerClassification, version: int) -> None:
        await ticker_cache_repo.save_classification(
            classification.ticker,
            classification.asset_class.value,
            classification.confidence,
            classification.reasoning,
            version=version,
            source=classification.source.value,
            updated_at=classification.updated_at,
        )

    async def delete(self, ticker: str) -> bool:
        return await ticker_cache_repo.delete_classification(ticker)
