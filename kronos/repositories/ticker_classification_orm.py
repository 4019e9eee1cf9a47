"""Ticker classification cache repository using SQLAlchemy ORM.

Usage:
    from kronos.repositories import ticker_classification_orm as ticker_cache_repo

    row = await ticker_cache_repo.get_classification("ARKK")
    await ticker_cache_repo.save_classification("ARKK", "tech-sector", 0.8, "...", version=1)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import delete, select

from kronos.core.logging import get_logger
from kronos.database.connection import dialect_insert, get_session
from kronos.database.orm import TickerClassificationCache

logger = get_logger("repositories.ticker_classification_orm")


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


async def get_classification(ticker: str) -> Optional[dict[str, Any]]:
    """Get the cached classification row for a ticker, regardless of age.

    Args:
        ticker: Normalized ticker symbol

    Returns:
        Row dict or None
    """
    async with get_session() as session:
        result = await session.execute(
            select(TickerClassificationCache)
            .where(TickerClassificationCache.ticker == ticker.strip().upper())
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return {
            "ticker": row.ticker,
            "asset_class": row.asset_class,
            "confidence": row.confidence,
            "reasoning": row.reasoning or "",
            "source": row.source,
            "version": row.version,
            "updated_at": _as_utc(row.updated_at),
        }


async def save_classification(
    ticker: str,
    asset_class: str,
    confidence: float,
    reasoning: str,
    version: int,
    source: str = "generative",
    updated_at: datetime | None = None,
) -> bool:
    """Upsert a classification keyed by ticker.

    Returns:
        True if saved successfully
    """
    now = updated_at or datetime.now(UTC)
    symbol = ticker.strip().upper()

    async with get_session() as session:
        insert = dialect_insert(session)
        stmt = insert(TickerClassificationCache).values(
            ticker=symbol,
            asset_class=asset_class,
            confidence=confidence,
            reasoning=reasoning,
            source=source,
            version=version,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["ticker"],
            set_={
                "asset_class": asset_class,
                "confidence": confidence,
                "reasoning": reasoning,
                "source": source,
                "version": version,
                "updated_at": now,
            },
        )
        await session.execute(stmt)
        await session.commit()

    logger.debug(f"Cached classification {symbol} -> {asset_class} ({confidence:.2f})")
    return True


async def delete_classification(ticker: str) -> bool:
    """Remove a cached classification. Returns True if a row was deleted."""
    async with get_session() as session:
        result = await session.execute(
            delete(TickerClassificationCache)
            .where(TickerClassificationCache.ticker == ticker.strip().upper())
        )
        await session.commit()
        return bool(result.rowcount)
