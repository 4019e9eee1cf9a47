"""Asset returns cache repository using SQLAlchemy ORM.

Rows are keyed by (analog_id, asset_class, version). Different versions are
separate datasets; nothing here reads across versions.

Usage:
    from kronos.repositories import asset_returns_cache_orm as returns_cache_repo

    rows = await returns_cache_repo.get_cached_returns("COVID_CRASH", version=1)
    await returns_cache_repo.save_returns("COVID_CRASH", start, end, rows, version=1)
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any, Optional

from sqlalchemy import delete, func, select

from kronos.core.logging import get_logger
from kronos.database.connection import dialect_insert, get_session
from kronos.database.orm import AssetReturnCache

logger = get_logger("repositories.asset_returns_cache_orm")


def _row_to_dict(row: AssetReturnCache) -> dict[str, Any]:
    return {
        "analog_id": row.analog_id,
        "asset_class": row.asset_class,
        "start_date": row.start_date,
        "end_date": row.end_date,
        "return_value": row.return_value,
        "source": row.source,
        "etf_ticker": row.etf_ticker,
        "is_validated": row.is_validated,
        "version": row.version,
        "updated_at": row.updated_at,
    }


async def get_cached_returns(analog_id: str, version: int) -> list[dict[str, Any]]:
    """Get every cached asset class for one analog at one version.

    Args:
        analog_id: Canonical analog ID
        version: Dataset version

    Returns:
        Row dicts, possibly empty
    """
    async with get_session() as session:
        result = await session.execute(
            select(AssetReturnCache)
            .where(AssetReturnCache.analog_id == analog_id)
            .where(AssetReturnCache.version == version)
        )
        return [_row_to_dict(row) for row in result.scalars().all()]


async def get_cached_return(
    analog_id: str, asset_class: str, version: int
) -> Optional[dict[str, Any]]:
    """Point lookup by natural key."""
    async with get_session() as session:
        result = await session.execute(
            select(AssetReturnCache)
            .where(AssetReturnCache.analog_id == analog_id)
            .where(AssetReturnCache.asset_class == asset_class)
            .where(AssetReturnCache.version == version)
        )
        row = result.scalar_one_or_none()
        return _row_to_dict(row) if row else None


async def save_returns(
    analog_id: str,
    start_date: date,
    end_date: date,
    rows: list[dict[str, Any]],
    version: int,
) -> int:
    """Upsert a batch of returns for one analog period.

    Args:
        analog_id: Canonical analog ID
        start_date: Period start
        end_date: Period end
        rows: Dicts with asset_class, return_value, source and optional
            etf_ticker / is_validated
        version: Dataset version

    Returns:
        Number of rows written
    """
    if not rows:
        return 0

    now = datetime.now(UTC)
    values = [
        {
            "analog_id": analog_id,
            "asset_class": row["asset_class"],
            "start_date": start_date,
            "end_date": end_date,
            "return_value": float(row["return_value"]),
            "source": row["source"],
            "etf_ticker": row.get("etf_ticker"),
            "is_validated": bool(row.get("is_validated", True)),
            "version": version,
            "created_at": now,
            "updated_at": now,
        }
        for row in rows
    ]

    async with get_session() as session:
        insert = dialect_insert(session)
        stmt = insert(AssetReturnCache).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["analog_id", "asset_class", "version"],
            set_={
                "start_date": stmt.excluded.start_date,
                "end_date": stmt.excluded.end_date,
                "return_value": stmt.excluded.return_value,
                "source": stmt.excluded.source,
                "etf_ticker": stmt.excluded.etf_ticker,
                "is_validated": stmt.excluded.is_validated,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
        await session.commit()

    logger.info(f"Cached {len(values)} asset returns for {analog_id} v{version}")
    return len(values)


async def delete_analog(analog_id: str, version: int | None = None) -> int:
    """Delete cached returns for an analog, optionally only one version."""
    async with get_session() as session:
        stmt = delete(AssetReturnCache).where(AssetReturnCache.analog_id == analog_id)
        if version is not None:
            stmt = stmt.where(AssetReturnCache.version == version)
        result = await session.execute(stmt)
        await session.commit()
        return result.rowcount or 0


async def delete_version(version: int) -> int:
    """Delete every cached return at one version."""
    async with get_session() as session:
        result = await session.execute(
            delete(AssetReturnCache).where(AssetReturnCache.version == version)
        )
        await session.commit()
        return result.rowcount or 0


async def get_stats(version: int | None = None) -> dict[str, Any]:
    """Entry counts overall, per analog and per source."""
    async with get_session() as session:
        filters = [AssetReturnCache.version == version] if version is not None else []

        by_analog = await session.execute(
            select(AssetReturnCache.analog_id, func.count())
            .where(*filters)
            .group_by(AssetReturnCache.analog_id)
        )
        by_source = await session.execute(
            select(AssetReturnCache.source, func.count())
            .where(*filters)
            .group_by(AssetReturnCache.source)
        )

        analogs = {analog: count for analog, count in by_analog.all()}
        sources = {source: count for source, count in by_source.all()}

    return {
        "version": version,
        "total_entries": sum(analogs.values()),
        "analogs": analogs,
        "by_source": sources,
    }
