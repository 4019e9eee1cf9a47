"""
Asset-class return resolution for an analog period.

Each asset class resolves independently through an ordered tier chain:

1. persistent cache at the requested version
2. live market data for the representative ETF
3. verified historical index return
4. hard-coded per-analog estimate

The complete map is written back to the cache in one batch so the next call
for the same (analog, version) is served from the cache alone.

Usage:
    resolver = AssetReturnsResolver(store, market_data)
    returns = await resolver.resolve(AnalogId.COVID_CRASH, analog.date_range)
    returns[AssetClass.GOLD]
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from kronos.core.config import Settings, get_settings
from kronos.core.exceptions import IncompleteReturnsError, MarketDataError
from kronos.core.logging import get_logger
from kronos.scoring.cache_store import AssetReturnsStore, CachedReturn
from kronos.scoring.constants import ASSET_CLASS_ETFS, ETF_LAUNCH_DATES
from kronos.scoring.historical_data import (
    MAX_PLAUSIBLE_RETURN,
    MIN_PLAUSIBLE_RETURN,
    get_fallback_return,
    get_verified_return,
)
from kronos.scoring.schemas import (
    AnalogId,
    AssetClass,
    AssetReturns,
    DateRange,
    PricePoint,
    ReturnSource,
)
from kronos.scoring.tiers import Found, NotFound, TierChain, TierResult
from kronos.services.data_providers.yfinance_service import MarketDataProvider

logger = get_logger("scoring.asset_returns")


@dataclass
class ResolveContext:
    """Per-call state shared by the tiers."""

    analog_id: AnalogId
    date_range: DateRange
    version: int
    cached: dict[AssetClass, CachedReturn] = field(default_factory=dict)


def period_return(points: Sequence[PricePoint]) -> Optional[float]:
    """Simple return from first to last close; None if unusable."""
    if len(points) < 2:
        return None
    first, last = points[0].close, points[-1].close
    if first <= 0 or last <= 0:
        return None
    return last / first - 1


def check_plausibility(returns: dict[AssetClass, float], analog_id: AnalogId) -> list[AssetClass]:
    """Log returns outside the plausible band. Never rejects."""
    suspicious = [
        asset_class
        for asset_class, value in returns.items()
        if value < MIN_PLAUSIBLE_RETURN or value > MAX_PLAUSIBLE_RETURN
    ]
    for asset_class in suspicious:
        logger.warning(
            f"Implausible return for {asset_class.value} in {analog_id.value}: "
            f"{returns[asset_class]:.2%}"
        )
    return suspicious


class AssetReturnsResolver:
    """Builds complete AssetReturns for an analog period."""

    def __init__(
        self,
        store: AssetReturnsStore | None,
        market_data: MarketDataProvider | None,
        settings: Settings | None = None,
    ):
        self._store = store
        self._market_data = market_data
        self._settings = settings or get_settings()
        self._chain: TierChain[float] = TierChain(
            "asset_returns",
            [self.from_cache, self.from_market_data, self.from_verified, self.from_estimate],
        )

    @property
    def chain(self) -> TierChain[float]:
        return self._chain

    # =========================================================================
    # Tiers
    # =========================================================================

    async def from_cache(self, asset_class: AssetClass, ctx: ResolveContext) -> TierResult[float]:
        hit = ctx.cached.get(asset_class)
        if hit is None:
            return NotFound("not cached")
        return Found(hit.value, ReturnSource.CACHE.value)

    async def from_market_data(self, asset_class: AssetClass, ctx: ResolveContext) -> TierResult[float]:
        if self._market_data is None:
            return NotFound("no market data provider")

        ticker = ASSET_CLASS_ETFS.get(asset_class)
        if ticker is None:
            return NotFound("no representative ETF")

        launched = ETF_LAUNCH_DATES.get(ticker)
        if launched is not None and launched > ctx.date_range.start:
            return NotFound(f"{ticker} launched {launched.isoformat()}")

        try:
            points = await self._market_data.fetch_daily_series(
                ticker, ctx.date_range.start, ctx.date_range.end
            )
        except MarketDataError as e:
            return NotFound(e.message)

        value = period_return(points)
        if value is None:
            return NotFound(f"unusable series for {ticker} ({len(points)} points)")
        return Found(value, ReturnSource.MARKET_DATA.value)

    async def from_verified(self, asset_class: AssetClass, ctx: ResolveContext) -> TierResult[float]:
        verified = get_verified_return(ctx.analog_id, asset_class)
        if verified is None:
            return NotFound("no verified index return")
        return Found(verified.return_value, ReturnSource.VERIFIED.value)

    async def from_estimate(self, asset_class: AssetClass, ctx: ResolveContext) -> TierResult[float]:
        value = get_fallback_return(ctx.analog_id, asset_class)
        if value is None:
            return NotFound("no estimate table")
        return Found(value, ReturnSource.ESTIMATE.value)

    # =========================================================================
    # Resolution
    # =========================================================================

    async def _load_cached(self, analog_id: AnalogId, version: int) -> dict[AssetClass, CachedReturn]:
        if self._store is None:
            return {}
        try:
            return await self._store.load(analog_id, version)
        except Exception as e:
            logger.warning(f"Cache read failed for {analog_id.value} v{version}, treating as miss: {e}")
            return {}

    async def _resolve_batches(
        self, classes: Sequence[AssetClass], ctx: ResolveContext
    ) -> dict[AssetClass, TierResult[float]]:
        size = self._settings.fetch_batch_size
        outcomes: dict[AssetClass, TierResult[float]] = {}

        for i in range(0, len(classes), size):
            if i > 0 and self._settings.fetch_batch_delay > 0:
                await asyncio.sleep(self._settings.fetch_batch_delay)
            batch = classes[i:i + size]
            results = await asyncio.gather(*(self._chain.resolve(ac, ctx) for ac in batch))
            for asset_class, outcome in zip(batch, results):
                outcomes[asset_class] = outcome.result

        return outcomes

    async def resolve(
        self,
        analog_id: AnalogId,
        date_range: DateRange,
        version: int | None = None,
    ) -> AssetReturns:
        """
        Resolve a return for every asset class.

        Raises:
            IncompleteReturnsError: a class fell through every tier
        """
        version = version if version is not None else self._settings.asset_returns_cache_version
        ctx = ResolveContext(
            analog_id=analog_id,
            date_range=date_range,
            version=version,
            cached=await self._load_cached(analog_id, version),
        )

        classes = list(AssetClass)
        if all(ac in ctx.cached for ac in classes):
            logger.debug(f"Asset returns for {analog_id.value} v{version} served from cache")
            return AssetReturns(
                analog_id=analog_id,
                version=version,
                returns={ac: ctx.cached[ac].value for ac in classes},
                sources={ac: ctx.cached[ac].source for ac in classes},
            )

        outcomes = await self._resolve_batches(classes, ctx)
        missing = [ac for ac, result in outcomes.items() if isinstance(result, NotFound)]
        if missing:
            raise IncompleteReturnsError(
                f"No return for {', '.join(ac.value for ac in missing)} in {analog_id.value}",
                details={
                    "analog_id": analog_id.value,
                    "missing": [ac.value for ac in missing],
                    "reasons": {ac.value: outcomes[ac].reason for ac in missing},
                },
            )

        returns = {ac: outcomes[ac].value for ac in classes}
        # Cache hits keep the tier that originally produced them
        sources = {
            ac: ctx.cached[ac].source if ac in ctx.cached else ReturnSource(outcomes[ac].source)
            for ac in classes
        }

        check_plausibility(returns, analog_id)
        tally = {src.value: list(sources.values()).count(src) for src in set(sources.values())}
        logger.info(f"Resolved {len(returns)} asset returns for {analog_id.value} v{version}: {tally}")

        await self._write_back(analog_id, date_range, returns, sources, version)
        return AssetReturns(analog_id=analog_id, version=version, returns=returns, sources=sources)

    async def _write_back(
        self,
        analog_id: AnalogId,
        date_range: DateRange,
        returns: dict[AssetClass, float],
        sources: dict[AssetClass, ReturnSource],
        version: int,
    ) -> None:
        if self._store is None:
            return
        try:
            await self._store.save(analog_id, date_range, returns, sources, version)
        except Exception as e:
            logger.error(f"Failed to cache asset returns for {analog_id.value} v{version}: {e}")

    # =========================================================================
    # Cache management
    # =========================================================================

    async def clear_analog(self, analog_id: AnalogId, version: int | None = None) -> int:
        if self._store is None:
            return 0
        removed = await self._store.clear(analog_id, version)
        logger.info(f"Cleared {removed} cached returns for {analog_id.value}")
        return removed

    async def clear_version(self, version: int) -> int:
        if self._store is None:
            return 0
        removed = await self._store.clear_version(version)
        logger.info(f"Cleared {removed} cached returns at v{version}")
        return removed

    async def get_cache_stats(self, version: int | None = None) -> dict[str, Any]:
        if self._store is None:
            return {"version": version, "total_entries": 0, "analogs": {}, "by_source": {}}
        return await self._store.stats(version)
