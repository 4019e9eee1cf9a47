"""
Ticker -> asset class classification.

Tiers:
1. static ETF map (confidence 1.0)
2. persistent cache, current version, younger than the TTL
3. generative classification constrained to AssetClass

Generative failures never abort: they produce the low-confidence default
class, which is not cached.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Iterable, Optional

from kronos.core.config import Settings, get_settings
from kronos.core.logging import get_logger
from kronos.scoring.cache_store import TickerClassificationStore
from kronos.scoring.constants import (
    DEFAULT_ASSET_CLASS,
    DEFAULT_CLASSIFICATION_CONFIDENCE,
    STATIC_TICKER_MAP,
)
from kronos.scoring.generative import Err, FailureKind, attempt_structured
from kronos.scoring.schemas import AssetClass, ClassificationSource, TickerClassification
from kronos.scoring.tiers import Found, NotFound, TierChain, TierResult
from kronos.services.openai.generate import GenerativeClient
from kronos.services.openai.prompts import TICKER_INSTRUCTIONS, build_ticker_prompt
from kronos.services.openai.schemas import TickerClassificationOutput

logger = get_logger("scoring.ticker_classifier")

UNAVAILABLE_REASONING = "AI classification not available, using default"


def normalize_ticker(ticker: str) -> str:
    return ticker.strip().upper()


def get_static_asset_class(ticker: str) -> Optional[AssetClass]:
    """Synchronous static lookup; None for unknown tickers."""
    return STATIC_TICKER_MAP.get(normalize_ticker(ticker))


def default_classification(ticker: str, reasoning: str) -> TickerClassification:
    return TickerClassification(
        ticker=ticker,
        asset_class=DEFAULT_ASSET_CLASS,
        confidence=DEFAULT_CLASSIFICATION_CONFIDENCE,
        reasoning=reasoning,
        source=ClassificationSource.GENERATIVE,
    )


class TickerClassifier:
    """Classifies tickers with cache writeback of generated results."""

    def __init__(
        self,
        store: TickerClassificationStore | None = None,
        client: GenerativeClient | None = None,
        settings: Settings | None = None,
    ):
        self._store = store
        self._client = client
        self._settings = settings or get_settings()
        self._chain: TierChain[TickerClassification] = TierChain(
            "ticker_classification",
            [self.from_static, self.from_cache, self.from_generative],
        )

    @property
    def ttl(self) -> timedelta:
        return timedelta(days=self._settings.ticker_cache_ttl_days)

    @property
    def generative_enabled(self) -> bool:
        return (
            self._settings.generative_enabled
            and self._client is not None
            and self._client.is_available()
        )

    # =========================================================================
    # Tiers
    # =========================================================================

    async def from_static(self, ticker: str) -> TierResult[TickerClassification]:
        asset_class = STATIC_TICKER_MAP.get(ticker)
        if asset_class is None:
            return NotFound("not in static map")
        return Found(
            TickerClassification(
                ticker=ticker,
                asset_class=asset_class,
                confidence=1.0,
                reasoning="Known ETF mapping",
                source=ClassificationSource.STATIC,
            ),
            ClassificationSource.STATIC.value,
        )

    async def from_cache(self, ticker: str) -> TierResult[TickerClassification]:
        if self._store is None:
            return NotFound("no cache store")
        try:
            cached = await self._store.get(ticker)
        except Exception as e:
            logger.warning(f"Classification cache read failed for {ticker}: {e}")
            return NotFound("cache read failed")

        if cached is None:
            return NotFound("not cached")
        if cached.version != self._settings.ticker_cache_version:
            return NotFound(f"cached at v{cached.version}")

        age = datetime.now(UTC) - cached.updated_at
        if age > self.ttl:
            logger.info(f"Cached classification for {ticker} expired ({age.days} days old)")
            return NotFound("expired")
        return Found(cached.classification, ClassificationSource.CACHE.value)

    async def from_generative(self, ticker: str) -> TierResult[TickerClassification]:
        outcome = await attempt_structured(
            self._client if self.generative_enabled else None,
            build_ticker_prompt(ticker),
            TickerClassificationOutput,
            system=TICKER_INSTRUCTIONS,
            timeout=self._settings.generative_timeout,
            max_tokens=self._settings.generative_max_tokens,
            label=f"ticker:{ticker}",
        )

        if isinstance(outcome, Err):
            if outcome.failure.kind == FailureKind.UNAVAILABLE:
                logger.warning(f"AI not available for {ticker}, defaulting to {DEFAULT_ASSET_CLASS.value}")
                return Found(default_classification(ticker, UNAVAILABLE_REASONING), "default")
            reasoning = (
                f"AI classification failed: {outcome.failure}. "
                f"Defaulting to {DEFAULT_ASSET_CLASS.value}."
            )
            return Found(default_classification(ticker, reasoning), "default")

        output = outcome.value
        classification = TickerClassification(
            ticker=ticker,
            asset_class=output.asset_class,
            confidence=output.confidence,
            reasoning=output.reasoning,
            source=ClassificationSource.GENERATIVE,
        )
        logger.info(
            f"AI classified {ticker} as {output.asset_class.value} "
            f"({output.confidence:.0%} confidence)"
        )
        await self._write_back(classification)
        return Found(classification, ClassificationSource.GENERATIVE.value)

    async def _write_back(self, classification: TickerClassification) -> None:
        if self._store is None:
            return
        try:
            await self._store.put(classification, self._settings.ticker_cache_version)
        except Exception as e:
            logger.error(f"Failed to cache classification for {classification.ticker}: {e}")

    # =========================================================================
    # Public API
    # =========================================================================

    async def classify(self, ticker: str) -> TickerClassification:
        """Classify one ticker. Never raises for provider failures."""
        symbol = normalize_ticker(ticker)
        outcome = await self._chain.resolve(symbol)
        # from_generative always resolves, at worst to the default class
        return outcome.result.value

    async def classify_batch(self, tickers: Iterable[str]) -> dict[str, TickerClassification]:
        """
        Classify many tickers in small groups.

        Tickers are normalized and deduplicated first. A ticker whose
        classification raises unexpectedly gets the default class instead of
        failing the batch.
        """
        unique = list(dict.fromkeys(normalize_ticker(t) for t in tickers if t and t.strip()))
        size = self._settings.fetch_batch_size
        results: dict[str, TickerClassification] = {}

        for i in range(0, len(unique), size):
            if i > 0 and self._settings.fetch_batch_delay > 0:
                await asyncio.sleep(self._settings.fetch_batch_delay)
            batch = unique[i:i + size]
            classified = await asyncio.gather(
                *(self.classify(t) for t in batch), return_exceptions=True
            )
            for symbol, result in zip(batch, classified):
                if isinstance(result, Exception):
                    logger.error(f"Classification failed for {symbol}: {result}")
                    result = default_classification(symbol, f"Classification failed: {result}")
                results[symbol] = result

        logger.info(f"Classified {len(results)} tickers")
        return results

    async def invalidate(self, ticker: str) -> bool:
        """Drop a cached classification so the next call regenerates it."""
        if self._store is None:
            return False
        return await self._store.delete(normalize_ticker(ticker))
