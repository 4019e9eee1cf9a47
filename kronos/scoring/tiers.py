"""
Ordered fallback chains.

Each tier is an async callable returning Found or NotFound. A chain runs its
tiers in order and stops at the first Found.

Usage:
    chain = TierChain("asset_returns", [from_cache, from_market, from_table])
    outcome = await chain.resolve(AssetClass.GOLD)
    if isinstance(outcome, Found):
        print(outcome.value, outcome.source)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar, Union

from kronos.core.logging import get_logger

logger = get_logger("scoring.tiers")

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """A tier produced a value."""

    value: T
    source: str


@dataclass(frozen=True)
class NotFound:
    """A tier had nothing; the reason is kept for logging."""

    reason: str = ""


TierResult = Union[Found[T], NotFound]
Tier = Callable[..., Awaitable[TierResult[T]]]


@dataclass
class ChainOutcome(Generic[T]):
    """Result of running a chain, including why earlier tiers missed."""

    result: TierResult[T]
    misses: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return isinstance(self.result, Found)


class TierChain(Generic[T]):
    """An ordered list of tiers resolved first-hit-wins."""

    def __init__(self, name: str, tiers: Sequence[Tier[T]]):
        if not tiers:
            raise ValueError("a tier chain needs at least one tier")
        self.name = name
        self._tiers = list(tiers)

    @property
    def tiers(self) -> list[Tier[T]]:
        return list(self._tiers)

    async def resolve(self, *args: Any, **kwargs: Any) -> ChainOutcome[T]:
        misses: list[str] = []
        for tier in self._tiers:
            result = await tier(*args, **kwargs)
            if isinstance(result, Found):
                return ChainOutcome(result=result, misses=misses)
            tier_name = getattr(tier, "__name__", repr(tier))
            misses.append(f"{tier_name}: {result.reason}" if result.reason else tier_name)
        logger.debug(f"[{self.name}] no tier resolved {args!r}: {misses}")
        return ChainOutcome(result=NotFound("; ".join(misses)), misses=misses)
