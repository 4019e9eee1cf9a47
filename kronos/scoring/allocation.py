"""
Scoring for allocation-only portfolios (no individual tickers).

Each bucket becomes a proxy ETF holding; scoring then runs the normal pipeline.
"""

from __future__ import annotations

import asyncio
from typing import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from kronos.core.logging import get_logger
from kronos.scoring.holdings import AssetAllocation, holdings_from_allocation
from kronos.scoring.orchestrator import KronosScorer, get_scorer
from kronos.scoring.schemas import ScoreResult

logger = get_logger("scoring.allocation")


class NamedAllocation(BaseModel):
    name: str
    allocation: AssetAllocation


class NamedScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    result: ScoreResult


def _describe(allocation: AssetAllocation) -> str:
    return ", ".join(
        f"{bucket} {value:.1%}"
        for bucket, value in allocation.model_dump().items()
    )


async def score_allocation(
    question: str,
    allocation: AssetAllocation | Mapping[str, float],
    name: str = "Portfolio",
    scorer: KronosScorer | None = None,
) -> ScoreResult:
    """Score one allocation against the question."""
    if not isinstance(allocation, AssetAllocation):
        allocation = AssetAllocation.model_validate(dict(allocation))
    logger.info(f"Scoring allocation portfolio {name}: {_describe(allocation)}")

    holdings = holdings_from_allocation(allocation)
    result = await (scorer or get_scorer()).score(question, holdings)

    logger.info(f"{name} score: {result.score}/100")
    return result


async def score_allocations(
    question: str,
    portfolios: Sequence[NamedAllocation],
    scorer: KronosScorer | None = None,
) -> list[NamedScore]:
    """Score several allocations concurrently against the same question."""
    scorer = scorer or get_scorer()
    logger.info(f"Scoring {len(portfolios)} allocation portfolios")
    results = await asyncio.gather(
        *(score_allocation(question, p.allocation, p.name, scorer) for p in portfolios)
    )
    return [NamedScore(name=p.name, result=r) for p, r in zip(portfolios, results)]
