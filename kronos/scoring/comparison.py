"""
Side-by-side comparison against a reference portfolio.

The user's portfolio and the reference are scored against the same question;
the comparison reports the differences and short readable insights.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from kronos.core.exceptions import AppException
from kronos.core.logging import get_logger
from kronos.scoring.orchestrator import HoldingInput, KronosScorer, get_scorer
from kronos.scoring.schemas import AssetClass, Holding, ScoreResult

logger = get_logger("scoring.comparison")

REFERENCE_PORTFOLIO_NAME = "TIME"

REFERENCE_PORTFOLIO: tuple[Holding, ...] = (
    Holding(ticker="VTI", weight=0.40, asset_class=AssetClass.US_LARGE_CAP),
    Holding(ticker="TLT", weight=0.20, asset_class=AssetClass.LONG_TREASURIES),
    Holding(ticker="GLD", weight=0.15, asset_class=AssetClass.GOLD),
    Holding(ticker="DBC", weight=0.10, asset_class=AssetClass.COMMODITIES),
    Holding(ticker="BND", weight=0.15, asset_class=AssetClass.AGGREGATE_BONDS),
)


class PortfolioComparison(BaseModel):
    """Reference minus user; positive values favour the reference."""

    model_config = ConfigDict(frozen=True)

    score_difference: int
    return_difference: float
    drawdown_improvement: float
    reference_is_winner: bool
    insights: list[str]


class ComparisonResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: ScoreResult
    reference: Optional[ScoreResult] = None
    reference_holdings: list[Holding]
    comparison: Optional[PortfolioComparison] = None


def compare_results(
    user: ScoreResult,
    reference: ScoreResult,
    reference_name: str = REFERENCE_PORTFOLIO_NAME,
) -> PortfolioComparison:
    score_diff = reference.score - user.score
    return_diff = reference.portfolio_return - user.portfolio_return
    drawdown_diff = user.portfolio_drawdown - reference.portfolio_drawdown

    insights: list[str] = []
    if score_diff > 0:
        insights.append(f"{reference_name} scores {score_diff} points higher in stress test")
    if return_diff > 0:
        insights.append(f"{reference_name} delivers +{return_diff * 100:.2f}% more return")
    if drawdown_diff > 0 and user.portfolio_drawdown > 0:
        reduction = drawdown_diff / user.portfolio_drawdown * 100
        insights.append(f"{reference_name} reduces risk by {reduction:.0f}%")
    if not insights:
        insights.append("Both portfolios perform similarly in this scenario")

    return PortfolioComparison(
        score_difference=score_diff,
        return_difference=return_diff,
        drawdown_improvement=drawdown_diff,
        reference_is_winner=score_diff > 0 or return_diff > 0 or drawdown_diff > 0,
        insights=insights,
    )


async def score_with_reference(
    question: str,
    holdings: Iterable[HoldingInput],
    reference_holdings: Sequence[Holding] = REFERENCE_PORTFOLIO,
    scorer: KronosScorer | None = None,
) -> ComparisonResult:
    """
    Score the user's portfolio, then the reference against the same question.

    A failure scoring the reference is logged and the user's score is still
    returned; a failure scoring the user's portfolio propagates.
    """
    scorer = scorer or get_scorer()
    user = await scorer.score(question, holdings)

    try:
        reference = await scorer.score(question, reference_holdings)
    except AppException as e:
        logger.warning(f"Reference portfolio scoring failed, returning user score only: {e.message}")
        return ComparisonResult(user=user, reference_holdings=list(reference_holdings))

    comparison = compare_results(user, reference)
    logger.info(f"Comparison: {' | '.join(comparison.insights)}")
    return ComparisonResult(
        user=user,
        reference=reference,
        reference_holdings=list(reference_holdings),
        comparison=comparison,
    )
