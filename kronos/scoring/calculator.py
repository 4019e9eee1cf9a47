"""
Portfolio return, drawdown estimate and stress score.

Every function here is pure: no I/O, no randomness.
"""

from __future__ import annotations

import math
from typing import Sequence

from kronos.core.exceptions import IncompleteReturnsError, ScoreCalculationError, ValidationError
from kronos.core.logging import get_logger
from kronos.scoring.constants import DEFAULT_SCORE_LABEL, SCORE_LABELS
from kronos.scoring.schemas import (
    AssetClass,
    AssetClassContribution,
    AssetReturns,
    Holding,
    ScoreComponents,
    ScoreLabel,
)

logger = get_logger("scoring.calculator")

# Weight-sum tolerance inside compute_return
RETURN_WEIGHT_TOLERANCE = 0.01
# Weight-sum tolerance for portfolios handed to the scorer
PORTFOLIO_WEIGHT_TOLERANCE = 0.05

SCORE_SENSITIVITY = 2.0
NEUTRAL_SCORE = 50.0
DRAWDOWN_LOSS_FACTOR = 0.8
NOMINAL_DRAWDOWN = 0.05

FALLBACK_RETURN_CLASS = AssetClass.US_LARGE_CAP


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def total_weight(holdings: Sequence[Holding]) -> float:
    return sum(h.weight for h in holdings)


def normalize_portfolio(
    holdings: Sequence[Holding], tolerance: float = PORTFOLIO_WEIGHT_TOLERANCE
) -> list[Holding]:
    """
    Rescale weights to sum to 1 when they drift beyond ``tolerance``.

    Raises:
        ValidationError: empty portfolio or zero total weight
    """
    if not holdings:
        raise ValidationError("Portfolio has no holdings")

    total = total_weight(holdings)
    if total <= 0:
        raise ValidationError("Portfolio weights sum to zero", details={"holdings": len(holdings)})

    if abs(total - 1.0) <= tolerance:
        return list(holdings)

    logger.warning(f"Portfolio weights sum to {total:.3f}, normalizing")
    return [h.model_copy(update={"weight": h.weight / total}) for h in holdings]


def _effective_weights(holdings: Sequence[Holding]) -> list[float]:
    total = total_weight(holdings)
    if total <= 0:
        raise ScoreCalculationError("Portfolio weights sum to zero")
    if abs(total - 1.0) > RETURN_WEIGHT_TOLERANCE:
        logger.info(f"Renormalizing weights ({total:.3f} -> 1.000)")
        return [h.weight / total for h in holdings]
    return [h.weight for h in holdings]


def _holding_return(holding: Holding, asset_returns: AssetReturns) -> float:
    if holding.asset_class is None:
        raise ScoreCalculationError(
            f"Holding {holding.ticker} has no asset class",
            details={"ticker": holding.ticker},
        )

    value = asset_returns.get(holding.asset_class)
    if value is not None:
        return value

    fallback = asset_returns.get(FALLBACK_RETURN_CLASS)
    if fallback is None:
        raise IncompleteReturnsError(
            f"No return for {holding.asset_class.value} or {FALLBACK_RETURN_CLASS.value}",
            details={"ticker": holding.ticker, "asset_class": holding.asset_class.value},
        )
    logger.warning(
        f"No return for {holding.asset_class.value} ({holding.ticker}), "
        f"using {FALLBACK_RETURN_CLASS.value}"
    )
    return fallback


def compute_return(holdings: Sequence[Holding], asset_returns: AssetReturns) -> float:
    """Weighted portfolio return for the analog period."""
    if not holdings:
        raise ScoreCalculationError("Cannot compute return of an empty portfolio")
    weights = _effective_weights(holdings)
    return sum(w * _holding_return(h, asset_returns) for h, w in zip(holdings, weights))


def compute_breakdown(
    holdings: Sequence[Holding], asset_returns: AssetReturns
) -> dict[AssetClass, AssetClassContribution]:
    """Per-class weight, return and contribution; weights aggregated per class."""
    if not holdings:
        return {}
    weights = _effective_weights(holdings)

    by_class: dict[AssetClass, float] = {}
    returns: dict[AssetClass, float] = {}
    for holding, weight in zip(holdings, weights):
        value = _holding_return(holding, asset_returns)
        by_class[holding.asset_class] = by_class.get(holding.asset_class, 0.0) + weight
        returns[holding.asset_class] = value

    return {
        asset_class: AssetClassContribution(
            weight=weight,
            return_value=returns[asset_class],
            contribution=weight * returns[asset_class],
        )
        for asset_class, weight in by_class.items()
    }


def estimate_drawdown(portfolio_return: float) -> float:
    """
    Heuristic drawdown for the stress score.

    Not a peak-to-trough path calculation: a loss maps to 80% of its size,
    anything else to a flat 5%.
    """
    if portfolio_return < 0:
        return abs(portfolio_return) * DRAWDOWN_LOSS_FACTOR
    return NOMINAL_DRAWDOWN


def compute_score(
    portfolio_return: float,
    portfolio_drawdown: float,
    benchmark_return: float,
    benchmark_drawdown: float,
) -> ScoreComponents:
    """
    Score performance against the benchmark.

    Both sub-scores start at 50, move 2 points per percentage point of
    outperformance (return) or protection (drawdown), and are clamped to
    [0, 100]. The final score is their average rounded half up.
    """
    outperformance = portfolio_return - benchmark_return
    return_score = _clamp(NEUTRAL_SCORE + outperformance * 100 * SCORE_SENSITIVITY)

    protection = benchmark_drawdown - portfolio_drawdown
    drawdown_score = _clamp(NEUTRAL_SCORE + protection * 100 * SCORE_SENSITIVITY)

    score = round_half_up(0.5 * return_score + 0.5 * drawdown_score)
    return ScoreComponents(score=score, return_score=return_score, drawdown_score=drawdown_score)


def get_score_label(score: int) -> ScoreLabel:
    for band in SCORE_LABELS:
        if band.min_score <= score <= band.max_score:
            return band
    return DEFAULT_SCORE_LABEL
