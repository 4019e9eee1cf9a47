"""
Kronos scoring pipeline.

    question + holdings
      -> scenario classification
      -> analog selection
      -> asset returns || benchmark
      -> ticker classification (holdings without an asset class)
      -> return, drawdown and score

Generative failures degrade to deterministic fallbacks inside each step.
Anything that still fails surfaces as a ScoringPipelineError naming the step.

Usage:
    from kronos.scoring.orchestrator import score

    result = await score(
        "How does my portfolio handle market volatility?",
        [Holding(ticker="VTI", weight=0.6), Holding(ticker="BND", weight=0.4)],
    )
    print(result.score, result.label)
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kronos.core.config import Settings, get_settings
from kronos.core.exceptions import (
    AppException,
    ScoringPipelineError,
    ScoringStep,
    ValidationError,
)
from kronos.core.logging import get_logger, scoring_run_id_var
from kronos.scoring import calculator
from kronos.scoring.analog_selector import AnalogSelector
from kronos.scoring.asset_returns import AssetReturnsResolver
from kronos.scoring.benchmark import BenchmarkResolver
from kronos.scoring.cache_store import (
    AssetReturnsStore,
    DatabaseAssetReturnsStore,
    DatabaseTickerClassificationStore,
    TickerClassificationStore,
)
from kronos.scoring.constants import DEFAULT_CLASSIFICATION_CONFIDENCE, get_scenario
from kronos.scoring.scenario_classifier import ScenarioClassifier
from kronos.scoring.schemas import (
    AssetReturns,
    BenchmarkData,
    ClassificationMethod,
    HistoricalAnalog,
    Holding,
    ReturnSource,
    ScoreResult,
)
from kronos.scoring.ticker_classifier import TickerClassifier
from kronos.services.data_providers.yfinance_service import (
    MarketDataProvider,
    get_yfinance_service,
)
from kronos.services.openai.generate import GenerativeClient, get_generative_client

logger = get_logger("scoring.orchestrator")

HoldingInput = Union[Holding, Mapping[str, Any]]


def coerce_holdings(holdings: Iterable[HoldingInput]) -> list[Holding]:
    """Accept Holding models or plain dicts with ticker/weight/asset_class."""
    result: list[Holding] = []
    for item in holdings:
        if isinstance(item, Holding):
            result.append(item)
            continue
        try:
            result.append(Holding.model_validate(dict(item)))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid holding: {item!r}",
                details={"errors": e.errors(include_url=False)},
            ) from e
    if not result:
        raise ValidationError("Portfolio has no holdings")
    return result


class KronosScorer:
    """Runs one question + portfolio through the scoring pipeline."""

    def __init__(
        self,
        scenario_classifier: ScenarioClassifier,
        analog_selector: AnalogSelector,
        returns_resolver: AssetReturnsResolver,
        benchmark_resolver: BenchmarkResolver,
        ticker_classifier: TickerClassifier,
        settings: Settings | None = None,
    ):
        self.scenario_classifier = scenario_classifier
        self.analog_selector = analog_selector
        self.returns_resolver = returns_resolver
        self.benchmark_resolver = benchmark_resolver
        self.ticker_classifier = ticker_classifier
        self._settings = settings or get_settings()

    @classmethod
    def create(
        cls,
        *,
        client: GenerativeClient | None = None,
        market_data: MarketDataProvider | None = None,
        returns_store: AssetReturnsStore | None = None,
        ticker_store: TickerClassificationStore | None = None,
        settings: Settings | None = None,
    ) -> "KronosScorer":
        """Wire the components around shared collaborators."""
        settings = settings or get_settings()
        return cls(
            scenario_classifier=ScenarioClassifier(client, settings),
            analog_selector=AnalogSelector(client, market_data, settings),
            returns_resolver=AssetReturnsResolver(returns_store, market_data, settings),
            benchmark_resolver=BenchmarkResolver(market_data, settings),
            ticker_classifier=TickerClassifier(ticker_store, client, settings),
            settings=settings,
        )

    async def _classify_holdings(self, holdings: list[Holding]) -> tuple[list[Holding], list[str]]:
        """Fill missing asset classes; returns holdings and low-confidence tickers."""
        pending = [h.ticker for h in holdings if h.asset_class is None]
        if not pending:
            return holdings, []

        classifications = await self.ticker_classifier.classify_batch(pending)
        uncertain = [
            ticker
            for ticker, c in classifications.items()
            if c.confidence <= DEFAULT_CLASSIFICATION_CONFIDENCE
        ]
        classified = [
            h if h.asset_class is not None
            else h.model_copy(update={"asset_class": classifications[h.ticker].asset_class})
            for h in holdings
        ]
        return classified, uncertain

    async def _resolve_market(self, analog: HistoricalAnalog) -> tuple[AssetReturns, BenchmarkData]:
        returns, benchmark = await asyncio.gather(
            self.returns_resolver.resolve(analog.id, analog.date_range),
            self.benchmark_resolver.resolve(analog),
        )
        return returns, benchmark

    async def score(self, question: str, holdings: Iterable[HoldingInput]) -> ScoreResult:
        """
        Score a portfolio against the scenario behind ``question``.

        Raises:
            ValidationError: empty question or invalid holdings
            ScoringPipelineError: a step failed irrecoverably
        """
        if not question or not question.strip():
            raise ValidationError("Question is required")
        portfolio = coerce_holdings(holdings)

        token = scoring_run_id_var.set(uuid.uuid4().hex[:12])
        step = ScoringStep.SCENARIO
        try:
            logger.info(f"Scoring {len(portfolio)} holdings: {question[:80]!r}")

            scenario = await self.scenario_classifier.classify_detailed(question)
            definition = get_scenario(scenario.scenario_id)

            step = ScoringStep.ANALOG
            selection = await self.analog_selector.select(scenario.scenario_id, question)
            analog = selection.analog
            logger.info(
                f"Scenario {scenario.scenario_id.value} ({scenario.method.value}) -> "
                f"{analog.id.value} ({selection.method.value})"
            )

            step = ScoringStep.ASSET_RETURNS
            asset_returns, benchmark = await self._resolve_market(analog)

            step = ScoringStep.TICKER_CLASSIFICATION
            portfolio, uncertain_tickers = await self._classify_holdings(portfolio)

            step = ScoringStep.CALCULATION
            portfolio = calculator.normalize_portfolio(portfolio)
            portfolio_return = calculator.compute_return(portfolio, asset_returns)
            breakdown = calculator.compute_breakdown(portfolio, asset_returns)
            portfolio_drawdown = calculator.estimate_drawdown(portfolio_return)
            components = calculator.compute_score(
                portfolio_return,
                portfolio_drawdown,
                benchmark.return_value,
                benchmark.drawdown,
            )
            label = calculator.get_score_label(components.score)

            held_classes = set(breakdown)
            estimated = [ac for ac in asset_returns.estimated_classes if ac in held_classes]
            low_confidence = bool(
                scenario.method == ClassificationMethod.DEFAULT
                or estimated
                or uncertain_tickers
                or benchmark.source == ReturnSource.ESTIMATE
            )

            result = ScoreResult(
                score=components.score,
                label=label.label,
                color=label.color,
                scenario_id=scenario.scenario_id,
                scenario_name=definition.name,
                primary_risk=definition.primary_risk,
                analog_id=analog.id,
                analog_name=analog.name,
                analog_period=str(analog.date_range),
                portfolio_return=portfolio_return,
                benchmark_return=benchmark.return_value,
                outperformance=portfolio_return - benchmark.return_value,
                portfolio_drawdown=portfolio_drawdown,
                benchmark_drawdown=benchmark.drawdown,
                return_score=components.return_score,
                drawdown_score=components.drawdown_score,
                breakdown=breakdown,
                scenario_confidence=scenario.confidence,
                scenario_method=scenario.method,
                scenario_reasoning=scenario.reasoning,
                analog_method=selection.method,
                ai_analysis=selection.match,
                estimated_asset_classes=estimated,
                low_confidence=low_confidence,
            )
            logger.info(
                f"Score {result.score}/100 ({result.label}): return {portfolio_return:.2%} "
                f"vs {benchmark.return_value:.2%}"
            )
            return result
        except AppException:
            raise
        except Exception as e:
            logger.exception(f"Scoring failed during {step.value}")
            raise ScoringPipelineError(
                f"Scoring failed during {step.value}: {e}",
                step=step,
                details={"error": type(e).__name__},
            ) from e
        finally:
            scoring_run_id_var.reset(token)


_default_scorer: Optional[KronosScorer] = None


def get_scorer() -> KronosScorer:
    """Process-wide scorer over yfinance, OpenAI and the database caches."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = KronosScorer.create(
            client=get_generative_client(),
            market_data=get_yfinance_service(),
            returns_store=DatabaseAssetReturnsStore(),
            ticker_store=DatabaseTickerClassificationStore(),
        )
    return _default_scorer


def set_scorer(scorer: KronosScorer | None) -> None:
    """Override the default scorer (for testing)."""
    global _default_scorer
    _default_scorer = scorer


async def score(question: str, holdings: Iterable[HoldingInput]) -> ScoreResult:
    """Score ``holdings`` against ``question`` with the default scorer."""
    return await get_scorer().score(question, holdings)
