"""
Prompts for the generative classifiers.

INSTRUCTIONS are passed as the system message; the build_* functions render
the user message from reference data so the model only ever sees the closed
taxonomies.
"""

from __future__ import annotations

from typing import Mapping

from kronos.scoring.constants import (
    ASSET_CLASS_DESCRIPTIONS,
    HISTORICAL_ANALOGS,
    SCENARIOS,
    get_scenario,
)
from kronos.scoring.historical_data import get_benchmark_fallback
from kronos.scoring.schemas import ScenarioId


SCENARIO_INSTRUCTIONS = """You classify investor questions into a fixed set of risk scenarios.

You MUST:
- Pick exactly one scenarioId from the list you are given. Never invent one.
- Give a confidence between 0 and 1.
- Optionally list up to 2 alternative scenarios with confidences.
- Output MUST be a single JSON object, no markdown.

Return JSON with:
{"scenarioId": "...", "confidence": 0.0-1.0, "reasoning": "...",
 "alternativeScenarios": [{"scenarioId": "...", "confidence": 0.0-1.0}]}"""


ANALOG_INSTRUCTIONS = """You are a market historian matching today's investor concerns to past market periods.

You MUST:
- Choose exactly one analogId from the list you are given.
- Score similarity from 0 to 100.
- List 3 to 5 matchingFactors and 3 to 5 keyEvents of the chosen period.
- Output MUST be a single JSON object, no markdown.

Return JSON with:
{"analogId": "...", "analogName": "...", "period": "...", "similarity": 0-100,
 "matchingFactors": ["..."], "keyEvents": ["..."], "reasoning": "..."}"""


TICKER_INSTRUCTIONS = """You classify securities into exactly one asset class from a fixed list.

Rules:
- Choose the most specific class that fits.
- Prefer a sector class over a broad equity class for sector funds.
- Gold miners and gold trusts belong to gold.
- Leveraged or inverse products get lower confidence.
- Individual stocks map to their sector class when one exists, otherwise to the equity class matching their size and style.
- Output MUST be a single JSON object, no markdown.

Return JSON with:
{"assetClass": "...", "confidence": 0.0-1.0, "reasoning": "..."}"""


def build_scenario_prompt(question: str) -> str:
    lines = [f'Investor question: "{question.strip()}"', "", "Available scenarios:"]
    for scenario in SCENARIOS:
        lines.append(
            f"- {scenario.id.value}: {scenario.name} (primary risk: {scenario.primary_risk}; "
            f"keywords: {', '.join(scenario.keywords)})"
        )
    return "\n".join(lines)


def build_analog_prompt(
    scenario_id: ScenarioId,
    question: str | None = None,
    market_snapshot: Mapping[str, float] | None = None,
) -> str:
    scenario = get_scenario(scenario_id)
    lines = [f"Scenario: {scenario.name} (primary risk: {scenario.primary_risk})"]
    if question:
        lines.append(f'Investor question: "{question.strip()}"')

    if market_snapshot:
        lines.append("")
        lines.append("Current market conditions:")
        for name, value in market_snapshot.items():
            lines.append(f"- {name}: {value:,.2f}")

    lines.append("")
    lines.append("Available historical analogs:")
    for analog in HISTORICAL_ANALOGS.values():
        benchmark = get_benchmark_fallback(analog.id)
        lines.append(
            f"- {analog.id.value}: {analog.name}, {analog.date_range} - {analog.description} "
            f"(S&P 500 return {benchmark.return_value:+.1%}, max drawdown {benchmark.drawdown:.1%})"
        )
    return "\n".join(lines)


def build_ticker_prompt(ticker: str) -> str:
    lines = [f"Ticker: {ticker}", "", "Asset classes:"]
    for asset_class, description in ASSET_CLASS_DESCRIPTIONS.items():
        lines.append(f"- {asset_class.value}: {description}")
    return "\n".join(lines)
