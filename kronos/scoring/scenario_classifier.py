"""
Scenario classification for free-text investor questions.

The generative tier runs first when configured; any failure falls back to
keyword matching in scenario declaration order, then to the default scenario.
"""

from __future__ import annotations

from kronos.core.config import Settings, get_settings
from kronos.core.logging import get_logger
from kronos.scoring.constants import DEFAULT_SCENARIO, SCENARIOS
from kronos.scoring.generative import Err, attempt_structured
from kronos.scoring.schemas import (
    ClassificationMethod,
    ScenarioClassification,
    ScenarioId,
)
from kronos.services.openai.generate import GenerativeClient
from kronos.services.openai.prompts import SCENARIO_INSTRUCTIONS, build_scenario_prompt
from kronos.services.openai.schemas import ScenarioClassificationOutput

logger = get_logger("scoring.scenario_classifier")

KEYWORD_MATCH_CONFIDENCE = 0.7
DEFAULT_MATCH_CONFIDENCE = 0.5


def match_keywords(question: str) -> ScenarioClassification:
    """Deterministic keyword classification; never fails."""
    text = question.lower()
    for scenario in SCENARIOS:
        for keyword in scenario.keywords:
            if keyword.lower() in text:
                return ScenarioClassification(
                    scenario_id=scenario.id,
                    confidence=KEYWORD_MATCH_CONFIDENCE,
                    method=ClassificationMethod.KEYWORD,
                    reasoning=f"Matched keyword '{keyword}'",
                    matched_keyword=keyword,
                )

    return ScenarioClassification(
        scenario_id=DEFAULT_SCENARIO,
        confidence=DEFAULT_MATCH_CONFIDENCE,
        method=ClassificationMethod.DEFAULT,
        reasoning="No scenario keywords matched, using default scenario",
    )


class ScenarioClassifier:
    """Maps a question onto the closed scenario taxonomy."""

    def __init__(
        self,
        client: GenerativeClient | None = None,
        settings: Settings | None = None,
    ):
        self._client = client
        self._settings = settings or get_settings()

    @property
    def generative_enabled(self) -> bool:
        return (
            self._settings.generative_enabled
            and self._client is not None
            and self._client.is_available()
        )

    async def classify(self, question: str) -> ScenarioId:
        return (await self.classify_detailed(question)).scenario_id

    async def classify_detailed(self, question: str) -> ScenarioClassification:
        """Classify with confidence, reasoning and the method used."""
        if self.generative_enabled:
            outcome = await attempt_structured(
                self._client,
                build_scenario_prompt(question),
                ScenarioClassificationOutput,
                system=SCENARIO_INSTRUCTIONS,
                timeout=self._settings.generative_timeout,
                max_tokens=self._settings.generative_max_tokens,
                label="scenario",
            )
            if isinstance(outcome, Err):
                logger.info(f"Generative scenario classification failed ({outcome.failure}), using keywords")
            else:
                output = outcome.value
                logger.info(
                    f"Classified question as {output.scenario_id.value} "
                    f"(confidence {output.confidence:.2f})"
                )
                return ScenarioClassification(
                    scenario_id=output.scenario_id,
                    confidence=output.confidence,
                    method=ClassificationMethod.GENERATIVE,
                    reasoning=output.reasoning,
                    alternatives=[
                        (alt.scenario_id, alt.confidence)
                        for alt in output.alternative_scenarios
                    ],
                )

        result = match_keywords(question)
        logger.debug(f"Keyword classification: {result.scenario_id.value} ({result.method.value})")
        return result
