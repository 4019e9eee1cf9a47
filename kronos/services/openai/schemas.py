"""
Pydantic models for generative classifier outputs.

Each model is the strict shape a reply must parse into. Keys follow the
camelCase names used in the prompts; a missing or mistyped field fails
validation and the caller treats it as a tier failure.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from kronos.scoring.schemas import AssetClass, ScenarioId


class _Output(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Scenario Classification
# =============================================================================


class AlternativeScenario(_Output):
    scenario_id: ScenarioId = Field(alias="scenarioId")
    confidence: float = Field(ge=0.0, le=1.0)


class ScenarioClassificationOutput(_Output):
    """Scenario chosen for an investor question."""

    scenario_id: ScenarioId = Field(
        alias="scenarioId", description="One of the fixed scenario IDs"
    )
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence from 0 to 1")
    reasoning: str = Field(min_length=1, description="Brief explanation")
    alternative_scenarios: list[AlternativeScenario] = Field(
        default_factory=list, alias="alternativeScenarios"
    )


# =============================================================================
# Historical Analog Selection
# =============================================================================


class AnalogSelectionOutput(_Output):
    """Historical period most similar to the question."""

    analog_id: str = Field(alias="analogId", min_length=1)
    analog_name: str = Field(default="", alias="analogName")
    period: str = ""
    similarity: int = Field(ge=0, le=100, description="Similarity score 0-100")
    matching_factors: list[str] = Field(alias="matchingFactors", min_length=3, max_length=5)
    key_events: list[str] = Field(alias="keyEvents", min_length=3, max_length=5)
    reasoning: str = Field(min_length=1)


# =============================================================================
# Ticker Classification
# =============================================================================


class TickerClassificationOutput(_Output):
    """Asset class assignment for one ticker."""

    asset_class: AssetClass = Field(alias="assetClass")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = Field(min_length=1)
