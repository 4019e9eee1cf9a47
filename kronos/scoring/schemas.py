"""
Pydantic schemas for the stress scoring engine.

All data structures shared by the classifiers, resolvers, calculator and
orchestrator.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class ScenarioId(str, Enum):
    """Investor risk scenarios, in keyword-matching order."""

    MARKET_VOLATILITY = "market-volatility"
    AI_SUPERCYCLE = "ai-supercycle"
    CASH_VS_BONDS = "cash-vs-bonds"
    TECH_CONCENTRATION = "tech-concentration"
    INFLATION_HEDGE = "inflation-hedge"
    RECESSION_RISK = "recession-risk"


class AnalogId(str, Enum):
    """Historical periods used as stand-ins for a scenario."""

    COVID_CRASH = "COVID_CRASH"
    DOT_COM_BUST = "DOT_COM_BUST"
    RATE_SHOCK = "RATE_SHOCK"
    STAGFLATION = "STAGFLATION"


class AssetClass(str, Enum):
    """Coarse asset classes used for historical return lookup."""

    US_LARGE_CAP = "us-large-cap"
    US_GROWTH = "us-growth"
    US_VALUE = "us-value"
    US_SMALL_CAP = "us-small-cap"
    INTERNATIONAL = "international"
    EMERGING_MARKETS = "emerging-markets"
    TECH_SECTOR = "tech-sector"
    HEALTHCARE = "healthcare"
    FINANCIALS = "financials"
    ENERGY = "energy"
    LONG_TREASURIES = "long-treasuries"
    INTERMEDIATE_TREASURIES = "intermediate-treasuries"
    SHORT_TREASURIES = "short-treasuries"
    TIPS = "tips"
    AGGREGATE_BONDS = "aggregate-bonds"
    CORPORATE_IG = "corporate-ig"
    HIGH_YIELD = "high-yield"
    GOLD = "gold"
    COMMODITIES = "commodities"
    CASH = "cash"


class ReturnSource(str, Enum):
    """Tier that produced an asset-class return."""

    CACHE = "cache"
    MARKET_DATA = "market_data"
    VERIFIED = "verified"
    ESTIMATE = "estimate"


class ClassificationSource(str, Enum):
    """Tier that produced a ticker classification."""

    STATIC = "static"
    CACHE = "cache"
    GENERATIVE = "generative"


class ClassificationMethod(str, Enum):
    """How a scenario or analog was chosen."""

    GENERATIVE = "generative"
    KEYWORD = "keyword"
    STATIC = "static"
    DEFAULT = "default"


# =============================================================================
# Market Data
# =============================================================================


class PricePoint(BaseModel):
    """Single daily close."""

    model_config = ConfigDict(frozen=True)

    day: date
    close: float


# =============================================================================
# Reference Data
# =============================================================================


class DateRange(BaseModel):
    """Inclusive historical period."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("date range end precedes start")
        return self

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


class ScenarioDefinition(BaseModel):
    """A scenario with its keyword table."""

    model_config = ConfigDict(frozen=True)

    id: ScenarioId
    name: str
    primary_risk: str
    keywords: tuple[str, ...]


class HistoricalAnalog(BaseModel):
    """A historical period that exemplifies one or more scenarios."""

    model_config = ConfigDict(frozen=True)

    id: AnalogId
    name: str
    date_range: DateRange
    description: str


class ScoreLabel(BaseModel):
    """Display band for a final score."""

    model_config = ConfigDict(frozen=True)

    label: str
    color: str
    min_score: int
    max_score: int


# =============================================================================
# Portfolio
# =============================================================================


class Holding(BaseModel):
    """A single position; asset_class may be filled in by the ticker classifier."""

    ticker: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0, le=1.0)
    asset_class: AssetClass | None = None

    @field_validator("ticker", mode="before")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return str(v).strip().upper()


# =============================================================================
# Resolution Outputs
# =============================================================================


class AssetReturns(BaseModel):
    """Complete per-asset-class returns for one (analog, version) pair."""

    model_config = ConfigDict(frozen=True)

    analog_id: AnalogId
    version: int
    returns: dict[AssetClass, float]
    sources: dict[AssetClass, ReturnSource] = Field(default_factory=dict)

    def __getitem__(self, asset_class: AssetClass) -> float:
        return self.returns[asset_class]

    def __contains__(self, asset_class: object) -> bool:
        return asset_class in self.returns

    def get(self, asset_class: AssetClass, default: float | None = None) -> float | None:
        return self.returns.get(asset_class, default)

    @property
    def estimated_classes(self) -> list[AssetClass]:
        """Classes that fell through to the hard-coded estimate tier."""
        return [ac for ac, src in self.sources.items() if src == ReturnSource.ESTIMATE]


class BenchmarkData(BaseModel):
    """S&P 500 return and max drawdown for one analog period."""

    model_config = ConfigDict(frozen=True)

    return_value: float
    drawdown: float = Field(..., ge=0.0)
    source: ReturnSource
    ticker: str | None = None


class TickerClassification(BaseModel):
    """Asset class assignment for a ticker."""

    ticker: str
    asset_class: AssetClass
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""
    source: ClassificationSource
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ScenarioClassification(BaseModel):
    """Scenario chosen for a question plus how it was chosen."""

    scenario_id: ScenarioId
    confidence: float = Field(..., ge=0.0, le=1.0)
    method: ClassificationMethod
    reasoning: str = ""
    matched_keyword: str | None = None
    alternatives: list[tuple[ScenarioId, float]] = Field(default_factory=list)


class AnalogMatch(BaseModel):
    """Similarity metadata from generative analog selection."""

    model_config = ConfigDict(frozen=True)

    similarity: int = Field(..., ge=0, le=100)
    matching_factors: list[str]
    key_events: list[str]
    reasoning: str


class AnalogSelection(BaseModel):
    """Selected analog with optional generative match metadata."""

    model_config = ConfigDict(frozen=True)

    analog: HistoricalAnalog
    method: ClassificationMethod
    match: AnalogMatch | None = None


# =============================================================================
# Scores
# =============================================================================


class ScoreComponents(BaseModel):
    """Final score and its two clamped sub-scores."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    return_score: float = Field(..., ge=0.0, le=100.0)
    drawdown_score: float = Field(..., ge=0.0, le=100.0)


class AssetClassContribution(BaseModel):
    """Aggregated weight and contribution of one asset class."""

    model_config = ConfigDict(frozen=True)

    weight: float
    return_value: float
    contribution: float


class ScoreResult(BaseModel):
    """Everything a caller receives from one scoring call."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    label: str
    color: str
    scenario_id: ScenarioId
    scenario_name: str
    primary_risk: str
    analog_id: AnalogId
    analog_name: str
    analog_period: str
    portfolio_return: float
    benchmark_return: float
    outperformance: float
    portfolio_drawdown: float
    benchmark_drawdown: float
    return_score: float = Field(..., ge=0.0, le=100.0)
    drawdown_score: float = Field(..., ge=0.0, le=100.0)
    breakdown: dict[AssetClass, AssetClassContribution] = Field(default_factory=dict)
    scenario_confidence: float | None = None
    scenario_method: ClassificationMethod | None = None
    scenario_reasoning: str | None = None
    analog_method: ClassificationMethod | None = None
    ai_analysis: AnalogMatch | None = None
    estimated_asset_classes: list[AssetClass] = Field(default_factory=list)
    low_confidence: bool = False
