"""Exception hierarchy for the scoring engine."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ScoringStep(str, Enum):
    """Pipeline steps a scoring call can fail in."""

    SCENARIO = "scenario"
    ANALOG = "analog"
    ASSET_RETURNS = "asset_returns"
    BENCHMARK = "benchmark"
    TICKER_CLASSIFICATION = "ticker_classification"
    CALCULATION = "calculation"


class AppException(Exception):
    """Base application exception with a structured error payload."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a problem+json style payload."""
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ValidationError(AppException):
    """Input validation failed."""

    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


class ExternalServiceError(AppException):
    """External service error."""

    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service temporarily unavailable"


class MarketDataError(ExternalServiceError):
    """Market data provider failed (distinct from an empty series)."""

    error_code = "MARKET_DATA_ERROR"
    message = "Market data provider failed"


class GenerationError(ExternalServiceError):
    """Generative provider call failed or was refused."""

    error_code = "GENERATION_ERROR"
    message = "Generative provider failed"


class CacheError(AppException):
    """Cache operation failed."""

    error_code = "CACHE_ERROR"
    message = "Cache operation failed"


class ScoringPipelineError(AppException):
    """A scoring step failed irrecoverably."""

    error_code = "SCORING_FAILED"
    message = "Scoring failed"
    step: ScoringStep = ScoringStep.CALCULATION

    def __init__(
        self,
        message: str | None = None,
        step: ScoringStep | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.step = step or self.step
        super().__init__(message=message, details=details)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["step"] = self.step.value
        return payload


class UnresolvableAnalogError(ScoringPipelineError):
    """A generated analog identifier does not map to a known analog."""

    error_code = "UNRESOLVABLE_ANALOG"
    message = "Analog identifier could not be resolved"
    step = ScoringStep.ANALOG

    def __init__(self, raw_id: str, normalized_id: str | None = None):
        self.raw_id = raw_id
        self.normalized_id = normalized_id
        super().__init__(
            message=f"Unknown analog ID: {raw_id!r}",
            details={"raw_id": raw_id, "normalized_id": normalized_id},
        )


class IncompleteReturnsError(ScoringPipelineError):
    """An asset class could not be resolved through any tier."""

    error_code = "INCOMPLETE_RETURNS"
    message = "Asset class returns could not be resolved"
    step = ScoringStep.ASSET_RETURNS


class ScoreCalculationError(ScoringPipelineError):
    """Holdings could not be scored."""

    error_code = "SCORE_CALCULATION_FAILED"
    message = "Score calculation failed"
    step = ScoringStep.CALCULATION
