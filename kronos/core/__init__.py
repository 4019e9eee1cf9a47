"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings, settings
from .exceptions import (
    AppException,
    CacheError,
    ExternalServiceError,
    GenerationError,
    IncompleteReturnsError,
    MarketDataError,
    ScoreCalculationError,
    ScoringPipelineError,
    ScoringStep,
    UnresolvableAnalogError,
    ValidationError,
)


__all__ = [
    "AppException",
    "CacheError",
    "ExternalServiceError",
    "GenerationError",
    "IncompleteReturnsError",
    "MarketDataError",
    "ScoreCalculationError",
    "ScoringPipelineError",
    "ScoringStep",
    "Settings",
    "UnresolvableAnalogError",
    "ValidationError",
    "get_settings",
    "settings",
]
