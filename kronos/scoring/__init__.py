"""Stress scoring pipeline: classifiers, resolvers, calculator, orchestrator."""

from .schemas import (
    AnalogId,
    AssetClass,
    AssetReturns,
    BenchmarkData,
    Holding,
    ReturnSource,
    ScenarioId,
    ScoreResult,
    TickerClassification,
)


__all__ = [
    "AnalogId",
    "AssetClass",
    "AssetReturns",
    "BenchmarkData",
    "Holding",
    "ReturnSource",
    "ScenarioId",
    "ScoreResult",
    "TickerClassification",
]
