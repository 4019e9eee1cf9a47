"""
Historical return tables.

Verified index returns are hand-curated and period-matched; the per-analog
fallback tables are estimates used only when no better tier resolves.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Mapping

from kronos.scoring.schemas import AnalogId, AssetClass


@dataclass(frozen=True)
class VerifiedReturn:
    """A sourced index return for one (analog, asset class) pair."""

    start_date: date
    end_date: date
    return_value: float
    source: str


@dataclass(frozen=True)
class BenchmarkFallback:
    """Static S&P 500 return and max drawdown for an analog period."""

    return_value: float
    drawdown: float


def _verified(start: date, end: date, rows: dict[AssetClass, tuple[float, str]]) -> Mapping[AssetClass, VerifiedReturn]:
    return MappingProxyType({
        asset_class: VerifiedReturn(start, end, value, source)
        for asset_class, (value, source) in rows.items()
    })


VERIFIED_HISTORICAL_RETURNS: Mapping[AnalogId, Mapping[AssetClass, VerifiedReturn]] = MappingProxyType({
    AnalogId.DOT_COM_BUST: _verified(date(2000, 3, 1), date(2002, 10, 1), {
        AssetClass.US_LARGE_CAP: (-0.4784, "S&P 500 Index"),
        AssetClass.US_GROWTH: (-0.6390, "Russell 1000 Growth Index"),
        AssetClass.US_VALUE: (-0.2410, "Russell 1000 Value Index"),
        AssetClass.US_SMALL_CAP: (-0.1580, "Russell 2000 Index"),
        AssetClass.INTERNATIONAL: (-0.3120, "MSCI EAFE Index"),
        AssetClass.EMERGING_MARKETS: (-0.1850, "MSCI Emerging Markets Index"),
        AssetClass.TECH_SECTOR: (-0.7820, "S&P Technology Sector"),
        AssetClass.LONG_TREASURIES: (0.2180, "Ibbotson Long-Term Government Bond Index"),
        AssetClass.INTERMEDIATE_TREASURIES: (0.1520, "Ibbotson Intermediate-Term Government Bond Index"),
        AssetClass.AGGREGATE_BONDS: (0.1640, "Barclays U.S. Aggregate Bond Index"),
        AssetClass.GOLD: (0.1250, "LBMA Gold Price"),
        AssetClass.COMMODITIES: (-0.0850, "CRB Commodity Index"),
        AssetClass.CASH: (0.0890, "Federal Reserve 3-Month T-Bill Rate"),
    }),
    AnalogId.COVID_CRASH: _verified(date(2020, 2, 1), date(2020, 3, 31), {
        AssetClass.US_LARGE_CAP: (-0.1927, "SPY ETF"),
    }),
    AnalogId.STAGFLATION: _verified(date(1973, 1, 1), date(1974, 12, 31), {
        AssetClass.US_LARGE_CAP: (-0.3730, "S&P 500 Index"),
        AssetClass.LONG_TREASURIES: (-0.0420, "Ibbotson Long-Term Government Bond Index"),
        AssetClass.GOLD: (0.7350, "LBMA Gold Price"),
        AssetClass.COMMODITIES: (0.4280, "CRB Commodity Index"),
    }),
})


def _fallback(values: tuple[float, ...]) -> Mapping[AssetClass, float]:
    classes = tuple(AssetClass)
    if len(values) != len(classes):
        raise ValueError("fallback table must cover every asset class")
    return MappingProxyType(dict(zip(classes, values)))


# Columns follow AssetClass declaration order.
FALLBACK_RETURNS_BY_ANALOG: Mapping[AnalogId, Mapping[AssetClass, float]] = MappingProxyType({
    AnalogId.COVID_CRASH: _fallback((
        -0.339, -0.38, -0.30, -0.34, -0.36, -0.32, -0.28, -0.24, -0.42, -0.48,
        0.109, 0.087, 0.045, 0.08, 0.085, 0.05, -0.28, 0.03, -0.24, 0.02,
    )),
    AnalogId.DOT_COM_BUST: _fallback((
        -0.50, -0.65, -0.28, -0.20, -0.35, -0.40, -0.75, -0.15, -0.25, -0.15,
        0.12, 0.10, 0.05, 0.08, 0.10, 0.05, -0.10, 0.15, -0.15, 0.08,
    )),
    AnalogId.RATE_SHOCK: _fallback((
        -0.18, -0.30, -0.08, -0.20, -0.20, -0.18, -0.35, -0.12, -0.06, 0.55,
        -0.24, -0.12, -0.02, -0.08, -0.14, -0.14, -0.18, -0.02, 0.28, 0.15,
    )),
    AnalogId.STAGFLATION: _fallback((
        -0.37, -0.42, -0.30, -0.35, -0.32, -0.38, -0.45, -0.28, -0.40, 0.45,
        -0.10, -0.05, 0.08, 0.15, -0.08, -0.12, -0.18, 0.65, 0.55, 0.10,
    )),
})

FALLBACK_SP500_BENCHMARKS: Mapping[AnalogId, BenchmarkFallback] = MappingProxyType({
    AnalogId.COVID_CRASH: BenchmarkFallback(return_value=-0.339, drawdown=0.339),
    AnalogId.DOT_COM_BUST: BenchmarkFallback(return_value=-0.50, drawdown=0.50),
    AnalogId.RATE_SHOCK: BenchmarkFallback(return_value=-0.18, drawdown=0.20),
    AnalogId.STAGFLATION: BenchmarkFallback(return_value=-0.37, drawdown=0.48),
})

DEFAULT_BENCHMARK_FALLBACK = BenchmarkFallback(return_value=-0.20, drawdown=0.20)

# Returns outside this band are logged as suspicious, not rejected.
MIN_PLAUSIBLE_RETURN = -0.95
MAX_PLAUSIBLE_RETURN = 3.0


def get_verified_return(analog_id: AnalogId, asset_class: AssetClass) -> VerifiedReturn | None:
    """Verified index return for the pair, if one was curated."""
    return VERIFIED_HISTORICAL_RETURNS.get(analog_id, {}).get(asset_class)


def get_fallback_return(analog_id: AnalogId, asset_class: AssetClass) -> float | None:
    """Hard-coded estimate for the pair."""
    table = FALLBACK_RETURNS_BY_ANALOG.get(analog_id)
    if table is None:
        return None
    return table.get(asset_class)


def get_benchmark_fallback(analog_id: AnalogId) -> BenchmarkFallback:
    return FALLBACK_SP500_BENCHMARKS.get(analog_id, DEFAULT_BENCHMARK_FALLBACK)
