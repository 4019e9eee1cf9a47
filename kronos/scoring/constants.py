"""
Static reference data for stress scoring.

Scenario keyword tables, historical analogs, score bands, representative ETFs
and the static ticker map. Return tables live in historical_data.
"""

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Mapping

from kronos.scoring.schemas import (
    AnalogId,
    AssetClass,
    DateRange,
    HistoricalAnalog,
    ScenarioDefinition,
    ScenarioId,
    ScoreLabel,
)


# =============================================================================
# Scenarios
# =============================================================================

# Declaration order is the keyword-matching priority order.
SCENARIOS: tuple[ScenarioDefinition, ...] = (
    ScenarioDefinition(
        id=ScenarioId.MARKET_VOLATILITY,
        name="Market Volatility",
        primary_risk="Equity Drawdown",
        keywords=("volatility", "crash", "correction", "market drop", "downturn", "panic", "sell-off"),
    ),
    ScenarioDefinition(
        id=ScenarioId.AI_SUPERCYCLE,
        name="AI Supercycle",
        primary_risk="Sector Concentration",
        keywords=("AI", "artificial intelligence", "bubble", "supercycle", "tech boom", "innovation"),
    ),
    ScenarioDefinition(
        id=ScenarioId.CASH_VS_BONDS,
        name="Cash vs Bonds",
        primary_risk="Interest Rate",
        keywords=("cash", "duration", "bonds", "treasuries", "yield", "fixed income", "rates"),
    ),
    ScenarioDefinition(
        id=ScenarioId.TECH_CONCENTRATION,
        name="Tech Concentration",
        primary_risk="Momentum Reversal",
        keywords=("concentrated", "tech heavy", "Mag 7", "big tech", "FAANG", "tech exposure"),
    ),
    ScenarioDefinition(
        id=ScenarioId.INFLATION_HEDGE,
        name="Inflation Hedge",
        primary_risk="Purchasing Power",
        keywords=("inflation", "purchasing power", "deflation", "price increases", "CPI"),
    ),
    ScenarioDefinition(
        id=ScenarioId.RECESSION_RISK,
        name="Recession Risk",
        primary_risk="Economic Contraction",
        keywords=("recession", "stagflation", "economic downturn", "slowdown", "contraction"),
    ),
)

SCENARIOS_BY_ID: Mapping[ScenarioId, ScenarioDefinition] = MappingProxyType(
    {s.id: s for s in SCENARIOS}
)

DEFAULT_SCENARIO = ScenarioId.MARKET_VOLATILITY


# =============================================================================
# Historical Analogs
# =============================================================================

HISTORICAL_ANALOGS: Mapping[AnalogId, HistoricalAnalog] = MappingProxyType({
    AnalogId.COVID_CRASH: HistoricalAnalog(
        id=AnalogId.COVID_CRASH,
        name="COVID Crash",
        date_range=DateRange(start=date(2020, 2, 1), end=date(2020, 3, 31)),
        description="Feb-Mar 2020: COVID-19 pandemic market crash",
    ),
    AnalogId.DOT_COM_BUST: HistoricalAnalog(
        id=AnalogId.DOT_COM_BUST,
        name="Dot-Com Bust",
        date_range=DateRange(start=date(2000, 3, 1), end=date(2002, 10, 1)),
        description="2000-2002: Technology bubble burst",
    ),
    AnalogId.RATE_SHOCK: HistoricalAnalog(
        id=AnalogId.RATE_SHOCK,
        name="Rate Shock",
        date_range=DateRange(start=date(2022, 1, 1), end=date(2022, 12, 31)),
        description="2022: Rapid interest rate hikes",
    ),
    AnalogId.STAGFLATION: HistoricalAnalog(
        id=AnalogId.STAGFLATION,
        name="Stagflation",
        date_range=DateRange(start=date(1973, 1, 1), end=date(1974, 12, 31)),
        description="1973-1974: Oil crisis and stagflation",
    ),
})

DEFAULT_ANALOG = AnalogId.COVID_CRASH

# Every scenario has exactly one default analog.
SCENARIO_TO_ANALOG: Mapping[ScenarioId, AnalogId] = MappingProxyType({
    ScenarioId.MARKET_VOLATILITY: AnalogId.COVID_CRASH,
    ScenarioId.AI_SUPERCYCLE: AnalogId.DOT_COM_BUST,
    ScenarioId.CASH_VS_BONDS: AnalogId.RATE_SHOCK,
    ScenarioId.TECH_CONCENTRATION: AnalogId.DOT_COM_BUST,
    ScenarioId.INFLATION_HEDGE: AnalogId.STAGFLATION,
    ScenarioId.RECESSION_RISK: AnalogId.STAGFLATION,
})

# Loose identifiers the generative selector has been seen to return.
# Extended at runtime by Settings.analog_id_synonyms.
ANALOG_ID_SYNONYMS: Mapping[str, AnalogId] = MappingProxyType({
    "DOTCOM": AnalogId.DOT_COM_BUST,
    "DOTCOM_BUST": AnalogId.DOT_COM_BUST,
    "DOT_COM": AnalogId.DOT_COM_BUST,
    "COVID": AnalogId.COVID_CRASH,
    "COVID_19": AnalogId.COVID_CRASH,
    "RATE_SHOCK_2022": AnalogId.RATE_SHOCK,
    "RATES_SHOCK": AnalogId.RATE_SHOCK,
    "STAGFLATION_70S": AnalogId.STAGFLATION,
})


# =============================================================================
# Score Labels
# =============================================================================

SCORE_LABELS: tuple[ScoreLabel, ...] = (
    ScoreLabel(label="Excellent", color="#10b981", min_score=90, max_score=100),
    ScoreLabel(label="Strong", color="#2dd4bf", min_score=75, max_score=89),
    ScoreLabel(label="Moderate", color="#f59e0b", min_score=60, max_score=74),
    ScoreLabel(label="Weak", color="#f87171", min_score=0, max_score=59),
)

DEFAULT_SCORE_LABEL = SCORE_LABELS[-1]


# =============================================================================
# Asset Classes
# =============================================================================

# Representative ETF per asset class, used for live return fetches.
ASSET_CLASS_ETFS: Mapping[AssetClass, str] = MappingProxyType({
    AssetClass.US_LARGE_CAP: "SPY",
    AssetClass.US_GROWTH: "VUG",
    AssetClass.US_VALUE: "VTV",
    AssetClass.US_SMALL_CAP: "VB",
    AssetClass.INTERNATIONAL: "VXUS",
    AssetClass.EMERGING_MARKETS: "VWO",
    AssetClass.TECH_SECTOR: "XLK",
    AssetClass.HEALTHCARE: "XLV",
    AssetClass.FINANCIALS: "XLF",
    AssetClass.ENERGY: "XLE",
    AssetClass.LONG_TREASURIES: "TLT",
    AssetClass.INTERMEDIATE_TREASURIES: "IEF",
    AssetClass.SHORT_TREASURIES: "SHY",
    AssetClass.TIPS: "TIP",
    AssetClass.AGGREGATE_BONDS: "AGG",
    AssetClass.CORPORATE_IG: "LQD",
    AssetClass.HIGH_YIELD: "HYG",
    AssetClass.GOLD: "GLD",
    AssetClass.COMMODITIES: "DBC",
    AssetClass.CASH: "SHV",
})

# First trading day of each representative ETF. Periods starting earlier
# cannot be priced from the ETF.
ETF_LAUNCH_DATES: Mapping[str, date] = MappingProxyType({
    "SPY": date(1993, 1, 22),
    "VUG": date(2004, 1, 26),
    "VTV": date(2004, 1, 26),
    "VB": date(2004, 1, 26),
    "VXUS": date(2011, 1, 26),
    "VWO": date(2005, 3, 4),
    "XLK": date(1998, 12, 16),
    "XLV": date(1998, 12, 16),
    "XLF": date(1998, 12, 16),
    "XLE": date(1998, 12, 16),
    "TLT": date(2002, 7, 22),
    "IEF": date(2002, 7, 22),
    "SHY": date(2002, 7, 22),
    "TIP": date(2003, 12, 4),
    "AGG": date(2003, 9, 22),
    "LQD": date(2002, 7, 22),
    "HYG": date(2007, 4, 4),
    "GLD": date(2004, 11, 18),
    "DBC": date(2006, 2, 3),
    "SHV": date(2007, 1, 10),
})

ASSET_CLASS_DESCRIPTIONS: Mapping[AssetClass, str] = MappingProxyType({
    AssetClass.US_LARGE_CAP: "US large-cap blend equities (S&P 500, total market)",
    AssetClass.US_GROWTH: "US large-cap growth equities",
    AssetClass.US_VALUE: "US large-cap value equities",
    AssetClass.US_SMALL_CAP: "US small-cap equities (Russell 2000)",
    AssetClass.INTERNATIONAL: "Developed markets ex-US equities",
    AssetClass.EMERGING_MARKETS: "Emerging markets equities",
    AssetClass.TECH_SECTOR: "Technology sector and semiconductors, incl. Nasdaq-100",
    AssetClass.HEALTHCARE: "Healthcare and biotech sector",
    AssetClass.FINANCIALS: "Banks, insurers and financial services",
    AssetClass.ENERGY: "Oil, gas and energy producers",
    AssetClass.LONG_TREASURIES: "US Treasuries with 20+ year maturity",
    AssetClass.INTERMEDIATE_TREASURIES: "US Treasuries with 7-10 year maturity",
    AssetClass.SHORT_TREASURIES: "US Treasuries with 1-3 year maturity",
    AssetClass.TIPS: "Treasury inflation-protected securities",
    AssetClass.AGGREGATE_BONDS: "Broad US investment-grade bond market",
    AssetClass.CORPORATE_IG: "Investment-grade corporate bonds",
    AssetClass.HIGH_YIELD: "High-yield (junk) corporate bonds",
    AssetClass.GOLD: "Physical gold, gold trusts and gold miners",
    AssetClass.COMMODITIES: "Broad commodity baskets and futures",
    AssetClass.CASH: "T-bills, money market and ultra-short instruments",
})

DEFAULT_ASSET_CLASS = AssetClass.US_LARGE_CAP
DEFAULT_CLASSIFICATION_CONFIDENCE = 0.3


# =============================================================================
# Static Ticker Map
# =============================================================================

STATIC_ETF_MAPPINGS: Mapping[AssetClass, tuple[str, ...]] = MappingProxyType({
    AssetClass.US_LARGE_CAP: ("SPY", "VOO", "IVV", "VTI", "ITOT"),
    AssetClass.US_GROWTH: ("VUG", "IVW", "VONG"),
    AssetClass.US_VALUE: ("VTV", "IVE", "VONV"),
    AssetClass.US_SMALL_CAP: ("IWM", "VB", "VTWO", "SCHA"),
    AssetClass.INTERNATIONAL: ("VEA", "IEFA", "SCHF", "EFA"),
    AssetClass.EMERGING_MARKETS: ("VWO", "IEMG", "EEM", "SCHE"),
    AssetClass.TECH_SECTOR: ("QQQ", "VGT", "XLK", "SOXX"),
    AssetClass.HEALTHCARE: ("VHT", "XLV", "IYH"),
    AssetClass.FINANCIALS: ("VFH", "XLF", "IYF"),
    AssetClass.ENERGY: ("VDE", "XLE", "IYE"),
    AssetClass.LONG_TREASURIES: ("TLT", "VGLT", "SPTL"),
    AssetClass.INTERMEDIATE_TREASURIES: ("IEF", "VGIT", "SCHR"),
    AssetClass.SHORT_TREASURIES: ("SHY", "VGSH", "SCHO", "BIL"),
    AssetClass.TIPS: ("TIP", "VTIP", "SCHP"),
    AssetClass.AGGREGATE_BONDS: ("AGG", "BND", "SCHZ"),
    AssetClass.CORPORATE_IG: ("LQD", "VCIT", "USIG"),
    AssetClass.HIGH_YIELD: ("HYG", "JNK", "USHY"),
    AssetClass.GOLD: ("GLD", "IAU", "GLDM"),
    AssetClass.COMMODITIES: ("DBC", "PDBC", "USCI", "GSG"),
    AssetClass.CASH: ("SGOV", "TFLO", "USFR"),
})

# Tickers the allocation proxies and older portfolios use that are not in
# the ETF table above.
LEGACY_TICKER_MAPPINGS: Mapping[str, AssetClass] = MappingProxyType({
    "IWF": AssetClass.US_GROWTH,
    "IWD": AssetClass.US_VALUE,
    "IJR": AssetClass.US_SMALL_CAP,
    "VXUS": AssetClass.INTERNATIONAL,
    "SHV": AssetClass.CASH,
    "CASH": AssetClass.CASH,
    "VNQ": AssetClass.US_LARGE_CAP,
})


def _build_static_ticker_map() -> dict[str, AssetClass]:
    mapping: dict[str, AssetClass] = {}
    for asset_class, tickers in STATIC_ETF_MAPPINGS.items():
        for ticker in tickers:
            mapping[ticker] = asset_class
    for ticker, asset_class in LEGACY_TICKER_MAPPINGS.items():
        mapping.setdefault(ticker, asset_class)
    return mapping


STATIC_TICKER_MAP: Mapping[str, AssetClass] = MappingProxyType(_build_static_ticker_map())


def get_scenario(scenario_id: ScenarioId) -> ScenarioDefinition:
    """Look up a scenario definition."""
    return SCENARIOS_BY_ID[scenario_id]


def get_analog(analog_id: AnalogId) -> HistoricalAnalog:
    """Look up a historical analog."""
    return HISTORICAL_ANALOGS[analog_id]


def get_analog_for_scenario(scenario_id: ScenarioId) -> HistoricalAnalog:
    """Static scenario -> analog mapping."""
    return HISTORICAL_ANALOGS[SCENARIO_TO_ANALOG.get(scenario_id, DEFAULT_ANALOG)]
