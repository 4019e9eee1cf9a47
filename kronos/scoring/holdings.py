"""
Holdings extraction from stored portfolio records.

Two shapes are supported: a list of position records (ticker + weight in one
of several spellings) and a coarse allocation split across five buckets, which
becomes proxy ETF holdings.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from kronos.core.exceptions import ValidationError
from kronos.core.logging import get_logger
from kronos.scoring.calculator import PORTFOLIO_WEIGHT_TOLERANCE
from kronos.scoring.schemas import AssetClass, Holding
from kronos.scoring.ticker_classifier import get_static_asset_class

logger = get_logger("scoring.holdings")

ALLOCATION_WEIGHT_TOLERANCE = 0.001


class AssetAllocation(BaseModel):
    """Portfolio split by broad bucket, as decimals."""

    model_config = ConfigDict(populate_by_name=True)

    stocks: float = Field(default=0.0, ge=0.0, le=1.0)
    bonds: float = Field(default=0.0, ge=0.0, le=1.0)
    commodities: float = Field(default=0.0, ge=0.0, le=1.0)
    real_estate: float = Field(default=0.0, ge=0.0, le=1.0, alias="realEstate")
    cash: float = Field(default=0.0, ge=0.0, le=1.0)


# bucket -> (proxy ticker, asset class). Real estate has no historical series
# of its own and is scored as large-cap equity.
ALLOCATION_PROXIES: Mapping[str, tuple[str, AssetClass]] = {
    "stocks": ("SPY", AssetClass.US_LARGE_CAP),
    "bonds": ("AGG", AssetClass.AGGREGATE_BONDS),
    "commodities": ("DBC", AssetClass.COMMODITIES),
    "real_estate": ("VNQ", AssetClass.US_LARGE_CAP),
    "cash": ("CASH", AssetClass.CASH),
}


def holdings_from_allocation(allocation: AssetAllocation | Mapping[str, float]) -> list[Holding]:
    """Proxy ETF holdings for each non-zero bucket."""
    if not isinstance(allocation, AssetAllocation):
        allocation = AssetAllocation.model_validate(dict(allocation))

    holdings = [
        Holding(ticker=ticker, weight=getattr(allocation, bucket), asset_class=asset_class)
        for bucket, (ticker, asset_class) in ALLOCATION_PROXIES.items()
        if getattr(allocation, bucket) > 0
    ]

    total = sum(h.weight for h in holdings)
    if abs(total - 1.0) > ALLOCATION_WEIGHT_TOLERANCE:
        logger.warning(f"Asset allocation weights sum to {total:.3f}, expected 1.0")
    return holdings


def _record_ticker(record: Mapping[str, Any]) -> str:
    for key in ("ticker", "symbol", "name"):
        value = record.get(key)
        if value and str(value).strip():
            return str(value).strip().upper()
    return ""


def _record_weight(record: Mapping[str, Any]) -> float:
    if record.get("weight") is not None:
        return float(record["weight"])
    if record.get("percentage") is not None:
        return float(record["percentage"]) / 100
    if record.get("allocation") is not None:
        return float(record["allocation"])
    return 0.0


def _record_asset_class(record: Mapping[str, Any], ticker: str) -> AssetClass | None:
    raw = record.get("asset_class") or record.get("assetClass")
    if raw:
        try:
            return AssetClass(str(raw).strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown asset class {raw!r} for {ticker}")
    return get_static_asset_class(ticker)


def extract_holdings(records: Iterable[Mapping[str, Any]]) -> list[Holding]:
    """
    Build holdings from position records.

    Records without a ticker, "other" buckets and zero weights are skipped.
    Weights off by more than 0.05 are renormalized. Tickers outside the static
    map keep asset_class=None for the ticker classifier.

    Raises:
        ValidationError: no usable positions
    """
    raw: list[tuple[str, float, AssetClass | None]] = []
    for record in records:
        ticker = _record_ticker(record)
        if not ticker or "OTHER" in ticker:
            continue
        try:
            weight = _record_weight(record)
        except (TypeError, ValueError):
            logger.warning(f"Skipping {ticker}: unreadable weight")
            continue
        if weight <= 0:
            continue
        raw.append((ticker, weight, _record_asset_class(record, ticker)))

    if not raw:
        raise ValidationError(
            "Portfolio does not have specific holdings with ticker symbols"
        )

    total = sum(weight for _, weight, _ in raw)
    if abs(total - 1.0) > PORTFOLIO_WEIGHT_TOLERANCE:
        logger.warning(f"Portfolio weights sum to {total:.3f}, normalizing")
        raw = [(ticker, weight / total, ac) for ticker, weight, ac in raw]

    return [Holding(ticker=t, weight=w, asset_class=ac) for t, w, ac in raw]
