"""
Tests for holdings extraction from position records and allocations.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from kronos.core.exceptions import ValidationError
from kronos.scoring.holdings import AssetAllocation, extract_holdings, holdings_from_allocation
from kronos.scoring.schemas import AssetClass


class TestExtractHoldings:
    """Tests for extract_holdings."""

    def test_weight_spellings(self):
        """weight, percentage and allocation are all accepted."""
        holdings = extract_holdings([
            {"ticker": "VTI", "weight": 0.5},
            {"symbol": "tlt", "percentage": 30},
            {"name": "GLD", "allocation": 0.2},
        ])

        assert [(h.ticker, h.weight) for h in holdings] == [
            ("VTI", 0.5),
            ("TLT", pytest.approx(0.3)),
            ("GLD", 0.2),
        ]

    def test_static_asset_classes_filled(self):
        holdings = extract_holdings([
            {"ticker": "BND", "weight": 0.5},
            {"ticker": "NVDA", "weight": 0.5},
        ])
        assert holdings[0].asset_class == AssetClass.AGGREGATE_BONDS
        assert holdings[1].asset_class is None

    def test_explicit_asset_class_wins(self):
        holdings = extract_holdings([{"ticker": "VNQ", "weight": 1.0, "assetClass": "us-value"}])
        assert holdings[0].asset_class == AssetClass.US_VALUE

    def test_unknown_explicit_asset_class_uses_static_map(self):
        holdings = extract_holdings([{"ticker": "SPY", "weight": 1.0, "asset_class": "real-estate"}])
        assert holdings[0].asset_class == AssetClass.US_LARGE_CAP

    def test_skips_other_empty_and_zero(self):
        holdings = extract_holdings([
            {"ticker": "VTI", "weight": 0.6},
            {"ticker": "Other", "weight": 0.1},
            {"ticker": "", "weight": 0.2},
            {"ticker": "IEF", "weight": 0.0},
            {"ticker": "TLT", "weight": 0.4},
        ])
        assert [h.ticker for h in holdings] == ["VTI", "TLT"]

    def test_unreadable_weight_skipped(self):
        holdings = extract_holdings([
            {"ticker": "VTI", "weight": "lots"},
            {"ticker": "TLT", "weight": 1.0},
        ])
        assert [h.ticker for h in holdings] == ["TLT"]

    def test_renormalizes_outside_tolerance(self):
        holdings = extract_holdings([
            {"ticker": "VTI", "percentage": 40},
            {"ticker": "TLT", "percentage": 40},
        ])
        assert [h.weight for h in holdings] == [pytest.approx(0.5), pytest.approx(0.5)]

    def test_keeps_weights_within_tolerance(self):
        holdings = extract_holdings([
            {"ticker": "VTI", "weight": 0.6},
            {"ticker": "TLT", "weight": 0.42},
        ])
        assert holdings[1].weight == pytest.approx(0.42)

    def test_no_usable_positions(self):
        with pytest.raises(ValidationError):
            extract_holdings([{"ticker": "OTHER", "weight": 1.0}, {"weight": 0.5}])


class TestAllocationHoldings:
    """Tests for holdings_from_allocation."""

    def test_proxy_tickers(self):
        holdings = holdings_from_allocation(
            AssetAllocation(stocks=0.5, bonds=0.3, commodities=0.05, real_estate=0.1, cash=0.05)
        )
        assert [(h.ticker, h.asset_class) for h in holdings] == [
            ("SPY", AssetClass.US_LARGE_CAP),
            ("AGG", AssetClass.AGGREGATE_BONDS),
            ("DBC", AssetClass.COMMODITIES),
            ("VNQ", AssetClass.US_LARGE_CAP),
            ("CASH", AssetClass.CASH),
        ]

    def test_zero_buckets_skipped(self):
        holdings = holdings_from_allocation({"stocks": 0.7, "bonds": 0.3})
        assert [h.ticker for h in holdings] == ["SPY", "AGG"]

    def test_camel_case_real_estate(self):
        holdings = holdings_from_allocation({"stocks": 0.8, "realEstate": 0.2})
        assert holdings[1].ticker == "VNQ"
        assert holdings[1].weight == pytest.approx(0.2)

    def test_out_of_range_bucket_rejected(self):
        with pytest.raises(PydanticValidationError):
            AssetAllocation(stocks=1.2)
