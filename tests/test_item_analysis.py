"""
Unit tests for item vendor-option building and local item risk.
"""

from datetime import date

import pytest

from conftest import make_purchase
from procurement_engine.engine.item_analysis import (
    ItemAnalysisBuilder, build_item_analysis_input, calculate_item_risk_locally,
    coefficient_of_variation, demand_trend, option_risk_score, supply_chain_risk,
)
from procurement_engine.engine.metrics import item_observations
from procurement_engine.models.comparison import DemandTrend, ItemAnalysisInput, VendorOption
from procurement_engine.models.risk import RiskLevel


class TestItemStatistics:
    @pytest.mark.parametrize("count,risk", [(0, 100), (1, 70), (2, 30), (3, 20), (6, 0)])
    def test_supply_chain_risk(self, count, risk):
        assert supply_chain_risk(count) == risk

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([10]) == 0
        assert coefficient_of_variation([90, 110]) == pytest.approx(10)
        assert coefficient_of_variation([98, 100], center=99) == pytest.approx(100 / 99)

    def test_option_risk_score(self):
        # perfect vendor, stable price, 5 day lead time, rating 5
        assert option_risk_score(100, 100, 0, 5, 5) == 2
        # unknown lead time falls back to a fixed 15
        assert option_risk_score(80, 90, 0, None, 4) == 13

    def test_demand_trend_needs_four_observations(self, bolt_item):
        purchases = [make_purchase(f"P{m}", "V", date(2025, m, 1), quantity=m * 10) for m in (1, 2, 3)]
        assert demand_trend(item_observations(bolt_item, purchases)) == DemandTrend.STABLE

    def test_demand_trend_increasing(self, bolt_item):
        purchases = [make_purchase(f"P{m}", "V", date(2025, m, 1), quantity=q)
                     for m, q in [(1, 10), (2, 10), (5, 30), (6, 30)]]
        assert demand_trend(item_observations(bolt_item, purchases)) == DemandTrend.INCREASING


class TestBuildItemAnalysisInput:
    def test_options_from_mappings_and_history(self, snapshot, bolt_item):
        vendors = {v.id: v for v in snapshot.vendors}
        item = build_item_analysis_input(bolt_item, snapshot.vendor_items, vendors, snapshot.purchases)

        assert [v.vendor_id for v in item.vendor_options] == ["V-100", "V-200"]
        acme, shaky = item.vendor_options
        assert acme.is_preferred is True
        assert acme.avg_price == 99
        assert acme.purchase_count == 2
        assert acme.lead_time_days == 5
        assert acme.quality_score == 100
        assert shaky.quality_score == 30
        assert acme.risk_score < shaky.risk_score
        assert item.total_purchases == 4
        assert item.total_quantity == 140
        assert item.avg_price == pytest.approx(110.75)
        assert item.supply_chain_risk == 30
        assert item.demand_trend == DemandTrend.STABLE
        assert item.price_stability == pytest.approx(89.3, abs=0.1)

    def test_item_without_vendors(self, snapshot):
        orphan = snapshot.items[1]
        item = ItemAnalysisBuilder().build(orphan, snapshot.vendor_items, {}, snapshot.purchases)
        assert item.vendor_options == []
        assert item.supply_chain_risk == 100
        assert item.avg_price == 0
        assert item.price_stability is None

    def test_unmapped_purchasing_vendor_included(self, bolt_item):
        purchases = [make_purchase("P1", "V-NEW", date(2025, 4, 1), unit_price=80)]
        item = build_item_analysis_input(bolt_item, [], {}, purchases)
        (only,) = item.vendor_options
        assert only.vendor_id == "V-NEW"
        assert only.quality_score == 80 and only.on_time_delivery_rate == 90
        assert only.rating == 4


class TestLocalItemRisk:
    def test_single_source_is_critical(self):
        item = ItemAnalysisInput(
            item_name="Gasket",
            vendor_options=[VendorOption(vendor_id="V1", vendor_name="Solo", avg_price=10)],
            supply_chain_risk=70,
        )
        result = calculate_item_risk_locally(item)
        # 50 - 20 (single source) - (70 - 50) * 0.2
        assert result.score == 26
        assert result.risk_level == RiskLevel.CRITICAL
        assert result.insights[0].startswith("Single-source dependency")
        assert result.recommendation.startswith("Qualify additional vendors for Gasket")

    def test_well_sourced_item_is_low_risk(self):
        options = [
            VendorOption(vendor_id=f"V{i}", vendor_name=f"V{i}", avg_price=100 + i,
                         quality_score=95, on_time_delivery_rate=98)
            for i in range(3)
        ]
        item = ItemAnalysisInput(item_name="Bolt", avg_price=101, vendor_options=options,
                                 price_stability=90, supply_chain_risk=20, total_purchases=25)
        result = calculate_item_risk_locally(item)
        assert result.score == 91
        assert result.risk_level == RiskLevel.LOW
        assert len(result.insights) <= 5
        assert "Good vendor diversity with 3 qualified suppliers" in result.insights[0]

    def test_wide_price_spread_recommends_cheapest(self):
        options = [
            VendorOption(vendor_id="A", vendor_name="Pricey", avg_price=150),
            VendorOption(vendor_id="B", vendor_name="Cheap", avg_price=90),
        ]
        result = calculate_item_risk_locally(ItemAnalysisInput(item_name="Bolt", avg_price=120, vendor_options=options))
        assert result.recommendation.startswith("Consider consolidating purchases with Cheap")
