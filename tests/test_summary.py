"""
Unit tests for the forecast roll-up.
"""

from datetime import datetime

from procurement_engine.forecasting.summary import (
    at_risk_vendors, price_increase_items, stock_out_alerts, summarize_forecasts,
)
from procurement_engine.models.forecast import (
    AlertLevel, CountTrend, DemandDirection, DemandForecast, PricingForecast,
    StockOutForecast, StockOutRisk, VendorRiskForecast,
)


def stock(item_id, level):
    return StockOutForecast(item_id=item_id, risk_level=level)


def vendor(vendor_id, alert):
    return VendorRiskForecast(vendor_id=vendor_id, current_risk_score=40, predicted_risk_score=40,
                              alert_level=alert)


class TestForecastSummary:
    def test_counts(self):
        stock_outs = [
            stock("A", StockOutRisk.CRITICAL),
            stock("B", StockOutRisk.HIGH),
            stock("C", StockOutRisk.MEDIUM),
            stock("D", None),
        ]
        demands = [
            DemandForecast(item_id="A", demand_trend=DemandDirection.RISING),
            DemandForecast(item_id="B", demand_trend=DemandDirection.FALLING),
        ]
        pricings = [
            PricingForecast(item_id="A", price_trend=CountTrend.INCREASING, savings_opportunity=120.25),
            PricingForecast(item_id="B", price_trend=CountTrend.DECREASING, savings_opportunity=79.75),
        ]
        vendors = [
            vendor("V1", AlertLevel.CRITICAL),
            vendor("V2", AlertLevel.WARNING),
            vendor("V3", AlertLevel.WATCH),
            vendor("V4", AlertLevel.NONE),
        ]
        now = datetime(2025, 6, 20, 12, 0)

        summary = summarize_forecasts(stock_outs, demands, pricings, vendors, now=now)

        assert summary.stock_out_alerts == 2
        assert summary.critical_items == 1
        assert summary.rising_demand_items == 1
        assert summary.price_increase_items == 1
        assert summary.at_risk_vendors == 2
        assert summary.total_savings_opportunity == 200.0
        assert summary.last_updated == now

    def test_empty(self):
        summary = summarize_forecasts([], [], [], [])
        assert summary.stock_out_alerts == 0
        assert summary.total_savings_opportunity == 0
        assert summary.last_updated is not None

    def test_alert_filters(self):
        assert [f.item_id for f in stock_out_alerts([stock("A", StockOutRisk.LOW), stock("B", StockOutRisk.HIGH)])] == ["B"]
        assert price_increase_items([PricingForecast(item_id="A")]) == []
        assert [f.vendor_id for f in at_risk_vendors([vendor("V1", AlertLevel.WATCH)])] == []
