"""Portfolio-level roll-up of the four forecast collections."""

from datetime import datetime
from typing import List, Optional, Sequence

from procurement_engine.models.forecast import (
    AlertLevel, CountTrend, DemandDirection, DemandForecast, ForecastSummary,
    PricingForecast, StockOutForecast, StockOutRisk, VendorRiskForecast,
)
from procurement_engine.utils.helpers import round_to


def stock_out_alerts(forecasts: Sequence[StockOutForecast]) -> List[StockOutForecast]:
    return [f for f in forecasts if f.risk_level in (StockOutRisk.CRITICAL, StockOutRisk.HIGH)]


def rising_demand_items(forecasts: Sequence[DemandForecast]) -> List[DemandForecast]:
    return [f for f in forecasts if f.demand_trend == DemandDirection.RISING]


def price_increase_items(forecasts: Sequence[PricingForecast]) -> List[PricingForecast]:
    return [f for f in forecasts if f.price_trend == CountTrend.INCREASING]


def at_risk_vendors(forecasts: Sequence[VendorRiskForecast]) -> List[VendorRiskForecast]:
    return [f for f in forecasts if f.alert_level in (AlertLevel.WARNING, AlertLevel.CRITICAL)]


def summarize_forecasts(
    stock_outs: Sequence[StockOutForecast],
    demands: Sequence[DemandForecast],
    pricings: Sequence[PricingForecast],
    vendor_risks: Sequence[VendorRiskForecast],
    now: Optional[datetime] = None,
) -> ForecastSummary:
    return ForecastSummary(
        stock_out_alerts=len(stock_out_alerts(stock_outs)),
        critical_items=sum(1 for f in stock_outs if f.risk_level == StockOutRisk.CRITICAL),
        rising_demand_items=len(rising_demand_items(demands)),
        price_increase_items=len(price_increase_items(pricings)),
        at_risk_vendors=len(at_risk_vendors(vendor_risks)),
        total_savings_opportunity=round_to(sum(f.savings_opportunity for f in pricings), 2),
        last_updated=now or datetime.utcnow(),
    )
