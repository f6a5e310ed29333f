"""
Forecast orchestrator: runs the four generators over one snapshot and rolls them up.

  Stock-out    days of cover per item
  Demand       monthly quantity trend per item
  Pricing      unit price trend, volatility and savings per item
  Vendor risk  delivery / quality / payment trajectory per vendor
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Dict, List, Optional

from loguru import logger

from procurement_engine.engine.risk_analyzer import RiskFactorAnalyzer
from procurement_engine.forecasting.demand import forecast_demands
from procurement_engine.forecasting.pricing import forecast_pricings
from procurement_engine.forecasting.stock_out import forecast_stock_outs
from procurement_engine.forecasting.summary import summarize_forecasts
from procurement_engine.forecasting.vendor_risk import forecast_vendor_risks
from procurement_engine.models.forecast import (
    DemandForecast, ForecastData, PricingForecast, StockOutForecast, VendorRiskForecast,
)
from procurement_engine.models.risk import RiskAssessment
from procurement_engine.storage import StorageSnapshot


class ForecastEngine:
    """Runs every forecast generator against an immutable snapshot."""

    def __init__(self, analyzer: Optional[RiskFactorAnalyzer] = None, max_workers: int = 4):
        self.analyzer = analyzer or RiskFactorAnalyzer()
        self.max_workers = max_workers

    def stock_out(self, snapshot: StorageSnapshot, as_of: date) -> List[StockOutForecast]:
        return forecast_stock_outs(snapshot.items, snapshot.purchases, as_of)

    def demand(self, snapshot: StorageSnapshot, as_of: date) -> List[DemandForecast]:
        return forecast_demands(snapshot.items, snapshot.purchases, as_of)

    def pricing(self, snapshot: StorageSnapshot, as_of: date) -> List[PricingForecast]:
        vendors = {v.id: v for v in snapshot.vendors}
        return forecast_pricings(snapshot.items, snapshot.purchases, snapshot.vendor_items, vendors, as_of)

    def vendor_risk(
        self,
        snapshot: StorageSnapshot,
        as_of: date,
        assessments: Optional[Dict[str, RiskAssessment]] = None,
    ) -> List[VendorRiskForecast]:
        return forecast_vendor_risks(snapshot.vendors, snapshot.purchases, as_of, assessments, self.analyzer)

    def generate_all(
        self,
        snapshot: StorageSnapshot,
        as_of: Optional[date] = None,
        assessments: Optional[Dict[str, RiskAssessment]] = None,
    ) -> ForecastData:
        """All four forecast collections plus their summary."""
        as_of = as_of or date.today()
        logger.info(
            f"Generating forecasts as of {as_of}: {len(snapshot.items)} items, "
            f"{len(snapshot.vendors)} vendors"
        )
        start_time = datetime.utcnow()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            stock_outs = pool.submit(self.stock_out, snapshot, as_of)
            demands = pool.submit(self.demand, snapshot, as_of)
            pricings = pool.submit(self.pricing, snapshot, as_of)
            vendor_risks = pool.submit(self.vendor_risk, snapshot, as_of, assessments)

            data = ForecastData(
                summary=summarize_forecasts(
                    stock_outs.result(), demands.result(), pricings.result(), vendor_risks.result()
                ),
                stock_out_forecasts=stock_outs.result(),
                demand_forecasts=demands.result(),
                pricing_forecasts=pricings.result(),
                vendor_risk_forecasts=vendor_risks.result(),
            )

        elapsed = (datetime.utcnow() - start_time).total_seconds()
        s = data.summary
        logger.info(
            f"Forecasts complete in {elapsed:.2f}s: {s.stock_out_alerts} stock-out alerts, "
            f"{s.rising_demand_items} rising demand, {s.price_increase_items} price increases, "
            f"{s.at_risk_vendors} at-risk vendors"
        )
        return data
