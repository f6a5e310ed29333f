"""
Procurement forecast API endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from procurement_engine.forecasting.engine import ForecastEngine
from procurement_engine.forecasting.summary import (
    stock_out_alerts, rising_demand_items, price_increase_items, at_risk_vendors,
)
from procurement_engine.storage import SnapshotStore

router = APIRouter(prefix="/forecast", tags=["forecast"])

engine = ForecastEngine()


def _generate(as_of: Optional[date]):
    return engine.generate_all(SnapshotStore.get().snapshot, as_of)


@router.get("")
async def all_forecasts(as_of: Optional[date] = Query(None)):
    """Summary plus all four forecast collections."""
    return _generate(as_of).model_dump(mode="json")


@router.get("/summary")
async def forecast_summary(as_of: Optional[date] = Query(None)):
    return _generate(as_of).summary.model_dump(mode="json")


@router.get("/stock-out/alerts")
async def stock_out_alert_items(as_of: Optional[date] = Query(None)):
    """Items at critical or high stock-out risk."""
    data = engine.stock_out(SnapshotStore.get().snapshot, as_of or date.today())
    return {"items": [f.model_dump(mode="json") for f in stock_out_alerts(data)]}


@router.get("/demand/alerts")
async def rising_demand(as_of: Optional[date] = Query(None)):
    data = engine.demand(SnapshotStore.get().snapshot, as_of or date.today())
    return {"items": [f.model_dump(mode="json") for f in rising_demand_items(data)]}


@router.get("/pricing/alerts")
async def price_increases(as_of: Optional[date] = Query(None)):
    data = engine.pricing(SnapshotStore.get().snapshot, as_of or date.today())
    return {"items": [f.model_dump(mode="json") for f in price_increase_items(data)]}


@router.get("/vendor-risk/alerts")
async def at_risk(as_of: Optional[date] = Query(None)):
    """Vendors at warning or critical alert level."""
    data = engine.vendor_risk(SnapshotStore.get().snapshot, as_of or date.today())
    return {"vendors": [f.model_dump(mode="json") for f in at_risk_vendors(data)]}
