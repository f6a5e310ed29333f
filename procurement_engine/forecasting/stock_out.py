"""Stock-out timing per item from average daily usage."""

import math
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from procurement_engine.config import settings
from procurement_engine.engine.metrics import item_observations
from procurement_engine.forecasting.bucketing import (
    Change, bucket_by_month, classify_change, in_window, split_windows,
)
from procurement_engine.models.forecast import CountTrend, StockOutForecast, StockOutRisk
from procurement_engine.models.records import Item, PurchaseRecord, PurchaseStatus
from procurement_engine.utils.helpers import round_to


UNBOUNDED_DAYS = 999
REORDER_COVER_DAYS = 14
SAFETY_FACTOR = 1.2
ORDER_COVER_DAYS = 30

_CHANGE_TO_TREND = {
    Change.UP: CountTrend.INCREASING,
    Change.DOWN: CountTrend.DECREASING,
    Change.STABLE: CountTrend.STABLE,
}


def stock_out_risk(days: int) -> StockOutRisk:
    if days <= 7:
        return StockOutRisk.CRITICAL
    if days <= 14:
        return StockOutRisk.HIGH
    if days <= 30:
        return StockOutRisk.MEDIUM
    return StockOutRisk.LOW


def forecast_stock_out(
    item: Item,
    purchases: Sequence[PurchaseRecord],
    as_of: date,
    window_days: Optional[int] = None,
) -> StockOutForecast:
    window_days = window_days or settings.OBSERVATION_WINDOW_DAYS
    observations = [o for o in item_observations(item, purchases) if o.order_date <= as_of]

    # all history up to as_of, spread over the observation window
    usage = sum(o.quantity for o in observations) / window_days

    buckets = bucket_by_month(observations, lambda o: o.order_date)
    recent_months, prior_months = split_windows(as_of)
    recent_orders = len({o.purchase_id for o in in_window(buckets, recent_months)})
    prior_orders = len({o.purchase_id for o in in_window(buckets, prior_months)})
    trend = _CHANGE_TO_TREND[classify_change(recent_orders, prior_orders)]

    delivered = [o.order_date for o in observations if o.status == PurchaseStatus.DELIVERED]
    forecast = StockOutForecast(
        item_id=item.id,
        item_code=item.item_code,
        item_name=item.item_name,
        category=item.category,
        current_stock=item.current_stock,
        avg_daily_usage=round_to(usage, 1),
        reorder_point=math.ceil(usage * REORDER_COVER_DAYS * SAFETY_FACTOR),
        suggested_order_qty=math.ceil(usage * ORDER_COVER_DAYS),
        last_order_date=max(delivered) if delivered else None,
        trend=trend,
    )

    if item.current_stock is None:
        return forecast.model_copy(update={"insufficient_data": True})
    if usage <= 0:
        return forecast.model_copy(update={
            "days_until_stock_out": UNBOUNDED_DAYS,
            "risk_level": StockOutRisk.LOW,
        })

    days = math.floor(item.current_stock / usage)
    return forecast.model_copy(update={
        "days_until_stock_out": days,
        "predicted_stock_out_date": as_of + timedelta(days=days),
        "risk_level": stock_out_risk(days),
    })


def forecast_stock_outs(
    items: Iterable[Item], purchases: Sequence[PurchaseRecord], as_of: date
) -> List[StockOutForecast]:
    """Most urgent first; items with unknown stock sort last."""
    forecasts = [forecast_stock_out(item, purchases, as_of) for item in items]
    forecasts.sort(key=lambda f: (
        f.days_until_stock_out is None,
        f.days_until_stock_out if f.days_until_stock_out is not None else 0,
    ))
    logger.debug(f"Stock-out forecasts: {len(forecasts)} items")
    return forecasts
