"""Demand trend per item from monthly quantities."""

import math
from datetime import date
from typing import Iterable, List, Sequence

from loguru import logger

from procurement_engine.engine.metrics import item_observations
from procurement_engine.forecasting.bucketing import WINDOW_MONTHS, bucket_by_month, split_windows
from procurement_engine.models.forecast import DemandDirection, DemandForecast
from procurement_engine.models.records import Item, PurchaseRecord
from procurement_engine.utils.helpers import round_half_up, round_to


GROWTH_THRESHOLD = 10.0   # percent


def growth_rate(current: float, last: float) -> float:
    if last <= 0:
        return 0.0
    return (current - last) / last * 100


def demand_direction(growth: float) -> DemandDirection:
    if growth > GROWTH_THRESHOLD:
        return DemandDirection.RISING
    if growth < -GROWTH_THRESHOLD:
        return DemandDirection.FALLING
    return DemandDirection.STABLE


def seasonality_factor(as_of: date) -> float:
    # zero-based month index: January is 0
    return 1 + math.sin((as_of.month - 1) * math.pi / 6) * 0.1


def forecast_demand(item: Item, purchases: Sequence[PurchaseRecord], as_of: date) -> DemandForecast:
    """
    Current / last demand are the average monthly quantities of the recent and
    prior three-month windows, so a step change shows up as growth between them.
    """
    observations = [o for o in item_observations(item, purchases) if o.order_date <= as_of]
    monthly = {
        month: sum(o.quantity for o in obs)
        for month, obs in bucket_by_month(observations, lambda o: o.order_date).items()
    }
    recent_months, prior_months = split_windows(as_of)
    current = sum(monthly.get(m, 0.0) for m in recent_months) / WINDOW_MONTHS
    last = sum(monthly.get(m, 0.0) for m in prior_months) / WINDOW_MONTHS

    growth = growth_rate(current, last)
    predicted = max(0, round_half_up(current * (1 + growth / 100)))
    average = sum(monthly.values()) / len(monthly) if monthly else 0.0
    confidence = min(0.95, 0.5 + len(monthly) * 0.05)

    return DemandForecast(
        item_id=item.id,
        item_code=item.item_code,
        item_name=item.item_name,
        category=item.category,
        current_month_demand=round_to(current, 2),
        last_month_demand=round_to(last, 2),
        avg_monthly_demand=round_half_up(average),
        predicted_next_month_demand=predicted,
        demand_trend=demand_direction(growth),
        growth_rate=round_to(growth, 1),
        seasonality_factor=round_to(seasonality_factor(as_of), 2),
        confidence=round_to(confidence, 2),
    )


def forecast_demands(
    items: Iterable[Item], purchases: Sequence[PurchaseRecord], as_of: date
) -> List[DemandForecast]:
    """Highest growth first."""
    forecasts = [forecast_demand(item, purchases, as_of) for item in items]
    forecasts.sort(key=lambda f: f.growth_rate, reverse=True)
    logger.debug(f"Demand forecasts: {len(forecasts)} items")
    return forecasts
