"""Price trend, volatility and savings opportunity per item."""

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from procurement_engine.config import settings
from procurement_engine.engine.item_analysis import coefficient_of_variation
from procurement_engine.engine.metrics import item_observations
from procurement_engine.forecasting.bucketing import bucket_by_month, in_window, split_windows
from procurement_engine.models.forecast import CountTrend, PricingForecast, Volatility
from procurement_engine.models.records import Item, PurchaseRecord, VendorItem, VendorProfile
from procurement_engine.utils.helpers import mean, round_to


PRICE_TREND_THRESHOLD = 5.0    # percent


def price_trend(change_percent: float) -> CountTrend:
    if change_percent > PRICE_TREND_THRESHOLD:
        return CountTrend.INCREASING
    if change_percent < -PRICE_TREND_THRESHOLD:
        return CountTrend.DECREASING
    return CountTrend.STABLE


def volatility_band(prices: Sequence[float]) -> Volatility:
    cv = coefficient_of_variation(prices)
    if cv > 20:
        return Volatility.HIGH
    if cv > 10:
        return Volatility.MEDIUM
    return Volatility.LOW


def best_vendor_offer(
    item: Item, vendor_items: Iterable[VendorItem], vendors: Dict[str, VendorProfile]
) -> Optional[tuple]:
    """(price, vendor name) of the cheapest active mapping, or None."""
    offers = [vi for vi in vendor_items if vi.item_id == item.id and vi.status == "active"]
    if not offers:
        return None
    best = min(offers, key=lambda vi: vi.unit_price)
    vendor = vendors.get(best.vendor_id)
    name = best.vendor_name or (vendor.name if vendor and vendor.name else None) or "Unknown"
    return best.unit_price, name


def forecast_pricing(
    item: Item,
    purchases: Sequence[PurchaseRecord],
    vendor_items: Iterable[VendorItem],
    vendors: Dict[str, VendorProfile],
    as_of: date,
    lot_size: Optional[int] = None,
) -> PricingForecast:
    lot_size = lot_size or settings.SAVINGS_LOT_SIZE
    observations = [
        o for o in item_observations(item, purchases) if o.order_date <= as_of and o.unit_price > 0
    ]
    buckets = bucket_by_month(observations, lambda o: o.order_date)
    recent_months, prior_months = split_windows(as_of)
    recent = mean(o.unit_price for o in in_window(buckets, recent_months))
    prior = mean(o.unit_price for o in in_window(buckets, prior_months))

    current = next((p for p in (recent, prior, item.default_price) if p is not None), None)
    last = next((p for p in (prior, recent, item.default_price) if p is not None), None)

    base = PricingForecast(
        item_id=item.id,
        item_code=item.item_code,
        item_name=item.item_name,
        category=item.category,
    )
    if current is None:
        return base.model_copy(update={"insufficient_data": True})

    change = current - last
    change_pct = change / last * 100 if last > 0 else 0.0

    offer = best_vendor_offer(item, vendor_items, vendors)
    best_price, best_vendor = offer if offer else (current, "N/A")
    savings = max(0.0, (current - best_price) * lot_size)

    return base.model_copy(update={
        "current_avg_price": round_to(current, 2),
        "last_month_avg_price": round_to(last, 2),
        "price_change": round_to(change, 2),
        "price_change_percent": round_to(change_pct, 1),
        "price_trend": price_trend(change_pct),
        "predicted_next_price": round_to(current * (1 + change_pct / 100), 2),
        "volatility": volatility_band([o.unit_price for o in observations]),
        "best_vendor_price": round_to(best_price, 2),
        "best_vendor": best_vendor,
        "savings_opportunity": round_to(savings, 2),
    })


def forecast_pricings(
    items: Iterable[Item],
    purchases: Sequence[PurchaseRecord],
    vendor_items: Sequence[VendorItem],
    vendors: Dict[str, VendorProfile],
    as_of: date,
) -> List[PricingForecast]:
    """Largest price increase first."""
    forecasts = [forecast_pricing(item, purchases, vendor_items, vendors, as_of) for item in items]
    forecasts.sort(key=lambda f: f.price_change_percent, reverse=True)
    logger.debug(f"Pricing forecasts: {len(forecasts)} items")
    return forecasts
