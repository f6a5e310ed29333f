"""
Item sourcing analysis.

Builds the competing VendorOption list for an item out of vendor-item mappings,
vendor profiles and purchase history, and scores the item's sourcing position
locally (score is higher-is-safer, so its level is banded on 100 - score).
"""

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from loguru import logger

from procurement_engine.engine.metrics import (
    ItemObservation, item_observations, normalize_vendor_metrics, vendor_purchases,
)
from procurement_engine.engine.risk_analyzer import RiskFactorAnalyzer
from procurement_engine.models.comparison import (
    DemandTrend, ItemAnalysisInput, ItemRiskResult, VendorOption,
)
from procurement_engine.models.records import Item, PurchaseRecord, VendorItem, VendorProfile
from procurement_engine.models.risk import risk_level_from_score
from procurement_engine.utils.helpers import clamp, mean, round_half_up, round_to


# Used when neither the profile nor purchase history says anything
OPTION_DEFAULT_QUALITY = 80.0
OPTION_DEFAULT_DELIVERY = 90.0
OPTION_DEFAULT_RATING = 4.0
UNKNOWN_LEAD_TIME_RISK = 15.0
MAX_ITEM_INSIGHTS = 5


def coefficient_of_variation(values: Sequence[float], center: Optional[float] = None) -> float:
    """Population std around ``center`` (mean by default) as a percentage of it."""
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=float)
    center = float(arr.mean()) if center is None else center
    if center <= 0:
        return 0.0
    return float(np.sqrt(np.mean((arr - center) ** 2)) / center * 100)


def supply_chain_risk(vendor_count: int) -> float:
    if vendor_count == 0:
        return 100.0
    if vendor_count == 1:
        return 70.0
    return float(max(0, 50 - vendor_count * 10))


def demand_trend(observations: Sequence[ItemObservation]) -> DemandTrend:
    """Compare quantity bought in the later half of the observed span with the earlier half."""
    if len(observations) < 4:
        return DemandTrend.STABLE
    first, last = observations[0].order_date, observations[-1].order_date
    midpoint = first.toordinal() + (last.toordinal() - first.toordinal()) / 2
    early = sum(o.quantity for o in observations if o.order_date.toordinal() < midpoint)
    late = sum(o.quantity for o in observations if o.order_date.toordinal() >= midpoint)
    if early <= 0:
        return DemandTrend.INCREASING if late > 0 else DemandTrend.STABLE
    if late > early * 1.3:
        return DemandTrend.INCREASING
    if late < early * 0.7:
        return DemandTrend.DECREASING
    return DemandTrend.STABLE


def option_risk_score(
    quality: float, delivery: float, price_variance: float,
    lead_time_days: Optional[float], rating: float,
) -> float:
    lead_risk = min(lead_time_days * 2, 30) if lead_time_days is not None else UNKNOWN_LEAD_TIME_RISK
    return clamp(round_half_up(
        (100 - quality) * 0.30
        + (100 - delivery) * 0.30
        + min(price_variance, 30) * 0.15
        + lead_risk * 0.15
        + (100 - rating * 20) * 0.10
    ))


class ItemAnalysisBuilder:
    """Assembles ItemAnalysisInput from read-only records."""

    def __init__(self, analyzer: Optional[RiskFactorAnalyzer] = None):
        self.analyzer = analyzer or RiskFactorAnalyzer()

    def _quality_and_delivery(
        self, vendor: Optional[VendorProfile], history: List[PurchaseRecord]
    ) -> tuple:
        delivered = [p for p in history if p.is_delivered]
        if vendor is not None and (
            delivered or vendor.quality_score is not None or vendor.on_time_delivery_rate is not None
        ):
            m = normalize_vendor_metrics(vendor, history)
            quality = m.quality_score if (vendor.quality_score is not None or delivered) \
                else OPTION_DEFAULT_QUALITY
            delivery = m.on_time_delivery_rate if (vendor.on_time_delivery_rate is not None or delivered) \
                else OPTION_DEFAULT_DELIVERY
            return quality, delivery
        return OPTION_DEFAULT_QUALITY, OPTION_DEFAULT_DELIVERY

    def _vendor_rating(self, vendor: Optional[VendorProfile], history: List[PurchaseRecord]) -> float:
        if vendor is None:
            return OPTION_DEFAULT_RATING
        if vendor.rating is not None:
            return vendor.rating
        vendor_risk = self.analyzer.score_metrics(normalize_vendor_metrics(vendor, history))
        return (100 - vendor_risk) / 20

    def build_option(
        self,
        vendor_id: str,
        mapping: Optional[VendorItem],
        vendor: Optional[VendorProfile],
        observations: List[ItemObservation],
        purchases: Sequence[PurchaseRecord],
    ) -> VendorOption:
        prices = [o.unit_price for o in observations]
        if prices:
            avg_price = sum(prices) / len(prices)
        else:
            avg_price = mapping.unit_price if mapping else 0.0
        quoted = mapping.unit_price if mapping else avg_price

        history = vendor_purchases(vendor_id, purchases)
        quality, delivery = self._quality_and_delivery(vendor, history)
        rating = self._vendor_rating(vendor, history)
        variance = coefficient_of_variation(prices, center=quoted) if quoted > 0 else 0.0

        lead_time = mapping.lead_time_days if mapping and mapping.lead_time_days is not None else None
        if lead_time is None:
            item_purchase_ids = {o.purchase_id for o in observations}
            lead_time = mean([
                p.resolved_lead_time for p in history
                if p.id in item_purchase_ids and p.is_delivered and p.resolved_lead_time is not None
            ])

        name = (mapping.vendor_name if mapping and mapping.vendor_name else None) \
            or (vendor.name if vendor else "") or vendor_id
        return VendorOption(
            vendor_id=vendor_id,
            vendor_name=name,
            avg_price=round_to(avg_price, 2),
            total_quantity=sum(o.quantity for o in observations),
            purchase_count=len({o.purchase_id for o in observations}),
            quality_score=round_to(quality, 1),
            on_time_delivery_rate=round_to(delivery, 1),
            risk_score=option_risk_score(quality, delivery, variance, lead_time, rating),
            price_variance=round_to(variance, 2),
            lead_time_days=lead_time,
            rating=round_to(clamp(rating, 0, 5), 2),
            is_preferred=bool(mapping and mapping.is_preferred),
            last_purchase_date=max((o.order_date for o in observations), default=None),
        )

    def build(
        self,
        item: Item,
        vendor_items: Iterable[VendorItem],
        vendors: Dict[str, VendorProfile],
        purchases: Sequence[PurchaseRecord],
    ) -> ItemAnalysisInput:
        """Competing options (preferred first, then lower risk, then cheaper) plus item-level stats."""
        observations = item_observations(item, purchases)
        mappings = {vi.vendor_id: vi for vi in vendor_items if vi.item_id == item.id and vi.status == "active"}

        vendor_ids = list(mappings)
        for o in observations:
            if o.vendor_id not in mappings and o.vendor_id not in vendor_ids:
                vendor_ids.append(o.vendor_id)

        options = [
            self.build_option(
                vid, mappings.get(vid), vendors.get(vid),
                [o for o in observations if o.vendor_id == vid], purchases,
            )
            for vid in vendor_ids
        ]
        options.sort(key=lambda v: (not v.is_preferred, v.risk_score, v.avg_price))

        all_prices = [o.unit_price for o in observations]
        if all_prices:
            avg_price = sum(all_prices) / len(all_prices)
        elif options:
            avg_price = sum(v.avg_price for v in options) / len(options)
        else:
            avg_price = item.default_price or 0.0

        price_stability = None
        if len(all_prices) >= 2:
            price_stability = round_to(max(0.0, 100 - coefficient_of_variation(all_prices)), 1)

        analysis = ItemAnalysisInput(
            item_id=item.id,
            item_name=item.item_name or item.item_code or item.id,
            category=item.category,
            total_purchases=len({o.purchase_id for o in observations}),
            total_quantity=sum(o.quantity for o in observations),
            avg_price=round_to(avg_price, 2),
            vendor_options=options,
            price_stability=price_stability,
            demand_trend=demand_trend(observations),
            supply_chain_risk=supply_chain_risk(len(options)),
        )
        logger.debug(f"Item {item.id}: {len(options)} vendor option(s), avg price {analysis.avg_price}")
        return analysis


def build_item_analysis_input(
    item: Item,
    vendor_items: Iterable[VendorItem],
    vendors: Dict[str, VendorProfile],
    purchases: Sequence[PurchaseRecord],
) -> ItemAnalysisInput:
    return ItemAnalysisBuilder().build(item, vendor_items, vendors, purchases)


# ── Local item risk ──

def _price_spread_percent(item: ItemAnalysisInput) -> float:
    prices = [v.avg_price for v in item.vendor_options]
    base = item.avg_price or (sum(prices) / len(prices))
    if base <= 0:
        return 0.0
    return (max(prices) - min(prices)) / base * 100


def item_insights(item: ItemAnalysisInput) -> List[str]:
    insights = []
    options = item.vendor_options
    n = len(options)

    if n == 0:
        insights.append("No qualified vendor supplies this item.")
    elif n == 1:
        insights.append(
            f"Single-source dependency: Only {options[0].vendor_name} supplies this item. "
            f"Consider qualifying additional vendors."
        )
    elif n >= 3:
        insights.append(f"Good vendor diversity with {n} qualified suppliers, reducing supply chain risk.")
    else:
        insights.append(f"Moderate vendor base with {n} suppliers. Consider expanding for critical items.")

    if n > 1:
        spread = _price_spread_percent(item)
        if spread > 20:
            insights.append(
                f"Significant price variation ({spread:.0f}%) across vendors - opportunity for cost optimization."
            )
        else:
            insights.append(f"Price consistency is good across vendors ({spread:.0f}% variance).")

    if options:
        avg_quality = sum(v.quality_score for v in options) / n
        if avg_quality >= 90:
            insights.append(f"Excellent quality performance across vendors (avg {avg_quality:.0f}/100).")
        elif avg_quality < 75:
            insights.append(
                f"Quality scores need attention (avg {avg_quality:.0f}/100) - "
                f"consider vendor quality improvement programs."
            )

    if item.demand_trend == DemandTrend.INCREASING:
        insights.append("Demand is trending upward - ensure supply capacity can meet growing requirements.")
    elif item.demand_trend == DemandTrend.DECREASING:
        insights.append("Demand is declining - review inventory levels and avoid overstocking.")

    if item.supply_chain_risk is not None and item.supply_chain_risk > 60:
        insights.append("High supply chain risk detected - develop contingency sourcing plans.")

    return insights[:MAX_ITEM_INSIGHTS]


def item_recommendation(item: ItemAnalysisInput) -> str:
    options = item.vendor_options
    if not options:
        return f"Qualify at least one vendor for {item.item_name} before the next replenishment."
    if len(options) == 1:
        return (
            f"Qualify additional vendors for {item.item_name} to mitigate single-source dependency risk. "
            f"Current sole supplier: {options[0].vendor_name}."
        )

    spread = _price_spread_percent(item)
    if spread > 25:
        cheapest = min(options, key=lambda v: v.avg_price)
        return (
            f"Consider consolidating purchases with {cheapest.vendor_name} (lowest price at "
            f"${cheapest.avg_price:.2f}) if quality meets requirements. Potential savings of {spread:.0f}%."
        )

    recommended = item.recommended_vendor
    if recommended.quality_score < 80:
        return (
            f"Work with {recommended.vendor_name} on quality improvement program to increase quality "
            f"score from {recommended.quality_score:g} to target of 90+."
        )
    if item.demand_trend == DemandTrend.INCREASING:
        return f"Secure long-term supply agreements to ensure capacity for increasing demand of {item.item_name}."
    return (
        f"Continue monitoring {item.item_name} procurement performance and maintain current vendor relationships."
    )


def calculate_item_risk_locally(item: ItemAnalysisInput) -> ItemRiskResult:
    """Score 0-100, higher is safer; the level is the shared banding of 100 - score."""
    score = 50.0
    n = len(item.vendor_options)
    if n == 1:
        score -= 20
    elif n >= 3:
        score += 15
    elif n == 2:
        score += 5

    stability = item.price_stability if item.price_stability is not None else 50.0
    score += (stability - 50) * 0.3
    chain_risk = item.supply_chain_risk if item.supply_chain_risk is not None else 50.0
    score -= (chain_risk - 50) * 0.2

    recommended = item.recommended_vendor
    if recommended is not None:
        score += (recommended.quality_score - 80) * 0.15 + (recommended.on_time_delivery_rate - 90) * 0.15

    if item.total_purchases > 20:
        score += 5

    score = clamp(round_half_up(score))
    return ItemRiskResult(
        risk_level=risk_level_from_score(100 - score),
        score=score,
        insights=item_insights(item),
        recommendation=item_recommendation(item),
    )
