"""
Multi-criteria ranking of the vendors that supply one item.

overall = 0.25 price + 0.30 quality + 0.25 delivery + 0.10 reliability + 0.10 (100 - risk)

Ordering: overall score descending, then preferred vendors first, then lower
risk score. Rank 1 is the single recommended vendor.
"""

from typing import List, Optional, Sequence

from loguru import logger

from procurement_engine.models.comparison import (
    ItemAnalysisInput, VendorOption, VendorScorecard, CriterionScores, ItemComparison,
)
from procurement_engine.utils.helpers import clamp, round_half_up, round_to


CRITERIA_WEIGHTS = {
    "price": 0.25,
    "quality": 0.30,
    "delivery": 0.25,
    "reliability": 0.10,
    "safety": 0.10,     # 100 - risk score
}

DEFAULT_VENDOR_RATING = 4.0
UNKNOWN_LEAD_TIME_SCORE = 70.0

# "good" thresholds produce pros, "poor" thresholds produce cons
PRO_THRESHOLDS = {"price": 60, "quality": 90, "delivery": 95, "purchase_count": 10, "risk": 20}
CON_THRESHOLDS = {"price": 40, "quality": 80, "delivery": 85, "purchase_count": 3, "risk": 50}
PRO_FILLER = "Acceptable overall performance"
CON_FILLER = "No significant concerns"

NO_VENDOR_STRATEGY = (
    "NO QUALIFIED VENDOR: No supplier is currently mapped to this item. "
    "Qualify at least one vendor before the next replenishment cycle."
)


def price_score(vendor_price: float, market_price: float) -> float:
    """50 at the market average; each 1% cheaper adds 2 points, clamped to [0, 100]."""
    if market_price <= 0:
        return 50.0
    diff_pct = (market_price - vendor_price) / market_price * 100
    return clamp(50 + diff_pct * 2)


def lead_time_score(lead_time_days: Optional[float]) -> float:
    if lead_time_days is None:
        return UNKNOWN_LEAD_TIME_SCORE
    return max(0.0, 100 - lead_time_days * 3)


def reliability_score(option: VendorOption) -> float:
    """Provided reliability, or one derived from history, quality, delivery and lead time."""
    if option.reliability_score is not None:
        return option.reliability_score
    rating = option.rating if option.rating is not None else DEFAULT_VENDOR_RATING
    return min(
        100.0,
        option.purchase_count * 5
        + option.quality_score * 0.3
        + option.on_time_delivery_rate * 0.3
        + lead_time_score(option.lead_time_days) * 0.2
        + rating * 4,
    )


def overall_score(scores: CriterionScores) -> int:
    return int(clamp(round_half_up(
        scores.price * CRITERIA_WEIGHTS["price"]
        + scores.quality * CRITERIA_WEIGHTS["quality"]
        + scores.delivery * CRITERIA_WEIGHTS["delivery"]
        + scores.reliability * CRITERIA_WEIGHTS["reliability"]
        + (100 - scores.risk_score) * CRITERIA_WEIGHTS["safety"]
    )))


def verdict_for(score: float) -> str:
    if score >= 80:
        return "Excellent choice - highly recommended for this item"
    if score >= 65:
        return "Good option - reliable vendor with solid performance"
    if score >= 50:
        return "Acceptable - consider for backup or price negotiation"
    return "Caution advised - significant improvement needed"


def rank_scorecards(scorecards: Sequence[VendorScorecard]) -> List[VendorScorecard]:
    """Order by overall desc, preferred first, lower risk; assign ranks and the recommendation."""
    ordered = sorted(
        scorecards,
        key=lambda vc: (-vc.overall_score, not vc.is_preferred, vc.scores.risk_score),
    )
    return [
        vc.model_copy(update={"rank": idx + 1, "is_recommended": idx == 0})
        for idx, vc in enumerate(ordered)
    ]


def pick_winners(ranked: Sequence[VendorScorecard]) -> dict:
    """Category winners, each chosen independently from the same ranked list."""
    if not ranked:
        return {"best_choice": None, "best_value": None, "best_quality": None, "most_reliable": None}
    return {
        "best_choice": ranked[0],
        "best_value": max(ranked, key=lambda vc: vc.scores.price),
        "best_quality": max(ranked, key=lambda vc: vc.scores.quality),
        "most_reliable": max(ranked, key=lambda vc: vc.scores.delivery + vc.scores.reliability),
    }


class ItemVendorRanker:
    """Scores and ranks competing suppliers of a single item."""

    def market_price(self, item: ItemAnalysisInput) -> float:
        if item.avg_price > 0:
            return item.avg_price
        prices = [v.avg_price for v in item.vendor_options]
        return sum(prices) / len(prices) if prices else 0.0

    def score_vendor(self, option: VendorOption, market_price: float) -> VendorScorecard:
        p_score = price_score(option.avg_price, market_price)
        diff_pct = (market_price - option.avg_price) / market_price * 100 if market_price > 0 else 0.0
        scores = CriterionScores(
            price=round_half_up(p_score),
            quality=option.quality_score,
            delivery=option.on_time_delivery_rate,
            reliability=round_half_up(reliability_score(option)),
            risk_score=option.risk_score,
        )
        overall = overall_score(scores)
        pros, cons = self.pros_and_cons(option, p_score, diff_pct)
        return VendorScorecard(
            vendor_id=option.vendor_id,
            vendor_name=option.vendor_name,
            overall_score=overall,
            rank=1,
            is_recommended=False,
            is_preferred=option.is_preferred,
            scores=scores,
            pros=pros,
            cons=cons,
            cost_savings_vs_avg=round_to(diff_pct, 1),
            verdict=verdict_for(overall),
        )

    def pros_and_cons(self, option: VendorOption, p_score: float, diff_pct: float):
        pros = []
        if p_score >= PRO_THRESHOLDS["price"]:
            pros.append(f"Competitive pricing (${option.avg_price:.2f})")
        if option.quality_score >= PRO_THRESHOLDS["quality"]:
            pros.append(f"Excellent quality score ({option.quality_score:g}%)")
        if option.on_time_delivery_rate >= PRO_THRESHOLDS["delivery"]:
            pros.append(f"Outstanding delivery performance ({option.on_time_delivery_rate:g}%)")
        if option.purchase_count >= PRO_THRESHOLDS["purchase_count"]:
            pros.append(f"Proven track record ({option.purchase_count} orders)")
        if option.risk_score <= PRO_THRESHOLDS["risk"]:
            pros.append("Low risk vendor")
        if not pros:
            pros.append(PRO_FILLER)

        cons = []
        if p_score < CON_THRESHOLDS["price"]:
            cons.append(f"Higher than average price (+{abs(diff_pct):.1f}%)")
        if option.quality_score < CON_THRESHOLDS["quality"]:
            cons.append(f"Quality concerns ({option.quality_score:g}%)")
        if option.on_time_delivery_rate < CON_THRESHOLDS["delivery"]:
            cons.append(f"Delivery issues ({option.on_time_delivery_rate:g}% on-time)")
        if option.purchase_count < CON_THRESHOLDS["purchase_count"]:
            cons.append("Limited purchase history")
        if option.risk_score >= CON_THRESHOLDS["risk"]:
            cons.append(f"Higher risk profile ({option.risk_score:g})")
        if not cons:
            cons.append(CON_FILLER)
        return pros, cons

    def compare(self, item: ItemAnalysisInput) -> ItemComparison:
        """Rank every vendor option of ``item``; degenerate inputs give flagged, valid results."""
        options = item.vendor_options
        if not options:
            logger.info(f"Item '{item.item_name}' has no supplying vendors")
            return ItemComparison(
                item_id=item.item_id,
                item_name=item.item_name,
                category=item.category,
                total_vendors=0,
                overall_recommendation=(
                    "Unable to determine a recommended vendor. Consider expanding vendor options."
                ),
                procurement_strategy=NO_VENDOR_STRATEGY,
                risk_mitigation=[
                    "Qualify at least one vendor to establish a supply source",
                    "Conduct quarterly vendor performance reviews",
                ],
                cost_optimization=["Request quotations from the approved vendor list"],
            )

        market = self.market_price(item)
        ranked = rank_scorecards([self.score_vendor(o, market) for o in options])
        winners = pick_winners(ranked)
        result = ItemComparison(
            item_id=item.item_id,
            item_name=item.item_name,
            category=item.category,
            total_vendors=len(options),
            vendor_comparisons=ranked,
            overall_recommendation=self.overall_recommendation(item, winners["best_choice"]),
            procurement_strategy=self.procurement_strategy(item),
            risk_mitigation=self.risk_mitigation(item, winners["best_choice"]),
            cost_optimization=self.cost_optimization(item, winners),
            **winners,
        )
        logger.info(
            f"Ranked {len(ranked)} vendor(s) for '{item.item_name}': "
            f"best={ranked[0].vendor_name or ranked[0].vendor_id} ({ranked[0].overall_score})"
        )
        return result

    def overall_recommendation(self, item: ItemAnalysisInput, best: VendorScorecard) -> str:
        return (
            f"Based on comprehensive analysis, {best.vendor_name or best.vendor_id} is the recommended "
            f"vendor for \"{item.item_name}\" with an overall score of {best.overall_score:g}/100. "
            f"They offer the best balance of price, quality, and reliability."
        )

    def procurement_strategy(self, item: ItemAnalysisInput) -> str:
        n = len(item.vendor_options)
        if n == 1:
            sole = item.vendor_options[0]
            return (
                f"SINGLE SOURCE RISK: Only one vendor available. Urgently qualify additional "
                f"suppliers to reduce dependency on {sole.vendor_name or sole.vendor_id}."
            )
        if n >= 3:
            return (
                f"MULTI-SOURCE STRATEGY: With {n} qualified vendors, consider splitting orders to "
                f"maintain relationships and leverage competitive pricing."
            )
        return "DUAL SOURCE: Two vendors available. Maintain both relationships for supply security."

    def risk_mitigation(self, item: ItemAnalysisInput, best: VendorScorecard) -> List[str]:
        mitigation = []
        if len(item.vendor_options) == 1:
            mitigation.append("Qualify at least one backup vendor to reduce single-source risk")
        if item.supply_chain_risk is not None and item.supply_chain_risk > 50:
            mitigation.append("Consider safety stock for this high-risk item")
        if best.scores.risk_score > 30:
            mitigation.append(f"Monitor {best.vendor_name or best.vendor_id} closely for potential issues")
        mitigation.append("Conduct quarterly vendor performance reviews")
        return mitigation

    def cost_optimization(self, item: ItemAnalysisInput, winners: dict) -> List[str]:
        tips = []
        best_value, best_choice = winners["best_value"], winners["best_choice"]
        if best_value.vendor_id != best_choice.vendor_id:
            tips.append(
                f"Consider {best_value.vendor_name or best_value.vendor_id} for non-critical orders "
                f"({best_value.cost_savings_vs_avg:.1f}% savings)"
            )
        if item.total_quantity > 100:
            tips.append("Negotiate volume discounts for high-quantity purchases")
        tips.append("Consolidate orders to reduce shipping costs")
        if len(item.vendor_options) >= 2:
            tips.append("Use competitive bidding to drive better pricing")
        return tips
