"""Vendor risk trajectory: delivery and quality trends, payment health, alert level."""

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from procurement_engine.engine.metrics import normalize_vendor_metrics, vendor_purchases
from procurement_engine.engine.risk_analyzer import RiskFactorAnalyzer
from procurement_engine.forecasting.bucketing import (
    Change, bucket_by_month, classify_change, in_window, split_windows,
)
from procurement_engine.models.forecast import (
    AlertLevel, PaymentHealth, PerformanceTrend, VendorRiskForecast,
)
from procurement_engine.models.records import PurchaseRecord, VendorProfile
from procurement_engine.models.risk import RiskAssessment
from procurement_engine.utils.helpers import clamp, mean, round_half_up


WORSENING_PENALTY = 10
IMPROVING_CREDIT = 5
RISK_TREND_MARGIN = 3

_CHANGE_TO_PERFORMANCE = {
    Change.UP: PerformanceTrend.IMPROVING,
    Change.DOWN: PerformanceTrend.WORSENING,
    Change.STABLE: PerformanceTrend.STABLE,
}


def _on_time_rate(purchases: Sequence[PurchaseRecord]) -> Optional[float]:
    delivered = [p for p in purchases if p.is_delivered]
    if not delivered:
        return None
    return sum(1 for p in delivered if p.delivered_on_time) / len(delivered) * 100


def _mean_quality(purchases: Sequence[PurchaseRecord]) -> Optional[float]:
    return mean([p.quality_rating for p in purchases if p.quality_rating is not None])


def performance_trend(recent: Optional[float], prior: Optional[float]) -> PerformanceTrend:
    """Stable unless both windows have data and differ significantly."""
    if recent is None or prior is None:
        return PerformanceTrend.STABLE
    return _CHANGE_TO_PERFORMANCE[classify_change(recent, prior)]


def predict_risk_score(
    current: float, delivery: PerformanceTrend, quality: PerformanceTrend
) -> float:
    if delivery == PerformanceTrend.WORSENING and quality == PerformanceTrend.WORSENING:
        return clamp(current + WORSENING_PENALTY)
    if delivery == PerformanceTrend.IMPROVING and quality == PerformanceTrend.IMPROVING:
        return clamp(current - IMPROVING_CREDIT)
    return current


def risk_trend(current: float, predicted: float) -> PerformanceTrend:
    if predicted < current - RISK_TREND_MARGIN:
        return PerformanceTrend.IMPROVING
    if predicted > current + RISK_TREND_MARGIN:
        return PerformanceTrend.WORSENING
    return PerformanceTrend.STABLE


def payment_health(overdue: int, pending: int) -> PaymentHealth:
    if overdue > 2:
        return PaymentHealth.CRITICAL
    if overdue > 0 or pending > 3:
        return PaymentHealth.WARNING
    return PaymentHealth.GOOD


def alert_level(
    score: float, payment: PaymentHealth, trend: PerformanceTrend, delivery: PerformanceTrend
) -> AlertLevel:
    if score >= 70 or payment == PaymentHealth.CRITICAL:
        return AlertLevel.CRITICAL
    if score >= 50 or payment == PaymentHealth.WARNING or trend == PerformanceTrend.WORSENING:
        return AlertLevel.WARNING
    if score >= 30 or delivery == PerformanceTrend.WORSENING:
        return AlertLevel.WATCH
    return AlertLevel.NONE


def vendor_recommendations(
    score: float, on_time_rate: float, delivery: PerformanceTrend,
    quality: PerformanceTrend, payment: PaymentHealth,
) -> List[str]:
    recommendations = []
    if delivery == PerformanceTrend.WORSENING:
        recommendations.append("Review delivery SLAs and discuss improvement plans")
    if quality == PerformanceTrend.WORSENING:
        recommendations.append("Schedule quality audit and inspection")
    if payment != PaymentHealth.GOOD:
        recommendations.append("Review payment terms and outstanding invoices")
    if score > 50:
        recommendations.append("Consider diversifying supplier base")
    if on_time_rate < 85:
        recommendations.append("Negotiate better delivery commitments")
    if not recommendations:
        recommendations.append("Continue monitoring - vendor performance is stable")
    return recommendations


def forecast_vendor_risk(
    vendor: VendorProfile,
    purchases: Sequence[PurchaseRecord],
    as_of: date,
    assessment: Optional[RiskAssessment] = None,
    analyzer: Optional[RiskFactorAnalyzer] = None,
) -> VendorRiskForecast:
    history = [p for p in vendor_purchases(vendor.id, purchases) if p.order_date <= as_of]
    metrics = normalize_vendor_metrics(vendor, history)

    if assessment is not None:
        current = assessment.overall_risk_score
    else:
        current = (analyzer or RiskFactorAnalyzer()).score_metrics(metrics)

    buckets = bucket_by_month(history, lambda p: p.order_date)
    recent_months, prior_months = split_windows(as_of)
    recent, prior = in_window(buckets, recent_months), in_window(buckets, prior_months)

    delivery = performance_trend(_on_time_rate(recent), _on_time_rate(prior))
    quality = performance_trend(_mean_quality(recent), _mean_quality(prior))
    predicted = predict_risk_score(current, delivery, quality)
    trend = risk_trend(current, predicted)
    payment = payment_health(metrics.overdue_payments, metrics.pending_payments)

    return VendorRiskForecast(
        vendor_id=vendor.id,
        vendor_name=vendor.name,
        category=vendor.category,
        current_risk_score=round_half_up(current),
        predicted_risk_score=round_half_up(predicted),
        risk_trend=trend,
        on_time_delivery_rate=round_half_up(metrics.on_time_delivery_rate),
        delivery_trend=delivery,
        quality_score=round_half_up(metrics.quality_score),
        quality_trend=quality,
        payment_health=payment,
        recommendations=vendor_recommendations(
            current, metrics.on_time_delivery_rate, delivery, quality, payment
        ),
        alert_level=alert_level(current, payment, trend, delivery),
    )


def forecast_vendor_risks(
    vendors: Iterable[VendorProfile],
    purchases: Sequence[PurchaseRecord],
    as_of: date,
    assessments: Optional[Dict[str, RiskAssessment]] = None,
    analyzer: Optional[RiskFactorAnalyzer] = None,
) -> List[VendorRiskForecast]:
    """Highest current risk first."""
    assessments = assessments or {}
    analyzer = analyzer or RiskFactorAnalyzer()
    forecasts = [
        forecast_vendor_risk(v, purchases, as_of, assessments.get(v.id), analyzer) for v in vendors
    ]
    forecasts.sort(key=lambda f: f.current_risk_score, reverse=True)
    logger.debug(f"Vendor risk forecasts: {len(forecasts)} vendors")
    return forecasts
