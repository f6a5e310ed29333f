"""
Weighted multi-factor vendor risk calculator.

Eight factors across four categories, each scored 0-100 (higher = riskier):
  financial     credit utilization, payment terms
  operational   delivery reliability, quality, responsiveness
  compliance    compliance status, certifications
  supply-chain  spend concentration

Overall = Σ(score × category weight) / Σ(category weight), rounded.
The level is always risk_level_from_score(overall).
"""

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from procurement_engine.config import settings
from procurement_engine.engine.metrics import VendorMetrics, normalize_vendor_metrics, vendor_purchases
from procurement_engine.models.records import VendorProfile, PurchaseRecord, ComplianceStatus
from procurement_engine.models.risk import (
    RiskAssessment, RiskFactor, RiskInsight, RiskTrendPoint, PeerComparison,
    RiskLevel, RiskCategory, InsightImpact, AssessmentSource,
    category_weight, risk_level_from_score,
)
from procurement_engine.utils.helpers import clamp, round_half_up, month_end, month_key, shift_month


PAYMENT_TERMS_CEILING_DAYS = 90
RESPONSE_TIME_CEILING_HOURS = 72

# Spend bands for concentration risk: (threshold, score)
CONCENTRATION_BANDS = [(100000, 70), (50000, 40)]
CONCENTRATION_FLOOR = 20

COMPLIANCE_SCORES = {
    ComplianceStatus.NON_COMPLIANT: (100, RiskLevel.CRITICAL),
    ComplianceStatus.PENDING_REVIEW: (50, RiskLevel.MEDIUM),
    ComplianceStatus.COMPLIANT: (10, RiskLevel.LOW),
}

CATEGORY_RECOMMENDATIONS = {
    RiskCategory.FINANCIAL.value: "Review financial terms and consider requesting financial guarantees",
    RiskCategory.OPERATIONAL.value: "Implement enhanced monitoring and establish performance SLAs",
    RiskCategory.COMPLIANCE.value: "Schedule compliance audit and review regulatory requirements",
    RiskCategory.SUPPLY_CHAIN.value: "Develop alternative supplier strategy to reduce concentration risk",
}

TREND_MONTHS = 6

# Fields re-derived from purchase history when replaying past months
_HISTORY_DERIVED_FIELDS = (
    "on_time_delivery_rate", "quality_score", "defect_rate",
    "total_purchases", "average_order_value",
)


def certification_score(count: int) -> float:
    """0 certificates scores 60; otherwise 40 less 10 per certificate, floor 10."""
    if count <= 0:
        return 60.0
    return float(max(40 - count * 10, 10))


def concentration_score(total_spend: float) -> float:
    for threshold, score in CONCENTRATION_BANDS:
        if total_spend > threshold:
            return float(score)
    return float(CONCENTRATION_FLOOR)


def calculate_overall_score(factors: Sequence[RiskFactor]) -> int:
    """Category-weighted mean of factor scores, rounded to an integer."""
    if not factors:
        return 0
    weighted_sum = 0.0
    total_weight = 0.0
    for factor in factors:
        weight = category_weight(factor.category)
        weighted_sum += factor.score * weight
        total_weight += weight
    return int(clamp(round_half_up(weighted_sum / total_weight)))


def peer_comparison(score: float, peer_scores: Optional[Sequence[float]] = None) -> PeerComparison:
    """
    Position of ``score`` among peers. With no peers the portfolio baseline
    average applies and the percentile is 100 - score.
    """
    if peer_scores:
        average = sum(peer_scores) / len(peer_scores)
        riskier = sum(1 for s in peer_scores if s > score)
        percentile = riskier / len(peer_scores) * 100
    else:
        average = settings.PEER_BASELINE_RISK_SCORE
        percentile = clamp(100 - score)
    return PeerComparison(
        average_risk_score=round(average, 1),
        percentile=round(percentile, 1),
        better_than_peers=score < average,
    )


def risk_distribution(assessments: Iterable[RiskAssessment]) -> Dict[str, int]:
    """Count assessments per risk level."""
    distribution = {level.value: 0 for level in RiskLevel}
    for a in assessments:
        distribution[risk_level_from_score(a.overall_risk_score).value] += 1
    return distribution


class RiskFactorAnalyzer:
    """Deterministic local risk assessment for a single vendor."""

    def analyze_factors(self, m: VendorMetrics) -> List[RiskFactor]:
        """Produce the fixed factor set from normalized metrics."""
        factors: List[RiskFactor] = []

        # ── Financial ──
        utilization = m.credit_utilization
        factors.append(self._factor(
            RiskCategory.FINANCIAL, "Credit Utilization",
            f"Vendor is using {utilization * 100:.1f}% of credit limit",
            RiskLevel.HIGH if utilization > 0.8 else RiskLevel.MEDIUM if utilization > 0.5 else RiskLevel.LOW,
            min(utilization * 100, 100),
            "Consider reviewing credit terms or requiring prepayment" if utilization > 0.8
            else "Credit utilization is within acceptable range",
        ))

        terms = m.payment_terms_days
        factors.append(self._factor(
            RiskCategory.FINANCIAL, "Payment Terms Risk",
            f"Payment terms of {terms:g} days",
            RiskLevel.HIGH if terms > 60 else RiskLevel.MEDIUM if terms > 30 else RiskLevel.LOW,
            min(terms / PAYMENT_TERMS_CEILING_DAYS * 100, 100),
            "Extended payment terms increase financial exposure" if terms > 60
            else "Payment terms are standard",
        ))

        # ── Operational ──
        delivery_risk = 100 - m.on_time_delivery_rate
        factors.append(self._factor(
            RiskCategory.OPERATIONAL, "Delivery Reliability",
            f"On-time delivery rate of {m.on_time_delivery_rate:g}%",
            RiskLevel.HIGH if delivery_risk > 20 else RiskLevel.MEDIUM if delivery_risk > 10 else RiskLevel.LOW,
            delivery_risk,
            "Implement delivery monitoring and backup supplier strategy" if delivery_risk > 20
            else "Delivery performance is satisfactory",
        ))

        quality = m.quality_score
        factors.append(self._factor(
            RiskCategory.OPERATIONAL, "Quality Performance",
            f"Quality score of {quality:g}/100",
            RiskLevel.HIGH if quality < 70 else RiskLevel.MEDIUM if quality < 85 else RiskLevel.LOW,
            100 - quality,
            "Quality improvement plan required" if quality < 70 else "Quality levels are acceptable",
        ))

        response = m.response_time_hours
        factors.append(self._factor(
            RiskCategory.OPERATIONAL, "Responsiveness",
            f"Average response time of {response:g} hours",
            RiskLevel.HIGH if response > 48 else RiskLevel.MEDIUM if response > 24 else RiskLevel.LOW,
            min(response / RESPONSE_TIME_CEILING_HOURS * 100, 100),
            "Communication SLAs should be established" if response > 48 else "Response time is adequate",
        ))

        # ── Compliance ──
        status_score, status_severity = COMPLIANCE_SCORES[m.compliance_status]
        factors.append(self._factor(
            RiskCategory.COMPLIANCE, "Compliance Status",
            f"Current compliance status: {m.compliance_status.value}",
            status_severity,
            status_score,
            "Immediate compliance review and remediation required"
            if m.compliance_status == ComplianceStatus.NON_COMPLIANT
            else "Continue regular compliance monitoring",
        ))

        certs = m.certification_count
        factors.append(self._factor(
            RiskCategory.COMPLIANCE, "Certifications",
            f"Vendor has {certs} certification(s)",
            RiskLevel.MEDIUM if certs == 0 else RiskLevel.LOW,
            certification_score(certs),
            "Request relevant industry certifications" if certs == 0
            else "Certification status is adequate",
        ))

        # ── Supply chain ──
        concentration = concentration_score(m.total_purchases)
        factors.append(self._factor(
            RiskCategory.SUPPLY_CHAIN, "Concentration Risk",
            f"Total purchases of ${m.total_purchases:,.0f} may indicate dependency",
            RiskLevel.HIGH if concentration > 60 else RiskLevel.MEDIUM if concentration > 30 else RiskLevel.LOW,
            concentration,
            "Develop alternative supplier strategy to reduce dependency" if concentration > 60
            else "Supplier concentration is manageable",
        ))

        for f in factors:
            logger.debug(f"[{m.vendor_id}] {f.category}/{f.name}: {f.score:.1f} ({f.severity.value})")
        return factors

    def generate_insights(self, m: VendorMetrics, factors: Sequence[RiskFactor]) -> List[RiskInsight]:
        insights = []

        financial = [f.score for f in factors if f.category == RiskCategory.FINANCIAL.value]
        avg_financial = sum(financial) / len(financial) if financial else 0.0
        elevated = avg_financial > 50
        insights.append(RiskInsight(
            title="Financial Health Assessment",
            description=(
                "Financial indicators show elevated risk. Credit utilization and payment terms require attention."
                if elevated else
                "Financial indicators are within acceptable range. Continue monitoring key metrics."
            ),
            impact=InsightImpact.NEGATIVE if elevated else InsightImpact.POSITIVE,
            confidence=0.85,
            category=RiskCategory.FINANCIAL.value,
            action_required=elevated,
            suggested_actions=(
                ["Review credit terms", "Request updated financial statements", "Consider reducing order volume"]
                if elevated else ["Maintain current monitoring frequency"]
            ),
        ))

        gap = m.on_time_delivery_rate < 90 or m.quality_score < 80
        insights.append(RiskInsight(
            title="Operational Performance Analysis",
            description=(
                f"Operational metrics indicate performance gaps. Delivery rate: "
                f"{m.on_time_delivery_rate:g}%, Quality: {m.quality_score:g}/100"
                if gap else
                "Strong operational performance. Vendor maintains high delivery and quality standards."
            ),
            impact=InsightImpact.NEGATIVE if gap else InsightImpact.POSITIVE,
            confidence=0.90,
            category=RiskCategory.OPERATIONAL.value,
            action_required=gap,
            suggested_actions=(
                ["Establish delivery SLAs", "Implement delivery tracking", "Develop contingency plans"]
                if m.on_time_delivery_rate < 90 else ["Continue current monitoring"]
            ),
        ))

        compliant = m.compliance_status == ComplianceStatus.COMPLIANT
        insights.append(RiskInsight(
            title="Compliance Risk Evaluation",
            description=(
                f"Vendor maintains compliant status with {m.certification_count} active certifications."
                if compliant else
                f"Compliance status requires attention. Current status: {m.compliance_status.value}"
            ),
            impact=InsightImpact.POSITIVE if compliant else InsightImpact.NEGATIVE,
            confidence=0.95,
            category=RiskCategory.COMPLIANCE.value,
            action_required=not compliant,
            suggested_actions=(
                ["Schedule next compliance review"] if compliant else
                ["Schedule compliance audit", "Request compliance documentation", "Review regulatory requirements"]
            ),
        ))

        dependent = m.total_purchases > 100000
        insights.append(RiskInsight(
            title="Supply Chain Dependency Analysis",
            description=(
                f"High purchasing volume (${m.total_purchases:,.0f}) indicates significant dependency on this vendor."
                if dependent else
                "Moderate vendor dependency. Consider maintaining current diversification strategy."
            ),
            impact=InsightImpact.NEGATIVE if dependent else InsightImpact.NEUTRAL,
            confidence=0.80,
            category=RiskCategory.SUPPLY_CHAIN.value,
            action_required=dependent,
            suggested_actions=(
                ["Identify alternative suppliers", "Develop dual-sourcing strategy",
                 "Assess criticality of supplied items"]
                if dependent else ["Continue monitoring supplier landscape"]
            ),
        ))
        return insights

    def generate_recommendations(self, factors: Sequence[RiskFactor]) -> List[str]:
        recommendations = []

        if any(f.severity == RiskLevel.CRITICAL for f in factors):
            recommendations.append(
                "URGENT: Address critical risk factors immediately to prevent potential business disruption"
            )
        high = sum(1 for f in factors if f.severity == RiskLevel.HIGH)
        if high:
            recommendations.append(f"Develop mitigation plans for {high} high-risk factor(s)")

        categories = list(dict.fromkeys(f.category for f in factors))
        for category in categories:
            scores = [f.score for f in factors if f.category == category]
            if sum(scores) / len(scores) > 50 and category in CATEGORY_RECOMMENDATIONS:
                recommendations.append(CATEGORY_RECOMMENDATIONS[category])

        recommendations.append("Schedule quarterly risk review meetings with vendor")
        recommendations.append("Update vendor risk assessment in 90 days")
        return recommendations

    def score_metrics(self, m: VendorMetrics) -> int:
        return calculate_overall_score(self.analyze_factors(m))

    def historical_trend(
        self,
        vendor: VendorProfile,
        purchases: Sequence[PurchaseRecord],
        as_of: date,
        months: int = TREND_MONTHS,
    ) -> List[RiskTrendPoint]:
        """Replay the analyzer on history truncated at each of the last ``months`` month ends."""
        history = vendor_purchases(vendor.id, purchases)
        if not history:
            return []

        replay_profile = vendor.model_copy(update={f: None for f in _HISTORY_DERIVED_FIELDS})
        points = []
        for offset in range(months - 1, -1, -1):
            cutoff = min(month_end(shift_month(as_of, -offset)), as_of)
            to_date = [p for p in history if p.order_date <= cutoff]
            if not to_date:
                continue
            score = self.score_metrics(normalize_vendor_metrics(replay_profile, to_date))
            points.append(RiskTrendPoint(
                period=month_key(cutoff),
                risk_score=score,
                risk_level=risk_level_from_score(score),
            ))
        return points

    def assess(
        self,
        vendor: VendorProfile,
        purchases: Sequence[PurchaseRecord] = (),
        as_of: Optional[date] = None,
        peer_scores: Optional[Sequence[float]] = None,
    ) -> RiskAssessment:
        """Full local assessment: factors, score, level, insights, trend, peers."""
        as_of = as_of or date.today()
        metrics = normalize_vendor_metrics(vendor, purchases)
        factors = self.analyze_factors(metrics)
        score = calculate_overall_score(factors)

        assessment = RiskAssessment(
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            assessed_at=datetime.utcnow(),
            overall_risk_score=score,
            risk_level=risk_level_from_score(score),
            risk_factors=factors,
            insights=self.generate_insights(metrics, factors),
            recommendations=self.generate_recommendations(factors),
            historical_trend=self.historical_trend(vendor, purchases, as_of),
            peer_comparison=peer_comparison(score, peer_scores),
            source=AssessmentSource.LOCAL,
        )
        logger.info(f"Local risk assessment for {vendor.id}: {score} ({assessment.risk_level.value})")
        return assessment

    @staticmethod
    def _factor(category: RiskCategory, name: str, description: str,
                severity: RiskLevel, score: float, recommendation: str) -> RiskFactor:
        return RiskFactor(
            category=category.value,
            name=name,
            description=description,
            severity=severity,
            score=round(clamp(score), 2),
            weight=category_weight(category.value),
            recommendation=recommendation,
        )


def calculate_risk_locally(
    vendor: VendorProfile,
    purchases: Sequence[PurchaseRecord] = (),
    as_of: Optional[date] = None,
    peer_scores: Optional[Sequence[float]] = None,
) -> RiskAssessment:
    """Module-level shortcut for RiskFactorAnalyzer().assess()."""
    return RiskFactorAnalyzer().assess(vendor, purchases, as_of=as_of, peer_scores=peer_scores)
