"""
Unit tests for the local vendor risk analyzer.
"""

import random
from datetime import date

import pytest

from procurement_engine.engine.metrics import normalize_vendor_metrics
from procurement_engine.engine.risk_analyzer import (
    RiskFactorAnalyzer, calculate_overall_score, calculate_risk_locally, certification_score,
    concentration_score, peer_comparison, risk_distribution,
)
from procurement_engine.models.records import VendorProfile, ComplianceStatus
from procurement_engine.models.risk import (
    RiskAssessment, RiskFactor, RiskLevel, category_weight, risk_level_from_score,
)


def random_profile(rng: random.Random, idx: int) -> VendorProfile:
    def maybe(value):
        return value if rng.random() > 0.2 else None

    credit = rng.uniform(0, 200000)
    return VendorProfile(
        id=f"V-{idx}",
        credit_limit=maybe(credit),
        outstanding_balance=maybe(rng.uniform(0, credit * 1.5)),
        payment_terms_days=maybe(rng.uniform(0, 180)),
        total_purchases=maybe(rng.uniform(0, 500000)),
        on_time_delivery_rate=maybe(rng.uniform(-20, 120)),
        quality_score=maybe(rng.uniform(-20, 120)),
        response_time_hours=maybe(rng.uniform(0, 200)),
        compliance_status=maybe(rng.choice(list(ComplianceStatus))),
        certifications=maybe([f"C{i}" for i in range(rng.randint(0, 6))]),
    )


class TestRiskBanding:
    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.LOW), (20, RiskLevel.LOW), (21, RiskLevel.MEDIUM), (40, RiskLevel.MEDIUM),
        (41, RiskLevel.HIGH), (60, RiskLevel.HIGH), (61, RiskLevel.CRITICAL), (100, RiskLevel.CRITICAL),
    ])
    def test_band_edges(self, score, level):
        assert risk_level_from_score(score) == level

    def test_assessment_rejects_mismatched_level(self):
        with pytest.raises(ValueError):
            RiskAssessment(vendor_id="V-1", overall_risk_score=75, risk_level=RiskLevel.LOW)


class TestFactorScoring:
    def test_certification_score(self):
        assert certification_score(0) == 60
        assert certification_score(1) == 30
        assert certification_score(3) == 10
        assert certification_score(10) == 10

    def test_concentration_bands(self):
        assert concentration_score(150000) == 70
        assert concentration_score(75000) == 40
        assert concentration_score(50000) == 20

    def test_unknown_category_weight(self):
        assert category_weight("financial") == 0.25
        assert category_weight("weather") == 0.05

    def test_overall_is_category_weighted_mean(self):
        factors = [
            RiskFactor(category="financial", name="a", score=80, weight=0.25),
            RiskFactor(category="supply-chain", name="b", score=20, weight=0.15),
        ]
        # (80*0.25 + 20*0.15) / 0.40 = 57.5
        assert calculate_overall_score(factors) == 58

    def test_no_factors_scores_zero(self):
        assert calculate_overall_score([]) == 0

    def test_fixed_factor_set(self, reliable_vendor):
        factors = RiskFactorAnalyzer().analyze_factors(normalize_vendor_metrics(reliable_vendor))
        assert len(factors) == 8
        assert {f.category for f in factors} == {"financial", "operational", "compliance", "supply-chain"}
        assert all(0 <= f.score <= 100 for f in factors)


class TestAssessmentScenarios:
    def test_reliable_vendor_is_low_risk(self, reliable_vendor, as_of):
        assessment = calculate_risk_locally(reliable_vendor, as_of=as_of)
        assert assessment.overall_risk_score <= 20
        assert assessment.risk_level == RiskLevel.LOW

    def test_failing_vendor_is_critical(self, failing_vendor, as_of):
        assessment = calculate_risk_locally(failing_vendor, as_of=as_of)
        assert assessment.overall_risk_score >= 61
        assert assessment.risk_level == RiskLevel.CRITICAL
        assert assessment.recommendations[0].startswith("URGENT")
        assert len(assessment.insights) == 4

    def test_assessment_is_deterministic(self, failing_vendor, as_of):
        a = calculate_risk_locally(failing_vendor, as_of=as_of)
        b = calculate_risk_locally(failing_vendor, as_of=as_of)
        assert a.overall_risk_score == b.overall_risk_score
        assert [f.score for f in a.risk_factors] == [f.score for f in b.risk_factors]

    def test_random_profiles_stay_in_range_and_band(self):
        rng = random.Random(20250620)
        analyzer = RiskFactorAnalyzer()
        for idx in range(300):
            assessment = analyzer.assess(random_profile(rng, idx), as_of=date(2025, 6, 20))
            assert 0 <= assessment.overall_risk_score <= 100
            assert assessment.risk_level == risk_level_from_score(assessment.overall_risk_score)


class TestHistoricalTrend:
    def test_trend_replays_history_month_by_month(self, reliable_vendor, snapshot, as_of):
        points = RiskFactorAnalyzer().historical_trend(reliable_vendor, snapshot.purchases, as_of)
        assert [p.period for p in points] == ["2025-02", "2025-03", "2025-04", "2025-05", "2025-06"]
        assert all(p.risk_level == risk_level_from_score(p.risk_score) for p in points)

    def test_no_history_no_trend(self, reliable_vendor, as_of):
        assert RiskFactorAnalyzer().historical_trend(reliable_vendor, [], as_of) == []


class TestPeerComparison:
    def test_with_peers(self):
        peers = peer_comparison(30, [10, 50, 70])
        assert peers.average_risk_score == pytest.approx(43.3)
        assert peers.percentile == pytest.approx(66.7)
        assert peers.better_than_peers is True

    def test_baseline_without_peers(self):
        peers = peer_comparison(60)
        assert peers.average_risk_score == 45
        assert peers.percentile == 40
        assert peers.better_than_peers is False

    def test_distribution_counts_levels(self, reliable_vendor, failing_vendor):
        assessments = [calculate_risk_locally(v) for v in (reliable_vendor, failing_vendor)]
        assert risk_distribution(assessments) == {"low": 1, "medium": 0, "high": 0, "critical": 1}
