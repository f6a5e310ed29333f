"""
Unit tests for provider response parsing and reconciliation.
"""

import json

import pytest

from procurement_engine.engine.ai_validator import (
    extract_json_object, normalize_confidence, reconcile_risk_response, validate_risk_response,
    validate_comparison_response, validate_item_analysis_response,
)
from procurement_engine.engine.item_analysis import calculate_item_risk_locally
from procurement_engine.engine.ranker import ItemVendorRanker
from procurement_engine.engine.risk_analyzer import calculate_risk_locally
from procurement_engine.errors import ResponseParseError
from procurement_engine.models.comparison import ItemAnalysisInput, VendorOption
from procurement_engine.models.risk import AssessmentSource, RiskLevel, risk_level_from_score


@pytest.fixture
def expected(reliable_vendor, as_of):
    # quality 100, delivery 100, compliant, 3 certs: local score 11
    return calculate_risk_locally(reliable_vendor, as_of=as_of)


def risk_payload(score, **extra):
    payload = {"overallRiskScore": score, "riskLevel": "low", "riskFactors": [], "insights": []}
    payload.update(extra)
    return json.dumps(payload)


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"overallRiskScore": 12}\n```\nThanks'
        assert extract_json_object(text) == {"overallRiskScore": 12}

    def test_json_embedded_in_prose(self):
        assert extract_json_object('The result is {"score": 70, "x": {"y": 1}} as requested.') == {
            "score": 70, "x": {"y": 1},
        }

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken: json", None, "[1, 2]"])
    def test_malformed_raises(self, text):
        with pytest.raises(ResponseParseError):
            extract_json_object(text)


class TestScoreTolerance:
    def test_difference_of_30_keeps_external(self, expected):
        external = expected.overall_risk_score + 30
        result = validate_risk_response(risk_payload(external), expected)
        assert result.overall_risk_score == external
        assert result.risk_level == risk_level_from_score(external)
        assert result.source == AssessmentSource.PROVIDER

    def test_difference_of_31_substitutes_expected(self, expected):
        result = validate_risk_response(risk_payload(expected.overall_risk_score + 31), expected)
        assert result.overall_risk_score == expected.overall_risk_score
        assert result.risk_level == expected.risk_level

    def test_level_recomputed_not_trusted(self, expected):
        result = validate_risk_response(risk_payload(expected.overall_risk_score + 20, riskLevel="critical"), expected)
        assert result.risk_level == RiskLevel.MEDIUM

    def test_custom_tolerance(self, expected):
        result = validate_risk_response(risk_payload(expected.overall_risk_score + 10), expected, tolerance=5)
        assert result.overall_risk_score == expected.overall_risk_score

    def test_out_of_range_score_clamped(self, expected):
        severe = expected.model_copy(update={"overall_risk_score": 90, "risk_level": RiskLevel.CRITICAL})
        result = validate_risk_response(risk_payload(110), severe)
        assert result.overall_risk_score == 100
        assert result.risk_level == RiskLevel.CRITICAL


class TestFailSoft:
    @pytest.mark.parametrize("text", [
        "I cannot help with that.",
        '{"riskLevel": "low"}',
        '{"overallRiskScore": "very risky"}',
        '{"overallRiskScore": true}',
        '{"overallRiskScore": NaN}',
    ])
    def test_unusable_response_returns_local(self, expected, text):
        assert validate_risk_response(text, expected) is expected

    def test_reconcile_raises_without_score(self, expected):
        with pytest.raises(ResponseParseError):
            reconcile_risk_response({"riskFactors": []}, expected)

    def test_oversized_integer_returns_local(self, expected):
        text = '{"overallRiskScore": ' + "9" * 5000 + "}"
        assert validate_risk_response(text, expected) is expected

    def test_deep_nesting_returns_local(self, expected):
        text = '{"overallRiskScore": 20, "riskFactors": ' + "[" * 100000 + "]" * 100000 + "}"
        assert validate_risk_response(text, expected) is expected

    def test_deep_nesting_raises_parse_error(self):
        with pytest.raises(ResponseParseError):
            extract_json_object('{"a": ' + "[" * 100000 + "]" * 100000 + "}")


class TestNormalization:
    @pytest.mark.parametrize("raw,confidence", [(85, 0.85), (0.4, 0.4), (None, 0.7), ("abc", 0.7), (250, 1.0)])
    def test_confidence(self, raw, confidence):
        assert normalize_confidence(raw) == pytest.approx(confidence)

    def test_factors_and_insights_normalized(self, expected):
        text = risk_payload(
            15,
            riskFactors=[
                {"category": "FINANCIAL", "name": "Credit", "severity": "HIGH", "score": 140},
                {"category": "Weather", "severity": "apocalyptic"},
            ],
            insights=[{"title": "Good", "impact": "Positive", "confidence": 90, "actionRequired": True}],
        )
        result = validate_risk_response(text, expected)
        first, second = result.risk_factors
        assert (first.category, first.severity, first.score, first.weight) == ("financial", RiskLevel.HIGH, 100, 0.25)
        assert (second.category, second.name, second.severity, second.score, second.weight) == (
            "weather", "Unknown Factor", RiskLevel.MEDIUM, 50, 0.05,
        )
        insight = result.insights[0]
        assert insight.impact.value == "positive"
        assert insight.confidence == pytest.approx(0.9)
        assert insight.suggested_actions == ["Review and take appropriate action"]
        assert result.recommendations == ["Review vendor periodically"]

    def test_missing_factor_list_keeps_local_factors(self, expected):
        result = validate_risk_response('{"overallRiskScore": 12}', expected)
        assert len(result.risk_factors) == len(expected.risk_factors)
        assert result.historical_trend == expected.historical_trend


@pytest.fixture
def two_vendor_item():
    return ItemAnalysisInput(
        item_id="ITM-001",
        item_name="Steel Bolt M8",
        avg_price=100.0,
        vendor_options=[
            VendorOption(vendor_id="A", vendor_name="Alpha", avg_price=90, quality_score=95,
                         on_time_delivery_rate=96, risk_score=10, reliability_score=90, purchase_count=12),
            VendorOption(vendor_id="B", vendor_name="Beta", avg_price=110, quality_score=80,
                         on_time_delivery_rate=85, risk_score=40, reliability_score=60, purchase_count=5),
        ],
    )


class TestComparisonValidation:
    def test_ranks_recomputed_from_reconciled_scores(self, two_vendor_item):
        local = ItemVendorRanker().compare(two_vendor_item)   # Alpha 88, Beta 65
        text = json.dumps({"vendorComparisons": [
            {"vendorId": "A", "overallScore": 60, "rank": 1},
            {"vendorName": "beta", "overallScore": 95, "rank": 2, "pros": ["Flexible terms"]},
            {"vendorId": "ZZZ", "vendorName": "Ghost", "overallScore": 100},
        ]})
        result = validate_comparison_response(text, two_vendor_item, local)
        assert [vc.vendor_id for vc in result.vendor_comparisons] == ["B", "A"]
        assert result.vendor_comparisons[0].is_recommended is True
        assert result.best_choice.vendor_id == "B"
        assert result.vendor_comparisons[0].pros == ["Flexible terms"]
        assert result.source == AssessmentSource.PROVIDER

    def test_implausible_vendor_score_replaced(self, two_vendor_item):
        local = ItemVendorRanker().compare(two_vendor_item)
        text = json.dumps({"vendorComparisons": [{"vendorId": "A", "overallScore": 10}]})
        result = validate_comparison_response(text, two_vendor_item, local)
        alpha = next(vc for vc in result.vendor_comparisons if vc.vendor_id == "A")
        assert alpha.overall_score == 88
        assert alpha.rank == 1

    def test_unknown_vendors_only_falls_back(self, two_vendor_item):
        local = ItemVendorRanker().compare(two_vendor_item)
        text = json.dumps({"vendorComparisons": [{"vendorId": "X", "overallScore": 50}]})
        assert validate_comparison_response(text, two_vendor_item, local) is local

    def test_garbage_falls_back(self, two_vendor_item):
        local = ItemVendorRanker().compare(two_vendor_item)
        assert validate_comparison_response("not json", two_vendor_item, local) is local


class TestItemAnalysisValidation:
    def test_score_within_tolerance_kept(self, two_vendor_item):
        local = calculate_item_risk_locally(two_vendor_item)
        text = json.dumps({"score": local.score + 10, "insights": ["a", "b"], "recommendation": "Do it"})
        result = validate_item_analysis_response(text, local)
        assert result.score == local.score + 10
        assert result.risk_level == risk_level_from_score(100 - result.score)
        assert result.insights == ["a", "b"]
        assert result.recommendation == "Do it"

    def test_far_score_replaced_and_text_defaults(self, two_vendor_item):
        local = calculate_item_risk_locally(two_vendor_item)
        result = validate_item_analysis_response(json.dumps({"score": local.score + 50}), local)
        assert result.score == local.score
        assert result.insights == local.insights
        assert result.recommendation == local.recommendation
