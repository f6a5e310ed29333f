"""
Validation of free-form provider output against locally computed results.

Two stages:
  1. extract_json_object  - text -> dict, or ResponseParseError
  2. reconcile_*          - dict -> model, normalized and corrected against the
                            local result (scores further than the tolerance from
                            the local score are replaced by it)

The validate_* entry points never raise on bad provider text; they return the
local result instead.
"""

import json
import math
import re
from typing import Any, Dict, List, Optional

from loguru import logger

from procurement_engine.config import settings
from procurement_engine.engine.ranker import rank_scorecards, pick_winners
from procurement_engine.errors import ResponseParseError
from procurement_engine.models.comparison import (
    ItemAnalysisInput, ItemComparison, VendorScorecard, CriterionScores, ItemRiskResult,
)
from procurement_engine.models.risk import (
    RiskAssessment, RiskFactor, RiskInsight, PeerComparison, RiskLevel, InsightImpact,
    AssessmentSource, category_weight, risk_level_from_score,
)
from procurement_engine.utils.helpers import clamp


_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

DEFAULT_FACTOR_SCORE = 50.0
DEFAULT_CONFIDENCE = 0.7
DEFAULT_RECOMMENDATIONS = ["Review vendor periodically"]
MAX_ITEM_INSIGHTS = 5


# ── Stage 1: parse ──

def extract_json_object(text: Any) -> Dict[str, Any]:
    """Pull the outermost JSON object out of provider text (fenced or surrounded by prose)."""
    if not isinstance(text, str) or not text.strip():
        raise ResponseParseError("empty provider response")

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise ResponseParseError("no JSON object in provider response")

    try:
        parsed = json.loads(text[start:end + 1])
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, oversized integer literals, runaway nesting
        raise ResponseParseError(f"invalid JSON in provider response: {e}") from e
    if not isinstance(parsed, dict):
        raise ResponseParseError("provider JSON is not an object")
    return parsed


# ── Normalization helpers ──

def _get(d: Dict[str, Any], *keys, default=None):
    """First present key; provider output mixes camelCase and snake_case."""
    for key in keys:
        if key in d and d[key] is not None:
            return d[key]
    return default


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _coerce_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def normalize_confidence(value: Any) -> float:
    """Confidence in [0, 1]; values above 1 are read as percentages."""
    number = _number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    if number > 1:
        number = number / 100
    return clamp(number, 0.0, 1.0)


def normalize_factor(raw: Dict[str, Any]) -> RiskFactor:
    category = str(_get(raw, "category", default="general")).strip().lower() or "general"
    score = _number(_get(raw, "score"))
    return RiskFactor(
        category=category,
        name=str(_get(raw, "name", default="Unknown Factor")),
        description=str(_get(raw, "description", default="")),
        severity=_coerce_enum(RiskLevel, _get(raw, "severity"), RiskLevel.MEDIUM),
        score=clamp(score if score is not None else DEFAULT_FACTOR_SCORE),
        weight=category_weight(category),
        recommendation=str(_get(raw, "recommendation", default="")),
    )


def normalize_insight(raw: Dict[str, Any]) -> RiskInsight:
    action_required = bool(_get(raw, "actionRequired", "action_required", default=False))
    actions = _string_list(_get(raw, "suggestedActions", "suggested_actions"))
    if not actions and action_required:
        actions = ["Review and take appropriate action"]
    return RiskInsight(
        title=str(_get(raw, "title", default="Insight")),
        description=str(_get(raw, "description", default="")),
        impact=_coerce_enum(InsightImpact, _get(raw, "impact"), InsightImpact.NEUTRAL),
        confidence=normalize_confidence(_get(raw, "confidence")),
        category=str(_get(raw, "category", default="general")).strip().lower() or "general",
        action_required=action_required,
        suggested_actions=actions,
    )


def reconcile_score(external: float, expected: float, tolerance: float, subject: str) -> float:
    """Keep the external score unless it is further than ``tolerance`` from the expected one."""
    if abs(external - expected) > tolerance:
        logger.warning(
            f"Provider score {external:g} for {subject} differs from local {expected:g} "
            f"by more than {tolerance:g}; using local score"
        )
        return clamp(expected)
    return clamp(external)


# ── Stage 2: reconcile ──

def reconcile_risk_response(
    parsed: Dict[str, Any], expected: RiskAssessment, tolerance: Optional[float] = None
) -> RiskAssessment:
    """Build a provider-sourced RiskAssessment from parsed JSON, corrected against ``expected``."""
    tolerance = settings.AI_SCORE_TOLERANCE if tolerance is None else tolerance
    external = _number(_get(parsed, "overallRiskScore", "overall_risk_score"))
    if external is None:
        raise ResponseParseError("provider response has no numeric overall risk score")

    score = reconcile_score(external, expected.overall_risk_score, tolerance, expected.vendor_id)

    raw_factors = _get(parsed, "riskFactors", "risk_factors", default=[])
    factors = [normalize_factor(f) for f in raw_factors if isinstance(f, dict)] \
        if isinstance(raw_factors, list) else []
    raw_insights = _get(parsed, "insights", default=[])
    insights = [normalize_insight(i) for i in raw_insights if isinstance(i, dict)] \
        if isinstance(raw_insights, list) else []
    recommendations = _string_list(_get(parsed, "recommendations")) or list(DEFAULT_RECOMMENDATIONS)

    peers = None
    if expected.peer_comparison is not None:
        average = expected.peer_comparison.average_risk_score
        peers = PeerComparison(
            average_risk_score=average,
            percentile=round(clamp(100 - score), 1),
            better_than_peers=score < average,
        )

    return RiskAssessment(
        vendor_id=expected.vendor_id,
        vendor_name=expected.vendor_name,
        assessed_at=expected.assessed_at,
        overall_risk_score=score,
        risk_level=risk_level_from_score(score),
        risk_factors=factors or list(expected.risk_factors),
        insights=insights or list(expected.insights),
        recommendations=recommendations,
        historical_trend=list(expected.historical_trend),
        peer_comparison=peers,
        source=AssessmentSource.PROVIDER,
    )


def validate_risk_response(
    text: Any, expected: RiskAssessment, tolerance: Optional[float] = None
) -> RiskAssessment:
    """Parse and reconcile provider text; any parse failure returns ``expected`` unchanged."""
    try:
        return reconcile_risk_response(extract_json_object(text), expected, tolerance)
    except ResponseParseError as e:
        logger.warning(f"Discarding provider risk response for {expected.vendor_id}: {e}")
        return expected


def _reconcile_scorecard(
    raw: Dict[str, Any], local: VendorScorecard, tolerance: float
) -> VendorScorecard:
    external = _number(_get(raw, "overallScore", "overall_score"))
    overall = local.overall_score if external is None else reconcile_score(
        external, local.overall_score, tolerance, local.vendor_id
    )

    raw_scores = _get(raw, "scores", default={})
    raw_scores = raw_scores if isinstance(raw_scores, dict) else {}

    def criterion(*keys, fallback):
        value = _number(_get(raw_scores, *keys))
        return clamp(value) if value is not None else fallback

    scores = CriterionScores(
        price=criterion("price", fallback=local.scores.price),
        quality=criterion("quality", fallback=local.scores.quality),
        delivery=criterion("delivery", fallback=local.scores.delivery),
        reliability=criterion("reliability", fallback=local.scores.reliability),
        risk_score=criterion("riskScore", "risk_score", fallback=local.scores.risk_score),
    )
    verdict = _get(raw, "verdict")
    return local.model_copy(update={
        "overall_score": overall,
        "scores": scores,
        "pros": _string_list(_get(raw, "pros")) or list(local.pros),
        "cons": _string_list(_get(raw, "cons")) or list(local.cons),
        "verdict": verdict.strip() if isinstance(verdict, str) and verdict.strip() else local.verdict,
    })


def reconcile_comparison_response(
    parsed: Dict[str, Any],
    item: ItemAnalysisInput,
    local: ItemComparison,
    tolerance: Optional[float] = None,
) -> ItemComparison:
    """Merge provider scorecards into the local comparison; ranks are always recomputed locally."""
    tolerance = settings.AI_SCORE_TOLERANCE if tolerance is None else tolerance
    raw_list = _get(parsed, "vendorComparisons", "vendor_comparisons", default=[])
    if not isinstance(raw_list, list):
        raise ResponseParseError("provider comparison has no vendor list")

    by_id = {vc.vendor_id: vc for vc in local.vendor_comparisons}
    by_name = {vc.vendor_name.lower(): vc for vc in local.vendor_comparisons if vc.vendor_name}

    merged: Dict[str, VendorScorecard] = {}
    for raw in raw_list:
        if not isinstance(raw, dict):
            continue
        match = by_id.get(str(_get(raw, "vendorId", "vendor_id", default="")))
        if match is None:
            match = by_name.get(str(_get(raw, "vendorName", "vendor_name", default="")).lower())
        if match is None:
            logger.warning(f"Dropping provider scorecard for unknown vendor in '{item.item_name}'")
            continue
        if match.vendor_id in merged:
            continue
        merged[match.vendor_id] = _reconcile_scorecard(raw, match, tolerance)

    if not merged:
        raise ResponseParseError("provider comparison matched no known vendor")

    ranked = rank_scorecards([merged.get(vc.vendor_id, vc) for vc in local.vendor_comparisons])

    def text_or(key_camel, key_snake, fallback):
        value = _get(parsed, key_camel, key_snake)
        return value.strip() if isinstance(value, str) and value.strip() else fallback

    # single / dual source flags come from the vendor count, not provider prose
    strategy = local.procurement_strategy
    if len(ranked) >= 3:
        strategy = text_or("procurementStrategy", "procurement_strategy", strategy)

    return local.model_copy(update={
        "vendor_comparisons": ranked,
        "overall_recommendation": text_or(
            "overallRecommendation", "overall_recommendation", local.overall_recommendation
        ),
        "procurement_strategy": strategy,
        "risk_mitigation": _string_list(_get(parsed, "riskMitigation", "risk_mitigation"))
        or list(local.risk_mitigation),
        "cost_optimization": _string_list(_get(parsed, "costOptimization", "cost_optimization"))
        or list(local.cost_optimization),
        "source": AssessmentSource.PROVIDER,
        **pick_winners(ranked),
    })


def validate_comparison_response(
    text: Any,
    item: ItemAnalysisInput,
    local: ItemComparison,
    tolerance: Optional[float] = None,
) -> ItemComparison:
    if not local.vendor_comparisons:
        return local
    try:
        return reconcile_comparison_response(extract_json_object(text), item, local, tolerance)
    except ResponseParseError as e:
        logger.warning(f"Discarding provider comparison for '{item.item_name}': {e}")
        return local


def reconcile_item_analysis_response(
    parsed: Dict[str, Any], local: ItemRiskResult, tolerance: Optional[float] = None
) -> ItemRiskResult:
    tolerance = settings.AI_SCORE_TOLERANCE if tolerance is None else tolerance
    external = _number(_get(parsed, "score"))
    if external is None:
        raise ResponseParseError("provider item analysis has no numeric score")
    score = reconcile_score(external, local.score, tolerance, "item analysis")

    recommendation = _get(parsed, "recommendation")
    return ItemRiskResult(
        risk_level=risk_level_from_score(100 - score),
        score=score,
        insights=_string_list(_get(parsed, "insights"))[:MAX_ITEM_INSIGHTS] or list(local.insights),
        recommendation=recommendation.strip()
        if isinstance(recommendation, str) and recommendation.strip() else local.recommendation,
        source=AssessmentSource.PROVIDER,
    )


def validate_item_analysis_response(
    text: Any, local: ItemRiskResult, tolerance: Optional[float] = None
) -> ItemRiskResult:
    try:
        return reconcile_item_analysis_response(extract_json_object(text), local, tolerance)
    except ResponseParseError as e:
        logger.warning(f"Discarding provider item analysis: {e}")
        return local
