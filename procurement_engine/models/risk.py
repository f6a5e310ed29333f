"""Pydantic models for vendor risk assessment."""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from enum import Enum
from datetime import datetime


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskCategory(str, Enum):
    FINANCIAL = "financial"
    OPERATIONAL = "operational"
    COMPLIANCE = "compliance"
    SUPPLY_CHAIN = "supply-chain"
    REPUTATIONAL = "reputational"
    MARKET = "market"
    GEOPOLITICAL = "geopolitical"


class InsightImpact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class AssessmentSource(str, Enum):
    LOCAL = "local"
    PROVIDER = "provider"


# Fixed category weights; categories outside this table weigh DEFAULT_CATEGORY_WEIGHT.
CATEGORY_WEIGHTS = {
    RiskCategory.FINANCIAL.value: 0.25,
    RiskCategory.OPERATIONAL.value: 0.25,
    RiskCategory.COMPLIANCE.value: 0.20,
    RiskCategory.SUPPLY_CHAIN.value: 0.15,
    RiskCategory.REPUTATIONAL.value: 0.05,
    RiskCategory.MARKET.value: 0.05,
    RiskCategory.GEOPOLITICAL.value: 0.05,
}
DEFAULT_CATEGORY_WEIGHT = 0.05


def category_weight(category: str) -> float:
    return CATEGORY_WEIGHTS.get(str(category).lower(), DEFAULT_CATEGORY_WEIGHT)


def risk_level_from_score(score: float) -> RiskLevel:
    """
    The one risk banding used everywhere a level is emitted.

    [0,20] low, [21,40] medium, [41,60] high, [61,100] critical.
    """
    if score >= 61:
        return RiskLevel.CRITICAL
    if score >= 41:
        return RiskLevel.HIGH
    if score >= 21:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskFactor(BaseModel):
    """A categorized, weighted contributor to the overall risk score."""
    category: str
    name: str
    description: str = ""
    severity: RiskLevel = RiskLevel.MEDIUM
    score: float = Field(..., ge=0, le=100)
    weight: float = Field(default=DEFAULT_CATEGORY_WEIGHT, ge=0)
    recommendation: str = ""


class RiskInsight(BaseModel):
    """Templated (or provider-supplied) observation about a vendor."""
    title: str
    description: str = ""
    impact: InsightImpact = InsightImpact.NEUTRAL
    confidence: float = Field(default=0.7, ge=0, le=1)
    category: str = "general"
    action_required: bool = False
    suggested_actions: List[str] = Field(default_factory=list)


class RiskTrendPoint(BaseModel):
    period: str = Field(..., description="YYYY-MM")
    risk_score: float = Field(..., ge=0, le=100)
    risk_level: RiskLevel


class PeerComparison(BaseModel):
    average_risk_score: float
    percentile: float = Field(..., ge=0, le=100)
    better_than_peers: bool


class RiskAssessment(BaseModel):
    """Complete risk assessment for one vendor."""
    vendor_id: str
    vendor_name: str = ""
    assessed_at: datetime = Field(default_factory=datetime.utcnow)
    overall_risk_score: float = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    insights: List[RiskInsight] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    historical_trend: List[RiskTrendPoint] = Field(default_factory=list)
    peer_comparison: Optional[PeerComparison] = None
    source: AssessmentSource = AssessmentSource.LOCAL

    @model_validator(mode="after")
    def level_matches_score(self):
        expected = risk_level_from_score(self.overall_risk_score)
        if self.risk_level != expected:
            raise ValueError(
                f"risk_level {self.risk_level.value} does not match score "
                f"{self.overall_risk_score} (expected {expected.value})"
            )
        return self
