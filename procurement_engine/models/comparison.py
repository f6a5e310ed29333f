"""Pydantic models for multi-vendor item comparison."""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from enum import Enum
from datetime import date

from procurement_engine.models.risk import RiskLevel, AssessmentSource


class DemandTrend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class VendorOption(BaseModel):
    """One vendor able to supply the item under comparison."""
    vendor_id: str
    vendor_name: str = ""
    avg_price: float = Field(..., ge=0)
    total_quantity: float = 0.0
    purchase_count: int = Field(default=0, ge=0)
    quality_score: float = Field(default=80.0, ge=0, le=100)
    on_time_delivery_rate: float = Field(default=90.0, ge=0, le=100)
    risk_score: float = Field(default=30.0, ge=0, le=100)
    price_variance: float = 0.0
    reliability_score: Optional[float] = Field(None, ge=0, le=100)
    lead_time_days: Optional[float] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_preferred: bool = False
    last_purchase_date: Optional[date] = None


class ItemAnalysisInput(BaseModel):
    """An item with its competing supplier options."""
    item_id: str = ""
    item_name: str
    category: str = "General"
    total_purchases: int = 0
    total_quantity: float = 0.0
    avg_price: float = 0.0
    vendor_options: List[VendorOption] = Field(default_factory=list)
    price_stability: Optional[float] = None
    demand_trend: DemandTrend = DemandTrend.STABLE
    supply_chain_risk: Optional[float] = None

    @property
    def recommended_vendor(self) -> Optional[VendorOption]:
        return self.vendor_options[0] if self.vendor_options else None


class CriterionScores(BaseModel):
    price: float = Field(..., ge=0, le=100)
    quality: float = Field(..., ge=0, le=100)
    delivery: float = Field(..., ge=0, le=100)
    reliability: float = Field(..., ge=0, le=100)
    risk_score: float = Field(..., ge=0, le=100, description="Lower is better")


class VendorScorecard(BaseModel):
    """Per-vendor result of a comparison."""
    vendor_id: str
    vendor_name: str = ""
    overall_score: float = Field(..., ge=0, le=100)
    rank: int = Field(..., ge=1)
    is_recommended: bool = False
    is_preferred: bool = False
    scores: CriterionScores
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    cost_savings_vs_avg: float = Field(default=0.0, description="Positive = savings, negative = premium (%)")
    verdict: str = ""


class ItemComparison(BaseModel):
    """Ranked comparison of every vendor supplying one item."""
    item_id: str = ""
    item_name: str
    category: str = "General"
    total_vendors: int = 0
    vendor_comparisons: List[VendorScorecard] = Field(default_factory=list)
    best_choice: Optional[VendorScorecard] = None
    best_value: Optional[VendorScorecard] = None
    best_quality: Optional[VendorScorecard] = None
    most_reliable: Optional[VendorScorecard] = None
    overall_recommendation: str = ""
    procurement_strategy: str = ""
    risk_mitigation: List[str] = Field(default_factory=list)
    cost_optimization: List[str] = Field(default_factory=list)
    source: AssessmentSource = AssessmentSource.LOCAL

    @model_validator(mode="after")
    def ranks_are_contiguous(self):
        ranks = sorted(vc.rank for vc in self.vendor_comparisons)
        if ranks != list(range(1, len(ranks) + 1)):
            raise ValueError(f"ranks must be a permutation of 1..{len(ranks)}, got {ranks}")
        recommended = [vc for vc in self.vendor_comparisons if vc.is_recommended]
        if self.vendor_comparisons and (len(recommended) != 1 or recommended[0].rank != 1):
            raise ValueError("exactly one vendor, ranked 1, must be recommended")
        return self


class ItemRiskResult(BaseModel):
    """Item-level sourcing risk; score is 0-100 where higher is safer."""
    risk_level: RiskLevel
    score: float = Field(..., ge=0, le=100)
    insights: List[str] = Field(default_factory=list)
    recommendation: str = ""
    source: AssessmentSource = AssessmentSource.LOCAL
