from procurement_engine.models.records import (
    VendorProfile, PurchaseRecord, LineItem, Item, VendorItem,
    VendorStatus, ComplianceStatus, PurchaseStatus, PaymentStatus,
)
from procurement_engine.models.risk import (
    RiskAssessment, RiskFactor, RiskInsight, RiskTrendPoint, PeerComparison,
    RiskLevel, RiskCategory, InsightImpact, AssessmentSource,
    CATEGORY_WEIGHTS, DEFAULT_CATEGORY_WEIGHT, category_weight, risk_level_from_score,
)
from procurement_engine.models.comparison import (
    VendorOption, ItemAnalysisInput, CriterionScores, VendorScorecard,
    ItemComparison, ItemRiskResult, DemandTrend,
)
from procurement_engine.models.forecast import (
    StockOutForecast, DemandForecast, PricingForecast, VendorRiskForecast,
    ForecastSummary, ForecastData, StockOutRisk, CountTrend, DemandDirection,
    PerformanceTrend, Volatility, PaymentHealth, AlertLevel,
)

__all__ = [
    "VendorProfile", "PurchaseRecord", "LineItem", "Item", "VendorItem",
    "VendorStatus", "ComplianceStatus", "PurchaseStatus", "PaymentStatus",
    "RiskAssessment", "RiskFactor", "RiskInsight", "RiskTrendPoint", "PeerComparison",
    "RiskLevel", "RiskCategory", "InsightImpact", "AssessmentSource",
    "CATEGORY_WEIGHTS", "DEFAULT_CATEGORY_WEIGHT", "category_weight", "risk_level_from_score",
    "VendorOption", "ItemAnalysisInput", "CriterionScores", "VendorScorecard",
    "ItemComparison", "ItemRiskResult", "DemandTrend",
    "StockOutForecast", "DemandForecast", "PricingForecast", "VendorRiskForecast",
    "ForecastSummary", "ForecastData", "StockOutRisk", "CountTrend", "DemandDirection",
    "PerformanceTrend", "Volatility", "PaymentHealth", "AlertLevel",
]
