"""Pydantic models for the four procurement forecasts and their summary."""

from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum
from datetime import date, datetime


class StockOutRisk(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CountTrend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class DemandDirection(str, Enum):
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class Volatility(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PaymentHealth(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertLevel(str, Enum):
    NONE = "none"
    WATCH = "watch"
    WARNING = "warning"
    CRITICAL = "critical"


class StockOutForecast(BaseModel):
    item_id: str
    item_code: str = ""
    item_name: str = ""
    category: str = "General"
    current_stock: Optional[float] = None
    avg_daily_usage: float = 0.0
    days_until_stock_out: Optional[int] = Field(None, description="999 when usage is zero; None when stock is unknown")
    predicted_stock_out_date: Optional[date] = None
    risk_level: Optional[StockOutRisk] = None
    reorder_point: int = 0
    suggested_order_qty: int = 0
    last_order_date: Optional[date] = None
    trend: CountTrend = CountTrend.STABLE
    insufficient_data: bool = False


class DemandForecast(BaseModel):
    item_id: str
    item_code: str = ""
    item_name: str = ""
    category: str = "General"
    current_month_demand: float = 0.0
    last_month_demand: float = 0.0
    avg_monthly_demand: float = 0.0
    predicted_next_month_demand: float = Field(default=0.0, ge=0)
    demand_trend: DemandDirection = DemandDirection.STABLE
    growth_rate: float = 0.0
    seasonality_factor: float = 1.0
    confidence: float = Field(default=0.5, ge=0, le=1)


class PricingForecast(BaseModel):
    item_id: str
    item_code: str = ""
    item_name: str = ""
    category: str = "General"
    current_avg_price: Optional[float] = None
    last_month_avg_price: Optional[float] = None
    price_change: float = 0.0
    price_change_percent: float = 0.0
    price_trend: CountTrend = CountTrend.STABLE
    predicted_next_price: Optional[float] = None
    volatility: Volatility = Volatility.LOW
    best_vendor_price: Optional[float] = None
    best_vendor: str = "N/A"
    savings_opportunity: float = Field(default=0.0, ge=0)
    insufficient_data: bool = False


class VendorRiskForecast(BaseModel):
    vendor_id: str
    vendor_name: str = ""
    category: str = "General"
    current_risk_score: float = Field(..., ge=0, le=100)
    predicted_risk_score: float = Field(..., ge=0, le=100)
    risk_trend: PerformanceTrend = PerformanceTrend.STABLE
    on_time_delivery_rate: float = 0.0
    delivery_trend: PerformanceTrend = PerformanceTrend.STABLE
    quality_score: float = 0.0
    quality_trend: PerformanceTrend = PerformanceTrend.STABLE
    payment_health: PaymentHealth = PaymentHealth.GOOD
    recommendations: List[str] = Field(default_factory=list)
    alert_level: AlertLevel = AlertLevel.NONE


class ForecastSummary(BaseModel):
    stock_out_alerts: int = 0
    critical_items: int = 0
    rising_demand_items: int = 0
    price_increase_items: int = 0
    at_risk_vendors: int = 0
    total_savings_opportunity: float = 0.0
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class ForecastData(BaseModel):
    summary: ForecastSummary
    stock_out_forecasts: List[StockOutForecast] = Field(default_factory=list)
    demand_forecasts: List[DemandForecast] = Field(default_factory=list)
    pricing_forecasts: List[PricingForecast] = Field(default_factory=list)
    vendor_risk_forecasts: List[VendorRiskForecast] = Field(default_factory=list)
