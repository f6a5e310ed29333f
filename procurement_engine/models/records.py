"""Pydantic models for the read-only procurement records (vendors, purchases, items)."""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum
from datetime import date


class VendorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    SUSPENDED = "suspended"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"
    PENDING_REVIEW = "pending-review"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    PARTIAL = "partial"


def _clamp_percent(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))


class VendorProfile(BaseModel):
    """Vendor master record with financial, performance and compliance metrics."""
    id: str = Field(..., min_length=1)
    name: str = ""
    category: str = "General"
    status: VendorStatus = VendorStatus.ACTIVE

    # Financial
    credit_limit: Optional[float] = Field(None, ge=0)
    outstanding_balance: Optional[float] = Field(None, ge=0)
    payment_terms_days: Optional[float] = Field(None, ge=0)
    total_purchases: Optional[float] = Field(None, ge=0, description="Total historical spend")
    average_order_value: Optional[float] = Field(None, ge=0)

    # Performance
    on_time_delivery_rate: Optional[float] = Field(None, description="Percentage 0-100")
    quality_score: Optional[float] = Field(None, description="0-100")
    defect_rate: Optional[float] = Field(None, description="Percentage 0-100")
    response_time_hours: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)

    # Compliance
    compliance_status: Optional[ComplianceStatus] = None
    certifications: Optional[List[str]] = None
    last_audit_date: Optional[date] = None

    @field_validator("on_time_delivery_rate", "quality_score", "defect_rate")
    @classmethod
    def clamp_rates(cls, v):
        return _clamp_percent(v)


class LineItem(BaseModel):
    """One line of a purchase order."""
    description: str = ""
    item_id: Optional[str] = None
    quantity: float = Field(default=0.0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


class PurchaseRecord(BaseModel):
    """Purchase order with delivery, quality and payment outcomes."""
    id: str
    vendor_id: str
    order_date: date
    expected_delivery_date: Optional[date] = None
    actual_delivery_date: Optional[date] = None
    status: PurchaseStatus = PurchaseStatus.PENDING
    items: List[LineItem] = Field(default_factory=list)
    total_amount: Optional[float] = Field(None, ge=0)

    # Outcomes
    payment_status: Optional[PaymentStatus] = None
    payment_delay_days: Optional[float] = None
    on_time_delivery: Optional[bool] = None
    lead_time_days: Optional[float] = Field(None, ge=0)
    quality_rating: Optional[float] = Field(None, ge=1, le=5)
    communication_rating: Optional[float] = Field(None, ge=1, le=5)
    defect_count: int = Field(default=0, ge=0)
    returned_count: int = Field(default=0, ge=0)

    @property
    def is_delivered(self) -> bool:
        return self.status == PurchaseStatus.DELIVERED

    @property
    def delivered_on_time(self) -> bool:
        """Explicit flag first, then actual vs expected date, else assumed on time."""
        if self.on_time_delivery is not None:
            return self.on_time_delivery
        if self.actual_delivery_date and self.expected_delivery_date:
            return self.actual_delivery_date <= self.expected_delivery_date
        return True

    @property
    def resolved_lead_time(self) -> Optional[float]:
        if self.lead_time_days is not None:
            return self.lead_time_days
        if self.actual_delivery_date:
            return float((self.actual_delivery_date - self.order_date).days)
        return None

    @property
    def total(self) -> float:
        if self.total_amount is not None:
            return self.total_amount
        return sum(li.total for li in self.items)

    @property
    def quantity(self) -> float:
        return sum(li.quantity for li in self.items)


class Item(BaseModel):
    """Catalog item master record."""
    id: str = Field(..., min_length=1)
    item_code: str = ""
    item_name: str = ""
    category: str = "General"
    unit: str = "piece"
    default_price: Optional[float] = Field(None, ge=0)
    current_stock: Optional[float] = Field(None, ge=0, description="None when inventory is unknown")
    status: str = "active"


class VendorItem(BaseModel):
    """Mapping of a vendor able to supply an item, with its quoted terms."""
    vendor_id: str
    item_id: str
    vendor_name: Optional[str] = None
    unit_price: float = Field(..., ge=0)
    min_order_quantity: Optional[float] = None
    lead_time_days: Optional[float] = Field(None, ge=0)
    is_preferred: bool = False
    status: str = "active"
