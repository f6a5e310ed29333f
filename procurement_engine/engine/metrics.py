"""
Metrics normalization: flattens a vendor profile and its purchase history into
the numeric inputs the scoring and forecasting components read.

Profile values win and pass through untouched. A missing value is derived from
purchase history where that is possible, otherwise it falls back to a fixed
default (see DEFAULTS), so downstream code never sees an undefined quantity.
"""

from datetime import date
from typing import Iterable, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from procurement_engine.errors import MalformedRecordError
from procurement_engine.models.records import (
    VendorProfile, PurchaseRecord, Item, ComplianceStatus, PaymentStatus, PurchaseStatus,
)
from procurement_engine.utils.helpers import mean


DEFAULTS = {
    "on_time_delivery_rate": 100.0,
    "quality_score": 100.0,
    "quality_rating": 4.0,           # out of 5, used when deliveries carry no rating
    "response_time_hours": 12.0,
    "lead_time_days": 14.0,
    "credit_limit": 50000.0,
    "outstanding_balance": 0.0,
    "payment_terms_days": 30.0,
    "total_purchases": 0.0,
    "defect_rate": 0.0,
    "payment_delay_days": 0.0,
    "communication_rating": 4.0,
    "compliance_status": ComplianceStatus.PENDING_REVIEW,
}


class VendorMetrics(BaseModel):
    """Flat, fully-resolved metric map for one vendor."""
    vendor_id: str
    vendor_name: str = ""
    category: str = "General"

    # Financial
    credit_limit: float
    outstanding_balance: float
    credit_utilization: float
    payment_terms_days: float
    total_purchases: float
    average_order_value: float

    # Performance
    on_time_delivery_rate: float = Field(..., ge=0, le=100)
    quality_score: float = Field(..., ge=0, le=100)
    defect_rate: float = Field(..., ge=0, le=100)
    response_time_hours: float
    avg_lead_time_days: float
    rating: Optional[float] = None

    # Compliance
    compliance_status: ComplianceStatus
    certification_count: int

    # Purchase-history derived
    purchase_count: int = 0
    delivered_count: int = 0
    avg_payment_delay_days: float = 0.0
    avg_communication_rating: float = 4.0
    overdue_payments: int = 0
    pending_payments: int = 0


class ItemObservation(BaseModel):
    """One purchase line of a specific item."""
    purchase_id: str
    vendor_id: str
    order_date: date
    status: PurchaseStatus
    quantity: float
    unit_price: float


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def vendor_purchases(vendor_id: str, purchases: Iterable[PurchaseRecord]) -> List[PurchaseRecord]:
    return [p for p in purchases if p.vendor_id == vendor_id]


def normalize_vendor_metrics(
    vendor: VendorProfile, purchases: Iterable[PurchaseRecord] = ()
) -> VendorMetrics:
    """Resolve every metric for ``vendor``; raises MalformedRecordError without a vendor id."""
    if vendor is None or not getattr(vendor, "id", None):
        raise MalformedRecordError("vendor record has no id")

    history = vendor_purchases(vendor.id, purchases)
    delivered = [p for p in history if p.is_delivered]
    active = [p for p in history if p.status != PurchaseStatus.CANCELLED]

    # Delivery
    derived_on_time = None
    if delivered:
        derived_on_time = sum(1 for p in delivered if p.delivered_on_time) / len(delivered) * 100

    # Quality: mean rating out of 5 scaled to 0-100
    derived_quality = None
    if delivered:
        ratings = [p.quality_rating for p in delivered if p.quality_rating is not None]
        derived_quality = mean(ratings, DEFAULTS["quality_rating"]) / 5 * 100

    lead_times = [p.resolved_lead_time for p in delivered if p.resolved_lead_time is not None]
    spend = sum(p.total for p in active) if active else None

    derived_defect_rate = None
    delivered_qty = sum(p.quantity for p in delivered)
    if delivered_qty > 0:
        defects = sum(p.defect_count + p.returned_count for p in delivered)
        derived_defect_rate = min(100.0, defects / delivered_qty * 100)

    total_purchases = _first(vendor.total_purchases, spend, DEFAULTS["total_purchases"])
    credit_limit = _first(vendor.credit_limit, DEFAULTS["credit_limit"])
    outstanding = _first(vendor.outstanding_balance, DEFAULTS["outstanding_balance"])

    if vendor.average_order_value is not None:
        average_order_value = vendor.average_order_value
    elif active:
        average_order_value = (spend or 0.0) / len(active)
    else:
        average_order_value = 0.0

    metrics = VendorMetrics(
        vendor_id=vendor.id,
        vendor_name=vendor.name,
        category=vendor.category,
        credit_limit=credit_limit,
        outstanding_balance=outstanding,
        credit_utilization=outstanding / credit_limit if credit_limit > 0 else 0.0,
        payment_terms_days=_first(vendor.payment_terms_days, DEFAULTS["payment_terms_days"]),
        total_purchases=total_purchases,
        average_order_value=average_order_value,
        on_time_delivery_rate=_first(
            vendor.on_time_delivery_rate, derived_on_time, DEFAULTS["on_time_delivery_rate"]
        ),
        quality_score=_first(vendor.quality_score, derived_quality, DEFAULTS["quality_score"]),
        defect_rate=_first(vendor.defect_rate, derived_defect_rate, DEFAULTS["defect_rate"]),
        response_time_hours=_first(vendor.response_time_hours, DEFAULTS["response_time_hours"]),
        avg_lead_time_days=mean(lead_times, DEFAULTS["lead_time_days"]),
        rating=vendor.rating,
        compliance_status=_first(vendor.compliance_status, DEFAULTS["compliance_status"]),
        certification_count=len(vendor.certifications or []),
        purchase_count=len(history),
        delivered_count=len(delivered),
        avg_payment_delay_days=mean(
            [p.payment_delay_days for p in delivered if p.payment_delay_days is not None],
            DEFAULTS["payment_delay_days"],
        ),
        avg_communication_rating=mean(
            [p.communication_rating for p in delivered if p.communication_rating is not None],
            DEFAULTS["communication_rating"],
        ),
        overdue_payments=sum(1 for p in history if p.payment_status == PaymentStatus.OVERDUE),
        pending_payments=sum(1 for p in history if p.payment_status == PaymentStatus.PENDING),
    )
    logger.debug(
        f"Normalized metrics for vendor {vendor.id}: {len(history)} purchases, "
        f"delivery={metrics.on_time_delivery_rate:.1f}%, quality={metrics.quality_score:.1f}"
    )
    return metrics


def line_matches_item(description: str, line_item_id: Optional[str], item: Item) -> bool:
    """A purchase line refers to ``item`` by id, or by name / code in its description."""
    if line_item_id is not None:
        return line_item_id == item.id
    text = (description or "").lower()
    if not text:
        return False
    name = item.item_name.lower().strip()
    code = item.item_code.lower().strip()
    return bool((name and name in text) or (code and code in text))


def item_observations(item: Item, purchases: Iterable[PurchaseRecord]) -> List[ItemObservation]:
    """Every (date, quantity, price) line of ``item`` across the purchase history, oldest first."""
    if item is None or not getattr(item, "id", None):
        raise MalformedRecordError("item record has no id")

    observations = []
    for p in purchases:
        if p.status == PurchaseStatus.CANCELLED:
            continue
        for li in p.items:
            if line_matches_item(li.description, li.item_id, item):
                observations.append(ItemObservation(
                    purchase_id=p.id,
                    vendor_id=p.vendor_id,
                    order_date=p.order_date,
                    status=p.status,
                    quantity=li.quantity,
                    unit_price=li.unit_price,
                ))
    observations.sort(key=lambda o: o.order_date)
    return observations
