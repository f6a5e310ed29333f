"""
Pytest configuration and shared fixtures.
"""

from datetime import date

import pytest

from procurement_engine.models.records import (
    VendorProfile, PurchaseRecord, LineItem, Item, VendorItem,
    ComplianceStatus, PurchaseStatus, PaymentStatus,
)
from procurement_engine.storage import StorageSnapshot, SnapshotStore


AS_OF = date(2025, 6, 20)


def make_purchase(
    purchase_id: str,
    vendor_id: str,
    order_date: date,
    quantity: float = 10,
    unit_price: float = 100.0,
    item_id: str = "ITM-001",
    status: PurchaseStatus = PurchaseStatus.DELIVERED,
    **outcomes,
) -> PurchaseRecord:
    return PurchaseRecord(
        id=purchase_id,
        vendor_id=vendor_id,
        order_date=order_date,
        status=status,
        items=[LineItem(description="line", item_id=item_id, quantity=quantity, unit_price=unit_price)],
        **outcomes,
    )


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def reliable_vendor():
    return VendorProfile(
        id="V-100",
        name="Acme Components",
        category="Electronics",
        quality_score=100,
        on_time_delivery_rate=100,
        compliance_status=ComplianceStatus.COMPLIANT,
        certifications=["ISO 9001", "ISO 14001", "ISO 45001"],
        outstanding_balance=0,
    )


@pytest.fixture
def failing_vendor():
    return VendorProfile(
        id="V-200",
        name="Shaky Supplies",
        category="Raw Materials",
        quality_score=30,
        on_time_delivery_rate=35,
        compliance_status=ComplianceStatus.NON_COMPLIANT,
        certifications=[],
        credit_limit=50000,
        outstanding_balance=50000,
        payment_terms_days=60,
        total_purchases=150000,
    )


@pytest.fixture
def bolt_item():
    return Item(
        id="ITM-001",
        item_code="BLT-M8",
        item_name="Steel Bolt M8",
        category="Hardware",
        default_price=100.0,
        current_stock=20,
    )


@pytest.fixture
def step_demand_purchases():
    """10 units/month January-March, then 15 units/month April-June 2025."""
    purchases = []
    for month, qty in [(1, 10), (2, 10), (3, 10), (4, 15), (5, 15), (6, 15)]:
        purchases.append(make_purchase(f"PO-{month:02d}", "V-100", date(2025, month, 10), quantity=qty))
    return purchases


@pytest.fixture
def snapshot(reliable_vendor, failing_vendor, bolt_item):
    purchases = [
        make_purchase("PO-1", "V-100", date(2025, 2, 5), quantity=30, unit_price=98.0,
                      on_time_delivery=True, quality_rating=5, payment_status=PaymentStatus.PAID),
        make_purchase("PO-2", "V-100", date(2025, 5, 5), quantity=30, unit_price=100.0,
                      on_time_delivery=True, quality_rating=5, payment_status=PaymentStatus.PAID),
        make_purchase("PO-3", "V-200", date(2025, 3, 12), quantity=40, unit_price=120.0,
                      on_time_delivery=False, quality_rating=2, payment_status=PaymentStatus.OVERDUE),
        make_purchase("PO-4", "V-200", date(2025, 6, 1), quantity=40, unit_price=125.0,
                      on_time_delivery=False, quality_rating=2, payment_status=PaymentStatus.OVERDUE),
    ]
    orphan = Item(id="ITM-002", item_code="GSK-01", item_name="Rubber Gasket", current_stock=None)
    return StorageSnapshot(
        vendors=[reliable_vendor, failing_vendor],
        purchases=purchases,
        items=[bolt_item, orphan],
        vendor_items=[
            VendorItem(vendor_id="V-100", item_id="ITM-001", vendor_name="Acme Components",
                       unit_price=99.0, lead_time_days=5, is_preferred=True),
            VendorItem(vendor_id="V-200", item_id="ITM-001", vendor_name="Shaky Supplies",
                       unit_price=118.0, lead_time_days=20),
        ],
    )


@pytest.fixture
def store(snapshot):
    """Install a snapshot-backed store for the duration of a test."""
    installed = SnapshotStore(snapshot)
    SnapshotStore.install(installed)
    yield installed
    SnapshotStore.install(None)
