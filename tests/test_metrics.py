"""
Unit tests for metrics normalization and shared helpers.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from conftest import make_purchase
from procurement_engine.engine.metrics import (
    DEFAULTS, normalize_vendor_metrics, item_observations, line_matches_item,
)
from procurement_engine.errors import MalformedRecordError
from procurement_engine.models.records import (
    VendorProfile, Item, ComplianceStatus, PurchaseStatus, PaymentStatus,
)
from procurement_engine.utils.helpers import (
    clamp, round_to, round_half_up, mean, month_key, shift_month, month_end, paginate_results,
)


class TestNormalizeVendorMetrics:
    def test_profile_values_pass_through(self, failing_vendor):
        m = normalize_vendor_metrics(failing_vendor)
        assert m.quality_score == 30
        assert m.on_time_delivery_rate == 35
        assert m.payment_terms_days == 60
        assert m.total_purchases == 150000
        assert m.credit_utilization == 1.0
        assert m.compliance_status == ComplianceStatus.NON_COMPLIANT

    def test_profile_wins_over_history(self, reliable_vendor):
        late = make_purchase("PO-X", "V-100", date(2025, 1, 1), on_time_delivery=False, quality_rating=1)
        m = normalize_vendor_metrics(reliable_vendor, [late])
        assert m.on_time_delivery_rate == 100
        assert m.quality_score == 100

    def test_missing_values_derived_from_history(self):
        vendor = VendorProfile(id="V-1")
        purchases = [
            make_purchase("PO-1", "V-1", date(2025, 1, 1), quantity=10, unit_price=50,
                          on_time_delivery=True, quality_rating=4, lead_time_days=6),
            make_purchase("PO-2", "V-1", date(2025, 2, 1), quantity=10, unit_price=50,
                          on_time_delivery=False, quality_rating=3, lead_time_days=10,
                          payment_status=PaymentStatus.OVERDUE),
            make_purchase("PO-3", "V-OTHER", date(2025, 2, 1), on_time_delivery=False),
        ]
        m = normalize_vendor_metrics(vendor, purchases)
        assert m.on_time_delivery_rate == 50
        assert m.quality_score == pytest.approx(70)
        assert m.total_purchases == 1000
        assert m.average_order_value == 500
        assert m.avg_lead_time_days == 8
        assert m.purchase_count == 2
        assert m.overdue_payments == 1

    def test_defaults_when_nothing_known(self):
        m = normalize_vendor_metrics(VendorProfile(id="V-EMPTY"))
        assert m.on_time_delivery_rate == DEFAULTS["on_time_delivery_rate"]
        assert m.quality_score == DEFAULTS["quality_score"]
        assert m.credit_limit == DEFAULTS["credit_limit"]
        assert m.payment_terms_days == DEFAULTS["payment_terms_days"]
        assert m.response_time_hours == DEFAULTS["response_time_hours"]
        assert m.compliance_status == ComplianceStatus.PENDING_REVIEW
        assert m.certification_count == 0

    def test_zero_is_a_value_not_missing(self):
        m = normalize_vendor_metrics(VendorProfile(id="V-0", on_time_delivery_rate=0, quality_score=0))
        assert m.on_time_delivery_rate == 0
        assert m.quality_score == 0

    def test_cancelled_orders_excluded_from_spend(self):
        vendor = VendorProfile(id="V-1")
        purchases = [
            make_purchase("PO-1", "V-1", date(2025, 1, 1), quantity=1, unit_price=100),
            make_purchase("PO-2", "V-1", date(2025, 1, 2), quantity=1, unit_price=900,
                          status=PurchaseStatus.CANCELLED),
        ]
        assert normalize_vendor_metrics(vendor, purchases).total_purchases == 100

    def test_missing_vendor_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            normalize_vendor_metrics(None)

    def test_empty_vendor_id_rejected(self):
        with pytest.raises(ValidationError):
            VendorProfile(id="")

    def test_rates_clamped(self):
        vendor = VendorProfile(id="V-1", on_time_delivery_rate=140, defect_rate=-3)
        assert vendor.on_time_delivery_rate == 100
        assert vendor.defect_rate == 0


class TestItemObservations:
    def test_matches_by_id_and_description(self, bolt_item):
        by_id = make_purchase("PO-1", "V-1", date(2025, 3, 1), item_id="ITM-001")
        by_name = make_purchase("PO-2", "V-1", date(2025, 2, 1), item_id=None)
        by_name.items[0].description = "Steel bolt m8 zinc plated"
        other = make_purchase("PO-3", "V-1", date(2025, 1, 1), item_id="ITM-999")
        obs = item_observations(bolt_item, [by_id, by_name, other])
        assert [o.purchase_id for o in obs] == ["PO-2", "PO-1"]

    def test_explicit_item_id_wins_over_description(self, bolt_item):
        assert line_matches_item("Steel Bolt M8", "ITM-999", bolt_item) is False
        assert line_matches_item("Order of BLT-M8", None, bolt_item) is True
        assert line_matches_item("", None, bolt_item) is False

    def test_missing_item_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            item_observations(None, [])


class TestHelpers:
    def test_clamp(self):
        assert clamp(-5) == 0
        assert clamp(150) == 100
        assert clamp(0.5, 0, 1) == 0.5

    def test_rounding_is_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(10.49) == 10
        assert round_to(12.5, 0) == 13
        assert round_to(-2.25, 1) == -2.3

    def test_mean(self):
        assert mean([]) is None
        assert mean([], 4.0) == 4.0
        assert mean([1, 2, 3]) == 2

    def test_month_arithmetic(self):
        assert month_key(date(2025, 3, 9)) == "2025-03"
        assert shift_month(date(2025, 1, 31), -1) == date(2024, 12, 1)
        assert shift_month(date(2025, 11, 2), 3) == date(2026, 2, 1)
        assert month_end(date(2024, 2, 10)) == date(2024, 2, 29)

    def test_paginate(self):
        page = paginate_results(list(range(120)), page=3, page_size=50)
        assert page["items"] == list(range(100, 120))
        assert page["total_pages"] == 3
