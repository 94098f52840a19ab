"""Tests for the dashboard and the monthly analytics summary."""

from datetime import datetime
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from bizbook.core.rbac import Principal
from bizbook.db.base import utcnow
from bizbook.models.booking import Booking, BookingStatus, Payment, PaymentStatus
from bizbook.services.analytics_service import AnalyticsService, month_start

from conftest import make_customer, make_service


def add_booking(db, business, customer, service, start, status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING):
    booking = Booking(
        business_id=business.id,
        customer_id=customer.id,
        service_id=service.id,
        start_time=start,
        end_time=start + relativedelta(minutes=service.duration),
        status=status.value,
    )
    db.add(booking)
    db.flush()
    db.add(Payment(booking_id=booking.id, amount=Decimal(service.price), status=payment_status.value))
    db.commit()
    return booking


@pytest.fixture
def principal(owner, business):
    return Principal(user_id=owner.id, email=owner.email, role=owner.role, business_id=business.id)


class TestMonthStart:
    def test_month_start(self):
        assert month_start(datetime(2030, 5, 20, 13, 45, 10)) == datetime(2030, 5, 1)


class TestDashboard:
    def test_dashboard_via_api(self, client, db_session, business, service, customer, owner_headers):
        now = utcnow().replace(microsecond=0)
        add_booking(db_session, business, customer, service, now, BookingStatus.CONFIRMED, PaymentStatus.PAID)
        add_booking(db_session, business, customer, service, now, BookingStatus.COMPLETED, PaymentStatus.PAID)
        add_booking(db_session, business, customer, service, now)

        res = client.get("/api/v1/analytics/dashboard", headers=owner_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["total_bookings"] == 3
        assert data["confirmed_bookings"] == 1
        assert data["completed_bookings"] == 1
        assert data["pending_bookings"] == 1
        assert data["total_revenue"] == 80.0
        assert data["total_customers"] == 1
        assert len(data["recent_bookings"]) == 3
        assert data["recent_bookings"][0]["customer_name"] == "Jane Doe"

    def test_dashboard_counts_current_month_only(self, db_session, principal, business, service, customer):
        now = datetime(2030, 5, 20, 12, 0)
        add_booking(db_session, business, customer, service, datetime(2030, 5, 2, 9, 0),
                    payment_status=PaymentStatus.PAID)
        add_booking(db_session, business, customer, service, datetime(2030, 4, 30, 23, 30),
                    payment_status=PaymentStatus.PAID)
        add_booking(db_session, business, customer, service, datetime(2030, 6, 1, 0, 0))

        data = AnalyticsService(db_session, principal).dashboard(now=now)
        assert data["month"] == "2030-05"
        assert data["total_bookings"] == 1
        assert data["total_revenue"] == 40.0

    def test_recent_bookings_limited_to_five(self, db_session, principal, business, service, customer):
        for day in range(1, 8):
            add_booking(db_session, business, customer, service, datetime(2030, 5, day, 10, 0))
        data = AnalyticsService(db_session, principal).dashboard(now=datetime(2030, 5, 20))
        assert len(data["recent_bookings"]) == 5

    def test_refunded_payments_are_not_revenue(self, db_session, principal, business, service, customer):
        add_booking(db_session, business, customer, service, datetime(2030, 5, 2, 9, 0),
                    payment_status=PaymentStatus.REFUNDED)
        data = AnalyticsService(db_session, principal).dashboard(now=datetime(2030, 5, 20))
        assert data["total_revenue"] == 0.0


class TestSummary:
    def test_monthly_series_oldest_first(self, db_session, principal, business, service, customer):
        color = make_service(db_session, business, name="Color", price="60.00")
        add_booking(db_session, business, customer, service, datetime(2030, 3, 15, 10, 0),
                    payment_status=PaymentStatus.PAID)
        add_booking(db_session, business, customer, color, datetime(2030, 5, 2, 10, 0),
                    payment_status=PaymentStatus.PAID)
        add_booking(db_session, business, customer, color, datetime(2030, 5, 3, 10, 0))

        data = AnalyticsService(db_session, principal).summary(months=3, now=datetime(2030, 5, 20))
        assert [m["month"] for m in data["monthly"]] == ["2030-03", "2030-04", "2030-05"]
        assert [m["label"] for m in data["monthly"]] == ["Mar", "Apr", "May"]
        assert [m["bookings"] for m in data["monthly"]] == [1, 0, 2]
        assert [m["revenue"] for m in data["monthly"]] == [40.0, 0.0, 60.0]
        assert data["total_revenue"] == 100.0
        assert data["total_bookings"] == 3
        assert data["average_booking_value"] == 33.33
        assert data["total_customers"] == 1

    def test_series_crosses_year_boundary(self, db_session, principal):
        data = AnalyticsService(db_session, principal).summary(months=3, now=datetime(2031, 1, 10))
        assert [m["month"] for m in data["monthly"]] == ["2030-11", "2030-12", "2031-01"]

    def test_no_bookings_average_is_zero(self, db_session, principal):
        data = AnalyticsService(db_session, principal).summary(now=datetime(2030, 5, 20))
        assert len(data["monthly"]) == 6
        assert data["average_booking_value"] == 0.0
        assert data["total_revenue"] == 0.0

    def test_other_business_excluded(self, db_session, principal, other_business):
        stranger = make_customer(db_session, other_business, email="s@gym.com")
        spin = make_service(db_session, other_business, name="Spinning")
        add_booking(db_session, other_business, stranger, spin, datetime(2030, 5, 2, 10, 0),
                    payment_status=PaymentStatus.PAID)
        data = AnalyticsService(db_session, principal).summary(now=datetime(2030, 5, 20))
        assert data["total_bookings"] == 0
        assert data["total_revenue"] == 0.0

    def test_summary_api(self, client, business, owner_headers):
        res = client.get("/api/v1/analytics/summary?months=12", headers=owner_headers)
        assert res.status_code == 200
        assert len(res.json()["monthly"]) == 12

    def test_summary_months_bounds(self, client, business, owner_headers):
        assert client.get("/api/v1/analytics/summary?months=0", headers=owner_headers).status_code == 422
        assert client.get("/api/v1/analytics/summary?months=25", headers=owner_headers).status_code == 422
