"""Tests for booking settings and notification preferences."""

from bizbook.models.business import BookingSettings


class TestBookingSettings:
    def test_defaults(self, client, business, owner_headers):
        res = client.get("/api/v1/settings/booking", headers=owner_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["min_lead_time_hours"] == 2
        assert data["max_lead_time_days"] == 90
        assert data["cancellation_hours"] == 24
        assert data["buffer_time_minutes"] == 0
        assert data["deposit_percentage"] == 0
        assert data["require_payment"] is False
        assert data["email_notifications"] is True

    def test_defaults_when_row_missing(self, client, db_session, business, owner_headers):
        db_session.query(BookingSettings).delete()
        db_session.commit()
        res = client.get("/api/v1/settings/booking", headers=owner_headers)
        assert res.status_code == 200
        assert res.json()["min_lead_time_hours"] == 2
        assert res.json()["business_id"] == business.id

    def test_update(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/settings/booking",
            json={"min_lead_time_hours": 4, "deposit_percentage": 25, "require_payment": True},
            headers=owner_headers,
        )
        assert res.status_code == 200
        data = res.json()
        assert data["min_lead_time_hours"] == 4
        assert data["deposit_percentage"] == 25
        assert data["require_payment"] is True
        assert data["max_lead_time_days"] == 90

    def test_upsert_creates_missing_row(self, client, db_session, business, owner_headers):
        db_session.query(BookingSettings).delete()
        db_session.commit()
        res = client.put("/api/v1/settings/booking", json={"cancellation_hours": 48}, headers=owner_headers)
        assert res.status_code == 200
        assert db_session.query(BookingSettings).filter(BookingSettings.business_id == business.id).count() == 1
        assert res.json()["cancellation_hours"] == 48

    def test_negative_values_rejected(self, client, business, owner_headers):
        res = client.put("/api/v1/settings/booking", json={"buffer_time_minutes": -5}, headers=owner_headers)
        assert res.status_code == 422

    def test_deposit_over_100_rejected(self, client, business, owner_headers):
        res = client.put("/api/v1/settings/booking", json={"deposit_percentage": 101}, headers=owner_headers)
        assert res.status_code == 422

    def test_staff_read_only(self, client, staff_headers):
        assert client.get("/api/v1/settings/booking", headers=staff_headers).status_code == 200
        res = client.put("/api/v1/settings/booking", json={"min_lead_time_hours": 1}, headers=staff_headers)
        assert res.status_code == 403


class TestNotificationPreferences:
    def test_update_preferences(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/settings/notifications",
            json={"booking_reminders": False},
            headers=owner_headers,
        )
        assert res.status_code == 200
        data = res.json()
        assert data["booking_reminders"] is False
        assert data["email_notifications"] is True
        assert data["payment_confirmations"] is True

    def test_preferences_do_not_touch_booking_rules(self, client, business, owner_headers):
        client.put("/api/v1/settings/booking", json={"buffer_time_minutes": 10}, headers=owner_headers)
        res = client.put("/api/v1/settings/notifications", json={"email_notifications": False},
                         headers=owner_headers)
        assert res.json()["buffer_time_minutes"] == 10
