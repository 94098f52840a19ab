"""Tests for business setup, profile, opening hours and the public business page."""

from bizbook.models.business import BookingSettings, BusinessHours
from bizbook.models.user import User

from conftest import headers_for, make_service, make_staff


def _setup_payload(**overrides):
    body = {
        "name": "Bloom & Co. Spa",
        "email": "hi@bloom.com",
        "phone": "+1 555 0199",
        "business_type": "spa",
    }
    body.update(overrides)
    return body


def _week(**changes):
    days = [
        {"day_of_week": day, "open_time": "08:00", "close_time": "18:00", "is_closed": False}
        for day in range(7)
    ]
    for day, entry in changes.items():
        days[int(day[1:])].update(entry)
    return {"hours": days}


class TestCreateBusiness:
    def test_setup_creates_business_settings_and_hours(self, client, db_session, owner):
        res = client.post("/api/v1/businesses/", json=_setup_payload(), headers=headers_for(owner))
        assert res.status_code == 201
        data = res.json()
        assert data["slug"] == "bloom-co-spa"
        assert data["business_type"] == "spa"
        assert data["timezone"] == "UTC"

        db_session.expire_all()
        assert db_session.get(User, owner.id).business_id == data["id"]

        settings = db_session.query(BookingSettings).filter(BookingSettings.business_id == data["id"]).one()
        assert settings.min_lead_time_hours == 2
        assert settings.max_lead_time_days == 90
        assert settings.cancellation_hours == 24

        hours = (
            db_session.query(BusinessHours)
            .filter(BusinessHours.business_id == data["id"])
            .order_by(BusinessHours.day_of_week)
            .all()
        )
        assert [h.day_of_week for h in hours] == list(range(7))
        assert [h.day_of_week for h in hours if h.is_closed] == [0, 6]
        assert all(h.open_time == "09:00" and h.close_time == "17:00" for h in hours)

    def test_explicit_slug_is_normalized(self, client, owner):
        res = client.post("/api/v1/businesses/", json=_setup_payload(slug="My Spa!"), headers=headers_for(owner))
        assert res.status_code == 201
        assert res.json()["slug"] == "my-spa"

    def test_slug_taken(self, client, db_session, owner, other_business):
        res = client.post("/api/v1/businesses/", json=_setup_payload(name="Iron Gym"), headers=headers_for(owner))
        assert res.status_code == 409
        assert res.json()["detail"] == "This business name is already taken. Please choose a different name."
        db_session.expire_all()
        assert db_session.get(User, owner.id).business_id is None

    def test_second_business_refused(self, client, business, owner_headers):
        res = client.post("/api/v1/businesses/", json=_setup_payload(), headers=owner_headers)
        assert res.status_code == 409

    def test_staff_cannot_set_up_business(self, client, staff_headers):
        res = client.post("/api/v1/businesses/", json=_setup_payload(), headers=staff_headers)
        assert res.status_code == 403

    def test_owner_without_business_is_sent_to_setup(self, client, owner):
        res = client.get("/api/v1/services/", headers=headers_for(owner))
        assert res.status_code == 400
        assert res.json()["detail"] == "Complete your business setup first"

    def test_new_business_usable_with_existing_token(self, client, owner):
        headers = headers_for(owner)
        client.post("/api/v1/businesses/", json=_setup_payload(), headers=headers)
        res = client.get("/api/v1/businesses/me", headers=headers)
        assert res.status_code == 200
        assert res.json()["name"] == "Bloom & Co. Spa"


class TestMyBusiness:
    def test_get_my_business(self, client, business, owner_headers):
        res = client.get("/api/v1/businesses/me", headers=owner_headers)
        assert res.status_code == 200
        assert res.json()["slug"] == "glow-salon"

    def test_update_my_business(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/businesses/me",
            json={"name": "Glow Studio", "timezone": "Europe/Sofia", "description": "Cuts <b>& color</b>"},
            headers=owner_headers,
        )
        assert res.status_code == 200
        data = res.json()
        assert data["name"] == "Glow Studio"
        assert data["timezone"] == "Europe/Sofia"
        assert "<b>" not in data["description"]
        assert data["slug"] == "glow-salon"

    def test_staff_cannot_update_business(self, client, staff_headers):
        res = client.put("/api/v1/businesses/me", json={"name": "Mine now"}, headers=staff_headers)
        assert res.status_code == 403


class TestBusinessHours:
    def test_list_hours(self, client, business, owner_headers):
        res = client.get("/api/v1/businesses/me/hours", headers=owner_headers)
        assert res.status_code == 200
        assert len(res.json()) == 7

    def test_replace_hours(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/businesses/me/hours",
            json=_week(d0={"is_closed": True}, d3={"open_time": "12:00", "close_time": "20:00"}),
            headers=owner_headers,
        )
        assert res.status_code == 200
        hours = {h["day_of_week"]: h for h in res.json()}
        assert hours[0]["is_closed"] is True
        assert hours[3]["open_time"] == "12:00"
        assert hours[6]["is_closed"] is False

    def test_open_must_precede_close(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/businesses/me/hours",
            json=_week(d2={"open_time": "18:00", "close_time": "09:00"}),
            headers=owner_headers,
        )
        assert res.status_code == 422

    def test_closed_day_skips_order_check(self, client, business, owner_headers):
        res = client.put(
            "/api/v1/businesses/me/hours",
            json=_week(d2={"open_time": "18:00", "close_time": "09:00", "is_closed": True}),
            headers=owner_headers,
        )
        assert res.status_code == 200

    def test_all_seven_days_required(self, client, business, owner_headers):
        body = _week()
        body["hours"] = body["hours"][:6]
        res = client.put("/api/v1/businesses/me/hours", json=body, headers=owner_headers)
        assert res.status_code == 422

    def test_staff_cannot_replace_hours(self, client, staff_headers):
        res = client.put("/api/v1/businesses/me/hours", json=_week(), headers=staff_headers)
        assert res.status_code == 403


class TestPublicProfile:
    def test_public_profile_shows_active_catalogue(self, client, db_session, business):
        make_service(db_session, business, name="Haircut")
        make_service(db_session, business, name="Retired Perm", is_active=False)
        active = make_staff(db_session, business, email="a@glow.com", first_name="Ada")
        inactive = make_staff(db_session, business, email="b@glow.com", first_name="Bea")
        inactive.is_active = False
        db_session.commit()

        res = client.get("/api/v1/public/businesses/glow-salon")
        assert res.status_code == 200
        data = res.json()
        assert data["business"]["name"] == "Glow Salon"
        assert [s["name"] for s in data["services"]] == ["Haircut"]
        assert [m["id"] for m in data["staff"]] == [active.id]
        assert len(data["hours"]) == 7
        assert data["booking_settings"]["min_lead_time_hours"] == 2

    def test_public_profile_hides_other_tenants_catalogue(self, client, db_session, business, other_business):
        make_service(db_session, other_business, name="Deadlift Coaching")
        res = client.get("/api/v1/public/businesses/glow-salon")
        assert all(s["name"] != "Deadlift Coaching" for s in res.json()["services"])

    def test_unknown_slug(self, client):
        assert client.get("/api/v1/public/businesses/missing").status_code == 404

    def test_public_profile_exposes_no_emails_of_staff(self, client, db_session, business):
        make_staff(db_session, business)
        member = client.get("/api/v1/public/businesses/glow-salon").json()["staff"][0]
        assert "email" not in member

    def test_signed_in_owner_of_other_business_can_view(self, client, business, other_headers):
        res = client.get("/api/v1/public/businesses/glow-salon", headers=other_headers)
        assert res.status_code == 200
