"""Tests for staff management, invites, weekly schedules and time off."""

from datetime import datetime, timedelta

from bizbook.core.config import settings
from bizbook.db.base import utcnow
from bizbook.models.booking import Booking
from bizbook.models.staff import Staff
from bizbook.models.user import User

from conftest import headers_for, make_service, make_staff


def _week(*days, start="09:00", end="17:00"):
    return {"days": [{"day_of_week": d, "start_time": start, "end_time": end} for d in days]}


class TestInvites:
    def test_create_invite(self, client, business, owner_headers):
        res = client.post("/api/v1/staff/invites", json={"email": "New.Hire@Example.com"}, headers=owner_headers)
        assert res.status_code == 201
        data = res.json()
        assert data["email"] == "new.hire@example.com"
        assert data["used"] is False
        assert data["invite_link"] == f"{settings.frontend_base_url}/register?token={data['token']}"
        assert len(data["token"]) >= 32

    def test_invite_expires_in_seven_days(self, client, business, owner_headers):
        res = client.post("/api/v1/staff/invites", json={"email": "a@example.com"}, headers=owner_headers)
        expires = datetime.fromisoformat(res.json()["expires_at"])
        delta = expires - utcnow()
        assert timedelta(days=6, hours=23) < delta <= timedelta(days=7)

    def test_invite_for_existing_account_refused(self, client, business, owner, owner_headers):
        res = client.post("/api/v1/staff/invites", json={"email": owner.email}, headers=owner_headers)
        assert res.status_code == 409

    def test_list_and_revoke(self, client, business, owner_headers):
        created = client.post("/api/v1/staff/invites", json={"email": "a@example.com"}, headers=owner_headers).json()
        assert [i["id"] for i in client.get("/api/v1/staff/invites", headers=owner_headers).json()] == [created["id"]]

        assert client.delete(f"/api/v1/staff/invites/{created['id']}", headers=owner_headers).status_code == 200
        assert client.get("/api/v1/staff/invites", headers=owner_headers).json() == []
        assert client.get(f"/api/v1/auth/invites/{created['token']}").status_code == 404

    def test_staff_cannot_invite(self, client, staff_headers):
        res = client.post("/api/v1/staff/invites", json={"email": "a@example.com"}, headers=staff_headers)
        assert res.status_code == 403

    def test_other_owner_cannot_revoke(self, client, business, owner_headers, other_headers):
        created = client.post("/api/v1/staff/invites", json={"email": "a@example.com"}, headers=owner_headers).json()
        assert client.delete(f"/api/v1/staff/invites/{created['id']}", headers=other_headers).status_code == 404


class TestStaffMembers:
    def test_list_staff_with_services(self, client, db_session, business, service, staff_member, owner_headers):
        staff_member.service_ids = [service.id]
        db_session.commit()

        res = client.get("/api/v1/staff/", headers=owner_headers)
        assert res.status_code == 200
        member = res.json()[0]
        assert member["email"] == "staff@example.com"
        assert member["first_name"] == "Sam"
        assert member["services"] == [{"id": service.id, "name": "Haircut"}]

    def test_search(self, client, db_session, business, owner_headers):
        make_staff(db_session, business, email="ada@glow.com", first_name="Ada", last_name="Lovelace")
        make_staff(db_session, business, email="bea@glow.com", first_name="Bea", last_name="Arthur")
        res = client.get("/api/v1/staff/?search=love", headers=owner_headers)
        assert [m["first_name"] for m in res.json()] == ["Ada"]

    def test_update_writes_names_through(self, client, db_session, service, staff_member, owner_headers):
        res = client.put(
            f"/api/v1/staff/{staff_member.id}",
            json={"first_name": "Samantha", "bio": "Color specialist", "service_ids": [service.id, service.id]},
            headers=owner_headers,
        )
        assert res.status_code == 200
        data = res.json()
        assert data["first_name"] == "Samantha"
        assert data["bio"] == "Color specialist"
        assert data["service_ids"] == [service.id]

        db_session.expire_all()
        assert db_session.get(User, staff_member.user_id).first_name == "Samantha"

    def test_service_ids_must_belong_to_business(self, client, db_session, staff_member, other_business,
                                                 owner_headers):
        foreign = make_service(db_session, other_business, name="Spinning")
        res = client.put(f"/api/v1/staff/{staff_member.id}", json={"service_ids": [foreign.id]},
                         headers=owner_headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Assigned services must belong to your business"

    def test_staff_edit_own_profile(self, client, staff_member, staff_headers):
        res = client.put(f"/api/v1/staff/{staff_member.id}", json={"bio": "Hi!"}, headers=staff_headers)
        assert res.status_code == 200
        assert res.json()["bio"] == "Hi!"

    def test_staff_cannot_edit_colleague(self, client, db_session, business, staff_member, staff_headers):
        colleague = make_staff(db_session, business, email="colleague@glow.com")
        res = client.put(f"/api/v1/staff/{colleague.id}", json={"bio": "Hacked"}, headers=staff_headers)
        assert res.status_code == 404

    def test_toggle(self, client, staff_member, owner_headers):
        res = client.post(f"/api/v1/staff/{staff_member.id}/toggle", headers=owner_headers)
        assert res.json()["is_active"] is False

    def test_delete_detaches_account_and_keeps_bookings(self, client, db_session, business, service, customer,
                                                        staff_member, owner_headers, booking_start):
        booking = client.post(
            "/api/v1/bookings/",
            json={
                "customer_id": customer.id,
                "service_id": service.id,
                "staff_id": staff_member.id,
                "start_time": booking_start.isoformat(),
            },
            headers=owner_headers,
        ).json()
        user_headers = headers_for(staff_member.user)
        staff_id, user_id = staff_member.id, staff_member.user_id

        assert client.delete(f"/api/v1/staff/{staff_id}", headers=owner_headers).status_code == 200

        db_session.expire_all()
        assert db_session.get(Staff, staff_id) is None
        assert db_session.get(User, user_id).business_id is None
        assert db_session.get(Booking, booking["id"]).staff_id is None
        assert client.get("/api/v1/bookings/", headers=user_headers).status_code == 400

    def test_other_tenant_cannot_see_staff(self, client, staff_member, other_headers):
        assert client.get(f"/api/v1/staff/{staff_member.id}", headers=other_headers).status_code == 404
        assert client.get("/api/v1/staff/", headers=other_headers).json() == []


class TestSchedules:
    def test_owner_replaces_schedule(self, client, staff_member, owner_headers):
        res = client.put(f"/api/v1/staff/{staff_member.id}/schedule", json=_week(1, 2, 3), headers=owner_headers)
        assert res.status_code == 200
        assert [d["day_of_week"] for d in res.json()] == [1, 2, 3]

        res = client.put(f"/api/v1/staff/{staff_member.id}/schedule", json=_week(2, 5, start="10:00"),
                         headers=owner_headers)
        assert [d["day_of_week"] for d in res.json()] == [2, 5]
        assert all(d["start_time"] == "10:00" for d in res.json())

    def test_staff_replaces_own_schedule(self, client, staff_member, staff_headers):
        res = client.put(f"/api/v1/staff/{staff_member.id}/schedule", json=_week(4), headers=staff_headers)
        assert res.status_code == 200
        got = client.get(f"/api/v1/staff/{staff_member.id}/schedule", headers=staff_headers).json()
        assert [d["day_of_week"] for d in got] == [4]

    def test_staff_cannot_edit_colleague_schedule(self, client, db_session, business, staff_headers):
        colleague = make_staff(db_session, business, email="colleague@glow.com")
        res = client.put(f"/api/v1/staff/{colleague.id}/schedule", json=_week(1), headers=staff_headers)
        assert res.status_code == 403

    def test_duplicate_days_rejected(self, client, staff_member, owner_headers):
        res = client.put(f"/api/v1/staff/{staff_member.id}/schedule", json=_week(1, 1), headers=owner_headers)
        assert res.status_code == 422

    def test_start_before_end(self, client, staff_member, owner_headers):
        res = client.put(f"/api/v1/staff/{staff_member.id}/schedule", json=_week(1, start="18:00", end="08:00"),
                         headers=owner_headers)
        assert res.status_code == 422


class TestTimeOff:
    def _request(self, client, headers, **extra):
        start = utcnow().replace(microsecond=0) + timedelta(days=10)
        body = {
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=2)).isoformat(),
            "reason": "Vacation",
        }
        body.update(extra)
        return client.post("/api/v1/time-offs/", json=body, headers=headers)

    def test_staff_requests_own_time_off(self, client, staff_member, staff_headers):
        res = self._request(client, staff_headers)
        assert res.status_code == 201
        data = res.json()
        assert data["staff_id"] == staff_member.id
        assert data["status"] == "pending"
        assert data["staff_name"] == "Sam Stylist"

    def test_end_must_follow_start(self, client, staff_member, staff_headers):
        start = utcnow() + timedelta(days=3)
        res = self._request(client, staff_headers, start_date=start.isoformat(),
                            end_date=(start - timedelta(days=1)).isoformat())
        assert res.status_code == 422
        assert "End date must be after start date" in res.text

    def test_owner_approves(self, client, staff_member, staff_headers, owner_headers):
        time_off = self._request(client, staff_headers).json()
        res = client.patch(f"/api/v1/time-offs/{time_off['id']}/status", json={"status": "approved"},
                           headers=owner_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "approved"

        listed = client.get("/api/v1/time-offs/?status=approved", headers=staff_headers).json()
        assert [t["id"] for t in listed] == [time_off["id"]]

    def test_staff_cannot_approve(self, client, staff_member, staff_headers):
        time_off = self._request(client, staff_headers).json()
        res = client.patch(f"/api/v1/time-offs/{time_off['id']}/status", json={"status": "approved"},
                           headers=staff_headers)
        assert res.status_code == 403

    def test_owner_files_for_staff_member(self, client, staff_member, owner_headers):
        res = self._request(client, owner_headers, staff_id=staff_member.id)
        assert res.status_code == 201
        assert res.json()["staff_id"] == staff_member.id

    def test_owner_without_staff_id(self, client, business, owner_headers):
        assert self._request(client, owner_headers).status_code == 400

    def test_staff_cannot_file_for_colleague(self, client, db_session, business, staff_member, staff_headers):
        colleague = make_staff(db_session, business, email="colleague@glow.com")
        res = self._request(client, staff_headers, staff_id=colleague.id)
        assert res.status_code == 403

    def test_owner_deletes(self, client, staff_member, staff_headers, owner_headers):
        time_off = self._request(client, staff_headers).json()
        assert client.delete(f"/api/v1/time-offs/{time_off['id']}", headers=owner_headers).status_code == 200
        assert client.get("/api/v1/time-offs/", headers=owner_headers).json() == []

    def test_other_tenant_sees_nothing(self, client, staff_member, staff_headers, other_headers):
        self._request(client, staff_headers)
        assert client.get("/api/v1/time-offs/", headers=other_headers).json() == []
