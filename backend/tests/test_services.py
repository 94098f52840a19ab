"""Tests for the service catalogue."""

from bizbook.models.audit import AuditLogEntry
from bizbook.models.booking import Booking

from conftest import make_service


class TestServiceCRUD:
    def test_create_service(self, client, business, owner_headers):
        res = client.post(
            "/api/v1/services/",
            json={"name": " Beard Trim ", "duration": 20, "price": 15.5, "category": "grooming"},
            headers=owner_headers,
        )
        assert res.status_code == 201
        data = res.json()
        assert data["name"] == "Beard Trim"
        assert data["price"] == 15.5
        assert data["business_id"] == business.id
        assert data["is_active"] is True

    def test_negative_price_rejected(self, client, business, owner_headers):
        res = client.post(
            "/api/v1/services/",
            json={"name": "Bad", "duration": 20, "price": -1},
            headers=owner_headers,
        )
        assert res.status_code == 422
        assert "Price cannot be negative" in res.text

    def test_zero_duration_rejected(self, client, business, owner_headers):
        res = client.post(
            "/api/v1/services/",
            json={"name": "Bad", "duration": 0, "price": 10},
            headers=owner_headers,
        )
        assert res.status_code == 422
        assert "Duration must be greater than 0" in res.text

    def test_name_required(self, client, business, owner_headers):
        res = client.post("/api/v1/services/", json={"name": "   ", "duration": 10, "price": 1}, headers=owner_headers)
        assert res.status_code == 422

    def test_free_service_allowed(self, client, business, owner_headers):
        res = client.post("/api/v1/services/", json={"name": "Intro", "duration": 10, "price": 0}, headers=owner_headers)
        assert res.status_code == 201
        assert res.json()["price"] == 0.0

    def test_list_and_search(self, client, db_session, business, owner_headers):
        make_service(db_session, business, name="Haircut")
        make_service(db_session, business, name="Hair Color")
        make_service(db_session, business, name="Manicure")

        res = client.get("/api/v1/services/", headers=owner_headers)
        assert res.status_code == 200
        assert res.json()["total"] == 3

        res = client.get("/api/v1/services/?search=hair", headers=owner_headers)
        names = [s["name"] for s in res.json()["items"]]
        assert names == ["Hair Color", "Haircut"]

    def test_update_service(self, client, service, owner_headers):
        res = client.put(f"/api/v1/services/{service.id}", json={"price": 55, "duration": 60}, headers=owner_headers)
        assert res.status_code == 200
        assert res.json()["price"] == 55.0
        assert res.json()["duration"] == 60
        assert res.json()["name"] == "Haircut"

    def test_update_rejects_negative_price(self, client, service, owner_headers):
        res = client.put(f"/api/v1/services/{service.id}", json={"price": -5}, headers=owner_headers)
        assert res.status_code == 422

    def test_toggle_service(self, client, service, owner_headers):
        res = client.post(f"/api/v1/services/{service.id}/toggle", headers=owner_headers)
        assert res.json()["is_active"] is False
        res = client.post(f"/api/v1/services/{service.id}/toggle", headers=owner_headers)
        assert res.json()["is_active"] is True

    def test_toggle_service_is_audited(self, client, db_session, service, owner, owner_headers):
        client.post(f"/api/v1/services/{service.id}/toggle", headers=owner_headers)

        entry = (
            db_session.query(AuditLogEntry)
            .filter(AuditLogEntry.entity_type == "service", AuditLogEntry.entity_id == service.id)
            .one()
        )
        assert entry.action == "update"
        assert entry.details == {"is_active": False}
        assert entry.user_id == owner.id

    def test_delete_service(self, client, service, owner_headers):
        assert client.delete(f"/api/v1/services/{service.id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/v1/services/{service.id}", headers=owner_headers).status_code == 404

    def test_delete_service_with_bookings_refused(self, client, db_session, business, service, customer,
                                                  owner_headers, booking_start):
        db_session.add(Booking(
            business_id=business.id,
            customer_id=customer.id,
            service_id=service.id,
            start_time=booking_start,
            end_time=booking_start,
        ))
        db_session.commit()
        res = client.delete(f"/api/v1/services/{service.id}", headers=owner_headers)
        assert res.status_code == 409


class TestServicePermissions:
    def test_staff_can_list(self, client, service, staff_headers):
        res = client.get("/api/v1/services/", headers=staff_headers)
        assert res.status_code == 200
        assert res.json()["total"] == 1

    def test_staff_cannot_create(self, client, business, staff_headers):
        res = client.post("/api/v1/services/", json={"name": "X", "duration": 10, "price": 1}, headers=staff_headers)
        assert res.status_code == 403

    def test_staff_cannot_delete(self, client, service, staff_headers):
        assert client.delete(f"/api/v1/services/{service.id}", headers=staff_headers).status_code == 403
