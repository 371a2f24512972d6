"""HTTP tests for the FastAPI routers."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from agenda.core.security import create_access_token
from agenda.database import get_session
from agenda.main import app
from conftest import make_calendar, make_user

EVERY_DAY = [{"day": d, "start": "09:00", "end": "17:00"} for d in range(7)]
BOOKING_DAY = (date.today() + timedelta(days=10)).isoformat()


@pytest.fixture
def client(file_engine) -> TestClient:
    def override_get_session():
        with Session(file_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(file_engine) -> dict:
    """Admin, regular user and two calendars (one requiring approval)."""
    with Session(file_engine) as session:
        admin = make_user(session, "admin@example.com", role="admin")
        member = make_user(session, "member@example.com")
        open_calendar = make_calendar(session, working_hours=EVERY_DAY, advance_booking_max=0)
        approval_calendar = make_calendar(
            session, title="Com aprovação", working_hours=EVERY_DAY, advance_booking_max=0, requires_approval=True
        )
        return {
            "admin": {"Authorization": f"Bearer {create_access_token({'sub': admin.email})}"},
            "member": {"Authorization": f"Bearer {create_access_token({'sub': member.email})}"},
            "calendar_id": open_calendar.id,
            "approval_calendar_id": approval_calendar.id,
        }


def _booking(calendar_id: int, **overrides) -> dict:
    payload = {
        "calendar_id": calendar_id,
        "appointment_date": BOOKING_DAY,
        "start_time": "10:00",
        "name": "Ana",
        "email": "ana@example.com",
        "cpf_rf": "529.982.247-25",
        "consent_given": True,
    }
    payload.update(overrides)
    return payload


class TestPublicRoutes:
    def test_root(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_login(self, client, seeded) -> None:
        response = client.post("/auth/login", data={"username": "admin@example.com", "password": "secret"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

        response = client.post("/auth/login", data={"username": "admin@example.com", "password": "wrong"})
        assert response.status_code == 401

    def test_slots(self, client, seeded) -> None:
        response = client.get(f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY})

        assert response.status_code == 200
        slots = response.json()["slots"]
        assert len(slots) == 16
        assert slots[0] == {"time": "09:00:00", "display": "09:00", "available": 1}

    def test_slots_unknown_calendar(self, client, seeded) -> None:
        response = client.get("/calendars/999/slots", params={"day": BOOKING_DAY})

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "invalid_calendar"

    def test_list_calendars(self, client, seeded) -> None:
        response = client.get("/calendars/")
        assert response.status_code == 200
        assert len(response.json()) == 2


class TestBookingFlow:
    def test_book_and_slot_disappears(self, client, seeded) -> None:
        response = client.post("/appointments/", json=_booking(seeded["calendar_id"]))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["requires_approval"] is False
        assert len(body["confirmation_token"]) == 64

        slots = client.get(f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY}).json()["slots"]
        assert "10:00:00" not in [s["time"] for s in slots]

    def test_second_booking_for_full_slot(self, client, seeded) -> None:
        client.post("/appointments/", json=_booking(seeded["calendar_id"]))
        response = client.post("/appointments/", json=_booking(seeded["calendar_id"], email="bia@example.com"))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "slot_full"

    @pytest.mark.parametrize("start", ["10:00:01", "10:15"])
    def test_off_grid_start_cannot_stack_on_full_slot(self, client, seeded, start) -> None:
        client.post("/appointments/", json=_booking(seeded["calendar_id"]))
        response = client.post(
            "/appointments/", json=_booking(seeded["calendar_id"], email="bia@example.com", start_time=start)
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_slot"

    def test_consent_required(self, client, seeded) -> None:
        response = client.post("/appointments/", json=_booking(seeded["calendar_id"], consent_given=False))

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "consent_required"

    def test_cancel_with_token(self, client, seeded) -> None:
        created = client.post("/appointments/", json=_booking(seeded["calendar_id"])).json()
        url = f"/appointments/{created['appointment_id']}/cancel"

        response = client.patch(url, json={"token": "nope"})
        assert response.status_code == 403

        response = client.patch(url, json={"token": created["confirmation_token"], "reason": "Imprevisto"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = client.patch(url, json={"token": created["confirmation_token"]})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "already_cancelled"

    def test_approval_flow(self, client, seeded) -> None:
        created = client.post("/appointments/", json=_booking(seeded["approval_calendar_id"])).json()
        assert created["requires_approval"] is True
        url = f"/appointments/{created['appointment_id']}/approve"

        assert client.patch(url, headers=seeded["member"]).status_code == 403
        response = client.patch(url, headers=seeded["admin"])
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        response = client.patch(url, headers=seeded["admin"])
        assert response.json()["detail"]["code"] == "invalid_status"

    def test_my_appointments(self, client, seeded) -> None:
        client.post("/appointments/", json=_booking(seeded["calendar_id"], email=""), headers=seeded["member"])

        response = client.get("/appointments/me", headers=seeded["member"])

        assert response.status_code == 200
        appointments = response.json()
        assert len(appointments) == 1
        assert appointments[0]["can_cancel"] is True

    def test_my_appointments_requires_login(self, client, seeded) -> None:
        response = client.get("/appointments/me")
        assert response.status_code == 401


class TestAdminRoutes:
    def test_create_calendar(self, client, seeded) -> None:
        payload = {"title": "Nova", "working_hours": {"mon": {"start": "09:00", "end": "12:00"}}}

        assert client.post("/calendars/", json=payload, headers=seeded["member"]).status_code == 403

        response = client.post("/calendars/", json=payload, headers=seeded["admin"])
        assert response.status_code == 201
        assert response.json()["working_hours"] == [{"day": 1, "start": "09:00", "end": "12:00"}]

    def test_archived_calendar_stops_booking(self, client, seeded) -> None:
        url = f"/calendars/{seeded['calendar_id']}/status"
        response = client.patch(url, json={"status": "archived"}, headers=seeded["admin"])
        assert response.status_code == 200

        response = client.get(f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY})
        assert response.json()["detail"]["code"] == "calendar_inactive"

        response = client.patch(url, json={"status": "deleted"}, headers=seeded["admin"])
        assert response.status_code == 400

    def test_update_working_hours(self, client, seeded) -> None:
        response = client.put(
            f"/calendars/{seeded['calendar_id']}/working-hours",
            json=[{"day": d, "start": "09:00", "end": "10:00"} for d in range(7)],
            headers=seeded["admin"],
        )
        assert response.status_code == 200

        slots = client.get(f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY}).json()["slots"]
        assert [s["display"] for s in slots] == ["09:00", "09:30"]

    def test_blocked_dates(self, client, seeded) -> None:
        payload = {"calendar_id": seeded["calendar_id"], "start_date": BOOKING_DAY, "reason": "Feriado"}

        response = client.post("/blocked-dates/", json=payload, headers=seeded["admin"])
        assert response.status_code == 201
        block_id = response.json()["id"]

        slots = client.get(f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY}).json()["slots"]
        assert slots == []

        # admin enxerga os horários mesmo com o bloqueio
        slots = client.get(
            f"/calendars/{seeded['calendar_id']}/slots", params={"day": BOOKING_DAY}, headers=seeded["admin"]
        ).json()["slots"]
        assert len(slots) == 16

        assert len(client.get("/blocked-dates/", headers=seeded["admin"]).json()) == 1
        assert client.delete(f"/blocked-dates/{block_id}", headers=seeded["admin"]).status_code == 200
        assert client.delete(f"/blocked-dates/{block_id}", headers=seeded["admin"]).status_code == 404
