from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.errors import register_error_handlers
from app.api.routes import courts, misc, payments, reservations
from app.core.clock import FixedClock, get_clock
from app.db import models
from app.db.session import Base, get_db

from conftest import NOW, add_reservation, at, create_court


@pytest.fixture()
def api_client():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    clock = FixedClock(NOW)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    test_app = FastAPI()
    register_error_handlers(test_app)
    for module in (courts, reservations, payments, misc):
        test_app.include_router(module.router, prefix="/api/v1")

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(test_app) as client:
        yield client, TestingSessionLocal

    test_app.dependency_overrides.clear()


@pytest.fixture()
def court_id(api_client):
    _, SessionLocal = api_client
    with SessionLocal() as db:
        return create_court(db, hourly_rate=Decimal("30.00")).id


def book(client, court_id, start, end, **extra):
    payload = {"court_id": court_id, "requester_id": 5, "start_time": start, "end_time": end}
    payload.update(extra)
    return client.post("/api/v1/reservations", json=payload)


def test_health(api_client):
    client, _ = api_client
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_create_reservation_returns_payment_signal(api_client, court_id):
    client, _ = api_client

    response = book(client, court_id, "2024-06-03T10:00:00Z", "2024-06-03T11:30:00Z")

    assert response.status_code == 201
    body = response.json()
    assert body["payment_required"] is True
    assert body["payment_amount"] == 45.0
    reservation = body["reservation"]
    assert reservation["status"] == "pending"
    assert reservation["duration_hours"] == 1.5
    assert reservation["final_amount"] == 45.0
    assert reservation["booking_source"] == "web"


def test_booking_details_round_trip(api_client, court_id):
    client, _ = api_client

    response = book(
        client,
        court_id,
        "2024-06-03T10:00:00Z",
        "2024-06-03T11:00:00Z",
        purpose="coaching",
        match_type="lesson",
        participants=[5, 6],
        special_requests="ball machine",
        equipment_needed=["ball machine"],
    )

    assert response.status_code == 201
    reservation = response.json()["reservation"]
    assert reservation["purpose"] == "coaching"
    assert reservation["match_type"] == "lesson"
    assert reservation["participants"] == [5, 6]
    assert reservation["guest_count"] == 0
    assert reservation["special_requests"] == "ball machine"
    assert reservation["equipment_needed"] == ["ball machine"]


def test_unknown_match_type_is_422(api_client, court_id):
    client, _ = api_client
    response = book(
        client, court_id, "2024-06-03T10:00:00Z", "2024-06-03T11:00:00Z", match_type="squash"
    )
    assert response.status_code == 422


def test_fully_discounted_booking_needs_no_payment(api_client, court_id):
    client, _ = api_client

    response = book(
        client, court_id, "2024-06-03T10:00:00Z", "2024-06-03T11:00:00Z", member_discount="30"
    )

    assert response.status_code == 201
    assert response.json()["payment_required"] is False
    assert response.json()["payment_amount"] == 0.0


def test_overlapping_request_is_rejected_with_rule(api_client, court_id):
    client, _ = api_client
    first = book(client, court_id, "2024-06-03T10:00:00Z", "2024-06-03T12:00:00Z")

    response = book(client, court_id, "2024-06-03T11:00:00Z", "2024-06-03T13:00:00Z")

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "Conflict"
    assert body["details"]["rule"] == "overlapping_reservation"
    assert body["details"]["existing_reservation_id"] == first.json()["reservation"]["id"]


def test_invalid_interval_is_422(api_client, court_id):
    client, _ = api_client
    response = book(client, court_id, "2024-06-03T12:00:00Z", "2024-06-03T12:00:00Z")
    assert response.status_code == 422
    assert response.json()["code"] == "InvalidInterval"


def test_unknown_court_is_404(api_client):
    client, _ = api_client
    response = book(client, 999, "2024-06-03T10:00:00Z", "2024-06-03T11:00:00Z")
    assert response.status_code == 404
    assert response.json()["code"] == "NotFound"


def test_unknown_reservation_is_404(api_client):
    client, _ = api_client
    assert client.get("/api/v1/reservations/12345").status_code == 404


def test_availability_excludes_booked_hours(api_client, court_id):
    client, _ = api_client
    book(client, court_id, "2024-06-03T10:00:00Z", "2024-06-03T11:00:00Z")

    response = client.get(
        f"/api/v1/courts/{court_id}/availability",
        params={"date": "2024-06-03", "duration_hours": 1},
    )

    assert response.status_code == 200
    starts = [slot["start_time"] for slot in response.json()]
    assert len(starts) == 15
    assert starts[0] == "2024-06-03T06:00:00Z"
    assert "2024-06-03T10:00:00Z" not in starts


def test_availability_rejects_non_positive_duration(api_client, court_id):
    client, _ = api_client
    response = client.get(
        f"/api/v1/courts/{court_id}/availability",
        params={"date": "2024-06-03", "duration_hours": 0},
    )
    assert response.status_code == 422


def test_court_calendar(api_client, court_id):
    client, SessionLocal = api_client
    with SessionLocal() as db:
        court = db.get(models.Court, court_id)
        add_reservation(db, court, at(3, 15), at(3, 16))
        add_reservation(db, court, at(3, 8), at(3, 9))
        add_reservation(db, court, at(3, 11), at(3, 12), status=models.ReservationStatus.cancelled)

    response = client.get(f"/api/v1/courts/{court_id}/reservations", params={"date": "2024-06-03"})

    assert [r["start_time"] for r in response.json()] == [
        "2024-06-03T08:00:00Z",
        "2024-06-03T15:00:00Z",
    ]


def test_check_conflicts_dry_run(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-10T18:00:00Z", "2024-06-10T19:00:00Z").json()

    response = client.post(
        "/api/v1/reservations/check-conflicts",
        json={
            "court_id": court_id,
            "dates": ["2024-06-03", "2024-06-10"],
            "start_time": "18:30",
            "duration_hours": 1,
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "conflicts": [
            {
                "date": "2024-06-10",
                "time": "18:30",
                "existing_reservation_id": created["reservation"]["id"],
            }
        ]
    }


def test_check_conflicts_honours_time_offset(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-10T18:00:00Z", "2024-06-10T19:00:00Z").json()

    response = client.post(
        "/api/v1/reservations/check-conflicts",
        json={
            "court_id": court_id,
            "dates": ["2024-06-10"],
            "start_time": "20:30:00+02:00",
            "duration_hours": 1,
        },
    )

    assert response.json()["conflicts"] == [
        {"date": "2024-06-10", "time": "18:30", "existing_reservation_id": created["reservation"]["id"]}
    ]


def test_recurring_booking(api_client, court_id):
    client, _ = api_client
    book(client, court_id, "2024-06-17T18:00:00Z", "2024-06-17T19:00:00Z")

    response = client.post(
        "/api/v1/reservations/recurring",
        json={
            "court_id": court_id,
            "requester_id": 5,
            "start_time": "2024-06-03T18:00:00Z",
            "duration_hours": 1,
            "recurrence": {"pattern": "weekly", "days_of_week": ["Monday"], "max_occurrences": 5},
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["created_count"] == 4
    assert body["conflict_count"] == 1
    assert body["conflicts"][0]["date"] == "2024-06-17"
    assert body["conflicts"][0]["time"] == "18:00"
    assert body["conflicts"][0]["reason"] == "overlapping_reservation"


def test_recurring_weekly_without_days_is_422(api_client, court_id):
    client, _ = api_client
    response = client.post(
        "/api/v1/reservations/recurring",
        json={
            "court_id": court_id,
            "requester_id": 5,
            "start_time": "2024-06-03T18:00:00Z",
            "duration_hours": 1,
            "recurrence": {"pattern": "weekly"},
        },
    )
    assert response.status_code == 422


def test_confirm_then_cancel_with_partial_refund(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-02T11:00:00Z", "2024-06-02T13:00:00Z").json()
    reservation_id = created["reservation"]["id"]

    confirmed = client.post(f"/api/v1/reservations/{reservation_id}/confirm", json={"actor": "desk"})
    assert confirmed.json()["status"] == "confirmed"

    cancelled = client.post(
        f"/api/v1/reservations/{reservation_id}/cancel",
        json={"cancelled_by": "5", "reason": "injury"},
    )

    assert cancelled.status_code == 200
    body = cancelled.json()
    assert body["status"] == "cancelled"
    assert body["refund_amount"] == 30.0
    assert body["cancellation_reason"] == "injury"


def test_late_cancellation_is_forbidden(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-01T20:00:00Z", "2024-06-01T21:00:00Z").json()
    reservation_id = created["reservation"]["id"]
    client.post(f"/api/v1/reservations/{reservation_id}/confirm", json={})

    response = client.post(
        f"/api/v1/reservations/{reservation_id}/cancel", json={"cancelled_by": "5"}
    )

    assert response.status_code == 403
    assert response.json()["code"] == "PolicyViolation"
    assert client.get(f"/api/v1/reservations/{reservation_id}").json()["status"] == "confirmed"


def test_cancelling_pending_reservation_is_409(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-05T10:00:00Z", "2024-06-05T11:00:00Z").json()

    response = client.post(
        f"/api/v1/reservations/{created['reservation']['id']}/cancel", json={"cancelled_by": "5"}
    )

    assert response.status_code == 409
    assert response.json()["code"] == "InvalidState"


def test_payment_webhook_confirms_reservation(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-05T10:00:00Z", "2024-06-05T11:00:00Z").json()
    reservation_id = created["reservation"]["id"]

    response = client.post(
        "/api/v1/payments/webhook",
        json={"order_id": f"reservation-{reservation_id}", "status": "succeeded"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


def test_late_payment_for_started_hold_is_409(api_client, court_id):
    client, SessionLocal = api_client
    with SessionLocal() as db:
        court = db.get(models.Court, court_id)
        started = add_reservation(db, court, at(1, 8), at(1, 10), status=models.ReservationStatus.pending)

    response = client.post(
        "/api/v1/payments/webhook",
        json={"order_id": f"reservation-{started.id}", "status": "succeeded"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "InvalidState"


def test_failed_payment_releases_the_hold(api_client, court_id):
    client, _ = api_client
    created = book(client, court_id, "2024-06-05T10:00:00Z", "2024-06-05T11:00:00Z").json()
    reservation_id = created["reservation"]["id"]

    response = client.post(
        "/api/v1/payments/webhook",
        json={"order_id": f"reservation-{reservation_id}", "status": "failed"},
    )

    assert response.json()["status"] == "cancelled"
    assert response.json()["cancellation_reason"] == "payment_failed"
    rebooked = book(client, court_id, "2024-06-05T10:00:00Z", "2024-06-05T11:00:00Z")
    assert rebooked.status_code == 201


def test_webhook_with_unknown_reference(api_client):
    client, _ = api_client
    response = client.post("/api/v1/payments/webhook", json={"order_id": "order-1", "status": "paid"})
    assert response.status_code == 400


def test_list_reservations_by_status(api_client, court_id):
    client, _ = api_client
    book(client, court_id, "2024-06-05T10:00:00Z", "2024-06-05T11:00:00Z")
    second = book(client, court_id, "2024-06-06T10:00:00Z", "2024-06-06T11:00:00Z").json()
    client.post(f"/api/v1/reservations/{second['reservation']['id']}/confirm", json={})

    response = client.get("/api/v1/reservations", params={"status": "confirmed"})

    assert [r["id"] for r in response.json()] == [second["reservation"]["id"]]
