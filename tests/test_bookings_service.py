"""
Unit tests for Bookings Service.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.bookings_service import app
from shared.database import get_db
from shared.models import Booking


@pytest.fixture(scope="function")
def client(override_get_db):
    """Create a test client."""
    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def booking_payload(room, start="2030-05-06T10:00:00", end="2030-05-06T11:00:00", **extra):
    payload = {
        "roomId": room.id,
        "startTime": start,
        "endTime": end,
        "purpose": "Exam preparation",
        "responsibilityAccepted": True,
    }
    payload.update(extra)
    return payload


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "bookings"}


def test_create_booking(client, auth_headers_user, test_user, test_room):
    response = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user)

    assert response.status_code == 201
    data = response.json()
    assert data["roomId"] == test_room.id
    assert data["userId"] == test_user.id
    assert data["status"] == "confirmed"
    assert data["purpose"] == "Exam preparation"
    assert data["startTime"].startswith("2030-05-06T10:00:00")


def test_create_booking_requires_auth(client, test_room):
    response = client.post("/bookings", json=booking_payload(test_room))
    assert response.status_code in (401, 403)


def test_create_booking_invalid_token(client, test_room):
    response = client.post(
        "/bookings",
        json=booking_payload(test_room),
        headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_create_booking_without_responsibility(client, db, auth_headers_user, test_room):
    response = client.post(
        "/bookings",
        json=booking_payload(test_room, responsibilityAccepted=False),
        headers=auth_headers_user
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert db.query(Booking).count() == 0


def test_create_booking_missing_times(client, auth_headers_user, test_room):
    payload = booking_payload(test_room)
    del payload["endTime"]
    response = client.post("/bookings", json=payload, headers=auth_headers_user)
    assert response.status_code == 400


def test_create_booking_invalid_time_range(client, auth_headers_user, test_room):
    """End time before start time."""
    response = client.post(
        "/bookings",
        json=booking_payload(test_room, start="2030-05-06T11:00:00", end="2030-05-06T10:00:00"),
        headers=auth_headers_user
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_interval"


def test_create_booking_bad_timestamp(client, auth_headers_user, test_room):
    response = client.post(
        "/bookings",
        json=booking_payload(test_room, start="soon"),
        headers=auth_headers_user
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_time_range"


def test_create_booking_unknown_room(client, auth_headers_user):
    payload = {
        "roomId": 999,
        "startTime": "2030-05-06T10:00:00",
        "endTime": "2030-05-06T11:00:00",
        "responsibilityAccepted": True,
    }
    response = client.post("/bookings", json=payload, headers=auth_headers_user)
    assert response.status_code == 404


def test_create_overlapping_booking_conflicts(client, auth_headers_user, test_room, second_room):
    first = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user)
    assert first.status_code == 201

    response = client.post(
        "/bookings",
        json=booking_payload(second_room, start="2030-05-06T10:30:00", end="2030-05-06T11:30:00"),
        headers=auth_headers_user
    )
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_back_to_back_booking(client, auth_headers_user, test_room):
    client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user)
    response = client.post(
        "/bookings",
        json=booking_payload(test_room, start="2030-05-06T11:00:00", end="2030-05-06T12:00:00"),
        headers=auth_headers_user
    )
    assert response.status_code == 201


def test_get_user_bookings(client, auth_headers_user, auth_headers_other, test_room):
    client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user)
    client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_other)

    response = client.get("/bookings/user", headers=auth_headers_user)

    assert response.status_code == 200
    bookings = response.json()
    assert len(bookings) == 1
    assert bookings[0]["roomName"] == "Lecture Hall A101"
    assert bookings[0]["building"] == "Main Campus"


def test_cancel_own_booking(client, auth_headers_user, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(f"/bookings/{booking_id}/cancel", headers=auth_headers_user)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


def test_cancel_other_users_booking(client, auth_headers_user, auth_headers_other, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(f"/bookings/{booking_id}/cancel", headers=auth_headers_other)

    assert response.status_code == 403


def test_admin_cancels_any_booking(client, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(f"/bookings/{booking_id}/cancel", headers=auth_headers_admin)

    assert response.status_code == 200


def test_cancel_missing_booking(client, auth_headers_user):
    response = client.put("/bookings/999/cancel", headers=auth_headers_user)
    assert response.status_code == 404


def test_get_all_bookings_as_user(client, auth_headers_user):
    """Admin listing is forbidden for students."""
    response = client.get("/admin/bookings", headers=auth_headers_user)
    assert response.status_code == 403


def test_get_all_bookings_as_admin(client, auth_headers_user, auth_headers_admin, test_room):
    client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user)

    response = client.get("/admin/bookings", headers=auth_headers_admin)

    assert response.status_code == 200
    [booking] = response.json()
    assert booking["username"] == "student"
    assert booking["roomName"] == "Lecture Hall A101"


def test_admin_get_booking(client, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    assert client.get(f"/admin/bookings/{booking_id}", headers=auth_headers_admin).json()["id"] == booking_id
    assert client.get("/admin/bookings/999", headers=auth_headers_admin).status_code == 404


def test_admin_update_booking(client, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(
        f"/admin/bookings/{booking_id}",
        json={"purpose": "Moved seminar", "endTime": "2030-05-06T12:00:00"},
        headers=auth_headers_admin
    )

    assert response.status_code == 200
    assert response.json()["purpose"] == "Moved seminar"
    assert response.json()["endTime"].startswith("2030-05-06T12:00:00")


def test_admin_update_invalid_status(client, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(f"/admin/bookings/{booking_id}", json={"status": "maybe"}, headers=auth_headers_admin)

    assert response.status_code == 422


def test_admin_delete_booking(client, db, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.delete(f"/admin/bookings/{booking_id}", headers=auth_headers_admin)

    assert response.status_code == 204
    assert db.query(Booking).count() == 0
    assert client.delete(f"/admin/bookings/{booking_id}", headers=auth_headers_admin).status_code == 404


def test_snake_case_input_accepted(client, auth_headers_user, test_room):
    payload = {
        "room_id": test_room.id,
        "start_time": "2030-05-06T10:00:00",
        "end_time": "2030-05-06T11:00:00",
        "responsibility_accepted": True,
    }
    response = client.post("/bookings", json=payload, headers=auth_headers_user)
    assert response.status_code == 201


def test_times_returned_in_utc(client, auth_headers_user, test_room):
    payload = booking_payload(test_room, start="2030-05-06T10:00:00+02:00", end="2030-05-06T11:00:00+02:00")
    created = client.post("/bookings", json=payload, headers=auth_headers_user).json()

    assert created["startTime"] in ("2030-05-06T08:00:00Z", "2030-05-06T08:00:00+00:00")

    [listed] = client.get("/bookings/user", headers=auth_headers_user).json()
    assert listed["startTime"] == created["startTime"]
    assert listed["endTime"].startswith("2030-05-06T09:00:00")
    assert listed["endTime"].endswith(("Z", "+00:00"))


def test_admin_update_empty_purpose_keeps_purpose(client, auth_headers_user, auth_headers_admin, test_room):
    booking_id = client.post("/bookings", json=booking_payload(test_room), headers=auth_headers_user).json()["id"]

    response = client.put(f"/admin/bookings/{booking_id}", json={"purpose": ""}, headers=auth_headers_admin)

    assert response.status_code == 200
    assert response.json()["purpose"] == "Exam preparation"
