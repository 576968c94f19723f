import time

import pytest
from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


@pytest.fixture
def test_event_with_seats():
    """Create a test event with seats for holding tests"""
    seat_data = {
        "seats": [
            {"seat_id": "A101", "section": "A", "row": "1", "number": "01", "price": 99},
            {"seat_id": "A102", "section": "A", "row": "1", "number": "02", "price": 99},
            {"seat_id": "B201", "section": "B", "row": "2", "number": "01", "price": 149},
        ]
    }

    seats_response = client.post("/seats", json=seat_data)
    assert seats_response.status_code == 200

    event_data = {
        "name": "Test Grand Prix",
        "date": "Nov 23, 2025 • 3:00 PM",
        "venue": "Test Circuit",
        "seat_ids": ["A101", "A102", "B201"],
    }

    event_response = client.post("/events", json=event_data)
    assert event_response.status_code == 200
    event = event_response.json()
    assert event["seats_created"] == 3

    return event


def test_hold_seat_success(test_event_with_seats):
    """Test successful seat holding"""
    event = test_event_with_seats
    before_ms = int(time.time() * 1000)

    hold_request = {
        "event_id": event["event_id"],
        "seat_id": "A101",
        "holder_id": "user1",
    }

    response = client.post("/holds", json=hold_request)

    assert response.status_code == 200
    data = response.json()

    assert data["hold_id"].startswith("hold-")
    assert data["seat_ids"] == ["A101"]
    # Ten minutes from now, with some slack for the request itself
    assert before_ms + 600000 <= data["expire_at"] <= before_ms + 600000 + 5000


def test_hold_marks_seat_held(test_event_with_seats):
    """Test the seat map reflects a new hold"""
    event = test_event_with_seats
    hold = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "A102", "holder_id": "user1"}
    ).json()

    seat_map = client.get(f"/events/{event['event_id']}/seat-map").json()
    row = next(r for r in seat_map["inventory"] if r["seat_id"] == "A102")

    assert row["status"] == "HELD"
    assert row["hold_id"] == hold["hold_id"]
    assert row["holder_id"] == "user1"


def test_hold_already_held_seat(test_event_with_seats):
    """Test a second hold on the same seat is refused"""
    event = test_event_with_seats
    first = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "A101", "holder_id": "userA"}
    )
    assert first.status_code == 200

    second = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "A101", "holder_id": "userB"}
    )

    assert second.status_code == 409
    assert second.json()["error"] == "seat_unavailable"


def test_hold_unknown_seat(test_event_with_seats):
    """Test holding a seat that is not on sale for the event"""
    event = test_event_with_seats

    response = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "Z999", "holder_id": "user1"}
    )

    assert response.status_code == 409
    assert response.json()["error"] == "seat_unavailable"


def test_hold_unknown_event():
    """Test holding a seat for an event that does not exist"""
    response = client.post(
        "/holds", json={"event_id": "event-nonexistent", "seat_id": "A101", "holder_id": "user1"}
    )

    assert response.status_code == 409
    assert response.json()["error"] == "seat_unavailable"


def test_hold_requires_a_seat():
    """Test request validation when no seat is given"""
    response = client.post("/holds", json={"event_id": "event1", "holder_id": "user1"})

    assert response.status_code == 422


def test_hold_too_many_seats(test_event_with_seats):
    """Test the default one-seat-per-hold limit"""
    event = test_event_with_seats

    response = client.post(
        "/holds",
        json={"event_id": event["event_id"], "seat_ids": ["A101", "A102"], "holder_id": "user1"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "seat_unavailable"

    # Nothing was claimed
    seat_map = client.get(f"/events/{event['event_id']}/seat-map").json()
    assert all(row["status"] == "AVAILABLE" for row in seat_map["inventory"])


def test_release_hold(test_event_with_seats):
    """Test releasing a hold frees the seat for the next buyer"""
    event = test_event_with_seats
    hold = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "B201", "holder_id": "userA"}
    ).json()

    response = client.post(f"/holds/{hold['hold_id']}/release")
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    hold_response = client.get(f"/holds/{hold['hold_id']}")
    assert hold_response.json()["status"] == "EXPIRED"

    retry = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "B201", "holder_id": "userB"}
    )
    assert retry.status_code == 200


def test_release_hold_twice(test_event_with_seats):
    """Test release is idempotent"""
    event = test_event_with_seats
    hold = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "A101", "holder_id": "userA"}
    ).json()

    assert client.post(f"/holds/{hold['hold_id']}/release").json() == {"ok": True}
    assert client.post(f"/holds/{hold['hold_id']}/release").json() == {"ok": True}


def test_release_unknown_hold():
    """Test releasing a hold that never existed still reports ok"""
    response = client.post("/holds/hold-nonexistent/release")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_get_hold(test_event_with_seats):
    """Test reading a hold back"""
    event = test_event_with_seats
    created = client.post(
        "/holds", json={"event_id": event["event_id"], "seat_id": "A101", "holder_id": "user1"}
    ).json()

    response = client.get(f"/holds/{created['hold_id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ACTIVE"
    assert data["holder_id"] == "user1"
    assert data["event_id"] == event["event_id"]
    assert data["expire_at"] == created["expire_at"]


def test_get_hold_not_found():
    """Test reading a missing hold"""
    response = client.get("/holds/hold-nonexistent")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]
