import json

import pytest

from whenavailable.config import settings
from whenavailable.services.events import NOTIFY_QUEUE

SLOT_BODY = {
    "creatorName": "Ada",
    "creatorEmail": "ada@example.com",
    "meetingPurpose": "Intro call",
    "meetingLocation": {"type": "video", "details": "https://meet.example.com/ada"},
    "timeSlots": [
        {"date": "2025-01-15", "startTime": "09:00", "endTime": "10:00"},
        {"date": "2025-01-16", "startTime": "14:00", "endTime": "15:00"},
    ],
    "timezone": "America/New_York",
    "maxBookings": 1,
    "expirationDays": 1,
    "bookingMode": "individual",
}

BOOK_BODY = {
    "selectedTimeSlotIndex": 0,
    "bookerName": "Grace",
    "bookerEmail": "grace@example.com",
    "bookerNote": "Looking forward",
    "timezone": "Europe/London",
}


def create_slot(client, **overrides) -> str:
    response = client.post("/slots", json={**SLOT_BODY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["slotId"]


def book(client, slot_id, **overrides):
    return client.post(f"/slots/{slot_id}/book", json={**BOOK_BODY, **overrides})


def book_ok(client, slot_id, **overrides) -> str:
    response = book(client, slot_id, **overrides)
    assert response.status_code == 200, response.text
    return response.json()["bookingId"]


def queued_events(redis) -> list[dict]:
    return [json.loads(raw) for raw in redis.lrange(NOTIFY_QUEUE, 0, -1)]


# ── Slots ────────────────────────────────────────────────────────────────────


def test_create_slot(client, clock):
    response = client.post("/slots", json=SLOT_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["shareableUrl"] == f"{settings.base_url}/{body['slotId']}"
    assert body["expiresAt"] == clock.now + 86_400_000
    assert body["maxBookings"] == 1
    assert body["expirationDays"] == 1
    assert response.headers["X-RateLimit-Remaining"] == str(settings.rate_limit_max_links_per_hour - 1)


def test_create_slot_legacy_path(client):
    response = client.post("/slots/create", json=SLOT_BODY)
    assert response.status_code == 201


@pytest.mark.parametrize("override,fragment", [
    ({"creatorEmail": "not-an-email"}, "valid email"),
    ({"timezone": "Nowhere/City"}, "Unknown timezone"),
    ({"expirationDays": 2}, "expirationDays"),
    ({"maxBookings": 21}, "maxBookings"),
    ({"maxBookings": 0}, "maxBookings"),
    ({"timeSlots": []}, "timeSlots"),
    ({"timeSlots": [{"date": "2025-01-15", "startTime": "09:00", "endTime": "10:00"}] * 6}, "timeSlots"),
    ({"timeSlots": [{"date": "2025-01-15", "startTime": "10:00", "endTime": "09:00"}]}, "endTime"),
    ({"timeSlots": [{"date": "15/01/2025", "startTime": "09:00", "endTime": "10:00"}]}, "YYYY-MM-DD"),
    ({"timeSlots": [{"date": "2025-W03-3", "startTime": "09:00", "endTime": "10:00"}]}, "YYYY-MM-DD"),
    ({"timeSlots": [{"date": "2025-02-30", "startTime": "09:00", "endTime": "10:00"}]}, "not a calendar date"),
    ({"meetingPurpose": "x" * 201}, "200 characters"),
])
def test_create_slot_validation(client, override, fragment):
    response = client.post("/slots", json={**SLOT_BODY, **override})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "validation_error"
    assert fragment in body["message"]


def test_get_slot_resolves_windows_to_utc(client):
    slot_id = create_slot(client)

    response = client.get(f"/slots/{slot_id}")

    assert response.status_code == 200
    slot = response.json()["slot"]
    assert slot["status"] == "active"
    assert slot["creatorName"] == "Ada"
    assert "creatorEmail" not in slot
    assert slot["timeSlots"][0] == {
        "start": "2025-01-15T14:00:00.000Z",
        "end": "2025-01-15T15:00:00.000Z",
    }
    assert slot["meetingLocation"]["type"] == "video"


def test_get_slot_defaults_for_anonymous_creator(client):
    slot_id = create_slot(client, creatorName=None, meetingPurpose="  ")

    slot = client.get(f"/slots/{slot_id}").json()["slot"]
    assert slot["creatorName"] == "Someone"
    assert slot["meetingPurpose"] == "Meeting"


def test_get_slot_counts_views(client, redis):
    slot_id = create_slot(client)
    client.get(f"/slots/{slot_id}")
    client.get(f"/slots/{slot_id}")

    stored = json.loads(redis.get(f"slot:{slot_id}"))
    assert stored["viewCount"] == 2


def test_get_unknown_slot(client):
    response = client.get("/slots/missing1")

    assert response.status_code == 404
    assert response.json()["error"] == "slot_not_found"


def test_get_booked_slot(client):
    slot_id = create_slot(client)
    book_ok(client, slot_id)

    response = client.get(f"/slots/{slot_id}")

    assert response.status_code == 410
    assert response.json()["error"] == "fully_booked"
    assert response.json()["status"] == "booked"


def test_get_expired_slot_wins_over_booked(client, clock):
    slot_id = create_slot(client)
    book_ok(client, slot_id)
    clock.advance(86400 + 1)

    response = client.get(f"/slots/{slot_id}")

    assert response.status_code == 410
    assert response.json()["error"] == "slot_expired"
    assert response.json()["status"] == "expired"


# ── Booking ──────────────────────────────────────────────────────────────────


def test_book_slot(client, redis):
    slot_id = create_slot(client)

    response = book(client, slot_id)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Booking confirmed successfully"
    assert body["booking"]["id"] == body["bookingId"]
    assert body["booking"]["selectedTime"] == "2025-01-15T14:00:00.000Z"
    assert body["booking"]["creatorEmail"] == "ada@example.com"

    events = queued_events(redis)
    assert [e["type"] for e in events] == ["booking_created"]
    assert events[0]["booking_id"] == body["bookingId"]
    assert events[0]["booking"]["bookerEmail"] == "grace@example.com"
    assert events[0]["slot"]["id"] == slot_id


@pytest.mark.parametrize("override,status,error", [
    ({"selectedTimeSlotIndex": 5}, 400, "invalid_selection"),
    ({"bookerEmail": "nope"}, 400, "validation_error"),
    ({"bookerName": "   "}, 400, "validation_error"),
    ({"bookerNote": "x" * 501}, 400, "validation_error"),
])
def test_book_slot_rejections(client, override, status, error):
    slot_id = create_slot(client)

    response = book(client, slot_id, **override)

    assert response.status_code == status
    assert response.json()["error"] == error


def test_book_unknown_slot(client):
    response = book(client, "missing1")
    assert response.status_code == 404


def test_book_taken_window(client):
    slot_id = create_slot(client, maxBookings=2)
    book_ok(client, slot_id)

    response = book(client, slot_id)

    assert response.status_code == 410
    assert response.json()["error"] == "slot_taken"
    assert book(client, slot_id, selectedTimeSlotIndex=1).status_code == 200


def test_book_fully_booked(client):
    slot_id = create_slot(client)
    book_ok(client, slot_id)

    response = book(client, slot_id, selectedTimeSlotIndex=1)

    assert response.status_code == 410
    assert response.json()["error"] == "fully_booked"


def test_book_expired(client, clock):
    slot_id = create_slot(client)
    clock.advance(86400 + 1)

    response = book(client, slot_id)

    assert response.status_code == 410
    assert response.json()["error"] == "slot_expired"


def test_booking_survives_notification_failure(client, redis, monkeypatch):
    slot_id = create_slot(client)

    def broken_rpush(*args, **kwargs):
        raise ConnectionError("queue down")

    monkeypatch.setattr(redis, "rpush", broken_rpush)

    response = book(client, slot_id)
    assert response.status_code == 200


# ── Manage booking ───────────────────────────────────────────────────────────


def test_get_booking(client):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)

    response = client.get(f"/bookings/{booking_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["rescheduleCount"] == 0
    assert body["booking"]["bookerNote"] == "Looking forward"
    assert body["slot"]["id"] == slot_id
    assert body["slot"]["status"] == "booked"


def test_get_booking_after_slot_expired(client, redis):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)
    redis.delete(f"slot:{slot_id}")

    response = client.get(f"/bookings/{booking_id}")

    assert response.status_code == 200
    assert response.json()["slot"] is None


def test_get_unknown_booking(client):
    response = client.get("/bookings/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "booking_not_found"


def test_get_cancelled_booking(client, clock):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)
    client.delete(f"/bookings/{booking_id}/cancel")

    response = client.get(f"/bookings/{booking_id}")

    assert response.status_code == 410
    body = response.json()
    assert body["error"] == "booking_cancelled"
    assert body["booking"] == {
        "id": booking_id,
        "cancelledAt": clock.now,
        "originalSelectedTime": "2025-01-15T14:00:00.000Z",
    }


def test_reschedule(client, redis):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)

    response = client.put(
        f"/bookings/{booking_id}/reschedule",
        json={"selectedTimeSlotIndex": 1},
    )

    assert response.status_code == 200
    booking = response.json()["booking"]
    assert booking["selectedTimeSlotIndex"] == 1
    assert booking["selectedTime"] == "2025-01-16T19:00:00.000Z"
    assert booking["rescheduleCount"] == 1
    assert booking["originalSelectedTime"] == "2025-01-15T14:00:00.000Z"

    event = queued_events(redis)[-1]
    assert event["type"] == "booking_rescheduled"
    assert event["previous_selected_time"] == "2025-01-15T14:00:00.000Z"


def test_reschedule_requires_index(client):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)

    response = client.put(f"/bookings/{booking_id}/reschedule", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_reschedule_limit(client):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)
    for index in (1, 0, 1):
        ok = client.put(f"/bookings/{booking_id}/reschedule", json={"selectedTimeSlotIndex": index})
        assert ok.status_code == 200

    response = client.put(f"/bookings/{booking_id}/reschedule", json={"selectedTimeSlotIndex": 0})

    assert response.status_code == 403
    assert response.json()["error"] == "reschedule_limit_reached"


def test_cancel(client, redis):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)

    response = client.delete(f"/bookings/{booking_id}/cancel")

    assert response.status_code == 200
    body = response.json()
    assert body["booking"]["id"] == booking_id
    assert body["booking"]["originalSelectedTime"] == "2025-01-15T14:00:00.000Z"
    assert body["slot"] == {"id": slot_id, "status": "active", "bookingsCount": 0, "maxBookings": 1}
    assert queued_events(redis)[-1]["type"] == "booking_cancelled"

    again = client.delete(f"/bookings/{booking_id}/cancel")
    assert again.status_code == 410
    assert again.json()["error"] == "booking_cancelled"

    assert client.get(f"/slots/{slot_id}").status_code == 200


def test_cancel_after_slot_expired(client, redis):
    slot_id = create_slot(client)
    booking_id = book_ok(client, slot_id)
    redis.delete(f"slot:{slot_id}")

    response = client.delete(f"/bookings/{booking_id}/cancel")

    assert response.status_code == 200
    assert response.json()["slot"] is None
    assert queued_events(redis)[-1]["slot"] is None


# ── Misc ─────────────────────────────────────────────────────────────────────


def test_debug_ttl(client):
    slot_id = create_slot(client, expirationDays=3)
    booking_id = book_ok(client, slot_id)

    body = client.get(f"/debug/ttl/{slot_id}").json()

    assert body["slot"]["exists"] is True
    assert body["slot"]["bookingsCount"] == 1
    assert body["slot"]["ttl"] > 2 * 86400
    assert body["bookings"][0]["id"] == booking_id
    assert body["bookings"][0]["exists"] is True


def test_debug_ttl_unknown_slot(client):
    body = client.get("/debug/ttl/missing1").json()

    assert body["slot"]["exists"] is False
    assert body["slot"]["ttlFormatted"] == "Key does not exist"
    assert body["bookings"] == []


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["services"]["redis"] == {"connected": True, "operational": True}
