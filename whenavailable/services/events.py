"""
whenavailable/services/events.py

Event emitter: pushes notification events to a Redis queue.

Queue: events:notify, consumed by whenavailable.events.consumer which sends
the creator-facing and booker-facing emails.

Emitting never raises: a booking that is already committed stays committed
even if the queue is unreachable.
"""

import json
import time
import logging
from typing import Optional

from redis import Redis

from ..schemas.bookings import Booking
from ..schemas.slots import Slot

logger = logging.getLogger(__name__)

NOTIFY_QUEUE = "events:notify"


def emit_event(redis: Redis, event_type: str, payload: dict) -> None:
    """Push an event to events:notify."""
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis.rpush(NOTIFY_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {NOTIFY_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def emit_booking_event(
    redis: Redis,
    event_type: str,
    slot: Optional[Slot],
    booking: Booking,
    previous_selected_time: Optional[str] = None,
) -> None:
    """
    Emit a booking lifecycle event with both records embedded.

    Records are embedded (not referenced by id) because the booking or slot
    may expire before the consumer gets to the event.
    """
    payload = {
        "booking_id": booking.id,
        "booking": booking.model_dump(mode="json", by_alias=True, exclude_none=True),
        "slot": slot.model_dump(mode="json", by_alias=True, exclude_none=True) if slot else None,
    }
    if previous_selected_time:
        payload["previous_selected_time"] = previous_selected_time
    emit_event(redis, event_type, payload)
