"""
Booking notifications.

Every booking event fans out to two emails, one for the creator and one for
the booker. Recipients whose email failed are raised as DeliveryFailed; the
consumer stores them on the event (`pending`) so a retry only re-sends to
them.
"""

import logging

from .delivery import deliver_booking_event

logger = logging.getLogger(__name__)

BOOKING_EVENTS = frozenset({
    "booking_created",
    "booking_rescheduled",
    "booking_cancelled",
})


class DeliveryFailed(Exception):
    def __init__(self, event_type: str, booking_id: str | None, roles: list[str]):
        self.event_type = event_type
        self.booking_id = booking_id
        self.roles = roles
        super().__init__(f"{event_type} for booking={booking_id}: failed for {', '.join(roles)}")


async def handle_booking_event(data: dict) -> None:
    """Send the emails for one queued event. Unknown or empty events are dropped."""
    event_type = data.get("type")
    if event_type not in BOOKING_EVENTS:
        logger.warning(f"Dropping event with unknown type: {event_type}")
        return
    if not data.get("booking"):
        logger.error(f"{event_type} event without booking payload, dropping")
        return

    results = await deliver_booking_event(event_type, data, roles=data.get("pending"))

    failed = [role for role, sent in results.items() if not sent]
    if failed:
        raise DeliveryFailed(event_type, data.get("booking_id"), failed)
