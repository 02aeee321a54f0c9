"""Email notifications for booking events, fed by the events:notify queue."""

from .booking import BOOKING_EVENTS, DeliveryFailed, handle_booking_event

__all__ = ["BOOKING_EVENTS", "DeliveryFailed", "handle_booking_event"]
