# whenavailable/services/slots/admission.py
"""
Admission checks run before any state mutation.

Pure functions of already-fetched records and the current time (unix ms).
Each failed check raises the error that names its reason; the order of the
checks is part of the contract (callers rely on e.g. "expired" winning over
"fully booked").
"""

from typing import Optional

from ...errors import (
    AlreadyCancelled,
    BookingNotFound,
    Expired,
    FullyBooked,
    InvalidSelection,
    RescheduleLimitReached,
    SlotNotFound,
    SlotTaken,
)
from ...schemas.bookings import Booking
from ...schemas.slots import Slot


def check_slot_live(slot: Optional[Slot], now: int) -> Slot:
    """Checks 1-2: slot exists and has not passed expiresAt."""
    if slot is None:
        raise SlotNotFound()
    if slot.is_expired(now):
        raise Expired()
    return slot


def check_capacity(slot: Slot) -> None:
    """Check 3."""
    if slot.is_full:
        raise FullyBooked()


def check_selection(slot: Slot, index: int, current_index: Optional[int] = None) -> None:
    """
    Checks 4-5: index in range and, in individual mode, not claimed.

    current_index is the booking's own index during a reschedule; it is never
    considered taken.
    """
    if index < 0 or index >= len(slot.time_slots):
        raise InvalidSelection()
    if not slot.tracks_indices:
        return
    if index != current_index and index in slot.booked_time_slot_indices:
        raise SlotTaken()


def check_booking_attempt(slot: Optional[Slot], index: int, now: int) -> Slot:
    slot = check_slot_live(slot, now)
    check_capacity(slot)
    check_selection(slot, index)
    return slot


def check_booking_active(booking: Optional[Booking]) -> Booking:
    """Checks 6-7. This is the whole cancel admission."""
    if booking is None:
        raise BookingNotFound()
    if booking.is_cancelled:
        raise AlreadyCancelled(cancelledAt=booking.cancelled_at)
    return booking


def check_reschedule_allowed(booking: Optional[Booking], max_reschedules: int) -> Booking:
    """Checks 6-8."""
    booking = check_booking_active(booking)
    if booking.reschedule_count >= max_reschedules:
        raise RescheduleLimitReached(
            "This booking has already been rescheduled the maximum number "
            f"of times ({max_reschedules})."
        )
    return booking


def check_reschedule_attempt(
    booking: Optional[Booking],
    slot: Optional[Slot],
    new_index: int,
    now: int,
    max_reschedules: int,
) -> tuple[Booking, Slot]:
    """Checks 6-10 in order."""
    booking = check_reschedule_allowed(booking, max_reschedules)
    slot = check_slot_live(slot, now)
    check_selection(slot, new_index, current_index=booking.selected_time_slot_index)
    return booking, slot


check_cancel_attempt = check_booking_active
