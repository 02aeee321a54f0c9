# whenavailable/services/bookings.py
"""
Booking lifecycle: create, reschedule, cancel.

Each operation is one transactional unit:
1. WATCH the booking and/or slot keys
2. read both records and run admission against the fresh state
3. MULTI: write the booking record, then the slot record
4. EXEC (retried from step 1 if a watched key changed)

Booking status is derived from cancelled_at:
    confirmed ──cancel──> cancelled (terminal)
Reschedule stays within confirmed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from uuid import uuid4

from redis.client import Pipeline

from ..errors import BookingNotFound
from ..schemas.bookings import Booking, BookSlotRequest
from ..schemas.slots import Slot
from ..utils.clock import MS_PER_SECOND, now_ms
from ..utils.timezone import format_utc, resolve_local_time
from .slots import SlotLifecycleManager, SlotsRedisStore, admission

logger = logging.getLogger(__name__)


@dataclass
class RescheduleResult:
    booking: Booking
    slot: Slot
    previous_selected_time: str


@dataclass
class CancelResult:
    booking: Booking
    slot: Optional[Slot]


def resolve_selected_time(slot: Slot, index: int) -> str:
    """Start of slot.time_slots[index] as a UTC ISO string."""
    window = slot.time_slots[index]
    return format_utc(resolve_local_time(window.date, window.start_time, slot.timezone))


class BookingLifecycleManager:

    def __init__(
        self,
        store: SlotsRedisStore,
        slots: SlotLifecycleManager | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.clock = clock
        self.slots = slots or SlotLifecycleManager(store, clock=clock)
        self.config = store.config

    def _remaining_ttl(self, ttl: int, slot: Slot, now: int) -> int:
        """Slot TTL to copy onto a booking; falls back to expiresAt when Redis has none."""
        if ttl > 0:
            return ttl
        left = (slot.expires_at - now) // MS_PER_SECOND
        return left if left > 0 else self.config.fallback_ttl_seconds

    # ── Create ───────────────────────────────────────────────────────────

    def create_booking(self, slot_id: str, data: BookSlotRequest) -> tuple[Booking, Slot]:
        index = data.selected_time_slot_index

        def _create(pipe: Pipeline) -> tuple[Booking, Slot]:
            now = self.clock()
            slot = admission.check_booking_attempt(
                self.store.get_slot(slot_id, pipe), index, now
            )
            ttl = self._remaining_ttl(self.store.slot_ttl(slot_id, pipe), slot, now)

            booking = Booking(
                id=uuid4().hex,
                slot_id=slot.id,
                booked_at=now,
                booker_name=data.booker_name,
                booker_email=data.booker_email,
                booker_note=data.booker_note,
                selected_time_slot_index=index,
                selected_time=resolve_selected_time(slot, index),
                timezone=data.timezone,
                creator_name=slot.creator_name,
                creator_email=slot.creator_email,
                meeting_purpose=slot.meeting_purpose,
                meeting_location=slot.meeting_location,
            )

            pipe.multi()
            self.store.save_booking(booking, ttl, pipe)
            updated = self.slots.record_booking(slot, booking.id, index, pipe)
            pipe.execute()
            return booking, updated

        booking, slot = self.store.run_transaction(_create, self.store.slot_key(slot_id))
        logger.info(
            f"Booking {booking.id} confirmed for slot {slot.id} "
            f"(index {index}, {slot.bookings_count}/{slot.max_bookings})"
        )
        return booking, slot

    # ── Reschedule ───────────────────────────────────────────────────────

    def reschedule_booking(self, booking_id: str, new_index: int) -> RescheduleResult:

        def _reschedule(pipe: Pipeline) -> RescheduleResult:
            booking = admission.check_reschedule_allowed(
                self.store.get_booking(booking_id, pipe), self.config.max_reschedules
            )
            pipe.watch(self.store.slot_key(booking.slot_id))
            booking, slot = admission.check_reschedule_attempt(
                booking,
                self.store.get_slot(booking.slot_id, pipe),
                new_index,
                self.clock(),
                self.config.max_reschedules,
            )

            old_index = booking.selected_time_slot_index
            updated = booking.model_copy(update={
                "selected_time": resolve_selected_time(slot, new_index),
                "selected_time_slot_index": new_index,
                "reschedule_count": booking.reschedule_count + 1,
                "rescheduled_at": self.clock(),
                "original_selected_time": booking.original_selected_time or booking.selected_time,
            })

            pipe.multi()
            self.store.save_booking(updated, None, pipe)
            slot = self.slots.move_booking_index(slot, old_index, new_index, pipe)
            pipe.execute()
            return RescheduleResult(updated, slot, booking.selected_time)

        result = self.store.run_transaction(_reschedule, self.store.booking_key(booking_id))
        logger.info(
            f"Booking {booking_id} rescheduled to index {new_index} "
            f"(count: {result.booking.reschedule_count}/{self.config.max_reschedules})"
        )
        return result

    # ── Cancel ───────────────────────────────────────────────────────────

    def cancel_booking(self, booking_id: str) -> CancelResult:

        def _cancel(pipe: Pipeline) -> CancelResult:
            booking = admission.check_cancel_attempt(self.store.get_booking(booking_id, pipe))
            pipe.watch(self.store.slot_key(booking.slot_id))
            slot = self.store.get_slot(booking.slot_id, pipe)

            ttl = max(
                self.store.booking_ttl(booking_id, pipe),
                self.config.cancelled_retention_seconds,
            )
            cancelled = booking.model_copy(update={"cancelled_at": self.clock()})

            pipe.multi()
            self.store.save_booking(cancelled, ttl, pipe)
            if slot is not None:
                slot = self.slots.release_booking(
                    slot, booking_id, booking.selected_time_slot_index, pipe
                )
            pipe.execute()
            return CancelResult(cancelled, slot)

        result = self.store.run_transaction(_cancel, self.store.booking_key(booking_id))
        if result.slot is None:
            logger.info(f"Booking {booking_id} cancelled (slot already expired)")
        else:
            logger.info(
                f"Booking {booking_id} cancelled. Slot {result.slot.id} booking count: "
                f"{result.slot.bookings_count}/{result.slot.max_bookings}"
            )
        return result

    # ── Read ─────────────────────────────────────────────────────────────

    def get_booking(self, booking_id: str) -> tuple[Booking, Optional[Slot]]:
        """Booking plus its parent slot (None once the slot expired)."""
        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound()
        return booking, self.store.get_slot(booking.slot_id)
