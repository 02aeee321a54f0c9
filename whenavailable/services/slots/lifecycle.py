# whenavailable/services/slots/lifecycle.py
"""
Slot lifecycle: creation, capacity accounting and per-index tracking.

Every method assumes admission already passed. Mutating methods return a new
Slot and write it through `conn` (a MULTI pipeline when called from the
booking lifecycle, the plain client otherwise), always keeping the slot's
remaining TTL.

Slot status is derived (Slot.status_at), so active <-> booked transitions
follow from bookings_count alone.
"""

import logging
import secrets
import string
from typing import Callable

from ...errors import DependencyError, ValidationError
from ...schemas.slots import CreateSlotRequest, Slot
from ...utils.clock import MS_PER_SECOND, now_ms
from .config import LifecycleConfig
from .redis_store import Conn, SlotsRedisStore

logger = logging.getLogger(__name__)

SLOT_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_ATTEMPTS = 5


def generate_slot_id(length: int = 8) -> str:
    """Short URL-safe id."""
    return "".join(secrets.choice(SLOT_ID_ALPHABET) for _ in range(length))


class SlotLifecycleManager:

    def __init__(
        self,
        store: SlotsRedisStore,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.clock = clock

    @property
    def config(self) -> LifecycleConfig:
        return self.store.config

    # ── Create ───────────────────────────────────────────────────────────

    def create_slot(self, data: CreateSlotRequest) -> Slot:
        """Store a new slot. Business limits come from LifecycleConfig, not the request schema."""
        cfg = self.config
        if data.expiration_days not in cfg.expiration_days_options:
            raise ValidationError(
                f"expirationDays must be one of {', '.join(map(str, cfg.expiration_days_options))}"
            )
        if len(data.time_slots) > cfg.max_time_slots:
            raise ValidationError(f"timeSlots: at most {cfg.max_time_slots} windows are allowed")
        if data.max_bookings > cfg.max_bookings:
            raise ValidationError(f"maxBookings must be {cfg.max_bookings} or less")

        now = self.clock()
        ttl = cfg.ttl_for_days(data.expiration_days)

        for _ in range(ID_ATTEMPTS):
            slot = Slot(
                id=generate_slot_id(cfg.slot_id_length),
                created_at=now,
                expires_at=now + ttl * MS_PER_SECOND,
                expiration_days=data.expiration_days,
                creator_name=data.creator_name,
                creator_email=data.creator_email,
                meeting_purpose=data.meeting_purpose,
                meeting_location=data.meeting_location,
                time_slots=data.time_slots,
                timezone=data.timezone,
                booking_mode=data.booking_mode,
                max_bookings=data.max_bookings,
            )
            if self.store.create_slot(slot, ttl):
                logger.info(
                    f"Slot created: {slot.id} ({len(slot.time_slots)} windows, "
                    f"{slot.booking_mode}, max {slot.max_bookings}, expires in {ttl}s)"
                )
                return slot
            logger.warning(f"Slot id collision: {slot.id}")

        raise DependencyError("Could not allocate a slot id. Please try again.")

    # ── Booking accounting ───────────────────────────────────────────────

    def record_booking(
        self,
        slot: Slot,
        booking_id: str,
        index: int,
        conn: Conn | None = None,
    ) -> Slot:
        """Count a new booking against the slot."""
        indices = list(slot.booked_time_slot_indices)
        if slot.tracks_indices and index not in indices:
            indices.append(index)

        updated = slot.model_copy(update={
            "bookings_count": min(slot.bookings_count + 1, slot.max_bookings),
            "bookings": [*slot.bookings, booking_id],
            "booked_time_slot_indices": indices,
        })
        self.store.save_slot(updated, conn)
        return updated

    def release_booking(
        self,
        slot: Slot,
        booking_id: str,
        index: int,
        conn: Conn | None = None,
    ) -> Slot:
        """Undo record_booking for a cancelled booking."""
        indices = slot.booked_time_slot_indices
        if slot.tracks_indices:
            indices = [i for i in indices if i != index]

        updated = slot.model_copy(update={
            "bookings_count": max(0, slot.bookings_count - 1),
            "bookings": [b for b in slot.bookings if b != booking_id],
            "booked_time_slot_indices": indices,
        })
        self.store.save_slot(updated, conn)
        return updated

    def move_booking_index(
        self,
        slot: Slot,
        old_index: int,
        new_index: int,
        conn: Conn | None = None,
    ) -> Slot:
        """Swap a claimed index (individual mode). Group slots are unchanged."""
        if not slot.tracks_indices or old_index == new_index:
            return slot

        indices = [i for i in slot.booked_time_slot_indices if i != old_index]
        if new_index not in indices:
            indices.append(new_index)

        updated = slot.model_copy(update={"booked_time_slot_indices": indices})
        self.store.save_slot(updated, conn)
        return updated

    # ── Views ────────────────────────────────────────────────────────────

    def increment_view_count(self, slot_id: str) -> None:
        """Best effort. Runs in its own transaction so it never clobbers a booking."""

        def _increment(pipe) -> None:
            slot = self.store.get_slot(slot_id, pipe)
            if slot is None:
                return
            pipe.multi()
            self.store.save_slot(
                slot.model_copy(update={"view_count": slot.view_count + 1}),
                pipe,
            )
            pipe.execute()

        try:
            self.store.run_transaction(_increment, self.store.slot_key(slot_id))
        except Exception:
            logger.exception(f"Failed to increment view count for slot {slot_id}")
