# whenavailable/services/slots/redis_store.py
"""
Redis storage for slots and bookings.

Key format:
    slot:{slot_id}        JSON Slot, TTL = expirationDays * 86400
    booking:{booking_id}  JSON Booking, TTL = slot's remaining TTL
                          (at least 24h once cancelled)

The TTL of a key is set once and carried over on every rewrite
(SET ... KEEPTTL). Absence of slot:{id} is the expiration signal.

Writes that touch both records go through run_transaction(): WATCH the keys,
read, validate, then MULTI/EXEC. A concurrent write to a watched key aborts
EXEC and the whole unit is retried against fresh state.
"""

import logging
from typing import Callable, Optional, TypeVar, Union

from redis import Redis
from redis.client import Pipeline
from redis.exceptions import WatchError

from ...errors import ConflictError
from ...schemas.bookings import Booking
from ...schemas.slots import Slot
from .config import LifecycleConfig, get_lifecycle_config

logger = logging.getLogger(__name__)

T = TypeVar("T")
Conn = Union[Redis, Pipeline]


class SlotsRedisStore:
    """Redis storage wrapper for slot and booking records."""

    SLOT_PREFIX = "slot"
    BOOKING_PREFIX = "booking"

    def __init__(self, redis: Redis, config: LifecycleConfig | None = None):
        self.redis = redis
        self.config = config or get_lifecycle_config()

    def slot_key(self, slot_id: str) -> str:
        return f"{self.SLOT_PREFIX}:{slot_id}"

    def booking_key(self, booking_id: str) -> str:
        return f"{self.BOOKING_PREFIX}:{booking_id}"

    # ── Read ─────────────────────────────────────────────────────────────

    def get_slot(self, slot_id: str, conn: Conn | None = None) -> Optional[Slot]:
        raw = (conn or self.redis).get(self.slot_key(slot_id))
        if raw is None:
            return None
        return Slot.model_validate_json(raw)

    def get_booking(self, booking_id: str, conn: Conn | None = None) -> Optional[Booking]:
        raw = (conn or self.redis).get(self.booking_key(booking_id))
        if raw is None:
            return None
        return Booking.model_validate_json(raw)

    def slot_ttl(self, slot_id: str, conn: Conn | None = None) -> int:
        """Remaining TTL in seconds (-2 missing, -1 no expiry)."""
        return (conn or self.redis).ttl(self.slot_key(slot_id))

    def booking_ttl(self, booking_id: str, conn: Conn | None = None) -> int:
        return (conn or self.redis).ttl(self.booking_key(booking_id))

    # ── Write ────────────────────────────────────────────────────────────

    def create_slot(self, slot: Slot, ttl_seconds: int) -> bool:
        """
        Store a new slot with its full TTL.

        Returns False if the id is already taken (SET NX).
        """
        return bool(self.redis.set(
            self.slot_key(slot.id),
            _dump(slot),
            ex=ttl_seconds,
            nx=True,
        ))

    def save_slot(self, slot: Slot, conn: Conn | None = None) -> None:
        """
        Rewrite the full slot record, keeping its remaining TTL.

        XX: an already expired slot is never resurrected without a TTL.
        """
        (conn or self.redis).set(self.slot_key(slot.id), _dump(slot), keepttl=True, xx=True)

    def save_booking(
        self,
        booking: Booking,
        ttl_seconds: int | None = None,
        conn: Conn | None = None,
    ) -> None:
        """
        Write the full booking record.

        ttl_seconds=None keeps the current TTL of an existing record; otherwise
        the key gets exactly ttl_seconds.
        """
        key = self.booking_key(booking.id)
        if ttl_seconds is None:
            (conn or self.redis).set(key, _dump(booking), keepttl=True, xx=True)
        else:
            (conn or self.redis).set(key, _dump(booking), ex=ttl_seconds)

    # ── Transactions ─────────────────────────────────────────────────────

    def run_transaction(self, func: Callable[[Pipeline], T], *watch_keys: str) -> T:
        """
        Run func inside WATCH/MULTI/EXEC with bounded retries.

        func receives a pipeline in immediate mode with watch_keys already
        watched. It may WATCH more keys, must read through the pipeline,
        then call pipe.multi(), queue its writes and pipe.execute().

        Domain errors raised by func propagate unchanged (nothing was written).
        """
        attempts = self.config.transaction_retries
        for attempt in range(1, attempts + 1):
            with self.redis.pipeline() as pipe:
                try:
                    pipe.watch(*watch_keys)
                    return func(pipe)
                except WatchError:
                    logger.info(
                        f"Concurrent write on {', '.join(watch_keys)}, "
                        f"retrying ({attempt}/{attempts})"
                    )
        logger.warning(f"Transaction on {', '.join(watch_keys)} gave up after {attempts} attempts")
        raise ConflictError()


def _dump(record: Union[Slot, Booking]) -> str:
    return record.model_dump_json(by_alias=True, exclude_none=True)
