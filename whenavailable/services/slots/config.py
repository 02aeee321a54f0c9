# whenavailable/services/slots/config.py
"""
Lifecycle configuration for slots and bookings.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...utils.clock import SECONDS_PER_DAY


@dataclass(frozen=True)
class LifecycleConfig:
    """
    Business limits for the slot/booking lifecycle.

    Attributes:
        expiration_days_options: Allowed link lifetimes (days)
        max_time_slots: Windows per slot
        max_bookings: Upper bound for slot.maxBookings
        max_reschedules: Reschedules allowed per booking
        cancelled_retention_seconds: Minimum TTL of a cancelled booking record
        fallback_ttl_seconds: TTL used when the source key reports none
        transaction_retries: WATCH/MULTI attempts before giving up
        slot_id_length: Length of generated slot ids
    """
    expiration_days_options: tuple[int, ...] = (1, 3, 7)
    max_time_slots: int = 5
    max_bookings: int = 20
    max_reschedules: int = 3
    cancelled_retention_seconds: int = SECONDS_PER_DAY
    fallback_ttl_seconds: int = 3600
    transaction_retries: int = 5
    slot_id_length: int = 8

    def __post_init__(self):
        """Validate configuration."""
        if self.transaction_retries < 1:
            raise ValueError(f"transaction_retries must be >= 1, got {self.transaction_retries}")
        if self.max_reschedules < 0:
            raise ValueError(f"max_reschedules must be >= 0, got {self.max_reschedules}")

    def ttl_for_days(self, expiration_days: int) -> int:
        """Slot TTL in seconds."""
        return expiration_days * SECONDS_PER_DAY


@lru_cache
def get_lifecycle_config() -> LifecycleConfig:
    """Get lifecycle configuration (singleton)."""
    return LifecycleConfig()
