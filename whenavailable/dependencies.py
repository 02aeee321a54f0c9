# whenavailable/dependencies.py

from fastapi import Depends
from redis import Redis

from .redis_client import get_redis
from .services.bookings import BookingLifecycleManager
from .services.slots import SlotLifecycleManager, SlotsRedisStore, get_lifecycle_config
from .utils.clock import now_ms


def get_store(redis: Redis = Depends(get_redis)) -> SlotsRedisStore:
    return SlotsRedisStore(redis, get_lifecycle_config())


def get_clock():
    return now_ms


def get_slot_manager(
    store: SlotsRedisStore = Depends(get_store),
    clock=Depends(get_clock),
) -> SlotLifecycleManager:
    return SlotLifecycleManager(store, clock=clock)


def get_booking_manager(
    slots: SlotLifecycleManager = Depends(get_slot_manager),
) -> BookingLifecycleManager:
    return BookingLifecycleManager(slots.store, slots, clock=slots.clock)
