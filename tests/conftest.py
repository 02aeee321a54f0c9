import fakeredis
import pytest
from fastapi.testclient import TestClient

from whenavailable.dependencies import get_clock
from whenavailable.main import app
from whenavailable.redis_client import get_redis
from whenavailable.schemas.bookings import BookSlotRequest
from whenavailable.schemas.slots import CreateSlotRequest
from whenavailable.services.bookings import BookingLifecycleManager
from whenavailable.services.slots import LifecycleConfig, SlotLifecycleManager, SlotsRedisStore

# 2025-01-01T00:00:00Z
START_MS = 1735689600000


class FakeClock:
    """Controllable unix-ms clock."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis(server):
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(redis):
    return SlotsRedisStore(redis, LifecycleConfig())


@pytest.fixture
def slots(store, clock):
    return SlotLifecycleManager(store, clock=clock)


@pytest.fixture
def bookings(store, slots, clock):
    return BookingLifecycleManager(store, slots, clock=clock)


def slot_request(**overrides) -> CreateSlotRequest:
    data = {
        "creatorName": "Ada",
        "creatorEmail": "ada@example.com",
        "meetingPurpose": "Intro call",
        "timeSlots": [
            {"date": "2025-01-15", "startTime": "09:00", "endTime": "10:00"},
            {"date": "2025-01-16", "startTime": "14:00", "endTime": "15:00"},
            {"date": "2025-01-17", "startTime": "11:30", "endTime": "12:00"},
        ],
        "timezone": "America/New_York",
        "maxBookings": 1,
        "expirationDays": 1,
        "bookingMode": "individual",
    }
    data.update(overrides)
    return CreateSlotRequest.model_validate(data)


def book_request(index: int = 0, **overrides) -> BookSlotRequest:
    data = {
        "selectedTimeSlotIndex": index,
        "bookerName": "Grace",
        "bookerEmail": "grace@example.com",
        "timezone": "Europe/London",
    }
    data.update(overrides)
    return BookSlotRequest.model_validate(data)


@pytest.fixture
def make_slot(slots):
    def _make(**overrides):
        return slots.create_slot(slot_request(**overrides))
    return _make


@pytest.fixture
def client(redis, clock):
    app.dependency_overrides[get_redis] = lambda: redis
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
