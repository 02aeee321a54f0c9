# whenavailable/schemas/slots.py
"""
Pydantic schemas for slots: the stored record, API requests and API views.

The stored record and the API share camelCase field names (Redis JSON is
read by older clients too).
"""

import re
from datetime import date
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ..utils.timezone import is_valid_timezone
from .common import (
    BookingMode,
    CamelModel,
    MeetingLocation,
    SlotStatus,
    strip_optional,
    validate_email,
)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TimeSlot(CamelModel):
    """One window, local to the slot's timezone."""
    date: str = Field(description="YYYY-MM-DD")
    start_time: str = Field(description="HH:MM (24-hour)")
    end_time: str = Field(description="HH:MM (24-hour)")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        if not DATE_RE.match(v):
            raise ValueError("date must be in YYYY-MM-DD format")
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"{v} is not a calendar date") from None
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_RE.match(v):
            raise ValueError("time must be in HH:MM format")
        return v

    @model_validator(mode="after")
    def check_range(self) -> "TimeSlot":
        # HH:MM strings compare correctly as text
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


# ── Stored record ────────────────────────────────────────────────────────────


class Slot(CamelModel):
    """
    Creator's offer, stored at slot:{id}.

    Status is never stored; see status_at().
    """
    id: str
    created_at: int
    expires_at: int
    expiration_days: int = 1
    creator_name: Optional[str] = None
    creator_email: str
    meeting_purpose: Optional[str] = None
    meeting_location: Optional[MeetingLocation] = None
    time_slots: list[TimeSlot]
    timezone: str
    booking_mode: BookingMode = "individual"
    max_bookings: int = 1
    bookings_count: int = 0
    booked_time_slot_indices: list[int] = []
    bookings: list[str] = []
    view_count: int = 0

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

    @property
    def is_full(self) -> bool:
        return self.bookings_count >= self.max_bookings

    @property
    def tracks_indices(self) -> bool:
        return self.booking_mode == "individual"

    def status_at(self, now: int) -> SlotStatus:
        if self.is_expired(now):
            return "expired"
        if self.is_full:
            return "booked"
        return "active"


# ── Requests ─────────────────────────────────────────────────────────────────


class CreateSlotRequest(CamelModel):
    creator_name: Optional[str] = None
    creator_email: str
    meeting_purpose: Optional[str] = None
    meeting_location: Optional[MeetingLocation] = None
    time_slots: list[TimeSlot] = Field(min_length=1)
    timezone: str
    # upper bounds and allowed lifetimes are enforced from LifecycleConfig
    max_bookings: int = Field(1, ge=1)
    expiration_days: int = 1
    booking_mode: BookingMode = "individual"

    @field_validator("creator_email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("creator_name")
    @classmethod
    def trim_name(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v, 100, "Name")

    @field_validator("meeting_purpose")
    @classmethod
    def trim_purpose(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v, 200, "Purpose")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v


# ── Responses ────────────────────────────────────────────────────────────────


class CreateSlotResponse(CamelModel):
    success: bool = True
    slot_id: str
    shareable_url: str
    expires_at: int
    max_bookings: int
    expiration_days: int


class SlotWindow(CamelModel):
    """A TimeSlot resolved to absolute UTC instants."""
    start: str
    end: str


class SlotView(CamelModel):
    """Public view of a slot (creator email is not exposed)."""
    id: str
    creator_name: str
    meeting_purpose: str
    meeting_location: Optional[MeetingLocation] = None
    time_slots: list[SlotWindow]
    timezone: str
    expires_at: int
    expiration_days: int
    status: SlotStatus
    booking_mode: BookingMode
    max_bookings: int
    bookings_count: int
    booked_time_slot_indices: list[int]


class SlotResponse(CamelModel):
    success: bool = True
    slot: SlotView


class SlotSummary(CamelModel):
    id: str
    status: SlotStatus
    bookings_count: int
    max_bookings: int
