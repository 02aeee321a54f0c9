# whenavailable/schemas/bookings.py

from typing import Optional

from pydantic import Field, field_validator

from .common import (
    BookingStatus,
    CamelModel,
    MeetingLocation,
    strip_optional,
    validate_email,
)
from .slots import SlotSummary, SlotView


class Booking(CamelModel):
    """
    One claim against a slot, stored at booking:{id}.

    Creator-facing fields are copied from the slot at booking time so the
    record stays readable after the slot changes or expires.
    """
    id: str
    slot_id: str
    booked_at: int
    booker_name: str
    booker_email: str
    booker_note: Optional[str] = None
    selected_time_slot_index: int
    selected_time: str = Field(description="UTC ISO-8601, Z suffix")
    timezone: str = Field(description="Booker's display timezone")

    reschedule_count: int = 0
    rescheduled_at: Optional[int] = None
    original_selected_time: Optional[str] = None
    cancelled_at: Optional[int] = None

    creator_name: Optional[str] = None
    creator_email: str
    meeting_purpose: Optional[str] = None
    meeting_location: Optional[MeetingLocation] = None

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    @property
    def status(self) -> BookingStatus:
        return "cancelled" if self.is_cancelled else "confirmed"


# ── Requests ─────────────────────────────────────────────────────────────────


class BookSlotRequest(CamelModel):
    selected_time_slot_index: int
    booker_name: str
    booker_email: str
    booker_note: Optional[str] = None
    timezone: str

    @field_validator("booker_name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = strip_optional(v, 100, "Name")
        if not v:
            raise ValueError("Booker name is required")
        return v

    @field_validator("booker_email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("booker_note")
    @classmethod
    def trim_note(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v, 500, "Note")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Timezone is required")
        return v


class RescheduleRequest(CamelModel):
    selected_time_slot_index: Optional[int] = None


# ── Responses ────────────────────────────────────────────────────────────────


class BookingConfirmation(CamelModel):
    id: str
    slot_id: str
    selected_time: str
    selected_time_slot_index: int
    booker_name: str
    booker_email: str
    creator_name: str
    creator_email: str
    meeting_purpose: Optional[str] = None
    meeting_location: Optional[MeetingLocation] = None


class BookSlotResponse(CamelModel):
    success: bool = True
    booking_id: str
    message: str = "Booking confirmed successfully"
    booking: BookingConfirmation


class BookingView(CamelModel):
    id: str
    slot_id: str
    booked_at: int
    booker_name: str
    booker_email: str
    booker_note: Optional[str] = None
    selected_time: str
    selected_time_slot_index: int
    timezone: str
    status: BookingStatus
    creator_name: Optional[str] = None
    creator_email: str
    meeting_purpose: Optional[str] = None
    meeting_location: Optional[MeetingLocation] = None
    reschedule_count: int
    rescheduled_at: Optional[int] = None
    original_selected_time: Optional[str] = None


class BookingResponse(CamelModel):
    success: bool = True
    booking: BookingView
    slot: Optional[SlotView] = None


class RescheduleSummary(CamelModel):
    id: str
    selected_time: str
    selected_time_slot_index: int
    reschedule_count: int
    rescheduled_at: Optional[int] = None
    original_selected_time: Optional[str] = None


class RescheduleResponse(CamelModel):
    success: bool = True
    message: str = "Booking rescheduled successfully"
    booking: RescheduleSummary


class CancellationSummary(CamelModel):
    id: str
    cancelled_at: int
    original_selected_time: str


class CancelResponse(CamelModel):
    success: bool = True
    message: str = "Booking cancelled successfully"
    booking: CancellationSummary
    slot: Optional[SlotSummary] = None
