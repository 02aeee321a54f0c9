# whenavailable/routers/slots.py
"""
Slots API endpoints.

POST /slots              - create a slot and its shareable link
GET  /slots/{id}         - public view for the booking page
POST /slots/{id}/book    - claim one window
"""

import logging

from fastapi import APIRouter, Depends, status
from redis import Redis

from ..config import settings
from ..dependencies import get_booking_manager, get_slot_manager
from ..errors import Expired, FullyBooked, SlotNotFound
from ..middleware.rate_limit import limit_slot_creation
from ..redis_client import get_redis
from ..schemas.bookings import BookingConfirmation, BookSlotRequest, BookSlotResponse
from ..schemas.slots import (
    CreateSlotRequest,
    CreateSlotResponse,
    Slot,
    SlotResponse,
    SlotView,
    SlotWindow,
)
from ..services.bookings import BookingLifecycleManager
from ..services.events import emit_booking_event
from ..services.slots import SlotLifecycleManager
from ..utils.timezone import format_utc, resolve_local_time

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["slots"])


def build_slot_view(slot: Slot, now: int) -> SlotView:
    """Public slot view with windows resolved to UTC."""
    windows = [
        SlotWindow(
            start=format_utc(resolve_local_time(ts.date, ts.start_time, slot.timezone)),
            end=format_utc(resolve_local_time(ts.date, ts.end_time, slot.timezone)),
        )
        for ts in slot.time_slots
    ]
    return SlotView(
        id=slot.id,
        creator_name=slot.creator_name or "Someone",
        meeting_purpose=slot.meeting_purpose or "Meeting",
        meeting_location=slot.meeting_location,
        time_slots=windows,
        timezone=slot.timezone,
        expires_at=slot.expires_at,
        expiration_days=slot.expiration_days,
        status=slot.status_at(now),
        booking_mode=slot.booking_mode,
        max_bookings=slot.max_bookings,
        bookings_count=slot.bookings_count,
        booked_time_slot_indices=slot.booked_time_slot_indices,
    )


@router.post("", response_model=CreateSlotResponse, status_code=status.HTTP_201_CREATED)
@router.post(
    "/create",
    response_model=CreateSlotResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
def create_slot(
    data: CreateSlotRequest,
    _limit=Depends(limit_slot_creation),
    slots: SlotLifecycleManager = Depends(get_slot_manager),
):
    """Create a slot; the link expires after expirationDays."""
    slot = slots.create_slot(data)
    return CreateSlotResponse(
        slot_id=slot.id,
        shareable_url=settings.shareable_url(slot.id),
        expires_at=slot.expires_at,
        max_bookings=slot.max_bookings,
        expiration_days=slot.expiration_days,
    )


@router.get("/{slot_id}", response_model=SlotResponse)
def get_slot(
    slot_id: str,
    slots: SlotLifecycleManager = Depends(get_slot_manager),
):
    """Slot details for the booking page. 410 once booked out or expired."""
    slot = slots.store.get_slot(slot_id)
    if slot is None:
        raise SlotNotFound()

    slot_status = slot.status_at(slots.clock())
    if slot_status == "expired":
        raise Expired(status="expired")
    if slot_status == "booked":
        raise FullyBooked(status="booked")

    slots.increment_view_count(slot_id)
    return SlotResponse(slot=build_slot_view(slot, slots.clock()))


@router.post("/{slot_id}/book", response_model=BookSlotResponse)
def book_slot(
    slot_id: str,
    data: BookSlotRequest,
    bookings: BookingLifecycleManager = Depends(get_booking_manager),
    redis: Redis = Depends(get_redis),
):
    """Claim one window of the slot."""
    booking, slot = bookings.create_booking(slot_id, data)

    emit_booking_event(redis, "booking_created", slot, booking)

    return BookSlotResponse(
        booking_id=booking.id,
        booking=BookingConfirmation(
            id=booking.id,
            slot_id=slot.id,
            selected_time=booking.selected_time,
            selected_time_slot_index=booking.selected_time_slot_index,
            booker_name=booking.booker_name,
            booker_email=booking.booker_email,
            creator_name=slot.creator_name or "Someone",
            creator_email=slot.creator_email,
            meeting_purpose=slot.meeting_purpose,
            meeting_location=slot.meeting_location,
        ),
    )
