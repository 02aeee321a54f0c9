# whenavailable/routers/bookings.py
"""
Booking management endpoints, addressed by the booking's own id.

GET    /bookings/{id}             - booking + parent slot
PUT    /bookings/{id}/reschedule  - move to another window (max 3 times)
DELETE /bookings/{id}/cancel      - cancel and free the window
"""

from fastapi import APIRouter, Depends
from redis import Redis

from ..dependencies import get_booking_manager
from ..errors import AlreadyCancelled, ValidationError
from ..redis_client import get_redis
from ..schemas.bookings import (
    BookingResponse,
    BookingView,
    CancellationSummary,
    CancelResponse,
    RescheduleRequest,
    RescheduleResponse,
    RescheduleSummary,
)
from ..schemas.slots import SlotSummary
from ..services.bookings import BookingLifecycleManager
from ..services.events import emit_booking_event
from .slots import build_slot_view

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    bookings: BookingLifecycleManager = Depends(get_booking_manager),
):
    booking, slot = bookings.get_booking(booking_id)

    if booking.is_cancelled:
        raise AlreadyCancelled(
            booking={
                "id": booking.id,
                "cancelledAt": booking.cancelled_at,
                "originalSelectedTime": booking.original_selected_time or booking.selected_time,
            },
        )

    return BookingResponse(
        booking=BookingView(
            **booking.model_dump(exclude={"cancelled_at"}),
            status=booking.status,
        ),
        slot=build_slot_view(slot, bookings.clock()) if slot else None,
    )


@router.put("/{booking_id}/reschedule", response_model=RescheduleResponse)
def reschedule_booking(
    booking_id: str,
    data: RescheduleRequest,
    bookings: BookingLifecycleManager = Depends(get_booking_manager),
    redis: Redis = Depends(get_redis),
):
    if data.selected_time_slot_index is None:
        raise ValidationError("Selected time slot index is required")

    result = bookings.reschedule_booking(booking_id, data.selected_time_slot_index)

    emit_booking_event(
        redis,
        "booking_rescheduled",
        result.slot,
        result.booking,
        previous_selected_time=result.previous_selected_time,
    )

    booking = result.booking
    return RescheduleResponse(
        booking=RescheduleSummary(
            id=booking.id,
            selected_time=booking.selected_time,
            selected_time_slot_index=booking.selected_time_slot_index,
            reschedule_count=booking.reschedule_count,
            rescheduled_at=booking.rescheduled_at,
            original_selected_time=booking.original_selected_time,
        ),
    )


@router.delete("/{booking_id}/cancel", response_model=CancelResponse)
def cancel_booking(
    booking_id: str,
    bookings: BookingLifecycleManager = Depends(get_booking_manager),
    redis: Redis = Depends(get_redis),
):
    result = bookings.cancel_booking(booking_id)
    booking, slot = result.booking, result.slot

    emit_booking_event(redis, "booking_cancelled", slot, booking)

    return CancelResponse(
        booking=CancellationSummary(
            id=booking.id,
            cancelled_at=booking.cancelled_at,
            original_selected_time=booking.original_selected_time or booking.selected_time,
        ),
        slot=SlotSummary(
            id=slot.id,
            status=slot.status_at(bookings.clock()),
            bookings_count=slot.bookings_count,
            max_bookings=slot.max_bookings,
        ) if slot else None,
    )
