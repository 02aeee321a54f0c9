# whenavailable/routers/debug.py
"""
Debug endpoints (TTL inspection).
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_store
from ..services.slots import SlotsRedisStore

router = APIRouter(prefix="/debug", tags=["debug"])


def format_ttl(seconds: int) -> str:
    if seconds == -2:
        return "Key does not exist"
    if seconds == -1:
        return "No expiration set"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


@router.get("/ttl/{slot_id}")
def get_slot_ttl(slot_id: str, store: SlotsRedisStore = Depends(get_store)):
    """TTL of a slot and of every booking it references."""
    slot = store.get_slot(slot_id)
    slot_ttl = store.slot_ttl(slot_id)

    bookings = []
    for booking_id in (slot.bookings if slot else []):
        ttl = store.booking_ttl(booking_id)
        bookings.append({
            "id": booking_id,
            "exists": ttl != -2,
            "ttl": ttl,
            "ttlFormatted": format_ttl(ttl),
        })

    return {
        "slotId": slot_id,
        "slot": {
            "exists": slot is not None,
            "bookingsCount": slot.bookings_count if slot else None,
            "ttl": slot_ttl,
            "ttlFormatted": format_ttl(slot_ttl),
        },
        "bookings": bookings,
    }
