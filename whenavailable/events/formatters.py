"""
Message formatting for notification events.

Per event_type + per recipient role (creator / booker). Plain text only.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..utils.timezone import get_zone, parse_utc
from ..errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class Message:
    role: str
    to_email: str
    to_name: Optional[str]
    subject: str
    body: str


def _format_dt(iso_str: Optional[str], tz_name: Optional[str]) -> str:
    """'Monday, Jan 6, 2025 at 09:00 (America/New_York)' in the given zone."""
    if not iso_str:
        return "unknown"
    try:
        dt = parse_utc(iso_str)
    except ValueError:
        return iso_str
    zone_label = "UTC"
    if tz_name:
        try:
            dt = dt.astimezone(get_zone(tz_name))
            zone_label = tz_name
        except ValidationError:
            logger.warning(f"Unknown timezone in event: {tz_name}")
    return f"{dt.strftime('%A, %b %d, %Y at %H:%M')} ({zone_label})"


def _details(booking: dict) -> list[str]:
    lines = [f"Meeting: {booking.get('meetingPurpose') or 'Meeting'}"]
    location = booking.get("meetingLocation")
    if location:
        kind = location.get("type", "other").replace("_", " ")
        details = location.get("details")
        lines.append(f"Location: {kind}" + (f" ({details})" if details else ""))
    if booking.get("bookerNote"):
        lines.append(f"Note: {booking['bookerNote']}")
    return lines


def _manage_link(booking: dict) -> str:
    return f"{settings.base_url.rstrip('/')}/reschedule/{booking['id']}"


def format_event(event_type: str, data: dict) -> list[Message]:
    """Build the creator-facing and booker-facing messages for one event."""
    booking = data["booking"]
    slot = data.get("slot") or {}
    creator_name = booking.get("creatorName") or "Someone"
    booker_name = booking["bookerName"]
    creator_tz = slot.get("timezone")
    booker_tz = booking.get("timezone")

    when_creator = _format_dt(booking.get("selectedTime"), creator_tz)
    when_booker = _format_dt(booking.get("selectedTime"), booker_tz)

    if event_type == "booking_created":
        creator_subject = f"New booking from {booker_name}"
        creator_lead = f"{booker_name} ({booking['bookerEmail']}) booked a time with you."
        booker_subject = f"Booking confirmed with {creator_name}"
        booker_lead = f"Your meeting with {creator_name} is confirmed."
    elif event_type == "booking_rescheduled":
        previous = data.get("previous_selected_time")
        creator_subject = f"{booker_name} rescheduled"
        creator_lead = (
            f"{booker_name} moved the meeting from "
            f"{_format_dt(previous, creator_tz)}."
        )
        booker_subject = f"Meeting with {creator_name} rescheduled"
        booker_lead = f"Your meeting was moved from {_format_dt(previous, booker_tz)}."
    elif event_type == "booking_cancelled":
        creator_subject = f"{booker_name} cancelled"
        creator_lead = f"{booker_name} cancelled the meeting. The time is available again."
        booker_subject = f"Meeting with {creator_name} cancelled"
        booker_lead = "Your meeting has been cancelled."
    else:
        raise ValueError(f"Unsupported event type: {event_type}")

    details = _details(booking)
    creator_body = "\n".join([creator_lead, "", f"When: {when_creator}", *details])
    booker_body = "\n".join([booker_lead, "", f"When: {when_booker}", *details])
    if event_type != "booking_cancelled":
        booker_body += f"\n\nReschedule or cancel: {_manage_link(booking)}"

    return [
        Message(
            role="creator",
            to_email=booking["creatorEmail"],
            to_name=booking.get("creatorName"),
            subject=creator_subject,
            body=creator_body,
        ),
        Message(
            role="booker",
            to_email=booking["bookerEmail"],
            to_name=booker_name,
            subject=booker_subject,
            body=booker_body,
        ),
    ]
