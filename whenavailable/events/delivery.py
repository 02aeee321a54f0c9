"""
Notification delivery.

Sends formatted messages through the SendGrid v3 mail API. Each recipient is
delivered independently: one failed email never stops the other.
"""

import logging
from typing import Iterable

import httpx

from ..config import settings
from .formatters import Message, format_event

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


async def send_email(client: httpx.AsyncClient, message: Message) -> bool:
    """Send one email. Returns False (and logs) on any failure."""
    to = {"email": message.to_email}
    if message.to_name:
        to["name"] = message.to_name

    payload = {
        "personalizations": [{"to": [to]}],
        "from": {
            "email": settings.sendgrid_from_email,
            "name": settings.sendgrid_from_name,
        },
        "subject": message.subject,
        "content": [{"type": "text/plain", "value": message.body}],
    }

    try:
        response = await client.post(
            SENDGRID_URL,
            json=payload,
            headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
            timeout=10.0,
        )
        response.raise_for_status()
        return True
    except httpx.HTTPError as e:
        logger.error(f"Email to {message.to_email} failed: {e}")
        return False


async def deliver_booking_event(
    event_type: str,
    data: dict,
    client: httpx.AsyncClient | None = None,
    roles: Iterable[str] | None = None,
) -> dict[str, bool]:
    """
    Format and send the messages for one event.

    roles limits delivery to some recipients ("creator", "booker"); a retry
    uses it to skip recipients that already got their email.

    Returns {role: sent} for every message attempted. Nothing is attempted
    (empty dict) when email is not configured.
    """
    messages = format_event(event_type, data)
    if roles is not None:
        wanted = set(roles)
        messages = [m for m in messages if m.role in wanted]

    if not settings.email_configured:
        logger.info(
            f"Email not configured, skipping {event_type} for booking={data.get('booking_id')}"
        )
        return {}

    results: dict[str, bool] = {}
    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        for message in messages:
            results[message.role] = await send_email(client, message)
    finally:
        if owns_client:
            await client.aclose()

    if all(results.values()):
        logger.info(f"{event_type} emails sent for booking={data.get('booking_id')}: {sorted(results)}")
    else:
        logger.warning(f"Some {event_type} emails failed for booking={data.get('booking_id')}: {results}")
    return results
