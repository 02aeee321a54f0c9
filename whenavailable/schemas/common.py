# whenavailable/schemas/common.py

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BookingMode = Literal["individual", "group"]
SlotStatus = Literal["active", "booked", "expired"]
BookingStatus = Literal["confirmed", "cancelled"]


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire and in Redis."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def validate_email(value: str) -> str:
    value = (value or "").strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def strip_optional(value: Optional[str], max_length: int, label: str) -> Optional[str]:
    """Trim optional text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValueError(f"{label} must be {max_length} characters or less")
    return value


class MeetingLocation(CamelModel):
    type: Literal["in_person", "phone", "video", "other"]
    details: Optional[str] = None

    @field_validator("details")
    @classmethod
    def trim_details(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v, 500, "Location details")
