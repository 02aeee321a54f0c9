# whenavailable/utils/timezone.py
"""
Local wall-clock → absolute instant conversion.

Slots store their windows as local date + time strings in the creator's
IANA timezone. Everything downstream (bookings, API views, emails) works with
absolute UTC instants, so this is the only place where local fields are
interpreted.

DST handling follows PEP 495 with fold=0:
- ambiguous times (fall back) resolve to the first occurrence;
- non-existent times (spring forward gap) use the offset in force before the
  transition, i.e. 02:30 on a US spring-forward day becomes 03:30 local.
"""

from datetime import date, datetime, time, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ValidationError


@lru_cache(maxsize=256)
def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise ValidationError(f"Unknown timezone: {name}") from None


def is_valid_timezone(name: str) -> bool:
    if not name:
        return False
    try:
        get_zone(name)
    except ValidationError:
        return False
    return True


def resolve_local_time(date_str: str, time_str: str, tz_name: str) -> datetime:
    """
    Interpret "YYYY-MM-DD" + "HH:MM" as wall-clock time in tz_name.

    Returns an aware datetime in UTC.
    """
    try:
        local_date = date.fromisoformat(date_str)
        local_time = time.fromisoformat(time_str)
    except ValueError:
        raise ValidationError(f"Invalid date/time: {date_str} {time_str}") from None

    local = datetime.combine(local_date, local_time, tzinfo=get_zone(tz_name))
    return local.astimezone(timezone.utc)


def format_utc(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_utc(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
