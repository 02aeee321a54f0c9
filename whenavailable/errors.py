# whenavailable/errors.py
"""
Domain errors.

Every error carries an HTTP status, a short machine-readable key and a
human-readable message. Services raise them; main.py renders them as
{"success": false, "error": key, "message": message}.

410 is used for things that existed but are no longer usable,
404 only for things that never existed (or whose TTL already fired).
"""

from typing import Any, Optional


class BookingError(Exception):
    status_code: int = 500
    error: str = "internal_error"
    message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.error,
            "message": self.message,
            **self.extra,
        }


# ── 400 ──────────────────────────────────────────────────────────────────────


class ValidationError(BookingError):
    status_code = 400
    error = "validation_error"
    message = "Invalid request."


class InvalidSelection(ValidationError):
    error = "invalid_selection"
    message = "Invalid time slot selection."


# ── 404 ──────────────────────────────────────────────────────────────────────


class NotFoundError(BookingError):
    status_code = 404
    error = "not_found"
    message = "Not found."


class SlotNotFound(NotFoundError):
    error = "slot_not_found"
    message = "This link does not exist or has expired."


class BookingNotFound(NotFoundError):
    error = "booking_not_found"
    message = "This booking does not exist or has expired."


# ── 403 / 409 / 410 / 429 ────────────────────────────────────────────────────


class RescheduleLimitReached(BookingError):
    status_code = 403
    error = "reschedule_limit_reached"
    message = "This booking has already been rescheduled the maximum number of times."


class ConflictError(BookingError):
    status_code = 409
    error = "conflict"
    message = "The slot was modified concurrently. Please refresh and try again."


class GoneError(BookingError):
    status_code = 410
    error = "gone"
    message = "This is no longer available."


class Expired(GoneError):
    error = "slot_expired"
    message = "This link has expired."


class FullyBooked(GoneError):
    error = "fully_booked"
    message = "This link has already been used and is no longer available."


class SlotTaken(GoneError):
    error = "slot_taken"
    message = "This time slot has already been booked. Please select a different time."


class AlreadyCancelled(GoneError):
    error = "booking_cancelled"
    message = "This booking has been cancelled."


class RateLimitExceeded(BookingError):
    status_code = 429
    error = "rate_limited"
    message = "Rate limit exceeded."


# ── 500 ──────────────────────────────────────────────────────────────────────


class DependencyError(BookingError):
    status_code = 500
    error = "dependency_unavailable"
    message = "Storage is temporarily unavailable. Please try again."
