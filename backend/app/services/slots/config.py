# backend/app/services/slots/config.py
"""
Booking configuration and time helpers for slots calculation.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from functools import lru_cache


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the availability engine.

    Attributes:
        default_service_duration_minutes: Used when a service has no duration
        default_simultaneous_limit: Used when a service has no limit set
        default_slot_interval_minutes: Used when the business has no interval
        default_cancel_min_hours: Minimum notice for cancellations
        horizon_days: Booking window when a service has no future limit
        *_ttl_seconds: Cache lifetime per kind of data
    """
    default_service_duration_minutes: int = 30
    default_simultaneous_limit: int = 3
    default_slot_interval_minutes: int = 30
    default_cancel_min_hours: int = 1
    horizon_days: int = 60

    shift_ttl_seconds: float = 300
    service_ttl_seconds: float = 300
    holiday_ttl_seconds: float = 300
    interval_ttl_seconds: float = 300
    appointment_ttl_seconds: float = 30  # bookings change in near real time
    day_slots_ttl_seconds: float = 60

    def __post_init__(self):
        """Validate configuration."""
        if self.default_service_duration_minutes <= 0:
            raise ValueError(
                f"default_service_duration_minutes must be positive, got {self.default_service_duration_minutes}"
            )
        if self.default_slot_interval_minutes <= 0:
            raise ValueError(
                f"default_slot_interval_minutes must be positive, got {self.default_slot_interval_minutes}"
            )
        if self.default_simultaneous_limit < 1:
            raise ValueError(
                f"default_simultaneous_limit must be at least 1, got {self.default_simultaneous_limit}"
            )


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton)."""
    return BookingConfig()


# ── Time helpers ─────────────────────────────────────────────────────────


def time_str_to_minutes(value: str) -> int:
    """
    Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight.

    "24:00" is accepted as the end of the day.
    """
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"Invalid time string: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str | date) -> date:
    """Parse "YYYY-MM-DD" into a date (dates pass through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def day_of_week(value: str | date) -> int:
    """
    Weekday of a calendar date, 0 = Sunday .. 6 = Saturday.

    The weekday is taken from the date at noon, so a timezone or DST shift
    can never move the reference point across a day boundary.
    """
    noon = datetime.combine(parse_date(value), time(12, 0))
    return (noon.weekday() + 1) % 7
