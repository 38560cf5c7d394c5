# backend/app/services/slots/records.py
"""
Plain records exchanged between the data source, the providers and the
slot calculation.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import minutes_to_time_str, time_str_to_minutes


def _normalize_time_str(value: str) -> str:
    """Normalize "HH:MM:SS" to "HH:MM", rejecting anything that is not a time of day."""
    return minutes_to_time_str(time_str_to_minutes(value))


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"
    BLOCKED = "blocked"


# Statuses that hold a place in the schedule.
OCCUPYING_STATUSES: tuple[AppointmentStatus, ...] = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.BLOCKED,
)


class BlockingType(str, Enum):
    FULL_DAY = "full_day"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    CUSTOM = "custom"


class Shift(BaseModel):
    """Working window of an employee on one weekday."""
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        return _normalize_time_str(value)


class ServiceInfo(BaseModel):
    """Duration and booking constraints of a service."""
    duration_minutes: int = Field(gt=0)
    simultaneous_limit: int = Field(ge=1)
    future_booking_limit_days: int | None = None
    cancel_min_hours: int | None = None

    model_config = ConfigDict(frozen=True)


class ExistingAppointment(BaseModel):
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_naive_local(cls, value: datetime) -> datetime:
        # Slot arithmetic is naive local time
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value


class Holiday(BaseModel):
    date: date
    is_active: bool = True
    blocking_type: BlockingType = BlockingType.FULL_DAY
    custom_start_time: str | None = None
    custom_end_time: str | None = None
    name: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("custom_start_time", "custom_end_time")
    @classmethod
    def _normalize_time(cls, value: str | None) -> str | None:
        return _normalize_time_str(value) if value else None


class TenantContext(BaseModel):
    """
    Scope a query runs under.

    slug: public business slug (booking pages)
    caller_id: authenticated identity (dashboard users, employees)
    """
    slug: str | None = None
    caller_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def cache_token(self) -> str:
        return f"{self.slug or ''}:{self.caller_id or ''}"
