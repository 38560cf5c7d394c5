# backend/app/services/slots/filtering.py
"""
Conflict filtering of candidate slots.

A candidate s with the service duration d occupies [s, s + d). It is
dropped when:
  - any full_day holiday exists for the date (the whole day is dropped)
  - a morning holiday exists and s starts before 12:00
  - an afternoon holiday exists and s starts at 12:00 or later
  - it overlaps the [start, end) range of a custom holiday
  - the number of appointments overlapping it reaches the simultaneous limit

Overlap counting rather than a yes/no conflict is what lets group services
show a slot as open while it still has room.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, TypeVar

from .config import parse_date, time_str_to_minutes
from .records import BlockingType, ExistingAppointment, Holiday

T = TypeVar("T", int, datetime)

NOON_MINUTES = 12 * 60


def intervals_overlap(start1: T, end1: T, start2: T, end2: T) -> bool:
    """Half-open overlap test; ranges that only touch do not overlap."""
    return start1 < end2 and start2 < end1


def count_overlapping(
    start: datetime,
    end: datetime,
    appointments: Iterable[ExistingAppointment],
) -> int:
    return sum(
        1 for appt in appointments
        if intervals_overlap(start, end, appt.start_time, appt.end_time)
    )


def filter_available_slots(
    candidates: list[str],
    appointments: list[ExistingAppointment],
    target_date: str | date,
    service_duration_minutes: int,
    simultaneous_limit: int,
    holidays: list[Holiday],
) -> list[str]:
    """
    Keep the candidates that are still bookable on target_date.

    Returns:
        The accepted candidates, in their original order.
    """
    if not candidates:
        return []

    day = parse_date(target_date)
    day_holidays = [h for h in holidays if h.is_active and h.date == day]

    if any(h.blocking_type == BlockingType.FULL_DAY for h in day_holidays):
        return []

    morning_blocked = any(h.blocking_type == BlockingType.MORNING for h in day_holidays)
    afternoon_blocked = any(h.blocking_type == BlockingType.AFTERNOON for h in day_holidays)
    custom_blocks = [
        (time_str_to_minutes(h.custom_start_time), time_str_to_minutes(h.custom_end_time))
        for h in day_holidays
        if h.blocking_type == BlockingType.CUSTOM
        and h.custom_start_time
        and h.custom_end_time
    ]

    midnight = datetime.combine(day, datetime.min.time())
    available = []

    for slot in candidates:
        start_min = time_str_to_minutes(slot)
        end_min = start_min + service_duration_minutes

        if morning_blocked and start_min < NOON_MINUTES:
            continue
        if afternoon_blocked and start_min >= NOON_MINUTES:
            continue
        if any(intervals_overlap(start_min, end_min, b_start, b_end) for b_start, b_end in custom_blocks):
            continue

        slot_start = midnight + timedelta(minutes=start_min)
        slot_end = slot_start + timedelta(minutes=service_duration_minutes)
        if count_overlapping(slot_start, slot_end, appointments) >= simultaneous_limit:
            continue

        available.append(slot)

    return available
