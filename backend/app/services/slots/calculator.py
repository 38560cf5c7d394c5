# backend/app/services/slots/calculator.py
"""
Candidate slot generation.

A candidate is a start time "HH:MM" on the shift grid:
  shift_start, shift_start + interval, shift_start + 2 * interval, ...
kept while start + service duration still ends within the shift.

Contains:
✓ shift window
✓ slot interval of the business
✓ service duration

Does NOT contain:
✗ Appointments, capacity (see filtering)
✗ Holidays (see filtering)
"""

from .config import minutes_to_time_str, time_str_to_minutes


def generate_slots(
    shift_start: str,
    shift_end: str,
    interval_minutes: int,
    service_duration_minutes: int,
) -> list[str]:
    """
    Generate candidate start times within a shift.

    Returns:
        Ascending "HH:MM" strings. Empty when the shift is empty or shorter
        than the service.
    """
    if interval_minutes <= 0:
        raise ValueError(f"interval_minutes must be positive, got {interval_minutes}")
    if service_duration_minutes <= 0:
        raise ValueError(
            f"service_duration_minutes must be positive, got {service_duration_minutes}"
        )

    start_min = time_str_to_minutes(shift_start)
    end_min = time_str_to_minutes(shift_end)

    slots: list[str] = []
    t = start_min
    while t + service_duration_minutes <= end_min:
        slots.append(minutes_to_time_str(t))
        t += interval_minutes

    return slots
