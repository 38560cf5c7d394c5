from __future__ import annotations

from datetime import date

import pytest

from app.services.slots.config import (
    BookingConfig,
    day_of_week,
    minutes_to_time_str,
    parse_date,
    time_str_to_minutes,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-06-09", 0),  # Sunday
        ("2024-06-10", 1),  # Monday
        ("2024-06-15", 6),  # Saturday
        ("2024-03-31", 0),  # DST switch in Europe
        ("2024-11-03", 0),  # DST switch in the US
    ],
)
def test_day_of_week_counts_from_sunday(value: str, expected: int) -> None:
    assert day_of_week(value) == expected


def test_day_of_week_accepts_date_objects() -> None:
    assert day_of_week(date(2024, 6, 10)) == 1


def test_parse_date_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_date("10/06/2024")


def test_time_str_round_trip_and_seconds() -> None:
    assert time_str_to_minutes("09:30") == 570
    assert time_str_to_minutes("09:30:00") == 570
    assert time_str_to_minutes("24:00") == 1440
    assert minutes_to_time_str(570) == "09:30"
    assert minutes_to_time_str(0) == "00:00"


@pytest.mark.parametrize("value", ["", "9", "25:00", "10:60", "24:30", "ab:cd"])
def test_time_str_to_minutes_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        time_str_to_minutes(value)


def test_booking_config_defaults() -> None:
    config = BookingConfig()
    assert config.default_service_duration_minutes == 30
    assert config.default_simultaneous_limit == 3
    assert config.default_slot_interval_minutes == 30
    assert config.appointment_ttl_seconds == 30
    assert config.day_slots_ttl_seconds == 60
    assert config.shift_ttl_seconds == 300


def test_booking_config_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        BookingConfig(default_slot_interval_minutes=0)
