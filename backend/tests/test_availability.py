from __future__ import annotations

import asyncio
from datetime import date

import pytest

from app.services.slots.availability import AvailabilityEngine
from app.services.slots.cache import NullCache, TTLCache

MONDAY = "2024-06-10"
ALL_MORNING = ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]


def _engine(source, clock=None) -> AvailabilityEngine:
    cache = TTLCache(clock=clock) if clock is not None else TTLCache()
    return AvailabilityEngine(source, cache)


def _fetch(engine: AvailabilityEngine, *args, **kwargs) -> list[str]:
    return asyncio.run(engine.fetch_available_time_slots(*args, **kwargs))


def test_free_morning(monday_source) -> None:
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == ALL_MORNING


def test_booked_slot_is_excluded(monday_source) -> None:
    monday_source.appointments["emp-1"] = [
        {"start_time": f"{MONDAY}T10:00:00", "end_time": f"{MONDAY}T10:30:00", "status": "scheduled"},
    ]
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == [
        "09:00", "09:30", "10:30", "11:00", "11:30",
    ]


def test_full_day_holiday(monday_source) -> None:
    monday_source.holidays[(MONDAY, "owner-1")] = [{"date": MONDAY, "blocking_type": "full_day"}]
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == []


def test_group_service_keeps_slot_until_full(monday_source) -> None:
    monday_source.services["svc-1"]["simultaneous_limit"] = 2
    booking = {"start_time": f"{MONDAY}T10:00:00", "end_time": f"{MONDAY}T10:30:00", "status": "confirmed"}

    monday_source.appointments["emp-1"] = [booking]
    assert "10:00" in _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio")

    monday_source.appointments["emp-1"] = [booking, booking]
    assert "10:00" not in _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio")


def test_no_shift_short_circuits(monday_source) -> None:
    # 2024-06-11 is a Tuesday
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", "2024-06-11", "studio") == []
    assert monday_source.calls["query_shifts"] == 1
    assert monday_source.total_calls == 1


def test_repeat_call_within_ttl_is_served_from_cache(monday_source, clock) -> None:
    engine = _engine(monday_source, clock)

    first = _fetch(engine, "emp-1", "svc-1", MONDAY, "studio")
    calls = monday_source.total_calls
    clock.advance(59)
    second = _fetch(engine, "emp-1", "svc-1", MONDAY, "studio")

    assert first == second
    assert monday_source.total_calls == calls


def test_day_cache_expires_after_a_minute(monday_source, clock) -> None:
    engine = _engine(monday_source, clock)
    _fetch(engine, "emp-1", "svc-1", MONDAY, "studio")

    monday_source.appointments["emp-1"] = [
        {"start_time": f"{MONDAY}T09:00:00", "end_time": f"{MONDAY}T09:30:00", "status": "scheduled"},
    ]
    clock.advance(60)
    # appointments have a 30 s ttl, so the new booking is visible
    assert "09:00" not in _fetch(engine, "emp-1", "svc-1", MONDAY, "studio")


def test_tenants_do_not_share_results(monday_source, clock) -> None:
    engine = _engine(monday_source, clock)
    _fetch(engine, "emp-1", "svc-1", MONDAY, "studio")
    _fetch(engine, "emp-1", "svc-1", MONDAY, "other")
    assert monday_source.calls["query_shifts"] == 2


def test_shift_failure_resolves_to_empty_list(monday_source) -> None:
    monday_source.errors["query_shifts"] = RuntimeError("connection reset")
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == []


def test_degraded_result_is_not_cached(monday_source, clock) -> None:
    engine = _engine(monday_source, clock)
    monday_source.errors["query_shifts"] = RuntimeError("connection reset")
    assert _fetch(engine, "emp-1", "svc-1", MONDAY, "studio") == []

    del monday_source.errors["query_shifts"]
    assert _fetch(engine, "emp-1", "svc-1", MONDAY, "studio") == ALL_MORNING


def test_appointment_failure_fails_open(monday_source) -> None:
    monday_source.appointments["emp-1"] = [
        {"start_time": f"{MONDAY}T10:00:00", "end_time": f"{MONDAY}T10:30:00", "status": "scheduled"},
    ]
    monday_source.errors["query_appointments"] = RuntimeError("timeout")
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == ALL_MORNING


def test_service_and_interval_failures_use_defaults(monday_source) -> None:
    monday_source.services["svc-1"]["duration"] = 90
    monday_source.intervals["studio"] = 60
    monday_source.errors["query_service_info"] = RuntimeError("timeout")
    monday_source.errors["query_tenant_slot_interval"] = RuntimeError("timeout")
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == ALL_MORNING


def test_holiday_failure_treated_as_no_holidays(monday_source) -> None:
    monday_source.holidays[(MONDAY, "owner-1")] = [{"date": MONDAY, "blocking_type": "full_day"}]
    monday_source.errors["query_holidays"] = RuntimeError("timeout")
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, "studio") == ALL_MORNING


def test_invalid_date_is_no_availability(monday_source) -> None:
    assert _fetch(_engine(monday_source), "emp-1", "svc-1", "2024-13-45", "studio") == []


def test_employee_caller_sees_owner_holidays(monday_source) -> None:
    monday_source.owners["user-emp-1"] = "owner-1"
    monday_source.holidays[(MONDAY, "owner-1")] = [
        {"date": MONDAY, "blocking_type": "custom", "custom_start_time": "09:00", "custom_end_time": "10:00"},
    ]
    slots = _fetch(_engine(monday_source), "emp-1", "svc-1", MONDAY, caller_id="user-emp-1")
    assert slots == ["10:00", "10:30", "11:00", "11:30"]


def test_cancellation_is_not_swallowed(monday_source) -> None:
    monday_source.errors["query_shifts"] = asyncio.CancelledError()
    with pytest.raises(asyncio.CancelledError):
        _fetch(AvailabilityEngine(monday_source, NullCache()), "emp-1", "svc-1", MONDAY, "studio")


class TestBookingWindow:
    def _check(self, source, target: str, today: date = date(2024, 6, 1)) -> bool:
        engine = AvailabilityEngine(source, NullCache())
        return asyncio.run(engine.is_within_booking_window("svc-1", target, "studio", today=today))

    def test_past_dates_are_outside(self, monday_source) -> None:
        assert not self._check(monday_source, "2024-05-31")

    def test_service_future_limit(self, monday_source) -> None:
        assert self._check(monday_source, "2024-07-01")
        assert not self._check(monday_source, "2024-07-02")

    def test_horizon_when_service_has_no_limit(self, monday_source) -> None:
        monday_source.services["svc-1"]["future_limit"] = None
        assert self._check(monday_source, "2024-07-31")
        assert not self._check(monday_source, "2024-08-01")

    def test_zero_day_limit_means_same_day_only(self, monday_source) -> None:
        monday_source.services["svc-1"]["future_limit"] = 0
        assert self._check(monday_source, "2024-06-01")
        assert not self._check(monday_source, "2024-06-02")
