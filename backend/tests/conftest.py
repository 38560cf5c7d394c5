from __future__ import annotations

from collections import Counter
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models.generated import (
    Appointments,
    Base,
    Employees,
    EmployeeShifts,
    Holidays,
    Profiles,
    Services,
)
from app.services.slots.records import TenantContext


class FakeDataSource:
    """
    In-memory SlotDataSource.

    Tests fill the dicts, count calls per method and can make any method
    raise by putting an exception into `errors`.
    """

    def __init__(self) -> None:
        self.shifts: dict[tuple[str, int], list[dict[str, Any]]] = {}
        self.services: dict[str, dict[str, Any]] = {}
        self.appointments: dict[str, list[dict[str, Any]]] = {}
        self.holidays: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.intervals: dict[str | None, int | None] = {}
        self.owners: dict[str | None, str | None] = {}
        self.errors: dict[str, BaseException] = {}
        self.calls: Counter[str] = Counter()
        self.tenant_slugs: list[str | None] = []
        self.last_appointment_query: tuple | None = None

    def _hit(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.errors:
            raise self.errors[name]

    async def set_tenant_context(self, tenant_slug: str | None) -> None:
        self.tenant_slugs.append(tenant_slug)

    async def query_shifts(self, employee_id: str, day_of_week: int) -> list[dict[str, Any]]:
        self._hit("query_shifts")
        return list(self.shifts.get((employee_id, day_of_week), []))

    async def query_service_info(self, service_id: str) -> dict[str, Any] | None:
        self._hit("query_service_info")
        return self.services.get(service_id)

    async def query_appointments(self, employee_id, range_start, range_end, statuses):
        self._hit("query_appointments")
        self.last_appointment_query = (employee_id, range_start, range_end, list(statuses))
        return list(self.appointments.get(employee_id, []))

    async def query_holidays(self, date: str, owner_id: str) -> list[dict[str, Any]]:
        self._hit("query_holidays")
        return list(self.holidays.get((date, owner_id), []))

    async def query_tenant_slot_interval(self, tenant: TenantContext) -> int | None:
        self._hit("query_tenant_slot_interval")
        return self.intervals.get(tenant.slug)

    async def resolve_effective_owner(self, tenant: TenantContext) -> str | None:
        self._hit("resolve_effective_owner")
        key = tenant.slug or tenant.caller_id
        return self.owners.get(key, key)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monday_source(source: FakeDataSource) -> FakeDataSource:
    """Employee emp-1 works Mondays 09:00-12:00, service svc-1 takes 30 min."""
    source.shifts[("emp-1", 1)] = [{"start_time": "09:00", "end_time": "12:00"}]
    source.services["svc-1"] = {
        "duration": 30,
        "simultaneous_limit": 1,
        "future_limit": 30,
        "cancel_min_hours": 2,
    }
    source.intervals["studio"] = 30
    source.owners["studio"] = "owner-1"
    return source


# ── SQL fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'booking.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """
    Two businesses:
      studio (owner-1): emp-1 Mon 09:00-12:00, svc-1 30 min, svc-group 60 min x2
      other  (owner-2): emp-2 Mon 10:00-11:00, full-day holiday on 2024-06-10
    """
    with session_factory() as db:
        db.add_all([
            Profiles(id="owner-1", name="Studio", slug="studio", booking_time_interval=30),
            Profiles(id="owner-2", name="Other", slug="other", booking_time_interval=15),
        ])
        db.flush()
        db.add_all([
            Employees(id="emp-1", owner_id="owner-1", name="Ana", user_id="user-emp-1"),
            Employees(id="emp-2", owner_id="owner-2", name="Bia"),
        ])
        db.add_all([
            Services(
                id="svc-1", owner_id="owner-1", name="Cut", duration=30,
                booking_simultaneous_limit=1, booking_future_limit=30,
                booking_cancel_min_hours=2,
            ),
            Services(
                id="svc-group", owner_id="owner-1", name="Class", duration=60,
                booking_simultaneous_limit=2,
            ),
            Services(id="svc-2", owner_id="owner-2", name="Other cut", duration=30),
        ])
        db.flush()
        db.add_all([
            EmployeeShifts(employee_id="emp-1", day_of_week=1, start_time="09:00", end_time="12:00"),
            EmployeeShifts(employee_id="emp-2", day_of_week=1, start_time="10:00", end_time="11:00"),
        ])
        db.add_all([
            Appointments(
                owner_id="owner-1", employee_id="emp-1", service_id="svc-1",
                start_time="2024-06-10T10:00:00", end_time="2024-06-10T10:30:00",
                status="scheduled",
            ),
            Appointments(
                owner_id="owner-1", employee_id="emp-1", service_id="svc-1",
                start_time="2024-06-10T11:00:00", end_time="2024-06-10T11:30:00",
                status="canceled",
            ),
        ])
        db.add_all([
            Holidays(owner_id="owner-1", date="2024-06-17", name="Feriado", blocking_type="full_day"),
            Holidays(owner_id="owner-2", date="2024-06-10", name="Closed", blocking_type="full_day"),
        ])
        db.commit()
    return session_factory
