# backend/app/services/slots/data_source.py
"""
Data access for the availability engine.

SlotDataSource is everything the engine needs from persistence; any store
can implement it. SqlSlotDataSource is the SQLAlchemy implementation over
the booking database.

Rows are returned as plain dicts, validation happens in the providers.
"""

import asyncio
import logging
from contextvars import ContextVar
from typing import Any, Callable, Iterable, Protocol

from sqlalchemy.orm import Session

from ...models.generated import (
    Appointments,
    Employees,
    EmployeeShifts,
    Holidays,
    Profiles,
    Services,
)
from .records import TenantContext

logger = logging.getLogger(__name__)


class SlotDataSource(Protocol):
    async def set_tenant_context(self, tenant_slug: str | None) -> None: ...

    async def query_shifts(self, employee_id: str, day_of_week: int) -> list[dict[str, Any]]: ...

    async def query_service_info(self, service_id: str) -> dict[str, Any] | None: ...

    async def query_appointments(
        self,
        employee_id: str,
        range_start: str,
        range_end: str,
        statuses: Iterable[str],
    ) -> list[dict[str, Any]]: ...

    async def query_holidays(self, date: str, owner_id: str) -> list[dict[str, Any]]: ...

    async def query_tenant_slot_interval(self, tenant: TenantContext) -> int | None: ...

    async def resolve_effective_owner(self, tenant: TenantContext) -> str | None: ...


# Slug of the business the current task is working for.
_tenant_slug: ContextVar[str | None] = ContextVar("tenant_slug", default=None)

# Owner id that matches no row (unknown slug).
_NO_OWNER = ""


class SqlSlotDataSource:
    """
    SQLAlchemy data source.

    Every query runs in its own session on a worker thread, so concurrent
    provider calls never share a Session.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._in_session, fn, *args)

    def _in_session(self, fn: Callable[..., Any], *args: Any) -> Any:
        with self._session_factory() as db:
            return fn(db, *args)

    # ── Tenant scope ─────────────────────────────────────────────────────

    async def set_tenant_context(self, tenant_slug: str | None) -> None:
        _tenant_slug.set(tenant_slug)

    @staticmethod
    def _scoped_owner_id(db: Session) -> str | None:
        """Owner id for the current tenant slug, None when unscoped."""
        slug = _tenant_slug.get()
        if not slug:
            return None
        owner_id = db.query(Profiles.id).filter(Profiles.slug == slug).scalar()
        if owner_id is None:
            logger.warning("Unknown tenant slug %r", slug)
            return _NO_OWNER
        return owner_id

    # ── Queries ──────────────────────────────────────────────────────────

    async def query_shifts(self, employee_id: str, day_of_week: int) -> list[dict[str, Any]]:
        return await self._run(self._query_shifts, employee_id, day_of_week)

    def _query_shifts(self, db: Session, employee_id: str, day_of_week: int) -> list[dict[str, Any]]:
        query = (
            db.query(EmployeeShifts.start_time, EmployeeShifts.end_time)
            .join(Employees, Employees.id == EmployeeShifts.employee_id)
            .filter(
                EmployeeShifts.employee_id == employee_id,
                EmployeeShifts.day_of_week == day_of_week,
                Employees.is_active == 1,
            )
        )
        owner_id = self._scoped_owner_id(db)
        if owner_id is not None:
            query = query.filter(Employees.owner_id == owner_id)

        return [
            {"start_time": row.start_time, "end_time": row.end_time}
            for row in query.order_by(EmployeeShifts.id).all()
        ]

    async def query_service_info(self, service_id: str) -> dict[str, Any] | None:
        return await self._run(self._query_service_info, service_id)

    def _query_service_info(self, db: Session, service_id: str) -> dict[str, Any] | None:
        query = db.query(Services).filter(
            Services.id == service_id,
            Services.is_active == 1,
        )
        owner_id = self._scoped_owner_id(db)
        if owner_id is not None:
            query = query.filter(Services.owner_id == owner_id)

        service = query.first()
        if not service:
            return None
        return {
            "duration": service.duration,
            "simultaneous_limit": service.booking_simultaneous_limit,
            "future_limit": service.booking_future_limit,
            "cancel_min_hours": service.booking_cancel_min_hours,
        }

    async def query_appointments(
        self,
        employee_id: str,
        range_start: str,
        range_end: str,
        statuses: Iterable[str],
    ) -> list[dict[str, Any]]:
        return await self._run(
            self._query_appointments, employee_id, range_start, range_end, list(statuses)
        )

    def _query_appointments(
        self,
        db: Session,
        employee_id: str,
        range_start: str,
        range_end: str,
        statuses: list[str],
    ) -> list[dict[str, Any]]:
        query = db.query(
            Appointments.start_time,
            Appointments.end_time,
            Appointments.status,
        ).filter(
            Appointments.employee_id == employee_id,
            Appointments.start_time >= range_start,
            Appointments.start_time < range_end,
            Appointments.status.in_(statuses),
        )
        owner_id = self._scoped_owner_id(db)
        if owner_id is not None:
            query = query.filter(Appointments.owner_id == owner_id)

        return [
            {"start_time": row.start_time, "end_time": row.end_time, "status": row.status}
            for row in query.order_by(Appointments.start_time).all()
        ]

    async def query_holidays(self, date: str, owner_id: str) -> list[dict[str, Any]]:
        return await self._run(self._query_holidays, date, owner_id)

    def _query_holidays(self, db: Session, date: str, owner_id: str) -> list[dict[str, Any]]:
        rows = (
            db.query(Holidays)
            .filter(
                Holidays.owner_id == owner_id,
                Holidays.date == date,
                Holidays.is_active == 1,
            )
            .all()
        )
        return [
            {
                "date": h.date,
                "name": h.name,
                "is_active": bool(h.is_active),
                "blocking_type": h.blocking_type,
                "custom_start_time": h.custom_start_time,
                "custom_end_time": h.custom_end_time,
            }
            for h in rows
        ]

    async def query_tenant_slot_interval(self, tenant: TenantContext) -> int | None:
        return await self._run(self._query_tenant_slot_interval, tenant)

    def _query_tenant_slot_interval(self, db: Session, tenant: TenantContext) -> int | None:
        owner_id = self._effective_owner(db, tenant)
        if not owner_id:
            return None
        return (
            db.query(Profiles.booking_time_interval)
            .filter(Profiles.id == owner_id)
            .scalar()
        )

    async def resolve_effective_owner(self, tenant: TenantContext) -> str | None:
        return await self._run(self._effective_owner, tenant)

    @staticmethod
    def _effective_owner(db: Session, tenant: TenantContext) -> str | None:
        """
        Business owner a request acts for.

        A slug names the business directly. An employee logging in sees
        their employer's data, any other identity is an owner itself.
        """
        if tenant.slug:
            return db.query(Profiles.id).filter(Profiles.slug == tenant.slug).scalar()

        if not tenant.caller_id:
            return None

        employer_id = (
            db.query(Employees.owner_id)
            .filter(Employees.user_id == tenant.caller_id)
            .scalar()
        )
        return employer_id or tenant.caller_id
