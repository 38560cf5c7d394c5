# backend/app/services/slots/providers.py
"""
Cached lookups behind the availability engine.

Each provider turns raw data-source rows into records and memoizes them
in the shared cache under a key that includes the tenant. Missing data is
turned into a value (None, defaults, empty list) here; errors from the
data source are not, they propagate to the caller and are never cached.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .cache import SlotsCache
from .config import BookingConfig, get_booking_config
from .data_source import SlotDataSource
from .records import (
    OCCUPYING_STATUSES,
    ExistingAppointment,
    Holiday,
    ServiceInfo,
    Shift,
    TenantContext,
)

logger = logging.getLogger(__name__)

_shift_adapter = TypeAdapter(Shift | None)
_service_adapter = TypeAdapter(ServiceInfo)
_appointments_adapter = TypeAdapter(list[ExistingAppointment])
_holidays_adapter = TypeAdapter(list[Holiday])
_interval_adapter = TypeAdapter(int)


class _Provider:
    def __init__(
        self,
        source: SlotDataSource,
        cache: SlotsCache,
        config: BookingConfig | None = None,
    ):
        self.source = source
        self.cache = cache
        self.config = config or get_booking_config()


class ShiftProvider(_Provider):
    async def get_shift(
        self,
        employee_id: str,
        day_of_week: int,
        tenant: TenantContext,
    ) -> Shift | None:
        """Working hours of the employee on that weekday, None if off."""
        key = f"shift:{employee_id}|{day_of_week}|{tenant.cache_token}"

        async def fetch() -> Shift | None:
            await self.source.set_tenant_context(tenant.slug)
            rows = await self.source.query_shifts(employee_id, day_of_week)
            for row in rows:
                try:
                    return Shift.model_validate(row)
                except ValidationError:
                    logger.warning("Skipping malformed shift for employee %s: %r", employee_id, row)
            logger.info("No shift for employee %s on day %s", employee_id, day_of_week)
            return None

        return await self.cache.get_or_fetch(
            key, self.config.shift_ttl_seconds, fetch, _shift_adapter
        )


class ServiceInfoProvider(_Provider):
    async def get_service_info(self, service_id: str, tenant: TenantContext) -> ServiceInfo:
        """
        Duration and booking constraints of a service.

        An unknown service or an unset field falls back to the configured
        defaults instead of failing the lookup.
        """
        key = f"service:{service_id}|{tenant.cache_token}"

        async def fetch() -> ServiceInfo:
            await self.source.set_tenant_context(tenant.slug)
            row = await self.source.query_service_info(service_id)
            if row is None:
                logger.info("Service %s not found, using defaults", service_id)
            return self._with_defaults(row or {})

        return await self.cache.get_or_fetch(
            key, self.config.service_ttl_seconds, fetch, _service_adapter
        )

    def _with_defaults(self, row: dict[str, Any]) -> ServiceInfo:
        duration = row.get("duration")
        if not duration or duration <= 0:
            duration = self.config.default_service_duration_minutes

        limit = row.get("simultaneous_limit")
        if not limit or limit < 1:
            limit = self.config.default_simultaneous_limit

        return ServiceInfo(
            duration_minutes=duration,
            simultaneous_limit=limit,
            future_booking_limit_days=row.get("future_limit"),
            cancel_min_hours=row.get("cancel_min_hours"),
        )


class AppointmentProvider(_Provider):
    async def get_appointments(
        self,
        employee_id: str,
        date: str,
        tenant: TenantContext,
    ) -> list[ExistingAppointment]:
        """Appointments of the employee starting on date that occupy a slot."""
        key = f"appointments:{employee_id}|{date}|{tenant.cache_token}"

        async def fetch() -> list[ExistingAppointment]:
            await self.source.set_tenant_context(tenant.slug)
            rows = await self.source.query_appointments(
                employee_id,
                f"{date}T00:00:00",
                f"{date}T23:59:59",
                [status.value for status in OCCUPYING_STATUSES],
            )
            return _valid_appointments(rows)

        return await self.cache.get_or_fetch(
            key, self.config.appointment_ttl_seconds, fetch, _appointments_adapter
        )


def _valid_appointments(rows: list[dict[str, Any]]) -> list[ExistingAppointment]:
    appointments = []
    for row in rows:
        if not row or not row.get("start_time") or not row.get("end_time") or not row.get("status"):
            logger.debug("Skipping incomplete appointment row: %r", row)
            continue
        try:
            appointment = ExistingAppointment.model_validate(row)
        except ValidationError:
            logger.debug("Skipping malformed appointment row: %r", row)
            continue
        if appointment.status in OCCUPYING_STATUSES:
            appointments.append(appointment)
    return appointments


class HolidayProvider(_Provider):
    async def get_holidays(self, date: str, tenant: TenantContext) -> list[Holiday]:
        """
        Active holidays on date.

        Holidays belong to the business owner: an employee asking gets the
        holidays of the business they work for.
        """
        key = f"holidays:{date}|{tenant.cache_token}"

        async def fetch() -> list[Holiday]:
            await self.source.set_tenant_context(tenant.slug)
            owner_id = await self.source.resolve_effective_owner(tenant)
            if not owner_id:
                logger.info("No business owner resolved for %s, no holidays", tenant.cache_token)
                return []

            holidays = []
            for row in await self.source.query_holidays(date, owner_id):
                try:
                    holiday = Holiday.model_validate(row)
                except ValidationError:
                    logger.warning("Skipping malformed holiday: %r", row)
                    continue
                if holiday.is_active and holiday.date.isoformat() == date:
                    holidays.append(holiday)
            return holidays

        return await self.cache.get_or_fetch(
            key, self.config.holiday_ttl_seconds, fetch, _holidays_adapter
        )


class SlotIntervalProvider(_Provider):
    async def get_slot_interval(self, tenant: TenantContext) -> int:
        """Slot granularity in minutes configured by the business."""
        key = f"interval:{tenant.cache_token}"

        async def fetch() -> int:
            await self.source.set_tenant_context(tenant.slug)
            interval = await self.source.query_tenant_slot_interval(tenant)
            if not interval or interval <= 0:
                return self.config.default_slot_interval_minutes
            return interval

        return await self.cache.get_or_fetch(
            key, self.config.interval_ttl_seconds, fetch, _interval_adapter
        )
