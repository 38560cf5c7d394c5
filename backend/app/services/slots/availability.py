# backend/app/services/slots/availability.py
"""
Available time slots for an employee, a service and a day.

Pipeline:
  shift → (service info, appointments, slot interval, holidays)
        → generate_slots → filter_available_slots

The whole result is memoized per (employee, service, date, tenant) for a
short time on top of the per-provider caches.

A provider failure does not fail the request: the step falls back to a
safe value (no shift, default service, no appointments, no holidays,
default interval) and the result is returned but not cached. The public
entry point never raises; an unexpected error is logged and reported as
no availability.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Awaitable, TypeVar

from .cache import SlotsCache, TTLCache
from .calculator import generate_slots
from .config import BookingConfig, day_of_week, get_booking_config, parse_date
from .data_source import SlotDataSource
from .filtering import filter_available_slots
from .providers import (
    AppointmentProvider,
    HolidayProvider,
    ServiceInfoProvider,
    ShiftProvider,
    SlotIntervalProvider,
)
from .records import ServiceInfo, TenantContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _DegradedResult(Exception):
    """Carries a result computed from fallback data out of the cache."""

    def __init__(self, slots: list[str]):
        super().__init__("computed with fallback data")
        self.slots = slots


class AvailabilityEngine:
    def __init__(
        self,
        source: SlotDataSource,
        cache: SlotsCache | None = None,
        config: BookingConfig | None = None,
    ):
        self.source = source
        self.config = config or get_booking_config()
        self.cache = cache if cache is not None else TTLCache()

        self.shifts = ShiftProvider(source, self.cache, self.config)
        self.services = ServiceInfoProvider(source, self.cache, self.config)
        self.appointments = AppointmentProvider(source, self.cache, self.config)
        self.holidays = HolidayProvider(source, self.cache, self.config)
        self.intervals = SlotIntervalProvider(source, self.cache, self.config)

    @property
    def default_service_info(self) -> ServiceInfo:
        return ServiceInfo(
            duration_minutes=self.config.default_service_duration_minutes,
            simultaneous_limit=self.config.default_simultaneous_limit,
        )

    async def fetch_available_time_slots(
        self,
        employee_id: str,
        service_id: str,
        date: str,
        tenant_slug: str | None = None,
        *,
        caller_id: str | None = None,
    ) -> list[str]:
        """
        Bookable start times for the employee and service on date.

        Args:
            employee_id: Employee ID
            service_id: Service ID
            date: "YYYY-MM-DD"
            tenant_slug: Business slug of a public booking page
            caller_id: Authenticated identity, when there is one

        Returns:
            Ascending "HH:MM" strings; empty when nothing is bookable or the
            computation failed.
        """
        tenant = TenantContext(slug=tenant_slug, caller_id=caller_id)
        try:
            return await self._cached_day_slots(employee_id, service_id, date, tenant)
        except Exception:
            logger.exception(
                "Error fetching available time slots (employee=%s, service=%s, date=%s)",
                employee_id, service_id, date,
            )
            return []

    async def _cached_day_slots(
        self,
        employee_id: str,
        service_id: str,
        date: str,
        tenant: TenantContext,
    ) -> list[str]:
        key = f"day_slots:{employee_id}|{service_id}|{date}|{tenant.cache_token}"

        async def compute() -> list[str]:
            return await self._compute_day_slots(employee_id, service_id, date, tenant)

        try:
            return await self.cache.get_or_fetch(key, self.config.day_slots_ttl_seconds, compute)
        except _DegradedResult as degraded:
            return degraded.slots

    async def _compute_day_slots(
        self,
        employee_id: str,
        service_id: str,
        date: str,
        tenant: TenantContext,
    ) -> list[str]:
        failures: list[str] = []
        date_str = parse_date(date).isoformat()
        weekday = day_of_week(date_str)

        shift = await self._degrade(
            "shift", self.shifts.get_shift(employee_id, weekday, tenant), None, failures
        )
        if shift is None:
            slots: list[str] = []
        else:
            # independent lookups, issued together once a shift exists
            service, appointments, interval, holidays = await asyncio.gather(
                self._degrade(
                    "service info",
                    self.services.get_service_info(service_id, tenant),
                    self.default_service_info,
                    failures,
                ),
                self._degrade(
                    "appointments",
                    self.appointments.get_appointments(employee_id, date_str, tenant),
                    [],
                    failures,
                ),
                self._degrade(
                    "slot interval",
                    self.intervals.get_slot_interval(tenant),
                    self.config.default_slot_interval_minutes,
                    failures,
                ),
                self._degrade(
                    "holidays",
                    self.holidays.get_holidays(date_str, tenant),
                    [],
                    failures,
                ),
            )

            candidates = generate_slots(
                shift.start_time, shift.end_time, interval, service.duration_minutes
            )
            slots = filter_available_slots(
                candidates,
                appointments,
                date_str,
                service.duration_minutes,
                service.simultaneous_limit,
                holidays,
            )
            logger.debug(
                "Employee %s on %s: %d candidates, %d available",
                employee_id, date_str, len(candidates), len(slots),
            )

        if failures:
            logger.warning(
                "Slots for employee %s on %s computed without %s",
                employee_id, date_str, ", ".join(failures),
            )
            raise _DegradedResult(slots)
        return slots

    @staticmethod
    async def _degrade(
        step: str,
        pending: Awaitable[T],
        fallback: T,
        failures: list[str],
    ) -> T:
        try:
            return await pending
        except Exception:
            logger.exception("Error fetching %s, using fallback", step)
            failures.append(step)
            return fallback

    # ── Booking window ───────────────────────────────────────────────────

    async def is_within_booking_window(
        self,
        service_id: str,
        target_date: str | date,
        tenant_slug: str | None = None,
        *,
        caller_id: str | None = None,
        today: date | None = None,
    ) -> bool:
        """
        Whether target_date can be booked today: not in the past and not
        beyond the service's future limit (horizon_days if it has none).
        """
        today = today or date.today()
        target = parse_date(target_date)
        if target < today:
            return False

        tenant = TenantContext(slug=tenant_slug, caller_id=caller_id)
        service = await self._degrade(
            "service info",
            self.services.get_service_info(service_id, tenant),
            self.default_service_info,
            [],
        )
        limit_days = service.future_booking_limit_days
        if limit_days is None:
            limit_days = self.config.horizon_days
        return target <= today + timedelta(days=limit_days)
