# backend/app/services/appointments.py
"""
Appointment writes: booking, blocking time, cancelling.

Availability shown to a client comes from cached data and may be stale by
the time they confirm. Every write therefore re-checks the schedule
against the database in the same transaction as the insert.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..models.generated import (
    Appointments as DBAppointment,
    Employees as DBEmployee,
    EmployeeShifts as DBShift,
    Holidays as DBHoliday,
    Services as DBService,
)
from .slots.config import (
    BookingConfig,
    day_of_week,
    get_booking_config,
    time_str_to_minutes,
)
from .slots.filtering import NOON_MINUTES, intervals_overlap
from .slots.records import (
    OCCUPYING_STATUSES,
    AppointmentStatus,
    BlockingType,
    Holiday,
    Shift,
)

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base error for appointment writes."""


class NotFoundError(BookingError):
    pass


class SlotUnavailableError(BookingError):
    pass


class HolidayBlockedError(BookingError):
    pass


class OutsideShiftError(BookingError):
    pass


class CancellationWindowError(BookingError):
    pass


def _iso(dt: datetime) -> str:
    return dt.replace(tzinfo=None).isoformat(timespec="seconds")


def _minutes_of_day(dt: datetime, day: date) -> int:
    """Minutes from midnight of day; past-midnight times keep counting up."""
    return (dt.date() - day).days * 24 * 60 + dt.hour * 60 + dt.minute


# ── Validation ───────────────────────────────────────────────────────────


def validate_holiday_blocking(
    holidays: list[Holiday],
    start_time: str,
    end_time: str,
) -> Optional[str]:
    """
    Check an appointment window against the holidays of its day.

    Returns:
        Reason the window is blocked, or None.
    """
    start_min = time_str_to_minutes(start_time)
    end_min = time_str_to_minutes(end_time)

    for holiday in holidays:
        if not holiday.is_active:
            continue
        name = holiday.name or holiday.date.isoformat()

        if holiday.blocking_type == BlockingType.FULL_DAY:
            return f"Booking blocked by holiday: {name}"

        if holiday.blocking_type == BlockingType.MORNING and start_min < NOON_MINUTES:
            return f"Morning booking blocked by holiday: {name}"

        if holiday.blocking_type == BlockingType.AFTERNOON and start_min >= NOON_MINUTES:
            return f"Afternoon booking blocked by holiday: {name}"

        if (
            holiday.blocking_type == BlockingType.CUSTOM
            and holiday.custom_start_time
            and holiday.custom_end_time
            and intervals_overlap(
                start_min,
                end_min,
                time_str_to_minutes(holiday.custom_start_time),
                time_str_to_minutes(holiday.custom_end_time),
            )
        ):
            return (
                f"Booking blocked by holiday {name} "
                f"({holiday.custom_start_time} - {holiday.custom_end_time})"
            )

    return None


def validate_shift_window(
    shift: Optional[Shift],
    start_minutes: int,
    end_minutes: int,
) -> Optional[str]:
    """Reason the window falls outside the employee's shift, or None."""
    if shift is None:
        return "Employee does not work on this day"

    if (
        start_minutes < time_str_to_minutes(shift.start_time)
        or end_minutes > time_str_to_minutes(shift.end_time)
    ):
        return f"Employee is available only from {shift.start_time} to {shift.end_time} on this day"

    return None


def find_overlapping_appointments(
    db: Session,
    employee_id: str,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> list[DBAppointment]:
    """Appointments of the employee that occupy any part of [start, end)."""
    query = db.query(DBAppointment).filter(
        DBAppointment.employee_id == employee_id,
        DBAppointment.start_time < _iso(end),
        DBAppointment.end_time > _iso(start),
        DBAppointment.status.in_([s.value for s in OCCUPYING_STATUSES]),
    )
    if exclude_id is not None:
        query = query.filter(DBAppointment.id != exclude_id)
    return query.all()


# ── Helpers ──────────────────────────────────────────────────────────────


def _get_employee(db: Session, employee_id: str) -> DBEmployee:
    employee = db.get(DBEmployee, employee_id)
    if not employee or not employee.is_active:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def _get_shift(db: Session, employee_id: str, day: date) -> Optional[Shift]:
    row = (
        db.query(DBShift)
        .filter(
            DBShift.employee_id == employee_id,
            DBShift.day_of_week == day_of_week(day),
        )
        .order_by(DBShift.id)
        .first()
    )
    if not row:
        return None
    return Shift(start_time=row.start_time, end_time=row.end_time)


def _get_holidays(db: Session, owner_id: str, day: date) -> list[Holiday]:
    rows = (
        db.query(DBHoliday)
        .filter(
            DBHoliday.owner_id == owner_id,
            DBHoliday.date == day.isoformat(),
            DBHoliday.is_active == 1,
        )
        .all()
    )
    return [
        Holiday(
            date=row.date,
            name=row.name,
            is_active=bool(row.is_active),
            blocking_type=row.blocking_type,
            custom_start_time=row.custom_start_time,
            custom_end_time=row.custom_end_time,
        )
        for row in rows
    ]


def _begin_write(db: Session) -> None:
    """
    Hold SQLite's write lock from the overlap re-check until commit.

    pysqlite only opens a transaction at the first INSERT; a concurrent
    writer now waits on BEGIN IMMEDIATE and then sees this booking.
    """
    conn = db.connection()
    if conn.dialect.name != "sqlite":
        return
    if not conn.connection.dbapi_connection.in_transaction:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _check_window(db: Session, employee: DBEmployee, start: datetime, end: datetime) -> None:
    """Raise unless [start, end) lies in a shift and no holiday blocks it."""
    day = start.date()
    start_min = _minutes_of_day(start, day)
    end_min = _minutes_of_day(end, day)

    reason = validate_shift_window(_get_shift(db, employee.id, day), start_min, end_min)
    if reason:
        raise OutsideShiftError(reason)

    reason = validate_holiday_blocking(
        _get_holidays(db, employee.owner_id, day),
        start.strftime("%H:%M"),
        end.strftime("%H:%M"),
    )
    if reason:
        raise HolidayBlockedError(reason)


# ── Writes ───────────────────────────────────────────────────────────────


def create_appointment(
    db: Session,
    employee_id: str,
    service_id: str,
    start: datetime,
    end: Optional[datetime] = None,
    client_id: Optional[str] = None,
    notes: Optional[str] = None,
    config: BookingConfig | None = None,
) -> DBAppointment:
    """
    Book an appointment after re-checking shift, holidays and capacity.

    The end defaults to start + service duration. Overlapping occupying
    appointments must stay below the service's simultaneous limit.
    """
    config = config or get_booking_config()
    start = start.replace(tzinfo=None)

    employee = _get_employee(db, employee_id)
    service = db.get(DBService, service_id)
    if not service or not service.is_active or service.owner_id != employee.owner_id:
        raise NotFoundError(f"Service {service_id} not found")

    if end is None:
        end = start + timedelta(minutes=service.duration or config.default_service_duration_minutes)
    end = end.replace(tzinfo=None)
    if end <= start:
        raise ValueError("Appointment must end after it starts")

    _begin_write(db)
    _check_window(db, employee, start, end)

    limit = service.booking_simultaneous_limit or config.default_simultaneous_limit
    overlapping = find_overlapping_appointments(db, employee_id, start, end)
    if len(overlapping) >= limit:
        raise SlotUnavailableError(
            "This employee already has an appointment or a block at this time"
        )

    obj = DBAppointment(
        owner_id=employee.owner_id,
        employee_id=employee_id,
        service_id=service_id,
        client_id=client_id,
        start_time=_iso(start),
        end_time=_iso(end),
        status=AppointmentStatus.SCHEDULED.value,
        notes=notes,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)

    logger.info(
        "Appointment %s booked: employee=%s service=%s %s-%s",
        obj.id, employee_id, service_id, obj.start_time, obj.end_time,
    )
    return obj


def block_time_slot(
    db: Session,
    employee_id: str,
    day: date,
    start_time: str,
    end_time: str,
    reason: Optional[str] = None,
) -> DBAppointment:
    """Reserve a time range of the employee's day so nothing can be booked in it."""
    employee = _get_employee(db, employee_id)

    midnight = datetime.combine(day, datetime.min.time())
    start = midnight + timedelta(minutes=time_str_to_minutes(start_time))
    end = midnight + timedelta(minutes=time_str_to_minutes(end_time))
    if end <= start:
        raise ValueError("Block must end after it starts")

    _begin_write(db)
    if find_overlapping_appointments(db, employee_id, start, end):
        raise SlotUnavailableError(
            "This employee already has an appointment or a block at this time"
        )

    obj = DBAppointment(
        owner_id=employee.owner_id,
        employee_id=employee_id,
        start_time=_iso(start),
        end_time=_iso(end),
        status=AppointmentStatus.BLOCKED.value,
        notes=reason,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)

    logger.info("Time blocked for employee %s: %s-%s", employee_id, obj.start_time, obj.end_time)
    return obj


def _format_notice(hours: int) -> str:
    if hours >= 24:
        days = hours // 24
        return "1 day" if days == 1 else f"{days} days"
    return "1 hour" if hours == 1 else f"{hours} hours"


def cancel_appointment(
    db: Session,
    appointment_id: int,
    now: Optional[datetime] = None,
    config: BookingConfig | None = None,
) -> DBAppointment:
    """
    Cancel an appointment, respecting the service's minimum notice.

    Cancelling an already cancelled appointment is a no-op.
    """
    config = config or get_booking_config()
    now = now or datetime.now()

    obj = db.get(DBAppointment, appointment_id)
    if not obj:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    if obj.status == AppointmentStatus.CANCELED.value:
        return obj

    min_hours = config.default_cancel_min_hours
    if obj.service is not None and obj.service.booking_cancel_min_hours is not None:
        min_hours = obj.service.booking_cancel_min_hours

    start = datetime.fromisoformat(obj.start_time).replace(tzinfo=None)
    hours_left = (start - now).total_seconds() / 3600
    if hours_left < min_hours:
        raise CancellationWindowError(
            f"Cancellation is only allowed up to {_format_notice(min_hours)} before the appointment"
        )

    obj.status = AppointmentStatus.CANCELED.value
    obj.updated_at = _iso(now)
    db.commit()
    db.refresh(obj)

    logger.info("Appointment %s canceled", appointment_id)
    return obj
