# backend/app/routers/appointments.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.appointments import (
    AppointmentCreate,
    AppointmentRead,
    TimeBlockCreate,
)
from ..services.appointments import (
    BookingError,
    CancellationWindowError,
    HolidayBlockedError,
    NotFoundError,
    OutsideShiftError,
    SlotUnavailableError,
    block_time_slot,
    cancel_appointment,
    create_appointment,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _http_error(exc: BookingError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (SlotUnavailableError, CancellationWindowError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (HolidayBlockedError, OutsideShiftError)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
):
    try:
        return create_appointment(
            db,
            employee_id=data.employee_id,
            service_id=data.service_id,
            start=data.start_time,
            end=data.end_time,
            client_id=data.client_id,
            notes=data.notes,
        )
    except BookingError as exc:
        db.rollback()
        raise _http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/block", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def block_time(
    data: TimeBlockCreate,
    db: Session = Depends(get_db),
):
    try:
        return block_time_slot(
            db,
            employee_id=data.employee_id,
            day=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
    except BookingError as exc:
        db.rollback()
        raise _http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/{id}/cancel", response_model=AppointmentRead)
def cancel(id: int, db: Session = Depends(get_db)):
    try:
        return cancel_appointment(db, id)
    except BookingError as exc:
        db.rollback()
        raise _http_error(exc)
