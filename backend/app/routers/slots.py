# backend/app/routers/slots.py
"""
Slots API endpoints.

GET /slots/day            - Bookable start times for employee + service + date
GET /slots/booking-window - Whether a date can be booked for a service
"""

from datetime import date
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from ..schemas.slots import BookingWindowResponse, SlotsDayResponse
from ..services.slots import AvailabilityEngine


router = APIRouter(prefix="/slots", tags=["slots"])


def get_availability_engine(request: Request) -> AvailabilityEngine:
    return request.app.state.availability_engine


@router.get("/day", response_model=SlotsDayResponse)
async def get_slots_day(
    employee_id: str,
    service_id: str,
    target_date: date = Query(..., alias="date"),
    tenant: str | None = None,
    caller_id: str | None = Header(None, alias="X-User-Id"),
    engine: AvailabilityEngine = Depends(get_availability_engine),
):
    """Get available start times for a service with an employee on a day."""
    bookable = await engine.is_within_booking_window(
        service_id, target_date, tenant, caller_id=caller_id
    )
    if not bookable:
        raise HTTPException(status_code=400, detail="Date is outside the booking window")

    slots = await engine.fetch_available_time_slots(
        employee_id,
        service_id,
        target_date.isoformat(),
        tenant,
        caller_id=caller_id,
    )

    return SlotsDayResponse(
        employee_id=employee_id,
        service_id=service_id,
        date=target_date,
        slots=slots,
    )


@router.get("/booking-window", response_model=BookingWindowResponse)
async def get_booking_window(
    service_id: str,
    target_date: date = Query(..., alias="date"),
    tenant: str | None = None,
    caller_id: str | None = Header(None, alias="X-User-Id"),
    engine: AvailabilityEngine = Depends(get_availability_engine),
):
    """Check a date against the service's future booking limit."""
    bookable = await engine.is_within_booking_window(
        service_id, target_date, tenant, caller_id=caller_id
    )
    return BookingWindowResponse(service_id=service_id, date=target_date, bookable=bookable)
