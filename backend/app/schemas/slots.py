# backend/app/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotsDayResponse(BaseModel):
    """Bookable start times of an employee for a service on one day."""
    employee_id: str
    service_id: str
    date: date
    slots: list[str] = Field(description='Ascending start times, "HH:MM"')

    model_config = {"from_attributes": True}


class BookingWindowResponse(BaseModel):
    """Whether a date is inside the booking window of a service."""
    service_id: str
    date: date
    bookable: bool

    model_config = {"from_attributes": True}
