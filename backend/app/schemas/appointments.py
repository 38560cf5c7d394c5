# backend/app/schemas/appointments.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class AppointmentCreate(BaseModel):
    employee_id: str
    service_id: str
    client_id: Optional[str] = None

    start_time: datetime
    # defaults to start_time + service duration
    end_time: Optional[datetime] = None

    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class TimeBlockCreate(BaseModel):
    employee_id: str
    date: date
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    reason: Optional[str] = None


class AppointmentRead(BaseModel):
    id: int

    employee_id: str
    service_id: Optional[str] = None
    client_id: Optional[str] = None

    start_time: datetime
    end_time: datetime

    status: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
