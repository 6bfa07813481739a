from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    doctor_id: Optional[int] = None
    patient_id: Optional[int] = None
    appointment_date: date
    appointment_time: time
    reason: Optional[str] = Field(None, max_length=1000)


class AppointmentReschedule(BaseModel):
    appointment_date: date
    appointment_time: time


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class AppointmentNotes(BaseModel):
    notes: str = Field(..., min_length=1)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    specialty: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    cancelled_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
