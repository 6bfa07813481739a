from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.waitlist import WaitlistUrgency


class WaitlistCreate(BaseModel):
    doctor_id: int
    urgency: WaitlistUrgency = WaitlistUrgency.NORMAL
    notes: Optional[str] = Field(None, max_length=1000)


class WaitlistBook(BaseModel):
    appointment_date: date
    appointment_time: time
    reason: Optional[str] = Field(None, max_length=1000)


class WaitlistResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    specialty: Optional[str] = None
    urgency: WaitlistUrgency
    position: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
