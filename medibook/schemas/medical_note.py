from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MedicalNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    patient_id: int
    doctor_id: int
    doctor_name: Optional[str] = None
    title: str
    specialty: Optional[str] = None
    summary: str
    content: str
    visit_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
