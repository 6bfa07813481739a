from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.emergency_request import EmergencyStatus


class EmergencyCreate(BaseModel):
    doctor_id: int
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Reason cannot be blank")
        return v


class EmergencyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    reason: str
    status: EmergencyStatus
    appointment_id: Optional[int] = None
    created_at: Optional[datetime] = None
