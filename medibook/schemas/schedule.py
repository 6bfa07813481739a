from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .appointment import AppointmentResponse


class BlockSlotsRequest(BaseModel):
    day: date
    times: List[time] = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=255)


class ScheduleSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    day: date
    time: time
    reason: str
    created_at: Optional[datetime] = None


class BlockSlotsResult(BaseModel):
    blocked: List[ScheduleSlotResponse] = []
    conflicts: List[str] = []
    already_blocked: List[str] = []


class DayScheduleResponse(BaseModel):
    day: date
    appointments: List[AppointmentResponse] = []
    blocked_slots: List[ScheduleSlotResponse] = []
