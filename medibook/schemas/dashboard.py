from typing import List

from pydantic import BaseModel

from .appointment import AppointmentResponse
from .emergency import EmergencyResponse
from .medical_note import MedicalNoteResponse
from .waitlist import WaitlistResponse


class PatientDashboard(BaseModel):
    upcoming_appointments: List[AppointmentResponse]
    waitlist: List[WaitlistResponse]
    recent_notes: List[MedicalNoteResponse]
    upcoming_count: int
    completed_count: int
    waitlist_count: int


class DoctorDashboard(BaseModel):
    today_appointments: List[AppointmentResponse]
    today_total: int
    today_completed: int
    completion_rate: int
    upcoming_count: int
    pending_emergencies: List[EmergencyResponse]
    waitlist_count: int
