from .user import User, RefreshToken
from .patient import PatientProfile
from .doctor import DoctorProfile
from .appointment import Appointment, AppointmentStatus
from .schedule_slot import ScheduleSlot
from .waitlist import WaitlistEntry, WaitlistUrgency
from .emergency_request import EmergencyRequest, EmergencyStatus
from .medical_note import MedicalNote
from .activity import SystemActivity, ActivityType

__all__ = [
    "User",
    "RefreshToken",
    "PatientProfile",
    "DoctorProfile",
    "Appointment",
    "AppointmentStatus",
    "ScheduleSlot",
    "WaitlistEntry",
    "WaitlistUrgency",
    "EmergencyRequest",
    "EmergencyStatus",
    "MedicalNote",
    "SystemActivity",
    "ActivityType",
]
