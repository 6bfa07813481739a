from datetime import date
from typing import Optional

from pydantic import BaseModel

from .appointment import AppointmentResponse


class DoctorResponse(BaseModel):
    id: int
    full_name: str
    display_name: str
    email: str
    phone_number: Optional[str] = None
    specialty: str
    clinic_name: Optional[str] = None
    years_of_experience: Optional[int] = None
    bio: Optional[str] = None
    is_available: bool = True

    @classmethod
    def from_user(cls, user) -> "DoctorResponse":
        profile = user.doctor_profile
        return cls(
            id=user.id,
            full_name=user.full_name,
            display_name=user.display_name,
            email=user.email,
            phone_number=user.phone_number,
            specialty=profile.specialty,
            clinic_name=profile.clinic_name,
            years_of_experience=profile.years_of_experience,
            bio=profile.bio or f"Specialist in {profile.specialty}",
            is_available=bool(profile.is_available),
        )


class SlotAvailability(BaseModel):
    time: str
    available: bool
    reason: Optional[str] = None


class DoctorPatientSummary(BaseModel):
    id: int
    full_name: str
    email: str
    phone_number: Optional[str] = None
    total_visits: int = 0
    last_visit: Optional[date] = None
    next_appointment: Optional[AppointmentResponse] = None
    status: str
