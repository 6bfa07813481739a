from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .auth import UserResponse, _strip_or_none


class DoctorProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    specialty: str
    license_number: Optional[str] = None
    clinic_name: Optional[str] = None
    years_of_experience: Optional[int] = None
    bio: Optional[str] = None
    is_available: bool = True


class PatientProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    blood_type: Optional[str] = None
    allergies: Optional[str] = None
    medical_conditions: Optional[str] = None


class ProfileResponse(UserResponse):
    doctor_profile: Optional[DoctorProfileResponse] = None
    patient_profile: Optional[PatientProfileResponse] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    phone_number: Optional[str] = Field(None, max_length=30)

    # Doctor fields
    specialty: Optional[str] = Field(None, min_length=2, max_length=100)
    license_number: Optional[str] = Field(None, min_length=4, max_length=50)
    clinic_name: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    is_available: Optional[bool] = None

    # Patient fields
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    blood_type: Optional[str] = Field(None, max_length=10)
    allergies: Optional[str] = None
    medical_conditions: Optional[str] = None

    @field_validator("specialty")
    @classmethod
    def strip_specialty(cls, v):
        return _strip_or_none(v)
