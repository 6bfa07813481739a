from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from ..core.security import UserRole, UserStatus
from ..models.activity import ActivityType
from .auth import _check_password_strength, _strip_or_none


class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=2, max_length=200)
    role: UserRole
    phone_number: Optional[str] = Field(None, max_length=30)
    specialty: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_strength(v)

    @field_validator("specialty")
    @classmethod
    def strip_specialty(cls, v):
        return _strip_or_none(v)

    @model_validator(mode="after")
    def check_specialty(self):
        if self.role == UserRole.DOCTOR and not self.specialty:
            raise ValueError("Doctors must provide a specialty")
        return self


class AdminUserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=30)
    status: Optional[UserStatus] = None

    # Doctor profile
    specialty: Optional[str] = Field(None, min_length=2, max_length=100)
    license_number: Optional[str] = Field(None, min_length=4, max_length=50)
    clinic_name: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    is_available: Optional[bool] = None

    @field_validator("specialty")
    @classmethod
    def strip_specialty(cls, v):
        return _strip_or_none(v)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class StatsResponse(BaseModel):
    total_users: int
    total_doctors: int
    total_patients: int
    total_admins: int
    total_appointments: int
    pending_emergencies: int
    waitlist_entries: int


class ActivityResponse(BaseModel):
    id: int
    type: ActivityType
    message: str
    time: str
    created_at: datetime
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    specialty: Optional[str] = None
    count: Optional[int] = None


class MonthlyAppointments(BaseModel):
    month: str
    appointments: int = 0
    completed: int = 0
    cancelled: int = 0
    booked: int = 0


class SpecialtyShare(BaseModel):
    name: str
    value: int


class WaitlistDay(BaseModel):
    day: str
    count: int


class UserGrowth(BaseModel):
    month: str
    users: int


class AnalyticsSummary(BaseModel):
    total_appointments: int
    completion_rate: int
    monthly_change: int
    active_doctors: int
    current_waitlist: int


class AnalyticsResponse(BaseModel):
    monthly: List[MonthlyAppointments]
    specialties: List[SpecialtyShare]
    waitlist_week: List[WaitlistDay]
    user_growth: List[UserGrowth]
    summary: AnalyticsSummary
