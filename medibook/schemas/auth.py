from datetime import date, datetime
from typing import Optional
import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..core.security import UserRole, UserStatus


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain a digit")
    return value


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=2, max_length=200)
    role: UserRole = UserRole.PATIENT
    phone_number: Optional[str] = Field(None, max_length=30)

    # Doctor registration
    specialty: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, min_length=4, max_length=50)
    clinic_name: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0)

    # Patient registration
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None

    # Admin registration
    admin_key: Optional[str] = None

    @field_validator("specialty")
    @classmethod
    def strip_specialty(cls, v):
        return _strip_or_none(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_strength(v)

    @model_validator(mode="after")
    def check_role_fields(self):
        if self.role == UserRole.DOCTOR and not self.specialty:
            raise ValueError("Doctors must provide a specialty")
        if self.date_of_birth and self.date_of_birth > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    phone_number: Optional[str] = None
    role: UserRole
    status: UserStatus
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class PasswordReset(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_strength(v)


class ChangePassword(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_strength(v)
