from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..core.security import UserRole, UserStatus, get_password_hash
from ..models.activity import ActivityType
from ..models.appointment import Appointment
from ..models.doctor import DoctorProfile
from ..models.emergency_request import EmergencyRequest
from ..models.medical_note import MedicalNote
from ..models.patient import PatientProfile
from ..models.schedule_slot import ScheduleSlot
from ..models.user import User, RefreshToken
from ..models.waitlist import WaitlistEntry
from ..schemas.admin import AdminUserCreate, AdminUserUpdate
from ..schemas.user import ProfileUpdate
from .activity_service import ActivityService
from .waitlist_service import renumber_queue

logger = logging.getLogger(__name__)

_DOCTOR_FIELDS = ("specialty", "license_number", "clinic_name", "years_of_experience", "bio", "is_available")
_PATIENT_FIELDS = ("date_of_birth", "gender", "address", "blood_type", "allergies", "medical_conditions")


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    def update_profile(self, user: User, changes: ProfileUpdate) -> User:
        data = changes.model_dump(exclude_unset=True)

        for field in ("full_name", "phone_number"):
            if field in data and data[field] is not None:
                setattr(user, field, data[field])

        if user.role == UserRole.DOCTOR:
            self._apply_doctor_fields(user, data)

        elif user.role == UserRole.PATIENT:
            profile = user.patient_profile
            if profile is None:
                profile = user.patient_profile = PatientProfile()
            for field in _PATIENT_FIELDS:
                if field in data:
                    setattr(profile, field, data[field])

        self.db.commit()
        self.db.refresh(user)
        return user

    def list_users(
        self,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        user_status: Optional[UserStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[User]:
        query = self.db.query(User)

        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(User.full_name).like(pattern),
                func.lower(User.email).like(pattern),
            ))
        if role:
            query = query.filter(User.role == role)
        if user_status:
            query = query.filter(User.status == user_status)

        return query.order_by(User.id).offset(skip).limit(limit).all()

    def create_user(self, data: AdminUserCreate) -> User:
        """Create a user of any role on behalf of an admin."""
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        user = User(
            email=data.email,
            password_hash=get_password_hash(data.password),
            full_name=data.full_name.strip(),
            phone_number=data.phone_number,
            role=data.role,
            status=UserStatus.ACTIVE,
        )

        activities = ActivityService(self.db)
        if data.role == UserRole.DOCTOR:
            user.doctor_profile = DoctorProfile(specialty=data.specialty)
            activities.record(ActivityType.NEW_DOCTOR, doctor_name=user.display_name, specialty=data.specialty)
        elif data.role == UserRole.PATIENT:
            user.patient_profile = PatientProfile()
            activities.record(ActivityType.NEW_PATIENT, patient_name=user.full_name)

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Admin created {user.role.value} user {user.id}")
        return user

    def _apply_doctor_fields(self, user: User, data: dict) -> None:
        profile = user.doctor_profile
        if profile is None:
            profile = user.doctor_profile = DoctorProfile(specialty=data.get("specialty") or "General Practice")
        if data.get("license_number") and data["license_number"] != profile.license_number:
            taken = self.db.query(DoctorProfile).filter(
                DoctorProfile.license_number == data["license_number"]
            ).first()
            if taken:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="License number already registered"
                )
        for field in _DOCTOR_FIELDS:
            if field in data and data[field] is not None:
                setattr(profile, field, data[field])

    def update_user(self, user_id: int, changes: AdminUserUpdate) -> User:
        """Apply an admin's edits; doctor profile fields only reach doctors."""
        user = self.get_user(user_id)
        data = changes.model_dump(exclude_unset=True, exclude_none=True)
        new_status = data.pop("status", None)

        if "email" in data and data["email"] != user.email:
            if self.db.query(User).filter(User.email == data["email"]).first():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered"
                )

        for field in ("full_name", "email", "phone_number"):
            if field in data:
                setattr(user, field, data[field])

        profile_changes = {field: data[field] for field in _DOCTOR_FIELDS if field in data}
        if profile_changes:
            if user.role != UserRole.DOCTOR:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Profile fields can only be set on doctors"
                )
            self._apply_doctor_fields(user, profile_changes)

        if new_status is not None:
            return self.set_status(user.id, new_status)

        self.db.commit()
        self.db.refresh(user)
        return user

    def set_status(self, user_id: int, new_status: UserStatus) -> User:
        user = self.get_user(user_id)
        user.status = new_status

        if new_status != UserStatus.ACTIVE:
            self.db.query(RefreshToken).filter(
                RefreshToken.user_id == user.id
            ).update({"is_revoked": True})

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} status set to {new_status.value}")
        return user

    def delete_user(self, user: User) -> None:
        """Delete a user and every record that belongs to them."""
        user_id = user.id

        appointment_ids = [
            row.id for row in self.db.query(Appointment.id).filter(
                or_(Appointment.patient_id == user_id, Appointment.doctor_id == user_id)
            )
        ]

        self.db.query(MedicalNote).filter(or_(
            MedicalNote.patient_id == user_id,
            MedicalNote.doctor_id == user_id,
            MedicalNote.appointment_id.in_(appointment_ids),
        )).delete(synchronize_session=False)
        self.db.query(EmergencyRequest).filter(or_(
            EmergencyRequest.patient_id == user_id,
            EmergencyRequest.doctor_id == user_id,
            EmergencyRequest.appointment_id.in_(appointment_ids),
        )).delete(synchronize_session=False)
        self.db.query(Appointment).filter(
            Appointment.id.in_(appointment_ids)
        ).delete(synchronize_session=False)
        queued_with = {
            row.doctor_id for row in self.db.query(WaitlistEntry.doctor_id).filter(
                WaitlistEntry.patient_id == user_id
            )
        }
        self.db.query(WaitlistEntry).filter(or_(
            WaitlistEntry.patient_id == user_id,
            WaitlistEntry.doctor_id == user_id,
        )).delete(synchronize_session=False)
        for doctor_id in queued_with - {user_id}:
            renumber_queue(self.db, doctor_id)
        self.db.query(ScheduleSlot).filter(
            ScheduleSlot.doctor_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).delete(synchronize_session=False)

        self.db.delete(user)
        self.db.commit()
        # Drop stale identities left behind by the bulk deletes
        self.db.expire_all()

        logger.info(f"Deleted user {user_id} and owned records")
