from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date
from typing import Dict, List, Optional
import logging

from ..core.security import UserRole, UserStatus
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import DoctorProfile
from ..models.user import User
from ..models.waitlist import WaitlistEntry
from ..schemas.appointment import AppointmentResponse
from ..schemas.doctor import DoctorPatientSummary, SlotAvailability
from .appointment_service import CLOSED
from .scheduling import availability

logger = logging.getLogger(__name__)


class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def _directory(self):
        return self.db.query(User).join(DoctorProfile, DoctorProfile.user_id == User.id).filter(
            User.role == UserRole.DOCTOR,
            User.status == UserStatus.ACTIVE
        )

    def list_doctors(
        self,
        specialty: Optional[str] = None,
        search: Optional[str] = None,
        available_only: bool = False,
        skip: int = 0,
        limit: int = 20,
    ) -> List[User]:
        query = self._directory()

        if specialty:
            query = query.filter(func.lower(DoctorProfile.specialty) == specialty.lower())
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(User.full_name).like(pattern),
                func.lower(DoctorProfile.specialty).like(pattern),
            ))
        if available_only:
            query = query.filter(DoctorProfile.is_available.is_(True))

        return query.order_by(User.full_name, User.id).offset(skip).limit(limit).all()

    def specialties(self) -> List[str]:
        rows = self._directory().with_entities(DoctorProfile.specialty).distinct().all()
        return sorted({row.specialty for row in rows if row.specialty})

    def get_doctor(self, doctor_id: int) -> User:
        doctor = self.db.query(User).filter(
            User.id == doctor_id,
            User.role == UserRole.DOCTOR
        ).first()
        if not doctor or doctor.doctor_profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def availability(self, doctor_id: int, day: date, viewer: Optional[User] = None) -> List[SlotAvailability]:
        doctor = self.get_doctor(doctor_id)
        patient_id = viewer.id if viewer is not None and viewer.role == UserRole.PATIENT else None
        return availability(self.db, doctor.id, day, patient_id)

    def patients_of(self, doctor: User) -> List[DoctorPatientSummary]:
        """Summarise every patient who has booked or queued with this doctor."""
        appointments = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor.id
        ).order_by(Appointment.appointment_date, Appointment.appointment_time).all()
        waiting = {
            row.patient_id for row in self.db.query(WaitlistEntry.patient_id).filter(
                WaitlistEntry.doctor_id == doctor.id
            )
        }

        by_patient: Dict[int, List[Appointment]] = {}
        for appointment in appointments:
            by_patient.setdefault(appointment.patient_id, []).append(appointment)

        patient_ids = set(by_patient) | waiting
        if not patient_ids:
            return []

        patients = self.db.query(User).filter(User.id.in_(patient_ids)).order_by(User.full_name, User.id).all()
        today = date.today()

        summaries = []
        for patient in patients:
            history = by_patient.get(patient.id, [])
            completed = [a for a in history if a.status == AppointmentStatus.COMPLETED]
            upcoming = [
                a for a in history
                if a.appointment_date >= today and a.status not in CLOSED
            ]

            if any(a.status == AppointmentStatus.EMERGENCY for a in upcoming):
                patient_status = "emergency"
            elif patient.id in waiting:
                patient_status = "waiting"
            elif not completed:
                patient_status = "new"
            else:
                patient_status = "active"

            summaries.append(DoctorPatientSummary(
                id=patient.id,
                full_name=patient.full_name,
                email=patient.email,
                phone_number=patient.phone_number,
                total_visits=len(completed),
                last_visit=completed[-1].appointment_date if completed else None,
                next_appointment=AppointmentResponse.model_validate(upcoming[0]) if upcoming else None,
                status=patient_status,
            ))

        logger.debug(f"Doctor {doctor.id} has {len(summaries)} patients")
        return summaries
