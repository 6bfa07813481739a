from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date, time
from typing import List, Optional
import logging

from ..core.security import UserRole, UserStatus, AuthorizationError
from ..models.activity import ActivityType
from ..models.appointment import Appointment, AppointmentStatus
from ..models.emergency_request import EmergencyRequest
from ..models.user import User
from ..schemas.appointment import AppointmentCreate
from .activity_service import ActivityService
from .medical_note_service import MedicalNoteService
from .scheduling import check_slot_free, ensure_bookable_time, normalize_time

logger = logging.getLogger(__name__)

CONFIRMABLE = {AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED}
COMPLETABLE = {
    AppointmentStatus.PENDING,
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.EMERGENCY,
}
CLOSED = {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    # Lookups

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    def get_for_user(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get(appointment_id)
        self._require_participant(appointment, user)
        return appointment

    def resolve_doctor(self, doctor_id: Optional[int]) -> User:
        doctor = self.db.query(User).filter(
            User.id == doctor_id,
            User.role == UserRole.DOCTOR,
            User.status == UserStatus.ACTIVE
        ).first() if doctor_id is not None else None
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def resolve_patient(self, patient_id: Optional[int]) -> User:
        patient = self.db.query(User).filter(
            User.id == patient_id,
            User.role == UserRole.PATIENT
        ).first() if patient_id is not None else None
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

    # Booking

    def book(self, user: User, data: AppointmentCreate) -> Appointment:
        """Book an appointment for the caller's role."""
        if user.role == UserRole.PATIENT:
            patient_id, doctor_id = user.id, data.doctor_id
        elif user.role == UserRole.DOCTOR:
            patient_id, doctor_id = data.patient_id, user.id
        else:
            patient_id, doctor_id = data.patient_id, data.doctor_id

        if doctor_id is None or patient_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Both a doctor and a patient are required"
            )

        return self.create_booking(
            doctor_id=doctor_id,
            patient_id=patient_id,
            day=data.appointment_date,
            at=data.appointment_time,
            reason=data.reason,
        )

    def create_booking(
        self,
        doctor_id: int,
        patient_id: int,
        day: date,
        at: time,
        reason: Optional[str] = None,
        commit: bool = True,
    ) -> Appointment:
        ensure_bookable_time(day, at)
        doctor = self.resolve_doctor(doctor_id)
        patient = self.resolve_patient(patient_id)
        at = normalize_time(at)

        check_slot_free(self.db, doctor.id, patient.id, day, at)

        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=day,
            appointment_time=at,
            status=AppointmentStatus.SCHEDULED,
            specialty=doctor.doctor_profile.specialty if doctor.doctor_profile else None,
            reason=reason or "Regular checkup",
        )
        self.db.add(appointment)

        if commit:
            self.commit_slot_change()
            self.db.refresh(appointment)
            logger.info(
                f"Booked appointment {appointment.id} with doctor {doctor.id} "
                f"for patient {patient.id} on {day} at {at}"
            )
        return appointment

    def commit_slot_change(self) -> None:
        """Commit, turning a lost race on a slot into a 409."""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning("Slot conflict detected at commit time")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This time slot is no longer available"
            )

    # Listing

    def list_for_user(
        self,
        user: User,
        day: Optional[date] = None,
        appointment_status: Optional[AppointmentStatus] = None,
        upcoming: bool = False,
        order: str = "asc",
    ) -> List[Appointment]:
        query = self.db.query(Appointment)

        if user.role == UserRole.PATIENT:
            query = query.filter(Appointment.patient_id == user.id)
        elif user.role == UserRole.DOCTOR:
            query = query.filter(Appointment.doctor_id == user.id)

        if day is not None:
            query = query.filter(Appointment.appointment_date == day)
        if appointment_status is not None:
            query = query.filter(Appointment.status == appointment_status)
        if upcoming:
            query = query.filter(
                Appointment.appointment_date >= date.today(),
                Appointment.status.notin_(CLOSED)
            )

        if order == "desc":
            query = query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        else:
            query = query.order_by(Appointment.appointment_date, Appointment.appointment_time)

        return query.all()

    # Status changes

    def confirm(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get(appointment_id)
        self._require_doctor_of(appointment, user)
        self._require_status(appointment, CONFIRMABLE, "confirmed")

        appointment.status = AppointmentStatus.CONFIRMED
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def complete(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get(appointment_id)
        self._require_doctor_of(appointment, user)
        self._require_status(appointment, COMPLETABLE, "completed")

        appointment.status = AppointmentStatus.COMPLETED
        ActivityService(self.db).record(
            ActivityType.APPOINTMENT_COMPLETED,
            doctor_name=appointment.doctor_name,
            patient_name=appointment.patient_name,
            specialty=appointment.specialty,
        )
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} completed")
        return appointment

    def cancel(self, appointment_id: int, user: User, reason: Optional[str] = None) -> Appointment:
        appointment = self.get(appointment_id)
        self._require_participant(appointment, user)
        if appointment.status in CLOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot cancel a {appointment.status.value} appointment"
            )

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancelled_reason = reason
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} cancelled by user {user.id}")
        return appointment

    def reschedule(self, appointment_id: int, user: User, day: date, at: time) -> Appointment:
        appointment = self.get(appointment_id)
        self._require_participant(appointment, user)
        if appointment.status in CLOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot reschedule a {appointment.status.value} appointment"
            )

        ensure_bookable_time(day, at)
        at = normalize_time(at)
        check_slot_free(
            self.db, appointment.doctor_id, appointment.patient_id, day, at,
            exclude_id=appointment.id
        )

        appointment.appointment_date = day
        appointment.appointment_time = at
        appointment.status = AppointmentStatus.SCHEDULED
        self.commit_slot_change()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} rescheduled to {day} at {at}")
        return appointment

    def save_notes(self, appointment_id: int, user: User, notes: str) -> Appointment:
        """Store notes on the appointment and in the patient's medical record."""
        appointment = self.get(appointment_id)
        self._require_doctor_of(appointment, user)

        appointment.notes = notes
        MedicalNoteService(self.db).upsert_for_appointment(appointment, notes)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def delete(self, appointment_id: int, user: User) -> None:
        appointment = self.get(appointment_id)
        self._require_doctor_of(appointment, user)

        if appointment.medical_note is not None:
            self.db.delete(appointment.medical_note)
        self.db.query(EmergencyRequest).filter(
            EmergencyRequest.appointment_id == appointment.id
        ).update({"appointment_id": None}, synchronize_session=False)
        self.db.delete(appointment)
        self.db.commit()

        logger.info(f"Appointment {appointment_id} deleted by user {user.id}")

    # Guards

    def _require_participant(self, appointment: Appointment, user: User) -> None:
        if user.role == UserRole.ADMIN:
            return
        if user.id not in (appointment.patient_id, appointment.doctor_id):
            raise AuthorizationError("You do not have access to this appointment")

    def _require_doctor_of(self, appointment: Appointment, user: User) -> None:
        if user.role == UserRole.ADMIN:
            return
        if user.role != UserRole.DOCTOR or appointment.doctor_id != user.id:
            raise AuthorizationError("Only the appointment's doctor can do this")

    def _require_status(self, appointment: Appointment, allowed, target: str) -> None:
        if appointment.status not in allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot mark a {appointment.status.value} appointment as {target}"
            )
