from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..core.security import UserRole, AuthorizationError
from ..models.activity import ActivityType
from ..models.appointment import Appointment
from ..models.emergency_request import EmergencyRequest, EmergencyStatus
from ..models.user import User
from ..models.waitlist import WaitlistEntry, WaitlistUrgency
from ..schemas.waitlist import WaitlistBook, WaitlistCreate
from .activity_service import ActivityService
from .appointment_service import AppointmentService

logger = logging.getLogger(__name__)


def renumber_queue(db: Session, doctor_id: int, removed_id: Optional[int] = None) -> None:
    """Close gaps in a doctor's queue so positions run 1..n."""
    query = db.query(WaitlistEntry).filter(WaitlistEntry.doctor_id == doctor_id)
    if removed_id is not None:
        query = query.filter(WaitlistEntry.id != removed_id)
    entries = query.order_by(WaitlistEntry.position, WaitlistEntry.created_at, WaitlistEntry.id).all()

    for index, entry in enumerate(entries, start=1):
        if entry.position != index:
            entry.position = index


class WaitlistService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, entry_id: int) -> WaitlistEntry:
        entry = self.db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Waitlist entry not found"
            )
        return entry

    def join(self, patient: User, data: WaitlistCreate) -> WaitlistEntry:
        doctor = AppointmentService(self.db).resolve_doctor(data.doctor_id)

        existing = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.patient_id == patient.id,
            WaitlistEntry.doctor_id == doctor.id
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You are already on this doctor's waitlist"
            )

        queue_length = self.db.query(func.count(WaitlistEntry.id)).filter(
            WaitlistEntry.doctor_id == doctor.id
        ).scalar() or 0

        specialty = doctor.doctor_profile.specialty if doctor.doctor_profile else None
        entry = WaitlistEntry(
            patient_id=patient.id,
            doctor_id=doctor.id,
            specialty=specialty,
            urgency=data.urgency,
            position=queue_length + 1,
            notes=data.notes,
        )
        self.db.add(entry)
        ActivityService(self.db).record(ActivityType.WAITLIST_UPDATE, specialty=specialty, count=1)
        self.db.commit()
        self.db.refresh(entry)

        logger.info(f"Patient {patient.id} joined waitlist of doctor {doctor.id} at position {entry.position}")
        return entry

    def list_for_user(self, user: User) -> List[WaitlistEntry]:
        query = self.db.query(WaitlistEntry)
        if user.role == UserRole.PATIENT:
            query = query.filter(WaitlistEntry.patient_id == user.id)
        elif user.role == UserRole.DOCTOR:
            query = query.filter(WaitlistEntry.doctor_id == user.id)

        return query.order_by(
            WaitlistEntry.position, WaitlistEntry.created_at, WaitlistEntry.id
        ).all()

    def remove(self, entry_id: int, user: User) -> None:
        """Cancel (patient) or decline (doctor) a waitlist entry."""
        entry = self.get(entry_id)
        if user.role != UserRole.ADMIN and user.id not in (entry.patient_id, entry.doctor_id):
            raise AuthorizationError("You do not have access to this waitlist entry")

        self._drop(entry)
        self.db.commit()

    def upgrade_to_emergency(self, entry_id: int, user: User) -> EmergencyRequest:
        """Raise an entry to emergency urgency and alert the doctor."""
        entry = self.get(entry_id)
        if entry.patient_id != user.id:
            raise AuthorizationError("Only the waitlisted patient can upgrade this entry")

        pending = self.db.query(EmergencyRequest).filter(
            EmergencyRequest.patient_id == entry.patient_id,
            EmergencyRequest.doctor_id == entry.doctor_id,
            EmergencyRequest.status == EmergencyStatus.PENDING
        ).first()
        if pending:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An emergency request to this doctor is already pending"
            )

        entry.urgency = WaitlistUrgency.EMERGENCY
        request = EmergencyRequest(
            patient_id=entry.patient_id,
            doctor_id=entry.doctor_id,
            reason=entry.specialty or "Emergency consultation",
            status=EmergencyStatus.PENDING,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)

        logger.info(f"Waitlist entry {entry.id} upgraded to emergency request {request.id}")
        return request

    def book_from_waitlist(self, entry_id: int, doctor: User, data: WaitlistBook) -> Appointment:
        entry = self.get(entry_id)
        if doctor.role != UserRole.ADMIN and entry.doctor_id != doctor.id:
            raise AuthorizationError("Only the waitlist's doctor can book from it")

        appointments = AppointmentService(self.db)
        appointment = appointments.create_booking(
            doctor_id=entry.doctor_id,
            patient_id=entry.patient_id,
            day=data.appointment_date,
            at=data.appointment_time,
            reason=data.reason or entry.notes,
            commit=False,
        )
        self._drop(entry)
        appointments.commit_slot_change()
        self.db.refresh(appointment)

        logger.info(f"Booked appointment {appointment.id} from waitlist entry {entry_id}")
        return appointment

    def _drop(self, entry: WaitlistEntry) -> None:
        self.db.delete(entry)
        renumber_queue(self.db, entry.doctor_id, removed_id=entry.id)
