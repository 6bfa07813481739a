from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..core.config import settings
from ..core.security import UserRole, AuthorizationError
from ..models.appointment import Appointment
from ..models.medical_note import MedicalNote
from ..models.user import User

logger = logging.getLogger(__name__)


def summarize(content: str, length: Optional[int] = None) -> str:
    length = length or settings.NOTE_SUMMARY_LENGTH
    if len(content) > length:
        return f"{content[:length]}..."
    return content


def visit_title(appointment: Appointment) -> str:
    return f"Visit Notes - {appointment.appointment_date.strftime('%m/%d/%Y')}"


class MedicalNoteService:
    def __init__(self, db: Session):
        self.db = db

    def upsert_for_appointment(self, appointment: Appointment, content: str) -> MedicalNote:
        """Create or replace the note of an appointment; the caller commits."""
        note = self.db.query(MedicalNote).filter(
            MedicalNote.appointment_id == appointment.id
        ).first()

        if note is None:
            note = MedicalNote(
                appointment_id=appointment.id,
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
            )
            self.db.add(note)

        note.title = visit_title(appointment)
        note.specialty = appointment.specialty
        note.summary = summarize(content)
        note.content = content
        return note

    def list_for_user(self, user: User, patient_id: Optional[int] = None) -> List[MedicalNote]:
        query = self.db.query(MedicalNote)

        if user.role == UserRole.PATIENT:
            query = query.filter(MedicalNote.patient_id == user.id)
        elif user.role == UserRole.DOCTOR:
            query = query.filter(MedicalNote.doctor_id == user.id)
            if patient_id is not None:
                query = query.filter(MedicalNote.patient_id == patient_id)
        elif patient_id is not None:
            query = query.filter(MedicalNote.patient_id == patient_id)

        return query.order_by(MedicalNote.created_at.desc(), MedicalNote.id.desc()).all()

    def get_for_user(self, note_id: int, user: User) -> MedicalNote:
        note = self.db.query(MedicalNote).filter(MedicalNote.id == note_id).first()
        if not note:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Medical note not found"
            )

        if user.role != UserRole.ADMIN and user.id not in (note.patient_id, note.doctor_id):
            raise AuthorizationError("You do not have access to this medical note")

        return note
