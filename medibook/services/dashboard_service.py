from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import date
import logging

from ..models.appointment import Appointment, AppointmentStatus
from ..models.emergency_request import EmergencyStatus
from ..models.user import User
from ..models.waitlist import WaitlistEntry
from ..schemas.appointment import AppointmentResponse
from ..schemas.dashboard import DoctorDashboard, PatientDashboard
from ..schemas.emergency import EmergencyResponse
from ..schemas.medical_note import MedicalNoteResponse
from ..schemas.waitlist import WaitlistResponse
from .appointment_service import AppointmentService
from .emergency_service import EmergencyService
from .medical_note_service import MedicalNoteService
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

RECENT_NOTES = 5


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def patient(self, patient: User) -> PatientDashboard:
        upcoming = AppointmentService(self.db).list_for_user(patient, upcoming=True)
        waitlist = WaitlistService(self.db).list_for_user(patient)
        notes = MedicalNoteService(self.db).list_for_user(patient)[:RECENT_NOTES]
        completed = self.db.query(func.count(Appointment.id)).filter(
            Appointment.patient_id == patient.id,
            Appointment.status == AppointmentStatus.COMPLETED
        ).scalar() or 0

        return PatientDashboard(
            upcoming_appointments=[AppointmentResponse.model_validate(a) for a in upcoming],
            waitlist=[WaitlistResponse.model_validate(w) for w in waitlist],
            recent_notes=[MedicalNoteResponse.model_validate(n) for n in notes],
            upcoming_count=len(upcoming),
            completed_count=completed,
            waitlist_count=len(waitlist),
        )

    def doctor(self, doctor: User) -> DoctorDashboard:
        appointments = AppointmentService(self.db)
        today = appointments.list_for_user(doctor, day=date.today())
        done = sum(1 for a in today if a.status == AppointmentStatus.COMPLETED)
        upcoming = appointments.list_for_user(doctor, upcoming=True)
        emergencies = EmergencyService(self.db).list_for_user(doctor, EmergencyStatus.PENDING)
        queue = self.db.query(func.count(WaitlistEntry.id)).filter(
            WaitlistEntry.doctor_id == doctor.id
        ).scalar() or 0

        return DoctorDashboard(
            today_appointments=[AppointmentResponse.model_validate(a) for a in today],
            today_total=len(today),
            today_completed=done,
            completion_rate=round(done * 100 / len(today)) if today else 0,
            upcoming_count=len(upcoming),
            pending_emergencies=[EmergencyResponse.model_validate(e) for e in emergencies],
            waitlist_count=queue,
        )
