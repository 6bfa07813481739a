from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date, datetime
from typing import List, Optional
import logging

from ..core.security import UserRole, AuthorizationError
from ..models.activity import ActivityType
from ..models.appointment import Appointment, AppointmentStatus
from ..models.emergency_request import EmergencyRequest, EmergencyStatus
from ..models.user import User
from ..schemas.emergency import EmergencyCreate
from .activity_service import ActivityService
from .appointment_service import AppointmentService
from .scheduling import first_free_minute

logger = logging.getLogger(__name__)


class EmergencyService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: int) -> EmergencyRequest:
        request = self.db.query(EmergencyRequest).filter(
            EmergencyRequest.id == request_id
        ).first()
        if not request:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Emergency request not found"
            )
        return request

    def create(self, patient: User, data: EmergencyCreate) -> EmergencyRequest:
        doctor = AppointmentService(self.db).resolve_doctor(data.doctor_id)

        pending = self.db.query(EmergencyRequest).filter(
            EmergencyRequest.patient_id == patient.id,
            EmergencyRequest.doctor_id == doctor.id,
            EmergencyRequest.status == EmergencyStatus.PENDING
        ).first()
        if pending:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An emergency request to this doctor is already pending"
            )

        request = EmergencyRequest(
            patient_id=patient.id,
            doctor_id=doctor.id,
            reason=data.reason,
            status=EmergencyStatus.PENDING,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)

        logger.info(f"Emergency request {request.id} from patient {patient.id} to doctor {doctor.id}")
        return request

    def list_for_user(
        self,
        user: User,
        request_status: Optional[EmergencyStatus] = None
    ) -> List[EmergencyRequest]:
        query = self.db.query(EmergencyRequest)
        if user.role == UserRole.PATIENT:
            query = query.filter(EmergencyRequest.patient_id == user.id)
        elif user.role == UserRole.DOCTOR:
            query = query.filter(EmergencyRequest.doctor_id == user.id)

        if request_status is not None:
            query = query.filter(EmergencyRequest.status == request_status)

        return query.order_by(EmergencyRequest.created_at.desc(), EmergencyRequest.id.desc()).all()

    def approve(self, request_id: int, doctor: User) -> EmergencyRequest:
        """Approve a pending request and book the patient in right now."""
        request = self._pending_for_doctor(request_id, doctor)

        today = date.today()
        at = first_free_minute(
            self.db, request.doctor_id, request.patient_id, today, datetime.now().time()
        )
        appointment = Appointment(
            doctor_id=request.doctor_id,
            patient_id=request.patient_id,
            appointment_date=today,
            appointment_time=at,
            status=AppointmentStatus.EMERGENCY,
            specialty=request.reason,
            reason=request.reason,
        )
        self.db.add(appointment)

        request.status = EmergencyStatus.APPROVED
        request.appointment = appointment
        ActivityService(self.db).record(
            ActivityType.EMERGENCY_APPROVED,
            doctor_name=request.doctor_name,
            patient_name=request.patient_name,
        )
        AppointmentService(self.db).commit_slot_change()
        self.db.refresh(request)

        logger.info(f"Emergency request {request.id} approved as appointment {appointment.id}")
        return request

    def reject(self, request_id: int, doctor: User) -> EmergencyRequest:
        request = self._pending_for_doctor(request_id, doctor)
        request.status = EmergencyStatus.REJECTED
        self.db.commit()
        self.db.refresh(request)

        logger.info(f"Emergency request {request.id} rejected")
        return request

    def _pending_for_doctor(self, request_id: int, doctor: User) -> EmergencyRequest:
        request = self.get(request_id)
        if doctor.role != UserRole.ADMIN and request.doctor_id != doctor.id:
            raise AuthorizationError("This emergency request is addressed to another doctor")
        if request.status != EmergencyStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Emergency request is already {request.status.value}"
            )
        return request
