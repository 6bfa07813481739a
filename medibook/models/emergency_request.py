from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class EmergencyStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EmergencyRequest(Base):
    __tablename__ = "emergency_requests"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    reason = Column(Text, nullable=False)
    status = Column(SQLEnum(EmergencyStatus), nullable=False, default=EmergencyStatus.PENDING)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    appointment = relationship("Appointment")

    @property
    def patient_name(self):
        return self.patient.full_name if self.patient else None

    @property
    def doctor_name(self):
        return self.doctor.display_name if self.doctor else None

    def __repr__(self):
        return f"<EmergencyRequest(id={self.id}, patient_id={self.patient_id}, status='{self.status}')>"
