from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Time, Text, Index,
    Enum as SQLEnum, text
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EMERGENCY = "emergency"


# A slot is held by every appointment that has not been cancelled
_HOLDS_SLOT = text("status != 'CANCELLED'")

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED)
    specialty = Column(String(100), nullable=True)
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    cancelled_reason = Column(String(255), nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    medical_note = relationship("MedicalNote", back_populates="appointment", uselist=False)

    __table_args__ = (
        Index(
            "uq_appointments_doctor_slot",
            "doctor_id", "appointment_date", "appointment_time",
            unique=True,
            sqlite_where=_HOLDS_SLOT,
            postgresql_where=_HOLDS_SLOT,
        ),
        Index(
            "uq_appointments_patient_slot",
            "patient_id", "appointment_date", "appointment_time",
            unique=True,
            sqlite_where=_HOLDS_SLOT,
            postgresql_where=_HOLDS_SLOT,
        ),
    )

    @property
    def doctor_name(self):
        return self.doctor.display_name if self.doctor else None

    @property
    def patient_name(self):
        return self.patient.full_name if self.patient else None

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, "
            f"date='{self.appointment_date}', time='{self.appointment_time}')>"
        )
