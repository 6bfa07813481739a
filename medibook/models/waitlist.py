from datetime import datetime
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class WaitlistUrgency(str, enum.Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    specialty = Column(String(100), nullable=True)
    urgency = Column(SQLEnum(WaitlistUrgency), nullable=False, default=WaitlistUrgency.NORMAL)
    position = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    __table_args__ = (
        UniqueConstraint("patient_id", "doctor_id", name="uq_waitlist_patient_doctor"),
    )

    @property
    def doctor_name(self):
        return self.doctor.display_name if self.doctor else None

    @property
    def patient_name(self):
        return self.patient.full_name if self.patient else None

    def __repr__(self):
        return f"<WaitlistEntry(id={self.id}, doctor_id={self.doctor_id}, position={self.position})>"
