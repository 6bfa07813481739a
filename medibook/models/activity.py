from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
import enum

from ..core.database import Base


class ActivityType(str, enum.Enum):
    NEW_DOCTOR = "new_doctor"
    NEW_PATIENT = "new_patient"
    EMERGENCY_APPROVED = "emergency_approved"
    WAITLIST_UPDATE = "waitlist_update"
    APPOINTMENT_COMPLETED = "appointment_completed"


class SystemActivity(Base):
    __tablename__ = "system_activities"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(SQLEnum(ActivityType), nullable=False)
    doctor_name = Column(String(200), nullable=True)
    patient_name = Column(String(200), nullable=True)
    specialty = Column(String(100), nullable=True)
    count = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<SystemActivity(id={self.id}, type='{self.type}')>"
