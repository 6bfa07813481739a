from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Time, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base


class ScheduleSlot(Base):
    """A time on a given day that a doctor has blocked from booking."""

    __tablename__ = "schedule_slots"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    reason = Column(String(255), nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("User")

    __table_args__ = (
        UniqueConstraint("doctor_id", "day", "time", name="uq_schedule_slots_doctor_day_time"),
    )

    def __repr__(self):
        return f"<ScheduleSlot(id={self.id}, doctor_id={self.doctor_id}, day='{self.day}', time='{self.time}')>"
