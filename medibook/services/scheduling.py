"""Slot grid and conflict checks shared by booking, blocking and waitlists.

Every bookable time comes from ``settings.SLOT_TIMES``.  A slot for a doctor
on a day is unavailable when the doctor has blocked it, when any
non-cancelled appointment with that doctor already holds it, or (for the
patient asking) when the patient holds another appointment at that time.
The same conditions are enforced by unique indexes on ``appointments`` and
``schedule_slots``; the checks here only produce friendlier errors.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Set

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.appointment import Appointment, AppointmentStatus
from ..models.schedule_slot import ScheduleSlot
from ..schemas.doctor import SlotAvailability


def slot_times() -> List[time]:
    return [datetime.strptime(value, "%H:%M").time() for value in settings.SLOT_TIMES]


def slot_label(value: time) -> str:
    return value.strftime("%H:%M")


def normalize_time(value: time) -> time:
    return value.replace(second=0, microsecond=0, tzinfo=None)


def ensure_bookable_time(day: date, at: time) -> None:
    """Reject past dates and times outside the slot grid."""
    at = normalize_time(at)
    if datetime.combine(day, at) < datetime.now():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot book an appointment in the past"
        )
    if normalize_time(at) not in slot_times():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{slot_label(at)} is not a bookable time slot"
        )


def _active_appointments(db: Session):
    return db.query(Appointment).filter(Appointment.status != AppointmentStatus.CANCELLED)


def blocked_times(db: Session, doctor_id: int, day: date) -> Set[time]:
    rows = db.query(ScheduleSlot.time).filter(
        ScheduleSlot.doctor_id == doctor_id,
        ScheduleSlot.day == day
    ).all()
    return {row.time for row in rows}


def doctor_booked_times(db: Session, doctor_id: int, day: date, exclude_id: Optional[int] = None) -> Set[time]:
    query = _active_appointments(db).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == day
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return {appt.appointment_time for appt in query.all()}


def patient_booked_times(db: Session, patient_id: int, day: date, exclude_id: Optional[int] = None) -> Set[time]:
    query = _active_appointments(db).filter(
        Appointment.patient_id == patient_id,
        Appointment.appointment_date == day
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return {appt.appointment_time for appt in query.all()}


def check_slot_free(
    db: Session,
    doctor_id: int,
    patient_id: int,
    day: date,
    at: time,
    exclude_id: Optional[int] = None,
) -> None:
    """Raise 409 when the doctor or patient cannot take this slot."""
    at = normalize_time(at)

    if at in blocked_times(db, doctor_id, day):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This time slot is blocked"
        )

    if at in patient_booked_times(db, patient_id, day, exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have an appointment scheduled at this time"
        )

    if at in doctor_booked_times(db, doctor_id, day, exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This time slot is no longer available"
        )


def availability(
    db: Session,
    doctor_id: int,
    day: date,
    patient_id: Optional[int] = None,
) -> List[SlotAvailability]:
    blocked = blocked_times(db, doctor_id, day)
    booked = doctor_booked_times(db, doctor_id, day)
    own: Set[time] = patient_booked_times(db, patient_id, day) if patient_id else set()
    now = datetime.now()

    slots = []
    for at in slot_times():
        reason = None
        if at in blocked:
            reason = "blocked"
        elif at in booked:
            reason = "booked"
        elif at in own:
            reason = "patient_conflict"
        elif datetime.combine(day, at) < now:
            reason = "past"
        slots.append(SlotAvailability(time=slot_label(at), available=reason is None, reason=reason))
    return slots


def first_free_minute(db: Session, doctor_id: int, patient_id: int, day: date, start: time) -> time:
    """First minute from ``start`` on that neither the doctor nor the patient holds."""
    taken = doctor_booked_times(db, doctor_id, day) | patient_booked_times(db, patient_id, day)
    moment = datetime.combine(day, normalize_time(start))
    while moment.time() in taken:
        moment += timedelta(minutes=1)
        if moment.date() != day:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No free time left today for this emergency"
            )
    return moment.time()
