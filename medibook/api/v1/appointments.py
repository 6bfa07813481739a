from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user
from ...models.appointment import AppointmentStatus
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCancel, AppointmentCreate, AppointmentNotes,
    AppointmentReschedule, AppointmentResponse
)
from ...services.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book an appointment.

    Patients pass ``doctor_id``, doctors pass ``patient_id`` and admins
    pass both.
    """
    return AppointmentService(db).book(current_user, data)


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    day: Optional[date] = Query(None, alias="date"),
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    upcoming: bool = False,
    order: str = Query("asc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).list_for_user(
        current_user,
        day=day,
        appointment_status=appointment_status,
        upcoming=upcoming,
        order=order,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).get_for_user(appointment_id, current_user)


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).confirm(appointment_id, current_user)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).complete(appointment_id, current_user)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    data: Optional[AppointmentCancel] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    reason = data.reason if data else None
    return AppointmentService(db).cancel(appointment_id, current_user, reason)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).reschedule(
        appointment_id, current_user, data.appointment_date, data.appointment_time
    )


@router.put("/{appointment_id}/notes", response_model=AppointmentResponse)
async def save_notes(
    appointment_id: int,
    data: AppointmentNotes,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Save visit notes, updating the patient's medical history."""
    return AppointmentService(db).save_notes(appointment_id, current_user, data.notes)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    AppointmentService(db).delete(appointment_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
