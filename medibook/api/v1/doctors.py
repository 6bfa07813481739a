from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user, require_role
from ...core.security import UserRole
from ...models.user import User
from ...schemas.doctor import DoctorPatientSummary, DoctorResponse, SlotAvailability
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    specialty: Optional[str] = None,
    search: Optional[str] = None,
    available_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Browse active doctors."""
    doctors = DoctorService(db).list_doctors(
        specialty=specialty,
        search=search,
        available_only=available_only,
        skip=skip,
        limit=limit,
    )
    return [DoctorResponse.from_user(doctor) for doctor in doctors]


@router.get("/specialties", response_model=List[str])
async def list_specialties(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return DoctorService(db).specialties()


@router.get("/me/patients", response_model=List[DoctorPatientSummary])
async def my_patients(
    current_user: User = Depends(require_role([UserRole.DOCTOR])),
    db: Session = Depends(get_db)
):
    """Patients who have booked or queued with the calling doctor."""
    return DoctorService(db).patients_of(current_user)


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return DoctorResponse.from_user(DoctorService(db).get_doctor(doctor_id))


@router.get("/{doctor_id}/availability", response_model=List[SlotAvailability])
async def doctor_availability(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Every configured slot of the day with whether it can be booked."""
    return DoctorService(db).availability(doctor_id, day, viewer=current_user)
