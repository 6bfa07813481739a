from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user, get_patient_user
from ...models.emergency_request import EmergencyStatus
from ...models.user import User
from ...schemas.emergency import EmergencyCreate, EmergencyResponse
from ...services.emergency_service import EmergencyService

router = APIRouter(prefix="/emergencies", tags=["Emergencies"])


@router.post("", response_model=EmergencyResponse, status_code=status.HTTP_201_CREATED)
async def request_emergency(
    data: EmergencyCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    return EmergencyService(db).create(current_user, data)


@router.get("", response_model=List[EmergencyResponse])
async def list_emergencies(
    request_status: Optional[EmergencyStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EmergencyService(db).list_for_user(current_user, request_status)


@router.post("/{request_id}/approve", response_model=EmergencyResponse)
async def approve_emergency(
    request_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Approve a request, booking an emergency appointment for right now."""
    return EmergencyService(db).approve(request_id, current_user)


@router.post("/{request_id}/reject", response_model=EmergencyResponse)
async def reject_emergency(
    request_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    return EmergencyService(db).reject(request_id, current_user)
