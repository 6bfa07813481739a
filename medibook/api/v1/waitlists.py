from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user, get_patient_user
from ...models.user import User
from ...schemas.appointment import AppointmentResponse
from ...schemas.emergency import EmergencyResponse
from ...schemas.waitlist import WaitlistBook, WaitlistCreate, WaitlistResponse
from ...services.waitlist_service import WaitlistService

router = APIRouter(prefix="/waitlists", tags=["Waitlists"])


@router.post("", response_model=WaitlistResponse, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    data: WaitlistCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    return WaitlistService(db).join(current_user, data)


@router.get("", response_model=List[WaitlistResponse])
async def list_waitlist(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """A patient's own entries, or a doctor's queue in position order."""
    return WaitlistService(db).list_for_user(current_user)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waitlist(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    WaitlistService(db).remove(entry_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{entry_id}/upgrade", response_model=EmergencyResponse, status_code=status.HTTP_201_CREATED)
async def upgrade_to_emergency(
    entry_id: int,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    return WaitlistService(db).upgrade_to_emergency(entry_id, current_user)


@router.post("/{entry_id}/book", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_from_waitlist(
    entry_id: int,
    data: WaitlistBook,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    return WaitlistService(db).book_from_waitlist(entry_id, current_user, data)
