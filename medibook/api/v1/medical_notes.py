from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user
from ...models.user import User
from ...schemas.medical_note import MedicalNoteResponse
from ...services.medical_note_service import MedicalNoteService

router = APIRouter(prefix="/medical-notes", tags=["Medical Notes"])


@router.get("", response_model=List[MedicalNoteResponse])
async def list_medical_notes(
    patient_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Medical history, newest first."""
    return MedicalNoteService(db).list_for_user(current_user, patient_id)


@router.get("/{note_id}", response_model=MedicalNoteResponse)
async def get_medical_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MedicalNoteService(db).get_for_user(note_id, current_user)
