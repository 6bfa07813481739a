from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import require_role
from ...core.security import UserRole
from ...models.user import User
from ...schemas.schedule import (
    BlockSlotsRequest, BlockSlotsResult, DayScheduleResponse, ScheduleSlotResponse
)
from ...services.schedule_service import ScheduleService

router = APIRouter(prefix="/schedule", tags=["Schedule"])

doctor_only = require_role([UserRole.DOCTOR])


@router.post("/blocks", response_model=BlockSlotsResult, status_code=status.HTTP_201_CREATED)
async def block_slots(
    data: BlockSlotsRequest,
    current_user: User = Depends(doctor_only),
    db: Session = Depends(get_db)
):
    """Block time slots; booked and already blocked times are reported back."""
    return ScheduleService(db).block_slots(current_user, data)


@router.get("/blocks", response_model=List[ScheduleSlotResponse])
async def list_blocks(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(doctor_only),
    db: Session = Depends(get_db)
):
    return ScheduleService(db).list_blocked(current_user, day)


@router.delete("/blocks/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_slot(
    slot_id: int,
    current_user: User = Depends(doctor_only),
    db: Session = Depends(get_db)
):
    ScheduleService(db).unblock(current_user, slot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=DayScheduleResponse)
async def day_schedule(
    day: date = Query(..., alias="date"),
    current_user: User = Depends(doctor_only),
    db: Session = Depends(get_db)
):
    return ScheduleService(db).day_view(current_user, day)
