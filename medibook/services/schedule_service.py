from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional
import logging

from ..core.security import AuthorizationError
from ..models.schedule_slot import ScheduleSlot
from ..models.user import User
from ..schemas.appointment import AppointmentResponse
from ..schemas.schedule import BlockSlotsRequest, BlockSlotsResult, DayScheduleResponse, ScheduleSlotResponse
from .appointment_service import AppointmentService
from .scheduling import (
    blocked_times, doctor_booked_times, normalize_time, slot_label, slot_times
)

logger = logging.getLogger(__name__)


class ScheduleService:
    def __init__(self, db: Session):
        self.db = db

    def block_slots(self, doctor: User, request: BlockSlotsRequest) -> BlockSlotsResult:
        """Block times for a day, skipping ones that are booked or already blocked."""
        if request.day < date.today():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot block time slots in the past"
            )

        grid = slot_times()
        times = []
        for value in request.times:
            value = normalize_time(value)
            if value not in grid:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{slot_label(value)} is not a bookable time slot"
                )
            if value not in times:
                times.append(value)

        booked = doctor_booked_times(self.db, doctor.id, request.day)
        blocked = blocked_times(self.db, doctor.id, request.day)

        result = BlockSlotsResult()
        created = []
        for value in times:
            if value in booked:
                result.conflicts.append(slot_label(value))
                continue
            if value in blocked:
                result.already_blocked.append(slot_label(value))
                continue

            slot = ScheduleSlot(
                doctor_id=doctor.id,
                day=request.day,
                time=value,
                reason=request.reason.strip(),
            )
            self.db.add(slot)
            created.append(slot)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Time slots changed while blocking; please retry"
            )

        for slot in created:
            self.db.refresh(slot)
        result.blocked = [ScheduleSlotResponse.model_validate(slot) for slot in created]

        if result.conflicts:
            logger.warning(
                f"Doctor {doctor.id} could not block {result.conflicts} on {request.day}: appointments exist"
            )
        logger.info(f"Doctor {doctor.id} blocked {len(created)} slots on {request.day}")
        return result

    def list_blocked(self, doctor: User, day: Optional[date] = None) -> List[ScheduleSlot]:
        query = self.db.query(ScheduleSlot).filter(ScheduleSlot.doctor_id == doctor.id)
        if day is not None:
            query = query.filter(ScheduleSlot.day == day)
        return query.order_by(ScheduleSlot.day, ScheduleSlot.time).all()

    def unblock(self, doctor: User, slot_id: int) -> None:
        slot = self.db.query(ScheduleSlot).filter(ScheduleSlot.id == slot_id).first()
        if not slot:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Blocked slot not found"
            )
        if slot.doctor_id != doctor.id:
            raise AuthorizationError("You can only unblock your own time slots")

        self.db.delete(slot)
        self.db.commit()

    def day_view(self, doctor: User, day: date) -> DayScheduleResponse:
        appointments = AppointmentService(self.db).list_for_user(doctor, day=day)
        return DayScheduleResponse(
            day=day,
            appointments=[AppointmentResponse.model_validate(a) for a in appointments],
            blocked_slots=[ScheduleSlotResponse.model_validate(s) for s in self.list_blocked(doctor, day)],
        )
