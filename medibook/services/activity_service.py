from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import logging

from ..core.config import settings
from ..models.activity import SystemActivity, ActivityType
from ..schemas.admin import ActivityResponse

logger = logging.getLogger(__name__)


def format_relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """Render a timestamp as "5 minutes ago", "2 hours ago" and so on."""
    now = now or datetime.utcnow()
    seconds = int((now - moment).total_seconds())

    if seconds < 60:
        return "Just now"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"

    days = hours // 24
    if days < 30:
        return f"{days} day{'s' if days > 1 else ''} ago"

    return moment.strftime("%m/%d/%Y")


def describe_activity(activity: SystemActivity) -> str:
    if activity.type == ActivityType.NEW_DOCTOR:
        suffix = f" ({activity.specialty})" if activity.specialty else ""
        return f"New doctor joined: {activity.doctor_name}{suffix}"
    if activity.type == ActivityType.NEW_PATIENT:
        return f"New patient registered: {activity.patient_name}"
    if activity.type == ActivityType.EMERGENCY_APPROVED:
        return f"Emergency appointment approved for {activity.patient_name} by {activity.doctor_name}"
    if activity.type == ActivityType.WAITLIST_UPDATE:
        count = activity.count or 1
        noun = "patient" if count == 1 else "patients"
        return f"{count} new {noun} added to {activity.specialty or 'general'} waitlist"
    if activity.type == ActivityType.APPOINTMENT_COMPLETED:
        return f"Appointment completed: {activity.patient_name} with {activity.doctor_name}"
    return activity.type.value


class ActivityService:
    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        activity_type: ActivityType,
        doctor_name: Optional[str] = None,
        patient_name: Optional[str] = None,
        specialty: Optional[str] = None,
        count: Optional[int] = None,
    ) -> SystemActivity:
        """Add an activity to the session; the caller commits."""
        activity = SystemActivity(
            type=activity_type,
            doctor_name=doctor_name,
            patient_name=patient_name,
            specialty=specialty,
            count=count,
        )
        self.db.add(activity)
        logger.debug(f"Recorded activity {activity_type.value}")
        return activity

    def recent(self, limit: Optional[int] = None) -> List[ActivityResponse]:
        limit = limit or settings.RECENT_ACTIVITY_LIMIT
        activities = self.db.query(SystemActivity).order_by(
            SystemActivity.created_at.desc(), SystemActivity.id.desc()
        ).limit(limit).all()

        now = datetime.utcnow()
        return [
            ActivityResponse(
                id=activity.id,
                type=activity.type,
                message=describe_activity(activity),
                time=format_relative_time(activity.created_at, now),
                created_at=activity.created_at,
                doctor_name=activity.doctor_name,
                patient_name=activity.patient_name,
                specialty=activity.specialty,
                count=activity.count,
            )
            for activity in activities
        ]
