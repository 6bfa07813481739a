"""Admin statistics and the analytics dashboard.

Monthly buckets cover the twelve calendar months ending with the current
one.  Every appointment status other than completed and cancelled counts
as booked.  Specialty shares are rounded percentages of appointments that
carry a specialty; when none do, doctor profiles are counted instead.
User growth is the running total of accounts at the end of each bucket.
"""
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.security import UserRole, UserStatus
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import DoctorProfile
from ..models.emergency_request import EmergencyRequest, EmergencyStatus
from ..models.user import User
from ..models.waitlist import WaitlistEntry
from ..schemas.admin import (
    AnalyticsResponse, AnalyticsSummary, MonthlyAppointments,
    SpecialtyShare, StatsResponse, UserGrowth, WaitlistDay
)

logger = logging.getLogger(__name__)

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
TOP_SPECIALTIES = 5


def month_keys(today: date, months: int = 12) -> List[Tuple[int, int]]:
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def specialty_shares(counts: Dict[str, int], top: int = TOP_SPECIALTIES) -> List[SpecialtyShare]:
    total = sum(counts.values())
    if not total:
        return []

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    shares = [
        SpecialtyShare(name=name[:1].upper() + name[1:], value=round(count * 100 / total))
        for name, count in ranked[:top]
    ]
    rest = sum(count for _, count in ranked[top:])
    if rest:
        shares.append(SpecialtyShare(name="Others", value=round(rest * 100 / total)))
    return shares


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def _count_role(self, role: UserRole) -> int:
        return self.db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    def stats(self) -> StatsResponse:
        return StatsResponse(
            total_users=self.db.query(func.count(User.id)).scalar() or 0,
            total_doctors=self._count_role(UserRole.DOCTOR),
            total_patients=self._count_role(UserRole.PATIENT),
            total_admins=self._count_role(UserRole.ADMIN),
            total_appointments=self.db.query(func.count(Appointment.id)).scalar() or 0,
            pending_emergencies=self.db.query(func.count(EmergencyRequest.id)).filter(
                EmergencyRequest.status == EmergencyStatus.PENDING
            ).scalar() or 0,
            waitlist_entries=self.db.query(func.count(WaitlistEntry.id)).scalar() or 0,
        )

    def monthly(self, today: date) -> List[MonthlyAppointments]:
        keys = month_keys(today)
        first_year, first_month = keys[0]
        start = date(first_year, first_month, 1)

        buckets = {
            key: MonthlyAppointments(month=date(key[0], key[1], 1).strftime("%b"))
            for key in keys
        }

        rows = self.db.query(Appointment.appointment_date, Appointment.status).filter(
            Appointment.appointment_date >= start
        ).all()
        for row in rows:
            bucket = buckets.get((row.appointment_date.year, row.appointment_date.month))
            if bucket is None:
                continue
            bucket.appointments += 1
            if row.status == AppointmentStatus.COMPLETED:
                bucket.completed += 1
            elif row.status == AppointmentStatus.CANCELLED:
                bucket.cancelled += 1
            else:
                bucket.booked += 1

        return [buckets[key] for key in keys]

    def specialties(self) -> List[SpecialtyShare]:
        rows = self.db.query(Appointment.specialty, func.count(Appointment.id)).filter(
            Appointment.specialty.isnot(None),
            Appointment.specialty != ""
        ).group_by(Appointment.specialty).all()
        counts = {specialty: count for specialty, count in rows}

        if not counts:
            rows = self.db.query(DoctorProfile.specialty, func.count(DoctorProfile.id)).group_by(
                DoctorProfile.specialty
            ).all()
            counts = {specialty: count for specialty, count in rows}

        return specialty_shares(counts)

    def waitlist_week(self, now: datetime) -> List[WaitlistDay]:
        since = datetime.combine(now.date() - timedelta(days=6), time.min)
        created = self.db.query(WaitlistEntry.created_at).filter(
            WaitlistEntry.created_at >= since
        ).all()
        per_day = Counter(WEEKDAYS[row.created_at.weekday()] for row in created)
        return [WaitlistDay(day=day, count=per_day.get(day, 0)) for day in WEEKDAYS]

    def user_growth(self, today: date) -> List[UserGrowth]:
        keys = month_keys(today)
        first_year, first_month = keys[0]
        start = datetime(first_year, first_month, 1)

        running = self.db.query(func.count(User.id)).filter(User.created_at < start).scalar() or 0
        joined = Counter(
            (row.created_at.year, row.created_at.month)
            for row in self.db.query(User.created_at).filter(User.created_at >= start)
        )

        growth = []
        for key in keys:
            running += joined.get(key, 0)
            growth.append(UserGrowth(month=date(key[0], key[1], 1).strftime("%b"), users=running))
        return growth

    def active_doctors(self) -> int:
        return self.db.query(func.count(User.id)).filter(
            User.role == UserRole.DOCTOR,
            User.status == UserStatus.ACTIVE
        ).scalar() or 0

    def analytics(self) -> AnalyticsResponse:
        monthly = self.monthly(date.today())

        total = sum(bucket.appointments for bucket in monthly)
        completed = sum(bucket.completed for bucket in monthly)
        summary = AnalyticsSummary(
            total_appointments=total,
            completion_rate=round(completed * 100 / total) if total else 0,
            monthly_change=monthly[-1].appointments - monthly[-2].appointments,
            active_doctors=self.active_doctors(),
            current_waitlist=self.db.query(func.count(WaitlistEntry.id)).scalar() or 0,
        )

        logger.debug(f"Analytics computed over {total} appointments")
        return AnalyticsResponse(
            monthly=monthly,
            specialties=self.specialties(),
            waitlist_week=self.waitlist_week(datetime.utcnow()),
            user_growth=self.user_growth(date.today()),
            summary=summary,
        )
