from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_patient_user, require_role
from ...core.security import UserRole
from ...models.user import User
from ...schemas.dashboard import DoctorDashboard, PatientDashboard
from ...services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/patient", response_model=PatientDashboard)
async def patient_dashboard(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    return DashboardService(db).patient(current_user)


@router.get("/doctor", response_model=DoctorDashboard)
async def doctor_dashboard(
    current_user: User = Depends(require_role([UserRole.DOCTOR])),
    db: Session = Depends(get_db)
):
    return DashboardService(db).doctor(current_user)
