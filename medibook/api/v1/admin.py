from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.security import UserRole, UserStatus
from ...api.deps import get_admin_user
from ...models.user import User
from ...schemas.admin import (
    ActivityResponse, AdminUserCreate, AdminUserUpdate, AnalyticsResponse,
    StatsResponse, UserStatusUpdate
)
from ...schemas.user import ProfileResponse
from ...services.activity_service import ActivityService
from ...services.analytics_service import AnalyticsService
from ...services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=List[ProfileResponse])
async def list_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """List all users (admin only)."""
    return UserService(db).list_users(
        search=search, role=role, user_status=user_status, skip=skip, limit=limit
    )


@router.post("/users", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: AdminUserCreate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return UserService(db).create_user(data)


@router.patch("/users/{user_id}", response_model=ProfileResponse)
async def update_user(
    user_id: int,
    changes: AdminUserUpdate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return UserService(db).update_user(user_id, changes)


@router.patch("/users/{user_id}/status", response_model=ProfileResponse)
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Activate, deactivate or park a user as pending."""
    return UserService(db).set_status(user_id, data.status)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account from the admin panel"
        )

    service = UserService(db)
    service.delete_user(service.get_user(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return AnalyticsService(db).stats()


@router.get("/activities", response_model=List[ActivityResponse])
async def recent_activities(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Most recent system activities with human-readable times."""
    return ActivityService(db).recent(limit)


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return AnalyticsService(db).analytics()
