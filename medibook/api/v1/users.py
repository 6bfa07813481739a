from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user
from ...models.user import User
from ...schemas.user import ProfileResponse, ProfileUpdate
from ...services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Account details together with the role profile."""
    return ProfileResponse.model_validate(current_user)


@router.patch("/me/profile", response_model=ProfileResponse)
async def update_profile(
    changes: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user = UserService(db).update_profile(current_user, changes)
    return ProfileResponse.model_validate(user)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete the caller's account and everything it owns."""
    UserService(db).delete_user(current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
