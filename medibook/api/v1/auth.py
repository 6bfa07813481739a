from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, rate_limit_check, get_current_user_token
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse,
    RefreshTokenRequest, PasswordReset, PasswordResetConfirm,
    ChangePassword
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a patient, doctor or (with the signup key) admin."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
):
    """Authenticate user and return access tokens."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token."""
    auth_service = AuthService(db)
    return auth_service.refresh_access_token(refresh_data.refresh_token)


@router.post("/logout")
async def logout(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Logout user by revoking refresh token."""
    auth_service = AuthService(db)
    success = auth_service.logout_user(refresh_data.refresh_token)

    return {"message": "Successfully logged out" if success else "Logout completed"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserResponse.model_validate(current_user)


@router.post("/change-password")
async def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AuthService(db).change_password(
        current_user, password_data.current_password, password_data.new_password
    )
    return {"message": "Password changed successfully"}


@router.post("/forgot-password")
async def forgot_password(
    reset_data: PasswordReset,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Request password reset."""
    auth_service = AuthService(db)
    auth_service.request_password_reset(reset_data.email)

    return {"message": "If the email exists, a password reset link has been sent"}


@router.post("/reset-password")
async def reset_password(
    reset_data: PasswordResetConfirm,
    db: Session = Depends(get_db)
):
    """Reset password using reset token."""
    auth_service = AuthService(db)
    auth_service.reset_password(reset_data)

    return {"message": "Password reset successfully"}


@router.post("/verify-token")
async def verify_token_endpoint(
    token_payload=Depends(get_current_user_token)
):
    """Verify if token is valid."""
    return {
        "valid": True,
        "user_id": token_payload.user_id,
        "email": token_payload.email,
        "role": token_payload.role,
        "expires": token_payload.exp
    }
