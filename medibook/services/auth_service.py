from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
import hashlib
import logging

from ..core.config import settings
from ..models.activity import ActivityType
from ..models.doctor import DoctorProfile
from ..models.patient import PatientProfile
from ..models.user import User, RefreshToken
from ..core.security import (
    verify_password, get_password_hash, create_token_pair,
    verify_token, UserRole, UserStatus, generate_password_reset_token,
    verify_admin_key, AuthorizationError
)
from ..schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, PasswordResetConfirm
)
from .activity_service import ActivityService

logger = logging.getLogger(__name__)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister, require_admin_key: bool = True) -> User:
        """Register a new user together with its role profile."""
        if (
            user_data.role == UserRole.ADMIN
            and require_admin_key
            and not verify_admin_key(user_data.admin_key)
        ):
            raise AuthorizationError("Invalid admin key")

        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        if user_data.license_number:
            taken = self.db.query(DoctorProfile).filter(
                DoctorProfile.license_number == user_data.license_number
            ).first()
            if taken:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="License number already registered"
                )

        new_user = User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            full_name=user_data.full_name.strip(),
            phone_number=user_data.phone_number,
            role=user_data.role,
            status=UserStatus.ACTIVE,
        )

        activities = ActivityService(self.db)
        if user_data.role == UserRole.DOCTOR:
            new_user.doctor_profile = DoctorProfile(
                specialty=user_data.specialty,
                license_number=user_data.license_number,
                clinic_name=user_data.clinic_name,
                years_of_experience=user_data.years_of_experience,
            )
            activities.record(
                ActivityType.NEW_DOCTOR,
                doctor_name=new_user.display_name,
                specialty=new_user.doctor_profile.specialty,
            )
        elif user_data.role == UserRole.PATIENT:
            new_user.patient_profile = PatientProfile(
                date_of_birth=user_data.date_of_birth,
                gender=user_data.gender,
            )
            activities.record(ActivityType.NEW_PATIENT, patient_name=new_user.full_name)

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"Registered {new_user.role.value} user {new_user.id}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        # Check account lockout
        if user.locked_until and user.locked_until > datetime.utcnow():
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail="Account is temporarily locked"
            )

        if not verify_password(login_data.password, user.password_hash):
            self._handle_failed_login(user)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if user.status == UserStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is pending approval"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        # Reset failed login attempts
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()

        logger.info(f"User {user.id} logged in")
        return self._issue_tokens(user)

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == _hash_token(refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired refresh token"
            )

        user = self.db.query(User).filter(
            User.id == token_payload.user_id
        ).first()

        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found or inactive"
            )

        return self._issue_tokens(user)

    def logout_user(self, refresh_token: str) -> bool:
        """Logout user by revoking refresh token."""
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == _hash_token(refresh_token)
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )

        user.password_hash = get_password_hash(new_password)
        self.db.commit()

    def request_password_reset(self, email: str) -> bool:
        """Generate password reset token."""
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            # Don't reveal if email exists
            return True

        user.password_reset_token = generate_password_reset_token()
        user.password_reset_expires = datetime.utcnow() + timedelta(
            hours=settings.PASSWORD_RESET_EXPIRE_HOURS
        )

        self.db.commit()

        # TODO: deliver the reset token by email once an SMTP relay is configured
        logger.info(f"Password reset requested for user {user.id}")
        return True

    def reset_password(self, reset_data: PasswordResetConfirm) -> bool:
        """Reset password using reset token."""
        user = self.db.query(User).filter(
            User.password_reset_token == reset_data.token,
            User.password_reset_expires > datetime.utcnow()
        ).first()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token"
            )

        user.password_hash = get_password_hash(reset_data.new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.failed_login_attempts = 0
        user.locked_until = None

        # Revoke all refresh tokens
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user.id
        ).update({"is_revoked": True})

        self.db.commit()
        return True

    def _handle_failed_login(self, user: User):
        """Count a failed attempt and lock the account past the limit."""
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= settings.MAX_FAILED_LOGINS:
            user.locked_until = datetime.utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            logger.warning(f"Locked account {user.id} after {user.failed_login_attempts} failed logins")

        self.db.commit()

    def _issue_tokens(self, user: User) -> TokenResponse:
        """Mint a token pair, keep only its refresh token live and commit."""
        pair = create_token_pair(user.id, user.email, user.role)
        self._store_refresh_token(user.id, pair.refresh_token)
        self.db.commit()
        self.db.refresh(user)

        return TokenResponse(**pair.model_dump(), user=UserResponse.model_validate(user))

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Store refresh token in database, revoking older ones."""
        token_payload = verify_token(refresh_token)
        expires_at = (
            datetime.utcfromtimestamp(token_payload.exp)
            if token_payload and token_payload.exp
            else datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        )

        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).update({"is_revoked": True})

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=_hash_token(refresh_token),
            expires_at=expires_at
        ))
