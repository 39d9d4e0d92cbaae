"""
User service for registration, authentication, profiles and CAC verification.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.user import CacStatus, User, UserRole
from ..schemas.auth import TokenResponse, UserProfile, UserRegistration
from ..schemas.user import CacReviewRequest, CacSubmission, UserProfileUpdate
from ..utils.auth import create_access_token, generate_reset_token, hash_reset_token
from ..utils.dates import utcnow
from ..utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    UserNotFoundError,
)
from ..utils.logging_config import log_business_event, log_security_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def build_token_response(user: User) -> TokenResponse:
    """Issue an access token for ``user``."""
    settings = get_settings()
    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserProfile.model_validate(user),
    )


class UserService:
    """Service class for user operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the user service.

        Args:
            session: Database session
        """
        self.session = session
        self.settings = get_settings()

    async def create_user(self, user_data: UserRegistration) -> User:
        """
        Create a new user.

        Args:
            user_data: User registration data

        Returns:
            The created user

        Raises:
            BadRequestError: If a provider registers without a service category
            ConflictError: If email already exists
        """
        if user_data.role == UserRole.PROVIDER and user_data.service_category is None:
            raise BadRequestError("Service category is required for service providers")

        existing_user = await self.get_user_by_email(user_data.email)
        if existing_user:
            raise ConflictError("Email already registered")

        provider_profile = dict(user_data.provider_profile or {})
        if user_data.service_category is not None:
            provider_profile["service_category"] = user_data.service_category.value

        user = User(
            email=user_data.email,
            name=user_data.name.strip(),
            phone=user_data.phone,
            role=user_data.role,
            host_profile=dict(user_data.host_profile or {}),
            provider_profile=provider_profile,
            center_profile=dict(user_data.center_profile or {}),
        )
        user.set_password(user_data.password)

        self.session.add(user)
        await self.session.flush()

        log_business_event("user_registered", {"role": user.role.value}, user_id=str(user.id))
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get a user by ID.

        Args:
            user_id: The user ID

        Returns:
            The user if found, None otherwise
        """
        return await self.session.get(User, user_id)

    async def get_user_or_404(self, user_id: UUID) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Get a user by email.

        Args:
            email: The user email

        Returns:
            The user if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate a user with email and password.

        Args:
            email: The user email
            password: The user password

        Returns:
            The authenticated user

        Raises:
            AuthenticationError: On unknown e-mail or wrong password
            AuthorizationError: If the account is deactivated
        """
        user = await self.get_user_by_email(email)
        if not user or not user.verify_password(password):
            log_security_event("login_failed", {"email_domain": email.split("@")[-1]})
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            log_security_event("login_deactivated_account", {"user_id": str(user.id)})
            raise AuthorizationError("Account has been deactivated")

        return user

    async def authenticate_admin(self, email: str, password: str) -> User:
        user = await self.authenticate_user(email, password)
        if user.role != UserRole.ADMIN:
            log_security_event("admin_login_denied", {"user_id": str(user.id)})
            raise AuthorizationError("Admin access required", required_permission="admin")
        return user

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Create a password reset token for a known e-mail.

        Only the SHA-256 hash of the token is stored.

        Returns:
            The plain token, or None when the e-mail is unknown
        """
        user = await self.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token, token_hash = generate_reset_token()
        user.reset_password_token = token_hash
        user.reset_password_expires = utcnow() + timedelta(minutes=self.settings.password_reset_expire_minutes)
        await self.session.flush()

        log_security_event("password_reset_requested", {"user_id": str(user.id)}, severity="INFO")
        return token

    async def reset_password(self, token: str, new_password: str) -> User:
        """
        Set a new password using a reset token.

        Raises:
            BadRequestError: If the token is unknown or expired
        """
        token_hash = hash_reset_token(token)
        result = await self.session.execute(
            select(User).where(
                User.reset_password_token == token_hash,
                User.reset_password_expires > utcnow(),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise BadRequestError("Invalid or expired reset token")

        user.set_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        await self.session.flush()

        log_security_event("password_reset_completed", {"user_id": str(user.id)}, severity="INFO")
        return user

    async def update_profile(self, user_id: UUID, actor: User, update_data: UserProfileUpdate) -> User:
        """
        Update a user's profile.

        Args:
            user_id: The user being updated
            actor: The authenticated user making the change
            update_data: The update data

        Returns:
            The updated user
        """
        if actor.id != user_id and not actor.is_admin:
            raise AuthorizationError("Not authorized to update this profile")

        user = await self.get_user_or_404(user_id)

        if update_data.email and update_data.email != user.email:
            if await self.get_user_by_email(update_data.email):
                raise ConflictError("Email already in use")
            user.email = update_data.email

        for field in ("name", "phone", "avatar"):
            value = getattr(update_data, field)
            if value is not None:
                setattr(user, field, value)

        for profile_field in ("host_profile", "provider_profile", "center_profile"):
            changes = getattr(update_data, profile_field)
            if changes is not None:
                merged = dict(getattr(user, profile_field) or {})
                merged.update(changes.model_dump(exclude_none=True))
                setattr(user, profile_field, merged)

        user.profile_completed = True
        await self.session.flush()
        return user

    async def submit_cac(self, user_id: UUID, actor: User, submission: CacSubmission) -> User:
        """Store a CAC number for admin review."""
        if actor.id != user_id:
            raise AuthorizationError("You can only submit CAC details for your own account")

        user = await self.get_user_or_404(user_id)
        user.cac_number = submission.cac_number.strip()
        user.cac_business_name = submission.business_name.strip()
        user.cac_status = CacStatus.PENDING
        user.cac_verified = False
        user.cac_rejection_reason = None
        await self.session.flush()

        log_business_event("cac_submitted", {"cac_status": user.cac_status.value}, user_id=str(user.id))
        return user

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if is_active is not None:
            conditions.append(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(func.lower(User.name).like(pattern), User.email.like(pattern)))

        total = await self.session.scalar(select(func.count(User.id)).where(*conditions))
        result = await self.session.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def review_cac(self, user_id: UUID, admin: User, decision: CacReviewRequest) -> User:
        """Approve or reject a pending CAC submission and notify the user."""
        user = await self.get_user_or_404(user_id)
        if not user.cac_number:
            raise BadRequestError("User has not submitted CAC details")

        notifications = NotificationService(self.session)
        if decision.action == "approve":
            user.cac_status = CacStatus.VERIFIED
            user.cac_verified = True
            user.cac_rejection_reason = None
            await self.session.flush()
            await notifications.notify_cac_verified(user)
        else:
            user.cac_status = CacStatus.REJECTED
            user.cac_verified = False
            user.cac_rejection_reason = decision.reason
            await self.session.flush()
            await notifications.notify_cac_rejected(user, decision.reason)

        log_business_event(
            "cac_reviewed",
            {"target_user_id": str(user.id), "decision": decision.action},
            user_id=str(admin.id),
        )
        return user

    async def toggle_status(self, user_id: UUID, admin: User) -> User:
        """Activate or deactivate an account."""
        if user_id == admin.id:
            raise BadRequestError("You cannot change the status of your own account")

        user = await self.get_user_or_404(user_id)
        user.is_active = not user.is_active
        await self.session.flush()

        log_security_event(
            "account_status_changed",
            {"target_user_id": str(user.id), "is_active": user.is_active, "admin_id": str(admin.id)},
            severity="INFO",
        )
        return user
