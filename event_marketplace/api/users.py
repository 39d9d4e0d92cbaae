"""
User profile, CAC verification and account administration endpoints.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole
from ..schemas.auth import UserProfile
from ..schemas.common import PaginationInfo
from ..schemas.user import (
    CacReviewRequest,
    CacSubmission,
    UserListResponse,
    UserProfileUpdate,
    UserStatusResponse,
)
from ..services.user_service import UserService
from ..utils.dependencies import get_current_admin_user, get_current_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfile)
async def get_my_profile(current_user: User = Depends(get_current_user)) -> Any:
    """Get the authenticated user's profile."""
    return UserProfile.model_validate(current_user)


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Matches name or e-mail"),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """List users (admin only)."""
    users, total = await UserService(db).list_users(page, limit, role, is_active, search)
    return UserListResponse(
        users=[UserProfile.model_validate(user) for user in users],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: UUID,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Get any user's profile (admin only)."""
    user = await UserService(db).get_user_or_404(user_id)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/profile", response_model=UserProfile)
async def update_profile(
    user_id: UUID,
    update_data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Update a profile.

    Users update their own profile; admins may update anyone's. Role profile
    fields are merged into what is already stored.
    """
    user = await UserService(db).update_profile(user_id, current_user, update_data)
    return UserProfile.model_validate(user)


@router.post("/{user_id}/verify-cac", response_model=UserProfile)
async def submit_cac(
    user_id: UUID,
    submission: CacSubmission,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Submit CAC registration details for review."""
    user = await UserService(db).submit_cac(user_id, current_user, submission)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/verify-cac-admin", response_model=UserProfile)
async def review_cac(
    user_id: UUID,
    decision: CacReviewRequest,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Approve or reject a CAC submission (admin only)."""
    user = await UserService(db).review_cac(user_id, admin, decision)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/toggle-status", response_model=UserStatusResponse)
async def toggle_user_status(
    user_id: UUID,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Activate or deactivate an account (admin only)."""
    user = await UserService(db).toggle_status(user_id, admin)
    state = "activated" if user.is_active else "deactivated"
    return UserStatusResponse(message=f"User {state} successfully", user=UserProfile.model_validate(user))
