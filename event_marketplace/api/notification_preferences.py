"""
Notification preference endpoints.

Preferences are created with defaults the first time they are read.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.notification import (
    ChannelPreferencesUpdate,
    DoNotDisturbUpdate,
    PreferencesResponse,
    PreferencesUpdateRequest,
)
from ..services.preference_service import PreferenceService
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/notification-preferences", tags=["notification preferences"])


@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    preference = await PreferenceService(db).get_preferences(current_user.id)
    return PreferencesResponse.from_preference(preference)


@router.put("", response_model=PreferencesResponse)
async def update_preferences(
    data: PreferencesUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Merge the given settings into the stored preferences."""
    preference = await PreferenceService(db).update_preferences(current_user.id, data)
    return PreferencesResponse.from_preference(preference)


@router.put("/email", response_model=PreferencesResponse)
async def update_email_preferences(
    data: ChannelPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    preference = await PreferenceService(db).update_channel(current_user.id, "email", data)
    return PreferencesResponse.from_preference(preference)


@router.put("/push", response_model=PreferencesResponse)
async def update_push_preferences(
    data: ChannelPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    preference = await PreferenceService(db).update_channel(current_user.id, "push", data)
    return PreferencesResponse.from_preference(preference)


@router.put("/in-app", response_model=PreferencesResponse)
async def update_in_app_preferences(
    data: ChannelPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    preference = await PreferenceService(db).update_channel(current_user.id, "in_app", data)
    return PreferencesResponse.from_preference(preference)


@router.put("/do-not-disturb", response_model=PreferencesResponse)
async def update_do_not_disturb(
    data: DoNotDisturbUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    preference = await PreferenceService(db).update_do_not_disturb(current_user.id, data)
    return PreferencesResponse.from_preference(preference)


@router.post("/reset", response_model=PreferencesResponse)
async def reset_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Restore the default preferences."""
    preference = await PreferenceService(db).reset_preferences(current_user.id)
    return PreferencesResponse.from_preference(preference)
