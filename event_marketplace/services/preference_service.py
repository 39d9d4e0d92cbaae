"""
Notification preference service.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.notification_preference import CHANNELS, NotificationPreference
from ..schemas.notification import (
    ChannelPreferencesUpdate,
    DoNotDisturbUpdate,
    PreferencesUpdateRequest,
    QuietHoursUpdate,
)
from ..utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)


class PreferenceService:
    """Service for reading and updating a user's notification preferences."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_preferences(self, user_id: UUID) -> NotificationPreference:
        """Get the user's preferences, creating the defaults on first access."""
        preference = await self.session.scalar(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        if preference is None:
            preference = NotificationPreference(user_id=user_id)
            preference.reset()
            self.session.add(preference)
            await self.session.flush()
            logger.info(f"Default notification preferences created for user {user_id}")
        return preference

    async def update_preferences(self, user_id: UUID, data: PreferencesUpdateRequest) -> NotificationPreference:
        preference = await self.get_preferences(user_id)

        for channel in CHANNELS:
            channel_update = getattr(data, channel)
            if channel_update is not None:
                self._merge_channel(preference, channel, channel_update)
        if data.do_not_disturb is not None:
            self._apply_dnd(preference, data.do_not_disturb)
        if data.quiet_hours is not None:
            self._apply_quiet_hours(preference, data.quiet_hours)

        await self.session.flush()
        return preference

    async def update_channel(
        self,
        user_id: UUID,
        channel: str,
        data: ChannelPreferencesUpdate,
    ) -> NotificationPreference:
        if channel not in CHANNELS:
            raise BadRequestError(f"Unknown notification channel: {channel}")
        preference = await self.get_preferences(user_id)
        self._merge_channel(preference, channel, data)
        await self.session.flush()
        return preference

    async def update_do_not_disturb(self, user_id: UUID, data: DoNotDisturbUpdate) -> NotificationPreference:
        preference = await self.get_preferences(user_id)
        self._apply_dnd(preference, data)
        await self.session.flush()
        return preference

    async def reset_preferences(self, user_id: UUID) -> NotificationPreference:
        preference = await self.get_preferences(user_id)
        preference.reset()
        await self.session.flush()
        logger.info(f"Notification preferences reset for user {user_id}")
        return preference

    @staticmethod
    def _merge_channel(preference: NotificationPreference, channel: str, data: ChannelPreferencesUpdate) -> None:
        merged = dict(preference.channel(channel))
        merged.update(data.model_dump(exclude_none=True))
        setattr(preference, channel, merged)

    @staticmethod
    def _apply_dnd(preference: NotificationPreference, data: DoNotDisturbUpdate) -> None:
        if data.enabled is not None:
            preference.dnd_enabled = data.enabled
        if data.start_time is not None:
            preference.dnd_start_time = data.start_time
        if data.end_time is not None:
            preference.dnd_end_time = data.end_time

    @staticmethod
    def _apply_quiet_hours(preference: NotificationPreference, data: QuietHoursUpdate) -> None:
        if data.enabled is not None:
            preference.quiet_hours_enabled = data.enabled
        days = data.normalized_days()
        if days is not None:
            preference.quiet_days = days
