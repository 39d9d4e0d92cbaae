"""
Pydantic schemas for notifications and notification preferences.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import PaginationInfo
from ..models.notification import NotificationPriority, NotificationType
from ..models.notification_preference import WEEKDAYS

HHMM_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class NotificationResponse(BaseModel):
    id: UUID
    recipient_id: UUID
    sender_id: Optional[UUID]
    notification_type: NotificationType
    title: str
    message: str
    related_booking_id: Optional[UUID]
    related_service_provider_id: Optional[UUID]
    related_event_center_id: Optional[UUID]
    related_review_id: Optional[UUID]
    related_message_id: Optional[UUID]
    action_link: Optional[str]
    action_text: Optional[str]
    is_read: bool
    read_at: Optional[datetime]
    priority: NotificationPriority
    extra: Optional[Dict[str, Any]] = Field(None, serialization_alias="metadata")
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    pagination: PaginationInfo
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkedCountResponse(BaseModel):
    marked_count: int


class DeletedCountResponse(BaseModel):
    deleted_count: int


class NotificationTypesResponse(BaseModel):
    types: List[str]


class ChannelPreferencesUpdate(BaseModel):
    """Partial update of one channel's flags; unknown keys are ignored."""

    enabled: Optional[bool] = None
    bookings: Optional[bool] = None
    payments: Optional[bool] = None
    messages: Optional[bool] = None
    reviews: Optional[bool] = None
    reminders: Optional[bool] = None
    marketing: Optional[bool] = None
    system: Optional[bool] = None


class DoNotDisturbUpdate(BaseModel):
    enabled: Optional[bool] = None
    start_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)


class QuietHoursUpdate(BaseModel):
    enabled: Optional[bool] = None
    days: Optional[List[str]] = None

    def normalized_days(self) -> Optional[List[str]]:
        if self.days is None:
            return None
        return [day.lower() for day in self.days if day.lower() in WEEKDAYS]


class PreferencesUpdateRequest(BaseModel):
    email: Optional[ChannelPreferencesUpdate] = None
    push: Optional[ChannelPreferencesUpdate] = None
    in_app: Optional[ChannelPreferencesUpdate] = None
    do_not_disturb: Optional[DoNotDisturbUpdate] = None
    quiet_hours: Optional[QuietHoursUpdate] = None


class DoNotDisturbResponse(BaseModel):
    enabled: bool
    start_time: str
    end_time: str


class QuietHoursResponse(BaseModel):
    enabled: bool
    days: List[str]


class PreferencesResponse(BaseModel):
    user_id: UUID
    email: Dict[str, bool]
    push: Dict[str, bool]
    in_app: Dict[str, bool]
    do_not_disturb: DoNotDisturbResponse
    quiet_hours: QuietHoursResponse

    @classmethod
    def from_preference(cls, preference) -> "PreferencesResponse":
        return cls(
            user_id=preference.user_id,
            email=preference.email,
            push=preference.push,
            in_app=preference.in_app,
            do_not_disturb=DoNotDisturbResponse(
                enabled=preference.dnd_enabled,
                start_time=preference.dnd_start_time,
                end_time=preference.dnd_end_time,
            ),
            quiet_hours=QuietHoursResponse(
                enabled=preference.quiet_hours_enabled,
                days=preference.quiet_days or [],
            ),
        )
