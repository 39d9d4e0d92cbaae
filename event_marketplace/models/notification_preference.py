"""
Per-user notification preferences.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from ..utils.dates import utcnow

CHANNELS = ("email", "push", "in_app")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Notification type -> preference category; anything else is "system"
NOTIFICATION_CATEGORIES = {
    "booking_created": "bookings",
    "booking_confirmed": "bookings",
    "booking_cancelled": "bookings",
    "booking_completed": "bookings",
    "payment_received": "payments",
    "payment_released": "payments",
    "review_received": "reviews",
    "message_received": "messages",
    "reminder": "reminders",
    "system": "system",
}


def default_channel_preferences(channel: str) -> Dict[str, bool]:
    """Default category flags for a delivery channel."""
    prefs = {
        "enabled": True,
        "bookings": True,
        "payments": True,
        "messages": True,
        "reviews": True,
        "reminders": True,
    }
    if channel == "email":
        prefs["marketing"] = False
    elif channel == "in_app":
        prefs["system"] = True
    return prefs


def _default_email() -> Dict[str, bool]:
    return default_channel_preferences("email")


def _default_push() -> Dict[str, bool]:
    return default_channel_preferences("push")


def _default_in_app() -> Dict[str, bool]:
    return default_channel_preferences("in_app")


class NotificationPreference(Base):
    """Channel, do-not-disturb and quiet-day settings of one user."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True
    )

    email: Mapped[Dict[str, bool]] = mapped_column(JSON, default=_default_email, nullable=False)
    push: Mapped[Dict[str, bool]] = mapped_column(JSON, default=_default_push, nullable=False)
    in_app: Mapped[Dict[str, bool]] = mapped_column(JSON, default=_default_in_app, nullable=False)

    dnd_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    dnd_start_time: Mapped[str] = mapped_column(String(5), default="22:00", nullable=False)
    dnd_end_time: Mapped[str] = mapped_column(String(5), default="08:00", nullable=False)

    quiet_hours_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quiet_days: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    def channel(self, name: str) -> Dict[str, Any]:
        return getattr(self, name, None) or {}

    def reset(self) -> None:
        """Restore every setting to its default."""
        self.email = _default_email()
        self.push = _default_push()
        self.in_app = _default_in_app()
        self.dnd_enabled = False
        self.dnd_start_time = "22:00"
        self.dnd_end_time = "08:00"
        self.quiet_hours_enabled = False
        self.quiet_days = []

    def should_send(self, notification_type: str, channel: str, now: Optional[datetime] = None) -> bool:
        """
        Decide whether a notification may be delivered on a channel.

        Args:
            notification_type: Notification type value, e.g. ``booking_created``
            channel: One of ``email``, ``push`` or ``in_app``
            now: Reference time, defaults to the current UTC time

        Returns:
            False when the channel is disabled, do-not-disturb or a quiet day is
            in effect, or the category is switched off; True otherwise
        """
        prefs = self.channel(channel)
        if not prefs.get("enabled"):
            return False

        now = now or utcnow()

        if self.dnd_enabled:
            current = now.strftime("%H:%M")
            # The window wraps midnight, so either bound suppresses
            if current >= self.dnd_start_time or current <= self.dnd_end_time:
                return False

        if self.quiet_hours_enabled:
            if WEEKDAYS[now.weekday()] in (self.quiet_days or []):
                return False

        category = NOTIFICATION_CATEGORIES.get(notification_type, "system")
        return prefs.get(category) is not False

    def __repr__(self) -> str:
        return f"<NotificationPreference(id={self.id}, user_id={self.user_id})>"
