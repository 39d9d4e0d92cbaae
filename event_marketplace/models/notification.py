"""
In-app notification model.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class NotificationType(enum.Enum):
    """Enumeration for notification types."""
    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_RELEASED = "payment_released"
    REVIEW_RECEIVED = "review_received"
    MESSAGE_RECEIVED = "message_received"
    CAC_VERIFIED = "cac_verified"
    CAC_REJECTED = "cac_rejected"
    LISTING_APPROVED = "listing_approved"
    LISTING_REJECTED = "listing_rejected"
    REMINDER = "reminder"
    SYSTEM = "system"


class NotificationPriority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    """Notification delivered to a single recipient."""

    __tablename__ = "notifications"

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    notification_type: Mapped[NotificationType] = mapped_column(Enum(NotificationType), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)

    # Related entities
    related_booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    related_service_provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    related_event_center_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    related_review_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    related_message_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    action_link: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    action_text: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    priority: Mapped[NotificationPriority] = mapped_column(
        Enum(NotificationPriority),
        default=NotificationPriority.MEDIUM,
        nullable=False
    )
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    sender: Mapped[Optional["User"]] = relationship("User", foreign_keys=[sender_id], lazy="selectin")

    __table_args__ = (
        Index("ix_notifications_recipient_read_created", "recipient_id", "is_read", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, recipient_id={self.recipient_id}, "
            f"type={self.notification_type.value}, is_read={self.is_read})>"
        )
