"""
Conversation model for direct, booking and support threads.
"""

import enum
import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .message import Message


class ConversationType(enum.Enum):
    DIRECT = "direct"
    BOOKING = "booking"
    SUPPORT = "support"


class Conversation(Base):
    """A message thread between users."""

    __tablename__ = "conversations"

    conversation_type: Mapped[ConversationType] = mapped_column(
        Enum(ConversationType),
        default=ConversationType.DIRECT,
        nullable=False,
        index=True
    )

    related_booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    related_service_provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("service_providers.id", ondelete="SET NULL"),
        nullable=True
    )
    related_event_center_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_centers.id", ondelete="SET NULL"),
        nullable=True
    )

    # Last message summary
    last_message_text: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    last_message_sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    participants: Mapped[List["ConversationParticipant"]] = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    messages: Mapped[List["Message"]] = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="raise"
    )

    @property
    def participant_ids(self) -> List[uuid.UUID]:
        return [participant.user_id for participant in self.participants]

    def participant_for(self, user_id: uuid.UUID) -> Optional["ConversationParticipant"]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, type={self.conversation_type.value})>"


class ConversationParticipant(Base):
    """Membership of a user in a conversation, with per-user read state."""

    __tablename__ = "conversation_participants"

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    unread_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    conversation: Mapped["Conversation"] = relationship("Conversation", back_populates="participants")
    user: Mapped["User"] = relationship("User", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participants_user"),
    )
