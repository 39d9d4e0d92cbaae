"""
Pydantic schemas for conversations and messages.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import PaginationInfo
from ..models.conversation import ConversationType
from ..models.message import DeliveryStatus, MessageType
from ..models.user import UserRole


class ParticipantSummary(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


class ImageAttachment(BaseModel):
    url: str = Field(..., max_length=500)
    caption: Optional[str] = Field(None, max_length=200)


class FileAttachment(BaseModel):
    url: str = Field(..., max_length=500)
    name: str = Field(..., max_length=255)
    size: Optional[int] = Field(None, ge=0)
    type: Optional[str] = Field(None, max_length=100)


class ConversationCreateRequest(BaseModel):
    participant_id: UUID
    conversation_type: ConversationType = ConversationType.DIRECT
    related_booking_id: Optional[UUID] = None
    related_service_provider_id: Optional[UUID] = None
    related_event_center_id: Optional[UUID] = None
    initial_message: Optional[str] = Field(None, max_length=2000)


class MessageCreateRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=2000)
    images: List[ImageAttachment] = []
    files: List[FileAttachment] = []
    message_type: MessageType = MessageType.TEXT


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    sender: Optional[ParticipantSummary] = None
    message_type: MessageType
    text: str
    images: List[Dict[str, Any]]
    files: List[Dict[str, Any]]
    is_read: bool
    read_by: List[Dict[str, Any]]
    delivery_status: DeliveryStatus
    is_edited: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    """A conversation as seen by one participant."""

    id: UUID
    conversation_type: ConversationType
    related_booking_id: Optional[UUID]
    related_service_provider_id: Optional[UUID]
    related_event_center_id: Optional[UUID]
    last_message_text: Optional[str]
    last_message_sender_id: Optional[UUID]
    last_message_at: Optional[datetime]
    participants: List[ParticipantSummary]
    other_participants: List[ParticipantSummary]
    unread_count: int
    archived: bool
    created_at: datetime

    @classmethod
    def for_user(cls, conversation, user_id: UUID) -> "ConversationResponse":
        members = [ParticipantSummary.model_validate(p.user) for p in conversation.participants]
        own = conversation.participant_for(user_id)
        return cls(
            id=conversation.id,
            conversation_type=conversation.conversation_type,
            related_booking_id=conversation.related_booking_id,
            related_service_provider_id=conversation.related_service_provider_id,
            related_event_center_id=conversation.related_event_center_id,
            last_message_text=conversation.last_message_text,
            last_message_sender_id=conversation.last_message_sender_id,
            last_message_at=conversation.last_message_at,
            participants=members,
            other_participants=[m for m in members if m.id != user_id],
            unread_count=own.unread_count if own else 0,
            archived=own.archived if own else False,
            created_at=conversation.created_at,
        )


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    pagination: PaginationInfo


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    pagination: PaginationInfo


class ReadReceiptResponse(BaseModel):
    conversation_id: UUID
    unread_count: int = 0


class UnreadTotalResponse(BaseModel):
    total_unread: int
