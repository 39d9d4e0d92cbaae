"""
Conversation and messaging service.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.conversation import Conversation, ConversationParticipant, ConversationType
from ..models.message import DeliveryStatus, Message, MessageType
from ..models.user import User
from ..schemas.conversation import ConversationCreateRequest, MessageCreateRequest
from ..utils.dates import to_naive_utc, utcnow
from ..utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    NotFoundError,
    UserNotFoundError,
)
from ..utils.logging_config import log_business_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ATTACHMENT_PREVIEW = "Attachment"


class ConversationService:
    """Service for conversations between users and their messages."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.notifications = NotificationService(session)

    async def list_conversations(
        self,
        user: User,
        conversation_type: Optional[ConversationType] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Conversation], int]:
        """
        List the user's conversations, most recent message first.

        Conversations the user archived are left out.
        """
        conditions = [
            Conversation.is_active.is_(True),
            Conversation.participants.any(
                (ConversationParticipant.user_id == user.id) & ConversationParticipant.archived.is_(False)
            ),
        ]
        if conversation_type is not None:
            conditions.append(Conversation.conversation_type == conversation_type)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    Conversation.participants.any(ConversationParticipant.user.has(User.name.ilike(pattern))),
                    Conversation.last_message_text.ilike(pattern),
                )
            )

        total = await self.session.scalar(select(func.count(Conversation.id)).where(*conditions))
        result = await self.session.execute(
            select(Conversation)
            .where(*conditions)
            .order_by(
                Conversation.last_message_at.desc().nulls_last(),
                Conversation.created_at.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def create_conversation(self, user: User, data: ConversationCreateRequest) -> Tuple[Conversation, bool]:
        """
        Start a conversation with another user.

        A direct conversation between the same two users is reused.

        Returns:
            Tuple of (conversation, whether it was newly created)
        """
        participant = await self.session.get(User, data.participant_id)
        if participant is None:
            raise UserNotFoundError(data.participant_id)
        if participant.id == user.id:
            raise BadRequestError("Cannot create conversation with yourself")

        if data.conversation_type == ConversationType.DIRECT:
            existing = await self._find_direct(user.id, participant.id)
            if existing is not None:
                return existing, False

        conversation = Conversation(
            conversation_type=data.conversation_type,
            related_booking_id=data.related_booking_id,
            related_service_provider_id=data.related_service_provider_id,
            related_event_center_id=data.related_event_center_id,
            participants=[
                ConversationParticipant(user_id=user.id, unread_count=0),
                ConversationParticipant(user_id=participant.id, unread_count=0),
            ],
        )
        self.session.add(conversation)
        await self.session.flush()

        if data.initial_message:
            message = Message(
                conversation_id=conversation.id,
                sender_id=user.id,
                message_type=MessageType.TEXT,
                text=data.initial_message,
                images=[],
                files=[],
                read_by=[],
                delivery_status=DeliveryStatus.SENT,
            )
            self.session.add(message)
            conversation.last_message_text = data.initial_message
            conversation.last_message_sender_id = user.id
            conversation.last_message_at = utcnow()
            conversation.participant_for(participant.id).unread_count = 1
            await self.session.flush()
            await self.notifications.notify_message_received(message, participant.id, user.name)

        log_business_event(
            "conversation_created",
            {"conversation_id": str(conversation.id), "conversation_type": conversation.conversation_type.value},
            user_id=str(user.id),
        )
        return await self._reload(conversation.id), True

    async def get_conversation(self, conversation_id: UUID, user: User) -> Conversation:
        conversation = await self.session.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found", "conversation", str(conversation_id))
        if conversation.participant_for(user.id) is None:
            raise AuthorizationError("Not authorized to access this conversation")
        return conversation

    async def list_messages(
        self,
        conversation_id: UUID,
        user: User,
        page: int = 1,
        limit: int = 50,
        before: Optional[datetime] = None,
    ) -> Tuple[List[Message], int]:
        """
        Page through a conversation's messages.

        Pages are taken newest first and returned oldest first; ``before``
        loads messages older than a timestamp.
        """
        await self.get_conversation(conversation_id, user)

        conditions = [Message.conversation_id == conversation_id, Message.is_deleted.is_(False)]
        if before is not None:
            conditions.append(Message.created_at < to_naive_utc(before))

        total = await self.session.scalar(select(func.count(Message.id)).where(*conditions))
        result = await self.session.execute(
            select(Message)
            .where(*conditions)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages, total or 0

    async def send_message(self, conversation_id: UUID, user: User, data: MessageCreateRequest) -> Message:
        conversation = await self.get_conversation(conversation_id, user)
        if not data.text and not data.images and not data.files:
            raise BadRequestError("Message must have text, images, or files")

        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=user.id,
            message_type=data.message_type,
            text=data.text or "",
            images=[image.model_dump() for image in data.images],
            files=[item.model_dump() for item in data.files],
            read_by=[],
            delivery_status=DeliveryStatus.SENT,
        )
        self.session.add(message)

        conversation.last_message_text = data.text or ATTACHMENT_PREVIEW
        conversation.last_message_sender_id = user.id
        conversation.last_message_at = now

        recipients = []
        for participant in conversation.participants:
            if participant.user_id != user.id:
                participant.unread_count += 1
                recipients.append(participant.user_id)

        await self.session.flush()
        await self.session.refresh(message, attribute_names=["sender"])

        for recipient_id in recipients:
            await self.notifications.notify_message_received(message, recipient_id, user.name or user.email)

        logger.debug(f"Message {message.id} sent in conversation {conversation.id}")
        return message

    async def mark_as_read(self, conversation_id: UUID, user: User) -> Conversation:
        """Mark the other participants' messages read and reset the user's unread count."""
        conversation = await self.get_conversation(conversation_id, user)

        result = await self.session.execute(
            select(Message).where(
                Message.conversation_id == conversation.id,
                Message.sender_id != user.id,
                Message.is_read.is_(False),
            )
        )
        read_at = utcnow().isoformat()
        reader = str(user.id)
        for message in result.scalars().all():
            message.is_read = True
            message.delivery_status = DeliveryStatus.READ
            if not any(entry.get("user_id") == reader for entry in message.read_by or []):
                message.read_by = list(message.read_by or []) + [{"user_id": reader, "read_at": read_at}]

        conversation.participant_for(user.id).unread_count = 0
        await self.session.flush()
        return conversation

    async def set_archived(self, conversation_id: UUID, user: User, archived: bool) -> Conversation:
        conversation = await self.get_conversation(conversation_id, user)
        conversation.participant_for(user.id).archived = archived
        await self.session.flush()
        return conversation

    async def get_unread_total(self, user: User) -> int:
        total = await self.session.scalar(
            select(func.coalesce(func.sum(ConversationParticipant.unread_count), 0))
            .join(Conversation, Conversation.id == ConversationParticipant.conversation_id)
            .where(ConversationParticipant.user_id == user.id, Conversation.is_active.is_(True))
        )
        return int(total or 0)

    async def _reload(self, conversation_id: UUID) -> Conversation:
        # Loads the participants' users for newly added rows
        result = await self.session.execute(
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _find_direct(self, user_id: UUID, other_id: UUID) -> Optional[Conversation]:
        result = await self.session.execute(
            select(Conversation).where(
                Conversation.conversation_type == ConversationType.DIRECT,
                Conversation.participants.any(ConversationParticipant.user_id == user_id),
                Conversation.participants.any(ConversationParticipant.user_id == other_id),
            )
        )
        for conversation in result.scalars().all():
            if len(conversation.participants) == 2:
                return conversation
        return None
