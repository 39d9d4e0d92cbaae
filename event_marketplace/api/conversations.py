"""
Conversation and messaging endpoints.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.conversation import ConversationType
from ..models.user import User
from ..schemas.common import PaginationInfo
from ..schemas.conversation import (
    ConversationCreateRequest,
    ConversationListResponse,
    ConversationResponse,
    MessageCreateRequest,
    MessageListResponse,
    MessageResponse,
    ReadReceiptResponse,
    UnreadTotalResponse,
)
from ..services.conversation_service import ConversationService
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    conversation_type: Optional[ConversationType] = Query(None, alias="type"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """List the caller's conversations, most recently active first."""
    conversations, total = await ConversationService(db).list_conversations(
        current_user, conversation_type, search, page, limit
    )
    return ConversationListResponse(
        conversations=[ConversationResponse.for_user(c, current_user.id) for c in conversations],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    data: ConversationCreateRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Start a conversation.

    An existing direct conversation with the same participant is returned
    with 200 instead of creating a second one.
    """
    conversation, created = await ConversationService(db).create_conversation(current_user, data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ConversationResponse.for_user(conversation, current_user.id)


@router.get("/unread-count", response_model=UnreadTotalResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    total = await ConversationService(db).get_unread_total(current_user)
    return UnreadTotalResponse(total_unread=total)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    conversation = await ConversationService(db).get_conversation(conversation_id, current_user)
    return ConversationResponse.for_user(conversation, current_user.id)


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: UUID,
    before: Optional[datetime] = Query(None, description="Only messages older than this time"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Messages of a conversation in chronological order."""
    messages, total = await ConversationService(db).list_messages(
        conversation_id, current_user, page, limit, before
    )
    return MessageListResponse(
        messages=[MessageResponse.model_validate(message) for message in messages],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    data: MessageCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Send a message; the other participants are notified."""
    message = await ConversationService(db).send_message(conversation_id, current_user, data)
    return MessageResponse.model_validate(message)


@router.put("/{conversation_id}/read", response_model=ReadReceiptResponse)
async def mark_conversation_read(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    conversation = await ConversationService(db).mark_as_read(conversation_id, current_user)
    return ReadReceiptResponse(conversation_id=conversation.id, unread_count=0)


@router.put("/{conversation_id}/archive", response_model=ConversationResponse)
async def archive_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Hide a conversation from the caller's list; other participants are unaffected."""
    conversation = await ConversationService(db).set_archived(conversation_id, current_user, True)
    return ConversationResponse.for_user(conversation, current_user.id)


@router.put("/{conversation_id}/unarchive", response_model=ConversationResponse)
async def unarchive_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    conversation = await ConversationService(db).set_archived(conversation_id, current_user, False)
    return ConversationResponse.for_user(conversation, current_user.id)
