"""Tests for conversations, messages and unread counts."""

import pytest

from event_marketplace.models import UserRole
from event_marketplace.schemas.conversation import (
    ConversationCreateRequest,
    ImageAttachment,
    MessageCreateRequest,
)
from event_marketplace.services.conversation_service import ConversationService
from event_marketplace.utils.exceptions import AuthorizationError, BadRequestError


class TestCreateConversation:
    async def test_initial_message_counts_as_unread(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)

        conversation, created = await service.create_conversation(
            host, ConversationCreateRequest(participant_id=provider.id, initial_message="Are you free in May?")
        )

        assert created
        assert conversation.last_message_text == "Are you free in May?"
        assert conversation.participant_for(provider.id).unread_count == 1
        assert conversation.participant_for(host.id).unread_count == 0
        assert await service.get_unread_total(provider) == 1

    async def test_direct_conversation_is_reused(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)
        first, _ = await service.create_conversation(host, ConversationCreateRequest(participant_id=provider.id))

        again, created = await service.create_conversation(provider, ConversationCreateRequest(participant_id=host.id))

        assert not created
        assert again.id == first.id

    async def test_cannot_talk_to_yourself(self, db_session, make_user):
        host = await make_user()

        with pytest.raises(BadRequestError):
            await ConversationService(db_session).create_conversation(
                host, ConversationCreateRequest(participant_id=host.id)
            )


class TestMessages:
    async def _conversation(self, service, host, provider):
        conversation, _ = await service.create_conversation(
            host, ConversationCreateRequest(participant_id=provider.id)
        )
        return conversation

    async def test_send_and_read(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)
        conversation = await self._conversation(service, host, provider)

        await service.send_message(conversation.id, host, MessageCreateRequest(text="Hello"))
        await service.send_message(conversation.id, host, MessageCreateRequest(text="Menu attached?"))
        assert await service.get_unread_total(provider) == 2

        await service.mark_as_read(conversation.id, provider)
        messages, total = await service.list_messages(conversation.id, provider)

        assert total == 2
        assert [message.text for message in messages] == ["Hello", "Menu attached?"]
        assert all(message.is_read for message in messages)
        assert await service.get_unread_total(provider) == 0

    async def test_attachment_only_message(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)
        conversation = await self._conversation(service, host, provider)

        message = await service.send_message(
            conversation.id,
            provider,
            MessageCreateRequest(images=[ImageAttachment(url="https://cdn.example.com/menu.png")]),
        )

        assert message.text == ""
        assert conversation.last_message_text != ""

    async def test_empty_message_is_rejected(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)
        conversation = await self._conversation(service, host, provider)

        with pytest.raises(BadRequestError):
            await service.send_message(conversation.id, host, MessageCreateRequest())

    async def test_outsider_cannot_read(self, db_session, make_user):
        host = await make_user()
        provider = await make_user(UserRole.PROVIDER)
        service = ConversationService(db_session)
        conversation = await self._conversation(service, host, provider)

        with pytest.raises(AuthorizationError):
            await service.list_messages(conversation.id, await make_user())


class TestListing:
    async def test_archived_conversations_are_hidden(self, db_session, make_user):
        host = await make_user()
        caterer = await make_user(UserRole.PROVIDER)
        venue = await make_user(UserRole.CENTER)
        service = ConversationService(db_session)
        kept, _ = await service.create_conversation(host, ConversationCreateRequest(participant_id=caterer.id))
        archived, _ = await service.create_conversation(host, ConversationCreateRequest(participant_id=venue.id))

        await service.set_archived(archived.id, host, True)
        conversations, total = await service.list_conversations(host)

        assert total == 1
        assert [conversation.id for conversation in conversations] == [kept.id]
