"""Tests for the notification inbox, e-mail queueing and preferences."""

from datetime import timedelta

import pytest

from event_marketplace.models import NotificationPriority, NotificationType, UserRole
from event_marketplace.schemas.notification import (
    ChannelPreferencesUpdate,
    DoNotDisturbUpdate,
    PreferencesUpdateRequest,
    QuietHoursUpdate,
)
from event_marketplace.services.notification_service import NotificationService, format_naira
from event_marketplace.services.preference_service import PreferenceService
from event_marketplace.tasks import notification_tasks
from event_marketplace.utils.dates import utcnow
from event_marketplace.utils.exceptions import AuthorizationError, BadRequestError


async def notify(service, user, title="Booking Confirmed", **kwargs):
    return await service.create_notification(
        user.id, NotificationType.BOOKING_CONFIRMED, title, "Your booking has been confirmed", **kwargs
    )


class TestInbox:
    async def test_list_counts_unread(self, db_session, make_user):
        user = await make_user()
        service = NotificationService(db_session)
        first = await notify(service, user)
        await notify(service, user, priority=NotificationPriority.HIGH)
        await service.mark_as_read(first.id, user.id)

        items, total, unread = await service.list_notifications(user.id)
        high, high_total, _ = await service.list_notifications(user.id, priority=NotificationPriority.HIGH)

        assert total == 2 and len(items) == 2
        assert unread == 1
        assert high_total == 1 and high[0].priority == NotificationPriority.HIGH

    async def test_long_texts_are_truncated(self, db_session, make_user):
        user = await make_user()

        notification = await NotificationService(db_session).create_notification(
            user.id, NotificationType.SYSTEM, "T" * 150, "M" * 800
        )

        assert len(notification.title) == 100
        assert len(notification.message) == 500

    async def test_mark_all_and_delete_read(self, db_session, make_user):
        user = await make_user()
        service = NotificationService(db_session)
        for _ in range(3):
            await notify(service, user)

        assert await service.mark_all_as_read(user.id) == 3
        assert await service.get_unread_count(user.id) == 0
        assert await service.delete_read_notifications(user.id) == 3

    async def test_other_users_notifications_are_off_limits(self, db_session, make_user):
        owner = await make_user()
        intruder = await make_user()
        service = NotificationService(db_session)
        notification = await notify(service, owner)

        with pytest.raises(AuthorizationError):
            await service.mark_as_read(notification.id, intruder.id)
        with pytest.raises(AuthorizationError):
            await service.delete_notification(notification.id, intruder.id)

    async def test_cleanup_removes_only_old_read_notifications(self, db_session, make_user):
        user = await make_user()
        service = NotificationService(db_session)
        old = await notify(service, user)
        recent = await notify(service, user)
        await notify(service, user)
        for notification, age in ((old, 45), (recent, 2)):
            notification.is_read = True
            notification.read_at = utcnow() - timedelta(days=age)
        await db_session.flush()

        assert await service.cleanup_old_notifications(30) == 1
        assert (await service.list_notifications(user.id))[1] == 2

    async def test_admin_broadcast(self, db_session, make_user):
        await make_user(UserRole.ADMIN)
        await make_user(UserRole.ADMIN)
        await make_user()

        sent = await NotificationService(db_session).notify_admins("Heads up", "Maintenance tonight")

        assert len(sent) == 2
        assert {n.notification_type for n in sent} == {NotificationType.SYSTEM}


class TestEmailQueue:
    class FakeTask:
        def __init__(self):
            self.calls = []

        def delay(self, *args):
            self.calls.append(args)

    @pytest.fixture
    def fake_task(self, monkeypatch):
        task = self.FakeTask()
        monkeypatch.setattr(notification_tasks, "send_notification_email_task", task)
        return task

    def _service(self, db_session, enabled=True):
        service = NotificationService(db_session)
        service.settings = service.settings.model_copy(update={"enable_email_notifications": enabled})
        return service

    async def test_email_sent_once_the_transaction_commits(self, db_session, make_user, fake_task):
        user = await make_user()

        await notify(self._service(db_session), user, action_link="/bookings/1")
        assert fake_task.calls == []
        await db_session.commit()

        assert fake_task.calls == [
            (user.email, "Booking Confirmed", "Your booking has been confirmed", "/bookings/1")
        ]

    async def test_rollback_discards_queued_email(self, db_session, make_user, fake_task):
        user = await make_user()
        await db_session.commit()

        await notify(self._service(db_session), user)
        await db_session.rollback()
        await db_session.commit()

        assert fake_task.calls == []

    async def test_email_disabled_globally(self, db_session, make_user, fake_task):
        user = await make_user()

        await notify(self._service(db_session, enabled=False), user)
        await db_session.commit()

        assert fake_task.calls == []

    async def test_email_suppressed_by_preferences(self, db_session, make_user, fake_task):
        user = await make_user()
        await PreferenceService(db_session).update_channel(
            user.id, "email", ChannelPreferencesUpdate(bookings=False)
        )

        await notify(self._service(db_session), user)
        await db_session.commit()

        assert fake_task.calls == []


class TestPreferences:
    async def test_defaults_created_on_first_read(self, db_session, make_user):
        user = await make_user()

        preference = await PreferenceService(db_session).get_preferences(user.id)

        assert preference.email["enabled"] is True
        assert preference.email["marketing"] is False
        assert preference.dnd_start_time == "22:00"
        assert preference.quiet_days == []

    async def test_channel_update_merges(self, db_session, make_user):
        user = await make_user()

        preference = await PreferenceService(db_session).update_channel(
            user.id, "push", ChannelPreferencesUpdate(messages=False)
        )

        assert preference.push["messages"] is False
        assert preference.push["bookings"] is True

    async def test_unknown_channel(self, db_session, make_user):
        user = await make_user()

        with pytest.raises(BadRequestError):
            await PreferenceService(db_session).update_channel(user.id, "sms", ChannelPreferencesUpdate())

    async def test_update_and_reset(self, db_session, make_user):
        user = await make_user()
        service = PreferenceService(db_session)

        preference = await service.update_preferences(
            user.id,
            PreferencesUpdateRequest(
                do_not_disturb=DoNotDisturbUpdate(enabled=True, start_time="21:30"),
                quiet_hours=QuietHoursUpdate(enabled=True, days=["Sunday", "funday"]),
            ),
        )
        assert preference.dnd_enabled and preference.dnd_start_time == "21:30"
        assert preference.quiet_days == ["sunday"]

        preference = await service.reset_preferences(user.id)
        assert not preference.dnd_enabled
        assert preference.quiet_days == []


def test_format_naira():
    assert format_naira(150000) == "₦150,000"
    assert format_naira("1234.5") == "₦1,234.50"
