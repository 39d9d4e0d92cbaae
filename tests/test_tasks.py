"""Tests for the Celery tasks, executed in-process without a broker."""

from event_marketplace.services.notification_service import NotificationService
from event_marketplace.tasks import booking_tasks
from event_marketplace.tasks.celery_app import celery_app
from event_marketplace.tasks.notification_tasks import send_notification_email_task


class TestEmailTask:
    def test_reports_sent(self, monkeypatch):
        calls = []

        def fake_send(self, to_email, subject, message, action_link=None):
            calls.append((to_email, subject, action_link))
            return True

        monkeypatch.setattr(NotificationService, "send_email", fake_send)

        result = send_notification_email_task("ada@example.com", "Booking Confirmed", "See you there", "/bookings/1")

        assert result == {"to_email": "ada@example.com", "status": "sent"}
        assert calls == [("ada@example.com", "Booking Confirmed", "/bookings/1")]

    def test_reports_skipped_without_smtp(self, monkeypatch):
        monkeypatch.setattr(NotificationService, "send_email", lambda self, *args: False)

        result = send_notification_email_task("ada@example.com", "Subject", "Body")

        assert result["status"] == "skipped"


def test_run_async_opens_and_closes_the_engine(monkeypatch):
    events = []

    async def fake_close():
        events.append("close")

    monkeypatch.setattr(booking_tasks, "init_engine", lambda: events.append("init"))
    monkeypatch.setattr(booking_tasks, "close_database", fake_close)

    async def work():
        events.append("work")
        return 42

    assert booking_tasks.auto_release_escrow_task.run_async(work) == 42
    assert events == ["init", "work", "close"]


def test_beat_schedule_registers_periodic_tasks():
    scheduled = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}

    assert scheduled == {
        "auto_release_escrow_task",
        "send_event_reminders_task",
        "cleanup_old_notifications_task",
    }
