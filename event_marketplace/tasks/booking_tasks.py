"""
Celery tasks for escrow release and booking reminders.
"""

import asyncio
import logging

from celery import Task

from .celery_app import celery_app
from ..database import close_database, get_db_session, init_engine
from ..services.booking_service import BookingService
from ..services.notification_service import NotificationService
from ..services.payment_service import PaymentService

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Base task class that runs a coroutine against a fresh database engine."""

    def run_async(self, coro_factory):
        # Pooled connections are bound to the loop that opened them
        async def _wrapped():
            init_engine()
            try:
                return await coro_factory()
            finally:
                await close_database()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(_wrapped())
        finally:
            loop.close()


@celery_app.task(bind=True, base=DatabaseTask, name="auto_release_escrow_task")
def auto_release_escrow_task(self):
    """
    Periodic task that releases escrowed funds to listing owners.

    Runs hourly. An escrow qualifies once its booking is completed, the
    auto release date has passed and no dispute is open.
    """

    async def _auto_release():
        try:
            logger.info("Starting escrow auto release task")

            async with get_db_session() as session:
                released = await PaymentService(session).auto_release_due()

            logger.info(f"Escrow auto release completed: {released} escrows released")
            return {"released_count": released}

        except Exception as e:
            logger.error(f"Error in escrow auto release task: {e}")
            raise

    return self.run_async(_auto_release)


@celery_app.task(bind=True, base=DatabaseTask, name="send_event_reminders_task")
def send_event_reminders_task(self, days_ahead: int | None = None):
    """
    Daily task that reminds hosts of confirmed bookings coming up.

    Args:
        days_ahead: Days until the event, defaults to the configured value
    """

    async def _send_reminders():
        try:
            logger.info("Starting event reminder task")

            async with get_db_session() as session:
                booking_service = BookingService(session)
                notification_service = NotificationService(session)
                days = days_ahead if days_ahead is not None else booking_service.settings.event_reminder_days

                bookings = await booking_service.get_upcoming_bookings(days)
                for booking in bookings:
                    await notification_service.notify_event_reminder(booking, days)

            logger.info(f"Sent {len(bookings)} event reminders")
            return {"reminder_count": len(bookings)}

        except Exception as e:
            logger.error(f"Error in event reminder task: {e}")
            raise

    return self.run_async(_send_reminders)
