"""
Celery tasks for notification delivery and housekeeping.
"""

import logging
from typing import Optional

from .booking_tasks import DatabaseTask
from .celery_app import celery_app
from ..database import get_db_session
from ..services.notification_service import NotificationService
from ..utils.exceptions import EmailServiceError

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="send_notification_email_task",
    autoretry_for=(EmailServiceError,),
    retry_backoff=True,
    max_retries=3,
)
def send_notification_email_task(self, to_email: str, subject: str, message: str, action_link: Optional[str] = None):
    """
    Send the e-mail copy of a notification.

    SMTP is blocking, so no event loop or session is needed here. Failures
    are retried with exponential backoff.
    """
    logger.info(f"Sending notification e-mail to {to_email}")
    sent = NotificationService(session=None).send_email(to_email, subject, message, action_link)
    return {"to_email": to_email, "status": "sent" if sent else "skipped"}


@celery_app.task(bind=True, base=DatabaseTask, name="cleanup_old_notifications_task")
def cleanup_old_notifications_task(self, days: Optional[int] = None):
    """
    Daily task deleting read notifications past the retention period.
    """

    async def _cleanup():
        try:
            logger.info("Starting notification cleanup task")

            async with get_db_session() as session:
                deleted = await NotificationService(session).cleanup_old_notifications(days)

            logger.info(f"Notification cleanup completed: {deleted} deleted")
            return {"deleted_count": deleted}

        except Exception as e:
            logger.error(f"Error in notification cleanup task: {e}")
            raise

    return self.run_async(_cleanup)
