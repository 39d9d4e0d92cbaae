"""
Notification service for in-app notifications and e-mail delivery.
"""

import logging
import smtplib
from datetime import timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, event, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.booking import Booking
from ..models.message import Message
from ..models.notification import Notification, NotificationPriority, NotificationType
from ..models.notification_preference import NotificationPreference
from ..models.payment import PaymentFlow
from ..models.review import Review
from ..models.user import User, UserRole
from ..utils.dates import utcnow
from ..utils.exceptions import AuthorizationError, EmailServiceError, NotFoundError

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500
PENDING_EMAILS_KEY = "pending_notification_emails"


def format_naira(amount: Any) -> str:
    """Format an amount the way it appears in notification texts, e.g. ``₦150,000``."""
    value = float(amount or 0)
    if value.is_integer():
        return f"₦{int(value):,}"
    return f"₦{value:,.2f}"


@event.listens_for(Session, "after_commit")
def _dispatch_pending_emails(session: Session) -> None:
    """Hand e-mails queued during the transaction to the Celery worker."""
    pending = session.info.pop(PENDING_EMAILS_KEY, [])
    if not pending:
        return

    from ..tasks.notification_tasks import send_notification_email_task
    for to_email, subject, message, action_link in pending:
        try:
            send_notification_email_task.delay(to_email, subject, message, action_link)
        except Exception as e:
            logger.warning(f"Failed to queue notification e-mail to {to_email}: {e}")
    logger.info(f"Queued {len(pending)} notification e-mails")


@event.listens_for(Session, "after_rollback")
def _discard_pending_emails(session: Session) -> None:
    dropped = session.info.pop(PENDING_EMAILS_KEY, [])
    if dropped:
        logger.info(f"Discarded {len(dropped)} notification e-mails after rollback")


class NotificationService:
    """Service for creating, listing and delivering notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    async def create_notification(
        self,
        recipient_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        sender_id: Optional[UUID] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        action_link: Optional[str] = None,
        action_text: Optional[str] = None,
        related_booking_id: Optional[UUID] = None,
        related_service_provider_id: Optional[UUID] = None,
        related_event_center_id: Optional[UUID] = None,
        related_review_id: Optional[UUID] = None,
        related_message_id: Optional[UUID] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Create an in-app notification and queue its e-mail copy.

        Args:
            recipient_id: User receiving the notification
            notification_type: Kind of notification
            title: Short title, truncated to 100 characters
            message: Body, truncated to 500 characters

        Returns:
            The created notification
        """
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            notification_type=notification_type,
            title=title[:TITLE_MAX_LENGTH],
            message=message[:MESSAGE_MAX_LENGTH],
            priority=priority,
            action_link=action_link,
            action_text=action_text,
            related_booking_id=related_booking_id,
            related_service_provider_id=related_service_provider_id,
            related_event_center_id=related_event_center_id,
            related_review_id=related_review_id,
            related_message_id=related_message_id,
            extra=extra,
        )
        self.session.add(notification)
        await self.session.flush()

        logger.debug(f"Notification {notification_type.value} created for user {recipient_id}")

        await self._queue_email(notification)
        return notification

    async def send_bulk(
        self,
        recipient_ids: Iterable[UUID],
        notification_type: NotificationType,
        title: str,
        message: str,
        **kwargs: Any,
    ) -> List[Notification]:
        """Send the same notification to several users."""
        notifications = []
        for recipient_id in recipient_ids:
            notifications.append(
                await self.create_notification(recipient_id, notification_type, title, message, **kwargs)
            )
        logger.info(f"Bulk {notification_type.value} notification sent to {len(notifications)} users")
        return notifications

    # Helpers for each notification type

    async def notify_booking_created(self, booking: Booking) -> Notification:
        return await self.create_notification(
            recipient_id=booking.provider_id,
            sender_id=booking.customer_id,
            notification_type=NotificationType.BOOKING_CREATED,
            title="New Booking Request",
            message=f"You have a new booking request for {booking.event_name or 'an event'}",
            priority=NotificationPriority.HIGH,
            action_link=f"/bookings/{booking.id}",
            action_text="View Booking",
            related_booking_id=booking.id,
        )

    async def notify_booking_confirmed(self, booking: Booking) -> Notification:
        return await self.create_notification(
            recipient_id=booking.customer_id,
            sender_id=booking.provider_id,
            notification_type=NotificationType.BOOKING_CONFIRMED,
            title="Booking Confirmed",
            message=f"Your booking for {booking.event_name or 'your event'} has been confirmed",
            priority=NotificationPriority.HIGH,
            action_link=f"/bookings/{booking.id}",
            action_text="View Booking",
            related_booking_id=booking.id,
        )

    async def notify_booking_cancelled(self, booking: Booking, cancelled_by_id: UUID) -> Notification:
        """Tell the party that did not cancel."""
        recipient_id = booking.provider_id if cancelled_by_id == booking.customer_id else booking.customer_id
        return await self.create_notification(
            recipient_id=recipient_id,
            sender_id=cancelled_by_id,
            notification_type=NotificationType.BOOKING_CANCELLED,
            title="Booking Cancelled",
            message=f"Booking for {booking.event_name or 'an event'} has been cancelled",
            priority=NotificationPriority.HIGH,
            action_link=f"/bookings/{booking.id}",
            action_text="View Booking",
            related_booking_id=booking.id,
        )

    async def notify_booking_completed(self, booking: Booking) -> Notification:
        return await self.create_notification(
            recipient_id=booking.customer_id,
            sender_id=booking.provider_id,
            notification_type=NotificationType.BOOKING_COMPLETED,
            title="Booking Completed",
            message="Your booking has been marked as completed. Please leave a review!",
            action_link=f"/bookings/{booking.id}/review",
            action_text="Leave Review",
            related_booking_id=booking.id,
        )

    async def notify_payment_received(self, flow: PaymentFlow, booking_number: str) -> Notification:
        return await self.create_notification(
            recipient_id=flow.provider_id,
            sender_id=flow.customer_id,
            notification_type=NotificationType.PAYMENT_RECEIVED,
            title="Payment Received",
            message=f"Payment of {format_naira(flow.total_amount)} received for booking #{booking_number}",
            priority=NotificationPriority.HIGH,
            action_link=f"/bookings/{flow.booking_id}",
            action_text="View Booking",
            related_booking_id=flow.booking_id,
            extra={"amount": str(flow.total_amount), "payment_flow_id": str(flow.id)},
        )

    async def notify_payment_released(self, flow: PaymentFlow) -> Notification:
        return await self.create_notification(
            recipient_id=flow.provider_id,
            notification_type=NotificationType.PAYMENT_RELEASED,
            title="Payment Released",
            message=f"Payment of {format_naira(flow.provider_amount)} has been released from escrow",
            priority=NotificationPriority.HIGH,
            action_link=f"/bookings/{flow.booking_id}",
            action_text="View Booking",
            related_booking_id=flow.booking_id,
            extra={"amount": str(flow.provider_amount), "payment_flow_id": str(flow.id)},
        )

    async def notify_review_received(self, review: Review) -> Notification:
        return await self.create_notification(
            recipient_id=review.provider_id,
            sender_id=review.reviewer_id,
            notification_type=NotificationType.REVIEW_RECEIVED,
            title="New Review",
            message=f"You received a {review.rating_overall}-star review",
            action_link=f"/reviews/{review.id}",
            action_text="View Review",
            related_review_id=review.id,
            related_booking_id=review.booking_id,
            related_service_provider_id=review.service_provider_id,
            related_event_center_id=review.event_center_id,
        )

    async def notify_message_received(
        self,
        message: Message,
        recipient_id: UUID,
        sender_name: str,
    ) -> Notification:
        preview = message.text[:50] if message.text else "Sent an attachment"
        return await self.create_notification(
            recipient_id=recipient_id,
            sender_id=message.sender_id,
            notification_type=NotificationType.MESSAGE_RECEIVED,
            title="New Message",
            message=f"{sender_name}: {preview}",
            action_link=f"/conversations/{message.conversation_id}",
            action_text="Reply",
            related_message_id=message.id,
        )

    async def notify_cac_verified(self, user: User) -> Notification:
        if user.role == UserRole.CENTER:
            listing_kind, link = "event center", "/centers/create"
        else:
            listing_kind, link = "service provider", "/providers/create"
        return await self.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.CAC_VERIFIED,
            title="CAC Verified",
            message=f"Your CAC has been verified. You can now create {listing_kind} listings!",
            priority=NotificationPriority.HIGH,
            action_link=link,
            action_text="Create Listing",
        )

    async def notify_cac_rejected(self, user: User, reason: Optional[str] = None) -> Notification:
        return await self.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.CAC_REJECTED,
            title="CAC Verification Failed",
            message=(
                "Your CAC verification was rejected. "
                f"{reason or 'Please contact support for details.'}"
            ),
            priority=NotificationPriority.HIGH,
        )

    async def notify_listing_approved(
        self,
        owner_id: UUID,
        service_provider_id: Optional[UUID] = None,
        event_center_id: Optional[UUID] = None,
    ) -> Notification:
        listing_kind = "center" if event_center_id else "service"
        link = f"/centers/{event_center_id}" if event_center_id else f"/providers/{service_provider_id}"
        return await self.create_notification(
            recipient_id=owner_id,
            notification_type=NotificationType.LISTING_APPROVED,
            title="Listing Approved",
            message=f"Your {listing_kind} listing has been approved and is now live!",
            priority=NotificationPriority.HIGH,
            action_link=link,
            action_text="View Listing",
            related_service_provider_id=service_provider_id,
            related_event_center_id=event_center_id,
        )

    async def notify_listing_rejected(
        self,
        owner_id: UUID,
        reason: Optional[str] = None,
        service_provider_id: Optional[UUID] = None,
        event_center_id: Optional[UUID] = None,
    ) -> Notification:
        listing_kind = "center" if event_center_id else "service"
        return await self.create_notification(
            recipient_id=owner_id,
            notification_type=NotificationType.LISTING_REJECTED,
            title="Listing Rejected",
            message=(
                f"Your {listing_kind} listing was rejected. "
                f"{reason or 'Please review our guidelines.'}"
            ),
            related_service_provider_id=service_provider_id,
            related_event_center_id=event_center_id,
        )

    async def notify_event_reminder(self, booking: Booking, days_until: int) -> Notification:
        plural = "" if days_until == 1 else "s"
        return await self.create_notification(
            recipient_id=booking.customer_id,
            notification_type=NotificationType.REMINDER,
            title="Event Reminder",
            message=f'Your event "{booking.event_name or "event"}" is coming up in {days_until} day{plural}!',
            action_link=f"/bookings/{booking.id}",
            action_text="View Booking",
            related_booking_id=booking.id,
        )

    async def notify_admins(self, title: str, message: str, **kwargs: Any) -> List[Notification]:
        """Send a system notification to every active admin."""
        result = await self.session.execute(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
        )
        admin_ids = list(result.scalars().all())
        return await self.send_bulk(
            admin_ids,
            NotificationType.SYSTEM,
            title,
            message,
            priority=NotificationPriority.MEDIUM,
            **kwargs,
        )

    # Inbox operations

    async def list_notifications(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 20,
        notification_type: Optional[NotificationType] = None,
        is_read: Optional[bool] = None,
        priority: Optional[NotificationPriority] = None,
    ) -> Tuple[List[Notification], int, int]:
        """
        List a user's notifications, newest first.

        Returns:
            Tuple of (notifications, total matching, total unread)
        """
        conditions = [Notification.recipient_id == user_id]
        if notification_type is not None:
            conditions.append(Notification.notification_type == notification_type)
        if is_read is not None:
            conditions.append(Notification.is_read.is_(is_read))
        if priority is not None:
            conditions.append(Notification.priority == priority)

        total = await self.session.scalar(select(func.count(Notification.id)).where(*conditions))

        result = await self.session.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        notifications = list(result.scalars().all())

        unread = await self.get_unread_count(user_id)
        return notifications, total or 0, unread

    async def get_unread_count(self, user_id: UUID) -> int:
        count = await self.session.scalar(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return count or 0

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found", "notification", str(notification_id))
        if notification.recipient_id != user_id:
            raise AuthorizationError("Not authorized to access this notification")
        return notification

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._get_owned(notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.session.flush()
        return notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> None:
        notification = await self._get_owned(notification_id, user_id)
        await self.session.delete(notification)
        await self.session.flush()

    async def delete_read_notifications(self, user_id: UUID) -> int:
        result = await self.session.execute(
            delete(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(True))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def cleanup_old_notifications(self, days: Optional[int] = None) -> int:
        """
        Delete read notifications older than the retention period.

        Args:
            days: Retention in days, defaults to the configured value

        Returns:
            Number of deleted notifications
        """
        days = days if days is not None else self.settings.notification_retention_days
        cutoff = utcnow() - timedelta(days=days)
        result = await self.session.execute(
            delete(Notification)
            .where(Notification.is_read.is_(True), Notification.read_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} read notifications older than {days} days")
        return deleted

    # E-mail delivery

    async def _queue_email(self, notification: Notification) -> None:
        """Hold the e-mail on the session until the transaction commits."""
        if not self.settings.enable_email_notifications:
            return

        preference = await self.session.scalar(
            select(NotificationPreference).where(NotificationPreference.user_id == notification.recipient_id)
        )
        if preference is not None and not preference.should_send(notification.notification_type.value, "email"):
            logger.debug(f"E-mail for notification {notification.id} suppressed by preferences")
            return

        recipient = await self.session.get(User, notification.recipient_id)
        if recipient is None or not recipient.is_active:
            return

        pending = self.session.info.setdefault(PENDING_EMAILS_KEY, [])
        pending.append((recipient.email, notification.title, notification.message, notification.action_link))

    def send_email(self, to_email: str, subject: str, message: str, action_link: Optional[str] = None) -> bool:
        """
        Send a notification e-mail over SMTP.

        Args:
            to_email: Recipient e-mail address
            subject: E-mail subject
            message: Notification text
            action_link: Optional path on the frontend

        Returns:
            bool: True if the e-mail was sent, False when SMTP is not configured

        Raises:
            EmailServiceError: If the SMTP server rejects or drops the message
        """
        if not self.settings.smtp_server or not self.settings.smtp_username:
            logger.warning("Email configuration not available, skipping email send")
            return False

        data = {
            "subject": subject,
            "message": message,
            "link": f"{self.settings.frontend_url}{action_link}" if action_link else None,
        }

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.smtp_username
        msg["To"] = to_email
        msg.attach(MIMEText(self._render_notification_text(data), "plain"))
        msg.attach(MIMEText(self._render_notification_template(data), "html"))

        try:
            with smtplib.SMTP(self.settings.smtp_server, self.settings.smtp_port) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                server.login(self.settings.smtp_username, self.settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise EmailServiceError(str(e))

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def _render_notification_template(self, data: Dict) -> str:
        """Render HTML template for a notification e-mail."""
        button = ""
        if data["link"]:
            button = f"""
                <p style="text-align: center;">
                    <a href="{data['link']}" style="background-color: #4f46e5; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">Open</a>
                </p>"""
        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #4f46e5;">{data['subject']}</h2>
                <p>{data['message']}</p>{button}
                <p style="font-size: 12px; color: #888;">
                    You can change which e-mails you receive in your notification preferences.
                </p>
            </div>
        </body>
        </html>
        """

    def _render_notification_text(self, data: Dict) -> str:
        """Render plain text template for a notification e-mail."""
        text = f"{data['subject']}\n\n{data['message']}\n"
        if data["link"]:
            text += f"\nOpen: {data['link']}\n"
        return text + "\nYou can change which e-mails you receive in your notification preferences.\n"
