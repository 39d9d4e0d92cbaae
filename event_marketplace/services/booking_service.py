"""
Booking service: creation with availability checks and the status lifecycle.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.booking import (
    Booking,
    BookingStatus,
    BookingType,
    PaymentStatus,
    can_transition,
)
from ..models.booking_history import BookingStatusHistory
from ..models.event_center import CenterDateRange, DateRangeKind, EventCenter
from ..models.service_provider import AvailabilityStatus, ServiceProvider
from ..models.user import User
from ..schemas.booking import BookingCreateRequest, BookingStatusUpdateRequest
from ..utils.dates import end_of_day, event_day_range, find_overlap, start_of_day, to_naive_utc, utcnow
from ..utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    BookingNotFoundError,
    DateUnavailableError,
    EventCenterNotFoundError,
    InvalidBookingStateError,
    InvalidStatusTransitionError,
    ListingUnavailableError,
    ServiceProviderNotFoundError,
)
from ..utils.logging_config import log_business_event
from .center_service import unavailability_reason
from .notification_service import NotificationService
from .payment_service import PaymentService

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": Booking.created_at,
    "event_date": Booking.event_date,
    "total_amount": Booking.total_amount,
}

Listing = Union[ServiceProvider, EventCenter]


class BookingService:
    """Service for the booking lifecycle."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.notifications = NotificationService(session)

    async def create_booking(self, customer: User, data: BookingCreateRequest) -> Booking:
        """
        Create a pending booking for a provider or a center.

        Args:
            customer: The host making the booking
            data: Listing reference, event details and pricing

        Returns:
            The created booking with its relationships loaded

        Raises:
            ServiceProviderNotFoundError: If the provider listing does not exist
            EventCenterNotFoundError: If the center listing does not exist
            ListingUnavailableError: If the listing is inactive or unverified
            DateUnavailableError: If the listing is not free on the event date
            BadRequestError: On capacity violations and self-booking
        """
        details = data.event_details
        event_date = to_naive_utc(details.event_date)
        if event_date <= utcnow():
            raise BadRequestError("Event date must be in the future")

        if data.booking_type == BookingType.PROVIDER:
            listing = await self._get_provider_listing(data.service_provider_id)
            self._check_provider_availability(listing, event_date)
        else:
            listing = await self._get_center_listing(data.event_center_id)
            self._check_center_availability(listing, event_date)
            self._check_capacity(listing, details.guest_count)

        if listing.owner_id == customer.id:
            label = "service" if data.booking_type == BookingType.PROVIDER else "center"
            raise BadRequestError(f"You cannot book your own {label}")

        booking = Booking(
            booking_type=data.booking_type,
            customer_id=customer.id,
            provider_id=listing.owner_id,
            service_provider_id=data.service_provider_id if data.booking_type == BookingType.PROVIDER else None,
            event_center_id=data.event_center_id if data.booking_type == BookingType.CENTER else None,
            event_name=details.event_name,
            event_type=details.event_type,
            event_date=event_date,
            start_time=details.start_time,
            end_time=details.end_time,
            guest_count=details.guest_count,
            special_requests=details.special_requests,
            base_amount=data.pricing.base_amount,
            additional_charges=[charge.model_dump(mode="json") for charge in data.pricing.additional_charges],
            discount=data.pricing.discount,
            total_amount=data.pricing.total_amount,
            currency=data.pricing.currency.upper(),
            payment_method=data.payment_method,
            payment_status=PaymentStatus.PENDING,
            notes=data.notes,
            status=BookingStatus.PENDING,
            status_history=[
                BookingStatusHistory(
                    status=BookingStatus.PENDING,
                    reason="Booking created",
                    changed_by_id=customer.id,
                )
            ],
        )
        self.session.add(booking)
        await self.session.flush()

        booking = await self._load(booking.id)
        await self.notifications.notify_booking_created(booking)

        log_business_event(
            "booking_created",
            {
                "booking_id": str(booking.id),
                "booking_type": booking.booking_type.value,
                "listing_id": str(booking.listing_id),
                "total_amount": str(booking.total_amount),
            },
            user_id=str(customer.id),
        )
        return booking

    async def list_user_bookings(
        self,
        user_id: UUID,
        actor: User,
        role: str = "customer",
        status: Optional[BookingStatus] = None,
        booking_type: Optional[BookingType] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Tuple[List[Booking], int]:
        """
        List a user's bookings as customer or as provider.

        Returns:
            Tuple of (bookings on the page, total matching)
        """
        if actor.id != user_id and not actor.is_admin:
            raise AuthorizationError("Not authorized to view these bookings")
        if role not in ("customer", "provider"):
            raise BadRequestError("Role must be 'customer' or 'provider'")

        party_column = Booking.customer_id if role == "customer" else Booking.provider_id
        conditions = [party_column == user_id]
        if status is not None:
            conditions.append(Booking.status == status)
        if booking_type is not None:
            conditions.append(Booking.booking_type == booking_type)

        total = await self.session.scalar(select(func.count(Booking.id)).where(*conditions))

        sort_column = SORT_COLUMNS.get(sort_by, Booking.created_at)
        ordering = sort_column.asc() if order == "asc" else sort_column.desc()
        result = await self.session.execute(
            select(Booking)
            .where(*conditions)
            .order_by(ordering, Booking.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_booking(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self._load(booking_id)
        if not booking.is_party(actor.id) and not actor.is_admin:
            raise AuthorizationError("Not authorized to view this booking")
        return booking

    async def update_status(self, booking_id: UUID, actor: User, data: BookingStatusUpdateRequest) -> Booking:
        """
        Move a booking through its lifecycle.

        Confirm and complete belong to the provider (or an admin); either
        party may cancel.

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed
            AuthorizationError: If the actor may not perform the transition
        """
        booking = await self._load(booking_id)
        if not booking.is_party(actor.id) and not actor.is_admin:
            raise AuthorizationError("Not authorized to update this booking")

        requested = data.status
        if not can_transition(booking.status, requested):
            raise InvalidStatusTransitionError(booking.status.value, requested.value)

        if requested in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
            if actor.id != booking.provider_id and not actor.is_admin:
                raise AuthorizationError("Only the provider can confirm or complete a booking")

        reason = data.reason or f"Status changed to {requested.value}"

        if requested == BookingStatus.CONFIRMED:
            self._reserve_center_day(booking)
        elif requested == BookingStatus.CANCELLED:
            await self._apply_cancellation(booking, actor, data.reason)
        elif requested == BookingStatus.COMPLETED:
            self._count_completed(booking)

        booking.status = requested
        self._add_history(booking, requested, reason, actor.id)
        await self.session.flush()

        if requested == BookingStatus.COMPLETED:
            await PaymentService(self.session).handle_booking_completed(booking, actor.id)

        booking = await self._load(booking.id)
        if requested == BookingStatus.CONFIRMED:
            await self.notifications.notify_booking_confirmed(booking)
        elif requested == BookingStatus.CANCELLED:
            await self.notifications.notify_booking_cancelled(booking, actor.id)
        else:
            await self.notifications.notify_booking_completed(booking)

        log_business_event(
            "booking_status_changed",
            {"booking_id": str(booking.id), "status": requested.value},
            user_id=str(actor.id),
        )
        return booking

    async def cancel_booking(self, booking_id: UUID, actor: User, reason: Optional[str] = None) -> Booking:
        """
        Cancel a booking on behalf of either party.

        Raises:
            InvalidBookingStateError: If the booking is already cancelled or completed
        """
        booking = await self._load(booking_id)
        if not booking.is_party(actor.id) and not actor.is_admin:
            raise AuthorizationError("Not authorized to cancel this booking")

        if booking.status == BookingStatus.CANCELLED:
            raise InvalidBookingStateError(
                "Booking is already cancelled", booking_id=booking.id, current_state=booking.status.value
            )
        if booking.status == BookingStatus.COMPLETED:
            raise InvalidBookingStateError(
                "Cannot cancel a completed booking", booking_id=booking.id, current_state=booking.status.value
            )

        await self._apply_cancellation(booking, actor, reason)
        booking.status = BookingStatus.CANCELLED
        self._add_history(booking, BookingStatus.CANCELLED, reason or "Booking cancelled", actor.id)
        await self.session.flush()

        booking = await self._load(booking.id)
        await self.notifications.notify_booking_cancelled(booking, actor.id)

        log_business_event("booking_cancelled", {"booking_id": str(booking.id)}, user_id=str(actor.id))
        return booking

    async def get_history(self, booking_id: UUID, actor: User) -> List[BookingStatusHistory]:
        booking = await self.get_booking(booking_id, actor)
        return list(booking.status_history)

    async def get_upcoming_bookings(self, days_ahead: Optional[int] = None) -> List[Booking]:
        """Confirmed bookings whose event falls on the day ``days_ahead`` days from now."""
        days_ahead = self.settings.event_reminder_days if days_ahead is None else days_ahead
        target = utcnow() + timedelta(days=days_ahead)
        result = await self.session.execute(
            select(Booking).where(
                Booking.status == BookingStatus.CONFIRMED,
                Booking.event_date >= start_of_day(target),
                Booking.event_date <= end_of_day(target),
            )
        )
        return list(result.scalars().all())

    # Internal helpers

    async def _load(self, booking_id: UUID) -> Booking:
        # populate_existing refreshes relationships changed during this unit of work
        result = await self.session.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    async def _get_provider_listing(self, provider_id: UUID) -> ServiceProvider:
        provider = await self.session.get(ServiceProvider, provider_id)
        if provider is None:
            raise ServiceProviderNotFoundError(provider_id)
        if not provider.is_published:
            raise ListingUnavailableError("Service provider")
        return provider

    async def _get_center_listing(self, center_id: UUID) -> EventCenter:
        center = await self.session.get(EventCenter, center_id)
        if center is None:
            raise EventCenterNotFoundError(center_id)
        if not center.is_published:
            raise ListingUnavailableError("Event center")
        return center

    @staticmethod
    def _check_provider_availability(provider: ServiceProvider, event_date) -> None:
        if provider.availability_status != AvailabilityStatus.AVAILABLE:
            raise DateUnavailableError("Service provider", reason=f"Provider is {provider.availability_status.value}")
        if event_date.date() in provider.unavailable_days:
            raise DateUnavailableError("Service provider")

    @staticmethod
    def _check_center_availability(center: EventCenter, event_date) -> None:
        start, end = event_day_range(event_date)
        reason = unavailability_reason(center, start, end)
        if reason is not None:
            raise DateUnavailableError("Event center", reason=reason)

    @staticmethod
    def _check_capacity(center: EventCenter, guest_count: Optional[int]) -> None:
        if guest_count is None:
            return
        if guest_count < center.capacity_minimum or guest_count > center.capacity_maximum:
            raise BadRequestError(
                f"Guest count must be between {center.capacity_minimum} and {center.capacity_maximum}"
            )

    @staticmethod
    def _add_history(booking: Booking, status: BookingStatus, reason: str, changed_by_id: UUID) -> None:
        booking.status_history.append(
            BookingStatusHistory(status=status, reason=reason, changed_by_id=changed_by_id)
        )

    def _reserve_center_day(self, booking: Booking) -> None:
        """Record the event day as booked; a day booked by another confirmation in the meantime conflicts."""
        center = booking.event_center
        if booking.booking_type != BookingType.CENTER or center is None:
            return

        start, end = event_day_range(booking.event_date)
        others = [
            (entry.start_date, entry.end_date)
            for entry in center.booked_dates
            if entry.booking_id != booking.id
        ]
        if find_overlap(start, end, others):
            raise DateUnavailableError("Event center", reason="Already booked")

        center.date_ranges.append(
            CenterDateRange(kind=DateRangeKind.BOOKED, start_date=start, end_date=end, booking_id=booking.id)
        )

    async def _apply_cancellation(self, booking: Booking, actor: User, reason: Optional[str]) -> None:
        booking.cancelled_by_id = actor.id
        booking.cancelled_at = utcnow()
        booking.cancellation_reason = reason or "No reason provided"

        center = booking.event_center
        if booking.booking_type == BookingType.CENTER and center is not None:
            center.date_ranges = [
                entry
                for entry in center.date_ranges
                if not (entry.kind == DateRangeKind.BOOKED and entry.booking_id == booking.id)
            ]

        await PaymentService(self.session).handle_booking_cancelled(booking, actor.id)

    @staticmethod
    def _count_completed(booking: Booking) -> None:
        listing: Optional[Listing] = (
            booking.service_provider if booking.booking_type == BookingType.PROVIDER else booking.event_center
        )
        if listing is not None:
            listing.total_bookings = (listing.total_bookings or 0) + 1
