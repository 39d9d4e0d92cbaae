"""
Tests for the booking lifecycle: creation checks, status transitions and
their side effects on center availability and payments.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from event_marketplace.models import (
    AvailabilityStatus,
    BookingStatus,
    BookingType,
    CenterDateRange,
    DateRangeKind,
    EscrowStatus,
    PaymentFlowStatus,
    UserRole,
)
from event_marketplace.schemas.booking import (
    BookingCreateRequest,
    BookingPricing,
    BookingStatusUpdateRequest,
    EventDetails,
)
from event_marketplace.schemas.payment import PaymentFundRequest, PaymentInitiateRequest
from event_marketplace.services.booking_service import BookingService
from event_marketplace.services.payment_service import PaymentService
from event_marketplace.utils.dates import event_day_range, utcnow
from event_marketplace.utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    DateUnavailableError,
    InvalidBookingStateError,
    InvalidStatusTransitionError,
    ListingUnavailableError,
)


def provider_request(listing_id, days_ahead=30, **details):
    return BookingCreateRequest(
        booking_type=BookingType.PROVIDER,
        service_provider_id=listing_id,
        event_details=EventDetails(
            event_name="Tunde at 40",
            event_date=utcnow() + timedelta(days=days_ahead),
            start_time="12:00",
            end_time="20:00",
            **details,
        ),
        pricing=BookingPricing(total_amount=Decimal("150000.00")),
    )


def center_request(center_id, days_ahead=30, guest_count=200):
    return BookingCreateRequest(
        booking_type=BookingType.CENTER,
        event_center_id=center_id,
        event_details=EventDetails(
            event_name="Annual Gala",
            event_date=utcnow() + timedelta(days=days_ahead),
            start_time="16:00",
            end_time="23:00",
            guest_count=guest_count,
        ),
        pricing=BookingPricing(total_amount=Decimal("800000.00")),
    )


class TestCreateBooking:
    async def test_provider_booking_starts_pending(self, db_session, make_user, make_provider_listing):
        host = await make_user()
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)

        booking = await BookingService(db_session).create_booking(host, provider_request(listing.id))

        assert booking.status == BookingStatus.PENDING
        assert booking.provider_id == owner.id
        assert booking.customer_id == host.id
        assert booking.booking_number
        assert [entry.status for entry in booking.status_history] == [BookingStatus.PENDING]

    async def test_past_event_date_is_rejected(self, db_session, make_user, make_provider_listing):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))

        with pytest.raises(BadRequestError):
            await BookingService(db_session).create_booking(host, provider_request(listing.id, days_ahead=-1))

    async def test_unverified_listing_is_unavailable(self, db_session, make_user, make_provider_listing):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER), verified=False)

        with pytest.raises(ListingUnavailableError):
            await BookingService(db_session).create_booking(host, provider_request(listing.id))

    async def test_owner_cannot_book_own_service(self, db_session, make_user, make_provider_listing):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)

        with pytest.raises(BadRequestError, match="your own service"):
            await BookingService(db_session).create_booking(owner, provider_request(listing.id))

    async def test_provider_unavailable_date(self, db_session, make_user, make_provider_listing):
        host = await make_user()
        blocked = (utcnow() + timedelta(days=30)).date().isoformat()
        listing = await make_provider_listing(
            await make_user(UserRole.PROVIDER, cac_verified=True),
            unavailable_dates=[blocked],
        )

        with pytest.raises(DateUnavailableError):
            await BookingService(db_session).create_booking(host, provider_request(listing.id))

    async def test_busy_provider_is_unavailable(self, db_session, make_user, make_provider_listing):
        host = await make_user()
        listing = await make_provider_listing(
            await make_user(UserRole.PROVIDER, cac_verified=True),
            availability_status=AvailabilityStatus.BUSY,
        )

        with pytest.raises(DateUnavailableError):
            await BookingService(db_session).create_booking(host, provider_request(listing.id))

    async def test_center_guest_count_outside_capacity(self, db_session, make_user, make_center_listing):
        host = await make_user()
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))

        with pytest.raises(BadRequestError, match="Guest count"):
            await BookingService(db_session).create_booking(host, center_request(center.id, guest_count=1000))

    async def test_center_booked_day_is_unavailable(self, db_session, make_user, make_center_listing):
        host = await make_user()
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))
        start, end = event_day_range(utcnow() + timedelta(days=30))
        center.date_ranges.append(CenterDateRange(kind=DateRangeKind.BLOCKED, start_date=start.replace(hour=0), end_date=end))
        await db_session.flush()

        with pytest.raises(DateUnavailableError):
            await BookingService(db_session).create_booking(host, center_request(center.id))


class TestStatusTransitions:
    async def test_provider_confirms_then_completes(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)
        booking = await make_booking(host, listing)
        service = BookingService(db_session)

        booking = await service.update_status(booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.CONFIRMED))
        booking = await service.update_status(booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.COMPLETED))

        assert booking.status == BookingStatus.COMPLETED
        assert [entry.status for entry in booking.status_history][-2:] == [
            BookingStatus.CONFIRMED,
            BookingStatus.COMPLETED,
        ]
        assert booking.service_provider.total_bookings == 1

    async def test_customer_cannot_confirm(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing)

        with pytest.raises(AuthorizationError):
            await BookingService(db_session).update_status(
                booking.id, host, BookingStatusUpdateRequest(status=BookingStatus.CONFIRMED)
            )

    async def test_pending_cannot_jump_to_completed(self, db_session, make_user, make_provider_listing, make_booking):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        booking = await make_booking(await make_user(), await make_provider_listing(owner))

        with pytest.raises(InvalidStatusTransitionError):
            await BookingService(db_session).update_status(
                booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.COMPLETED)
            )

    async def test_outsider_cannot_touch_booking(self, db_session, make_user, make_provider_listing, make_booking):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        booking = await make_booking(await make_user(), await make_provider_listing(owner))
        outsider = await make_user()

        with pytest.raises(AuthorizationError):
            await BookingService(db_session).get_booking(booking.id, outsider)

    async def test_confirming_center_booking_reserves_the_day(
        self, db_session, make_user, make_center_listing, make_booking
    ):
        owner = await make_user(UserRole.CENTER, cac_verified=True)
        center = await make_center_listing(owner)
        first = await make_booking(await make_user(), center)
        second = await make_booking(await make_user(), center)
        service = BookingService(db_session)

        first = await service.update_status(first.id, owner, BookingStatusUpdateRequest(status=BookingStatus.CONFIRMED))

        assert [entry.booking_id for entry in first.event_center.booked_dates] == [first.id]
        with pytest.raises(DateUnavailableError) as exc:
            await service.update_status(second.id, owner, BookingStatusUpdateRequest(status=BookingStatus.CONFIRMED))
        assert exc.value.details["reason"] == "Already booked"

    async def test_cancelling_frees_the_center_day(self, db_session, make_user, make_center_listing, make_booking):
        owner = await make_user(UserRole.CENTER, cac_verified=True)
        host = await make_user()
        center = await make_center_listing(owner)
        booking = await make_booking(host, center)
        service = BookingService(db_session)
        await service.update_status(booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.CONFIRMED))

        booking = await service.cancel_booking(booking.id, host, "Venue changed")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancelled_by_id == host.id
        assert booking.cancellation_reason == "Venue changed"
        assert booking.event_center.booked_dates == []


class TestCancellation:
    async def test_cannot_cancel_twice(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing, status=BookingStatus.CANCELLED)

        with pytest.raises(InvalidBookingStateError):
            await BookingService(db_session).cancel_booking(booking.id, host)

    async def test_cannot_cancel_completed(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing, status=BookingStatus.COMPLETED)

        with pytest.raises(InvalidBookingStateError):
            await BookingService(db_session).cancel_booking(booking.id, host)

    async def test_cancel_refunds_funded_escrow(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing)
        payments = PaymentService(db_session)
        flow = await payments.initiate_payment(booking.id, host, PaymentInitiateRequest())
        await payments.fund_payment(flow.id, host, PaymentFundRequest(gateway_reference="PSK-001"))

        await BookingService(db_session).cancel_booking(booking.id, host, "Plans changed")

        assert flow.status == PaymentFlowStatus.REFUNDED
        assert flow.escrow.status == EscrowStatus.REFUNDED
        assert flow.refund_amount == booking.total_amount


class TestQueries:
    async def test_list_as_customer_and_provider(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)
        await make_booking(host, listing)
        await make_booking(host, listing, status=BookingStatus.CONFIRMED)
        service = BookingService(db_session)

        as_customer, total = await service.list_user_bookings(host.id, host)
        confirmed, confirmed_total = await service.list_user_bookings(
            owner.id, owner, role="provider", status=BookingStatus.CONFIRMED
        )

        assert total == 2 and len(as_customer) == 2
        assert confirmed_total == 1 and confirmed[0].status == BookingStatus.CONFIRMED

    async def test_cannot_list_someone_elses_bookings(self, db_session, make_user):
        host = await make_user()
        other = await make_user()

        with pytest.raises(AuthorizationError):
            await BookingService(db_session).list_user_bookings(other.id, host)

    async def test_unknown_role_is_rejected(self, db_session, make_user):
        host = await make_user()

        with pytest.raises(BadRequestError):
            await BookingService(db_session).list_user_bookings(host.id, host, role="owner")

    async def test_upcoming_bookings_only_confirmed_on_target_day(
        self, db_session, make_user, make_provider_listing, make_booking
    ):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        due = await make_booking(host, listing, status=BookingStatus.CONFIRMED, days_ahead=1)
        await make_booking(host, listing, status=BookingStatus.PENDING, days_ahead=1)
        await make_booking(host, listing, status=BookingStatus.CONFIRMED, days_ahead=5)

        upcoming = await BookingService(db_session).get_upcoming_bookings(1)

        assert [booking.id for booking in upcoming] == [due.id]
