"""Tests for payment flows, escrow release, refunds and disputes."""

from datetime import timedelta
from decimal import Decimal

import pytest

from event_marketplace.models import (
    BookingStatus,
    DisputeStatus,
    EscrowStatus,
    Notification,
    PaymentFlowMethod,
    PaymentFlowStatus,
    PaymentStatus,
    ReleaseMethod,
    UserRole,
)
from event_marketplace.schemas.booking import BookingStatusUpdateRequest
from event_marketplace.schemas.payment import (
    DisputeResolveRequest,
    PaymentFundRequest,
    PaymentInitiateRequest,
    RefundRequest,
)
from event_marketplace.services.booking_service import BookingService
from event_marketplace.services.payment_service import PaymentService
from event_marketplace.utils.dates import utcnow
from event_marketplace.utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    ConflictError,
    EscrowStateError,
)
from sqlalchemy import select


@pytest.fixture
def parties(make_user, make_provider_listing, make_booking):
    """A host, a provider and a booking between them."""

    async def factory(status=BookingStatus.CONFIRMED):
        host = await make_user()
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)
        booking = await make_booking(host, listing, status=status, total_amount=Decimal("200000.00"))
        return host, owner, booking

    return factory


async def funded_flow(service, host, booking):
    flow = await service.initiate_payment(booking.id, host, PaymentInitiateRequest())
    return await service.fund_payment(flow.id, host, PaymentFundRequest(gateway_reference="PSK-REF-1"))


class TestInitiate:
    async def test_escrow_flow_splits_the_fee(self, db_session, parties):
        host, owner, booking = await parties()

        flow = await PaymentService(db_session).initiate_payment(booking.id, host, PaymentInitiateRequest())

        assert flow.status == PaymentFlowStatus.PENDING
        assert flow.platform_fee_amount == Decimal("10000.00")
        assert flow.provider_amount == Decimal("190000.00")
        assert flow.escrow.status == EscrowStatus.CREATED
        assert flow.provider_id == owner.id

    async def test_only_the_customer_can_pay(self, db_session, parties):
        _, owner, booking = await parties()

        with pytest.raises(AuthorizationError):
            await PaymentService(db_session).initiate_payment(booking.id, owner, PaymentInitiateRequest())

    async def test_second_open_payment_conflicts(self, db_session, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        await service.initiate_payment(booking.id, host, PaymentInitiateRequest())

        with pytest.raises(ConflictError):
            await service.initiate_payment(booking.id, host, PaymentInitiateRequest())


class TestFunding:
    async def test_escrow_funds_are_held(self, db_session, parties):
        host, _, booking = await parties()

        flow = await funded_flow(PaymentService(db_session), host, booking)

        assert flow.status == PaymentFlowStatus.HELD_IN_ESCROW
        assert flow.escrow.status == EscrowStatus.HELD
        assert flow.escrow.auto_release_date == flow.escrow.funded_at + timedelta(days=7)
        assert flow.gateway_reference == "PSK-REF-1"
        assert booking.payment_status == PaymentStatus.COMPLETED

    async def test_direct_payment_completes(self, db_session, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        flow = await service.initiate_payment(
            booking.id, host, PaymentInitiateRequest(payment_method=PaymentFlowMethod.DIRECT)
        )

        flow = await service.fund_payment(flow.id, host, PaymentFundRequest(gateway_reference="PSK-REF-2"))

        assert flow.escrow is None
        assert flow.status == PaymentFlowStatus.COMPLETED

    async def test_cannot_fund_twice(self, db_session, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        with pytest.raises(EscrowStateError):
            await service.fund_payment(flow.id, host, PaymentFundRequest(gateway_reference="again"))


class TestRelease:
    async def test_customer_release_is_manual(self, db_session, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        flow = await service.release_escrow(flow.id, host)

        assert flow.status == PaymentFlowStatus.RELEASED
        assert flow.escrow.release_method == ReleaseMethod.MANUAL
        assert flow.escrow.customer_approved is True

    async def test_admin_release(self, db_session, make_user, parties):
        host, _, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        flow = await service.release_escrow(flow.id, admin, "Manual review passed")

        assert flow.escrow.release_method == ReleaseMethod.ADMIN
        assert flow.escrow_release_reason == "Manual review passed"

    async def test_provider_cannot_release(self, db_session, parties):
        host, owner, booking = await parties()
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        with pytest.raises(AuthorizationError):
            await service.release_escrow(flow.id, owner)

    async def test_unfunded_escrow_cannot_be_released(self, db_session, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        flow = await service.initiate_payment(booking.id, host, PaymentInitiateRequest())

        with pytest.raises(EscrowStateError):
            await service.release_escrow(flow.id, host)


class TestAutoRelease:
    async def test_releases_only_completed_undisputed_bookings(self, db_session, parties):
        service = PaymentService(db_session)
        host, owner, booking = await parties()
        due = await funded_flow(service, host, booking)
        await BookingService(db_session).update_status(
            booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.COMPLETED)
        )
        other_host, _, confirmed = await parties()
        not_due = await funded_flow(service, other_host, confirmed)

        released = await service.auto_release_due(now=utcnow() + timedelta(days=8))

        assert released == 1
        assert due.status == PaymentFlowStatus.RELEASED
        assert due.escrow.release_method == ReleaseMethod.AUTO
        assert not_due.status == PaymentFlowStatus.HELD_IN_ESCROW

    async def test_hold_period_must_pass(self, db_session, parties):
        service = PaymentService(db_session)
        host, owner, booking = await parties()
        await funded_flow(service, host, booking)
        await BookingService(db_session).update_status(
            booking.id, owner, BookingStatusUpdateRequest(status=BookingStatus.COMPLETED)
        )

        assert await service.auto_release_due() == 0


class TestRefund:
    async def test_partial_refund(self, db_session, make_user, parties):
        host, _, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        flow = await service.refund_payment(
            flow.id, admin, RefundRequest(reason="Partial service", amount=Decimal("50000.00"))
        )

        assert flow.status == PaymentFlowStatus.REFUNDED
        assert flow.escrow.refund_amount == Decimal("50000.00")
        assert booking.payment_status == PaymentStatus.REFUNDED

    async def test_refund_cannot_exceed_amount_paid(self, db_session, make_user, parties):
        host, _, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        with pytest.raises(BadRequestError):
            await service.refund_payment(flow.id, admin, RefundRequest(reason="Too much", amount=Decimal("999999")))


class TestDisputes:
    async def test_dispute_blocks_release_and_alerts_admins(self, db_session, make_user, parties):
        host, _, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        flow = await service.open_dispute(flow.id, host, "Caterer never arrived")

        assert flow.escrow.status == EscrowStatus.DISPUTED
        assert flow.escrow.dispute_status == DisputeStatus.OPEN
        with pytest.raises(EscrowStateError):
            await service.release_escrow(flow.id, host)
        with pytest.raises(ConflictError):
            await service.open_dispute(flow.id, host, "Again")

        alerts = await db_session.scalars(select(Notification).where(Notification.recipient_id == admin.id))
        assert [n.title for n in alerts] == ["Payment Dispute Opened"]

    async def test_resolve_with_refund(self, db_session, make_user, parties):
        host, owner, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)
        await service.open_dispute(flow.id, owner, "Customer refuses to release")

        flow = await service.resolve_dispute(
            flow.id,
            admin,
            DisputeResolveRequest(status=DisputeStatus.RESOLVED, resolution="Service not delivered", outcome="refund"),
        )

        assert flow.status == PaymentFlowStatus.REFUNDED
        assert flow.escrow.dispute_status == DisputeStatus.RESOLVED
        assert flow.escrow.is_disputed is False

    async def test_investigating_keeps_funds_disputed(self, db_session, make_user, parties):
        host, _, booking = await parties()
        admin = await make_user(UserRole.ADMIN)
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)
        await service.open_dispute(flow.id, host, "Late arrival")

        flow = await service.resolve_dispute(
            flow.id, admin, DisputeResolveRequest(status=DisputeStatus.INVESTIGATING)
        )

        assert flow.escrow.status == EscrowStatus.DISPUTED
        assert flow.escrow.dispute_status == DisputeStatus.INVESTIGATING

    async def test_outsider_cannot_dispute(self, db_session, make_user, parties):
        host, _, booking = await parties()
        service = PaymentService(db_session)
        flow = await funded_flow(service, host, booking)

        with pytest.raises(AuthorizationError):
            await service.open_dispute(flow.id, await make_user(), "Not mine")
