"""
Payment flow and escrow service.

Money does not actually move here: a payment gateway confirms the customer's
payment and this service keeps the bookkeeping (fee split, escrow hold,
release, refund, disputes) consistent with the booking.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.payment import (
    DisputeStatus,
    EscrowStatus,
    EscrowTransaction,
    PaymentFlow,
    PaymentFlowMethod,
    PaymentFlowStatus,
    ReleaseMethod,
)
from ..models.user import User
from ..schemas.payment import (
    DisputeResolveRequest,
    PaymentFundRequest,
    PaymentInitiateRequest,
    RefundRequest,
)
from ..utils.dates import utcnow
from ..utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    BookingNotFoundError,
    ConflictError,
    EscrowStateError,
    InvalidBookingStateError,
    NotFoundError,
)
from ..utils.logging_config import log_business_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

# Flows that no longer block a new payment attempt for the same booking
CLOSED_FLOW_STATUSES = (PaymentFlowStatus.FAILED, PaymentFlowStatus.CANCELLED)
FUNDABLE_FLOW_STATUSES = (
    PaymentFlowStatus.INITIATED,
    PaymentFlowStatus.PENDING,
    PaymentFlowStatus.PROCESSING,
)


class PaymentService:
    """Service for payment flows and escrow transactions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.notifications = NotificationService(session)

    async def initiate_payment(self, booking_id: UUID, customer: User, data: PaymentInitiateRequest) -> PaymentFlow:
        """
        Start paying for a booking.

        Args:
            booking_id: Booking being paid for
            customer: Authenticated customer of the booking
            data: Payment method and gateway

        Returns:
            The new payment flow, pending gateway confirmation

        Raises:
            ConflictError: If an open payment already exists for the booking
        """
        booking = await self._get_booking(booking_id)
        if booking.customer_id != customer.id:
            raise AuthorizationError("Only the booking customer can pay for it")
        if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidBookingStateError(
                f"Cannot pay for a {booking.status.value} booking",
                booking_id=booking.id,
                current_state=booking.status.value,
            )

        existing = await self.session.scalar(
            select(PaymentFlow.id).where(
                PaymentFlow.booking_id == booking.id,
                PaymentFlow.status.not_in(CLOSED_FLOW_STATUSES),
            )
        )
        if existing is not None:
            raise ConflictError("Payment already initiated for this booking")

        flow = PaymentFlow(
            booking_id=booking.id,
            customer_id=booking.customer_id,
            provider_id=booking.provider_id,
            payment_method=data.payment_method,
            total_amount=booking.total_amount,
            currency=booking.currency,
            platform_fee_percentage=self.settings.platform_fee_percentage,
            gateway_name=data.gateway_name,
            status=PaymentFlowStatus.INITIATED,
            timeline=[],
        )
        flow.apply_fee()
        flow.add_timeline(PaymentFlowStatus.INITIATED, "Payment initiated")

        if data.payment_method == PaymentFlowMethod.ESCROW:
            escrow = EscrowTransaction(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                provider_id=booking.provider_id,
                amount=booking.total_amount,
                currency=booking.currency,
                hold_days=self.settings.escrow_hold_days,
                status=EscrowStatus.CREATED,
                history=[],
            )
            escrow.add_history("created", customer.id, "Escrow created")
            flow.escrow = escrow
        else:
            flow.escrow = None

        flow.status = PaymentFlowStatus.PENDING
        flow.add_timeline(PaymentFlowStatus.PENDING, "Awaiting payment confirmation")

        self.session.add(flow)
        await self.session.flush()

        log_business_event(
            "payment_initiated",
            {"payment_flow_id": str(flow.id), "booking_id": str(booking.id), "method": flow.payment_method.value},
            user_id=str(customer.id),
        )
        return flow

    async def fund_payment(self, flow_id: UUID, actor: User, data: PaymentFundRequest) -> PaymentFlow:
        """Record the gateway confirmation and hold the funds (escrow) or complete the payment (direct)."""
        flow = await self.get_flow(flow_id)
        if actor.id != flow.customer_id and not actor.is_admin:
            raise AuthorizationError("Not authorized to confirm this payment")
        if flow.status not in FUNDABLE_FLOW_STATUSES:
            raise EscrowStateError(f"Payment is already {flow.status.value}", current_state=flow.status.value)

        booking = await self._get_booking(flow.booking_id)

        flow.gateway_reference = data.gateway_reference
        flow.gateway_transaction_id = data.gateway_transaction_id

        if flow.escrow is not None:
            escrow = flow.escrow
            escrow.mark_funded()
            escrow.event_completed = booking.status == BookingStatus.COMPLETED
            escrow.add_history("funded", actor.id, f"Gateway reference {data.gateway_reference}")
            flow.status = PaymentFlowStatus.HELD_IN_ESCROW
            flow.escrow_held_at = escrow.funded_at
            flow.escrow_release_date = escrow.auto_release_date
            flow.add_timeline(PaymentFlowStatus.HELD_IN_ESCROW, "Funds held in escrow")
        else:
            flow.status = PaymentFlowStatus.COMPLETED
            flow.add_timeline(PaymentFlowStatus.COMPLETED, "Direct payment completed")

        booking.payment_status = PaymentStatus.COMPLETED
        await self.session.flush()

        await self.notifications.notify_payment_received(flow, booking.booking_number)
        log_business_event(
            "payment_funded",
            {"payment_flow_id": str(flow.id), "status": flow.status.value},
            user_id=str(actor.id),
        )
        return flow

    async def release_escrow(self, flow_id: UUID, actor: User, reason: Optional[str] = None) -> PaymentFlow:
        """
        Release held funds to the provider.

        The customer releases manually (approving the service); an admin
        releases on the platform's behalf.
        """
        flow = await self.get_flow(flow_id)
        if actor.id == flow.customer_id:
            method = ReleaseMethod.MANUAL
        elif actor.is_admin:
            method = ReleaseMethod.ADMIN
        else:
            raise AuthorizationError("Only the customer or an admin can release escrow")

        escrow = self._held_escrow(flow)
        if escrow.is_disputed and escrow.dispute_status in (DisputeStatus.OPEN, DisputeStatus.INVESTIGATING):
            raise EscrowStateError("Escrow is under dispute", current_state=escrow.status.value)

        if method == ReleaseMethod.MANUAL:
            escrow.customer_approved = True
            reason = reason or "Released by customer"
        else:
            reason = reason or "Released by admin"

        await self._release(flow, method, actor.id, reason)
        return flow

    async def refund_payment(self, flow_id: UUID, admin: User, data: RefundRequest) -> PaymentFlow:
        flow = await self.get_flow(flow_id)
        if flow.status not in (PaymentFlowStatus.HELD_IN_ESCROW, PaymentFlowStatus.COMPLETED):
            raise EscrowStateError(
                f"Cannot refund a payment that is {flow.status.value}",
                current_state=flow.status.value,
            )

        amount = data.amount if data.amount is not None else flow.total_amount
        if Decimal(amount) > Decimal(flow.total_amount):
            raise BadRequestError("Refund amount cannot exceed the amount paid")

        await self._refund(flow, Decimal(amount), data.reason, admin.id, data.reference)
        return flow

    async def open_dispute(self, flow_id: UUID, actor: User, reason: str) -> PaymentFlow:
        flow = await self.get_flow(flow_id)
        if actor.id not in (flow.customer_id, flow.provider_id):
            raise AuthorizationError("Only the booking parties can open a dispute")

        escrow = self._held_escrow(flow, allow_disputed=True)
        if escrow.is_disputed and escrow.dispute_status in (DisputeStatus.OPEN, DisputeStatus.INVESTIGATING):
            raise ConflictError("A dispute is already open for this payment")

        escrow.status = EscrowStatus.DISPUTED
        escrow.is_disputed = True
        escrow.disputed_at = utcnow()
        escrow.disputed_by_id = actor.id
        escrow.dispute_reason = reason
        escrow.dispute_status = DisputeStatus.OPEN
        escrow.dispute_resolution = None
        escrow.resolved_at = None
        escrow.resolved_by_id = None
        escrow.add_history("dispute_opened", actor.id, reason)
        await self.session.flush()

        await self.notifications.notify_admins(
            "Payment Dispute Opened",
            f"A dispute was opened on payment {flow.id}: {reason}",
            related_booking_id=flow.booking_id,
        )
        log_business_event("escrow_disputed", {"payment_flow_id": str(flow.id)}, user_id=str(actor.id))
        return flow

    async def resolve_dispute(self, flow_id: UUID, admin: User, data: DisputeResolveRequest) -> PaymentFlow:
        """
        Move a dispute forward and optionally settle the held funds.

        Resolving or closing without an outcome returns the escrow to the
        held state, so it can be released normally again.
        """
        flow = await self.get_flow(flow_id)
        escrow = flow.escrow
        if escrow is None or escrow.status != EscrowStatus.DISPUTED:
            raise EscrowStateError(
                "Payment is not under dispute",
                current_state=escrow.status.value if escrow else flow.status.value,
            )

        escrow.dispute_status = data.status
        if data.resolution is not None:
            escrow.dispute_resolution = data.resolution
        escrow.add_history(f"dispute_{data.status.value}", admin.id, data.resolution)

        if data.status == DisputeStatus.INVESTIGATING:
            await self.session.flush()
            return flow

        escrow.resolved_at = utcnow()
        escrow.resolved_by_id = admin.id
        escrow.is_disputed = False
        escrow.status = EscrowStatus.HELD

        if data.outcome == "release":
            await self._release(flow, ReleaseMethod.ADMIN, admin.id, data.resolution or "Dispute resolved in provider's favour")
        elif data.outcome == "refund":
            await self._refund(flow, Decimal(escrow.amount), data.resolution or "Dispute resolved in customer's favour", admin.id)
        else:
            await self.session.flush()

        log_business_event(
            "escrow_dispute_resolved",
            {"payment_flow_id": str(flow.id), "outcome": data.outcome or "none"},
            user_id=str(admin.id),
        )
        return flow

    async def get_flow(self, flow_id: UUID) -> PaymentFlow:
        flow = await self.session.get(PaymentFlow, flow_id)
        if flow is None:
            raise NotFoundError("Payment not found", "payment_flow", str(flow_id))
        return flow

    async def get_flow_for_user(self, flow_id: UUID, actor: User) -> PaymentFlow:
        flow = await self.get_flow(flow_id)
        if actor.id not in (flow.customer_id, flow.provider_id) and not actor.is_admin:
            raise AuthorizationError("Not authorized to view this payment")
        return flow

    async def get_flows_for_booking(self, booking_id: UUID, actor: User) -> List[PaymentFlow]:
        booking = await self._get_booking(booking_id)
        if not booking.is_party(actor.id) and not actor.is_admin:
            raise AuthorizationError("Not authorized to view payments for this booking")

        result = await self.session.execute(
            select(PaymentFlow)
            .where(PaymentFlow.booking_id == booking_id)
            .order_by(PaymentFlow.created_at.desc())
        )
        return list(result.scalars().all())

    # Hooks used by the booking lifecycle

    async def handle_booking_cancelled(self, booking: Booking, actor_id: UUID) -> None:
        """Refund funded payments and cancel unfunded ones when a booking is cancelled."""
        result = await self.session.execute(
            select(PaymentFlow).where(
                PaymentFlow.booking_id == booking.id,
                PaymentFlow.status.not_in(CLOSED_FLOW_STATUSES),
            )
        )
        for flow in result.scalars().all():
            if flow.status == PaymentFlowStatus.HELD_IN_ESCROW:
                await self._refund(flow, Decimal(flow.total_amount), "Booking cancelled", actor_id)
            elif flow.status in FUNDABLE_FLOW_STATUSES:
                flow.status = PaymentFlowStatus.CANCELLED
                flow.add_timeline(PaymentFlowStatus.CANCELLED, "Booking cancelled before payment")
                if flow.escrow is not None:
                    flow.escrow.status = EscrowStatus.CANCELLED
                    flow.escrow.add_history("cancelled", actor_id, "Booking cancelled before payment")
        await self.session.flush()

    async def handle_booking_completed(self, booking: Booking, actor_id: UUID) -> None:
        """Satisfy the event-completed release condition of the booking's escrow."""
        result = await self.session.execute(
            select(EscrowTransaction).where(
                EscrowTransaction.booking_id == booking.id,
                EscrowTransaction.status.in_((EscrowStatus.CREATED, EscrowStatus.FUNDED, EscrowStatus.HELD)),
            )
        )
        for escrow in result.scalars().all():
            escrow.event_completed = True
            escrow.add_history("event_completed", actor_id, "Booking marked as completed")
        await self.session.flush()

    async def auto_release_due(self, now: Optional[datetime] = None) -> int:
        """
        Release escrows whose auto release date has passed.

        Only escrows of completed bookings that are not disputed qualify.

        Returns:
            Number of released escrows
        """
        now = now or utcnow()
        result = await self.session.execute(
            select(PaymentFlow)
            .join(EscrowTransaction, EscrowTransaction.payment_flow_id == PaymentFlow.id)
            .join(Booking, Booking.id == PaymentFlow.booking_id)
            .where(
                EscrowTransaction.status.in_((EscrowStatus.FUNDED, EscrowStatus.HELD)),
                EscrowTransaction.is_disputed.is_(False),
                EscrowTransaction.auto_release_date <= now,
                Booking.status == BookingStatus.COMPLETED,
            )
        )
        flows = list(result.scalars().all())
        for flow in flows:
            await self._release(flow, ReleaseMethod.AUTO, None, "Auto-released after hold period")

        if flows:
            logger.info(f"Auto-released {len(flows)} escrow transactions")
        return len(flows)

    # Internal helpers

    async def _get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.session.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    def _held_escrow(flow: PaymentFlow, allow_disputed: bool = False) -> EscrowTransaction:
        escrow = flow.escrow
        if escrow is None:
            raise EscrowStateError("Payment does not use escrow", current_state=flow.status.value)
        held = escrow.is_held or (allow_disputed and escrow.status == EscrowStatus.DISPUTED)
        if not held:
            raise EscrowStateError(f"Escrow is {escrow.status.value}", current_state=escrow.status.value)
        return escrow

    async def _release(
        self,
        flow: PaymentFlow,
        method: ReleaseMethod,
        released_by: Optional[UUID],
        reason: Optional[str],
    ) -> None:
        now = utcnow()
        escrow = flow.escrow
        escrow.status = EscrowStatus.RELEASED
        escrow.released_at = now
        escrow.released_by_id = released_by
        escrow.release_method = method
        escrow.add_history("released", released_by, reason)

        flow.status = PaymentFlowStatus.RELEASED
        flow.escrow_released_at = now
        flow.escrow_release_reason = reason
        flow.add_timeline(PaymentFlowStatus.RELEASED, reason)
        await self.session.flush()

        await self.notifications.notify_payment_released(flow)
        log_business_event(
            "escrow_released",
            {"payment_flow_id": str(flow.id), "release_method": method.value},
            user_id=str(released_by) if released_by else None,
        )

    async def _refund(
        self,
        flow: PaymentFlow,
        amount: Decimal,
        reason: str,
        refunded_by: UUID,
        reference: Optional[str] = None,
    ) -> None:
        now = utcnow()
        if flow.escrow is not None:
            escrow = flow.escrow
            escrow.status = EscrowStatus.REFUNDED
            escrow.refunded_at = now
            escrow.refund_amount = amount
            escrow.refund_reason = reason
            escrow.refunded_by_id = refunded_by
            escrow.add_history("refunded", refunded_by, reason)

        flow.status = PaymentFlowStatus.REFUNDED
        flow.refunded_at = now
        flow.refund_amount = amount
        flow.refund_reason = reason
        flow.refund_reference = reference
        flow.add_timeline(PaymentFlowStatus.REFUNDED, reason)

        booking = await self._get_booking(flow.booking_id)
        booking.payment_status = PaymentStatus.REFUNDED
        await self.session.flush()

        log_business_event(
            "payment_refunded",
            {"payment_flow_id": str(flow.id), "amount": str(amount)},
            user_id=str(refunded_by),
        )
