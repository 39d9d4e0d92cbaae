"""
Payment flow and escrow transaction models.

A payment flow records what the customer pays for a booking and how it is
split between the platform and the provider. Escrow payments additionally
get an escrow transaction that holds the funds until release or refund.
"""

import enum
import uuid
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.dates import utcnow

if TYPE_CHECKING:
    from .booking import Booking

_CENT = Decimal("0.01")


class PaymentFlowMethod(enum.Enum):
    ESCROW = "escrow"
    DIRECT = "direct"


class PaymentFlowStatus(enum.Enum):
    """Enumeration for payment flow status."""
    INITIATED = "initiated"
    PENDING = "pending"
    PROCESSING = "processing"
    HELD_IN_ESCROW = "held_in_escrow"
    RELEASED = "released"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class EscrowStatus(enum.Enum):
    """Enumeration for escrow transaction status."""
    CREATED = "created"
    FUNDED = "funded"
    HELD = "held"
    DISPUTED = "disputed"
    RELEASED = "released"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class ReleaseMethod(enum.Enum):
    MANUAL = "manual"
    AUTO = "auto"
    ADMIN = "admin"


class DisputeStatus(enum.Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


def calculate_platform_fee(total_amount: Decimal, percentage: float) -> Tuple[Decimal, Decimal]:
    """
    Split a payment between the platform and the provider.

    Args:
        total_amount: Amount paid by the customer
        percentage: Platform fee percentage

    Returns:
        Tuple of (fee amount, provider amount), rounded to cents
    """
    total = Decimal(total_amount)
    fee = (total * Decimal(str(percentage)) / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return fee, (total - fee).quantize(_CENT, rounding=ROUND_HALF_UP)


def _history_entry(action: str, performed_by: Optional[uuid.UUID], note: Optional[str]) -> Dict[str, Any]:
    return {
        "action": action,
        "performed_by": str(performed_by) if performed_by else None,
        "timestamp": utcnow().isoformat(),
        "note": note,
    }


class PaymentFlow(Base):
    """Payment for a booking, including the platform fee split."""

    __tablename__ = "payment_flows"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    payment_method: Mapped[PaymentFlowMethod] = mapped_column(Enum(PaymentFlowMethod), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    platform_fee_percentage: Mapped[float] = mapped_column(Float, default=5.0, nullable=False)
    platform_fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    provider_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    status: Mapped[PaymentFlowStatus] = mapped_column(
        Enum(PaymentFlowStatus),
        default=PaymentFlowStatus.INITIATED,
        nullable=False,
        index=True
    )

    # Gateway
    gateway_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    gateway_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    timeline: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # Escrow details
    escrow_held_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    escrow_release_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    escrow_released_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    escrow_release_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Refund details
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", lazy="raise")
    escrow: Mapped[Optional["EscrowTransaction"]] = relationship(
        "EscrowTransaction",
        back_populates="payment_flow",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_payment_flows_total_non_negative"),
        CheckConstraint("platform_fee_percentage >= 0", name="ck_payment_flows_fee_non_negative"),
    )

    def apply_fee(self) -> None:
        """Recompute the platform fee and provider amount from the total."""
        self.platform_fee_amount, self.provider_amount = calculate_platform_fee(
            self.total_amount, self.platform_fee_percentage
        )

    def add_timeline(self, status: PaymentFlowStatus, note: Optional[str] = None) -> None:
        # Reassign so the JSON column is flagged dirty
        self.timeline = list(self.timeline or []) + [
            {"status": status.value, "timestamp": utcnow().isoformat(), "note": note}
        ]

    def __repr__(self) -> str:
        return f"<PaymentFlow(id={self.id}, booking_id={self.booking_id}, status={self.status.value})>"


class EscrowTransaction(Base):
    """Funds held by the platform until the booking completes."""

    __tablename__ = "escrow_transactions"

    payment_flow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payment_flows.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    status: Mapped[EscrowStatus] = mapped_column(
        Enum(EscrowStatus),
        default=EscrowStatus.CREATED,
        nullable=False,
        index=True
    )

    # Hold period
    funded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    hold_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    hold_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    # Release conditions
    event_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    customer_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    auto_release_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    released_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    release_method: Mapped[Optional[ReleaseMethod]] = mapped_column(Enum(ReleaseMethod), nullable=True)

    # Dispute
    is_disputed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    disputed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    disputed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    dispute_reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    dispute_status: Mapped[Optional[DisputeStatus]] = mapped_column(Enum(DisputeStatus), nullable=True)
    dispute_resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    resolved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Refund
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refunded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    history: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    payment_flow: Mapped["PaymentFlow"] = relationship("PaymentFlow", back_populates="escrow")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_escrow_transactions_amount_non_negative"),
        CheckConstraint("hold_days >= 0", name="ck_escrow_transactions_hold_days_non_negative"),
    )

    @property
    def is_held(self) -> bool:
        return self.status in (EscrowStatus.FUNDED, EscrowStatus.HELD)

    def mark_funded(self, funded_at: Optional[datetime] = None) -> None:
        """Fund the escrow and derive the hold expiry and auto release date."""
        self.funded_at = funded_at or utcnow()
        self.status = EscrowStatus.HELD
        if self.hold_expires_at is None:
            self.hold_expires_at = self.funded_at + timedelta(days=self.hold_days)
        if self.auto_release_date is None:
            self.auto_release_date = self.hold_expires_at

    def add_history(
        self,
        action: str,
        performed_by: Optional[uuid.UUID] = None,
        note: Optional[str] = None,
    ) -> None:
        self.history = list(self.history or []) + [_history_entry(action, performed_by, note)]

    def __repr__(self) -> str:
        return f"<EscrowTransaction(id={self.id}, booking_id={self.booking_id}, status={self.status.value})>"
