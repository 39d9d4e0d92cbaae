"""
Booking model for service provider and event center reservations.
"""

import enum
import secrets
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
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
    from .user import User
    from .service_provider import ServiceProvider
    from .event_center import EventCenter
    from .booking_history import BookingStatusHistory


class BookingType(enum.Enum):
    """What kind of listing a booking reserves."""
    PROVIDER = "provider"
    CENTER = "center"


class BookingStatus(enum.Enum):
    """Enumeration for booking status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentMethod(enum.Enum):
    ESCROW = "escrow"
    DIRECT = "direct"
    CASH = "cash"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"


# Completed and cancelled bookings are terminal.
ALLOWED_TRANSITIONS: Dict[BookingStatus, List[BookingStatus]] = {
    BookingStatus.PENDING: [BookingStatus.CONFIRMED, BookingStatus.CANCELLED],
    BookingStatus.CONFIRMED: [BookingStatus.COMPLETED, BookingStatus.CANCELLED],
    BookingStatus.COMPLETED: [],
    BookingStatus.CANCELLED: [],
}


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    """Check whether a booking may move from ``current`` to ``requested``."""
    return requested in ALLOWED_TRANSITIONS.get(current, [])


def generate_booking_number() -> str:
    """Human readable booking reference, e.g. ``BK20250101-3F9A1C``."""
    return f"BK{utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"


class Booking(Base):
    """Booking model for listing reservations."""

    __tablename__ = "bookings"

    booking_number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        default=generate_booking_number,
        index=True
    )
    booking_type: Mapped[BookingType] = mapped_column(Enum(BookingType), nullable=False, index=True)

    # Parties
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
    service_provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("service_providers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    event_center_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_centers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Event details
    event_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    event_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    event_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    start_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    guest_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    base_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    additional_charges: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod),
        default=PaymentMethod.ESCROW,
        nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True
    )

    # Cancellation
    cancelled_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    reviewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    customer: Mapped["User"] = relationship("User", foreign_keys=[customer_id], lazy="selectin")
    provider: Mapped["User"] = relationship("User", foreign_keys=[provider_id], lazy="selectin")
    service_provider: Mapped[Optional["ServiceProvider"]] = relationship("ServiceProvider", lazy="selectin")
    event_center: Mapped[Optional["EventCenter"]] = relationship("EventCenter", lazy="selectin")

    status_history: Mapped[List["BookingStatusHistory"]] = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BookingStatusHistory.changed_at"
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_bookings_total_amount_non_negative"),
        CheckConstraint("discount >= 0", name="ck_bookings_discount_non_negative"),
        CheckConstraint("guest_count IS NULL OR guest_count > 0", name="ck_bookings_guest_count_positive"),
    )

    @property
    def is_active(self) -> bool:
        """Check if the booking is still open (pending or confirmed)."""
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    @property
    def listing_id(self) -> Optional[uuid.UUID]:
        if self.booking_type == BookingType.PROVIDER:
            return self.service_provider_id
        return self.event_center_id

    @property
    def listing_name(self) -> Optional[str]:
        if self.booking_type == BookingType.PROVIDER and self.service_provider is not None:
            return self.service_provider.service_name
        if self.booking_type == BookingType.CENTER and self.event_center is not None:
            return self.event_center.center_name
        return None

    def is_party(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.customer_id, self.provider_id)

    def __repr__(self) -> str:
        """String representation of the booking."""
        return (
            f"<Booking(id={self.id}, number='{self.booking_number}', "
            f"type={self.booking_type.value}, status={self.status.value})>"
        )
