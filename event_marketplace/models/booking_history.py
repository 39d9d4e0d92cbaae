"""
BookingStatusHistory model for tracking the booking audit trail.
"""

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .booking import BookingStatus
from ..utils.dates import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class BookingStatusHistory(Base):
    """One status change of a booking."""

    __tablename__ = "booking_status_history"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    changed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="status_history")
    changed_by: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        """String representation of the history entry."""
        return (
            f"<BookingStatusHistory(id={self.id}, booking_id={self.booking_id}, "
            f"status={self.status.value}, changed_at={self.changed_at})>"
        )
