"""
Review model for completed bookings.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class ReviewType(enum.Enum):
    PROVIDER = "provider"
    CENTER = "center"


class Review(Base):
    """A customer's review of a service provider or event center booking."""

    __tablename__ = "reviews"

    review_type: Mapped[ReviewType] = mapped_column(Enum(ReviewType), nullable=False)
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    service_provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    event_center_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_centers.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    # Owner of the reviewed listing
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Ratings
    rating_overall: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    rating_quality: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_communication: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_professionalism: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_value_for_money: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    comment: Mapped[str] = mapped_column(String(1000), nullable=False)
    images: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    would_recommend: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Owner response
    response_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    responded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Helpful votes
    helpful_votes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    helpful_by: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Moderation
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    report_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    reviewer: Mapped["User"] = relationship("User", foreign_keys=[reviewer_id], lazy="selectin")

    __table_args__ = (
        UniqueConstraint("booking_id", "reviewer_id", name="uq_reviews_booking_reviewer"),
        CheckConstraint("rating_overall BETWEEN 1 AND 5", name="ck_reviews_rating_overall_range"),
        CheckConstraint("helpful_votes >= 0", name="ck_reviews_helpful_votes_non_negative"),
    )

    @property
    def listing_id(self) -> Optional[uuid.UUID]:
        if self.review_type == ReviewType.PROVIDER:
            return self.service_provider_id
        return self.event_center_id

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, booking_id={self.booking_id}, rating={self.rating_overall})>"
