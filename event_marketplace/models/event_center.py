"""
Event center (venue) listing model with date-range availability.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
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
from .service_provider import VerificationStatus

if TYPE_CHECKING:
    from .user import User


class CenterType(enum.Enum):
    """Enumeration for venue types."""
    HOTEL_RESORT = "Hotel/Resort"
    CONFERENCE_CENTER = "Conference Center"
    BANQUET_HALL = "Banquet Hall"
    OUTDOOR_VENUE = "Outdoor Venue"
    COMMUNITY_CENTER = "Community Center"
    RESTAURANT_LOUNGE = "Restaurant/Lounge"
    RELIGIOUS_CENTER = "Religious Center"
    GARDEN_PARK = "Garden/Park"
    OTHER = "Other"


class EventType(enum.Enum):
    """Kinds of events hosts organise."""
    WEDDING = "Wedding"
    BIRTHDAY = "Birthday"
    CORPORATE = "Corporate"
    CONFERENCE = "Conference"
    WORKSHOP = "Workshop"
    CONCERT = "Concert"
    EXHIBITION = "Exhibition"
    RELIGIOUS = "Religious"
    SOCIAL = "Social"
    OTHER = "Other"


class Facility(enum.Enum):
    AIR_CONDITIONING = "Air Conditioning"
    PARKING = "Parking"
    WIFI = "WiFi"
    SOUND_SYSTEM = "Sound System"
    STAGE = "Stage"
    PROJECTOR = "Projector"
    KITCHEN = "Kitchen"
    RESTROOMS = "Restrooms"
    GENERATOR = "Generator"
    SECURITY = "Security"
    CHANGING_ROOMS = "Changing Rooms"
    OUTDOOR_SPACE = "Outdoor Space"
    CATERING_SERVICES = "Catering Services"
    BAR = "Bar"
    DANCE_FLOOR = "Dance Floor"
    VIP_SECTION = "VIP Section"
    WHEELCHAIR_ACCESS = "Wheelchair Access"


class CenterPricingType(enum.Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    PACKAGE = "package"


class DateRangeKind(enum.Enum):
    """Why a center is unavailable over a range."""
    BOOKED = "booked"
    BLOCKED = "blocked"


class EventCenter(Base):
    """Event center listing owned by a center user."""

    __tablename__ = "event_centers"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    center_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    center_type: Mapped[CenterType] = mapped_column(Enum(CenterType), nullable=False, index=True)

    # Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(100), default="Nigeria", nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    landmark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Capacity
    capacity_minimum: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    capacity_maximum: Mapped[int] = mapped_column(Integer, nullable=False)

    amenities: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    event_types: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    operating_hours: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # Pricing
    pricing_type: Mapped[CenterPricingType] = mapped_column(
        Enum(CenterPricingType),
        default=CenterPricingType.DAILY,
        nullable=False
    )
    hourly_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    daily_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True, index=True)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    packages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    images: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # Terms
    cancellation_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    advance_booking_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    deposit_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deposit_percentage: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    # Reputation and moderation
    rating_average: Mapped[float] = mapped_column(Float, default=0.0, nullable=False, index=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_bookings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus),
        default=VerificationStatus.PENDING,
        nullable=False,
        index=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    owner: Mapped["User"] = relationship("User", back_populates="event_centers", lazy="raise")

    facility_entries: Mapped[List["CenterFacility"]] = relationship(
        "CenterFacility",
        back_populates="event_center",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    date_ranges: Mapped[List["CenterDateRange"]] = relationship(
        "CenterDateRange",
        back_populates="event_center",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CenterDateRange.start_date"
    )

    __table_args__ = (
        CheckConstraint("capacity_minimum >= 1", name="ck_event_centers_capacity_minimum"),
        CheckConstraint("capacity_maximum >= capacity_minimum", name="ck_event_centers_capacity_order"),
        CheckConstraint("rating_average >= 0 AND rating_average <= 5", name="ck_event_centers_rating_range"),
    )

    @property
    def is_published(self) -> bool:
        """Listed publicly and bookable."""
        return self.is_active and self.verification_status == VerificationStatus.VERIFIED

    @property
    def facilities(self) -> List[str]:
        return [entry.facility.value for entry in self.facility_entries]

    def ranges_of(self, kind: DateRangeKind) -> List[Tuple[datetime, datetime]]:
        return [
            (entry.start_date, entry.end_date)
            for entry in self.date_ranges
            if entry.kind == kind
        ]

    @property
    def booked_dates(self) -> List["CenterDateRange"]:
        return [entry for entry in self.date_ranges if entry.kind == DateRangeKind.BOOKED]

    @property
    def blocked_dates(self) -> List["CenterDateRange"]:
        return [entry for entry in self.date_ranges if entry.kind == DateRangeKind.BLOCKED]

    def __repr__(self) -> str:
        return f"<EventCenter(id={self.id}, name='{self.center_name}', city='{self.city}')>"


class CenterFacility(Base):
    """A facility offered by an event center."""

    __tablename__ = "center_facilities"

    event_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_centers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    facility: Mapped[Facility] = mapped_column(Enum(Facility), nullable=False, index=True)

    event_center: Mapped["EventCenter"] = relationship("EventCenter", back_populates="facility_entries")


class CenterDateRange(Base):
    """A booked or owner-blocked period of an event center."""

    __tablename__ = "center_date_ranges"

    event_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_centers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    kind: Mapped[DateRangeKind] = mapped_column(Enum(DateRangeKind), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    event_center: Mapped["EventCenter"] = relationship("EventCenter", back_populates="date_ranges")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_center_date_ranges_order"),
    )
