"""
Service provider listing model (caterers, photographers, DJs...).
"""

import enum
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
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

if TYPE_CHECKING:
    from .user import User


class ServiceCategory(enum.Enum):
    """Enumeration for service provider categories."""
    CATERING = "Catering"
    PHOTOGRAPHY = "Photography"
    VIDEOGRAPHY = "Videography"
    DECORATION = "Decoration"
    DJ_ENTERTAINMENT = "DJ/Entertainment"
    SECURITY = "Security"
    MC_HOST = "MC/Host"
    MAKEUP_ARTIST = "Makeup Artist"
    EVENT_PLANNING = "Event Planning"
    TRANSPORTATION = "Transportation"
    OTHER = "Other"


class ProviderPricingType(enum.Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    PACKAGE = "package"
    NEGOTIABLE = "negotiable"


class AvailabilityStatus(enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


class VerificationStatus(enum.Enum):
    """Admin review state shared by service provider and event center listings."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class AreaType(enum.Enum):
    STATE = "state"
    CITY = "city"


class ServiceProvider(Base):
    """Service provider listing owned by a provider user."""

    __tablename__ = "service_providers"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    service_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    service_category: Mapped[ServiceCategory] = mapped_column(
        Enum(ServiceCategory),
        nullable=False,
        index=True
    )

    # Pricing
    pricing_type: Mapped[ProviderPricingType] = mapped_column(
        Enum(ProviderPricingType),
        default=ProviderPricingType.FIXED,
        nullable=False
    )
    price_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True, index=True)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    packages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # Availability
    availability_status: Mapped[AvailabilityStatus] = mapped_column(
        Enum(AvailabilityStatus),
        default=AvailabilityStatus.AVAILABLE,
        nullable=False
    )
    unavailable_dates: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Service area
    nationwide: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    service_areas: Mapped[List["ServiceArea"]] = relationship(
        "ServiceArea",
        back_populates="service_provider",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    # Media
    images: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    portfolio: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # Terms
    cancellation_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    advance_booking_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    deposit_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deposit_percentage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

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

    owner: Mapped["User"] = relationship("User", back_populates="service_providers", lazy="raise")

    __table_args__ = (
        CheckConstraint("price_amount IS NULL OR price_amount >= 0", name="ck_service_providers_price_non_negative"),
        CheckConstraint("rating_average >= 0 AND rating_average <= 5", name="ck_service_providers_rating_range"),
    )

    @property
    def is_published(self) -> bool:
        """Listed publicly and bookable."""
        return self.is_active and self.verification_status == VerificationStatus.VERIFIED

    @property
    def unavailable_days(self) -> List[date]:
        return [date.fromisoformat(value[:10]) for value in self.unavailable_dates or []]

    @property
    def states(self) -> List[str]:
        return [area.name for area in self.service_areas if area.area_type == AreaType.STATE]

    @property
    def cities(self) -> List[str]:
        return [area.name for area in self.service_areas if area.area_type == AreaType.CITY]

    def __repr__(self) -> str:
        return f"<ServiceProvider(id={self.id}, name='{self.service_name}', category={self.service_category.value})>"


class ServiceArea(Base):
    """A state or city a service provider covers."""

    __tablename__ = "service_areas"

    service_provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    area_type: Mapped[AreaType] = mapped_column(Enum(AreaType), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    service_provider: Mapped["ServiceProvider"] = relationship(
        "ServiceProvider",
        back_populates="service_areas"
    )
