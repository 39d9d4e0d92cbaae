"""
User model for authentication, roles and business verification.
"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Enum, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.auth import get_password_hash, verify_password

if TYPE_CHECKING:
    from .service_provider import ServiceProvider
    from .event_center import EventCenter


class UserRole(enum.Enum):
    """Enumeration for user roles."""
    ADMIN = "admin"
    HOST = "host"
    PROVIDER = "provider"
    CENTER = "center"


class CacStatus(enum.Enum):
    """Enumeration for CAC (business registration) verification status."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class User(Base):
    """User model for authentication and profile management."""

    __tablename__ = "users"

    # User identification and authentication
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # User profile information
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.HOST,
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    profile_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Role specific profiles
    host_profile: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    provider_profile: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    center_profile: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # Business registration (CAC) verification
    cac_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cac_business_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    cac_document: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cac_status: Mapped[Optional[CacStatus]] = mapped_column(Enum(CacStatus), nullable=True, index=True)
    cac_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cac_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Password reset
    reset_password_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    service_providers: Mapped[List["ServiceProvider"]] = relationship(
        "ServiceProvider",
        back_populates="owner",
        lazy="raise"
    )
    event_centers: Mapped[List["EventCenter"]] = relationship(
        "EventCenter",
        back_populates="owner",
        lazy="raise"
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def set_password(self, password: str) -> None:
        """Hash and set the user's password."""
        self.password_hash = get_password_hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify the user's password against the stored hash."""
        return verify_password(password, self.password_hash)

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
