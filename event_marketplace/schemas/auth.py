"""
Authentication-related Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator

from ..models.service_provider import ServiceCategory
from ..models.user import CacStatus, UserRole

PHONE_PATTERN = r"^[0-9]{10,15}$"


class UserRegistration(BaseModel):
    """Schema for user registration."""
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    role: UserRole = UserRole.HOST
    service_category: Optional[ServiceCategory] = Field(
        None,
        description="Required when registering as a service provider"
    )
    host_profile: Optional[Dict[str, Any]] = None
    provider_profile: Optional[Dict[str, Any]] = None
    center_profile: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: Optional[str] = Field(None, description="Only returned outside production")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")


class UserProfile(BaseModel):
    """Schema for user profile information."""
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole
    is_active: bool
    profile_completed: bool
    host_profile: Dict[str, Any] = {}
    provider_profile: Dict[str, Any] = {}
    center_profile: Dict[str, Any] = {}
    cac_number: Optional[str] = None
    cac_business_name: Optional[str] = None
    cac_status: Optional[CacStatus] = None
    cac_verified: bool = False
    cac_rejection_reason: Optional[str] = None
    created_at: datetime

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


# Alias for consistency with other schemas
UserResponse = UserProfile
