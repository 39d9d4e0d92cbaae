"""
Schemas for user profile management and CAC verification.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .auth import PHONE_PATTERN, UserProfile
from .common import PaginationInfo


class HostProfileUpdate(BaseModel):
    business_name: Optional[str] = Field(None, max_length=200)
    business_address: Optional[str] = Field(None, max_length=255)
    business_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class ProviderProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, max_length=200)
    service_type: Optional[str] = Field(None, max_length=100)
    experience: Optional[int] = Field(None, ge=0, description="Years of experience")
    certifications: Optional[List[str]] = None


class CenterProfileUpdate(BaseModel):
    center_name: Optional[str] = Field(None, max_length=200)
    center_type: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    capacity: Optional[int] = Field(None, ge=1)


class UserProfileUpdate(BaseModel):
    """Schema for updating a user profile; role profiles merge into existing data."""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    avatar: Optional[str] = Field(None, max_length=500)
    host_profile: Optional[HostProfileUpdate] = None
    provider_profile: Optional[ProviderProfileUpdate] = None
    center_profile: Optional[CenterProfileUpdate] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class CacSubmission(BaseModel):
    cac_number: str = Field(..., min_length=1, max_length=50)
    business_name: str = Field(..., min_length=1, max_length=200)


class CacReviewRequest(BaseModel):
    """Admin decision on a CAC submission."""
    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=500)


class UserListResponse(BaseModel):
    users: List[UserProfile]
    pagination: PaginationInfo


class UserStatusResponse(BaseModel):
    message: str
    user: UserProfile
