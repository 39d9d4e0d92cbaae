"""
Pydantic schemas for service provider listings.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import PaginationInfo
from ..models.service_provider import (
    AvailabilityStatus,
    ProviderPricingType,
    ServiceCategory,
    VerificationStatus,
)


class PackageOption(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., ge=0)
    features: List[str] = []


class MediaItem(BaseModel):
    url: str = Field(..., max_length=500)
    caption: Optional[str] = Field(None, max_length=200)


class ServiceAreaInput(BaseModel):
    states: List[str] = []
    cities: List[str] = []
    nationwide: bool = False


class ProviderTerms(BaseModel):
    cancellation_policy: Optional[str] = Field(None, max_length=2000)
    refund_policy: Optional[str] = Field(None, max_length=2000)
    advance_booking_days: int = Field(7, ge=0)
    deposit_required: bool = False
    deposit_percentage: Optional[int] = Field(None, ge=0, le=100)


class ProviderCreateRequest(BaseModel):
    """Schema for creating a service provider listing."""

    service_name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    service_category: ServiceCategory
    pricing_type: ProviderPricingType = ProviderPricingType.FIXED
    price_amount: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field("NGN", min_length=3, max_length=3)
    packages: List[PackageOption] = []
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    unavailable_dates: List[date] = []
    service_area: ServiceAreaInput = ServiceAreaInput()
    images: List[MediaItem] = []
    portfolio: List[MediaItem] = []
    terms: ProviderTerms = ProviderTerms()


class ProviderUpdateRequest(BaseModel):
    """Schema for updating a service provider listing; only provided fields change."""

    service_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    service_category: Optional[ServiceCategory] = None
    pricing_type: Optional[ProviderPricingType] = None
    price_amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    packages: Optional[List[PackageOption]] = None
    availability_status: Optional[AvailabilityStatus] = None
    unavailable_dates: Optional[List[date]] = None
    service_area: Optional[ServiceAreaInput] = None
    images: Optional[List[MediaItem]] = None
    portfolio: Optional[List[MediaItem]] = None
    terms: Optional[ProviderTerms] = None


class ProviderFilters(BaseModel):
    """Query filters for the public provider listing."""

    category: Optional[ServiceCategory] = None
    state: Optional[str] = None
    city: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    availability: Optional[AvailabilityStatus] = None
    search: Optional[str] = None
    sort_by: Literal["created_at", "rating", "price", "views", "bookings"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


class ListingVerifyRequest(BaseModel):
    """Admin decision on a listing."""

    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=500)


class ProviderResponse(BaseModel):
    """Schema for service provider responses."""

    id: UUID
    owner_id: UUID
    service_name: str
    description: str
    service_category: ServiceCategory
    pricing_type: ProviderPricingType
    price_amount: Optional[Decimal]
    currency: str
    packages: List[Dict[str, Any]]
    availability_status: AvailabilityStatus
    unavailable_dates: List[str]
    nationwide: bool
    states: List[str]
    cities: List[str]
    images: List[Dict[str, Any]]
    portfolio: List[Dict[str, Any]]
    cancellation_policy: Optional[str]
    refund_policy: Optional[str]
    advance_booking_days: int
    deposit_required: bool
    deposit_percentage: Optional[int]
    rating_average: float
    rating_count: int
    total_bookings: int
    views: int
    is_active: bool
    verification_status: VerificationStatus
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProviderListResponse(BaseModel):
    providers: List[ProviderResponse]
    pagination: PaginationInfo


class ProviderAvailabilityResponse(BaseModel):
    is_available: bool
    status: AvailabilityStatus
    date: date
