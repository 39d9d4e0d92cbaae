"""
Pydantic schemas for event center listings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import PaginationInfo
from .provider import MediaItem, PackageOption
from ..models.event_center import CenterPricingType, CenterType, EventType, Facility
from ..models.service_provider import VerificationStatus
from ..utils.dates import to_naive_utc


class CenterLocation(BaseModel):
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field("Nigeria", max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    landmark: Optional[str] = Field(None, max_length=255)


class CenterCapacity(BaseModel):
    minimum: int = Field(1, ge=1)
    maximum: int = Field(..., ge=1)

    @model_validator(mode="after")
    def check_order(self) -> "CenterCapacity":
        if self.maximum < self.minimum:
            raise ValueError("Maximum capacity must not be below minimum capacity")
        return self


class CenterPricing(BaseModel):
    pricing_type: CenterPricingType = CenterPricingType.DAILY
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    daily_rate: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field("NGN", min_length=3, max_length=3)
    packages: List[PackageOption] = []


class CenterTerms(BaseModel):
    cancellation_policy: Optional[str] = Field(None, max_length=2000)
    refund_policy: Optional[str] = Field(None, max_length=2000)
    advance_booking_days: int = Field(7, ge=0)
    deposit_required: bool = True
    deposit_percentage: int = Field(50, ge=0, le=100)


class CenterCreateRequest(BaseModel):
    """Schema for creating an event center listing."""

    center_name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    center_type: CenterType
    location: CenterLocation
    capacity: CenterCapacity
    facilities: List[Facility] = []
    amenities: List[str] = []
    event_types: List[EventType] = []
    pricing: CenterPricing = CenterPricing()
    operating_hours: Dict[str, Any] = {}
    images: List[MediaItem] = []
    terms: CenterTerms = CenterTerms()


class CenterUpdateRequest(BaseModel):
    """Schema for updating an event center listing; only provided fields change."""

    center_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    center_type: Optional[CenterType] = None
    location: Optional[CenterLocation] = None
    capacity: Optional[CenterCapacity] = None
    facilities: Optional[List[Facility]] = None
    amenities: Optional[List[str]] = None
    event_types: Optional[List[EventType]] = None
    pricing: Optional[CenterPricing] = None
    operating_hours: Optional[Dict[str, Any]] = None
    images: Optional[List[MediaItem]] = None
    terms: Optional[CenterTerms] = None


class CenterFilters(BaseModel):
    """Query filters for the public center listing."""

    center_type: Optional[CenterType] = None
    state: Optional[str] = None
    city: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    min_capacity: Optional[int] = Field(None, ge=1)
    max_capacity: Optional[int] = Field(None, ge=1)
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    facilities: List[Facility] = []
    event_type: Optional[EventType] = None
    search: Optional[str] = None
    sort_by: Literal["created_at", "rating", "price", "capacity", "views", "bookings"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


class BlockDatesRequest(BaseModel):
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_range(self) -> "BlockDatesRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class DateRangeResponse(BaseModel):
    id: UUID
    start_date: datetime
    end_date: datetime
    booking_id: Optional[UUID] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class CenterResponse(BaseModel):
    """Schema for event center responses."""

    id: UUID
    owner_id: UUID
    center_name: str
    description: str
    center_type: CenterType
    address: str
    city: str
    state: str
    country: str
    latitude: Optional[float]
    longitude: Optional[float]
    landmark: Optional[str]
    capacity_minimum: int
    capacity_maximum: int
    facilities: List[str]
    amenities: List[str]
    event_types: List[str]
    pricing_type: CenterPricingType
    hourly_rate: Optional[Decimal]
    daily_rate: Optional[Decimal]
    currency: str
    packages: List[Dict[str, Any]]
    operating_hours: Dict[str, Any]
    images: List[Dict[str, Any]]
    booked_dates: List[DateRangeResponse]
    blocked_dates: List[DateRangeResponse]
    cancellation_policy: Optional[str]
    refund_policy: Optional[str]
    advance_booking_days: int
    deposit_required: bool
    deposit_percentage: int
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


class CenterListResponse(BaseModel):
    centers: List[CenterResponse]
    pagination: PaginationInfo


class CenterAvailabilityResponse(BaseModel):
    is_available: bool
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = None
