"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .common import PaginationInfo, UserSummary
from ..models.booking import BookingStatus, BookingType, PaymentMethod, PaymentStatus

TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class EventDetails(BaseModel):
    """Details of the event a booking is made for."""

    event_name: Optional[str] = Field(None, max_length=200)
    event_type: Optional[str] = Field(None, max_length=50)
    event_date: datetime = Field(..., description="Date and time of the event")
    start_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    end_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    guest_count: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = Field(None, max_length=1000)


class AdditionalCharge(BaseModel):
    description: str = Field(..., max_length=200)
    amount: Decimal = Field(..., ge=0)


class BookingPricing(BaseModel):
    base_amount: Optional[Decimal] = Field(None, ge=0)
    additional_charges: List[AdditionalCharge] = []
    discount: Decimal = Field(Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., gt=0)
    currency: str = Field("NGN", min_length=3, max_length=3)


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    booking_type: BookingType
    service_provider_id: Optional[UUID] = None
    event_center_id: Optional[UUID] = None
    event_details: EventDetails
    pricing: BookingPricing
    payment_method: PaymentMethod = PaymentMethod.ESCROW
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_listing_reference(self) -> "BookingCreateRequest":
        if self.booking_type == BookingType.PROVIDER and self.service_provider_id is None:
            raise ValueError("service_provider_id is required for provider bookings")
        if self.booking_type == BookingType.CENTER and self.event_center_id is None:
            raise ValueError("event_center_id is required for center bookings")
        return self


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=500)


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: Optional[str] = Field(None, max_length=500, description="Optional cancellation reason")


class BookingHistoryResponse(BaseModel):
    """Schema for booking history entries."""

    id: UUID
    status: BookingStatus
    reason: Optional[str]
    changed_at: datetime
    changed_by_id: Optional[UUID]
    changed_by: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    booking_number: str
    booking_type: BookingType
    customer_id: UUID
    provider_id: UUID
    service_provider_id: Optional[UUID]
    event_center_id: Optional[UUID]
    listing_name: Optional[str] = None

    event_name: Optional[str]
    event_type: Optional[str]
    event_date: datetime
    start_time: Optional[str]
    end_time: Optional[str]
    guest_count: Optional[int]
    special_requests: Optional[str]

    base_amount: Optional[Decimal]
    additional_charges: List[AdditionalCharge] = []
    discount: Decimal
    total_amount: Decimal
    currency: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus

    notes: Optional[str]
    status: BookingStatus
    cancelled_by_id: Optional[UUID] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    reviewed: bool

    customer: Optional[UserSummary] = None
    provider: Optional[UserSummary] = None
    status_history: List[BookingHistoryResponse] = []

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    """Schema for booking list responses."""

    bookings: List[BookingResponse]
    pagination: PaginationInfo


class BookingHistoryListResponse(BaseModel):
    """Schema for booking history list responses."""

    history: List[BookingHistoryResponse]
