"""
Pydantic schemas for role dashboards and analytics.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .booking import BookingResponse
from .review import ReviewResponse


class MonthlyFigure(BaseModel):
    """Schema for one month of a monthly series."""
    year: int = Field(..., description="Calendar year")
    month: int = Field(..., ge=1, le=12, description="Calendar month")
    total: Decimal = Field(Decimal("0"), description="Sum of booking totals for the month")
    count: int = Field(..., description="Number of records in the month")


class StatusBreakdown(BaseModel):
    """Schema for booking counts per status."""
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0


class ListingSummary(BaseModel):
    """Schema for a listing as shown on dashboards."""
    id: UUID = Field(..., description="Listing ID")
    name: str = Field(..., description="Service or center name")
    rating_average: float = Field(..., description="Average rating")
    rating_count: int = Field(..., description="Number of ratings")
    total_bookings: int = Field(..., description="Completed bookings")
    owner_name: Optional[str] = Field(None, description="Owner name")


class HostSummary(BaseModel):
    upcoming_events: int
    pending_responses: int
    total_spent: Decimal
    active_messages: int


class HostDashboard(BaseModel):
    """Schema for the host dashboard."""
    summary: HostSummary
    recent_bookings: List[BookingResponse]
    booking_status_breakdown: StatusBreakdown
    spending_by_month: List[MonthlyFigure]


class OwnerSummary(BaseModel):
    """Figures shared by the provider and center dashboards."""
    total_bookings: int
    pending_bookings: int
    total_earnings: Decimal = Field(..., description="Completed and paid bookings")
    pending_earnings: Decimal = Field(..., description="Confirmed upcoming bookings")
    average_rating: float = Field(..., description="Rating weighted by review count")
    total_reviews: int
    response_rate: float = Field(..., description="Share of received bookings that were accepted, in percent")


class ProviderDashboard(BaseModel):
    """Schema for the service provider dashboard."""
    summary: OwnerSummary
    service_providers: List[ListingSummary]
    upcoming_bookings: List[BookingResponse]
    recent_reviews: List[ReviewResponse]
    booking_status_breakdown: StatusBreakdown
    earnings_by_month: List[MonthlyFigure]


class EventTypeCount(BaseModel):
    event_type: Optional[str]
    count: int


class CenterDashboard(BaseModel):
    """Schema for the event center owner dashboard."""
    summary: OwnerSummary
    event_centers: List[ListingSummary]
    upcoming_bookings: List[BookingResponse]
    recent_reviews: List[ReviewResponse]
    booking_status_breakdown: StatusBreakdown
    revenue_by_month: List[MonthlyFigure]
    bookings_by_event_type: List[EventTypeCount]


class AdminSummary(BaseModel):
    total_users: int
    total_providers: int
    total_centers: int
    total_bookings: int
    completed_bookings: int
    total_revenue: Decimal
    pending_cac_verifications: int
    pending_provider_listings: int
    pending_center_listings: int


class PlatformStats(BaseModel):
    average_booking_value: Decimal
    total_reviews: int
    reported_reviews: int


class AdminDashboard(BaseModel):
    """Schema for the platform admin dashboard."""
    summary: AdminSummary
    platform_stats: PlatformStats
    user_growth: List[MonthlyFigure]
    booking_growth: List[MonthlyFigure]
    top_providers: List[ListingSummary]
    top_centers: List[ListingSummary]
    recent_bookings: List[BookingResponse]


class AnalyticsResponse(BaseModel):
    """Role-aware booking statistics for an optional date window."""
    role: str = Field(..., description="Role the figures were computed for")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    stats: Dict[str, Decimal] = Field(default_factory=dict, description="Named figures")
