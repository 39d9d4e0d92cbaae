"""
Pydantic schemas for reviews.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import PaginationInfo
from .provider import MediaItem
from ..models.review import ReviewType


class RatingsInput(BaseModel):
    """Rating breakdown; sub-ratings default to the overall rating."""

    overall: int = Field(..., ge=1, le=5)
    quality: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    professionalism: Optional[int] = Field(None, ge=1, le=5)
    value_for_money: Optional[int] = Field(None, ge=1, le=5)


class ReviewCreateRequest(BaseModel):
    booking_id: UUID
    ratings: RatingsInput
    title: Optional[str] = Field(None, max_length=100)
    comment: str = Field(..., min_length=10, max_length=1000)
    images: List[MediaItem] = []
    would_recommend: bool = True


class ReviewResponseRequest(BaseModel):
    text: str = Field(..., min_length=10, max_length=500)


class ReviewReportRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReviewFilters(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    sort: Literal["recent", "rating", "helpful"] = "recent"


class RatingsResponse(BaseModel):
    overall: int
    quality: int
    communication: int
    professionalism: int
    value_for_money: int


class ReviewerSummary(BaseModel):
    id: UUID
    name: str

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: UUID
    review_type: ReviewType
    booking_id: UUID
    reviewer_id: UUID
    reviewer: Optional[ReviewerSummary] = None
    service_provider_id: Optional[UUID]
    event_center_id: Optional[UUID]
    provider_id: UUID
    ratings: RatingsResponse
    title: Optional[str]
    comment: str
    images: List[Dict[str, Any]]
    would_recommend: bool
    response_text: Optional[str]
    responded_by_id: Optional[UUID]
    responded_at: Optional[datetime]
    helpful_votes: int
    is_verified: bool
    is_hidden: bool
    report_count: int
    created_at: datetime

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        return cls(
            id=review.id,
            review_type=review.review_type,
            booking_id=review.booking_id,
            reviewer_id=review.reviewer_id,
            reviewer=ReviewerSummary.model_validate(review.reviewer) if review.reviewer else None,
            service_provider_id=review.service_provider_id,
            event_center_id=review.event_center_id,
            provider_id=review.provider_id,
            ratings=RatingsResponse(
                overall=review.rating_overall,
                quality=review.rating_quality,
                communication=review.rating_communication,
                professionalism=review.rating_professionalism,
                value_for_money=review.rating_value_for_money,
            ),
            title=review.title,
            comment=review.comment,
            images=review.images or [],
            would_recommend=review.would_recommend,
            response_text=review.response_text,
            responded_by_id=review.responded_by_id,
            responded_at=review.responded_at,
            helpful_votes=review.helpful_votes,
            is_verified=review.is_verified,
            is_hidden=review.is_hidden,
            report_count=review.report_count,
            created_at=review.created_at,
        )


class ReviewSummary(BaseModel):
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[int, int]


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    pagination: PaginationInfo
    summary: ReviewSummary


class HelpfulVoteResponse(BaseModel):
    review_id: UUID
    helpful_votes: int
    is_helpful: bool


class ReportResponse(BaseModel):
    review_id: UUID
    report_count: int
