"""
Review endpoints for provider and center listings.
"""

from typing import Any, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.review import ReviewType
from ..models.user import User
from ..schemas.common import PaginationInfo
from ..schemas.review import (
    HelpfulVoteResponse,
    ReportResponse,
    ReviewCreateRequest,
    ReviewFilters,
    ReviewListResponse,
    ReviewReportRequest,
    ReviewResponse,
    ReviewResponseRequest,
)
from ..services.review_service import ReviewService
from ..utils.dependencies import get_current_admin_user, get_current_user, get_optional_user

router = APIRouter(prefix="/reviews", tags=["reviews"])


async def _listing_reviews(
    db: AsyncSession,
    review_type: ReviewType,
    listing_id: UUID,
    rating: Optional[int],
    sort: str,
    page: int,
    limit: int,
) -> ReviewListResponse:
    reviews, total, summary = await ReviewService(db).list_listing_reviews(
        review_type, listing_id, ReviewFilters(rating=rating, sort=sort), page, limit
    )
    return ReviewListResponse(
        reviews=[ReviewResponse.from_review(review) for review in reviews],
        pagination=PaginationInfo.build(total, page, limit),
        summary=summary,
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Review a completed booking.

    Only the booking's customer may review it, and only once.
    """
    review = await ReviewService(db).create_review(current_user, data)
    return ReviewResponse.from_review(review)


@router.get("/providers/{provider_id}/reviews", response_model=ReviewListResponse)
async def list_provider_reviews(
    provider_id: UUID,
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort: Literal["recent", "rating", "helpful"] = Query("recent"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await _listing_reviews(db, ReviewType.PROVIDER, provider_id, rating, sort, page, limit)


@router.get("/centers/{center_id}/reviews", response_model=ReviewListResponse)
async def list_center_reviews(
    center_id: UUID,
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort: Literal["recent", "rating", "helpful"] = Query("recent"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await _listing_reviews(db, ReviewType.CENTER, center_id, rating, sort, page, limit)


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Get a review. Hidden reviews are only visible to admins."""
    review = await ReviewService(db).get_review(review_id, current_user)
    return ReviewResponse.from_review(review)


@router.post("/{review_id}/helpful", response_model=HelpfulVoteResponse)
async def toggle_helpful(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Toggle the caller's helpful vote."""
    review, is_helpful = await ReviewService(db).toggle_helpful(review_id, current_user)
    return HelpfulVoteResponse(review_id=review.id, helpful_votes=review.helpful_votes, is_helpful=is_helpful)


@router.post("/{review_id}/response", response_model=ReviewResponse)
async def respond_to_review(
    review_id: UUID,
    data: ReviewResponseRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Publish the listing owner's response to a review."""
    review = await ReviewService(db).respond(review_id, current_user, data)
    return ReviewResponse.from_review(review)


@router.put("/{review_id}/hide", response_model=ReviewResponse)
async def hide_review(
    review_id: UUID,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    review = await ReviewService(db).set_hidden(review_id, admin, True)
    return ReviewResponse.from_review(review)


@router.put("/{review_id}/unhide", response_model=ReviewResponse)
async def unhide_review(
    review_id: UUID,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    review = await ReviewService(db).set_hidden(review_id, admin, False)
    return ReviewResponse.from_review(review)


@router.post("/{review_id}/report", response_model=ReportResponse)
async def report_review(
    review_id: UUID,
    data: Optional[ReviewReportRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Report a review to the moderators."""
    review = await ReviewService(db).report(review_id, current_user, data.reason if data else None)
    return ReportResponse(review_id=review.id, report_count=review.report_count)
