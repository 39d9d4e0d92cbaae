"""
Review service: creation for completed bookings, listing, votes, owner
responses and moderation.
"""

import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.event_center import EventCenter
from ..models.review import Review, ReviewType
from ..models.service_provider import ServiceProvider
from ..models.user import User
from ..schemas.review import (
    ReviewCreateRequest,
    ReviewFilters,
    ReviewResponseRequest,
    ReviewSummary,
)
from ..utils.dates import utcnow
from ..utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    BookingNotFoundError,
    ConflictError,
    EventCenterNotFoundError,
    NotFoundError,
    ServiceProviderNotFoundError,
)
from ..utils.logging_config import log_business_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "recent": (Review.created_at.desc(),),
    "rating": (Review.rating_overall.desc(), Review.created_at.desc()),
    "helpful": (Review.helpful_votes.desc(), Review.created_at.desc()),
}


class ReviewService:
    """Service for listing reviews and their moderation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.notifications = NotificationService(session)

    async def create_review(self, reviewer: User, data: ReviewCreateRequest) -> Review:
        """
        Review a completed booking.

        Args:
            reviewer: The booking's customer
            data: Ratings and comment

        Returns:
            The created review

        Raises:
            AuthorizationError: If the reviewer is not the booking's customer
            BadRequestError: If the booking is not completed
            ConflictError: If the booking was already reviewed
        """
        booking = await self.session.get(Booking, data.booking_id)
        if booking is None:
            raise BookingNotFoundError(data.booking_id)
        if booking.customer_id != reviewer.id:
            raise AuthorizationError("You can only review your own bookings")
        if booking.status != BookingStatus.COMPLETED:
            raise BadRequestError("You can only review completed bookings")

        existing = await self.session.scalar(
            select(Review.id).where(Review.booking_id == booking.id, Review.reviewer_id == reviewer.id)
        )
        if booking.reviewed or existing is not None:
            raise ConflictError("You have already reviewed this booking")

        ratings = data.ratings
        review = Review(
            review_type=ReviewType.PROVIDER if booking.booking_type == BookingType.PROVIDER else ReviewType.CENTER,
            reviewer_id=reviewer.id,
            reviewer=reviewer,
            booking_id=booking.id,
            service_provider_id=booking.service_provider_id,
            event_center_id=booking.event_center_id,
            provider_id=booking.provider_id,
            rating_overall=ratings.overall,
            rating_quality=ratings.quality or ratings.overall,
            rating_communication=ratings.communication or ratings.overall,
            rating_professionalism=ratings.professionalism or ratings.overall,
            rating_value_for_money=ratings.value_for_money or ratings.overall,
            title=data.title,
            comment=data.comment,
            images=[image.model_dump() for image in data.images],
            would_recommend=data.would_recommend,
            is_verified=True,
            helpful_by=[],
        )
        self.session.add(review)
        booking.reviewed = True
        await self.session.flush()

        await self._recompute_ratings(review)
        await self.notifications.notify_review_received(review)

        log_business_event(
            "review_created",
            {"review_id": str(review.id), "booking_id": str(booking.id), "rating": review.rating_overall},
            user_id=str(reviewer.id),
        )
        return review

    async def list_listing_reviews(
        self,
        review_type: ReviewType,
        listing_id: UUID,
        filters: ReviewFilters,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Review], int, ReviewSummary]:
        """
        List the visible reviews of a provider or center.

        Returns:
            Tuple of (reviews on the page, total matching, rating summary)
        """
        if review_type == ReviewType.PROVIDER:
            if await self.session.get(ServiceProvider, listing_id) is None:
                raise ServiceProviderNotFoundError(listing_id)
            listing_column = Review.service_provider_id
        else:
            if await self.session.get(EventCenter, listing_id) is None:
                raise EventCenterNotFoundError(listing_id)
            listing_column = Review.event_center_id

        visible = [listing_column == listing_id, Review.is_hidden.is_(False)]
        conditions = list(visible)
        if filters.rating is not None:
            conditions.append(Review.rating_overall == filters.rating)

        total = await self.session.scalar(select(func.count(Review.id)).where(*conditions))
        result = await self.session.execute(
            select(Review)
            .where(*conditions)
            .order_by(*SORT_ORDERS[filters.sort], Review.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        summary = await self._summarize(visible)
        return list(result.scalars().all()), total or 0, summary

    async def get_review(self, review_id: UUID, actor: Optional[User] = None) -> Review:
        review = await self._get(review_id)
        if review.is_hidden and not (actor and actor.is_admin):
            raise NotFoundError("Review not found", "review", str(review_id))
        return review

    async def toggle_helpful(self, review_id: UUID, user: User) -> Tuple[Review, bool]:
        """
        Add or remove the user's helpful vote.

        Returns:
            Tuple of (review, whether the user's vote is now counted)
        """
        review = await self.get_review(review_id, user)
        voters = list(review.helpful_by or [])
        voter = str(user.id)

        if voter in voters:
            voters.remove(voter)
            review.helpful_votes = max(0, review.helpful_votes - 1)
            is_helpful = False
        else:
            voters.append(voter)
            review.helpful_votes += 1
            is_helpful = True

        review.helpful_by = voters
        await self.session.flush()
        return review, is_helpful

    async def respond(self, review_id: UUID, actor: User, data: ReviewResponseRequest) -> Review:
        """Attach the listing owner's public response; only one response is allowed."""
        review = await self.get_review(review_id, actor)
        if review.provider_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Only the listing owner can respond to this review")
        if review.response_text:
            raise ConflictError("This review already has a response")

        review.response_text = data.text
        review.responded_by_id = actor.id
        review.responded_at = utcnow()
        await self.session.flush()
        return review

    async def set_hidden(self, review_id: UUID, admin: User, hidden: bool) -> Review:
        review = await self._get(review_id)
        review.is_hidden = hidden
        await self.session.flush()
        await self._recompute_ratings(review)

        log_business_event(
            "review_hidden" if hidden else "review_unhidden",
            {"review_id": str(review.id)},
            user_id=str(admin.id),
        )
        return review

    async def report(self, review_id: UUID, user: User, reason: Optional[str] = None) -> Review:
        review = await self.get_review(review_id, user)
        review.report_count += 1
        await self.session.flush()

        if review.report_count == self.settings.review_report_threshold:
            await self.notifications.notify_admins(
                "Review Reported",
                f"A review has been reported {review.report_count} times and needs moderation",
                related_review_id=review.id,
                extra={"reason": reason} if reason else None,
            )
        logger.info(f"Review {review.id} reported by user {user.id}")
        return review

    # Internal helpers

    async def _get(self, review_id: UUID) -> Review:
        review = await self.session.get(Review, review_id)
        if review is None:
            raise NotFoundError("Review not found", "review", str(review_id))
        return review

    async def _summarize(self, conditions: list) -> ReviewSummary:
        result = await self.session.execute(
            select(Review.rating_overall, func.count(Review.id))
            .where(*conditions)
            .group_by(Review.rating_overall)
        )
        distribution: Dict[int, int] = {star: 0 for star in range(5, 0, -1)}
        for rating, count in result.all():
            distribution[rating] = count

        total = sum(distribution.values())
        weighted = sum(star * count for star, count in distribution.items())
        average = round(weighted / total, 1) if total else 0.0
        return ReviewSummary(average_rating=average, total_reviews=total, rating_distribution=distribution)

    async def _rating_of(self, *conditions) -> Tuple[float, int]:
        average, count = (
            await self.session.execute(
                select(func.avg(Review.rating_overall), func.count(Review.id))
                .where(Review.is_hidden.is_(False), *conditions)
            )
        ).one()
        return (round(float(average), 1) if average is not None else 0.0), count

    async def _recompute_ratings(self, review: Review) -> None:
        """Refresh the listing rating and the owner's profile rating from visible reviews."""
        if review.review_type == ReviewType.PROVIDER:
            listing = await self.session.get(ServiceProvider, review.service_provider_id)
            average, count = await self._rating_of(Review.service_provider_id == review.service_provider_id)
        else:
            listing = await self.session.get(EventCenter, review.event_center_id)
            average, count = await self._rating_of(Review.event_center_id == review.event_center_id)

        if listing is not None:
            listing.rating_average = average
            listing.rating_count = count

        if review.review_type == ReviewType.PROVIDER:
            owner = await self.session.get(User, review.provider_id)
            if owner is not None:
                owner_average, owner_count = await self._rating_of(
                    Review.provider_id == review.provider_id,
                    Review.review_type == ReviewType.PROVIDER,
                )
                profile = dict(owner.provider_profile or {})
                profile["rating"] = owner_average
                profile["review_count"] = owner_count
                owner.provider_profile = profile

        await self.session.flush()
