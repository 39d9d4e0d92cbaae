"""Tests for reviews: eligibility, rating aggregation, responses and moderation."""

import pytest
from sqlalchemy import select

from event_marketplace.models import BookingStatus, Notification, ReviewType, UserRole
from event_marketplace.schemas.review import (
    RatingsInput,
    ReviewCreateRequest,
    ReviewFilters,
    ReviewResponseRequest,
)
from event_marketplace.services.review_service import ReviewService
from event_marketplace.utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
)


def review_request(booking_id, overall=5, comment="Food was excellent and on time"):
    return ReviewCreateRequest(booking_id=booking_id, ratings=RatingsInput(overall=overall), comment=comment)


@pytest.fixture
def completed_booking(make_user, make_provider_listing, make_booking):
    async def factory(owner=None, listing=None):
        host = await make_user()
        owner = owner or await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = listing or await make_provider_listing(owner)
        booking = await make_booking(host, listing, status=BookingStatus.COMPLETED)
        return host, owner, listing, booking

    return factory


class TestCreateReview:
    async def test_review_updates_listing_and_owner_ratings(self, db_session, completed_booking):
        host, owner, listing, booking = await completed_booking()
        service = ReviewService(db_session)

        review = await service.create_review(host, review_request(booking.id, overall=4))
        _, _, _, second = await completed_booking(owner=owner, listing=listing)
        await service.create_review(second.customer, review_request(second.id, overall=5))

        assert review.review_type == ReviewType.PROVIDER
        assert review.rating_quality == 4
        assert booking.reviewed is True
        assert listing.rating_average == 4.5
        assert listing.rating_count == 2
        assert owner.provider_profile["rating"] == 4.5
        assert owner.provider_profile["review_count"] == 2

    async def test_pending_booking_cannot_be_reviewed(self, db_session, make_user, make_provider_listing, make_booking):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing, status=BookingStatus.CONFIRMED)

        with pytest.raises(BadRequestError):
            await ReviewService(db_session).create_review(host, review_request(booking.id))

    async def test_only_the_customer_reviews(self, db_session, completed_booking):
        _, owner, _, booking = await completed_booking()

        with pytest.raises(AuthorizationError):
            await ReviewService(db_session).create_review(owner, review_request(booking.id))

    async def test_one_review_per_booking(self, db_session, completed_booking):
        host, _, _, booking = await completed_booking()
        service = ReviewService(db_session)
        await service.create_review(host, review_request(booking.id))

        with pytest.raises(ConflictError):
            await service.create_review(host, review_request(booking.id))


class TestListing:
    async def test_summary_and_rating_filter(self, db_session, completed_booking):
        host, owner, listing, booking = await completed_booking()
        service = ReviewService(db_session)
        await service.create_review(host, review_request(booking.id, overall=3))
        _, _, _, second = await completed_booking(owner=owner, listing=listing)
        await service.create_review(second.customer, review_request(second.id, overall=5))

        reviews, total, summary = await service.list_listing_reviews(
            ReviewType.PROVIDER, listing.id, ReviewFilters(rating=5)
        )

        assert total == 1 and reviews[0].rating_overall == 5
        assert summary.total_reviews == 2
        assert summary.average_rating == 4.0
        assert summary.rating_distribution[3] == 1

    async def test_hidden_reviews_drop_out_of_ratings(self, db_session, make_user, completed_booking):
        host, _, listing, booking = await completed_booking()
        admin = await make_user(UserRole.ADMIN)
        service = ReviewService(db_session)
        review = await service.create_review(host, review_request(booking.id, overall=1))

        await service.set_hidden(review.id, admin, True)

        assert listing.rating_count == 0
        assert listing.rating_average == 0.0
        with pytest.raises(NotFoundError):
            await service.get_review(review.id, host)
        assert (await service.get_review(review.id, admin)).is_hidden


class TestInteractions:
    async def test_helpful_vote_toggles(self, db_session, make_user, completed_booking):
        host, _, _, booking = await completed_booking()
        voter = await make_user()
        service = ReviewService(db_session)
        review = await service.create_review(host, review_request(booking.id))

        review, is_helpful = await service.toggle_helpful(review.id, voter)
        assert is_helpful and review.helpful_votes == 1

        review, is_helpful = await service.toggle_helpful(review.id, voter)
        assert not is_helpful and review.helpful_votes == 0

    async def test_owner_responds_once(self, db_session, completed_booking):
        host, owner, _, booking = await completed_booking()
        service = ReviewService(db_session)
        review = await service.create_review(host, review_request(booking.id))

        review = await service.respond(review.id, owner, ReviewResponseRequest(text="Thank you, it was a pleasure!"))

        assert review.responded_by_id == owner.id
        with pytest.raises(ConflictError):
            await service.respond(review.id, owner, ReviewResponseRequest(text="Thanks again for the review"))

    async def test_customer_cannot_respond(self, db_session, completed_booking):
        host, _, _, booking = await completed_booking()
        service = ReviewService(db_session)
        review = await service.create_review(host, review_request(booking.id))

        with pytest.raises(AuthorizationError):
            await service.respond(review.id, host, ReviewResponseRequest(text="Replying to myself here"))

    async def test_admins_alerted_at_report_threshold(self, db_session, make_user, completed_booking):
        host, _, _, booking = await completed_booking()
        admin = await make_user(UserRole.ADMIN)
        service = ReviewService(db_session)
        review = await service.create_review(host, review_request(booking.id))

        for _ in range(3):
            review = await service.report(review.id, await make_user(), "Offensive")

        alerts = list(await db_session.scalars(select(Notification).where(Notification.recipient_id == admin.id)))
        assert review.report_count == 3
        assert [n.title for n in alerts] == ["Review Reported"]
