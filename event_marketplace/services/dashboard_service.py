"""
Dashboard service computing the per-role overview figures and analytics.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.booking import Booking, BookingStatus, BookingType, PaymentStatus
from ..models.conversation import ConversationParticipant
from ..models.event_center import EventCenter
from ..models.review import Review, ReviewType
from ..models.service_provider import ServiceProvider, VerificationStatus
from ..models.user import User, UserRole
from ..schemas.booking import BookingResponse
from ..schemas.dashboard import (
    AdminDashboard,
    AdminSummary,
    AnalyticsResponse,
    CenterDashboard,
    EventTypeCount,
    HostDashboard,
    HostSummary,
    ListingSummary,
    MonthlyFigure,
    OwnerSummary,
    PlatformStats,
    ProviderDashboard,
    StatusBreakdown,
)
from ..schemas.review import ReviewResponse
from ..utils.dates import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

SERIES_MONTHS = 6
PAID_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.PARTIAL)
ZERO = Decimal("0")


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


class DashboardService:
    """Service for dashboard figures."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    async def get_host_dashboard(self, user: User) -> HostDashboard:
        """
        Build the host dashboard.

        Args:
            user: The host

        Returns:
            Upcoming events, pending responses, total spent, unread messages,
            recent bookings, a status breakdown and monthly spending
        """
        now = utcnow()
        mine = Booking.customer_id == user.id

        upcoming = await self._count_bookings(
            mine,
            Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
            Booking.event_date >= now,
        )
        pending = await self._count_bookings(mine, Booking.status == BookingStatus.PENDING)
        total_spent = await self._sum_bookings(
            mine,
            Booking.status == BookingStatus.COMPLETED,
            Booking.payment_status.in_(PAID_STATUSES),
        )
        active_messages = await self.session.scalar(
            select(func.coalesce(func.sum(ConversationParticipant.unread_count), 0)).where(
                ConversationParticipant.user_id == user.id
            )
        )

        recent = await self._bookings(
            [mine], order_by=Booking.created_at.desc(), limit=5
        )
        return HostDashboard(
            summary=HostSummary(
                upcoming_events=upcoming,
                pending_responses=pending,
                total_spent=total_spent,
                active_messages=int(active_messages or 0),
            ),
            recent_bookings=[BookingResponse.model_validate(booking) for booking in recent],
            booking_status_breakdown=await self._status_breakdown(mine),
            spending_by_month=await self._monthly_bookings(mine, Booking.status == BookingStatus.COMPLETED),
        )

    async def get_provider_dashboard(self, user: User) -> ProviderDashboard:
        result = await self.session.execute(
            select(ServiceProvider)
            .where(ServiceProvider.owner_id == user.id, ServiceProvider.is_active.is_(True))
            .order_by(ServiceProvider.created_at.desc())
        )
        listings = list(result.scalars().all())
        received = [Booking.provider_id == user.id, Booking.booking_type == BookingType.PROVIDER]

        return ProviderDashboard(
            summary=await self._owner_summary(listings, received),
            service_providers=[
                self._listing_summary(listing, listing.service_name, user.name) for listing in listings
            ],
            upcoming_bookings=await self._upcoming(received),
            recent_reviews=await self._recent_reviews(user, ReviewType.PROVIDER),
            booking_status_breakdown=await self._status_breakdown(*received),
            earnings_by_month=await self._monthly_bookings(
                *received, Booking.status == BookingStatus.COMPLETED
            ),
        )

    async def get_center_dashboard(self, user: User) -> CenterDashboard:
        result = await self.session.execute(
            select(EventCenter)
            .where(EventCenter.owner_id == user.id, EventCenter.is_active.is_(True))
            .order_by(EventCenter.created_at.desc())
        )
        listings = list(result.scalars().all())
        received = [Booking.provider_id == user.id, Booking.booking_type == BookingType.CENTER]

        event_type_rows = await self.session.execute(
            select(Booking.event_type, func.count(Booking.id).label("count"))
            .where(*received)
            .group_by(Booking.event_type)
            .order_by(func.count(Booking.id).desc())
        )

        return CenterDashboard(
            summary=await self._owner_summary(listings, received),
            event_centers=[
                self._listing_summary(listing, listing.center_name, user.name) for listing in listings
            ],
            upcoming_bookings=await self._upcoming(received),
            recent_reviews=await self._recent_reviews(user, ReviewType.CENTER),
            booking_status_breakdown=await self._status_breakdown(*received),
            revenue_by_month=await self._monthly_bookings(
                *received, Booking.status == BookingStatus.COMPLETED
            ),
            bookings_by_event_type=[
                EventTypeCount(event_type=event_type, count=count) for event_type, count in event_type_rows.all()
            ],
        )

    async def get_admin_dashboard(self) -> AdminDashboard:
        """Platform wide figures for administrators."""
        total_users = await self._count(User.id, User.is_active.is_(True))
        total_providers = await self._count(ServiceProvider.id, ServiceProvider.is_active.is_(True))
        total_centers = await self._count(EventCenter.id, EventCenter.is_active.is_(True))
        total_bookings = await self._count_bookings()
        completed = await self._count_bookings(Booking.status == BookingStatus.COMPLETED)

        paid = (Booking.status == BookingStatus.COMPLETED, Booking.payment_status == PaymentStatus.COMPLETED)
        revenue = await self._sum_bookings(*paid)
        average_value = await self.session.scalar(select(func.avg(Booking.total_amount)).where(*paid))

        summary = AdminSummary(
            total_users=total_users,
            total_providers=total_providers,
            total_centers=total_centers,
            total_bookings=total_bookings,
            completed_bookings=completed,
            total_revenue=revenue,
            pending_cac_verifications=await self._count(
                User.id, User.cac_number.is_not(None), User.cac_verified.is_(False)
            ),
            pending_provider_listings=await self._count(
                ServiceProvider.id, ServiceProvider.verification_status == VerificationStatus.PENDING
            ),
            pending_center_listings=await self._count(
                EventCenter.id, EventCenter.verification_status == VerificationStatus.PENDING
            ),
        )
        stats = PlatformStats(
            average_booking_value=_money(average_value).quantize(Decimal("0.01")),
            total_reviews=await self._count(Review.id, Review.is_hidden.is_(False)),
            reported_reviews=await self._count(
                Review.id, Review.report_count >= self.settings.review_report_threshold
            ),
        )

        return AdminDashboard(
            summary=summary,
            platform_stats=stats,
            user_growth=await self._monthly_counts(User.created_at, User.id),
            booking_growth=await self._monthly_bookings(),
            top_providers=await self._top_listings(ServiceProvider, ServiceProvider.service_name),
            top_centers=await self._top_listings(EventCenter, EventCenter.center_name),
            recent_bookings=[
                BookingResponse.model_validate(booking)
                for booking in await self._bookings([], order_by=Booking.created_at.desc(), limit=10)
            ],
        )

    async def get_analytics(
        self,
        user: User,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AnalyticsResponse:
        """
        Booking statistics for the user's role over an optional created-at window.
        """
        window = []
        if start_date is not None:
            window.append(Booking.created_at >= to_naive_utc(start_date))
        if end_date is not None:
            window.append(Booking.created_at <= to_naive_utc(end_date))

        completed_paid = (Booking.status == BookingStatus.COMPLETED, Booking.payment_status == PaymentStatus.COMPLETED)
        stats: Dict[str, Decimal] = {}

        if user.role == UserRole.PROVIDER:
            scope = [Booking.provider_id == user.id, Booking.booking_type == BookingType.PROVIDER, *window]
            stats["total_bookings"] = Decimal(await self._count_bookings(*scope))
            stats["confirmed_bookings"] = Decimal(
                await self._count_bookings(*scope, Booking.status == BookingStatus.CONFIRMED)
            )
            stats["completed_bookings"] = Decimal(
                await self._count_bookings(*scope, Booking.status == BookingStatus.COMPLETED)
            )
            stats["cancelled_bookings"] = Decimal(
                await self._count_bookings(*scope, Booking.status == BookingStatus.CANCELLED)
            )
            stats["total_earnings"] = await self._sum_bookings(*scope, *completed_paid)
        elif user.role == UserRole.CENTER:
            scope = [Booking.provider_id == user.id, Booking.booking_type == BookingType.CENTER, *window]
            stats["total_bookings"] = Decimal(await self._count_bookings(*scope))
            stats["confirmed_bookings"] = Decimal(
                await self._count_bookings(*scope, Booking.status == BookingStatus.CONFIRMED)
            )
            stats["completed_bookings"] = Decimal(
                await self._count_bookings(*scope, Booking.status == BookingStatus.COMPLETED)
            )
            stats["total_revenue"] = await self._sum_bookings(*scope, *completed_paid)
        elif user.role == UserRole.ADMIN:
            stats["total_bookings"] = Decimal(await self._count_bookings(*window))
            stats["total_revenue"] = await self._sum_bookings(*window, *completed_paid)
            stats["completed_bookings"] = Decimal(
                await self._count_bookings(*window, Booking.status == BookingStatus.COMPLETED)
            )
        else:
            scope = [Booking.customer_id == user.id, *window]
            stats["total_bookings"] = Decimal(await self._count_bookings(*scope))
            stats["upcoming_bookings"] = Decimal(
                await self._count_bookings(
                    *scope,
                    Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
                    Booking.event_date >= utcnow(),
                )
            )
            stats["total_spent"] = await self._sum_bookings(
                *scope, Booking.status == BookingStatus.COMPLETED, Booking.payment_status.in_(PAID_STATUSES)
            )

        return AnalyticsResponse(role=user.role.value, start_date=start_date, end_date=end_date, stats=stats)

    # Query helpers

    async def _count(self, column, *conditions) -> int:
        return int(await self.session.scalar(select(func.count(column)).where(*conditions)) or 0)

    async def _count_bookings(self, *conditions) -> int:
        return await self._count(Booking.id, *conditions)

    async def _sum_bookings(self, *conditions) -> Decimal:
        total = await self.session.scalar(
            select(func.coalesce(func.sum(Booking.total_amount), 0)).where(*conditions)
        )
        return _money(total)

    async def _bookings(self, conditions: Sequence, order_by, limit: int) -> List[Booking]:
        result = await self.session.execute(
            select(Booking).where(*conditions).order_by(order_by).limit(limit)
        )
        return list(result.scalars().all())

    async def _upcoming(self, received: Sequence) -> List[BookingResponse]:
        bookings = await self._bookings(
            [
                *received,
                Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
                Booking.event_date >= utcnow(),
            ],
            order_by=Booking.event_date.asc(),
            limit=5,
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    async def _status_breakdown(self, *conditions) -> StatusBreakdown:
        result = await self.session.execute(
            select(Booking.status, func.count(Booking.id)).where(*conditions).group_by(Booking.status)
        )
        return StatusBreakdown(**{status.value: count for status, count in result.all()})

    async def _monthly_bookings(self, *conditions) -> List[MonthlyFigure]:
        """Booking totals and counts per month of creation over the last six months."""
        since = utcnow() - relativedelta(months=SERIES_MONTHS)
        year = extract("year", Booking.created_at)
        month = extract("month", Booking.created_at)
        result = await self.session.execute(
            select(year, month, func.coalesce(func.sum(Booking.total_amount), 0), func.count(Booking.id))
            .where(Booking.created_at >= since, *conditions)
            .group_by(year, month)
            .order_by(year, month)
        )
        return [
            MonthlyFigure(year=int(y), month=int(m), total=_money(total), count=count)
            for y, m, total, count in result.all()
        ]

    async def _monthly_counts(self, created_column, id_column) -> List[MonthlyFigure]:
        since = utcnow() - relativedelta(months=SERIES_MONTHS)
        year = extract("year", created_column)
        month = extract("month", created_column)
        result = await self.session.execute(
            select(year, month, func.count(id_column))
            .where(created_column >= since)
            .group_by(year, month)
            .order_by(year, month)
        )
        return [MonthlyFigure(year=int(y), month=int(m), count=count) for y, m, count in result.all()]

    async def _owner_summary(self, listings: Sequence, received: Sequence) -> OwnerSummary:
        total = await self._count_bookings(*received)
        pending = await self._count_bookings(*received, Booking.status == BookingStatus.PENDING)
        confirmed = await self._count_bookings(*received, Booking.status == BookingStatus.CONFIRMED)
        completed = await self._count_bookings(*received, Booking.status == BookingStatus.COMPLETED)

        earnings = await self._sum_bookings(
            *received, Booking.status == BookingStatus.COMPLETED, Booking.payment_status == PaymentStatus.COMPLETED
        )
        pending_earnings = await self._sum_bookings(
            *received, Booking.status == BookingStatus.CONFIRMED, Booking.event_date >= utcnow()
        )

        total_reviews = sum(listing.rating_count for listing in listings)
        weighted = sum(listing.rating_average * listing.rating_count for listing in listings)
        average_rating = round(weighted / total_reviews, 1) if total_reviews else 0.0

        answered = pending + confirmed + completed
        response_rate = round((confirmed + completed) / answered * 100, 1) if answered else 0.0

        return OwnerSummary(
            total_bookings=total,
            pending_bookings=pending,
            total_earnings=earnings,
            pending_earnings=pending_earnings,
            average_rating=average_rating,
            total_reviews=total_reviews,
            response_rate=response_rate,
        )

    async def _recent_reviews(self, user: User, review_type: ReviewType) -> List[ReviewResponse]:
        result = await self.session.execute(
            select(Review)
            .where(
                Review.provider_id == user.id,
                Review.review_type == review_type,
                Review.is_hidden.is_(False),
            )
            .order_by(Review.created_at.desc())
            .limit(5)
        )
        return [ReviewResponse.from_review(review) for review in result.scalars().all()]

    async def _top_listings(self, model, name_column) -> List[ListingSummary]:
        result = await self.session.execute(
            select(model, User.name)
            .join(User, User.id == model.owner_id)
            .where(model.is_active.is_(True), model.verification_status == VerificationStatus.VERIFIED)
            .order_by(model.rating_average.desc(), model.total_bookings.desc())
            .limit(5)
        )
        return [
            self._listing_summary(listing, getattr(listing, name_column.key), owner_name)
            for listing, owner_name in result.all()
        ]

    @staticmethod
    def _listing_summary(listing, name: str, owner_name: Optional[str]) -> ListingSummary:
        return ListingSummary(
            id=listing.id,
            name=name,
            rating_average=listing.rating_average,
            rating_count=listing.rating_count,
            total_bookings=listing.total_bookings,
            owner_name=owner_name,
        )
