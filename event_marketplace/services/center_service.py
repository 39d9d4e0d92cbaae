"""
Event center listing service with date-range availability.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..models.event_center import (
    CenterDateRange,
    CenterFacility,
    DateRangeKind,
    EventCenter,
    EventType,
    Facility,
)
from ..models.service_provider import VerificationStatus
from ..models.user import User, UserRole
from ..schemas.center import (
    BlockDatesRequest,
    CenterCreateRequest,
    CenterFilters,
    CenterUpdateRequest,
)
from ..schemas.provider import ListingVerifyRequest
from ..utils.dates import find_overlap, to_naive_utc
from ..utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    CacNotVerifiedError,
    EventCenterNotFoundError,
)
from ..utils.logging_config import log_business_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ALREADY_BOOKED = "Already booked"
BLOCKED_BY_OWNER = "Blocked by owner"

SORT_COLUMNS = {
    "created_at": EventCenter.created_at,
    "rating": EventCenter.rating_average,
    "price": EventCenter.daily_rate,
    "capacity": EventCenter.capacity_maximum,
    "views": EventCenter.views,
    "bookings": EventCenter.total_bookings,
}


def published_center_conditions() -> list:
    return [
        EventCenter.is_active.is_(True),
        EventCenter.verification_status == VerificationStatus.VERIFIED,
    ]


def facilities_condition(facilities: List[Facility]) -> list:
    """A center must offer every requested facility."""
    return [
        EventCenter.facility_entries.any(CenterFacility.facility == facility)
        for facility in dict.fromkeys(facilities)
    ]


def event_type_condition(event_type: EventType):
    # event_types is a JSON list of strings; match the quoted value in its text form
    return cast(EventCenter.event_types, String).like(f'%"{event_type.value}"%')


def unavailability_reason(center: EventCenter, start: datetime, end: datetime) -> Optional[str]:
    """
    Explain why a center cannot be booked over [start, end].

    Returns:
        ``"Already booked"``, ``"Blocked by owner"`` or None when the range is free
    """
    if find_overlap(start, end, center.ranges_of(DateRangeKind.BOOKED)):
        return ALREADY_BOOKED
    if find_overlap(start, end, center.ranges_of(DateRangeKind.BLOCKED)):
        return BLOCKED_BY_OWNER
    return None


class CenterService:
    """Service for managing event center listings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_centers(
        self,
        filters: CenterFilters,
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[EventCenter], int]:
        conditions = published_center_conditions()

        if filters.center_type is not None:
            conditions.append(EventCenter.center_type == filters.center_type)
        if filters.state:
            conditions.append(EventCenter.state == filters.state)
        if filters.city:
            conditions.append(EventCenter.city == filters.city)
        if filters.min_price is not None:
            conditions.append(EventCenter.daily_rate >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(EventCenter.daily_rate <= filters.max_price)
        if filters.min_capacity is not None:
            conditions.append(EventCenter.capacity_maximum >= filters.min_capacity)
        if filters.max_capacity is not None:
            conditions.append(EventCenter.capacity_minimum <= filters.max_capacity)
        if filters.min_rating is not None:
            conditions.append(EventCenter.rating_average >= filters.min_rating)
        if filters.facilities:
            conditions.extend(facilities_condition(filters.facilities))
        if filters.event_type is not None:
            conditions.append(event_type_condition(filters.event_type))
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    EventCenter.center_name.ilike(pattern),
                    EventCenter.description.ilike(pattern),
                    EventCenter.city.ilike(pattern),
                )
            )

        total = await self.session.scalar(select(func.count(EventCenter.id)).where(*conditions))

        sort_column = SORT_COLUMNS[filters.sort_by]
        order = sort_column.asc() if filters.order == "asc" else sort_column.desc()
        result = await self.session.execute(
            select(EventCenter)
            .where(*conditions)
            .order_by(order, EventCenter.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_center(self, center_id: UUID) -> EventCenter:
        center = await self.session.get(EventCenter, center_id)
        if center is None:
            raise EventCenterNotFoundError(center_id)
        return center

    async def view_center(self, center_id: UUID) -> EventCenter:
        center = await self.get_center(center_id)
        center.views = (center.views or 0) + 1
        await self.session.flush()
        return center

    async def create_center(self, owner: User, data: CenterCreateRequest) -> EventCenter:
        """
        Create a venue listing pending admin verification.

        Raises:
            AuthorizationError: If the user is not a center owner
            CacNotVerifiedError: If the user's CAC is not verified
        """
        if owner.role != UserRole.CENTER:
            raise AuthorizationError("Only event center owners can create center listings")
        if not owner.cac_verified:
            raise CacNotVerifiedError()

        center = EventCenter(
            owner_id=owner.id,
            center_name=data.center_name,
            description=data.description,
            center_type=data.center_type,
            verification_status=VerificationStatus.PENDING,
        )
        self._apply_location(center, data)
        self._apply_details(center, data)
        center.facility_entries = [CenterFacility(facility=facility) for facility in dict.fromkeys(data.facilities)]
        center.date_ranges = []

        self.session.add(center)
        await self.session.flush()

        log_business_event(
            "center_listing_created",
            {"event_center_id": str(center.id), "center_type": center.center_type.value},
            user_id=str(owner.id),
        )
        return center

    async def update_center(self, center_id: UUID, actor: User, data: CenterUpdateRequest) -> EventCenter:
        center = await self.get_center(center_id)
        if center.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Not authorized to update this listing")

        for field in ("center_name", "description", "center_type"):
            value = getattr(data, field)
            if value is not None:
                setattr(center, field, value)
        if data.location is not None:
            self._apply_location(center, data)
        self._apply_details(center, data)
        if data.facilities is not None:
            center.facility_entries = [
                CenterFacility(facility=facility) for facility in dict.fromkeys(data.facilities)
            ]

        await self.session.flush()
        await CacheInvalidator.invalidate_search_caches()
        return center

    async def delete_center(self, center_id: UUID, actor: User) -> EventCenter:
        center = await self.get_center(center_id)
        if center.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Not authorized to delete this listing")

        center.is_active = False
        await self.session.flush()
        await CacheInvalidator.invalidate_search_caches()

        log_business_event("center_listing_deleted", {"event_center_id": str(center.id)}, user_id=str(actor.id))
        return center

    async def check_availability(
        self,
        center_id: UUID,
        start_date: datetime,
        end_date: datetime,
    ) -> Tuple[bool, Optional[str]]:
        """
        Check whether a center is free over a date range.

        Overlap is inclusive: a range touching a booked or blocked range counts.

        Returns:
            Tuple of (is_available, reason when unavailable)
        """
        start, end = to_naive_utc(start_date), to_naive_utc(end_date)
        if end < start:
            raise BadRequestError("end_date must not be before start_date")

        center = await self.get_center(center_id)
        reason = unavailability_reason(center, start, end)
        return reason is None, reason

    async def block_dates(self, center_id: UUID, actor: User, data: BlockDatesRequest) -> EventCenter:
        """Mark a range unavailable; only the owner may do this."""
        center = await self.get_center(center_id)
        if center.owner_id != actor.id:
            raise AuthorizationError("Only the center owner can block dates")

        center.date_ranges.append(
            CenterDateRange(
                kind=DateRangeKind.BLOCKED,
                start_date=to_naive_utc(data.start_date),
                end_date=to_naive_utc(data.end_date),
                reason=data.reason,
            )
        )
        await self.session.flush()

        logger.info(f"Dates blocked for center {center.id}: {data.start_date} - {data.end_date}")
        return center

    async def verify_center(self, center_id: UUID, admin: User, decision: ListingVerifyRequest) -> EventCenter:
        center = await self.get_center(center_id)
        notifications = NotificationService(self.session)

        if decision.action == "approve":
            center.verification_status = VerificationStatus.VERIFIED
            center.rejection_reason = None
            await self.session.flush()
            await notifications.notify_listing_approved(center.owner_id, event_center_id=center.id)
        else:
            center.verification_status = VerificationStatus.REJECTED
            center.rejection_reason = decision.reason
            await self.session.flush()
            await notifications.notify_listing_rejected(center.owner_id, decision.reason, event_center_id=center.id)

        await CacheInvalidator.invalidate_search_caches()
        log_business_event(
            "center_listing_reviewed",
            {"event_center_id": str(center.id), "decision": decision.action},
            user_id=str(admin.id),
        )
        return center

    @staticmethod
    def _apply_location(center: EventCenter, data) -> None:
        location = data.location
        center.address = location.address
        center.city = location.city
        center.state = location.state
        center.country = location.country
        center.latitude = location.latitude
        center.longitude = location.longitude
        center.landmark = location.landmark

    @staticmethod
    def _apply_details(center: EventCenter, data) -> None:
        """Copy the optional sections of a create or update request onto the center."""
        if data.capacity is not None:
            center.capacity_minimum = data.capacity.minimum
            center.capacity_maximum = data.capacity.maximum
        if data.amenities is not None:
            center.amenities = list(data.amenities)
        if data.event_types is not None:
            center.event_types = [event_type.value for event_type in dict.fromkeys(data.event_types)]
        if data.pricing is not None:
            center.pricing_type = data.pricing.pricing_type
            center.hourly_rate = data.pricing.hourly_rate
            center.daily_rate = data.pricing.daily_rate
            center.currency = data.pricing.currency.upper()
            center.packages = [package.model_dump(mode="json") for package in data.pricing.packages]
        if data.operating_hours is not None:
            center.operating_hours = dict(data.operating_hours)
        if data.images is not None:
            center.images = [image.model_dump() for image in data.images]
        if data.terms is not None:
            for field, value in data.terms.model_dump().items():
                setattr(center, field, value)
