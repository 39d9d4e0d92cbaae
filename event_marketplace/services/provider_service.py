"""
Service provider listing service.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..models.service_provider import (
    AreaType,
    AvailabilityStatus,
    ServiceArea,
    ServiceProvider,
    VerificationStatus,
)
from ..models.user import User, UserRole
from ..schemas.provider import (
    ListingVerifyRequest,
    ProviderCreateRequest,
    ProviderFilters,
    ProviderUpdateRequest,
    ServiceAreaInput,
)
from ..utils.exceptions import (
    AuthorizationError,
    CacNotVerifiedError,
    ServiceProviderNotFoundError,
)
from ..utils.logging_config import log_business_event
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": ServiceProvider.created_at,
    "rating": ServiceProvider.rating_average,
    "price": ServiceProvider.price_amount,
    "views": ServiceProvider.views,
    "bookings": ServiceProvider.total_bookings,
}


def build_service_areas(area: ServiceAreaInput) -> List[ServiceArea]:
    areas = [ServiceArea(area_type=AreaType.STATE, name=state) for state in dict.fromkeys(area.states)]
    areas.extend(ServiceArea(area_type=AreaType.CITY, name=city) for city in dict.fromkeys(area.cities))
    return areas


def published_provider_conditions() -> list:
    return [
        ServiceProvider.is_active.is_(True),
        ServiceProvider.verification_status == VerificationStatus.VERIFIED,
    ]


def provider_area_condition(area_type: AreaType, name: str):
    return ServiceProvider.service_areas.any(
        (ServiceArea.area_type == area_type) & (ServiceArea.name == name)
    )


class ProviderService:
    """Service for managing service provider listings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_providers(
        self,
        filters: ProviderFilters,
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[ServiceProvider], int]:
        """
        List published service providers.

        Args:
            filters: Category, location, price, rating and text filters
            page: Page number, starting at 1
            limit: Page size

        Returns:
            Tuple of (providers on the page, total matching)
        """
        conditions = published_provider_conditions()

        if filters.category is not None:
            conditions.append(ServiceProvider.service_category == filters.category)
        if filters.state:
            conditions.append(provider_area_condition(AreaType.STATE, filters.state))
        if filters.city:
            conditions.append(provider_area_condition(AreaType.CITY, filters.city))
        if filters.min_price is not None:
            conditions.append(ServiceProvider.price_amount >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(ServiceProvider.price_amount <= filters.max_price)
        if filters.min_rating is not None:
            conditions.append(ServiceProvider.rating_average >= filters.min_rating)
        if filters.availability is not None:
            conditions.append(ServiceProvider.availability_status == filters.availability)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    ServiceProvider.service_name.ilike(pattern),
                    ServiceProvider.description.ilike(pattern),
                )
            )

        total = await self.session.scalar(select(func.count(ServiceProvider.id)).where(*conditions))

        sort_column = SORT_COLUMNS[filters.sort_by]
        order = sort_column.asc() if filters.order == "asc" else sort_column.desc()
        result = await self.session.execute(
            select(ServiceProvider)
            .where(*conditions)
            .order_by(order, ServiceProvider.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_provider(self, provider_id: UUID) -> ServiceProvider:
        provider = await self.session.get(ServiceProvider, provider_id)
        if provider is None:
            raise ServiceProviderNotFoundError(provider_id)
        return provider

    async def view_provider(self, provider_id: UUID) -> ServiceProvider:
        """Get a provider for its public page and count the view."""
        provider = await self.get_provider(provider_id)
        provider.views = (provider.views or 0) + 1
        await self.session.flush()
        return provider

    async def create_provider(self, owner: User, data: ProviderCreateRequest) -> ServiceProvider:
        """
        Create a listing pending admin verification.

        Raises:
            AuthorizationError: If the user is not a service provider
            CacNotVerifiedError: If the user's CAC is not verified
        """
        if owner.role != UserRole.PROVIDER:
            raise AuthorizationError("Only service providers can create provider listings")
        if not owner.cac_verified:
            raise CacNotVerifiedError()

        provider = ServiceProvider(
            owner_id=owner.id,
            service_name=data.service_name,
            description=data.description,
            service_category=data.service_category,
            pricing_type=data.pricing_type,
            price_amount=data.price_amount,
            currency=data.currency.upper(),
            packages=[package.model_dump(mode="json") for package in data.packages],
            availability_status=data.availability_status,
            unavailable_dates=sorted({day.isoformat() for day in data.unavailable_dates}),
            nationwide=data.service_area.nationwide,
            service_areas=build_service_areas(data.service_area),
            images=[image.model_dump() for image in data.images],
            portfolio=[item.model_dump() for item in data.portfolio],
            verification_status=VerificationStatus.PENDING,
            **data.terms.model_dump(),
        )
        self.session.add(provider)
        await self.session.flush()

        log_business_event(
            "provider_listing_created",
            {"service_provider_id": str(provider.id), "category": provider.service_category.value},
            user_id=str(owner.id),
        )
        return provider

    async def update_provider(self, provider_id: UUID, actor: User, data: ProviderUpdateRequest) -> ServiceProvider:
        provider = await self.get_provider(provider_id)
        if provider.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Not authorized to update this listing")

        for field in (
            "service_name",
            "description",
            "service_category",
            "pricing_type",
            "price_amount",
            "availability_status",
        ):
            value = getattr(data, field)
            if value is not None:
                setattr(provider, field, value)
        if data.currency is not None:
            provider.currency = data.currency.upper()
        if data.packages is not None:
            provider.packages = [package.model_dump(mode="json") for package in data.packages]
        if data.unavailable_dates is not None:
            provider.unavailable_dates = sorted({day.isoformat() for day in data.unavailable_dates})
        if data.service_area is not None:
            provider.nationwide = data.service_area.nationwide
            provider.service_areas = build_service_areas(data.service_area)
        if data.images is not None:
            provider.images = [image.model_dump() for image in data.images]
        if data.portfolio is not None:
            provider.portfolio = [item.model_dump() for item in data.portfolio]
        if data.terms is not None:
            for field, value in data.terms.model_dump().items():
                setattr(provider, field, value)

        await self.session.flush()
        await CacheInvalidator.invalidate_search_caches()
        return provider

    async def delete_provider(self, provider_id: UUID, actor: User) -> ServiceProvider:
        """Soft delete: the listing is deactivated, bookings keep their reference."""
        provider = await self.get_provider(provider_id)
        if provider.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Not authorized to delete this listing")

        provider.is_active = False
        await self.session.flush()
        await CacheInvalidator.invalidate_search_caches()

        log_business_event("provider_listing_deleted", {"service_provider_id": str(provider.id)}, user_id=str(actor.id))
        return provider

    async def check_availability(self, provider_id: UUID, day: date) -> Tuple[bool, ServiceProvider]:
        """A provider is available when its status allows it and the day is not marked unavailable."""
        provider = await self.get_provider(provider_id)
        is_available = (
            provider.availability_status == AvailabilityStatus.AVAILABLE
            and day not in provider.unavailable_days
        )
        return is_available, provider

    async def verify_provider(
        self,
        provider_id: UUID,
        admin: User,
        decision: ListingVerifyRequest,
        notifications: Optional[NotificationService] = None,
    ) -> ServiceProvider:
        provider = await self.get_provider(provider_id)
        notifications = notifications or NotificationService(self.session)

        if decision.action == "approve":
            provider.verification_status = VerificationStatus.VERIFIED
            provider.rejection_reason = None
            await self.session.flush()
            await notifications.notify_listing_approved(provider.owner_id, service_provider_id=provider.id)
        else:
            provider.verification_status = VerificationStatus.REJECTED
            provider.rejection_reason = decision.reason
            await self.session.flush()
            await notifications.notify_listing_rejected(
                provider.owner_id, decision.reason, service_provider_id=provider.id
            )

        await CacheInvalidator.invalidate_search_caches()
        log_business_event(
            "provider_listing_reviewed",
            {"service_provider_id": str(provider.id), "decision": decision.action},
            user_id=str(admin.id),
        )
        return provider
