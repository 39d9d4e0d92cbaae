"""
Unified search across service providers and event centers.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple, Type

from sqlalchemy import String, cast, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheKeyBuilder, CacheTTL, get_cache
from ..models.event_center import CenterFacility, CenterType, EventCenter, Facility
from ..models.service_provider import AreaType, ServiceArea, ServiceCategory, ServiceProvider
from ..schemas.center import CenterResponse
from ..schemas.common import PaginationInfo
from ..schemas.provider import ProviderResponse
from ..schemas.search import (
    FilterOptions,
    PriceRange,
    PriceRanges,
    SearchCounts,
    SearchFilters,
    SearchPagination,
    SearchResponse,
    SearchResults,
    Suggestion,
)
from ..utils.exceptions import BadRequestError
from .center_service import facilities_condition, published_center_conditions
from .provider_service import provider_area_condition, published_provider_conditions

logger = logging.getLogger(__name__)

# Results per type when searching providers and centers together
UNIFIED_RESULTS_PER_TYPE = 6
MIN_SUGGESTION_LENGTH = 2

PROVIDER_SORT = {
    "created_at": ServiceProvider.created_at,
    "rating": ServiceProvider.rating_average,
    "price": ServiceProvider.price_amount,
    "views": ServiceProvider.views,
}
CENTER_SORT = {
    "created_at": EventCenter.created_at,
    "rating": EventCenter.rating_average,
    "price": EventCenter.daily_rate,
    "views": EventCenter.views,
}


def parse_choice(enum_cls: Type[Enum], value: str, label: str) -> Enum:
    """Turn a query string value into an enum member."""
    try:
        return enum_cls(value)
    except ValueError:
        raise BadRequestError(f"Invalid {label}: {value}") from None


class SearchService:
    """Service for marketplace search, suggestions and filter options."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cache = get_cache()

    async def search(self, filters: SearchFilters, page: int = 1, limit: int = 12) -> SearchResponse:
        """
        Search published listings.

        A single ``type`` gets full pagination; otherwise the first results of
        each type are returned together with per-type totals.

        Raises:
            BadRequestError: If neither a query nor a type is given
        """
        if not filters.q and not filters.type:
            raise BadRequestError("Search query or type filter is required")

        providers: List[ServiceProvider] = []
        centers: List[EventCenter] = []
        provider_total = center_total = 0

        if filters.type in (None, "all", "provider"):
            conditions = self._provider_conditions(filters)
            if filters.type == "provider":
                providers, provider_total = await self._run(
                    ServiceProvider, conditions, PROVIDER_SORT, filters, (page - 1) * limit, limit
                )
            else:
                providers, provider_total = await self._run(
                    ServiceProvider, conditions, PROVIDER_SORT, filters, 0, UNIFIED_RESULTS_PER_TYPE
                )

        if filters.type in (None, "all", "center"):
            conditions = self._center_conditions(filters)
            if filters.type == "center":
                centers, center_total = await self._run(
                    EventCenter, conditions, CENTER_SORT, filters, (page - 1) * limit, limit
                )
            else:
                centers, center_total = await self._run(
                    EventCenter, conditions, CENTER_SORT, filters, 0, UNIFIED_RESULTS_PER_TYPE
                )

        base = PaginationInfo.build(provider_total + center_total, page, limit)
        pagination = SearchPagination(
            **base.model_dump(),
            counts=SearchCounts(providers=provider_total, centers=center_total),
        )
        return SearchResponse(
            results=SearchResults(
                providers=[ProviderResponse.model_validate(provider) for provider in providers],
                centers=[CenterResponse.model_validate(center) for center in centers],
            ),
            pagination=pagination,
            search_query=filters.q,
        )

    async def suggestions(self, q: Optional[str], limit: int = 10) -> List[Suggestion]:
        """Name suggestions for autocomplete, split evenly between providers and centers."""
        if not q or len(q) < MIN_SUGGESTION_LENGTH:
            return []

        per_type = max(1, limit // 2)
        pattern = f"%{q}%"

        provider_rows = await self.session.execute(
            select(ServiceProvider.service_name, ServiceProvider.service_category)
            .where(*published_provider_conditions(), ServiceProvider.service_name.ilike(pattern))
            .order_by(ServiceProvider.rating_average.desc())
            .limit(per_type)
        )
        center_rows = await self.session.execute(
            select(EventCenter.center_name, EventCenter.city, EventCenter.center_type)
            .where(*published_center_conditions(), EventCenter.center_name.ilike(pattern))
            .order_by(EventCenter.rating_average.desc())
            .limit(per_type)
        )

        suggestions = [
            Suggestion(text=name, type="provider", category=category.value)
            for name, category in provider_rows.all()
        ]
        suggestions.extend(
            Suggestion(text=name, type="center", location=city, center_type=center_type.value)
            for name, city, center_type in center_rows.all()
        )
        return suggestions

    async def filter_options(self) -> FilterOptions:
        """Distinct filter values over published listings, cached in Redis."""
        cache_key = CacheKeyBuilder.search_filters()
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return FilterOptions.model_validate(cached)

        categories = await self.session.scalars(
            select(distinct(ServiceProvider.service_category)).where(*published_provider_conditions())
        )
        center_types = await self.session.scalars(
            select(distinct(EventCenter.center_type)).where(*published_center_conditions())
        )
        provider_states = await self.session.scalars(
            select(distinct(ServiceArea.name))
            .join(ServiceProvider, ServiceProvider.id == ServiceArea.service_provider_id)
            .where(ServiceArea.area_type == AreaType.STATE, *published_provider_conditions())
        )
        center_states = await self.session.scalars(
            select(distinct(EventCenter.state)).where(*published_center_conditions())
        )
        facilities = await self.session.scalars(
            select(distinct(CenterFacility.facility))
            .join(EventCenter, EventCenter.id == CenterFacility.event_center_id)
            .where(*published_center_conditions())
        )

        options = FilterOptions(
            categories=sorted(category.value for category in categories),
            center_types=sorted(center_type.value for center_type in center_types),
            states=sorted(set(provider_states) | set(center_states)),
            facilities=sorted(facility.value for facility in facilities),
            price_ranges=PriceRanges(
                providers=await self._price_range(ServiceProvider.price_amount, published_provider_conditions()),
                centers=await self._price_range(EventCenter.daily_rate, published_center_conditions()),
            ),
        )
        await self.cache.set(cache_key, options.model_dump(mode="json"), ttl=CacheTTL.SEARCH_FILTERS)
        return options

    # Internal helpers

    @staticmethod
    def _provider_conditions(filters: SearchFilters) -> list:
        conditions = published_provider_conditions()
        if filters.q:
            pattern = f"%{filters.q}%"
            conditions.append(
                or_(
                    ServiceProvider.service_name.ilike(pattern),
                    ServiceProvider.description.ilike(pattern),
                    cast(ServiceProvider.service_category, String).ilike(pattern),
                )
            )
        if filters.category:
            conditions.append(
                ServiceProvider.service_category == parse_choice(ServiceCategory, filters.category, "category")
            )
        if filters.state:
            conditions.append(provider_area_condition(AreaType.STATE, filters.state))
        if filters.city:
            conditions.append(provider_area_condition(AreaType.CITY, filters.city))
        if filters.rating is not None:
            conditions.append(ServiceProvider.rating_average >= filters.rating)
        if filters.min_price is not None:
            conditions.append(ServiceProvider.price_amount >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(ServiceProvider.price_amount <= filters.max_price)
        return conditions

    @staticmethod
    def _center_conditions(filters: SearchFilters) -> list:
        conditions = published_center_conditions()
        if filters.q:
            pattern = f"%{filters.q}%"
            conditions.append(
                or_(
                    EventCenter.center_name.ilike(pattern),
                    EventCenter.description.ilike(pattern),
                    EventCenter.city.ilike(pattern),
                    EventCenter.state.ilike(pattern),
                    cast(EventCenter.center_type, String).ilike(pattern),
                )
            )
        if filters.center_type:
            conditions.append(
                EventCenter.center_type == parse_choice(CenterType, filters.center_type, "center type")
            )
        if filters.state:
            conditions.append(EventCenter.state == filters.state)
        if filters.city:
            conditions.append(EventCenter.city == filters.city)
        if filters.rating is not None:
            conditions.append(EventCenter.rating_average >= filters.rating)
        if filters.min_price is not None:
            conditions.append(EventCenter.daily_rate >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(EventCenter.daily_rate <= filters.max_price)
        if filters.min_capacity is not None:
            conditions.append(EventCenter.capacity_maximum >= filters.min_capacity)
        if filters.max_capacity is not None:
            conditions.append(EventCenter.capacity_minimum <= filters.max_capacity)
        if filters.facilities:
            conditions.extend(
                facilities_condition([parse_choice(Facility, value, "facility") for value in filters.facilities])
            )
        return conditions

    async def _run(self, model, conditions: list, sort_columns: dict, filters: SearchFilters, offset: int, limit: int) -> Tuple[list, int]:
        total = await self.session.scalar(select(func.count(model.id)).where(*conditions))
        sort_column = sort_columns[filters.sort_by]
        order = sort_column.asc() if filters.order == "asc" else sort_column.desc()
        result = await self.session.execute(
            select(model).where(*conditions).order_by(order, model.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def _price_range(self, column, conditions: list) -> PriceRange:
        low, high = (
            await self.session.execute(select(func.min(column), func.max(column)).where(*conditions))
        ).one()
        return PriceRange(min=low or 0, max=high or 0)
