"""Tests for unified search, suggestions and filter options."""

from decimal import Decimal

import pytest

from event_marketplace.models import CenterFacility, CenterType, Facility, ServiceCategory, UserRole
from event_marketplace.schemas.search import SearchFilters
from event_marketplace.services.search_service import SearchService
from event_marketplace.utils.exceptions import BadRequestError


@pytest.fixture
async def catalogue(make_user, make_provider_listing, make_center_listing):
    """Two published providers, one pending provider and two published centers."""
    provider_owner = await make_user(UserRole.PROVIDER, cac_verified=True)
    center_owner = await make_user(UserRole.CENTER, cac_verified=True)
    await make_provider_listing(provider_owner, price_amount=Decimal("150000"))
    await make_provider_listing(
        provider_owner,
        service_name="Flash Studios",
        description="Wedding photography and drone coverage",
        service_category=ServiceCategory.PHOTOGRAPHY,
        price_amount=Decimal("300000"),
    )
    await make_provider_listing(provider_owner, service_name="Pending Grills", verified=False)
    await make_center_listing(center_owner)
    garden = await make_center_listing(
        center_owner,
        center_name="Lekki Gardens",
        center_type=CenterType.GARDEN_PARK,
        capacity_minimum=20,
        capacity_maximum=150,
        daily_rate=Decimal("350000"),
        city="Lekki",
    )
    garden.facility_entries.append(CenterFacility(facility=Facility.PARKING))


class TestSearch:
    async def test_query_or_type_required(self, db_session):
        with pytest.raises(BadRequestError, match="required"):
            await SearchService(db_session).search(SearchFilters())

    async def test_unified_search_counts_each_type(self, db_session, catalogue):
        response = await SearchService(db_session).search(SearchFilters(type="all"))

        assert response.pagination.counts.providers == 2
        assert response.pagination.counts.centers == 2
        assert response.pagination.total == 4
        assert "Pending Grills" not in [p.service_name for p in response.results.providers]

    async def test_query_matches_names_and_descriptions(self, db_session, catalogue):
        response = await SearchService(db_session).search(SearchFilters(q="wedding"))

        assert [p.service_name for p in response.results.providers] == ["Flash Studios"]
        assert response.search_query == "wedding"

    async def test_single_type_is_paginated(self, db_session, catalogue):
        response = await SearchService(db_session).search(
            SearchFilters(type="provider", sort_by="price", order="asc"), page=1, limit=1
        )

        assert response.pagination.total == 2
        assert response.pagination.pages == 2
        assert [p.service_name for p in response.results.providers] == ["Tasty Bites Catering"]
        assert response.results.centers == []

    async def test_center_filters(self, db_session, catalogue):
        response = await SearchService(db_session).search(
            SearchFilters(type="center", max_capacity=100, facilities=["Parking"])
        )

        assert [c.center_name for c in response.results.centers] == ["Lekki Gardens"]

    async def test_invalid_category_is_a_bad_request(self, db_session, catalogue):
        with pytest.raises(BadRequestError, match="Invalid category") as exc:
            await SearchService(db_session).search(SearchFilters(type="provider", category="juggling"))
        assert exc.value.__suppress_context__


class TestSuggestions:
    async def test_short_queries_return_nothing(self, db_session, catalogue):
        assert await SearchService(db_session).suggestions("a") == []

    async def test_suggestions_match_listing_names(self, db_session, catalogue):
        suggestions = await SearchService(db_session).suggestions("l")
        assert suggestions == []

        suggestions = await SearchService(db_session).suggestions("lek")

        assert [(s.text, s.type) for s in suggestions] == [("Lekki Gardens", "center")]
        assert suggestions[0].location == "Lekki"


async def test_filter_options_only_cover_published_listings(db_session, catalogue):
    options = await SearchService(db_session).filter_options()

    assert options.categories == ["Catering", "Photography"]
    assert options.facilities == ["Parking"]
    assert options.price_ranges.providers.min == Decimal("150000")
    assert options.price_ranges.centers.max == Decimal("800000")
