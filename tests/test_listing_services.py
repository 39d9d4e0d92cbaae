"""
Tests for service provider and event center listings: creation rules,
availability, owner date blocking and admin verification.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from event_marketplace.models import (
    AvailabilityStatus,
    CenterDateRange,
    CenterType,
    DateRangeKind,
    Notification,
    NotificationType,
    ServiceCategory,
    UserRole,
    VerificationStatus,
)
from event_marketplace.middleware.error_handler import status_code_for
from event_marketplace.schemas.center import (
    BlockDatesRequest,
    CenterCapacity,
    CenterCreateRequest,
    CenterLocation,
)
from event_marketplace.schemas.provider import (
    ListingVerifyRequest,
    ProviderCreateRequest,
    ProviderFilters,
    ProviderUpdateRequest,
    ServiceAreaInput,
)
from event_marketplace.services.center_service import CenterService
from event_marketplace.services.provider_service import ProviderService
from event_marketplace.utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    CacNotVerifiedError,
)


def provider_request(**overrides):
    payload = {
        "service_name": "Lens & Light",
        "description": "Event photography across Lagos and Abuja",
        "service_category": ServiceCategory.PHOTOGRAPHY,
        "price_amount": Decimal("250000.00"),
        "unavailable_dates": [date(2030, 6, 2), date(2030, 6, 1), date(2030, 6, 2)],
        "service_area": ServiceAreaInput(states=["Lagos", "Lagos", "FCT"], cities=["Ikeja"]),
    }
    payload.update(overrides)
    return ProviderCreateRequest(**payload)


def center_request():
    return CenterCreateRequest(
        center_name="Harbour View Hall",
        description="Waterfront hall for weddings and conferences",
        center_type=CenterType.BANQUET_HALL,
        location=CenterLocation(address="3 Marina Road", city="Lagos", state="Lagos"),
        capacity=CenterCapacity(minimum=50, maximum=400),
    )


async def notification_types(db_session, user):
    result = await db_session.scalars(select(Notification).where(Notification.recipient_id == user.id))
    return [notification.notification_type for notification in result]


class TestProviderListings:
    async def test_create_requires_verified_cac(self, db_session, make_user):
        owner = await make_user(UserRole.PROVIDER)

        with pytest.raises(CacNotVerifiedError) as exc:
            await ProviderService(db_session).create_provider(owner, provider_request())
        assert status_code_for(exc.value) == 403

    async def test_hosts_cannot_create_provider_listings(self, db_session, make_user):
        host = await make_user(cac_verified=True)

        with pytest.raises(AuthorizationError):
            await ProviderService(db_session).create_provider(host, provider_request())

    async def test_create_pending_listing(self, db_session, make_user):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)

        listing = await ProviderService(db_session).create_provider(owner, provider_request())

        assert listing.verification_status == VerificationStatus.PENDING
        assert listing.unavailable_dates == ["2030-06-01", "2030-06-02"]
        assert listing.states == ["Lagos", "FCT"]
        assert listing.cities == ["Ikeja"]

    async def test_unverified_listings_are_not_published(self, db_session, make_user, make_provider_listing):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        live = await make_provider_listing(owner)
        await make_provider_listing(owner, verified=False, service_name="Pending Grills")

        providers, total = await ProviderService(db_session).list_providers(ProviderFilters())

        assert total == 1
        assert [provider.id for provider in providers] == [live.id]

    async def test_only_owner_updates(self, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        stranger = await make_user(UserRole.PROVIDER)

        with pytest.raises(AuthorizationError):
            await ProviderService(db_session).update_provider(
                listing.id, stranger, ProviderUpdateRequest(service_name="Hijacked")
            )

    async def test_delete_deactivates(self, db_session, make_user, make_provider_listing):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)

        listing = await ProviderService(db_session).delete_provider(listing.id, owner)

        assert listing.is_active is False

    async def test_view_counts(self, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        service = ProviderService(db_session)

        await service.view_provider(listing.id)
        listing = await service.view_provider(listing.id)

        assert listing.views == 2


class TestProviderAvailability:
    async def test_marked_day_is_unavailable(self, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(
            await make_user(UserRole.PROVIDER, cac_verified=True), unavailable_dates=["2030-06-01"]
        )
        service = ProviderService(db_session)

        blocked, _ = await service.check_availability(listing.id, date(2030, 6, 1))
        free, _ = await service.check_availability(listing.id, date(2030, 6, 2))

        assert blocked is False
        assert free is True

    async def test_busy_status_blocks_every_day(self, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(
            await make_user(UserRole.PROVIDER, cac_verified=True),
            availability_status=AvailabilityStatus.BUSY,
        )

        is_available, provider = await ProviderService(db_session).check_availability(listing.id, date(2030, 6, 2))

        assert is_available is False
        assert provider.availability_status == AvailabilityStatus.BUSY


class TestCenterListings:
    async def test_create_requires_verified_cac(self, db_session, make_user):
        owner = await make_user(UserRole.CENTER)

        with pytest.raises(CacNotVerifiedError):
            await CenterService(db_session).create_center(owner, center_request())

    async def test_create_pending_listing(self, db_session, make_user):
        owner = await make_user(UserRole.CENTER, cac_verified=True)

        center = await CenterService(db_session).create_center(owner, center_request())

        assert center.verification_status == VerificationStatus.PENDING
        assert (center.capacity_minimum, center.capacity_maximum) == (50, 400)
        assert center.date_ranges == []


class TestCenterAvailability:
    async def test_reasons(self, db_session, make_user, make_center_listing):
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))
        center.date_ranges.append(
            CenterDateRange(
                kind=DateRangeKind.BOOKED, start_date=datetime(2030, 3, 1, 10), end_date=datetime(2030, 3, 1, 23)
            )
        )
        center.date_ranges.append(
            CenterDateRange(
                kind=DateRangeKind.BLOCKED, start_date=datetime(2030, 3, 5), end_date=datetime(2030, 3, 7)
            )
        )
        await db_session.flush()
        service = CenterService(db_session)

        booked = await service.check_availability(center.id, datetime(2030, 3, 1), datetime(2030, 3, 1, 12))
        blocked = await service.check_availability(center.id, datetime(2030, 3, 7), datetime(2030, 3, 8))
        free = await service.check_availability(center.id, datetime(2030, 3, 2), datetime(2030, 3, 4))

        assert booked == (False, "Already booked")
        assert blocked == (False, "Blocked by owner")
        assert free == (True, None)

    async def test_reversed_range_is_rejected(self, db_session, make_user, make_center_listing):
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))

        with pytest.raises(BadRequestError):
            await CenterService(db_session).check_availability(
                center.id, datetime(2030, 3, 8), datetime(2030, 3, 7)
            )


class TestBlockDates:
    async def test_owner_blocks_a_range(self, db_session, make_user, make_center_listing):
        owner = await make_user(UserRole.CENTER, cac_verified=True)
        center = await make_center_listing(owner)
        service = CenterService(db_session)

        await service.block_dates(
            center.id,
            owner,
            BlockDatesRequest(start_date=datetime(2030, 4, 1), end_date=datetime(2030, 4, 3), reason="Renovation"),
        )

        assert [(entry.reason, entry.kind) for entry in center.blocked_dates] == [("Renovation", DateRangeKind.BLOCKED)]
        assert await service.check_availability(center.id, datetime(2030, 4, 2), datetime(2030, 4, 2, 18)) == (
            False,
            "Blocked by owner",
        )

    async def test_only_owner_blocks(self, db_session, make_user, make_center_listing):
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))
        stranger = await make_user(UserRole.CENTER, cac_verified=True)

        with pytest.raises(AuthorizationError):
            await CenterService(db_session).block_dates(
                center.id, stranger, BlockDatesRequest(start_date=datetime(2030, 4, 1), end_date=datetime(2030, 4, 2))
            )

    def test_mixed_timezones_are_compared_in_utc(self):
        request = BlockDatesRequest(
            start_date=datetime(2030, 2, 10, tzinfo=timezone.utc),
            end_date=datetime(2030, 2, 12),
        )

        assert request.start_date == datetime(2030, 2, 10)
        assert request.start_date.tzinfo is None

    def test_reversed_mixed_timezones_fail_validation(self):
        with pytest.raises(ValidationError):
            BlockDatesRequest(
                start_date=datetime(2030, 2, 12, 1, tzinfo=timezone(timedelta(hours=1))),
                end_date=datetime(2030, 2, 11, 23),
            )


class TestVerification:
    async def test_approving_a_provider_notifies_owner(self, db_session, make_user, make_provider_listing):
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        admin = await make_user(UserRole.ADMIN)
        listing = await make_provider_listing(owner, verified=False)

        listing = await ProviderService(db_session).verify_provider(
            listing.id, admin, ListingVerifyRequest(action="approve")
        )

        assert listing.verification_status == VerificationStatus.VERIFIED
        assert await notification_types(db_session, owner) == [NotificationType.LISTING_APPROVED]

    async def test_rejecting_a_center_keeps_the_reason(self, db_session, make_user, make_center_listing):
        owner = await make_user(UserRole.CENTER, cac_verified=True)
        admin = await make_user(UserRole.ADMIN)
        center = await make_center_listing(owner, verified=False)

        center = await CenterService(db_session).verify_center(
            center.id, admin, ListingVerifyRequest(action="reject", reason="Photos missing")
        )

        assert center.verification_status == VerificationStatus.REJECTED
        assert center.rejection_reason == "Photos missing"
        assert await notification_types(db_session, owner) == [NotificationType.LISTING_REJECTED]


class TestListingApi:
    async def test_provider_page_counts_views(self, client, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        await db_session.commit()

        await client.get(f"/api/v1/providers/{listing.id}")
        response = await client.get(f"/api/v1/providers/{listing.id}")

        assert response.status_code == 200
        assert response.json()["views"] == 2

    async def test_provider_availability_endpoint(self, client, db_session, make_user, make_provider_listing):
        listing = await make_provider_listing(
            await make_user(UserRole.PROVIDER, cac_verified=True), unavailable_dates=["2030-06-01"]
        )
        await db_session.commit()

        response = await client.get(f"/api/v1/providers/{listing.id}/availability", params={"date": "2030-06-01"})

        assert response.status_code == 200
        assert response.json() == {"is_available": False, "status": "available", "date": "2030-06-01"}

    async def test_unverified_cac_gets_403(self, client, db_session, make_user, headers_for):
        owner = await make_user(UserRole.PROVIDER)
        await db_session.commit()

        response = await client.post(
            "/api/v1/providers",
            headers=headers_for(owner),
            json={
                "service_name": "DJ Spinz",
                "description": "Afrobeats all night",
                "service_category": "DJ/Entertainment",
            },
        )

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "CAC_NOT_VERIFIED"

    async def test_block_dates_with_mixed_timezones(
        self, client, db_session, make_user, make_center_listing, headers_for
    ):
        owner = await make_user(UserRole.CENTER, cac_verified=True)
        center = await make_center_listing(owner)
        await db_session.commit()

        blocked = await client.post(
            f"/api/v1/centers/{center.id}/block-dates",
            headers=headers_for(owner),
            json={"start_date": "2030-02-10T00:00:00Z", "end_date": "2030-02-12T00:00:00"},
        )
        availability = await client.get(
            f"/api/v1/centers/{center.id}/availability",
            params={"start_date": "2030-02-11T09:00:00", "end_date": "2030-02-11T18:00:00"},
        )

        assert blocked.status_code == 200
        assert blocked.json()["blocked_dates"][0]["start_date"] == "2030-02-10T00:00:00"
        assert availability.json()["reason"] == "Blocked by owner"

    async def test_block_dates_is_owner_only(self, client, db_session, make_user, make_center_listing, headers_for):
        center = await make_center_listing(await make_user(UserRole.CENTER, cac_verified=True))
        stranger = await make_user(UserRole.CENTER, cac_verified=True)
        await db_session.commit()

        response = await client.post(
            f"/api/v1/centers/{center.id}/block-dates",
            headers=headers_for(stranger),
            json={"start_date": "2030-02-10T00:00:00", "end_date": "2030-02-12T00:00:00"},
        )

        assert response.status_code == 403
