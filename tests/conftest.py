"""
Shared fixtures: an in-memory SQLite database, an HTTP client bound to the
app and factories for users and listings.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from event_marketplace.database import get_db
from event_marketplace.main import app
from event_marketplace.models import (
    Base,
    Booking,
    BookingStatus,
    BookingType,
    CenterType,
    EventCenter,
    ServiceCategory,
    ServiceProvider,
    User,
    UserRole,
    VerificationStatus,
)
from event_marketplace.models.booking_history import BookingStatusHistory
from event_marketplace.utils.auth import create_access_token
from event_marketplace.utils.dates import utcnow

TEST_PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Session for service tests; services only flush, so nothing is committed."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client whose requests each get their own committed session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def factory(role: UserRole = UserRole.HOST, cac_verified: bool = False, **overrides) -> User:
        counter["n"] += 1
        user = User(
            email=overrides.pop("email", f"{role.value}{counter['n']}@example.com"),
            name=overrides.pop("name", f"{role.value.title()} {counter['n']}"),
            role=role,
            cac_verified=cac_verified,
            **overrides,
        )
        user.set_password(TEST_PASSWORD)
        db_session.add(user)
        await db_session.flush()
        return user

    return factory


@pytest.fixture
def make_provider_listing(db_session):
    async def factory(owner: User, verified: bool = True, **overrides) -> ServiceProvider:
        listing = ServiceProvider(
            owner_id=owner.id,
            service_name=overrides.pop("service_name", "Tasty Bites Catering"),
            description=overrides.pop("description", "Jollof, small chops and full buffet service"),
            service_category=overrides.pop("service_category", ServiceCategory.CATERING),
            price_amount=overrides.pop("price_amount", Decimal("150000.00")),
            verification_status=VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING,
            service_areas=[],
            **overrides,
        )
        db_session.add(listing)
        await db_session.flush()
        return listing

    return factory


@pytest.fixture
def make_center_listing(db_session):
    async def factory(owner: User, verified: bool = True, **overrides) -> EventCenter:
        center = EventCenter(
            owner_id=owner.id,
            center_name=overrides.pop("center_name", "Grand Royale Hall"),
            description=overrides.pop("description", "Air conditioned banquet hall on the island"),
            center_type=overrides.pop("center_type", CenterType.BANQUET_HALL),
            address="12 Admiralty Way",
            city=overrides.pop("city", "Lagos"),
            state=overrides.pop("state", "Lagos"),
            capacity_minimum=overrides.pop("capacity_minimum", 50),
            capacity_maximum=overrides.pop("capacity_maximum", 500),
            daily_rate=overrides.pop("daily_rate", Decimal("800000.00")),
            verification_status=VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING,
            facility_entries=[],
            date_ranges=[],
            **overrides,
        )
        db_session.add(center)
        await db_session.flush()
        return center

    return factory


@pytest.fixture
def make_booking(db_session):
    """Insert a booking directly, bypassing availability checks."""

    async def factory(
        customer: User,
        listing,
        status: BookingStatus = BookingStatus.PENDING,
        days_ahead: int = 14,
        total_amount: Decimal = Decimal("100000.00"),
    ) -> Booking:
        is_provider = isinstance(listing, ServiceProvider)
        booking = Booking(
            booking_type=BookingType.PROVIDER if is_provider else BookingType.CENTER,
            customer_id=customer.id,
            provider_id=listing.owner_id,
            service_provider_id=listing.id if is_provider else None,
            event_center_id=None if is_provider else listing.id,
            event_name="Ada's Wedding",
            event_date=utcnow() + timedelta(days=days_ahead),
            start_time="10:00",
            end_time="18:00",
            total_amount=total_amount,
            status=status,
            status_history=[BookingStatusHistory(status=status, reason="Seeded", changed_by_id=customer.id)],
        )
        db_session.add(booking)
        await db_session.flush()
        result = await db_session.execute(
            select(Booking).where(Booking.id == booking.id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    return factory


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
