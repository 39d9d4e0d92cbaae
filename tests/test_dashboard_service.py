"""
Tests for the per-role dashboards and analytics.
"""

from decimal import Decimal

import pytest

from event_marketplace.models import UserRole
from event_marketplace.models.booking import BookingStatus, PaymentStatus
from event_marketplace.services.dashboard_service import DashboardService


@pytest.fixture
async def history(db_session, make_user, make_provider_listing, make_booking):
    host = await make_user()
    owner = await make_user(UserRole.PROVIDER, cac_verified=True)
    listing = await make_provider_listing(owner)

    await make_booking(host, listing, BookingStatus.PENDING, days_ahead=14)
    await make_booking(host, listing, BookingStatus.CONFIRMED, days_ahead=20)
    completed = await make_booking(
        host, listing, BookingStatus.COMPLETED, days_ahead=-3, total_amount=Decimal("50000.00")
    )
    completed.payment_status = PaymentStatus.COMPLETED
    await make_booking(host, listing, BookingStatus.CANCELLED, days_ahead=30)
    await db_session.flush()
    return host, owner, listing


class TestHostDashboard:
    async def test_summary_and_breakdown(self, db_session, history):
        host, _, _ = history

        dashboard = await DashboardService(db_session).get_host_dashboard(host)

        assert dashboard.summary.upcoming_events == 2
        assert dashboard.summary.pending_responses == 1
        assert dashboard.summary.total_spent == Decimal("50000.00")
        assert dashboard.summary.active_messages == 0
        assert len(dashboard.recent_bookings) == 4
        breakdown = dashboard.booking_status_breakdown
        assert (breakdown.pending, breakdown.confirmed, breakdown.completed, breakdown.cancelled) == (1, 1, 1, 1)

    async def test_spending_series_counts_completed_only(self, db_session, history):
        host, _, _ = history

        dashboard = await DashboardService(db_session).get_host_dashboard(host)

        assert len(dashboard.spending_by_month) == 1
        assert dashboard.spending_by_month[0].count == 1
        assert dashboard.spending_by_month[0].total == Decimal("50000.00")


class TestProviderDashboard:
    async def test_owner_summary(self, db_session, history):
        _, owner, listing = history

        dashboard = await DashboardService(db_session).get_provider_dashboard(owner)

        summary = dashboard.summary
        assert summary.total_bookings == 4
        assert summary.pending_bookings == 1
        assert summary.total_earnings == Decimal("50000.00")
        assert summary.pending_earnings == Decimal("100000.00")
        assert summary.response_rate == 66.7
        assert summary.average_rating == 0.0
        assert [item.id for item in dashboard.service_providers] == [listing.id]
        assert [booking.status for booking in dashboard.upcoming_bookings] == [
            BookingStatus.PENDING,
            BookingStatus.CONFIRMED,
        ]

    async def test_owner_without_bookings(self, db_session, make_user):
        owner = await make_user(UserRole.PROVIDER)

        dashboard = await DashboardService(db_session).get_provider_dashboard(owner)

        assert dashboard.summary.total_bookings == 0
        assert dashboard.summary.response_rate == 0.0
        assert dashboard.service_providers == []


class TestAdminDashboard:
    async def test_platform_totals(self, db_session, history):
        _, _, listing = history

        dashboard = await DashboardService(db_session).get_admin_dashboard()

        assert dashboard.summary.total_users == 2
        assert dashboard.summary.total_providers == 1
        assert dashboard.summary.total_bookings == 4
        assert dashboard.summary.completed_bookings == 1
        assert dashboard.summary.total_revenue == Decimal("50000.00")
        assert dashboard.platform_stats.average_booking_value == Decimal("50000.00")
        assert [item.id for item in dashboard.top_providers] == [listing.id]
        assert len(dashboard.recent_bookings) == 4


class TestAnalytics:
    async def test_host_figures(self, db_session, history):
        host, _, _ = history

        analytics = await DashboardService(db_session).get_analytics(host)

        assert analytics.role == "host"
        assert analytics.stats["total_bookings"] == 4
        assert analytics.stats["upcoming_bookings"] == 2
        assert analytics.stats["total_spent"] == Decimal("50000.00")

    async def test_provider_figures(self, db_session, history):
        _, owner, _ = history

        analytics = await DashboardService(db_session).get_analytics(owner)

        assert analytics.stats["completed_bookings"] == 1
        assert analytics.stats["cancelled_bookings"] == 1
        assert analytics.stats["total_earnings"] == Decimal("50000.00")
