"""
Role dashboards and analytics.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole
from ..schemas.dashboard import (
    AdminDashboard,
    AnalyticsResponse,
    CenterDashboard,
    HostDashboard,
    ProviderDashboard,
)
from ..services.dashboard_service import DashboardService
from ..utils.dependencies import get_current_admin_user, get_current_user, require_roles

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/host", response_model=HostDashboard)
async def host_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Upcoming events, pending responses, spending and recent bookings of the caller."""
    return await DashboardService(db).get_host_dashboard(current_user)


@router.get("/provider", response_model=ProviderDashboard)
async def provider_dashboard(
    current_user: User = Depends(require_roles(UserRole.PROVIDER)),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Earnings, ratings and bookings across the caller's service listings."""
    return await DashboardService(db).get_provider_dashboard(current_user)


@router.get("/center", response_model=CenterDashboard)
async def center_dashboard(
    current_user: User = Depends(require_roles(UserRole.CENTER)),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Revenue, ratings and bookings across the caller's event centers."""
    return await DashboardService(db).get_center_dashboard(current_user)


@router.get("/admin", response_model=AdminDashboard)
async def admin_dashboard(
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Platform-wide totals, growth series and pending verifications."""
    return await DashboardService(db).get_admin_dashboard()


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Booking figures for the caller's role over an optional date window."""
    return await DashboardService(db).get_analytics(current_user, start_date, end_date)
