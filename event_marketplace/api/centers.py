"""
Event center listing endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.event_center import CenterType, EventType, Facility
from ..models.user import User
from ..schemas.center import (
    BlockDatesRequest,
    CenterAvailabilityResponse,
    CenterCreateRequest,
    CenterFilters,
    CenterListResponse,
    CenterResponse,
    CenterUpdateRequest,
)
from ..schemas.common import MessageResponse, PaginationInfo
from ..schemas.provider import ListingVerifyRequest
from ..services.center_service import CenterService
from ..utils.dependencies import get_current_admin_user, get_current_user

router = APIRouter(prefix="/centers", tags=["centers"])


@router.get("", response_model=CenterListResponse)
async def list_centers(
    center_type: Optional[CenterType] = Query(None),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_capacity: Optional[int] = Query(None, ge=1),
    max_capacity: Optional[int] = Query(None, ge=1),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    facilities: List[Facility] = Query([]),
    event_type: Optional[EventType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["created_at", "rating", "price", "capacity", "views", "bookings"] = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.listing_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Browse published event centers."""
    filters = CenterFilters(
        center_type=center_type,
        state=state,
        city=city,
        min_price=min_price,
        max_price=max_price,
        min_capacity=min_capacity,
        max_capacity=max_capacity,
        min_rating=min_rating,
        facilities=facilities,
        event_type=event_type,
        search=search,
        sort_by=sort_by,
        order=order,
    )
    centers, total = await CenterService(db).list_centers(filters, page, limit)
    return CenterListResponse(
        centers=[CenterResponse.model_validate(center) for center in centers],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.post("", response_model=CenterResponse, status_code=status.HTTP_201_CREATED)
async def create_center(
    data: CenterCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Create an event center listing.

    Requires the center role and a verified CAC.
    """
    center = await CenterService(db).create_center(current_user, data)
    return CenterResponse.model_validate(center)


@router.get("/{center_id}", response_model=CenterResponse)
async def get_center(
    center_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> Any:
    center = await CenterService(db).view_center(center_id)
    return CenterResponse.model_validate(center)


@router.put("/{center_id}", response_model=CenterResponse)
async def update_center(
    center_id: UUID,
    data: CenterUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    center = await CenterService(db).update_center(center_id, current_user, data)
    return CenterResponse.model_validate(center)


@router.delete("/{center_id}", response_model=MessageResponse)
async def delete_center(
    center_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await CenterService(db).delete_center(center_id, current_user)
    return MessageResponse(message="Event center deleted successfully")


@router.get("/{center_id}/availability", response_model=CenterAvailabilityResponse)
async def check_center_availability(
    center_id: UUID,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Check a date range against the center's booked and blocked dates.

    Ranges that touch count as overlapping.
    """
    is_available, reason = await CenterService(db).check_availability(center_id, start_date, end_date)
    return CenterAvailabilityResponse(
        is_available=is_available,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
    )


@router.post("/{center_id}/block-dates", response_model=CenterResponse)
async def block_dates(
    center_id: UUID,
    data: BlockDatesRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Block a date range (owner only)."""
    center = await CenterService(db).block_dates(center_id, current_user, data)
    return CenterResponse.model_validate(center)


@router.put("/{center_id}/verify", response_model=CenterResponse)
async def verify_center(
    center_id: UUID,
    decision: ListingVerifyRequest,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Approve or reject a listing (admin only)."""
    center = await CenterService(db).verify_center(center_id, admin, decision)
    return CenterResponse.model_validate(center)
