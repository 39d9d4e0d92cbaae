"""
FastAPI routes for the booking lifecycle.
"""

import logging
from typing import Any, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.booking import BookingStatus, BookingType
from ..models.user import User
from ..schemas.booking import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingHistoryListResponse,
    BookingHistoryResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdateRequest,
)
from ..schemas.common import PaginationInfo
from ..services.booking_service import BookingService
from ..utils.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Book a service provider or an event center.

    The listing must be published and free on the event date. Center
    bookings block the whole event day; the guest count must fit the
    center's capacity.

    Returns:
        The pending booking
    """
    booking = await BookingService(db).create_booking(current_user, booking_data)
    return BookingResponse.model_validate(booking)


@router.get("/users/{user_id}/bookings", response_model=BookingListResponse)
async def list_user_bookings(
    user_id: UUID,
    role: str = Query("customer", description="customer or provider"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    booking_type: Optional[BookingType] = Query(None),
    sort_by: Literal["created_at", "event_date", "total_amount"] = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    List bookings a user made (``role=customer``) or received (``role=provider``).

    Users see their own bookings; admins see anyone's.
    """
    bookings, total = await BookingService(db).list_user_bookings(
        user_id,
        current_user,
        role=role,
        status=status_filter,
        booking_type=booking_type,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking) for booking in bookings],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Get a booking; only its customer, its provider or an admin may see it."""
    booking = await BookingService(db).get_booking(booking_id, current_user)
    return BookingResponse.model_validate(booking)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    update: BookingStatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Change a booking's status.

    Allowed: pending to confirmed or cancelled, confirmed to completed or
    cancelled. Only the provider or an admin confirms and completes.
    """
    booking = await BookingService(db).update_status(booking_id, current_user, update)
    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    cancel_request: Optional[BookingCancelRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Cancel a booking. A funded escrow is refunded to the customer."""
    reason = cancel_request.reason if cancel_request else None
    booking = await BookingService(db).cancel_booking(booking_id, current_user, reason)
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}/history", response_model=BookingHistoryListResponse)
async def get_booking_history(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Status history of a booking, oldest first."""
    history = await BookingService(db).get_history(booking_id, current_user)
    return BookingHistoryListResponse(
        history=[BookingHistoryResponse.model_validate(entry) for entry in history]
    )
