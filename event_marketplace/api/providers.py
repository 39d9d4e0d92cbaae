"""
Service provider listing endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.service_provider import AvailabilityStatus, ServiceCategory
from ..models.user import User
from ..schemas.common import MessageResponse, PaginationInfo
from ..schemas.provider import (
    ListingVerifyRequest,
    ProviderAvailabilityResponse,
    ProviderCreateRequest,
    ProviderFilters,
    ProviderListResponse,
    ProviderResponse,
    ProviderUpdateRequest,
)
from ..services.provider_service import ProviderService
from ..utils.dependencies import get_current_admin_user, get_current_user

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=ProviderListResponse)
async def list_providers(
    category: Optional[ServiceCategory] = Query(None),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    availability: Optional[AvailabilityStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["created_at", "rating", "price", "views", "bookings"] = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.listing_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Browse published service providers.

    Only active listings that passed verification are returned.
    """
    filters = ProviderFilters(
        category=category,
        state=state,
        city=city,
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
        availability=availability,
        search=search,
        sort_by=sort_by,
        order=order,
    )
    providers, total = await ProviderService(db).list_providers(filters, page, limit)
    return ProviderListResponse(
        providers=[ProviderResponse.model_validate(provider) for provider in providers],
        pagination=PaginationInfo.build(total, page, limit),
    )


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
async def create_provider(
    data: ProviderCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Create a service provider listing.

    Requires the provider role and a verified CAC. The listing starts out
    pending verification.
    """
    provider = await ProviderService(db).create_provider(current_user, data)
    return ProviderResponse.model_validate(provider)


@router.get("/{provider_id}", response_model=ProviderResponse)
async def get_provider(
    provider_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Get a provider listing and count the view."""
    provider = await ProviderService(db).view_provider(provider_id)
    return ProviderResponse.model_validate(provider)


@router.put("/{provider_id}", response_model=ProviderResponse)
async def update_provider(
    provider_id: UUID,
    data: ProviderUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Update a listing (owner or admin)."""
    provider = await ProviderService(db).update_provider(provider_id, current_user, data)
    return ProviderResponse.model_validate(provider)


@router.delete("/{provider_id}", response_model=MessageResponse)
async def delete_provider(
    provider_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Deactivate a listing (owner or admin)."""
    await ProviderService(db).delete_provider(provider_id, current_user)
    return MessageResponse(message="Service provider deleted successfully")


@router.get("/{provider_id}/availability", response_model=ProviderAvailabilityResponse)
async def check_provider_availability(
    provider_id: UUID,
    date: date = Query(..., description="Day to check (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Check whether a provider can take a booking on a given day."""
    is_available, provider = await ProviderService(db).check_availability(provider_id, date)
    return ProviderAvailabilityResponse(
        is_available=is_available,
        status=provider.availability_status,
        date=date,
    )


@router.put("/{provider_id}/verify", response_model=ProviderResponse)
async def verify_provider(
    provider_id: UUID,
    decision: ListingVerifyRequest,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Approve or reject a listing (admin only)."""
    provider = await ProviderService(db).verify_provider(provider_id, admin, decision)
    return ProviderResponse.model_validate(provider)
