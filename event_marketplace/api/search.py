"""
Marketplace search endpoints.
"""

from decimal import Decimal
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..schemas.search import FilterOptions, SearchFilters, SearchResponse, SuggestionsResponse
from ..services.search_service import SearchService

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
    q: Optional[str] = Query(None, max_length=100),
    type: Optional[Literal["all", "provider", "center"]] = Query(None),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    rating: Optional[float] = Query(None, ge=0, le=5),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    category: Optional[str] = Query(None),
    center_type: Optional[str] = Query(None),
    min_capacity: Optional[int] = Query(None, ge=1),
    max_capacity: Optional[int] = Query(None, ge=1),
    facilities: List[str] = Query([]),
    sort_by: Literal["created_at", "rating", "price", "views"] = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.listing_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Search providers and centers.

    Either ``q`` or ``type`` is required. With a single type the results are
    fully paginated; otherwise the first results of each type are returned
    with per-type counts.
    """
    filters = SearchFilters(
        q=q,
        type=type,
        state=state,
        city=city,
        rating=rating,
        min_price=min_price,
        max_price=max_price,
        category=category,
        center_type=center_type,
        min_capacity=min_capacity,
        max_capacity=max_capacity,
        facilities=facilities,
        sort_by=sort_by,
        order=order,
    )
    return await SearchService(db).search(filters, page, limit)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    q: Optional[str] = Query(None, max_length=100),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Autocomplete suggestions; queries shorter than two characters return nothing."""
    return SuggestionsResponse(suggestions=await SearchService(db).suggestions(q, limit))


@router.get("/filters", response_model=FilterOptions)
async def filter_options(db: AsyncSession = Depends(get_db)) -> Any:
    return await SearchService(db).filter_options()
