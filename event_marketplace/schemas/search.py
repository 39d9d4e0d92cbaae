"""
Pydantic schemas for unified marketplace search.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .center import CenterResponse
from .common import PaginationInfo
from .provider import ProviderResponse


class SearchFilters(BaseModel):
    """Query parameters accepted by the unified search endpoint."""

    q: Optional[str] = Field(None, max_length=100)
    type: Optional[Literal["all", "provider", "center"]] = None
    state: Optional[str] = None
    city: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    category: Optional[str] = None
    center_type: Optional[str] = None
    min_capacity: Optional[int] = Field(None, ge=1)
    max_capacity: Optional[int] = Field(None, ge=1)
    facilities: List[str] = []
    sort_by: Literal["created_at", "rating", "price", "views"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


class SearchCounts(BaseModel):
    providers: int
    centers: int


class SearchPagination(PaginationInfo):
    counts: SearchCounts


class SearchResults(BaseModel):
    providers: List[ProviderResponse]
    centers: List[CenterResponse]


class SearchResponse(BaseModel):
    results: SearchResults
    pagination: SearchPagination
    search_query: Optional[str] = None


class Suggestion(BaseModel):
    text: str
    type: Literal["provider", "center"]
    category: Optional[str] = None
    location: Optional[str] = None
    center_type: Optional[str] = None


class SuggestionsResponse(BaseModel):
    suggestions: List[Suggestion]


class PriceRange(BaseModel):
    min: Decimal = Decimal("0")
    max: Decimal = Decimal("0")


class PriceRanges(BaseModel):
    providers: PriceRange
    centers: PriceRange


class FilterOptions(BaseModel):
    """Values a client can offer in search filter dropdowns."""

    categories: List[str]
    center_types: List[str]
    states: List[str]
    facilities: List[str]
    price_ranges: PriceRanges
    ratings: List[int] = [1, 2, 3, 4, 5]
