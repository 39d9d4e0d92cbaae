"""
Common schemas for API responses and error handling.
"""

import math
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "DATE_UNAVAILABLE",
                        "message": "Event center is not available on the selected date",
                        "details": {"reason": "Already booked"},
                        "suggestions": [
                            "Pick another date",
                            "Check the availability calendar"
                        ]
                    },
                    "error_id": "5f0c2b7e-4d1c-4a57-9d1e-2c9b6f1e7a10",
                    "timestamp": "2025-01-01T12:00:00Z"
                }
            ]
        }
    }


class MessageResponse(BaseModel):
    """Schema for simple success responses."""

    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional response data")


class PaginationInfo(BaseModel):
    """Schema for pagination information."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    pages: int = Field(..., description="Total number of pages")
    limit: int = Field(..., description="Number of items per page")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationInfo":
        pages = math.ceil(total / limit) if limit else 0
        return cls(
            total=total,
            page=page,
            pages=pages,
            limit=limit,
            has_next=page < pages,
            has_prev=page > 1,
        )


class UserSummary(BaseModel):
    """Compact user representation embedded in other resources."""

    id: UUID
    name: str
    email: str
    phone: Optional[str] = None

    model_config = {"from_attributes": True}

