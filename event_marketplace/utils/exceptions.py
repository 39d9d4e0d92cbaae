"""
Custom exceptions for the Event Marketplace backend.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"

    # Business logic errors
    LISTING_UNAVAILABLE = "LISTING_UNAVAILABLE"
    DATE_UNAVAILABLE = "DATE_UNAVAILABLE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_BOOKING_STATE = "INVALID_BOOKING_STATE"
    CAC_NOT_VERIFIED = "CAC_NOT_VERIFIED"
    ESCROW_STATE_ERROR = "ESCROW_STATE_ERROR"

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    EMAIL_SERVICE_ERROR = "EMAIL_SERVICE_ERROR"


class MarketplaceError(Exception):
    """Base exception class for the marketplace."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(MarketplaceError):
    """Exception raised for request schema validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class BadRequestError(MarketplaceError):
    """Exception raised when a request is well-formed but not acceptable."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.BAD_REQUEST)
        super().__init__(message, **kwargs)


class NotFoundError(MarketplaceError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id: Any, **kwargs):
        super().__init__(
            "User not found",
            resource_type="user",
            resource_id=str(user_id),
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: Any, **kwargs):
        super().__init__(
            "Booking not found",
            resource_type="booking",
            resource_id=str(booking_id),
            suggestions=["Check the booking ID", "View your booking history"],
            **kwargs
        )


class ServiceProviderNotFoundError(NotFoundError):
    """Exception raised when a service provider listing is not found."""

    def __init__(self, provider_id: Any, **kwargs):
        super().__init__(
            "Service provider not found",
            resource_type="service_provider",
            resource_id=str(provider_id),
            **kwargs
        )


class EventCenterNotFoundError(NotFoundError):
    """Exception raised when an event center listing is not found."""

    def __init__(self, center_id: Any, **kwargs):
        super().__init__(
            "Event center not found",
            resource_type="event_center",
            resource_id=str(center_id),
            **kwargs
        )


class AuthenticationError(MarketplaceError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class AuthorizationError(MarketplaceError):
    """Exception raised for authorization failures."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            **kwargs
        )


class ConflictError(MarketplaceError):
    """Exception raised when a resource already exists or was already acted on."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.CONFLICT, **kwargs)


class CacNotVerifiedError(AuthorizationError):
    """Exception raised when an unverified business tries to publish a listing."""

    def __init__(self, **kwargs):
        super().__init__(
            "CAC verification is required before creating listings",
            required_permission="cac_verified",
            suggestions=["Submit your CAC number for verification"],
            **kwargs
        )
        self.error_code = ErrorCode.CAC_NOT_VERIFIED


class BusinessLogicError(MarketplaceError):
    """Base exception for business logic violations."""
    pass


class ListingUnavailableError(BusinessLogicError):
    """Exception raised when a listing is inactive or not verified."""

    def __init__(self, listing_label: str, **kwargs):
        super().__init__(
            f"{listing_label} is not available",
            error_code=ErrorCode.LISTING_UNAVAILABLE,
            **kwargs
        )


class DateUnavailableError(BusinessLogicError):
    """Exception raised when a listing is already taken on the requested date."""

    def __init__(self, listing_label: str, reason: Optional[str] = None, **kwargs):
        super().__init__(
            f"{listing_label} is not available on the selected date",
            error_code=ErrorCode.DATE_UNAVAILABLE,
            details={"reason": reason} if reason else None,
            suggestions=["Pick another date", "Check the availability calendar"],
            **kwargs
        )


class InvalidStatusTransitionError(BusinessLogicError):
    """Exception raised for a booking status change outside the transition table."""

    def __init__(self, current_status: str, requested_status: str, **kwargs):
        super().__init__(
            f"Cannot transition from {current_status} to {requested_status}",
            error_code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"current_status": current_status, "requested_status": requested_status},
            **kwargs
        )


class InvalidBookingStateError(BusinessLogicError):
    """Exception raised when booking is in invalid state for operation."""

    def __init__(self, message: str, booking_id: Any = None, current_state: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.INVALID_BOOKING_STATE,
            details={"booking_id": str(booking_id), "current_state": current_state} if booking_id else None,
            **kwargs
        )


class EscrowStateError(BusinessLogicError):
    """Exception raised when an escrow operation does not fit its current state."""

    def __init__(self, message: str, current_state: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.ESCROW_STATE_ERROR,
            details={"current_state": current_state} if current_state else None,
            **kwargs
        )


class RateLimitError(MarketplaceError):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window: int, retry_after: int, **kwargs):
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window} seconds",
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            details={"limit": limit, "window": window},
            retry_after=retry_after,
            suggestions=[f"Wait {retry_after} seconds before retrying"],
            **kwargs
        )


class ExternalServiceError(MarketplaceError):
    """Exception raised for external service failures."""

    def __init__(self, service_name: str, message: str, status_code: Optional[int] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.EXTERNAL_SERVICE_ERROR)
        details = kwargs.pop("details", None) or {}
        details.update({"service_name": service_name, "status_code": status_code})
        super().__init__(
            f"{service_name} service error: {message}",
            details=details,
            suggestions=["Try again later", "Contact support if problem persists"],
            **kwargs
        )


class EmailServiceError(ExternalServiceError):
    """Exception raised for email service failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            "email",
            message,
            error_code=ErrorCode.EMAIL_SERVICE_ERROR,
            **kwargs
        )
