"""
Error handling for the Event Marketplace API.

Service code raises ``MarketplaceError`` subclasses; they are turned into the
``{"error": ..., "error_id": ..., "timestamp": ...}`` envelope here, either by
the registered exception handler or by the middleware for anything that
escapes the routing layer.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ErrorCode,
    ExternalServiceError,
    MarketplaceError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE = {
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CAC_NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.LISTING_UNAVAILABLE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.DATE_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATUS_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_BOOKING_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ESCROW_STATE_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RATE_LIMIT_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.EMAIL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: MarketplaceError) -> int:
    """Map a marketplace error to its HTTP status code."""
    return STATUS_BY_ERROR_CODE.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(exc: MarketplaceError, error_id: str, extra: Dict[str, Any] = None) -> JSONResponse:
    """Build the JSON error envelope for a marketplace error."""
    content = {
        "error": exc.to_dict(),
        "error_id": error_id,
        "timestamp": _timestamp(),
    }
    if extra:
        content.update(extra)

    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=status_code_for(exc), content=content, headers=headers)


async def marketplace_exception_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Exception handler registered on the application for service errors."""
    error_id = str(uuid4())
    if isinstance(exc, (ValidationError, BadRequestError, NotFoundError, AuthenticationError, AuthorizationError)):
        logger.info(
            f"Client error [{error_id}]: {exc.message}",
            extra={"error_id": error_id, "error_code": exc.error_code.value, "path": request.url.path},
        )
    else:
        logger.warning(
            f"Request failed [{error_id}]: {exc.message}",
            extra={"error_id": error_id, "error_code": exc.error_code.value, "path": request.url.path},
        )
    return error_response(exc, error_id)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch errors that escape the routers and format them consistently."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        error_id = str(uuid4())
        try:
            return await call_next(request)
        except Exception as exc:
            return await self._handle_exception(request, exc, error_id)

    async def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        await self._log_error(request, exc, error_id)

        if isinstance(exc, MarketplaceError):
            return error_response(exc, error_id)
        elif isinstance(exc, PydanticValidationError):
            return self._handle_validation_error(exc, error_id)
        elif isinstance(exc, IntegrityError):
            return self._handle_integrity_error(exc, error_id)
        elif isinstance(exc, (OperationalError, SQLTimeoutError)):
            return self._handle_database_error(exc, error_id)
        else:
            return self._handle_unexpected_error(exc, error_id)

    def _handle_validation_error(self, exc: PydanticValidationError, error_id: str) -> JSONResponse:
        field_errors: Dict[str, list] = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors.setdefault(field_path, []).append(error["msg"])

        return error_response(ValidationError("Request validation failed", field_errors=field_errors), error_id)

    def _handle_integrity_error(self, exc: IntegrityError, error_id: str) -> JSONResponse:
        """Database constraint violations, typically duplicate e-mails or double reviews."""
        error_message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()

        if "unique" in error_message:
            message, constraint_type = "A record with this information already exists", "unique"
        elif "foreign key" in error_message:
            message, constraint_type = "Referenced resource does not exist", "foreign_key"
        elif "not null" in error_message:
            message, constraint_type = "Required field is missing", "not_null"
        else:
            message, constraint_type = "Data integrity constraint violation", "unknown"

        error = MarketplaceError(
            message,
            error_code=ErrorCode.CONFLICT,
            details={"constraint_type": constraint_type},
        )
        return error_response(error, error_id)

    def _handle_database_error(self, exc: Exception, error_id: str) -> JSONResponse:
        error = ExternalServiceError(
            "database",
            "Database service temporarily unavailable",
            details={"error_type": type(exc).__name__},
            retry_after=30,
        )
        return error_response(error, error_id)

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        error = MarketplaceError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None,
        )
        extra = None
        if self.debug:
            extra = {"debug": {"exception": str(exc), "traceback": traceback.format_exc()}}
        return error_response(error, error_id, extra)

    async def _log_error(self, request: Request, exc: Exception, error_id: str) -> None:
        request_info = {
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }

        if isinstance(exc, MarketplaceError):
            level = logging.WARNING if status_code_for(exc) < 500 else logging.ERROR
            logger.log(
                level,
                f"Marketplace error [{error_id}]: {exc.message}",
                extra={
                    "error_id": error_id,
                    "error_code": exc.error_code.value,
                    "request": request_info,
                    "details": exc.details,
                },
            )
        else:
            logger.error(
                f"Unexpected error [{error_id}]: {exc}",
                extra={
                    "error_id": error_id,
                    "error_type": type(exc).__name__,
                    "request": request_info,
                    "traceback": traceback.format_exc(),
                },
            )
