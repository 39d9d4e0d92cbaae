"""
Request validation middleware.

Rejects oversized bodies, non-JSON payloads and malformed paging parameters
before they reach the routers.
"""

import json
import logging
from typing import List, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..utils.exceptions import ErrorCode, ValidationError

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100
BODY_METHODS = ("POST", "PUT", "PATCH")


class ValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for basic request validation."""

    def __init__(self, app, max_request_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_request_size = max_request_size

    async def dispatch(self, request: Request, call_next):
        if self._content_length(request) > self.max_request_size:
            return JSONResponse(
                status_code=413,
                content={
                    "error": {
                        "error_code": ErrorCode.VALIDATION_ERROR.value,
                        "message": f"Request too large. Maximum size is {self.max_request_size} bytes",
                        "suggestions": ["Reduce request payload size"],
                    }
                },
            )

        if request.method in BODY_METHODS and self._content_length(request) > 0:
            validation_error = self._validate_content_type(request)
            if validation_error:
                return validation_error

            validation_error = await self._validate_json_payload(request)
            if validation_error:
                return validation_error

        validation_error = self._validate_query_parameters(request)
        if validation_error:
            return validation_error

        return await call_next(request)

    @staticmethod
    def _content_length(request: Request) -> int:
        try:
            return int(request.headers.get("content-length", 0))
        except ValueError:
            return 0

    def _validate_content_type(self, request: Request) -> Optional[JSONResponse]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json") or content_type.startswith("multipart/"):
            return None

        error = ValidationError(
            "Invalid content type",
            details={"expected": "application/json", "received": content_type},
            suggestions=["Set Content-Type header to application/json"],
        )
        return JSONResponse(status_code=415, content={"error": error.to_dict()})

    async def _validate_json_payload(self, request: Request) -> Optional[JSONResponse]:
        if not request.headers.get("content-type", "").startswith("application/json"):
            return None

        body = await request.body()
        try:
            json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            error = ValidationError(
                "Invalid JSON payload",
                details={"json_error": str(e)},
                suggestions=["Check JSON syntax"],
            )
            return JSONResponse(status_code=400, content={"error": error.to_dict()})
        return None

    def _validate_query_parameters(self, request: Request) -> Optional[JSONResponse]:
        errors: List[str] = []
        params = request.query_params

        if "page" in params:
            try:
                if int(params["page"]) < 1:
                    errors.append("Parameter 'page' must be at least 1")
            except ValueError:
                errors.append(f"Parameter 'page' must be an integer, got '{params['page']}'")

        if "limit" in params:
            try:
                limit = int(params["limit"])
                if limit < 1:
                    errors.append(f"Parameter 'limit' must be positive, got {limit}")
                elif limit > MAX_PAGE_LIMIT:
                    errors.append(f"Parameter 'limit' cannot exceed {MAX_PAGE_LIMIT}, got {limit}")
            except ValueError:
                errors.append(f"Parameter 'limit' must be an integer, got '{params['limit']}'")

        if "order" in params and params["order"].lower() not in ("asc", "desc"):
            errors.append(f"Parameter 'order' must be 'asc' or 'desc', got '{params['order']}'")

        if not errors:
            return None

        logger.debug(f"Rejected query parameters on {request.url.path}: {errors}")
        error = ValidationError(
            "Invalid query parameters",
            details={"parameter_errors": errors},
            suggestions=["Check parameter values and types"],
        )
        return JSONResponse(status_code=400, content={"error": error.to_dict()})
