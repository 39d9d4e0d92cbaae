"""Middleware components for the Event Marketplace API."""

from .error_handler import ErrorHandlerMiddleware, marketplace_exception_handler
from .validation import ValidationMiddleware
from .rate_limiter import RateLimiterMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "marketplace_exception_handler",
    "ValidationMiddleware",
    "RateLimiterMiddleware",
    "LoggingMiddleware",
]
