"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from event_marketplace.config import settings
from event_marketplace.api import api_router
from event_marketplace.database import init_database, close_database
from event_marketplace.middleware import (
    ErrorHandlerMiddleware,
    ValidationMiddleware,
    RateLimiterMiddleware,
    LoggingMiddleware,
    marketplace_exception_handler,
)
from event_marketplace.utils.exceptions import MarketplaceError
from event_marketplace.utils.logging_config import setup_logging

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/event_marketplace.log" if settings.environment == "production" else None,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Event Marketplace API")
    await init_database()
    logger.info("Database initialized successfully")
    yield
    logger.info("Shutting down Event Marketplace API")
    await close_database()
    logger.info("Database connections closed")

app = FastAPI(
    title="Event Marketplace API",
    description="""
    ## Event Marketplace

    Connects event hosts with service providers (caterers, photographers,
    DJs...) and event centers.

    ### Key Features

    * **Listings**: Service providers and event centers, verified by admins after CAC checks
    * **Bookings**: Date availability checks and a pending, confirmed, completed lifecycle
    * **Escrow payments**: Funds are held until the event is done, then released to the provider
    * **Reviews**: Verified reviews of completed bookings with owner responses
    * **Messaging**: Conversations between hosts, providers and support
    * **Notifications**: In-app notifications with per-user preferences
    * **Dashboards**: Role specific dashboards and analytics

    ### Authentication

    Send the access token from `/api/v1/auth/login` as
    `Authorization: Bearer <your_access_token>`.

    ### Error Handling

    ```json
    {
      "error": {
        "error_code": "ERROR_CODE",
        "message": "Human readable error message",
        "details": {},
        "suggestions": []
      },
      "error_id": "uuid",
      "timestamp": "ISO-8601"
    }
    ```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Registration, login and password reset"},
        {"name": "admin", "description": "Admin console login"},
        {"name": "users", "description": "Profiles, CAC verification and account administration"},
        {"name": "providers", "description": "Service provider listings"},
        {"name": "centers", "description": "Event center listings and date availability"},
        {"name": "search", "description": "Search across listings"},
        {"name": "bookings", "description": "Booking lifecycle"},
        {"name": "payments", "description": "Payments and escrow"},
        {"name": "reviews", "description": "Reviews of completed bookings"},
        {"name": "conversations", "description": "Messaging between users"},
        {"name": "notifications", "description": "In-app notifications"},
        {"name": "notification preferences", "description": "Notification channels and quiet times"},
        {"name": "dashboard", "description": "Role dashboards and analytics"},
        {"name": "health", "description": "Service health"},
    ],
    lifespan=lifespan,
)

# Middleware added last runs first

app.add_middleware(
    ValidationMiddleware,
    max_request_size=10 * 1024 * 1024  # 10MB
)

app.add_middleware(
    RateLimiterMiddleware,
    default_limit=settings.default_rate_limit,
    default_window=settings.default_rate_window,
    burst_limit=settings.burst_rate_limit,
    burst_window=settings.burst_rate_window,
    enabled=settings.enable_rate_limiting,
)

app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

app.add_middleware(
    LoggingMiddleware,
    log_requests=settings.enable_request_logging,
    log_responses=settings.enable_request_logging,
    log_request_body=settings.debug,
)

if settings.debug:
    # Credentials cannot be combined with wildcard origins
    cors_origins = ["*"]
    cors_allow_credentials = False
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

app.add_exception_handler(MarketplaceError, marketplace_exception_handler)

# Include API routes
app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Event Marketplace API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "service": "event-marketplace"}
