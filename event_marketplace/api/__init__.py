"""API endpoints for the Event Marketplace."""

from fastapi import APIRouter

from ..schemas.common import ErrorResponse
from .auth import router as auth_router
from .admin import router as admin_router
from .users import router as users_router
from .providers import router as providers_router
from .centers import router as centers_router
from .search import router as search_router
from .bookings import router as bookings_router
from .payments import router as payments_router
from .reviews import router as reviews_router
from .conversations import router as conversations_router
from .notifications import router as notifications_router
from .notification_preferences import router as notification_preferences_router
from .dashboard import router as dashboard_router

# Create main API router
api_router = APIRouter(
    prefix="/api/v1",
    responses={
        400: {"model": ErrorResponse, "description": "Bad request"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not allowed"},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Conflict"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
)

# Include all routers
api_router.include_router(auth_router)
api_router.include_router(admin_router)
api_router.include_router(users_router)
api_router.include_router(providers_router)
api_router.include_router(centers_router)
api_router.include_router(search_router)
api_router.include_router(bookings_router)
api_router.include_router(payments_router)
api_router.include_router(reviews_router)
api_router.include_router(conversations_router)
api_router.include_router(notifications_router)
api_router.include_router(notification_preferences_router)
api_router.include_router(dashboard_router)

__all__ = ["api_router"]
