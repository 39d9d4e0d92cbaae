"""Business logic services for the event marketplace."""

from .user_service import UserService
from .provider_service import ProviderService
from .center_service import CenterService
from .booking_service import BookingService
from .payment_service import PaymentService
from .review_service import ReviewService
from .conversation_service import ConversationService
from .notification_service import NotificationService
from .preference_service import PreferenceService
from .dashboard_service import DashboardService
from .search_service import SearchService

__all__ = [
    "UserService",
    "ProviderService",
    "CenterService",
    "BookingService",
    "PaymentService",
    "ReviewService",
    "ConversationService",
    "NotificationService",
    "PreferenceService",
    "DashboardService",
    "SearchService",
]
