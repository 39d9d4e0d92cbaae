"""
Database models for the event marketplace.
"""

from .base import Base
from .user import User, UserRole, CacStatus
from .service_provider import (
    ServiceProvider,
    ServiceArea,
    ServiceCategory,
    ProviderPricingType,
    AvailabilityStatus,
    VerificationStatus,
    AreaType,
)
from .event_center import (
    EventCenter,
    CenterFacility,
    CenterDateRange,
    CenterType,
    EventType,
    Facility,
    CenterPricingType,
    DateRangeKind,
)
from .booking import (
    Booking,
    BookingType,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    ALLOWED_TRANSITIONS,
    can_transition,
)
from .booking_history import BookingStatusHistory
from .payment import (
    PaymentFlow,
    PaymentFlowMethod,
    PaymentFlowStatus,
    EscrowTransaction,
    EscrowStatus,
    ReleaseMethod,
    DisputeStatus,
    calculate_platform_fee,
)
from .review import Review, ReviewType
from .conversation import Conversation, ConversationParticipant, ConversationType
from .message import Message, MessageType, DeliveryStatus
from .notification import Notification, NotificationType, NotificationPriority
from .notification_preference import NotificationPreference

__all__ = [
    "Base",
    "User",
    "UserRole",
    "CacStatus",
    "ServiceProvider",
    "ServiceArea",
    "ServiceCategory",
    "ProviderPricingType",
    "AvailabilityStatus",
    "VerificationStatus",
    "AreaType",
    "EventCenter",
    "CenterFacility",
    "CenterDateRange",
    "CenterType",
    "EventType",
    "Facility",
    "CenterPricingType",
    "DateRangeKind",
    "Booking",
    "BookingType",
    "BookingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "BookingStatusHistory",
    "PaymentFlow",
    "PaymentFlowMethod",
    "PaymentFlowStatus",
    "EscrowTransaction",
    "EscrowStatus",
    "ReleaseMethod",
    "DisputeStatus",
    "calculate_platform_fee",
    "Review",
    "ReviewType",
    "Conversation",
    "ConversationParticipant",
    "ConversationType",
    "Message",
    "MessageType",
    "DeliveryStatus",
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "NotificationPreference",
]
