"""
数据模型
核心边界上唯一的规范数据形状
"""

from .booking import BOOKING_TRANSITIONS, Booking, BookingStatus, can_transition
from .user import Requester, UserRole
from .meal import MealRef, MealResolution, MealType, ScheduledMeal, ServingWindow
from .verification import REJECTION_MESSAGES, RejectionReason, VerificationResult

__all__ = [
    "BOOKING_TRANSITIONS",
    "Booking",
    "BookingStatus",
    "can_transition",
    "MealRef",
    "MealResolution",
    "MealType",
    "ScheduledMeal",
    "ServingWindow",
    "REJECTION_MESSAGES",
    "RejectionReason",
    "VerificationResult",
    "Requester",
    "UserRole",
]
