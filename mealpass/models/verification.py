"""
核销结果模型
拒绝原因属于预期结果而非系统故障，以结果对象返回给调用方
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import BaseEntity
from .booking import Booking
from .meal import ServingWindow


class RejectionReason(str, Enum):
    """核销拒绝原因"""
    UNKNOWN_TOKEN = "unknown_token"
    NOT_TODAY = "not_today"
    BOOKING_CANCELLED = "booking_cancelled"
    ALREADY_CONSUMED = "already_consumed"
    OUTSIDE_SERVING_WINDOW = "outside_serving_window"


REJECTION_MESSAGES = {
    RejectionReason.UNKNOWN_TOKEN: "Invalid code. No matching booking found.",
    RejectionReason.NOT_TODAY: "This booking is for a different day.",
    RejectionReason.BOOKING_CANCELLED: "This booking has been cancelled.",
    RejectionReason.ALREADY_CONSUMED: "This meal has already been consumed.",
    RejectionReason.OUTSIDE_SERVING_WINDOW: "Outside the serving window for this meal.",
}


class VerificationResult(BaseEntity):
    """核销结果

    accepted=True 时 booking 为核销后的记录；
    被拒绝时除 UNKNOWN_TOKEN 外都带上查到的预订，便于前台展示。
    """
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str
    booking: Optional[Booking] = None
    window: Optional[ServingWindow] = None
    checked_at: datetime = Field(..., description="扫码时间")

    @classmethod
    def accept(cls, booking: Booking, window: ServingWindow, checked_at: datetime,
               message: str = "Meal marked as consumed."):
        return cls(accepted=True, message=message, booking=booking,
                   window=window, checked_at=checked_at)

    @classmethod
    def reject(cls, reason: RejectionReason, checked_at: datetime,
               booking: Optional[Booking] = None,
               window: Optional[ServingWindow] = None):
        return cls(accepted=False, reason=reason, message=REJECTION_MESSAGES[reason],
                   booking=booking, window=window, checked_at=checked_at)
