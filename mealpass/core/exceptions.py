"""
自定义异常类
提供更精确的错误处理和异常信息

核销（扫码）的拒绝原因不是异常，见 models.verification.RejectionReason
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常（基础设施错误，核心不重试）"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class ConcurrencyError(BaseApplicationError):
    """并发控制错误"""

    def __init__(self, message: str = "Store is busy, please retry"):
        super().__init__(message, "CONCURRENCY_ERROR")


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "AUTHENTICATION_REQUIRED")


class BusinessLogicError(BaseApplicationError):
    """业务逻辑异常"""
    pass


class DuplicateBookingError(BusinessLogicError):
    """该学生在此餐次已有有效预订"""

    def __init__(self, student_id: str, meal_date, meal_type: str,
                 existing_booking_id: Optional[str] = None):
        super().__init__(
            "An active booking already exists for this meal; cancel it first",
            "DUPLICATE_BOOKING",
            {
                "student_id": student_id,
                "meal_date": str(meal_date),
                "meal_type": meal_type,
                "existing_booking_id": existing_booking_id,
            },
        )


class UnknownMealError(BusinessLogicError):
    """餐次不在目录中"""

    def __init__(self, meal_date, meal_type: str):
        super().__init__(
            f"No {meal_type} is scheduled on {meal_date}",
            "UNKNOWN_MEAL",
            {"meal_date": str(meal_date), "meal_type": meal_type},
        )


class BookingNotFoundError(BusinessLogicError):
    """预订不存在"""

    def __init__(self, booking_id: str):
        super().__init__(
            "Booking not found",
            "BOOKING_NOT_FOUND",
            {"booking_id": booking_id},
        )


class InvalidTransitionError(BusinessLogicError):
    """非法的状态流转（从终态出发）"""

    def __init__(self, booking_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move booking from {current} to {target}",
            "INVALID_TRANSITION",
            {"booking_id": booking_id, "current_status": current, "target_status": target},
        )


class ForbiddenError(BusinessLogicError):
    """请求者对该预订无权限"""

    def __init__(self, message: str = "You are not allowed to act on this booking",
                 details: Dict[str, Any] = None):
        super().__init__(message, "FORBIDDEN", details)


class BookingClosedError(BusinessLogicError):
    """餐次的核销时间窗已结束，不再接受预订"""

    def __init__(self, meal_date, meal_type: str, closed_at):
        super().__init__(
            f"Booking for {meal_type} on {meal_date} closed at {closed_at}",
            "BOOKING_CLOSED",
            {"meal_date": str(meal_date), "meal_type": meal_type, "closed_at": str(closed_at)},
        )
