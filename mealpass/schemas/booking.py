"""
预订和核销相关的请求/响应模式
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.booking import Booking, BookingStatus
from ..models.meal import MealType, ScheduledMeal, ServingWindow
from ..models.verification import RejectionReason, VerificationResult


class BookingCreateRequest(BaseModel):
    """预订创建请求"""
    meal_date: date = Field(..., description="用餐日期")
    meal_type: MealType = Field(..., description="餐别")
    student_id: Optional[str] = Field(None, description="代学生预订时填写（仅管理人员）")


class BookingResponse(BaseModel):
    """预订响应"""
    booking_id: str = Field(..., description="预订ID")
    student_id: str = Field(..., description="学生ID")
    meal_date: date = Field(..., description="用餐日期")
    meal_type: MealType = Field(..., description="餐别")
    status: BookingStatus = Field(..., description="预订状态")
    token: str = Field(..., description="核销码，前端渲染为二维码")
    created_at: datetime = Field(..., description="创建时间")
    consumed_at: Optional[datetime] = Field(None, description="核销时间")
    cancelled_at: Optional[datetime] = Field(None, description="取消时间")

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(**booking.model_dump())


class BookingListResponse(BaseModel):
    """预订列表响应"""
    items: List[BookingResponse]
    total: int


class RedemptionRequest(BaseModel):
    """扫码请求"""
    token: str = Field(..., min_length=1, max_length=128, description="扫描或输入的核销码")


class WindowResponse(BaseModel):
    """核销时间窗"""
    start: datetime
    end: datetime
    derived_from_serving_time: bool

    @classmethod
    def from_window(cls, window: Optional[ServingWindow]) -> Optional["WindowResponse"]:
        return cls(**window.model_dump()) if window else None


class VerificationResponse(BaseModel):
    """核销结果响应；被拒绝也返回 200，reason 给出具体原因"""
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str
    booking: Optional[BookingResponse] = None
    window: Optional[WindowResponse] = None
    checked_at: datetime

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResponse":
        return cls(
            accepted=result.accepted,
            reason=result.reason,
            message=result.message,
            booking=BookingResponse.from_booking(result.booking) if result.booking else None,
            window=WindowResponse.from_window(result.window),
            checked_at=result.checked_at,
        )


class MealResponse(BaseModel):
    """餐次目录条目及其核销时间窗"""
    meal_date: date
    meal_type: MealType
    serving_time: Optional[time] = None
    title: Optional[str] = None
    window: WindowResponse

    @classmethod
    def from_meal(cls, meal: ScheduledMeal, window: ServingWindow) -> "MealResponse":
        return cls(
            meal_date=meal.meal_date,
            meal_type=meal.meal_type,
            serving_time=meal.serving_time,
            title=meal.title,
            window=WindowResponse.from_window(window),
        )
