"""
预订相关数据模型
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import Field

from .base import BaseEntity
from .meal import MealRef, MealType


class BookingStatus(str, Enum):
    """预订状态枚举"""
    BOOKED = "booked"         # 已预订（初始态）
    CONSUMED = "consumed"     # 已核销（终态）
    CANCELLED = "cancelled"   # 已取消（终态）


# 合法的状态流转，终态没有出边
BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.BOOKED: frozenset({BookingStatus.CONSUMED, BookingStatus.CANCELLED}),
    BookingStatus.CONSUMED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, frozenset())


class Booking(BaseEntity):
    """预订完整模型"""
    booking_id: str = Field(..., description="预订ID")
    student_id: str = Field(..., description="学生ID")
    meal_date: date = Field(..., description="用餐日期")
    meal_type: MealType = Field(..., description="餐别")
    status: BookingStatus = Field(..., description="预订状态")
    token: str = Field(..., description="核销码")
    created_at: datetime = Field(..., description="创建时间")
    consumed_at: Optional[datetime] = Field(None, description="核销时间")
    cancelled_at: Optional[datetime] = Field(None, description="取消时间")

    @property
    def meal_ref(self) -> MealRef:
        return MealRef(meal_date=self.meal_date, meal_type=self.meal_type)
