"""
餐次相关数据模型
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import BaseEntity


class MealType(str, Enum):
    """餐别枚举"""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class MealRef(BaseEntity):
    """餐次引用：日期 + 餐别"""
    meal_date: date = Field(..., description="用餐日期")
    meal_type: MealType = Field(..., description="餐别")

    def __str__(self) -> str:
        return f"{self.meal_date.isoformat()}/{self.meal_type.value}"


class ScheduledMeal(BaseEntity):
    """餐次目录条目（由外部菜单目录维护，这里只读）"""
    meal_date: date = Field(..., description="用餐日期")
    meal_type: MealType = Field(..., description="餐别")
    serving_time: Optional[time] = Field(None, description="标准供餐时间，缺省时使用默认时间窗")
    title: Optional[str] = Field(None, description="展示用标题")

    @property
    def ref(self) -> MealRef:
        return MealRef(meal_date=self.meal_date, meal_type=self.meal_type)


class MealResolution(BaseEntity):
    """目录查询结果"""
    exists: bool
    serving_time: Optional[time] = None


class ServingWindow(BaseEntity):
    """核销时间窗，两端均为闭区间"""
    start: datetime
    end: datetime
    derived_from_serving_time: bool = Field(
        ..., description="True 表示由标准供餐时间推算，False 表示默认时间窗"
    )

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end
