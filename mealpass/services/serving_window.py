"""
核销时间窗计算

统一的数据驱动实现：有标准供餐时间时取 [供餐时间 - 提前量, 供餐时间 + 延后量]，
否则查默认时间窗表。
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, Optional, Tuple

from ..config.settings import settings
from ..models.meal import MealType, ServingWindow

# 目录里没有供餐时间时使用的默认时间窗
DEFAULT_SERVING_WINDOWS: Dict[MealType, Tuple[time, time]] = {
    MealType.BREAKFAST: (time(7, 0), time(9, 0)),
    MealType.LUNCH: (time(12, 0), time(15, 0)),
    MealType.DINNER: (time(19, 0), time(21, 0)),
}


def resolve_window(
    meal_date: date,
    meal_type: MealType,
    serving_time: Optional[time] = None,
    early_minutes: Optional[int] = None,
    late_minutes: Optional[int] = None,
) -> ServingWindow:
    """计算某餐次的核销时间窗（闭区间）"""
    meal_type = MealType(meal_type)

    if serving_time is not None:
        early = settings.redemption_early_minutes if early_minutes is None else early_minutes
        late = settings.redemption_late_minutes if late_minutes is None else late_minutes
        nominal = datetime.combine(meal_date, serving_time)
        return ServingWindow(
            start=nominal - timedelta(minutes=early),
            end=nominal + timedelta(minutes=late),
            derived_from_serving_time=True,
        )

    start, end = DEFAULT_SERVING_WINDOWS[meal_type]
    return ServingWindow(
        start=datetime.combine(meal_date, start),
        end=datetime.combine(meal_date, end),
        derived_from_serving_time=False,
    )
