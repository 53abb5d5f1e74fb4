"""
餐次目录访问
餐次目录由外部菜单系统维护，核心只通过 resolve_meal 读取；
schedule_meal 用于向本地目录表写入/同步餐次。
"""

from datetime import date, time
from typing import List, Optional

from ..core.database import DatabaseManager, db_manager
from ..models.meal import MealResolution, MealType, ScheduledMeal, ServingWindow
from .serving_window import resolve_window


class MealCatalog:
    """餐次目录"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db if db is not None else db_manager

    def resolve_meal(self, meal_date: date, meal_type: MealType) -> MealResolution:
        """按 (日期, 餐别) 查询餐次是否存在及其标准供餐时间"""
        row = self.db.execute_one(
            "SELECT serving_time FROM meals WHERE meal_date=? AND meal_type=?",
            [meal_date, MealType(meal_type).value],
        )
        if not row:
            return MealResolution(exists=False)
        return MealResolution(exists=True, serving_time=row[0])

    def serving_window(self, meal_date: date, meal_type: MealType) -> Optional[ServingWindow]:
        """餐次的核销时间窗；餐次不存在时返回 None"""
        resolution = self.resolve_meal(meal_date, meal_type)
        if not resolution.exists:
            return None
        return resolve_window(meal_date, meal_type, resolution.serving_time)

    def get_meal(self, meal_date: date, meal_type: MealType) -> Optional[ScheduledMeal]:
        row = self.db.execute_one(
            "SELECT meal_date, meal_type, serving_time, title FROM meals WHERE meal_date=? AND meal_type=?",
            [meal_date, MealType(meal_type).value],
        )
        return self._row_to_meal(row) if row else None

    def list_meals(self, meal_date: date) -> List[ScheduledMeal]:
        """某天的全部餐次，按早/午/晚排序"""
        rows = self.db.execute_query(
            """
            SELECT meal_date, meal_type, serving_time, title FROM meals
            WHERE meal_date=?
            ORDER BY CASE meal_type WHEN 'breakfast' THEN 0 WHEN 'lunch' THEN 1 ELSE 2 END
            """,
            [meal_date],
        )
        return [self._row_to_meal(row) for row in rows]

    def schedule_meal(self, meal_date: date, meal_type: MealType,
                      serving_time: Optional[time] = None,
                      title: Optional[str] = None) -> ScheduledMeal:
        """写入或更新一个餐次"""
        meal_type = MealType(meal_type)
        self.db.execute_one(
            """
            INSERT INTO meals(meal_date, meal_type, serving_time, title) VALUES (?,?,?,?)
            ON CONFLICT (meal_date, meal_type) DO UPDATE
            SET serving_time = EXCLUDED.serving_time, title = EXCLUDED.title
            """,
            [meal_date, meal_type.value, serving_time, title],
        )
        return ScheduledMeal(meal_date=meal_date, meal_type=meal_type,
                             serving_time=serving_time, title=title)

    @staticmethod
    def _row_to_meal(row) -> ScheduledMeal:
        return ScheduledMeal(
            meal_date=row[0],
            meal_type=row[1],
            serving_time=row[2],
            title=row[3],
        )


# 全局服务实例
meal_catalog = MealCatalog()
