"""
路由依赖
测试中通过 app.dependency_overrides 替换为绑定测试库的服务实例
"""

from ..services.booking_service import BookingService, booking_service
from ..services.meal_catalog import MealCatalog, meal_catalog
from ..services.redemption_service import RedemptionService, redemption_service


def get_booking_service() -> BookingService:
    return booking_service


def get_redemption_service() -> RedemptionService:
    return redemption_service


def get_meal_catalog() -> MealCatalog:
    return meal_catalog
