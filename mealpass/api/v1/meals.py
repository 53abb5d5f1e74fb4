"""
餐次目录只读路由
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends

from ...core.exceptions import UnknownMealError
from ...core.security import get_requester
from ...models.meal import MealType
from ...models.user import Requester
from ...schemas.booking import MealResponse
from ...services.meal_catalog import MealCatalog
from ...services.serving_window import resolve_window
from ..deps import get_meal_catalog

router = APIRouter()


@router.get("", response_model=List[MealResponse])
def list_meals(
    meal_date: date,
    requester: Requester = Depends(get_requester),
    catalog: MealCatalog = Depends(get_meal_catalog),
):
    """某天的餐次及核销时间窗"""
    return [
        MealResponse.from_meal(meal, resolve_window(meal.meal_date, meal.meal_type, meal.serving_time))
        for meal in catalog.list_meals(meal_date)
    ]


@router.get("/{meal_date}/{meal_type}", response_model=MealResponse)
def get_meal(
    meal_date: date,
    meal_type: MealType,
    requester: Requester = Depends(get_requester),
    catalog: MealCatalog = Depends(get_meal_catalog),
):
    meal = catalog.get_meal(meal_date, meal_type)
    if meal is None:
        raise UnknownMealError(meal_date, meal_type.value)
    return MealResponse.from_meal(meal, resolve_window(meal.meal_date, meal.meal_type, meal.serving_time))
