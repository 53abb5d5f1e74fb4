"""
预订路由模块
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from ...core.exceptions import ForbiddenError
from ...core.security import get_requester, require_operator
from ...models.booking import BookingStatus
from ...models.meal import MealRef, MealType
from ...models.user import Requester
from ...schemas.booking import BookingCreateRequest, BookingListResponse, BookingResponse
from ...services.booking_service import BookingService
from ..deps import get_booking_service

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=201)
def create_booking(
    req: BookingCreateRequest,
    requester: Requester = Depends(get_requester),
    service: BookingService = Depends(get_booking_service),
):
    """预订餐次，返回带核销码的预订"""
    student_id = req.student_id or requester.user_id
    if not requester.can_manage(student_id):
        raise ForbiddenError("Only operators can book on behalf of another student")

    booking = service.create(
        student_id,
        MealRef(meal_date=req.meal_date, meal_type=req.meal_type),
        actor_id=requester.user_id,
    )
    return BookingResponse.from_booking(booking)


@router.get("", response_model=BookingListResponse)
def list_my_bookings(
    status: Optional[BookingStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    requester: Requester = Depends(get_requester),
    service: BookingService = Depends(get_booking_service),
):
    """当前学生的预订历史"""
    bookings = service.list_for_student(requester.user_id, status, date_from, date_to)
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/attendance", response_model=BookingListResponse)
def list_meal_attendance(
    meal_date: date,
    meal_type: Optional[MealType] = None,
    status: Optional[BookingStatus] = None,
    operator: Requester = Depends(require_operator),
    service: BookingService = Depends(get_booking_service),
):
    """某天（某餐）的预订名单（管理人员）"""
    bookings = service.list_for_meal(meal_date, meal_type, status)
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    requester: Requester = Depends(get_requester),
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_booking(service.get(booking_id, requester))


@router.delete("/{booking_id}", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    requester: Requester = Depends(get_requester),
    service: BookingService = Depends(get_booking_service),
):
    """取消预订"""
    return BookingResponse.from_booking(service.cancel(booking_id, requester))
