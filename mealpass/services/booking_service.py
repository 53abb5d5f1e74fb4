"""
预订服务模块
提供预订生命周期的核心业务逻辑，包括创建、取消和查询

业务规则：
- 每个学生每个餐次最多一条 booked 预订；已取消/已核销的不占位
- 状态只能单向流转：booked -> consumed 或 booked -> cancelled
- 核销码在创建时生成一次，取消后仍指向原预订，永不复用
- 预订永不删除，供审计和统计使用
"""

import logging
import uuid
from datetime import date, datetime
from typing import List, Optional

from ..config.settings import settings
from ..core.exceptions import (
    BookingClosedError,
    BookingNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    UnknownMealError,
)
from ..models.booking import Booking, BookingStatus, can_transition
from ..models.meal import MealRef, MealType
from ..models.user import Requester
from . import token_codec
from .audit_log import AuditLog
from .booking_store import BookingStore, booking_store
from .meal_catalog import MealCatalog, meal_catalog

logger = logging.getLogger(__name__)


class BookingService:
    """预订服务类，封装预订生命周期的状态机"""

    def __init__(self, store: BookingStore = None, catalog: MealCatalog = None,
                 audit: AuditLog = None):
        self.store = store if store is not None else booking_store
        self.catalog = catalog if catalog is not None else meal_catalog
        self.audit = audit if audit is not None else AuditLog(self.store.db)

    def create(self, student_id: str, meal_ref: MealRef, now: Optional[datetime] = None,
               actor_id: Optional[str] = None) -> Booking:
        """
        创建新预订

        Args:
            student_id: 学生ID
            meal_ref: 餐次引用（日期 + 餐别）
            now: 当前时间，缺省取服务器本地时间
            actor_id: 实际操作人，缺省为学生本人

        Returns:
            Booking: 状态为 booked、带新核销码的预订

        Raises:
            UnknownMealError: 餐次不在目录中
            BookingClosedError: 该餐次核销时间窗已结束
            DuplicateBookingError: 已有有效预订
        """
        now = now or datetime.now()

        window = self.catalog.serving_window(meal_ref.meal_date, meal_ref.meal_type)
        if window is None:
            raise UnknownMealError(meal_ref.meal_date, MealType(meal_ref.meal_type).value)

        if settings.enforce_booking_cutoff and now > window.end:
            raise BookingClosedError(meal_ref.meal_date, MealType(meal_ref.meal_type).value, window.end)

        booking_id = uuid.uuid4().hex
        detail = {
            "booking_id": booking_id,
            "meal_date": meal_ref.meal_date.isoformat(),
            "meal_type": MealType(meal_ref.meal_type).value,
        }
        return self.store.insert_if_no_active_booking(
            student_id,
            meal_ref,
            token_codec.mint(booking_id),
            now=now,
            booking_id=booking_id,
            before_commit=lambda conn: self.audit.record(
                "booking_create", user_id=student_id, actor_id=actor_id or student_id,
                detail=detail, conn=conn,
            ),
        )

    def cancel(self, booking_id: str, requester: Requester,
               now: Optional[datetime] = None) -> Booking:
        """
        取消预订

        Raises:
            BookingNotFoundError: 预订不存在
            ForbiddenError: 请求者既不是本人也不是管理人员
            InvalidTransitionError: 预订已处于终态（包括被并发核销抢先）
        """
        now = now or datetime.now()

        booking = self.store.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        if not requester.can_manage(booking.student_id):
            raise ForbiddenError(details={"booking_id": booking_id})

        if not can_transition(booking.status, BookingStatus.CANCELLED):
            raise InvalidTransitionError(booking_id, booking.status.value, BookingStatus.CANCELLED.value)

        detail = {
            "booking_id": booking_id,
            "meal_date": booking.meal_date.isoformat(),
            "meal_type": booking.meal_type.value,
        }
        updated = self.store.compare_and_set_status(
            booking_id, BookingStatus.BOOKED, BookingStatus.CANCELLED, at=now,
            before_commit=lambda conn: self.audit.record(
                "booking_cancel", user_id=booking.student_id, actor_id=requester.user_id,
                detail=detail, conn=conn,
            ),
        )
        if not updated:
            # 读取之后被并发核销或取消
            current = self.store.find_by_id(booking_id)
            logger.info("Cancel lost race for booking %s, now %s", booking_id, current.status.value)
            raise InvalidTransitionError(booking_id, current.status.value, BookingStatus.CANCELLED.value)

        return self.store.find_by_id(booking_id)

    def get(self, booking_id: str, requester: Requester) -> Booking:
        """获取单个预订（本人或管理人员）"""
        booking = self.store.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if not requester.can_manage(booking.student_id):
            raise ForbiddenError(details={"booking_id": booking_id})
        return booking

    def list_for_student(self, student_id: str, status: Optional[BookingStatus] = None,
                         date_from: Optional[date] = None,
                         date_to: Optional[date] = None) -> List[Booking]:
        return self.store.list_by_student(student_id, status, date_from, date_to)

    def list_for_meal(self, meal_date: date, meal_type: Optional[MealType] = None,
                      status: Optional[BookingStatus] = None) -> List[Booking]:
        return self.store.list_by_meal(meal_date, meal_type, status)


# 全局服务实例
booking_service = BookingService()
