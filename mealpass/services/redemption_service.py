"""
核销服务模块
扫码核销的判定与落库

判定顺序（遇到第一个失败即返回）：
1. 核销码 -> 预订，找不到则 UNKNOWN_TOKEN
2. 预订日期必须是扫码当天（服务器本地日期，取自库中记录）
3. 已取消 -> BOOKING_CANCELLED；已核销 -> ALREADY_CONSUMED
4. 扫码时间必须落在核销时间窗内（闭区间）
5. 带前置状态条件的 UPDATE 完成 booked -> consumed，
   并发重复扫码只有一个能成功，其余看到终态
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ..config.settings import settings
from ..core.exceptions import BookingNotFoundError
from ..models.booking import Booking, BookingStatus
from ..models.meal import ServingWindow
from ..models.verification import RejectionReason, VerificationResult
from . import token_codec
from .audit_log import AuditLog
from .booking_store import BookingStore, booking_store
from .meal_catalog import MealCatalog, meal_catalog
from .scan_history import RecentScanHistory
from .serving_window import resolve_window

logger = logging.getLogger(__name__)

TERMINAL_REJECTIONS = {
    BookingStatus.CANCELLED: RejectionReason.BOOKING_CANCELLED,
    BookingStatus.CONSUMED: RejectionReason.ALREADY_CONSUMED,
}


class RedemptionService:
    """核销服务"""

    def __init__(self, store: BookingStore = None, catalog: MealCatalog = None,
                 audit: AuditLog = None, history: RecentScanHistory = None):
        self.store = store if store is not None else booking_store
        self.catalog = catalog if catalog is not None else meal_catalog
        self.audit = audit if audit is not None else AuditLog(self.store.db)
        self.history = history if history is not None else RecentScanHistory(settings.recent_scan_limit)

    def verify_and_consume(self, raw_token: str, now: Optional[datetime] = None,
                           actor_id: Optional[str] = None) -> VerificationResult:
        """
        校验核销码并在通过时核销

        Args:
            raw_token: 扫描或手工输入的核销码
            now: 扫码时间，缺省取服务器本地时间
            actor_id: 扫码的工作人员

        Returns:
            VerificationResult: 通过时 booking 为核销后的记录
        """
        now = now or datetime.now()
        token = token_codec.normalize(raw_token)

        booking = self.store.find_by_token(token)
        if booking is None:
            return self._finish(VerificationResult.reject(RejectionReason.UNKNOWN_TOKEN, now), actor_id)

        reason, window = self._evaluate(booking, now)
        if reason is not None:
            return self._finish(VerificationResult.reject(reason, now, booking, window), actor_id)

        # 核销日志与状态写入同一事务提交
        consumed = self.store.compare_and_set_status(
            booking.booking_id, BookingStatus.BOOKED, BookingStatus.CONSUMED, at=now, token=token,
            before_commit=lambda conn: self._record(True, None, booking, now, actor_id, conn=conn),
        )
        current = self.store.find_by_id(booking.booking_id)
        if not consumed:
            # 读取之后被并发核销或取消
            logger.info("Consume lost race for booking %s, now %s",
                        booking.booking_id, current.status.value)
            reason = TERMINAL_REJECTIONS[current.status]
            return self._finish(VerificationResult.reject(reason, now, current, window), actor_id)

        result = VerificationResult.accept(current, window, now)
        self.history.add(result)
        return result

    def check(self, raw_token: str, now: Optional[datetime] = None) -> VerificationResult:
        """只做判定不落库，供扫码台先展示再确认；结果不作为核销依据"""
        now = now or datetime.now()
        booking = self.store.find_by_token(token_codec.normalize(raw_token))
        if booking is None:
            result = VerificationResult.reject(RejectionReason.UNKNOWN_TOKEN, now)
        else:
            reason, window = self._evaluate(booking, now)
            if reason is None:
                result = VerificationResult.accept(
                    booking, window, now, message="Valid booking. Ready to mark as consumed."
                )
            else:
                result = VerificationResult.reject(reason, now, booking, window)
        self.history.add(result)
        return result

    def consume(self, booking_id: str, now: Optional[datetime] = None,
                actor_id: Optional[str] = None) -> VerificationResult:
        """按预订ID核销（扫码台已展示该预订时的“确认核销”）

        Raises:
            BookingNotFoundError: 预订不存在
        """
        booking = self.store.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return self.verify_and_consume(booking.token, now=now, actor_id=actor_id)

    def recent_scans(self) -> List[VerificationResult]:
        return self.history.recent()

    def _evaluate(self, booking: Booking, now: datetime) -> Tuple[Optional[RejectionReason], Optional[ServingWindow]]:
        """对库中记录做步骤 2-4 的判定，返回 (拒绝原因, 时间窗)"""
        if booking.meal_date != now.date():
            return RejectionReason.NOT_TODAY, None

        if booking.status in TERMINAL_REJECTIONS:
            return TERMINAL_REJECTIONS[booking.status], None

        resolution = self.catalog.resolve_meal(booking.meal_date, booking.meal_type)
        window = resolve_window(booking.meal_date, booking.meal_type, resolution.serving_time)
        if not window.contains(now):
            return RejectionReason.OUTSIDE_SERVING_WINDOW, window

        return None, window

    def _record(self, accepted: bool, reason: Optional[RejectionReason], booking: Optional[Booking],
                checked_at: datetime, actor_id: Optional[str], conn=None):
        self.audit.record(
            "booking_consume" if accepted else "redemption_reject",
            user_id=booking.student_id if booking else None,
            actor_id=actor_id,
            detail={
                "accepted": accepted,
                "reason": reason.value if reason else None,
                "booking_id": booking.booking_id if booking else None,
                "checked_at": checked_at.isoformat(),
            },
            conn=conn,
        )

    def _finish(self, result: VerificationResult, actor_id: Optional[str]) -> VerificationResult:
        """记录拒绝日志和最近扫描后返回结果"""
        self._record(result.accepted, result.reason, result.booking, result.checked_at, actor_id)
        self.history.add(result)
        return result


# 全局服务实例
redemption_service = RedemptionService()
