"""
预订服务测试
"""

import json
import threading
from datetime import date, datetime

import pytest

from ..core.exceptions import (
    BookingClosedError,
    BookingNotFoundError,
    DatabaseError,
    DuplicateBookingError,
    ForbiddenError,
    InvalidTransitionError,
    UnknownMealError,
)
from ..models.booking import BookingStatus
from ..models.meal import MealRef, MealType


class TestCreateBooking:
    """预订创建测试"""

    def test_create_booking_success(self, booking_svc, lunch_ref, booking_time):
        """成功创建预订"""
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)

        assert booking.status == BookingStatus.BOOKED
        assert booking.student_id == "S1"
        assert booking.meal_ref == lunch_ref
        assert booking.token
        assert booking.created_at == booking_time
        assert booking.consumed_at is None
        assert booking.cancelled_at is None

    def test_create_duplicate_rejected(self, booking_svc, lunch_ref, booking_time):
        """同一餐次已有有效预订时再次预订失败"""
        first = booking_svc.create("S1", lunch_ref, now=booking_time)

        with pytest.raises(DuplicateBookingError) as exc_info:
            booking_svc.create("S1", lunch_ref, now=booking_time)

        assert exc_info.value.error_code == "DUPLICATE_BOOKING"
        assert exc_info.value.details["existing_booking_id"] == first.booking_id

    def test_other_student_same_meal_allowed(self, booking_svc, lunch_ref, booking_time):
        booking_svc.create("S1", lunch_ref, now=booking_time)
        other = booking_svc.create("S2", lunch_ref, now=booking_time)
        assert other.status == BookingStatus.BOOKED

    def test_same_student_other_meal_allowed(self, booking_svc, lunch_ref, booking_time):
        booking_svc.create("S1", lunch_ref, now=booking_time)
        dinner = booking_svc.create(
            "S1", MealRef(meal_date=lunch_ref.meal_date, meal_type=MealType.DINNER), now=booking_time
        )
        assert dinner.meal_type == MealType.DINNER

    def test_unknown_meal(self, booking_svc, booking_time):
        """餐次不在目录中"""
        with pytest.raises(UnknownMealError):
            booking_svc.create(
                "S1", MealRef(meal_date=date(2024, 6, 11), meal_type=MealType.LUNCH), now=booking_time
            )

    def test_booking_closed_after_window(self, booking_svc, lunch_ref):
        """核销时间窗结束后不能再预订"""
        with pytest.raises(BookingClosedError):
            booking_svc.create("S1", lunch_ref, now=datetime(2024, 6, 10, 14, 0, 1))

    def test_booking_allowed_until_window_end(self, booking_svc, lunch_ref):
        booking = booking_svc.create("S1", lunch_ref, now=datetime(2024, 6, 10, 14, 0))
        assert booking.status == BookingStatus.BOOKED

    def test_cancelled_booking_does_not_block_new_one(self, booking_svc, lunch_ref, booking_time, student):
        """取消后可重新预订，新核销码与旧的不同"""
        first = booking_svc.create("S1", lunch_ref, now=booking_time)
        booking_svc.cancel(first.booking_id, student, now=booking_time)

        second = booking_svc.create("S1", lunch_ref, now=booking_time)

        assert second.booking_id != first.booking_id
        assert second.token != first.token
        assert booking_svc.store.find_by_token(first.token).status == BookingStatus.CANCELLED

    def test_create_writes_audit_log(self, booking_svc, lunch_ref, booking_time, test_db):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time, actor_id="staff-1")

        row = test_db.execute_one(
            "SELECT user_id, actor_id, detail_json FROM logs WHERE action='booking_create'"
        )
        assert row[0] == "S1"
        assert row[1] == "staff-1"
        assert json.loads(row[2])["booking_id"] == booking.booking_id

    def test_concurrent_create_same_slot(self, booking_svc, lunch_ref, booking_time):
        """并发创建同一 (学生, 餐次) 只有一个成功"""
        results = []
        barrier = threading.Barrier(8)

        def create():
            barrier.wait()
            try:
                booking_svc.create("S1", lunch_ref, now=booking_time)
                results.append("ok")
            except DuplicateBookingError:
                results.append("duplicate")

        threads = [threading.Thread(target=create) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("duplicate") == 7
        active = booking_svc.list_for_student("S1", status=BookingStatus.BOOKED)
        assert len(active) == 1

    def test_failed_audit_write_rolls_back_create(self, booking_svc, lunch_ref, booking_time, monkeypatch, test_db):
        """操作日志写入失败时预订不落库，可以直接重试"""
        def fail(*args, **kwargs):
            raise DatabaseError("logs unavailable")

        monkeypatch.setattr(booking_svc.audit, "record", fail)
        with pytest.raises(DatabaseError):
            booking_svc.create("S1", lunch_ref, now=booking_time)

        assert booking_svc.list_for_student("S1") == []

        monkeypatch.undo()
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        assert booking.status == BookingStatus.BOOKED
        assert test_db.execute_one("SELECT count(*) FROM logs WHERE action='booking_create'")[0] == 1


class TestCancelBooking:
    """预订取消测试"""

    def test_cancel_by_owner(self, booking_svc, lunch_ref, booking_time, student):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        cancel_time = datetime(2024, 6, 10, 9, 0)

        cancelled = booking_svc.cancel(booking.booking_id, student, now=cancel_time)

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancelled_at == cancel_time
        assert cancelled.consumed_at is None
        assert cancelled.token == booking.token

    def test_cancel_by_operator(self, booking_svc, lunch_ref, booking_time, operator):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        cancelled = booking_svc.cancel(booking.booking_id, operator, now=booking_time)
        assert cancelled.status == BookingStatus.CANCELLED

    def test_cancel_by_other_student_forbidden(self, booking_svc, lunch_ref, booking_time, other_student):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)

        with pytest.raises(ForbiddenError):
            booking_svc.cancel(booking.booking_id, other_student, now=booking_time)

        assert booking_svc.store.find_by_id(booking.booking_id).status == BookingStatus.BOOKED

    def test_cancel_unknown_booking(self, booking_svc, student):
        with pytest.raises(BookingNotFoundError):
            booking_svc.cancel("no-such-booking", student)

    def test_cancel_twice(self, booking_svc, lunch_ref, booking_time, student):
        """已取消的预订不能再次取消"""
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        booking_svc.cancel(booking.booking_id, student, now=booking_time)

        with pytest.raises(InvalidTransitionError) as exc_info:
            booking_svc.cancel(booking.booking_id, student, now=booking_time)

        assert exc_info.value.details["current_status"] == "cancelled"

    def test_cancel_consumed_booking(self, booking_svc, redemption_svc, lunch_ref, booking_time, student):
        """已核销的预订不能取消"""
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        result = redemption_svc.verify_and_consume(booking.token, now=datetime(2024, 6, 10, 12, 30))
        assert result.accepted

        with pytest.raises(InvalidTransitionError) as exc_info:
            booking_svc.cancel(booking.booking_id, student)

        assert exc_info.value.details["current_status"] == "consumed"
        assert booking_svc.store.find_by_id(booking.booking_id).status == BookingStatus.CONSUMED

    def test_failed_audit_write_rolls_back_cancel(self, booking_svc, lunch_ref, booking_time, student, monkeypatch):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)

        def fail(*args, **kwargs):
            raise DatabaseError("logs unavailable")

        monkeypatch.setattr(booking_svc.audit, "record", fail)
        with pytest.raises(DatabaseError):
            booking_svc.cancel(booking.booking_id, student, now=booking_time)

        unchanged = booking_svc.store.find_by_id(booking.booking_id)
        assert unchanged.status == BookingStatus.BOOKED
        assert unchanged.cancelled_at is None

        monkeypatch.undo()
        assert booking_svc.cancel(booking.booking_id, student, now=booking_time).status == BookingStatus.CANCELLED


class TestQueryBookings:
    """预订查询测试"""

    def test_get_by_owner_and_operator(self, booking_svc, lunch_ref, booking_time, student, operator):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        assert booking_svc.get(booking.booking_id, student) == booking
        assert booking_svc.get(booking.booking_id, operator) == booking

    def test_get_by_other_student_forbidden(self, booking_svc, lunch_ref, booking_time, other_student):
        booking = booking_svc.create("S1", lunch_ref, now=booking_time)
        with pytest.raises(ForbiddenError):
            booking_svc.get(booking.booking_id, other_student)

    def test_list_for_student(self, booking_svc, lunch_ref, booking_time, student):
        lunch = booking_svc.create("S1", lunch_ref, now=booking_time)
        booking_svc.create(
            "S1", MealRef(meal_date=lunch_ref.meal_date, meal_type=MealType.DINNER), now=booking_time
        )
        booking_svc.create("S2", lunch_ref, now=booking_time)
        booking_svc.cancel(lunch.booking_id, student, now=booking_time)

        assert len(booking_svc.list_for_student("S1")) == 2
        cancelled = booking_svc.list_for_student("S1", status=BookingStatus.CANCELLED)
        assert [b.booking_id for b in cancelled] == [lunch.booking_id]
        assert booking_svc.list_for_student("S1", date_from=date(2024, 6, 11)) == []

    def test_list_for_meal(self, booking_svc, lunch_ref, booking_time):
        booking_svc.create("S1", lunch_ref, now=booking_time)
        booking_svc.create("S2", lunch_ref, now=booking_time)
        booking_svc.create(
            "S1", MealRef(meal_date=lunch_ref.meal_date, meal_type=MealType.BREAKFAST), now=booking_time
        )

        assert len(booking_svc.list_for_meal(lunch_ref.meal_date)) == 3
        day_roll = booking_svc.list_for_meal(lunch_ref.meal_date)
        assert day_roll[0].meal_type == MealType.BREAKFAST
        lunch_roll = booking_svc.list_for_meal(lunch_ref.meal_date, MealType.LUNCH)
        assert {b.student_id for b in lunch_roll} == {"S1", "S2"}
