"""
预订存储
bookings 表的唯一读写入口，状态变更只能通过 compare_and_set_status 完成

并发保证：
- 插入在一个事务中先检查后写入，同一 (学生, 餐次) 最多一条 booked
- 状态流转是单条带前置状态条件的 UPDATE，先落库者胜出
- before_commit 回调在同一事务内执行（写操作日志），失败时连同状态变更一起回滚
"""

import uuid
from datetime import date, datetime
from typing import Callable, List, Optional

import duckdb

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import DuplicateBookingError
from ..models.booking import Booking, BookingStatus
from ..models.meal import MealRef, MealType

BOOKING_COLUMNS = (
    "booking_id, student_id, meal_date, meal_type, status, token, "
    "created_at, consumed_at, cancelled_at"
)

# 目标状态 -> 需要写入的时间戳列
TIMESTAMP_FIELDS = {
    BookingStatus.CONSUMED: "consumed_at",
    BookingStatus.CANCELLED: "cancelled_at",
}

TransactionHook = Callable[[duckdb.DuckDBPyConnection], None]


class BookingStore:
    """预订存储"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db if db is not None else db_manager

    def insert_if_no_active_booking(self, student_id: str, meal_ref: MealRef, token: str,
                                    now: datetime, booking_id: Optional[str] = None,
                                    before_commit: Optional[TransactionHook] = None) -> Booking:
        """
        原子地插入一条 booked 预订

        Raises:
            DuplicateBookingError: 该学生在此餐次已有 booked 预订
        """
        booking_id = booking_id or uuid.uuid4().hex
        meal_type = MealType(meal_ref.meal_type).value

        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT booking_id FROM bookings WHERE student_id=? AND meal_date=? AND meal_type=? AND status='booked'",
                [student_id, meal_ref.meal_date, meal_type],
            ).fetchone()
            if existing:
                raise DuplicateBookingError(student_id, meal_ref.meal_date, meal_type, existing[0])

            row = conn.execute(
                f"""
                INSERT INTO bookings(booking_id, student_id, meal_date, meal_type, status, token, created_at)
                VALUES (?,?,?,?,?,?,?)
                RETURNING {BOOKING_COLUMNS}
                """,
                [booking_id, student_id, meal_ref.meal_date, meal_type,
                 BookingStatus.BOOKED.value, token, now],
            ).fetchone()
            if before_commit is not None:
                before_commit(conn)

        return self._row_to_booking(row)

    def find_by_token(self, token: str) -> Optional[Booking]:
        row = self.db.execute_one(
            f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE token=?", [token]
        )
        return self._row_to_booking(row) if row else None

    def find_by_id(self, booking_id: str) -> Optional[Booking]:
        row = self.db.execute_one(
            f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE booking_id=?", [booking_id]
        )
        return self._row_to_booking(row) if row else None

    def compare_and_set_status(self, booking_id: str, expected: BookingStatus,
                               new: BookingStatus, at: datetime,
                               token: Optional[str] = None,
                               before_commit: Optional[TransactionHook] = None) -> bool:
        """
        条件更新预订状态

        仅当当前状态仍为 expected（且给定 token 时 token 匹配）时才写入 new，
        并同时设置对应的时间戳列；更新成功时在同一事务内执行 before_commit。

        Returns:
            bool: 是否更新成功；前置状态不匹配时返回 False
        """
        new = BookingStatus(new)
        timestamp_field = TIMESTAMP_FIELDS[new]

        query = (
            f"UPDATE bookings SET status=?, {timestamp_field}=? "
            "WHERE booking_id=? AND status=?"
        )
        params = [new.value, at, booking_id, BookingStatus(expected).value]
        if token is not None:
            query += " AND token=?"
            params.append(token)
        query += " RETURNING booking_id"

        with self.db.transaction() as conn:
            row = conn.execute(query, params).fetchone()
            if row is not None and before_commit is not None:
                before_commit(conn)
        return row is not None

    def list_by_student(self, student_id: str, status: Optional[BookingStatus] = None,
                        date_from: Optional[date] = None,
                        date_to: Optional[date] = None) -> List[Booking]:
        """学生的预订历史，最新的在前"""
        conditions = ["student_id = ?"]
        params: list = [student_id]

        if status:
            conditions.append("status = ?")
            params.append(BookingStatus(status).value)
        if date_from:
            conditions.append("meal_date >= ?")
            params.append(date_from)
        if date_to:
            conditions.append("meal_date <= ?")
            params.append(date_to)

        rows = self.db.execute_query(
            f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE {' AND '.join(conditions)} "
            "ORDER BY meal_date DESC, created_at DESC",
            params,
        )
        return [self._row_to_booking(row) for row in rows]

    def list_by_meal(self, meal_date: date, meal_type: Optional[MealType] = None,
                     status: Optional[BookingStatus] = None) -> List[Booking]:
        """某天（某餐）的预订名单"""
        conditions = ["meal_date = ?"]
        params: list = [meal_date]

        if meal_type:
            conditions.append("meal_type = ?")
            params.append(MealType(meal_type).value)
        if status:
            conditions.append("status = ?")
            params.append(BookingStatus(status).value)

        rows = self.db.execute_query(
            f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE {' AND '.join(conditions)} "
            "ORDER BY CASE meal_type WHEN 'breakfast' THEN 0 WHEN 'lunch' THEN 1 ELSE 2 END, created_at",
            params,
        )
        return [self._row_to_booking(row) for row in rows]

    @staticmethod
    def _row_to_booking(row) -> Booking:
        return Booking(
            booking_id=row[0],
            student_id=row[1],
            meal_date=row[2],
            meal_type=row[3],
            status=row[4],
            token=row[5],
            created_at=row[6],
            consumed_at=row[7],
            cancelled_at=row[8],
        )


# 全局存储实例
booking_store = BookingStore()
