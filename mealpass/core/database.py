"""
数据库连接和管理模块
负责 DuckDB 数据库的初始化、连接管理和表结构定义

数据库表说明：
- meals: 餐次目录（日期 + 餐别 + 标准供餐时间）
- bookings: 学生订餐记录，永不删除，取消/核销后保留用于审计
- logs: 系统操作日志
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import duckdb

from .exceptions import BaseApplicationError, ConcurrencyError, DatabaseError
from ..config.settings import settings

logger = logging.getLogger(__name__)

# 完整的表结构定义
# bookings 的“同一学生同一餐次最多一条 booked”约束由事务内检查+插入保证，
# DuckDB 不支持带 WHERE 的部分唯一索引
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS meals (
  meal_date DATE NOT NULL,
  meal_type TEXT CHECK(meal_type IN ('breakfast','lunch','dinner')) NOT NULL,
  serving_time TIME,
  title TEXT,
  created_at TIMESTAMP DEFAULT now(),
  PRIMARY KEY (meal_date, meal_type)
);

CREATE TABLE IF NOT EXISTS bookings (
  booking_id TEXT PRIMARY KEY,
  student_id TEXT NOT NULL,
  meal_date DATE NOT NULL,
  meal_type TEXT CHECK(meal_type IN ('breakfast','lunch','dinner')) NOT NULL,
  status TEXT CHECK(status IN ('booked','consumed','cancelled')) NOT NULL,
  token TEXT UNIQUE NOT NULL,
  created_at TIMESTAMP NOT NULL,
  consumed_at TIMESTAMP,
  cancelled_at TIMESTAMP,
  CHECK ((status = 'consumed') = (consumed_at IS NOT NULL)),
  CHECK ((status = 'cancelled') = (cancelled_at IS NOT NULL))
);

CREATE INDEX IF NOT EXISTS idx_bookings_student ON bookings(student_id);
CREATE INDEX IF NOT EXISTS idx_bookings_meal ON bookings(meal_date, meal_type);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id TEXT,
  actor_id TEXT,
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_user ON logs(user_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """数据库管理器，封装所有数据库操作

    所有语句共用一个 DuckDB 连接，并由可重入锁串行化；
    多语句操作必须放在 transaction() 中执行。
    """

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        """从设置中获取数据库路径"""
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            db_url = db_url.replace("duckdb://", "")
        if db_url != ":memory:":
            Path(db_url).parent.mkdir(parents=True, exist_ok=True)
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        with self._lock:
            if self._connection is None:
                self._connection = duckdb.connect(self.db_path)
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            try:
                self._connection.execute("INSTALL json")
                self._connection.execute("LOAD json")
            except duckdb.Error:
                # JSON 扩展已内置或离线环境无法安装
                logger.debug("json extension not installed, relying on builtin JSON type")
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库"""
        self.get_connection()
        logger.info("Database initialized at %s", self.db_path)

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        持有锁期间 BEGIN/COMMIT，异常时 ROLLBACK；
        业务异常原样抛出，其余异常统一包装为 DatabaseError，不做自动重试。
        """
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN")
            except duckdb.Error as e:
                raise DatabaseError(f"Failed to begin transaction: {e}") from e

            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    logger.warning("Rollback failed after error: %s", e)

                if isinstance(e, BaseApplicationError):
                    raise
                if "conflict" in str(e).lower() or "serialization" in str(e).lower():
                    raise ConcurrencyError("Store is busy, please retry") from e
                raise DatabaseError(f"Database operation failed: {e}") from e

    def execute_query(self, query: str, params: list = None) -> list:
        """执行查询并返回结果"""
        with self._lock:
            try:
                return self.connection.execute(query, params or []).fetchall()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}") from e

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        with self._lock:
            try:
                return self.connection.execute(query, params or []).fetchone()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}") from e


# 全局数据库管理器实例
db_manager = DatabaseManager()
