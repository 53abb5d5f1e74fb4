"""
操作日志
预订的创建/取消/核销以及被拒绝的扫码都以 JSON 写入 logs 表

伴随状态变更的日志必须传入事务连接 conn，与状态写入一起提交或回滚
"""

import json
import logging
from typing import Any, Dict, Optional

import duckdb

from ..core.database import DatabaseManager, db_manager

logger = logging.getLogger(__name__)

INSERT_LOG_SQL = "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)"


class AuditLog:
    """logs 表写入器"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db if db is not None else db_manager

    def record(self, action: str, user_id: Optional[str], actor_id: Optional[str],
               detail: Dict[str, Any], conn: Optional[duckdb.DuckDBPyConnection] = None):
        params = [user_id, actor_id, action, json.dumps(detail, default=str)]
        if conn is not None:
            conn.execute(INSERT_LOG_SQL, params)
        else:
            self.db.execute_one(INSERT_LOG_SQL, params)
        logger.info("%s user=%s actor=%s %s", action, user_id, actor_id, detail)
