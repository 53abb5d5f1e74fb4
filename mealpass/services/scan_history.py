"""
扫码台最近扫描记录
仅用于前台展示，进程内保存，任何核销判断都不读取它
"""

import threading
from collections import OrderedDict
from typing import List

from ..models.verification import VerificationResult


class RecentScanHistory:
    """有界、最新在前、按 booking_id 去重的扫描记录"""

    def __init__(self, limit: int = 10):
        self.limit = limit
        self._entries: "OrderedDict[str, VerificationResult]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, result: VerificationResult):
        # 无法解析到预订的扫码没有可展示的内容
        if result.booking is None or self.limit <= 0:
            return
        key = result.booking.booking_id
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = result
            while len(self._entries) > self.limit:
                self._entries.popitem(last=False)

    def recent(self) -> List[VerificationResult]:
        with self._lock:
            return list(reversed(self._entries.values()))

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
