"""
自動入力の日次カウンタ

ローカル日付ごとに利用回数を数え、上限との差を残り回数として返す。
呼び出し前に枠を確保し（try_reserve）、失敗したら返す（release）。
日付が変われば保存キーも変わるため、明示的なリセットは不要。
"""

from __future__ import annotations

import threading
from typing import Optional

from pill_pal.clock import ClockService, get_clock_service
from pill_pal.storage.repo import UsageCounterRepository
from pill_pal.time_utils import format_date


class DailyUsageCounter:
    """1日あたりの利用回数を管理する。"""

    def __init__(
        self,
        *,
        limit: int,
        repository: Optional[UsageCounterRepository] = None,
        clock: Optional[ClockService] = None,
    ) -> None:
        if int(limit) < 0:
            raise ValueError("limit must be >= 0")
        self.limit = int(limit)
        self.repository = repository or UsageCounterRepository()
        self.clock = clock or get_clock_service()
        self._lock = threading.Lock()

    def today(self) -> str:
        """カウンタのキーに使うローカル日付（YYYY-MM-DD）。"""
        return format_date(self.clock.now_domain_local())

    def used(self) -> int:
        return self.repository.get_count(self.today())

    def remaining(self) -> int:
        """今日の残り回数（0未満にはならない）。"""
        return max(0, self.limit - self.used())

    def try_reserve(self) -> Optional[str]:
        """
        今日の枠を1回分確保する。

        確保できたら枠の日付を返す（失敗時に release へ渡す）。上限に達していれば None。
        """
        date_str = self.today()
        with self._lock:
            used = self.repository.increment(date_str, limit=self.limit)
        return None if used is None else date_str

    def release(self, date_str: str) -> None:
        """try_reserve で確保した枠を返す。"""
        with self._lock:
            self.repository.decrement(date_str)
