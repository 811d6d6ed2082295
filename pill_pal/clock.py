"""
アプリ内時計

リマインダーと自動入力の日次カウンタは、ここから「今」を読む。
時刻の取得元（time_source）を差し替えられるので、テストでは任意の日時を再現できる。
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable


class ClockService:
    """time_source から現在時刻を読む時計。"""

    def __init__(self, *, time_source: Callable[[], float] = time.time) -> None:
        self._time_source = time_source

    def now_domain_utc_ts(self) -> float:
        """現在時刻（epoch 秒）。"""
        return float(self._time_source())

    def now_domain_local(self) -> datetime:
        """現在時刻をローカルタイムゾーンの naive datetime で返す。"""
        return datetime.fromtimestamp(self.now_domain_utc_ts())


_clock_service = ClockService()


def get_clock_service() -> ClockService:
    """プロセス共通の時計を返す。"""
    return _clock_service
