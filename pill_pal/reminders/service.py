"""
リマインダーサービス

定期実行（tick）の入口。時計・記録ストア・発火判定・通知先をつなぐ。
tick は別スレッドから呼ばれる（asyncio.to_thread）。
"""

from __future__ import annotations

import logging
from typing import Optional

from pill_pal.clock import ClockService, get_clock_service
from pill_pal.records.store import RecordStore
from pill_pal.reminders.evaluator import ReminderEvaluator, ReminderEvent
from pill_pal.reminders.sink import (
    AlertFallback,
    EventStreamAlertFallback,
    EventStreamNotificationSink,
    NotificationSink,
)


logger = logging.getLogger(__name__)


class ReminderService:
    """リマインダーの定期判定と配信を行う。"""

    def __init__(
        self,
        *,
        store: RecordStore,
        clock: Optional[ClockService] = None,
        evaluator: Optional[ReminderEvaluator] = None,
        sink: Optional[NotificationSink] = None,
        fallback: Optional[AlertFallback] = None,
    ) -> None:
        self.store = store
        self.clock = clock or get_clock_service()
        self.evaluator = evaluator or ReminderEvaluator()
        self.sink = sink or EventStreamNotificationSink()
        self.fallback = fallback or EventStreamAlertFallback()

    def tick(self) -> list[ReminderEvent]:
        """
        1回分の判定を行い、発火したリマインダーを配信する。

        サインインしていない間は判定しない。
        """

        # --- 未サインインなら何もしない ---
        state = self.store.state
        if state.current_user is None:
            return []

        now = self.clock.now_domain_local()
        events = self.evaluator.evaluate(now, state)
        for event in events:
            self._deliver(event)
        return events

    def _deliver(self, event: ReminderEvent) -> None:
        """通知が使えれば通知、使えなければ代替アラートで知らせる。"""

        if self.sink.can_notify():
            logger.info(
                "reminder fired prescription_id=%s due=%s %s",
                event.prescription_id,
                event.due_date,
                event.due_time,
            )
            self.sink.notify(event)
            return
        self.fallback.alert(event)
