"""
リマインダー発火判定（Reminder Evaluator）

tick ごとに「今この分に発火すべき処方」を判定する。

判定:
    - 有効（isActive）で、今日が [startDate, endDate]（両端含む）に入り、
      現在の "HH:MM" が reminderTimes に含まれる処方が対象。
    - 同じ分に何度 tick が来ても発火は1回だけ（10秒 tick なら1分に最大6回来る）。

重複排除:
    - 直近に発火した「日付+分」を1つだけ覚える（処方ごとではなく全体で1つ）。
    - 日付も含めるので、翌日の同じ時刻は再び発火する。
    - 同じ分に後から追加された処方は、その分には発火しない（次の時刻まで待つ）。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pill_pal.records.state import AppState
from pill_pal.time_utils import format_date, format_time_of_day, minute_key, parse_date


NOTIFICATION_TITLE = "服薬の時間です"


@dataclass(frozen=True)
class ReminderEvent:
    """1件の処方に対するリマインダー。"""

    prescription_id: str
    prescription_name: str
    due_date: str
    due_time: str
    medicine_names: tuple[str, ...] = ()
    contact_name: Optional[str] = None
    title: str = field(default=NOTIFICATION_TITLE)
    body: str = ""

    def to_payload(self) -> dict[str, Any]:
        """イベント配信用の dict を返す。"""
        return {
            "prescription_id": self.prescription_id,
            "prescription_name": self.prescription_name,
            "due_date": self.due_date,
            "due_time": self.due_time,
            "medicine_names": list(self.medicine_names),
            "contact_name": self.contact_name,
            "title": self.title,
            "body": self.body,
        }


def build_reminder_event(state: AppState, prescription_id: str, now: datetime) -> Optional[ReminderEvent]:
    """
    処方IDからリマインダーを組み立てる。

    解決できない薬品参照は名前一覧から外す（エラーにはしない）。
    """
    p = state.find_prescription(prescription_id)
    if p is None:
        return None

    medicine_names: list[str] = []
    for pm in p.medicines:
        med = state.find_medicine(pm.medicine_id)
        if med is not None and med.name:
            medicine_names.append(med.name)

    contact = state.find_contact(p.contact_id) if p.contact_id else None
    contact_name = contact.name if contact is not None else None

    title = f"{contact_name} さんへのリマインド: {NOTIFICATION_TITLE}" if contact_name else NOTIFICATION_TITLE
    body = f"処方: {p.name}\n服用する薬: {', '.join(medicine_names)}"
    return ReminderEvent(
        prescription_id=p.id,
        prescription_name=p.name,
        due_date=format_date(now),
        due_time=format_time_of_day(now),
        medicine_names=tuple(medicine_names),
        contact_name=contact_name,
        title=title,
        body=body,
    )


class ReminderEvaluator:
    """処方の発火判定。直近に発火した分だけをプロセス内に保持する（永続化しない）。"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_fired_minute: Optional[str] = None

    @property
    def last_fired_minute(self) -> Optional[str]:
        with self._lock:
            return self._last_fired_minute

    def reset(self) -> None:
        with self._lock:
            self._last_fired_minute = None

    def evaluate(self, now: datetime, state: AppState) -> list[ReminderEvent]:
        """
        現在時刻で発火すべきリマインダーを返す。

        Args:
            now: ローカルの現在時刻（naive datetime）。
            state: 判定に使う記録の状態。

        Returns:
            発火する処方ごとのリマインダー（同じ分の2回目以降は空）。
        """

        current_date = now.date()
        current_time = format_time_of_day(now)
        key = minute_key(now)

        with self._lock:
            # --- 同じ分は1回だけ ---
            if self._last_fired_minute == key:
                return []

            events: list[ReminderEvent] = []
            for p in state.prescriptions:
                if not p.is_active:
                    continue
                start = parse_date(p.start_date)
                end = parse_date(p.end_date)
                # --- 日付が読めない処方は対象外 ---
                if start is None or end is None:
                    continue
                if not (start <= current_date <= end):
                    continue
                if current_time not in p.reminder_times:
                    continue
                event = build_reminder_event(state, p.id, now)
                if event is not None:
                    events.append(event)
                    self._last_fired_minute = key
            return events
