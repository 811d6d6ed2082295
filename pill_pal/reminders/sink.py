"""
リマインダーの通知先（Notification Sink）

通知の表示許可を持つクライアントが居れば通知として配信し、
居なければ代替として「アラート」をブロードキャストし、サーバーログにも残す。
"""

from __future__ import annotations

import logging
from typing import Protocol

from pill_pal.reminders.evaluator import ReminderEvent
from pill_pal.runtime import event_stream


logger = logging.getLogger(__name__)

EVENT_TYPE_NOTIFICATION = "reminder.notification"
EVENT_TYPE_ALERT = "reminder.alert"


class NotificationSink(Protocol):
    """通知の表示先。"""

    def can_notify(self) -> bool:
        """通知を表示できる状態（許可済み・接続済み）なら True。"""
        ...

    def notify(self, event: ReminderEvent) -> None:
        ...


class AlertFallback(Protocol):
    """通知が使えないときの代替表示。"""

    def alert(self, event: ReminderEvent) -> None:
        ...


class EventStreamNotificationSink:
    """通知の表示許可を申告したクライアントへ WebSocket で配信する。"""

    def can_notify(self) -> bool:
        return event_stream.has_client_with_capability(event_stream.CAP_NOTIFICATION)

    def notify(self, event: ReminderEvent) -> None:
        event_stream.publish(type=EVENT_TYPE_NOTIFICATION, data=event.to_payload())


class EventStreamAlertFallback:
    """全クライアントへアラートを配信し、受け手が居なくてもサーバーログへ残す。"""

    def alert(self, event: ReminderEvent) -> None:
        logger.warning(
            "reminder alert (notification unavailable) prescription_id=%s title=%s body=%s",
            event.prescription_id,
            event.title,
            event.body.replace("\n", " / "),
        )
        event_stream.publish(type=EVENT_TYPE_ALERT, data=event.to_payload())
