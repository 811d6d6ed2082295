"""
WebSocket 向けアプリイベント配信

リマインダー（reminder.notification / reminder.alert）を接続中のクライアントへ送る。

- publish() はどのスレッドからでも呼べる（リマインダー判定はワーカースレッドで動く）。
  イベントはループ側のキューへ渡し、dispatcher タスクが順に送信する。
- クライアントは hello で client_id と caps を申告する。caps に "notification" があれば、
  通知の表示許可を得たクライアントとして扱う。
- 送信が詰まったクライアントは切り離す。キューが満杯のときはイベントを捨ててログに残す。
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import WebSocket


logger = logging.getLogger(__name__)

CAP_NOTIFICATION = "notification"

_QUEUE_MAXSIZE = 1000
_SEND_TIMEOUT_SECONDS = 2.0


@dataclass
class AppEvent:
    """接続中の全クライアントへ配信するイベント。"""

    type: str
    data: dict[str, Any]

    def to_json(self) -> str:
        return json.dumps({"type": self.type, "data": self.data}, ensure_ascii=False, separators=(",", ":"))


@dataclass
class _Subscriber:
    ws: "WebSocket"
    client_id: Optional[str] = None
    caps: frozenset[str] = field(default_factory=frozenset)


class EventHub:
    """購読クライアントと配信キューをまとめて持つ。"""

    def __init__(self) -> None:
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.queue: Optional[asyncio.Queue[AppEvent]] = None
        self.dispatch_task: Optional[asyncio.Task[None]] = None
        # NOTE: ws をキーにする。dict の読み取りは他スレッドからも行う（概数で十分な用途のみ）。
        self.subscribers: dict["WebSocket", _Subscriber] = {}

    def _offer(self, event: AppEvent) -> None:
        """ループ上でキューへ入れる（満杯なら捨てる）。"""
        if self.queue is None:
            return
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("event dropped (queue full) type=%s", event.type)

    async def _send(self, sub: _Subscriber, payload: str) -> bool:
        try:
            await asyncio.wait_for(sub.ws.send_text(payload), timeout=_SEND_TIMEOUT_SECONDS)
            return True
        except Exception as exc:  # noqa: BLE001
            logger.info("event client dropped client_id=%s error=%s", sub.client_id, exc)
            return False

    async def run_dispatch(self) -> None:
        assert self.queue is not None
        while True:
            event = await self.queue.get()
            recipients = list(self.subscribers.values())
            logger.info("event send type=%s recipients=%s", event.type, len(recipients))
            payload = event.to_json()
            for sub in recipients:
                if not await self._send(sub, payload):
                    self.subscribers.pop(sub.ws, None)


_hub = EventHub()


def install(loop: asyncio.AbstractEventLoop) -> None:
    """配信に使うイベントループとキューを用意する（2回目以降は無視）。"""
    if _hub.queue is not None:
        return
    _hub.loop = loop
    _hub.queue = asyncio.Queue(maxsize=_QUEUE_MAXSIZE)
    logger.info("event stream installed")


def uninstall() -> None:
    """install 前の状態へ戻す（アプリ再生成やテスト用）。"""
    _hub.loop = None
    _hub.queue = None
    _hub.dispatch_task = None
    _hub.subscribers.clear()


async def start_dispatcher() -> None:
    if _hub.dispatch_task is not None:
        return
    if _hub.queue is None:
        raise RuntimeError("event stream is not installed")
    _hub.dispatch_task = asyncio.get_running_loop().create_task(_hub.run_dispatch(), name="event_stream_dispatch")


async def stop_dispatcher() -> None:
    task, _hub.dispatch_task = _hub.dispatch_task, None
    if task is None:
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


def publish(*, type: str, data: Optional[dict[str, Any]] = None) -> bool:
    """
    イベントを配信キューへ渡す。

    未 install、またはループ終了後は False（イベントは捨てる）。
    """
    loop = _hub.loop
    if loop is None or _hub.queue is None:
        return False
    event = AppEvent(type=type, data=dict(data or {}))
    try:
        loop.call_soon_threadsafe(_hub._offer, event)
    except RuntimeError:
        # --- shutdown 中に loop が閉じた ---
        return False
    return True


async def add_client(ws: "WebSocket") -> None:
    _hub.subscribers.setdefault(ws, _Subscriber(ws=ws))


async def remove_client(ws: "WebSocket") -> None:
    _hub.subscribers.pop(ws, None)


def register_client_identity(ws: "WebSocket", *, client_id: str, caps: Optional[list[str]] = None) -> None:
    """hello で申告された client_id と caps を接続に紐づける。"""
    cid = str(client_id or "").strip()
    sub = _hub.subscribers.get(ws)
    if not cid or sub is None:
        return
    sub.client_id = cid
    sub.caps = frozenset(str(c) for c in (caps or []))
    logger.info("event client registered client_id=%s caps=%s", cid, sorted(sub.caps))


def has_client_with_capability(cap: str) -> bool:
    """指定 cap を申告した接続中クライアントがあれば True。"""
    return any(cap in s.caps for s in list(_hub.subscribers.values()))
