"""
/events/stream（WebSocket）

リマインダーの通知（reminder.notification）と代替アラート（reminder.alert）を受け取るための接続。

クライアント -> サーバー:
    {"type": "hello", "client_id": "...", "caps": ["notification"]}
    caps に "notification" を含めるのは、ブラウザ等で通知の表示許可を得ている場合だけ。
サーバー -> クライアント:
    {"type": "hello.ack", "data": {...}} と、各イベント {"type": ..., "data": {...}}
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from pill_pal.api.http_auth import authenticate_ws_session
from pill_pal.runtime import event_stream


router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)


def parse_hello(text: str) -> Optional[tuple[str, list[str]]]:
    """hello メッセージなら (client_id, caps) を返す。それ以外や不正な形式は None。"""

    try:
        msg = json.loads(text or "")
    except json.JSONDecodeError:
        return None
    if not isinstance(msg, dict) or msg.get("type") != "hello":
        return None
    client_id = str(msg.get("client_id") or "").strip()
    if not client_id:
        return None
    caps = msg.get("caps")
    return client_id, ([str(c) for c in caps] if isinstance(caps, list) else [])


@router.websocket("/stream")
async def stream_events(websocket: WebSocket) -> None:
    # NOTE: accept してから認証し、失敗は 1008 で閉じる（クライアントが認証失敗と判別できる）。
    await websocket.accept()
    if not await authenticate_ws_session(websocket):
        logger.info("events websocket rejected (no session)")
        return

    await event_stream.add_client(websocket)
    try:
        while True:
            hello = parse_hello(await websocket.receive_text())
            if hello is None:
                continue
            client_id, caps = hello
            event_stream.register_client_identity(websocket, client_id=client_id, caps=caps)
            await websocket.send_json({"type": "hello.ack", "data": {"client_id": client_id, "caps": caps}})
    except WebSocketDisconnect:
        logger.info("events websocket closed by client")
    finally:
        await event_stream.remove_client(websocket)
