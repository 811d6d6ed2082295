"""
HTTP / WebSocket 用の認証ユーティリティ（Cookie セッション）。

方針:
    - サインイン（/api/auth/verify）で発行した Cookie セッションを検証する。
    - セッションのユーザーが、現在サインイン中のユーザーと一致する場合だけ通す。
    - WebSocket は HTTP ステータスを返せないため、失敗時は policy violation(1008) で閉じる。
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, Request, WebSocket, status

from pill_pal.app_bootstrap.dependencies import get_record_store, get_web_session_store
from pill_pal.records.models import User


COOKIE_NAME = "pillpal_session"

logger = logging.getLogger(__name__)


def _resolve_session_user(session_id: str) -> Optional[User]:
    """セッションIDからサインイン中のユーザーを返す（無効なら None）。"""

    sid = str(session_id or "").strip()
    if not sid:
        return None
    user_id = get_web_session_store().validate_and_touch(sid)
    if user_id is None:
        return None

    # --- サインアウト済み、または別ユーザーでサインインし直した場合は無効 ---
    user = get_record_store().current_user
    if user is None or user.id != user_id:
        return None
    return user


def optional_session(request: Request) -> Optional[User]:
    """Cookie セッションが有効ならサインイン中のユーザー、無ければ None。"""

    return _resolve_session_user(str(request.cookies.get(COOKIE_NAME, "")))


def require_session(request: Request) -> User:
    """HTTP リクエストで Cookie セッションを必須にし、サインイン中のユーザーを返す。"""

    user = optional_session(request)
    if user is not None:
        return user
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")


async def authenticate_ws_session(websocket: WebSocket) -> bool:
    """
    WebSocket接続の Cookie セッションを検証する。

    認証失敗時はWS_1008_POLICY_VIOLATIONでクローズしてFalseを返す。
    """

    if _resolve_session_user(str(websocket.cookies.get(COOKIE_NAME, ""))) is not None:
        return True

    try:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    except RuntimeError as exc:
        logger.debug("events websocket close failed: %s", str(exc))
    return False
