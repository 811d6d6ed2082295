"""
Cookie セッション（メモリ保存）

サインイン（/api/auth/verify）で発行し、記録の API とイベントストリームの認証に使う。
プロセスを再起動するとすべて消える（再度サインインが必要）。
期限はアイドルタイムアウトで、有効なアクセスのたびに ttl だけ延びる。
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    session_id: str
    user_id: str
    expires_at_unix: float


class WebSessionStore:
    """session_id -> SessionInfo のメモリ辞書。"""

    def __init__(self, *, ttl_seconds: int = 24 * 60 * 60, time_source: Callable[[], float] = time.time) -> None:
        if int(ttl_seconds) <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = float(ttl_seconds)
        self._now = time_source
        self._by_id: dict[str, SessionInfo] = {}
        self._lock = threading.Lock()

    def create(self, *, user_id: str) -> SessionInfo:
        info = SessionInfo(
            session_id=secrets.token_urlsafe(32),
            user_id=str(user_id),
            expires_at_unix=float(self._now()) + self._ttl,
        )
        with self._lock:
            self._by_id[info.session_id] = info
        logger.info("web session created user_id=%s", info.user_id)
        return info

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._by_id.pop(str(session_id or "").strip(), None)

    def validate_and_touch(self, session_id: str) -> Optional[str]:
        """有効なら期限を延ばしてユーザーIDを返す。無効・期限切れは None。"""

        now = float(self._now())
        with self._lock:
            info = self._by_id.get(str(session_id or "").strip())
            if info is None:
                return None
            if info.expires_at_unix <= now:
                del self._by_id[info.session_id]
                return None
            info.expires_at_unix = now + self._ttl
            return info.user_id

    def cleanup_expired(self) -> int:
        """期限切れを削除して件数を返す。"""

        now = float(self._now())
        with self._lock:
            expired = [sid for sid, info in self._by_id.items() if info.expires_at_unix <= now]
            for sid in expired:
                del self._by_id[sid]
        if expired:
            logger.info("web sessions expired removed=%s", len(expired))
        return len(expired)
