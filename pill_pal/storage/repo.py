"""
pillpal.db へのアクセス。

目的:
    - キー/値（blob）の読み書きを1箇所に集約する。
    - AppState の保存/復元（3コレクション + ユーザー）と、自動入力の日次カウンタを提供する。

保存キー:
    - pillpal_medicines / pillpal_prescriptions / pillpal_contacts: JSON配列
    - pillpal_user: JSONオブジェクト（サインアウト時は行ごと削除）
    - pillpal_ds_limit_<YYYY-MM-DD>: 当日の自動入力成功回数
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from pill_pal import common_utils
from pill_pal.records.models import Contact, Medicine, Prescription, User
from pill_pal.records.state import AppState
from pill_pal.storage.db import storage_session_scope
from pill_pal.storage.models import KvBlob


logger = logging.getLogger(__name__)

KEY_MEDICINES = "pillpal_medicines"
KEY_PRESCRIPTIONS = "pillpal_prescriptions"
KEY_CONTACTS = "pillpal_contacts"
KEY_USER = "pillpal_user"
USAGE_KEY_PREFIX = "pillpal_ds_limit_"


def _get(db: Session, key: str) -> Optional[str]:
    row = db.get(KvBlob, key)
    return None if row is None else str(row.value)


def _put(db: Session, key: str, value: str, *, now_ts: int) -> None:
    row = db.get(KvBlob, key)
    if row is None:
        db.add(KvBlob(key=key, value=value, updated_at=now_ts))
        return
    row.value = value
    row.updated_at = now_ts


def _delete(db: Session, key: str) -> None:
    row = db.get(KvBlob, key)
    if row is not None:
        db.delete(row)


def serialize_state(state: AppState) -> dict[str, Optional[str]]:
    """AppState を保存キーごとの文字列へ変換する（ユーザー未設定は None）。"""
    return {
        KEY_MEDICINES: common_utils.json_dumps([m.to_dict() for m in state.medicines]),
        KEY_PRESCRIPTIONS: common_utils.json_dumps([p.to_dict() for p in state.prescriptions]),
        KEY_CONTACTS: common_utils.json_dumps([c.to_dict() for c in state.contacts]),
        KEY_USER: (None if state.current_user is None else common_utils.json_dumps(state.current_user.to_dict())),
    }


def deserialize_state(blobs: dict[str, Optional[str]]) -> AppState:
    """保存キーごとの文字列から AppState を復元する。"""
    user_raw = blobs.get(KEY_USER)
    user_obj = common_utils.json_loads_maybe(user_raw) if user_raw else {}
    return AppState(
        current_user=(User.from_dict(user_obj) if user_obj else None),
        medicines=tuple(Medicine.from_dict(x) for x in common_utils.json_loads_list(blobs.get(KEY_MEDICINES))),
        prescriptions=tuple(
            Prescription.from_dict(x) for x in common_utils.json_loads_list(blobs.get(KEY_PRESCRIPTIONS))
        ),
        contacts=tuple(Contact.from_dict(x) for x in common_utils.json_loads_list(blobs.get(KEY_CONTACTS))),
    )


class StatePersistence:
    """AppState を pillpal.db へ保存/復元するアダプタ。"""

    def load(self) -> AppState:
        """保存済みの状態を読み込む（未保存なら空の状態）。"""

        with storage_session_scope() as db:
            blobs = {k: _get(db, k) for k in (KEY_MEDICINES, KEY_PRESCRIPTIONS, KEY_CONTACTS, KEY_USER)}
        state = deserialize_state(blobs)
        logger.info(
            "state loaded medicines=%s prescriptions=%s contacts=%s signed_in=%s",
            len(state.medicines),
            len(state.prescriptions),
            len(state.contacts),
            state.current_user is not None,
        )
        return state

    def flush(self, state: AppState) -> None:
        """3コレクションとユーザーを1トランザクションで書き込む。"""

        now_ts = int(time.time())
        serialized = serialize_state(state)
        with storage_session_scope() as db:
            for key, value in serialized.items():
                if value is None:
                    _delete(db, key)
                else:
                    _put(db, key, value, now_ts=now_ts)


def _read_count(db: Session, key: str) -> int:
    raw = _get(db, key)
    try:
        return max(0, int(str(raw or "0").strip() or "0"))
    except ValueError:
        logger.warning("usage counter value is broken; treated as 0 key=%s", key)
        return 0


class UsageCounterRepository:
    """日付キーごとの利用回数を保存する。日付が変われば別キーになり、自然に0から数え直す。"""

    def __init__(self, *, key_prefix: str = USAGE_KEY_PREFIX) -> None:
        self.key_prefix = str(key_prefix)

    def _key(self, date_str: str) -> str:
        return f"{self.key_prefix}{date_str}"

    def get_count(self, date_str: str) -> int:
        """指定日の利用回数を返す（未記録や壊れた値は0）。"""

        with storage_session_scope() as db:
            return _read_count(db, self._key(date_str))

    def increment(self, date_str: str, *, limit: Optional[int] = None) -> Optional[int]:
        """
        指定日の利用回数を1増やして新しい値を返す。古い日付のキーは掃除する。

        limit を指定した場合、すでに limit 回に達していれば何もせず None を返す。
        判定と書き込みは同じトランザクションで行う。
        """

        key = self._key(date_str)
        with storage_session_scope() as db:
            current = _read_count(db, key)
            if limit is not None and current >= int(limit):
                return None
            _put(db, key, str(current + 1), now_ts=int(time.time()))

            # --- 前日以前のカウンタは不要なので消す ---
            stale = db.query(KvBlob).filter(KvBlob.key.like(f"{self.key_prefix}%"), KvBlob.key != key).all()
            for row in stale:
                db.delete(row)
        return current + 1

    def decrement(self, date_str: str) -> int:
        """指定日の利用回数を1減らす（0未満にはしない）。"""

        key = self._key(date_str)
        with storage_session_scope() as db:
            current = _read_count(db, key)
            if current > 0:
                _put(db, key, str(current - 1), now_ts=int(time.time()))
        return max(0, current - 1)
