"""
連絡先の接続状態（presence）判定。

実際の同期/在席確認サービスへ差し替えられるよう、判定はプロトコル越しに行う。
既定実装は電話番号末尾の偶奇で決める擬似判定（偶数 -> connected、それ以外 -> local）。
"""

from __future__ import annotations

from typing import Protocol

from pill_pal.records.models import CONTACT_STATUS_CONNECTED, CONTACT_STATUS_LOCAL


class PresenceChecker(Protocol):
    """電話番号から接続状態を返す。"""

    def check_status(self, phone: str) -> str:
        ...


class ParityPresenceChecker:
    """末尾の数字の偶奇で接続状態を決める擬似実装。"""

    def check_status(self, phone: str) -> str:
        last = str(phone or "").strip()[-1:]
        # --- 末尾が数字でなければ local 扱い ---
        if last and last in "02468":
            return CONTACT_STATUS_CONNECTED
        return CONTACT_STATUS_LOCAL
