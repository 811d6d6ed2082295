"""
認証プロバイダ

電話番号に確認コードを送り、入力されたコードを照合してユーザーを返す。
既定の MockSmsAuthProvider は SMS を送らず（ログに残すだけ）、固定コードで照合する。
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from pill_pal.errors import ValidationError
from pill_pal.records.models import User


logger = logging.getLogger(__name__)

# 携帯電話番号（1 + 3〜9 + 9桁）
_PHONE_RE = re.compile(r"^1[3-9]\d{9}$")


def is_valid_phone(phone: str) -> bool:
    return bool(_PHONE_RE.match(str(phone or "").strip()))


class AuthProvider(Protocol):
    """サインイン用の認証手段。"""

    def request_code(self, phone: str) -> None:
        """確認コードを送る。電話番号が不正なら ValidationError。"""
        ...

    def verify(self, phone: str, code: str) -> User:
        """コードを照合してユーザーを返す。失敗時は ValidationError。"""
        ...


class MockSmsAuthProvider:
    """固定コードで照合する擬似SMS認証。"""

    def __init__(self, *, demo_code: str = "123456") -> None:
        code = str(demo_code or "").strip()
        if not code:
            raise ValueError("demo_code must not be empty")
        self._demo_code = code

    def request_code(self, phone: str) -> None:
        p = str(phone or "").strip()
        if not is_valid_phone(p):
            raise ValidationError("invalid phone number")
        # NOTE: 実際の送信は行わない。
        logger.info("verification code requested (not sent) phone=%s", p)

    def verify(self, phone: str, code: str) -> User:
        p = str(phone or "").strip()
        if not is_valid_phone(p):
            raise ValidationError("invalid phone number")
        if str(code or "").strip() != self._demo_code:
            logger.info("verification failed phone=%s", p)
            raise ValidationError("invalid verification code")
        return User(id=p, phone=p, is_new=True)
