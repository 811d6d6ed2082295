"""
アプリ共通の例外。

いずれもユーザー操作の時点で回復可能なエラーで、プロセスを止めるものではない。
API層では HTTP ステータスへ対応づけて返す。
"""

from __future__ import annotations


class PillPalError(Exception):
    """アプリ例外の基底。`status_code` は API 応答に使う。"""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = str(message)


class ValidationError(PillPalError):
    """入力値が不正（必須項目が空、件数超過、参照先が無いなど）。状態は変更されない。"""

    status_code = 400


class DuplicateNameError(ValidationError):
    """同名の処方が別IDで既に存在する。"""

    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f"prescription name already exists: {name}")
        self.name = str(name)


class QuotaExceededError(PillPalError):
    """自動入力の1日上限に達した。上流への呼び出しは行われない。"""

    status_code = 429


class UpstreamFailureError(PillPalError):
    """自動入力の上流（LLM）呼び出しに失敗した。フォームへのマージは行われない。"""

    status_code = 502
