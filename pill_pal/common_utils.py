"""
共通ユーティリティ（保存用 JSON の最小セット）。

方針:
    - 「何でも入れる utils」にはしない。
    - 壊れた値を例外にするか空にするかは用途が違うため、APIを分ける（json_loads_list / json_loads_maybe）。
"""

from __future__ import annotations

import json
from typing import Any


def json_dumps(payload: Any) -> str:
    """DB保存向けにJSONを安定した形式でダンプする（非ASCII文字を保持）。"""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def json_loads_list(text_in: str | None) -> list[Any]:
    """JSON文字列を list として読む（空文字は空list）。不正なJSONは例外。"""
    s = str(text_in or "").strip()
    if not s:
        return []
    obj = json.loads(s)
    if not isinstance(obj, list):
        raise ValueError("expected a JSON array")
    return obj


def json_loads_maybe(text_in: str | None) -> dict[str, Any]:
    """JSON文字列をdictとして読む（失敗時は空dict）。"""
    try:
        obj = json.loads(str(text_in or ""))
        return obj if isinstance(obj, dict) else {}
    except Exception:  # noqa: BLE001
        return {}
