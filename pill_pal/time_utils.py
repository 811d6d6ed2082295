"""
時刻ユーティリティ

リマインダー時刻（"HH:MM"）と日付（"YYYY-MM-DD"）の文字列表現を扱う。
どちらもタイムゾーンを持たず、実行環境のローカル時刻として解釈する。
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_time_of_day(value: str) -> bool:
    """24時間表記・ゼロ埋めの "HH:MM" なら True。"""
    return bool(_TIME_OF_DAY_RE.match(str(value or "")))


def format_time_of_day(dt: datetime) -> str:
    """datetime を分精度の "HH:MM" にする。"""
    return dt.strftime("%H:%M")


def format_date(d: date | datetime) -> str:
    """日付を "YYYY-MM-DD" にする。"""
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


def parse_date(value: str) -> Optional[date]:
    """
    "YYYY-MM-DD" を date に変換する。

    空文字や不正な形式は None を返す。
    """
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def minute_key(dt: datetime) -> str:
    """日付+分の識別キー（例: "2024-05-01 08:00"）を返す。"""
    return f"{format_date(dt)} {format_time_of_day(dt)}"
