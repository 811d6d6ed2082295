"""
記録（薬品・処方・連絡先）パッケージ。

目的:
    - 値オブジェクト / 状態 reducer / ストアを1箇所へ集約する。
"""

from __future__ import annotations
