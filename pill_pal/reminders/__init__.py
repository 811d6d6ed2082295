"""
リマインダー機能パッケージ。

目的:
    - 発火判定（evaluator）/ 通知先（sink）/ 定期実行の入口（service）を1箇所へ集約する。
"""

from __future__ import annotations
