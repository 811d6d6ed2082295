"""実行時サービス（イベント配信・定期実行）。"""

from __future__ import annotations
