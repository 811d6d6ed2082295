"""
アプリ起動配線パッケージ。

目的:
    - 起動時の配線を `main.py` から分離する。
    - 初期化手順を責務ごとに読みやすく保つ。

NOTE: api 層が dependencies を import するため、ここでは routers / lifecycle を読み込まない。
"""

from __future__ import annotations

from pill_pal.app_bootstrap.config_bootstrap import bootstrap_runtime_config
from pill_pal.app_bootstrap.dependencies import (
    get_auth_provider,
    get_autofill_service,
    get_llm_client,
    get_record_store,
    get_reminder_service,
    get_web_session_store,
    reset_dependencies,
)

__all__ = [
    "bootstrap_runtime_config",
    "get_auth_provider",
    "get_autofill_service",
    "get_llm_client",
    "get_record_store",
    "get_reminder_service",
    "get_web_session_store",
    "reset_dependencies",
]
