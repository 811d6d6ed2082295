"""
FastAPI エントリポイント

PillPal APIサーバーのメインモジュール。
アプリケーションの初期化、ルーターの登録、起動/終了イベントの処理を行う。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from pill_pal import __version__
from pill_pal.app_bootstrap.config_bootstrap import bootstrap_runtime_config
from pill_pal.app_bootstrap.lifecycle import register_lifecycle_hooks
from pill_pal.app_bootstrap.routers import register_http_routes
from pill_pal.config import Config


def create_app(config: Optional[Config] = None, *, db_path: Optional[Path] = None) -> FastAPI:
    """
    アプリ生成と初期化を行う。
    設定→ログ→保存DB→ルータ登録の順で初期化を実行する。
    """

    # --- 起動時の初期化 ---
    runtime_config = bootstrap_runtime_config(config, db_path=db_path)

    # --- FastAPI アプリ生成と配線 ---
    app = FastAPI(title="PillPal API", version=__version__)
    register_http_routes(app)
    register_lifecycle_hooks(app, config=runtime_config)
    return app
