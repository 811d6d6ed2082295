"""
起動時の設定・DB初期化。

目的:
    - create_app() から初期化の詳細を切り離す。
    - 設定 -> ログ -> 保存DB -> 依存オブジェクトの順序を1箇所で固定する。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pill_pal.app_bootstrap.dependencies import reset_dependencies
from pill_pal.config import Config, ConfigStore, load_config, set_global_config_store
from pill_pal.logging_config import setup_logging
from pill_pal.storage.db import init_storage_db


def bootstrap_runtime_config(config: Optional[Config] = None, *, db_path: Optional[Path] = None) -> Config:
    """
    起動時の初期化を実行し、確定した Config を返す。

    Args:
        config: 読み込み済みの設定（省略時は config/setting.toml を読む）。
        db_path: 保存DBのパス（省略時は data/pillpal.db）。
    """

    # --- 1. TOML 設定を読み込み、ログ設定を先に確定する ---
    toml_config = config if config is not None else load_config()
    setup_logging(
        toml_config.log_level,
        log_file_enabled=toml_config.log_file_enabled,
        log_file_path=toml_config.log_file_path,
        log_file_max_bytes=toml_config.log_file_max_bytes,
    )

    # --- 2. グローバル設定ストアを登録する ---
    set_global_config_store(ConfigStore(toml_config))

    # --- 3. 保存DBを初期化し、古いシングルトンを捨てる ---
    init_storage_db(db_path)
    reset_dependencies()
    return toml_config
