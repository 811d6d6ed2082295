"""
保存先パスの解決。

目的:
    - 設定（config/）、データ（data/）、ログ（logs/）の置き場所を1箇所に集約する。
    - テストや配布先で置き場所を変えられるよう、環境変数 `PILLPAL_HOME` を最優先にする。
"""

from __future__ import annotations

import os
from pathlib import Path


_HOME_ENV_KEY = "PILLPAL_HOME"


def get_app_root_dir() -> Path:
    """アプリのルートディレクトリを返す。"""

    # --- 環境変数があれば最優先 ---
    raw = str(os.environ.get(_HOME_ENV_KEY, "") or "").strip()
    if raw:
        return Path(raw).expanduser().resolve()

    # --- 既定はリポジトリ直下（pill_pal/ の1つ上） ---
    return Path(__file__).resolve().parent.parent


def _ensure_dir(path: Path) -> Path:
    """ディレクトリを作成して返す。"""

    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """config/ ディレクトリを返す（無ければ作成）。"""

    return _ensure_dir(get_app_root_dir() / "config")


def get_data_dir() -> Path:
    """data/ ディレクトリを返す（無ければ作成）。"""

    return _ensure_dir(get_app_root_dir() / "data")


def get_logs_dir() -> Path:
    """logs/ ディレクトリを返す（無ければ作成）。"""

    return _ensure_dir(get_app_root_dir() / "logs")


def get_default_config_file_path() -> Path:
    """既定の設定ファイル（config/setting.toml）のパスを返す。"""

    return get_config_dir() / "setting.toml"


def resolve_path_under_app_root(path: str | Path) -> Path:
    """相対パスなら app_root 基準で解決する。絶対パスはそのまま返す。"""

    p = Path(path).expanduser()
    if p.is_absolute():
        return p.resolve()
    return (get_app_root_dir() / p).resolve()
