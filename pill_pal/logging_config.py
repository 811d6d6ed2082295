"""
ログ設定

ルートロガーにコンソール出力と（任意で）ローテーション付きファイル出力を設定する。
uvicorn のアクセスログから、ポーリングで頻繁に叩かれるパスを除外するフィルタも提供する。
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str,
    *,
    log_file_enabled: bool = False,
    log_file_path: str | None = None,
    log_file_max_bytes: int = 200_000,
) -> None:
    """
    ルートロガーを設定する。

    多重呼び出しされても、自分で追加したハンドラだけを入れ替える。
    """

    # --- レベル名を正規化（不明値は INFO） ---
    level_name = str(level or "INFO").strip().upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # --- 以前に追加したハンドラを外す ---
    for h in list(root.handlers):
        if getattr(h, "_pill_pal_handler", False):
            root.removeHandler(h)
            h.close()

    formatter = logging.Formatter(_LOG_FORMAT)

    # --- コンソール ---
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._pill_pal_handler = True  # type: ignore[attr-defined]
    root.addHandler(console)

    # --- ファイル（ローテーション） ---
    if log_file_enabled and log_file_path:
        path = Path(log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max(1, int(log_file_max_bytes)),
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._pill_pal_handler = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)


class _PathFilter(logging.Filter):
    """uvicorn.access のレコードから特定パスを除外するフィルタ。"""

    def __init__(self, paths: tuple[str, ...]) -> None:
        super().__init__()
        self._paths = paths

    def filter(self, record: logging.LogRecord) -> bool:
        # --- uvicorn.access の args は (client, method, path, http_version, status) ---
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2] or "")
            return not any(path == p or path.startswith(p + "?") for p in self._paths)
        return True


def suppress_uvicorn_access_log_paths(*paths: str) -> None:
    """uvicorn のアクセスログから指定パスを除外する。"""

    logging.getLogger("uvicorn.access").addFilter(_PathFilter(tuple(paths)))
