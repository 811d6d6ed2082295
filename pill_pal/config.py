"""
設定（config/setting.toml）

起動時に一度だけ TOML を読み、Config に固めて ConfigStore 経由で各モジュールへ渡す。
知らないキーは打ち間違いとみなして起動を止める。
"""

from __future__ import annotations

import dataclasses
import pathlib
import threading
from typing import Any, Optional

import tomli

from pill_pal import paths


@dataclasses.dataclass(frozen=True)
class Config:
    """起動設定。実行中は変更しない。"""

    pillpal_port: int
    log_level: str  # DEBUG / INFO / WARNING / ERROR
    log_file_path: str
    log_file_enabled: bool = False
    log_file_max_bytes: int = 200_000
    llm_model: str = "deepseek/deepseek-chat"
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None
    llm_timeout_seconds: int = 15
    llm_log_level: str = "INFO"  # DEBUG / INFO / OFF
    autofill_daily_limit: int = 10  # 0 で自動入力を止める
    reminder_tick_seconds: float = 10.0
    auth_demo_code: str = "123456"
    web_session_ttl_seconds: int = 24 * 60 * 60


_REQUIRED_KEYS = ("pillpal_port", "log_level")
_KNOWN_KEYS = frozenset(f.name for f in dataclasses.fields(Config))


class ConfigStore:
    """Config をスレッド間で共有するための入れ物。"""

    def __init__(self, toml_config: Config) -> None:
        self._config = toml_config
        self._guard = threading.Lock()

    @property
    def config(self) -> Config:
        with self._guard:
            return self._config


def _blank_to_none(value: Any) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _check(ok: bool, message: str) -> None:
    if not ok:
        raise ValueError(message)


def parse_config(data: dict) -> Config:
    """
    TOML の辞書から Config を作る。

    Raises:
        ValueError: 未知のキー、必須キーの欠落、範囲外の値。
    """

    unknown = sorted(set(data) - _KNOWN_KEYS)
    _check(not unknown, f"unknown config key(s): {', '.join(unknown)}")
    for key in _REQUIRED_KEYS:
        _check(data.get(key) not in (None, ""), f"config key '{key}' is required")

    defaults = Config(pillpal_port=0, log_level="INFO", log_file_path="")
    values = {k: data.get(k, getattr(defaults, k)) for k in _KNOWN_KEYS if k != "log_file_path"}

    # 相対パスはアプリのルート基準
    log_file_path = data.get("log_file_path") or str(paths.get_logs_dir() / "pill_pal.log")

    cfg = Config(
        pillpal_port=int(values["pillpal_port"]),
        log_level=str(values["log_level"]),
        log_file_path=str(paths.resolve_path_under_app_root(log_file_path)),
        log_file_enabled=bool(values["log_file_enabled"]),
        log_file_max_bytes=int(values["log_file_max_bytes"]),
        llm_model=str(values["llm_model"]),
        llm_api_key=_blank_to_none(values["llm_api_key"]),
        llm_base_url=_blank_to_none(values["llm_base_url"]),
        llm_timeout_seconds=int(values["llm_timeout_seconds"]),
        llm_log_level=str(values["llm_log_level"]),
        autofill_daily_limit=int(values["autofill_daily_limit"]),
        reminder_tick_seconds=float(values["reminder_tick_seconds"]),
        auth_demo_code=str(values["auth_demo_code"]).strip(),
        web_session_ttl_seconds=int(values["web_session_ttl_seconds"]),
    )

    _check(cfg.llm_timeout_seconds > 0, "llm_timeout_seconds must be > 0")
    _check(cfg.autofill_daily_limit >= 0, "autofill_daily_limit must be >= 0")
    # 1分に1回以上判定しないと、その分の服薬時刻を取りこぼす
    _check(0 < cfg.reminder_tick_seconds < 60, "reminder_tick_seconds must be in (0, 60)")
    _check(cfg.web_session_ttl_seconds > 0, "web_session_ttl_seconds must be > 0")
    _check(bool(cfg.auth_demo_code), "auth_demo_code must not be empty")
    return cfg


def load_config(path: str | pathlib.Path | None = None) -> Config:
    """setting.toml を読む（既定は <app_root>/config/setting.toml）。無ければ FileNotFoundError。"""

    target = paths.resolve_path_under_app_root(
        pathlib.Path(path) if path is not None else paths.get_default_config_file_path()
    )
    if not target.is_file():
        raise FileNotFoundError(f"config file not found: {target}")
    with target.open("rb") as fp:
        return parse_config(tomli.load(fp))


_config_store: ConfigStore | None = None


def set_global_config_store(store: ConfigStore) -> None:
    global _config_store
    _config_store = store


def get_config_store() -> ConfigStore:
    """起動処理で設定済みの ConfigStore を返す。未設定なら RuntimeError。"""
    if _config_store is None:
        raise RuntimeError("ConfigStore not initialized")
    return _config_store
