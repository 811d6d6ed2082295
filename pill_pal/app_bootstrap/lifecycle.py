"""
アプリライフサイクル登録。

startup:
    1. uvicorn access log のノイズ抑制
    2. 記録ストアの読み込み
    3. WebSocket イベント配信の起動
    4. 定期処理（リマインダー判定、セッション掃除）の起動
shutdown は定期処理 -> イベント配信の順に止める（停止後の publish を避ける）。
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI

from pill_pal.app_bootstrap.dependencies import get_record_store, get_reminder_service, get_web_session_store
from pill_pal.config import Config
from pill_pal.logging_config import suppress_uvicorn_access_log_paths
from pill_pal.runtime import event_stream
from pill_pal.runtime.periodic import start_periodic, stop_all_periodic


logger = logging.getLogger(__name__)

_SESSION_SWEEP_SECONDS = 60.0


def register_lifecycle_hooks(app: FastAPI, *, config: Config) -> None:
    """FastAPI の startup / shutdown フックを登録する。"""

    @app.on_event("startup")
    async def on_startup() -> None:
        # --- クライアントのポーリングで埋まりやすいパスは access log から外す ---
        suppress_uvicorn_access_log_paths("/api/health", "/api/medicines/autofill/remaining")

        # --- 保存済みの状態を読み込む（DB I/O はスレッドで） ---
        store = await asyncio.to_thread(get_record_store)

        # --- 配信を先に用意してから、publish する定期処理を動かす ---
        event_stream.install(asyncio.get_running_loop())
        await event_stream.start_dispatcher()

        start_periodic(
            app,
            name="reminder_tick",
            interval_seconds=config.reminder_tick_seconds,
            func=lambda: get_reminder_service().tick(),
        )
        start_periodic(
            app,
            name="web_session_sweep",
            interval_seconds=_SESSION_SWEEP_SECONDS,
            func=lambda: get_web_session_store().cleanup_expired(),
        )
        logger.info("startup complete signed_in=%s", store.current_user is not None)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await stop_all_periodic(app)
        await event_stream.stop_dispatcher()
        event_stream.uninstall()
        logger.info("shutdown complete")
