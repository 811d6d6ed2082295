"""
HTTP ルート登録。

目的:
    - router 登録と例外ハンドラの配線をまとめる。
    - `main.py` から HTTP 配線の詳細を外す。
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from pill_pal.api import auth, autofill, contacts, events, medicines, prescriptions
from pill_pal.api.http_auth import require_session
from pill_pal.errors import PillPalError


logger = logging.getLogger(__name__)


def register_http_routes(app: FastAPI) -> None:
    """
    API router と例外ハンドラを登録する。
    """

    # --- セッション必須の API router を登録する ---
    # NOTE: autofill は /medicines/autofill を先に登録し、/medicines/{id} より優先させる。
    app.include_router(autofill.router, dependencies=[Depends(require_session)], prefix="/api")
    app.include_router(medicines.router, dependencies=[Depends(require_session)], prefix="/api")
    app.include_router(prescriptions.router, dependencies=[Depends(require_session)], prefix="/api")
    app.include_router(contacts.router, dependencies=[Depends(require_session)], prefix="/api")

    # --- 認証方式ごとの例外 router を登録する ---
    app.include_router(auth.router, prefix="/api")
    app.include_router(events.router, prefix="/api")

    # --- アプリ例外を HTTP ステータスへ対応づける ---
    @app.exception_handler(PillPalError)
    async def handle_pill_pal_error(request: Request, exc: PillPalError) -> JSONResponse:
        """PillPalError を {"detail": message} で返す。"""

        logger.info(
            "request rejected path=%s status=%s error=%s",
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(status_code=int(exc.status_code), content={"detail": exc.message})

    # --- ヘルスチェックを登録する ---
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        """稼働確認用のヘルスチェックを返す。"""

        return {"status": "healthy"}
