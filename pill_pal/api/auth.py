"""
サインイン API（Cookie セッション）。

エンドポイント:
    - POST /api/auth/request-code : 確認コードの送信要求（擬似SMS）
    - POST /api/auth/verify       : コードを照合し、ユーザーをサインインさせて Cookie セッションを発行
    - POST /api/auth/logout       : セッション破棄（有効なセッションならサインアウト）と Cookie 削除
    - GET  /api/auth/me           : サインイン中のユーザー
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from pill_pal import schemas
from pill_pal.api.http_auth import COOKIE_NAME, optional_session, require_session
from pill_pal.app_bootstrap.dependencies import get_auth_provider, get_record_store, get_web_session_store
from pill_pal.auth.provider import AuthProvider
from pill_pal.records.models import User
from pill_pal.records.store import RecordStore


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/request-code", status_code=status.HTTP_204_NO_CONTENT)
def request_code(
    request: schemas.RequestCodeRequest,
    provider: AuthProvider = Depends(get_auth_provider),
) -> Response:
    """確認コードの送信を要求する。"""

    provider.request_code(request.phone)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/verify", response_model=schemas.VerifyResponse)
def verify(
    request: schemas.VerifyRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    store: RecordStore = Depends(get_record_store),
) -> JSONResponse:
    """
    コードを照合してサインインさせ、Cookie セッションを発行する。

    NOTE: サーバ側がアイドルタイムアウトで無効化するため、Cookie の寿命は長めでよい。
    """

    user = provider.verify(request.phone, request.code)
    store.sign_in(user)
    session = get_web_session_store().create(user_id=user.id)

    body = schemas.VerifyResponse(user=schemas.UserResponse.from_record(user), request_notification_permission=True)
    resp = JSONResponse(content=body.model_dump(by_alias=True))
    resp.set_cookie(
        key=COOKIE_NAME,
        value=str(session.session_id),
        httponly=True,
        samesite="strict",
        max_age=30 * 24 * 60 * 60,
        path="/",
    )
    return resp


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(raw_request: Request, store: RecordStore = Depends(get_record_store)) -> Response:
    """
    セッションを破棄する。

    サインアウトするのは、Cookie のセッションがサインイン中のユーザーのものである場合だけ。
    Cookie が無い・無効なときは何もせず 204 を返す。
    """

    user = optional_session(raw_request)
    sid = str(raw_request.cookies.get(COOKIE_NAME, "")).strip()
    if sid:
        get_web_session_store().delete(sid)
    if user is not None:
        store.sign_out()

    resp = Response(status_code=status.HTTP_204_NO_CONTENT)
    resp.delete_cookie(key=COOKIE_NAME, path="/")
    return resp


@router.get("/me", response_model=schemas.UserResponse)
def me(user: User = Depends(require_session)) -> schemas.UserResponse:
    """サインイン中のユーザーを返す。"""

    return schemas.UserResponse.from_record(user)
