"""
依存オブジェクトの生成。

目的:
    - FastAPI の Depends で使う生成処理を起動配線側に寄せる。
    - シングルトン生成と DI 入口を同じ責務で管理する。
"""

from __future__ import annotations

from pill_pal.auth.provider import AuthProvider, MockSmsAuthProvider
from pill_pal.autofill.quota import DailyUsageCounter
from pill_pal.autofill.service import MedicineAutofillService
from pill_pal.clock import get_clock_service
from pill_pal.config import get_config_store
from pill_pal.llm_client import LlmClient
from pill_pal.records.store import RecordStore
from pill_pal.reminders.service import ReminderService
from pill_pal.storage.repo import StatePersistence
from pill_pal.web_sessions import WebSessionStore


_record_store: RecordStore | None = None
_reminder_service: ReminderService | None = None
_autofill_service: MedicineAutofillService | None = None
_auth_provider: AuthProvider | None = None
_web_session_store: WebSessionStore | None = None


def get_llm_client() -> LlmClient:
    """
    現在の ConfigStore から LlmClient を生成する。
    """

    cfg = get_config_store().config
    return LlmClient(
        model=cfg.llm_model,
        api_key=cfg.llm_api_key,
        llm_base_url=cfg.llm_base_url,
        timeout_seconds=cfg.llm_timeout_seconds,
        llm_log_level=cfg.llm_log_level,
    )


def get_record_store() -> RecordStore:
    """
    RecordStore のシングルトンを返す（初回に保存済みの状態を読み込む）。
    """

    global _record_store
    if _record_store is None:
        persistence = StatePersistence()
        _record_store = RecordStore(persistence=persistence, initial_state=persistence.load())
    return _record_store


def get_reminder_service() -> ReminderService:
    """
    ReminderService のシングルトンを返す。
    """

    global _reminder_service
    if _reminder_service is None:
        _reminder_service = ReminderService(store=get_record_store(), clock=get_clock_service())
    return _reminder_service


def get_autofill_service() -> MedicineAutofillService:
    """
    MedicineAutofillService のシングルトンを返す。
    """

    global _autofill_service
    if _autofill_service is None:
        cfg = get_config_store().config
        _autofill_service = MedicineAutofillService(
            llm_client=get_llm_client(),
            counter=DailyUsageCounter(limit=cfg.autofill_daily_limit, clock=get_clock_service()),
        )
    return _autofill_service


def get_auth_provider() -> AuthProvider:
    """
    認証プロバイダのシングルトンを返す。
    """

    global _auth_provider
    if _auth_provider is None:
        _auth_provider = MockSmsAuthProvider(demo_code=get_config_store().config.auth_demo_code)
    return _auth_provider


def get_web_session_store() -> WebSessionStore:
    """
    WebSessionStore のシングルトンを返す。
    """

    global _web_session_store
    if _web_session_store is None:
        _web_session_store = WebSessionStore(ttl_seconds=get_config_store().config.web_session_ttl_seconds)
    return _web_session_store


def reset_dependencies() -> None:
    """
    シングルトンを破棄する（再起動やテスト用）。
    """

    global _record_store, _reminder_service, _autofill_service, _auth_provider, _web_session_store
    _record_store = None
    _reminder_service = None
    _autofill_service = None
    _auth_provider = None
    _web_session_store = None
