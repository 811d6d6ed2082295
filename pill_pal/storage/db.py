"""
ローカル保存DB（pillpal.db）接続とセッション管理

記録（薬品/処方/連絡先）、サインイン中ユーザー、自動入力の利用回数を
キーごとの JSON 文字列（blob）として1つの SQLite ファイルへ保存する。
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


logger = logging.getLogger(__name__)

# pillpal.db 用 Base
StorageBase = declarative_base()

# グローバルセッション（pillpal.db 用）
StorageSessionLocal: sessionmaker | None = None
_engine: Engine | None = None


def get_storage_db_path() -> Path:
    """pillpal.db のパスを返す。"""

    # --- 保存先は paths に集約 ---
    from pill_pal.paths import get_data_dir

    return (get_data_dir() / "pillpal.db").resolve()


def init_storage_db(db_path: Path | None = None) -> None:
    """
    pillpal.db を初期化する（起動時）。

    - セッションファクトリを作成する
    - テーブルを作成する
    """

    global StorageSessionLocal, _engine

    # --- 再初期化（テスト等）の場合は古い接続を閉じる ---
    dispose_storage_db()

    path = Path(db_path) if db_path is not None else get_storage_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    db_url = f"sqlite:///{path}"
    connect_args = {"check_same_thread": False, "timeout": 10.0}
    _engine = create_engine(db_url, future=True, connect_args=connect_args)
    StorageSessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, future=True)

    # pillpal.db のテーブル群を作成（モデル import が必要）
    import pill_pal.storage.models  # noqa: F401

    StorageBase.metadata.create_all(bind=_engine)
    logger.info("storage DB initialized: %s", db_url)


def dispose_storage_db() -> None:
    """接続プールを破棄し、セッションファクトリを未初期化に戻す。"""

    global StorageSessionLocal, _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
    StorageSessionLocal = None


@contextlib.contextmanager
def storage_session_scope() -> Iterator[Session]:
    """
    pillpal.db のセッションスコープ（with文用）。

    正常終了時はコミット、例外時はロールバックする。
    """

    if StorageSessionLocal is None:
        raise RuntimeError("Storage database not initialized. Call init_storage_db() first.")
    session = StorageSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
