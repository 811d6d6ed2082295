from __future__ import annotations

from pathlib import Path

import pytest

from pill_pal.records.store import RecordStore
from pill_pal.runtime import event_stream
from pill_pal.storage.db import dispose_storage_db, init_storage_db
from pill_pal.storage.repo import StatePersistence


@pytest.fixture(autouse=True)
def app_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """保存先（config/data/logs）をテストごとの一時ディレクトリへ向ける。"""
    home = tmp_path / "home"
    monkeypatch.setenv("PILLPAL_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def _reset_event_stream():
    yield
    event_stream.uninstall()


@pytest.fixture
def storage_db(tmp_path: Path):
    db_path = tmp_path / "pillpal.db"
    init_storage_db(db_path)
    yield db_path
    dispose_storage_db()


class RecordingPersistence:
    """flush された状態を記録するだけの永続化アダプタ。"""

    def __init__(self) -> None:
        self.flushed = []

    def flush(self, state) -> None:
        self.flushed.append(state)


@pytest.fixture
def persistence() -> RecordingPersistence:
    return RecordingPersistence()


@pytest.fixture
def store(persistence: RecordingPersistence) -> RecordStore:
    return RecordStore(persistence=persistence)


@pytest.fixture
def db_store(storage_db) -> RecordStore:
    return RecordStore(persistence=StatePersistence())
