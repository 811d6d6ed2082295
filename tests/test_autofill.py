from __future__ import annotations

import json
import threading
import time
from datetime import datetime
from types import SimpleNamespace

import pytest

from pill_pal.autofill.quota import DailyUsageCounter
from pill_pal.autofill.service import MedicineAutofillService, merge_autofill_result
from pill_pal.clock import ClockService
from pill_pal.errors import QuotaExceededError, UpstreamFailureError, ValidationError
from pill_pal.llm_client import LlmClient
from pill_pal.records.models import Medicine


_RESULT = {
    "name": "アムロジピン",
    "brand": "ノルバスク",
    "ingredients": "アムロジピンベシル酸塩",
    "specs": "5mg x 30錠",
    "indications": "高血圧症",
    "usage": "1日1回 5mg",
    "expiryDate": "",
    "id": "hijacked",
    "dose": 5,
}


def _response(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")])


class FakeLlmClient:
    """LlmClient の JSON 解析はそのまま使い、送信だけを差し替える。"""

    def __init__(
        self,
        content: str = json.dumps(_RESULT, ensure_ascii=False),
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.content = content
        self.error = error
        self.delay = delay
        self.calls = 0
        self.last_input: str | None = None
        self._parser = LlmClient(model="test/model")

    def generate_json_response(self, *, system_prompt, input_text, purpose, max_tokens=None):
        self.calls += 1
        self.last_input = input_text
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return _response(self.content)

    def response_json(self, resp):
        return self._parser.response_json(resp)


class MovableClock(ClockService):
    def __init__(self, dt: datetime) -> None:
        self._now = dt.timestamp()
        super().__init__(time_source=lambda: self._now)

    def advance(self, seconds: float) -> None:
        self._now += seconds


@pytest.fixture
def clock():
    return MovableClock(datetime(2024, 5, 1, 12, 0, 0))


def _service(llm, clock, limit: int = 10) -> MedicineAutofillService:
    return MedicineAutofillService(llm_client=llm, counter=DailyUsageCounter(limit=limit, clock=clock))


def test_autofill_merges_known_string_fields_and_keeps_id(storage_db, clock):
    llm = FakeLlmClient()
    service = _service(llm, clock)
    form = Medicine(id="form-1", name="", usage="食後")

    merged = service.autofill("ノルバスク", form)

    assert merged.id == "form-1"
    assert merged.name == "アムロジピン"
    assert merged.brand == "ノルバスク"
    assert merged.usage == "1日1回 5mg"
    assert service.remaining() == 9


def test_quota_exhausts_after_limit_without_calling_upstream(storage_db, clock):
    llm = FakeLlmClient()
    service = _service(llm, clock)
    form = Medicine(id="form-1", name="")

    for _ in range(10):
        service.autofill("ノルバスク", form)
    assert llm.calls == 10
    assert service.remaining() == 0

    with pytest.raises(QuotaExceededError):
        service.autofill("ノルバスク", form)
    assert llm.calls == 10


def test_quota_resets_on_next_local_date(storage_db, clock):
    llm = FakeLlmClient()
    service = _service(llm, clock, limit=1)
    service.autofill("ノルバスク", Medicine(id="f", name=""))
    assert service.remaining() == 0

    clock.advance(24 * 60 * 60)
    assert service.remaining() == 1


def test_concurrent_requests_do_not_exceed_limit(storage_db, clock):
    llm = FakeLlmClient(delay=0.3)
    service = _service(llm, clock)
    for _ in range(9):
        service.counter.repository.increment(service.counter.today())

    outcomes: list[str] = []

    def call() -> None:
        try:
            service.autofill("ノルバスク", Medicine(id="f", name=""))
            outcomes.append("ok")
        except QuotaExceededError:
            outcomes.append("quota")

    threads = [threading.Thread(target=call) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["ok", "quota", "quota"]
    assert llm.calls == 1
    assert service.counter.used() == 10


@pytest.mark.parametrize(
    "llm",
    [
        FakeLlmClient(error=TimeoutError("upstream timeout")),
        FakeLlmClient(content="申し訳ありませんが分かりません"),
        FakeLlmClient(content='["not", "an", "object"]'),
    ],
)
def test_upstream_failure_does_not_count(storage_db, clock, llm):
    service = _service(llm, clock)
    with pytest.raises(UpstreamFailureError):
        service.autofill("ノルバスク", Medicine(id="f", name=""))
    assert service.remaining() == 10


def test_repairable_json_is_accepted(storage_db, clock):
    llm = FakeLlmClient(content='```json\n{"name": "ロキソプロフェン", "brand": "ロキソニン",}\n```')
    merged = _service(llm, clock).autofill("ロキソニン", Medicine(id="f", name=""))
    assert merged.brand == "ロキソニン"


def test_blank_text_is_rejected(storage_db, clock):
    llm = FakeLlmClient()
    with pytest.raises(ValidationError):
        _service(llm, clock).autofill("   ", Medicine(id="f", name=""))
    assert llm.calls == 0


def test_merge_ignores_blank_name():
    merged = merge_autofill_result(Medicine(id="f", name="既存"), {"name": "", "brand": 1, "specs": "10mg"})
    assert merged.name == "既存"
    assert merged.brand == ""
    assert merged.specs == "10mg"
