from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

from pill_pal.api.events import parse_hello
from pill_pal.runtime import event_stream
from pill_pal.runtime.periodic import start_periodic, stop_all_periodic


class FakeWebSocket:
    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise ConnectionError("closed")
        self.sent.append(json.loads(text))


def test_parse_hello():
    assert parse_hello('{"type": "hello", "client_id": " tab-1 ", "caps": ["notification"]}') == (
        "tab-1",
        ["notification"],
    )
    assert parse_hello('{"type": "hello", "client_id": "tab-1", "caps": "notification"}') == ("tab-1", [])
    assert parse_hello('{"type": "hello", "client_id": ""}') is None
    assert parse_hello('{"type": "ping"}') is None
    assert parse_hello("not json") is None


def test_publish_without_install_is_dropped():
    assert event_stream.publish(type="reminder.alert", data={}) is False


def test_publish_reaches_clients_and_drops_broken_ones():
    async def scenario():
        event_stream.install(asyncio.get_running_loop())
        await event_stream.start_dispatcher()
        good, broken = FakeWebSocket(), FakeWebSocket(fail=True)
        await event_stream.add_client(good)
        await event_stream.add_client(broken)
        event_stream.register_client_identity(good, client_id="tab-1", caps=["notification"])
        assert event_stream.has_client_with_capability(event_stream.CAP_NOTIFICATION)

        assert event_stream.publish(type="reminder.notification", data={"title": "朝"}) is True
        await asyncio.sleep(0.05)
        await event_stream.stop_dispatcher()
        return good, broken

    good, broken = asyncio.run(scenario())
    assert good.sent == [{"type": "reminder.notification", "data": {"title": "朝"}}]
    assert broken.sent == []


def test_capability_follows_connected_clients():
    async def scenario():
        event_stream.install(asyncio.get_running_loop())
        plain, notifying = FakeWebSocket(), FakeWebSocket()
        await event_stream.add_client(plain)
        await event_stream.add_client(notifying)
        event_stream.register_client_identity(plain, client_id="a")
        event_stream.register_client_identity(notifying, client_id="b", caps=["notification"])
        before = event_stream.has_client_with_capability(event_stream.CAP_NOTIFICATION)
        await event_stream.remove_client(notifying)
        after = event_stream.has_client_with_capability(event_stream.CAP_NOTIFICATION)
        return before, after

    assert asyncio.run(scenario()) == (True, False)


def test_periodic_runner_survives_failures():
    app = SimpleNamespace(state=SimpleNamespace())
    calls: list[int] = []

    def flaky() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    async def scenario():
        runner = start_periodic(app, name="flaky", interval_seconds=0.01, func=flaky, wait_first=False)
        await asyncio.sleep(0.1)
        await stop_all_periodic(app)
        return runner

    runner = asyncio.run(scenario())
    assert runner.run_count >= 2
    assert runner.consecutive_failures == 0
    assert runner.task is not None and runner.task.done()
    assert app.state.pill_pal_periodic_runners == []
