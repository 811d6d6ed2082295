"""
定期実行ランナー

FastAPI の startup で登録し、shutdown でまとめて止める「N秒ごとの処理」を管理する。

- 処理は同期関数で渡し、ワーカースレッド（asyncio.to_thread）で実行する。
  イベントループは WebSocket 配信が使うため、DB書き込みなどで塞がない。
- 1回分の失敗はログに残して次の周期へ進む（連続失敗回数も記録する）。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import FastAPI


logger = logging.getLogger(__name__)

_RUNNERS_ATTR = "pill_pal_periodic_runners"


@dataclass
class PeriodicRunner:
    """1つの定期処理の状態。"""

    name: str
    interval_seconds: float
    func: Callable[[], object]
    run_count: int = 0
    consecutive_failures: int = 0
    task: "asyncio.Task[None] | None" = None

    async def _run_once(self) -> None:
        try:
            await asyncio.to_thread(self.func)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            self.consecutive_failures += 1
            logger.exception(
                "periodic run failed name=%s consecutive_failures=%s",
                self.name,
                self.consecutive_failures,
            )
        else:
            if self.consecutive_failures:
                logger.info("periodic run recovered name=%s after_failures=%s", self.name, self.consecutive_failures)
            self.consecutive_failures = 0
        finally:
            self.run_count += 1

    async def loop(self, *, wait_first: bool) -> None:
        """cancel されるまで interval ごとに実行する。"""
        if wait_first:
            await asyncio.sleep(self.interval_seconds)
        while True:
            await self._run_once()
            await asyncio.sleep(self.interval_seconds)


def _runners(app: "FastAPI") -> list[PeriodicRunner]:
    runners = getattr(app.state, _RUNNERS_ATTR, None)
    if runners is None:
        runners = []
        setattr(app.state, _RUNNERS_ATTR, runners)
    return runners


def start_periodic(
    app: "FastAPI",
    *,
    name: str,
    interval_seconds: float,
    func: Callable[[], object],
    wait_first: bool = True,
) -> PeriodicRunner:
    """定期処理を起動し、app.state に登録する。実行中のイベントループから呼ぶこと。"""

    if float(interval_seconds) <= 0:
        raise ValueError("interval_seconds must be > 0")
    runner = PeriodicRunner(name=str(name), interval_seconds=float(interval_seconds), func=func)
    runner.task = asyncio.get_running_loop().create_task(runner.loop(wait_first=wait_first), name=runner.name)
    _runners(app).append(runner)
    logger.info("periodic started name=%s interval_seconds=%s", runner.name, runner.interval_seconds)
    return runner


async def stop_all_periodic(app: "FastAPI") -> None:
    """登録済みの定期処理をすべて止める（二重呼び出し可）。"""

    runners = list(_runners(app))
    setattr(app.state, _RUNNERS_ATTR, [])
    tasks = [r.task for r in runners if r.task is not None]
    for t in tasks:
        t.cancel()
    # NOTE: cancel 済みタスクの CancelledError は結果として受け取る。
    await asyncio.gather(*tasks, return_exceptions=True)
    if runners:
        logger.info("periodic stopped names=%s", [r.name for r in runners])
