from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

log = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class Ticker(Protocol):
    """Tarea periódica cancelable (start/stop) que sustituye a setInterval."""

    @property
    def running(self) -> bool: ...

    def start(self, callback: TickCallback) -> None: ...

    def stop(self) -> None: ...


class AsyncioTicker:
    """
    Ejecuta `sleep(interval) -> await callback()` en una única task de asyncio.
    El siguiente tick no se programa hasta que el callback termina, así que dos
    ciclos nunca se solapan. stop() se puede llamar desde dentro del callback.
    """

    def __init__(self, interval: float):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: TickCallback) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run(callback))

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is not asyncio.current_task():
            task.cancel()

    async def _run(self, callback: TickCallback) -> None:
        me = asyncio.current_task()
        while self._task is me:
            await asyncio.sleep(self.interval)
            if self._task is not me:
                break
            try:
                await callback()
            except Exception:
                log.exception("tick callback failed")
