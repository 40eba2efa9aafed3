from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from nvrmon.adapters.appliance.status_client import StatusError, StatusErrorKind, StatusResult
from nvrmon.core.store import MemorySessionStore
from nvrmon.schemas.models import RawStatus


def raw(status="IN_PROGRESS", completed=0, total=3, **kw) -> RawStatus:
    data = {"status": status, "completedCount": completed, "totalCount": total}
    data.update(kw)
    return RawStatus.model_validate(data)


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class ManualTicker:
    """Ticker sin reloj real: el test dispara cada tick con fire()."""

    def __init__(self):
        self.callback = None
        self.starts = 0

    @property
    def running(self) -> bool:
        return self.callback is not None

    def start(self, callback) -> None:
        self.callback = callback
        self.starts += 1

    def stop(self) -> None:
        self.callback = None

    async def fire(self) -> None:
        assert self.callback is not None, "ticker not running"
        await self.callback()


class ScriptedClient:
    """
    Devuelve las respuestas en orden (RawStatus o StatusErrorKind); la última se repite.
    Si `gate` está puesto, cada fetch espera a que el test lo libere.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch_status(self, job_id: str) -> StatusResult:
        self.calls.append(job_id)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(item, StatusErrorKind):
            return StatusResult(job_id, error=StatusError(item, item.value))
        if callable(item):
            item = item(job_id)
        return StatusResult(job_id, status=item)

    async def aclose(self):
        pass


class RecordingSink:
    def __init__(self):
        self.progress = []
        self.terminal = []
        self.abandoned = 0

    def on_progress(self, model):
        self.progress.append(model)

    def on_terminal(self, model):
        self.terminal.append(model)

    def on_abandoned(self):
        self.abandoned += 1


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "session.db"
