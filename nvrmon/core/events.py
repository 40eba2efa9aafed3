from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from nvrmon.schemas.models import ProgressModel


class PresentationSink(Protocol):
    """Lo único que ve la UI anfitriona: tres eventos."""

    def on_progress(self, model: ProgressModel) -> None: ...

    def on_terminal(self, model: ProgressModel) -> None: ...

    def on_abandoned(self) -> None: ...


class CallbackSink:
    def __init__(
        self,
        on_progress: Callable[[ProgressModel], None] | None = None,
        on_terminal: Callable[[ProgressModel], None] | None = None,
        on_abandoned: Callable[[], None] | None = None,
    ):
        self._progress = on_progress
        self._terminal = on_terminal
        self._abandoned = on_abandoned

    def on_progress(self, model: ProgressModel) -> None:
        if self._progress:
            self._progress(model)

    def on_terminal(self, model: ProgressModel) -> None:
        if self._terminal:
            self._terminal(model)

    def on_abandoned(self) -> None:
        if self._abandoned:
            self._abandoned()
