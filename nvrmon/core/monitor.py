from __future__ import annotations

import logging
import time
from collections.abc import Callable

from nvrmon.adapters.appliance.status_client import JobStatusClient, StatusErrorKind
from nvrmon.config.settings import settings
from nvrmon.core.events import PresentationSink
from nvrmon.core.reconcile import reconcile
from nvrmon.core.state import MonitorState
from nvrmon.core.store import SessionStore
from nvrmon.core.ticker import AsyncioTicker, Ticker
from nvrmon.schemas.models import ProgressModel, TrackedSession

log = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class ProgressMonitor:
    """
    Sigue un job del servidor hasta su estado final y sobrevive a reinicios
    guardando (job_id, inicio) en el SessionStore.

    IDLE -> POLLING (start / resume_if_present)
    POLLING -> POLLING (progreso no terminal o error transitorio)
    POLLING -> TERMINATED (estado final, con outcome) | ABANDONED (404)

    Cada ciclo queda asociado a la TrackedSession con la que se lanzó; si al volver
    la respuesta esa sesión ya no es la activa (stop/dismiss/start posterior), se descarta.
    """

    def __init__(
        self,
        client: JobStatusClient,
        store: SessionStore,
        sink: PresentationSink,
        *,
        ticker: Ticker | None = None,
        clock: Callable[[], int] | None = None,
        job_key: str | None = None,
        started_key: str | None = None,
    ):
        self._client = client
        self._store = store
        self._sink = sink
        self._ticker = ticker or AsyncioTicker(settings.POLL_INTERVAL_MS / 1000)
        self._clock = clock or _epoch_ms
        self._job_key = job_key or settings.SESSION_KEY_JOB_ID
        self._started_key = started_key or settings.SESSION_KEY_STARTED_AT

        self._session: TrackedSession | None = None
        self._state = MonitorState.IDLE
        self._last_model: ProgressModel | None = None

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def session(self) -> TrackedSession | None:
        return self._session

    @property
    def last_model(self) -> ProgressModel | None:
        return self._last_model

    # ---------- API pública ----------
    async def start(self, job_id: str) -> None:
        if not job_id:
            raise ValueError("job_id must be a non-empty string")
        if self._session is not None:
            log.info("replacing tracked job %s with %s", self._session.job_id, job_id)
        self._halt()
        session = TrackedSession(job_id=job_id, started_at_ms=self._clock())
        self._persist(session)
        await self._enter(session)

    async def resume_if_present(self) -> bool:
        session = self._load_persisted()
        if session is None:
            return False
        if self._session == session:
            return True
        log.info(
            "resuming job %s (started_at_ms=%d)",
            session.job_id,
            session.started_at_ms,
            extra={"job_id": session.job_id},
        )
        self._halt()
        await self._enter(session)
        return True

    def stop(self) -> None:
        """Deja de hacer polling; el registro persistido se conserva."""
        self._halt()
        if self._state is MonitorState.POLLING:
            self._state = MonitorState.IDLE

    def dismiss(self) -> None:
        """El operador cierra el panel: parar y olvidar el job."""
        self.stop()
        self._clear_persisted()
        self._state = MonitorState.IDLE
        self._last_model = None

    async def poll_once(self) -> None:
        session = self._session
        if session is None:
            return
        await self._cycle(session)

    # ---------- ciclo ----------
    async def _enter(self, session: TrackedSession) -> None:
        self._session = session
        self._state = MonitorState.POLLING
        self._last_model = None
        await self._cycle(session)
        if self._session is session:
            self._ticker.start(self.poll_once)

    async def _cycle(self, session: TrackedSession) -> None:
        result = await self._client.fetch_status(session.job_id)
        if self._session is not session:
            log.debug("discarding stale status for job %s", session.job_id)
            return

        if result.error is not None:
            kind = result.error.kind
            if kind is StatusErrorKind.NOT_FOUND:
                log.warning(
                    "job %s not found on server, tracking abandoned",
                    session.job_id,
                    extra={"job_id": session.job_id},
                )
                self._finish(MonitorState.ABANDONED)
                self._emit("on_abandoned")
            elif kind is StatusErrorKind.MALFORMED:
                log.warning("job %s malformed status ignored: %s", session.job_id, result.error.detail)
            else:
                log.debug("job %s transient error: %s", session.job_id, result.error.detail)
            return

        model = reconcile(result.status, session.started_at_ms, self._clock())
        self._last_model = model
        self._emit("on_progress", model)
        if model.is_terminal:
            log.info(
                "job %s finished outcome=%s",
                session.job_id,
                model.outcome.value,
                extra={"job_id": session.job_id},
            )
            self._finish(MonitorState.TERMINATED)
            self._emit("on_terminal", model)

    def _finish(self, state: MonitorState) -> None:
        self._halt()
        self._clear_persisted()
        self._state = state

    def _halt(self) -> None:
        self._ticker.stop()
        self._session = None

    def _emit(self, name: str, *args) -> None:
        # Un fallo de la UI no debe romper el polling
        try:
            getattr(self._sink, name)(*args)
        except Exception:
            log.exception("presentation sink %s failed", name)

    # ---------- persistencia ----------
    def _persist(self, session: TrackedSession) -> None:
        self._store.set(self._job_key, session.job_id)
        self._store.set(self._started_key, str(session.started_at_ms))

    def _clear_persisted(self) -> None:
        self._store.remove(self._job_key)
        self._store.remove(self._started_key)

    def _load_persisted(self) -> TrackedSession | None:
        job_id = self._store.get(self._job_key)
        started = self._store.get(self._started_key)
        if not job_id or not started:
            return None
        try:
            return TrackedSession(job_id=job_id, started_at_ms=int(started))
        except ValueError:
            log.warning("discarding corrupt tracked session job=%r started=%r", job_id, started)
            self._clear_persisted()
            return None
