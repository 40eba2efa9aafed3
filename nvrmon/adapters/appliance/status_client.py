from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from nvrmon.config.settings import settings
from nvrmon.schemas.models import RawStatus

log = logging.getLogger(__name__)


class StatusErrorKind(str, Enum):
    NOT_FOUND = "not_found"  # el servidor no conoce el job: irrecuperable
    TRANSIENT = "transient"  # red / 5xx / timeout: se reintenta en el siguiente tick
    MALFORMED = "malformed"  # payload inválido: se trata como transitorio


@dataclass(frozen=True)
class StatusError:
    kind: StatusErrorKind
    detail: str = ""
    http_status: int | None = None


@dataclass(frozen=True)
class StatusResult:
    job_id: str
    status: RawStatus | None = None
    error: StatusError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class JobStatusClient:
    """
    Una sola consulta de estado por llamada; nunca reintenta ni lanza por errores
    de transporte: todo se traduce a StatusResult y la política la decide el monitor.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        status_path: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.APPLIANCE_BASE_URL).rstrip("/")
        self.status_path = status_path or settings.STATUS_PATH
        self.timeout = timeout if timeout is not None else settings.STATUS_TIMEOUT_SECS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def url_for(self, job_id: str) -> str:
        return self.base_url + self.status_path.format(job_id=quote(job_id, safe=""))

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def fetch_status(self, job_id: str) -> StatusResult:
        if not job_id:
            raise ValueError("job_id must be a non-empty string")

        try:
            r = await self._http().get(self.url_for(job_id))
        except httpx.HTTPError as e:
            log.info("status fetch failed job=%s err=%r", job_id, e)
            return StatusResult(job_id, error=StatusError(StatusErrorKind.TRANSIENT, repr(e)))

        if r.status_code == 404:
            return StatusResult(
                job_id, error=StatusError(StatusErrorKind.NOT_FOUND, "job not found", 404)
            )
        if not r.is_success:
            log.info("status fetch job=%s http=%s", job_id, r.status_code)
            return StatusResult(
                job_id,
                error=StatusError(StatusErrorKind.TRANSIENT, f"HTTP {r.status_code}", r.status_code),
            )

        try:
            raw = RawStatus.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            # cuerpo no-JSON o fuera de esquema
            log.warning("malformed status payload job=%s err=%s", job_id, e)
            return StatusResult(
                job_id,
                error=StatusError(StatusErrorKind.MALFORMED, str(e), r.status_code),
            )
        return StatusResult(job_id, status=raw)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
