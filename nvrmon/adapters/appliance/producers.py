from __future__ import annotations

from typing import Any

import requests

from nvrmon.config.settings import settings
from nvrmon.core.logging import logger
from nvrmon.utils.retry import retry


class LaunchError(RuntimeError):
    """El grabador aceptó la petición pero no devolvió un JobId."""


class JobLauncher:
    """
    Lanza trabajos largos en el grabador (reinicio, backup, descargas) y devuelve
    el JobId que luego se entrega a ProgressMonitor.start().
    Sólo se reintentan fallos de conexión: un POST que llegó al servidor puede
    haber creado ya el job.
    """

    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or settings.APPLIANCE_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.LAUNCH_TIMEOUT_SECS
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    @retry("launch", tries=3, base_delay=0.5, jitter=True, exceptions=(requests.ConnectionError,))
    def _post(self, path: str, payload: Any = None) -> dict:
        resp = self._session.post(self.base_url + path, json=payload, timeout=self.timeout)
        resp.raise_for_status()
        if not resp.content:
            return {}
        data = resp.json()
        return data if isinstance(data, dict) else {}

    def _launch(self, kind: str, path: str, payload: Any = None) -> str:
        data = self._post(path, payload)
        # Lotes responden batchId; descargas sueltas jobId
        job_id = data.get("batchId") or data.get("jobId")
        if not job_id:
            logger.error("launch/%s returned no job id: %r", kind, data)
            raise LaunchError(f"{kind}: response carries no batchId/jobId")
        logger.info("launch/%s job=%s", kind, job_id)
        return str(job_id)

    def restart_camera(self) -> str:
        return self._launch("restart", settings.RESTART_PATH)

    def execute_backup(self, config_id: int) -> str:
        return self._launch("backup", settings.BACKUP_EXECUTE_PATH.format(config_id=config_id))

    def start_download(self, recording: dict[str, Any]) -> str:
        return self._launch("download", settings.DOWNLOAD_START_PATH, recording)

    def start_batch_download(self, recordings: list[dict[str, Any]]) -> str:
        if not recordings:
            raise ValueError("batch download needs at least one recording")
        return self._launch("batch", settings.BATCH_DOWNLOAD_PATH, list(recordings))

    def close(self) -> None:
        self._session.close()
