from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Appliance (grabador/cámara)
    APPLIANCE_BASE_URL: str = "http://127.0.0.1:8080"
    STATUS_PATH: str = "/status/{job_id}"  # GET -> RawStatus JSON, 404 si el job no existe
    STATUS_TIMEOUT_SECS: float = 10.0

    # Polling
    POLL_INTERVAL_MS: int = 1000

    # Sesión persistida (sobrevive reinicios del proceso)
    SESSION_DB_PATH: Path = Field(default=Path("./data/session.db"))
    SESSION_KEY_JOB_ID: str = "activeBatchId"
    SESSION_KEY_STARTED_AT: str = "batchStartTime"

    # Productores de jobs
    RESTART_PATH: str = "/api/camera/management/restart"
    BACKUP_EXECUTE_PATH: str = "/api/backups/execute/{config_id}"
    DOWNLOAD_START_PATH: str = "/api/recordings/download/start"
    BATCH_DOWNLOAD_PATH: str = "/api/recordings/download/start/batch"
    LAUNCH_TIMEOUT_SECS: int = 10

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Field(default=Path("./logs"))


settings = Settings()
