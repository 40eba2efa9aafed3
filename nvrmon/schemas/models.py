from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from nvrmon.core.state import JobStatus, Outcome, SubJobStatus

# Nombres que usa el endpoint de lotes del grabador para los mismos estados
_SUBJOB_STATUS_ALIASES = {"DOWNLOADING": "ACTIVE", "CANCELLED": "FAILED"}


class _Wire(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class SubJob(_Wire):
    sub_job_id: str = Field(validation_alias=AliasChoices("subJobId", "jobId", "sub_job_id"))
    status: SubJobStatus
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "fileName"))
    progress_percent: float | None = Field(
        default=None, ge=0, le=100, validation_alias=AliasChoices("progressPercent", "progress_percent")
    )
    bytes_transferred: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("bytesTransferred", "bytes_transferred")
    )
    bytes_total: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("bytesTotal", "bytes_total")
    )
    transfer_rate_bytes_per_sec: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("transferRateBytesPerSec", "transfer_rate_bytes_per_sec"),
    )
    result_uri: str | None = Field(
        default=None, validation_alias=AliasChoices("resultUri", "downloadUrl", "result_uri")
    )
    error_message: str | None = Field(
        default=None, validation_alias=AliasChoices("errorMessage", "error_message")
    )

    # Lo que el grabador manda por descarga: velocidad en Mbps y tamaños/ETA ya formateados
    message: str | None = None
    download_speed_mbps: float | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("downloadSpeed", "download_speed_mbps")
    )
    eta: str | None = None
    downloaded_size: str | None = Field(
        default=None, validation_alias=AliasChoices("downloadedSize", "downloaded_size")
    )
    total_size: str | None = Field(
        default=None, validation_alias=AliasChoices("totalSize", "total_size")
    )
    actual_file_size: str | None = Field(
        default=None, validation_alias=AliasChoices("actualFileSize", "actual_file_size")
    )

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return _SUBJOB_STATUS_ALIASES.get(v, v)
        return v

    @model_validator(mode="after")
    def _check_status_fields(self) -> SubJob:
        if self.result_uri and self.status is not SubJobStatus.COMPLETED:
            raise ValueError(f"resultUri present on {self.status.value} sub-job {self.sub_job_id}")
        if self.error_message and self.status is not SubJobStatus.FAILED:
            raise ValueError(f"errorMessage present on {self.status.value} sub-job {self.sub_job_id}")
        return self


class RawStatus(_Wire):
    """Snapshot de GET /status/{jobId}. Acepta también los nombres cortos del grabador."""

    status: JobStatus
    completed_count: int = Field(ge=0, validation_alias=AliasChoices("completedCount", "completed"))
    total_count: int = Field(ge=0, validation_alias=AliasChoices("totalCount", "total"))
    queued_count: int = Field(default=0, ge=0, validation_alias=AliasChoices("queuedCount", "queued"))
    active_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("activeCount", "inProgress")
    )
    failed_count: int = Field(default=0, ge=0, validation_alias=AliasChoices("failedCount", "failed"))
    message: str | None = None
    sub_jobs: tuple[SubJob, ...] = Field(
        default=(), validation_alias=AliasChoices("subJobs", "jobs", "sub_jobs")
    )

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("sub_jobs", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return () if v is None else v

    @model_validator(mode="after")
    def _check_counts(self) -> RawStatus:
        if self.completed_count > self.total_count:
            raise ValueError(
                f"completedCount={self.completed_count} exceeds totalCount={self.total_count}"
            )
        return self


class ActiveItem(_Wire):
    label: str
    percent: int
    rate: float | None = None
    rate_label: str = "—"
    eta_label: str = "—"
    size_label: str | None = None


class SummaryCounts(_Wire):
    completed: int = 0
    active: int = 0
    queued: int = 0
    failed: int = 0


class ProgressModel(_Wire):
    overall_percent: int
    overall_label: str
    active_item: ActiveItem | None = None
    summary_counts: SummaryCounts = SummaryCounts()
    elapsed_label: str = "0:00"
    is_terminal: bool = False
    outcome: Outcome | None = None
    sub_jobs: tuple[SubJob, ...] = ()


class TrackedSession(_Wire):
    job_id: str = Field(min_length=1)
    started_at_ms: int
