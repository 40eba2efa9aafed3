from __future__ import annotations

import math

from nvrmon.core.state import TERMINAL_STATUSES, JobStatus, Outcome, SubJobStatus
from nvrmon.schemas.models import ActiveItem, ProgressModel, RawStatus, SubJob, SummaryCounts
from nvrmon.utils.formatting import NO_VALUE, fmt_elapsed, fmt_eta, fmt_rate, fmt_size

PREPARING_LABEL = "preparing"
WAITING_LABEL = "waiting"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def overall_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return max(0, min(100, _round_half_up(100 * completed / total)))


def outcome_for(raw: RawStatus) -> Outcome | None:
    if raw.status not in TERMINAL_STATUSES:
        return None
    if raw.status is JobStatus.COMPLETED and raw.failed_count == 0:
        return Outcome.SUCCESS
    if raw.status is JobStatus.PARTIAL_FAILURE:
        return Outcome.PARTIAL
    return Outcome.FAILURE


def _mbps_to_bytes(mbps: float | None) -> float | None:
    # Mbps del grabador: megabits decimales
    if not mbps or mbps <= 0:
        return None
    return mbps * 1_000_000 / 8


def _active_item(sub_jobs: tuple[SubJob, ...]) -> ActiveItem | None:
    # Si hay varios ACTIVE se muestra el primero en orden de lista
    current = next((j for j in sub_jobs if j.status is SubJobStatus.ACTIVE), None)
    if current is None:
        return None

    total = current.bytes_total
    done = current.bytes_transferred
    if current.progress_percent is not None:
        percent = _round_half_up(current.progress_percent)
    elif total and done is not None:
        percent = min(100, (done * 100) // total)
    else:
        percent = 0

    remaining = (total - done) if (total is not None and done is not None) else None
    rate = current.transfer_rate_bytes_per_sec
    if rate is None:
        rate = _mbps_to_bytes(current.download_speed_mbps)

    eta_label = fmt_eta(remaining, rate)
    if eta_label == NO_VALUE and current.eta:
        eta_label = current.eta

    if total and done is not None:
        size_label = f"{fmt_size(done)} / {fmt_size(total)}"
    elif current.downloaded_size and current.total_size:
        size_label = f"{current.downloaded_size} / {current.total_size}"
    else:
        size_label = None

    return ActiveItem(
        label=current.name or current.sub_job_id,
        percent=percent,
        rate=rate,
        rate_label=fmt_rate(rate),
        eta_label=eta_label,
        size_label=size_label,
    )


def _overall_label(raw: RawStatus, outcome: Outcome | None, active: ActiveItem | None) -> str:
    c, t, f = raw.completed_count, raw.total_count, raw.failed_count
    if outcome is Outcome.SUCCESS:
        return "All items completed successfully"
    if outcome is Outcome.PARTIAL:
        return f"Completed with {f} failed ({c}/{t} successful)"
    if outcome is Outcome.FAILURE:
        return raw.message or f"Failed: {f} of {t} items failed"
    if active is not None:
        return raw.message or f"Processing {c}/{t}"
    return PREPARING_LABEL if raw.active_count > 0 else WAITING_LABEL


def reconcile(raw: RawStatus, started_at_ms: int, now_ms: int) -> ProgressModel:
    """
    Convierte un snapshot del servidor en el modelo que pinta la UI.

    Función pura: el mismo (raw, started_at_ms, now_ms) produce siempre el mismo
    ProgressModel; por eso el reloj entra como argumento.
    """
    outcome = outcome_for(raw)
    active = _active_item(raw.sub_jobs)
    return ProgressModel(
        overall_percent=overall_percent(raw.completed_count, raw.total_count),
        overall_label=_overall_label(raw, outcome, active),
        active_item=active,
        summary_counts=SummaryCounts(
            completed=raw.completed_count,
            active=raw.active_count,
            queued=raw.queued_count,
            failed=raw.failed_count,
        ),
        elapsed_label=fmt_elapsed((now_ms - started_at_ms) // 1000),
        is_terminal=raw.status in TERMINAL_STATUSES,
        outcome=outcome,
        sub_jobs=raw.sub_jobs,
    )
