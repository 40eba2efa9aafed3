from __future__ import annotations

import asyncio
import sys
from typing import TextIO

from nvrmon.core.state import Outcome, SubJobStatus
from nvrmon.schemas.models import ProgressModel, SubJob
from nvrmon.utils.formatting import fmt_size

_OUTCOME_ICON = {Outcome.SUCCESS: "✅", Outcome.PARTIAL: "⚠️", Outcome.FAILURE: "❌"}


def fmt_progress_line(model: ProgressModel) -> str:
    c = model.summary_counts
    parts = [f"[{model.overall_percent:3d}%] {model.overall_label}"]
    item = model.active_item
    if item is not None:
        active = f"⬇️ {item.label} {item.percent}%"
        if item.size_label:
            active += f" ({item.size_label})"
        parts.append(f"{active} {item.rate_label} ETA {item.eta_label}")
    counts = f"✓ {c.completed}  ⟳ {c.active}  ⏳ {c.queued}"
    if c.failed > 0:
        counts += f"  ✗ {c.failed}"
    parts.append(counts)
    parts.append(model.elapsed_label)
    return " | ".join(parts)


def fmt_sub_job_line(job: SubJob) -> str:
    name = job.name or job.sub_job_id
    if job.status is SubJobStatus.COMPLETED:
        line = f"  ✓ {name}"
        size = job.actual_file_size or (fmt_size(job.bytes_total) if job.bytes_total else None)
        if size:
            line += f" ({size})"
        if job.result_uri:
            line += f" -> {job.result_uri}"
        return line
    if job.status is SubJobStatus.FAILED:
        return f"  ✗ {name}: {job.error_message or job.message or 'No file available'}"
    return f"  · {name}: {job.status.value.lower()}"


def fmt_completion(model: ProgressModel) -> str:
    icon = _OUTCOME_ICON.get(model.outcome, "")
    lines = [f"{icon} {model.overall_label}  (elapsed {model.elapsed_label})".strip()]
    lines.extend(fmt_sub_job_line(j) for j in model.sub_jobs)
    return "\n".join(lines)


class ConsoleSink:
    """Anfitrión de terminal: una línea por ciclo y resumen al terminar."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self.done = asyncio.Event()
        self.final: ProgressModel | None = None
        self.abandoned = False

    def _write(self, text: str) -> None:
        print(text, file=self.stream, flush=True)

    def on_progress(self, model: ProgressModel) -> None:
        if not model.is_terminal:
            self._write(fmt_progress_line(model))

    def on_terminal(self, model: ProgressModel) -> None:
        self.final = model
        self._write(fmt_completion(model))
        self.done.set()

    def on_abandoned(self) -> None:
        self.abandoned = True
        self._write("⛔ Tracking lost: the appliance no longer knows this job.")
        self.done.set()
