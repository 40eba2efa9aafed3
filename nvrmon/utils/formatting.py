from __future__ import annotations

import math

NO_VALUE = "—"


def fmt_size(n: int | float | None) -> str:
    try:
        x = float(n)
    except (TypeError, ValueError):
        return "0 B"
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    i = 0
    while x >= 1024.0 and i < len(units) - 1:
        x /= 1024.0
        i += 1
    return f"{x:.1f} {units[i]}"


def fmt_rate(bytes_per_sec: float | None) -> str:
    if not bytes_per_sec or bytes_per_sec <= 0:
        return NO_VALUE
    return f"{fmt_size(bytes_per_sec)}/s"


def fmt_eta(bytes_remaining: int | None, bytes_per_sec: float | None) -> str:
    """45s | 2m 30s | 2m | 1h 5m | 1h ; '—' si no hay velocidad o restante conocido."""
    if bytes_remaining is None or not bytes_per_sec or bytes_per_sec <= 0:
        return NO_VALUE
    if bytes_remaining <= 0:
        return "0s"

    secs = math.ceil(bytes_remaining / bytes_per_sec)
    if secs < 60:
        return f"{secs}s"
    minutes, secs = divmod(secs, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def fmt_elapsed(total_seconds: int) -> str:
    """H:MM:SS, sin la hora cuando es cero (M:SS)."""
    total_seconds = max(0, int(total_seconds))
    hours, rem = divmod(total_seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
