from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Los módulos registran en hijos de "nvrmon"; los handlers sólo los pone setup_logging()
logger = logging.getLogger("nvrmon")


class _JsonFormatter(logging.Formatter):
    """Una línea JSON por registro; incluye job_id cuando el log lo trae en `extra`."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        job_id = getattr(record, "job_id", None)
        if job_id is not None:
            payload["job_id"] = job_id
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", log_dir: Path | str = "./logs") -> logging.Logger:
    """
    Consola en stderr (las líneas de progreso van por stdout) y fichero JSON rotado
    en `log_dir`/nvrmon.log. Idempotente: la segunda llamada no añade handlers.
    """
    if logger.handlers:
        return logger
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "nvrmon.log"

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))

    rotating = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    rotating.setFormatter(_JsonFormatter())

    for handler in (console, rotating):
        handler.setLevel(logger.level)
        logger.addHandler(handler)
    logger.propagate = False
    logger.debug("logging to %s", log_file)
    return logger
