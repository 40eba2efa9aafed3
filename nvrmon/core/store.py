from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Protocol

from nvrmon.config.settings import settings


class SessionStore(Protocol):
    """Almacén clave/valor de la sesión (equivalente al sessionStorage del navegador)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemorySessionStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS session_kv (
  k TEXT PRIMARY KEY,
  v TEXT NOT NULL
);
"""


class SqliteSessionStore:
    """
    Sesión persistida en un fichero sqlite: sobrevive a que el proceso termine
    (Ctrl+C, reinicio) igual que sessionStorage sobrevive a la navegación.
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path or settings.SESSION_DB_PATH)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT v FROM session_kv WHERE k=?", (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO session_kv(k,v) VALUES(?,?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                (key, str(value)),
            )

    def remove(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM session_kv WHERE k=?", (key,))
