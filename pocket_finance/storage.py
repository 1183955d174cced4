"""Durable key-value stores backing the ledger state.

The ledger only needs ``get(key) -> str | None`` and ``set(key, value)``.
Three backends are provided: an in-memory dict (tests, throwaway sessions),
a single JSON file, and a SQLite table.  ``set_many`` writes a whole state
snapshot in one go; the file and SQLite backends commit it as one unit.
"""

from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

from .config import STATE_PATH, STORE_BACKEND, ensure_data_directories
from .log import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


class KeyValueStore:
    """Base class for string key-value stores."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def set_many(self, items: Mapping[str, str]) -> None:
        for key, value in items.items():
            self.set(key, value)


class MemoryStore(KeyValueStore):
    """Dict-backed store; nothing survives the process."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self):
        return list(self._data.keys())


class JsonFileStore(KeyValueStore):
    """All keys in a single JSON object on disk.

    A missing file reads as empty.  Writes go to a temporary sibling file
    that then replaces the target.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or STATE_PATH)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"State file {self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            with tmp_path.open('w', encoding='utf-8') as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise OSError(f"Failed to save ledger state to {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        data = self._load()
        data.update(items)
        self._write(data)


class SqliteStore(KeyValueStore):
    """Key-value pairs in a SQLite ``kv_store`` table."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or STATE_PATH)
        self._init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self.connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        records = [(key, value, updated_at) for key, value in items.items()]
        sql = (
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at"
        )
        with self.connect() as conn:
            conn.executemany(sql, records)
            conn.commit()


def open_store(backend: Optional[str] = None, path: Optional[Path] = None) -> KeyValueStore:
    """Build the configured store backend.

    Raises:
        ValueError: If ``backend`` is not one of json, sqlite or memory.
    """
    backend = (backend or STORE_BACKEND).strip().lower()
    if backend == 'memory':
        return MemoryStore()
    if path is None:
        ensure_data_directories()
    if backend == 'json':
        store: KeyValueStore = JsonFileStore(path)
    elif backend == 'sqlite':
        store = SqliteStore(path)
    else:
        raise ValueError(f"Unknown storage backend '{backend}'. Expected json, sqlite or memory.")
    logger.debug("Opened %s store at %s", backend, getattr(store, 'path', None))
    return store
