from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from project_sync.config import DEFAULT_LOCAL_DB_PATH

DB_PATH = Path(DEFAULT_LOCAL_DB_PATH)

_logger = logging.getLogger(__name__)


def _resolve(db_path: Path | None) -> Path:
    return Path(db_path) if db_path is not None else DB_PATH


def init_db(db_path: Path | None = None) -> None:
    path = _resolve(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )


def get_value(key: str, default: Any = None, db_path: Path | None = None) -> Any:
    """Return the JSON value stored under ``key``, or ``default``."""
    try:
        init_db(db_path)
        with sqlite3.connect(_resolve(db_path)) as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
    except (sqlite3.Error, OSError) as exc:
        _logger.warning('Error reading stored key "%s": %s', key, exc)
        return default
    if row is None:
        return default
    try:
        return json.loads(row[0])
    except (TypeError, json.JSONDecodeError) as exc:
        _logger.warning('Error decoding stored key "%s": %s', key, exc)
        return default


def set_value(key: str, value: Any, db_path: Path | None = None) -> None:
    try:
        payload = json.dumps(value)
    except (TypeError, ValueError) as exc:
        _logger.warning('Error encoding value for key "%s": %s', key, exc)
        return
    try:
        init_db(db_path)
        with sqlite3.connect(_resolve(db_path)) as conn:
            conn.execute(
                """
                INSERT INTO kv (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (key, payload),
            )
    except (sqlite3.Error, OSError) as exc:
        _logger.warning('Error setting stored key "%s": %s', key, exc)


def delete_value(key: str, db_path: Path | None = None) -> None:
    try:
        init_db(db_path)
        with sqlite3.connect(_resolve(db_path)) as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
    except (sqlite3.Error, OSError) as exc:
        _logger.warning('Error deleting stored key "%s": %s', key, exc)
