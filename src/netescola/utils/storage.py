"""SQLite-backed key-value store for issue reports and one-time notice flags."""

import json
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SEEN_NOTICES_KEY = "seenNotices"


def init_database(db_path: str) -> None:
    """Initialize SQLite database with the key-value table."""
    db_file = Path(db_path)
    db_file.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')
        conn.commit()
        logger.debug(f"Key-value store initialized at {db_path}")


@contextmanager
def get_db_connection(db_path: str):
    """Context manager for database connections."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


class LocalStore:
    """Whole-value JSON blobs stored by key. No schema versioning."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_database(db_path)

    def get_json(self, key: str, default: Any = None) -> Any:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute('SELECT value FROM kv WHERE key = ?', (key,)).fetchone()

        if row is None:
            return default
        try:
            return json.loads(row['value'])
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt value stored under '{key}': {e}")
            return default

    def set_json(self, key: str, value: Any) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                '''
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                ''',
                (key, json.dumps(value, ensure_ascii=False), datetime.now().isoformat()),
            )
            conn.commit()

    def remove(self, key: str) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute('DELETE FROM kv WHERE key = ?', (key,))
            conn.commit()

    def has_seen(self, notice: str) -> bool:
        return notice in self.get_json(SEEN_NOTICES_KEY, [])

    def mark_seen(self, notice: str) -> None:
        seen = self.get_json(SEEN_NOTICES_KEY, [])
        if notice not in seen:
            seen.append(notice)
            self.set_json(SEEN_NOTICES_KEY, seen)
