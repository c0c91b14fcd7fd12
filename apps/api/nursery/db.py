"""SQLite helpers."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .config import CONFIG

_DB_PATH = CONFIG.resolved_database_path
_DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def initialize_db() -> None:
    with sqlite3.connect(_DB_PATH) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_settings (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS scheduled_notifications (
                identifier TEXT PRIMARY KEY,
                fire_at TEXT NOT NULL,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                delivered_at TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS notification_permission (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                granted INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL
            );
            """
        )
        conn.commit()


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def reset_db() -> None:
    """Drop every stored row."""
    with get_connection() as conn:
        for table in ["user_settings", "scheduled_notifications", "notification_permission"]:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()

