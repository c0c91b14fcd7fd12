"""Local one-shot notification ledger standing in for the platform notification center."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence

from .db import get_connection
from .schemas import ActivityCategory, ScheduledReminder

logger = logging.getLogger(__name__)


class NotificationCenter(Protocol):
    async def schedule_one_shot(
        self,
        identifier: str,
        fire_at: datetime,
        title: str,
        body: str,
    ) -> None: ...

    async def cancel(self, identifiers: Sequence[str]) -> None: ...

    async def permission_granted(self) -> bool: ...


def category_for_identifier(identifier: str) -> ActivityCategory:
    return ActivityCategory(identifier.removeprefix("reminder_"))


def _row_to_reminder(row) -> ScheduledReminder:
    return ScheduledReminder(
        identifier=row[0],
        category=category_for_identifier(row[0]),
        fire_at=datetime.fromisoformat(row[1]),
        title=row[2],
        body=row[3],
    )


class LocalNotificationCenter:
    """SQLite-backed notification center.

    One row per identifier: scheduling an identifier that already exists
    replaces it, so a category can never hold two live notifications.
    """

    async def schedule_one_shot(
        self,
        identifier: str,
        fire_at: datetime,
        title: str,
        body: str,
    ) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO scheduled_notifications (
                    identifier, fire_at, title, body, delivered_at, created_at
                ) VALUES (?, ?, ?, ?, NULL, ?)
                """,
                (identifier, fire_at.isoformat(), title, body, now),
            )
            conn.commit()

    async def cancel(self, identifiers: Sequence[str]) -> None:
        if not identifiers:
            return
        placeholders = ", ".join("?" for _ in identifiers)
        with get_connection() as conn:
            conn.execute(
                f"DELETE FROM scheduled_notifications WHERE identifier IN ({placeholders})",
                tuple(identifiers),
            )
            conn.commit()

    async def permission_granted(self) -> bool:
        with get_connection() as conn:
            row = conn.execute("SELECT granted FROM notification_permission WHERE id = 1").fetchone()
        return bool(row and row[0])

    async def set_permission(self, granted: bool) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO notification_permission (id, granted, updated_at)
                VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET granted = excluded.granted, updated_at = excluded.updated_at
                """,
                (1 if granted else 0, now),
            )
            conn.commit()

    def pending(self, identifier: Optional[str] = None) -> List[ScheduledReminder]:
        query = (
            "SELECT identifier, fire_at, title, body FROM scheduled_notifications "
            "WHERE delivered_at IS NULL"
        )
        params: tuple = ()
        if identifier:
            query += " AND identifier = ?"
            params = (identifier,)
        with get_connection() as conn:
            rows = conn.execute(query + " ORDER BY fire_at ASC", params).fetchall()
        return [_row_to_reminder(row) for row in rows]

    def deliver_due(self, now: datetime) -> List[ScheduledReminder]:
        """Mark every pending notification whose fire time has come as delivered."""
        due = [reminder for reminder in self.pending() if reminder.fire_at <= now]
        if not due:
            return []
        with get_connection() as conn:
            conn.executemany(
                "UPDATE scheduled_notifications SET delivered_at = ? WHERE identifier = ?",
                [(now.isoformat(), reminder.identifier) for reminder in due],
            )
            conn.commit()
        for reminder in due:
            logger.info(
                "notification delivered",
                extra={"identifier": reminder.identifier, "fire_at": reminder.fire_at.isoformat()},
            )
        return due


def get_notification_center() -> LocalNotificationCenter:
    return LocalNotificationCenter()
