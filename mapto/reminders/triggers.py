"""
Persistent trigger store for the background reminder worker.

Scheduled notifications live in a small SQLite file, so they outlive the
foreground process that asked for them. A row is either ``pending`` (its
trigger time has not been reached) or ``shown``.
"""
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..logging_config import reminder_logger


@dataclass
class StoredNotification:
    """A notification known to the trigger store"""
    tag: str
    title: str
    body: str
    url: str
    trigger_time: Optional[int]  # ms since epoch, None for immediate
    status: str  # 'pending', 'shown'
    created_at: str


class TriggerStore:
    """
    SQLite-backed list of scheduled and shown notifications.

    Tags are unique: storing a notification with an existing tag replaces it.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self):
        """Initialize trigger database"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS scheduled_notifications (
                    tag TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    body TEXT NOT NULL,
                    url TEXT NOT NULL,
                    trigger_time INTEGER,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at TEXT NOT NULL
                )
            ''')
            conn.commit()

    def _put(self, tag: str, title: str, body: str, url: str, trigger_time: Optional[int], status: str):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                INSERT OR REPLACE INTO scheduled_notifications
                (tag, title, body, url, trigger_time, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (tag, title, body, url, trigger_time, status, datetime.now().isoformat()))
            conn.commit()

    def add_trigger(self, tag: str, title: str, body: str, url: str, trigger_time: int):
        """Store a notification to be shown at ``trigger_time``"""
        self._put(tag, title, body, url, int(trigger_time), "pending")

    def record_shown(self, tag: str, title: str, body: str, url: str):
        """Store a notification that was shown immediately"""
        self._put(tag, title, body, url, None, "shown")

    def notifications(self) -> List[StoredNotification]:
        """Every stored notification, pending and shown"""
        query = '''
            SELECT tag, title, body, url, trigger_time, status, created_at
            FROM scheduled_notifications
        '''
        query += " ORDER BY trigger_time ASC"

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(query)
            return [StoredNotification(*row) for row in cursor.fetchall()]

    def due(self, now_ms: int) -> List[StoredNotification]:
        """Pending notifications whose trigger time has been reached"""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute('''
                SELECT tag, title, body, url, trigger_time, status, created_at
                FROM scheduled_notifications
                WHERE status = 'pending' AND trigger_time <= ?
                ORDER BY trigger_time ASC
            ''', (int(now_ms),))
            return [StoredNotification(*row) for row in cursor.fetchall()]

    def mark_shown(self, tag: str) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE scheduled_notifications SET status = 'shown' WHERE tag = ?",
                (tag,)
            )
            conn.commit()
            return cursor.rowcount > 0

    def close(self, tag: str) -> bool:
        """Remove a notification, pending or shown"""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                'DELETE FROM scheduled_notifications WHERE tag = ?',
                (tag,)
            )
            conn.commit()
            removed = cursor.rowcount > 0

        if removed:
            reminder_logger.debug("Closed notification", tag=tag)
        return removed
