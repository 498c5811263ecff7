"""
Background reminder worker.

Receives control messages from the foreground app, keeps scheduled
notifications in the TriggerStore and shows them once they are due.
"""
import sqlite3
import threading
from typing import Any, List, Mapping, Optional, Set

from ..logging_config import reminder_logger
from ..store.sanitize import now_ms
from . import messages
from .notifier import Notifier
from .triggers import TriggerStore
from .windows import DEFAULT_URL, REMINDER_TITLE

DEFAULT_TAG = "mapto-reminder"


class ReminderWorker:
    """Handles ``scheduleReminders``, ``cancelReminders`` and ``showNow``."""

    def __init__(self, notifier: Notifier, store: Optional[TriggerStore] = None):
        self.notifier = notifier
        self.store = store
        self._lock = threading.Lock()
        self._scheduled_tags: Set[str] = set()

    @property
    def supports_triggers(self) -> bool:
        return self.store is not None

    @property
    def scheduled_tags(self) -> Set[str]:
        with self._lock:
            return set(self._scheduled_tags)

    def handle(self, message: Mapping[str, Any]) -> None:
        """Dispatch one control message. Unknown messages are ignored."""
        kind = message.get("type") if isinstance(message, Mapping) else None

        if kind == messages.SCHEDULE_REMINDERS:
            self.schedule_reminders(message.get("reminders"))
        elif kind == messages.CANCEL_REMINDERS:
            self.cancel_reminders()
        elif kind == messages.SHOW_NOW:
            self.show_now(message.get("title"), message.get("body"), message.get("tag"))
        else:
            reminder_logger.debug("Ignoring unknown message", message_type=str(kind))

    def schedule_reminders(self, reminders: Any) -> int:
        """Replace every armed reminder with ``reminders``. Returns how many were armed."""
        if not self.supports_triggers or not isinstance(reminders, list) or not reminders:
            return 0

        self.cancel_reminders()

        armed = 0
        for reminder in reminders:
            if not isinstance(reminder, Mapping):
                continue
            trigger_time = reminder.get("time")
            if isinstance(trigger_time, bool) or not isinstance(trigger_time, (int, float)):
                continue

            tag = reminder.get("tag") or DEFAULT_TAG
            try:
                self.store.add_trigger(
                    tag=tag,
                    title=reminder.get("title") or REMINDER_TITLE,
                    body=reminder.get("body") or "",
                    url=reminder.get("url") or DEFAULT_URL,
                    trigger_time=int(trigger_time),
                )
            except sqlite3.Error as e:
                reminder_logger.error("Failed to schedule reminder", error=e, tag=tag)
                continue

            if reminder.get("tag"):
                with self._lock:
                    self._scheduled_tags.add(tag)
            armed += 1

        reminder_logger.info("Reminders scheduled", count=armed)
        return armed

    def cancel_reminders(self) -> int:
        """
        Close notifications this worker armed.

        Notifications without a tag are always closed. When the worker does
        not remember arming anything (fresh start), everything is closed.
        """
        if not self.supports_triggers:
            return 0

        closed = 0
        with self._lock:
            known = set(self._scheduled_tags)
            try:
                for notification in self.store.notifications():
                    if not notification.tag or not known or notification.tag in known:
                        if self.store.close(notification.tag):
                            closed += 1
            except sqlite3.Error as e:
                reminder_logger.error("Failed to cancel scheduled reminders", error=e)
            finally:
                self._scheduled_tags.clear()

        return closed

    def show_now(self, title: Optional[str], body: Optional[str], tag: Optional[str]) -> None:
        title = title or REMINDER_TITLE
        body = body or ""
        tag = tag or DEFAULT_TAG
        self.notifier.show(title, body, tag, DEFAULT_URL)
        if self.store is not None:
            self.store.record_shown(tag, title, body, DEFAULT_URL)

    def fire_due(self, now: Optional[int] = None) -> List[str]:
        """Show every pending notification whose time has come. Returns their tags."""
        if not self.supports_triggers:
            return []

        fired = []
        for notification in self.store.due(now_ms() if now is None else now):
            try:
                self.notifier.show(notification.title, notification.body, notification.tag, notification.url)
            except Exception as e:
                reminder_logger.error("Failed to show reminder", error=e, tag=notification.tag)
                continue
            self.store.mark_shown(notification.tag)
            fired.append(notification.tag)
        return fired

    def run(self, stop: threading.Event, poll_seconds: float = 30.0) -> None:
        """Fire due notifications every ``poll_seconds`` until ``stop`` is set."""
        reminder_logger.info("Reminder worker started", poll_seconds=poll_seconds)
        while not stop.is_set():
            try:
                self.fire_due()
            except sqlite3.Error as e:
                reminder_logger.error("Reminder worker pass failed", error=e)
            stop.wait(poll_seconds)
        reminder_logger.info("Reminder worker stopped")

