"""
Control messages between the foreground app and the background worker.

Messages are plain dicts so any channel that can carry JSON can carry them.
"""
from typing import Any, Dict, Iterable

from .scheduler import Reminder

SCHEDULE_REMINDERS = "scheduleReminders"
CANCEL_REMINDERS = "cancelReminders"
SHOW_NOW = "showNow"


def schedule_reminders(reminders: Iterable[Reminder]) -> Dict[str, Any]:
    return {"type": SCHEDULE_REMINDERS, "reminders": [r.to_dict() for r in reminders]}


def cancel_reminders() -> Dict[str, Any]:
    return {"type": CANCEL_REMINDERS}


def show_now(title: str, body: str, tag: str) -> Dict[str, Any]:
    return {"type": SHOW_NOW, "title": title, "body": body, "tag": tag}
