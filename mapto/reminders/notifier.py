"""
The surface that actually puts a notification in front of the user.
"""
from abc import ABC, abstractmethod

from ..logging_config import reminder_logger

GRANTED = "granted"
DENIED = "denied"
DEFAULT = "default"


class Notifier(ABC):
    """Displays notifications and reports whether it is allowed to."""

    @abstractmethod
    def permission(self) -> str:
        """One of ``granted``, ``denied`` or ``default`` (not asked yet)."""

    def request_permission(self) -> str:
        return self.permission()

    @abstractmethod
    def show(self, title: str, body: str, tag: str, url: str = "") -> None:
        """Show a notification now. Raises when the platform refuses."""


class LogNotifier(Notifier):
    """Writes notifications to the reminder log. Always permitted."""

    def permission(self) -> str:
        return GRANTED

    def show(self, title: str, body: str, tag: str, url: str = "") -> None:
        reminder_logger.info(title, body=body, tag=tag, url=url)
