"""
Turning post reminders on and off, and restoring them on startup.
"""
from ..logging_config import reminder_logger
from .dispatcher import NotificationDispatcher
from .notifier import DEFAULT, DENIED, GRANTED
from .preferences import PreferenceStore


class ReminderController:
    """Owns the enabled flag and keeps it in sync with the stored preference."""

    def __init__(self, dispatcher: NotificationDispatcher, preferences: PreferenceStore):
        self.dispatcher = dispatcher
        self.notifier = dispatcher.notifier
        self.preferences = preferences
        self.enabled = False
        dispatcher.add_disable_listener(self._on_revoked)

    def enable(self) -> bool:
        """Ask for permission if needed, then schedule. Returns whether reminders are on."""
        permission = self.notifier.permission()
        if permission == DEFAULT:
            try:
                permission = self.notifier.request_permission()
            except Exception as e:
                reminder_logger.error("Permission request failed", error=e)
                permission = DENIED

        if permission != GRANTED:
            reminder_logger.info("Reminders not enabled", permission=permission)
            return False

        self.enabled = True
        self.dispatcher.schedule()
        if self.enabled:
            self.preferences.set_enabled(True)
        return self.enabled

    def disable(self) -> None:
        self.dispatcher.cancel()
        self.enabled = False
        self.preferences.set_enabled(False)

    def toggle(self) -> bool:
        if self.enabled:
            self.disable()
            return False
        return self.enable()

    def restore(self) -> bool:
        """Re-schedule on startup when the stored preference says so."""
        if not self.preferences.is_enabled():
            return False

        if self.notifier.permission() != GRANTED:
            self.preferences.set_enabled(False)
            return False

        self.enabled = True
        try:
            self.dispatcher.schedule()
        except Exception as e:
            reminder_logger.error("Failed to reschedule reminders", error=e)
        return self.enabled

    def resync(self) -> None:
        """Rebuild the plan (e.g. once a day) while reminders are on."""
        if self.enabled:
            self.dispatcher.schedule()

    def _on_revoked(self) -> None:
        self.enabled = False
        self.preferences.set_enabled(False)
