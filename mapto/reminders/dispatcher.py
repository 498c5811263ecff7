"""
Notification dispatcher: picks the delivery mechanism once and keeps at
most one reminder plan active.
"""
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..errors import CapabilityUnavailable
from ..logging_config import reminder_logger
from . import messages
from .channel import MessageChannel
from .delivery import Clock, NotificationDelivery, TimerDelivery, TimerFactory, TriggerDelivery, local_now, thread_timer
from .notifier import GRANTED, Notifier
from .scheduler import REMINDER_LOOKAHEAD_DAYS, Reminder
from .windows import DEFAULT_WINDOWS, NotificationWindow
from .worker import ReminderWorker


@dataclass(frozen=True)
class NotificationCapability:
    """What the runtime can do, resolved once at startup."""
    notifications: bool
    triggers: bool


def detect_capability(notifier: Optional[Notifier], worker: Optional[ReminderWorker] = None) -> NotificationCapability:
    """Probe the runtime. Missing trigger support is normal and selects the timer fallback."""
    notifications = notifier is not None
    triggers = notifications and worker is not None and worker.supports_triggers
    return NotificationCapability(notifications=notifications, triggers=triggers)


class NotificationDispatcher:
    """
    Schedules, cancels and shows reminders through the selected delivery.

    Scheduling is always a full replace: every armed timer and trigger is
    cancelled before a new plan is armed.
    """

    def __init__(
        self,
        capability: NotificationCapability,
        notifier: Notifier,
        channel: Optional[MessageChannel] = None,
        windows: Sequence[NotificationWindow] = DEFAULT_WINDOWS,
        lookahead_days: int = REMINDER_LOOKAHEAD_DAYS,
        clock: Clock = local_now,
        timer_factory: TimerFactory = thread_timer,
        rng: Optional[random.Random] = None,
    ):
        if not capability.notifications:
            raise CapabilityUnavailable("Notifications are not supported in this runtime")

        self.capability = capability
        self.notifier = notifier
        self.channel = channel
        self.clock = clock
        self._disable_listeners: List[Callable[[], None]] = []

        rng = rng or random.Random()
        self.fallback = TimerDelivery(notifier, windows, self._revoke, clock, timer_factory, rng)

        self.delivery: NotificationDelivery = self.fallback
        if capability.triggers and channel is not None:
            self.delivery = TriggerDelivery(channel, windows, lookahead_days, rng)
        else:
            reminder_logger.info("Deferred triggers unavailable, using in-process timers")

    @property
    def uses_triggers(self) -> bool:
        return isinstance(self.delivery, TriggerDelivery)

    def add_disable_listener(self, listener: Callable[[], None]) -> None:
        """Called when reminders are turned off because permission was lost."""
        self._disable_listeners.append(listener)

    def schedule(self) -> List[Reminder]:
        """Cancel everything, then arm a fresh plan. Returns the armed reminders."""
        self.fallback.cancel()

        if self.notifier.permission() != GRANTED:
            self._revoke()
            return []

        now = self.clock()
        if self.delivery is not self.fallback:
            try:
                return self.delivery.schedule(now)
            except Exception as e:
                reminder_logger.error("Failed to schedule with triggers, using timers", error=e)
        return self.fallback.schedule(now)

    def cancel(self) -> None:
        self.fallback.cancel()
        if self.delivery is not self.fallback:
            self.delivery.cancel()

    def show_now(self, title: str, body: str, tag: str) -> None:
        if self.uses_triggers:
            self.channel.post_message(messages.show_now(title, body, tag))
        else:
            self.notifier.show(title, body, tag)

    def _revoke(self) -> None:
        self.cancel()
        for listener in list(self._disable_listeners):
            listener()
