"""
Reminder delivery strategies.

TriggerDelivery hands a full multi-day batch to the background worker, which
keeps it across restarts of the foreground process. TimerDelivery keeps one
software timer per window alive in this process and re-arms it every day.
"""
import random
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from ..logging_config import reminder_logger
from . import messages
from .channel import MessageChannel
from .notifier import GRANTED, Notifier
from .scheduler import REMINDER_LOOKAHEAD_DAYS, Reminder, build_schedule, compute_next_trigger, to_ms
from .windows import DEFAULT_URL, REMINDER_TITLE, NotificationWindow, pick_message

Clock = Callable[[], datetime]
TimerFactory = Callable[[float, Callable[[], None]], object]


def local_now() -> datetime:
    return datetime.now().astimezone()


def thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class NotificationDelivery(ABC):
    """Common interface of the two delivery mechanisms."""

    @abstractmethod
    def schedule(self, now: datetime) -> List[Reminder]:
        """Replace whatever is armed with a fresh plan. Returns what was armed."""

    @abstractmethod
    def cancel(self) -> None:
        """Disarm everything. Nothing armed before the call fires afterwards."""


# ============================================================
# TRIGGER PATH
# ============================================================

class TriggerDelivery(NotificationDelivery):
    """Sends the whole lookahead batch to the background worker."""

    def __init__(
        self,
        channel: MessageChannel,
        windows: Sequence[NotificationWindow],
        lookahead_days: int = REMINDER_LOOKAHEAD_DAYS,
        rng: Optional[random.Random] = None,
    ):
        self.channel = channel
        self.windows = list(windows)
        self.lookahead_days = lookahead_days
        self.rng = rng or random.Random()

    def schedule(self, now: datetime) -> List[Reminder]:
        reminders = build_schedule(now, self.lookahead_days, self.windows, self.rng)
        self.channel.post_message(messages.cancel_reminders())
        if reminders:
            self.channel.post_message(messages.schedule_reminders(reminders))
        reminder_logger.info("Sent reminder batch", count=len(reminders))
        return reminders

    def cancel(self) -> None:
        self.channel.post_message(messages.cancel_reminders())


# ============================================================
# TIMER FALLBACK
# ============================================================

class WindowTimer:
    """
    Repeating task for one window: fire, then re-arm for the same window
    starting from the next local midnight. ``token`` stops the chain.
    """

    def __init__(
        self,
        window: NotificationWindow,
        on_fire: Callable[[NotificationWindow], None],
        clock: Clock,
        timer_factory: TimerFactory,
        rng: random.Random,
        fire_lock: Optional[threading.RLock] = None,
    ):
        self.window = window
        self.on_fire = on_fire
        self.clock = clock
        self.timer_factory = timer_factory
        self.rng = rng
        self.token = threading.Event()
        self.next_trigger: Optional[datetime] = None
        self._timer = None
        self._lock = threading.Lock()
        # held from the token check through on_fire; cancel() waits on it
        self._fire_lock = fire_lock or threading.RLock()

    def arm(self, base: datetime) -> Optional[datetime]:
        with self._lock:
            if self.token.is_set():
                return None
            trigger = compute_next_trigger(self.window, base, self.rng)
            delay = max(0.0, (trigger - self.clock()).total_seconds())
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self.timer_factory(delay, self._fire)
            self._timer.start()
            self.next_trigger = trigger
            return trigger

    def _fire(self) -> None:
        with self._fire_lock:
            if self.token.is_set():
                return
            self.on_fire(self.window)
            if self.token.is_set():
                return
            tomorrow = (self.clock() + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
            self.arm(tomorrow)

    def cancel(self) -> None:
        """Stop the chain. Returns only once no firing is in progress."""
        self.token.set()
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self.next_trigger = None
        with self._fire_lock:
            pass


class TimerDelivery(NotificationDelivery):
    """In-process fallback: at most one live timer per window."""

    def __init__(
        self,
        notifier: Notifier,
        windows: Sequence[NotificationWindow],
        on_revoked: Callable[[], None],
        clock: Clock = local_now,
        timer_factory: TimerFactory = thread_timer,
        rng: Optional[random.Random] = None,
    ):
        self.notifier = notifier
        self.windows = list(windows)
        self.on_revoked = on_revoked
        self.clock = clock
        self.timer_factory = timer_factory
        self.rng = rng or random.Random()
        self._tasks: List[WindowTimer] = []
        self._lock = threading.Lock()
        # shared by every window so a revoke from one firing can cancel the others
        self._fire_lock = threading.RLock()

    @property
    def active(self) -> List[WindowTimer]:
        with self._lock:
            return [t for t in self._tasks if not t.token.is_set()]

    def schedule(self, now: datetime) -> List[Reminder]:
        self.cancel()

        tasks = [
            WindowTimer(window, self._show, self.clock, self.timer_factory, self.rng, self._fire_lock)
            for window in self.windows
        ]
        with self._lock:
            self._tasks = tasks

        planned = []
        for index, task in enumerate(tasks):
            trigger = task.arm(now)
            if trigger is None:
                continue
            planned.append(Reminder(
                time=to_ms(trigger),
                title=REMINDER_TITLE,
                body="",
                tag=f"timer-{task.window.start_hour}-{index}",
            ))
        reminder_logger.info("Armed fallback reminder timers", count=len(planned))
        return planned

    def cancel(self) -> None:
        with self._lock:
            tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()

    def _show(self, window: NotificationWindow) -> None:
        """Show one reminder now. Lost permission turns reminders off."""
        if self.notifier.permission() != GRANTED:
            reminder_logger.info("Notification permission revoked, disabling reminders")
            self.on_revoked()
            return
        try:
            self.notifier.show(REMINDER_TITLE, pick_message(self.rng), "mapto-reminder", DEFAULT_URL)
        except Exception as e:
            reminder_logger.error("Failed to show reminder, disabling reminders", error=e)
            self.on_revoked()
