"""
Post reminders: randomized local notifications nudging users to post.
"""
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .channel import QueueChannel
from .controller import ReminderController
from .dispatcher import NotificationCapability, NotificationDispatcher, detect_capability
from .notifier import LogNotifier, Notifier
from .preferences import PreferenceStore
from .scheduler import Reminder, build_schedule, compute_next_trigger
from .triggers import TriggerStore
from .windows import DEFAULT_WINDOWS, NotificationWindow
from .worker import ReminderWorker


@dataclass
class ReminderRuntime:
    """Everything wired together for one app instance."""
    controller: ReminderController
    dispatcher: NotificationDispatcher
    worker: ReminderWorker
    channel: Optional[QueueChannel]
    worker_thread: Optional[threading.Thread] = None
    stop_event: threading.Event = field(default_factory=threading.Event)

    def shutdown(self) -> None:
        self.stop_event.set()
        if self.worker_thread is not None:
            self.worker_thread.join()
        if self.channel is not None:
            self.channel.stop()


def create_reminders(
    data_dir: Path,
    notifier: Optional[Notifier] = None,
    use_triggers: bool = True,
    poll_seconds: float = 30.0,
    **dispatcher_options,
) -> ReminderRuntime:
    """
    Build the worker, channel, dispatcher and controller.

    With ``use_triggers`` the worker keeps its plan in ``data_dir/reminders.db``;
    otherwise reminders fall back to in-process timers.
    """
    data_dir = Path(data_dir)
    notifier = notifier or LogNotifier()

    store = TriggerStore(data_dir / "reminders.db") if use_triggers else None
    worker = ReminderWorker(notifier, store)
    capability = detect_capability(notifier, worker)

    channel = QueueChannel(worker.handle).start() if capability.triggers else None
    dispatcher = NotificationDispatcher(capability, notifier, channel=channel, **dispatcher_options)
    controller = ReminderController(dispatcher, PreferenceStore(data_dir / "preferences.json"))
    runtime = ReminderRuntime(controller=controller, dispatcher=dispatcher, worker=worker, channel=channel)

    if capability.triggers:
        runtime.worker_thread = threading.Thread(
            target=worker.run,
            args=(runtime.stop_event, poll_seconds),
            name="mapto-reminder-worker",
            daemon=True,
        )
        runtime.worker_thread.start()
    return runtime


__all__ = [
    "DEFAULT_WINDOWS",
    "NotificationCapability",
    "NotificationDispatcher",
    "NotificationWindow",
    "Reminder",
    "ReminderController",
    "ReminderRuntime",
    "ReminderWorker",
    "build_schedule",
    "compute_next_trigger",
    "create_reminders",
    "detect_capability",
]
