"""
Fire-and-forget channels from the foreground app to the background worker.

Senders never wait for an answer. A failed delivery is logged and dropped.
"""
import queue
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..logging_config import reminder_logger

Handler = Callable[[Dict[str, Any]], None]


class MessageChannel(ABC):
    @abstractmethod
    def post_message(self, message: Dict[str, Any]) -> None:
        """Send ``message``. Returns immediately, no acknowledgement."""


class InlineChannel(MessageChannel):
    """Delivers on the caller's thread. Handy when worker and app share a process."""

    def __init__(self, handler: Handler):
        self.handler = handler

    def post_message(self, message: Dict[str, Any]) -> None:
        try:
            self.handler(message)
        except Exception as e:
            reminder_logger.error("Failed to deliver message", error=e, message_type=message.get("type"))


class QueueChannel(MessageChannel):
    """Delivers on a dedicated daemon thread, in send order."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self._queue: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "QueueChannel":
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._drain, name="mapto-reminder-channel", daemon=True)
            self._thread.start()
        return self

    def post_message(self, message: Dict[str, Any]) -> None:
        self._queue.put(dict(message))

    def join(self) -> None:
        """Block until every message sent so far has been handled."""
        self._queue.join()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join()
        self._thread = None

    def _drain(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message is None:
                    return
                self.handler(message)
            except Exception as e:
                reminder_logger.error("Failed to deliver message", error=e, message_type=message.get("type"))
            finally:
                self._queue.task_done()
