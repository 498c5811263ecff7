"""
Reminder schedule computation.

Triggers are drawn uniformly at random inside each daily window. Nothing
here arms timers or talks to the background worker; see delivery.py.
"""
import math
import random
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from .windows import DEFAULT_URL, DEFAULT_WINDOWS, REMINDER_TITLE, NotificationWindow, pick_message

REMINDER_LOOKAHEAD_DAYS = 3


@dataclass
class Reminder:
    """One planned notification."""
    time: int  # ms since epoch
    title: str
    body: str
    tag: str
    url: str = DEFAULT_URL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def make_tag(day_offset: int, window: NotificationWindow, index: int) -> str:
    """Deterministic tag so a rebuild for the same lookahead yields the same tags."""
    return f"{day_offset}-{window.start_hour}-{index}"


def _draw_ms(start: datetime, end: datetime, rng: random.Random) -> int:
    """Uniform draw in [start, end), in ms."""
    start_ms = to_ms(start)
    span = max(1, to_ms(end) - start_ms)
    return start_ms + int(math.floor(rng.random() * span))


def build_schedule(
    now: datetime,
    lookahead_days: int = REMINDER_LOOKAHEAD_DAYS,
    windows: Sequence[NotificationWindow] = DEFAULT_WINDOWS,
    rng: Optional[random.Random] = None,
) -> List[Reminder]:
    """
    Plan one reminder per window per day for ``lookahead_days`` days.

    On day 0, windows that already ended are skipped and a window already
    underway starts at ``now``. Draws that are not strictly after ``now``
    are dropped.
    """
    rng = rng or random.Random()
    now_ms = to_ms(now)
    schedule = []

    for day_offset in range(lookahead_days):
        day = now.date() + timedelta(days=day_offset)

        for index, window in enumerate(windows):
            start, end = window.bounds(day, now.tzinfo)

            if day_offset == 0 and now >= end:
                continue

            effective_start = start
            if day_offset == 0 and now > start:
                effective_start = now

            trigger_ms = _draw_ms(effective_start, end, rng)
            if trigger_ms <= now_ms:
                continue

            schedule.append(Reminder(
                time=trigger_ms,
                title=REMINDER_TITLE,
                body=pick_message(rng),
                tag=make_tag(day_offset, window, index),
            ))

    return schedule


def compute_next_trigger(
    window: NotificationWindow,
    base: datetime,
    rng: Optional[random.Random] = None,
) -> datetime:
    """Next random trigger for ``window`` at or after ``base``.

    When ``base`` is past today's window, tomorrow's window is used.
    """
    rng = rng or random.Random()
    start, end = window.bounds(base.date(), base.tzinfo)

    if base >= end:
        start, end = window.bounds(base.date() + timedelta(days=1), base.tzinfo)
    elif base > start:
        start = base

    trigger_ms = _draw_ms(start, end, rng)
    return datetime.fromtimestamp(trigger_ms / 1000, tz=base.tzinfo)
