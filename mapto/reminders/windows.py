"""
Daily notification windows and the reminder message pool.
"""
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple

REMINDER_TITLE = "MapToからのお知らせ"
DEFAULT_URL = "https://mapto.onrender.com/"

NOTIFICATION_MESSAGES = [
    "近くの景色をマップで共有してみませんか？",
    "今いる場所のおすすめを一言投稿しましょう！",
    "今日の出来事を地図に残してみてください。",
    "散歩中の発見をシェアすると誰かが喜ぶかも！",
    "お気に入りのスポットをMapToに投稿しませんか？",
]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


@dataclass
class NotificationWindow:
    """
    A daily interval ``[start, end)`` in local time.

    Hours are clamped to 0-23 and minutes to 0-59. ``end_hour`` may also be
    24 (with minute 0), meaning midnight at the end of the day. A window
    whose end is not after its start becomes a one-hour window starting at
    ``start``.
    """
    start_hour: int
    end_hour: int
    start_minute: int = 0
    end_minute: int = 0

    def __post_init__(self):
        self.start_hour = _clamp(self.start_hour, 0, 23)
        self.end_hour = _clamp(self.end_hour, 0, 24)
        self.start_minute = _clamp(self.start_minute, 0, 59)
        self.end_minute = _clamp(self.end_minute, 0, 59)
        if self.end_hour == 24:
            self.end_minute = 0

    def bounds(self, day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
        """Start and end of this window on ``day``."""
        start = datetime.combine(day, time(self.start_hour, self.start_minute), tzinfo=tz)
        if self.end_hour == 24:
            end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
        else:
            end = datetime.combine(day, time(self.end_hour, self.end_minute), tzinfo=tz)
        if end <= start:
            end = start + timedelta(hours=1)
        return start, end


DEFAULT_WINDOWS: List[NotificationWindow] = [
    NotificationWindow(start_hour=7, end_hour=10),    # morning
    NotificationWindow(start_hour=12, end_hour=14),   # midday
    NotificationWindow(start_hour=18, end_hour=21),   # evening
]


def pick_message(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(NOTIFICATION_MESSAGES)
