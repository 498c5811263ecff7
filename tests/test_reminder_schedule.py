"""
Tests for reminder windows and schedule computation.
"""
import random
from datetime import date, datetime, timedelta, timezone

from mapto.reminders import DEFAULT_WINDOWS, NotificationWindow, build_schedule, compute_next_trigger
from mapto.reminders.scheduler import to_ms
from mapto.reminders.windows import NOTIFICATION_MESSAGES, REMINDER_TITLE

JST = timezone(timedelta(hours=9))


def at(hour, minute=0, day=18):
    return datetime(2026, 10, day, hour, minute, tzinfo=JST)


class TestNotificationWindow:
    """Window normalization."""

    def test_clamps_hours_and_minutes(self):
        window = NotificationWindow(start_hour=-3, end_hour=30, start_minute=75, end_minute=-1)
        assert (window.start_hour, window.end_hour) == (0, 24)
        assert (window.start_minute, window.end_minute) == (59, 0)

    def test_window_can_end_at_midnight(self):
        window = NotificationWindow(start_hour=21, end_hour=24, end_minute=30)
        assert window.end_minute == 0
        start, end = window.bounds(date(2026, 10, 18), JST)
        assert (start, end) == (at(21), at(0, day=19))

    def test_inverted_window_becomes_one_hour(self):
        window = NotificationWindow(start_hour=22, end_hour=6)
        start, end = window.bounds(date(2026, 10, 18), JST)
        assert start == at(22)
        assert end == at(23)

    def test_empty_window_becomes_one_hour(self):
        start, end = NotificationWindow(start_hour=9, end_hour=9).bounds(date(2026, 10, 18), JST)
        assert end - start == timedelta(hours=1)

    def test_minutes_are_used(self):
        start, end = NotificationWindow(7, 8, start_minute=30, end_minute=15).bounds(date(2026, 10, 18), JST)
        assert (start, end) == (at(7, 30), at(8, 15))


class TestBuildSchedule:
    """Multi-day reminder plans."""

    def test_full_plan_in_the_morning(self):
        now = at(9)
        reminders = build_schedule(now, rng=random.Random(1))

        assert len(reminders) == 9
        assert [r.tag for r in reminders] == [
            "0-7-0", "0-12-1", "0-18-2",
            "1-7-0", "1-12-1", "1-18-2",
            "2-7-0", "2-12-1", "2-18-2",
        ]
        assert all(r.title == REMINDER_TITLE for r in reminders)
        assert all(r.body in NOTIFICATION_MESSAGES for r in reminders)

    def test_current_window_starts_now(self):
        now = at(9)
        first = build_schedule(now, rng=random.Random(7))[0]
        assert to_ms(now) < first.time < to_ms(at(10))

    def test_triggers_stay_inside_their_windows(self):
        now = at(9)
        for seed in range(20):
            for reminder in build_schedule(now, rng=random.Random(seed)):
                day_offset, start_hour, index = (int(part) for part in reminder.tag.split("-"))
                start, end = DEFAULT_WINDOWS[index].bounds(now.date() + timedelta(days=day_offset), JST)
                assert start_hour == DEFAULT_WINDOWS[index].start_hour
                assert to_ms(start) <= reminder.time < to_ms(end)
                assert reminder.time > to_ms(now)

    def test_late_evening_skips_today(self):
        reminders = build_schedule(at(22), rng=random.Random(3))
        assert len(reminders) == 6
        assert all(not r.tag.startswith("0-") for r in reminders)

    def test_tags_are_deterministic(self):
        now = at(13, 30)
        first = [r.tag for r in build_schedule(now, rng=random.Random(1))]
        second = [r.tag for r in build_schedule(now, rng=random.Random(99))]
        assert first == second
        assert first[0] == "0-12-1"

    def test_custom_windows_and_lookahead(self):
        windows = [NotificationWindow(start_hour=10, end_hour=11)]
        reminders = build_schedule(at(9), lookahead_days=1, windows=windows, rng=random.Random(5))
        assert [r.tag for r in reminders] == ["0-10-0"]
        assert to_ms(at(10)) <= reminders[0].time < to_ms(at(11))

    def test_late_window_until_midnight(self):
        windows = [NotificationWindow(start_hour=21, end_hour=24)]
        reminders = build_schedule(at(23, 30), lookahead_days=1, windows=windows, rng=random.Random(1))
        assert [r.tag for r in reminders] == ["0-21-0"]
        assert to_ms(at(23, 30)) < reminders[0].time < to_ms(at(0, day=19))


class TestComputeNextTrigger:
    """Single-window trigger for the timer fallback."""

    def test_before_window(self):
        window = NotificationWindow(start_hour=12, end_hour=14)
        trigger = compute_next_trigger(window, at(9), random.Random(2))
        assert at(12) <= trigger < at(14)

    def test_inside_window(self):
        window = NotificationWindow(start_hour=7, end_hour=10)
        trigger = compute_next_trigger(window, at(9, 30), random.Random(2))
        assert at(9, 30) <= trigger < at(10)

    def test_after_window_rolls_to_tomorrow(self):
        window = NotificationWindow(start_hour=7, end_hour=10)
        trigger = compute_next_trigger(window, at(10), random.Random(2))
        assert at(7, day=19) <= trigger < at(10, day=19)
        assert trigger.tzinfo == JST
