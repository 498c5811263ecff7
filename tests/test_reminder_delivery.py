"""
Tests for reminder dispatching: trigger batches, timer fallback, and the
enable/disable controller.
"""
import json
import random
import threading
from datetime import timedelta

import pytest

from mapto.errors import CapabilityUnavailable
from mapto.reminders import (
    NotificationCapability,
    NotificationDispatcher,
    ReminderController,
    ReminderWorker,
    create_reminders,
    detect_capability,
)
from mapto.reminders.channel import InlineChannel, MessageChannel
from mapto.reminders.notifier import DEFAULT, DENIED, GRANTED, Notifier
from mapto.reminders.preferences import PREFERENCE_KEY, PreferenceStore
from mapto.reminders.scheduler import to_ms
from mapto.reminders.triggers import TriggerStore


@pytest.fixture
def trigger_store(tmp_path):
    return TriggerStore(tmp_path / "reminders.db")


@pytest.fixture
def preferences(tmp_path):
    return PreferenceStore(tmp_path / "preferences.json")


def timer_dispatcher(notifier, clock, timers):
    capability = NotificationCapability(notifications=True, triggers=False)
    return NotificationDispatcher(
        capability, notifier, clock=clock, timer_factory=timers, rng=random.Random(4),
    )


def trigger_dispatcher(notifier, clock, timers, store, channel=None):
    worker = ReminderWorker(notifier, store)
    channel = channel or InlineChannel(worker.handle)
    dispatcher = NotificationDispatcher(
        detect_capability(notifier, worker), notifier, channel=channel,
        clock=clock, timer_factory=timers, rng=random.Random(4),
    )
    return dispatcher, worker


class BrokenChannel(MessageChannel):
    def post_message(self, message):
        raise RuntimeError("worker gone")


class GatedNotifier(Notifier):
    """Blocks inside permission() while gated, until released."""

    def __init__(self, events):
        self.events = events
        self.gate = False
        self.entered = threading.Event()
        self.release = threading.Event()

    def permission(self):
        if self.gate:
            self.entered.set()
            self.release.wait(5)
        return GRANTED

    def show(self, title, body, tag, url=""):
        self.events.append("shown")


class TestCapability:
    """Capability detection and the unsupported case."""

    def test_detect(self, notifier, trigger_store):
        assert detect_capability(None) == NotificationCapability(False, False)
        assert detect_capability(notifier) == NotificationCapability(True, False)
        assert detect_capability(notifier, ReminderWorker(notifier)) == NotificationCapability(True, False)
        assert detect_capability(notifier, ReminderWorker(notifier, trigger_store)) == NotificationCapability(True, True)

    def test_no_notifications(self, notifier):
        with pytest.raises(CapabilityUnavailable):
            NotificationDispatcher(NotificationCapability(False, False), notifier)

    def test_triggers_without_channel_use_timers(self, notifier):
        dispatcher = NotificationDispatcher(NotificationCapability(True, True), notifier)
        assert not dispatcher.uses_triggers


class TestTimerFallback:
    """In-process timers, one per window."""

    def test_arms_one_timer_per_window(self, notifier, clock, timers):
        dispatcher = timer_dispatcher(notifier, clock, timers)

        planned = dispatcher.schedule()
        assert [r.tag for r in planned] == ["timer-7-0", "timer-12-1", "timer-18-2"]
        assert len(timers.live) == 3
        # 09:00 falls inside the morning window
        assert 0 <= timers.live[0].delay < 3600
        assert 3 * 3600 <= timers.live[1].delay < 5 * 3600
        assert 9 * 3600 <= timers.live[2].delay < 12 * 3600

    def test_reschedule_replaces_timers(self, notifier, clock, timers):
        dispatcher = timer_dispatcher(notifier, clock, timers)
        dispatcher.schedule()
        first = list(timers.live)

        dispatcher.schedule()
        assert all(t.cancelled for t in first)
        assert len(timers.live) == 3
        assert len(dispatcher.fallback.active) == 3

    def test_fire_shows_and_rearms_for_tomorrow(self, notifier, clock, timers):
        dispatcher = timer_dispatcher(notifier, clock, timers)
        dispatcher.schedule()
        morning = timers.live[0]

        morning.fire()
        assert len(notifier.shown) == 1
        assert notifier.shown[0]["title"] == "MapToからのお知らせ"

        rearmed = timers.timers[-1]
        assert rearmed is not morning
        assert rearmed.started
        assert 22 * 3600 <= rearmed.delay < 25 * 3600
        task = dispatcher.fallback.active[0]
        assert task.next_trigger.date() == (clock.now + timedelta(days=1)).date()

    def test_cancel_stops_firing(self, notifier, clock, timers):
        dispatcher = timer_dispatcher(notifier, clock, timers)
        dispatcher.schedule()
        armed = list(timers.live)

        dispatcher.cancel()
        assert timers.live == []
        for timer in armed:
            # a callback already in flight must not show or re-arm
            timer.fire()
        assert notifier.shown == []
        assert timers.live == []

    def test_cancel_waits_for_firing_in_progress(self, clock, timers):
        events = []
        notifier = GatedNotifier(events)
        dispatcher = timer_dispatcher(notifier, clock, timers)
        dispatcher.schedule()
        armed = list(timers.live)

        notifier.gate = True
        firing = threading.Thread(target=armed[0].fire)
        firing.start()
        assert notifier.entered.wait(5)

        def cancel():
            dispatcher.cancel()
            events.append("cancelled")

        cancelling = threading.Thread(target=cancel)
        cancelling.start()
        cancelling.join(0.2)
        assert cancelling.is_alive()

        notifier.release.set()
        firing.join(5)
        cancelling.join(5)
        assert events == ["shown", "cancelled"]

        notifier.gate = False
        for timer in armed[1:]:
            timer.fire()
        assert events == ["shown", "cancelled"]
        assert timers.live == []

    def test_revoked_permission_disables(self, notifier, clock, timers, preferences):
        dispatcher = timer_dispatcher(notifier, clock, timers)
        controller = ReminderController(dispatcher, preferences)
        assert controller.enable()
        assert preferences.is_enabled()

        notifier.state = DENIED
        timers.live[1].fire()

        assert notifier.shown == []
        assert controller.enabled is False
        assert not preferences.is_enabled()
        assert timers.live == []

    def test_show_failure_disables(self, notifier, clock, timers, preferences):
        def refuse(*args, **kwargs):
            raise RuntimeError("blocked")

        dispatcher = timer_dispatcher(notifier, clock, timers)
        controller = ReminderController(dispatcher, preferences)
        controller.enable()

        notifier.show = refuse
        timers.live[0].fire()
        assert controller.enabled is False
        assert timers.live == []


class TestTriggerDelivery:
    """Batches handed to the background worker."""

    def test_schedule_stores_batch(self, notifier, clock, timers, trigger_store):
        dispatcher, worker = trigger_dispatcher(notifier, clock, timers, trigger_store)
        assert dispatcher.uses_triggers

        planned = dispatcher.schedule()
        stored = trigger_store.notifications()
        assert len(planned) == 9
        assert sorted(n.tag for n in stored) == sorted(r.tag for r in planned)
        assert all(n.status == "pending" for n in stored)
        assert timers.timers == []
        assert worker.scheduled_tags == {r.tag for r in planned}

    def test_second_enable_replaces_first_plan(self, notifier, clock, timers, trigger_store):
        dispatcher, _ = trigger_dispatcher(notifier, clock, timers, trigger_store)
        dispatcher.schedule()

        clock.now = clock.now.replace(hour=13)
        second = dispatcher.schedule()

        stored = {n.tag: n.trigger_time for n in trigger_store.notifications()}
        assert stored == {r.tag: r.time for r in second}
        assert "0-7-0" not in stored
        assert min(stored.values()) > to_ms(clock.now)

    def test_cancel_clears_store(self, notifier, clock, timers, trigger_store):
        dispatcher, _ = trigger_dispatcher(notifier, clock, timers, trigger_store)
        dispatcher.schedule()
        dispatcher.cancel()
        assert trigger_store.notifications() == []

    def test_broken_channel_falls_back_to_timers(self, notifier, clock, timers, trigger_store):
        dispatcher, _ = trigger_dispatcher(notifier, clock, timers, trigger_store, channel=BrokenChannel())

        planned = dispatcher.schedule()
        assert [r.tag for r in planned] == ["timer-7-0", "timer-12-1", "timer-18-2"]
        assert len(timers.live) == 3

    def test_show_now_goes_through_worker(self, notifier, clock, timers, trigger_store):
        dispatcher, _ = trigger_dispatcher(notifier, clock, timers, trigger_store)
        dispatcher.show_now("hi", "there", "test-tag")

        assert notifier.shown == [
            {"title": "hi", "body": "there", "tag": "test-tag", "url": "https://mapto.onrender.com/"},
        ]
        assert [n.status for n in trigger_store.notifications()] == ["shown"]


class TestReminderController:
    """Enable, disable, toggle and restore."""

    def test_enable_asks_for_permission(self, notifier, clock, timers, preferences):
        notifier.state = DEFAULT
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)

        assert controller.enable() is True
        assert preferences.is_enabled()
        assert len(timers.live) == 3

    def test_enable_denied(self, clock, timers, preferences, notifier):
        notifier.state = DEFAULT
        notifier.grant_on_request = False
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)

        assert controller.enable() is False
        assert controller.enabled is False
        assert not preferences.is_enabled()
        assert timers.timers == []

    def test_disable_and_toggle(self, notifier, clock, timers, preferences):
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)

        assert controller.toggle() is True
        assert controller.toggle() is False
        assert timers.live == []
        assert not preferences.is_enabled()
        assert PREFERENCE_KEY not in json.loads(preferences.path.read_text(encoding="utf-8"))

    def test_restore(self, notifier, clock, timers, preferences):
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)
        assert controller.restore() is False

        preferences.set_enabled(True)
        assert controller.restore() is True
        assert len(timers.live) == 3

    def test_restore_without_permission_clears_preference(self, notifier, clock, timers, preferences):
        preferences.set_enabled(True)
        notifier.state = DENIED
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)

        assert controller.restore() is False
        assert not preferences.is_enabled()

    def test_resync_only_when_enabled(self, notifier, clock, timers, preferences):
        controller = ReminderController(timer_dispatcher(notifier, clock, timers), preferences)
        controller.resync()
        assert timers.timers == []

        controller.enable()
        controller.resync()
        assert len(timers.live) == 3
        assert len(timers.timers) == 6

    def test_corrupt_preference_file(self, tmp_path):
        path = tmp_path / "preferences.json"
        path.write_text("{oops", encoding="utf-8")
        assert PreferenceStore(path).is_enabled() is False


class TestCreateReminders:
    """Runtime wiring."""

    def test_timer_runtime(self, tmp_path, notifier, clock, timers):
        runtime = create_reminders(tmp_path, notifier=notifier, use_triggers=False, clock=clock, timer_factory=timers)
        try:
            assert runtime.channel is None
            assert runtime.worker_thread is None
            assert not runtime.dispatcher.uses_triggers
            assert runtime.controller.enable()
            assert len(timers.live) == 3
        finally:
            runtime.shutdown()

    def test_trigger_runtime(self, tmp_path, notifier, clock, timers):
        runtime = create_reminders(tmp_path, notifier=notifier, poll_seconds=0.05, clock=clock, timer_factory=timers)
        try:
            assert runtime.dispatcher.uses_triggers
            assert runtime.worker_thread.is_alive()

            assert runtime.controller.enable()
            runtime.channel.join()
            assert len(runtime.worker.store.notifications()) == 9
            assert (tmp_path / "reminders.db").exists()
            assert PreferenceStore(tmp_path / "preferences.json").is_enabled()
        finally:
            runtime.shutdown()
        assert not runtime.worker_thread.is_alive()
