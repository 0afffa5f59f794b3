"""Tests for the trailing-edge debouncer."""

import threading

from record_desktop.debounce import Debouncer


class TestDebouncer:
    def test_fires_once_after_quiet_period(self, fake_timers):
        calls = []
        debouncer = Debouncer(0.5, lambda: calls.append(fake_timers.now), fake_timers)

        debouncer.trigger()
        fake_timers.advance(0.3)
        debouncer.trigger()
        fake_timers.advance(0.3)
        assert calls == []
        assert debouncer.pending

        fake_timers.advance(0.3)
        assert len(calls) == 1
        assert not debouncer.pending

    def test_last_arguments_win(self, fake_timers):
        calls = []
        debouncer = Debouncer(0.1, calls.append, fake_timers)

        for value in ("a", "b", "c"):
            debouncer.trigger(value)
        fake_timers.advance(1)

        assert calls == ["c"]

    def test_only_one_timer_live(self, fake_timers):
        debouncer = Debouncer(0.1, lambda: None, fake_timers)
        for _ in range(5):
            debouncer.trigger()
        assert len(fake_timers.live) == 1

    def test_cancel(self, fake_timers):
        calls = []
        debouncer = Debouncer(0.1, lambda: calls.append(1), fake_timers)
        debouncer.trigger()
        debouncer.cancel()
        fake_timers.advance(1)
        assert calls == []
        assert not debouncer.pending

    def test_stale_timer_is_ignored(self, fake_timers):
        calls = []
        debouncer = Debouncer(0.1, lambda: calls.append(1), fake_timers)
        debouncer.trigger()
        first = fake_timers.timers[0]
        debouncer.trigger()

        # A cancelled timer that still runs must not fire the callback
        first.function()

        assert calls == []

    def test_callback_error_is_contained(self, fake_timers):
        def broken():
            raise RuntimeError("boom")

        debouncer = Debouncer(0.1, broken, fake_timers)
        debouncer.trigger()
        fake_timers.advance(1)
        debouncer.trigger()
        assert debouncer.pending


def test_real_timer_fires():
    fired = threading.Event()
    debouncer = Debouncer(0.01, fired.set)
    debouncer.trigger()
    assert fired.wait(2)
