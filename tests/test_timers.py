"""Tests for the pause-aware timer registry."""

import asyncio
import logging

from tokyo_cpu.systems import TimerRegistry


class TestScheduling:
    """Test schedule/cancel."""

    def test_fires_after_delay(self, host, manual_timers):
        """Callback runs once its delay has elapsed, not before."""
        fired = []
        handle = manual_timers.schedule(400, lambda: fired.append(host.now))

        host.advance(399)
        assert fired == []
        host.advance(1)
        assert fired == [400]
        assert handle.fired is True
        assert handle.pending is False

    def test_handle_records_due_time(self, host, manual_timers):
        host.advance(100)
        handle = manual_timers.schedule(250, lambda: None, label="roll")
        assert handle.due_time == 350
        assert handle.label == "roll"

    def test_cancel_prevents_firing(self, host, manual_timers):
        fired = []
        handle = manual_timers.schedule(100, lambda: fired.append(1))
        manual_timers.cancel(handle)

        host.advance(500)
        assert fired == []
        assert handle.cancelled is True
        assert manual_timers.pending_count == 0

    def test_cancel_ignores_none_and_fired(self, host, manual_timers):
        """Cancelling None or an already fired handle is a no-op."""
        handle = manual_timers.schedule(10, lambda: None)
        host.advance(10)

        manual_timers.cancel(None)
        manual_timers.cancel(handle)
        assert handle.fired is True
        assert handle.cancelled is False

    def test_pending_count_tracks_lifecycle(self, host, manual_timers):
        manual_timers.schedule(10, lambda: None)
        manual_timers.schedule(20, lambda: None)
        assert manual_timers.pending_count == 2

        host.advance(15)
        assert manual_timers.pending_count == 1

        host.advance(10)
        assert manual_timers.pending_count == 0

    def test_negative_delay_clamped(self, host, manual_timers):
        fired = []
        manual_timers.schedule(-50, lambda: fired.append(True))
        host.advance(0)
        assert fired == [True]


class TestPause:
    """Test global pause semantics."""

    def test_pause_all_cancels_everything(self, host, manual_timers):
        """No callback scheduled before pause fires afterwards."""
        fired = []
        for delay in (10, 100, 1000):
            manual_timers.schedule(delay, lambda d=delay: fired.append(d))

        cancelled = manual_timers.pause_all()
        host.advance(5000)

        assert cancelled == 3
        assert fired == []
        assert host.pending == 0
        assert manual_timers.is_paused() is True

    def test_schedule_while_paused_returns_none(self, host, manual_timers):
        """Scheduling while paused is a silent no-op."""
        manual_timers.pause_all()
        fired = []

        handle = manual_timers.schedule(10, lambda: fired.append(1))

        assert handle is None
        assert host.pending == 0
        host.advance(100)
        assert fired == []

    def test_resume_does_not_replay(self, host, manual_timers):
        """Resume clears the flag but cancelled work stays cancelled."""
        fired = []
        manual_timers.schedule(50, lambda: fired.append("old"))
        manual_timers.pause_all()
        manual_timers.resume()

        assert manual_timers.is_paused() is False
        host.advance(100)
        assert fired == []

        manual_timers.schedule(10, lambda: fired.append("new"))
        host.advance(10)
        assert fired == ["new"]

    def test_pause_with_nothing_pending(self, manual_timers):
        assert manual_timers.pause_all() == 0


class TestCallbackErrors:
    """Test failing callbacks."""

    def test_exception_logged_registry_survives(self, host, manual_timers, caplog):
        fired = []

        def boom():
            raise RuntimeError("kaboom")

        manual_timers.schedule(10, boom, label="boom")
        manual_timers.schedule(20, lambda: fired.append(True))

        with caplog.at_level(logging.ERROR):
            host.advance(30)

        assert fired == [True]
        assert "boom" in caplog.text
        assert manual_timers.pending_count == 0


class TestAsyncioHost:
    """Test the default asyncio call_later host."""

    def test_default_host_runs_on_loop(self):
        async def scenario():
            timers = TimerRegistry()
            fired = []
            timers.schedule(5, lambda: fired.append(True))
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(scenario()) == [True]

    def test_default_host_pause(self):
        async def scenario():
            timers = TimerRegistry()
            fired = []
            timers.schedule(20, lambda: fired.append(True))
            timers.pause_all()
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(scenario()) == []
