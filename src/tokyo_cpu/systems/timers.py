"""
Timer registry — pause-aware deferred callbacks.

Wraps the host's deferred-callback primitive (asyncio's call_later by
default) so every pending callback is tracked and can be cancelled in
one sweep when the game is paused.

Rules:
- schedule() while paused schedules nothing and returns None. Callers
  treat None as "this step stalls until something re-drives it".
- pause_all() cancels every tracked callback synchronously. Work that is
  already executing is not interrupted.
- resume() only clears the flag. Cancelled callbacks are not replayed;
  re-entry is the caller's job.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


# Host primitive: (delay_seconds, fn) -> something with cancel()
CallLater = Callable[[float, Callable[[], None]], Cancellable]


def asyncio_call_later(delay_s: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
    """Default host primitive: the running event loop's call_later."""
    return asyncio.get_running_loop().call_later(delay_s, fn)


@dataclass
class TimerHandle:
    """
    A scheduled callback.

    Owned by the registry; holders may only pass it back to cancel().
    """
    id: int
    due_time: float  # ms on the registry clock
    callback: Callable[[], None]
    label: str = ""
    cancelled: bool = False
    fired: bool = False
    _native: Cancellable | None = field(default=None, repr=False)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class TimerRegistry:
    """
    Tracks deferred callbacks so they can be mass-cancelled on pause.

    Usage:
        timers = TimerRegistry()
        handle = timers.schedule(400, do_next_roll)
        if handle is None:
            ...  # paused; nothing will run
        timers.pause_all()   # nothing scheduled before this will fire
    """

    def __init__(
        self,
        call_later: CallLater | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._call_later = call_later or asyncio_call_later
        self._clock = clock or (lambda: time.monotonic() * 1000.0)
        self._ids = itertools.count(1)
        self._handles: dict[int, TimerHandle] = {}
        self._paused = False

    @property
    def pending_count(self) -> int:
        """Number of callbacks scheduled and not yet fired or cancelled."""
        return len(self._handles)

    def is_paused(self) -> bool:
        return self._paused

    def schedule(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        label: str = "",
    ) -> TimerHandle | None:
        """
        Run callback after delay_ms.

        Returns the handle, or None when paused (nothing was scheduled).
        """
        if self._paused:
            logger.debug("Paused; not scheduling %s", label or callback)
            return None

        delay_ms = max(0.0, float(delay_ms))
        handle = TimerHandle(
            id=next(self._ids),
            due_time=self._clock() + delay_ms,
            callback=callback,
            label=label,
        )
        handle._native = self._call_later(delay_ms / 1000.0, lambda: self._fire(handle))
        self._handles[handle.id] = handle
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        """Cancel a pending callback. Unknown, fired or None handles are ignored."""
        if handle is None or not handle.pending:
            return
        handle.cancelled = True
        if handle._native is not None:
            handle._native.cancel()
        self._handles.pop(handle.id, None)

    def pause_all(self) -> int:
        """
        Enter the paused state and cancel every pending callback.

        Returns:
            Number of callbacks cancelled
        """
        self._paused = True
        handles = list(self._handles.values())
        for handle in handles:
            self.cancel(handle)
        if handles:
            logger.info("Paused: cancelled %d pending callback(s)", len(handles))
        return len(handles)

    def resume(self) -> None:
        """Leave the paused state. Nothing cancelled by pause is re-armed."""
        self._paused = False

    def _fire(self, handle: TimerHandle) -> None:
        self._handles.pop(handle.id, None)
        if not handle.pending:
            return
        handle.fired = True
        try:
            handle.callback()
        except Exception:
            logger.exception("Timer callback failed (%s)", handle.label or handle.id)
