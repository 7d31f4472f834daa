"""Cooperative fixed-cadence timers driven by an injected Clock.

Nothing here sleeps or spawns threads. The host loop (the pygame frame loop
or a headless test) calls ``Scheduler.poll()`` and every timer that has come
due since the last poll fires in due-time order, one callback at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .clock import Clock

log = logging.getLogger(__name__)

# Absorbs float noise when a fake clock lands exactly on a due time.
_DUE_EPS_S = 1e-9


class TimerHandle:
    """A repeating timer owned by a Scheduler.

    Due times are ``origin + n * interval`` for integer ``n``, so a long run
    does not accumulate rounding drift. ``cancel`` is idempotent and takes
    effect immediately, including while the scheduler is dispatching.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        interval_s: float,
        callback: Callable[[], None],
        origin_s: float,
        name: str,
    ) -> None:
        self._scheduler = scheduler
        self._interval_s = float(interval_s)
        self._callback = callback
        self._origin_s = float(origin_s)
        self._fired = 0
        self._active = True
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def active(self) -> bool:
        return self._active

    @property
    def fired(self) -> int:
        return self._fired

    @property
    def interval_s(self) -> float:
        return self._interval_s

    def next_due_s(self) -> float:
        return self._origin_s + (self._fired + 1) * self._interval_s

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._scheduler._forget(self)

    def _fire(self) -> None:
        self._fired += 1
        self._callback()

    def _rebase(self, origin_s: float) -> None:
        self._origin_s = float(origin_s)
        self._fired = 0

    def __enter__(self) -> TimerHandle:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class Scheduler:
    def __init__(self, *, clock: Clock, max_catch_up: int = 10) -> None:
        if max_catch_up < 1:
            raise ValueError("max_catch_up must be >= 1")
        self._clock = clock
        self._max_catch_up = int(max_catch_up)
        self._timers: list[TimerHandle] = []
        self._dispatch_time_s: float | None = None

    def now(self) -> float:
        """Logical time: the due time of the firing in progress, else the clock."""
        if self._dispatch_time_s is not None:
            return self._dispatch_time_s
        return self._clock.now()

    def every(self, interval_s: float, callback: Callable[[], None], *, name: str = "timer") -> TimerHandle:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        handle = TimerHandle(
            self,
            interval_s=interval_s,
            callback=callback,
            origin_s=self.now(),
            name=name,
        )
        self._timers.append(handle)
        return handle

    def pending(self) -> int:
        return len(self._timers)

    def cancel_all(self) -> None:
        for handle in list(self._timers):
            handle.cancel()

    def poll(self) -> int:
        """Fire every due timer. Returns the number of callbacks run."""

        now = self._clock.now()
        fired: dict[int, int] = {}
        count = 0
        while True:
            handle = self._earliest_due(now)
            if handle is None:
                break
            key = id(handle)
            if fired.get(key, 0) >= self._max_catch_up:
                skipped = int((now - handle.next_due_s()) // handle.interval_s) + 1
                log.warning("Timer %r fell behind; dropping %d interval(s)", handle.name, skipped)
                handle._rebase(now)
                continue
            fired[key] = fired.get(key, 0) + 1
            self._dispatch_time_s = handle.next_due_s()
            try:
                handle._fire()
            finally:
                self._dispatch_time_s = None
            count += 1
        return count

    def _earliest_due(self, now: float) -> TimerHandle | None:
        best: TimerHandle | None = None
        for handle in self._timers:
            if not handle.active:
                continue
            if handle.next_due_s() > now + _DUE_EPS_S:
                continue
            if best is None or handle.next_due_s() < best.next_due_s():
                best = handle
        return best

    def _forget(self, handle: TimerHandle) -> None:
        if handle in self._timers:
            self._timers.remove(handle)
