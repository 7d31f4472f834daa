from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source for the scheduler.

    The session and its timers never read wall time directly, so headless
    runs can drive them with a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()
