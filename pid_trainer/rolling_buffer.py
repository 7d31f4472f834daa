from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BufferSnapshot:
    """Immutable view of the chart data (pure data, safe to hold across ticks)."""

    time_axis: tuple[float, ...]
    target: tuple[float | None, ...]
    output: tuple[float | None, ...]

    def __len__(self) -> int:
        return len(self.target)


def build_time_axis(capacity: int, display_s: float) -> tuple[float, ...]:
    """``capacity`` evenly spaced labels from ``-display_s`` to exactly 0."""

    if capacity < 2:
        raise ValueError("capacity must be >= 2")
    step = display_s / float(capacity - 1)
    labels = [-display_s + i * step for i in range(capacity)]
    labels[-1] = 0.0
    return tuple(labels)


class RollingBuffer:
    """Fixed-length target/output history, oldest sample evicted first.

    Slots that have not received a sample yet hold ``None``.
    """

    def __init__(self, *, capacity: int, display_s: float) -> None:
        if display_s <= 0.0:
            raise ValueError("display_s must be > 0")
        self._capacity = int(capacity)
        self._time_axis = build_time_axis(self._capacity, float(display_s))
        self._target: deque[float | None] = deque(maxlen=self._capacity)
        self._output: deque[float | None] = deque(maxlen=self._capacity)
        self.reset()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def time_axis(self) -> tuple[float, ...]:
        return self._time_axis

    def __len__(self) -> int:
        return len(self._target)

    def append(self, target: float, output: float) -> None:
        # maxlen evicts from the left once full.
        self._target.append(float(target))
        self._output.append(float(output))

    def reset(self) -> None:
        self._target.clear()
        self._output.clear()
        self._target.extend([None] * self._capacity)
        self._output.extend([None] * self._capacity)

    def snapshot(self) -> BufferSnapshot:
        return BufferSnapshot(
            time_axis=self._time_axis,
            target=tuple(self._target),
            output=tuple(self._output),
        )
