from __future__ import annotations

import math
from enum import IntEnum

BASE_FREQUENCY_HZ = 0.4
SINE_OMEGA = 0.3
HARMONIC_OMEGA = 2.0
HARMONIC_GAIN = 0.3


class TargetFunction(IntEnum):
    SINE = 0
    TRIANGLE = 1
    SAWTOOTH = 2
    DOUBLE_SINE = 3

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[TargetFunction, str] = {
    TargetFunction.SINE: "Sine",
    TargetFunction.TRIANGLE: "Triangle",
    TargetFunction.SAWTOOTH: "Sawtooth",
    TargetFunction.DOUBLE_SINE: "Double sine",
}


def target_value(t: float, function: TargetFunction | int) -> float:
    """Reference value at simulation time ``t`` (seconds).

    Pure function of its arguments. ``mod`` below is Python's floored ``%``,
    so negative times stay inside the waveform's range.
    """

    fn = TargetFunction(function)
    f = BASE_FREQUENCY_HZ
    if fn is TargetFunction.SINE:
        return math.sin(SINE_OMEGA * t)
    if fn is TargetFunction.TRIANGLE:
        phase = ((t + 0.25 / f) * f / 2.0) % 1.0
        return 1.0 - 4.0 * abs(phase - 0.5)
    if fn is TargetFunction.SAWTOOTH:
        phase = ((t + 0.25 / f) * f) % 1.0
        return 2.0 * phase - 1.0
    return math.sin(SINE_OMEGA * t) + HARMONIC_GAIN * math.sin(HARMONIC_OMEGA * t)


def period_s(function: TargetFunction | int) -> float:
    fn = TargetFunction(function)
    if fn is TargetFunction.TRIANGLE:
        # The phase advances at f/2, so one full cycle spans 2/f seconds.
        return 2.0 / BASE_FREQUENCY_HZ
    if fn is TargetFunction.SAWTOOTH:
        return 1.0 / BASE_FREQUENCY_HZ
    if fn is TargetFunction.SINE:
        return 2.0 * math.pi / SINE_OMEGA
    # sin(0.3t) and sin(2t) first line up again at 20*pi.
    return 20.0 * math.pi


def value_range(function: TargetFunction | int) -> tuple[float, float]:
    fn = TargetFunction(function)
    if fn is TargetFunction.DOUBLE_SINE:
        return (-1.0 - HARMONIC_GAIN, 1.0 + HARMONIC_GAIN)
    return (-1.0, 1.0)
