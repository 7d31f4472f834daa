from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PidGains:
    kp: float = 3.28
    ki: float = 3.38
    kd: float = 1.48


@dataclass(frozen=True, slots=True)
class ControllerState:
    integral: float = 0.0
    last_error: float = 0.0


class PidController:
    """Textbook discrete PID sharing the plant's fixed step.

    The integral is not clamped. Under sustained saturation it keeps growing,
    which the trainer deliberately shows rather than hides.
    """

    def __init__(self, *, dt: float, gains: PidGains | None = None) -> None:
        if dt <= 0.0:
            raise ValueError("dt must be > 0")
        self._dt = float(dt)
        self._gains = gains or PidGains()
        self._integral = 0.0
        self._last_error = 0.0

    @property
    def gains(self) -> PidGains:
        return self._gains

    @property
    def state(self) -> ControllerState:
        return ControllerState(integral=self._integral, last_error=self._last_error)

    def compute(self, target: float, measured: float) -> float:
        g = self._gains
        error = float(target) - float(measured)
        self._integral += error * self._dt
        derivative = (error - self._last_error) / self._dt
        self._last_error = error
        return g.kp * error + g.ki * self._integral + g.kd * derivative

    def reset(self) -> None:
        self._integral = 0.0
        self._last_error = 0.0
