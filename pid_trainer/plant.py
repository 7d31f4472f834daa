from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PlantOrder(StrEnum):
    PT1 = "pt1"
    PT2 = "pt2"


@dataclass(frozen=True, slots=True)
class PlantParams:
    gain: float = 1.0  # K
    time_constant_s: float = 1.0  # T (PT1 only)
    damping: float = 0.5  # D (PT2 only)
    natural_freq: float = 2.0  # wn in rad/s (PT2 only)


@dataclass(frozen=True, slots=True)
class PlantState:
    y1: float = 0.0  # output
    y2: float = 0.0  # derivative of output (PT2 only)


class Plant:
    """Linear first/second order process, explicit Euler at a fixed step.

    The order is fixed at construction. ``step`` is the only mutator besides
    ``reset`` and advances the state by exactly one ``dt``.
    """

    def __init__(
        self,
        *,
        dt: float,
        order: PlantOrder = PlantOrder.PT2,
        params: PlantParams | None = None,
    ) -> None:
        p = params or PlantParams()
        if dt <= 0.0:
            raise ValueError("dt must be > 0")
        if order is PlantOrder.PT1 and p.time_constant_s <= 0.0:
            raise ValueError("time_constant_s must be > 0")

        self._dt = float(dt)
        self._order = PlantOrder(order)
        self._params = p
        self._y1 = 0.0
        self._y2 = 0.0

    @property
    def order(self) -> PlantOrder:
        return self._order

    @property
    def output(self) -> float:
        return self._y1

    @property
    def state(self) -> PlantState:
        return PlantState(y1=self._y1, y2=self._y2)

    def step(self, u: float) -> float:
        p = self._params
        dt = self._dt
        if self._order is PlantOrder.PT1:
            self._y1 += (dt / p.time_constant_s) * (p.gain * u - self._y1)
        else:
            wn = p.natural_freq
            self._y1 += dt * self._y2
            # y2 sees the y1 that was just advanced.
            self._y2 += dt * (wn * wn * (p.gain * u - self._y1) - 2.0 * p.damping * wn * self._y2)
        return self._y1

    def reset(self) -> None:
        self._y1 = 0.0
        self._y2 = 0.0
