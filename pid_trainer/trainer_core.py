from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .rolling_buffer import BufferSnapshot
from .signals import TargetFunction


class Mode(StrEnum):
    OPEN_LOOP = "openL"
    HUMAN_IN_LOOP = "humanil"
    CLOSED_LOOP = "closedL"
    CLOSED_LOOP_AUTO = "closedL-auto"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]

    @property
    def target_from_generator(self) -> bool:
        return self in (Mode.HUMAN_IN_LOOP, Mode.CLOSED_LOOP_AUTO)

    @property
    def uses_controller(self) -> bool:
        return self in (Mode.CLOSED_LOOP, Mode.CLOSED_LOOP_AUTO)

    @property
    def scored(self) -> bool:
        return self.target_from_generator

    @property
    def has_countdown(self) -> bool:
        return self is not Mode.CLOSED_LOOP_AUTO

    @property
    def accepts_user_input(self) -> bool:
        return self is not Mode.CLOSED_LOOP_AUTO


_MODE_LABELS: dict[Mode, str] = {
    Mode.OPEN_LOOP: "Open loop",
    Mode.HUMAN_IN_LOOP: "Human in the loop",
    Mode.CLOSED_LOOP: "Closed loop",
    Mode.CLOSED_LOOP_AUTO: "Closed loop (auto)",
}


class RunState(StrEnum):
    IDLE = "idle"
    COUNTING_DOWN = "counting_down"
    RUNNING = "running"
    FINISHED = "finished"  # idle after a timeout; Start refused until Reset


class RunOutcome(StrEnum):
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class TickSample:
    index: int
    t: float
    target: float
    control: float
    output: float
    hit: bool


@dataclass(frozen=True, slots=True)
class RunSummary:
    mode: Mode
    target_function: TargetFunction
    outcome: RunOutcome | None  # None while the run is still going
    ticks: int
    hits: int
    hit_ratio: float
    duration_s: float
    mean_abs_error: float | None
    rms_error: float | None


@dataclass(frozen=True, slots=True)
class TrainerSnapshot:
    """View model for the UI (pure data)."""

    run_state: RunState
    mode: Mode
    target_function: TargetFunction
    score: int
    finished: bool
    button_label: str
    countdown_remaining: int | None
    elapsed_s: float
    time_remaining_s: float
    user_input: int

    start_enabled: bool
    mode_select_enabled: bool
    target_select_enabled: bool
    user_input_enabled: bool

    last_target: float | None
    last_control: float | None
    last_output: float | None

    buffer: BufferSnapshot


def clamp_int(x: int, lo: int, hi: int) -> int:
    return lo if x <= lo else hi if x >= hi else int(x)
