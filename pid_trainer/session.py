from __future__ import annotations

import logging
import math
from contextlib import ExitStack
from dataclasses import dataclass, field

from .clock import Clock
from .controller import PidController, PidGains
from .plant import Plant, PlantOrder, PlantParams
from .rolling_buffer import RollingBuffer
from .scheduler import Scheduler, TimerHandle
from .signals import TargetFunction, target_value
from .trainer_core import (
    Mode,
    RunOutcome,
    RunState,
    RunSummary,
    TickSample,
    TrainerSnapshot,
    clamp_int,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrainerConfig:
    loop_ms: int = 50
    display_s: float = 10.0
    timeout_s: float = 15.0
    countdown_s: int = 3
    margin: float = 0.15

    input_scale: float = 100.0
    input_min: int = -150
    input_max: int = 150

    max_catch_up: int = 10

    plant_order: PlantOrder = PlantOrder.PT2
    plant: PlantParams = field(default_factory=PlantParams)
    gains: PidGains = field(default_factory=PidGains)

    @property
    def dt(self) -> float:
        return self.loop_ms / 1000.0

    @property
    def buffer_capacity(self) -> int:
        return int(round(self.display_s * 1000.0 / self.loop_ms))

    @property
    def timeout_ticks(self) -> int:
        return int(round(self.timeout_s * 1000.0 / self.loop_ms))


class TrainerSession:
    """One interactive session: mode selection, countdown, run, score, reset.

    Lifecycle::

        IDLE --start--> COUNTING_DOWN --3 x 1s--> RUNNING --timeout--> FINISHED
          ^                 |  (start again)         |  (stop)            |
          +-----------------+------------------------+           (reset)  |
          +---------------------------------------------------------------+

    ``closedL-auto`` skips the countdown. Time only moves through the injected
    Clock; the host calls ``update()`` to let due timers fire.

    Entering RUNNING acquires the tick timer inside an ExitStack and every exit
    path (stop, timeout, reset) closes that stack before touching any other
    state, so no tick can run after the session has left RUNNING.
    """

    def __init__(self, *, clock: Clock, config: TrainerConfig | None = None) -> None:
        cfg = config or TrainerConfig()

        if cfg.loop_ms <= 0:
            raise ValueError("loop_ms must be > 0")
        if cfg.display_s <= 0.0:
            raise ValueError("display_s must be > 0")
        if cfg.buffer_capacity < 2:
            raise ValueError("display_s must cover at least two loop periods")
        if cfg.timeout_s <= 0.0 or cfg.timeout_ticks < 1:
            raise ValueError("timeout_s must cover at least one loop period")
        if cfg.countdown_s < 0:
            raise ValueError("countdown_s must be >= 0")
        if cfg.margin <= 0.0:
            raise ValueError("margin must be > 0")
        if cfg.input_scale <= 0.0:
            raise ValueError("input_scale must be > 0")
        if cfg.input_min > cfg.input_max:
            raise ValueError("input_min must be <= input_max")

        self._cfg = cfg
        self._dt = cfg.dt
        self._scheduler = Scheduler(clock=clock, max_catch_up=cfg.max_catch_up)

        self._plant = Plant(dt=self._dt, order=cfg.plant_order, params=cfg.plant)
        self._pid = PidController(dt=self._dt, gains=cfg.gains)
        self._buffer = RollingBuffer(capacity=cfg.buffer_capacity, display_s=cfg.display_s)

        self._mode = Mode.CLOSED_LOOP_AUTO
        self._target_function = TargetFunction.SINE
        self._user_input = 0

        self._run_state = RunState.IDLE
        self._run_scope: ExitStack | None = None
        self._countdown_timer: TimerHandle | None = None
        self._countdown_remaining: int | None = None

        self._ticks = 0
        self._score = 0
        self._samples: list[TickSample] = []
        self._last_outcome: RunOutcome | None = None

    # -- read-only state -------------------------------------------------

    @property
    def config(self) -> TrainerConfig:
        return self._cfg

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def target_function(self) -> TargetFunction:
        return self._target_function

    @property
    def user_input(self) -> int:
        return self._user_input

    @property
    def score(self) -> int:
        return self._score

    @property
    def finished(self) -> bool:
        return self._run_state is RunState.FINISHED

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def elapsed_s(self) -> float:
        return self._ticks * self._dt

    @property
    def countdown_remaining(self) -> int | None:
        return self._countdown_remaining

    @property
    def plant(self) -> Plant:
        return self._plant

    @property
    def controller(self) -> PidController:
        return self._pid

    @property
    def buffer(self) -> RollingBuffer:
        return self._buffer

    def active_timers(self) -> int:
        return self._scheduler.pending()

    def samples(self) -> list[TickSample]:
        return list(self._samples)

    # -- configuration -----------------------------------------------------

    def _selectable(self) -> bool:
        return self._run_state in (RunState.IDLE, RunState.FINISHED)

    def set_mode(self, mode: Mode | str) -> bool:
        new_mode = Mode(mode)
        if not self._selectable():
            return False
        self._mode = new_mode
        return True

    def set_target_function(self, function: TargetFunction | int) -> bool:
        fn = TargetFunction(function)
        if not self._selectable() or not self._mode.target_from_generator:
            return False
        self._target_function = fn
        return True

    def set_user_input(self, value: int) -> bool:
        if not self._mode.accepts_user_input:
            return False
        self._user_input = clamp_int(int(value), self._cfg.input_min, self._cfg.input_max)
        return True

    # -- lifecycle ---------------------------------------------------------

    def start_stop(self) -> None:
        """The single START/STOP button."""

        self.start()

    def start(self) -> bool:
        """Press Start.

        From IDLE this begins the countdown (or the run, in auto mode). A
        second press while counting down or running acts as Stop. Refused
        once FINISHED until ``reset()``.
        """

        if self._run_state in (RunState.COUNTING_DOWN, RunState.RUNNING):
            return self.stop()
        if self._run_state is not RunState.IDLE:
            return False
        if self._mode.has_countdown and self._cfg.countdown_s > 0:
            self._begin_countdown()
        else:
            self._enter_running()
        return True

    def stop(self) -> bool:
        if self._run_state is RunState.COUNTING_DOWN:
            self._cancel_countdown()
            self._run_state = RunState.IDLE
            log.info("Countdown cancelled")
            return True
        if self._run_state is RunState.RUNNING:
            self._leave_running(RunOutcome.ABORTED)
            return True
        return False

    def reset(self) -> None:
        # Force-stop first so a late tick cannot write into zeroed state.
        self._cancel_countdown()
        if self._run_state is RunState.RUNNING:
            self._leave_running(RunOutcome.ABORTED)
        self._scheduler.cancel_all()

        self._run_state = RunState.IDLE
        self._score = 0
        self._user_input = 0
        self._ticks = 0
        self._plant.reset()
        self._pid.reset()
        self._buffer.reset()
        self._samples.clear()
        self._last_outcome = None
        log.info("Session reset")

    def update(self) -> None:
        self._scheduler.poll()

    # -- countdown ---------------------------------------------------------

    def _begin_countdown(self) -> None:
        self._run_state = RunState.COUNTING_DOWN
        self._countdown_remaining = int(self._cfg.countdown_s)
        self._countdown_timer = self._scheduler.every(1.0, self._on_countdown, name="countdown")
        log.info("Countdown started (%ds, mode=%s)", self._countdown_remaining, self._mode.value)

    def _on_countdown(self) -> None:
        if self._run_state is not RunState.COUNTING_DOWN or self._countdown_remaining is None:
            return
        self._countdown_remaining -= 1
        if self._countdown_remaining <= 0:
            self._cancel_countdown()
            self._enter_running()

    def _cancel_countdown(self) -> None:
        if self._countdown_timer is not None:
            self._countdown_timer.cancel()
            self._countdown_timer = None
        self._countdown_remaining = None

    # -- running -----------------------------------------------------------

    def _enter_running(self) -> None:
        scope = ExitStack()
        scope.enter_context(self._scheduler.every(self._dt, self._on_tick, name="tick"))
        self._run_scope = scope
        self._run_state = RunState.RUNNING
        log.info(
            "Run started (mode=%s, target=%s, t=%.2fs)",
            self._mode.value,
            self._target_function.name,
            self.elapsed_s,
        )

    def _leave_running(self, outcome: RunOutcome) -> None:
        if self._run_scope is not None:
            self._run_scope.close()
            self._run_scope = None
        self._last_outcome = outcome
        self._run_state = RunState.FINISHED if outcome is RunOutcome.FINISHED else RunState.IDLE
        log.info("Run %s after %d ticks (score=%d)", outcome.value, self._ticks, self._score)

    def _on_tick(self) -> None:
        if self._run_state is not RunState.RUNNING:
            return

        mode = self._mode
        t = self.elapsed_s
        manual = self._user_input / self._cfg.input_scale

        if mode.target_from_generator:
            target = target_value(t, self._target_function)
        else:
            target = manual

        if mode.uses_controller:
            control = self._pid.compute(target, self._plant.output)
        else:
            control = manual

        output = self._plant.step(control)

        hit = mode.scored and abs(target - output) < self._cfg.margin
        if hit:
            self._score += 1

        self._buffer.append(target, output)
        self._samples.append(
            TickSample(
                index=self._ticks,
                t=t,
                target=target,
                control=control,
                output=output,
                hit=hit,
            )
        )
        self._ticks += 1

        if self._ticks >= self._cfg.timeout_ticks:
            self._leave_running(RunOutcome.FINISHED)

    # -- views -------------------------------------------------------------

    def time_remaining_s(self) -> float:
        return max(0.0, self._cfg.timeout_s - self.elapsed_s)

    def button_label(self) -> str:
        if self._run_state is RunState.RUNNING:
            return "STOP"
        if self._run_state is RunState.COUNTING_DOWN and self._countdown_remaining is not None:
            return str(self._countdown_remaining)
        return "START"

    def run_summary(self) -> RunSummary:
        """Tracking statistics accumulated since the last reset."""

        ticks = len(self._samples)
        hits = sum(1 for s in self._samples if s.hit)
        if ticks == 0:
            mean_abs = None
            rms = None
        else:
            errors = [s.target - s.output for s in self._samples]
            mean_abs = sum(abs(e) for e in errors) / ticks
            rms = math.sqrt(sum(e * e for e in errors) / ticks)

        outcome = None if self._run_state in (RunState.RUNNING, RunState.COUNTING_DOWN) else self._last_outcome
        return RunSummary(
            mode=self._mode,
            target_function=self._target_function,
            outcome=outcome,
            ticks=ticks,
            hits=hits,
            hit_ratio=0.0 if ticks == 0 else hits / ticks,
            duration_s=self.elapsed_s,
            mean_abs_error=mean_abs,
            rms_error=rms,
        )

    def snapshot(self) -> TrainerSnapshot:
        last = self._samples[-1] if self._samples else None
        selectable = self._selectable()
        return TrainerSnapshot(
            run_state=self._run_state,
            mode=self._mode,
            target_function=self._target_function,
            score=self._score,
            finished=self.finished,
            button_label=self.button_label(),
            countdown_remaining=self._countdown_remaining,
            elapsed_s=self.elapsed_s,
            time_remaining_s=self.time_remaining_s(),
            user_input=self._user_input,
            start_enabled=self._run_state is not RunState.FINISHED,
            mode_select_enabled=selectable,
            target_select_enabled=selectable and self._mode.target_from_generator,
            user_input_enabled=self._mode.accepts_user_input,
            last_target=None if last is None else last.target,
            last_control=None if last is None else last.control,
            last_output=None if last is None else last.output,
            buffer=self._buffer.snapshot(),
        )


def build_trainer_session(*, clock: Clock, config: TrainerConfig | None = None) -> TrainerSession:
    return TrainerSession(clock=clock, config=config)
