"""Pygame UI shell for the PID Trainer.

Screens:
- Trainer (chart, slider, mode/target selectors, START/STOP, RESET)
- Help (static instructions)

Deterministic timing/scoring/simulation state lives in pid_trainer/* (core
modules). This shell only forwards input and draws snapshots.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .logging_config import setup_logging
from .plant import PlantOrder
from .rolling_buffer import BufferSnapshot
from .session import TrainerConfig, TrainerSession, build_trainer_session
from .signals import TargetFunction
from .trainer_core import Mode, RunOutcome, RunState, TrainerSnapshot

log = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

PLANT_ORDER_ENV = "PID_TRAINER_PLANT_ORDER"

CHART_Y_LIMIT = 2.0
JOYSTICK_DEADZONE = 0.08

MODE_CYCLE: tuple[Mode, ...] = (
    Mode.OPEN_LOOP,
    Mode.HUMAN_IN_LOOP,
    Mode.CLOSED_LOOP,
    Mode.CLOSED_LOOP_AUTO,
)

HELP_LINES: tuple[str, ...] = (
    "Keep the orange output on top of the blue target.",
    "",
    "Modes:",
    "  Open loop - the slider drives the process directly.",
    "  Human in the loop - you steer the process to follow a target curve (scored).",
    "  Closed loop - the slider sets the target, a PID controller steers.",
    "  Closed loop (auto) - the PID controller follows the target curve (scored).",
    "",
    "A tick scores a point while |target - output| stays under the margin.",
    "Runs end after 15 seconds; press R to reset before the next run.",
    "",
    "Keys: Left/Right slider (Shift = fine), M mode, F target curve,",
    "      Space/Enter start/stop, R reset, Esc back.",
)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return

        if event.type == pygame.JOYHATMOTION:
            _, y = event.value
            if y == 1:
                self._move(-1)
            elif y == -1:
                self._move(1)
            return

        if event.type == pygame.JOYBUTTONDOWN:
            # Common mapping: 0 = select, 1 = back.
            if event.button == 0:
                self._activate()
            elif event.button == 1:
                self._back()

    def _handle_key(self, key: int) -> None:
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        border = (226, 236, 255)
        text_main = (238, 245, 255)
        text_muted = (186, 200, 224)

        surface.fill((3, 9, 78))
        frame = _frame_rect(w, h)
        pygame.draw.rect(surface, (8, 18, 104), frame)
        pygame.draw.rect(surface, border, frame, 2)
        header = _draw_header(surface, frame, self._title, self._title_font, self._hint_font, tag="MENU")

        item_count = max(1, len(self._items))
        row_h = 40
        gap = 8
        total_h = row_h * item_count + gap * (item_count - 1)
        y = header.bottom + max(16, (frame.bottom - header.bottom - total_h) // 2)

        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 60, y, frame.w - 120, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else text_main
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        foot = self._hint_font.render("Enter/Space: Select  |  Esc/Backspace: Back", True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class HelpScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._title_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 26)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((3, 9, 78))
        frame = _frame_rect(w, h)
        pygame.draw.rect(surface, (8, 18, 104), frame)
        pygame.draw.rect(surface, (226, 236, 255), frame, 2)
        header = _draw_header(surface, frame, "How to play", self._title_font, self._hint_font, tag="HELP")

        y = header.bottom + 16
        for line in HELP_LINES:
            text = self._body_font.render(line, True, (238, 245, 255))
            surface.blit(text, (frame.x + 24, y))
            y += text.get_height() + 4


class TrainerScreen:
    _SERIES_TARGET = (90, 160, 255)
    _SERIES_OUTPUT = (255, 160, 60)

    def __init__(self, app: App, *, session_factory: Callable[[], TrainerSession]) -> None:
        self._app = app
        self._session = session_factory()

        self._small_font = pygame.font.Font(None, 24)
        self._tiny_font = pygame.font.Font(None, 18)
        self._mid_font = pygame.font.Font(None, 40)
        self._big_font = pygame.font.Font(None, 160)

        # Hitboxes are refreshed during render.
        self._slider_rect: pygame.Rect | None = None
        self._start_rect: pygame.Rect | None = None
        self._reset_rect: pygame.Rect | None = None
        self._dragging = False
        self._last_axis: float | None = None

    @property
    def session(self) -> TrainerSession:
        return self._session

    def handle_event(self, event: pygame.event.Event) -> None:
        snap = self._session.snapshot()

        if event.type == pygame.KEYDOWN:
            self._handle_key(event, snap)
            return

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self._start_rect is not None and self._start_rect.collidepoint(event.pos):
                self._press_start(snap)
            elif self._reset_rect is not None and self._reset_rect.collidepoint(event.pos):
                self._session.reset()
            elif self._slider_rect is not None and self._slider_rect.collidepoint(event.pos):
                self._dragging = snap.user_input_enabled
                self._slide_to(event.pos[0])
            return

        if event.type == pygame.MOUSEMOTION and self._dragging:
            self._slide_to(event.pos[0])
            return

        if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._dragging = False
            return

        if event.type == pygame.JOYBUTTONDOWN:
            if event.button == 0:
                self._press_start(snap)
            elif event.button == 1:
                self._session.reset()

    def _handle_key(self, event: pygame.event.Event, snap: TrainerSnapshot) -> None:
        key = event.key
        if key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._session.reset()
            self._app.pop()
        elif key in (pygame.K_SPACE, pygame.K_RETURN, pygame.K_KP_ENTER):
            self._press_start(snap)
        elif key == pygame.K_r:
            self._session.reset()
        elif key == pygame.K_m:
            if snap.mode_select_enabled:
                idx = MODE_CYCLE.index(snap.mode)
                self._session.set_mode(MODE_CYCLE[(idx + 1) % len(MODE_CYCLE)])
        elif key == pygame.K_f:
            if snap.target_select_enabled:
                fn = TargetFunction((int(snap.target_function) + 1) % len(TargetFunction))
                self._session.set_target_function(fn)
        elif key in (pygame.K_LEFT, pygame.K_RIGHT):
            step = 1 if (event.mod & pygame.KMOD_SHIFT) else 5
            delta = -step if key == pygame.K_LEFT else step
            self._session.set_user_input(snap.user_input + delta)

    def _press_start(self, snap: TrainerSnapshot) -> None:
        if not snap.start_enabled:
            return
        self._session.start_stop()

    def _slide_to(self, x: int) -> None:
        rect = self._slider_rect
        if rect is None or rect.w <= 0:
            return
        cfg = self._session.config
        frac = (x - rect.x) / float(rect.w)
        frac = 0.0 if frac < 0.0 else 1.0 if frac > 1.0 else frac
        value = int(round(cfg.input_min + frac * (cfg.input_max - cfg.input_min)))
        self._session.set_user_input(value)

    def _read_joystick_input(self) -> None:
        try:
            if pygame.joystick.get_count() <= 0:
                return
            axis = float(pygame.joystick.Joystick(0).get_axis(0))
        except pygame.error:
            return
        if abs(axis) < JOYSTICK_DEADZONE:
            axis = 0.0
        last = self._last_axis
        self._last_axis = axis
        # The first reading is only a baseline; forward movement, never a resting stick.
        if last is None or abs(axis - last) < 0.01:
            return
        cfg = self._session.config
        self._session.set_user_input(int(round(axis * cfg.input_max)))

    def render(self, surface: pygame.Surface) -> None:
        self._read_joystick_input()
        self._session.update()
        snap = self._session.snapshot()

        w, h = surface.get_size()
        text_main = (238, 245, 255)
        text_muted = (186, 200, 224)

        surface.fill((3, 9, 78))
        frame = _frame_rect(w, h)
        pygame.draw.rect(surface, (8, 18, 104), frame)
        pygame.draw.rect(surface, (226, 236, 255), frame, 2)
        header = _draw_header(surface, frame, "PID Trainer", self._mid_font, self._tiny_font, tag="TRAINER")

        side_w = max(220, frame.w // 4)
        chart_rect = pygame.Rect(
            frame.x + 14,
            header.bottom + 12,
            frame.w - side_w - 42,
            frame.h - (header.bottom - frame.y) - 110,
        )
        self._draw_chart(surface, chart_rect, snap.buffer)

        slider_rect = pygame.Rect(chart_rect.x + 40, chart_rect.bottom + 44, chart_rect.w - 80, 10)
        self._draw_slider(surface, slider_rect, snap)

        side = pygame.Rect(chart_rect.right + 14, chart_rect.y, side_w, chart_rect.h + 60)
        self._draw_side_panel(surface, side, snap)

        footer = "Space: Start/Stop  |  R: Reset  |  M: Mode  |  F: Target  |  Left/Right: Input  |  Esc: Back"
        foot = self._tiny_font.render(footer, True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 8)))

        if snap.run_state is RunState.COUNTING_DOWN and snap.countdown_remaining is not None:
            digit = self._big_font.render(str(snap.countdown_remaining), True, text_main)
            surface.blit(digit, digit.get_rect(center=chart_rect.center))

    def _draw_chart(self, surface: pygame.Surface, rect: pygame.Rect, buf: BufferSnapshot) -> None:
        pygame.draw.rect(surface, (6, 13, 92), rect)
        pygame.draw.rect(surface, (78, 102, 170), rect, 1)

        t0 = buf.time_axis[0]
        t1 = buf.time_axis[-1]
        span = (t1 - t0) or 1.0

        def to_px(t: float, v: float) -> tuple[int, int]:
            v = max(-CHART_Y_LIMIT, min(CHART_Y_LIMIT, v))
            x = rect.x + (t - t0) / span * rect.w
            y = rect.centery - (v / CHART_Y_LIMIT) * (rect.h / 2 - 4)
            return int(round(x)), int(round(y))

        grid = (40, 58, 130)
        for gv in (-1.0, 0.0, 1.0):
            y = to_px(t0, gv)[1]
            pygame.draw.line(surface, grid, (rect.x, y), (rect.right, y), 1)
            label = self._tiny_font.render(f"{gv:+.0f}", True, (150, 166, 210))
            surface.blit(label, (rect.x + 4, y - label.get_height()))
        for sec in range(int(t0), int(t1) + 1, 2):
            x = to_px(float(sec), 0.0)[0]
            pygame.draw.line(surface, grid, (x, rect.y), (x, rect.bottom), 1)
            label = self._tiny_font.render(f"{sec}s", True, (150, 166, 210))
            surface.blit(label, (min(x + 2, rect.right - label.get_width() - 2), rect.bottom - label.get_height() - 2))

        for series, color in ((buf.target, self._SERIES_TARGET), (buf.output, self._SERIES_OUTPUT)):
            for run in _contiguous_runs(buf.time_axis, series):
                pts = [to_px(t, v) for t, v in run]
                if len(pts) >= 2:
                    pygame.draw.lines(surface, color, False, pts, 2)

        legend_y = rect.y + 6
        for name, color in (("target", self._SERIES_TARGET), ("output", self._SERIES_OUTPUT)):
            pygame.draw.line(surface, color, (rect.right - 110, legend_y + 7), (rect.right - 86, legend_y + 7), 3)
            surface.blit(self._tiny_font.render(name, True, (210, 220, 240)), (rect.right - 80, legend_y))
            legend_y += 18

    def _draw_slider(self, surface: pygame.Surface, rect: pygame.Rect, snap: TrainerSnapshot) -> None:
        self._slider_rect = rect.inflate(0, 24)
        cfg = self._session.config
        enabled = snap.user_input_enabled
        track = (120, 142, 196) if enabled else (60, 70, 110)
        pygame.draw.rect(surface, track, rect, border_radius=4)

        frac = (snap.user_input - cfg.input_min) / float(cfg.input_max - cfg.input_min)
        knob_x = rect.x + int(round(frac * rect.w))
        knob = pygame.Rect(0, 0, 14, 26)
        knob.center = (knob_x, rect.centery)
        pygame.draw.rect(surface, (244, 248, 255) if enabled else (110, 118, 150), knob, border_radius=3)

        value = snap.user_input / cfg.input_scale
        caption = f"Input: {snap.user_input:+d}  ({value:+.2f})"
        if not enabled:
            caption += "  [controller]"
        text = self._small_font.render(caption, True, (238, 245, 255) if enabled else (150, 160, 190))
        surface.blit(text, (rect.x, rect.y - text.get_height() - 10))

    def _draw_side_panel(self, surface: pygame.Surface, rect: pygame.Rect, snap: TrainerSnapshot) -> None:
        pygame.draw.rect(surface, (6, 13, 92), rect)
        pygame.draw.rect(surface, (78, 102, 170), rect, 1)
        on = (238, 245, 255)
        off = (120, 130, 165)

        x = rect.x + 12
        y = rect.y + 10

        score = self._mid_font.render(f"Score: {snap.score}", True, on)
        surface.blit(score, (x, y))
        y += score.get_height() + 6

        remaining = self._small_font.render(
            f"t = {snap.elapsed_s:5.2f}s   left {snap.time_remaining_s:5.2f}s", True, on
        )
        surface.blit(remaining, (x, y))
        y += remaining.get_height() + 12

        mode_text = self._small_font.render(f"[M] Mode: {snap.mode.label}", True, on if snap.mode_select_enabled else off)
        surface.blit(mode_text, (x, y))
        y += mode_text.get_height() + 6

        fn_text = self._small_font.render(
            f"[F] Target: {snap.target_function.label}", True, on if snap.target_select_enabled else off
        )
        surface.blit(fn_text, (x, y))
        y += fn_text.get_height() + 16

        self._start_rect = pygame.Rect(x, y, rect.w - 24, 40)
        start_bg = (244, 248, 255) if snap.start_enabled else (60, 70, 110)
        pygame.draw.rect(surface, start_bg, self._start_rect, border_radius=4)
        label = self._mid_font.render(snap.button_label, True, (14, 26, 74) if snap.start_enabled else off)
        surface.blit(label, label.get_rect(center=self._start_rect.center))
        y = self._start_rect.bottom + 8

        self._reset_rect = pygame.Rect(x, y, rect.w - 24, 32)
        pygame.draw.rect(surface, (18, 30, 118), self._reset_rect, border_radius=4)
        pygame.draw.rect(surface, (120, 142, 196), self._reset_rect, 1, border_radius=4)
        reset = self._small_font.render("RESET", True, on)
        surface.blit(reset, reset.get_rect(center=self._reset_rect.center))
        y = self._reset_rect.bottom + 14

        summary = self._session.run_summary()
        if summary.outcome is RunOutcome.FINISHED or snap.finished:
            lines = [
                "Run complete",
                f"Hits: {summary.hits}/{summary.ticks} ({summary.hit_ratio * 100.0:.0f}%)",
            ]
            if summary.mean_abs_error is not None and summary.rms_error is not None:
                lines.append(f"Mean |e|: {summary.mean_abs_error:.3f}")
                lines.append(f"RMS e:    {summary.rms_error:.3f}")
            lines.append("Press R to reset.")
            for line in lines:
                text = self._small_font.render(line, True, on)
                surface.blit(text, (x, y))
                y += text.get_height() + 4


def _contiguous_runs(
    time_axis: Sequence[float],
    values: Sequence[float | None],
) -> list[list[tuple[float, float]]]:
    """Split a series at sentinel slots so the chart never bridges a gap."""

    runs: list[list[tuple[float, float]]] = []
    current: list[tuple[float, float]] = []
    for t, v in zip(time_axis, values):
        if v is None:
            if current:
                runs.append(current)
                current = []
            continue
        current.append((t, v))
    if current:
        runs.append(current)
    return runs


def _frame_rect(w: int, h: int) -> pygame.Rect:
    margin = max(10, min(26, w // 34))
    return pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))


def _draw_header(
    surface: pygame.Surface,
    frame: pygame.Rect,
    title: str,
    title_font: pygame.font.Font,
    tag_font: pygame.font.Font,
    *,
    tag: str,
) -> pygame.Rect:
    header_h = max(34, min(52, surface.get_height() // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, (18, 30, 118), header)
    pygame.draw.line(surface, (226, 236, 255), (header.x, header.bottom), (header.right, header.bottom), 1)
    tag_text = tag_font.render(tag, True, (186, 200, 224))
    surface.blit(tag_text, (header.x + 12, header.y + (header.h - tag_text.get_height()) // 2))
    title_text = title_font.render(title, True, (238, 245, 255))
    surface.blit(title_text, title_text.get_rect(center=(frame.centerx, header.centery)))
    return header


def plant_order_from_env() -> PlantOrder:
    raw = os.environ.get(PLANT_ORDER_ENV, "").strip().lower()
    if raw == "":
        return PlantOrder.PT2
    try:
        return PlantOrder(raw)
    except ValueError:
        log.warning("Ignoring %s=%r; expected one of %s", PLANT_ORDER_ENV, raw, [o.value for o in PlantOrder])
        return PlantOrder.PT2


def _init_joysticks() -> None:
    # Safe on platforms with no joystick support.
    try:
        count = pygame.joystick.get_count()
    except pygame.error:
        return

    for i in range(count):
        try:
            pygame.joystick.Joystick(i).init()
        except pygame.error:
            log.debug("Joystick %d could not be initialised", i)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    setup_logging()
    pygame.init()
    _init_joysticks()

    pygame.display.set_caption("PID Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    real_clock = RealClock()
    config = TrainerConfig(plant_order=plant_order_from_env())
    log.info("Plant order: %s", config.plant_order.value)

    help_screen = HelpScreen(app)

    def open_trainer() -> None:
        app.push(
            TrainerScreen(
                app,
                session_factory=lambda: build_trainer_session(clock=real_clock, config=config),
            )
        )

    main_items = [
        MenuItem("Trainer", open_trainer),
        MenuItem("Help", lambda: app.push(help_screen)),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Main Menu", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
