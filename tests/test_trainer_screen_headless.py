from __future__ import annotations

import os
from dataclasses import dataclass

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame  # noqa: E402

from pid_trainer.app import App, TrainerScreen, _contiguous_runs  # noqa: E402
from pid_trainer.session import build_trainer_session  # noqa: E402
from pid_trainer.signals import TargetFunction  # noqa: E402
from pid_trainer.trainer_core import Mode, RunState  # noqa: E402


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@pytest.fixture()
def harness():
    pygame.init()
    surface = pygame.Surface((960, 540))
    app = App(surface=surface, font=pygame.font.Font(None, 36))
    clock = FakeClock()
    screen = TrainerScreen(app, session_factory=lambda: build_trainer_session(clock=clock))
    app.push(screen)
    yield app, screen, clock, surface
    pygame.quit()


def _key(key: int, mod: int = 0) -> pygame.event.Event:
    return pygame.event.Event(pygame.KEYDOWN, {"key": key, "mod": mod, "unicode": ""})


def test_keys_drive_mode_target_and_input(harness) -> None:
    app, screen, _, _ = harness
    session = screen.session

    app.handle_event(_key(pygame.K_f))
    assert session.target_function is TargetFunction.TRIANGLE

    app.handle_event(_key(pygame.K_m))
    assert session.mode is Mode.OPEN_LOOP

    # Target selector is disabled for open loop.
    app.handle_event(_key(pygame.K_f))
    assert session.target_function is TargetFunction.TRIANGLE

    app.handle_event(_key(pygame.K_RIGHT))
    app.handle_event(_key(pygame.K_RIGHT, pygame.KMOD_SHIFT))
    assert session.user_input == 6
    app.handle_event(_key(pygame.K_LEFT))
    assert session.user_input == 1


def test_space_starts_countdown_and_render_advances_the_session(harness) -> None:
    app, screen, clock, surface = harness
    session = screen.session
    session.set_mode(Mode.HUMAN_IN_LOOP)

    app.handle_event(_key(pygame.K_SPACE))
    assert session.run_state is RunState.COUNTING_DOWN

    for _ in range(4 * 60):
        clock.advance(1.0 / 60.0)
        app.render()
    assert session.run_state is RunState.RUNNING
    assert session.ticks == 20

    app.handle_event(_key(pygame.K_r))
    assert session.run_state is RunState.IDLE
    assert session.ticks == 0
    app.render()


def test_mouse_on_slider_sets_input(harness) -> None:
    app, screen, _, _ = harness
    session = screen.session
    session.set_mode(Mode.OPEN_LOOP)
    app.render()  # lays out hitboxes

    rect = screen._slider_rect
    assert rect is not None
    app.handle_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"button": 1, "pos": (rect.x, rect.centery)}))
    assert session.user_input == -150

    app.handle_event(pygame.event.Event(pygame.MOUSEMOTION, {"pos": (rect.right + 100, rect.centery), "rel": (0, 0), "buttons": (1, 0, 0)}))
    assert session.user_input == 150

    app.handle_event(pygame.event.Event(pygame.MOUSEBUTTONUP, {"button": 1, "pos": (rect.right, rect.centery)}))
    app.handle_event(pygame.event.Event(pygame.MOUSEMOTION, {"pos": (rect.x, rect.centery), "rel": (0, 0), "buttons": (0, 0, 0)}))
    assert session.user_input == 150


def test_finished_run_renders_results_and_blocks_start(harness) -> None:
    app, screen, clock, _ = harness
    session = screen.session
    app.handle_event(_key(pygame.K_SPACE))

    for _ in range(16 * 60):
        clock.advance(1.0 / 60.0)
        app.render()
    assert session.finished

    app.handle_event(_key(pygame.K_SPACE))
    assert session.run_state is RunState.FINISHED


def test_contiguous_runs_split_at_sentinels() -> None:
    runs = _contiguous_runs((0.0, 1.0, 2.0, 3.0, 4.0), (None, 1.0, 2.0, None, 4.0))
    assert runs == [[(1.0, 1.0), (2.0, 2.0)], [(4.0, 4.0)]]


class _FakeStick:
    def __init__(self, readings: list[float]) -> None:
        self.readings = readings

    def get_axis(self, axis: int) -> float:
        return self.readings[0]


def test_resting_joystick_does_not_overwrite_slider(harness, monkeypatch) -> None:
    app, screen, _, _ = harness
    session = screen.session
    session.set_mode(Mode.OPEN_LOOP)
    session.set_user_input(60)

    stick = _FakeStick([0.0])
    monkeypatch.setattr(pygame.joystick, "get_count", lambda: 1)
    monkeypatch.setattr(pygame.joystick, "Joystick", lambda index: stick)

    app.render()
    app.render()
    assert session.user_input == 60

    stick.readings[0] = 0.5
    app.render()
    assert session.user_input == 75

    app.handle_event(_key(pygame.K_RIGHT))
    app.render()
    assert session.user_input == 80
