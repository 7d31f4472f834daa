from __future__ import annotations

import os

import pytest


def _key(pygame, key: int, mod: int = 0):
    return pygame.event.Event(pygame.KEYDOWN, {"key": key, "mod": mod, "unicode": ""})


def test_ui_smoke_open_trainer_start_reset_and_back() -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from pid_trainer.app import run

    def inject(frame: int) -> None:
        # Main Menu -> Trainer -> mode -> start -> stop -> reset -> back -> Help -> back
        if frame == 1:
            pygame.event.post(_key(pygame, pygame.K_RETURN))
        elif frame == 2:
            pygame.event.post(_key(pygame, pygame.K_m))
        elif frame == 3:
            pygame.event.post(_key(pygame, pygame.K_RIGHT))
        elif frame == 4:
            pygame.event.post(_key(pygame, pygame.K_SPACE))
        elif frame == 6:
            pygame.event.post(_key(pygame, pygame.K_SPACE))
        elif frame == 7:
            pygame.event.post(_key(pygame, pygame.K_r))
        elif frame == 8:
            pygame.event.post(_key(pygame, pygame.K_ESCAPE))
        elif frame == 9:
            pygame.event.post(_key(pygame, pygame.K_DOWN))
        elif frame == 10:
            pygame.event.post(_key(pygame, pygame.K_RETURN))
        elif frame == 12:
            pygame.event.post(_key(pygame, pygame.K_ESCAPE))

    assert run(max_frames=16, event_injector=inject) == 0


def test_plant_order_env_selects_plant(monkeypatch: pytest.MonkeyPatch) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

    from pid_trainer.app import PLANT_ORDER_ENV, plant_order_from_env
    from pid_trainer.plant import PlantOrder

    monkeypatch.delenv(PLANT_ORDER_ENV, raising=False)
    assert plant_order_from_env() is PlantOrder.PT2
    monkeypatch.setenv(PLANT_ORDER_ENV, "PT1")
    assert plant_order_from_env() is PlantOrder.PT1
    monkeypatch.setenv(PLANT_ORDER_ENV, "pt3")
    assert plant_order_from_env() is PlantOrder.PT2
