from __future__ import annotations

import pytest

from pid_trainer.plant import Plant, PlantOrder, PlantParams, PlantState


def test_pt1_first_step_moves_dt_over_t_towards_gain_times_input() -> None:
    plant = Plant(dt=0.05, order=PlantOrder.PT1)
    assert plant.step(1.0) == pytest.approx(0.05)
    assert plant.step(1.0) == pytest.approx(0.05 + 0.05 * (1.0 - 0.05))


def test_pt2_integrates_velocity_before_position_update() -> None:
    plant = Plant(dt=0.05)
    assert plant.order is PlantOrder.PT2

    # Step 1: y1 += dt * 0 -> 0, then y2 += dt * (4 * (1 - 0)) = 0.2
    assert plant.step(1.0) == 0.0
    assert plant.state.y2 == pytest.approx(0.2)

    # Step 2: y1 = 0.01, y2 = 0.2 + 0.05 * (4 * 0.99 - 2 * 0.5 * 2 * 0.2)
    assert plant.step(1.0) == pytest.approx(0.01)
    assert plant.state.y2 == pytest.approx(0.378)


@pytest.mark.parametrize("order", list(PlantOrder))
def test_step_is_deterministic_from_same_state_and_input(order: PlantOrder) -> None:
    a = Plant(dt=0.05, order=order)
    b = Plant(dt=0.05, order=order)
    for u in (1.0, 1.0, -0.4):
        a.step(u)
        b.step(u)
    assert a.state == b.state != PlantState()

    for u in (0.5, -1.2, 0.0, 3.3):
        assert a.step(u) == b.step(u)
        assert a.state == b.state


@pytest.mark.parametrize("order", list(PlantOrder))
def test_settles_at_gain_times_constant_input(order: PlantOrder) -> None:
    plant = Plant(dt=0.05, order=order, params=PlantParams(gain=2.0))
    for _ in range(2000):
        plant.step(0.5)
    assert plant.output == pytest.approx(1.0, abs=1e-6)


def test_reset_zeroes_both_states() -> None:
    plant = Plant(dt=0.05)
    for _ in range(10):
        plant.step(1.0)
    assert plant.state != PlantState()

    plant.reset()
    assert plant.state == PlantState(y1=0.0, y2=0.0)
    assert plant.output == 0.0


def test_invalid_construction_raises() -> None:
    with pytest.raises(ValueError):
        Plant(dt=0.0)
    with pytest.raises(ValueError):
        Plant(dt=0.05, order=PlantOrder.PT1, params=PlantParams(time_constant_s=0.0))
