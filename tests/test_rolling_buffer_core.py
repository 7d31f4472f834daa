from __future__ import annotations

import pytest

from pid_trainer.rolling_buffer import RollingBuffer, build_time_axis


def test_starts_full_of_sentinels() -> None:
    buf = RollingBuffer(capacity=5, display_s=1.0)
    snap = buf.snapshot()
    assert len(buf) == 5
    assert snap.target == (None,) * 5
    assert snap.output == (None,) * 5


def test_time_axis_spans_window_and_ends_exactly_at_zero() -> None:
    axis = build_time_axis(5, 1.0)
    assert axis == pytest.approx((-1.0, -0.75, -0.5, -0.25, 0.0))
    assert axis[-1] == 0.0

    long_axis = build_time_axis(200, 10.0)
    assert len(long_axis) == 200
    assert long_axis[0] == -10.0
    assert long_axis[-1] == 0.0


def test_after_n_plus_k_appends_holds_last_n_in_order() -> None:
    buf = RollingBuffer(capacity=5, display_s=1.0)
    for i in range(8):
        buf.append(float(i), float(-i))
        assert len(buf) == 5

    snap = buf.snapshot()
    assert snap.target == (3.0, 4.0, 5.0, 6.0, 7.0)
    assert snap.output == (-3.0, -4.0, -5.0, -6.0, -7.0)


def test_partial_fill_keeps_sentinels_in_the_oldest_slots() -> None:
    buf = RollingBuffer(capacity=4, display_s=1.0)
    buf.append(1.0, 2.0)
    assert buf.snapshot().target == (None, None, None, 1.0)
    assert buf.snapshot().output.count(None) == 3


def test_snapshot_is_not_affected_by_later_appends() -> None:
    buf = RollingBuffer(capacity=3, display_s=1.0)
    buf.append(1.0, 1.0)
    before = buf.snapshot()
    buf.append(2.0, 2.0)
    buf.reset()
    assert before.target == (None, None, 1.0)


def test_reset_restores_all_sentinel_state() -> None:
    buf = RollingBuffer(capacity=3, display_s=1.0)
    for i in range(10):
        buf.append(float(i), float(i))
    buf.reset()
    assert buf.snapshot().target == (None, None, None)
    assert buf.snapshot().output == (None, None, None)
    assert len(buf) == 3


def test_invalid_construction_raises() -> None:
    with pytest.raises(ValueError):
        RollingBuffer(capacity=1, display_s=1.0)
    with pytest.raises(ValueError):
        RollingBuffer(capacity=10, display_s=0.0)
