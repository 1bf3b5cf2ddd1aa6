import math

import pytest

from rain_engine import MatrixState, RandomSource
from rain_glyphs import NICE_VIEWS


def _tracking_state(rng, last: int, target: int) -> MatrixState:
    state = MatrixState(density=1, rng=rng)
    state.last_view = last
    state.target_view = target
    state.auto_tracking = True
    return state


def test_starts_at_first_view():
    state = MatrixState(density=1, rng=RandomSource(0))
    assert (state.view_x, state.view_y) == NICE_VIEWS[0]
    assert state.view_steps == 100
    assert not state.auto_tracking


def test_interpolation_starts_exactly_at_last_view(fixed_random):
    state = _tracking_state(fixed_random(0.5), last=5, target=8)
    state.auto_track()
    assert (state.view_x, state.view_y) == NICE_VIEWS[5]
    assert state.view_tick == 1


def test_interpolation_approaches_target(fixed_random):
    state = _tracking_state(fixed_random(0.5), last=5, target=8)
    state.view_tick = state.view_steps - 1
    state.auto_track()
    tx, ty = NICE_VIEWS[8]
    assert state.view_x == pytest.approx(tx, abs=0.05)
    assert state.view_y == pytest.approx(ty, abs=0.05)


def test_interpolation_eases_out(fixed_random):
    state = _tracking_state(fixed_random(0.5), last=0, target=3)
    xs = []
    for _ in range(state.view_steps):
        state.auto_track()
        xs.append(state.view_x)
    steps = [b - a for a, b in zip(xs, xs[1:])]
    assert all(d >= 0 for d in steps)
    assert steps[0] > steps[-1]


def test_completion_picks_new_target(fixed_random):
    state = _tracking_state(fixed_random(0.5), last=5, target=8)
    state.view_tick = state.view_steps - 1
    state.auto_track()
    assert state.view_tick == 0
    assert state.view_steps == 350
    assert state.last_view == 8
    # 0.5 picks the middle of [1, 15]
    assert state.target_view == 8
    assert not state.auto_tracking


def test_new_targets_never_reuse_start_view():
    state = MatrixState(density=1, speed=100.0, rng=RandomSource(13))
    seen = set()
    for _ in range(20_000):
        state.auto_track()
        seen.add(state.target_view)
    seen.discard(0)  # the very first target is the start view
    assert seen
    assert all(1 <= v < len(NICE_VIEWS) for v in seen)


def test_idle_camera_starts_moving(fixed_random):
    state = MatrixState(density=1, rng=fixed_random(0.0))
    for _ in range(int(20 / state.speed) - 1):
        assert state.auto_track() == ""
        assert not state.auto_tracking
    assert state.auto_track() == "track:0"
    assert state.auto_tracking
    assert state.track_tick == 0


def test_idle_camera_mostly_stays(fixed_random):
    state = MatrixState(density=1, rng=fixed_random(0.5))
    for _ in range(1000):
        state.auto_track()
    assert not state.auto_tracking
    assert (state.view_x, state.view_y) == NICE_VIEWS[0]


def test_rotation_disabled(fixed_random):
    state = MatrixState(density=1, do_rotate=False, rng=fixed_random(0.0))
    for _ in range(500):
        state.tick()
    assert state.track_tick == 0
    assert not state.auto_tracking


def test_paused_camera_is_frozen(fixed_random):
    state = _tracking_state(fixed_random(0.5), last=0, target=3)
    for _ in range(10):
        state.auto_track()
    before = (state.view_x, state.view_y, state.view_tick)
    state.paused = True
    state.auto_track()
    assert (state.view_x, state.view_y, state.view_tick) == before


def test_tick_reports_tracking_event(fixed_random):
    state = MatrixState(density=1, rng=fixed_random(0.0))
    events = [state.tick() for _ in range(20)]
    assert events[-1] == "track:0"
    assert state.last_event == "track:0"
    assert state.last_event_tick == 20


def test_fast_speed_keeps_positive_step_count():
    state = MatrixState(density=1, speed=1000.0, rng=RandomSource(1))
    for _ in range(5000):
        state.auto_track()
        assert state.view_steps >= 1
        assert not math.isnan(state.view_x)
