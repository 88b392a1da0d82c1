import pytest

from streamsync.rate_adjuster import (
    DEFAULT_PARAMS,
    NoOp,
    Slew,
    Step,
    SyncParams,
    adjust,
    clamp,
)


@pytest.mark.parametrize("offset", [0.0, 0.01, -0.01, 0.05, -0.079, 0.08, -0.08])
def test_small_offsets_are_left_alone(offset):
    assert adjust(offset, 10.0) == NoOp()


@pytest.mark.parametrize("offset, expected", [
    (0.20, 0.92),    # raw 0.90, clamped
    (-0.20, 1.08),   # raw 1.10, clamped
    (0.10, 0.95),
    (-0.10, 1.05),
    (0.16, 0.92),
    (-0.16, 1.08),
    (0.5, 0.92),
    (-0.5, 1.08),
])
def test_moderate_offsets_slew(offset, expected):
    action = adjust(offset, 10.0)
    assert isinstance(action, Slew)
    assert action.rate == pytest.approx(expected)


def test_slew_rate_stays_within_bounds():
    for i in range(81, 501):
        offset = i / 1000.0
        for signed in (offset, -offset):
            rate = adjust(signed, 0.0).rate
            assert DEFAULT_PARAMS.min_rate - 1e-12 <= rate <= DEFAULT_PARAMS.max_rate + 1e-12


def test_ahead_follower_slows_down_and_behind_follower_speeds_up():
    assert adjust(0.1, 0.0).rate < 1.0
    assert adjust(-0.1, 0.0).rate > 1.0


@pytest.mark.parametrize("offset", [0.5001, -0.5001, 1.0, -1.0, 30.0, -3600.0])
def test_large_offsets_step_to_master_position(offset):
    assert adjust(offset, 42.5) == Step(42.5)


def test_same_input_same_action():
    assert adjust(0.3, 7.0) == adjust(0.3, 7.0)
    assert adjust(3.0, 7.0) == adjust(3.0, 7.0)


def test_action_kinds():
    assert NoOp().kind == "noop"
    assert Slew(1.02).kind == "slew"
    assert Step(1.0).kind == "step"


def test_custom_params():
    params = SyncParams(hard_threshold=2.0, soft_threshold=0.2, gain=1.0, max_rate_offset=0.5)
    assert adjust(0.15, 0.0, params) == NoOp()
    assert adjust(0.3, 0.0, params).rate == pytest.approx(0.7)
    assert adjust(1.5, 0.0, params).rate == pytest.approx(0.5)
    assert adjust(2.5, 3.0, params) == Step(3.0)


@pytest.mark.parametrize("kwargs", [
    {"soft_threshold": 0.0},
    {"soft_threshold": 0.6, "hard_threshold": 0.5},
    {"gain": 0.0},
    {"max_rate_offset": -0.1},
    {"max_rate_offset": 1.0},
])
def test_invalid_params_rejected(kwargs):
    with pytest.raises(ValueError):
        SyncParams(**kwargs)


def test_clamp():
    assert clamp(5, 0, 1) == 1
    assert clamp(-5, 0, 1) == 0
    assert clamp(0.5, 0, 1) == 0.5
