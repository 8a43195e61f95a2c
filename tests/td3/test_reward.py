import numpy as np
import pytest

from td3.reward import GOAL_REWARD, compute_reward, decode_state


def make_state(position, velocity, bound_radius):
    position, velocity = np.asarray(position, float), np.asarray(velocity, float)
    distance, speed = np.linalg.norm(position), np.linalg.norm(velocity)
    state = np.zeros(8)
    if distance > 0:
        state[0:3] = position / distance
    state[3] = distance / bound_radius
    if speed > 0:
        state[4:7] = velocity / speed
    state[7] = speed
    return state


def test_decode_state():
    position, velocity = decode_state(np.array([0, 1, 0, 0.5, 1, 0, 0, 2.0]), 4.0)
    np.testing.assert_allclose(position, [0, 2, 0])
    np.testing.assert_allclose(velocity, [2, 0, 0])


def test_hovering_at_centre_earns_goal_reward():
    prev = make_state([0.2, 0, 0], [0.5, 0, 0], 5.0)
    state = make_state([0.2, 0, 0], [0.1, 0, 0], 5.0)
    assert compute_reward(prev, state, 5.0) == GOAL_REWARD


def test_fast_at_centre_is_not_goal():
    prev = make_state([0.2, 0, 0], [0, 0, 0], 5.0)
    state = make_state([0.2, 0, 0], [1.0, 0, 0], 5.0)
    assert compute_reward(prev, state, 5.0) != GOAL_REWARD


def test_accelerating_away_is_penalised():
    prev = make_state([2, 0, 0], [0, 0, 0], 5.0)
    state = make_state([2, 0, 0], [1, 0, 0], 5.0)
    assert compute_reward(prev, state, 5.0) == pytest.approx(-2.0)


def test_accelerating_inward_is_rewarded():
    prev = make_state([2, 0, 0], [0, 0, 0], 5.0)
    state = make_state([2, 0, 0], [-1, 0, 0], 5.0)
    assert compute_reward(prev, state, 5.0) == pytest.approx(2.0)
