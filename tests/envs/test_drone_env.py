import numpy as np
import pytest

from envs import DroneEnv, make_env


def test_state_layout():
    env = DroneEnv(bound_radius=10.0)
    env.reset_entity([3.0, 0.0, 4.0])
    np.testing.assert_allclose(env.observe_state(), [0.6, 0.0, 0.8, 0.5, 0.0, 0.0, 0.0, 0.0])


def test_state_at_origin_is_finite():
    env = DroneEnv()
    env.reset_entity([0.0, 0.0, 0.0])
    state = env.observe_state()
    assert state.shape == (8,)
    assert np.all(np.isfinite(state))


def test_hover_throttle_holds_position():
    env = DroneEnv()
    env.reset_entity([0.0, 1.0, 0.0])
    action = np.full(4, 2.0 * env.hover_throttle() - 1.0)
    for _ in range(20):
        env.apply_action(action)
    np.testing.assert_allclose(env.velocity, 0.0, atol=1e-6)
    np.testing.assert_allclose(env.position, [0.0, 1.0, 0.0], atol=1e-6)


def test_zero_throttle_falls():
    env = DroneEnv()
    env.reset_entity([0.0, 0.0, 0.0])
    env.apply_action(np.full(4, -1.0))
    assert env.velocity[1] < 0
    assert env.position[1] < 0


def test_differential_thrust_moves_sideways():
    env = DroneEnv()
    env.reset_entity([0.0, 0.0, 0.0])
    # 螺旋桨 0 和 3 位于 +x 一侧
    env.apply_action(np.array([1.0, -1.0, -1.0, 1.0]))
    assert env.velocity[0] > 0
    assert env.velocity[2] == pytest.approx(0.0, abs=1e-12)


def test_actions_are_clipped():
    a, b = DroneEnv(), DroneEnv()
    a.reset_entity([0.0, 0.0, 0.0])
    b.reset_entity([0.0, 0.0, 0.0])
    a.apply_action(np.full(4, 5.0))
    b.apply_action(np.full(4, 1.0))
    np.testing.assert_array_equal(a.velocity, b.velocity)


def test_out_of_bounds():
    env = DroneEnv(bound_radius=10.0)
    env.reset_entity([0.0, 0.0, 9.0])
    assert not env.is_out_of_bounds()
    env.reset_entity([0.0, 0.0, 10.5])
    assert env.is_out_of_bounds()


def test_reset_zeroes_velocity():
    env = DroneEnv()
    env.reset_entity([0.0, 0.0, 0.0])
    env.apply_action(np.full(4, 1.0))
    assert np.linalg.norm(env.velocity) > 0

    env.reset_entity([1.0, 2.0, 0.0])
    np.testing.assert_array_equal(env.velocity, np.zeros(3))
    np.testing.assert_array_equal(env.position, [1.0, 2.0, 0.0])


def test_invalid_inputs_rejected():
    env = DroneEnv()
    with pytest.raises(ValueError):
        env.apply_action(np.zeros(3))
    with pytest.raises(ValueError):
        env.reset_entity([1.0, 2.0])
    with pytest.raises(ValueError):
        DroneEnv(bound_radius=0.0)


def test_gymnasium_spaces():
    env = DroneEnv()
    assert env.observation_space.shape == (8,)
    assert env.action_space.shape == (4,)
    assert env.action_space.contains(np.zeros(4))


def test_make_env():
    env = make_env('Drone', bound_radius=3.0)
    assert isinstance(env, DroneEnv)
    assert env.bound_radius == 3.0
    assert (env.state_dim, env.action_dim) == (8, 4)

    with pytest.raises(ValueError):
        make_env('Breakout')
