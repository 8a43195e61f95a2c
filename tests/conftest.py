import numpy as np
import pytest
import torch

from envs.base_env import EnvironmentAdapter
from td3 import TrainerConfig


class FakeAdapter(EnvironmentAdapter):
    """
    脚本化的环境适配器：每次观测为常量向量，数值取决于已施加的动作次数，
    便于追踪存入的经验。
    """

    def __init__(self, state_dim=8, action_dim=4, bound_radius=5.0):
        self._state_dim = state_dim
        self._action_dim = action_dim
        self._bound_radius = bound_radius
        self.ticks = 0
        self.actions = []
        self.reset_positions = []
        self.out_of_bounds = False
        self.nan_pending = 0  # 接下来返回 NaN 的观测次数

    @property
    def state_dim(self):
        return self._state_dim

    @property
    def action_dim(self):
        return self._action_dim

    @property
    def bound_radius(self):
        return self._bound_radius

    def observe_state(self):
        if self.nan_pending > 0:
            self.nan_pending -= 1
            return np.full(self._state_dim, np.nan)
        return np.full(self._state_dim, 0.01 * self.ticks)

    def apply_action(self, action):
        self.actions.append(np.asarray(action).copy())
        self.ticks += 1

    def is_out_of_bounds(self):
        return self.out_of_bounds

    def reset_entity(self, position):
        self.reset_positions.append(np.asarray(position).copy())
        self.out_of_bounds = False


@pytest.fixture(autouse=True)
def _seed():
    np.random.seed(0)
    torch.manual_seed(0)


@pytest.fixture
def make_config():
    def _make(**overrides):
        params = dict(
            step_interval_ms=0,
            batch_size=4,
            buffer_capacity=50,
            training_step_budget=1000,
            actor_update_interval=2,
            gamma=0.99,
            tau=0.005,
            hidden_layers=2,
            hidden_width=16,
            actor_lr=1e-3,
            critic_lr=1e-3,
            epsilon_decay=100.0,
            episode_step_limit=1000,
            seed=0,
        )
        params.update(overrides)
        return TrainerConfig(**params)
    return _make


@pytest.fixture
def adapter():
    return FakeAdapter()
