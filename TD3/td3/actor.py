"""
Actor (确定性策略)

训练信号为确定性策略梯度：最大化 Critic 对 (s, μ(s)) 的估值，
梯度只更新 Actor 自身参数。
"""

import numpy as np
import torch

from .critic import Critic
from .model import Model
from .network import ActorNetwork


class Actor(Model):
    """策略网络 μ(s) 及其优化器"""

    kind = 'actor'

    def _build_network(self) -> ActorNetwork:
        return ActorNetwork(self.state_dim, self.action_dim, self.hidden_layers, self.hidden_width)

    def predict(self, states) -> torch.Tensor:
        """
        批量前向传播

        Args:
            states: (batch, state_dim) 或单个 (state_dim,) 状态

        Returns:
            动作张量 (batch, action_dim)，取值 [-1, 1]
        """
        states = self._as_tensor(states).reshape(-1, self.state_dim)
        return self.network(states)

    @torch.no_grad()
    def act(self, state: np.ndarray) -> np.ndarray:
        """单个状态的确定性动作 (不记录梯度)"""
        return self.predict(state).squeeze(0).cpu().numpy().astype(np.float64)

    def optimize(self, states, critic: Critic) -> float:
        """
        执行一步策略梯度更新

        loss = -mean(Q(s, μ(s)))

        Returns:
            本次更新的 loss
        """
        states = self._as_tensor(states).reshape(-1, self.state_dim)

        actions = self.network(states)
        loss = -critic.predict(states, actions).mean()

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        # Critic 参数在这一步视为常量，丢弃反传到它上面的梯度
        critic.network.zero_grad(set_to_none=True)

        return loss.item()
