"""
Critic (动作价值函数 Q(s, a))
"""

import torch
import torch.nn as nn

from .model import Model
from .network import CriticNetwork


class Critic(Model):
    """Q 网络及其优化器，使用 MSE 回归 TD 目标"""

    kind = 'critic'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.mse = nn.MSELoss()

    def _build_network(self) -> CriticNetwork:
        return CriticNetwork(self.state_dim, self.action_dim, self.hidden_layers, self.hidden_width)

    def predict(self, states, actions) -> torch.Tensor:
        """
        Args:
            states: (batch, state_dim)
            actions: (batch, action_dim)

        Returns:
            Q 值 (batch, 1)
        """
        states = self._as_tensor(states).reshape(-1, self.state_dim)
        actions = self._as_tensor(actions).reshape(-1, self.action_dim)
        return self.network(states, actions)

    def optimize(self, states, actions, targets) -> float:
        """
        朝 targets 做一步 MSE 回归

        targets 必须已与计算图分离，梯度不会流向产生目标值的网络。

        Returns:
            本次更新的 loss
        """
        targets = self._as_tensor(targets).reshape(-1, 1).detach()
        current_q = self.predict(states, actions)
        loss = self.mse(current_q, targets)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        return loss.item()
