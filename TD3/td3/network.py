"""
TD3 网络定义 (Actor-Critic 架构)

两个网络都是全连接 MLP:
- Actor: 状态 -> 连续动作，tanh 限幅到 [-1, 1]
- Critic: (状态, 动作) 拼接 -> 标量 Q 值

输入: (batch, state_dim) 归一化后的状态向量
"""

import torch
import torch.nn as nn
import torch.nn.functional as F


def _build_hidden(in_features: int, hidden_layers: int, hidden_width: int) -> nn.ModuleList:
    layers = nn.ModuleList()
    for i in range(hidden_layers):
        layers.append(nn.Linear(in_features if i == 0 else hidden_width, hidden_width))
    return layers


class ActorNetwork(nn.Module):
    """
    策略网络 (Actor)

    确定性策略 μ(s)，每个动作分量经 tanh 限幅到 [-1, 1]。

    输入形状: (batch_size, state_dim)
    输出形状: (batch_size, action_dim)
    """

    def __init__(self, state_dim: int, action_dim: int, hidden_layers: int, hidden_width: int):
        super(ActorNetwork, self).__init__()
        self.state_dim = state_dim
        self.action_dim = action_dim

        self.hidden = _build_hidden(state_dim, hidden_layers, hidden_width)
        self.out = nn.Linear(hidden_width, action_dim)

        # 输出层初始化为较小值，初始动作接近 0，避免 tanh 饱和
        nn.init.uniform_(self.out.weight, -3e-3, 3e-3)
        nn.init.zeros_(self.out.bias)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        for layer in self.hidden:
            x = F.relu(layer(x))
        return torch.tanh(self.out(x))


class CriticNetwork(nn.Module):
    """
    价值网络 (Critic)

    估计动作价值函数 Q(s, a)。

    输入形状: (batch_size, state_dim) 与 (batch_size, action_dim)
    输出形状: (batch_size, 1)
    """

    def __init__(self, state_dim: int, action_dim: int, hidden_layers: int, hidden_width: int):
        super(CriticNetwork, self).__init__()
        self.state_dim = state_dim
        self.action_dim = action_dim

        self.hidden = _build_hidden(state_dim + action_dim, hidden_layers, hidden_width)
        self.out = nn.Linear(hidden_width, 1)

    def forward(self, state: torch.Tensor, action: torch.Tensor) -> torch.Tensor:
        x = torch.cat([state, action], dim=1)
        for layer in self.hidden:
            x = F.relu(layer(x))
        return self.out(x)
