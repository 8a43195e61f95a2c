"""
经验回放缓冲区 (Experience Replay Buffer)

固定容量的环形缓冲区：
- 预分配 numpy 数组存储 (state, next_state, action, reward, terminal)
- 写满后覆盖最旧的数据 (FIFO 淘汰)
- 均匀随机采样，单次采样内不重复
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np


@dataclass(frozen=True)
class Transition:
    """
    单步经验数据

    Attributes:
        state: 当前状态 (state_dim,)
        next_state: 下一状态 (state_dim,)
        action: 连续动作 (action_dim,)，取值 [-1, 1]
        reward: 奖励
        terminal: 是否为终止转移
    """
    state: np.ndarray
    next_state: np.ndarray
    action: np.ndarray
    reward: float
    terminal: bool = False

    def is_finite(self) -> bool:
        """所有数值均为有限值 (无 NaN / Inf)"""
        return bool(
            np.all(np.isfinite(self.state))
            and np.all(np.isfinite(self.next_state))
            and np.all(np.isfinite(self.action))
            and np.isfinite(self.reward)
        )


@dataclass
class TransitionBatch:
    """采样得到的 mini-batch，各字段沿第 0 维堆叠"""
    states: np.ndarray         # (batch, state_dim) float32
    next_states: np.ndarray    # (batch, state_dim) float32
    actions: np.ndarray        # (batch, action_dim) float32
    rewards: np.ndarray        # (batch, 1) float32
    terminals: np.ndarray      # (batch, 1) float32

    def __len__(self) -> int:
        return self.states.shape[0]


class ReplayBuffer:
    """
    环形经验回放缓冲区

    index 指向下一个写入位置，size 为当前有效数据量；
    clear() 只重置游标，旧数据由 size 屏蔽，不需要清零。
    """

    def __init__(self, capacity: int, state_dim: int, action_dim: int,
                 rng: Optional[np.random.Generator] = None):
        """
        Args:
            capacity: 缓冲区容量
            state_dim: 状态维度
            action_dim: 动作维度
            rng: 采样用随机数生成器
        """
        if capacity <= 0:
            raise ValueError("capacity 必须为正整数")

        self.capacity = capacity
        self.state_dim = state_dim
        self.action_dim = action_dim
        self.rng = rng if rng is not None else np.random.default_rng()

        self.states = np.zeros((capacity, state_dim), dtype=np.float32)
        self.next_states = np.zeros((capacity, state_dim), dtype=np.float32)
        self.actions = np.zeros((capacity, action_dim), dtype=np.float32)
        self.rewards = np.zeros(capacity, dtype=np.float32)
        self.terminals = np.zeros(capacity, dtype=np.bool_)

        self.index = 0      # 下一个写入位置
        self.size = 0       # 当前有效数据量

    def add(self, transition: Transition):
        """存储一条经验，写满后覆盖最旧的一条"""
        state = np.asarray(transition.state, dtype=np.float32).reshape(-1)
        next_state = np.asarray(transition.next_state, dtype=np.float32).reshape(-1)
        action = np.asarray(transition.action, dtype=np.float32).reshape(-1)

        if state.shape[0] != self.state_dim or next_state.shape[0] != self.state_dim:
            raise ValueError(f"状态维度应为 {self.state_dim}，实际为 {state.shape[0]} / {next_state.shape[0]}")
        if action.shape[0] != self.action_dim:
            raise ValueError(f"动作维度应为 {self.action_dim}，实际为 {action.shape[0]}")

        self.states[self.index] = state
        self.next_states[self.index] = next_state
        self.actions[self.index] = action
        self.rewards[self.index] = transition.reward
        self.terminals[self.index] = transition.terminal

        # 更新游标（循环）
        self.index = (self.index + 1) % self.capacity
        self.size = min(self.size + 1, self.capacity)

    def push(self, state: np.ndarray, next_state: np.ndarray, action: np.ndarray,
             reward: float, terminal: bool = False):
        """add() 的展开参数形式"""
        self.add(Transition(state, next_state, action, float(reward), bool(terminal)))

    def can_sample(self, batch_size: int) -> bool:
        return self.size >= batch_size

    def sample(self, batch_size: int) -> TransitionBatch:
        """
        均匀随机采样 mini-batch

        对有效区间做一次随机排列后取前 batch_size 个，
        单次采样内不重复，不同调用之间相互独立。

        Raises:
            ValueError: 有效数据量不足 batch_size
        """
        if batch_size > self.size:
            raise ValueError(f"可用样本不足: size={self.size}, batch_size={batch_size}")

        idx = self.rng.permutation(self.size)[:batch_size]

        return TransitionBatch(
            states=self.states[idx].copy(),
            next_states=self.next_states[idx].copy(),
            actions=self.actions[idx].copy(),
            rewards=self.rewards[idx].reshape(-1, 1).astype(np.float32),
            terminals=self.terminals[idx].reshape(-1, 1).astype(np.float32),
        )

    def transitions(self) -> List[Transition]:
        """按写入顺序（从旧到新）返回全部有效经验"""
        start = self.index if self.size == self.capacity else 0
        order = [(start + i) % self.capacity for i in range(self.size)]
        return [
            Transition(
                state=self.states[i].copy(),
                next_state=self.next_states[i].copy(),
                action=self.actions[i].copy(),
                reward=float(self.rewards[i]),
                terminal=bool(self.terminals[i]),
            )
            for i in order
        ]

    def clear(self):
        self.index = 0
        self.size = 0

    def __len__(self) -> int:
        return self.size
