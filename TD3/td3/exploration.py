"""
探索策略

epsilon 按全局训练步数指数衰减（不随 episode 重置）：
    epsilon = exp(-step / decay)

每步以概率 epsilon 采样均匀随机动作，否则使用 Actor 的确定性动作。
"""

import math

import numpy as np

from .target import ACTION_HIGH, ACTION_LOW


def epsilon_at(step: int, decay: float) -> float:
    """计算全局步数 step 对应的 epsilon"""
    if decay <= 0:
        raise ValueError("decay 必须为正数")
    return math.exp(-float(step) / decay)


def random_action(rng: np.random.Generator, action_dim: int) -> np.ndarray:
    """每个分量独立均匀采样于动作范围"""
    return rng.uniform(ACTION_LOW, ACTION_HIGH, size=action_dim)


def random_reset_position(rng: np.random.Generator, bound_radius: float) -> np.ndarray:
    """
    边界球内的随机重置位置

    方向在球面上均匀分布，距离中心 [0.25R, 0.75R]。
    """
    direction = rng.normal(size=3)
    norm = np.linalg.norm(direction)
    if norm == 0:
        direction = np.array([0.0, 1.0, 0.0])
    else:
        direction = direction / norm
    return direction * rng.uniform(0.25, 0.75) * bound_radius
