"""
奖励函数

从相邻两步的状态向量计算奖励。状态布局 (8 维):
    [ux, uy, uz, dist / R, vx_u, vy_u, vz_u, speed]
即单位位置向量、归一化距离、单位速度向量、速率。
"""

from typing import Tuple

import numpy as np

GOAL_RADIUS = 0.4      # 到达中心的距离阈值
GOAL_SPEED = 0.3       # 悬停速率阈值
GOAL_REWARD = 2.0


def decode_state(state: np.ndarray, bound_radius: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    从状态向量还原位置与速度

    Returns:
        position: (3,) 相对边界中心的位置
        velocity: (3,) 线速度
    """
    state = np.asarray(state, dtype=np.float64)
    position = state[0:3] * state[3] * bound_radius
    velocity = state[4:7] * state[7]
    return position, velocity


def compute_reward(prev_state: np.ndarray, next_state: np.ndarray, bound_radius: float) -> float:
    """
    悬停奖励

    - 位于中心附近且几乎静止: GOAL_REWARD
    - 否则: -(p·v_new - p·v_old)，速度朝远离中心方向增长时受罚
    """
    position, new_velocity = decode_state(next_state, bound_radius)
    _, old_velocity = decode_state(prev_state, bound_radius)

    if np.linalg.norm(position) <= GOAL_RADIUS and np.linalg.norm(new_velocity) <= GOAL_SPEED:
        return GOAL_REWARD

    new_dot = float(np.dot(position, new_velocity))
    old_dot = float(np.dot(position, old_velocity))
    return -(new_dot - old_dot)
