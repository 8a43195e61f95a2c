"""
四旋翼质点仿真环境

简化的无头物理模型，用于驱动训练器：
- 质点 + 重力 + 线性阻尼
- 四个螺旋桨位于机臂末端，油门 (a + 1) / 2 ∈ [0, 1]
- 螺旋桨推力差产生水平分力（近似机身倾斜）
- 每次 apply_action 推进 substeps 个物理步长

坐标系 y 轴向上，边界为以原点为中心、半径 bound_radius 的球。
"""

from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from gymnasium import spaces

from envs.base_env import EnvironmentAdapter

# 螺旋桨在水平面 (x, z) 上的方位，与原机型一致
PROP_LAYOUT = np.array([
    [1.0, 1.0],
    [-1.0, 1.0],
    [-1.0, -1.0],
    [1.0, -1.0],
]) / np.sqrt(2.0)


def _unit(v: NDArray[np.float64]) -> NDArray[np.float64]:
    norm = np.linalg.norm(v)
    if norm == 0:
        return np.zeros_like(v)
    return v / norm


class DroneEnv(EnvironmentAdapter):
    """
    四旋翼悬停环境

    状态 (8 维):
        [单位位置向量 (3), 距离 / 半径, 单位速度向量 (3), 速率]
    动作 (4 维):
        每个螺旋桨的油门，[-1, 1] 映射到 [0, 1]
    """

    STATE_SIZE = 8
    ACTION_SIZE = 4

    def __init__(self, bound_radius: float = 5.0, mass: float = 1.0, gravity: float = 9.81,
                 max_thrust: float = 5.0, tilt_gain: float = 0.5, drag: float = 0.1,
                 dt: float = 1.0 / 60.0, substeps: int = 4, seed: Optional[int] = None):
        """
        Args:
            bound_radius: 边界球半径
            mass: 质量 (kg)
            gravity: 重力加速度
            max_thrust: 单个螺旋桨最大推力 (N)
            tilt_gain: 推力差转化为水平分力的比例
            drag: 线性阻尼系数
            dt: 物理步长 (秒)
            substeps: 每次施加动作推进的物理步数
            seed: 随机种子
        """
        if bound_radius <= 0:
            raise ValueError("bound_radius 必须为正数")
        if substeps <= 0:
            raise ValueError("substeps 必须为正整数")

        self._bound_radius = float(bound_radius)
        self.mass = mass
        self.gravity = gravity
        self.max_thrust = max_thrust
        self.tilt_gain = tilt_gain
        self.drag = drag
        self.dt = dt
        self.substeps = substeps
        self.np_random = np.random.default_rng(seed)

        self.position = np.zeros(3)
        self.velocity = np.zeros(3)
        self.throttle = np.zeros(self.ACTION_SIZE)

        # gymnasium 兼容属性
        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(self.STATE_SIZE,), dtype=np.float64
        )
        self.action_space = spaces.Box(
            low=-1.0, high=1.0, shape=(self.ACTION_SIZE,), dtype=np.float64
        )

    @property
    def state_dim(self) -> int:
        return self.STATE_SIZE

    @property
    def action_dim(self) -> int:
        return self.ACTION_SIZE

    @property
    def bound_radius(self) -> float:
        return self._bound_radius

    def observe_state(self) -> NDArray[np.float64]:
        state = np.empty(self.STATE_SIZE)
        state[0:3] = _unit(self.position)
        state[3] = np.linalg.norm(self.position) / self._bound_radius
        state[4:7] = _unit(self.velocity)
        state[7] = np.linalg.norm(self.velocity)
        return state

    def net_force(self, throttle: NDArray[np.float64]) -> NDArray[np.float64]:
        """给定油门下的合力（含重力与阻尼）"""
        thrust = throttle * self.max_thrust
        lateral = self.tilt_gain * (PROP_LAYOUT.T @ thrust)
        force = np.array([lateral[0], thrust.sum(), lateral[1]])
        force[1] -= self.mass * self.gravity
        return force - self.drag * self.velocity

    def apply_action(self, action: NDArray[np.float64]) -> None:
        action = np.clip(np.asarray(action, dtype=np.float64).reshape(-1), -1.0, 1.0)
        if action.shape[0] != self.ACTION_SIZE:
            raise ValueError(f"动作维度应为 {self.ACTION_SIZE}，实际为 {action.shape[0]}")
        self.throttle = (action + 1.0) / 2.0

        # 半隐式欧拉积分
        for _ in range(self.substeps):
            acceleration = self.net_force(self.throttle) / self.mass
            self.velocity = self.velocity + acceleration * self.dt
            self.position = self.position + self.velocity * self.dt

    def is_out_of_bounds(self) -> bool:
        return float(np.dot(self.position, self.position)) > self._bound_radius ** 2

    def reset_entity(self, position: Sequence[float]) -> None:
        position = np.asarray(position, dtype=np.float64).reshape(-1)
        if position.shape[0] != 3:
            raise ValueError("position 必须为三维坐标")
        self.position = position.copy()
        self.velocity = np.zeros(3)
        self.throttle = np.zeros(self.ACTION_SIZE)

    def hover_throttle(self) -> float:
        """静止悬停所需的单桨油门 [0, 1]"""
        return self.mass * self.gravity / (self.ACTION_SIZE * self.max_thrust)
