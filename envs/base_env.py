"""
环境适配器抽象基类

训练器只通过该接口驱动仿真世界：读取状态、施加动作、检测越界、重置实体。
物理、渲染等细节全部由具体实现负责。
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from numpy.typing import NDArray


class EnvironmentAdapter(ABC):
    """
    仿真环境适配器

    所有具体环境必须继承此类并实现抽象方法。
    动作约定为 [-1, 1] 范围的连续向量。
    """

    @property
    @abstractmethod
    def state_dim(self) -> int:
        """状态向量长度"""

    @property
    @abstractmethod
    def action_dim(self) -> int:
        """可控自由度数量"""

    @property
    @abstractmethod
    def bound_radius(self) -> float:
        """边界球半径"""

    @abstractmethod
    def observe_state(self) -> NDArray[np.float64]:
        """
        读取当前状态

        Returns:
            固定长度的归一化特征向量 (state_dim,)
        """

    @abstractmethod
    def apply_action(self, action: NDArray[np.float64]) -> None:
        """
        施加动作（有副作用，无返回值）

        Args:
            action: (action_dim,)，取值 [-1, 1]
        """

    @abstractmethod
    def is_out_of_bounds(self) -> bool:
        """实体是否越出边界（episode 终止条件）"""

    @abstractmethod
    def reset_entity(self, position: Sequence[float]) -> None:
        """
        将实体重新放置到给定位置

        Args:
            position: 三维坐标，相对边界中心
        """

    def close(self) -> None:
        """释放环境资源"""
