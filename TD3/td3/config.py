"""
训练超参数配置

TrainerConfig 为不可变记录：构造时完成全部校验，运行期间只能通过
replace() 生成一份新的、同样经过校验的配置。
"""

import math
from dataclasses import asdict, dataclass, fields, replace as dc_replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigurationError


@dataclass(frozen=True)
class TrainerConfig:
    """
    TD3 训练器超参数

    前 13 个字段为必填项，核心逻辑不假设任何默认值。
    """

    # 调度
    step_interval_ms: float                 # 两次 tick 之间的间隔 (毫秒)
    batch_size: int                         # 训练批大小
    buffer_capacity: int                    # 经验回放容量
    training_step_budget: int               # 总训练步数，到达后停止训练并保存
    actor_update_interval: int              # 策略延迟更新间隔 (TD3 policy delay)

    # 优化
    gamma: float                            # 折扣因子
    tau: float                              # 目标网络软更新系数
    hidden_layers: int                      # 隐藏层数量
    hidden_width: int                       # 隐藏层宽度
    actor_lr: float                         # Actor 学习率
    critic_lr: float                        # Critic 学习率

    # 探索与 episode
    epsilon_decay: float                    # epsilon = exp(-step / epsilon_decay)
    episode_step_limit: int                 # 单个 episode 最大步数

    # 可选参数
    state_dim: int = 8
    action_dim: int = 4
    twin_critics: bool = True               # 双 Critic 取最小值，抑制过估计
    policy_noise: float = 0.2               # 目标策略平滑噪声标准差
    noise_clip: float = 0.5                 # 平滑噪声裁剪范围
    terminal_penalty: Optional[float] = -1.0  # 越界时记录的终止奖励，None 表示不记录
    checkpoint_dir: str = 'checkpoints'
    device: str = 'cpu'
    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """校验超参数，非法时抛出 ConfigurationError"""
        positive_ints = (
            'batch_size', 'buffer_capacity', 'training_step_budget',
            'actor_update_interval', 'hidden_layers', 'hidden_width',
            'episode_step_limit', 'state_dim', 'action_dim',
        )
        for name in positive_ints:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} 必须为正整数，当前为 {value!r}")

        # 只有 size > batch_size 时才会采样，batch_size >= capacity 意味着永远不会训练
        if self.batch_size >= self.buffer_capacity:
            raise ConfigurationError(
                f"batch_size ({self.batch_size}) 必须小于 buffer_capacity ({self.buffer_capacity})"
            )

        # NaN 与任何值比较都为 False，需先单独拒绝
        finite_floats = (
            'step_interval_ms', 'gamma', 'tau', 'actor_lr', 'critic_lr',
            'epsilon_decay', 'policy_noise', 'noise_clip', 'terminal_penalty',
        )
        for name in finite_floats:
            value = getattr(self, name)
            if value is None and name == 'terminal_penalty':
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"{name} 必须为有限实数，当前为 {value!r}")

        if self.step_interval_ms < 0:
            raise ConfigurationError("step_interval_ms 不能为负")
        if not 0.0 <= self.gamma <= 1.0:
            raise ConfigurationError(f"gamma 必须位于 [0, 1]，当前为 {self.gamma}")
        if not 0.0 < self.tau <= 1.0:
            raise ConfigurationError(f"tau 必须位于 (0, 1]，当前为 {self.tau}")
        if self.actor_lr <= 0 or self.critic_lr <= 0:
            raise ConfigurationError("学习率必须为正数")
        if self.epsilon_decay <= 0:
            raise ConfigurationError(f"epsilon_decay 必须为正数，当前为 {self.epsilon_decay}")
        if self.policy_noise < 0 or self.noise_clip < 0:
            raise ConfigurationError("policy_noise 与 noise_clip 不能为负")

    def replace(self, **changes: Any) -> 'TrainerConfig':
        """返回应用修改后的新配置（原子操作：校验失败时不产生任何副作用）"""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigurationError(f"未知配置项: {', '.join(sorted(unknown))}")
        return dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainerConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"未知配置项: {', '.join(sorted(unknown))}")
        try:
            return cls(**data)
        except TypeError as exc:
            # 缺少必填字段
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'TrainerConfig':
        """从 YAML 文件读取配置"""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"配置文件格式错误: {path}")
        return cls.from_dict(data)
