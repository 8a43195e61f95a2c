"""
训练调度器 (Orchestrator)

以 tick 为单位驱动 “环境适配器 -> 智能体 -> 环境适配器” 的循环：

    IDLE ──enable_training()──> TRAINING ──步数耗尽──> STOPPED
      ^                            │
      └────disable_training()──────┘

- IDLE: 不学习，使用当前策略确定性决策
- TRAINING: 完整的采样 / 存储 / 优化循环
- STOPPED: 训练步数耗尽，权重已保存，之后只做确定性决策

每个 tick 同步执行完毕后才会开始下一个 tick，优化步不会并发。
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np

from envs.base_env import EnvironmentAdapter

from .agent import TD3Agent, UpdateInfo
from .config import TrainerConfig
from .errors import ConfigurationError, PersistenceError
from .exploration import epsilon_at, random_reset_position
from .replay_buffer import Transition
from .reward import compute_reward

RewardFn = Callable[[np.ndarray, np.ndarray], float]

# 修改这些配置项会改变网络结构，无法保留原有权重
ARCHITECTURE_FIELDS = ('state_dim', 'action_dim', 'hidden_layers', 'hidden_width',
                       'twin_critics', 'device')


class TrainerPhase(Enum):
    IDLE = 'idle'
    TRAINING = 'training'
    STOPPED = 'stopped'


@dataclass
class TrainerState:
    """训练过程中的可变状态，每次重新开始训练时整体重置"""
    current_state: Optional[np.ndarray] = None
    current_action: Optional[np.ndarray] = None
    training_step: int = 0                 # 全局训练步数（不随 episode 重置）
    episode_step: int = 0                  # 当前 episode 已执行步数
    episode: int = 0
    epsilon: float = 1.0
    avg_reward: float = 0.0
    reward_count: int = 0
    episode_reward: float = 0.0
    episode_rewards: List[float] = field(default_factory=list)
    avg_rewards: List[float] = field(default_factory=list)
    actor_losses: List[float] = field(default_factory=list)
    critic_losses: List[float] = field(default_factory=list)


class Trainer:
    """
    TD3 训练调度器

    宿主循环只需周期性调用 tick()（或直接使用 run()），
    键盘 / 按钮触发的重置对应 force_episode_reset()。
    """

    def __init__(self, adapter: EnvironmentAdapter, config: TrainerConfig,
                 logger: Optional[logging.Logger] = None,
                 reward_fn: Optional[RewardFn] = None,
                 train: bool = False):
        """
        Args:
            adapter: 环境适配器
            config: 训练超参数
            logger: 日志记录器，默认使用模块 logger
            reward_fn: 奖励函数 (prev_state, next_state) -> reward，
                       默认为基于边界半径的悬停奖励
            train: 是否立即进入训练状态
        """
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._check_adapter(adapter, config)

        self.adapter = adapter
        self.config = config
        self.reward_fn = reward_fn if reward_fn is not None else partial(
            compute_reward, bound_radius=adapter.bound_radius
        )

        self.agent = TD3Agent(config, logger=self.logger)
        self.phase = TrainerPhase.IDLE
        self.state = TrainerState()
        self._stop_event = threading.Event()

        if train:
            self.enable_training()

    @staticmethod
    def _check_adapter(adapter: EnvironmentAdapter, config: TrainerConfig):
        if adapter.state_dim != config.state_dim or adapter.action_dim != config.action_dim:
            raise ConfigurationError(
                f"环境维度 ({adapter.state_dim}, {adapter.action_dim}) 与配置 "
                f"({config.state_dim}, {config.action_dim}) 不一致"
            )

    @property
    def is_training(self) -> bool:
        return self.phase is TrainerPhase.TRAINING

    # ------------------------------------------------------------------
    # 状态切换
    # ------------------------------------------------------------------

    def enable_training(self):
        """重新初始化网络、计数器与经验回放，进入 TRAINING"""
        self.agent.reset()
        self.state = TrainerState()
        self.phase = TrainerPhase.TRAINING
        self.logger.info("开始训练: 总步数 %d, batch %d, 回放容量 %d",
                         self.config.training_step_budget, self.config.batch_size,
                         self.config.buffer_capacity)
        self.reset_episode()

    def disable_training(self):
        """停止学习，之后只做确定性决策"""
        self.phase = TrainerPhase.IDLE
        self.logger.info("训练已关闭")

    def _finish_training(self):
        self.phase = TrainerPhase.STOPPED
        self.logger.info("训练步数耗尽 (%d)，保存模型", self.state.training_step)
        try:
            self.save_models()
        except PersistenceError as exc:
            # 保存失败不影响当前网络
            self.logger.error("模型保存失败: %s", exc)

    def reconfigure(self, **changes):
        """
        原子地修改配置

        新配置先完整校验，失败时抛出 ConfigurationError 且不产生任何修改。
        成功后重建经验回放；训练中则以新网络重新开始训练。
        未在训练且网络结构不变时保留当前权重（已加载或已训练好的策略）。
        """
        new_config = self.config.replace(**changes)
        self._check_adapter(self.adapter, new_config)

        agent = TD3Agent(new_config, logger=self.logger)
        architecture_changed = any(
            getattr(new_config, name) != getattr(self.config, name) for name in ARCHITECTURE_FIELDS
        )
        if self.phase is not TrainerPhase.TRAINING and not architecture_changed:
            agent.copy_networks(self.agent)

        self.config = new_config
        self.agent = agent
        self.logger.info("配置已更新: %s", ', '.join(f"{k}={v}" for k, v in changes.items()))

        if self.phase is TrainerPhase.TRAINING:
            self.enable_training()

    # ------------------------------------------------------------------
    # Episode
    # ------------------------------------------------------------------

    def reset_episode(self):
        """结束当前 episode，将实体放到边界内的随机位置"""
        s = self.state
        if s.episode_step > 0:
            s.episode_rewards.append(s.episode_reward)

        s.current_state = None
        s.current_action = None
        s.episode_step = 0
        s.episode_reward = 0.0
        s.episode += 1

        position = random_reset_position(self.agent.rng, self.adapter.bound_radius)
        self.adapter.reset_entity(position)

    def force_episode_reset(self):
        """宿主触发的手动重置"""
        self.logger.info("手动重置 episode")
        self.reset_episode()

    def _end_episode_out_of_bounds(self, terminal_state: np.ndarray):
        """越界：按配置记录带惩罚的终止转移，然后重置 episode"""
        s = self.state
        penalty = self.config.terminal_penalty
        if (self.is_training and penalty is not None and s.current_state is not None
                and s.training_step < self.config.training_step_budget):
            self._store(Transition(s.current_state, terminal_state, s.current_action,
                                   float(penalty), True))
        self.logger.debug("越界，重置 episode")
        self.reset_episode()

    # ------------------------------------------------------------------
    # 主循环
    # ------------------------------------------------------------------

    def _observe(self) -> Optional[np.ndarray]:
        """读取状态，含 NaN / Inf 时返回 None"""
        state = np.asarray(self.adapter.observe_state(), dtype=np.float64)
        if not np.all(np.isfinite(state)):
            return None
        return state

    def _choose(self, state: np.ndarray) -> np.ndarray:
        return self.agent.select_action(state, self.state.epsilon, explore=self.is_training)

    def _store(self, transition: Transition) -> bool:
        s = self.state
        if not self.agent.store_transition(transition):
            return False

        s.reward_count += 1
        s.avg_reward += (transition.reward - s.avg_reward) / s.reward_count
        s.avg_rewards.append(s.avg_reward)
        s.episode_reward += transition.reward
        self.logger.debug("REWARD = %.4f, AVG REWARD = %.4f, MEMORY = %d",
                          transition.reward, s.avg_reward, len(self.agent.replay_buffer))
        return True

    def _learn(self, next_state: np.ndarray) -> Optional[UpdateInfo]:
        s = self.state
        if s.training_step >= self.config.training_step_budget:
            return None

        if s.current_state is not None and s.current_action is not None:
            reward = float(self.reward_fn(s.current_state, next_state))
            self._store(Transition(s.current_state, next_state, s.current_action, reward, False))

        info = self.agent.train_step(s.training_step)
        if info is not None:
            s.critic_losses.append(info.critic_loss)
            if info.actor_loss is not None:
                s.actor_losses.append(info.actor_loss)
        return info

    def tick(self) -> Optional[UpdateInfo]:
        """
        执行一个调度步

        1. 由全局步数重新计算 epsilon
        2. 观察状态（越界或非有限值则结束 episode）并选择、施加动作
        3. 训练中：计算奖励、存储经验、按需优化
        4. 推进计数器，检查 episode 上限与训练步数上限

        Returns:
            本步优化的诊断信息，未优化时为 None
        """
        s = self.state
        cfg = self.config
        if self.is_training:
            s.epsilon = epsilon_at(s.training_step, cfg.epsilon_decay)

        next_state = self._observe()
        if next_state is not None and self.adapter.is_out_of_bounds():
            self._end_episode_out_of_bounds(next_state)
            next_state = self._observe()

        info = None
        if next_state is None:
            # 状态已不可信，丢弃本步经验并重新放置实体
            self.logger.warning("观测到非有限状态，丢弃本步经验并重置 episode")
            self.reset_episode()
        else:
            action = self._choose(next_state)
            self.adapter.apply_action(action)

            if self.is_training:
                info = self._learn(next_state)

            s.current_state = next_state
            s.current_action = action

        if self.is_training:
            s.training_step += 1
        s.episode_step += 1

        if s.episode_step >= cfg.episode_step_limit:
            self.logger.debug("episode 达到步数上限 %d", cfg.episode_step_limit)
            self.reset_episode()

        if self.is_training and s.training_step >= cfg.training_step_budget:
            self._finish_training()

        return info

    def run(self, max_ticks: Optional[int] = None, realtime: bool = True,
            callback: Optional[Callable[['Trainer', Optional[UpdateInfo]], None]] = None) -> int:
        """
        循环调用 tick() 直到 stop() 或达到 max_ticks

        Args:
            max_ticks: 最大 tick 数，None 表示不限
            realtime: 是否在两次 tick 之间等待 step_interval_ms
            callback: 每个 tick 之后调用 callback(trainer, info)

        Returns:
            实际执行的 tick 数
        """
        self._stop_event.clear()
        interval = self.config.step_interval_ms / 1000.0 if realtime else 0.0
        ticks = 0

        while not self._stop_event.is_set():
            if max_ticks is not None and ticks >= max_ticks:
                break
            info = self.tick()
            ticks += 1
            if callback is not None:
                callback(self, info)
            if interval > 0 and self._stop_event.wait(interval):
                break

        return ticks

    def stop(self):
        """阻止调度下一个 tick；正在执行的 tick 会正常完成"""
        self._stop_event.set()

    # ------------------------------------------------------------------
    # 持久化与状态输出
    # ------------------------------------------------------------------

    def save_models(self, directory: Optional[Union[str, Path]] = None):
        """保存 Actor 与 Critic 权重，失败时抛出 PersistenceError"""
        self.agent.save(directory if directory is not None else self.config.checkpoint_dir)

    def load_policy(self, path: Union[str, Path]):
        """加载 Actor 权重；失败时抛出 PersistenceError 且网络保持不变"""
        self.agent.load_actor(path)
        self.logger.info("策略已加载: %s", path)

    def training_info(self) -> str:
        s = self.state
        lines = [f"Is training? {self.is_training}"]
        if self.is_training:
            actor_loss = f"{s.actor_losses[-1]:.3f}" if s.actor_losses else 'n/a'
            critic_loss = f"{s.critic_losses[-1]:.3f}" if s.critic_losses else 'n/a'
            lines += [
                f"Training step: {s.training_step}",
                f"Epsilon: {s.epsilon:.3f}",
                f"Memory size: {len(self.agent.replay_buffer)}",
                f"Avg reward: {s.avg_reward:.3f}",
                f"Actor loss: {actor_loss}",
                f"Critic loss: {critic_loss}",
            ]
        lines.append(f"Episode duration: {s.episode_step}")
        return '\n'.join(lines)
