"""
TD3 智能体 (Twin Delayed DDPG)

相对 DDPG 的三处改进：
- Twin Critics: 两个 Critic 取最小值计算 TD 目标，抑制过估计
- Delayed Policy Update: Actor 与目标网络每隔 actor_update_interval 步更新一次
- Target Policy Smoothing: 目标动作加裁剪高斯噪声

探索方式为 epsilon-greedy：随机动作或确定性策略二选一，不在策略输出上叠加噪声。
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import torch

from .actor import Actor
from .config import TrainerConfig
from .critic import Critic
from .exploration import random_action
from .replay_buffer import ReplayBuffer, Transition
from .target import compute_td_target, hard_update, smooth_target_actions, soft_update

ACTOR_FILE = 'actor.pt'
CRITIC_FILE = 'critic_{}.pt'


def get_device() -> str:
    """自动检测最佳可用设备"""
    if torch.cuda.is_available():
        return 'cuda'
    elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return 'mps'  # Apple Silicon
    else:
        return 'cpu'


@dataclass
class UpdateInfo:
    """一次优化步的诊断信息"""
    critic_losses: List[float]
    actor_loss: Optional[float]
    actor_updated: bool

    @property
    def critic_loss(self) -> float:
        return float(np.mean(self.critic_losses))


@dataclass
class TD3Agent:
    """
    TD3 智能体

    持有 Actor / Critic 及其目标网络和经验回放，不直接与环境交互。
    """

    config: TrainerConfig
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    # 内部状态
    actor: Actor = field(init=False)
    actor_target: Actor = field(init=False)
    critics: List[Critic] = field(init=False)
    critic_targets: List[Critic] = field(init=False)
    replay_buffer: ReplayBuffer = field(init=False)
    rng: np.random.Generator = field(init=False)
    last_actor_loss: Optional[float] = field(init=False, default=None)

    def __post_init__(self):
        """初始化随机数、网络、目标网络和经验回放"""
        if self.config.seed is not None:
            torch.manual_seed(self.config.seed)
        self.rng = np.random.default_rng(self.config.seed)

        self.replay_buffer = ReplayBuffer(
            self.config.buffer_capacity,
            self.config.state_dim,
            self.config.action_dim,
            rng=self.rng,
        )
        self.reset()

    @property
    def n_critics(self) -> int:
        return 2 if self.config.twin_critics else 1

    def _make_actor(self) -> Actor:
        cfg = self.config
        return Actor(cfg.state_dim, cfg.action_dim, cfg.hidden_layers, cfg.hidden_width,
                     cfg.actor_lr, device=cfg.device)

    def _make_critic(self) -> Critic:
        cfg = self.config
        return Critic(cfg.state_dim, cfg.action_dim, cfg.hidden_layers, cfg.hidden_width,
                      cfg.critic_lr, device=cfg.device)

    def reset(self):
        """重新初始化全部网络 (随机权重)，目标网络硬拷贝主网络，清空经验回放"""
        self.actor = self._make_actor()
        self.actor_target = self._make_actor()
        hard_update(self.actor_target, self.actor)

        self.critics = [self._make_critic() for _ in range(self.n_critics)]
        self.critic_targets = []
        for critic in self.critics:
            critic_target = self._make_critic()
            hard_update(critic_target, critic)
            self.critic_targets.append(critic_target)

        self.replay_buffer.clear()
        self.last_actor_loss = None

    def select_action(self, state: np.ndarray, epsilon: float, explore: bool = True) -> np.ndarray:
        """
        epsilon-greedy 动作选择

        Args:
            state: 当前状态
            epsilon: 当前探索率
            explore: False 时始终使用确定性策略

        Returns:
            动作 (action_dim,)，取值 [-1, 1]
        """
        if not explore or self.rng.random() > epsilon:
            self.logger.debug("CHOICE (e=%.3f) - PREDICTED", epsilon)
            return self.actor.act(state)

        self.logger.debug("CHOICE (e=%.3f) - RNG", epsilon)
        return random_action(self.rng, self.config.action_dim)

    def store_transition(self, transition: Transition) -> bool:
        """
        存储一条经验

        含 NaN / Inf 的经验会被丢弃并记录警告，避免污染缓冲区。

        Returns:
            是否成功存储
        """
        if not transition.is_finite():
            self.logger.warning("丢弃非有限值经验: reward=%s", transition.reward)
            return False

        self.replay_buffer.add(transition)
        return True

    def can_train(self) -> bool:
        return len(self.replay_buffer) > self.config.batch_size

    def train_step(self, step: int) -> Optional[UpdateInfo]:
        """
        执行一步 TD3 更新

        Args:
            step: 全局训练步数，用于判断是否进行延迟的 Actor 更新

        Returns:
            诊断信息；缓冲区数据不足时返回 None
        """
        if not self.can_train():
            return None

        cfg = self.config
        batch = self.replay_buffer.sample(cfg.batch_size)

        device = self.actor.device
        states = torch.from_numpy(batch.states).to(device)
        actions = torch.from_numpy(batch.actions).to(device)
        rewards = torch.from_numpy(batch.rewards).to(device)
        next_states = torch.from_numpy(batch.next_states).to(device)
        terminals = torch.from_numpy(batch.terminals).to(device)

        # y = r + γ * min_i Q'_i(s', clip(μ'(s') + ε)) * (1 - terminal)
        with torch.no_grad():
            target_actions = smooth_target_actions(
                self.actor_target.predict(next_states), cfg.policy_noise, cfg.noise_clip
            )
            next_values = self.critic_targets[0].predict(next_states, target_actions)
            for critic_target in self.critic_targets[1:]:
                next_values = torch.min(next_values, critic_target.predict(next_states, target_actions))
            targets = compute_td_target(rewards, next_values, terminals, cfg.gamma)

        # 两个 Critic 朝同一目标独立回归
        critic_losses = [critic.optimize(states, actions, targets) for critic in self.critics]

        actor_updated = step % cfg.actor_update_interval == 0
        if actor_updated:
            self.last_actor_loss = self.actor.optimize(states, self.critics[0])
            self.update_targets()

        self.logger.debug("CRITIC LOSS = %s", critic_losses)
        self.logger.debug("ACTOR LOSS = %s%s", self.last_actor_loss, '' if actor_updated else ' (reused)')

        return UpdateInfo(
            critic_losses=critic_losses,
            actor_loss=self.last_actor_loss,
            actor_updated=actor_updated,
        )

    def update_targets(self):
        """软更新全部目标网络，必须在对应的优化步之后调用"""
        soft_update(self.actor_target, self.actor, self.config.tau)
        for critic_target, critic in zip(self.critic_targets, self.critics):
            soft_update(critic_target, critic, self.config.tau)

    def copy_networks(self, other: 'TD3Agent'):
        """从结构相同的智能体复制全部网络权重（含目标网络），经验回放不变"""
        if other.n_critics != self.n_critics:
            raise ValueError(f"Critic 数量不匹配: {self.n_critics} vs {other.n_critics}")
        self.actor.load_weights(other.actor.get_weights())
        self.actor_target.load_weights(other.actor_target.get_weights())
        for mine, theirs in zip(self.critics + self.critic_targets,
                                other.critics + other.critic_targets):
            mine.load_weights(theirs.get_weights())
        self.last_actor_loss = other.last_actor_loss

    def save(self, directory: Union[str, Path]):
        """保存 Actor 与全部 Critic 的权重"""
        directory = Path(directory)
        self.actor.save(directory / ACTOR_FILE)
        for i, critic in enumerate(self.critics):
            critic.save(directory / CRITIC_FILE.format(i + 1))

    def load_actor(self, path: Union[str, Path]):
        """
        仅加载 Actor 权重 (用于推理部署)

        加载成功后目标 Actor 同步为相同权重；失败时网络保持不变。
        """
        self.actor.load(path)
        hard_update(self.actor_target, self.actor)

    def load(self, directory: Union[str, Path]):
        """加载 save() 写出的全部权重，任一文件失败时不修改任何网络"""
        directory = Path(directory)
        actor = self._make_actor()
        actor.load(directory / ACTOR_FILE)
        critics = []
        for i in range(self.n_critics):
            critic = self._make_critic()
            critic.load(directory / CRITIC_FILE.format(i + 1))
            critics.append(critic)

        self.actor.load_weights(actor.get_weights())
        hard_update(self.actor_target, self.actor)
        for critic, critic_target, loaded in zip(self.critics, self.critic_targets, critics):
            critic.load_weights(loaded.get_weights())
            hard_update(critic_target, critic)
