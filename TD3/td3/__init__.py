"""
TD3 模块 (Twin Delayed Deep Deterministic Policy Gradient)

包含连续控制训练所需的经验回放、Actor / Critic 网络、目标网络软更新、
探索策略以及按 tick 驱动环境的训练调度器。
"""

from .actor import Actor
from .agent import TD3Agent, UpdateInfo, get_device
from .config import TrainerConfig
from .critic import Critic
from .errors import ConfigurationError, PersistenceError
from .exploration import epsilon_at, random_action, random_reset_position
from .network import ActorNetwork, CriticNetwork
from .replay_buffer import ReplayBuffer, Transition, TransitionBatch
from .reward import compute_reward
from .target import compute_td_target, hard_update, smooth_target_actions, soft_update
from .trainer import Trainer, TrainerPhase, TrainerState

__all__ = [
    'Actor',
    'ActorNetwork',
    'ConfigurationError',
    'Critic',
    'CriticNetwork',
    'PersistenceError',
    'ReplayBuffer',
    'TD3Agent',
    'Trainer',
    'TrainerConfig',
    'TrainerPhase',
    'TrainerState',
    'Transition',
    'TransitionBatch',
    'UpdateInfo',
    'compute_reward',
    'compute_td_target',
    'epsilon_at',
    'get_device',
    'hard_update',
    'random_action',
    'random_reset_position',
    'smooth_target_actions',
    'soft_update',
]
