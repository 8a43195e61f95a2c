"""
目标网络与 TD 目标

目标网络只通过软更新 (Polyak averaging) 改变，不参与训练也不与环境交互：
    θ' ← τ·θ + (1 - τ)·θ'
"""

from typing import Optional

import torch

from .model import Model

ACTION_LOW = -1.0
ACTION_HIGH = 1.0


@torch.no_grad()
def soft_update(target: Model, source: Model, tau: float):
    """
    将 source 的参数按比例 tau 混合进 target

    tau = 1 等价于硬拷贝，tau = 0 时 target 不变。
    """
    if not 0.0 <= tau <= 1.0:
        raise ValueError(f"tau 必须位于 [0, 1]，当前为 {tau}")

    for target_param, param in zip(target.network.state_dict().values(),
                                   source.network.state_dict().values()):
        if tau == 1.0:
            target_param.copy_(param)
        else:
            target_param.mul_(1.0 - tau).add_(param, alpha=tau)


def hard_update(target: Model, source: Model):
    """将主网络参数完整复制到目标网络"""
    target.load_weights(source.get_weights())


def compute_td_target(rewards: torch.Tensor, next_values: torch.Tensor,
                      terminals: torch.Tensor, gamma: float) -> torch.Tensor:
    """
    y = r + γ · Q'(s', a') · (1 - terminal)

    终止转移不做 bootstrap。
    """
    return rewards + gamma * next_values * (1.0 - terminals)


def smooth_target_actions(actions: torch.Tensor, noise_std: float, noise_clip: float,
                          generator: Optional[torch.Generator] = None) -> torch.Tensor:
    """
    目标策略平滑 (Target Policy Smoothing)

    a' = clip(μ'(s') + clip(ε, -c, c), low, high)，ε ~ N(0, σ²)
    """
    if noise_std > 0:
        noise = torch.randn(actions.shape, generator=generator,
                            dtype=actions.dtype, device=actions.device) * noise_std
        noise = noise.clamp(-noise_clip, noise_clip)
        actions = actions + noise
    return actions.clamp(ACTION_LOW, ACTION_HIGH)
