"""
TD3 四旋翼悬停训练脚本

流程:
1. 读取 YAML 配置，命令行参数覆盖
2. 创建四旋翼仿真环境与训练调度器
3. 逐 tick 训练直到步数耗尽（自动保存模型）
4. 绘制训练曲线并保存为图片
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import logging
import time

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from tqdm import tqdm

from td3 import Trainer, TrainerConfig, TrainerPhase, get_device
from envs import make_env

DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'configs', 'drone.yml')

# 可由命令行覆盖的配置项
OVERRIDABLE = (
    'step_interval_ms', 'batch_size', 'buffer_capacity', 'training_step_budget',
    'actor_update_interval', 'gamma', 'tau', 'hidden_layers', 'hidden_width',
    'actor_lr', 'critic_lr', 'epsilon_decay', 'episode_step_limit',
    'policy_noise', 'noise_clip', 'checkpoint_dir', 'seed',
)


def build_config(args) -> TrainerConfig:
    """读取配置文件并应用命令行覆盖"""
    config = TrainerConfig.from_yaml(args.config)
    overrides = {k: getattr(args, k) for k in OVERRIDABLE if getattr(args, k) is not None}
    if args.single_critic:
        overrides['twin_critics'] = False
    if args.no_terminal_penalty:
        overrides['terminal_penalty'] = None
    overrides['device'] = get_device() if args.device == 'auto' else args.device
    return config.replace(**overrides)


def plot_curves(trainer: Trainer, path: str):
    """保存 Critic loss / Actor loss / 平均奖励曲线"""
    s = trainer.state
    fig, axes = plt.subplots(1, 3, figsize=(18, 5))

    ax = axes[0]
    ax.plot(s.critic_losses, alpha=0.6)
    ax.set_xlabel('Update')
    ax.set_ylabel('Loss')
    ax.set_title('Critic Loss')
    ax.set_yscale('log')
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    ax.plot(s.actor_losses, alpha=0.6)
    ax.set_xlabel('Update')
    ax.set_ylabel('Loss')
    ax.set_title('Actor Loss')
    ax.grid(True, alpha=0.3)

    ax = axes[2]
    ax.plot(s.avg_rewards, label='Running Avg')
    if len(s.episode_rewards) >= 10:
        ax2 = ax.twinx()
        ax2.plot(np.linspace(0, len(s.avg_rewards), len(s.episode_rewards)),
                 s.episode_rewards, color='tab:orange', alpha=0.3, label='Episode Reward')
        ax2.set_ylabel('Episode Reward')
    ax.set_xlabel('Transition')
    ax.set_ylabel('Reward')
    ax.set_title('Rewards')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)


def train(args):
    """主训练循环"""
    config = build_config(args)

    env = make_env('Drone', bound_radius=args.bound_radius, seed=config.seed)
    trainer = Trainer(env, config)
    print(f"设备: {config.device}")
    print(f"Actor 参数量: {sum(p.numel() for p in trainer.agent.actor.parameters()):,}")
    print(f"Critic 参数量: {sum(p.numel() for p in trainer.agent.critics[0].parameters()):,} x {trainer.agent.n_critics}")

    if args.load_actor:
        trainer.load_policy(args.load_actor)
        total_ticks = args.ticks or config.episode_step_limit
        print(f"\n推理模式: 运行 {total_ticks} 步")
    else:
        trainer.enable_training()
        total_ticks = args.ticks or config.training_step_budget
        print(f"\n开始训练 TD3...")
        print(f"总步数: {config.training_step_budget:,}")
    print("-" * 60)

    pbar = tqdm(total=total_ticks, desc="Training" if trainer.is_training else "Running")
    start_time = time.time()

    def on_tick(t: Trainer, info):
        pbar.update(1)
        s = t.state
        if t.is_training and s.training_step % args.log_interval == 0:
            elapsed = time.time() - start_time
            recent = np.mean(s.episode_rewards[-10:]) if s.episode_rewards else 0.0
            critic_loss = s.critic_losses[-1] if s.critic_losses else float('nan')
            actor_loss = s.actor_losses[-1] if s.actor_losses else float('nan')
            tqdm.write(
                f"Step: {s.training_step:,} | Episode: {s.episode} | "
                f"Epsilon: {s.epsilon:.3f} | Memory: {len(t.agent.replay_buffer):,} | "
                f"Avg Reward: {s.avg_reward:.3f} | Recent Ep Reward: {recent:.2f} | "
                f"Critic: {critic_loss:.4f} | Actor: {actor_loss:.4f} | "
                f"TPS: {s.training_step / max(elapsed, 1e-9):.0f}"
            )
        if args.ticks is None and t.phase is TrainerPhase.STOPPED:
            t.stop()

    try:
        trainer.run(max_ticks=total_ticks, realtime=args.realtime, callback=on_tick)
    except KeyboardInterrupt:
        tqdm.write("收到中断信号，停止训练")
        trainer.stop()
    finally:
        pbar.close()
        env.close()

    if trainer.phase is TrainerPhase.TRAINING:
        # 未跑满步数，手动保存
        trainer.save_models()

    if trainer.state.critic_losses:
        print("\n绘制训练曲线...")
        plot_curves(trainer, args.plot_path)

    print(f"\n完成!")
    print(f"总步数: {trainer.state.training_step:,}")
    print(f"Episode 数: {trainer.state.episode}")
    print(f"平均奖励: {trainer.state.avg_reward:.3f}")
    print(f"总耗时: {(time.time() - start_time) / 60:.1f} 分钟")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='TD3 Drone Hover Training')

    parser.add_argument('--config', type=str, default=DEFAULT_CONFIG, help='YAML 配置文件')
    parser.add_argument('--ticks', type=int, default=None, help='运行 tick 数 (默认等于训练步数)')
    parser.add_argument('--realtime', action='store_true', help='按 step_interval_ms 间隔调度')
    parser.add_argument('--device', type=str, default='cpu', help="设备: cpu / cuda / mps / auto")
    parser.add_argument('--bound_radius', type=float, default=5.0, help='边界球半径')
    parser.add_argument('--load_actor', type=str, default=None, help='加载 Actor 权重并以推理模式运行')

    # 覆盖配置文件中的超参数
    parser.add_argument('--step_interval_ms', type=float, default=None, help='tick 间隔 (毫秒)')
    parser.add_argument('--batch_size', type=int, default=None, help='批次大小')
    parser.add_argument('--buffer_capacity', type=int, default=None, help='经验回放容量')
    parser.add_argument('--training_step_budget', type=int, default=None, help='总训练步数')
    parser.add_argument('--actor_update_interval', type=int, default=None, help='Actor 延迟更新间隔')
    parser.add_argument('--gamma', type=float, default=None, help='折扣因子')
    parser.add_argument('--tau', type=float, default=None, help='目标网络软更新系数')
    parser.add_argument('--hidden_layers', type=int, default=None, help='隐藏层数量')
    parser.add_argument('--hidden_width', type=int, default=None, help='隐藏层宽度')
    parser.add_argument('--actor_lr', type=float, default=None, help='Actor 学习率')
    parser.add_argument('--critic_lr', type=float, default=None, help='Critic 学习率')
    parser.add_argument('--epsilon_decay', type=float, default=None, help='epsilon 衰减常数')
    parser.add_argument('--episode_step_limit', type=int, default=None, help='单个 episode 最大步数')
    parser.add_argument('--policy_noise', type=float, default=None, help='目标策略平滑噪声')
    parser.add_argument('--noise_clip', type=float, default=None, help='平滑噪声裁剪范围')
    parser.add_argument('--single_critic', action='store_true', help='只使用一个 Critic')
    parser.add_argument('--no_terminal_penalty', action='store_true', help='越界时不记录终止转移')
    parser.add_argument('--checkpoint_dir', type=str, default=None, help='模型保存目录')
    parser.add_argument('--seed', type=int, default=None, help='随机种子')

    # 日志参数
    parser.add_argument('--log_interval', type=int, default=1000, help='日志输出间隔 (步数)')
    parser.add_argument('--log_level', type=str, default='WARNING', help='日志级别')
    parser.add_argument('--plot_path', type=str, default='training_curves_td3.png', help='训练曲线保存路径')

    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    # 打印配置
    print("=" * 60)
    print("TD3 训练配置")
    print("=" * 60)
    for key, value in vars(args).items():
        print(f"  {key}: {value}")
    print("=" * 60)

    train(args)
