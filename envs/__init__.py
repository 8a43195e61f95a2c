"""
仿真环境模块

提供训练器使用的环境适配器接口及内置的四旋翼质点仿真。
"""

from envs.base_env import EnvironmentAdapter
from envs.drone import DroneEnv


# 环境注册表：环境名称 -> 环境类
ENV_REGISTRY = {
    'Drone': DroneEnv,
}


def make_env(env_name: str = 'Drone', **kwargs) -> EnvironmentAdapter:
    """
    工厂函数：创建指定环境实例

    Args:
        env_name: 环境名称，如 'Drone'
        **kwargs: 传给环境构造函数的参数

    Returns:
        环境适配器实例

    Raises:
        ValueError: 不支持的环境名称

    Example:
        >>> env = make_env('Drone', bound_radius=5.0)
        >>> state = env.observe_state()
    """
    if env_name not in ENV_REGISTRY:
        available = ', '.join(ENV_REGISTRY.keys())
        raise ValueError(f"不支持的环境: {env_name}。可用环境: {available}")

    return ENV_REGISTRY[env_name](**kwargs)


__all__ = ['make_env', 'EnvironmentAdapter', 'DroneEnv', 'ENV_REGISTRY']
