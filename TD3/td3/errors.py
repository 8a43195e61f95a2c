"""
TD3 模块异常定义
"""


class ConfigurationError(ValueError):
    """超参数配置非法（构造时即拒绝）"""


class PersistenceError(RuntimeError):
    """网络权重保存 / 加载失败"""
