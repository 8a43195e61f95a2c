"""
可训练网络的公共部分

Actor 和 Critic 共享的权重快照交换与持久化逻辑。
"""

import logging
import os
import pickle
from pathlib import Path
from typing import Dict, List, Sequence, Union

import torch
import torch.nn as nn
import torch.optim as optim

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class Model:
    """
    包装一个 nn.Module 及其 Adam 优化器

    子类需实现 _build_network()，返回结构相同的新网络实例；
    加载权重时先在新实例上校验，成功后才替换当前参数。
    """

    kind = 'model'

    def __init__(self, state_dim: int, action_dim: int, hidden_layers: int,
                 hidden_width: int, learning_rate: float, device: str = 'cpu'):
        self.state_dim = state_dim
        self.action_dim = action_dim
        self.hidden_layers = hidden_layers
        self.hidden_width = hidden_width
        self.learning_rate = learning_rate
        self.device = torch.device(device)

        self.network = self._build_network().to(self.device)
        self.optimizer = optim.Adam(self.network.parameters(), lr=learning_rate)

    def _build_network(self) -> nn.Module:
        raise NotImplementedError

    def _architecture(self) -> Dict[str, int]:
        return {
            'state_dim': self.state_dim,
            'action_dim': self.action_dim,
            'hidden_layers': self.hidden_layers,
            'hidden_width': self.hidden_width,
        }

    def _as_tensor(self, x: Union[torch.Tensor, Sequence]) -> torch.Tensor:
        if isinstance(x, torch.Tensor):
            return x.to(self.device, dtype=torch.float32)
        return torch.as_tensor(x, dtype=torch.float32, device=self.device)

    def parameters(self):
        return self.network.parameters()

    def get_weights(self) -> List[torch.Tensor]:
        """按层顺序返回参数张量的独立副本"""
        return [p.detach().clone() for p in self.network.state_dict().values()]

    def load_weights(self, weights: Sequence[torch.Tensor]):
        """用给定张量列表覆盖全部参数（复制，不共享存储）"""
        state_dict = self.network.state_dict()
        if len(weights) != len(state_dict):
            raise ValueError(f"权重数量不匹配: 期望 {len(state_dict)}，实际 {len(weights)}")

        for (name, current), new in zip(state_dict.items(), weights):
            if tuple(current.shape) != tuple(new.shape):
                raise ValueError(f"参数 {name} 形状不匹配: {tuple(current.shape)} vs {tuple(new.shape)}")

        with torch.no_grad():
            for current, new in zip(state_dict.values(), weights):
                current.copy_(torch.as_tensor(new, dtype=current.dtype))

    def save(self, path: Union[str, Path]):
        """
        保存模型权重

        先写入同目录下的临时文件再替换目标文件，失败时原有文件保持不变。
        """
        path = Path(path)
        tmp_path = path.with_name(path.name + '.tmp')
        try:
            os.makedirs(path.parent, exist_ok=True)
            torch.save({
                'kind': self.kind,
                'architecture': self._architecture(),
                'network': self.network.state_dict(),
            }, tmp_path)
            os.replace(tmp_path, path)
        except (OSError, RuntimeError) as exc:
            if tmp_path.exists():
                tmp_path.unlink()
            raise PersistenceError(f"保存 {self.kind} 失败: {path}: {exc}") from exc
        logger.info("%s 权重已保存: %s", self.kind, path)

    def load(self, path: Union[str, Path]):
        """
        加载模型权重

        任何失败都会抛出 PersistenceError，且当前网络保持不变。
        """
        try:
            checkpoint = torch.load(path, map_location=self.device, weights_only=True)
        except (OSError, RuntimeError, EOFError, ValueError, pickle.UnpicklingError) as exc:
            raise PersistenceError(f"读取 {self.kind} 权重失败: {path}: {exc}") from exc

        if not isinstance(checkpoint, dict) or 'network' not in checkpoint:
            raise PersistenceError(f"权重文件格式错误: {path}")
        if checkpoint.get('kind') != self.kind:
            raise PersistenceError(f"权重类型不匹配: 期望 {self.kind}，实际 {checkpoint.get('kind')}")
        if checkpoint.get('architecture') != self._architecture():
            raise PersistenceError(
                f"网络结构不匹配: 期望 {self._architecture()}，实际 {checkpoint.get('architecture')}"
            )

        # 先在候选网络上加载，成功后再写入当前网络
        candidate = self._build_network().to(self.device)
        try:
            candidate.load_state_dict(checkpoint['network'])
        except (RuntimeError, KeyError, TypeError) as exc:
            raise PersistenceError(f"权重内容无效: {path}: {exc}") from exc

        self.network.load_state_dict(candidate.state_dict())
        logger.info("%s 权重已加载: %s", self.kind, path)
