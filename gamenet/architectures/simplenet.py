"""Multi-layer perceptron with a shared trunk and two heads."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import torch.nn as nn

from gamenet.errors import InvalidConfiguration
from gamenet.network.two_head import TwoHeadNetwork


@dataclass(frozen=True)
class SimpleNetHP:
    width: int
    depth_common: int
    depth_phead: int = 1
    depth_vhead: int = 1
    use_batch_norm: bool = False
    batch_norm_momentum: float = 0.6

    def __post_init__(self):
        if self.width < 1:
            raise InvalidConfiguration(f"width must be positive, got {self.width}")
        for name in ("depth_common", "depth_phead", "depth_vhead"):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0.0 < self.batch_norm_momentum <= 1.0:
            raise InvalidConfiguration(f"Invalid batch_norm_momentum: {self.batch_norm_momentum}")


def _hidden_layers(hyper: SimpleNetHP, depth: int) -> List[nn.Module]:
    layers: List[nn.Module] = []
    for _ in range(depth):
        layers.append(nn.Linear(hyper.width, hyper.width))
        if hyper.use_batch_norm:
            layers.append(nn.BatchNorm1d(hyper.width, momentum=hyper.batch_norm_momentum))
        layers.append(nn.ReLU())
    return layers


class SimpleNet(TwoHeadNetwork):
    """Dense trunk, ``tanh`` value head and softmax policy head."""

    @classmethod
    def build(cls, hyper: SimpleNetHP, board_shape: Sequence[int], num_actions: int) -> "SimpleNet":
        if num_actions < 1:
            raise InvalidConfiguration(f"num_actions must be positive, got {num_actions}")
        indim = math.prod(board_shape)
        common = nn.Sequential(
            nn.Flatten(),
            nn.Linear(indim, hyper.width),
            nn.ReLU(),
            *_hidden_layers(hyper, hyper.depth_common),
        )
        vhead = nn.Sequential(
            *_hidden_layers(hyper, hyper.depth_vhead),
            nn.Linear(hyper.width, 1),
            nn.Tanh(),
        )
        phead = nn.Sequential(
            *_hidden_layers(hyper, hyper.depth_phead),
            nn.Linear(hyper.width, num_actions),
            nn.Softmax(dim=-1),
        )
        return cls(hyper, common, vhead, phead)
