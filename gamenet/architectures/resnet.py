"""Residual convolutional two-head network (AlphaGo Zero layout)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import torch
import torch.nn as nn
import torch.nn.functional as F

from gamenet.errors import InvalidConfiguration
from gamenet.network.two_head import TwoHeadNetwork


@dataclass(frozen=True)
class ResNetHP:
    num_filters: int
    num_blocks: int
    conv_kernel_size: int = 3
    num_policy_head_filters: int = 2
    num_value_head_filters: int = 1
    batch_norm_momentum: float = 0.6

    def __post_init__(self):
        if self.num_filters < 1 or self.num_blocks < 0:
            raise InvalidConfiguration(
                f"Invalid residual tower: num_filters={self.num_filters}, num_blocks={self.num_blocks}"
            )
        if self.conv_kernel_size < 1 or self.conv_kernel_size % 2 == 0:
            raise InvalidConfiguration(f"conv_kernel_size must be odd, got {self.conv_kernel_size}")
        if self.num_policy_head_filters < 1 or self.num_value_head_filters < 1:
            raise InvalidConfiguration("Head filter counts must be positive")
        if not 0.0 < self.batch_norm_momentum <= 1.0:
            raise InvalidConfiguration(f"Invalid batch_norm_momentum: {self.batch_norm_momentum}")


class ResidualBlock(nn.Module):
    """conv-bn-relu-conv-bn + identity, then relu."""

    def __init__(self, channels: int, kernel_size: int, momentum: float):
        super().__init__()
        pad = kernel_size // 2
        self.conv1 = nn.Conv2d(channels, channels, kernel_size, padding=pad)
        self.bn1 = nn.BatchNorm2d(channels, momentum=momentum)
        self.conv2 = nn.Conv2d(channels, channels, kernel_size, padding=pad)
        self.bn2 = nn.BatchNorm2d(channels, momentum=momentum)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        h = F.relu(self.bn1(self.conv1(x)))
        h = self.bn2(self.conv2(h))
        return F.relu(x + h)


class ResNet(TwoHeadNetwork):
    @classmethod
    def build(cls, hyper: ResNetHP, board_shape: Sequence[int], num_actions: int) -> "ResNet":
        """``board_shape`` is ``(channels, height, width)``."""
        if len(board_shape) != 3:
            raise InvalidConfiguration(f"ResNet expects (channels, height, width), got {tuple(board_shape)}")
        if num_actions < 1:
            raise InvalidConfiguration(f"num_actions must be positive, got {num_actions}")
        channels, height, width = board_shape
        cells = height * width
        nf = hyper.num_filters
        k = hyper.conv_kernel_size
        mom = hyper.batch_norm_momentum

        common = nn.Sequential(
            nn.Conv2d(channels, nf, k, padding=k // 2),
            nn.BatchNorm2d(nf, momentum=mom),
            nn.ReLU(),
            *[ResidualBlock(nf, k, mom) for _ in range(hyper.num_blocks)],
        )
        npf = hyper.num_policy_head_filters
        phead = nn.Sequential(
            nn.Conv2d(nf, npf, 1),
            nn.BatchNorm2d(npf, momentum=mom),
            nn.ReLU(),
            nn.Flatten(),
            nn.Linear(cells * npf, num_actions),
            nn.Softmax(dim=-1),
        )
        nvf = hyper.num_value_head_filters
        vhead = nn.Sequential(
            nn.Conv2d(nf, nvf, 1),
            nn.BatchNorm2d(nvf, momentum=mom),
            nn.ReLU(),
            nn.Flatten(),
            nn.Linear(cells * nvf, nf),
            nn.ReLU(),
            nn.Linear(nf, 1),
            nn.Tanh(),
        )
        return cls(hyper, common, vhead, phead)
