from __future__ import annotations

from typing import Any, Sequence, Tuple

import torch
import torch.nn as nn

from gamenet.device import is_accelerator

from .base import Functor, Network


class TwoHeadNetwork(Network):
    """Shared trunk feeding a policy head and a value head.

    Subclasses only need to build ``common``, ``vhead`` and ``phead``. Their
    constructor must accept ``(hyper, common, vhead, phead)``; otherwise they
    override ``rebuild``.
    """

    def __init__(self, hyper: Any, common: nn.Module, vhead: nn.Module, phead: nn.Module):
        super().__init__()
        self.hyper = hyper
        self.common = common
        self.vhead = vhead
        self.phead = phead

    @property
    def hyperparams(self) -> Any:
        return self.hyper

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        c = self.common(x)
        v = self.vhead(c)
        p = self.phead(c)
        return p, v

    def rebuild(self, children: Sequence[nn.Module]) -> "TwoHeadNetwork":
        common, vhead, phead = children
        return type(self)(self.hyper, common, vhead, phead)

    def functor(self) -> Functor:
        return (self.common, self.vhead, self.phead), self.rebuild

    def on_gpu(self) -> bool:
        last = None
        for last in self.vhead.parameters():
            pass
        if last is None:
            return super().on_gpu()
        return is_accelerator(last.device)
