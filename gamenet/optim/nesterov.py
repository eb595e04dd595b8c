"""Nesterov momentum in velocity form.

Velocity form of Sutskever et al. (2013), which differs from
``torch.optim.SGD(nesterov=True)``:

    d = rho^2 * v - (1 + rho) * lr * g
    v = rho * v - lr * g
    p = p + d

``lr`` and ``momentum`` live in the param groups so a schedule can overwrite
them between steps.
"""
from __future__ import annotations

from typing import Callable, Optional

import torch
from torch.optim.optimizer import Optimizer


class Nesterov(Optimizer):
    """Nesterov accelerated gradient with a per-parameter velocity buffer."""

    def __init__(
        self,
        params,
        lr: float = 1e-3,
        momentum: float = 0.9,
    ):
        if lr <= 0.0:
            raise ValueError(f"Invalid learning rate: {lr}")
        if not 0.0 <= momentum < 1.0:
            raise ValueError(f"Invalid momentum: {momentum}")

        defaults = dict(lr=lr, momentum=momentum)
        super().__init__(params, defaults)

    @torch.no_grad()
    def step(self, closure: Optional[Callable] = None):
        loss = None
        if closure is not None:
            with torch.enable_grad():
                loss = closure()

        for group in self.param_groups:
            lr = group["lr"]
            rho = group["momentum"]

            for p in group["params"]:
                if p.grad is None:
                    continue

                grad = p.grad
                state = self.state[p]

                if len(state) == 0:
                    state["velocity"] = torch.zeros_like(p)

                velocity = state["velocity"]

                update = velocity.mul(rho * rho).add(grad, alpha=-(1.0 + rho) * lr)
                velocity.mul_(rho).add_(grad, alpha=-lr)
                p.add_(update)

        return loss
