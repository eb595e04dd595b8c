"""Optimizer policies.

A policy is an immutable description of how parameters are updated. The
running optimizer (moment estimates, velocity buffers) is created from it at
the start of every training call by ``create_state``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

import torch

from gamenet.errors import InvalidConfiguration

from .nesterov import Nesterov
from .schedule import CyclicSchedule
from .state import RunningOptimizerState


def _check_steps(n_steps: int) -> None:
    if int(n_steps) != n_steps or n_steps < 1:
        raise InvalidConfiguration(f"Training needs at least one step, got n_steps={n_steps}")


def _check_step(step: int, n_steps: int) -> None:
    _check_steps(n_steps)
    if not 1 <= step <= n_steps:
        raise InvalidConfiguration(f"Step {step} outside of [1, {n_steps}]")


def _check_params(params: Iterable[torch.Tensor]) -> list:
    params = list(params)
    if not params:
        raise InvalidConfiguration("No trainable parameters to optimize")
    return params


@dataclass(frozen=True)
class FixedAdaptive:
    """Adam with a constant learning rate."""

    lr: float = 1e-3

    def __post_init__(self):
        if not self.lr > 0.0:
            raise InvalidConfiguration(f"Invalid learning rate: {self.lr}")

    def hyperparams_at(self, step: int, n_steps: int) -> Tuple[float, Optional[float]]:
        _check_step(step, n_steps)
        return self.lr, None

    def create_state(self, params: Iterable[torch.Tensor], n_steps: int) -> RunningOptimizerState:
        _check_steps(n_steps)
        optimizer = torch.optim.Adam(_check_params(params), lr=self.lr)
        return RunningOptimizerState(optimizer=optimizer, n_steps=int(n_steps), lr=self.lr)


@dataclass(frozen=True)
class CyclicMomentum:
    """Nesterov momentum with one-cycle learning rate and momentum schedules.

    The learning rate goes ``lr_base -> lr_high -> lr_low`` while momentum
    goes ``momentum_high -> momentum_low -> momentum_high``: the two move in
    opposite directions over a cycle.
    """

    lr_base: float
    lr_high: float
    lr_low: float
    momentum_high: float
    momentum_low: float

    def __post_init__(self):
        for name in ("lr_base", "lr_high", "lr_low"):
            value = getattr(self, name)
            if not value > 0.0:
                raise InvalidConfiguration(f"Invalid learning rate {name}={value}")
        for name in ("momentum_high", "momentum_low"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise InvalidConfiguration(f"Invalid momentum {name}={value}")

    def schedules(self, n_steps: int) -> Tuple[CyclicSchedule, CyclicSchedule]:
        _check_steps(n_steps)
        lr = CyclicSchedule(self.lr_base, self.lr_high, self.lr_low, n=n_steps)
        momentum = CyclicSchedule(self.momentum_high, self.momentum_low, self.momentum_high, n=n_steps)
        return lr, momentum

    def hyperparams_at(self, step: int, n_steps: int) -> Tuple[float, Optional[float]]:
        _check_step(step, n_steps)
        lr, momentum = self.schedules(n_steps)
        return lr[step - 1], momentum[step - 1]

    def create_state(self, params: Iterable[torch.Tensor], n_steps: int) -> RunningOptimizerState:
        lr, momentum = self.schedules(n_steps)
        optimizer = Nesterov(_check_params(params), lr=lr[0], momentum=momentum[0])
        return RunningOptimizerState(
            optimizer=optimizer,
            n_steps=int(n_steps),
            lr=lr[0],
            momentum=momentum[0],
            lr_schedule=lr,
            momentum_schedule=momentum,
        )


OptimizerPolicy = Union[FixedAdaptive, CyclicMomentum]
