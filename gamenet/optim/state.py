from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional

from torch.optim.optimizer import Optimizer

from gamenet.errors import InvalidConfiguration

from .schedule import CyclicSchedule


@dataclass(frozen=True)
class RunningOptimizerState:
    """Mutable-free view of an optimizer run.

    Moment/velocity buffers live inside ``optimizer``. Everything the training
    loop reasons about (step counter, rate and momentum used by the last
    update) is carried in this value, and ``apply_update`` returns a new one.
    """

    optimizer: Optimizer
    n_steps: int
    lr: float
    momentum: Optional[float] = None
    step: int = 0
    lr_schedule: Optional[CyclicSchedule] = None
    momentum_schedule: Optional[CyclicSchedule] = None

    @property
    def scheduled(self) -> bool:
        return self.lr_schedule is not None


def _write_hyperparams(optimizer: Optimizer, lr: float, momentum: Optional[float]) -> None:
    for group in optimizer.param_groups:
        group["lr"] = lr
        if momentum is not None:
            group["momentum"] = momentum


def apply_update(state: RunningOptimizerState) -> RunningOptimizerState:
    """Apply one update from the gradients currently stored on the parameters.

    For scheduled policies, entry ``step - 1`` of each schedule is written into
    the optimizer before update ``step`` (1-indexed) runs.
    """
    step = state.step + 1
    lr, momentum = state.lr, state.momentum

    if state.scheduled:
        if step > state.n_steps:
            raise InvalidConfiguration(
                f"Schedule exhausted: update {step} requested, schedule covers {state.n_steps} steps"
            )
        lr = state.lr_schedule[step - 1]
        if state.momentum_schedule is not None:
            momentum = state.momentum_schedule[step - 1]
        _write_hyperparams(state.optimizer, lr, momentum)

    state.optimizer.step()
    return dataclasses.replace(state, step=step, lr=lr, momentum=momentum)
