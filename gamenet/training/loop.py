from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, Iterable, List, Optional, Tuple

import torch
import torch.nn as nn

from gamenet.errors import NumericalFailure
from gamenet.optim.state import RunningOptimizerState, apply_update

from .config import TrainingConfig

_log = logging.getLogger(__name__)


def trainable_params(network: nn.Module) -> List[torch.Tensor]:
    params = network.params() if hasattr(network, "params") else list(network.parameters())
    return [p for p in params if p.requires_grad]


def compute_loss_and_grads(
    loss_fn: Callable[..., torch.Tensor],
    params: List[torch.Tensor],
    batch: Any,
) -> Tuple[torch.Tensor, List[Optional[torch.Tensor]]]:
    """Evaluate ``loss_fn`` on ``batch`` and backpropagate into ``params``.

    Tuple and list batches are unpacked into positional arguments.
    Returns the detached loss and the gradient of each parameter (None for
    parameters the loss does not depend on).
    """
    for p in params:
        p.grad = None

    if isinstance(batch, (tuple, list)):
        loss = loss_fn(*batch)
    else:
        loss = loss_fn(batch)
    loss.backward()

    return loss.detach(), [p.grad for p in params]


def check_finite(step: int, loss: torch.Tensor, grads: List[Optional[torch.Tensor]]) -> None:
    if not bool(torch.isfinite(loss).all()):
        raise NumericalFailure(f"Non-finite loss at step {step}: {loss.item()}", step=step)
    for g in grads:
        if g is not None and not bool(torch.isfinite(g).all()):
            raise NumericalFailure(f"Non-finite gradient at step {step}", step=step)


def train(
    callback: Callable[[int, float], Any],
    network: nn.Module,
    policy,
    loss_fn: Callable[..., torch.Tensor],
    data: Iterable[Any],
    n_steps: int,
    config: Optional[TrainingConfig] = None,
) -> RunningOptimizerState:
    """Run up to ``n_steps`` optimization steps over ``data``.

    ``callback(i, loss)`` is called after every update with the 1-indexed
    step and the loss as a float. The loop stops early, without error, if
    ``data`` runs out. Errors raised by ``loss_fn``, the backend or
    ``callback`` abort the loop and propagate.

    Returns the running optimizer state after the last update.
    """
    config = config or TrainingConfig()
    params = trainable_params(network)
    state = policy.create_state(params, n_steps)
    n_steps = state.n_steps

    _log.info(f"Training {type(network).__name__} for up to {n_steps} steps with {policy}")
    start = time.time()

    for i, batch in enumerate(itertools.islice(data, n_steps), start=1):
        loss, grads = compute_loss_and_grads(loss_fn, params, batch)
        if config.check_finite:
            check_finite(i, loss, grads)
        state = apply_update(state)
        loss_value = float(loss.item())

        if i % config.log_interval == 0:
            momentum = "n/a" if state.momentum is None else f"{state.momentum:.3f}"
            _log.debug(f"step {i}/{n_steps}: loss={loss_value:.4f} lr={state.lr:.2e} momentum={momentum}")

        callback(i, loss_value)

    if state.step < n_steps:
        _log.info(f"Data exhausted after {state.step} of {n_steps} steps")
    _log.debug(f"Training finished in {time.time() - start:.2f}s")
    return state
