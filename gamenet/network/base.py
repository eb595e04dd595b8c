"""
Network capability contract.

A concrete architecture subclasses ``Network`` and provides:

- ``hyperparams``: an immutable hyperparameter value,
- ``forward``: the forward pass,
- optionally ``functor()``: its direct children and a rebuild function, used
  to produce structurally mirrored copies (e.g. on another device),
- optionally ``on_gpu()``.

Copying, device transfer, train/test mode toggling, input/output
conversion, regularized-parameter extraction and training then come for
free.
"""
from __future__ import annotations

import copy
import gc
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import torch
import torch.nn as nn

from gamenet.device import DeviceConfig, default_device_config, is_accelerator
from gamenet.training.loop import train

from .regularization import collect_regularized, unique_parameters

_log = logging.getLogger(__name__)

Functor = Tuple[Sequence[nn.Module], Callable[[Sequence[nn.Module]], "Network"]]


class Network(nn.Module, ABC):
    """Base class for all game networks."""

    @property
    @abstractmethod
    def hyperparams(self) -> Any:
        """Immutable hyperparameters the network was built with."""

    @abstractmethod
    def forward(self, x: torch.Tensor) -> Any:
        ...

    def functor(self) -> Optional[Functor]:
        """Direct children and a function rebuilding the network from new ones.

        Returning None means the network is copied as a whole.
        """
        return None

    # ------------------------------------------------------------------
    # Device placement
    # ------------------------------------------------------------------

    def device(self) -> torch.device:
        for p in self.parameters():
            return p.device
        for b in self.buffers():
            return b.device
        return torch.device("cpu")

    def on_gpu(self) -> bool:
        return is_accelerator(self.device())

    def _map_structure(self, fn: Callable[[nn.Module], nn.Module]) -> "Network":
        structure = self.functor()
        memo = self._copy_memo()
        if structure is None:
            new = fn(copy.deepcopy(self, memo))
        else:
            # One memo for all children keeps modules shared between them shared.
            children, rebuild = structure
            new = rebuild(tuple(fn(copy.deepcopy(c, memo)) for c in children))
        # Only the composite's own flag: children keep theirs.
        new.training = self.training
        return new

    def to_device(self, device: torch.device | str) -> "Network":
        """New network with the same hyperparameters, placed on ``device``."""
        device = torch.device(device)
        return self._map_structure(lambda m: m.to(device))

    def to_cpu(self) -> "Network":
        return self.to_device("cpu")

    def to_gpu(self, device_config: Optional[DeviceConfig] = None) -> "Network":
        """Move to the accelerator, or stay on CPU when none is available."""
        device_config = device_config or default_device_config()
        if not device_config.accelerator_available:
            _log.debug("No accelerator available, keeping network on CPU")
        return self.to_device(device_config.target())

    def copy(self) -> "Network":
        """Deep copy with independent parameter storage."""
        return copy.deepcopy(self, self._copy_memo())

    def _copy_memo(self) -> dict:
        # Hyperparameters are immutable and shared by every copy.
        hyper = self.hyperparams
        return {id(hyper): hyper}

    def convert_input(self, x: Any) -> torch.Tensor:
        if isinstance(x, np.ndarray):
            x = torch.from_numpy(x)
        if not torch.is_tensor(x):
            x = torch.as_tensor(x)
        if x.is_floating_point():
            x = x.to(dtype=self._float_dtype())
        return x.to(self.device())

    @staticmethod
    def convert_output(x: Any) -> Any:
        if torch.is_tensor(x):
            return x.detach().cpu()
        if isinstance(x, tuple):
            return tuple(Network.convert_output(v) for v in x)
        if isinstance(x, list):
            return [Network.convert_output(v) for v in x]
        return x

    def _float_dtype(self) -> torch.dtype:
        for p in self.parameters():
            if p.is_floating_point():
                return p.dtype
        return torch.get_default_dtype()

    # ------------------------------------------------------------------
    # Modes, parameters, inference
    # ------------------------------------------------------------------

    def set_test_mode(self, mode: bool = True) -> "Network":
        """Test mode freezes normalization statistics and disables dropout."""
        return self.train(not mode)

    def params(self) -> List[nn.Parameter]:
        return unique_parameters(self)

    def regularized_params(self) -> List[nn.Parameter]:
        return collect_regularized(self)

    @torch.no_grad()
    def evaluate(self, x: Any) -> Any:
        """Forward pass with input/output conversion at the device boundary."""
        return self.convert_output(self(self.convert_input(x)))

    # ------------------------------------------------------------------
    # Training and housekeeping
    # ------------------------------------------------------------------

    def fit(
        self,
        callback: Callable[[int, float], Any],
        policy,
        loss_fn: Callable[..., torch.Tensor],
        data: Iterable[Any],
        n_steps: int,
        config=None,
    ):
        return train(callback, self, policy, loss_fn, data, n_steps, config=config)

    def collect_garbage(self) -> None:
        """Release cached accelerator memory. No-op for CPU networks."""
        if not self.on_gpu():
            return
        gc.collect()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
