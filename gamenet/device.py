"""
Accelerator availability, resolved once and passed around explicitly.

The resolved ``DeviceConfig`` is handed to any code that places networks or
tensors on a device. Set ``GAMENET_DISABLE_GPU=1`` to force CPU execution.
"""
from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass

import torch

from gamenet.errors import InvalidConfiguration

_log = logging.getLogger(__name__)

_PROBES = {
    "cuda": lambda: torch.cuda.is_available(),
    "mps": lambda: torch.backends.mps.is_available(),
}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class DeviceConfig:
    """Resolved accelerator settings."""

    accelerator_available: bool = False
    accelerator: str = "cuda"

    @classmethod
    def detect(cls, accelerator: str = "cuda") -> "DeviceConfig":
        """Probe ``accelerator`` (``"cuda"`` or ``"mps"``)."""
        if accelerator not in _PROBES:
            raise InvalidConfiguration(
                f"Unknown accelerator '{accelerator}', expected one of {sorted(_PROBES)}"
            )
        if _env_flag("GAMENET_DISABLE_GPU"):
            _log.info("GAMENET_DISABLE_GPU is set, running on CPU")
            return cls(accelerator_available=False, accelerator=accelerator)
        available = bool(_PROBES[accelerator]())
        if not available:
            _log.info(f"Accelerator '{accelerator}' unavailable, running on CPU")
        return cls(accelerator_available=available, accelerator=accelerator)

    @classmethod
    def cpu_only(cls) -> "DeviceConfig":
        return cls(accelerator_available=False)

    def target(self) -> torch.device:
        """Device that accelerator placement resolves to."""
        if self.accelerator_available:
            return torch.device(self.accelerator)
        return torch.device("cpu")


@functools.lru_cache(maxsize=1)
def default_device_config() -> DeviceConfig:
    """Process-wide device configuration, detected on first use."""
    return DeviceConfig.detect()


def is_accelerator(device: torch.device) -> bool:
    return torch.device(device).type != "cpu"
