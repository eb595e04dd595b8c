from __future__ import annotations

import logging
from dataclasses import dataclass

from gamenet.errors import InvalidConfiguration
from gamenet.logging import resolve_level

_log = logging.getLogger(__name__)


@dataclass
class TrainingConfig:
    """Knobs of the training loop itself (not of the optimizer)."""

    # Raise NumericalFailure on a non-finite loss or gradient before the
    # update is applied.
    check_finite: bool = True

    # Loop progress is logged at DEBUG level every `log_interval` steps.
    log_interval: int = 100

    # GameNetLogger: console level; the log file always records DEBUG.
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    def __post_init__(self) -> None:
        if self.log_interval < 1:
            raise InvalidConfiguration(f"log_interval must be >= 1, got {self.log_interval}")
        resolve_level(self.log_level)
        if not self.check_finite:
            _log.warning("Finite checks disabled: non-finite losses will be applied to parameters")
