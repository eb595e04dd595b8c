from __future__ import annotations

from typing import Any, Callable

from gamenet.logging import GameNetLogger

Callback = Callable[[int, float], Any]


class LoggingCallback:
    """Log the loss every ``interval`` steps."""

    def __init__(self, logger: GameNetLogger, interval: int = 100, prefix: str = "train/"):
        if interval < 1:
            raise ValueError(f"interval must be >= 1, got {interval}")
        self.logger = logger
        self.interval = interval
        self.prefix = prefix

    def __call__(self, step: int, loss: float) -> None:
        if step % self.interval == 0:
            self.logger.log_metrics({"loss": loss}, step, prefix=self.prefix)


def chain_callbacks(*callbacks: Callback) -> Callback:
    """Single callback invoking ``callbacks`` in order."""

    def chained(step: int, loss: float) -> None:
        for cb in callbacks:
            cb(step, loss)

    return chained
