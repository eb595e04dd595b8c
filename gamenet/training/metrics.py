from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class TrainingMetrics:
    """Per-step loss history of one training call."""

    steps: List[int] = field(default_factory=list)
    losses: List[float] = field(default_factory=list)
    step_times: List[float] = field(default_factory=list)

    start_time: float = 0.0
    end_time: float = 0.0
    best_loss: float = float("inf")
    best_loss_step: int = 0
    initial_loss: float = 0.0
    final_loss: float = 0.0

    ema_loss: float = 0.0
    ema_alpha: float = 0.05

    def update(self, step: int, loss: float, step_time: float) -> None:
        if not self.losses:
            self.initial_loss = loss
        self.steps.append(step)
        self.losses.append(loss)
        self.step_times.append(step_time)
        self.final_loss = loss

        if self.ema_loss == 0.0:
            self.ema_loss = loss
        else:
            self.ema_loss = self.ema_alpha * loss + (1 - self.ema_alpha) * self.ema_loss

        if loss < self.best_loss:
            self.best_loss = loss
            self.best_loss_step = step

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": self.steps,
            "losses": self.losses,
            "step_times": self.step_times,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "best_loss": self.best_loss,
            "best_loss_step": self.best_loss_step,
            "initial_loss": self.initial_loss,
            "final_loss": self.final_loss,
            "ema_loss": self.ema_loss,
            "training_time_seconds": self.end_time - self.start_time,
        }


class MetricsCallback:
    """Training callback recording every step into a ``TrainingMetrics``."""

    def __init__(self, metrics: TrainingMetrics | None = None):
        self.metrics = metrics if metrics is not None else TrainingMetrics()
        self._last = None

    def __call__(self, step: int, loss: float) -> None:
        now = time.time()
        if self._last is None:
            self.metrics.start_time = now
            self._last = now
        self.metrics.update(step, loss, now - self._last)
        self.metrics.end_time = now
        self._last = now
