"""Error taxonomy for gamenet.

Configuration problems are raised as soon as they are detected (policy,
schedule or hyperparameter construction). Numerical failures during a
training step propagate to the caller of ``train``. A missing accelerator is
never an error: device placement falls back to the CPU.
"""


class GameNetError(Exception):
    """Base class for all gamenet errors."""


class InvalidConfiguration(GameNetError, ValueError):
    """Raised for invalid policies, schedules, hyperparameters or node kinds."""


class NumericalFailure(GameNetError, FloatingPointError):
    """Raised when a training step produces a non-finite loss or gradient."""

    def __init__(self, message: str, step: int | None = None):
        super().__init__(message)
        self.step = step
