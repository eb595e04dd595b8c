from .config import TrainingConfig
from .loop import train, compute_loss_and_grads, check_finite, trainable_params
from .metrics import TrainingMetrics, MetricsCallback
from .callbacks import LoggingCallback, chain_callbacks

__all__ = [
    "TrainingConfig",
    "train",
    "compute_loss_and_grads",
    "check_finite",
    "trainable_params",
    "TrainingMetrics",
    "MetricsCallback",
    "LoggingCallback",
    "chain_callbacks",
]
