"""
gamenet: network layer for game-playing agents

Uniform inference and training over heterogeneous PyTorch architectures:
- Network / TwoHeadNetwork: capability contract and trunk + two heads pattern
- Optimizer policies: fixed-rate Adam and cyclic Nesterov momentum
- Regularized-parameter selection over shared or cyclic module graphs
- A generic training loop reporting progress through a callback
"""

__version__ = "0.1.0"

from .errors import GameNetError, InvalidConfiguration, NumericalFailure
from .device import DeviceConfig, default_device_config

from .optim import (
    CyclicSchedule,
    CyclicMomentum,
    FixedAdaptive,
    Nesterov,
    RunningOptimizerState,
)

from .network import (
    Network,
    TwoHeadNetwork,
    collect_regularized,
    register_regularizer,
)

from .training import TrainingConfig, train

from .architectures import SimpleNet, SimpleNetHP, ResNet, ResNetHP

__all__ = [
    # Errors
    "GameNetError",
    "InvalidConfiguration",
    "NumericalFailure",
    # Devices
    "DeviceConfig",
    "default_device_config",
    # Optimization
    "CyclicSchedule",
    "CyclicMomentum",
    "FixedAdaptive",
    "Nesterov",
    "RunningOptimizerState",
    # Networks
    "Network",
    "TwoHeadNetwork",
    "collect_regularized",
    "register_regularizer",
    # Training
    "TrainingConfig",
    "train",
    # Architectures
    "SimpleNet",
    "SimpleNetHP",
    "ResNet",
    "ResNetHP",
]
