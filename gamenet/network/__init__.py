from .base import Network
from .two_head import TwoHeadNetwork
from .regularization import (
    NodeArena,
    collect_regularized,
    decay_param_groups,
    foreach_node,
    register_regularizer,
    regularizable_of,
    regularization_penalty,
    unique_parameters,
    unregister_regularizer,
)

__all__ = [
    "Network",
    "TwoHeadNetwork",
    "NodeArena",
    "collect_regularized",
    "decay_param_groups",
    "foreach_node",
    "register_regularizer",
    "regularizable_of",
    "regularization_penalty",
    "unique_parameters",
    "unregister_regularizer",
]
