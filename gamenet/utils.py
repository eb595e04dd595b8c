"""
Utility functions for gamenet networks.

General purpose helpers that don't fit into specific modules.
"""

import logging
import os
from typing import Tuple

import torch.nn as nn

from gamenet.network.regularization import collect_regularized, unique_parameters

_log = logging.getLogger(__name__)


def count_parameters(network: nn.Module) -> Tuple[int, int]:
    """Return ``(total, trainable)`` parameter counts, shared tensors counted once."""
    params = unique_parameters(network)
    total = sum(p.numel() for p in params)
    trainable = sum(p.numel() for p in params if p.requires_grad)
    return total, trainable


def save_network_architecture(network: nn.Module, save_path: str) -> None:
    """Write the network structure, hyperparameters and parameter summary to a file.

    Args:
        network: Network to describe
        save_path: Path of the text file to write
    """
    os.makedirs(
        os.path.dirname(save_path) if os.path.dirname(save_path) else ".",
        exist_ok=True
    )

    total, trainable = count_parameters(network)
    regularized = sum(p.numel() for p in collect_regularized(network))
    hyper = getattr(network, "hyperparams", None)

    with open(save_path, "w") as f:
        f.write("=" * 80 + "\n")
        f.write("Network Architecture\n")
        f.write("=" * 80 + "\n\n")
        f.write(str(network) + "\n\n")
        if hyper is not None:
            f.write(f"Hyperparameters: {hyper!r}\n\n")
        f.write("=" * 80 + "\n")
        f.write("Parameter Summary\n")
        f.write("=" * 80 + "\n\n")
        f.write(f"Total parameters: {total:,}\n")
        f.write(f"Trainable parameters: {trainable:,}\n")
        f.write(f"Regularized parameters: {regularized:,}\n")

    _log.info(f"Network architecture saved to: {save_path}")
