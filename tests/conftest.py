"""Pytest configuration and fixtures for gamenet tests."""

import pytest
import torch
import torch.nn as nn
import sys
from pathlib import Path

# Add project root to path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from gamenet.architectures import SimpleNet, SimpleNetHP, ResNet, ResNetHP
from gamenet.device import DeviceConfig


@pytest.fixture(autouse=True)
def _seed():
    torch.manual_seed(0)


@pytest.fixture(scope="session")
def cpu_config():
    """Device configuration with no accelerator."""
    return DeviceConfig.cpu_only()


@pytest.fixture
def simple_net():
    """Small dense two-head network over a 3x3 board with 9 actions."""
    hyper = SimpleNetHP(width=16, depth_common=2, use_batch_norm=True)
    return SimpleNet.build(hyper, board_shape=(3, 3), num_actions=9)


@pytest.fixture
def resnet():
    """Small residual two-head network over a 2-channel 4x4 board."""
    hyper = ResNetHP(num_filters=8, num_blocks=2)
    return ResNet.build(hyper, board_shape=(2, 4, 4), num_actions=16)


@pytest.fixture
def regression_data():
    """Ten (x, y) batches of a noiseless linear regression problem."""
    w = torch.randn(4, 1)
    batches = []
    for _ in range(10):
        x = torch.randn(8, 4)
        batches.append((x, x @ w))
    return batches


@pytest.fixture
def linear_model():
    return nn.Linear(4, 1)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "gpu: marks tests that require GPU")
