"""
Tests for gamenet/utils.py - General utility functions.
"""

import os
import tempfile

import torch.nn as nn

from gamenet.utils import count_parameters, save_network_architecture


class TestCountParameters:
    def test_counts(self):
        model = nn.Linear(10, 5)
        assert count_parameters(model) == (55, 55)

    def test_shared_counted_once(self):
        shared = nn.Linear(2, 2)
        assert count_parameters(nn.Sequential(shared, shared)) == (6, 6)

    def test_frozen(self):
        model = nn.Linear(10, 5)
        model.bias.requires_grad_(False)
        assert count_parameters(model) == (55, 50)


class TestSaveNetworkArchitecture:
    """Tests for save_network_architecture function."""

    def test_creates_directory(self, simple_net):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nested", "dir", "arch.txt")
            save_network_architecture(simple_net, path)

            assert os.path.exists(path)

    def test_contents(self, simple_net):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "arch.txt")
            save_network_architecture(simple_net, path)

            with open(path) as f:
                content = f.read()

            assert "SimpleNet" in content
            assert "SimpleNetHP(width=16" in content
            assert "Regularized parameters" in content

    def test_plain_module(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "arch.txt")
            save_network_architecture(nn.Linear(3, 2), path)

            with open(path) as f:
                content = f.read()

            assert "Hyperparameters" not in content
            assert "Total parameters: 8" in content
