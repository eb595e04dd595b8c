from .simplenet import SimpleNet, SimpleNetHP
from .resnet import ResNet, ResNetHP, ResidualBlock

__all__ = ["SimpleNet", "SimpleNetHP", "ResNet", "ResNetHP", "ResidualBlock"]
