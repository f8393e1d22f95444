"""
ffnet package
~~~~~~~~~~~~~

Minimal feedforward neural network: per-layer activations, forward
inference, single-sample SGD training by explicit backpropagation, and
JSON / SQLite persistence of trained parameters.
"""

from ffnet.activation import Activation
from ffnet.exceptions import (
    ArithmeticDegenerateError,
    ConfigurationError,
    ModelIOError,
    NetworkError,
    SerializationError,
)
from ffnet.layer import Layer
from ffnet.network import Network
from ffnet.persistence import load, save

__version__ = "1.0.0"

__all__ = [
    'Activation',
    'ArithmeticDegenerateError',
    'ConfigurationError',
    'Layer',
    'ModelIOError',
    'Network',
    'NetworkError',
    'SerializationError',
    'load',
    'save',
]
