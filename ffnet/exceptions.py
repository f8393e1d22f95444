"""
exceptions.py
~~~~~~~~~~~~~

Error types raised by the network engine and its persistence layer.
"""


class NetworkError(Exception):
    """Base class for every error raised by ffnet."""


class ConfigurationError(NetworkError, ValueError):
    """A size or shape does not match what the network expects."""


class ArithmeticDegenerateError(NetworkError, ArithmeticError):
    """A computation has no defined value, e.g. the loss of an empty output."""


class ModelIOError(NetworkError, OSError):
    """A model file could not be created, opened, read or written."""


class SerializationError(NetworkError, ValueError):
    """A persisted network document is malformed or violates the schema."""
