"""
activation.py
~~~~~~~~~~~~~

Activation functions and their derivatives.

The set of nonlinearities is closed: every layer uses one member of
``Activation``. Derivatives are always evaluated at the pre-activation
value, i.e. the same ``x`` that was passed to ``apply``.
"""

from enum import Enum
from typing import Union

import numpy as np

from ffnet.exceptions import SerializationError

ArrayLike = Union[float, np.ndarray, list]


class Activation(Enum):
    """Nonlinearities available to a layer. Values are the persisted tags."""

    SIGMOID = "Sigmoid"
    RELU = "ReLU"
    TANH = "Tanh"

    @property
    def tag(self) -> str:
        """Name written to saved network documents."""
        return self.value

    @classmethod
    def from_tag(cls, tag: str) -> "Activation":
        """
        Parse a persisted activation tag.

        Args:
            tag: One of ``"Sigmoid"``, ``"ReLU"`` or ``"Tanh"``

        Returns:
            The matching Activation member

        Raises:
            SerializationError: If the tag is not a known activation
        """
        if not isinstance(tag, str):
            raise SerializationError(
                f"Activation tag must be a string, got {type(tag).__name__}"
            )
        try:
            return cls(tag)
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise SerializationError(
                f"Unknown activation '{tag}' (expected one of: {known})"
            ) from None


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # exp(-x) overflows to inf for very negative x, which saturates to 0
    with np.errstate(over='ignore'):
        return 1.0 / (1.0 + np.exp(-x))


def apply_vec(x: ArrayLike, kind: Activation) -> np.ndarray:
    """
    Apply an activation elementwise.

    Args:
        x: Pre-activation values
        kind: Activation to apply

    Returns:
        np.ndarray: New float64 array with the same shape as ``x``
    """
    z = np.asarray(x, dtype=np.float64)
    if kind is Activation.SIGMOID:
        return _sigmoid(z)
    if kind is Activation.RELU:
        return np.maximum(z, 0.0)
    if kind is Activation.TANH:
        return np.tanh(z)
    raise TypeError(f"Unsupported activation: {kind!r}")


def derivative_vec(x: ArrayLike, kind: Activation) -> np.ndarray:
    """
    Derivative of an activation, elementwise, at the pre-activation ``x``.

    The Sigmoid derivative recomputes the forward value from ``x`` itself,
    so passing an already-activated value gives the wrong result.

    Args:
        x: Pre-activation values
        kind: Activation whose derivative is taken

    Returns:
        np.ndarray: New float64 array with the same shape as ``x``
    """
    z = np.asarray(x, dtype=np.float64)
    if kind is Activation.SIGMOID:
        s = apply_vec(z, Activation.SIGMOID)
        return s * (1.0 - s)
    if kind is Activation.RELU:
        # 0 at x == 0
        return np.where(z > 0.0, 1.0, 0.0)
    if kind is Activation.TANH:
        t = np.tanh(z)
        return 1.0 - t * t
    raise TypeError(f"Unsupported activation: {kind!r}")


def apply(x: float, kind: Activation) -> float:
    """Scalar form of :func:`apply_vec`."""
    return float(apply_vec(float(x), kind))


def derivative(x: float, kind: Activation) -> float:
    """Scalar form of :func:`derivative_vec`."""
    return float(derivative_vec(float(x), kind))
