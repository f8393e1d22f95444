"""
layer.py
~~~~~~~~

A fully connected layer: one affine transform ``y = W x + b``.
"""

from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ffnet.exceptions import ConfigurationError

RandomSource = Union[None, int, np.random.Generator]


class Layer:
    """
    Affine transform owning its parameters.

    Attributes:
        weights: float64 matrix of shape (output_size, input_size)
        biases: float64 vector of length output_size
    """

    def __init__(
        self,
        weights: Union[np.ndarray, Sequence[Sequence[float]]],
        biases: Union[np.ndarray, Sequence[float]],
        input_size: Optional[int] = None
    ):
        """
        Wrap explicit parameters. Values are copied.

        Args:
            weights: Weight rows, one per output unit
            biases: One bias per output unit
            input_size: Width of the input; only needed to shape a layer
                with no output units, where it cannot be read off the rows

        Raises:
            ConfigurationError: If the shapes are inconsistent
        """
        try:
            w = np.array(weights, dtype=np.float64)
            b = np.array(biases, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid layer parameters: {e}") from e

        if w.size == 0 and w.ndim == 1:
            w = w.reshape(0, input_size or 0)
        if w.ndim != 2:
            raise ConfigurationError(
                f"Weights must be a 2-D matrix, got {w.ndim} dimension(s)"
            )
        if b.ndim != 1:
            raise ConfigurationError(
                f"Biases must be a vector, got {b.ndim} dimension(s)"
            )
        if b.shape[0] != w.shape[0]:
            raise ConfigurationError(
                f"Layer has {w.shape[0]} weight rows but {b.shape[0]} biases"
            )
        if input_size is not None and w.shape[1] != input_size:
            raise ConfigurationError(
                f"Weight rows have length {w.shape[1]}, expected {input_size}"
            )

        self.weights = w
        self.biases = b

    @classmethod
    def random(
        cls,
        input_size: int,
        output_size: int,
        rng: RandomSource = None
    ) -> "Layer":
        """
        Create a layer with weights and biases drawn from uniform [-1, 1).

        Args:
            input_size: Number of input features
            output_size: Number of output units
            rng: Generator, integer seed, or None for fresh entropy

        Returns:
            Layer: The new layer
        """
        for name, size in (('input_size', input_size),
                           ('output_size', output_size)):
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
                raise ConfigurationError(f"{name} must be an integer, got {size!r}")
            if size < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {size}")

        gen = np.random.default_rng(rng)
        weights = gen.uniform(-1.0, 1.0, size=(output_size, input_size))
        biases = gen.uniform(-1.0, 1.0, size=output_size)
        return cls(weights, biases)

    @property
    def input_size(self) -> int:
        return self.weights.shape[1]

    @property
    def output_size(self) -> int:
        return self.weights.shape[0]

    def forward(self, x: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
        """
        Compute the raw (pre-activation) output ``W x + b``.

        Args:
            x: Input vector of length input_size

        Returns:
            np.ndarray: Vector of length output_size

        Raises:
            ConfigurationError: If ``x`` has the wrong length
        """
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.input_size:
            raise ConfigurationError(
                f"Layer expects an input vector of length {self.input_size}, "
                f"got shape {x.shape}"
            )
        return self.weights @ x + self.biases

    def update(
        self,
        delta: np.ndarray,
        layer_input: np.ndarray,
        learning_rate: float
    ) -> None:
        """
        Apply one SGD step in place.

        ``weights[i, j] -= lr * delta[i] * layer_input[j]`` and
        ``biases[i] -= lr * delta[i]``.
        """
        step = learning_rate * np.asarray(delta, dtype=np.float64)
        self.weights -= np.outer(step, layer_input)
        self.biases -= step

    def copy(self) -> "Layer":
        return Layer(self.weights, self.biases, input_size=self.input_size)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-list representation used by the JSON document."""
        return {
            'weights': self.weights.tolist(),
            'biases': self.biases.tolist()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], input_size: Optional[int] = None) -> "Layer":
        """Inverse of :meth:`to_dict`."""
        return cls(data['weights'], data['biases'], input_size=input_size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Layer):
            return NotImplemented
        return (self.weights.shape == other.weights.shape
                and np.array_equal(self.weights, other.weights)
                and np.array_equal(self.biases, other.biases))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Layer(input_size={self.input_size}, output_size={self.output_size})"
