"""
network.py
~~~~~~~~~~

A feedforward neural network trained with per-sample stochastic gradient
descent. Gradients are computed by explicit backpropagation, layer by layer,
using the mean squared error loss.

Training order matters for reproducibility: the output layer is updated
first and each hidden layer's delta is then computed from the weights of the
layer after it *as they stand at that moment*, i.e. already updated. Pass
``canonical=True`` to ``train``/``fit`` to propagate with the weights from
before the step instead.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ffnet.activation import Activation, apply_vec, derivative_vec
from ffnet.exceptions import ArithmeticDegenerateError, ConfigurationError
from ffnet.layer import Layer, RandomSource

# Configure module logger
logger = logging.getLogger(__name__)

Vector = Union[np.ndarray, Sequence[float]]


def _check_size(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return int(value)


def _check_activation(name: str, value: Any) -> Activation:
    if not isinstance(value, Activation):
        raise ConfigurationError(
            f"{name} must be an Activation, got {value!r}"
        )
    return value


class Network:
    """
    Feedforward network: hidden layers, each with its own activation,
    followed by an output layer with its own activation.

    The hidden stack is held as one list of ``(Layer, Activation)`` pairs;
    ``hidden_layers``, ``hidden_activations`` and ``hidden_sizes`` are views
    over it.
    """

    def __init__(
        self,
        input_size: int,
        hidden_sizes: Sequence[int],
        output_size: int,
        hidden_activations: Optional[Sequence[Activation]] = None,
        output_activation: Activation = Activation.SIGMOID,
        rng: RandomSource = None
    ):
        """
        Create a network with every weight and bias drawn from uniform [-1, 1).

        Args:
            input_size: Length of the input vector
            hidden_sizes: Number of units in each hidden layer, in order
            output_size: Length of the output vector
            hidden_activations: One activation per hidden layer; defaults
                to Sigmoid everywhere
            output_activation: Activation of the output layer
            rng: Generator, integer seed, or None for fresh entropy

        Raises:
            ConfigurationError: If sizes are invalid or the number of hidden
                activations differs from the number of hidden layers

        Example:
            >>> net = Network(2, [3, 3], 1,
            ...               [Activation.RELU, Activation.TANH],
            ...               Activation.SIGMOID, rng=42)
            >>> len(net.forward([0.5, -0.2]))
            1
        """
        input_size = _check_size('input_size', input_size)
        output_size = _check_size('output_size', output_size)
        sizes = [_check_size('hidden size', s) for s in hidden_sizes]

        if hidden_activations is None:
            hidden_activations = [Activation.SIGMOID] * len(sizes)
        if isinstance(hidden_activations, Activation):
            raise ConfigurationError(
                f"hidden_activations must be a sequence with one Activation "
                f"per hidden layer, got the single value {hidden_activations!r}"
            )
        try:
            activations = list(hidden_activations)
        except TypeError as e:
            raise ConfigurationError(
                f"hidden_activations must be a sequence, got {hidden_activations!r}"
            ) from e
        if len(activations) != len(sizes):
            raise ConfigurationError(
                f"Every hidden layer needs an activation: got {len(sizes)} "
                f"hidden sizes and {len(activations)} activations"
            )
        for act in activations:
            _check_activation('hidden activation', act)
        _check_activation('output_activation', output_activation)

        gen = np.random.default_rng(rng)
        hidden: List[Tuple[Layer, Activation]] = []
        prev_size = input_size
        for size, act in zip(sizes, activations):
            hidden.append((Layer.random(prev_size, size, gen), act))
            prev_size = size
        output = Layer.random(prev_size, output_size, gen)

        self._assign(input_size, hidden, output, output_activation)
        logger.debug(f"Created network with architecture {self.sizes}")

    @classmethod
    def from_layers(
        cls,
        input_size: int,
        hidden: Sequence[Tuple[Layer, Activation]],
        output: Layer,
        output_activation: Activation
    ) -> "Network":
        """
        Build a network around explicit layers.

        Args:
            input_size: Length of the input vector
            hidden: ``(Layer, Activation)`` pairs in forward order
            output: Output layer
            output_activation: Activation of the output layer

        Returns:
            Network: A network that owns the given layers

        Raises:
            ConfigurationError: If consecutive layer shapes do not chain
        """
        input_size = _check_size('input_size', input_size)
        pairs = []
        prev_size = input_size
        for index, pair in enumerate(hidden):
            layer, act = pair
            if not isinstance(layer, Layer):
                raise ConfigurationError(
                    f"Hidden layer {index} is not a Layer: {layer!r}"
                )
            _check_activation(f"hidden activation {index}", act)
            if layer.input_size != prev_size:
                raise ConfigurationError(
                    f"Hidden layer {index} takes {layer.input_size} inputs, "
                    f"but the previous layer produces {prev_size}"
                )
            pairs.append((layer, act))
            prev_size = layer.output_size

        if not isinstance(output, Layer):
            raise ConfigurationError(f"Output layer is not a Layer: {output!r}")
        if output.input_size != prev_size:
            raise ConfigurationError(
                f"Output layer takes {output.input_size} inputs, "
                f"but the previous layer produces {prev_size}"
            )
        _check_activation('output_activation', output_activation)

        net = cls.__new__(cls)
        net._assign(input_size, pairs, output, output_activation)
        return net

    def _assign(
        self,
        input_size: int,
        hidden: List[Tuple[Layer, Activation]],
        output: Layer,
        output_activation: Activation
    ) -> None:
        self.input_size = input_size
        self.hidden = hidden
        self.output = output
        self.output_activation = output_activation

    # ------------------------------------------------------------------
    # Shape views
    # ------------------------------------------------------------------

    @property
    def output_size(self) -> int:
        return self.output.output_size

    @property
    def hidden_sizes(self) -> List[int]:
        return [layer.output_size for layer, _ in self.hidden]

    @property
    def hidden_layers(self) -> List[Layer]:
        return [layer for layer, _ in self.hidden]

    @property
    def hidden_activations(self) -> List[Activation]:
        return [act for _, act in self.hidden]

    @property
    def sizes(self) -> List[int]:
        """Full architecture as ``[input, *hidden, output]``."""
        return [self.input_size] + self.hidden_sizes + [self.output_size]

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def forward(self, x: Vector) -> np.ndarray:
        """
        Compute the network output for one input vector.

        Args:
            x: Input vector of length input_size

        Returns:
            np.ndarray: Output vector of length output_size

        Raises:
            ConfigurationError: If ``x`` has the wrong length
        """
        out = np.asarray(x, dtype=np.float64)
        for layer, act in self.hidden:
            out = apply_vec(layer.forward(out), act)
        return apply_vec(self.output.forward(out), self.output_activation)

    def predict(self, x: Vector) -> np.ndarray:
        """Alias of :meth:`forward`."""
        return self.forward(x)

    @staticmethod
    def mse_loss(output: Vector, target: Vector) -> float:
        """
        Mean squared error over the output dimensions.

        Raises:
            ArithmeticDegenerateError: If the output is empty
            ConfigurationError: If the lengths differ
        """
        output = np.asarray(output, dtype=np.float64)
        target = np.asarray(target, dtype=np.float64)
        if output.shape != target.shape:
            raise ConfigurationError(
                f"Output shape {output.shape} does not match "
                f"target shape {target.shape}"
            )
        if output.size == 0:
            raise ArithmeticDegenerateError(
                "Mean squared error of an empty output vector is undefined"
            )
        diff = output - target
        return float(np.sum(diff * diff) / output.size)

    def evaluate(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> float:
        """
        Average loss over a dataset without changing any parameter.

        Raises:
            ConfigurationError: If the dataset is empty or mismatched
        """
        self._check_dataset(inputs, targets)
        if len(inputs) == 0:
            raise ConfigurationError("Cannot evaluate on an empty dataset")
        total = 0.0
        for x, y in zip(inputs, targets):
            total += self.mse_loss(self.forward(x), self._check_target(y))
        return total / len(inputs)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        x: Vector,
        target: Vector,
        learning_rate: float,
        canonical: bool = False
    ) -> float:
        """
        One SGD step on a single sample.

        Args:
            x: Input vector
            target: Expected output vector
            learning_rate: Step size
            canonical: Propagate deltas with the weights from before this
                step rather than the freshly updated ones

        Returns:
            float: Mean squared error of the prediction made before the update

        Raises:
            ConfigurationError: If the input or target has the wrong length
            ArithmeticDegenerateError: If the network has no outputs
        """
        target = self._check_target(target)

        # Forward pass, keeping raw outputs and the activated input of each layer
        out = np.asarray(x, dtype=np.float64)
        activated_inputs = [out]
        raw_outputs = []
        for layer, act in self.hidden:
            raw = layer.forward(out)
            raw_outputs.append(raw)
            out = apply_vec(raw, act)
            activated_inputs.append(out)
        output_raw = self.output.forward(out)
        raw_outputs.append(output_raw)
        prediction = apply_vec(output_raw, self.output_activation)
        activated_inputs.append(prediction)

        loss = self.mse_loss(prediction, target)

        # The 2/N factor of the MSE gradient is folded into the learning rate
        delta = (prediction - target) * derivative_vec(
            output_raw, self.output_activation
        )

        downstream = self.output
        downstream_weights = self.output.weights.copy() if canonical else None
        self.output.update(delta, activated_inputs[-2], learning_rate)

        for l in range(len(self.hidden) - 1, -1, -1):
            layer, act = self.hidden[l]
            weights = downstream_weights if canonical else downstream.weights
            d_act = derivative_vec(raw_outputs[l], act)
            new_delta = (weights.T @ delta) * d_act

            if canonical:
                downstream_weights = layer.weights.copy()
            layer.update(new_delta, activated_inputs[l], learning_rate)

            downstream = layer
            delta = new_delta

        return loss

    def fit(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        epochs: int,
        learning_rate: float,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        canonical: bool = False
    ) -> List[float]:
        """
        Train on every sample, in order, for a number of epochs.

        Args:
            inputs: Input vectors
            targets: Target vectors, paired positionally with ``inputs``
            epochs: Number of full passes over the data
            learning_rate: Step size
            callback: Called after each epoch with a dict holding
                ``epoch``, ``total_epochs``, ``loss`` and ``elapsed_time``
            canonical: Forwarded to :meth:`train`

        Returns:
            list: Average loss of each epoch

        Raises:
            ConfigurationError: If the inputs and targets are mismatched,
                any sample has the wrong length, ``epochs`` is negative,
                or the dataset is empty
        """
        self._check_dataset(inputs, targets)
        epochs = _check_size('epochs', epochs)
        # Check every sample before the first update
        for index, (x, y) in enumerate(zip(inputs, targets)):
            self._check_input(x, index)
            self._check_target(y)
        if epochs == 0:
            return []
        if len(inputs) == 0:
            raise ConfigurationError("Cannot fit on an empty dataset")

        start = time.time()
        losses: List[float] = []
        for epoch in range(epochs):
            total = 0.0
            for x, y in zip(inputs, targets):
                total += self.train(x, y, learning_rate, canonical=canonical)
            avg = total / len(inputs)
            losses.append(avg)
            logger.debug(f"Epoch {epoch + 1}/{epochs}: loss {avg:.6f}")

            if callback:
                callback({
                    'epoch': epoch + 1,
                    'total_epochs': epochs,
                    'loss': avg,
                    'elapsed_time': time.time() - start
                })

        logger.info(
            f"Trained {self.sizes} for {epochs} epoch(s) on {len(inputs)} "
            f"sample(s): loss {losses[0]:.6f} -> {losses[-1]:.6f}"
        )
        return losses

    def _check_input(self, x: Vector, index: int) -> None:
        try:
            x = np.asarray(x, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Input {index} is not a numeric vector: {e}") from e
        if x.ndim != 1 or x.shape[0] != self.input_size:
            raise ConfigurationError(
                f"Input {index} must be a vector of length {self.input_size}, "
                f"got shape {x.shape}"
            )

    def _check_target(self, target: Vector) -> np.ndarray:
        try:
            target = np.asarray(target, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Target is not a numeric vector: {e}") from e
        if target.ndim != 1 or target.shape[0] != self.output_size:
            raise ConfigurationError(
                f"Target must be a vector of length {self.output_size}, "
                f"got shape {target.shape}"
            )
        return target

    @staticmethod
    def _check_dataset(inputs: Sequence[Vector], targets: Sequence[Vector]) -> None:
        if len(inputs) != len(targets):
            raise ConfigurationError(
                f"Got {len(inputs)} inputs but {len(targets)} targets"
            )

    # ------------------------------------------------------------------

    def copy(self) -> "Network":
        """Deep copy with independent parameter arrays."""
        return Network.from_layers(
            self.input_size,
            [(layer.copy(), act) for layer, act in self.hidden],
            self.output.copy(),
            self.output_activation
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Network):
            return NotImplemented
        return (self.input_size == other.input_size
                and self.hidden == other.hidden
                and self.output == other.output
                and self.output_activation is other.output_activation)

    __hash__ = None

    def __repr__(self) -> str:
        acts = [a.tag for a in self.hidden_activations]
        return (f"Network(sizes={self.sizes}, hidden_activations={acts}, "
                f"output_activation={self.output_activation.tag})")
