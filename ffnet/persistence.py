"""
persistence.py
~~~~~~~~~~~~~~

JSON persistence for networks.

A saved network is a single human-readable document::

    {
      "input_size": 2,
      "hidden_sizes": [3, 3],
      "output_size": 1,
      "hidden_layers": [{"weights": [[...], ...], "biases": [...]}, ...],
      "hidden_activations": ["ReLU", "Tanh"],
      "output": {"weights": [[...]], "biases": [...]},
      "output_activation": "Sigmoid"
    }

Floats are written with their shortest exact representation, so loading a
saved network reproduces its parameters bit for bit.
"""

import json
import logging
import os
from typing import Any, Dict, List, Union

import numpy as np

from ffnet.activation import Activation
from ffnet.exceptions import ConfigurationError, ModelIOError, SerializationError
from ffnet.layer import Layer
from ffnet.network import Network

# Configure module logger
logger = logging.getLogger(__name__)

PathLike = Union[str, 'os.PathLike[str]']

DOCUMENT_FIELDS = frozenset({
    'input_size',
    'hidden_sizes',
    'output_size',
    'hidden_layers',
    'hidden_activations',
    'output',
    'output_activation',
})

LAYER_FIELDS = frozenset({'weights', 'biases'})


class NetworkEncoder(json.JSONEncoder):
    """JSON encoder that also accepts numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        """
        Convert numpy values to plain Python ones.

        Args:
            obj: Object to serialize

        Returns:
            JSON-serializable representation
        """
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return super().default(obj)


def to_document(network: Network) -> Dict[str, Any]:
    """Describe a network as a plain dictionary following the document schema."""
    return {
        'input_size': network.input_size,
        'hidden_sizes': network.hidden_sizes,
        'output_size': network.output_size,
        'hidden_layers': [layer.to_dict() for layer in network.hidden_layers],
        'hidden_activations': [act.tag for act in network.hidden_activations],
        'output': network.output.to_dict(),
        'output_activation': network.output_activation.tag,
    }


# ----------------------------------------------------------------------
# Schema checks
# ----------------------------------------------------------------------

def _require_fields(obj: Any, fields: frozenset, where: str) -> None:
    if not isinstance(obj, dict):
        raise SerializationError(
            f"{where} must be an object, got {type(obj).__name__}"
        )
    missing = fields - obj.keys()
    extra = obj.keys() - fields
    if missing:
        raise SerializationError(f"{where} is missing field(s): {sorted(missing)}")
    if extra:
        raise SerializationError(f"{where} has unexpected field(s): {sorted(extra)}")


def _size(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"{where} must be an integer, got {value!r}")
    if value < 0:
        raise SerializationError(f"{where} must be non-negative, got {value}")
    return value


def _list(value: Any, where: str) -> List[Any]:
    if not isinstance(value, list):
        raise SerializationError(
            f"{where} must be a list, got {type(value).__name__}"
        )
    return value


def _floats(values: Any, length: int, where: str) -> List[float]:
    values = _list(values, where)
    if len(values) != length:
        raise SerializationError(
            f"{where} has length {len(values)}, expected {length}"
        )
    floats = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise SerializationError(f"{where} contains a non-number: {v!r}")
        try:
            floats.append(float(v))
        except OverflowError as e:
            raise SerializationError(
                f"{where} contains a number too large for a float"
            ) from e
    return floats


def _layer(obj: Any, input_size: int, output_size: int, where: str) -> Layer:
    _require_fields(obj, LAYER_FIELDS, where)
    rows = _list(obj['weights'], f"{where}.weights")
    if len(rows) != output_size:
        raise SerializationError(
            f"{where}.weights has {len(rows)} rows, expected {output_size}"
        )
    weights = [
        _floats(row, input_size, f"{where}.weights[{i}]")
        for i, row in enumerate(rows)
    ]
    biases = _floats(obj['biases'], output_size, f"{where}.biases")
    return Layer.from_dict({'weights': weights, 'biases': biases}, input_size)


def from_document(doc: Any) -> Network:
    """
    Rebuild a network from a document produced by :func:`to_document`.

    Args:
        doc: Parsed document

    Returns:
        Network: The reconstructed network

    Raises:
        SerializationError: If the document does not match the schema
    """
    _require_fields(doc, DOCUMENT_FIELDS, "network document")

    input_size = _size(doc['input_size'], "input_size")
    output_size = _size(doc['output_size'], "output_size")
    hidden_sizes = [
        _size(s, f"hidden_sizes[{i}]")
        for i, s in enumerate(_list(doc['hidden_sizes'], "hidden_sizes"))
    ]
    layers = _list(doc['hidden_layers'], "hidden_layers")
    tags = _list(doc['hidden_activations'], "hidden_activations")

    if len(layers) != len(hidden_sizes):
        raise SerializationError(
            f"{len(hidden_sizes)} hidden sizes but {len(layers)} hidden layers"
        )
    if len(tags) != len(hidden_sizes):
        raise SerializationError(
            f"{len(hidden_sizes)} hidden sizes but {len(tags)} hidden activations"
        )

    hidden = []
    prev_size = input_size
    for i, (layer_obj, size, tag) in enumerate(zip(layers, hidden_sizes, tags)):
        layer = _layer(layer_obj, prev_size, size, f"hidden_layers[{i}]")
        hidden.append((layer, Activation.from_tag(tag)))
        prev_size = size

    output = _layer(doc['output'], prev_size, output_size, "output")
    output_activation = Activation.from_tag(doc['output_activation'])

    try:
        return Network.from_layers(input_size, hidden, output, output_activation)
    except ConfigurationError as e:
        raise SerializationError(f"Inconsistent network document: {e}") from e


def dumps(network: Network) -> str:
    """Serialize a network to a JSON string."""
    return json.dumps(to_document(network), cls=NetworkEncoder, indent=2)


def loads(text: Union[str, bytes]) -> Network:
    """
    Parse a network from a JSON string.

    Raises:
        SerializationError: If the text is not valid JSON or violates the schema
    """
    try:
        doc = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise SerializationError(f"Invalid network document: {e}") from e
    return from_document(doc)


def save(network: Network, path: PathLike) -> None:
    """
    Write a network to a JSON file, replacing any existing file.

    The document is written to ``<path>.tmp`` and renamed over ``path``,
    so a failed write never leaves a truncated file behind.

    Args:
        network: Network to save
        path: Destination file

    Raises:
        ModelIOError: If the file cannot be written

    Example:
        >>> net = Network(2, [3], 1, rng=0)
        >>> save(net, "model.json")
    """
    text = dumps(network)
    tmp_path = os.fspath(path) + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(text)
            f.write('\n')
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        logger.error(f"Could not write network to {path}: {e}")
        raise ModelIOError(e.errno, f"Could not write network: {e.strerror}", str(path)) from e

    logger.info(f"Saved network with architecture {network.sizes} to {path}")


def load(path: PathLike) -> Network:
    """
    Read a network from a JSON file written by :func:`save`.

    Args:
        path: Source file

    Returns:
        Network: The reconstructed network

    Raises:
        ModelIOError: If the file cannot be opened or read
        SerializationError: If the file is not a valid network document
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise SerializationError(f"Network file {path} is not UTF-8 text: {e}") from e
    except OSError as e:
        logger.error(f"Could not read network from {path}: {e}")
        raise ModelIOError(e.errno, f"Could not read network: {e.strerror}", str(path)) from e

    network = loads(text)
    logger.info(f"Loaded network with architecture {network.sizes} from {path}")
    return network
