"""
test_persistence.py
~~~~~~~~~~~~~~~~~~~

Unit tests for the JSON network document and file save/load.
"""

import copy
import errno
import json
import os

import numpy as np
import pytest

from ffnet.activation import Activation
from ffnet.exceptions import ModelIOError, SerializationError
from ffnet.network import Network
from ffnet.persistence import (
    DOCUMENT_FIELDS,
    NetworkEncoder,
    dumps,
    from_document,
    load,
    loads,
    save,
    to_document,
)


@pytest.fixture
def network():
    """A trained-looking 2-[3,3]-1 network."""
    net = Network(
        2, [3, 3], 1,
        [Activation.RELU, Activation.TANH],
        Activation.SIGMOID,
        rng=2024
    )
    net.fit([[0.5, -0.2], [0.1, 0.9]], [[1.0], [0.0]], 10, 0.1)
    return net


@pytest.fixture
def document(network):
    return to_document(network)


@pytest.mark.unit
class TestDocument:
    """Dictionary form of a network."""

    def test_fields(self, document):
        assert set(document) == DOCUMENT_FIELDS

    def test_values(self, network, document):
        assert document['input_size'] == 2
        assert document['hidden_sizes'] == [3, 3]
        assert document['output_size'] == 1
        assert document['hidden_activations'] == ["ReLU", "Tanh"]
        assert document['output_activation'] == "Sigmoid"
        assert document['output'] == network.output.to_dict()
        assert len(document['hidden_layers']) == 2
        assert len(document['hidden_layers'][0]['weights'][0]) == 2

    def test_document_is_plain_json(self, document):
        assert json.loads(json.dumps(document)) == document

    def test_from_document_rebuilds_equal_network(self, network, document):
        assert from_document(document) == network

    def test_string_round_trip_is_exact(self, network):
        restored = loads(dumps(network))
        for x in ([0.5, -0.2], [3.0, 7.5], [-1e-3, 1e3]):
            assert np.array_equal(restored.forward(x), network.forward(x))


@pytest.mark.unit
class TestSchemaViolations:
    """Documents that must be rejected."""

    def test_missing_field(self, document):
        del document['output_activation']
        with pytest.raises(SerializationError) as exc_info:
            from_document(document)
        assert "missing" in str(exc_info.value)

    def test_extra_field(self, document):
        document['learning_rate'] = 0.1
        with pytest.raises(SerializationError) as exc_info:
            from_document(document)
        assert "unexpected" in str(exc_info.value)

    def test_not_an_object(self):
        with pytest.raises(SerializationError):
            from_document([1, 2, 3])

    def test_unknown_activation(self, document):
        document['hidden_activations'][1] = "Softplus"
        with pytest.raises(SerializationError):
            from_document(document)

    def test_wrong_size_type(self, document):
        document['input_size'] = "2"
        with pytest.raises(SerializationError):
            from_document(document)

    def test_boolean_is_not_a_size(self, document):
        document['output_size'] = True
        with pytest.raises(SerializationError):
            from_document(document)

    def test_boolean_is_not_a_weight(self, document):
        document['output']['biases'][0] = False
        with pytest.raises(SerializationError):
            from_document(document)

    def test_string_weight(self, document):
        document['hidden_layers'][0]['weights'][0][0] = "0.5"
        with pytest.raises(SerializationError):
            from_document(document)

    def test_ragged_weight_row(self, document):
        document['hidden_layers'][1]['weights'][2].append(0.0)
        with pytest.raises(SerializationError):
            from_document(document)

    def test_bias_length_mismatch(self, document):
        document['hidden_layers'][0]['biases'].pop()
        with pytest.raises(SerializationError):
            from_document(document)

    def test_hidden_sizes_disagree_with_layers(self, document):
        document['hidden_sizes'] = [3, 4]
        with pytest.raises(SerializationError):
            from_document(document)

    def test_activation_count_mismatch(self, document):
        document['hidden_activations'].pop()
        with pytest.raises(SerializationError):
            from_document(document)

    def test_layer_count_mismatch(self, document):
        document['hidden_layers'].pop()
        with pytest.raises(SerializationError):
            from_document(document)

    def test_output_wired_to_wrong_width(self, document):
        document['output_size'] = 2
        with pytest.raises(SerializationError):
            from_document(document)

    def test_layer_extra_field(self, document):
        document['output']['activation'] = "Sigmoid"
        with pytest.raises(SerializationError):
            from_document(document)

    def test_integer_too_large_for_float(self, document):
        text = json.dumps(document).replace(
            json.dumps(document['output']['biases']),
            "[1" + "0" * 400 + "]"
        )
        with pytest.raises(SerializationError) as exc_info:
            loads(text)
        assert "too large" in str(exc_info.value)

    def test_huge_integer_weight(self, document):
        document['hidden_layers'][0]['weights'][1][0] = 10 ** 400
        with pytest.raises(SerializationError):
            from_document(document)

    def test_deeply_nested_json(self):
        with pytest.raises(SerializationError):
            loads("[" * 200000 + "]" * 200000)

    def test_invalid_json(self):
        with pytest.raises(SerializationError):
            loads("{not json")

    def test_original_document_untouched_by_validation(self, document):
        pristine = copy.deepcopy(document)
        from_document(document)
        assert document == pristine


@pytest.mark.unit
class TestFiles:
    """save() and load() against the filesystem."""

    def test_save_writes_readable_json(self, network, tmp_path):
        path = tmp_path / "model.json"
        save(network, path)

        with open(path, encoding='utf-8') as f:
            doc = json.load(f)
        assert doc == to_document(network)

    def test_round_trip_forward_equality(self, network, tmp_path):
        path = str(tmp_path / "model.json")
        save(network, path)
        restored = load(path)

        assert restored == network
        assert np.array_equal(restored.forward([0.5, -0.2]), network.forward([0.5, -0.2]))

    def test_save_leaves_no_temporary_file(self, network, tmp_path):
        save(network, tmp_path / "model.json")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["model.json"]

    def test_failed_save_keeps_previous_file(self, network, tmp_path, monkeypatch):
        path = tmp_path / "model.json"
        previous = Network(1, [], 1, [], rng=0)
        save(previous, path)

        def failing_replace(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(os, 'replace', failing_replace)
        with pytest.raises(ModelIOError):
            save(network, path)
        monkeypatch.undo()

        assert load(path) == previous
        assert sorted(p.name for p in tmp_path.iterdir()) == ["model.json"]

    def test_save_overwrites(self, network, tmp_path):
        path = tmp_path / "model.json"
        save(Network(1, [], 1, [], rng=0), path)
        save(network, path)
        assert load(path) == network

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ModelIOError) as exc_info:
            load(tmp_path / "absent.json")
        assert isinstance(exc_info.value, OSError)

    def test_save_into_missing_directory(self, network, tmp_path):
        with pytest.raises(ModelIOError):
            save(network, tmp_path / "no" / "such" / "dir" / "model.json")

    def test_load_directory(self, tmp_path):
        with pytest.raises(ModelIOError):
            load(tmp_path)

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text('{"input_size": 2', encoding='utf-8')
        with pytest.raises(SerializationError):
            load(path)

    def test_load_binary_file(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_bytes(b'\xff\xfe\x00garbage')
        with pytest.raises(SerializationError):
            load(path)

    def test_loaded_network_trains_like_original(self, network, tmp_path):
        path = os.path.join(str(tmp_path), "model.json")
        save(network, path)
        restored = load(path)

        a = network.fit([[0.2, 0.3]], [[0.7]], 5, 0.1)
        b = restored.fit([[0.2, 0.3]], [[0.7]], 5, 0.1)
        assert a == b


@pytest.mark.unit
class TestEncoder:
    """numpy-aware JSON encoding."""

    def test_arrays_and_scalars(self):
        text = json.dumps(
            {'w': np.array([[1.0, 2.0]]), 'n': np.int64(3), 'x': np.float64(0.5)},
            cls=NetworkEncoder
        )
        assert json.loads(text) == {'w': [[1.0, 2.0]], 'n': 3, 'x': 0.5}

    def test_unsupported_type_still_fails(self):
        with pytest.raises(TypeError):
            json.dumps({'s': {1, 2}}, cls=NetworkEncoder)
