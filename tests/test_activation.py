"""
test_activation.py
~~~~~~~~~~~~~~~~~~

Unit tests for activation functions and their derivatives.
"""

import math
import warnings

import numpy as np
import pytest

from ffnet.activation import (
    Activation,
    apply,
    apply_vec,
    derivative,
    derivative_vec,
)
from ffnet.exceptions import SerializationError


@pytest.mark.unit
class TestApply:
    """Forward values of each activation."""

    def test_sigmoid_at_zero(self):
        assert apply(0.0, Activation.SIGMOID) == 0.5

    def test_sigmoid_matches_formula(self):
        assert apply(1.5, Activation.SIGMOID) == pytest.approx(1 / (1 + math.exp(-1.5)))

    def test_relu_clamps_negatives(self):
        assert apply(-3.0, Activation.RELU) == 0.0
        assert apply(2.5, Activation.RELU) == 2.5

    def test_tanh_matches_math(self):
        assert apply(0.7, Activation.TANH) == pytest.approx(math.tanh(0.7))

    def test_sigmoid_saturates_without_overflow_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            assert apply(-1000.0, Activation.SIGMOID) == 0.0
            assert apply(1000.0, Activation.SIGMOID) == 1.0

    def test_returns_python_float(self):
        assert isinstance(apply(0.3, Activation.TANH), float)


@pytest.mark.unit
class TestDerivative:
    """Derivatives evaluated at the pre-activation value."""

    def test_sigmoid_derivative_at_zero(self):
        assert derivative(0.0, Activation.SIGMOID) == 0.25

    def test_relu_derivative(self):
        assert derivative(-1.0, Activation.RELU) == 0.0
        assert derivative(1.0, Activation.RELU) == 1.0

    def test_relu_derivative_at_zero_is_zero(self):
        assert derivative(0.0, Activation.RELU) == 0.0

    def test_tanh_derivative_at_zero(self):
        assert derivative(0.0, Activation.TANH) == 1.0

    def test_sigmoid_derivative_uses_pre_activation(self):
        """The derivative recomputes s = sigmoid(x), it does not treat x as s."""
        x = 2.0
        s = 1 / (1 + math.exp(-x))
        assert derivative(x, Activation.SIGMOID) == pytest.approx(s * (1 - s))
        assert derivative(x, Activation.SIGMOID) != pytest.approx(x * (1 - x))

    @pytest.mark.parametrize('kind', list(Activation))
    def test_matches_finite_difference(self, kind):
        x, h = 0.37, 1e-6
        numeric = (apply(x + h, kind) - apply(x - h, kind)) / (2 * h)
        assert derivative(x, kind) == pytest.approx(numeric, rel=1e-5)


@pytest.mark.unit
class TestVectorForms:
    """Elementwise application over vectors."""

    @pytest.mark.parametrize('kind', list(Activation))
    def test_preserves_order_and_length(self, kind):
        xs = [-2.0, -0.5, 0.0, 0.5, 2.0]
        out = apply_vec(xs, kind)
        assert out.shape == (5,)
        assert out.tolist() == pytest.approx([apply(x, kind) for x in xs])

    @pytest.mark.parametrize('kind', list(Activation))
    def test_derivative_vec_matches_scalar(self, kind):
        xs = np.array([-1.5, 0.0, 0.25, 3.0])
        out = derivative_vec(xs, kind)
        assert out.tolist() == pytest.approx([derivative(x, kind) for x in xs])

    def test_does_not_modify_input(self):
        xs = np.array([-1.0, 1.0])
        apply_vec(xs, Activation.RELU)
        derivative_vec(xs, Activation.SIGMOID)
        assert xs.tolist() == [-1.0, 1.0]


@pytest.mark.unit
class TestTags:
    """Persisted activation tags."""

    def test_tags(self):
        assert [a.tag for a in Activation] == ["Sigmoid", "ReLU", "Tanh"]

    def test_from_tag_round_trip(self):
        for kind in Activation:
            assert Activation.from_tag(kind.tag) is kind

    def test_unknown_tag_raises(self):
        with pytest.raises(SerializationError) as exc_info:
            Activation.from_tag("Softmax")
        assert "Softmax" in str(exc_info.value)

    def test_non_string_tag_raises(self):
        with pytest.raises(SerializationError):
            Activation.from_tag(3)
