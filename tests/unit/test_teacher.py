import math

import numpy as np
import pytest

from mlpnet.core.errors import ShapeMismatch
from mlpnet.core.network import MultilayerPerceptron
from mlpnet.core.types import Example
from mlpnet.training.teacher import BackPropagationTeacher


def _linear_unit(weight: float = 0.0) -> MultilayerPerceptron:
    return MultilayerPerceptron([[[weight]]], activations="linear")


def test_defaults_and_buffers_follow_topology():
    network = MultilayerPerceptron.from_layout(3, [4, 2], seed=0)
    teacher = BackPropagationTeacher(network)
    assert teacher.rho == pytest.approx(0.2)
    assert teacher.inertial_factor == 0.0
    assert teacher.best_error == math.inf
    assert teacher.last_error == math.inf
    assert [e.shape for e in teacher.errors] == [(4,), (2,)]
    assert [s.shape for s in teacher.states] == [(4,), (2,)]


def test_rho_is_clamped():
    teacher = BackPropagationTeacher(_linear_unit(), rho=5.0)
    assert teacher.rho == 1.0
    teacher.rho = -0.3
    assert teacher.rho == 0.0


@pytest.mark.parametrize("value", [-0.1, 1.0, 1.5])
def test_inertial_factor_must_be_below_one(value):
    with pytest.raises(ValueError):
        BackPropagationTeacher(_linear_unit(), inertial_factor=value)


def test_plain_gradient_step_on_linear_unit():
    network = _linear_unit()
    teacher = BackPropagationTeacher(network, rho=0.1)
    output = np.zeros(1)

    error = teacher.teach([1.0], output, [2.0])

    # y = 0 * 1 + bias(1) * bias_weight(1)
    assert output[0] == pytest.approx(1.0)
    assert error == pytest.approx(0.5)
    assert network.weights[0][0, 0] == pytest.approx(0.1)
    assert network.bias_weights[0][0] == pytest.approx(1.1)

    error = teacher.teach([1.0], output, [2.0])
    assert output[0] == pytest.approx(1.2)
    assert error == pytest.approx(0.32)
    assert network.weights[0][0, 0] == pytest.approx(0.18)


def test_momentum_carries_previous_change():
    network = _linear_unit()
    teacher = BackPropagationTeacher(network, rho=0.1, inertial_factor=0.5)
    output = np.zeros(1)
    teacher.teach([1.0], output, [2.0])
    teacher.teach([1.0], output, [2.0])

    # second change: 0.1 * 0.8 * 1 + 0.5 * 0.1
    assert network.weights[0][0, 0] == pytest.approx(0.23)
    assert network.bias_weights[0][0] == pytest.approx(1.23)


def test_zero_rho_freezes_weights_but_reports_error():
    network = MultilayerPerceptron.from_layout(2, [3, 1], seed=4)
    before = [W.copy() for W in network.weights]
    teacher = BackPropagationTeacher(network, rho=0.0)
    error = teacher.teach([0.5, -0.5], np.zeros(1), [1.0])
    assert error > 0.0
    for W, original in zip(network.weights, before):
        assert np.array_equal(W, original)


def test_teach_does_not_mutate_inputs():
    network = MultilayerPerceptron.from_layout(2, [2, 1], seed=1)
    teacher = BackPropagationTeacher(network, rho=0.5)
    x = np.array([0.3, 0.7])
    expected = np.array([1.0])
    teacher.teach(x, np.zeros(1), expected)
    assert x.tolist() == [0.3, 0.7]
    assert expected.tolist() == [1.0]


def test_teach_rejects_mismatched_buffers():
    network = MultilayerPerceptron.from_layout(2, [2, 2], seed=1)
    teacher = BackPropagationTeacher(network)
    with pytest.raises(ShapeMismatch):
        teacher.teach([1.0, 0.0], np.zeros(2), [1.0])
    with pytest.raises(ShapeMismatch):
        teacher.teach([1.0, 0.0], np.zeros(3), [1.0, 0.0, 0.0])
    with pytest.raises(ShapeMismatch):
        teacher.teach([1.0], np.zeros(2), [1.0, 0.0])


def test_best_variant_holds_weights_that_produced_best_error():
    network = MultilayerPerceptron([[[1.0, 0.5], [-1.0, 2.0]], [[1.5, -1.0]]])
    teacher = BackPropagationTeacher(network, rho=0.5)
    output = np.zeros(1)

    first = teacher.teach([0.0, 1.0], output, [1.0])
    assert teacher.best_error == pytest.approx(first)

    before_second = [W.copy() for W in network.weights]
    second = teacher.teach([0.0, 1.0], output, [1.0])
    assert second < first
    assert teacher.best_error == pytest.approx(second)
    assert teacher.last_error == pytest.approx(second)
    for stored, expected in zip(teacher.best_weights, before_second):
        assert np.array_equal(stored, expected)


def test_snapshot_ignores_worse_and_non_finite_errors():
    network = _linear_unit(0.3)
    teacher = BackPropagationTeacher(network)
    assert teacher.snapshot_if_better(0.2) is True
    network.weights[0][0, 0] = 9.0
    assert teacher.snapshot_if_better(0.5) is False
    assert teacher.snapshot_if_better(float("nan")) is False
    assert teacher.best_weights[0][0, 0] == pytest.approx(0.3)


def test_restore_best_reloads_snapshot_and_clears_momentum():
    network = _linear_unit()
    teacher = BackPropagationTeacher(network, rho=0.1, inertial_factor=0.5)
    output = np.zeros(1)
    teacher.teach([1.0], output, [2.0])
    teacher.teach([1.0], output, [2.0])
    best = teacher.best_weights

    teacher.restore_best()
    assert np.array_equal(network.weights[0], best[0])
    assert network.bias_weights[0][0] == pytest.approx(teacher.best_bias_weights[0][0])

    # momentum buffer is empty again: the next change is a plain gradient step
    before = network.weights[0][0, 0]
    teacher.teach([1.0], output, [2.0])
    assert network.weights[0][0, 0] - before == pytest.approx(0.1 * 0.8)


def test_restore_without_training_keeps_initial_weights():
    network = MultilayerPerceptron.from_layout(2, [2, 1], seed=2)
    initial = [W.copy() for W in network.weights]
    teacher = network.create_teacher()
    teacher.set_best_variant()
    for W, original in zip(network.weights, initial):
        assert np.array_equal(W, original)


def test_teach_example_uses_example_vectors():
    network = _linear_unit()
    teacher = BackPropagationTeacher(network, rho=0.1)
    error = teacher.teach_example(Example([1], [2]))
    assert error == pytest.approx(0.5)
