"""Backpropagation teacher with momentum and best-variant tracking."""

from __future__ import annotations

import math
from typing import Iterable, List, MutableSequence, Sequence

import numpy as np

from ..core.activations import layer_derivative
from ..core.errors import ShapeMismatch
from ..core.network import MultilayerPerceptron
from ..core.types import Array, Epoch, Example


class BackPropagationTeacher:
    """Train a :class:`MultilayerPerceptron` one example at a time.

    The teacher owns every scratch buffer it needs (weighted sums, error terms,
    previous weight changes) sized once from the network topology and reused
    on every call.  It is bound to a single network and is not safe to call
    from several threads at once.

    ``rho`` is the learning rate, clamped to ``[0, 1]``.  ``inertial_factor``
    is the momentum coefficient in ``[0, 1)``: that fraction of the previous
    change of every weight is added to the current one.
    """

    def __init__(
        self,
        network: MultilayerPerceptron,
        rho: float = 0.2,
        inertial_factor: float = 0.0,
    ) -> None:
        self.network = network
        self.rho = rho
        self.inertial_factor = inertial_factor

        sizes = network.layer_sizes
        self._states: List[Array] = [np.zeros(n, dtype=np.float64) for n in sizes]
        self._errors: List[Array] = [np.zeros(n, dtype=np.float64) for n in sizes]
        self._weight_deltas: List[Array] = [np.zeros_like(W) for W in network.weights]
        self._bias_deltas: List[Array] = [np.zeros(n, dtype=np.float64) for n in sizes]
        self._output = np.zeros(network.outputs_count, dtype=np.float64)

        self._best_weights: List[Array] = [W.copy() for W in network.weights]
        self._best_bias_weights: List[Array] = [bw.copy() for bw in network.bias_weights]
        self.best_error = math.inf
        self.last_error = math.inf

    # ------------------------------------------------------------------
    # Coefficients

    @property
    def rho(self) -> float:
        return self._rho

    @rho.setter
    def rho(self, value: float) -> None:
        self._rho = min(1.0, max(0.0, float(value)))

    @property
    def inertial_factor(self) -> float:
        return self._inertial_factor

    @inertial_factor.setter
    def inertial_factor(self, value: float) -> None:
        value = float(value)
        if not 0.0 <= value < 1.0:
            raise ValueError(f"inertial_factor must lie in [0, 1), got {value}")
        self._inertial_factor = value

    # ------------------------------------------------------------------
    # Training

    def teach(
        self,
        input: Sequence[float] | Array,
        output: MutableSequence[float] | Array,
        expected: Sequence[float] | Array,
    ) -> float:
        """Run one backpropagation step and return the example error.

        ``output`` receives the network response computed before the weights
        are updated, and the returned error is half the sum of squared
        differences between that response and ``expected``.
        """

        network = self.network
        if len(output) != network.outputs_count:
            raise ShapeMismatch(
                f"Output buffer has {len(output)} cells, network has "
                f"{network.outputs_count} outputs"
            )
        if len(expected) != len(output):
            raise ShapeMismatch(
                f"Expected output has {len(expected)} cells, output has {len(output)}"
            )
        target = np.asarray(expected, dtype=np.float64)

        y = self._output
        x = network.propagate(input, y, self._states)
        output[:] = y

        delta = target - y
        error = float(0.5 * np.dot(delta, delta))
        self.last_error = error
        self.snapshot_if_better(error)

        self._backpropagate(delta)
        self._update(x)
        return error

    def _backpropagate(self, delta: Array) -> None:
        network = self.network
        weights = network.weights
        activations = network.activations
        hidden = network.hidden_outputs
        last = network.layers_count - 1

        self._errors[last][:] = delta * layer_derivative(
            activations[last], self._states[last], self._output
        )
        for k in range(last - 1, -1, -1):
            propagated = weights[k + 1].T @ self._errors[k + 1]
            self._errors[k][:] = propagated * layer_derivative(
                activations[k], self._states[k], hidden[k]
            )

    def _update(self, x: Array) -> None:
        network = self.network
        rho = self._rho
        inertia = self._inertial_factor
        hidden = network.hidden_outputs
        for k, W in enumerate(network.weights):
            layer_input = x if k == 0 else hidden[k - 1]
            err = self._errors[k]

            dW = self._weight_deltas[k]
            dW *= inertia
            dW += rho * np.outer(err, layer_input)
            W += dW

            dB = self._bias_deltas[k]
            dB *= inertia
            dB += rho * err * network.biases[k]
            network.bias_weights[k][:] += dB

    def teach_example(self, example: Example) -> float:
        output = np.zeros(self.network.outputs_count, dtype=np.float64)
        return self.teach(example.input, output, example.expected_output)

    def teach_epoch(self, examples: Iterable[Example]) -> Epoch:
        """Train once on every example; see :func:`mlpnet.training.epoch.teach_epoch`."""

        from .epoch import teach_epoch

        return teach_epoch(self, examples)

    # ------------------------------------------------------------------
    # Best variant

    def snapshot_if_better(self, error: float) -> bool:
        """Remember the current weights when ``error`` beats the best seen so far."""

        if not error < self.best_error:
            return False
        for stored, W in zip(self._best_weights, self.network.weights):
            stored[:] = W
        for stored, bw in zip(self._best_bias_weights, self.network.bias_weights):
            stored[:] = bw
        self.best_error = error
        return True

    def restore_best(self) -> None:
        """Load the best-known weights back into the network and reset momentum."""

        for W, stored in zip(self.network.weights, self._best_weights):
            W[:] = stored
        for bw, stored in zip(self.network.bias_weights, self._best_bias_weights):
            bw[:] = stored
        for dW in self._weight_deltas:
            dW.fill(0.0)
        for dB in self._bias_deltas:
            dB.fill(0.0)

    set_best_variant = restore_best

    @property
    def best_weights(self) -> tuple[Array, ...]:
        return tuple(W.copy() for W in self._best_weights)

    @property
    def best_bias_weights(self) -> tuple[Array, ...]:
        return tuple(bw.copy() for bw in self._best_bias_weights)

    @property
    def errors(self) -> tuple[Array, ...]:
        return tuple(self._errors)

    @property
    def states(self) -> tuple[Array, ...]:
        return tuple(self._states)


__all__ = ["BackPropagationTeacher"]
