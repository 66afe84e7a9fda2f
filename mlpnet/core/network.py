"""Layered perceptron with explicit weight matrices and bias vectors."""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Callable,
    List,
    MutableSequence,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import numpy as np

from .activations import REGISTRY as ACTIVATIONS
from .activations import ActivationFunction
from .errors import InvalidTopology, ShapeMismatch
from .types import Array, Initializer, ModelDescription

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..training.teacher import BackPropagationTeacher

ActivationsArg = Union[str, ActivationFunction, Sequence[Union[str, ActivationFunction]], None]


@runtime_checkable
class NeuralNetwork(Protocol):
    """Anything that maps a fixed-width input vector onto an output vector."""

    @property
    def inputs_count(self) -> int:
        ...

    @property
    def outputs_count(self) -> int:
        ...

    def process(self, input: Sequence[float], output: MutableSequence[float] | None = None):
        ...


@runtime_checkable
class TeachableNeuralNetwork(NeuralNetwork, Protocol):
    """Network that can hand out a teacher bound to itself."""

    def create_teacher(self, configure: Callable[..., None] | None = None, **options):
        ...


def squared_error(expected: Sequence[float] | Array, output: Sequence[float] | Array) -> float:
    """Return half the sum of squared differences between two vectors."""

    delta = np.asarray(expected, dtype=np.float64) - np.asarray(output, dtype=np.float64)
    return float(0.5 * np.dot(delta, delta))


def uniform_initializer(seed: int | None = None) -> Initializer:
    """Return an initializer drawing each weight uniformly from ``[-0.5, 0.5)``."""

    rng = np.random.default_rng(seed)

    def _init(layer: int, neuron: int, input_index: int) -> float:
        return float(rng.random() - 0.5)

    return _init


def _resolve_activations(activations, layers_count: int) -> List[ActivationFunction]:
    if activations is None or isinstance(activations, (str, ActivationFunction)):
        return [ACTIVATIONS.resolve(activations) for _ in range(layers_count)]
    specs = list(activations)
    if len(specs) != layers_count:
        raise InvalidTopology(
            f"Got {len(specs)} activations for a network with {layers_count} layers"
        )
    return [ACTIVATIONS.resolve(spec) for spec in specs]


class MultilayerPerceptron:
    """Feed-forward network stored as one weight matrix per layer.

    Row ``i`` of ``weights[k]`` holds the input weights of neuron ``i`` in
    layer ``k``; the matrix has one column per output of the previous layer
    (or per network input for the first layer).  Every neuron also has a bias
    value and a bias weight, both initialised to ``1``; their product is added
    to the weighted sum.

    The topology is fixed at construction.  Weight values stay mutable so a
    :class:`~mlpnet.training.teacher.BackPropagationTeacher` can train them.
    """

    def __init__(
        self,
        weights: Sequence[Sequence[Sequence[float]] | Array],
        activations: ActivationsArg = None,
    ) -> None:
        layers = [np.array(w, dtype=np.float64, copy=True) for w in weights]
        if not layers:
            raise InvalidTopology("A network requires at least one layer")
        for idx, W in enumerate(layers):
            if W.ndim != 2 or W.size == 0:
                raise InvalidTopology(
                    f"Layer {idx} must be a non-empty 2-D matrix, got shape {W.shape}"
                )
        for idx in range(1, len(layers)):
            inputs, previous = layers[idx].shape[1], layers[idx - 1].shape[0]
            if inputs != previous:
                raise InvalidTopology(
                    f"Layer {idx} expects {inputs} inputs but layer {idx - 1} "
                    f"has {previous} neurons"
                )

        self._weights = layers
        self._biases = [np.ones(W.shape[0], dtype=np.float64) for W in layers]
        self._bias_weights = [np.ones(W.shape[0], dtype=np.float64) for W in layers]
        self._outputs = [np.zeros(W.shape[0], dtype=np.float64) for W in layers[:-1]]
        self._sums = [np.zeros(W.shape[0], dtype=np.float64) for W in layers]
        self._result = np.zeros(layers[-1].shape[0], dtype=np.float64)
        self._activations = _resolve_activations(activations, len(layers))

    @classmethod
    def from_layout(
        cls,
        inputs_count: int,
        neurons_count: Sequence[int],
        initializer: Initializer | None = None,
        activations: ActivationsArg = None,
        seed: int | None = None,
    ) -> "MultilayerPerceptron":
        """Build a network from layer widths and a per-weight initializer.

        ``initializer(layer, neuron, input)`` is called once per weight cell.
        Without one, weights are drawn uniformly from ``[-0.5, 0.5)`` using a
        generator seeded with ``seed``.
        """

        counts = [int(c) for c in neurons_count]
        if not counts:
            raise InvalidTopology("A network requires at least one layer")
        if inputs_count <= 0 or any(c <= 0 for c in counts):
            raise InvalidTopology(
                f"Layer widths must be positive: inputs={inputs_count}, neurons={counts}"
            )
        init = initializer or uniform_initializer(seed)
        weights = []
        fan_in = int(inputs_count)
        for layer, neurons in enumerate(counts):
            W = np.empty((neurons, fan_in), dtype=np.float64)
            for neuron in range(neurons):
                for input_index in range(fan_in):
                    W[neuron, input_index] = init(layer, neuron, input_index)
            weights.append(W)
            fan_in = neurons
        return cls(weights, activations=activations)

    # ------------------------------------------------------------------
    # Structure

    @property
    def layers_count(self) -> int:
        return len(self._weights)

    @property
    def inputs_count(self) -> int:
        return int(self._weights[0].shape[1])

    @property
    def outputs_count(self) -> int:
        return int(self._weights[-1].shape[0])

    @property
    def layer_sizes(self) -> Tuple[int, ...]:
        return tuple(int(W.shape[0]) for W in self._weights)

    @property
    def weights(self) -> Tuple[Array, ...]:
        return tuple(self._weights)

    @property
    def biases(self) -> Tuple[Array, ...]:
        return tuple(self._biases)

    @property
    def bias_weights(self) -> Tuple[Array, ...]:
        return tuple(self._bias_weights)

    @property
    def hidden_outputs(self) -> Tuple[Array, ...]:
        """Outputs cached by the last forward pass for every non-terminal layer."""

        return tuple(self._outputs)

    @property
    def activations(self) -> Tuple[ActivationFunction, ...]:
        return tuple(self._activations)

    def parameter_count(self) -> int:
        return int(sum(W.size + W.shape[0] for W in self._weights))

    def describe(self) -> ModelDescription:
        return ModelDescription(
            layer_dims=(self.inputs_count, *self.layer_sizes),
            activations=tuple(act.name for act in self._activations),
        )

    # ------------------------------------------------------------------
    # Forward propagation

    def process(
        self,
        input: Sequence[float] | Array,
        output: MutableSequence[float] | Array | None = None,
    ):
        """Propagate ``input`` through every layer and write the result to ``output``.

        When ``output`` is omitted a new array is allocated.  The filled buffer
        is returned in both cases.
        """

        x = self._check_input(input)
        if output is None:
            output = np.zeros(self.outputs_count, dtype=np.float64)
        elif len(output) != self.outputs_count:
            raise ShapeMismatch(
                f"Output buffer has {len(output)} cells, network has {self.outputs_count} outputs"
            )
        self._propagate(x, self._result)
        output[:] = self._result
        return output

    def process_with_error(
        self,
        input: Sequence[float] | Array,
        output: MutableSequence[float] | Array,
        expected: Sequence[float] | Array,
        error: MutableSequence[float] | Array,
    ) -> float:
        """Forward pass plus the per-output error ``0.5 * (expected - output)**2``.

        Returns the total error, i.e. the sum of ``error``.
        """

        if len(expected) != self.outputs_count or len(error) != self.outputs_count:
            raise ShapeMismatch(
                f"Expected and error buffers must both have {self.outputs_count} cells"
            )
        self.process(input, output)
        delta = np.asarray(expected, dtype=np.float64) - self._result
        cells = 0.5 * delta * delta
        error[:] = cells
        return float(cells.sum())

    def propagate(
        self,
        input: Sequence[float] | Array,
        output: Array,
        states: Sequence[Array],
    ) -> Array:
        """Forward pass that also keeps every layer's weighted sums.

        ``states[k]`` receives the pre-activation sums of layer ``k`` and
        ``output`` the network response; :attr:`hidden_outputs` is refreshed
        as in :meth:`process`.  Returns the validated input vector.
        """

        x = self._check_input(input)
        if output.shape != (self.outputs_count,):
            raise ShapeMismatch(
                f"Output buffer has shape {output.shape}, network has "
                f"{self.outputs_count} outputs"
            )
        sizes = self.layer_sizes
        if len(states) != len(sizes) or any(
            s.shape != (n,) for s, n in zip(states, sizes)
        ):
            raise ShapeMismatch(f"State buffers must match the layer sizes {sizes}")
        self._propagate(x, output, states)
        return x

    def _check_input(self, input: Sequence[float] | Array) -> Array:
        x = np.asarray(input, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.inputs_count:
            raise ShapeMismatch(
                f"Input has shape {x.shape}, network expects {self.inputs_count} inputs"
            )
        return x

    def _propagate(self, x: Array, output: Array, states: Sequence[Array] | None = None) -> None:
        """Run the layer loop, recording weighted sums into ``states`` when given."""

        sums = self._sums if states is None else states
        last = len(self._weights) - 1
        layer_input = x
        for k, W in enumerate(self._weights):
            net = sums[k]
            np.matmul(W, layer_input, out=net)
            net += self._biases[k] * self._bias_weights[k]
            target = output if k == last else self._outputs[k]
            target[:] = self._activations[k].value(net)
            layer_input = target

    # ------------------------------------------------------------------
    # Training

    def create_teacher(
        self,
        configure: Callable[["BackPropagationTeacher"], None] | None = None,
        **options,
    ) -> "BackPropagationTeacher":
        """Return a backpropagation teacher bound to this network.

        ``options`` are forwarded to the teacher (``rho``, ``inertial_factor``);
        ``configure`` receives the teacher before it is returned.
        """

        from ..training.teacher import BackPropagationTeacher

        teacher = BackPropagationTeacher(self, **options)
        if configure is not None:
            configure(teacher)
        return teacher

    def __repr__(self) -> str:
        dims = (self.inputs_count, *self.layer_sizes)
        return f"{type(self).__name__}(layer_dims={dims})"


__all__ = [
    "MultilayerPerceptron",
    "NeuralNetwork",
    "TeachableNeuralNetwork",
    "squared_error",
    "uniform_initializer",
]
