"""Activation functions and the registry used to resolve them by name."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable

import numpy as np

from .types import Array


class ActivationFunction(ABC):
    """Element-wise transfer function of a layer.

    ``value`` receives the weighted sum of a neuron's inputs, ``derivative``
    is evaluated at that same weighted sum.  Both accept scalars or arrays so a
    whole layer is handled in a single call.
    """

    name = "activation"

    @abstractmethod
    def value(self, x: Array) -> Array:
        ...

    @abstractmethod
    def derivative(self, x: Array) -> Array:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DiffSimplifiedActivationFunction(ActivationFunction):
    """Activation whose derivative is cheaper to express through its own output."""

    @abstractmethod
    def derivative_from_output(self, y: Array) -> Array:
        ...

    def derivative(self, x: Array) -> Array:
        return self.derivative_from_output(self.value(x))


class Sigmoid(DiffSimplifiedActivationFunction):
    """Logistic function ``1 / (1 + exp(-x))``."""

    name = "sigmoid"

    def value(self, x: Array) -> Array:
        with np.errstate(over="ignore"):
            return 1.0 / (1.0 + np.exp(-x))

    def derivative_from_output(self, y: Array) -> Array:
        return y * (1.0 - y)


class Tanh(DiffSimplifiedActivationFunction):
    name = "tanh"

    def value(self, x: Array) -> Array:
        return np.tanh(x)

    def derivative_from_output(self, y: Array) -> Array:
        return 1.0 - y * y


class Linear(ActivationFunction):
    name = "linear"

    def value(self, x: Array) -> Array:
        return np.asarray(x, dtype=np.float64) * 1.0

    def derivative(self, x: Array) -> Array:
        return np.ones_like(np.asarray(x, dtype=np.float64))


class ReLU(ActivationFunction):
    name = "relu"

    def value(self, x: Array) -> Array:
        return np.maximum(x, 0.0)

    def derivative(self, x: Array) -> Array:
        return (np.asarray(x) > 0).astype(np.float64)


def layer_derivative(activation: ActivationFunction, state: Array, output: Array) -> Array:
    """Return the activation slope for a whole layer.

    ``state`` holds the weighted sums fed to the activation and ``output`` the
    values it produced.  Simplified activations are evaluated from ``output``.
    """

    if isinstance(activation, DiffSimplifiedActivationFunction):
        return activation.derivative_from_output(output)
    return activation.derivative(state)


ActivationFactory = Callable[[], ActivationFunction]


class ActivationRegistry:
    """Central registry for activation functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, ActivationFactory] = {}

    def register(self, name: str, factory: ActivationFactory) -> None:
        self._registry[name] = factory

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str) -> ActivationFunction:
        key = name.lower()
        if key not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}")
        return self._registry[key]()

    def resolve(self, spec: str | ActivationFunction | None) -> ActivationFunction:
        if spec is None:
            return Sigmoid()
        if isinstance(spec, ActivationFunction):
            return spec
        if isinstance(spec, str):
            return self.get(spec)
        raise TypeError(f"Cannot build an activation from {type(spec).__name__}")


REGISTRY = ActivationRegistry()
REGISTRY.register("sigmoid", Sigmoid)
# Alias kept for configs that name the function explicitly
REGISTRY.register("logistic", Sigmoid)
REGISTRY.register("tanh", Tanh)
REGISTRY.register("linear", Linear)
REGISTRY.register("relu", ReLU)

__all__ = [
    "ActivationFunction",
    "DiffSimplifiedActivationFunction",
    "Sigmoid",
    "Tanh",
    "Linear",
    "ReLU",
    "layer_derivative",
    "ActivationRegistry",
    "REGISTRY",
]
