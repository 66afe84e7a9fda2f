"""Core numerical primitives for mlpnet."""

from . import activations, errors, network, types

__all__ = ["activations", "errors", "network", "types"]
