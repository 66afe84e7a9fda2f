"""Error taxonomy shared by the network, the teachers and the adapters."""

from __future__ import annotations


class NetworkError(Exception):
    """Base class for every error raised by :mod:`mlpnet`."""


class ShapeMismatch(NetworkError, ValueError):
    """Input, output, expected-output or weight dimensions disagree."""


class InvalidTopology(NetworkError, ValueError):
    """The layer structure handed to a network constructor is inconsistent."""


class Instability(NetworkError, ArithmeticError):
    """A training error evaluated to NaN or infinity."""

    def __init__(self, index: int, error: float) -> None:
        super().__init__(
            f"Training diverged on example {index}: error evaluated to {error!r}"
        )
        self.index = index
        self.error = error


class NotSupported(NetworkError, NotImplementedError):
    """A capability was requested of a component that does not provide it."""


__all__ = [
    "NetworkError",
    "ShapeMismatch",
    "InvalidTopology",
    "Instability",
    "NotSupported",
]
