"""Core typing contracts for mlpnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Sequence, Tuple

import numpy as np

Array = np.ndarray

Initializer = Callable[[int, int, int], float]


def frozen_vector(values: Sequence[float] | Array) -> Array:
    """Return a read-only ``float64`` copy of ``values``."""

    vector = np.array(values, dtype=np.float64).reshape(-1)
    vector.setflags(write=False)
    return vector


@dataclass(frozen=True)
class Example:
    """A single training sample: network input and the desired output.

    Integer sequences are accepted and converted.  Lengths are only checked
    against a network when the example is used for training.
    """

    input: Array
    expected_output: Array

    def __post_init__(self) -> None:
        object.__setattr__(self, "input", frozen_vector(self.input))
        object.__setattr__(self, "expected_output", frozen_vector(self.expected_output))

    def __str__(self) -> str:
        inputs = ",".join(f"{v:.3g}" for v in self.input)
        outputs = ",".join(f"{v:.3g}" for v in self.expected_output)
        return f"in:{inputs} out:{outputs}"


@dataclass(frozen=True)
class TeachResult:
    """Outcome of one training step on one example."""

    example: Example
    output: Array
    error: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "output", frozen_vector(self.output))
        object.__setattr__(self, "error", float(self.error))

    @property
    def input(self) -> Array:
        return self.example.input

    @property
    def expected_output(self) -> Array:
        return self.example.expected_output

    def __str__(self) -> str:
        return f"err - {self.error:.3g}"


@dataclass(frozen=True)
class Epoch:
    """Immutable record of one full training pass over a batch of examples."""

    results: Tuple[TeachResult, ...]
    max_error: float
    avg_error: float

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[TeachResult]:
        return iter(self.results)

    @property
    def errors(self) -> Tuple[float, ...]:
        return tuple(result.error for result in self.results)

    def metrics(self) -> Dict[str, float]:
        return {"max_error": self.max_error, "avg_error": self.avg_error}


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`mlpnet.training.pipelines.run_pipeline`."""

    epochs: int
    converged: bool
    final_max_error: float
    final_avg_error: float
    metrics_path: str
    manifest_path: str
    summary_path: str = ""


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_dims: Tuple[int, ...]
    activations: Tuple[str, ...] = field(default_factory=tuple)


__all__ = [
    "Array",
    "Initializer",
    "Example",
    "TeachResult",
    "Epoch",
    "RunResult",
    "ModelDescription",
    "frozen_vector",
]
