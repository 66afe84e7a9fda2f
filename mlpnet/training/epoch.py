"""Epoch-level orchestration of a backpropagation teacher."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.errors import Instability, ShapeMismatch
from ..core.types import Epoch, Example, TeachResult
from .teacher import BackPropagationTeacher


def validate_examples(network, examples: Sequence[Example]) -> None:
    """Check every example against the network widths before training starts."""

    inputs, outputs = network.inputs_count, network.outputs_count
    for index, example in enumerate(examples):
        if example.input.shape[0] != inputs:
            raise ShapeMismatch(
                f"Example {index} has {example.input.shape[0]} inputs, "
                f"network expects {inputs}"
            )
        if example.expected_output.shape[0] != outputs:
            raise ShapeMismatch(
                f"Example {index} has {example.expected_output.shape[0]} expected "
                f"outputs, network produces {outputs}"
            )


def teach_epoch(teacher: BackPropagationTeacher, examples: Iterable[Example]) -> Epoch:
    """Run one training step per example, in order, and aggregate the errors.

    Raises :class:`ShapeMismatch` before touching the weights if any example
    does not fit the network, and :class:`Instability` as soon as an example
    error is NaN or infinite.
    """

    batch = list(examples)
    if not batch:
        raise ValueError("An epoch requires at least one example")
    validate_examples(teacher.network, batch)

    results: List[TeachResult] = []
    max_error = -math.inf
    total = 0.0
    output = np.zeros(teacher.network.outputs_count, dtype=np.float64)
    for index, example in enumerate(batch):
        error = teacher.teach(example.input, output, example.expected_output)
        if not math.isfinite(error):
            raise Instability(index, error)
        results.append(TeachResult(example=example, output=output, error=error))
        max_error = max(max_error, error)
        total += error

    return Epoch(results=tuple(results), max_error=max_error, avg_error=total / len(batch))


@dataclass(frozen=True)
class TrainingHistory:
    """Sequence of epochs produced by :func:`fit`."""

    epochs: Tuple[Epoch, ...]
    converged: bool

    def __len__(self) -> int:
        return len(self.epochs)

    @property
    def first(self) -> Epoch:
        return self.epochs[0]

    @property
    def last(self) -> Epoch:
        return self.epochs[-1]

    @property
    def max_errors(self) -> Tuple[float, ...]:
        return tuple(epoch.max_error for epoch in self.epochs)

    @property
    def avg_errors(self) -> Tuple[float, ...]:
        return tuple(epoch.avg_error for epoch in self.epochs)


def fit(
    teacher: BackPropagationTeacher,
    examples: Iterable[Example],
    *,
    max_epochs: int,
    target_error: float | None = None,
    patience: int | None = None,
    callbacks: Sequence[object] = (),
    restore_best: bool = False,
) -> TrainingHistory:
    """Repeat :func:`teach_epoch` until the batch is learnt or the budget runs out.

    Training stops once the largest example error of an epoch is at or below
    ``target_error``, after ``max_epochs`` epochs, or after ``patience``
    epochs without a lower epoch maximum.  Every callback receives
    ``on_epoch(epoch, metrics)`` (or is called with those arguments).
    """

    if max_epochs < 1:
        raise ValueError(f"max_epochs must be positive, got {max_epochs}")
    if patience is not None and patience < 1:
        raise ValueError(f"patience must be positive, got {patience}")
    batch = list(examples)
    history: List[Epoch] = []
    converged = False
    best = math.inf
    epochs_no_improve = 0
    for number in range(1, max_epochs + 1):
        epoch = teach_epoch(teacher, batch)
        history.append(epoch)
        _emit_epoch(callbacks, number, epoch.metrics())

        if target_error is not None and epoch.max_error <= target_error:
            converged = True
            break
        if epoch.max_error < best - 1e-12:
            best = epoch.max_error
            epochs_no_improve = 0
        else:
            epochs_no_improve += 1
            if patience is not None and epochs_no_improve >= patience:
                break

    if restore_best:
        teacher.restore_best()
    return TrainingHistory(epochs=tuple(history), converged=converged)


def _emit_epoch(callbacks: Sequence[object], epoch: int, metrics: Mapping[str, float]) -> None:
    for callback in callbacks:
        if hasattr(callback, "on_epoch"):
            callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
        elif callable(callback):
            callback(epoch, metrics)


__all__ = ["TrainingHistory", "fit", "teach_epoch", "validate_examples"]
