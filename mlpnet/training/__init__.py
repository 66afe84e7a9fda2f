"""Backpropagation training: per-example teacher, epochs and pipelines."""

from .epoch import TrainingHistory, fit, teach_epoch, validate_examples
from .teacher import BackPropagationTeacher

__all__ = [
    "BackPropagationTeacher",
    "TrainingHistory",
    "fit",
    "teach_epoch",
    "validate_examples",
]
