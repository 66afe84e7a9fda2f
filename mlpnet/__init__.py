"""mlpnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import (
    InvalidTopology,
    Instability,
    NetworkError,
    NotSupported,
    ShapeMismatch,
)
from .core.network import (
    MultilayerPerceptron,
    NeuralNetwork,
    TeachableNeuralNetwork,
    squared_error,
)
from .core.types import Epoch, Example, TeachResult
from .processor import NeuralProcessor, ProcessorTeacher, TypedExample
from .training.epoch import TrainingHistory, fit, teach_epoch
from .training.pipelines import load_preset, presets, run_pipeline
from .training.teacher import BackPropagationTeacher

__all__ = [
    "BackPropagationTeacher",
    "Epoch",
    "Example",
    "InvalidTopology",
    "Instability",
    "MultilayerPerceptron",
    "NetworkError",
    "NeuralNetwork",
    "NeuralProcessor",
    "NotSupported",
    "ProcessorTeacher",
    "ShapeMismatch",
    "TeachResult",
    "TeachableNeuralNetwork",
    "TrainingHistory",
    "TypedExample",
    "activations",
    "fit",
    "load_preset",
    "presets",
    "run_pipeline",
    "squared_error",
    "teach_epoch",
    "types",
]
