"""Dataset registry and built-in datasets."""

# Ensure built-in datasets register themselves when the package is imported.
from . import builtin as _builtin  # noqa: F401
from .builtin import add_binary_noise, digit_glyphs
from .registry import (
    DatasetSpec,
    available_datasets,
    get,
    get_dataset,
    register_dataset,
)

__all__ = [
    "DatasetSpec",
    "add_binary_noise",
    "available_datasets",
    "digit_glyphs",
    "get",
    "get_dataset",
    "register_dataset",
]
