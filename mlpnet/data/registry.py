"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping, Tuple

from ..core.types import Example


@dataclass(frozen=True)
class DatasetSpec:
    """A named batch of training examples plus its reproducibility metadata.

    Attributes
    ----------
    name:
        Identifier the dataset was registered under.
    examples:
        The training examples, in presentation order.
    inputs_count / outputs_count:
        Widths every example conforms to; a network trained on the dataset
        must have the same input and output widths.
    provenance:
        Parameters used to build the dataset, recorded in run manifests.
    """

    name: str
    examples: Tuple[Example, ...]
    inputs_count: int
    outputs_count: int
    provenance: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.examples)


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` built by the factory registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


get = get_dataset


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if not spec.examples:
        raise ValueError(f"Dataset {spec.name} produced no examples")
    for index, example in enumerate(spec.examples):
        if example.input.shape[0] != spec.inputs_count:
            raise ValueError(
                f"Dataset {spec.name}: example {index} has {example.input.shape[0]} "
                f"inputs, declared {spec.inputs_count}"
            )
        if example.expected_output.shape[0] != spec.outputs_count:
            raise ValueError(
                f"Dataset {spec.name}: example {index} has "
                f"{example.expected_output.shape[0]} outputs, declared {spec.outputs_count}"
            )


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get",
    "get_dataset",
    "register_dataset",
]
