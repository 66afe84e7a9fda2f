"""Typed front-end that maps domain values onto network vectors and back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, List, Tuple, TypeVar

import numpy as np

from .core.errors import NotSupported
from .core.network import NeuralNetwork, TeachableNeuralNetwork
from .core.types import Array, Example
from .training.teacher import BackPropagationTeacher

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")

Encoder = Callable[[TInput, Array], None]
Decoder = Callable[[Array], TOutput]
BackEncoder = Callable[[TOutput, Array], None]


def one_hot(index: int, buffer: Array) -> None:
    """Back-encoder marking class ``index`` in an already zeroed buffer."""

    buffer[int(index)] = 1.0


def argmax(buffer: Array) -> int:
    """Decoder returning the index of the strongest output."""

    return int(np.argmax(buffer))


def copy_into(values, buffer: Array) -> None:
    """Encoder copying a flat sequence of numbers into the buffer."""

    buffer[: len(values)] = values


@dataclass(frozen=True)
class TypedExample(Generic[TInput, TOutput]):
    input: TInput
    expected_output: TOutput


@dataclass(frozen=True)
class TypedTeachResult(Generic[TInput, TOutput]):
    example: TypedExample[TInput, TOutput]
    output: TOutput
    error: float

    @property
    def input(self) -> TInput:
        return self.example.input

    @property
    def expected_output(self) -> TOutput:
        return self.example.expected_output

    def __str__(self) -> str:
        return f"err - {self.error:.3g}"


@dataclass(frozen=True)
class TypedEpoch(Generic[TInput, TOutput]):
    results: Tuple[TypedTeachResult[TInput, TOutput], ...]
    max_error: float
    avg_error: float

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[TypedTeachResult[TInput, TOutput]]:
        return iter(self.results)

    def metrics(self):
        return {"max_error": self.max_error, "avg_error": self.avg_error}


class NeuralProcessor(Generic[TInput, TOutput]):
    """Bind a network to domain types through encode/decode functions.

    ``encode(value, buffer)`` writes the features of ``value`` into the
    network input buffer; ``decode(buffer)`` turns the network output into a
    domain value.  The input buffer is zeroed before every call unless
    ``clear_input`` is switched off.
    """

    def __init__(
        self,
        network: NeuralNetwork,
        encode: Encoder,
        decode: Decoder,
        clear_input: bool = True,
    ) -> None:
        if network is None:
            raise TypeError("network is required")
        if encode is None or decode is None:
            raise TypeError("encode and decode functions are required")
        self.network = network
        self.encode = encode
        self.decode = decode
        self.clear_input = clear_input
        self._input = np.zeros(network.inputs_count, dtype=np.float64)
        self._output = np.zeros(network.outputs_count, dtype=np.float64)

    def _encode_input(self, value: TInput) -> Array:
        if self.clear_input:
            self._input.fill(0.0)
        self.encode(value, self._input)
        return self._input

    def process(self, value: TInput) -> TOutput:
        self.network.process(self._encode_input(value), self._output)
        return self.decode(self._output)

    __call__ = process

    def create_teacher(
        self,
        back_encode: BackEncoder,
        configure: Callable[[BackPropagationTeacher], None] | None = None,
        **options,
    ) -> "ProcessorTeacher[TInput, TOutput]":
        """Return a teacher that trains the wrapped network on domain values.

        ``back_encode(expected, buffer)`` writes the desired network response
        for ``expected`` into a zeroed buffer.
        """

        if not isinstance(self.network, TeachableNeuralNetwork):
            raise NotSupported(f"{type(self.network).__name__} does not support training")
        teacher = self.network.create_teacher(configure, **options)
        return ProcessorTeacher(self, teacher, back_encode)


class ProcessorTeacher(Generic[TInput, TOutput]):
    """Numeric teacher wrapped with the processor's encode/decode translation."""

    def __init__(
        self,
        processor: NeuralProcessor[TInput, TOutput],
        teacher: BackPropagationTeacher,
        back_encode: BackEncoder,
    ) -> None:
        if back_encode is None:
            raise TypeError("back_encode function is required")
        self.processor = processor
        self.network_teacher = teacher
        self.back_encode = back_encode
        self._expected = np.zeros(processor.network.outputs_count, dtype=np.float64)
        self._output = np.zeros(processor.network.outputs_count, dtype=np.float64)

    def _encode_expected(self, expected: TOutput) -> Array:
        self._expected.fill(0.0)
        self.back_encode(expected, self._expected)
        return self._expected

    def teach(self, value: TInput, expected: TOutput) -> float:
        """Run one training step on a domain example and return its error."""

        x = self.processor._encode_input(value)
        target = self._encode_expected(expected)
        return self.network_teacher.teach(x, self._output, target)

    def teach_example(
        self, example: TypedExample[TInput, TOutput]
    ) -> TypedTeachResult[TInput, TOutput]:
        error = self.teach(example.input, example.expected_output)
        return TypedTeachResult(
            example=example, output=self.processor.decode(self._output), error=error
        )

    def encode_example(self, example: TypedExample[TInput, TOutput]) -> Example:
        x = self.processor._encode_input(example.input).copy()
        target = self._encode_expected(example.expected_output).copy()
        return Example(x, target)

    def teach_epoch(
        self, examples: Iterable[TypedExample[TInput, TOutput]]
    ) -> TypedEpoch[TInput, TOutput]:
        """Encode every example, train one epoch and decode the responses."""

        typed = list(examples)
        epoch = self.network_teacher.teach_epoch([self.encode_example(e) for e in typed])
        results: List[TypedTeachResult[TInput, TOutput]] = [
            TypedTeachResult(
                example=example,
                output=self.processor.decode(np.array(result.output)),
                error=result.error,
            )
            for example, result in zip(typed, epoch.results)
        ]
        return TypedEpoch(
            results=tuple(results), max_error=epoch.max_error, avg_error=epoch.avg_error
        )

    def restore_best(self) -> None:
        self.network_teacher.restore_best()


__all__ = [
    "NeuralProcessor",
    "ProcessorTeacher",
    "TypedExample",
    "TypedTeachResult",
    "TypedEpoch",
    "argmax",
    "copy_into",
    "one_hot",
]
