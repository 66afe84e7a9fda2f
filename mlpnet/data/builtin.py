"""Small in-memory datasets used by presets, examples and tests."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..core.types import Example
from .registry import DatasetSpec, register_dataset

GLYPH_WIDTH = 5
GLYPH_HEIGHT = 7

_DIGIT_PATTERNS: Dict[int, Sequence[str]] = {
    0: ["01110", "10001", "10001", "10001", "10001", "01110", "01110"],
    1: ["00100", "01100", "10100", "00100", "00100", "00100", "11111"],
    2: ["01110", "10001", "00001", "00010", "00100", "01000", "11111"],
    3: ["01110", "10001", "00001", "00010", "00001", "10001", "01110"],
    4: ["10001", "10001", "10001", "11111", "00001", "00001", "00001"],
    5: ["11111", "10000", "11110", "10001", "00001", "10001", "01110"],
    6: ["01110", "10001", "10000", "11110", "10001", "10001", "01110"],
    7: ["11111", "00001", "00010", "00100", "01000", "10000", "10000"],
    8: ["01110", "10001", "10001", "01110", "10001", "10001", "01110"],
    9: ["01110", "10001", "10001", "01111", "00001", "10001", "01110"],
}


def digit_glyphs() -> Dict[int, Tuple[int, ...]]:
    """Return the 5x7 bitmap of every digit, flattened row by row."""

    return {
        digit: tuple(int(bit) for row in rows for bit in row)
        for digit, rows in sorted(_DIGIT_PATTERNS.items())
    }


def add_binary_noise(
    bits: Sequence[int], count: int, rng: np.random.Generator
) -> Tuple[int, ...]:
    """Flip ``count`` distinct positions of a binary vector."""

    result = list(bits)
    if count <= 0:
        return tuple(result)
    count = min(count, len(result))
    for index in rng.choice(len(result), size=count, replace=False):
        result[index] = 0 if result[index] > 0 else 1
    return tuple(result)


@register_dataset("xor")
def make_xor(**_: object) -> DatasetSpec:
    examples = tuple(
        Example([a, b], [a ^ b]) for a in (0, 1) for b in (0, 1)
    )
    return DatasetSpec(
        name="xor",
        examples=examples,
        inputs_count=2,
        outputs_count=1,
        provenance={"type": "xor"},
    )


@register_dataset("digits")
def make_digits(
    copies: int = 1,
    distortions: int = 0,
    seed: int = 0,
    **_: object,
) -> DatasetSpec:
    """Digit glyphs with one-hot targets.

    The clean glyphs always come first; ``copies - 1`` further passes add
    glyphs with ``distortions`` flipped pixels each.
    """

    rng = np.random.default_rng(seed)
    glyphs = digit_glyphs()
    examples: List[Example] = []
    for copy in range(max(1, int(copies))):
        for digit, bits in glyphs.items():
            if copy > 0:
                bits = add_binary_noise(bits, int(distortions), rng)
            target = np.zeros(len(glyphs), dtype=np.float64)
            target[digit] = 1.0
            examples.append(Example(bits, target))
    return DatasetSpec(
        name="digits",
        examples=tuple(examples),
        inputs_count=GLYPH_WIDTH * GLYPH_HEIGHT,
        outputs_count=len(glyphs),
        provenance={
            "type": "digits",
            "copies": int(copies),
            "distortions": int(distortions),
            "seed": int(seed),
        },
    )


@register_dataset("sine")
def make_sine(
    freq: float = 1.0,
    n_points: int = 32,
    noise: float = 0.0,
    seed: int = 0,
    **_: object,
) -> DatasetSpec:
    """Samples of ``0.5 + 0.4 * sin(freq * pi * x)`` on ``[-1, 1]``."""

    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, int(n_points), dtype=np.float64)
    y = 0.5 + 0.4 * np.sin(freq * np.pi * x)
    if noise:
        y = y + noise * rng.standard_normal(size=y.shape)
    examples = tuple(Example([xi], [yi]) for xi, yi in zip(x, y))
    return DatasetSpec(
        name="sine",
        examples=examples,
        inputs_count=1,
        outputs_count=1,
        provenance={
            "type": "sine",
            "freq": float(freq),
            "n_points": int(n_points),
            "noise": float(noise),
            "seed": int(seed),
        },
    )


__all__ = [
    "GLYPH_HEIGHT",
    "GLYPH_WIDTH",
    "add_binary_noise",
    "digit_glyphs",
    "make_digits",
    "make_sine",
    "make_xor",
]
