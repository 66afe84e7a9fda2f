import numpy as np
import pytest

from mlpnet import MultilayerPerceptron, NeuralProcessor, TypedExample
from mlpnet.data import add_binary_noise, digit_glyphs, get_dataset
from mlpnet.processor import argmax, copy_into, one_hot
from mlpnet.training import fit


def test_trained_processor_recognises_every_glyph():
    glyphs = digit_glyphs()
    network = MultilayerPerceptron.from_layout(35, [15, 10], seed=1)
    processor = NeuralProcessor(network, copy_into, argmax)
    teacher = processor.create_teacher(one_hot, rho=0.5, inertial_factor=0.5)

    examples = [TypedExample(bits, digit) for digit, bits in glyphs.items()]
    encoded = [teacher.encode_example(example) for example in examples]
    history = fit(teacher.network_teacher, encoded, max_epochs=3000, target_error=0.01)

    assert history.last.max_error < history.first.max_error
    for digit, bits in glyphs.items():
        assert processor.process(bits) == digit


def test_typed_epochs_lower_digit_error():
    spec = get_dataset("digits")
    network = MultilayerPerceptron.from_layout(35, [12, 10], activations=["tanh", "sigmoid"], seed=2)
    processor = NeuralProcessor(network, copy_into, argmax)
    teacher = processor.create_teacher(one_hot, rho=0.3)
    examples = [
        TypedExample(tuple(e.input), int(np.argmax(e.expected_output))) for e in spec.examples
    ]

    first = teacher.teach_epoch(examples)
    for _ in range(50):
        last = teacher.teach_epoch(examples)

    assert last.avg_error < first.avg_error
    assert [result.input for result in last] == [e.input for e in examples]


@pytest.fixture(scope="module")
def glyph_processor():
    glyphs = digit_glyphs()
    network = MultilayerPerceptron.from_layout(35, [15, 10], seed=1)
    processor = NeuralProcessor(network, copy_into, argmax)
    teacher = processor.create_teacher(one_hot)
    encoded = [teacher.encode_example(TypedExample(bits, d)) for d, bits in glyphs.items()]
    history = fit(teacher.network_teacher, encoded, max_epochs=5000, target_error=0.001)
    assert history.last.max_error < history.first.max_error
    return processor


def _nearest_glyph(bits, glyphs) -> int:
    distances = {d: sum(a != b for a, b in zip(bits, g)) for d, g in glyphs.items()}
    return min(distances, key=distances.get)


# Glyph pairs 6/8 and 8/9 differ in two pixels, 3/8, 3/9 and 6/9 in four, so
# even nearest-glyph matching changes about 0.12, 0.24 and 0.39 answers per
# pass at one, two and three flipped pixels.
@pytest.mark.parametrize("flips, threshold", [(1, 0.15), (2, 0.30), (3, 0.50)])
def test_recognition_survives_flipped_pixels(glyph_processor, flips, threshold):
    glyphs = digit_glyphs()
    clean = [glyph_processor.process(bits) for bits in glyphs.values()]
    assert clean == list(range(10))

    rng = np.random.default_rng(flips)
    changed = 0
    nearest_changed = 0
    trials = 1000
    for _ in range(trials):
        for digit, bits in glyphs.items():
            noisy = add_binary_noise(bits, flips, rng)
            changed += glyph_processor.process(noisy) != clean[digit]
            nearest_changed += _nearest_glyph(noisy, glyphs) != digit

    rate = changed / trials
    assert rate < threshold
    assert rate <= nearest_changed / trials + 0.1
