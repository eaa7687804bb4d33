import numpy as np
import pytest

from fingermatch.alignment.phase_correlation import (
    Aligner,
    phase_correlate,
    rotate_image,
    translate_image
)
from fingermatch.matching.hybrid_matcher import HybridMatcher
from fingermatch.matching.similarity import pixel_similarity
from fingermatch.utils.config import AlignmentConfig


def test_phase_correlation_sign(texture_image):
    shifted = np.roll(texture_image, shift=(3, 5), axis=(0, 1))

    (dx, dy), response = phase_correlate(texture_image, shifted, window=False)

    assert (dx, dy) == (5, 3)
    assert response == pytest.approx(1.0, abs=1e-6)


def test_phase_correlation_negative_shift(texture_image):
    shifted = np.roll(texture_image, shift=(-7, -2), axis=(0, 1))
    (dx, dy), _ = phase_correlate(texture_image, shifted, window=False)
    assert (dx, dy) == (-2, -7)


def test_windowed_phase_correlation_of_translation(texture_image):
    shifted = translate_image(texture_image, 6, -4)

    (dx, dy), response = phase_correlate(texture_image, shifted)

    assert (dx, dy) == (6, -4)
    assert 0.0 < response < 1.0


def test_phase_correlation_shape_mismatch():
    with pytest.raises(ValueError):
        phase_correlate(np.zeros((8, 8)), np.zeros((8, 9)))


def test_rotate_by_zero_is_identity(texture_image):
    assert np.array_equal(rotate_image(texture_image, 0.0), texture_image)


def test_translate_moves_content():
    image = np.zeros((20, 20), dtype=np.uint8)
    image[5, 5] = 255
    moved = translate_image(image, 3, -2)
    assert moved[3, 8] == 255


def test_angle_grid_is_inclusive():
    angles = Aligner(20, 4).angles
    assert angles[0] == -20
    assert angles[-1] == 20
    assert len(angles) == 11


def test_invalid_step_raises():
    with pytest.raises(ValueError):
        Aligner(angle_step=0)


def test_self_alignment(texture_image):
    result = Aligner().align(texture_image, texture_image)

    assert result.angle == 0.0
    assert result.shift == (0, 0)
    assert result.response == pytest.approx(1.0, abs=1e-6)
    assert pixel_similarity(result.image, texture_image) > 0.95


@pytest.mark.parametrize("shift", [(0, 0), (5, 0), (5, 5)])
def test_recovers_rotation_and_shift(texture_image, shift):
    target = translate_image(rotate_image(texture_image, 10.0), *shift)

    result = Aligner.from_config(AlignmentConfig()).align(texture_image, target)

    assert abs(result.angle + 10.0) <= 4.0
    assert abs(result.shift[0] - shift[0]) <= 2
    assert abs(result.shift[1] - shift[1]) <= 2
    assert result.image.shape == texture_image.shape

    core = (slice(64, 192), slice(64, 192))
    aligned = pixel_similarity(result.image[core], texture_image[core])
    unaligned = pixel_similarity(target[core], texture_image[core])
    assert aligned > unaligned


def test_target_is_resized_to_reference(texture_image):
    result = Aligner().align(texture_image, texture_image[:128, :200])
    assert result.image.shape == texture_image.shape


@pytest.mark.parametrize("shift", [(0, 0), (5, 0), (5, 5)])
def test_recovers_rotation_of_ridge_energy(texture_image, shift):
    matcher = HybridMatcher()
    candidate = translate_image(rotate_image(texture_image, 10.0), *shift)
    reference = matcher.ridge_image(texture_image, is_contact_sample=False)
    target = matcher.ridge_image(candidate, is_contact_sample=False)

    result = matcher.aligner.align(reference, target)

    assert abs(result.angle + 10.0) <= 4.0
    assert abs(result.shift[0] - shift[0]) <= 3
    assert abs(result.shift[1] - shift[1]) <= 3
