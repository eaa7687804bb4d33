import numpy as np
import pytest

from fingermatch.enhancement.orientation_field import OrientationField
from fingermatch.matching.similarity import (
    frequency_similarity,
    orientation_similarity,
    pixel_similarity,
    vector_similarity
)


def make_field(angles, coherence=1.0):
    angles = np.asarray(angles, dtype=np.float64)
    return OrientationField(angles=angles, coherence=np.full(angles.shape, coherence))


class TestOrientationSimilarity:

    def test_self_similarity_is_one(self):
        rng = np.random.default_rng(0)
        field = make_field(rng.uniform(0, np.pi, size=(6, 6)))
        assert orientation_similarity(field, field) == pytest.approx(1.0)

    def test_orthogonal_fields(self):
        a = make_field(np.zeros((4, 4)))
        b = make_field(np.full((4, 4), np.pi / 2))
        assert orientation_similarity(a, b) == pytest.approx(0.0)

    def test_difference_wraps_at_pi(self):
        a = make_field(np.full((3, 3), 0.05))
        b = make_field(np.full((3, 3), np.pi - 0.05))
        expected = 1.0 - 0.1 / (np.pi / 2)
        assert orientation_similarity(a, b) == pytest.approx(expected)

    def test_low_coherence_is_neutral(self):
        a = make_field(np.zeros((4, 4)), coherence=0.1)
        b = make_field(np.full((4, 4), np.pi / 2))
        assert orientation_similarity(a, b) == 0.5

    def test_coherence_at_cutoff_is_excluded(self):
        a = make_field(np.zeros((2, 2)), coherence=0.2)
        assert orientation_similarity(a, a) == 0.5

    def test_mismatched_shapes_use_overlap(self):
        a = make_field(np.zeros((4, 5)))
        b = make_field(np.zeros((3, 6)))
        assert orientation_similarity(a, b) == pytest.approx(1.0)


class TestVectorSimilarity:

    def test_self_similarity_is_one(self):
        v = np.array([1.0, 2.0, 3.0, 4.0])
        assert vector_similarity(v, v) == pytest.approx(1.0)

    def test_zero_vector_is_neutral(self):
        assert vector_similarity(np.zeros(5), np.ones(5)) == 0.5

    def test_empty_vector_is_neutral(self):
        assert vector_similarity(np.array([]), np.array([])) == 0.5

    def test_opposite_vectors_are_floored(self):
        v = np.array([1.0, -2.0, 0.5])
        assert vector_similarity(v, -v) == 0.0


class TestFrequencySimilarity:

    def test_self_similarity_is_one(self):
        f = np.array([[0.10, 0.12], [0.09, 0.11]])
        assert frequency_similarity(f, f) == pytest.approx(1.0)

    def test_global_scale_is_ignored(self):
        f = np.array([[0.10, 0.12], [0.09, 0.11]])
        assert frequency_similarity(f, 1.5 * f) == pytest.approx(1.0)

    def test_unset_blocks_are_ignored(self):
        a = np.array([[0.10, 0.12], [0.0, 0.11]])
        b = np.array([[0.10, 0.12], [0.30, 0.11]])
        assert frequency_similarity(a, b) == pytest.approx(1.0)

    def test_fewer_than_two_blocks_is_neutral(self):
        a = np.array([[0.10, 0.0], [0.0, 0.0]])
        assert frequency_similarity(a, a) == 0.5

    def test_constant_maps_are_neutral(self):
        a = np.full((3, 3), 0.1)
        assert frequency_similarity(a, a) == 0.5

    def test_anticorrelated_maps(self):
        a = np.array([[0.08, 0.12]])
        b = np.array([[0.12, 0.08]])
        assert frequency_similarity(a, b) == pytest.approx(0.0)


class TestPixelSimilarity:

    def test_self_similarity(self, texture_image):
        assert pixel_similarity(texture_image, texture_image) == pytest.approx(1.0)

    def test_inverted_image_is_floored(self, texture_image):
        assert pixel_similarity(texture_image, 255 - texture_image) == 0.0

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError):
            pixel_similarity(np.zeros((4, 4)), np.zeros((4, 5)))
