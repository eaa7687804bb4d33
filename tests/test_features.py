import numpy as np
import pytest

from fingermatch.enhancement.orientation_field import (
    OrientationFieldEstimator,
    estimate_orientation_field
)
from fingermatch.enhancement.ridge_frequency import (
    RidgeFrequencyEstimator,
    derotate_block,
    estimate_frequency_block,
    estimate_frequency_map,
    find_ridge_peaks
)
from fingermatch.features.extractor import (
    FeatureExtractor,
    extract_core_region,
    gabor_energy_features,
    texture_features
)
from fingermatch.enhancement.gabor_filter import create_feature_filter_bank
from fingermatch.utils.config import FeatureConfig


class TestOrientationField:

    def test_vertical_stripes(self, vertical_stripes):
        field = estimate_orientation_field(vertical_stripes, 16)

        assert field.shape == (4, 4)
        assert np.allclose(field.angles, 0.0, atol=1e-3)
        assert np.all(field.coherence > 0.99)

    def test_horizontal_stripes(self, vertical_stripes):
        field = OrientationFieldEstimator(16).estimate(vertical_stripes.T)

        assert np.allclose(field.angles, np.pi / 2, atol=1e-3)
        assert np.all(field.coherence > 0.99)

    def test_flat_image_has_zero_coherence(self):
        field = estimate_orientation_field(np.full((32, 32), 80, dtype=np.uint8), 16)
        assert not field.coherence.any()

    def test_angles_are_in_half_open_range(self, texture_image):
        field = estimate_orientation_field(texture_image, 16)
        assert np.all(field.angles >= 0)
        assert np.all(field.angles < np.pi)
        assert np.all((field.coherence >= 0) & (field.coherence <= 1))

    def test_partial_blocks_are_dropped(self):
        field = estimate_orientation_field(np.zeros((40, 70), dtype=np.uint8), 16)
        assert field.shape == (2, 4)


class TestRidgeFrequency:

    def test_find_peaks_on_regular_spikes(self):
        profile = np.zeros(30)
        profile[[5, 10, 15, 20]] = 1.0
        assert find_ridge_peaks(profile, min_distance=3) == [5, 10, 15, 20]

    def test_find_peaks_respects_height(self):
        profile = np.zeros(30)
        profile[[5, 15]] = 1.0
        profile[10] = 0.1
        assert find_ridge_peaks(profile, min_distance=3, min_height=0.5) == [5, 15]

    def test_derotate_identity(self, vertical_stripes):
        block = vertical_stripes[:32, :32]
        assert np.allclose(derotate_block(block, 0.0), block, atol=1e-6)

    def test_vertical_stripes_frequency(self, vertical_stripes):
        field = estimate_orientation_field(vertical_stripes, 16)
        frequency = estimate_frequency_map(vertical_stripes, field, 32)

        assert frequency.shape == (2, 2)
        assert np.allclose(frequency, 0.125, atol=0.01)

    def test_horizontal_stripes_frequency(self, vertical_stripes):
        horizontal = vertical_stripes.T.copy()
        field = estimate_orientation_field(horizontal, 16)
        frequency = RidgeFrequencyEstimator(32).estimate(horizontal, field)

        assert np.allclose(frequency, 0.125, atol=0.01)

    def test_flat_block_has_no_frequency(self):
        assert estimate_frequency_block(np.full((32, 32), 90.0), 0.3) == 0.0


class TestFeatureExtractor:

    def test_core_region_margins(self):
        core = extract_core_region(np.zeros((256, 256), dtype=np.uint8), 0.7)
        # margin = int(0.3 * 256 / 2) = 38
        assert core.shape == (180, 180)

    def test_vector_lengths(self, ridge_image):
        core = extract_core_region(ridge_image)
        assert gabor_energy_features(core, create_feature_filter_bank()).shape == (72,)
        assert texture_features(core, 4).shape == (64,)

    def test_texture_features_of_flat_image(self):
        features = texture_features(np.full((64, 64), 50, dtype=np.uint8), 4)
        assert np.allclose(features[0::4], 50)
        assert np.allclose(features[1::4], 0)
        assert np.allclose(features[2::4], 0)

    def test_extract(self, ridge_image):
        features = FeatureExtractor().extract(ridge_image)

        assert features.core.shape == (180, 180)
        assert features.orientation.shape == (11, 11)
        assert features.frequency.shape == (5, 5)
        assert features.gabor.shape == (72,)
        assert features.texture.shape == (64,)
        assert np.any(features.frequency > 0)

    @pytest.mark.parametrize("core_ratio", [0.5, 0.9])
    def test_from_config(self, ridge_image, core_ratio):
        extractor = FeatureExtractor.from_config(FeatureConfig(core_ratio=core_ratio))
        features = extractor.extract(ridge_image)
        margin = int((1 - core_ratio) * 256 / 2.0)
        assert features.core.shape == (256 - 2 * margin, 256 - 2 * margin)
