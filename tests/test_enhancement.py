import numpy as np

from fingermatch import runtime
from fingermatch.enhancement.gabor_filter import (
    create_energy_filter_bank,
    create_feature_filter_bank,
    ridge_energy_map
)
from fingermatch.enhancement.pipeline import ToneEnhancementPipeline
from fingermatch.enhancement.ridge_enhancer import RidgeEnhancer, unsharp_mask
from fingermatch.enhancement.skeleton import skeletonize


class TestGaborBanks:

    def test_energy_bank_size_and_odd_kernels(self):
        bank = create_energy_filter_bank((0.08, 0.10, 0.12, 0.15), 12)
        assert len(bank) == 48
        for kernel in bank:
            assert kernel.shape[0] % 2 == 1
            assert kernel.shape[0] == kernel.shape[1]

    def test_energy_kernel_size_follows_wavelength(self):
        low, high = create_energy_filter_bank((0.08, 0.15), 1)
        assert low.shape[0] > high.shape[0]

    def test_feature_bank(self):
        bank = create_feature_filter_bank()
        assert len(bank) == 24
        assert all(kernel.shape == (21, 21) for kernel in bank)

    def test_ridge_energy_is_normalized(self, ridge_image):
        energy = ridge_energy_map(ridge_image, create_energy_filter_bank())
        assert energy.dtype == np.uint8
        assert energy.shape == ridge_image.shape
        assert energy.max() >= 254
        assert energy.min() == 0

    def test_ridge_energy_of_blank_image_is_zero(self):
        energy = ridge_energy_map(np.zeros((64, 64), dtype=np.uint8), create_energy_filter_bank())
        assert not energy.any()


class TestRidgeEnhancer:

    def test_unsharp_mask_keeps_flat_regions(self):
        flat = np.full((32, 32), 100, dtype=np.uint8)
        assert np.array_equal(unsharp_mask(flat), flat)

    def test_extract_ridges_is_binary_and_masked(self, ridge_image):
        canvas = np.zeros((256, 256), dtype=np.uint8)
        canvas[64:192, 64:192] = np.clip(ridge_image[64:192, 64:192], 10, 255)

        ridges = RidgeEnhancer().extract_ridges(canvas)

        assert ridges.shape == canvas.shape
        assert set(np.unique(ridges)) <= {0, 255}
        assert ridges[64:192, 64:192].any()
        assert not ridges[:48].any()
        assert not ridges[:, :48].any()

    def test_presence_mask_limits_output(self, ridge_image):
        mask = np.zeros_like(ridge_image)
        mask[:, 128:] = 255

        ridges = RidgeEnhancer().extract_ridges(ridge_image, presence_mask=mask)

        assert not ridges[:, :120].any()
        assert ridges[:, 136:].any()


class TestSkeleton:

    def test_skeleton_thins_a_bar(self):
        image = np.zeros((100, 100), dtype=np.uint8)
        image[40:60, 10:90] = 255

        skeleton = skeletonize(image)

        assert skeleton.any()
        assert np.count_nonzero(skeleton) < np.count_nonzero(image) / 4
        assert not skeleton[image == 0].any()

    def test_blank_image(self):
        assert not skeletonize(np.zeros((20, 20), dtype=np.uint8)).any()

    def test_shape_touching_border_terminates(self):
        skeleton = skeletonize(np.full((30, 30), 255, dtype=np.uint8))
        assert skeleton.shape == (30, 30)


class TestToneEnhancementPipeline:

    def test_steps_and_masked_output(self, finger_photo):
        result = ToneEnhancementPipeline().enhance(finger_photo)

        assert [step.name for step in result.steps] == ["LAB L", "Tone Normalize", "CLAHE"]
        assert all(step.duration_ms >= 0 for step in result.steps)
        assert result.image.shape == finger_photo.shape[:2]
        assert result.image[240, 160] > 0

    def test_black_background_stays_black(self):
        image = np.zeros((100, 100, 3), dtype=np.uint8)
        image[30:70, 30:70] = (90, 120, 180)

        result = ToneEnhancementPipeline().enhance(image)

        assert not result.image[:30].any()
        assert not result.image[:, 70:].any()

    def test_unavailable_runtime_passes_through(self, monkeypatch, finger_photo):
        monkeypatch.setattr(runtime, "is_vision_available", lambda: False)
        result = ToneEnhancementPipeline().enhance(finger_photo)

        assert result.image is finger_photo
        assert result.steps == []

    def test_empty_image_passes_through(self):
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        result = ToneEnhancementPipeline().enhance(empty)
        assert result.image is empty
        assert result.steps == []
