"""
Feature extraction from aligned ridge images.

Four feature families are computed on the central core region of a
ridge image: orientation field, Gabor energy statistics, ridge frequency
map and block texture statistics.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import cv2
import numpy as np

from fingermatch.enhancement.gabor_filter import create_feature_filter_bank
from fingermatch.enhancement.orientation_field import (
    OrientationField,
    estimate_orientation_field
)
from fingermatch.enhancement.ridge_frequency import estimate_frequency_map
from fingermatch.utils.config import FeatureConfig


@dataclass(frozen=True, eq=False)
class FeatureSet:
    """
    Features of one ridge image.

    Attributes:
        core: Core region the features were computed on
        orientation: Block orientation field with coherence
        gabor: Gabor energy vector (mean, std, p90 per filter)
        frequency: Block ridge frequency map
        texture: Block texture vector (mean, std, |gx|, |gy| per block)
    """
    core: np.ndarray
    orientation: OrientationField
    gabor: np.ndarray
    frequency: np.ndarray
    texture: np.ndarray


def extract_core_region(image: np.ndarray, ratio: float = 0.7) -> np.ndarray:
    """
    Crop the central region, trimming margins symmetrically.

    Args:
        image: Input image
        ratio: Fraction of each dimension to keep

    Returns:
        Core region (a copy)
    """
    h, w = image.shape[:2]
    margin_y = int((1 - ratio) * h / 2.0)
    margin_x = int((1 - ratio) * w / 2.0)
    return image[margin_y:h - margin_y, margin_x:w - margin_x].copy()


def gabor_energy_features(
    image: np.ndarray,
    kernels: Sequence[np.ndarray]
) -> np.ndarray:
    """
    Gabor response statistics.

    For every filter the mean response, its standard deviation and the
    90th percentile of the absolute response are recorded.

    Args:
        image: Grayscale image
        kernels: Filter bank

    Returns:
        Feature vector of length 3 * len(kernels)
    """
    image = image.astype(np.float32)
    features = np.zeros(3 * len(kernels))

    if image.size == 0:
        return features

    for i, kernel in enumerate(kernels):
        response = cv2.filter2D(image, cv2.CV_32F, kernel)
        features[3 * i] = float(np.mean(response))
        features[3 * i + 1] = float(np.std(response))
        features[3 * i + 2] = float(np.percentile(np.abs(response), 90))

    return features


def texture_features(image: np.ndarray, grid: int = 4) -> np.ndarray:
    """
    Block texture statistics on a grid x grid partition.

    Per block: mean intensity, standard deviation, mean absolute
    horizontal gradient and mean absolute vertical gradient.

    Args:
        image: Grayscale image
        grid: Number of blocks per side

    Returns:
        Feature vector of length 4 * grid * grid
    """
    h, w = image.shape[:2]
    block_h = h // grid
    block_w = w // grid
    features = np.zeros(4 * grid * grid)

    if block_h == 0 or block_w == 0:
        return features

    image = image.astype(np.float32)
    for j in range(grid):
        for i in range(grid):
            block = image[j*block_h:(j+1)*block_h, i*block_w:(i+1)*block_w]
            gx = cv2.Sobel(block, cv2.CV_32F, 1, 0, ksize=3)
            gy = cv2.Sobel(block, cv2.CV_32F, 0, 1, ksize=3)

            offset = 4 * (j * grid + i)
            features[offset] = float(np.mean(block))
            features[offset + 1] = float(np.std(block))
            features[offset + 2] = float(np.mean(np.abs(gx)))
            features[offset + 3] = float(np.mean(np.abs(gy)))

    return features


class FeatureExtractor:
    """
    Extract all feature families from the core of a ridge image.

    Two FeatureSets are only comparable when produced by extractors with
    identical parameters.
    """

    def __init__(
        self,
        core_ratio: float = 0.7,
        orientation_block_size: int = 16,
        frequency_block_size: int = 32,
        gabor_frequencies: Sequence[float] = (0.08, 0.10, 0.13),
        gabor_orientations: int = 8,
        gabor_kernel_size: int = 21,
        gabor_sigma: float = 3.5,
        texture_grid: int = 4,
        peak_min_distance: int = 3,
        peak_height_ratio: float = 0.3
    ):
        """
        Initialize extractor.

        Args:
            core_ratio: Fraction of each dimension kept as core region
            orientation_block_size: Orientation field block size
            frequency_block_size: Frequency map block size
            gabor_frequencies: Gabor feature bank frequencies
            gabor_orientations: Gabor feature bank orientations
            gabor_kernel_size: Gabor feature kernel size
            gabor_sigma: Gabor feature envelope sigma
            texture_grid: Texture grid side
            peak_min_distance: Minimum peak separation for frequency
            peak_height_ratio: Minimum peak height relative to profile std
        """
        self.core_ratio = core_ratio
        self.orientation_block_size = orientation_block_size
        self.frequency_block_size = frequency_block_size
        self.gabor_kernels = create_feature_filter_bank(
            gabor_frequencies, gabor_orientations, gabor_sigma, gabor_kernel_size
        )
        self.texture_grid = texture_grid
        self.peak_min_distance = peak_min_distance
        self.peak_height_ratio = peak_height_ratio

    @classmethod
    def from_config(cls, config: Optional[FeatureConfig] = None) -> "FeatureExtractor":
        config = config or FeatureConfig()
        return cls(
            core_ratio=config.core_ratio,
            orientation_block_size=config.orientation_block_size,
            frequency_block_size=config.frequency_block_size,
            gabor_frequencies=config.gabor_frequencies,
            gabor_orientations=config.gabor_orientations,
            gabor_kernel_size=config.gabor_kernel_size,
            gabor_sigma=config.gabor_sigma,
            texture_grid=config.texture_grid,
            peak_min_distance=config.peak_min_distance,
            peak_height_ratio=config.peak_height_ratio,
        )

    def extract(self, ridge_image: np.ndarray) -> FeatureSet:
        """
        Extract features from the core region of a ridge image.

        Args:
            ridge_image: Aligned ridge image (uint8)

        Returns:
            FeatureSet
        """
        core = extract_core_region(ridge_image, self.core_ratio)
        orientation = estimate_orientation_field(core, self.orientation_block_size)

        return FeatureSet(
            core=core,
            orientation=orientation,
            gabor=gabor_energy_features(core, self.gabor_kernels),
            frequency=estimate_frequency_map(
                core, orientation, self.frequency_block_size,
                self.peak_min_distance, self.peak_height_ratio
            ),
            texture=texture_features(core, self.texture_grid),
        )
