"""
Orientation field estimation for fingerprint ridge images.

This module implements block-wise gradient-based orientation estimation
with a coherence (reliability) measure per block.
"""

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Orientation Field Estimation:
# ----------------------------
# Algorithm (Gradient-Based, doubled angle):
# 1. Compute image gradients: Gx = ∂I/∂x, Gy = ∂I/∂y (Sobel 3x3)
# 2. For each block B of size w x w, compute:
#    - Vx = Σ 2 * Gx * Gy
#    - Vy = Σ (Gx² - Gy²)
# 3. Orientation: θ = 0.5 * atan2(Vx, Vy)
#
# Doubling the angle maps θ and θ + π onto the same vector, so opposite
# gradients across a ridge reinforce instead of cancelling. θ is the
# dominant gradient direction (normal to the ridges); it is stored
# modulo π.
#
# Coherence:
# ----------
#   coherence = sqrt(Vx² + Vy²) / Σ (Gx² + Gy²)
#
# 1 for perfectly parallel gradients, 0 for isotropic noise.
#
# Reference:
# Kass, M., & Witkin, A. (1987).
# "Analyzing oriented patterns." CVGIP, 37(3), 362-385.
# =============================================================================


@dataclass(frozen=True, eq=False)
class OrientationField:
    """
    Block-wise ridge orientation with per-block coherence.

    Attributes:
        angles: Dominant orientation per block, radians in [0, π)
        coherence: Reliability per block in [0, 1]
        block_size: Block side in pixels
    """
    angles: np.ndarray
    coherence: np.ndarray
    block_size: int = 16

    @property
    def shape(self) -> Tuple[int, int]:
        return self.angles.shape


def compute_gradients(image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute image gradients with 3x3 Sobel operators.

    Args:
        image: Grayscale image

    Returns:
        Tuple of (Gx, Gy) float32 gradient arrays
    """
    image = image.astype(np.float32)
    gx = cv2.Sobel(image, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(image, cv2.CV_32F, 0, 1, ksize=3)
    return gx, gy


def block_sum(values: np.ndarray, block_size: int) -> np.ndarray:
    """
    Sum values over non-overlapping blocks; partial edge blocks are dropped.

    Args:
        values: 2D array
        block_size: Block side

    Returns:
        Array of shape (H // block_size, W // block_size)
    """
    num_blocks_y = values.shape[0] // block_size
    num_blocks_x = values.shape[1] // block_size
    trimmed = values[:num_blocks_y * block_size, :num_blocks_x * block_size]
    return trimmed.reshape(
        num_blocks_y, block_size, num_blocks_x, block_size
    ).sum(axis=(1, 3), dtype=np.float64)


def estimate_orientation_field(
    image: np.ndarray,
    block_size: int = 16
) -> OrientationField:
    """
    Estimate the block orientation field and its coherence.

    Args:
        image: Grayscale ridge image
        block_size: Block size in pixels

    Returns:
        OrientationField; empty grids if the image is smaller than a block
    """
    gx, gy = compute_gradients(image)

    gxx = block_sum(gx * gx, block_size)
    gyy = block_sum(gy * gy, block_size)
    gxy = block_sum(gx * gy, block_size)

    vx = 2.0 * gxy
    vy = gxx - gyy
    angles = np.mod(0.5 * np.arctan2(vx, vy), np.pi)
    # mod can round tiny negative angles up to exactly π
    angles[angles >= np.pi] = 0.0

    energy = gxx + gyy
    coherence = np.zeros_like(energy)
    valid = energy > 1e-6
    coherence[valid] = np.sqrt(vx[valid] ** 2 + vy[valid] ** 2) / energy[valid]

    return OrientationField(
        angles=angles,
        coherence=np.clip(coherence, 0.0, 1.0),
        block_size=block_size
    )


class OrientationFieldEstimator:
    """
    Configurable orientation field estimator.
    """

    def __init__(self, block_size: int = 16):
        """
        Initialize estimator.

        Args:
            block_size: Block size for estimation
        """
        self.block_size = block_size

    def estimate(self, image: np.ndarray) -> OrientationField:
        """
        Estimate orientation field.

        Args:
            image: Grayscale ridge image

        Returns:
            OrientationField
        """
        return estimate_orientation_field(image, self.block_size)
