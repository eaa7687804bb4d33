"""
Gabor-bank ridge enhancement.

Produces the two ridge representations used by the engine: a
continuous ridge energy map (matching) and a cleaned binary ridge image
(display and skeletonization).
"""

from typing import Optional, Sequence

import cv2
import numpy as np

from fingermatch.enhancement.gabor_filter import (
    create_energy_filter_bank,
    ridge_energy_map
)
from fingermatch.utils.config import RidgeConfig


def unsharp_mask(image: np.ndarray, amount: float = 1.6, ksize: int = 5) -> np.ndarray:
    """
    Sharpen ridge edges: amount * I - (amount - 1) * G(I).

    Args:
        image: Grayscale uint8 image
        amount: Sharpening factor (1.0 = no change)
        ksize: Gaussian blur kernel size

    Returns:
        Sharpened uint8 image
    """
    blur = cv2.GaussianBlur(image, (ksize, ksize), 0)
    return cv2.addWeighted(image, amount, blur, -(amount - 1.0), 0)


def non_black_mask(gray: np.ndarray) -> np.ndarray:
    """Mask of pixels brighter than 1 (letterbox padding excluded)."""
    _, mask = cv2.threshold(gray, 1, 255, cv2.THRESH_BINARY)
    return mask


class RidgeEnhancer:
    """
    Ridge extraction with an exhaustive Gabor filter bank.
    """

    def __init__(
        self,
        energy_frequencies: Sequence[float] = (0.08, 0.10, 0.12, 0.15),
        energy_orientations: int = 12,
        clahe_clip_limit: float = 2.0,
        sharpen_factor: float = 1.6,
        threshold_block_size: int = 15,
        threshold_offset: float = -3.0
    ):
        """
        Initialize enhancer.

        Args:
            energy_frequencies: Bank frequencies (cycles per pixel)
            energy_orientations: Bank orientations over [0, π)
            clahe_clip_limit: CLAHE clip limit before sharpening
            sharpen_factor: Unsharp mask amount
            threshold_block_size: Adaptive threshold neighbourhood (odd)
            threshold_offset: Adaptive threshold constant (negative keeps
                only pixels brighter than the local mean)
        """
        self.kernels = create_energy_filter_bank(energy_frequencies, energy_orientations)
        self.clahe_clip_limit = clahe_clip_limit
        self.sharpen_factor = sharpen_factor
        self.threshold_block_size = threshold_block_size
        self.threshold_offset = threshold_offset

    @classmethod
    def from_config(cls, config: Optional[RidgeConfig] = None) -> "RidgeEnhancer":
        config = config or RidgeConfig()
        return cls(
            energy_frequencies=config.energy_frequencies,
            energy_orientations=config.energy_orientations,
            clahe_clip_limit=config.clahe_clip_limit,
            sharpen_factor=config.sharpen_factor,
            threshold_block_size=config.threshold_block_size,
            threshold_offset=config.threshold_offset,
        )

    def ridge_energy(self, gray: np.ndarray) -> np.ndarray:
        """
        Orientation- and frequency-agnostic ridge energy.

        Args:
            gray: Normalized grayscale uint8 image

        Returns:
            Ridge energy map, uint8 [0, 255]
        """
        return ridge_energy_map(gray, self.kernels)

    def extract_ridges(
        self,
        gray: np.ndarray,
        presence_mask: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Extract a binary ridge image.

        Args:
            gray: Normalized grayscale uint8 image
            presence_mask: Optional finger mask; defaults to the non-black
                pixels of the input

        Returns:
            Binary uint8 image (255 = ridge)
        """
        if presence_mask is None:
            mask = non_black_mask(gray)
        else:
            mask = np.where(presence_mask > 0, 255, 0).astype(np.uint8)

        clahe = cv2.createCLAHE(clipLimit=self.clahe_clip_limit, tileGridSize=(8, 8))
        enhanced = clahe.apply(gray)
        sharp = unsharp_mask(enhanced, self.sharpen_factor)
        sharp = cv2.bitwise_and(sharp, sharp, mask=mask)

        energy = self.ridge_energy(sharp)
        ridges = cv2.adaptiveThreshold(
            energy, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY,
            self.threshold_block_size, self.threshold_offset
        )
        ridges = cv2.bitwise_and(ridges, ridges, mask=mask)
        ridges = cv2.medianBlur(ridges, 3)

        kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (3, 3))
        return cv2.morphologyEx(ridges, cv2.MORPH_OPEN, kernel)
