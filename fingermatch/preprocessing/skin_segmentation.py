"""
Colour-space skin segmentation.

Produces the permissive coarse finger mask that seeds graph-cut
refinement. Recall is favoured over precision; the refiner removes
background that slips through.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from fingermatch.utils.config import SegmentationConfig


def hsv_skin_mask(
    bgr: np.ndarray,
    lower: Tuple[int, int, int] = (0, 40, 80),
    upper: Tuple[int, int, int] = (20, 160, 255)
) -> np.ndarray:
    """
    Threshold skin tones in HSV space.

    Hue is in OpenCV units (0-179, i.e. degrees / 2); the default range
    0-20 covers reddish to yellowish skin.

    Args:
        bgr: BGR uint8 image
        lower: Inclusive lower (H, S, V) bound
        upper: Inclusive upper (H, S, V) bound

    Returns:
        Binary mask (255 = skin)
    """
    hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
    return cv2.inRange(hsv, np.array(lower, dtype=np.uint8), np.array(upper, dtype=np.uint8))


class SkinSegmenter:
    """
    HSV skin segmenter with morphological speckle removal.
    """

    def __init__(
        self,
        hsv_lower: Tuple[int, int, int] = (0, 40, 80),
        hsv_upper: Tuple[int, int, int] = (20, 160, 255),
        kernel_size: int = 9,
        iterations: int = 2
    ):
        """
        Initialize the segmenter.

        Args:
            hsv_lower: Lower HSV bound
            hsv_upper: Upper HSV bound
            kernel_size: Elliptical structuring element size
            iterations: Number of opening and of closing iterations
        """
        self.hsv_lower = tuple(hsv_lower)
        self.hsv_upper = tuple(hsv_upper)
        self.kernel = cv2.getStructuringElement(
            cv2.MORPH_ELLIPSE, (kernel_size, kernel_size)
        )
        self.iterations = iterations

    @classmethod
    def from_config(cls, config: Optional[SegmentationConfig] = None) -> "SkinSegmenter":
        config = config or SegmentationConfig()
        return cls(
            hsv_lower=config.hsv_lower,
            hsv_upper=config.hsv_upper,
            kernel_size=config.skin_kernel_size,
            iterations=config.skin_iterations,
        )

    def segment(self, bgr: np.ndarray) -> np.ndarray:
        """
        Compute the coarse skin mask.

        Args:
            bgr: BGR uint8 image

        Returns:
            Binary mask with the same height and width as the input
        """
        mask = hsv_skin_mask(bgr, self.hsv_lower, self.hsv_upper)
        # Opening removes speckle, closing fills pores and small gaps
        mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, self.kernel, iterations=self.iterations)
        mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, self.kernel, iterations=self.iterations)
        return mask
