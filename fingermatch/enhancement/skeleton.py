"""
Morphological skeletonization of binary ridge images.
"""

import cv2
import numpy as np


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Morphological skeleton (Lantuéjoul):
# -----------------------------------
# S(X) = ∪_k [ (X ⊖ kB) − (X ⊖ kB) ∘ B ]
#
# Each iteration erodes the shape once and keeps the pixels that an
# opening with B would remove. Iteration stops when the erosion is empty.
# Unlike Zhang-Suen thinning the result is not guaranteed to be
# 8-connected, which is acceptable for display.
# =============================================================================


def skeletonize(image: np.ndarray) -> np.ndarray:
    """
    Reduce ridges to a morphological skeleton.

    Args:
        image: Grayscale uint8 ridge image (ridges bright)

    Returns:
        Skeleton as binary uint8 image (255 = skeleton)
    """
    if image.size == 0:
        return np.zeros_like(image, dtype=np.uint8)

    _, binary = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    skeleton = np.zeros_like(binary)
    element = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))

    while cv2.countNonZero(binary) > 0:
        # Zero border so that shapes touching the frame edge still vanish
        eroded = cv2.erode(binary, element, borderType=cv2.BORDER_CONSTANT, borderValue=0)
        opened = cv2.dilate(eroded, element)
        skeleton = cv2.bitwise_or(skeleton, cv2.subtract(binary, opened))
        binary = eroded

    return skeleton
