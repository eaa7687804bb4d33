"""
Image normalization for fingerprint matching.

This module brings every probe and candidate image onto a common
grayscale canvas so that later stages can compare them block by block.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from fingermatch.utils.config import NormalizationConfig


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Letterbox normalization:
# -----------------------
# Given an input of size W x H and a square canvas of side S:
#
#   scale = min(S / W, S / H)
#   W' = max(1, floor(W * scale)),  H' = max(1, floor(H * scale))
#
# The resized image is centred on a zero-filled S x S canvas. Using a
# single scale factor keeps the ridge spacing isotropic, which matters
# for the frequency and orientation features.
#
# Polarity:
# ---------
# Contact sensors produce dark ridges on a light background while the
# camera produces the opposite. A contact sample whose canvas mean is
# above the polarity threshold is inverted: I' = 255 - I.
# =============================================================================


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to single-channel uint8 grayscale.

    Accepts grayscale, BGR and BGRA arrays. Float images are assumed to be
    in [0, 1].

    Args:
        image: Input image

    Returns:
        Grayscale uint8 image

    Raises:
        ValueError: If the channel layout is not supported
    """
    if image.dtype != np.uint8:
        image = (image.astype(np.float32) * 255).clip(0, 255).astype(np.uint8)

    if image.ndim == 2:
        return image.copy()
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0].copy()
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)

    raise ValueError(f"Unsupported image shape: {image.shape}")


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to 3-channel uint8 BGR.

    Args:
        image: Grayscale, BGR or BGRA image

    Returns:
        BGR uint8 image
    """
    if image.dtype != np.uint8:
        image = (image.astype(np.float32) * 255).clip(0, 255).astype(np.uint8)

    if image.ndim == 2 or (image.ndim == 3 and image.shape[2] == 1):
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image.copy()
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    raise ValueError(f"Unsupported image shape: {image.shape}")


def letterbox(
    gray: np.ndarray,
    canvas_size: int = 256
) -> Tuple[np.ndarray, Tuple[int, int, int, int]]:
    """
    Resize preserving aspect ratio and centre on a black square canvas.

    Args:
        gray: Grayscale uint8 image
        canvas_size: Side of the output canvas

    Returns:
        Tuple of (canvas, placement) where placement is (x, y, width, height)
        of the resized image on the canvas
    """
    h, w = gray.shape[:2]
    canvas = np.zeros((canvas_size, canvas_size), dtype=np.uint8)

    if h == 0 or w == 0:
        return canvas, (0, 0, 0, 0)

    scale = min(canvas_size / w, canvas_size / h)
    new_w = min(canvas_size, max(1, int(w * scale)))
    new_h = min(canvas_size, max(1, int(h * scale)))

    resized = cv2.resize(gray, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    pad_x = (canvas_size - new_w) // 2
    pad_y = (canvas_size - new_h) // 2
    canvas[pad_y:pad_y+new_h, pad_x:pad_x+new_w] = resized

    return canvas, (pad_x, pad_y, new_w, new_h)


def correct_polarity(gray: np.ndarray, threshold: float = 127.0) -> np.ndarray:
    """
    Invert an image whose mean intensity exceeds the threshold.

    Args:
        gray: Grayscale uint8 image
        threshold: Mean intensity above which the image is inverted

    Returns:
        Possibly inverted image
    """
    if gray.size and float(np.mean(gray)) > threshold:
        return cv2.bitwise_not(gray)
    return gray


def adaptive_histogram_equalization(
    gray: np.ndarray,
    clip_limit: float = 3.0,
    tile_size: Tuple[int, int] = (8, 8)
) -> np.ndarray:
    """
    Apply Contrast Limited Adaptive Histogram Equalization (CLAHE).

    Mathematical Formulation:
    -------------------------
    CLAHE divides image into tiles and equalizes each separately:

    1. For each tile, compute histogram H(k)
    2. Clip histogram: H'(k) = min(H(k), clip_limit * N / num_bins)
    3. Redistribute clipped pixels uniformly
    4. Compute CDF and apply equalization
    5. Interpolate at tile boundaries

    Args:
        gray: Grayscale uint8 image
        clip_limit: Threshold for contrast limiting
        tile_size: Grid of tiles for local equalization

    Returns:
        Equalized uint8 image
    """
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=tuple(tile_size))
    return clahe.apply(gray)


class ImageNormalizer:
    """
    Normalize raw captures onto a fixed grayscale canvas.

    Pipeline:
    1. Grayscale conversion
    2. Aspect-preserving resize and letterbox padding
    3. Polarity correction (contact samples only)
    4. Local contrast equalization
    """

    def __init__(
        self,
        canvas_size: int = 256,
        clahe_clip_limit: float = 3.0,
        clahe_tile_size: Tuple[int, int] = (8, 8),
        polarity_threshold: float = 127.0
    ):
        """
        Initialize the normalizer.

        Args:
            canvas_size: Side of the square output canvas
            clahe_clip_limit: CLAHE clip limit
            clahe_tile_size: CLAHE tile grid
            polarity_threshold: Mean intensity above which contact samples
                are inverted
        """
        self.canvas_size = canvas_size
        self.clahe_clip_limit = clahe_clip_limit
        self.clahe_tile_size = tuple(clahe_tile_size)
        self.polarity_threshold = polarity_threshold

    @classmethod
    def from_config(cls, config: Optional[NormalizationConfig] = None) -> "ImageNormalizer":
        config = config or NormalizationConfig()
        return cls(
            canvas_size=config.canvas_size,
            clahe_clip_limit=config.clahe_clip_limit,
            clahe_tile_size=config.clahe_tile_size,
            polarity_threshold=config.polarity_threshold,
        )

    def normalize(self, image: np.ndarray, is_contact_sample: bool = False) -> np.ndarray:
        """
        Normalize an image to the canvas.

        Args:
            image: Grayscale, BGR or BGRA image
            is_contact_sample: Whether the image comes from a contact
                sensor (enables polarity correction)

        Returns:
            uint8 image of shape (canvas_size, canvas_size)
        """
        if image is None or image.size == 0:
            return np.zeros((self.canvas_size, self.canvas_size), dtype=np.uint8)

        gray = to_grayscale(image)
        canvas, _ = letterbox(gray, self.canvas_size)

        if is_contact_sample:
            canvas = correct_polarity(canvas, self.polarity_threshold)

        return adaptive_histogram_equalization(
            canvas, self.clahe_clip_limit, self.clahe_tile_size
        )

    def __call__(self, image: np.ndarray, is_contact_sample: bool = False) -> np.ndarray:
        return self.normalize(image, is_contact_sample)
