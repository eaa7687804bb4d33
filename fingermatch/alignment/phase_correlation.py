"""
Rotation and translation alignment of ridge images.

A target image is registered onto a reference by a greedy search over a
small set of rotation angles, scoring each angle by the phase
correlation peak, followed by a translation correction.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from fingermatch.utils.config import AlignmentConfig

logger = logging.getLogger(__name__)


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Phase Correlation:
# -----------------
# If t(x) = r(x - d), the Fourier transforms satisfy
#   T(k) = R(k) * exp(-2πi k·d)
#
# The normalized cross-power spectrum
#   C(k) = R(k) * conj(T(k)) / |R(k) * conj(T(k))| = exp(2πi k·d)
#
# has an inverse transform that is a delta at -d (modulo the image size).
# The peak height is 1 for a pure translation and drops as the images
# decorrelate, so it doubles as an alignment confidence.
#
# Both images are multiplied by a Hann window before the transform. The
# FFT treats the image as periodic, so the frame edges and the black
# corners left by a rotation would otherwise correlate as strongly as the
# ridges and produce false peaks on the axes.
#
# Peak coordinates p are wrapped into [-N/2, N/2) and the displacement of
# the target relative to the reference is d = -p.
#
# Reference:
# Kuglin, C. D., & Hines, D. C. (1975).
# "The phase correlation image alignment method."
# Proc. IEEE Int. Conf. Cybernetics and Society, 163-165.
# =============================================================================


@dataclass(frozen=True, eq=False)
class AlignmentResult:
    """
    Result of aligning a target image onto a reference.

    Attributes:
        image: Aligned target, same size as the reference
        angle: Rotation applied to the target (degrees, counter-clockwise)
        shift: (dx, dy) displacement of the rotated target relative to
            the reference; the inverse translation has been applied
        response: Phase correlation peak at the chosen angle
    """
    image: np.ndarray
    angle: float
    shift: Tuple[int, int]
    response: float


def rotate_image(image: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate an image about its centre, keeping its size.

    Args:
        image: Input image
        angle: Rotation in degrees (positive = counter-clockwise)

    Returns:
        Rotated image; uncovered corners are black
    """
    h, w = image.shape[:2]
    matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
    return cv2.warpAffine(image, matrix, (w, h))


def translate_image(image: np.ndarray, dx: float, dy: float) -> np.ndarray:
    """Shift an image by (dx, dy) pixels, filling with black."""
    h, w = image.shape[:2]
    matrix = np.float32([[1, 0, dx], [0, 1, dy]])
    return cv2.warpAffine(image, matrix, (w, h))


def _wrap(index: int, size: int) -> int:
    return index - size if index > size // 2 else index


def phase_correlate(
    reference: np.ndarray,
    target: np.ndarray,
    eps: float = 1e-10,
    window: bool = True
) -> Tuple[Tuple[int, int], float]:
    """
    Estimate the translation of target relative to reference.

    Args:
        reference: Reference image
        target: Target image of the same shape
        eps: Floor for the cross-power magnitude
        window: Apply a Hann window before the transform

    Returns:
        ((dx, dy), response) where target ≈ reference shifted by (dx, dy)
        and response is the correlation peak value
    """
    if reference.shape != target.shape:
        raise ValueError(
            f"Shape mismatch: {reference.shape} vs {target.shape}"
        )

    reference = reference.astype(np.float64)
    target = target.astype(np.float64)
    if window:
        h, w = reference.shape[:2]
        hann = cv2.createHanningWindow((w, h), cv2.CV_64F)
        reference = reference * hann
        target = target * hann

    f_ref = np.fft.fft2(reference)
    f_tgt = np.fft.fft2(target)

    cross_power = f_ref * np.conj(f_tgt)
    cross_power /= np.maximum(np.abs(cross_power), eps)

    correlation = np.real(np.fft.ifft2(cross_power))
    peak_y, peak_x = np.unravel_index(np.argmax(correlation), correlation.shape)

    h, w = correlation.shape
    dx = -_wrap(int(peak_x), w)
    dy = -_wrap(int(peak_y), h)

    return (dx, dy), float(correlation[peak_y, peak_x])


class Aligner:
    """
    Greedy rotation search plus phase correlation translation.

    Usage:
    ------
    aligner = Aligner()
    result = aligner.align(reference, target)
    aligned = result.image
    """

    def __init__(self, max_angle: float = 20.0, angle_step: float = 4.0):
        """
        Initialize aligner.

        Args:
            max_angle: Largest rotation tried in either direction (degrees)
            angle_step: Step between tried angles (degrees)
        """
        if angle_step <= 0:
            raise ValueError(f"angle_step must be positive, got {angle_step}")

        self.max_angle = max_angle
        self.angle_step = angle_step
        self.angles = np.arange(-max_angle, max_angle + angle_step / 2.0, angle_step)

    @classmethod
    def from_config(cls, config: Optional[AlignmentConfig] = None) -> "Aligner":
        config = config or AlignmentConfig()
        return cls(max_angle=config.max_angle, angle_step=config.angle_step)

    def align(self, reference: np.ndarray, target: np.ndarray) -> AlignmentResult:
        """
        Align target onto reference.

        Args:
            reference: Reference image
            target: Image to be aligned; resized to the reference if needed

        Returns:
            AlignmentResult
        """
        h, w = reference.shape[:2]
        if target.shape[:2] != (h, w):
            target = cv2.resize(target, (w, h), interpolation=cv2.INTER_LINEAR)

        best_angle = 0.0
        best_response = -np.inf
        for angle in self.angles:
            _, response = phase_correlate(reference, rotate_image(target, float(angle)))
            if response > best_response:
                best_response = response
                best_angle = float(angle)

        rotated = rotate_image(target, best_angle)
        (dx, dy), response = phase_correlate(reference, rotated)
        aligned = translate_image(rotated, -dx, -dy)

        logger.debug(
            f"Aligned at {best_angle:+.1f} deg, shift ({dx}, {dy}), "
            f"response {response:.3f}"
        )

        return AlignmentResult(
            image=aligned,
            angle=best_angle,
            shift=(dx, dy),
            response=response
        )
