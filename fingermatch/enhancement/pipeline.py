"""
Tone-normalizing enhancement pipeline for segmented finger images.

Each step is timed so the capture screen can show where time is spent.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List

import cv2
import numpy as np

from fingermatch import runtime
from fingermatch.preprocessing.normalization import to_bgr

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnhancementStep:
    """A named pipeline step and its duration."""
    name: str
    duration_ms: float


@dataclass(frozen=True, eq=False)
class EnhancementResult:
    """
    Enhancement output.

    Attributes:
        image: Enhanced grayscale image (or the input on pass-through)
        steps: Executed steps in order
    """
    image: np.ndarray
    steps: List[EnhancementStep] = field(default_factory=list)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class ToneEnhancementPipeline:
    """
    Lightness normalization and CLAHE inside the finger mask.

    Mathematical Formulation:
    -------------------------
    On the LAB lightness channel L, restricted to the non-black mask M:

    L' = clip((L - μ_M) / (σ_M + ε) * target_std + target_mean, 0, 255)

    followed by CLAHE on L'. Pixels outside M are set to zero.
    """

    def __init__(
        self,
        target_mean: float = 128.0,
        target_std: float = 50.0,
        clahe_clip_limit: float = 2.0
    ):
        self.target_mean = target_mean
        self.target_std = target_std
        self.clahe_clip_limit = clahe_clip_limit

    def enhance(self, image: np.ndarray) -> EnhancementResult:
        """
        Enhance a segmented finger image.

        Args:
            image: BGR, BGRA or grayscale uint8 image with background zeroed

        Returns:
            EnhancementResult; the input is passed through unchanged when the
            vision runtime is unavailable or the image is empty
        """
        if not runtime.is_vision_available() or image is None or image.size == 0:
            return EnhancementResult(image=image, steps=[])

        steps = []

        start = time.perf_counter()
        bgr = to_bgr(image)
        lightness = cv2.cvtColor(bgr, cv2.COLOR_BGR2Lab)[:, :, 0]
        steps.append(EnhancementStep("LAB L", _elapsed_ms(start)))

        gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
        _, mask = cv2.threshold(gray, 1, 255, cv2.THRESH_BINARY)
        inside = mask > 0

        start = time.perf_counter()
        normalized = lightness.copy()
        if np.any(inside):
            values = lightness[inside].astype(np.float32)
            mean = float(np.mean(values))
            std = float(np.std(values)) + 1e-6
            scaled = (values - mean) / std * self.target_std + self.target_mean
            normalized[inside] = np.clip(scaled, 0, 255).astype(np.uint8)
        else:
            logger.debug("Empty finger mask, skipping tone normalization")
        steps.append(EnhancementStep("Tone Normalize", _elapsed_ms(start)))

        start = time.perf_counter()
        clahe = cv2.createCLAHE(clipLimit=self.clahe_clip_limit, tileGridSize=(8, 8))
        equalized = clahe.apply(normalized)
        steps.append(EnhancementStep("CLAHE", _elapsed_ms(start)))

        output = np.where(inside, equalized, 0).astype(np.uint8)
        return EnhancementResult(image=output, steps=steps)
