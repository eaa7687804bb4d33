"""
Shared synthetic fixtures.

All test images are generated in memory; no binary assets are needed.
"""

import cv2
import numpy as np
import pytest


SKIN_BGR = (120, 160, 210)


@pytest.fixture
def ridge_image():
    """
    256x256 curved ridge pattern, about 10 px ridge spacing.

    The quadratic phase term bends the ridges so the pattern is neither
    periodic along y nor rotation symmetric. Mean intensity stays below
    the polarity threshold.
    """
    y, x = np.mgrid[0:256, 0:256].astype(np.float64)
    phase = 2 * np.pi * (0.1 * x + 0.0008 * (y - 128) ** 2)
    return (100 + 100 * np.sin(phase)).astype(np.uint8)


@pytest.fixture
def texture_image():
    """256x256 smooth random texture with a broad spectrum."""
    rng = np.random.default_rng(7)
    noise = rng.uniform(0, 255, size=(256, 256)).astype(np.float32)
    smooth = cv2.GaussianBlur(noise, (0, 0), 3)
    return cv2.normalize(smooth, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)


@pytest.fixture
def vertical_stripes():
    """64x64 vertical stripes with an 8 px period."""
    x = np.arange(64, dtype=np.float64)
    row = 127 + 100 * np.cos(2 * np.pi * x / 8)
    return np.tile(row, (64, 1)).astype(np.uint8)


@pytest.fixture
def finger_photo():
    """
    480x320 BGR photo: a skin-coloured upright ellipse on a dark,
    slightly noisy background.
    """
    rng = np.random.default_rng(3)
    image = np.zeros((480, 320, 3), dtype=np.uint8)
    cv2.ellipse(image, (160, 240), (70, 150), 0, 0, 360, SKIN_BGR, thickness=-1)
    noise = rng.normal(0, 5, size=image.shape)
    return np.clip(image.astype(np.float64) + noise, 0, 255).astype(np.uint8)
