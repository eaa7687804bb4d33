"""
Gabor filter banks for ridge enhancement and texture features.

This module builds orientation/frequency filter banks with OpenCV and
reduces their responses to an orientation-agnostic ridge energy map.
"""

from typing import List, Sequence

import cv2
import numpy as np


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Gabor Filter:
# -------------
# A Gabor filter is a sinusoidal wave modulated by a Gaussian envelope.
# It's optimal for detecting oriented features at a specific frequency.
#
# 2D Gabor kernel:
# g(x, y; θ, λ, σ, γ) = exp(-(x'² + γ²y'²) / 2σ²) * cos(2π x'/λ)
#
# where:
#   x' = x*cos(θ) + y*sin(θ)
#   y' = -x*sin(θ) + y*cos(θ)
#   λ = 1/f (wavelength in pixels)
#   γ = spatial aspect ratio of the envelope
#
# Ridge energy:
# -------------
# Without knowing the local orientation or ridge spacing, the bank is
# applied exhaustively and each pixel keeps the strongest response:
#
#   E(x, y) = max_{f, θ} |I * g_{f,θ}|(x, y)
#
# Reference:
# Hong, L., Wan, Y., & Jain, A. (1998).
# "Fingerprint image enhancement: algorithm and performance evaluation."
# IEEE TPAMI, 20(8), 777-789.
# =============================================================================


def create_gabor_kernel(
    orientation: float,
    frequency: float,
    sigma: float,
    kernel_size: int,
    gamma: float = 0.5,
    psi: float = 0.0
) -> np.ndarray:
    """
    Create a single float32 Gabor kernel.

    Args:
        orientation: Filter orientation (radians)
        frequency: Spatial frequency (cycles per pixel)
        sigma: Gaussian envelope sigma
        kernel_size: Kernel side (forced odd)
        gamma: Envelope aspect ratio
        psi: Phase offset

    Returns:
        Gabor kernel as 2D float32 array
    """
    kernel_size = int(kernel_size) | 1
    return cv2.getGaborKernel(
        (kernel_size, kernel_size), sigma, orientation, 1.0 / frequency,
        gamma, psi, ktype=cv2.CV_32F
    )


def bank_orientations(num_orientations: int) -> np.ndarray:
    """Evenly spaced orientations over [0, π)."""
    return np.arange(num_orientations) * np.pi / num_orientations


def create_energy_filter_bank(
    frequencies: Sequence[float] = (0.08, 0.10, 0.12, 0.15),
    num_orientations: int = 12
) -> List[np.ndarray]:
    """
    Create the multi-frequency bank used for ridge energy.

    The envelope scales with the wavelength: σ = 1 / (1.5 f), kernel
    side = 6σ.

    Args:
        frequencies: Spatial frequencies (cycles per pixel)
        num_orientations: Number of orientations over [0, π)

    Returns:
        List of Gabor kernels
    """
    kernels = []

    for frequency in frequencies:
        sigma = 1.0 / frequency / 1.5
        kernel_size = int(sigma * 6)
        for orientation in bank_orientations(num_orientations):
            kernels.append(create_gabor_kernel(orientation, frequency, sigma, kernel_size))

    return kernels


def create_feature_filter_bank(
    frequencies: Sequence[float] = (0.08, 0.10, 0.13),
    num_orientations: int = 8,
    sigma: float = 3.5,
    kernel_size: int = 21
) -> List[np.ndarray]:
    """
    Create the fixed-envelope bank used for Gabor texture features.

    Kernels are ordered frequency-major, orientation-minor.

    Args:
        frequencies: Spatial frequencies (cycles per pixel)
        num_orientations: Number of orientations over [0, π)
        sigma: Gaussian envelope sigma
        kernel_size: Kernel side

    Returns:
        List of Gabor kernels
    """
    return [
        create_gabor_kernel(orientation, frequency, sigma, kernel_size)
        for frequency in frequencies
        for orientation in bank_orientations(num_orientations)
    ]


def ridge_energy_map(image: np.ndarray, kernels: Sequence[np.ndarray]) -> np.ndarray:
    """
    Per-pixel maximum absolute response over a filter bank.

    Args:
        image: Grayscale image
        kernels: Filter bank

    Returns:
        Ridge energy normalized to uint8 [0, 255]
    """
    image = image.astype(np.float32)
    energy = np.zeros(image.shape[:2], dtype=np.float32)

    for kernel in kernels:
        response = cv2.filter2D(image, cv2.CV_32F, kernel)
        np.maximum(energy, np.abs(response), out=energy)

    return cv2.normalize(energy, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
