"""
Image alignment for fingerprint matching.
"""

from .phase_correlation import (
    AlignmentResult,
    rotate_image,
    translate_image,
    phase_correlate,
    Aligner
)

__all__ = [
    'AlignmentResult',
    'rotate_image',
    'translate_image',
    'phase_correlate',
    'Aligner',
]
