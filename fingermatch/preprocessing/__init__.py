"""
Preprocessing modules: canvas normalization and finger segmentation.
"""

from .normalization import (
    to_grayscale,
    to_bgr,
    letterbox,
    correct_polarity,
    adaptive_histogram_equalization,
    ImageNormalizer
)
from .skin_segmentation import (
    hsv_skin_mask,
    SkinSegmenter
)
from .region_refinement import (
    ROI,
    RefinementResult,
    SegmentationResult,
    validate_rect,
    roi_from_mask,
    RegionRefiner,
    FingerSegmenter
)

__all__ = [
    # Normalization
    'to_grayscale',
    'to_bgr',
    'letterbox',
    'correct_polarity',
    'adaptive_histogram_equalization',
    'ImageNormalizer',
    # Skin segmentation
    'hsv_skin_mask',
    'SkinSegmenter',
    # Region refinement
    'ROI',
    'RefinementResult',
    'SegmentationResult',
    'validate_rect',
    'roi_from_mask',
    'RegionRefiner',
    'FingerSegmenter',
]
