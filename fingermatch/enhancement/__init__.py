"""
Fingerprint enhancement modules.

This package provides the ridge-level algorithms:
- Gabor filter banks and ridge energy
- Binary ridge extraction and skeletonization
- Orientation field estimation with coherence
- Ridge frequency estimation
- Tone-normalizing enhancement pipeline
"""

from .gabor_filter import (
    create_gabor_kernel,
    create_energy_filter_bank,
    create_feature_filter_bank,
    ridge_energy_map
)
from .ridge_enhancer import (
    unsharp_mask,
    RidgeEnhancer
)
from .skeleton import skeletonize
from .orientation_field import (
    OrientationField,
    compute_gradients,
    estimate_orientation_field,
    OrientationFieldEstimator
)
from .ridge_frequency import (
    derotate_block,
    find_ridge_peaks,
    estimate_frequency_block,
    estimate_frequency_map,
    RidgeFrequencyEstimator
)
from .pipeline import (
    EnhancementStep,
    EnhancementResult,
    ToneEnhancementPipeline
)

__all__ = [
    # Gabor filter
    'create_gabor_kernel',
    'create_energy_filter_bank',
    'create_feature_filter_bank',
    'ridge_energy_map',
    # Ridge extraction
    'unsharp_mask',
    'RidgeEnhancer',
    'skeletonize',
    # Orientation field
    'OrientationField',
    'compute_gradients',
    'estimate_orientation_field',
    'OrientationFieldEstimator',
    # Ridge frequency
    'derotate_block',
    'find_ridge_peaks',
    'estimate_frequency_block',
    'estimate_frequency_map',
    'RidgeFrequencyEstimator',
    # Pipeline
    'EnhancementStep',
    'EnhancementResult',
    'ToneEnhancementPipeline',
]
