"""
Feature extraction for hybrid fingerprint matching.
"""

from .extractor import (
    FeatureSet,
    extract_core_region,
    gabor_energy_features,
    texture_features,
    FeatureExtractor
)

__all__ = [
    'FeatureSet',
    'extract_core_region',
    'gabor_energy_features',
    'texture_features',
    'FeatureExtractor',
]
