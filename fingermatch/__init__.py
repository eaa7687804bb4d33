"""
fingermatch: contactless-to-contact fingerprint matching.

A photo of a finger (probe) is compared against contact-scanner
fingerprints (candidates) with a hybrid of orientation, Gabor, ridge
frequency, texture and pixel similarity on aligned ridge energy images.
Capture-time helpers segment the finger from the photo and extract
binary ridge images.
"""

__version__ = "0.1.0"

from .runtime import (
    OperationCancelledError,
    is_vision_available
)
from .preprocessing import (
    ROI,
    ImageNormalizer,
    SkinSegmenter,
    RegionRefiner,
    FingerSegmenter,
    SegmentationResult
)
from .enhancement import (
    RidgeEnhancer,
    ToneEnhancementPipeline,
    skeletonize
)
from .alignment import (
    AlignmentResult,
    Aligner
)
from .features import (
    FeatureSet,
    FeatureExtractor
)
from .matching import (
    Decision,
    MatchCandidateResult,
    MatchResult,
    BaseMatcher,
    HybridMatcher,
    NCCMatcher,
    create_matcher
)
from .utils import (
    Config,
    load_config
)

__all__ = [
    '__version__',
    # Runtime
    'OperationCancelledError',
    'is_vision_available',
    # Preprocessing
    'ROI',
    'ImageNormalizer',
    'SkinSegmenter',
    'RegionRefiner',
    'FingerSegmenter',
    'SegmentationResult',
    # Enhancement
    'RidgeEnhancer',
    'ToneEnhancementPipeline',
    'skeletonize',
    # Alignment
    'AlignmentResult',
    'Aligner',
    # Features
    'FeatureSet',
    'FeatureExtractor',
    # Matching
    'Decision',
    'MatchCandidateResult',
    'MatchResult',
    'BaseMatcher',
    'HybridMatcher',
    'NCCMatcher',
    'create_matcher',
    # Config
    'Config',
    'load_config',
]
