"""
Fingerprint matchers, similarity measures and the matcher registry.
"""

from .interface import (
    Decision,
    MatchCandidateResult,
    MatchResult,
    BaseMatcher
)
from .similarity import (
    orientation_similarity,
    vector_similarity,
    frequency_similarity,
    pixel_similarity
)
from .hybrid_matcher import HybridMatcher
from .ncc_matcher import (
    compute_ncc,
    NCCMatcher
)
from .registry import (
    MatcherInfo,
    MatcherRegistry,
    get_registry,
    create_matcher
)

__all__ = [
    # Interface
    'Decision',
    'MatchCandidateResult',
    'MatchResult',
    'BaseMatcher',
    # Similarity
    'orientation_similarity',
    'vector_similarity',
    'frequency_similarity',
    'pixel_similarity',
    # Matchers
    'HybridMatcher',
    'compute_ncc',
    'NCCMatcher',
    # Registry
    'MatcherInfo',
    'MatcherRegistry',
    'get_registry',
    'create_matcher',
]
