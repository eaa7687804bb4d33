"""
Hybrid multi-feature fingerprint matcher.

Compares a contactless probe photo with contact-scanner candidates by
fusing five complementary similarities computed on aligned ridge energy
images: orientation field, Gabor energy, ridge frequency, block texture
and raw pixel correlation.

Pipeline per candidate:
----------------------
1. Normalize to a 256x256 letterboxed canvas (contact samples are
   polarity-corrected)
2. Ridge energy map from a multi-scale Gabor bank
3. Align the candidate onto the probe (rotation search + phase correlation)
4. Extract features from the central core region
5. Weighted fusion of the similarities, scaled to [0, 100]
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from fingermatch.alignment.phase_correlation import Aligner
from fingermatch.enhancement.ridge_enhancer import RidgeEnhancer
from fingermatch.features.extractor import FeatureExtractor, FeatureSet
from fingermatch.matching.interface import BaseMatcher
from fingermatch.matching.similarity import (
    frequency_similarity,
    orientation_similarity,
    pixel_similarity,
    vector_similarity
)
from fingermatch.preprocessing.normalization import ImageNormalizer
from fingermatch.utils.config import Config, ScoringConfig


DEFAULT_WEIGHTS = dict(ScoringConfig().weights)


@dataclass(frozen=True, eq=False)
class ProbeState:
    """Probe representation shared by all candidate comparisons."""
    ridges: np.ndarray
    features: FeatureSet


class HybridMatcher(BaseMatcher):
    """
    Weighted fusion of orientation, Gabor, frequency, texture and pixel
    similarity.

    Usage:
    ------
    matcher = HybridMatcher.from_config(load_config("configs/default.yaml"))
    result = matcher.match(probe, {"alice": img_a, "bob": img_b})
    print(result.best.candidate_id, result.best.decision)
    """

    def __init__(
        self,
        normalizer: Optional[ImageNormalizer] = None,
        enhancer: Optional[RidgeEnhancer] = None,
        aligner: Optional[Aligner] = None,
        extractor: Optional[FeatureExtractor] = None,
        weights: Optional[Mapping[str, float]] = None,
        min_coherence: float = 0.2,
        match_threshold: float = 58.0,
        uncertain_threshold: float = 45.0,
        num_workers: Optional[int] = None
    ):
        """
        Initialize hybrid matcher.

        Args:
            normalizer: Canvas normalizer
            enhancer: Ridge energy extractor
            aligner: Candidate-to-probe aligner
            extractor: Core feature extractor
            weights: Fusion weight per feature name
            min_coherence: Orientation block coherence cutoff
            match_threshold: Lowest score classified MATCH
            uncertain_threshold: Lowest score classified UNCERTAIN
            num_workers: Worker threads (None = one per CPU)
        """
        super().__init__(match_threshold, uncertain_threshold, num_workers)

        weights = dict(DEFAULT_WEIGHTS if weights is None else weights)
        if set(weights) != set(DEFAULT_WEIGHTS):
            raise ValueError(
                f"Weights must cover exactly {sorted(DEFAULT_WEIGHTS)}, "
                f"got {sorted(weights)}"
            )

        self.normalizer = normalizer or ImageNormalizer()
        self.enhancer = enhancer or RidgeEnhancer()
        self.aligner = aligner or Aligner()
        self.extractor = extractor or FeatureExtractor()
        self.weights = weights
        self.min_coherence = min_coherence

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "HybridMatcher":
        config = config or Config()
        scoring = config.scoring
        return cls(
            normalizer=ImageNormalizer.from_config(config.normalization),
            enhancer=RidgeEnhancer.from_config(config.ridges),
            aligner=Aligner.from_config(config.alignment),
            extractor=FeatureExtractor.from_config(config.features),
            weights=scoring.weights,
            min_coherence=scoring.min_coherence,
            match_threshold=scoring.match_threshold,
            uncertain_threshold=scoring.uncertain_threshold,
            num_workers=scoring.num_workers,
        )

    @property
    def name(self) -> str:
        return "Hybrid"

    @property
    def description(self) -> str:
        return (
            "Aligned ridge energy images compared by orientation, Gabor, "
            "frequency, texture and pixel similarity"
        )

    def get_current_parameters(self) -> Dict[str, Any]:
        params = super().get_current_parameters()
        params.update({
            "weights": dict(self.weights),
            "min_coherence": self.min_coherence,
            "canvas_size": self.normalizer.canvas_size,
            "max_angle": self.aligner.max_angle,
            "angle_step": self.aligner.angle_step,
        })
        return params

    def ridge_image(self, image: np.ndarray, is_contact_sample: bool) -> np.ndarray:
        """
        Normalize an image and compute its ridge energy map.

        Args:
            image: Input image
            is_contact_sample: Whether the image comes from a contact scanner

        Returns:
            Ridge energy image (uint8, canvas sized)
        """
        normalized = self.normalizer.normalize(image, is_contact_sample=is_contact_sample)
        return self.enhancer.ridge_energy(normalized)

    def prepare_probe(self, probe: np.ndarray) -> ProbeState:
        ridges = self.ridge_image(probe, is_contact_sample=False)
        return ProbeState(ridges=ridges, features=self.extractor.extract(ridges))

    def compare_features(self, features_a: FeatureSet, features_b: FeatureSet) -> Dict[str, float]:
        """
        Per-feature similarities of two feature sets.

        Args:
            features_a: First feature set
            features_b: Second feature set

        Returns:
            Mapping of feature name to similarity in [0, 1]
        """
        return {
            "orientation": orientation_similarity(
                features_a.orientation, features_b.orientation, self.min_coherence
            ),
            "gabor": vector_similarity(features_a.gabor, features_b.gabor),
            "frequency": frequency_similarity(features_a.frequency, features_b.frequency),
            "texture": vector_similarity(features_a.texture, features_b.texture),
            "pixel": pixel_similarity(features_a.core, features_b.core),
        }

    def fuse(self, feature_scores: Mapping[str, float]) -> float:
        """
        Weighted sum of the feature similarities, scaled to [0, 100].

        Args:
            feature_scores: Mapping of feature name to similarity

        Returns:
            Fused score
        """
        return 100.0 * sum(
            weight * feature_scores[name] for name, weight in self.weights.items()
        )

    def score_candidate(
        self,
        probe_state: ProbeState,
        candidate: np.ndarray
    ) -> Tuple[float, Dict[str, float]]:
        candidate_ridges = self.ridge_image(candidate, is_contact_sample=True)
        alignment = self.aligner.align(probe_state.ridges, candidate_ridges)
        candidate_features = self.extractor.extract(alignment.image)

        feature_scores = self.compare_features(probe_state.features, candidate_features)
        return self.fuse(feature_scores), feature_scores
